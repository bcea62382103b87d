"""
Ollama provider: a local model server reached over its HTTP API.
"""

from typing import Any, Dict, List, Optional

import httpx

from praxis.ai.base import AIProvider, AIResponse, ChatMessage, GenerateOptions
from praxis.errors import ProviderError


DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "mistral"


class OllamaProvider(AIProvider):
    """
    Calls `/api/generate` and `/api/chat` with streaming disabled.

    Connection errors, non-2xx statuses, timeouts and responses without
    text all surface as ProviderError.
    """

    name = "ollama"

    def __init__(
        self,
        base_url: Optional[str] = None,
        default_model: str = DEFAULT_MODEL,
        timeout_seconds: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.default_model = default_model
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
        )

    def _options(self, options: GenerateOptions) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if options.temperature is not None:
            body["temperature"] = options.temperature
        if options.max_tokens is not None:
            body["num_predict"] = options.max_tokens
        return body

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise ProviderError(
                f"Ollama request to {path} timed out", provider=self.name, timed_out=True
            ) from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Ollama returned HTTP {e.response.status_code} for {path}",
                provider=self.name,
                upstream_status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Ollama request to {path} failed: {e}", provider=self.name
            ) from e
        except ValueError as e:
            # Body was not JSON at all; that is a backend failure, not model output
            raise ProviderError(
                f"Ollama returned an unreadable body for {path}", provider=self.name
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(
                f"Ollama returned a JSON {type(data).__name__} instead of an object for {path}",
                provider=self.name,
            )
        return data

    async def generate(self, prompt: str, options: GenerateOptions) -> AIResponse:
        model = options.model or self.default_model
        data = await self._post("/api/generate", {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": self._options(options),
        })

        content = data.get("response")
        if not isinstance(content, str):
            raise ProviderError("Ollama generate response has no text", provider=self.name)

        return AIResponse(
            content=content,
            model=data.get("model", model),
            done=bool(data.get("done", True)),
        )

    async def chat(self, messages: List[ChatMessage], options: GenerateOptions) -> AIResponse:
        model = options.model or self.default_model
        data = await self._post("/api/chat", {
            "model": model,
            "messages": [m.to_dict() for m in messages],
            "stream": False,
            "options": self._options(options),
        })

        message = data.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise ProviderError("Ollama chat response has no message content", provider=self.name)

        return AIResponse(
            content=content,
            model=data.get("model", model),
            done=bool(data.get("done", True)),
        )

    async def aclose(self):
        await self._client.aclose()
