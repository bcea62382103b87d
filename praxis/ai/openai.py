"""
OpenAI provider (also works with OpenAI-compatible endpoints via AI_BASE_URL).
"""

from typing import List, Optional

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    OpenAIError,
)

from praxis.ai.base import AIProvider, AIResponse, ChatMessage, GenerateOptions
from praxis.errors import ProviderError


DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider(AIProvider):
    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        default_model: str = DEFAULT_MODEL,
        timeout_seconds: float = 120.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        if client is None and not api_key:
            raise ProviderError("OPENAI_API_KEY is required for the openai provider", provider=self.name)
        self.default_model = default_model
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,  # the job queue owns retries
        )

    async def generate(self, prompt: str, options: GenerateOptions) -> AIResponse:
        # The legacy completions endpoint is gone for current models
        return await self.chat([ChatMessage(role="user", content=prompt)], options)

    async def chat(self, messages: List[ChatMessage], options: GenerateOptions) -> AIResponse:
        model = options.model or self.default_model
        kwargs = {}
        if options.temperature is not None:
            kwargs["temperature"] = options.temperature
        if options.max_tokens is not None:
            kwargs["max_tokens"] = options.max_tokens

        try:
            completion = await self._client.chat.completions.create(
                model=model,
                messages=[m.to_dict() for m in messages],
                **kwargs,
            )
        except APITimeoutError as e:
            raise ProviderError("OpenAI request timed out", provider=self.name, timed_out=True) from e
        except APIStatusError as e:
            raise ProviderError(
                f"OpenAI returned HTTP {e.status_code}: {e.message}",
                provider=self.name,
                upstream_status=e.status_code,
            ) from e
        except APIConnectionError as e:
            raise ProviderError(f"OpenAI connection failed: {e}", provider=self.name) from e
        except OpenAIError as e:
            raise ProviderError(f"OpenAI request failed: {e}", provider=self.name) from e

        if not completion.choices or completion.choices[0].message.content is None:
            raise ProviderError("OpenAI response has no message content", provider=self.name)

        choice = completion.choices[0]
        return AIResponse(
            content=choice.message.content,
            model=completion.model or model,
            done=choice.finish_reason is not None,
        )

    async def aclose(self):
        await self._client.close()
