"""
Anthropic provider built on langchain-anthropic's ChatAnthropic.
"""

from typing import List, Optional

from anthropic import AnthropicError, APIConnectionError, APIStatusError, APITimeoutError
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from praxis.ai.base import AIProvider, AIResponse, ChatMessage, GenerateOptions
from praxis.errors import ProviderError


DEFAULT_MODEL = "claude-sonnet-4-20250514"

_MESSAGE_TYPES = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


def _text_of(content) -> str:
    """ChatAnthropic returns either a string or a list of content blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    raise ProviderError("Anthropic response content has an unexpected type", provider="anthropic")


class AnthropicProvider(AIProvider):
    name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        default_model: str = DEFAULT_MODEL,
        timeout_seconds: float = 120.0,
        default_max_tokens: int = 2048,
    ):
        if not api_key:
            raise ProviderError("ANTHROPIC_API_KEY is required for the anthropic provider", provider=self.name)
        self.api_key = api_key
        self.base_url = base_url
        self.default_model = default_model
        self.timeout_seconds = timeout_seconds
        self.default_max_tokens = default_max_tokens

    def _llm(self, options: GenerateOptions) -> ChatAnthropic:
        kwargs = {}
        if self.base_url:
            kwargs["anthropic_api_url"] = self.base_url
        return ChatAnthropic(
            model=options.model or self.default_model,
            temperature=options.temperature if options.temperature is not None else 0.7,
            max_tokens=options.max_tokens or self.default_max_tokens,
            anthropic_api_key=self.api_key,
            timeout=self.timeout_seconds,
            max_retries=0,
            **kwargs,
        )

    async def generate(self, prompt: str, options: GenerateOptions) -> AIResponse:
        return await self.chat([ChatMessage(role="user", content=prompt)], options)

    async def chat(self, messages: List[ChatMessage], options: GenerateOptions) -> AIResponse:
        lc_messages: List[BaseMessage] = [
            _MESSAGE_TYPES[m.role](content=m.content) for m in messages
        ]
        llm = self._llm(options)

        try:
            response = await llm.ainvoke(lc_messages)
        except APITimeoutError as e:
            raise ProviderError("Anthropic request timed out", provider=self.name, timed_out=True) from e
        except APIStatusError as e:
            raise ProviderError(
                f"Anthropic returned HTTP {e.status_code}: {e.message}",
                provider=self.name,
                upstream_status=e.status_code,
            ) from e
        except (APIConnectionError, AnthropicError) as e:
            raise ProviderError(f"Anthropic request failed: {e}", provider=self.name) from e

        metadata = getattr(response, "response_metadata", None) or {}
        return AIResponse(
            content=_text_of(response.content),
            model=metadata.get("model", llm.model),
            done=True,
        )
