"""
AIService: provider selection, per-call defaults and timeouts.

Providers are registered by kind and constructed once at startup:

    service = AIService.from_config(config)
    plan = await service.generate_plan("Learn Python")
"""

import asyncio
import time
from typing import Callable, Dict, List, Optional

from praxis.ai.base import AIProvider, AIResponse, ChatMessage, GenerateOptions
from praxis.ai.prompts import plan_messages, task_regeneration_messages
from praxis.ai.schemas import PlanOutput, parse_plan_output
from praxis.config import AppConfig
from praxis.errors import ProviderError, ValidationError
from praxis.utils.logging import provider_logger as logger


ProviderFactory = Callable[[AppConfig], AIProvider]

_PROVIDERS: Dict[str, ProviderFactory] = {}


def register_provider(kind: str):
    """Register a constructor for a provider kind."""
    def decorator(factory: ProviderFactory) -> ProviderFactory:
        _PROVIDERS[kind] = factory
        return factory
    return decorator


def available_providers() -> List[str]:
    return sorted(_PROVIDERS)


def create_provider(kind: str, app_config: AppConfig) -> AIProvider:
    factory = _PROVIDERS.get(kind)
    if factory is None:
        raise ValidationError(
            f"Unsupported provider: {kind} (available: {', '.join(available_providers())})"
        )
    return factory(app_config)


def _model_override(app_config: AppConfig) -> Dict[str, str]:
    """Pass a model only when one is configured."""
    return {"default_model": app_config.AI_MODEL} if app_config.AI_MODEL else {}


@register_provider("ollama")
def _ollama(app_config: AppConfig) -> AIProvider:
    from praxis.ai.ollama import OllamaProvider
    return OllamaProvider(
        base_url=app_config.AI_BASE_URL,
        timeout_seconds=app_config.AI_TIMEOUT_SECONDS,
        **_model_override(app_config),
    )


@register_provider("openai")
def _openai(app_config: AppConfig) -> AIProvider:
    from praxis.ai.openai import OpenAIProvider
    return OpenAIProvider(
        api_key=app_config.OPENAI_API_KEY,
        base_url=app_config.AI_BASE_URL,
        timeout_seconds=app_config.AI_TIMEOUT_SECONDS,
        **_model_override(app_config),
    )


@register_provider("anthropic")
def _anthropic(app_config: AppConfig) -> AIProvider:
    from praxis.ai.anthropic import AnthropicProvider
    return AnthropicProvider(
        api_key=app_config.ANTHROPIC_API_KEY,
        base_url=app_config.AI_BASE_URL,
        timeout_seconds=app_config.AI_TIMEOUT_SECONDS,
        default_max_tokens=app_config.AI_MAX_TOKENS,
        **_model_override(app_config),
    )


class AIService:
    """
    Wraps a provider with default options and a hard per-call timeout.

    The timeout cancels the awaiting task, which cancels the provider's
    in-flight HTTP request, so a stuck backend cannot hold a worker slot.
    """

    def __init__(
        self,
        provider: AIProvider,
        default_model: Optional[str] = None,
        *,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout_seconds: float = 120.0,
    ):
        self.provider = provider
        self.default_model = default_model or provider.default_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, app_config: AppConfig) -> "AIService":
        provider = create_provider(app_config.AI_PROVIDER, app_config)
        return cls(
            provider,
            app_config.AI_MODEL,
            temperature=app_config.AI_TEMPERATURE,
            max_tokens=app_config.AI_MAX_TOKENS,
            timeout_seconds=app_config.AI_TIMEOUT_SECONDS,
        )

    def _resolve(self, options: Optional[GenerateOptions]) -> GenerateOptions:
        options = options or GenerateOptions()
        return GenerateOptions(
            model=options.model or self.default_model,
            temperature=options.temperature if options.temperature is not None else self.temperature,
            max_tokens=options.max_tokens or self.max_tokens,
            stream=options.stream,
        )

    async def _call(self, operation: str, coro) -> AIResponse:
        start_time = time.time()
        try:
            response = await asyncio.wait_for(coro, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.warning(
                f"Provider {operation} timed out",
                provider=self.provider.name,
                timeout=self.timeout_seconds,
            )
            raise ProviderError(
                f"{self.provider.name} {operation} timed out after {self.timeout_seconds:g}s",
                provider=self.provider.name,
                timed_out=True,
            ) from e

        logger.debug(
            f"Provider {operation} finished",
            provider=self.provider.name,
            model=response.model,
            seconds=f"{time.time() - start_time:.2f}",
        )
        return response

    async def generate(self, prompt: str, options: Optional[GenerateOptions] = None) -> AIResponse:
        return await self._call("generate", self.provider.generate(prompt, self._resolve(options)))

    async def chat(
        self,
        messages: List[ChatMessage],
        options: Optional[GenerateOptions] = None
    ) -> AIResponse:
        return await self._call("chat", self.provider.chat(messages, self._resolve(options)))

    async def generate_plan(self, user_prompt: str) -> PlanOutput:
        """
        Ask the provider for a plan and parse it strictly.

        Raises:
            ProviderError: the call failed or timed out
            MalformedOutputError: the reply is not a valid plan object
        """
        response = await self.chat(plan_messages(user_prompt))
        return parse_plan_output(response.content)

    async def regenerate_task(self, context: str) -> str:
        """Return the provider's raw text for a task regeneration."""
        response = await self.chat(task_regeneration_messages(context))
        return response.content

    async def aclose(self):
        await self.provider.aclose()
