"""
Generation provider abstraction.

- AIProvider: strategy over a backend (ollama, openai, anthropic)
- AIService: default options, timeouts, plan parsing
"""

from praxis.ai.base import AIProvider, AIResponse, ChatMessage, GenerateOptions
from praxis.ai.schemas import PlanOutput, TaskOutput, parse_plan_output
from praxis.ai.service import (
    AIService,
    available_providers,
    create_provider,
    register_provider,
)

__all__ = [
    "AIProvider",
    "AIResponse",
    "ChatMessage",
    "GenerateOptions",
    "PlanOutput",
    "TaskOutput",
    "parse_plan_output",
    "AIService",
    "available_providers",
    "create_provider",
    "register_provider",
]
