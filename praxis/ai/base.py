"""
Provider contract for text generation backends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional


Role = Literal["system", "user", "assistant"]


@dataclass
class ChatMessage:
    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class GenerateOptions:
    """
    Per-call generation options.

    `stream` is accepted for interface compatibility; consumers always
    wait for the complete result.
    """
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    stream: bool = False


@dataclass
class AIResponse:
    """Raw provider output. `content` is never parsed here."""
    content: str
    model: str
    done: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "model": self.model, "done": self.done}


class AIProvider(ABC):
    """Strategy over a text-generation backend."""

    name: str = "base"
    default_model: str = ""

    @abstractmethod
    async def generate(self, prompt: str, options: GenerateOptions) -> AIResponse:
        ...

    @abstractmethod
    async def chat(self, messages: List[ChatMessage], options: GenerateOptions) -> AIResponse:
        ...

    async def aclose(self):
        """Release network resources held by the provider."""
        return None
