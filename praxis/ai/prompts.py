"""
Fixed instructions sent to the generation provider.
"""

from typing import List

from praxis.ai.base import ChatMessage


PLAN_SYSTEM_PROMPT = """You are a helpful AI assistant that generates structured plans.
Create a detailed plan with tasks based on the user's request.
Respond ONLY with valid JSON in this format:
{
  "title": "Plan Title",
  "description": "Brief description",
  "tasks": [
    { "title": "Task 1", "description": "Task description", "xpValue": 10 }
  ]
}
Rules:
- "tasks" lists the steps in the order they should be done.
- "xpValue" is a positive whole number reflecting the effort of the task.
- Do not wrap the JSON in markdown and do not add any other text."""


TASK_REGENERATION_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates task details."
)


def plan_messages(user_prompt: str) -> List[ChatMessage]:
    return [
        ChatMessage(role="system", content=PLAN_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user_prompt),
    ]


def task_regeneration_messages(context: str) -> List[ChatMessage]:
    return [
        ChatMessage(role="system", content=TASK_REGENERATION_SYSTEM_PROMPT),
        ChatMessage(role="user", content=f"Regenerate task with context: {context}"),
    ]
