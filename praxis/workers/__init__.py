"""
Job pipelines, one per queue.

Usage:
    pipelines = build_pipelines(config)
    handler = pipelines.handlers()["plan-generation"]
    await handler({"planId": ..., "prompt": ..., "userId": ...})
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from praxis.ai.service import AIService
from praxis.config import (
    AppConfig,
    QUEUE_PLAN_GENERATION,
    QUEUE_TASK_REGENERATION,
    QUEUE_XP_RECALCULATION,
)
from praxis.workers.plan_generation import PlanGenerationWorker
from praxis.workers.task_regeneration import TaskRegenerationWorker
from praxis.workers.xp_recalculation import XPRecalculationWorker


Handler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


@dataclass
class Pipelines:
    ai: AIService
    plan_generation: PlanGenerationWorker
    xp_recalculation: XPRecalculationWorker
    task_regeneration: TaskRegenerationWorker

    def handlers(self) -> Dict[str, Handler]:
        return {
            QUEUE_PLAN_GENERATION: self.plan_generation.run,
            QUEUE_XP_RECALCULATION: self.xp_recalculation.run,
            QUEUE_TASK_REGENERATION: self.task_regeneration.run,
        }

    async def aclose(self):
        await self.ai.aclose()


def build_pipelines(
    app_config: AppConfig,
    *,
    ai: Optional[AIService] = None,
    plans=None,
    tasks=None,
    users=None,
) -> Pipelines:
    """Wire the pipelines to their collaborators (Supabase services by default)."""
    from praxis.database import PlanService, TaskService, UserService

    ai = ai or AIService.from_config(app_config)
    plans = plans or PlanService()
    tasks = tasks or TaskService()
    users = users or UserService()

    return Pipelines(
        ai=ai,
        plan_generation=PlanGenerationWorker(ai, plans),
        xp_recalculation=XPRecalculationWorker(tasks, users),
        task_regeneration=TaskRegenerationWorker(ai, tasks),
    )


__all__ = [
    "Handler",
    "Pipelines",
    "build_pipelines",
    "PlanGenerationWorker",
    "XPRecalculationWorker",
    "TaskRegenerationWorker",
]
