"""
Task regeneration pipeline.

Produces new draft content for a task. Success puts the task back to
PENDING, it does not mark it done.
"""

from typing import Any, Dict, Union

from praxis.ai.service import AIService
from praxis.errors import ConflictError, NotFoundError, PraxisError
from praxis.models import EntityStatus, TaskRegenerationPayload
from praxis.utils.logging import regen_logger as logger


class TaskRegenerationWorker:

    def __init__(self, ai: AIService, tasks):
        self.ai = ai
        self.tasks = tasks

    async def run(self, payload: Union[TaskRegenerationPayload, Dict[str, Any]]) -> Dict[str, Any]:
        if not isinstance(payload, TaskRegenerationPayload):
            payload = TaskRegenerationPayload.model_validate(payload)

        task_id = payload.task_id
        log = logger.bind(task_id=task_id)

        task = await self.tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")

        task = await self.tasks.transition(task, EntityStatus.PROCESSING)

        try:
            text = await self.ai.regenerate_task(payload.context)
            await self.tasks.transition(
                task,
                EntityStatus.PENDING,
                content={"regenerated": text},
            )
        except ConflictError:
            log.warning("Task changed under this job, aborting")
            raise
        except Exception as e:
            log.error(f"Task regeneration failed: {e}", error_type=type(e).__name__)
            try:
                await self.tasks.transition(task, EntityStatus.FAILED)
            except PraxisError as mark_error:
                log.error(f"Could not mark task failed: {mark_error}")
            raise

        log.info("Task regenerated")
        return {"taskId": task_id, "regenerated": True}
