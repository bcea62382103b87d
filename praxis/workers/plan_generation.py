"""
Plan generation pipeline.

PENDING -> PROCESSING -> (provider call, strict parse) -> COMPLETED
                                                      or FAILED

The PROCESSING write happens before the provider call, so a crash while
generating shows up as a plan stuck in PROCESSING (which the sweeper
recovers) rather than silently lost work.
"""

import time
from typing import Any, Dict, Union

from praxis.ai.service import AIService
from praxis.errors import ConflictError, NotFoundError, PraxisError, error_payload
from praxis.models import EntityStatus, PlanGenerationPayload
from praxis.utils.logging import AppLogger, plan_logger as logger


class PlanGenerationWorker:
    """
    Executes one plan-generation job to a terminal outcome.

    Failures in the provider call, the parse or the final write mark the
    plan FAILED with an error payload, then re-raise so the queue's retry
    policy decides what happens to the job. A retry that succeeds moves
    FAILED -> PROCESSING -> COMPLETED and overwrites the error payload.
    """

    def __init__(self, ai: AIService, plans):
        self.ai = ai
        self.plans = plans

    async def run(self, payload: Union[PlanGenerationPayload, Dict[str, Any]]) -> Dict[str, Any]:
        if not isinstance(payload, PlanGenerationPayload):
            payload = PlanGenerationPayload.model_validate(payload)

        plan_id = payload.plan_id
        log = logger.bind(plan_id=plan_id)
        start_time = time.time()

        plan = await self.plans.get(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")

        if plan["status"] == EntityStatus.COMPLETED.value:
            # Redelivery of a job whose earlier attempt finished
            log.info("Plan already completed, skipping")
            return {"planId": plan_id, "skipped": True}

        plan = await self.plans.transition(plan, EntityStatus.PROCESSING)
        log.info("Generating plan", user_id=payload.user_id)

        try:
            output = await self.ai.generate_plan(payload.prompt)

            tasks = [
                {
                    "title": task.title,
                    "description": task.description,
                    "xp_value": task.xp_value,
                    "order": index + 1,
                }
                for index, task in enumerate(output.tasks)
            ]

            plan = await self.plans.complete_generation(
                plan,
                title=output.title,
                description=output.description,
                content=output.to_content(),
                tasks=tasks,
            )
        except ConflictError:
            # Another job owns the row now; leave it alone
            log.warning("Plan changed under this job, aborting")
            raise
        except Exception as e:
            log.error(f"Plan generation failed: {e}", error_type=type(e).__name__)
            await self._mark_failed(plan, e, log)
            raise

        generation_time = time.time() - start_time
        log.info(
            "Plan generated",
            task_count=len(tasks),
            generation_time=f"{generation_time:.1f}s",
        )
        return {"planId": plan_id, "taskCount": len(tasks)}

    async def _mark_failed(self, plan: Dict[str, Any], error: Exception, log: AppLogger):
        try:
            await self.plans.transition(
                plan,
                EntityStatus.FAILED,
                content=error_payload(error),
            )
        except PraxisError as mark_error:
            # The original error is what the queue needs to see
            log.error(f"Could not mark plan failed: {mark_error}")
