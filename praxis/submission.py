"""
Job submission: accept a request, record it, enqueue, return.

None of these calls wait for a worker; the caller polls the Plan.
"""

from typing import Optional

from praxis.config import (
    QUEUE_PLAN_GENERATION,
    QUEUE_TASK_REGENERATION,
    QUEUE_XP_RECALCULATION,
)
from praxis.errors import PraxisError, QueueError, ValidationError, error_payload
from praxis.models import (
    EntityStatus,
    PlanGenerationPayload,
    TaskRegenerationPayload,
    XPRecalculationPayload,
)
from praxis.utils.logging import job_logger as logger


def _clean_text(value: Optional[str], field_name: str, max_length: int) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field_name} must not be empty")
    if len(text) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters")
    return text


class SubmissionService:
    """
    Usage:
        service = SubmissionService(plans, queue)
        plan_id = await service.submit_plan(user_id, "Learn Python")
    """

    def __init__(
        self,
        plans,
        queue,
        *,
        placeholder_title: str = "Generating...",
        max_prompt_length: int = 2000,
    ):
        self.plans = plans
        self.queue = queue
        self.placeholder_title = placeholder_title
        self.max_prompt_length = max_prompt_length

    async def submit_plan(self, user_id: str, prompt: str) -> str:
        """
        Create a PENDING plan and enqueue its generation job.

        Raises:
            ValidationError: empty or oversized prompt
            QueueError: the job could not be enqueued (the plan is marked FAILED)
        """
        prompt = _clean_text(prompt, "prompt", self.max_prompt_length)

        plan = await self.plans.create(
            user_id=user_id,
            title=self.placeholder_title,
            description=prompt,
            status=EntityStatus.PENDING,
        )
        plan_id = plan["id"]

        try:
            job_id = await self.queue.enqueue(
                QUEUE_PLAN_GENERATION,
                PlanGenerationPayload(plan_id=plan_id, prompt=prompt, user_id=user_id),
            )
        except QueueError as e:
            logger.error(f"Enqueue failed, marking plan failed: {e.message}", plan_id=plan_id)
            try:
                await self.plans.transition(plan, EntityStatus.FAILED, content=error_payload(e))
            except PraxisError as mark_error:
                # The sweeper will pick the PENDING row up
                logger.error(f"Could not mark plan failed: {mark_error}", plan_id=plan_id)
            raise

        logger.info("Plan generation submitted", plan_id=plan_id, job_id=job_id, user_id=user_id)
        return plan_id

    async def request_task_regeneration(self, task_id: str, context: str) -> str:
        context = _clean_text(context, "context", self.max_prompt_length)
        return await self.queue.enqueue(
            QUEUE_TASK_REGENERATION,
            TaskRegenerationPayload(task_id=task_id, context=context),
        )

    async def request_xp_recalculation(self, user_id: str) -> str:
        return await self.queue.enqueue(
            QUEUE_XP_RECALCULATION,
            XPRecalculationPayload(user_id=user_id),
        )
