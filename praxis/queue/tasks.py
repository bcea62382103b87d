"""
RQ Task Definitions for Praxis.

These are the functions that run in the worker processes, plus the
producer used by the submission service to enqueue them.
"""

import asyncio
import uuid
from typing import Dict, Any, Optional

from pydantic import ValidationError as PayloadValidationError
from redis import Redis
from redis.exceptions import RedisError
from rq import Retry

from praxis.config import (
    config,
    QueueSettings,
    QUEUE_PLAN_GENERATION,
    QUEUE_TASK_REGENERATION,
    QUEUE_XP_RECALCULATION,
)
from praxis.errors import PraxisError, QueueError
from praxis.models import JobPayload
from praxis.utils.logging import job_logger as logger

from .connection import get_queue


# =============================================================================
# WORKER-SIDE TASKS
# =============================================================================

async def _run_async(queue_name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run one job's pipeline inside a fresh event loop.

    Retryable errors propagate so RQ applies its Retry policy; permanent
    ones (missing rows, version conflicts, bad payloads) are acknowledged
    with a failure result instead of burning retries.
    """
    from praxis.workers import build_pipelines

    pipelines = build_pipelines(config)
    try:
        return await pipelines.handlers()[queue_name](payload)
    except PayloadValidationError as e:
        logger.error("Dropping job with invalid payload", queue=queue_name, error=str(e))
        return {"success": False, "error": str(e), "code": "VALIDATION_ERROR"}
    except PraxisError as e:
        if e.retryable:
            raise
        logger.warning(
            f"Job not retried: {e.message}",
            queue=queue_name,
            code=e.kind.value,
        )
        return {"success": False, "error": e.message, "code": e.kind.value}
    finally:
        await pipelines.aclose()


def generate_plan_task(payload: Dict[str, Any]) -> Dict[str, Any]:
    """RQ task: {planId, prompt, userId}."""
    # RQ workers are sync
    return asyncio.run(_run_async(QUEUE_PLAN_GENERATION, payload))


def recalculate_xp_task(payload: Dict[str, Any]) -> Dict[str, Any]:
    """RQ task: {userId}."""
    return asyncio.run(_run_async(QUEUE_XP_RECALCULATION, payload))


def regenerate_task_task(payload: Dict[str, Any]) -> Dict[str, Any]:
    """RQ task: {taskId, context}."""
    return asyncio.run(_run_async(QUEUE_TASK_REGENERATION, payload))


TASK_FUNCTIONS = {
    QUEUE_PLAN_GENERATION: generate_plan_task,
    QUEUE_XP_RECALCULATION: recalculate_xp_task,
    QUEUE_TASK_REGENERATION: regenerate_task_task,
}


# =============================================================================
# QUEUE HELPERS
# =============================================================================

def _job_id(queue_name: str, payload: Dict[str, Any]) -> str:
    # One RQ job per plan, so a sweeper re-enqueue replaces the stale job record
    if queue_name == QUEUE_PLAN_GENERATION:
        return f"plan_{payload['planId']}"
    prefix = "xp" if queue_name == QUEUE_XP_RECALCULATION else "regen"
    return f"{prefix}_{uuid.uuid4().hex}"


class RedisJobQueue:
    """
    Producer for the durable RQ queues.

    Usage:
        queue = RedisJobQueue(QueueSettings.from_config(config))
        job_id = await queue.enqueue("plan-generation", payload)
    """

    def __init__(self, settings: QueueSettings, connection: Optional[Redis] = None):
        self.settings = settings
        self.connection = connection

    def _retry(self) -> Optional[Retry]:
        if self.settings.max_retries <= 0:
            return None
        return Retry(
            max=self.settings.max_retries,
            interval=list(self.settings.retry_intervals) or 0,
        )

    async def enqueue(self, queue_name: str, payload: JobPayload) -> str:
        """
        Enqueue a job and return its RQ job id.

        Raises:
            QueueError: unknown queue or Redis unavailable
        """
        if queue_name not in TASK_FUNCTIONS:
            raise QueueError(f"Unknown queue: {queue_name}")

        wire = payload.to_wire()
        try:
            queue = get_queue(queue_name, self.connection)
            job = queue.enqueue(
                TASK_FUNCTIONS[queue_name],
                wire,
                job_id=_job_id(queue_name, wire),
                job_timeout=self.settings.job_timeout,
                result_ttl=self.settings.result_ttl,
                failure_ttl=self.settings.failure_ttl,
                retry=self._retry(),
            )
        except RedisError as e:
            raise QueueError(f"Failed to enqueue {queue_name} job: {e}") from e

        logger.info("Job enqueued", queue=queue_name, job_id=job.id)
        return job.id
