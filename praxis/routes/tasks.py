"""
Tasks API Routes
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from praxis.api.dependencies import (
    get_current_user_id,
    get_submission_service,
    get_task_service,
)
from praxis.errors import NotFoundError
from praxis.models import EntityStatus


router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class RegenerateTaskRequest(BaseModel):
    context: str


@router.post("/{task_id}/regenerate", status_code=202)
async def regenerate_task(
    task_id: str,
    request: RegenerateTaskRequest,
    user_id: str = Depends(get_current_user_id),
    tasks=Depends(get_task_service),
    submission=Depends(get_submission_service),
):
    """Queue new draft content for a task the caller owns."""
    if await tasks.get_owner(task_id) != user_id:
        raise NotFoundError("Task not found")

    job_id = await submission.request_task_regeneration(task_id, request.context)
    return {
        "success": True,
        "data": {"taskId": task_id, "jobId": job_id},
    }


@router.post("/{task_id}/complete")
async def complete_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    tasks=Depends(get_task_service),
    submission=Depends(get_submission_service),
):
    """
    Mark a task the caller owns as done and queue their XP recalculation.

    Completing an already COMPLETED task only re-queues the recalculation,
    so a client can retry after a queue outage.
    """
    if await tasks.get_owner(task_id) != user_id:
        raise NotFoundError("Task not found")

    task = await tasks.get(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    if task["status"] != EntityStatus.COMPLETED.value:
        task = await tasks.complete(task)

    job_id = await submission.request_xp_recalculation(user_id)
    return {
        "success": True,
        "data": {"task": task, "xpJobId": job_id},
    }
