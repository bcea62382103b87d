"""
Plans API Routes

Submission returns 202 immediately; clients poll the plan until its
status is COMPLETED or FAILED.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from praxis.api.dependencies import (
    get_current_user_id,
    get_plan_service,
    get_submission_service,
)
from praxis.errors import NotFoundError


router = APIRouter(prefix="/api/plans", tags=["plans"])


class GeneratePlanRequest(BaseModel):
    prompt: str


@router.post("/generate", status_code=202)
async def generate_plan(
    request: GeneratePlanRequest,
    user_id: str = Depends(get_current_user_id),
    submission=Depends(get_submission_service),
):
    """Queue plan generation for a free-text goal."""
    plan_id = await submission.submit_plan(user_id, request.prompt)
    return {
        "success": True,
        "data": {
            "planId": plan_id,
            "message": "Plan generation started",
        },
    }


@router.get("/{plan_id}")
async def get_plan(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    plans=Depends(get_plan_service),
):
    """Get a plan and its tasks in order."""
    plan = await plans.get_with_tasks(plan_id, user_id=user_id)
    if plan is None:
        raise NotFoundError("Plan not found")
    return {"success": True, "data": plan}
