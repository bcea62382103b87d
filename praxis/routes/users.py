"""
User API Routes
"""

from fastapi import APIRouter, Depends

from praxis.api.dependencies import get_current_user_id, get_submission_service


router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/me/xp/recalculate", status_code=202)
async def recalculate_xp(
    user_id: str = Depends(get_current_user_id),
    submission=Depends(get_submission_service),
):
    """Queue a recomputation of the caller's total XP."""
    job_id = await submission.request_xp_recalculation(user_id)
    return {"success": True, "data": {"userId": user_id, "jobId": job_id}}
