"""
Request dependencies: services from app state and the caller's user id.
"""

from typing import Optional

from fastapi import Header, HTTPException, Request

from praxis.config import config


def get_submission_service(request: Request):
    return request.app.state.services.submission


def get_plan_service(request: Request):
    return request.app.state.services.plans


def get_task_service(request: Request):
    return request.app.state.services.tasks


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id")
) -> str:
    """
    User id set by the authenticating gateway in front of this service.

    In dev mode a missing header falls back to a fixed test user.
    """
    if x_user_id:
        return x_user_id

    if config.DEV_MODE:
        return "dev-user-id"

    raise HTTPException(status_code=401, detail="X-User-Id header required")
