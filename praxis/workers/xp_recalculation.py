"""
XP recalculation pipeline.
"""

from typing import Any, Dict, Union

from praxis.models import XPRecalculationPayload
from praxis.utils.logging import xp_logger as logger


class XPRecalculationWorker:
    """
    Sums XP of COMPLETED tasks on the user's COMPLETED plans and stores
    the total on the user row.

    The write is an absolute value, so running twice over unchanged data
    leaves the same total behind.
    """

    def __init__(self, tasks, users):
        self.tasks = tasks
        self.users = users

    async def calculate(self, user_id: str) -> int:
        return sum(await self.tasks.get_completed_xp(user_id))

    async def run(self, payload: Union[XPRecalculationPayload, Dict[str, Any]]) -> Dict[str, Any]:
        if not isinstance(payload, XPRecalculationPayload):
            payload = XPRecalculationPayload.model_validate(payload)

        total_xp = await self.calculate(payload.user_id)
        await self.users.set_total_xp(payload.user_id, total_xp)

        logger.info("XP recalculated", user_id=payload.user_id, total_xp=total_xp)
        return {"userId": payload.user_id, "totalXp": total_xp}
