"""
User Service

The core only touches one user column: `total_xp`, the write-back
target of XP recalculation. Accounts themselves are managed elsewhere.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any

from supabase import Client

from praxis.errors import NotFoundError

from .client import execute, get_supabase_admin_client


class UserService:

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    async def set_total_xp(self, user_id: str, total_xp: int) -> Dict[str, Any]:
        """Write an absolute XP total (never an increment, so reruns are harmless)."""
        result = execute(
            self.client.table("users")
            .update({
                "total_xp": total_xp,
                "xp_updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", user_id),
            "Update user XP",
        )
        if not result.data:
            raise NotFoundError(f"User {user_id} not found")
        return result.data[0]
