"""
Task Service

Ordered task rows belonging to a plan, plus the XP read used by
recalculation.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from supabase import Client

from praxis.errors import ConflictError, NotFoundError
from praxis.models import EntityStatus, check_task_transition

from .client import execute, get_supabase_admin_client


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TaskService:
    """
    Service class for task operations.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    async def create_many(self, plan_id: str, tasks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Bulk-create tasks for a plan.

        Each entry carries title, description, xp_value and order.
        """
        if not tasks:
            return []
        now = _now()
        rows = [
            {
                "plan_id": plan_id,
                "title": t["title"],
                "description": t["description"],
                "xp_value": t["xp_value"],
                "order": t["order"],
                "status": EntityStatus.PENDING.value,
                "version": 1,
                "created_at": now,
                "updated_at": now,
            }
            for t in tasks
        ]
        result = execute(self.client.table("tasks").insert(rows), "Create tasks")
        return result.data

    async def get(self, task_id: str) -> Optional[Dict[str, Any]]:
        result = execute(
            self.client.table("tasks").select("*").eq("id", task_id),
            "Get task",
        )
        return result.data[0] if result.data else None

    async def get_owner(self, task_id: str) -> Optional[str]:
        """User ID owning the task's plan."""
        result = execute(
            self.client.table("tasks").select("id, plans!inner(user_id)").eq("id", task_id),
            "Get task owner",
        )
        if not result.data:
            return None
        return (result.data[0].get("plans") or {}).get("user_id")

    async def update(
        self,
        task_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Update a task, optionally guarded by its version.

        Raises:
            NotFoundError: the task does not exist
            ConflictError: the version moved on
        """
        update_data = dict(fields)
        update_data["updated_at"] = _now()

        query = self.client.table("tasks")
        if expected_version is not None:
            update_data["version"] = expected_version + 1
            query = query.update(update_data).eq("id", task_id).eq("version", expected_version)
        else:
            query = query.update(update_data).eq("id", task_id)

        result = execute(query, "Update task")
        if result.data:
            return result.data[0]

        if await self.get(task_id) is None:
            raise NotFoundError(f"Task {task_id} not found")
        raise ConflictError(
            f"Task {task_id} was modified concurrently (expected version {expected_version})"
        )

    async def transition(
        self,
        task: Dict[str, Any],
        status: EntityStatus,
        **fields
    ) -> Dict[str, Any]:
        target = check_task_transition(task["status"], status)
        update_data = {"status": target.value, **fields}
        if target == EntityStatus.COMPLETED:
            update_data["completed_at"] = _now()
        elif EntityStatus(task["status"]) == EntityStatus.COMPLETED:
            # Reopened (regeneration), no longer done
            update_data["completed_at"] = None
        return await self.update(task["id"], update_data, expected_version=task["version"])

    async def complete(self, task: Dict[str, Any]) -> Dict[str, Any]:
        """
        Mark a PENDING or FAILED task as done.

        Raises:
            ConflictError: the task is PROCESSING or already COMPLETED, or
                its version moved on
        """
        return await self.transition(task, EntityStatus.COMPLETED)

    async def get_completed_xp(self, user_id: str) -> List[int]:
        """
        XP values of COMPLETED tasks on the user's COMPLETED plans.
        """
        result = execute(
            self.client.table("tasks")
            .select("xp_value, plans!inner(user_id, status)")
            .eq("status", EntityStatus.COMPLETED.value)
            .eq("plans.user_id", user_id)
            .eq("plans.status", EntityStatus.COMPLETED.value),
            "Read completed XP",
        )
        return [row["xp_value"] for row in result.data]
