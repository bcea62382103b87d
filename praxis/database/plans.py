"""
Plan Service

Plan rows and their status transitions. Every pipeline write is guarded
by the row's `version` column: the update only applies when the version
still matches the one the worker read, and bumps it by one.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from supabase import Client

from praxis.errors import ConflictError, NotFoundError
from praxis.models import EntityStatus, check_plan_transition

from .client import execute, get_supabase_admin_client


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PlanService:
    """
    Service class for plan operations.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    # =========================================================================
    # Creation & Retrieval
    # =========================================================================

    async def create(
        self,
        user_id: str,
        title: str,
        description: str,
        *,
        status: EntityStatus = EntityStatus.PENDING,
    ) -> Dict[str, Any]:
        """Create a plan row (the submission placeholder)."""
        now = _now()
        plan_data = {
            "user_id": user_id,
            "title": title,
            "description": description,
            "status": status.value,
            "xp_earned": 0,
            "version": 1,
            "created_at": now,
            "updated_at": now,
        }
        result = execute(self.client.table("plans").insert(plan_data), "Create plan")
        return result.data[0]

    async def get(self, plan_id: str) -> Optional[Dict[str, Any]]:
        """Get a plan by ID."""
        result = execute(
            self.client.table("plans").select("*").eq("id", plan_id),
            "Get plan",
        )
        return result.data[0] if result.data else None

    async def get_with_tasks(self, plan_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Get a plan with its tasks sorted by order (the polling view)."""
        query = self.client.table("plans").select("*, tasks(*)").eq("id", plan_id)
        if user_id:
            query = query.eq("user_id", user_id)
        result = execute(query, "Get plan with tasks")
        if not result.data:
            return None
        plan = result.data[0]
        plan["tasks"] = sorted(plan.get("tasks") or [], key=lambda t: t["order"])
        return plan

    async def find_stale(
        self,
        status: EntityStatus,
        older_than: datetime,
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        """Plans stuck in `status` whose last update is older than `older_than`."""
        result = execute(
            self.client.table("plans")
            .select("*")
            .eq("status", status.value)
            .lt("updated_at", older_than.isoformat())
            .order("updated_at")
            .limit(limit),
            "Find stale plans",
        )
        return result.data

    # =========================================================================
    # Updates
    # =========================================================================

    async def update(
        self,
        plan_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Update a plan.

        With `expected_version`, the write only applies if nobody else
        touched the row since it was read.

        Raises:
            NotFoundError: the plan does not exist
            ConflictError: the version moved on
        """
        update_data = dict(fields)
        update_data["updated_at"] = _now()

        query = self.client.table("plans")
        if expected_version is not None:
            update_data["version"] = expected_version + 1
            query = query.update(update_data).eq("id", plan_id).eq("version", expected_version)
        else:
            query = query.update(update_data).eq("id", plan_id)

        result = execute(query, "Update plan")
        if result.data:
            return result.data[0]

        if await self.get(plan_id) is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        raise ConflictError(
            f"Plan {plan_id} was modified concurrently (expected version {expected_version})"
        )

    async def transition(
        self,
        plan: Dict[str, Any],
        status: EntityStatus,
        **fields
    ) -> Dict[str, Any]:
        """Move a plan read earlier to `status`, checking the state machine and version."""
        target = check_plan_transition(plan["status"], status)
        update_data = {"status": target.value, **fields}
        if target == EntityStatus.COMPLETED:
            update_data["completed_at"] = _now()
        return await self.update(plan["id"], update_data, expected_version=plan["version"])

    async def complete_generation(
        self,
        plan: Dict[str, Any],
        title: str,
        description: str,
        content: Dict[str, Any],
        tasks: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Replace the plan's tasks and mark it COMPLETED in one transaction.

        Runs the `complete_plan_generation` Postgres function, which
        deletes existing tasks for the plan (a retry after partial
        success), inserts the new ones and flips the status, all guarded
        by the expected version.
        """
        check_plan_transition(plan["status"], EntityStatus.COMPLETED)
        result = execute(
            self.client.rpc("complete_plan_generation", {
                "p_plan_id": plan["id"],
                "p_expected_version": plan["version"],
                "p_title": title,
                "p_description": description,
                "p_content": content,
                "p_tasks": tasks,
            }),
            "Complete plan generation",
        )
        data = result.data
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            raise ConflictError(f"Plan {plan['id']} was modified concurrently")
        return data
