"""Tests for the Supabase-backed services against a mocked client."""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock, call

import pytest
from postgrest.exceptions import APIError

from praxis.database import PlanService, TaskService, UserService
from praxis.errors import ConflictError, NotFoundError, PersistenceError
from praxis.models import EntityStatus


def _client(*results):
    """A client whose query builder chains to itself and returns `results` in order."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "insert", "update", "eq", "lt", "order", "limit"):
        getattr(query, method).return_value = query
    client.table.return_value = query
    client.rpc.return_value = query
    query.execute.side_effect = [SimpleNamespace(data=data) for data in results]
    return client, query


class TestPlanService:
    def test_create_sets_pending_and_version(self):
        client, query = _client([{"id": "p1", "status": "PENDING", "version": 1}])

        plan = asyncio.run(PlanService(client).create("user-1", "Generating...", "Learn Python"))

        assert plan["id"] == "p1"
        client.table.assert_called_with("plans")
        inserted = query.insert.call_args.args[0]
        assert inserted["status"] == "PENDING"
        assert inserted["version"] == 1
        assert inserted["description"] == "Learn Python"

    def test_versioned_update_filters_on_version_and_bumps_it(self):
        client, query = _client([{"id": "p1", "version": 4}])

        asyncio.run(PlanService(client).update("p1", {"status": "PROCESSING"}, expected_version=3))

        updated = query.update.call_args.args[0]
        assert updated["version"] == 4
        assert updated["status"] == "PROCESSING"
        assert query.eq.call_args_list == [call("id", "p1"), call("version", 3)]

    def test_version_mismatch_is_conflict(self):
        client, _ = _client([], [{"id": "p1", "version": 9}])

        with pytest.raises(ConflictError):
            asyncio.run(PlanService(client).update("p1", {}, expected_version=3))

    def test_missing_row_is_not_found(self):
        client, _ = _client([], [])

        with pytest.raises(NotFoundError):
            asyncio.run(PlanService(client).update("p1", {}, expected_version=3))

    def test_transition_rejects_illegal_move_without_writing(self):
        client, query = _client()
        plan = {"id": "p1", "status": "COMPLETED", "version": 2}

        with pytest.raises(ConflictError):
            asyncio.run(PlanService(client).transition(plan, EntityStatus.PROCESSING))

        query.execute.assert_not_called()

    def test_complete_generation_calls_rpc_with_expected_version(self):
        client, _ = _client([{"id": "p1", "status": "COMPLETED", "version": 3}])
        plan = {"id": "p1", "status": "PROCESSING", "version": 2}
        tasks = [{"title": "a", "description": "b", "xp_value": 10, "order": 1}]

        result = asyncio.run(PlanService(client).complete_generation(
            plan, title="T", description="D", content={"title": "T"}, tasks=tasks,
        ))

        assert result["status"] == "COMPLETED"
        name, params = client.rpc.call_args.args
        assert name == "complete_plan_generation"
        assert params["p_plan_id"] == "p1"
        assert params["p_expected_version"] == 2
        assert params["p_tasks"] == tasks

    def test_serialization_failure_maps_to_conflict(self):
        client, query = _client()
        query.execute.side_effect = APIError({
            "message": "plan p1 version is 3, expected 2",
            "code": "40001",
            "hint": None,
            "details": None,
        })
        plan = {"id": "p1", "status": "PROCESSING", "version": 2}

        with pytest.raises(ConflictError):
            asyncio.run(PlanService(client).complete_generation(
                plan, title="T", description="D", content={}, tasks=[],
            ))

    def test_other_api_errors_map_to_persistence_error(self):
        client, query = _client()
        query.execute.side_effect = APIError({
            "message": "permission denied",
            "code": "42501",
            "hint": None,
            "details": None,
        })

        with pytest.raises(PersistenceError):
            asyncio.run(PlanService(client).get("p1"))

    def test_get_with_tasks_sorts_tasks(self):
        client, query = _client([{"id": "p1", "tasks": [{"order": 2}, {"order": 1}]}])

        plan = asyncio.run(PlanService(client).get_with_tasks("p1", user_id="user-1"))

        assert [t["order"] for t in plan["tasks"]] == [1, 2]
        assert call("user_id", "user-1") in query.eq.call_args_list


class TestTaskService:
    def test_create_many_inserts_pending_rows_in_given_order(self):
        client, query = _client([{"id": "t1"}, {"id": "t2"}])
        tasks = [
            {"title": "a", "description": "", "xp_value": 5, "order": 1},
            {"title": "b", "description": "", "xp_value": 7, "order": 2},
        ]

        asyncio.run(TaskService(client).create_many("p1", tasks))

        rows = query.insert.call_args.args[0]
        assert [r["order"] for r in rows] == [1, 2]
        assert all(r["status"] == "PENDING" and r["plan_id"] == "p1" for r in rows)

    def test_completed_xp_filters_on_task_and_plan_status(self):
        client, query = _client([{"xp_value": 10}, {"xp_value": 25}])

        values = asyncio.run(TaskService(client).get_completed_xp("user-1"))

        assert values == [10, 25]
        assert query.eq.call_args_list == [
            call("status", "COMPLETED"),
            call("plans.user_id", "user-1"),
            call("plans.status", "COMPLETED"),
        ]

    def test_complete_stamps_completion_time_under_version_guard(self):
        client, query = _client([{"id": "t1", "status": "COMPLETED", "version": 3}])
        task = {"id": "t1", "status": "PENDING", "version": 2}

        asyncio.run(TaskService(client).complete(task))

        updated = query.update.call_args.args[0]
        assert updated["status"] == "COMPLETED"
        assert updated["completed_at"] is not None
        assert updated["version"] == 3
        assert query.eq.call_args_list == [call("id", "t1"), call("version", 2)]

    def test_complete_rejects_task_being_regenerated(self):
        client, query = _client()

        with pytest.raises(ConflictError):
            asyncio.run(TaskService(client).complete({"id": "t1", "status": "PROCESSING", "version": 2}))

        query.execute.assert_not_called()

    def test_reopening_a_completed_task_clears_completion_time(self):
        client, query = _client(
            [{"id": "t1", "status": "PROCESSING", "version": 3}],
            [{"id": "t1", "status": "PENDING", "version": 4}],
        )
        service = TaskService(client)
        task = {"id": "t1", "status": "COMPLETED", "version": 2, "completed_at": "2026-01-01T00:00:00+00:00"}

        processing = asyncio.run(service.transition(task, EntityStatus.PROCESSING))
        reopened = query.update.call_args.args[0]
        asyncio.run(service.transition(processing, EntityStatus.PENDING, content={"regenerated": "x"}))
        settled = query.update.call_args.args[0]

        assert "completed_at" in reopened and reopened["completed_at"] is None
        assert "completed_at" not in settled

    def test_get_owner(self):
        client, _ = _client([{"id": "t1", "plans": {"user_id": "user-1"}}])

        assert asyncio.run(TaskService(client).get_owner("t1")) == "user-1"


class TestUserService:
    def test_set_total_xp_writes_absolute_value(self):
        client, query = _client([{"id": "user-1", "total_xp": 35}])

        asyncio.run(UserService(client).set_total_xp("user-1", 35))

        client.table.assert_called_with("users")
        assert query.update.call_args.args[0]["total_xp"] == 35

    def test_unknown_user_is_not_found(self):
        client, _ = _client([])

        with pytest.raises(NotFoundError):
            asyncio.run(UserService(client).set_total_xp("ghost", 0))
