"""Shared test fixtures: in-memory stores, a scripted provider and a recording queue."""

import asyncio
import json
import uuid
from datetime import datetime, timezone

import pytest

from praxis.ai.base import AIProvider, AIResponse
from praxis.ai.service import AIService
from praxis.config import QueueSettings
from praxis.errors import ConflictError, NotFoundError
from praxis.models import EntityStatus, check_plan_transition, check_task_transition


VALID_PLAN = {
    "title": "Learn Python",
    "description": "From zero to scripts in four weeks",
    "tasks": [
        {"title": "Install Python", "description": "Set up 3.12 and an editor", "xpValue": 10},
        {"title": "Variables and types", "description": "Work through the basics", "xpValue": 20},
        {"title": "Write a CLI", "description": "Build a small argparse tool", "xpValue": 50},
    ],
}


def _now():
    return datetime.now(timezone.utc)


class FakeStore:
    """Rows shared by the fake services."""

    def __init__(self):
        self.plans = {}
        self.tasks = {}
        self.users = {}

    def add_user(self, user_id, total_xp=0):
        self.users[user_id] = {"id": user_id, "total_xp": total_xp}

    def add_plan(self, user_id="user-1", status=EntityStatus.PENDING, **fields):
        plan = {
            "id": uuid.uuid4().hex,
            "user_id": user_id,
            "title": "Generating...",
            "description": "Learn Python",
            "status": status.value,
            "content": None,
            "xp_earned": 0,
            "version": 1,
            "created_at": _now(),
            "updated_at": _now(),
            "completed_at": None,
        }
        plan.update(fields)
        self.plans[plan["id"]] = plan
        return dict(plan)

    def add_task(self, plan_id, order, xp_value=10, status=EntityStatus.PENDING, **fields):
        task = {
            "id": uuid.uuid4().hex,
            "plan_id": plan_id,
            "title": f"Task {order}",
            "description": "",
            "xp_value": xp_value,
            "order": order,
            "status": status.value,
            "content": None,
            "version": 1,
            "completed_at": None,
        }
        task.update(fields)
        self.tasks[task["id"]] = task
        return dict(task)

    def tasks_for(self, plan_id):
        return sorted(
            (dict(t) for t in self.tasks.values() if t["plan_id"] == plan_id),
            key=lambda t: t["order"],
        )


class FakePlanService:
    """PlanService over a FakeStore, with the same version semantics."""

    def __init__(self, store):
        self.store = store
        self.complete_error = None

    async def create(self, user_id, title, description, *, status=EntityStatus.PENDING):
        return self.store.add_plan(user_id, status, title=title, description=description)

    async def get(self, plan_id):
        plan = self.store.plans.get(plan_id)
        return dict(plan) if plan else None

    async def get_with_tasks(self, plan_id, user_id=None):
        plan = await self.get(plan_id)
        if plan is None or (user_id and plan["user_id"] != user_id):
            return None
        plan["tasks"] = self.store.tasks_for(plan_id)
        return plan

    async def find_stale(self, status, older_than, limit=100):
        stale = [
            dict(p) for p in self.store.plans.values()
            if p["status"] == status.value and p["updated_at"] < older_than
        ]
        return sorted(stale, key=lambda p: p["updated_at"])[:limit]

    async def update(self, plan_id, fields, expected_version=None):
        plan = self.store.plans.get(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        if expected_version is not None:
            if plan["version"] != expected_version:
                raise ConflictError(f"Plan {plan_id} was modified concurrently")
            plan["version"] = expected_version + 1
        plan.update(fields)
        plan["updated_at"] = _now()
        return dict(plan)

    async def transition(self, plan, status, **fields):
        target = check_plan_transition(plan["status"], status)
        update_data = {"status": target.value, **fields}
        if target == EntityStatus.COMPLETED:
            update_data["completed_at"] = _now()
        return await self.update(plan["id"], update_data, expected_version=plan["version"])

    async def complete_generation(self, plan, title, description, content, tasks):
        check_plan_transition(plan["status"], EntityStatus.COMPLETED)
        if self.complete_error is not None:
            raise self.complete_error

        stored = self.store.plans.get(plan["id"])
        if stored is None:
            raise NotFoundError(f"Plan {plan['id']} not found")
        if stored["version"] != plan["version"]:
            raise ConflictError(f"Plan {plan['id']} was modified concurrently")

        for task_id in [t["id"] for t in self.store.tasks.values() if t["plan_id"] == plan["id"]]:
            del self.store.tasks[task_id]
        for task in tasks:
            self.store.add_task(plan["id"], **task)

        stored.update({
            "title": title,
            "description": description,
            "content": content,
            "status": EntityStatus.COMPLETED.value,
            "version": stored["version"] + 1,
            "updated_at": _now(),
            "completed_at": _now(),
        })
        return dict(stored)


class FakeTaskService:
    def __init__(self, store):
        self.store = store

    async def create_many(self, plan_id, tasks):
        return [self.store.add_task(plan_id, **task) for task in tasks]

    async def get(self, task_id):
        task = self.store.tasks.get(task_id)
        return dict(task) if task else None

    async def get_owner(self, task_id):
        task = self.store.tasks.get(task_id)
        if task is None:
            return None
        return self.store.plans[task["plan_id"]]["user_id"]

    async def update(self, task_id, fields, expected_version=None):
        task = self.store.tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        if expected_version is not None:
            if task["version"] != expected_version:
                raise ConflictError(f"Task {task_id} was modified concurrently")
            task["version"] = expected_version + 1
        task.update(fields)
        return dict(task)

    async def transition(self, task, status, **fields):
        target = check_task_transition(task["status"], status)
        update_data = {"status": target.value, **fields}
        if target == EntityStatus.COMPLETED:
            update_data["completed_at"] = _now()
        elif task["status"] == EntityStatus.COMPLETED.value:
            update_data["completed_at"] = None
        return await self.update(task["id"], update_data, expected_version=task["version"])

    async def complete(self, task):
        return await self.transition(task, EntityStatus.COMPLETED)

    async def get_completed_xp(self, user_id):
        return [
            t["xp_value"] for t in self.store.tasks.values()
            if t["status"] == EntityStatus.COMPLETED.value
            and self.store.plans[t["plan_id"]]["user_id"] == user_id
            and self.store.plans[t["plan_id"]]["status"] == EntityStatus.COMPLETED.value
        ]


class FakeUserService:
    def __init__(self, store):
        self.store = store
        self.writes = []

    async def set_total_xp(self, user_id, total_xp):
        user = self.store.users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        user["total_xp"] = total_xp
        self.writes.append((user_id, total_xp))
        return dict(user)


class ScriptedProvider(AIProvider):
    """
    Replies from a script, one per call. The last reply repeats.
    Exceptions in the script are raised instead of returned.
    """

    name = "scripted"

    def __init__(self, *replies, delay=0.0):
        self.replies = list(replies) or [json.dumps(VALID_PLAN)]
        self.delay = delay
        self.calls = []
        self.closed = False

    def _next(self):
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def generate(self, prompt, options):
        self.calls.append(("generate", prompt, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        return AIResponse(content=self._next(), model=options.model or "scripted")

    async def chat(self, messages, options):
        self.calls.append(("chat", messages, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        return AIResponse(content=self._next(), model=options.model or "scripted")

    async def aclose(self):
        self.closed = True


class RecordingQueue:
    """Producer-side queue that records payloads; `error` makes enqueue raise."""

    def __init__(self, error=None):
        self.error = error
        self.jobs = []

    async def enqueue(self, queue_name, payload):
        if self.error is not None:
            raise self.error
        self.jobs.append((queue_name, payload.to_wire()))
        return f"job-{len(self.jobs)}"


@pytest.fixture()
def store():
    return FakeStore()


@pytest.fixture()
def plans(store):
    return FakePlanService(store)


@pytest.fixture()
def tasks(store):
    return FakeTaskService(store)


@pytest.fixture()
def users(store):
    return FakeUserService(store)


@pytest.fixture()
def make_ai():
    def _make(*replies, timeout_seconds=5.0, delay=0.0):
        provider = ScriptedProvider(*replies, delay=delay)
        return AIService(provider, "test-model", timeout_seconds=timeout_seconds)
    return _make


@pytest.fixture()
def fast_settings():
    """Queue settings with no backoff delay."""
    return QueueSettings(max_retries=2, retry_intervals=(0,))
