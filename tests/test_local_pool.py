"""Tests for the in-process job queue and worker pools."""

import asyncio
import json

import pytest

from praxis.config import (
    AppConfig,
    QUEUE_PLAN_GENERATION,
    QUEUE_TASK_REGENERATION,
    QUEUE_XP_RECALCULATION,
    QueueSettings,
)
from praxis.errors import NotFoundError, ProviderError, QueueError
from praxis.jobs import AsyncWorkerPool, LocalJobQueue, LocalJobStatus, LocalWorkers
from praxis.models import PlanGenerationPayload, TaskRegenerationPayload, XPRecalculationPayload
from praxis.submission import SubmissionService
from praxis.workers import build_pipelines

from conftest import VALID_PLAN


def _xp_payload(n):
    return XPRecalculationPayload(user_id=f"user-{n}")


async def _run_pool(handler, jobs, concurrency, settings):
    source = LocalJobQueue()
    pool = AsyncWorkerPool(QUEUE_XP_RECALCULATION, handler, source, concurrency, settings)
    job_ids = [await source.enqueue(QUEUE_XP_RECALCULATION, payload) for payload in jobs]
    pool.start()
    await pool.drain()
    await pool.stop()
    return pool, [source.jobs[job_id] for job_id in job_ids]


def test_in_flight_jobs_never_exceed_concurrency(fast_settings):
    running = []

    async def handler(payload):
        running.append(payload["userId"])
        await asyncio.sleep(0.01)
        return {}

    pool, jobs = asyncio.run(_run_pool(handler, [_xp_payload(n) for n in range(7)], 2, fast_settings))

    assert pool.peak_in_flight == 2
    assert pool.in_flight == 0
    assert len(running) == 7
    assert all(job.status == LocalJobStatus.FINISHED for job in jobs)


def test_each_queue_gets_its_own_bound():
    settings = QueueSettings(retry_intervals=(0,))

    async def slow(payload):
        await asyncio.sleep(0.01)
        return {}

    async def scenario():
        workers = LocalWorkers(
            {name: slow for name in (QUEUE_PLAN_GENERATION, QUEUE_XP_RECALCULATION, QUEUE_TASK_REGENERATION)},
            settings,
        )
        for n in range(12):
            await workers.source.enqueue(QUEUE_PLAN_GENERATION, PlanGenerationPayload(plan_id=f"p{n}", prompt="x", user_id="u"))
            await workers.source.enqueue(QUEUE_XP_RECALCULATION, _xp_payload(n))
            await workers.source.enqueue(QUEUE_TASK_REGENERATION, TaskRegenerationPayload(task_id=f"t{n}", context="x"))
        workers.start()
        await workers.drain()
        await workers.stop()
        return {name: pool.peak_in_flight for name, pool in workers.pools.items()}

    peaks = asyncio.run(scenario())

    assert peaks == {
        QUEUE_PLAN_GENERATION: 2,
        QUEUE_XP_RECALCULATION: 5,
        QUEUE_TASK_REGENERATION: 3,
    }


def test_retryable_failure_is_retried_until_success(fast_settings):
    attempts = []

    async def flaky(payload):
        attempts.append(1)
        if len(attempts) < 3:
            raise ProviderError("temporarily down")
        return {"ok": True}

    pool, [job] = asyncio.run(_run_pool(flaky, [_xp_payload(1)], 1, fast_settings))

    assert job.attempts == 3
    assert job.status == LocalJobStatus.FINISHED
    assert job.result == {"ok": True}
    assert pool.dead_letters == []


def test_exhausted_retries_dead_letter_the_job(fast_settings):
    async def broken(payload):
        raise RuntimeError("always fails")

    pool, [job] = asyncio.run(_run_pool(broken, [_xp_payload(1)], 1, fast_settings))

    assert job.attempts == fast_settings.max_retries + 1
    assert job.status == LocalJobStatus.FAILED
    assert job.error == "always fails"
    assert pool.dead_letters == [job]


def test_permanent_error_is_not_retried(fast_settings):
    async def missing(payload):
        raise NotFoundError("Plan p1 not found")

    pool, [job] = asyncio.run(_run_pool(missing, [_xp_payload(1)], 1, fast_settings))

    assert job.attempts == 1
    assert job.status == LocalJobStatus.FAILED
    assert pool.dead_letters == [job]


def test_malformed_payload_is_dead_lettered_once(fast_settings):
    async def handler(payload):
        return PlanGenerationPayload.model_validate(payload)

    pool, [job] = asyncio.run(_run_pool(handler, [_xp_payload(1)], 1, fast_settings))

    assert job.attempts == 1
    assert job.status == LocalJobStatus.FAILED


def test_unknown_queue_is_rejected():
    source = LocalJobQueue()

    with pytest.raises(QueueError, match="emails"):
        asyncio.run(source.enqueue("emails", _xp_payload(1)))


def test_get_status_reports_job_state(fast_settings):
    async def handler(payload):
        return {}

    async def scenario():
        source = LocalJobQueue()
        job_id = await source.enqueue(QUEUE_XP_RECALCULATION, _xp_payload(1))
        queued = source.get_status(job_id)
        pool = AsyncWorkerPool(QUEUE_XP_RECALCULATION, handler, source, 1, fast_settings)
        pool.start()
        await pool.drain()
        await pool.stop()
        return queued, source.get_status(job_id), source.get_status("missing")

    queued, finished, missing = asyncio.run(scenario())

    assert queued["status"] == LocalJobStatus.QUEUED
    assert finished["status"] == LocalJobStatus.FINISHED
    assert finished["attempts"] == 1
    assert missing is None


def _pipeline_run(store, plans, tasks, users, ai, settings, prompts):
    async def scenario():
        pipelines = build_pipelines(AppConfig(), ai=ai, plans=plans, tasks=tasks, users=users)
        workers = LocalWorkers(pipelines.handlers(), settings)
        submission = SubmissionService(plans, workers.source)
        workers.start()
        plan_ids = [await submission.submit_plan("user-1", prompt) for prompt in prompts]
        await workers.drain()
        await workers.stop()
        return plan_ids, workers

    return asyncio.run(scenario())


def test_submitted_plan_is_generated_end_to_end(store, plans, tasks, users, make_ai, fast_settings):
    ai = make_ai(json.dumps(VALID_PLAN))

    [plan_id], _ = _pipeline_run(store, plans, tasks, users, ai, fast_settings, ["Learn Python"])

    plan = store.plans[plan_id]
    assert plan["status"] == "COMPLETED"
    assert plan["title"] == "Learn Python"
    assert [t["order"] for t in store.tasks_for(plan_id)] == [1, 2, 3]


def test_failed_attempt_is_retried_to_completion(store, plans, tasks, users, make_ai, fast_settings):
    ai = make_ai("not json at all", json.dumps(VALID_PLAN))

    [plan_id], workers = _pipeline_run(store, plans, tasks, users, ai, fast_settings, ["Learn Python"])

    plan = store.plans[plan_id]
    assert plan["status"] == "COMPLETED"
    assert "error" not in plan["content"]
    assert len(store.tasks_for(plan_id)) == 3
    assert workers.pools[QUEUE_PLAN_GENERATION].dead_letters == []


def test_permanently_broken_output_leaves_plan_failed(store, plans, tasks, users, make_ai, fast_settings):
    ai = make_ai("never json")

    [plan_id], workers = _pipeline_run(store, plans, tasks, users, ai, fast_settings, ["Learn Python"])

    plan = store.plans[plan_id]
    assert plan["status"] == "FAILED"
    assert plan["content"]["kind"] == "MALFORMED_OUTPUT"
    assert store.tasks_for(plan_id) == []
    assert len(workers.pools[QUEUE_PLAN_GENERATION].dead_letters) == 1


def test_learn_python_single_task_scenario(store, plans, tasks, users, make_ai, fast_settings):
    reply = {
        "title": "Learn Python",
        "description": "A first step",
        "tasks": [{"title": "Install Python", "description": "Get 3.12", "xpValue": 10}],
    }
    ai = make_ai(json.dumps(reply))

    [plan_id], _ = _pipeline_run(store, plans, tasks, users, ai, fast_settings, ["Learn Python"])

    assert store.plans[plan_id]["status"] == "COMPLETED"
    [task] = store.tasks_for(plan_id)
    assert task["order"] == 1
    assert task["xp_value"] == 10
    assert task["status"] == "PENDING"


def test_plain_text_reply_scenario(store, plans, tasks, users, make_ai, fast_settings):
    ai = make_ai("Step 1: install Python. Step 2: practice.")

    [plan_id], _ = _pipeline_run(store, plans, tasks, users, ai, fast_settings, ["Learn Python"])

    plan = store.plans[plan_id]
    assert plan["status"] == "FAILED"
    assert isinstance(plan["content"]["error"], str) and plan["content"]["error"]
    assert store.tasks_for(plan_id) == []
