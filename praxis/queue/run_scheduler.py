#!/usr/bin/env python3
"""
Stale Plan Sweeper for Praxis.

Periodically recovers plans the pipeline left behind:
- PENDING for too long: the enqueue was lost (crash between row creation
  and enqueue, or a dropped Redis write). The job is enqueued again.
- PROCESSING for too long: the worker died or hung past its job timeout.
  The plan is marked FAILED with an error payload.

Usage:
    python -m praxis.queue.run_scheduler
"""

import asyncio
import signal
import sys
from datetime import datetime, timezone, timedelta
from typing import Any, Dict

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from praxis.config import config, QueueSettings, QUEUE_PLAN_GENERATION
from praxis.errors import ConflictError, PraxisError
from praxis.models import EntityStatus, PlanGenerationPayload
from praxis.utils.logging import configure_logging, job_logger as logger


class StalePlanSweeper:
    """One sweep over stale PENDING and PROCESSING plans."""

    def __init__(
        self,
        plans,
        queue,
        pending_after: timedelta,
        processing_after: timedelta,
        batch_size: int = 100,
    ):
        self.plans = plans
        self.queue = queue
        self.pending_after = pending_after
        self.processing_after = processing_after
        self.batch_size = batch_size

    async def sweep(self) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        summary = {"requeued": 0, "failed": 0, "errors": 0}

        stale_pending = await self.plans.find_stale(
            EntityStatus.PENDING, now - self.pending_after, self.batch_size
        )
        for plan in stale_pending:
            try:
                # Bump the row first so the next sweep does not pick it up again
                plan = await self.plans.update(plan["id"], {}, expected_version=plan["version"])
                await self.queue.enqueue(
                    QUEUE_PLAN_GENERATION,
                    PlanGenerationPayload(
                        plan_id=plan["id"],
                        prompt=plan["description"],
                        user_id=plan["user_id"],
                    ),
                )
                summary["requeued"] += 1
            except ConflictError:
                continue
            except PraxisError as e:
                summary["errors"] += 1
                logger.error(f"Could not re-enqueue stale plan: {e.message}", plan_id=plan["id"])

        stale_processing = await self.plans.find_stale(
            EntityStatus.PROCESSING, now - self.processing_after, self.batch_size
        )
        minutes = int(self.processing_after.total_seconds() // 60)
        for plan in stale_processing:
            try:
                await self.plans.transition(
                    plan,
                    EntityStatus.FAILED,
                    content={
                        "error": f"Plan generation did not finish within {minutes} minutes",
                        "kind": "TIMEOUT",
                    },
                )
                summary["failed"] += 1
            except ConflictError:
                # A worker wrote to it meanwhile, so it is alive
                continue
            except PraxisError as e:
                summary["errors"] += 1
                logger.error(f"Could not fail stale plan: {e.message}", plan_id=plan["id"])

        if any(summary.values()):
            logger.info("Stale plan sweep finished", **summary)
        return summary


class SweepScheduler:
    """
    Runs the sweeper on an interval with APScheduler.

    max_instances=1 keeps sweeps from overlapping.
    """

    def __init__(self, sweeper: StalePlanSweeper, interval_seconds: int = 300):
        self.sweeper = sweeper
        self.interval = interval_seconds
        self.scheduler = AsyncIOScheduler()

    def start(self):
        self.scheduler.add_job(
            self.sweeper.sweep,
            trigger=IntervalTrigger(seconds=self.interval),
            id="stale_plan_sweep",
            name="Recover stale plans",
            replace_existing=True,
            max_instances=1,
        )
        self.scheduler.start()
        logger.info("Sweep scheduler started", interval=self.interval)

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Sweep scheduler stopped")


def build_sweeper(app_config=config, queue=None, plans=None) -> StalePlanSweeper:
    from praxis.database import PlanService
    from praxis.queue.tasks import RedisJobQueue

    return StalePlanSweeper(
        plans=plans or PlanService(),
        queue=queue or RedisJobQueue(QueueSettings.from_config(app_config)),
        pending_after=timedelta(minutes=app_config.STALE_PENDING_MINUTES),
        processing_after=timedelta(minutes=app_config.STALE_PROCESSING_MINUTES),
    )


async def run():
    scheduler = SweepScheduler(build_sweeper(), config.SWEEP_INTERVAL_SECONDS)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    scheduler.start()
    await scheduler.sweeper.sweep()
    await stop_event.wait()
    scheduler.stop()


def main() -> int:
    configure_logging(config.LOG_LEVEL)
    if not config.REDIS_URL:
        logger.error("REDIS_URL not configured - sweeper cannot start")
        return 1
    asyncio.run(run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
