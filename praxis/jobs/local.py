"""
In-process job queue and worker pools for development and tests.

Same contract as the RQ queues (named queues, at-least-once execution,
bounded concurrency, retry with backoff, dead-lettering) without Redis.
Nothing here survives a process restart.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PayloadValidationError

from praxis.config import ALL_QUEUES, QueueSettings
from praxis.errors import PraxisError, QueueError
from praxis.models import JobPayload
from praxis.utils.logging import job_logger as logger


class LocalJobStatus:
    QUEUED = "queued"
    RUNNING = "running"
    SCHEDULED = "scheduled"  # waiting for a retry
    FINISHED = "finished"
    FAILED = "failed"  # dead-lettered


@dataclass
class LocalJob:
    id: str
    queue: str
    payload: Dict[str, Any]
    attempts: int = 0
    status: str = LocalJobStatus.QUEUED
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LocalJobQueue:
    """
    Named asyncio queues.

    Usage:
        queue = LocalJobQueue()
        job_id = await queue.enqueue("plan-generation", payload)
    """

    def __init__(self, names=ALL_QUEUES):
        self._queues: Dict[str, asyncio.Queue] = {name: asyncio.Queue() for name in names}
        self.jobs: Dict[str, LocalJob] = {}

    def queue(self, name: str) -> asyncio.Queue:
        if name not in self._queues:
            raise QueueError(f"Unknown queue: {name}")
        return self._queues[name]

    async def enqueue(self, queue_name: str, payload: JobPayload) -> str:
        queue = self.queue(queue_name)
        job = LocalJob(id=uuid.uuid4().hex, queue=queue_name, payload=payload.to_wire())
        self.jobs[job.id] = job
        queue.put_nowait(job)
        logger.debug("Job enqueued", queue=queue_name, job_id=job.id)
        return job.id

    def requeue(self, job: LocalJob):
        job.status = LocalJobStatus.QUEUED
        self.queue(job.queue).put_nowait(job)

    def get_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        job = self.jobs.get(job_id)
        if job is None:
            return None
        return {
            "job_id": job.id,
            "queue": job.queue,
            "status": job.status,
            "attempts": job.attempts,
            "error": job.error,
        }


class AsyncWorkerPool:
    """
    K consumer coroutines over one named queue.

    Each consumer runs one job at a time, so no more than `concurrency`
    jobs of this queue execute simultaneously. A failed job goes back on
    the queue after its backoff delay; after `max_retries` retries, or on
    a permanent error, it is dead-lettered.
    """

    def __init__(
        self,
        queue_name: str,
        handler,
        source: LocalJobQueue,
        concurrency: int,
        settings: Optional[QueueSettings] = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.queue_name = queue_name
        self.handler = handler
        self.source = source
        self.concurrency = concurrency
        self.settings = settings or QueueSettings()

        self.in_flight = 0
        self.peak_in_flight = 0
        self.dead_letters: List[LocalJob] = []
        self._consumers: List[asyncio.Task] = []
        self._retries: set = set()

    @property
    def is_running(self) -> bool:
        return bool(self._consumers)

    def start(self):
        if self._consumers:
            return
        self._consumers = [
            asyncio.create_task(self._consume(), name=f"{self.queue_name}-worker-{i}")
            for i in range(self.concurrency)
        ]
        logger.info("Local worker pool started", queue=self.queue_name, workers=self.concurrency)

    async def _consume(self):
        queue = self.source.queue(self.queue_name)
        while True:
            job = await queue.get()
            try:
                await self._execute(job)
            finally:
                queue.task_done()

    async def _execute(self, job: LocalJob):
        job.attempts += 1
        job.status = LocalJobStatus.RUNNING
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)

        try:
            job.result = await self.handler(job.payload)
        except PayloadValidationError as e:
            self._dead_letter(job, str(e))
        except PraxisError as e:
            if e.retryable:
                self._retry_or_dead_letter(job, e)
            else:
                self._dead_letter(job, e.message)
        except Exception as e:
            self._retry_or_dead_letter(job, e)
        else:
            job.status = LocalJobStatus.FINISHED
            job.error = None
        finally:
            self.in_flight -= 1

    def _retry_or_dead_letter(self, job: LocalJob, error: Exception):
        job.error = str(error) or type(error).__name__
        if job.attempts > self.settings.max_retries:
            self._dead_letter(job, job.error)
            return

        delay = self.settings.backoff(job.attempts)
        job.status = LocalJobStatus.SCHEDULED
        logger.warning(
            f"Job failed, retrying in {delay}s: {job.error}",
            queue=self.queue_name,
            job_id=job.id,
            attempt=job.attempts,
        )
        retry = asyncio.create_task(self._requeue_later(job, delay))
        self._retries.add(retry)
        retry.add_done_callback(self._retries.discard)

    async def _requeue_later(self, job: LocalJob, delay: float):
        await asyncio.sleep(delay)
        self.source.requeue(job)

    def _dead_letter(self, job: LocalJob, error: str):
        job.status = LocalJobStatus.FAILED
        job.error = error
        self.dead_letters.append(job)
        logger.error(
            f"Job dead-lettered after {job.attempts} attempt(s): {error}",
            queue=self.queue_name,
            job_id=job.id,
        )

    async def drain(self):
        """Wait until the queue is empty and no retry is pending."""
        queue = self.source.queue(self.queue_name)
        while True:
            await queue.join()
            if self._retries:
                await asyncio.gather(*list(self._retries), return_exceptions=True)
            elif queue.empty():
                return

    async def stop(self):
        for consumer in self._consumers:
            consumer.cancel()
        for retry in list(self._retries):
            retry.cancel()
        await asyncio.gather(*self._consumers, *self._retries, return_exceptions=True)
        self._consumers = []
        logger.info("Local worker pool stopped", queue=self.queue_name)


class LocalWorkers:
    """
    One pool per queue, started and stopped together.

    Used by the API in DEV_MODE in place of the RQ worker processes.
    """

    def __init__(self, handlers: Dict[str, Any], settings: QueueSettings, source: Optional[LocalJobQueue] = None):
        self.source = source or LocalJobQueue()
        self.pools: Dict[str, AsyncWorkerPool] = {
            name: AsyncWorkerPool(
                name,
                handler,
                self.source,
                settings.concurrency_for(name),
                settings,
            )
            for name, handler in handlers.items()
        }

    def start(self):
        for pool in self.pools.values():
            pool.start()

    async def drain(self):
        for pool in self.pools.values():
            await pool.drain()

    async def stop(self):
        for pool in self.pools.values():
            await pool.stop()
