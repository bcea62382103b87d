"""
In-process job queue (development mode and tests).

Components:
- LocalJobQueue: named asyncio queues with job status tracking
- AsyncWorkerPool: bounded-concurrency consumers for one queue
- LocalWorkers: one pool per queue, started with the API in DEV_MODE
"""

from praxis.jobs.local import (
    AsyncWorkerPool,
    LocalJob,
    LocalJobQueue,
    LocalJobStatus,
    LocalWorkers,
)

__all__ = [
    "AsyncWorkerPool",
    "LocalJob",
    "LocalJobQueue",
    "LocalJobStatus",
    "LocalWorkers",
]
