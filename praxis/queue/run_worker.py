#!/usr/bin/env python3
"""
RQ Worker Pool Runner for Praxis.

Runs a pool of worker processes for one queue. The pool size is the
queue's concurrency: at most that many jobs of the queue execute at once.
Run one pool per queue, separately from the web server.

Usage:
    python -m praxis.queue.run_worker --queue plan-generation
    python -m praxis.queue.run_worker --queue xp-recalculation --concurrency 5
    python -m praxis.queue.run_worker --queue task-regeneration --burst
"""

import argparse
import sys

from rq import Queue
from rq.worker_pool import WorkerPool

from praxis.config import config, QueueSettings, ALL_QUEUES, QUEUE_PLAN_GENERATION
from praxis.errors import QueueError
from praxis.queue.connection import get_redis_connection
from praxis.utils.logging import configure_logging, job_logger as logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a Praxis RQ worker pool")
    parser.add_argument(
        "--queue",
        "-q",
        choices=ALL_QUEUES,
        default=QUEUE_PLAN_GENERATION,
        help=f"Queue to process (default: {QUEUE_PLAN_GENERATION})"
    )
    parser.add_argument(
        "--concurrency",
        "-c",
        type=int,
        default=None,
        help="Number of worker processes (default: the queue's configured concurrency)"
    )
    parser.add_argument(
        "--burst",
        "-b",
        action="store_true",
        help="Run in burst mode (process all jobs and exit)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    return parser


def build_pool(queue_name: str, settings: QueueSettings, concurrency=None, connection=None) -> WorkerPool:
    """Create the worker pool for one queue."""
    num_workers = concurrency or settings.concurrency_for(queue_name)
    if num_workers < 1:
        raise ValueError("concurrency must be at least 1")

    connection = connection or get_redis_connection()
    queue = Queue(queue_name, connection=connection)
    return WorkerPool([queue], connection=connection, num_workers=num_workers)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    level = "DEBUG" if args.verbose else config.LOG_LEVEL
    configure_logging(level)

    settings = QueueSettings.from_config(config)

    try:
        pool = build_pool(args.queue, settings, args.concurrency)
    except QueueError as e:
        logger.error(f"Worker pool cannot start: {e.message}")
        return 1

    logger.info(
        "Worker pool starting",
        queue=args.queue,
        workers=pool.num_workers,
        burst=args.burst,
    )

    try:
        pool.start(burst=args.burst, logging_level=level)
    except KeyboardInterrupt:
        logger.info("Worker pool stopped by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
