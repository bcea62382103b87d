"""
Redis connection management for the RQ job queues.

Provides a singleton Redis connection and queue instances.
"""

from typing import Optional

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue

from praxis.config import (
    config,
    ALL_QUEUES,
    QUEUE_PLAN_GENERATION,
    QUEUE_TASK_REGENERATION,
    QUEUE_XP_RECALCULATION,
)
from praxis.errors import QueueError
from praxis.utils.logging import job_logger as logger

# Singleton connection
_redis_connection: Optional[Redis] = None

__all__ = [
    "QUEUE_PLAN_GENERATION",
    "QUEUE_XP_RECALCULATION",
    "QUEUE_TASK_REGENERATION",
    "get_redis_connection",
    "get_queue",
    "redis_health_check",
]


def get_redis_connection(redis_url: Optional[str] = None) -> Redis:
    """
    Get the Redis connection singleton.

    Raises:
        QueueError: If REDIS_URL is not configured or Redis is unreachable
    """
    global _redis_connection

    if _redis_connection is None:
        redis_url = redis_url or config.REDIS_URL
        if not redis_url:
            raise QueueError(
                "REDIS_URL environment variable is required for the job queue. "
                "Set up a local or hosted Redis and configure REDIS_URL."
            )

        connection = Redis.from_url(
            redis_url,
            decode_responses=False,  # RQ needs bytes
            socket_timeout=10,
            socket_connect_timeout=10,
            retry_on_timeout=True,
            health_check_interval=30,
        )

        try:
            connection.ping()
        except RedisError as e:
            raise QueueError(f"Failed to connect to Redis: {e}") from e

        logger.info(
            "Redis connected",
            host=redis_url.split("@")[-1] if "@" in redis_url else redis_url,
        )
        _redis_connection = connection

    return _redis_connection


def get_queue(name: str, connection: Optional[Redis] = None) -> Queue:
    """Get an RQ queue by name (plan-generation, xp-recalculation, task-regeneration)."""
    if name not in ALL_QUEUES:
        raise QueueError(f"Unknown queue: {name}")
    return Queue(name, connection=connection or get_redis_connection())


def redis_health_check() -> dict:
    """
    Check Redis connection health.

    Returns:
        Dict with health status, queue depths and failed job counts
    """
    try:
        conn = get_redis_connection()
        conn.ping()

        queues = {name: get_queue(name, conn) for name in ALL_QUEUES}
        return {
            "status": "healthy",
            "connected": True,
            "queues": {name: len(q) for name, q in queues.items()},
            "failed_jobs": {name: q.failed_job_registry.count for name, q in queues.items()},
        }
    except (QueueError, RedisError) as e:
        return {
            "status": "unhealthy",
            "connected": False,
            "error": str(e)
        }
