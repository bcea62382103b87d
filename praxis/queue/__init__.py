"""
Redis Queue (RQ) integration for Praxis job processing.

Three durable queues, each consumed by its own worker pool:
plan-generation, xp-recalculation and task-regeneration.
"""

from .connection import get_redis_connection, get_queue, redis_health_check
from .tasks import RedisJobQueue, TASK_FUNCTIONS

__all__ = [
    "get_redis_connection",
    "get_queue",
    "redis_health_check",
    "RedisJobQueue",
    "TASK_FUNCTIONS",
]
