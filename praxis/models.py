"""
Entity status machine and job payload schemas.
"""

from enum import Enum
from typing import Dict, FrozenSet

from pydantic import BaseModel, ConfigDict, Field

from praxis.errors import ConflictError


class EntityStatus(str, Enum):
    """Status values shared by plans and tasks."""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATUSES = frozenset({EntityStatus.COMPLETED, EntityStatus.FAILED})

# FAILED -> PROCESSING only happens when the queue retries the same job.
PLAN_TRANSITIONS: Dict[EntityStatus, FrozenSet[EntityStatus]] = {
    EntityStatus.PENDING: frozenset({EntityStatus.PROCESSING, EntityStatus.FAILED}),
    EntityStatus.PROCESSING: frozenset({
        EntityStatus.PROCESSING,
        EntityStatus.COMPLETED,
        EntityStatus.FAILED,
    }),
    EntityStatus.FAILED: frozenset({EntityStatus.PROCESSING}),
    EntityStatus.COMPLETED: frozenset(),
}

# PENDING/FAILED -> COMPLETED is the user finishing a task; any settled task
# can go back to PROCESSING for regeneration.
TASK_TRANSITIONS: Dict[EntityStatus, FrozenSet[EntityStatus]] = {
    EntityStatus.PENDING: frozenset({EntityStatus.PROCESSING, EntityStatus.COMPLETED}),
    EntityStatus.COMPLETED: frozenset({EntityStatus.PROCESSING}),
    EntityStatus.FAILED: frozenset({EntityStatus.PROCESSING, EntityStatus.COMPLETED}),
    EntityStatus.PROCESSING: frozenset({
        EntityStatus.PROCESSING,
        EntityStatus.PENDING,
        EntityStatus.FAILED,
    }),
}


def _check(table, entity: str, current, target) -> EntityStatus:
    current = EntityStatus(current)
    target = EntityStatus(target)
    if target not in table[current]:
        raise ConflictError(
            f"Illegal {entity} transition {current.value} -> {target.value}"
        )
    return target


def check_plan_transition(current, target) -> EntityStatus:
    return _check(PLAN_TRANSITIONS, "plan", current, target)


def check_task_transition(current, target) -> EntityStatus:
    return _check(TASK_TRANSITIONS, "task", current, target)


# =============================================================================
# Job payloads (camelCase on the wire)
# =============================================================================

class JobPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


class PlanGenerationPayload(JobPayload):
    plan_id: str = Field(alias="planId", min_length=1)
    prompt: str = Field(min_length=1)
    user_id: str = Field(alias="userId", min_length=1)


class XPRecalculationPayload(JobPayload):
    user_id: str = Field(alias="userId", min_length=1)


class TaskRegenerationPayload(JobPayload):
    task_id: str = Field(alias="taskId", min_length=1)
    context: str = Field(min_length=1)
