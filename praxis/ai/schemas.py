"""
Strict parsing of provider output into a plan.

The provider's text is untrusted. It must be a single JSON object of the
expected shape; nothing is stripped, repaired or partially accepted.
"""

import json
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError

from praxis.errors import MalformedOutputError


class TaskOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: StrictStr = Field(min_length=1)
    description: StrictStr
    xp_value: StrictInt = Field(alias="xpValue", gt=0)


class PlanOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: StrictStr = Field(min_length=1)
    description: StrictStr
    tasks: List[TaskOutput] = Field(min_length=1)

    def to_content(self) -> Dict[str, Any]:
        """The object stored as Plan.content (wire field names)."""
        return self.model_dump(by_alias=True)


def _describe(errors) -> str:
    first = errors[0]
    location = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
    return f"{location}: {first.get('msg', 'invalid')}"


def parse_plan_output(raw: str) -> PlanOutput:
    """
    Parse raw provider text into a PlanOutput.

    Raises:
        MalformedOutputError: text is not JSON, or JSON of the wrong shape
    """
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise MalformedOutputError(f"Failed to parse AI response as plan JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedOutputError(
            f"AI response must be a JSON object, got {type(data).__name__}"
        )

    try:
        return PlanOutput.model_validate(data)
    except PydanticValidationError as e:
        raise MalformedOutputError(
            f"AI response does not match the plan shape ({_describe(e.errors())})"
        ) from e
