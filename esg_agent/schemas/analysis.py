"""Analysis Schemas — Pydantic models for the agent task API boundary.

Invariants:
    - Requests carry the ESG record as an opaque mapping; its shape is checked by
      core/esg_record.ensure_record, not by Pydantic
    - Framework names are stripped and upper-cased before they reach the orchestrator
    - Task responses are built from AgentTask.to_dict(): snake_case, enums as values

Design Decisions:
    - Literal type for priority over str enum: Pydantic handles validation natively
    - result typed as Any: each task kind has its own document shape (ADR: one task endpoint)
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

Priority = Literal["low", "medium", "high"]


def _clean_framework(value: str) -> str:
    value = value.strip().upper()
    if not value:
        raise ValueError("framework cannot be empty")
    return value


class RecordRequest(BaseModel):
    """Body shared by every submission: the ESG record plus optional priority."""
    record: dict[str, Any]
    priority: Priority | None = None


class ComplianceCheckRequest(RecordRequest):
    frameworks: list[str] | None = Field(None, min_length=1, max_length=10)

    @field_validator("frameworks")
    @classmethod
    def clean_frameworks(cls, v: list[str] | None) -> list[str] | None:
        return [_clean_framework(f) for f in v] if v is not None else None


class ReportRequest(RecordRequest):
    framework: str | None = None

    @field_validator("framework")
    @classmethod
    def clean_framework(cls, v: str | None) -> str | None:
        return _clean_framework(v) if v is not None else None


class TaskAccepted(BaseModel):
    task_id: str
    kind: str
    status: str


class TaskResponse(BaseModel):
    """Public view of an AgentTask snapshot."""
    id: str
    kind: str
    priority: str
    status: str
    result: Any = None
    error: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    count: int


class FrameworkInfo(BaseModel):
    name: str
    total_requirements: int
    requirements: dict[str, list[str]]
