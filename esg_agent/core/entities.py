"""Entities — frozen value objects produced by the validation engine, scorers and orchestrator.

Invariants:
    - Every value object is frozen once returned (collections stored as tuples)
    - Scores / percentages are clamped to [0, 100] by their producers
    - anomalies / errors / warnings are never None, only possibly empty
    - AgentTask.result and AgentTask.error are mutually exclusive

Design Decisions:
    - Frozen dataclasses over Pydantic in core: pure, no validation overhead inside the
      engine; Pydantic stays at the API boundary (ADR: DDD boundary)
    - to_dict() renders plain JSON-ready structures (enums → values, tuples → lists)
"""

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from esg_agent.core.domain_types import (
    AnomalyType,
    ComplianceStatus,
    QualityDimension,
    Severity,
    TaskId,
    TaskKind,
    TaskPriority,
    TaskStatus,
)

EsgRecord = Mapping[str, Any]


def to_plain(value: Any) -> Any:
    """Recursively convert dataclasses, enums, tuples and datetimes to JSON-ready values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


class _PlainDictMixin:
    def to_dict(self) -> dict:
        return to_plain(self)


# ─── Analysis Value Objects ─────────────────────────────────────

@dataclass(frozen=True)
class CategoryInsight(_PlainDictMixin):
    """Score + narrative for one ESG pillar."""
    score: float
    insights: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    confidence: float = 0.0


@dataclass(frozen=True)
class ReferenceStats(_PlainDictMixin):
    """Historical distribution of one field."""
    mean: float
    stddev: float


@dataclass(frozen=True)
class DataAnomaly(_PlainDictMixin):
    type: AnomalyType
    field: str
    observed_value: Any
    expected_range: tuple[float, float] | str
    severity: Severity
    description: str


@dataclass(frozen=True)
class DataQuality(_PlainDictMixin):
    completeness: float
    accuracy: float
    consistency: float
    timeliness: float

    def by_dimension(self) -> dict[QualityDimension, float]:
        return {
            QualityDimension.COMPLETENESS: self.completeness,
            QualityDimension.ACCURACY: self.accuracy,
            QualityDimension.CONSISTENCY: self.consistency,
            QualityDimension.TIMELINESS: self.timeliness,
        }


@dataclass(frozen=True)
class ValidationResult(_PlainDictMixin):
    is_valid: bool
    score: float
    errors: tuple[str, ...]
    warnings: tuple[str, ...]
    anomalies: tuple[DataAnomaly, ...]
    data_quality: DataQuality
    recommendations: tuple[str, ...]


@dataclass(frozen=True)
class ComplianceResult(_PlainDictMixin):
    framework: str
    status: ComplianceStatus
    score: float
    total_requirements: int
    met_requirements: int
    missing_requirements: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True)
class ComplianceReport(_PlainDictMixin):
    """Roll-up of several framework checks."""
    frameworks: tuple[str, ...]
    results: tuple[ComplianceResult, ...]
    overall_compliance: float
    recommendations: tuple[str, ...]


@dataclass(frozen=True)
class AnalysisResult(_PlainDictMixin):
    """Result of a full data_analysis task."""
    environmental_score: float
    social_score: float
    governance_score: float
    overall_score: float
    insights: tuple[str, ...]
    recommendations: tuple[str, ...]
    anomalies: tuple[DataAnomaly, ...]
    compliance_status: ComplianceStatus
    compliance: ComplianceResult
    validation: ValidationResult
    category_insights: Mapping[str, CategoryInsight] = field(default_factory=dict)


@dataclass(frozen=True)
class ReportDraft(_PlainDictMixin):
    """Structured report content — rendering to a document happens elsewhere."""
    framework: str
    organization: str | None
    reporting_period: str | None
    summary: Mapping[str, Any]
    sections: tuple[Mapping[str, Any], ...]
    data_quality: DataQuality


# ─── Task ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class AgentTask(_PlainDictMixin):
    """Immutable snapshot of one orchestrated unit of work.

    The registry replaces the snapshot on every transition; readers never see
    a half-written task.
    """
    id: TaskId
    kind: TaskKind
    payload: Mapping[str, Any]
    priority: TaskPriority
    status: TaskStatus
    created_at: datetime
    result: Any = None
    error: str | None = None
    completed_at: datetime | None = None
    started_at: datetime | None = field(default=None, compare=False)

    def to_dict(self, include_payload: bool = False) -> dict:
        data = {
            "id": self.id,
            "kind": self.kind.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "result": to_plain(self.result),
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
        if include_payload:
            data["payload"] = to_plain(self.payload)
        return data
