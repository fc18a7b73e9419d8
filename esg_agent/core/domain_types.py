"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - TaskId wraps the generated task identifier — never a bare str in domain logic
    - Score is bounded 0.0–100.0 (clamp_score enforces it at every producer)
    - All valid states encoded as Enums — no raw string matching
    - TaskStatus is monotone: TERMINAL_STATUSES never transition again

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: API documents are JSON)
"""

import math
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

TaskId = NewType("TaskId", str)


# ─── Value Types ─────────────────────────────────────────────────

Score = NewType("Score", float)   # 0.0–100.0

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def clamp_score(value: float) -> float:
    """Clamp any score/percentage into [0, 100]; NaN clamps to the minimum."""
    if math.isnan(value):
        return SCORE_MIN
    return max(SCORE_MIN, min(SCORE_MAX, float(value)))


# ─── Enums ───────────────────────────────────────────────────────

class TaskKind(str, Enum):
    """Kinds of orchestrated work."""
    DATA_ANALYSIS = "data_analysis"
    COMPLIANCE_CHECK = "compliance_check"
    REPORT_GENERATION = "report_generation"
    VALIDATION = "validation"


class TaskStatus(str, Enum):
    """AgentTask lifecycle states — forward-only."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED})


class TaskPriority(str, Enum):
    """Queue priority — high is dequeued first."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_RANK = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}

DEFAULT_PRIORITY = {
    TaskKind.DATA_ANALYSIS: TaskPriority.HIGH,
    TaskKind.COMPLIANCE_CHECK: TaskPriority.HIGH,
    TaskKind.REPORT_GENERATION: TaskPriority.MEDIUM,
    TaskKind.VALIDATION: TaskPriority.MEDIUM,
}


class EsgCategory(str, Enum):
    """The three ESG pillars — order matches aggregation weight order."""
    ENVIRONMENTAL = "environmental"
    SOCIAL = "social"
    GOVERNANCE = "governance"


class AnomalyType(str, Enum):
    """Declaration order is the recommendation tie-break order."""
    OUTLIER = "outlier"
    MISSING = "missing"
    INCONSISTENT = "inconsistent"
    SUSPICIOUS = "suspicious"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    PARTIALLY_COMPLIANT = "partially_compliant"
    NON_COMPLIANT = "non_compliant"


class QualityDimension(str, Enum):
    """Four-axis data-quality model. Declaration order breaks ties."""
    COMPLETENESS = "completeness"
    ACCURACY = "accuracy"
    CONSISTENCY = "consistency"
    TIMELINESS = "timeliness"


class Framework(str, Enum):
    """Reporting frameworks with known requirement catalogues."""
    GRI = "GRI"
    SASB = "SASB"
    TCFD = "TCFD"
    CSRD = "CSRD"


class FieldUnit(str, Enum):
    """Unit class of an expected field — drives range checks and IQR grouping."""
    PERCENTAGE = "percentage"
    QUANTITY = "quantity"
