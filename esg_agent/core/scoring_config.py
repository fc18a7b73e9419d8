"""Scoring Configuration — named, overridable weights and thresholds for scoring.

Invariants:
    - ScoreWeights and dimension weights each sum to 1.0 (checked at construction)
    - Timeliness breakpoints satisfy fresh_days < stale_days
    - Objects are frozen: a config in use by a validation call cannot change mid-run

Design Decisions:
    - Frozen dataclasses over module constants: tests and settings build variants
      with dataclasses.replace() instead of monkeypatching globals
    - Defaults here are tunable, not normative; Settings overrides the common ones
"""

import math
from dataclasses import dataclass, field
from typing import Mapping

from esg_agent.core.domain_types import EsgCategory, QualityDimension, Severity

_WEIGHT_TOLERANCE = 1e-9


def _check_sums_to_one(name: str, weights: Mapping) -> None:
    total = sum(weights.values())
    if not math.isclose(total, 1.0, abs_tol=_WEIGHT_TOLERANCE):
        raise ValueError(f"{name} must sum to 1.0, got {total}")


@dataclass(frozen=True)
class ScoreWeights:
    """Category weights for the overall ESG score."""
    environmental: float = 0.40
    social: float = 0.35
    governance: float = 0.25

    def __post_init__(self) -> None:
        _check_sums_to_one("ScoreWeights", self.by_category())

    def by_category(self) -> dict[EsgCategory, float]:
        return {
            EsgCategory.ENVIRONMENTAL: self.environmental,
            EsgCategory.SOCIAL: self.social,
            EsgCategory.GOVERNANCE: self.governance,
        }


DEFAULT_SCORE_WEIGHTS = ScoreWeights()


def _equal_dimension_weights() -> dict[QualityDimension, float]:
    return {dim: 0.25 for dim in QualityDimension}


def _default_severity_penalties() -> dict[Severity, float]:
    return {Severity.LOW: 2.0, Severity.MEDIUM: 5.0, Severity.HIGH: 10.0}


@dataclass(frozen=True)
class ValidationConfig:
    """Every threshold the validation engine consults."""

    pass_threshold: float = 50.0

    # Outliers against a reference distribution
    z_threshold: float = 2.5
    z_medium_at: float = 3.0
    z_high_above: float = 4.0

    # IQR fallback (same-record, same unit class)
    iqr_k: float = 1.5
    iqr_min_values: int = 4
    iqr_medium_distance: float = 1.5   # distance beyond the fence, in IQRs
    iqr_high_distance: float = 3.0

    # Pattern detection
    repeated_value_min_fields: int = 3

    # Timeliness curve (days since reporting-period end)
    timeliness_fresh_days: int = 30
    timeliness_stale_days: int = 365
    timeliness_unknown_score: float = 70.0

    # Overall score
    dimension_weights: Mapping[QualityDimension, float] = field(
        default_factory=_equal_dimension_weights,
    )
    severity_penalties: Mapping[Severity, float] = field(
        default_factory=_default_severity_penalties,
    )

    # Per-field override of the warning boundary ("plausible maximum")
    plausible_max_overrides: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_sums_to_one("dimension_weights", self.dimension_weights)
        if self.timeliness_fresh_days >= self.timeliness_stale_days:
            raise ValueError("timeliness_fresh_days must be < timeliness_stale_days")
        if not self.z_threshold > 0:
            raise ValueError("z_threshold must be positive")


DEFAULT_VALIDATION_CONFIG = ValidationConfig()
