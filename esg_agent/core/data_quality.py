"""Data Quality — four-dimension quality model, overall score and recommendations.

Invariants:
    - Every dimension is clamped to [0, 100]
    - Completeness is exact: 100 * present / total, unrounded
    - Timeliness is 100 at <= fresh_days, 0 at >= stale_days, linear in between
    - Anomaly penalties alone never take a complete, error-free record below the pass
      threshold (the caller passes penalty_floor for such records)
    - The clock is always passed in: no hidden datetime.now() inside scoring
    - Recommendations are deterministic templates; ties resolve by enum declaration order

Design Decisions:
    - Piecewise-linear freshness curve over exponential decay: breakpoints are readable
      and configurable
    - A record with no usable date scores the neutral timeliness_unknown_score, not 0:
      absence of a date is not evidence of stale data
"""

import re
from collections import Counter
from datetime import date, datetime
from typing import Any, Iterable

from esg_agent.core.domain_types import AnomalyType, QualityDimension, clamp_score
from esg_agent.core.entities import DataAnomaly, DataQuality, EsgRecord
from esg_agent.core.scoring_config import ValidationConfig

# Checked in order; the first parseable value wins
DATE_FIELDS = ("reportingPeriodEnd", "lastUpdated", "reportingPeriod")

_YEAR = re.compile(r"^(?:FY)?(\d{4})$", re.IGNORECASE)
MIN_YEAR = 1900


# ─── Dimensions ─────────────────────────────────────────────────

def completeness(present: int, total: int) -> float:
    if total <= 0:
        return 100.0
    return clamp_score(100.0 * present / total)


def ratio_penalty_score(count: int, total: int) -> float:
    """100 * (1 - count/total), used for accuracy and consistency."""
    if total <= 0:
        return 100.0 if count == 0 else 0.0
    return clamp_score(100.0 * (1 - count / total))


def parse_reporting_date(value: Any) -> date | None:
    """ISO date / datetime, or a bare year meaning the end of that year."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, int) and not isinstance(value, bool) and MIN_YEAR <= value <= 9999:
        return date(value, 12, 31)
    if not isinstance(value, str):
        return None
    text = value.strip()
    year = _YEAR.match(text)
    if year:
        number = int(year.group(1))
        return date(number, 12, 31) if number >= MIN_YEAR else None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def reporting_date(record: EsgRecord) -> date | None:
    for name in DATE_FIELDS:
        parsed = parse_reporting_date(record.get(name))
        if parsed is not None:
            return parsed
    return None


def timeliness(
    record: EsgRecord, now: datetime, config: ValidationConfig,
) -> float:
    end = reporting_date(record)
    if end is None:
        return clamp_score(config.timeliness_unknown_score)
    age_days = (now.date() - end).days
    if age_days <= config.timeliness_fresh_days:
        return 100.0
    if age_days >= config.timeliness_stale_days:
        return 0.0
    span = config.timeliness_stale_days - config.timeliness_fresh_days
    return clamp_score(100.0 * (config.timeliness_stale_days - age_days) / span)


# ─── Overall score ──────────────────────────────────────────────

def overall_score(
    quality: DataQuality,
    anomalies: Iterable[DataAnomaly],
    config: ValidationConfig,
    penalty_floor: float | None = None,
) -> float:
    """Weighted dimensions minus anomaly penalties.

    With penalty_floor set, penalties cannot push the score below
    min(weighted, penalty_floor).
    """
    weighted = sum(
        config.dimension_weights[dim] * value
        for dim, value in quality.by_dimension().items()
    )
    penalty = sum(config.severity_penalties[a.severity] for a in anomalies)
    score = weighted - penalty
    if penalty_floor is not None:
        score = max(score, min(weighted, penalty_floor))
    return clamp_score(score)


# ─── Recommendations ────────────────────────────────────────────

_DIMENSION_ADVICE = {
    QualityDimension.COMPLETENESS: "Complete the missing ESG fields before submission",
    QualityDimension.ACCURACY: "Ensure data values are within expected ranges",
    QualityDimension.CONSISTENCY: "Reconcile inconsistent values across related fields",
    QualityDimension.TIMELINESS: "Submit data closer to the end of the reporting period",
}

_ANOMALY_ADVICE = {
    AnomalyType.OUTLIER: "Investigate outlying values against historical data",
    AnomalyType.MISSING: "Collect the missing metrics from the responsible data owners",
    AnomalyType.INCONSISTENT: "Cross-check related metrics for contradictory figures",
    AnomalyType.SUSPICIOUS: "Replace placeholder or copy-pasted values with measured data",
}

DEFAULT_ADVICE = "Continue monitoring data quality metrics"


def _lowest_dimension(quality: DataQuality) -> tuple[QualityDimension, float]:
    scores = quality.by_dimension()
    lowest = min(QualityDimension, key=lambda dim: (scores[dim], list(QualityDimension).index(dim)))
    return lowest, scores[lowest]


def _most_frequent_type(anomalies: Iterable[DataAnomaly]) -> AnomalyType | None:
    counts = Counter(a.type for a in anomalies)
    if not counts:
        return None
    order = list(AnomalyType)
    return min(counts, key=lambda t: (-counts[t], order.index(t)))


def build_recommendations(
    quality: DataQuality,
    anomalies: list[DataAnomaly],
    error_count: int,
) -> list[str]:
    recommendations: list[str] = []
    if error_count:
        recommendations.append(
            f"Review and correct {error_count} invalid field value(s)",
        )
    dimension, value = _lowest_dimension(quality)
    if value < 100.0:
        recommendations.append(_DIMENSION_ADVICE[dimension])
    frequent = _most_frequent_type(anomalies)
    if frequent is not None:
        recommendations.append(_ANOMALY_ADVICE[frequent])
    if not recommendations:
        recommendations.append(DEFAULT_ADVICE)
    return recommendations
