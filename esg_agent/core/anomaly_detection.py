"""Anomaly Detection — statistical outliers and pattern checks over one ESG record.

Invariants:
    - Pure functions, no I/O: same inputs always yield the same anomalies in the same order
    - A field with reference stats is judged by z-score only; fields without one go to IQR
    - IQR needs >= iqr_min_values values of the same unit class, otherwise it is skipped
    - Zero is never treated as a repeated or duplicated value

Design Decisions:
    - Quartiles by sorted index (n // 4, 3n // 4) rather than interpolation: stable for
      the small samples a single record produces
    - IQR population grouped by unit class: percentages and physical quantities live
      on different scales and would mask each other
    - IQR == 0 or stddev <= 0 skips the test: no spread, no scale to measure distance in
"""

from collections import defaultdict
from typing import Mapping

from esg_agent.core.domain_types import AnomalyType, FieldUnit, Severity
from esg_agent.core.entities import DataAnomaly, ReferenceStats
from esg_agent.core.esg_record import leaf_name
from esg_agent.core.scoring_config import ValidationConfig
from esg_agent.core.validation_rules import (
    CROSS_FIELD_RULES,
    PLACEHOLDER_VALUES,
    unit_of,
)

NumericFields = list[tuple[str, float]]


def _fmt(value: float) -> str:
    return f"{value:g}"


# ─── Reference lookup ───────────────────────────────────────────

def reference_for_path(
    path: str, reference: Mapping[str, ReferenceStats] | None,
) -> ReferenceStats | None:
    """Dotted path first, then bare field name."""
    if not reference:
        return None
    if path in reference:
        return reference[path]
    return reference.get(leaf_name(path))


# ─── Outliers ───────────────────────────────────────────────────

def z_severity(z: float, config: ValidationConfig) -> Severity:
    magnitude = abs(z)
    if magnitude > config.z_high_above:
        return Severity.HIGH
    if magnitude >= config.z_medium_at:
        return Severity.MEDIUM
    return Severity.LOW


def detect_zscore_outliers(
    numeric: NumericFields,
    reference: Mapping[str, ReferenceStats] | None,
    config: ValidationConfig,
) -> list[DataAnomaly]:
    anomalies: list[DataAnomaly] = []
    for path, value in numeric:
        stats = reference_for_path(path, reference)
        if stats is None or stats.stddev <= 0:
            continue
        z = (value - stats.mean) / stats.stddev
        if abs(z) <= config.z_threshold:
            continue
        spread = config.z_threshold * stats.stddev
        anomalies.append(DataAnomaly(
            type=AnomalyType.OUTLIER,
            field=path,
            observed_value=value,
            expected_range=(stats.mean - spread, stats.mean + spread),
            severity=z_severity(z, config),
            description=(
                f"{path} value {_fmt(value)} is {abs(z):.2f} standard deviations "
                f"from the reference mean {_fmt(stats.mean)}"
            ),
        ))
    return anomalies


def _quartiles(values: list[float]) -> tuple[float, float]:
    ordered = sorted(values)
    n = len(ordered)
    return ordered[n // 4], ordered[(3 * n) // 4]


def iqr_severity(distance: float, config: ValidationConfig) -> Severity:
    """Severity from distance beyond the fence, measured in IQRs."""
    if distance >= config.iqr_high_distance:
        return Severity.HIGH
    if distance >= config.iqr_medium_distance:
        return Severity.MEDIUM
    return Severity.LOW


def detect_iqr_outliers(
    numeric: NumericFields,
    reference: Mapping[str, ReferenceStats] | None,
    config: ValidationConfig,
) -> list[DataAnomaly]:
    groups: dict[FieldUnit, NumericFields] = defaultdict(list)
    for path, value in numeric:
        if value in PLACEHOLDER_VALUES:
            continue
        groups[unit_of(leaf_name(path))].append((path, value))

    anomalies: list[DataAnomaly] = []
    for unit in FieldUnit:
        members = groups.get(unit, [])
        if len(members) < config.iqr_min_values:
            continue
        q1, q3 = _quartiles([value for _, value in members])
        iqr = q3 - q1
        if iqr <= 0:
            continue
        lower = q1 - config.iqr_k * iqr
        upper = q3 + config.iqr_k * iqr
        for path, value in members:
            if lower <= value <= upper:
                continue
            if reference_for_path(path, reference) is not None:
                continue
            beyond = (lower - value) if value < lower else (value - upper)
            anomalies.append(DataAnomaly(
                type=AnomalyType.OUTLIER,
                field=path,
                observed_value=value,
                expected_range=(lower, upper),
                severity=iqr_severity(beyond / iqr, config),
                description=(
                    f"{path} value {_fmt(value)} lies outside the interquartile "
                    f"range [{_fmt(lower)}, {_fmt(upper)}] of {unit.value} fields"
                ),
            ))
    return anomalies


# ─── Patterns ───────────────────────────────────────────────────

def detect_placeholders(numeric: NumericFields) -> list[DataAnomaly]:
    return [
        DataAnomaly(
            type=AnomalyType.SUSPICIOUS,
            field=path,
            observed_value=value,
            expected_range="a measured value",
            severity=Severity.HIGH,
            description=f"{path} holds placeholder value {_fmt(value)}",
        )
        for path, value in numeric
        if value in PLACEHOLDER_VALUES
    ]


def detect_repeated_values(
    numeric: NumericFields, config: ValidationConfig,
) -> list[DataAnomaly]:
    """Same non-zero value across many fields usually means copy-paste filling."""
    by_value: dict[float, list[str]] = defaultdict(list)
    for path, value in numeric:
        if value == 0 or value in PLACEHOLDER_VALUES:
            continue
        by_value[value].append(path)

    anomalies: list[DataAnomaly] = []
    for value in sorted(by_value):
        paths = by_value[value]
        if len(paths) < config.repeated_value_min_fields:
            continue
        anomalies.append(DataAnomaly(
            type=AnomalyType.SUSPICIOUS,
            field=", ".join(paths),
            observed_value=value,
            expected_range="distinct values per field",
            severity=Severity.MEDIUM,
            description=f"Value {_fmt(value)} repeated across {len(paths)} fields",
        ))
    return anomalies


def detect_category_duplicates(numeric: NumericFields) -> list[DataAnomaly]:
    """Identical non-zero quantities inside one category."""
    by_key: dict[tuple[str, float], list[str]] = defaultdict(list)
    for path, value in numeric:
        if "." not in path or value == 0 or value in PLACEHOLDER_VALUES:
            continue
        if unit_of(leaf_name(path)) is not FieldUnit.QUANTITY:
            continue
        category = path.split(".", 1)[0]
        by_key[(category, value)].append(path)

    anomalies: list[DataAnomaly] = []
    for (category, value), paths in sorted(by_key.items()):
        if len(paths) < 2:
            continue
        anomalies.append(DataAnomaly(
            type=AnomalyType.INCONSISTENT,
            field=", ".join(paths),
            observed_value=value,
            expected_range="distinct quantities",
            severity=Severity.LOW,
            description=(
                f"{len(paths)} {category} quantities report the identical value {_fmt(value)}"
            ),
        ))
    return anomalies


def detect_cross_field_inconsistencies(numeric: NumericFields) -> list[DataAnomaly]:
    view = dict(numeric)
    return [
        DataAnomaly(
            type=AnomalyType.INCONSISTENT,
            field=rule.field,
            observed_value=view.get(rule.field),
            expected_range="consistent with related fields",
            severity=Severity.MEDIUM,
            description=rule.description,
        )
        for rule in CROSS_FIELD_RULES
        if rule.applies(view)
    ]


def detect_anomalies(
    numeric: NumericFields,
    reference: Mapping[str, ReferenceStats] | None,
    config: ValidationConfig,
) -> list[DataAnomaly]:
    """Full statistical pass: outliers first, then patterns."""
    return [
        *detect_zscore_outliers(numeric, reference, config),
        *detect_iqr_outliers(numeric, reference, config),
        *detect_placeholders(numeric),
        *detect_repeated_values(numeric, config),
        *detect_category_duplicates(numeric),
        *detect_cross_field_inconsistencies(numeric),
    ]
