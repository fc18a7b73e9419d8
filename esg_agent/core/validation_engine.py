"""Validation Engine — one ESG record in, one ValidationResult out.

Invariants:
    - validate_record() raises only InvalidInputError (malformed record); bad data is a result
    - Deterministic: same record, config, reference and clock produce equal results
    - Never mutates the record
    - is_valid == (score >= pass_threshold and no hard errors)

Design Decisions:
    - Rule pass before statistical pass: missing/range checks feed completeness and
      accuracy; the statistical pass only adds anomalies
    - Completeness denominator is the expected-field schema only; general fields
      (organization, reportingPeriod, dataSource) produce warnings, not completeness loss
    - Synchronous and CPU-bound: the orchestrator runs it inline inside its branch
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from esg_agent.core.anomaly_detection import detect_anomalies
from esg_agent.core.data_quality import (
    build_recommendations,
    completeness,
    overall_score,
    ratio_penalty_score,
    timeliness,
)
from esg_agent.core.domain_types import AnomalyType, EsgCategory, Severity
from esg_agent.core.entities import (
    DataAnomaly,
    DataQuality,
    EsgRecord,
    ReferenceStats,
    ValidationResult,
)
from esg_agent.core.esg_record import (
    category_fields,
    ensure_record,
    extract_numeric_fields,
    is_finite_number,
    is_number,
)
from esg_agent.core.scoring_config import DEFAULT_VALIDATION_CONFIG, ValidationConfig
from esg_agent.core.validation_rules import (
    EXPECTED_FIELD_COUNT,
    EXPECTED_FIELDS,
    GENERAL_FIELD_TYPES,
    GENERAL_REQUIRED_FIELDS,
    FieldRule,
    rule_for,
)


@dataclass
class _RulePass:
    """Accumulator for the rule-based pass."""
    present: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    anomalies: list[DataAnomaly] = field(default_factory=list)


def _fmt(value: Any) -> str:
    if is_finite_number(value):
        return f"{value:g}"
    if is_number(value) and isinstance(value, int):
        return f"an integer of {len(str(abs(value)))} digits"
    return repr(value)


# ─── Rule-based pass ────────────────────────────────────────────

def _check_missing(record: EsgRecord, acc: _RulePass) -> None:
    for category, rules in EXPECTED_FIELDS.items():
        fields = category_fields(record, category)
        for rule in rules:
            if fields.get(rule.name) is not None:
                acc.present += 1
                continue
            acc.warnings.append(f"Missing {rule.name} data in {category.value} category")
            acc.anomalies.append(DataAnomaly(
                type=AnomalyType.MISSING,
                field=f"{category.value}.{rule.name}",
                observed_value=None,
                expected_range="a reported value",
                severity=Severity.MEDIUM,
                description=f"Expected {category.value} field {rule.name} is missing",
            ))


def _check_value(
    path: str, value: Any, rule: FieldRule, config: ValidationConfig, acc: _RulePass,
) -> None:
    if not is_number(value):
        acc.errors.append(f"{path} must be numeric, got {_fmt(value)}")
        return
    if not is_finite_number(value):
        acc.errors.append(f"{path} must be a finite number, got {_fmt(value)}")
        return
    low, high = rule.hard_range
    if value < low or (high is not None and value > high):
        bound = f"[{low:g}, {high:g}]" if high is not None else f">= {low:g}"
        acc.errors.append(f"{path} value {_fmt(value)} is outside expected range {bound}")
        return
    plausible = config.plausible_max_overrides.get(rule.name, rule.plausible_max)
    if plausible is not None and value > plausible:
        acc.warnings.append(
            f"{path} value {_fmt(value)} exceeds plausible maximum {plausible:g} "
            f"{rule.label}".rstrip(),
        )


def _check_category_values(
    record: EsgRecord, config: ValidationConfig, acc: _RulePass,
) -> None:
    for category in EsgCategory:
        for name, value in category_fields(record, category).items():
            if value is None:
                continue
            path = f"{category.value}.{name}"
            rule = rule_for(name)
            if rule is not None:
                _check_value(path, value, rule, config, acc)
            elif is_number(value) and not is_finite_number(value):
                acc.errors.append(f"{path} must be a finite number, got {_fmt(value)}")


def _check_general(record: EsgRecord, acc: _RulePass) -> None:
    for name in GENERAL_REQUIRED_FIELDS:
        if record.get(name) in (None, ""):
            acc.warnings.append(f"Missing required field: {name}")
    for name, types in GENERAL_FIELD_TYPES.items():
        value = record.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, types):
            expected = " or ".join(
                "a string" if t is str else "an integer year" for t in types
            )
            acc.errors.append(f"{name} must be {expected}")


# ─── Entry point ────────────────────────────────────────────────

def validate_record(
    record: Any,
    config: ValidationConfig = DEFAULT_VALIDATION_CONFIG,
    reference: Mapping[str, ReferenceStats] | None = None,
    now: datetime | None = None,
) -> ValidationResult:
    """Validate one ESG record. Raises InvalidInputError only for malformed input."""
    record = ensure_record(record)
    clock = now or datetime.now(timezone.utc)

    acc = _RulePass()
    _check_missing(record, acc)
    _check_category_values(record, config, acc)
    _check_general(record, acc)

    numeric = extract_numeric_fields(record)
    anomalies = [*acc.anomalies, *detect_anomalies(numeric, reference, config)]

    inconsistencies = sum(1 for a in anomalies if a.type is AnomalyType.INCONSISTENT)
    quality = DataQuality(
        completeness=completeness(acc.present, EXPECTED_FIELD_COUNT),
        accuracy=ratio_penalty_score(len(acc.errors), EXPECTED_FIELD_COUNT),
        consistency=ratio_penalty_score(inconsistencies, EXPECTED_FIELD_COUNT),
        timeliness=timeliness(record, clock, config),
    )
    # Statistical signals without hard errors lower the score but never invalidate
    # a complete record
    complete_and_clean = acc.present == EXPECTED_FIELD_COUNT and not acc.errors
    score = overall_score(
        quality, anomalies, config,
        penalty_floor=config.pass_threshold if complete_and_clean else None,
    )

    return ValidationResult(
        is_valid=score >= config.pass_threshold and not acc.errors,
        score=score,
        errors=tuple(acc.errors),
        warnings=tuple(acc.warnings),
        anomalies=tuple(anomalies),
        data_quality=quality,
        recommendations=tuple(build_recommendations(quality, anomalies, len(acc.errors))),
    )
