"""Fallback Scorer — deterministic heuristics used when a classifier or checker is unreachable.

Invariants:
    - Pure and total: any well-formed record yields a CategoryInsight / ComplianceResult
    - Category score = 50 + points of satisfied rules, clamped to [0, 100]; confidence 60
    - Only present numeric fields earn points (an unreported emissions figure is not "< 1000")
    - Compliance met_requirements is capped at total_requirements

Design Decisions:
    - Declarative (field, comparator, threshold, points) tables over per-category code paths
    - Presence for compliance counts a field at the top level or inside any category
"""

import operator
from dataclasses import dataclass
from typing import Any, Callable

from esg_agent.core.compliance_rules import (
    PRESENCE_POINTS,
    compliance_percentage,
    status_for_score,
    total_requirements,
)
from esg_agent.core.domain_types import EsgCategory, Framework, clamp_score
from esg_agent.core.entities import CategoryInsight, ComplianceResult, EsgRecord
from esg_agent.core.esg_record import category_fields, field_present, is_finite_number

FALLBACK_BASE_SCORE = 50.0
FALLBACK_CONFIDENCE = 60.0


@dataclass(frozen=True)
class InsightRule:
    field: str
    compare: Callable[[float, float], bool]
    threshold: float
    points: float
    label: str
    unit: str = ""


_LT, _GT = operator.lt, operator.gt

CATEGORY_RULES: dict[EsgCategory, tuple[InsightRule, ...]] = {
    EsgCategory.ENVIRONMENTAL: (
        InsightRule("emissions", _LT, 1000, 20, "Current emissions", " tons CO2"),
        InsightRule("renewableEnergy", _GT, 50, 20, "Renewable energy usage", "%"),
        InsightRule("wasteReduction", _GT, 30, 10, "Waste reduction", "%"),
    ),
    EsgCategory.SOCIAL: (
        InsightRule("employeeSatisfaction", _GT, 70, 20, "Employee satisfaction", "%"),
        InsightRule("diversityScore", _GT, 60, 20, "Diversity score", "%"),
        InsightRule("communityInvestment", _GT, 100_000, 10, "Community investment"),
    ),
    EsgCategory.GOVERNANCE: (
        InsightRule("boardIndependence", _GT, 70, 20, "Board independence", "%"),
        InsightRule("transparencyScore", _GT, 60, 20, "Transparency score", "%"),
        InsightRule("riskManagement", _GT, 70, 10, "Risk management", "%"),
    ),
}

CATEGORY_RECOMMENDATIONS: dict[EsgCategory, tuple[str, ...]] = {
    EsgCategory.ENVIRONMENTAL: (
        "Implement energy efficiency measures",
        "Increase renewable energy adoption",
        "Develop waste reduction strategies",
    ),
    EsgCategory.SOCIAL: (
        "Improve employee engagement programs",
        "Enhance diversity and inclusion initiatives",
        "Increase community investment",
    ),
    EsgCategory.GOVERNANCE: (
        "Strengthen board independence",
        "Improve transparency and disclosure",
        "Enhance risk management frameworks",
    ),
}

COMPLIANCE_RECOMMENDATIONS = (
    "Implement comprehensive data collection",
    "Establish compliance monitoring processes",
    "Regular framework requirement reviews",
)


def _describe(rule: InsightRule, value: Any) -> str:
    if is_finite_number(value):
        return f"{rule.label}: {value:g}{rule.unit}"
    return f"{rule.label}: not reported"


def fallback_insight(category: EsgCategory, record: EsgRecord) -> CategoryInsight:
    fields = category_fields(record, category)
    rules = CATEGORY_RULES[category]
    score = FALLBACK_BASE_SCORE
    for rule in rules:
        value = fields.get(rule.field)
        if is_finite_number(value) and rule.compare(value, rule.threshold):
            score += rule.points

    insights = [f"{category.value.capitalize()} data analyzed using fallback algorithm"]
    insights.extend(_describe(rule, fields.get(rule.field)) for rule in rules[:2])
    return CategoryInsight(
        score=clamp_score(score),
        insights=tuple(insights),
        recommendations=CATEGORY_RECOMMENDATIONS[category],
        confidence=FALLBACK_CONFIDENCE,
    )


def fallback_compliance(record: EsgRecord, framework: Framework) -> ComplianceResult:
    total = total_requirements(framework)
    met = 0
    missing: list[str] = []
    for name, points in PRESENCE_POINTS[framework]:
        if field_present(record, name):
            met += points
        else:
            missing.append(f"{name} data not reported")
    met = min(met, total)
    score = compliance_percentage(met, total)
    return ComplianceResult(
        framework=framework.value,
        status=status_for_score(score),
        score=float(score),
        total_requirements=total,
        met_requirements=met,
        missing_requirements=tuple(missing),
        recommendations=COMPLIANCE_RECOMMENDATIONS,
    )
