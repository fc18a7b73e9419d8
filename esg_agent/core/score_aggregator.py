"""Score Aggregator — combines branch results into AnalysisResult / ComplianceReport.

Invariants:
    - overall == w_E * E + w_S * S + w_G * G (weights from ScoreWeights, sum 1.0)
    - Category scores and confidences are clamped to [0, 100] whatever the classifier returned
    - Insights and recommendations concatenate in E, S, G order, never deduplicated
    - Aggregation is order-independent with respect to branch completion
    - Multi-framework compliance = percentage of summed met over summed total (0 when total 0)
"""

from dataclasses import replace
from typing import Iterable, Mapping

from esg_agent.core.compliance_rules import compliance_percentage
from esg_agent.core.domain_types import EsgCategory, clamp_score
from esg_agent.core.entities import (
    AnalysisResult,
    CategoryInsight,
    ComplianceReport,
    ComplianceResult,
    ValidationResult,
)
from esg_agent.core.scoring_config import DEFAULT_SCORE_WEIGHTS, ScoreWeights


def overall_score(
    scores: Mapping[EsgCategory, float],
    weights: ScoreWeights = DEFAULT_SCORE_WEIGHTS,
) -> float:
    return clamp_score(sum(
        weight * scores[category]
        for category, weight in weights.by_category().items()
    ))


def _bounded(insight: CategoryInsight) -> CategoryInsight:
    return replace(
        insight,
        score=clamp_score(insight.score),
        confidence=clamp_score(insight.confidence),
    )


def merge_analysis(
    insights: Mapping[EsgCategory, CategoryInsight],
    compliance: ComplianceResult,
    validation: ValidationResult,
    weights: ScoreWeights = DEFAULT_SCORE_WEIGHTS,
) -> AnalysisResult:
    bounded = {category: _bounded(insights[category]) for category in EsgCategory}
    ordered = list(bounded.values())
    return AnalysisResult(
        environmental_score=bounded[EsgCategory.ENVIRONMENTAL].score,
        social_score=bounded[EsgCategory.SOCIAL].score,
        governance_score=bounded[EsgCategory.GOVERNANCE].score,
        overall_score=overall_score(
            {category: insight.score for category, insight in bounded.items()},
            weights,
        ),
        insights=tuple(text for insight in ordered for text in insight.insights),
        recommendations=tuple(
            text for insight in ordered for text in insight.recommendations
        ),
        anomalies=validation.anomalies,
        compliance_status=compliance.status,
        compliance=compliance,
        validation=validation,
        category_insights={category.value: insight for category, insight in bounded.items()},
    )


def aggregate_compliance(results: Iterable[ComplianceResult]) -> ComplianceReport:
    ordered = sorted(results, key=lambda r: r.framework)
    met = sum(r.met_requirements for r in ordered)
    total = sum(r.total_requirements for r in ordered)
    # Framework checks share template advice; keep the first occurrence of each
    recommendations = tuple(dict.fromkeys(
        text for r in ordered for text in r.recommendations
    ))
    return ComplianceReport(
        frameworks=tuple(r.framework for r in ordered),
        results=tuple(ordered),
        overall_compliance=float(compliance_percentage(met, total)),
        recommendations=recommendations,
    )
