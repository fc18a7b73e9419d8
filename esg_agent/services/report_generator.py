"""Structured Report Generator — default ReportGenerator assembling ReportDraft content.

Invariants:
    - Deterministic: same inputs produce an equal ReportDraft (no clock, no I/O)
    - Sections always appear in the same order: environmental, social, governance,
      performance metrics, compliance
    - Only structured content is produced; rendering to PDF/HTML is an external concern
"""

from typing import Any

from esg_agent.core.domain_types import EsgCategory, Framework
from esg_agent.core.entities import (
    AnalysisResult,
    ComplianceResult,
    EsgRecord,
    ReportDraft,
    ValidationResult,
    to_plain,
)
from esg_agent.core.esg_record import category_fields

_SECTION_TITLES = {
    EsgCategory.ENVIRONMENTAL: "Environmental Performance",
    EsgCategory.SOCIAL: "Social Responsibility",
    EsgCategory.GOVERNANCE: "Corporate Governance",
}


def _optional_text(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None


class StructuredReportGenerator:
    """Builds a ReportDraft from finished analysis, compliance and validation results."""

    def generate(
        self,
        framework: Framework,
        record: EsgRecord,
        analysis: AnalysisResult,
        compliance: ComplianceResult,
        validation: ValidationResult,
    ) -> ReportDraft:
        organization = _optional_text(record.get("organization"))
        period = _optional_text(record.get("reportingPeriod"))
        title = f"{framework.value} ESG Report"
        if period:
            title = f"{title} - {period}"

        scores = {
            EsgCategory.ENVIRONMENTAL: analysis.environmental_score,
            EsgCategory.SOCIAL: analysis.social_score,
            EsgCategory.GOVERNANCE: analysis.governance_score,
        }
        sections: list[dict[str, Any]] = []
        for category in EsgCategory:
            insight = analysis.category_insights.get(category.value)
            sections.append({
                "title": _SECTION_TITLES[category],
                "category": category.value,
                "score": scores[category],
                "insights": list(insight.insights) if insight else [],
                "recommendations": list(insight.recommendations) if insight else [],
                "data": to_plain(category_fields(record, category)),
            })
        sections.append({
            "title": "Performance Metrics",
            "category": "data_quality",
            "score": validation.score,
            "data": validation.data_quality.to_dict(),
            "anomaly_count": len(validation.anomalies),
            "warnings": list(validation.warnings),
        })
        sections.append({
            "title": f"{framework.value} Compliance",
            "category": "compliance",
            "score": compliance.score,
            "data": compliance.to_dict(),
        })

        return ReportDraft(
            framework=framework.value,
            organization=organization,
            reporting_period=period,
            summary={
                "title": title,
                "overall_score": analysis.overall_score,
                "environmental_score": analysis.environmental_score,
                "social_score": analysis.social_score,
                "governance_score": analysis.governance_score,
                "compliance_status": compliance.status.value,
                "compliance_score": compliance.score,
                "data_quality_score": validation.score,
                "key_insights": list(analysis.insights),
                "recommendations": list(analysis.recommendations),
            },
            sections=tuple(sections),
            data_quality=validation.data_quality,
        )
