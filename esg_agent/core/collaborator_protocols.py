"""Collaborator Protocols — contracts between the orchestrator and its external collaborators.

Invariants:
    - Core NEVER imports from services/infrastructure — dependency arrows point inward only
    - Classifier / checker / reference calls are async: implementations do I/O
    - ReportGenerator is sync and pure: rendering to a document happens outside the core

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Implementations signal "unreachable" with ClassifierUnavailableError; the orchestrator
      treats any other exception the same way and falls back
"""

from typing import Mapping, Protocol

from esg_agent.core.domain_types import EsgCategory, Framework
from esg_agent.core.entities import (
    AnalysisResult,
    CategoryInsight,
    ComplianceResult,
    EsgRecord,
    ReferenceStats,
    ReportDraft,
    ValidationResult,
)


class InsightClassifier(Protocol):
    """Scores one ESG pillar of a record."""
    async def classify(
        self, category: EsgCategory, record: EsgRecord,
    ) -> CategoryInsight: ...


class ComplianceChecker(Protocol):
    """Checks a record against one reporting framework."""
    async def check(
        self, record: EsgRecord, framework: Framework,
    ) -> ComplianceResult: ...


class ReferenceSource(Protocol):
    """Historical distributions keyed by dotted path or bare field name."""
    async def reference_for(
        self, record: EsgRecord,
    ) -> Mapping[str, ReferenceStats] | None: ...


class ReportGenerator(Protocol):
    """Assembles structured report content from finished branch results."""
    def generate(
        self,
        framework: Framework,
        record: EsgRecord,
        analysis: AnalysisResult,
        compliance: ComplianceResult,
        validation: ValidationResult,
    ) -> ReportDraft: ...
