"""Insight Branches — fallback at the collaborator call site.

Tests:
    - Successful calls pass through untouched
    - Timeout, ClassifierUnavailableError and unexpected errors all fall back
    - Fallback activation logs a WARNING naming the branch
    - Reference lookup failures return None
"""

import logging

from esg_agent.core.domain_types import EsgCategory, Framework
from esg_agent.core.entities import ReferenceStats
from esg_agent.services.anthropic_classifier import UnavailableClassifier
from esg_agent.services.insight_branches import (
    check_with_fallback,
    classify_with_fallback,
    load_reference,
)

from tests.fakes import (
    ExplodingCollaborator,
    FixedChecker,
    FixedClassifier,
    SlowCollaborator,
    StaticReferenceSource,
)
from tests.records import complete_record


async def test_classifier_result_passes_through():
    classifier = FixedClassifier({EsgCategory.SOCIAL: 42.0})

    insight = await classify_with_fallback(
        classifier, EsgCategory.SOCIAL, complete_record(), timeout=1,
    )

    assert insight.score == 42.0
    assert insight.confidence == 90.0


async def test_unavailable_classifier_falls_back(caplog):
    with caplog.at_level(logging.WARNING, logger="esg_agent.services.insight_branches"):
        insight = await classify_with_fallback(
            UnavailableClassifier(), EsgCategory.GOVERNANCE, complete_record(),
            timeout=1, task_id="data_analysis_x",
        )

    assert insight.score == 100.0
    assert insight.confidence == 60.0
    [warning] = caplog.records
    assert warning.branch == "insight"
    assert warning.category == "governance"
    assert "not_configured" in warning.getMessage()


async def test_timeout_falls_back():
    slow = SlowCollaborator(delay=5)

    insight = await classify_with_fallback(
        slow, EsgCategory.ENVIRONMENTAL, complete_record(), timeout=0.01,
    )

    assert insight.confidence == 60.0
    assert slow.completed == 0


async def test_unexpected_checker_error_falls_back():
    result = await check_with_fallback(
        ExplodingCollaborator(), complete_record(), Framework.CSRD, timeout=1,
    )

    assert result.met_requirements == 9
    assert result.framework == "CSRD"


async def test_checker_result_passes_through():
    result = await check_with_fallback(
        FixedChecker({Framework.SASB: 14}), complete_record(), Framework.SASB, timeout=1,
    )
    assert result.score == 100.0


async def test_load_reference():
    stats = {"emissions": ReferenceStats(mean=900, stddev=50)}

    assert await load_reference(None, complete_record(), 1) is None
    assert await load_reference(StaticReferenceSource(stats), complete_record(), 1) == stats


async def test_failing_reference_source_returns_none():
    class BrokenSource:
        async def reference_for(self, record):
            raise ConnectionError("warehouse offline")

    assert await load_reference(BrokenSource(), complete_record(), 1) is None
