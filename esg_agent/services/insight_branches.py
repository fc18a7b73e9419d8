"""Insight Branches — collaborator calls with per-call timeout and fallback at the call site.

Invariants:
    - classify/check never raise for an unreachable collaborator: timeout,
      ClassifierUnavailableError or any other Exception yields fallback output
    - CancelledError always propagates (the join cancels losing branches)
    - Reference lookup failure or absence returns None (validation uses IQR instead)

Design Decisions:
    - Broad except at the call site only: the soft-failure boundary is here, not
      scattered through adapters (ADR: a classifier outage is never a task failure)
    - Fallback activations log at WARNING with branch / framework extras
"""

import asyncio
import logging
from typing import Mapping

from esg_agent.core.collaborator_protocols import (
    ComplianceChecker,
    InsightClassifier,
    ReferenceSource,
)
from esg_agent.core.domain_types import EsgCategory, Framework
from esg_agent.core.entities import (
    CategoryInsight,
    ComplianceResult,
    EsgRecord,
    ReferenceStats,
)
from esg_agent.core.errors import ClassifierUnavailableError
from esg_agent.core.fallback_scorer import fallback_compliance, fallback_insight

logger = logging.getLogger(__name__)


def _reason(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "timeout"
    if isinstance(exc, ClassifierUnavailableError):
        return exc.message
    return f"{type(exc).__name__}: {exc}"


async def classify_with_fallback(
    classifier: InsightClassifier,
    category: EsgCategory,
    record: EsgRecord,
    timeout: float,
    task_id: str | None = None,
) -> CategoryInsight:
    try:
        return await asyncio.wait_for(classifier.classify(category, record), timeout)
    except Exception as exc:
        logger.warning(
            f"Insight classifier unavailable, using fallback: {_reason(exc)}",
            extra={"task_id": task_id, "branch": "insight", "category": category.value},
        )
        return fallback_insight(category, record)


async def check_with_fallback(
    checker: ComplianceChecker,
    record: EsgRecord,
    framework: Framework,
    timeout: float,
    task_id: str | None = None,
) -> ComplianceResult:
    try:
        return await asyncio.wait_for(checker.check(record, framework), timeout)
    except Exception as exc:
        logger.warning(
            f"Compliance checker unavailable, using fallback: {_reason(exc)}",
            extra={"task_id": task_id, "branch": "compliance", "framework": framework.value},
        )
        return fallback_compliance(record, framework)


async def load_reference(
    source: ReferenceSource | None,
    record: EsgRecord,
    timeout: float,
    task_id: str | None = None,
) -> Mapping[str, ReferenceStats] | None:
    if source is None:
        return None
    try:
        return await asyncio.wait_for(source.reference_for(record), timeout)
    except Exception as exc:
        logger.warning(
            f"Reference source unavailable, using IQR: {_reason(exc)}",
            extra={"task_id": task_id, "branch": "validation"},
        )
        return None
