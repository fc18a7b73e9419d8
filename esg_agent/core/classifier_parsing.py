"""Classifier Parsing — turn free-form model replies into CategoryInsight / ComplianceResult.

Invariants:
    - Parsing never raises on bad text: unparseable replies return None
    - Scores are clamped to [0, 100]; counts are non-negative and met <= total
    - NaN and infinities, as JSON literals or strings, count as missing numbers
    - Compliance status is always re-derived from the score thresholds

Design Decisions:
    - extract_json has 3 fallback levels (direct, fenced/regex block, give up)
    - None means "treat as unavailable": the caller falls back to heuristics instead
      of trusting a half-parsed answer
"""

import json
import math
import re
from typing import Any

from esg_agent.core.compliance_rules import (
    compliance_percentage,
    status_for_score,
    total_requirements,
)
from esg_agent.core.domain_types import Framework, clamp_score
from esg_agent.core.entities import CategoryInsight, ComplianceResult
from esg_agent.core.esg_record import is_finite_number

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def extract_json(text: str) -> dict | None:
    """Extract a JSON object from a model reply. Handles markdown wrapping.

    Fallback levels:
    1. Direct json.loads
    2. Regex: first {...} block (```json ... ``` wrapping)
    3. None
    """
    text = text.strip()
    try:
        parsed = json.loads(text)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        pass

    match = _JSON_BLOCK.search(text)
    if match:
        try:
            parsed = json.loads(match.group())
            return parsed if isinstance(parsed, dict) else None
        except json.JSONDecodeError:
            pass
    return None


def _number(value: Any) -> float | None:
    if is_finite_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = float(value.strip().rstrip("%"))
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _strings(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item).strip() for item in value if str(item).strip())


def parse_category_insight(text: str) -> CategoryInsight | None:
    data = extract_json(text)
    if data is None:
        return None
    score = _number(data.get("score"))
    if score is None:
        return None
    confidence = _number(data.get("confidence"))
    return CategoryInsight(
        score=clamp_score(score),
        insights=_strings(data.get("insights")),
        recommendations=_strings(data.get("recommendations")),
        confidence=clamp_score(confidence if confidence is not None else 50.0),
    )


def parse_compliance_result(text: str, framework: Framework) -> ComplianceResult | None:
    data = extract_json(text)
    if data is None:
        return None
    met = _number(data.get("met_requirements"))
    if met is None:
        return None
    total = total_requirements(framework)
    met_count = max(0, min(int(met), total))
    score = compliance_percentage(met_count, total)
    return ComplianceResult(
        framework=framework.value,
        status=status_for_score(score),
        score=float(score),
        total_requirements=total,
        met_requirements=met_count,
        missing_requirements=_strings(data.get("missing_requirements")),
        recommendations=_strings(data.get("recommendations")),
    )
