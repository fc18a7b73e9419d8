"""Anthropic Classifier — model-backed InsightClassifier and ComplianceChecker.

Invariants:
    - Every failure surfaces as ClassifierUnavailableError (API errors, empty or
      unparseable replies) so the orchestrator falls back uniformly
    - The record is sent as JSON; nothing else about the caller leaks into the prompt
    - Compliance totals come from the local catalogue, never from the model

Design Decisions:
    - System prompt static per category/framework, user message carries the record
    - JSON-only reply contract, parsed with core/classifier_parsing.extract_json fallbacks
    - UnavailableClassifier wired in when no API key is configured: the branch code path
      is identical with and without a model
"""

import json
import logging

from esg_agent.core.classifier_parsing import (
    parse_category_insight,
    parse_compliance_result,
)
from esg_agent.core.compliance_rules import FRAMEWORK_REQUIREMENTS, total_requirements
from esg_agent.core.domain_types import EsgCategory, Framework
from esg_agent.core.entities import CategoryInsight, ComplianceResult, EsgRecord
from esg_agent.core.errors import ClassifierUnavailableError, ErrorContext
from esg_agent.infrastructure.anthropic_client import ResilientAnthropicClient

logger = logging.getLogger(__name__)

_CATEGORY_FOCUS = {
    EsgCategory.ENVIRONMENTAL: (
        "emissions, energy mix, water usage, waste generation and reduction"
    ),
    EsgCategory.SOCIAL: (
        "employee satisfaction, diversity, training, community investment, safety"
    ),
    EsgCategory.GOVERNANCE: (
        "board independence, transparency, risk management, compliance, ethics"
    ),
}

# Model prompt template, not SQL.
_INSIGHT_PROMPT = """<role>
You are an ESG analyst scoring the {category} pillar of a company's ESG dataset.
</role>

<rules>
1. Use ONLY the figures in the dataset. Never invent numbers.
2. Focus on {focus}.
3. Score 0-100 where 100 is best-in-class performance.
4. Confidence 0-100 reflects how much relevant data was available.
</rules>

<output_format>
Return ONLY a JSON object. No markdown, no explanation.
{{"score": <number>, "confidence": <number>,
  "insights": ["..."], "recommendations": ["..."]}}
</output_format>"""

_COMPLIANCE_PROMPT = """<role>
You are an ESG compliance expert for the {framework} framework.
</role>

<requirements total="{total}">
{requirements}
</requirements>

<rules>
1. Count a requirement as met only when the dataset contains data addressing it.
2. met_requirements must be between 0 and {total}.
</rules>

<output_format>
Return ONLY a JSON object. No markdown, no explanation.
{{"met_requirements": <integer>, "missing_requirements": ["..."],
  "recommendations": ["..."]}}
</output_format>"""


def _record_message(record: EsgRecord) -> list[dict]:
    payload = json.dumps(record, ensure_ascii=False, default=str, sort_keys=True)
    return [{"role": "user", "content": f"ESG dataset:\n{payload}"}]


def _reply_text(response) -> str:
    return "".join(
        getattr(block, "text", "") for block in getattr(response, "content", None) or []
    )


def _requirement_lines(framework: Framework) -> str:
    return "\n".join(
        f"- {section}: {', '.join(items)}"
        for section, items in FRAMEWORK_REQUIREMENTS[framework].items()
    )


class AnthropicInsightClassifier:
    """InsightClassifier backed by the Anthropic Messages API."""

    def __init__(self, client: ResilientAnthropicClient, model: str, max_tokens: int = 1024):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def classify(self, category: EsgCategory, record: EsgRecord) -> CategoryInsight:
        context = ErrorContext(branch=category.value)
        response = await self.client.create_message(
            model=self.model,
            max_tokens=self.max_tokens,
            system=_INSIGHT_PROMPT.format(
                category=category.value, focus=_CATEGORY_FOCUS[category],
            ),
            messages=_record_message(record),
            context=context,
        )
        insight = parse_category_insight(_reply_text(response))
        if insight is None:
            raise ClassifierUnavailableError(
                f"Unparseable {category.value} reply", "bad_response", context=context,
            )
        return insight


class AnthropicComplianceChecker:
    """ComplianceChecker backed by the Anthropic Messages API."""

    def __init__(self, client: ResilientAnthropicClient, model: str, max_tokens: int = 1024):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def check(self, record: EsgRecord, framework: Framework) -> ComplianceResult:
        context = ErrorContext(branch="compliance", framework=framework.value)
        response = await self.client.create_message(
            model=self.model,
            max_tokens=self.max_tokens,
            system=_COMPLIANCE_PROMPT.format(
                framework=framework.value,
                total=total_requirements(framework),
                requirements=_requirement_lines(framework),
            ),
            messages=_record_message(record),
            context=context,
        )
        result = parse_compliance_result(_reply_text(response), framework)
        if result is None:
            raise ClassifierUnavailableError(
                f"Unparseable {framework.value} reply", "bad_response", context=context,
            )
        return result


class UnavailableClassifier:
    """Stands in for both collaborators when no model is configured."""

    async def classify(self, category: EsgCategory, record: EsgRecord) -> CategoryInsight:
        raise ClassifierUnavailableError(
            "No insight classifier configured", "not_configured",
            context=ErrorContext(branch=category.value),
        )

    async def check(self, record: EsgRecord, framework: Framework) -> ComplianceResult:
        raise ClassifierUnavailableError(
            "No compliance checker configured", "not_configured",
            context=ErrorContext(branch="compliance", framework=framework.value),
        )
