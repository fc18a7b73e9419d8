"""Compliance Rules — framework requirement catalogues, presence points and status thresholds.

Invariants:
    - Supported frameworks are exactly the keys of FRAMEWORK_REQUIREMENTS
    - total_requirements(framework) == number of catalogued requirements (GRI 25, SASB 14,
      TCFD 9, CSRD 12)
    - Status thresholds: compliant >= 80, partially_compliant >= 40, else non_compliant
    - Scores round half up (8.5 -> 9), never banker's rounding

Design Decisions:
    - Framework names resolve case-insensitively; anything else is UnsupportedFrameworkError
      raised before a task exists
    - Presence points are a declarative table evaluated uniformly by the fallback scorer
"""

import math

from esg_agent.core.domain_types import ComplianceStatus, Framework
from esg_agent.core.errors import UnsupportedFrameworkError

FRAMEWORK_REQUIREMENTS: dict[Framework, dict[str, tuple[str, ...]]] = {
    Framework.GRI: {
        "environmental": (
            "GRI 301", "GRI 302", "GRI 303", "GRI 304",
            "GRI 305", "GRI 306", "GRI 307", "GRI 308",
        ),
        "social": (
            "GRI 401", "GRI 402", "GRI 403", "GRI 404", "GRI 405",
            "GRI 406", "GRI 407", "GRI 408", "GRI 409",
        ),
        "governance": (
            "GRI 205", "GRI 206", "GRI 207", "GRI 208",
            "GRI 209", "GRI 210", "GRI 211", "GRI 212",
        ),
    },
    Framework.SASB: {
        "environmental": (
            "GHG Emissions", "Air Quality", "Energy Management",
            "Water & Wastewater Management", "Waste & Hazardous Materials Management",
        ),
        "social": (
            "Employee Health & Safety", "Labor Rights", "Data Security",
            "Access & Affordability", "Product Quality & Safety",
        ),
        "governance": (
            "Business Ethics", "Competitive Behavior",
            "Management of the Legal & Regulatory Environment",
            "Critical Incident Risk Management",
        ),
    },
    Framework.TCFD: {
        "governance": ("Board oversight", "Management role"),
        "strategy": (
            "Climate-related risks and opportunities", "Impact on business",
            "Strategic planning",
        ),
        "risk_management": (
            "Risk identification and assessment", "Risk management processes",
        ),
        "metrics_targets": ("Metrics and targets", "Scope 1, 2, and 3 emissions"),
    },
    Framework.CSRD: {
        "environmental": (
            "Climate change", "Pollution", "Water and marine resources",
            "Biodiversity and ecosystems", "Resource use and circular economy",
        ),
        "social": (
            "Equal treatment and opportunities", "Working conditions",
            "Respect for human rights", "Anti-corruption and bribery",
        ),
        "governance": (
            "Business conduct", "Political engagement",
            "Management and supervisory bodies",
        ),
    },
}

# field -> points earned when the field is reported
PRESENCE_POINTS: dict[Framework, tuple[tuple[str, int], ...]] = {
    Framework.GRI: (
        ("emissions", 2), ("energy", 2), ("water", 2),
        ("waste", 2), ("employeeData", 2), ("governanceData", 2),
    ),
    Framework.SASB: (
        ("ghgEmissions", 3), ("energyManagement", 3),
        ("employeeSafety", 3), ("businessEthics", 3),
    ),
    Framework.TCFD: (
        ("climateRisks", 4), ("emissions", 4), ("governance", 4),
    ),
    Framework.CSRD: (
        ("environmental", 3), ("social", 3), ("governance", 3),
    ),
}

COMPLIANT_AT = 80
PARTIALLY_COMPLIANT_AT = 40


def supported_frameworks() -> list[str]:
    return [framework.value for framework in FRAMEWORK_REQUIREMENTS]


def resolve_framework(name: str | Framework) -> Framework:
    """Map a caller-supplied name to a Framework or raise UnsupportedFrameworkError."""
    if isinstance(name, Framework):
        return name
    wanted = str(name).strip().upper()
    for framework in FRAMEWORK_REQUIREMENTS:
        if framework.value == wanted:
            return framework
    raise UnsupportedFrameworkError(str(name), supported_frameworks())


def total_requirements(framework: Framework) -> int:
    return sum(len(items) for items in FRAMEWORK_REQUIREMENTS[framework].values())


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compliance_percentage(met: int, total: int) -> int:
    """round(100 * met / total); 0 when there are no requirements."""
    if total <= 0:
        return 0
    return round_half_up(100 * min(met, total) / total)


def status_for_score(score: float) -> ComplianceStatus:
    if score >= COMPLIANT_AT:
        return ComplianceStatus.COMPLIANT
    if score >= PARTIALLY_COMPLIANT_AT:
        return ComplianceStatus.PARTIALLY_COMPLIANT
    return ComplianceStatus.NON_COMPLIANT
