"""Validation Rules — static expected-field schema, ranges, placeholders and cross-field rules.

Invariants:
    - Every expected field belongs to exactly one category and one unit class
    - Percentages are hard-bounded to [0, 100]; quantities to >= 0
    - plausible_max is a warning boundary, never an error boundary
    - Cross-field rules are pure predicates over the flattened numeric view

Design Decisions:
    - Declarative tables over per-field branches: adding a field or rule is a data change
    - Fields outside the schema still get range checks when their unit is known
      (KNOWN_FIELD_UNITS), otherwise they are only seen by the statistical pass
"""

from dataclasses import dataclass
from typing import Callable, Mapping

from esg_agent.core.domain_types import EsgCategory, FieldUnit


@dataclass(frozen=True)
class FieldRule:
    name: str
    unit: FieldUnit
    plausible_max: float | None = None
    label: str = ""

    @property
    def hard_range(self) -> tuple[float, float | None]:
        if self.unit is FieldUnit.PERCENTAGE:
            return (0.0, 100.0)
        return (0.0, None)


def _pct(name: str, label: str) -> FieldRule:
    return FieldRule(name, FieldUnit.PERCENTAGE, None, label)


def _qty(name: str, plausible_max: float, label: str) -> FieldRule:
    return FieldRule(name, FieldUnit.QUANTITY, plausible_max, label)


# ─── Expected-field schema ──────────────────────────────────────

EXPECTED_FIELDS: dict[EsgCategory, tuple[FieldRule, ...]] = {
    EsgCategory.ENVIRONMENTAL: (
        _qty("emissions", 10_000_000, "tCO2e"),
        _pct("renewableEnergy", "% of energy from renewables"),
        _qty("waterUsage", 100_000_000, "m3"),
        _qty("wasteGeneration", 5_000_000, "tonnes"),
        _qty("energyConsumption", 50_000_000, "MWh"),
    ),
    EsgCategory.SOCIAL: (
        _pct("employeeSatisfaction", "survey score"),
        _pct("diversityScore", "diversity index"),
        _qty("trainingHours", 200, "hours per employee"),
        _qty("communityInvestment", 1_000_000_000, "currency"),
        _qty("employeeCount", 3_000_000, "headcount"),
    ),
    EsgCategory.GOVERNANCE: (
        _pct("boardIndependence", "% independent directors"),
        _pct("transparencyScore", "disclosure score"),
        _pct("riskManagement", "risk framework maturity"),
        _pct("complianceScore", "compliance maturity"),
        _pct("ethicsScore", "ethics programme score"),
    ),
}

EXPECTED_FIELD_COUNT = sum(len(rules) for rules in EXPECTED_FIELDS.values())

# Frequently reported fields outside the expected schema
_EXTRA_RULES = (
    _qty("carbonFootprint", 10_000_000, "tCO2e"),
    _pct("wasteReduction", "% reduction"),
    _pct("recyclingRate", "% recycled"),
    _pct("healthAndSafety", "safety score"),
    _pct("employeeTurnover", "% turnover"),
)

KNOWN_FIELD_RULES: dict[str, FieldRule] = {
    rule.name: rule
    for rule in (*_EXTRA_RULES, *(r for rules in EXPECTED_FIELDS.values() for r in rules))
}


def rule_for(name: str) -> FieldRule | None:
    return KNOWN_FIELD_RULES.get(name)


def unit_of(name: str) -> FieldUnit:
    """Unit class for IQR grouping; unknown fields count as quantities."""
    rule = KNOWN_FIELD_RULES.get(name)
    return rule.unit if rule else FieldUnit.QUANTITY


# ─── General fields ─────────────────────────────────────────────

GENERAL_REQUIRED_FIELDS = ("organization", "reportingPeriod", "dataSource")

# Fields that must be strings when present (reportingPeriod may also be an int year)
GENERAL_FIELD_TYPES: dict[str, tuple[type, ...]] = {
    "organization": (str,),
    "reportingPeriod": (str, int),
}


# ─── Placeholders ───────────────────────────────────────────────

PLACEHOLDER_VALUES = frozenset({-999.0, -9999.0, 9999.0, 99999.0, 999999.0})


# ─── Cross-field consistency ────────────────────────────────────

NumericView = Mapping[str, float]


@dataclass(frozen=True)
class CrossFieldRule:
    field: str
    description: str
    applies: Callable[[NumericView], bool]


def _above(view: NumericView, path: str, limit: float) -> bool:
    value = view.get(path)
    return value is not None and value > limit


def _zero_emissions_with_energy(view: NumericView) -> bool:
    return view.get("environmental.emissions") == 0 and _above(
        view, "environmental.energyConsumption", 1000,
    )


def _footprint_below_emissions(view: NumericView) -> bool:
    emissions = view.get("environmental.emissions")
    footprint = view.get("environmental.carbonFootprint")
    if footprint is None:
        footprint = view.get("carbonFootprint")
    return emissions is not None and footprint is not None and footprint < emissions


CROSS_FIELD_RULES: tuple[CrossFieldRule, ...] = (
    CrossFieldRule(
        "environmental.emissions",
        "Zero emissions reported despite energy consumption above 1000",
        _zero_emissions_with_energy,
    ),
    CrossFieldRule(
        "environmental.carbonFootprint",
        "Carbon footprint is lower than reported emissions",
        _footprint_below_emissions,
    ),
)
