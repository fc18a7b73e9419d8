"""Validation Engine — end-to-end rule and statistical passes over single records.

Tests:
    - A complete, in-range, fresh record is valid with a perfect score
    - Missing N of 15 expected fields gives completeness 100 * (15 - N) / 15
    - Range, type and finiteness violations are hard errors and block is_valid
    - Plausible-but-extreme values and missing general fields are warnings only
    - Identical inputs and clock yield equal results; the record is never mutated
    - Malformed input raises InvalidInputError
"""

import copy

import pytest

from esg_agent.core.domain_types import AnomalyType, Severity
from esg_agent.core.entities import ReferenceStats
from esg_agent.core.errors import InvalidInputError
from esg_agent.core.scoring_config import ValidationConfig
from esg_agent.core.validation_engine import validate_record
from esg_agent.core.validation_rules import EXPECTED_FIELD_COUNT

from tests.records import FIXED_NOW, complete_record, minimal_emissions_record, without


# ==============================================================================
# Valid records
# ==============================================================================


def test_complete_record_is_valid_with_full_quality():
    result = validate_record(complete_record(), now=FIXED_NOW)

    assert result.is_valid is True
    assert result.errors == ()
    assert result.warnings == ()
    assert result.anomalies == ()
    assert result.score == 100.0
    assert result.data_quality.completeness == 100.0
    assert result.data_quality.timeliness == 100.0
    assert result.recommendations == ("Continue monitoring data quality metrics",)


def test_complete_record_passes_threshold():
    config = ValidationConfig()
    result = validate_record(complete_record(), config, now=FIXED_NOW)
    assert result.score >= config.pass_threshold


def test_expected_schema_has_fifteen_fields():
    assert EXPECTED_FIELD_COUNT == 15


# ==============================================================================
# Completeness
# ==============================================================================


@pytest.mark.parametrize("missing", [
    ("social.trainingHours",),
    ("environmental.waterUsage", "governance.ethicsScore", "social.employeeCount"),
    ("environmental.emissions", "environmental.renewableEnergy",
     "environmental.waterUsage", "environmental.wasteGeneration",
     "environmental.energyConsumption"),
])
def test_completeness_is_share_of_present_fields(missing):
    record = without(complete_record(), *missing)

    result = validate_record(record, now=FIXED_NOW)

    n = len(missing)
    assert result.data_quality.completeness == 100.0 * (15 - n) / 15
    missing_anomalies = [a for a in result.anomalies if a.type is AnomalyType.MISSING]
    assert sorted(a.field for a in missing_anomalies) == sorted(missing)
    assert all(a.severity is Severity.MEDIUM for a in missing_anomalies)


def test_missing_field_produces_warning_not_error():
    record = without(complete_record(), "social.trainingHours")

    result = validate_record(record, now=FIXED_NOW)

    assert "Missing trainingHours data in social category" in result.warnings
    assert result.errors == ()
    assert result.is_valid is True


def test_absent_category_counts_all_its_fields_missing():
    record = complete_record()
    del record["governance"]

    result = validate_record(record, now=FIXED_NOW)

    assert result.data_quality.completeness == 100.0 * 10 / 15


def test_mostly_empty_record_is_invalid_but_returned():
    result = validate_record(minimal_emissions_record(), now=FIXED_NOW)

    assert result.is_valid is False
    assert 0.0 <= result.score <= 100.0
    assert len([a for a in result.anomalies if a.type is AnomalyType.MISSING]) == 14


# ==============================================================================
# Hard errors
# ==============================================================================


def test_percentage_above_hundred_is_error():
    record = complete_record()
    record["environmental"]["renewableEnergy"] = 140

    result = validate_record(record, now=FIXED_NOW)

    assert result.is_valid is False
    assert any("renewableEnergy value 140" in e for e in result.errors)
    assert result.data_quality.accuracy < 100.0


def test_negative_quantity_is_error():
    record = complete_record()
    record["environmental"]["emissions"] = -5

    result = validate_record(record, now=FIXED_NOW)

    assert "environmental.emissions value -5 is outside expected range >= 0" in result.errors
    assert result.is_valid is False


@pytest.mark.parametrize("bad_value", ["lots", True, float("nan"), float("inf")])
def test_non_numeric_or_non_finite_expected_field_is_error(bad_value):
    record = complete_record()
    record["social"]["employeeCount"] = bad_value

    result = validate_record(record, now=FIXED_NOW)

    assert any(e.startswith("social.employeeCount must be") for e in result.errors)
    assert result.is_valid is False


def test_wrong_type_for_organization_is_error():
    record = complete_record()
    record["organization"] = 42

    result = validate_record(record, now=FIXED_NOW)

    assert "organization must be a string" in result.errors


def test_errors_add_a_correction_recommendation():
    record = complete_record()
    record["governance"]["ethicsScore"] = 101

    result = validate_record(record, now=FIXED_NOW)

    assert result.recommendations[0] == "Review and correct 1 invalid field value(s)"


# ==============================================================================
# Warnings
# ==============================================================================


def test_value_above_plausible_maximum_is_warning():
    record = complete_record()
    record["social"]["trainingHours"] = 500

    result = validate_record(record, now=FIXED_NOW)

    assert result.errors == ()
    assert any("social.trainingHours value 500 exceeds plausible maximum" in w
               for w in result.warnings)


def test_plausible_maximum_is_overridable():
    record = complete_record()
    record["social"]["trainingHours"] = 500
    config = ValidationConfig(plausible_max_overrides={"trainingHours": 1000})

    result = validate_record(record, config, now=FIXED_NOW)

    assert not any("plausible maximum" in w for w in result.warnings)


def test_missing_general_fields_are_warnings():
    record = complete_record()
    del record["organization"]
    del record["dataSource"]

    result = validate_record(record, now=FIXED_NOW)

    assert "Missing required field: organization" in result.warnings
    assert "Missing required field: dataSource" in result.warnings
    assert result.is_valid is True


# ==============================================================================
# Outliers through the engine
# ==============================================================================


def test_reference_outlier_beyond_four_sigma_is_high():
    reference = {"emissions": ReferenceStats(mean=1000.0, stddev=30.0)}

    result = validate_record(complete_record(), reference=reference, now=FIXED_NOW)

    outliers = [a for a in result.anomalies if a.field == "environmental.emissions"]
    assert len(outliers) == 1
    assert outliers[0].type is AnomalyType.OUTLIER
    assert outliers[0].severity is Severity.HIGH


def test_reference_within_two_sigma_is_not_flagged():
    reference = {"environmental.emissions": ReferenceStats(mean=860.0, stddev=10.0)}

    result = validate_record(complete_record(), reference=reference, now=FIXED_NOW)

    assert not [a for a in result.anomalies if a.field == "environmental.emissions"]


# ==============================================================================
# Determinism and input handling
# ==============================================================================


def test_validation_is_deterministic():
    record = without(complete_record(), "social.trainingHours")
    record["environmental"]["carbonFootprint"] = 100

    first = validate_record(record, now=FIXED_NOW)
    second = validate_record(record, now=FIXED_NOW)

    assert first == second


def test_record_is_not_mutated():
    record = complete_record()
    record["environmental"]["renewableEnergy"] = 140
    snapshot = copy.deepcopy(record)

    validate_record(record, now=FIXED_NOW)

    assert record == snapshot


@pytest.mark.parametrize("bad", [None, [], "record", {}, {"foo": 1}, {"social": [1, 2]}])
def test_malformed_input_raises_invalid_input(bad):
    with pytest.raises(InvalidInputError):
        validate_record(bad, now=FIXED_NOW)


def test_result_serializes_to_plain_dict():
    data = validate_record(minimal_emissions_record(), now=FIXED_NOW).to_dict()

    assert isinstance(data["anomalies"], list)
    assert data["anomalies"][0]["type"] == "missing"
    assert set(data["data_quality"]) == {
        "completeness", "accuracy", "consistency", "timeliness",
    }


# ==============================================================================
# Degraded inputs still produce a result
# ==============================================================================


@pytest.mark.parametrize("period", ["0000", "FY0000", 0])
def test_impossible_reporting_year_degrades_to_unknown_date(period):
    record = complete_record()
    del record["reportingPeriodEnd"]
    record["reportingPeriod"] = period

    result = validate_record(record, now=FIXED_NOW)

    assert result.data_quality.timeliness == 70.0


def test_integer_beyond_float_range_is_field_error():
    record = complete_record()
    record["environmental"]["emissions"] = 10 ** 400
    record["environmental"]["scope3"] = -(10 ** 400)

    result = validate_record(record, now=FIXED_NOW)

    assert (
        "environmental.emissions must be a finite number, got an integer of 401 digits"
        in result.errors
    )
    assert any(e.startswith("environmental.scope3 must be a finite number") for e in result.errors)
    assert result.is_valid is False


# ==============================================================================
# Complete, in-range records always pass
# ==============================================================================


def _stale_extreme_record() -> dict:
    record = complete_record()
    record["reportingPeriodEnd"] = "2023-12-31"
    record["governance"]["boardIndependence"] = 1
    record["governance"]["transparencyScore"] = 100
    record["social"]["communityInvestment"] = 900_000_000
    return record


def _repeated_values_record() -> dict:
    record = complete_record()
    for category in ("environmental", "social"):
        for name in record[category]:
            record[category][name] = 50
    return record


@pytest.mark.parametrize("build", [complete_record, _stale_extreme_record, _repeated_values_record])
def test_complete_in_range_record_is_valid(build):
    result = validate_record(build(), now=FIXED_NOW)

    assert result.errors == ()
    assert result.is_valid is True
    assert result.score >= 50.0


def test_anomalies_still_lower_score_of_valid_record():
    result = validate_record(_stale_extreme_record(), now=FIXED_NOW)

    assert result.data_quality.timeliness == 0.0
    assert any(a.type is AnomalyType.OUTLIER for a in result.anomalies)
    assert result.score < 75.0
