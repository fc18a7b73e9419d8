"""Scoring Configuration — construction-time checks on weights and thresholds.

Tests:
    - Defaults: 0.40 / 0.35 / 0.25 category weights, equal dimension weights
    - Dimension weights must sum to 1.0; timeliness breakpoints must be ordered
    - replace() builds variants without touching the shared default
"""

import dataclasses

import pytest

from esg_agent.core.domain_types import EsgCategory, QualityDimension, Severity
from esg_agent.core.scoring_config import (
    DEFAULT_SCORE_WEIGHTS,
    DEFAULT_VALIDATION_CONFIG,
    ValidationConfig,
)


def test_default_category_weights():
    assert DEFAULT_SCORE_WEIGHTS.by_category() == {
        EsgCategory.ENVIRONMENTAL: 0.40,
        EsgCategory.SOCIAL: 0.35,
        EsgCategory.GOVERNANCE: 0.25,
    }


def test_default_validation_config():
    config = DEFAULT_VALIDATION_CONFIG
    assert config.pass_threshold == 50.0
    assert config.z_threshold == 2.5
    assert set(config.dimension_weights.values()) == {0.25}
    assert config.severity_penalties[Severity.HIGH] == 10.0


def test_dimension_weights_must_sum_to_one():
    weights = {dim: 0.5 for dim in QualityDimension}
    with pytest.raises(ValueError, match="dimension_weights"):
        ValidationConfig(dimension_weights=weights)


def test_timeliness_breakpoints_must_be_ordered():
    with pytest.raises(ValueError):
        ValidationConfig(timeliness_fresh_days=400, timeliness_stale_days=365)


def test_z_threshold_must_be_positive():
    with pytest.raises(ValueError):
        ValidationConfig(z_threshold=0)


def test_replace_builds_variant():
    strict = dataclasses.replace(DEFAULT_VALIDATION_CONFIG, pass_threshold=90.0)
    assert strict.pass_threshold == 90.0
    assert DEFAULT_VALIDATION_CONFIG.pass_threshold == 50.0
