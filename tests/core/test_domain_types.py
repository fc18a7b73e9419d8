"""Domain Types — verifies rich type definitions and enum values.

Tests:
    - NewType wrappers exist and are callable
    - Enums have expected members and serialize to their values
    - TaskStatus terminal set is exactly completed / failed
    - Default priorities per task kind
"""

from esg_agent.core.domain_types import (
    DEFAULT_PRIORITY, PRIORITY_RANK, TERMINAL_STATUSES,
    AnomalyType, EsgCategory, Framework, QualityDimension,
    Score, TaskId, TaskKind, TaskPriority, TaskStatus, clamp_score,
)


def test_identity_and_value_types_wrap_primitives():
    assert TaskId("data_analysis_abc") == "data_analysis_abc"
    assert Score(72.5) == 72.5


def test_task_kind_has_four_kinds():
    assert {kind.value for kind in TaskKind} == {
        "data_analysis", "compliance_check", "report_generation", "validation",
    }


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {TaskStatus.COMPLETED, TaskStatus.FAILED}
    assert TaskStatus.PROCESSING not in TERMINAL_STATUSES


def test_high_priority_ranks_first():
    ranked = sorted(TaskPriority, key=PRIORITY_RANK.__getitem__)
    assert ranked == [TaskPriority.HIGH, TaskPriority.MEDIUM, TaskPriority.LOW]


def test_default_priorities():
    assert DEFAULT_PRIORITY[TaskKind.DATA_ANALYSIS] is TaskPriority.HIGH
    assert DEFAULT_PRIORITY[TaskKind.COMPLIANCE_CHECK] is TaskPriority.HIGH
    assert DEFAULT_PRIORITY[TaskKind.REPORT_GENERATION] is TaskPriority.MEDIUM
    assert DEFAULT_PRIORITY[TaskKind.VALIDATION] is TaskPriority.MEDIUM


def test_category_order_matches_weight_order():
    assert [c.value for c in EsgCategory] == ["environmental", "social", "governance"]


def test_tie_break_orders():
    assert list(AnomalyType)[0] is AnomalyType.OUTLIER
    assert list(QualityDimension)[0] is QualityDimension.COMPLETENESS


def test_enums_serialize_to_value():
    assert TaskStatus.PENDING.value == "pending"
    assert Framework.GRI == "GRI"


def test_clamp_score():
    assert clamp_score(-3) == 0.0
    assert clamp_score(140) == 100.0
    assert clamp_score(55.5) == 55.5
    assert clamp_score(float("nan")) == 0.0
    assert clamp_score(float("inf")) == 100.0
