"""ESG Record — shape checks and read-only accessors over caller-owned records.

Invariants:
    - ensure_record() is the only place that raises InvalidInputError for record shape
    - Accessors never mutate the record
    - Booleans are never numbers (True is not 1 in an ESG dataset)
    - extract_numeric_fields() output is sorted by path: downstream results are deterministic

Design Decisions:
    - Plain Mapping access over a Pydantic model: records carry arbitrary extra fields and
      must be accepted as-is; only the outer shape is enforced
"""

import math
from typing import Any, Mapping

from esg_agent.core.domain_types import EsgCategory
from esg_agent.core.entities import EsgRecord
from esg_agent.core.errors import InvalidInputError

CATEGORY_KEYS = tuple(c.value for c in EsgCategory)


def ensure_record(record: Any) -> EsgRecord:
    """Fail fast on anything that is not an ESG record. Returns the record unchanged."""
    if not isinstance(record, Mapping):
        raise InvalidInputError(
            f"ESG record must be a mapping, got {type(record).__name__}",
        )
    if not record:
        raise InvalidInputError("ESG record is empty")
    if not any(key in record for key in CATEGORY_KEYS):
        raise InvalidInputError(
            f"ESG record must contain at least one category: {', '.join(CATEGORY_KEYS)}",
        )
    for key in CATEGORY_KEYS:
        value = record.get(key)
        if value is not None and not isinstance(value, Mapping):
            raise InvalidInputError(
                f"Category '{key}' must be a mapping of fields, got {type(value).__name__}",
                field=key,
            )
    return record


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_finite_number(value: Any) -> bool:
    """Number that converts to a finite float; ints beyond float range are not finite."""
    if not is_number(value):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def category_fields(record: EsgRecord, category: EsgCategory) -> Mapping[str, Any]:
    """Fields of one category, empty mapping when the category is absent."""
    return record.get(category.value) or {}


def field_present(record: EsgRecord, name: str) -> bool:
    """True when `name` is set at the top level or inside any category."""
    if record.get(name) is not None:
        return True
    return any(
        category_fields(record, category).get(name) is not None
        for category in EsgCategory
    )


def extract_numeric_fields(record: EsgRecord) -> list[tuple[str, float]]:
    """Flatten all finite numeric leaves into (dotted.path, value), sorted by path."""
    found: list[tuple[str, float]] = []
    _walk(record, "", found)
    found.sort(key=lambda item: item[0])
    return found


def _walk(node: Mapping, prefix: str, found: list[tuple[str, float]]) -> None:
    for key, value in node.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if is_finite_number(value):
            found.append((path, float(value)))
        elif isinstance(value, Mapping):
            _walk(value, path, found)


def leaf_name(path: str) -> str:
    return path.rsplit(".", 1)[-1]
