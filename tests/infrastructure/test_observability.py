"""Structured Logging — JSON formatter keys and idempotent setup.

Tests:
    - Base keys always present; known extras surfaced, unknown extras dropped
    - setup_logging twice leaves a single named handler
"""

import json
import logging

from esg_agent.infrastructure.observability import JSONFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord(
        "esg_agent.test", logging.WARNING, __file__, 1, "fallback for %s", ("social",), None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_known_extras():
    line = JSONFormatter().format(_record(task_id="validation_1", branch="insight", secret="x"))

    data = json.loads(line)
    assert data["level"] == "WARNING"
    assert data["logger"] == "esg_agent.test"
    assert data["message"] == "fallback for social"
    assert data["task_id"] == "validation_1"
    assert data["branch"] == "insight"
    assert "secret" not in data


def test_setup_logging_is_idempotent():
    original_level = logging.root.level
    try:
        setup_logging("DEBUG", "json")
        setup_logging("WARNING", "text")

        named = [h for h in logging.root.handlers if h.get_name() == "esg_agent"]
        assert len(named) == 1
        assert not isinstance(named[0].formatter, JSONFormatter)
        assert logging.root.level == logging.WARNING
    finally:
        for handler in [h for h in logging.root.handlers if h.get_name() == "esg_agent"]:
            logging.root.removeHandler(handler)
        logging.root.setLevel(original_level)
