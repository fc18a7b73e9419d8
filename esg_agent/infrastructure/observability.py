"""Structured Logging — one JSON object per line, with task / branch context when present.

Invariants:
    - Every line carries timestamp, level, logger and message
    - Context extras (task_id, task_kind, branch, category, framework, ...) appear only when set
    - setup_logging() is idempotent: a second call replaces its own handler, never stacks
    - Third-party loggers (httpx, anthropic) are capped at WARNING unless level is DEBUG

Design Decisions:
    - Stdlib logging + custom formatter: callers pass context through `extra=`, no wrapper API
    - Text format for local runs and tests (LOG_FORMAT=text)
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_KEYS = (
    "task_id", "task_kind", "branch", "category", "framework",
    "error_code", "attempt", "input_tokens", "output_tokens", "path",
)

_HANDLER_NAME = "esg_agent"
_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic")
_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({
            key: record.__dict__[key]
            for key in EXTRA_KEYS
            if record.__dict__.get(key) is not None
        })
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _build_handler(fmt: str) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    formatter = JSONFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT)
    handler.setFormatter(formatter)
    return handler


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(_build_handler(fmt))

    resolved = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(resolved)
    if resolved > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
