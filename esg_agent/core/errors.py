"""Error Hierarchy — typed, categorized exceptions for every ESG agent failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Input errors (400-level) are surfaced immediately; no task is created
    - ClassifierUnavailableError is soft: caught at the branch call site, never surfaced
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with EsgAgentError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Invalid data is NOT an error: ValidationResult(is_valid=False) is a normal return
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CAPACITY = "capacity"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    task_id: str | None = None
    branch: str | None = None
    framework: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class EsgAgentError(Exception):
    """Base exception for all ESG agent errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "task_id": self.context.task_id,
                    "branch": self.context.branch,
                    "framework": self.context.framework,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Input Errors (400-level) ───────────────────────────────────

class InvalidInputError(EsgAgentError):
    """Record is malformed — fatal, raised before any task exists."""
    def __init__(self, message: str, field: str | None = None, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_INPUT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class UnsupportedFrameworkError(InvalidInputError):
    """Requested compliance framework has no requirement catalogue."""
    def __init__(self, framework: str, supported: list[str], context: ErrorContext | None = None):
        super().__init__(
            f"Unsupported framework '{framework}'. Supported: {', '.join(supported)}",
            field="framework", context=context,
        )
        self.code = "UNSUPPORTED_FRAMEWORK"
        self.framework = framework


class TaskNotFoundError(EsgAgentError):
    """Requested task id does not exist in the registry."""
    def __init__(self, task_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.task_id = task_id
        super().__init__(
            f"Task '{task_id}' not found",
            "TASK_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )


# ─── Execution Errors (500-level) ───────────────────────────────

class ClassifierUnavailableError(EsgAgentError):
    """Insight classifier / compliance checker unreachable. Soft — triggers fallback."""
    def __init__(
        self,
        message: str,
        api_error_type: str = "unavailable",
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Classifier unavailable ({api_error_type}): {message}",
            "CLASSIFIER_UNAVAILABLE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, ctx, 503,
        )
        self.api_error_type = api_error_type


class TaskExecutionError(EsgAgentError):
    """A branch hard-failed. Commits the task to failed."""
    def __init__(self, message: str, branch: str | None = None, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.branch = branch
        super().__init__(
            message, "TASK_EXECUTION_ERROR", ErrorCategory.INTERNAL,
            ErrorSeverity.ERROR, ctx, 500,
        )


class TaskQueueFullError(EsgAgentError):
    """Work queue is at capacity — submission rejected, no task created."""
    def __init__(self, capacity: int, context: ErrorContext | None = None):
        super().__init__(
            f"Task queue is full ({capacity} pending). Retry later.",
            "TASK_QUEUE_FULL", ErrorCategory.CAPACITY,
            ErrorSeverity.WARNING, context, 503,
        )
