"""Task Orchestrator — accepts ESG records, fans them out to concurrent branches, commits results.

Invariants:
    - submit_*() validates shape and frameworks first: InvalidInputError means no task exists
    - submit_*() never waits for execution; a full queue raises TaskQueueFullError, no task
    - Each task moves pending -> processing -> completed | failed exactly once (registry CAS)
    - A task succeeds only if every branch returns; the first hard failure fails the task
      with that branch's message and cancels the remaining branches
    - Classifier / checker outages never fail a task: the branch falls back (insight_branches)
    - The submitted record is deep-copied at submit; later caller mutation is invisible

Design Decisions:
    - asyncio.PriorityQueue + worker pool: acceptance decoupled from execution, high
      priority dequeued first, FIFO within a priority (sequence tiebreak)
    - Validation runs synchronously inside its branch: it is pure CPU work on one record
    - stop() cancels workers and leaves unfinished tasks in their current state
"""

import asyncio
import copy
import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Mapping

from esg_agent.config import Settings, build_validation_config
from esg_agent.core.collaborator_protocols import (
    ComplianceChecker,
    InsightClassifier,
    ReferenceSource,
    ReportGenerator,
)
from esg_agent.core.compliance_rules import resolve_framework
from esg_agent.core.domain_types import (
    DEFAULT_PRIORITY,
    PRIORITY_RANK,
    EsgCategory,
    Framework,
    TaskId,
    TaskKind,
    TaskPriority,
)
from esg_agent.core.entities import (
    AgentTask,
    AnalysisResult,
    ComplianceReport,
    EsgRecord,
    ReportDraft,
    ValidationResult,
)
from esg_agent.core.errors import TaskExecutionError, TaskQueueFullError
from esg_agent.core.esg_record import ensure_record
from esg_agent.core.score_aggregator import aggregate_compliance, merge_analysis
from esg_agent.core.scoring_config import (
    DEFAULT_SCORE_WEIGHTS,
    DEFAULT_VALIDATION_CONFIG,
    ScoreWeights,
    ValidationConfig,
)
from esg_agent.core.validation_engine import validate_record
from esg_agent.infrastructure.anthropic_client import ResilientAnthropicClient
from esg_agent.services.anthropic_classifier import (
    AnthropicComplianceChecker,
    AnthropicInsightClassifier,
    UnavailableClassifier,
)
from esg_agent.services.insight_branches import (
    check_with_fallback,
    classify_with_fallback,
    load_reference,
)
from esg_agent.services.report_generator import StructuredReportGenerator
from esg_agent.services.task_registry import TaskRegistry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _error_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message or type(exc).__name__


# ─── Join ───────────────────────────────────────────────────────

async def join_branches(branches: Mapping[str, Awaitable[Any]]) -> dict[str, Any]:
    """Run named branches concurrently. All succeed, or the first failure wins.

    On the first failure every other branch is cancelled and TaskExecutionError is
    raised with the failing branch's message. Late results are discarded.
    """
    futures = {name: asyncio.ensure_future(aw) for name, aw in branches.items()}
    names = {future: name for name, future in futures.items()}
    try:
        done, pending = await asyncio.wait(
            futures.values(), return_when=asyncio.FIRST_EXCEPTION,
        )
        failed = [f for f in done if not f.cancelled() and f.exception() is not None]
        if failed:
            first = failed[0]
            exc = first.exception()
            raise TaskExecutionError(_error_message(exc), branch=names[first]) from exc
        return {name: future.result() for name, future in futures.items()}
    finally:
        unfinished = [f for f in futures.values() if not f.done()]
        for future in unfinished:
            future.cancel()
        if unfinished:
            await asyncio.gather(*unfinished, return_exceptions=True)


class TaskOrchestrator:
    """Owns the task registry, the work queue and the worker pool."""

    def __init__(
        self,
        classifier: InsightClassifier,
        checker: ComplianceChecker,
        *,
        registry: TaskRegistry | None = None,
        reference_source: ReferenceSource | None = None,
        report_generator: ReportGenerator | None = None,
        validation_config: ValidationConfig = DEFAULT_VALIDATION_CONFIG,
        score_weights: ScoreWeights = DEFAULT_SCORE_WEIGHTS,
        default_framework: Framework | str = Framework.GRI,
        workers: int = 4,
        queue_max_size: int = 1000,
        call_timeout: float = 30.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.classifier = classifier
        self.checker = checker
        self.registry = registry or TaskRegistry()
        self.reference_source = reference_source
        self.report_generator = report_generator or StructuredReportGenerator()
        self.validation_config = validation_config
        self.score_weights = score_weights
        self.default_framework = resolve_framework(default_framework)
        self.worker_count = workers
        self.queue_max_size = queue_max_size
        self.call_timeout = call_timeout
        self._clock = clock
        self._queue: asyncio.PriorityQueue = asyncio.PriorityQueue(maxsize=queue_max_size)
        self._sequence = itertools.count()
        self._workers: list[asyncio.Task] = []

    # ─── Lifecycle ──────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def queued(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"esg-worker-{i}")
            for i in range(self.worker_count)
        ]
        logger.info(f"Orchestrator started with {self.worker_count} workers")

    async def stop(self) -> None:
        workers, self._workers = self._workers, []
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        logger.info("Orchestrator stopped")

    async def join(self) -> None:
        """Wait until every queued task has been processed."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        while True:
            _, _, task_id = await self._queue.get()
            try:
                await self.execute(task_id)
            except Exception:
                logger.error(
                    f"Worker {index} crashed on task", exc_info=True,
                    extra={"task_id": task_id},
                )
            finally:
                self._queue.task_done()

    # ─── Submission ─────────────────────────────────────────────

    def submit(
        self,
        record: Any,
        kind: TaskKind,
        *,
        priority: TaskPriority | None = None,
        frameworks: Iterable[Framework | str] | None = None,
    ) -> TaskId:
        """Validate, snapshot and enqueue one task. Returns immediately."""
        ensure_record(record)
        payload: dict[str, Any] = {"record": copy.deepcopy(dict(record))}
        if kind is TaskKind.COMPLIANCE_CHECK:
            resolved = [resolve_framework(f) for f in (frameworks or [self.default_framework])]
            payload["frameworks"] = [f.value for f in dict.fromkeys(resolved)]
        elif kind is TaskKind.REPORT_GENERATION:
            chosen = list(frameworks or [self.default_framework])
            payload["framework"] = resolve_framework(chosen[0]).value

        if self._queue.full():
            raise TaskQueueFullError(self.queue_max_size)
        priority = priority or DEFAULT_PRIORITY[kind]
        task = self.registry.create(kind, payload, priority)
        try:
            self._queue.put_nowait((PRIORITY_RANK[priority], next(self._sequence), task.id))
        except asyncio.QueueFull:
            self.registry.discard(task.id)
            raise TaskQueueFullError(self.queue_max_size)
        logger.info(
            "Task submitted",
            extra={"task_id": task.id, "task_kind": kind.value},
        )
        return task.id

    def submit_analysis(
        self, record: Any, priority: TaskPriority | None = None,
    ) -> TaskId:
        return self.submit(record, TaskKind.DATA_ANALYSIS, priority=priority)

    def submit_compliance_check(
        self,
        record: Any,
        frameworks: Iterable[Framework | str] | None = None,
        priority: TaskPriority | None = None,
    ) -> TaskId:
        return self.submit(
            record, TaskKind.COMPLIANCE_CHECK, priority=priority, frameworks=frameworks,
        )

    def submit_report(
        self,
        record: Any,
        framework: Framework | str | None = None,
        priority: TaskPriority | None = None,
    ) -> TaskId:
        return self.submit(
            record, TaskKind.REPORT_GENERATION, priority=priority,
            frameworks=[framework] if framework else None,
        )

    def submit_validation(
        self, record: Any, priority: TaskPriority | None = None,
    ) -> TaskId:
        return self.submit(record, TaskKind.VALIDATION, priority=priority)

    # ─── Queries ────────────────────────────────────────────────

    def get_task(self, task_id: str) -> AgentTask:
        return self.registry.get(task_id)

    def list_tasks(self) -> list[AgentTask]:
        return self.registry.list_tasks()

    async def validate(self, record: Any) -> ValidationResult:
        """Standalone validation, no task created."""
        ensure_record(record)
        return await self._validation_branch(record, None)

    # ─── Execution ──────────────────────────────────────────────

    async def execute(self, task_id: str) -> AgentTask:
        """Advance one pending task to a terminal state. Never raises for branch failures."""
        task = self.registry.start(task_id)
        if task is None:
            return self.registry.get(task_id)
        log_extra = {"task_id": task.id, "task_kind": task.kind.value}
        logger.info("Task processing", extra=log_extra)
        try:
            result = await self._run(task)
        except Exception as exc:
            message = _error_message(exc)
            logger.error(
                f"Task failed: {message}",
                extra={**log_extra, "error_code": getattr(exc, "code", None),
                       "branch": getattr(getattr(exc, "context", None), "branch", None)},
            )
            self.registry.fail(task.id, message)
        else:
            if self.registry.complete(task.id, result) is not None:
                logger.info("Task completed", extra=log_extra)
        return self.registry.get(task.id)

    async def _run(self, task: AgentTask) -> Any:
        record = task.payload["record"]
        if task.kind is TaskKind.DATA_ANALYSIS:
            return await self._run_analysis(record, task.id)
        if task.kind is TaskKind.COMPLIANCE_CHECK:
            frameworks = [Framework(f) for f in task.payload["frameworks"]]
            return await self._run_compliance(record, frameworks, task.id)
        if task.kind is TaskKind.REPORT_GENERATION:
            return await self._run_report(record, Framework(task.payload["framework"]), task.id)
        return await self._validation_branch(record, task.id)

    async def _validation_branch(self, record: EsgRecord, task_id: str | None) -> ValidationResult:
        reference = await load_reference(
            self.reference_source, record, self.call_timeout, task_id,
        )
        return validate_record(
            record, self.validation_config, reference, now=self._clock(),
        )

    def _insight_branches(self, record: EsgRecord, task_id: str) -> dict[str, Awaitable]:
        return {
            category.value: classify_with_fallback(
                self.classifier, category, record, self.call_timeout, task_id,
            )
            for category in EsgCategory
        }

    def _compliance_branch(self, record: EsgRecord, framework: Framework, task_id: str):
        return check_with_fallback(
            self.checker, record, framework, self.call_timeout, task_id,
        )

    async def _run_analysis(self, record: EsgRecord, task_id: str) -> AnalysisResult:
        results = await join_branches({
            **self._insight_branches(record, task_id),
            "compliance": self._compliance_branch(record, self.default_framework, task_id),
            "validation": self._validation_branch(record, task_id),
        })
        return merge_analysis(
            {category: results[category.value] for category in EsgCategory},
            results["compliance"],
            results["validation"],
            self.score_weights,
        )

    async def _run_compliance(
        self, record: EsgRecord, frameworks: list[Framework], task_id: str,
    ) -> ComplianceReport:
        results = await join_branches({
            framework.value: self._compliance_branch(record, framework, task_id)
            for framework in frameworks
        })
        return aggregate_compliance(results.values())

    async def _run_report(
        self, record: EsgRecord, framework: Framework, task_id: str,
    ) -> ReportDraft:
        validation = await self._validation_branch(record, task_id)
        if not validation.is_valid:
            reasons = list(validation.errors) or [
                f"score {validation.score:.1f} below pass threshold "
                f"{self.validation_config.pass_threshold:g}",
            ]
            raise TaskExecutionError(
                f"Data validation failed: {', '.join(reasons)}", branch="validation",
            )
        results = await join_branches({
            **self._insight_branches(record, task_id),
            "compliance": self._compliance_branch(record, framework, task_id),
        })
        analysis = merge_analysis(
            {category: results[category.value] for category in EsgCategory},
            results["compliance"],
            validation,
            self.score_weights,
        )
        return self.report_generator.generate(
            framework, record, analysis, results["compliance"], validation,
        )


# ─── Wiring ─────────────────────────────────────────────────────

def build_orchestrator(settings: Settings) -> TaskOrchestrator:
    """Wire collaborators from settings. No API key means fallback-only scoring."""
    classifier: InsightClassifier
    checker: ComplianceChecker
    if settings.anthropic_api_key:
        client = ResilientAnthropicClient(
            api_key=settings.anthropic_api_key,
            max_retries=settings.anthropic_max_retries,
            base_delay_ms=settings.anthropic_base_delay_ms,
            max_delay_ms=settings.anthropic_max_delay_ms,
            timeout_seconds=settings.anthropic_timeout_seconds,
        )
        classifier = AnthropicInsightClassifier(
            client, settings.classifier_model, settings.classifier_max_tokens,
        )
        checker = AnthropicComplianceChecker(
            client, settings.classifier_model, settings.classifier_max_tokens,
        )
    else:
        logger.warning("ANTHROPIC_API_KEY not set: all branches use fallback scoring")
        classifier = checker = UnavailableClassifier()

    return TaskOrchestrator(
        classifier,
        checker,
        validation_config=build_validation_config(settings),
        default_framework=settings.default_compliance_framework,
        workers=settings.orchestrator_workers,
        queue_max_size=settings.task_queue_max_size,
        call_timeout=settings.classifier_call_timeout_seconds,
    )
