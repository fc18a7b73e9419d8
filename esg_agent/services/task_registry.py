"""Task Registry — the only shared mutable state: AgentTask snapshots keyed by id.

Invariants:
    - Ids are generated here, unique for the registry's lifetime, never reused
    - Status moves forward only: pending -> processing -> completed | failed
      (pending -> failed allowed); terminal states never change again
    - Writes are compare-and-set on status under a per-task lock; a lost CAS returns None
    - Reads return frozen snapshots and never take the per-task lock
    - result is set only with completed, error only with failed

Design Decisions:
    - Snapshot replacement over in-place mutation: readers see the old or the new task,
      never a half-written one
    - threading.Lock per key: safe for the event loop and for callers on other threads;
      the guard lock covers id allocation, discards and whole-registry snapshots
    - No eviction: the registry grows with the process (storage is external)
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Mapping
from uuid import uuid4

from esg_agent.core.domain_types import (
    TERMINAL_STATUSES,
    TaskId,
    TaskKind,
    TaskPriority,
    TaskStatus,
)
from esg_agent.core.entities import AgentTask
from esg_agent.core.errors import TaskNotFoundError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.PROCESSING, TaskStatus.FAILED}),
    TaskStatus.PROCESSING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_task_id(kind: TaskKind) -> TaskId:
    return TaskId(f"{kind.value}_{uuid4().hex}")


class TaskRegistry:
    """In-memory AgentTask store with per-key CAS transitions."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        self._tasks: dict[TaskId, AgentTask] = {}
        self._locks: dict[TaskId, threading.Lock] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._tasks)

    def create(
        self,
        kind: TaskKind,
        payload: Mapping[str, Any],
        priority: TaskPriority,
    ) -> AgentTask:
        with self._guard:
            task_id = new_task_id(kind)
            while task_id in self._tasks:
                task_id = new_task_id(kind)
            task = AgentTask(
                id=task_id,
                kind=kind,
                payload=payload,
                priority=priority,
                status=TaskStatus.PENDING,
                created_at=self._clock(),
            )
            self._locks[task_id] = threading.Lock()
            self._tasks[task_id] = task
        return task

    def get(self, task_id: str) -> AgentTask:
        task = self._tasks.get(TaskId(task_id))
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def list_tasks(self) -> list[AgentTask]:
        with self._guard:
            return list(self._tasks.values())

    def discard(self, task_id: str) -> None:
        """Drop a task that never left pending (used when enqueueing fails)."""
        with self._guard:
            task = self._tasks.get(TaskId(task_id))
            if task is not None and task.status is TaskStatus.PENDING:
                del self._tasks[task.id]
                del self._locks[task.id]

    # ─── Transitions ────────────────────────────────────────────

    def transition(
        self,
        task_id: str,
        expected: TaskStatus,
        new: TaskStatus,
        *,
        result: Any = None,
        error: str | None = None,
    ) -> AgentTask | None:
        """CAS on status. Returns the new snapshot, or None if the task moved on."""
        if new not in ALLOWED_TRANSITIONS[expected]:
            raise ValueError(f"Illegal transition {expected.value} -> {new.value}")
        current = self.get(task_id)
        with self._locks[current.id]:
            current = self._tasks[current.id]
            if current.status is not expected:
                logger.info(
                    f"Stale transition ignored: {current.status.value} != {expected.value}",
                    extra={"task_id": current.id, "task_kind": current.kind.value},
                )
                return None
            changes: dict[str, Any] = {"status": new}
            if new is TaskStatus.PROCESSING:
                changes["started_at"] = self._clock()
            if new in TERMINAL_STATUSES:
                changes["completed_at"] = self._clock()
            if new is TaskStatus.COMPLETED:
                changes["result"] = result
            if new is TaskStatus.FAILED:
                changes["error"] = error or "Task failed"
            updated = replace(current, **changes)
            self._tasks[current.id] = updated
        return updated

    def start(self, task_id: str) -> AgentTask | None:
        return self.transition(task_id, TaskStatus.PENDING, TaskStatus.PROCESSING)

    def complete(self, task_id: str, result: Any) -> AgentTask | None:
        return self.transition(
            task_id, TaskStatus.PROCESSING, TaskStatus.COMPLETED, result=result,
        )

    def fail(self, task_id: str, error: str) -> AgentTask | None:
        """Fail from whichever non-terminal status the task is in."""
        current = self.get(task_id)
        if current.status in TERMINAL_STATUSES:
            return None
        return self.transition(task_id, current.status, TaskStatus.FAILED, error=error)
