"""Agent Tasks — submit ESG analysis work, poll task state, run standalone validation.

Invariants:
    - Submissions return 202 with the task id; execution happens in the worker pool
    - Malformed records / unsupported frameworks surface as 400 before any task exists
    - Unknown task ids surface as 404 (TaskNotFoundError through the global handler)
    - Handlers contain no business logic: they translate HTTP <-> orchestrator calls

Design Decisions:
    - Orchestrator read from app.state via a dependency: built once in lifespan,
      replaceable in tests without patching module globals
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from esg_agent.core.compliance_rules import FRAMEWORK_REQUIREMENTS, total_requirements
from esg_agent.core.domain_types import TaskKind, TaskPriority
from esg_agent.schemas.analysis import (
    ComplianceCheckRequest,
    FrameworkInfo,
    RecordRequest,
    ReportRequest,
    TaskAccepted,
    TaskListResponse,
    TaskResponse,
)
from esg_agent.services.task_orchestrator import TaskOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/agent", tags=["agent"])


def get_orchestrator(request: Request) -> TaskOrchestrator:
    return request.app.state.orchestrator


def _priority(body: RecordRequest) -> TaskPriority | None:
    return TaskPriority(body.priority) if body.priority else None


def _accepted(orchestrator: TaskOrchestrator, task_id: str) -> TaskAccepted:
    task = orchestrator.get_task(task_id)
    return TaskAccepted(task_id=task.id, kind=task.kind.value, status=task.status.value)


# ─── Submissions ────────────────────────────────────────────────

@router.post(
    "/analyses", response_model=TaskAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_analysis(
    body: RecordRequest, orchestrator: TaskOrchestrator = Depends(get_orchestrator),
):
    """Queue a full data_analysis task (insights, compliance, validation)."""
    task_id = orchestrator.submit_analysis(body.record, priority=_priority(body))
    return _accepted(orchestrator, task_id)


@router.post(
    "/compliance-checks", response_model=TaskAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_compliance_check(
    body: ComplianceCheckRequest,
    orchestrator: TaskOrchestrator = Depends(get_orchestrator),
):
    task_id = orchestrator.submit_compliance_check(
        body.record, frameworks=body.frameworks, priority=_priority(body),
    )
    return _accepted(orchestrator, task_id)


@router.post(
    "/reports", response_model=TaskAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_report(
    body: ReportRequest, orchestrator: TaskOrchestrator = Depends(get_orchestrator),
):
    task_id = orchestrator.submit_report(
        body.record, framework=body.framework, priority=_priority(body),
    )
    return _accepted(orchestrator, task_id)


@router.post(
    "/validations", response_model=TaskAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_validation(
    body: RecordRequest, orchestrator: TaskOrchestrator = Depends(get_orchestrator),
):
    task_id = orchestrator.submit_validation(body.record, priority=_priority(body))
    return _accepted(orchestrator, task_id)


@router.post("/validate", status_code=status.HTTP_200_OK)
async def validate_now(
    body: RecordRequest, orchestrator: TaskOrchestrator = Depends(get_orchestrator),
):
    """Synchronous validation — no task is created."""
    result = await orchestrator.validate(body.record)
    return result.to_dict()


# ─── Queries ────────────────────────────────────────────────────

@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str, orchestrator: TaskOrchestrator = Depends(get_orchestrator),
):
    return TaskResponse.model_validate(orchestrator.get_task(task_id).to_dict())


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(
    kind: TaskKind | None = None,
    orchestrator: TaskOrchestrator = Depends(get_orchestrator),
):
    tasks = [
        TaskResponse.model_validate(task.to_dict())
        for task in orchestrator.list_tasks()
        if kind is None or task.kind is kind
    ]
    return TaskListResponse(tasks=tasks, count=len(tasks))


@router.get("/frameworks", response_model=list[FrameworkInfo])
async def list_frameworks():
    return [
        FrameworkInfo(
            name=framework.value,
            total_requirements=total_requirements(framework),
            requirements={k: list(v) for k, v in sections.items()},
        )
        for framework, sections in FRAMEWORK_REQUIREMENTS.items()
    ]
