"""Agent Task Routes — HTTP surface over a fallback-only orchestrator.

Tests:
    - Submissions return 202 with a task id; tasks complete after the queue drains
    - /validate answers synchronously without creating a task
    - Input errors map to 400 (INVALID_INPUT, UNSUPPORTED_FRAMEWORK, VALIDATION_ERROR)
    - Unknown task ids map to 404; frameworks and health endpoints
"""

import pytest
from httpx import ASGITransport, AsyncClient

from esg_agent.main import app

from tests.fakes import make_orchestrator
from tests.records import complete_record


@pytest.fixture
async def orchestrator():
    orchestrator = make_orchestrator(workers=2)
    app.state.orchestrator = orchestrator
    await orchestrator.start()
    yield orchestrator
    await orchestrator.stop()
    del app.state.orchestrator


@pytest.fixture
async def client(orchestrator):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c


async def test_submit_analysis_and_poll(client, orchestrator):
    response = await client.post(
        "/api/v1/agent/analyses", json={"record": complete_record()},
    )

    assert response.status_code == 202
    accepted = response.json()
    assert accepted["kind"] == "data_analysis"
    assert accepted["task_id"].startswith("data_analysis_")

    await orchestrator.join()
    task = (await client.get(f"/api/v1/agent/tasks/{accepted['task_id']}")).json()

    assert task["status"] == "completed"
    assert task["priority"] == "high"
    assert task["result"]["overall_score"] == pytest.approx(96.0)
    assert task["result"]["compliance_status"] == "non_compliant"
    assert task["error"] is None


async def test_submit_compliance_check(client, orchestrator):
    response = await client.post(
        "/api/v1/agent/compliance-checks",
        json={"record": complete_record(), "frameworks": ["gri", "csrd"], "priority": "low"},
    )
    assert response.status_code == 202

    await orchestrator.join()
    task = (await client.get(f"/api/v1/agent/tasks/{response.json()['task_id']}")).json()

    assert task["priority"] == "low"
    assert task["result"]["frameworks"] == ["CSRD", "GRI"]
    assert task["result"]["overall_compliance"] == 30.0


async def test_report_gate_failure_is_visible_on_task(client, orchestrator):
    record = complete_record()
    record["governance"]["boardIndependence"] = 140
    response = await client.post("/api/v1/agent/reports", json={"record": record})

    await orchestrator.join()
    task = (await client.get(f"/api/v1/agent/tasks/{response.json()['task_id']}")).json()

    assert task["status"] == "failed"
    assert task["error"].startswith("Data validation failed: ")
    assert task["result"] is None


async def test_list_tasks_filters_by_kind(client, orchestrator):
    await client.post("/api/v1/agent/validations", json={"record": complete_record()})
    await client.post("/api/v1/agent/analyses", json={"record": complete_record()})
    await orchestrator.join()

    body = (await client.get("/api/v1/agent/tasks", params={"kind": "validation"})).json()

    assert body["count"] == 1
    assert body["tasks"][0]["kind"] == "validation"


async def test_validate_is_synchronous(client, orchestrator):
    response = await client.post("/api/v1/agent/validate", json={"record": complete_record()})

    assert response.status_code == 200
    body = response.json()
    assert body["is_valid"] is True
    assert body["errors"] == []
    assert orchestrator.list_tasks() == []


async def test_empty_record_is_invalid_input(client):
    response = await client.post("/api/v1/agent/analyses", json={"record": {}})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


async def test_unsupported_framework(client, orchestrator):
    response = await client.post(
        "/api/v1/agent/compliance-checks",
        json={"record": complete_record(), "frameworks": ["ISO14001"]},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "UNSUPPORTED_FRAMEWORK"
    assert response.json()["error"]["field"] == "framework"
    assert orchestrator.list_tasks() == []


async def test_malformed_body_is_validation_error(client):
    response = await client.post("/api/v1/agent/analyses", json={"priority": "urgent"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_unknown_task_is_404(client):
    response = await client.get("/api/v1/agent/tasks/data_analysis_missing")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "TASK_NOT_FOUND"


async def test_frameworks(client):
    frameworks = (await client.get("/api/v1/agent/frameworks")).json()

    by_name = {f["name"]: f for f in frameworks}
    assert set(by_name) == {"GRI", "SASB", "TCFD", "CSRD"}
    assert by_name["GRI"]["total_requirements"] == 25
    assert "GRI 305" in by_name["GRI"]["requirements"]["environmental"]


async def test_health_and_readiness(client, orchestrator):
    health = await client.get("/api/v1/health/")
    ready = await client.get("/api/v1/health/ready")

    assert health.json()["status"] == "healthy"
    assert ready.status_code == 200
    assert ready.json()["checks"]["workers"] == 2

    await orchestrator.stop()
    assert (await client.get("/api/v1/health/ready")).status_code == 503


async def test_full_queue_is_503_with_retry_after(client):
    app.state.orchestrator = make_orchestrator(queue_max_size=1)
    await client.post("/api/v1/agent/validations", json={"record": complete_record()})

    response = await client.post("/api/v1/agent/validations", json={"record": complete_record()})

    assert response.status_code == 503
    assert response.headers["retry-after"] == "5"
    assert response.json()["error"]["code"] == "TASK_QUEUE_FULL"
