"""
Tests for the HTTP surface, driven through an in-process ASGI transport.
"""

import httpx
import pytest
import pytest_asyncio

from inquiry_board.bootstrap import build_services
from inquiry_board.core import LLMException
from inquiry_board.main import attach_services, create_app
from inquiry_board.workflow.domain import FEEDBACK_MARKER, Step

from tests.fakes import RecordingShell, llm_returning


@pytest.fixture
def llm():
    return llm_returning("답변입니다")


@pytest_asyncio.fixture
async def client(settings, database, llm, notifier):
    app = create_app(settings)
    services = build_services(
        settings,
        database=database,
        llm_client=llm,
        notifier=notifier,
        remote_shell=RecordingShell(),
    )
    attach_services(app, services)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


class TestTransitions:

    @pytest.mark.asyncio
    async def test_applied(self, client, make_ticket):
        ticket_id = await make_ticket(status=Step.PENDING_APPROVAL)

        response = await client.post("/process/transitions", json={
            "ticket_id": ticket_id,
            "target_step": "ai_processing",
            "note": "승인합니다",
            "actor_id": 1,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["applied"] is True
        assert body["from_step"] == "pending_approval"
        assert body["to_step"] == "ai_processing"
        assert body["log_id"] is not None

    @pytest.mark.asyncio
    async def test_not_permitted_is_conflict(self, client, make_ticket):
        ticket_id = await make_ticket(status=Step.REGISTERED)

        response = await client.post("/process/transitions", json={
            "ticket_id": ticket_id,
            "target_step": "completed",
        })

        assert response.status_code == 409
        assert "correlation_id" in response.json()

    @pytest.mark.asyncio
    async def test_missing_ticket(self, client):
        response = await client.post("/process/transitions", json={
            "ticket_id": 999,
            "target_step": "ai_review",
        })

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_step(self, client, make_ticket):
        ticket_id = await make_ticket()

        response = await client.post("/process/transitions", json={
            "ticket_id": ticket_id,
            "target_step": "archived",
        })

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_body(self, client):
        response = await client.post("/process/transitions", json={"ticket_id": 0, "target_step": "ai_review"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_correlation_id_is_echoed(self, client, make_ticket):
        ticket_id = await make_ticket(status=Step.AI_PROCESSING)

        response = await client.post(
            "/process/transitions",
            json={"ticket_id": ticket_id, "target_step": "completed"},
            headers={"X-Correlation-ID": "op-123"},
        )

        assert response.headers["X-Correlation-ID"] == "op-123"


class TestProcessRoutes:

    @pytest.mark.asyncio
    async def test_reanalysis_then_logs(self, client, make_ticket):
        ticket_id = await make_ticket(status=Step.PENDING_APPROVAL)

        response = await client.post(f"/process/{ticket_id}/reanalysis", json={"feedback": "DB도 확인"})
        assert response.status_code == 200
        assert response.json()["to_step"] == "registered"

        logs = await client.get(f"/process/{ticket_id}/logs")

        assert logs.status_code == 200
        entries = logs.json()["entries"]
        assert [entry["step"] for entry in entries] == ["registered"]
        assert entries[0]["content"] == f"{FEEDBACK_MARKER} DB도 확인"

    @pytest.mark.asyncio
    async def test_reanalysis_from_wrong_step(self, client, make_ticket):
        ticket_id = await make_ticket(status=Step.COMPLETED)

        response = await client.post(f"/process/{ticket_id}/reanalysis", json={"feedback": "다시"})

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_requeue(self, client, make_ticket):
        ticket_id = await make_ticket(analysis_failures=5)

        response = await client.post(f"/process/{ticket_id}/requeue")

        assert response.status_code == 200
        assert response.json() == {"ticket_id": ticket_id, "status": "registered", "analysis_failures": 0}

    @pytest.mark.asyncio
    async def test_logs_for_missing_ticket(self, client):
        assert (await client.get("/process/999/logs")).status_code == 404


class TestTriageRoutes:

    @pytest.mark.asyncio
    async def test_ask_posts_assistant_comment(self, client, make_ticket, read_ticket, llm):
        ticket_id = await make_ticket(status=Step.AI_PROCESSING)

        response = await client.post("/triage/ask", json={"ticket_id": ticket_id, "question": "재시작해도 되나요?"})

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == "답변입니다"
        assert body["comment_id"] >= 1
        assert llm.complete.await_args.kwargs["operation"] == "answer"
        assert (await read_ticket(ticket_id)).status == Step.AI_PROCESSING

    @pytest.mark.asyncio
    async def test_ask_missing_ticket(self, client, llm):
        response = await client.post("/triage/ask", json={"ticket_id": 999, "question": "q"})

        assert response.status_code == 404
        llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ask_reasoning_failure_is_bad_gateway(self, client, make_ticket, llm):
        ticket_id = await make_ticket()
        llm.complete.side_effect = LLMException("rate limited")

        response = await client.post("/triage/ask", json={"ticket_id": ticket_id, "question": "q"})

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_run_tick(self, client, make_ticket, read_ticket):
        ticket_id = await make_ticket()

        response = await client.post("/triage/run")

        assert response.status_code == 200
        assert response.json() == {
            "ran": True,
            "published": [ticket_id],
            "skipped": [],
            "reverted": [],
            "failed": [],
        }
        assert (await read_ticket(ticket_id)).status == Step.PENDING_APPROVAL

    @pytest.mark.asyncio
    async def test_run_tick_while_locked(self, client, settings):
        settings.worker_lock_path.write_text("1 0\n")

        response = await client.post("/triage/run")

        assert response.json()["ran"] is False


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        checks = response.json()["checks"]
        assert checks["credential_vault"] == "available"
        assert checks["llm_client"] == "available"

    @pytest.mark.asyncio
    async def test_routes_unavailable_without_services(self, settings):
        app = create_app(settings)
        transport = httpx.ASGITransport(app=app)

        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            response = await http.post("/triage/run")

        assert response.status_code == 503
