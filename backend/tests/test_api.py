"""
HTTP level tests for the FastAPI routers with the database, agent system,
memory service and job queue overridden.
"""
import asyncio
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.core.db import get_db
from app.main import app
from app.api.routes_jobs import get_job_queue
from app.services.agents.manager import AgentManager, get_agent_manager
from app.services.memory import MemoryService, get_memory_service

from tests.fixtures.agent_fixtures import PAGE_HTML, FakeWeb, full_runner


@pytest.fixture
def queued():
    return []


@pytest.fixture
def manager():
    manager = AgentManager(memory=MemoryService(api_key=""))
    runner = full_runner(web=FakeWeb({"https://acme.com": PAGE_HTML}))
    asyncio.run(manager.initialize(start_processing=False, connectors=runner))
    manager.orchestrator.get_agent("discovery_agent").query_delay = 0
    manager.orchestrator.get_agent("research_agent").request_delay = 0
    return manager


@pytest.fixture
def client(db, manager, queued):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_agent_manager] = lambda: manager
    app.dependency_overrides[get_memory_service] = lambda: MemoryService(api_key="")
    app.dependency_overrides[get_job_queue] = lambda: queued.append
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestDomainRoutes:
    """/api/domains"""

    def test_create_list_and_duplicate(self, client):
        resp = client.post("/api/domains", json={"user_id": "u1", "domain": "Example.com", "name": "Example"})
        assert resp.status_code == 201
        assert resp.json()["domain"] == "https://example.com"

        dup = client.post("/api/domains", json={"user_id": "u1", "domain": "https://example.com/", "name": "Again"})
        assert dup.status_code == 409

        listed = client.get("/api/domains", params={"user_id": "u1"}).json()
        assert [d["domain"] for d in listed] == ["https://example.com"]

    def test_invalid_domain_is_rejected(self, client):
        resp = client.post("/api/domains", json={"user_id": "u1", "domain": "nope", "name": "Nope"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid domain format"

    def test_toggle_update_and_delete(self, client):
        created = client.post("/api/domains", json={"user_id": "u1", "domain": "a.com", "name": "A"}).json()
        domain_id = created["id"]

        toggled = client.post(f"/api/domains/{domain_id}/toggle", json={"is_active": False}).json()
        assert toggled["is_active"] is False
        assert toggled["status"] == "inactive"

        updated = client.patch(f"/api/domains/{domain_id}", json={"crawl_frequency": "daily"}).json()
        assert updated["crawl_frequency"] == "daily"

        assert client.delete(f"/api/domains/{domain_id}").status_code == 204
        assert client.get(f"/api/domains/{domain_id}").status_code == 404

    def test_monitor_competitor(self, client):
        body = {"user_id": "u1", "domain": "hubspot.com"}
        first = client.post("/api/domains/monitor", json=body)
        assert first.status_code == 201
        assert first.json()["name"] == "Hubspot"
        assert client.post("/api/domains/monitor", json=body).status_code == 409

    def test_crawl_domain_queues_job(self, client, queued):
        created = client.post("/api/domains", json={"user_id": "u1", "domain": "acme.com", "name": "Acme"}).json()
        resp = client.post(f"/api/domains/{created['id']}/crawl")
        assert resp.status_code == 202
        job = resp.json()
        assert job["type"] == "crawl"
        assert job["status"] == "pending"
        assert job["parameters"]["domains"] == ["https://acme.com"]
        assert [str(q) for q in queued] == [job["id"]]


class TestJobRoutes:
    """/api/jobs"""

    def test_create_get_and_cancel(self, client, queued):
        resp = client.post("/api/jobs", json={"user_id": "u1", "type": "discovery", "industry": "crm"})
        assert resp.status_code == 202
        job_id = resp.json()["id"]
        assert len(queued) == 1

        assert client.get(f"/api/jobs/{job_id}").json()["status"] == "pending"
        assert [j["id"] for j in client.get("/api/jobs", params={"user_id": "u1"}).json()] == [job_id]

        cancelled = client.patch(f"/api/jobs/{job_id}", json={"action": "cancel"})
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "failed"
        assert cancelled.json()["error"] == "Cancelled by user"

        again = client.patch(f"/api/jobs/{job_id}", json={"action": "cancel"})
        assert again.status_code == 409

    def test_missing_job(self, client):
        assert client.get(f"/api/jobs/{uuid4()}").status_code == 404
        assert client.delete(f"/api/jobs/{uuid4()}").status_code == 404

    def test_unknown_job_type_is_rejected(self, client):
        resp = client.post("/api/jobs", json={"user_id": "u1", "type": "alerting"})
        assert resp.status_code == 400


class TestAgentRoutes:
    """/api/agents"""

    def test_discovery(self, client):
        resp = client.post("/api/agents/discovery", json={"industry": "crm"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert {c["domain"] for c in body["data"]["competitors"]} == {"hubspot.com", "pipedrive.com"}

    def test_discovery_requires_industry_or_keywords(self, client):
        resp = client.post("/api/agents/discovery", json={"industry": "  ", "keywords": []})
        assert resp.status_code == 400

    def test_crawl(self, client):
        resp = client.post("/api/agents/crawl", json={"domains": ["acme.com"]})
        assert resp.status_code == 200
        assert resp.json()["data"]["successful"] == 1

    def test_crawl_rejects_invalid_domains(self, client):
        assert client.post("/api/agents/crawl", json={"domains": []}).status_code == 400
        assert client.post("/api/agents/crawl", json={"domains": ["bad domain"]}).status_code == 400

    def test_research(self, client):
        resp = client.post(
            "/api/agents/research",
            json={"type": "market_intelligence", "query": "crm market", "context": {"industry": "CRM"}},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["metadata"]["agent_used"] == "research_agent"
        assert body["metadata"]["task_type"] == "market_intelligence"
        assert body["data"]["query"] == "crm market"

    def test_research_requires_query(self, client):
        resp = client.post("/api/agents/research", json={"query": "   "})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Query is required and must be a non-empty string"

    def test_research_rejects_unknown_type(self, client):
        resp = client.post("/api/agents/research", json={"type": "bogus", "query": "crm"})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["loc"] == ["body", "type"]

    def test_research_capabilities(self, client):
        body = client.get("/api/agents/research", params={"operation": "capabilities"}).json()
        assert "competitive_analysis" in body["supported_task_types"]

    def test_research_task_status_and_cancel(self, client):
        job_id = client.post("/api/jobs", json={"user_id": "u1", "type": "research"}).json()["id"]

        status = client.patch("/api/agents/research", json={"task_id": job_id, "action": "status"}).json()
        assert status["status"] == "pending"

        cancelled = client.patch("/api/agents/research", json={"task_id": job_id, "action": "cancel"})
        assert cancelled.json()["success"] is True

        missing = client.patch("/api/agents/research", json={"task_id": str(uuid4()), "action": "status"})
        assert missing.status_code == 404

    def test_status(self, client):
        body = client.get("/api/agents/status").json()
        assert body["initialized"] is True
        assert len(body["agents"]) == 3


class TestChatRoutes:
    """/api/chat"""

    def test_chat(self, client):
        resp = client.post("/api/chat", json={"message": "hello", "user_id": "u1"})
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    def test_chat_validation(self, client):
        blank = client.post("/api/chat", json={"message": "", "user_id": "u1"})
        assert blank.status_code == 400
        assert blank.json()["detail"] == "Message is required and must be a non-empty string"
        assert client.post("/api/chat", json={"message": "hi", "user_id": " "}).status_code == 400

    def test_memory_status(self, client):
        body = client.get("/api/chat", params={"operation": "memory-status"}).json()
        assert body["enabled"] is False
        assert body["status"] == "disabled"

    def test_user_memories_without_memory(self, client):
        resp = client.get("/api/chat", params={"operation": "user-memories", "user_id": "u1"})
        assert resp.status_code == 503

    def test_unknown_operation(self, client):
        assert client.get("/api/chat", params={"operation": "nope"}).status_code == 400
