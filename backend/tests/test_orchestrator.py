"""
Tests for AgentOrchestrator and AgentManager.
"""
import asyncio

import pytest

from app.services.agents.base import AgentConfig, AgentMessage, AgentResult, AgentStatus, BaseAgent
from app.services.agents.manager import AgentManager, AgentSystemNotInitialized
from app.services.agents.orchestrator import AgentNotFoundError, AgentOrchestrator
from app.services.memory import MemoryService

from tests.fixtures.agent_fixtures import full_runner, offline_runner


class EchoAgent(BaseAgent):
    def __init__(self, agent_id="echo_agent"):
        super().__init__(AgentConfig(id=agent_id, name="Echo", role="test", capabilities=["echo"]))
        self.tasks = []
        self.received = []

    async def run(self, task):
        self.tasks.append(task)
        if task.get("fail"):
            raise RuntimeError("echo failed")
        return AgentResult(success=True, data=task)

    async def handle_message(self, message):
        self.received.append(message)
        await super().handle_message(message)


class TestOrchestrator:
    """Registry, task execution and message delivery."""

    def test_unknown_agent_raises(self):
        orchestrator = AgentOrchestrator()
        with pytest.raises(AgentNotFoundError, match="Agent nope not found"):
            orchestrator.get_agent("nope")
        with pytest.raises(AgentNotFoundError):
            asyncio.run(orchestrator.execute_task("nope", {}))

    def test_execute_task_and_status(self):
        orchestrator = AgentOrchestrator()
        agent = EchoAgent()
        orchestrator.register_agent(agent)

        result = asyncio.run(orchestrator.execute_task("echo_agent", {"type": "ping"}))
        assert result.success is True
        assert result.data == {"type": "ping"}

        status = orchestrator.get_agent_status("echo_agent")
        assert status["status"] == "idle"
        assert status["last_activity"] is not None
        assert [s["id"] for s in orchestrator.get_agent_status()] == ["echo_agent"]

    def test_failed_task_sets_error_status(self):
        orchestrator = AgentOrchestrator()
        agent = EchoAgent()
        orchestrator.register_agent(agent)

        result = asyncio.run(orchestrator.execute_task("echo_agent", {"fail": True}))
        assert result.success is False
        assert result.error == "echo failed"
        assert agent.config.status == AgentStatus.ERROR

    def test_start_and_stop_all(self):
        orchestrator = AgentOrchestrator()
        agent = EchoAgent()
        orchestrator.register_agent(agent)

        asyncio.run(orchestrator.start_all())
        assert agent.is_running is True
        asyncio.run(orchestrator.stop_all())
        assert agent.is_running is False
        assert agent.config.status == AgentStatus.DISABLED

    def test_unregister_detaches_agent(self):
        orchestrator = AgentOrchestrator()
        agent = EchoAgent()
        orchestrator.register_agent(agent)
        orchestrator.unregister_agent("echo_agent")
        assert agent.orchestrator is None
        assert agent.send_message("anyone", "task", {}) is None

    def test_dispatch_delivers_tasks_and_replies(self):
        orchestrator = AgentOrchestrator()
        worker = EchoAgent("worker")
        requester = EchoAgent("requester")
        orchestrator.register_agent(worker)
        orchestrator.register_agent(requester)

        requester.send_message("worker", "task", {"type": "ping"})
        handled = asyncio.run(orchestrator.dispatch_pending())

        assert handled == 2
        assert worker.tasks == [{"type": "ping"}]
        reply = requester.received[0]
        assert reply.type == "result"
        assert reply.payload["success"] is True

    def test_messages_to_unknown_agents_are_skipped(self):
        orchestrator = AgentOrchestrator()
        orchestrator.add_message(AgentMessage(sender="x", to="alert_agent", type="task", payload={}))
        assert asyncio.run(orchestrator.dispatch_pending()) == 0
        assert not orchestrator.message_queue

    def test_full_queue_drops_oldest(self):
        orchestrator = AgentOrchestrator(max_queue=2)
        for i in range(3):
            orchestrator.add_message(AgentMessage(sender="x", to="y", type="status", payload=i))
        assert [m.payload for m in orchestrator.message_queue] == [1, 2]

    def test_processing_loop_delivers_messages(self):
        orchestrator = AgentOrchestrator()
        worker = EchoAgent("worker")
        orchestrator.register_agent(worker)

        async def scenario():
            orchestrator.start_processing()
            orchestrator.add_message(AgentMessage(sender="x", to="worker", type="task", payload={"n": 1}))
            for _ in range(10):
                await asyncio.sleep(0)
                if worker.tasks:
                    break
            await orchestrator.stop_processing()

        asyncio.run(scenario())
        assert worker.tasks == [{"n": 1}]


class TestAgentManager:
    """The process-wide facade over the orchestrator."""

    def _manager(self, runner=None):
        manager = AgentManager(memory=MemoryService(api_key=""))
        asyncio.run(manager.initialize(start_processing=False, connectors=runner or offline_runner()))
        return manager

    def test_calls_before_initialize_raise(self):
        manager = AgentManager()
        with pytest.raises(AgentSystemNotInitialized):
            asyncio.run(manager.discover_competitors(industry="crm"))

    def test_initialize_registers_three_agents(self):
        manager = self._manager()
        ids = [s["id"] for s in manager.get_agent_status()]
        assert ids == ["discovery_agent", "crawling_agent", "research_agent"]
        assert manager.initialized is True

    def test_shutdown_unregisters_agents(self):
        manager = self._manager()
        asyncio.run(manager.shutdown())
        assert manager.initialized is False
        assert manager.orchestrator.agents == {}

    def test_research_without_memory_is_not_enhanced(self):
        manager = self._manager(full_runner())
        result = asyncio.run(
            manager.research({"type": "deep_research", "query": "crm market"}, user_id="u1")
        )
        assert result.success is True
        assert result.metadata["memory_enhanced"] is False
        assert "memory_ids" not in result.metadata
