from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from .base import AgentResult
from .crawling import CrawlingAgent
from .discovery import DiscoveryAgent
from .orchestrator import AgentOrchestrator
from .research import ResearchAgent
from ..connectors import ConnectorRunner, get_connectors
from ..memory import MemoryContext, MemoryService, get_memory_service

logger = logging.getLogger(__name__)


class AgentSystemNotInitialized(RuntimeError):
    pass


class AgentManager:
    """
    Process-wide entry point to the agent system.

    Owns one orchestrator with the discovery, crawling and research agents
    registered, and wraps the common agent calls used by routes and jobs.
    """

    def __init__(self, memory: Optional[MemoryService] = None) -> None:
        self.orchestrator = AgentOrchestrator()
        self.memory = memory
        self.connectors: Optional[ConnectorRunner] = None
        self.initialized = False

    async def initialize(
        self,
        start_processing: bool = True,
        connectors: Optional[ConnectorRunner] = None,
    ) -> None:
        if self.initialized:
            return

        connectors = connectors or self.connectors or get_connectors()
        self.connectors = connectors
        for agent in (
            DiscoveryAgent(connectors),
            CrawlingAgent(connectors),
            ResearchAgent(connectors),
        ):
            self.orchestrator.register_agent(agent)
        await self.orchestrator.start_all()
        if start_processing:
            self.orchestrator.start_processing()

        if self.memory is None:
            self.memory = get_memory_service()
        self.initialized = True
        logger.info(
            "Agent system initialized",
            extra={"step": "agents_init"},
        )

    async def shutdown(self) -> None:
        if not self.initialized:
            return
        await self.orchestrator.stop_all()
        for agent_id in list(self.orchestrator.agents):
            self.orchestrator.unregister_agent(agent_id)
        self.initialized = False
        logger.info("Agent system shut down", extra={"step": "agents_shutdown"})

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise AgentSystemNotInitialized("Agent system not initialized")

    async def discover_competitors(
        self,
        industry: str | None = None,
        keywords: List[str] | None = None,
        region: str | None = None,
        existing_competitors: List[str] | None = None,
    ) -> AgentResult:
        self._require_initialized()
        return await self.orchestrator.execute_task(
            "discovery_agent",
            {
                "type": "discover_competitors",
                "industry": industry,
                "keywords": keywords or [],
                "region": region,
                "existing_competitors": existing_competitors or [],
            },
        )

    async def crawl_domains(
        self,
        domains: List[str],
        priority: str = "medium",
        anti_detection: bool = False,
        sections: List[str] | None = None,
        baselines: Dict[str, Any] | None = None,
    ) -> AgentResult:
        self._require_initialized()
        return await self.orchestrator.execute_task(
            "crawling_agent",
            {
                "type": "batch_crawl",
                "domains": domains,
                "priority": priority,
                "anti_detection": anti_detection,
                "sections": sections,
                "baselines": baselines or {},
            },
        )

    async def monitor_changes(
        self,
        domains: List[str],
        frequency: str = "daily",
        baselines: Dict[str, Any] | None = None,
    ) -> AgentResult:
        self._require_initialized()
        return await self.orchestrator.execute_task(
            "crawling_agent",
            {
                "type": "monitor_changes",
                "domains": domains,
                "frequency": frequency,
                "baselines": baselines or {},
            },
        )

    async def research(
        self,
        task: Dict[str, Any],
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> AgentResult:
        """
        Run a research task. With a user id, related memories are added to
        the task context first and the findings are stored afterwards.
        """
        self._require_initialized()
        context = dict(task.get("context") or {})
        memory_ctx = None
        memory_enhanced = False

        if user_id and task.get("query") and self.memory is not None and self.memory.enabled:
            memory_ctx = MemoryContext(
                user_id=user_id,
                session_id=session_id,
                domain=context.get("industry") or "general",
                research_type=task.get("type"),
            )
            relevant = await self.memory.get_relevant_context(task["query"], memory_ctx)
            if relevant:
                context["memory_context"] = relevant
                memory_enhanced = True

        result = await self.orchestrator.execute_task("research_agent", {**task, "context": context})
        result.metadata["memory_enhanced"] = memory_enhanced

        if memory_ctx is not None and result.success and result.data:
            data = result.data
            result.metadata["memory_ids"] = await self.memory.store_research_findings(
                {
                    "query": task["query"],
                    "summary": data.get("summary") or "",
                    "key_findings": data.get("key_findings") or [],
                    "insights": data.get("insights") or [],
                    "competitors": [c["competitor"] for c in data.get("competitive_intel") or []],
                },
                memory_ctx,
            )
        return result

    def get_agent_status(self, agent_id: str | None = None) -> Any:
        return self.orchestrator.get_agent_status(agent_id)


agent_manager = AgentManager()


def get_agent_manager() -> AgentManager:
    return agent_manager
