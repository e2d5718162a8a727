from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, Optional
import asyncio
import logging

from .base import AgentMessage, AgentResult, BaseAgent

logger = logging.getLogger(__name__)

MAX_QUEUED_MESSAGES = 1000


class AgentNotFoundError(LookupError):
    pass


class AgentOrchestrator:
    """
    Registry of agents plus an in-memory message bus between them.

    Messages are delivered by ``dispatch_pending`` or by the ``run`` loop,
    which wakes whenever a message is queued. The queue is bounded; when
    full the oldest message is dropped.
    """

    def __init__(self, max_queue: int = MAX_QUEUED_MESSAGES) -> None:
        self.agents: Dict[str, BaseAgent] = {}
        self.message_queue: Deque[AgentMessage] = deque(maxlen=max_queue)
        self._wakeup = asyncio.Event()
        self._processor: Optional[asyncio.Task] = None

    def register_agent(self, agent: BaseAgent) -> None:
        agent.orchestrator = self
        self.agents[agent.id] = agent
        logger.info("Registered agent", extra={"agent_id": agent.id})

    def unregister_agent(self, agent_id: str) -> None:
        agent = self.agents.pop(agent_id, None)
        if agent is not None:
            agent.orchestrator = None
            logger.info("Unregistered agent", extra={"agent_id": agent_id})

    def get_agent(self, agent_id: str) -> BaseAgent:
        agent = self.agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(f"Agent {agent_id} not found")
        return agent

    async def start_all(self) -> None:
        await asyncio.gather(*(agent.start() for agent in self.agents.values()))

    async def stop_all(self) -> None:
        await self.stop_processing()
        await asyncio.gather(*(agent.stop() for agent in self.agents.values()))

    async def execute_task(self, agent_id: str, task: Dict[str, Any]) -> AgentResult:
        return await self.get_agent(agent_id).execute(task)

    def get_agent_status(self, agent_id: Optional[str] = None) -> Any:
        if agent_id is not None:
            return self.get_agent(agent_id).get_status()
        return [agent.get_status() for agent in self.agents.values()]

    def add_message(self, message: AgentMessage) -> None:
        if len(self.message_queue) == self.message_queue.maxlen:
            dropped = self.message_queue[0]
            logger.warning(
                "Message queue full; dropping oldest message %s",
                dropped.id,
                extra={"agent_id": dropped.to},
            )
        self.message_queue.append(message)
        self._wakeup.set()

    async def dispatch_pending(self) -> int:
        """Deliver every queued message. Returns how many were handled."""
        handled = 0
        while self.message_queue:
            message = self.message_queue.popleft()
            agent = self.agents.get(message.to)
            if agent is None:
                logger.warning(
                    "No agent '%s' for message from %s",
                    message.to,
                    message.sender,
                    extra={"agent_id": message.sender},
                )
                continue
            try:
                await agent.handle_message(message)
            except Exception as e:
                logger.exception(
                    "Message handling failed: %s",
                    e,
                    extra={"agent_id": message.to},
                )
            handled += 1
        return handled

    async def run(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            await self.dispatch_pending()

    def start_processing(self) -> None:
        if self._processor is None or self._processor.done():
            self._processor = asyncio.get_running_loop().create_task(self.run())

    async def stop_processing(self) -> None:
        if self._processor is None:
            return
        self._processor.cancel()
        try:
            await self._processor
        except asyncio.CancelledError:
            pass
        self._processor = None
