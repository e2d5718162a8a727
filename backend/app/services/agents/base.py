from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
import enum
import logging
import uuid

if TYPE_CHECKING:
    from .orchestrator import AgentOrchestrator

logger = logging.getLogger(__name__)


class AgentStatus(str, enum.Enum):
    IDLE = "idle"
    WORKING = "working"
    ERROR = "error"
    DISABLED = "disabled"


@dataclass
class AgentConfig:
    id: str
    name: str
    role: str
    capabilities: List[str]
    status: AgentStatus = AgentStatus.IDLE


@dataclass
class AgentMessage:
    sender: str
    to: str
    type: str  # "task" | "result" | "status" | "error"
    payload: Any
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass
class AgentResult:
    success: bool
    data: Any = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BaseAgent(ABC):
    """
    Common lifecycle and messaging for every agent.

    Subclasses implement ``run(task)``; ``execute`` wraps it with status
    tracking and turns exceptions into a failed AgentResult.
    """

    def __init__(self, config: AgentConfig) -> None:
        self.config = config
        self.is_running = False
        self.last_activity: Optional[datetime] = None
        self.orchestrator: Optional["AgentOrchestrator"] = None

    @property
    def id(self) -> str:
        return self.config.id

    @abstractmethod
    async def run(self, task: Dict[str, Any]) -> AgentResult:
        ...

    async def execute(self, task: Dict[str, Any]) -> AgentResult:
        task_type = (task or {}).get("type")
        self.config.status = AgentStatus.WORKING
        self.last_activity = datetime.utcnow()
        logger.info(
            "Agent task started",
            extra={"agent_id": self.id, "step": task_type},
        )
        try:
            result = await self.run(task or {})
        except Exception as e:
            logger.exception(
                "Agent task failed: %s",
                e,
                extra={"agent_id": self.id, "step": task_type},
            )
            result = AgentResult(success=False, error=str(e) or e.__class__.__name__)

        self.config.status = AgentStatus.IDLE if result.success else AgentStatus.ERROR
        self.last_activity = datetime.utcnow()
        return result

    async def start(self) -> None:
        self.is_running = True
        self.config.status = AgentStatus.IDLE

    async def stop(self) -> None:
        self.is_running = False
        self.config.status = AgentStatus.DISABLED

    def get_status(self) -> Dict[str, Any]:
        return {
            "id": self.config.id,
            "name": self.config.name,
            "role": self.config.role,
            "capabilities": list(self.config.capabilities),
            "status": self.config.status.value,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
        }

    def send_message(self, to: str, type: str, payload: Any) -> Optional[AgentMessage]:
        message = AgentMessage(sender=self.id, to=to, type=type, payload=payload)
        if self.orchestrator is None:
            logger.debug(
                "No orchestrator attached; dropping message to %s",
                to,
                extra={"agent_id": self.id},
            )
            return None
        self.orchestrator.add_message(message)
        return message

    async def handle_message(self, message: AgentMessage) -> None:
        if message.type == "task":
            result = await self.execute(message.payload)
            self.send_message(message.sender, "result", result.to_dict())
        elif message.type == "status":
            self.send_message(message.sender, "result", self.get_status())
        elif message.type == "result":
            logger.info(
                "Received result from %s",
                message.sender,
                extra={"agent_id": self.id},
            )
        else:
            logger.warning(
                "Unknown message type: %s",
                message.type,
                extra={"agent_id": self.id},
            )
