from datetime import datetime
import logging

from fastapi import APIRouter, Depends, HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.db import get_db
from ..schemas.agents import (
    AgentResultOut,
    CrawlRequest,
    DiscoveryRequest,
    ResearchRequest,
    ResearchTaskAction,
)
from ..schemas.jobs import JobStatusOut
from ..services.agents.manager import AgentManager, get_agent_manager
from ..services.agents.orchestrator import AgentNotFoundError
from ..services.agents.research import RESEARCH_TYPES
from ..services.database import DatabaseService
from ..services.domains import is_valid_domain
from ..services.jobs import cancel_job

router = APIRouter(prefix="/agents", tags=["agents"])

settings = get_settings()
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
logger = logging.getLogger(__name__)

RESEARCH_CAPABILITIES = [
    "Advanced Web Research via Tavily",
    "AI-Powered Analysis via Perplexity",
    "Supplementary Search via Serper",
    "Multi-Source Intelligence Gathering",
    "Competitive Intelligence Analysis",
    "Trend Detection",
    "Source Credibility Assessment",
    "Contextual Research with Memory",
]


def verify_api_key(api_key: str | None = Security(api_key_header)) -> None:
    """
    Header-based API key authentication.

    - In dev, if API_AUTH_KEY is not set, auth is skipped.
    - Otherwise, require X-API-Key == API_AUTH_KEY.
    """
    expected = settings.API_AUTH_KEY

    if settings.ENV == "dev" and not expected:
        return

    if not expected:
        raise HTTPException(status_code=401, detail="API key not configured")

    if api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")


async def ready_manager(manager: AgentManager = Depends(get_agent_manager)) -> AgentManager:
    if not manager.initialized:
        await manager.initialize()
    return manager


def _agent_status(manager: AgentManager, agent_id: str) -> dict:
    try:
        return manager.get_agent_status(agent_id)
    except AgentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/discovery", response_model=AgentResultOut)
async def run_discovery(
    payload: DiscoveryRequest,
    _: None = Depends(verify_api_key),
    manager: AgentManager = Depends(ready_manager),
):
    if not payload.industry and not payload.keywords:
        raise HTTPException(status_code=400, detail="Industry or keywords required for competitor discovery")

    result = await manager.discover_competitors(
        industry=payload.industry,
        keywords=payload.keywords,
        region=payload.region,
        existing_competitors=payload.existing_competitors,
    )
    if not result.success:
        logger.error(
            "Discovery failed: %s",
            result.error,
            extra={"user_id": payload.user_id, "agent_id": "discovery_agent"},
        )
        raise HTTPException(status_code=500, detail=result.error or "Discovery failed")
    return result.to_dict()


@router.get("/discovery")
async def discovery_status(
    _: None = Depends(verify_api_key),
    manager: AgentManager = Depends(ready_manager),
):
    return {"agent": "discovery_agent", "status": _agent_status(manager, "discovery_agent")}


@router.post("/crawl", response_model=AgentResultOut)
async def run_crawl(
    payload: CrawlRequest,
    _: None = Depends(verify_api_key),
    manager: AgentManager = Depends(ready_manager),
):
    if not payload.domains:
        raise HTTPException(status_code=400, detail="At least one domain is required")
    invalid = [d for d in payload.domains if not is_valid_domain(d)]
    if invalid:
        raise HTTPException(status_code=400, detail=f"Invalid domain format: {', '.join(invalid)}")

    result = await manager.crawl_domains(
        payload.domains,
        priority=payload.priority,
        anti_detection=payload.anti_detection,
        sections=payload.sections,
    )
    if not result.success:
        logger.error("Crawl failed: %s", result.error, extra={"agent_id": "crawling_agent"})
        raise HTTPException(status_code=500, detail=result.error or "Crawl failed")
    return result.to_dict()


@router.get("/crawl")
async def crawl_status(
    _: None = Depends(verify_api_key),
    manager: AgentManager = Depends(ready_manager),
):
    return {"agent": "crawling_agent", "status": _agent_status(manager, "crawling_agent")}


@router.post("/research", response_model=AgentResultOut)
async def run_research(
    payload: ResearchRequest,
    _: None = Depends(verify_api_key),
    manager: AgentManager = Depends(ready_manager),
):
    result = await manager.research(payload.to_task(), user_id=payload.user_id, session_id=payload.session_id)
    if not result.success:
        logger.error(
            "Research failed: %s",
            result.error,
            extra={"user_id": payload.user_id, "agent_id": "research_agent"},
        )
        raise HTTPException(status_code=500, detail=result.error or "Failed to execute research task")

    result.metadata.update(
        {
            "timestamp": datetime.utcnow().isoformat(),
            "agent_used": "research_agent",
            "task_type": payload.type,
            "query": payload.query,
        }
    )
    return result.to_dict()


@router.get("/research")
async def research_status(
    operation: str | None = None,
    _: None = Depends(verify_api_key),
    manager: AgentManager = Depends(ready_manager),
):
    if operation == "capabilities":
        return {
            "agent": "research_agent",
            "capabilities": RESEARCH_CAPABILITIES,
            "supported_task_types": list(RESEARCH_TYPES),
        }
    return {
        "agent": "research_agent",
        "status": _agent_status(manager, "research_agent"),
        "rate_limits": {
            "tavily": f"{settings.TAVILY_HOURLY_LIMIT} requests/hour",
            "perplexity": f"{settings.PERPLEXITY_HOURLY_LIMIT} requests/hour",
        },
    }


@router.patch("/research")
def manage_research_task(
    payload: ResearchTaskAction,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    service = DatabaseService(db)
    job = service.get_job(payload.task_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    if payload.action == "cancel":
        try:
            job = cancel_job(service, job)
        except ValueError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return {"success": True, "message": f"Research task {job.id} has been cancelled"}

    return JobStatusOut.model_validate(job).model_dump()


@router.get("/status")
async def all_agent_status(
    _: None = Depends(verify_api_key),
    manager: AgentManager = Depends(ready_manager),
):
    return {"initialized": manager.initialized, "agents": manager.get_agent_status()}


@router.post("/status")
async def reinitialize_agents(
    _: None = Depends(verify_api_key),
    manager: AgentManager = Depends(get_agent_manager),
):
    await manager.shutdown()
    await manager.initialize()
    logger.info("Agent system reinitialized", extra={"step": "agents_reinit"})
    return {"initialized": manager.initialized, "agents": manager.get_agent_status()}
