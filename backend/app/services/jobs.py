from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import UUID
import asyncio
import logging

from sqlalchemy.orm import Session

from ..core.celery_app import celery_app
from ..core.config import get_settings
from ..core.db import SessionLocal
from ..models.job import Job, JobStatus, JobType
from .agents.base import AgentResult
from .agents.manager import AgentManager
from .database import DatabaseService

logger = logging.getLogger(__name__)
settings = get_settings()

CANCELLED_ERROR = "Cancelled by user"


def enqueue_job(job_id: UUID | str) -> None:
    celery_app.send_task(
        "app.services.jobs.run_agent_job",
        args=[str(job_id)],
        queue="agents",
    )


def _crawl_baselines(service: DatabaseService, job: Job, domains: list[str]) -> Dict[str, Any]:
    baselines: Dict[str, Any] = {}
    for domain in domains:
        row = service.find_domain(job.user_id, domain)
        if row is not None and (row.crawl_data or {}).get("fingerprint"):
            baselines[domain] = row.crawl_data["fingerprint"]
    return baselines


def _record_crawl_results(service: DatabaseService, job: Job, result: AgentResult) -> None:
    now = datetime.utcnow()
    for entry in (result.data or {}).get("results") or []:
        row = service.find_domain(job.user_id, entry["domain"])
        if row is None:
            continue
        if entry["success"]:
            service.update_domain(
                row.id,
                {"last_crawled": now, "crawl_data": entry["data"], "status": "active"},
            )
        else:
            service.update_domain(row.id, {"status": "error"})


async def _run_for_type(
    service: DatabaseService,
    job: Job,
    manager: AgentManager,
) -> AgentResult:
    params = dict(job.parameters or {})

    if job.type == JobType.DISCOVERY:
        return await manager.discover_competitors(
            industry=params.get("industry") or job.industry,
            keywords=params.get("keywords"),
            region=params.get("region"),
            existing_competitors=params.get("existing_competitors"),
        )

    if job.type == JobType.CRAWL:
        domains = list(params.get("domains") or ([job.domain] if job.domain else []))
        return await manager.crawl_domains(
            domains,
            priority=params.get("priority") or "medium",
            sections=params.get("sections"),
            baselines=_crawl_baselines(service, job, domains),
        )

    task = dict(params.get("task") or params)
    task.setdefault("type", "deep_research")
    return await manager.research(task, user_id=job.user_id, session_id=params.get("session_id"))


async def execute_job(db: Session, job_id: UUID, manager: AgentManager) -> Optional[Job]:
    """
    Drive one job from pending to completed or failed.

    Jobs that are no longer pending are skipped. A job cancelled while its
    agent was running keeps its cancelled state.
    """
    service = DatabaseService(db)
    job = service.get_job(job_id)
    if job is None or job.status != JobStatus.PENDING:
        logger.info(
            "Skipping job that is missing or not pending",
            extra={"job_id": str(job_id), "step": "skip"},
        )
        return job

    service.update_job(job.id, {"status": JobStatus.RUNNING, "progress": 10})
    logger.info(
        "Starting agent job",
        extra={"job_id": str(job.id), "user_id": job.user_id, "step": job.type.value},
    )

    try:
        result = await _run_for_type(service, job, manager)
    except Exception as e:
        db.rollback()
        service.update_job(job.id, {"status": JobStatus.FAILED, "error": str(e)[:500] or e.__class__.__name__})
        logger.exception(
            "Agent job failed",
            extra={"job_id": str(job.id), "step": "failed"},
        )
        raise

    db.refresh(job)
    if job.status != JobStatus.RUNNING:
        logger.info(
            "Job changed state while running; result discarded",
            extra={"job_id": str(job.id), "step": job.status.value},
        )
        return job

    if job.type == JobType.CRAWL:
        _record_crawl_results(service, job, result)

    if result.success:
        job = service.update_job(
            job.id,
            {"status": JobStatus.COMPLETED, "progress": 100, "result": result.to_dict()},
        )
        logger.info("Agent job completed", extra={"job_id": str(job.id), "step": "completed"})
    else:
        job = service.update_job(
            job.id,
            {"status": JobStatus.FAILED, "error": result.error or "Agent task failed", "result": result.to_dict()},
        )
        logger.info("Agent job reported failure", extra={"job_id": str(job.id), "step": "failed"})
    return job


def cancel_job(service: DatabaseService, job: Job) -> Job:
    """Raises ValueError when the job already finished."""
    if job.status not in (JobStatus.PENDING, JobStatus.RUNNING):
        raise ValueError(f"Job already {job.status.value}")
    return service.update_job(job.id, {"status": JobStatus.FAILED, "error": CANCELLED_ERROR})


async def _run_in_worker(db: Session, job_id: UUID) -> None:
    # Agents keep per-event-loop state, so each task gets its own system
    manager = AgentManager()
    await manager.initialize(start_processing=False)
    try:
        await execute_job(db, job_id, manager)
    finally:
        await manager.shutdown()


@celery_app.task(name="app.services.jobs.run_agent_job", bind=True, queue="agents")
def run_agent_job(self, job_id: str):
    db: Session = SessionLocal()
    try:
        asyncio.run(_run_in_worker(db, UUID(job_id)))
    finally:
        db.close()


@celery_app.task(name="app.services.jobs.cleanup_old_jobs")
def cleanup_old_jobs() -> int:
    db: Session = SessionLocal()
    try:
        service = DatabaseService(db)
        deleted = sum(service.cleanup_old_jobs(user_id) for user_id in service.list_job_owners())
        logger.info(
            "Old jobs cleaned up",
            extra={"step": "retention", "deleted_jobs": deleted},
        )
        return deleted
    except Exception:
        db.rollback()
        logger.exception("Error during cleanup_old_jobs", extra={"step": "retention"})
        raise
    finally:
        db.close()


@celery_app.task(name="app.services.jobs.crawl_due_domains")
def crawl_due_domains() -> int:
    db: Session = SessionLocal()
    try:
        service = DatabaseService(db)
        created = 0
        for row in service.get_due_domains():
            job = service.create_job(
                row.user_id,
                JobType.CRAWL,
                parameters={"domains": [row.domain], "sections": row.target_sections or None},
                domain=row.domain,
            )
            enqueue_job(job.id)
            created += 1
        logger.info("Scheduled crawls queued", extra={"step": "crawl_due_domains", "jobs": created})
        return created
    except Exception:
        db.rollback()
        logger.exception("Error during crawl_due_domains", extra={"step": "crawl_due_domains"})
        raise
    finally:
        db.close()


@celery_app.task(name="app.services.jobs.fail_stale_jobs")
def fail_stale_jobs() -> int:
    db: Session = SessionLocal()
    try:
        cutoff = datetime.utcnow() - timedelta(minutes=settings.JOB_STALE_AFTER_MINUTES)
        failed = DatabaseService(db).fail_stale_jobs(cutoff)
        if failed:
            logger.warning("Marked stale jobs failed", extra={"step": "fail_stale_jobs", "jobs": failed})
        return failed
    except Exception:
        db.rollback()
        logger.exception("Error during fail_stale_jobs", extra={"step": "fail_stale_jobs"})
        raise
    finally:
        db.close()
