from typing import Callable
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..schemas.jobs import JobAction, JobCreate, JobOut, JobStatusOut
from ..services.database import DatabaseService
from ..services.jobs import cancel_job, enqueue_job
from .routes_agents import verify_api_key

router = APIRouter(prefix="/jobs", tags=["jobs"])
logger = logging.getLogger(__name__)


def get_job_queue() -> Callable:
    return enqueue_job


@router.post("", response_model=JobOut, status_code=202)
def create_job(
    payload: JobCreate,
    db: Session = Depends(get_db),
    enqueue: Callable = Depends(get_job_queue),
    _: None = Depends(verify_api_key),
):
    job = DatabaseService(db).create_job(
        payload.user_id,
        payload.type,
        parameters=payload.parameters,
        domain=payload.domain,
        industry=payload.industry,
    )
    enqueue(job.id)
    logger.info(
        "Job queued",
        extra={"job_id": str(job.id), "user_id": payload.user_id, "step": "job_queued"},
    )
    return job


@router.get("", response_model=list[JobOut])
def list_jobs(
    user_id: str,
    limit: int = 50,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    safe_limit = max(1, min(limit, 100))
    return DatabaseService(db).get_user_jobs(user_id, limit=safe_limit)


@router.get("/running", response_model=list[JobOut])
def list_running_jobs(
    user_id: str,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    return DatabaseService(db).get_running_jobs(user_id)


@router.get("/{job_id}", response_model=JobOut)
def get_job(
    job_id: UUID,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    job = DatabaseService(db).get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.patch("/{job_id}", response_model=JobStatusOut)
def act_on_job(
    job_id: UUID,
    payload: JobAction,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    service = DatabaseService(db)
    job = service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    if payload.action == "cancel":
        try:
            job = cancel_job(service, job)
        except ValueError as e:
            raise HTTPException(status_code=409, detail=str(e))
        logger.info("Job cancelled", extra={"job_id": str(job.id), "step": "cancel"})
    return job


@router.delete("/{job_id}", status_code=204)
def delete_job(
    job_id: UUID,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    if not DatabaseService(db).delete_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
