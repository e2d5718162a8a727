from typing import Callable
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.job import JobType
from ..schemas.domains import (
    DomainCreate,
    DomainOut,
    DomainToggle,
    DomainUpdate,
    MonitorCompetitorRequest,
)
from ..schemas.jobs import JobOut
from ..services.database import DatabaseService, DuplicateDomainError
from .routes_agents import verify_api_key
from .routes_jobs import get_job_queue

router = APIRouter(prefix="/domains", tags=["domains"])
logger = logging.getLogger(__name__)


def _get_or_404(service: DatabaseService, domain_id: UUID):
    row = service.get_domain(domain_id)
    if not row:
        raise HTTPException(status_code=404, detail="Domain not found")
    return row


@router.post("", response_model=DomainOut, status_code=201)
def create_domain(
    payload: DomainCreate,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    service = DatabaseService(db)
    if service.find_domain(payload.user_id, payload.domain):
        raise HTTPException(status_code=409, detail="This domain is already being monitored")
    return service.create_domain(**payload.model_dump())


@router.get("", response_model=list[DomainOut])
def list_domains(
    user_id: str,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    return DatabaseService(db).get_user_domains(user_id)


@router.post("/monitor", response_model=DomainOut, status_code=201)
def monitor_competitor(
    payload: MonitorCompetitorRequest,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    """Add a competitor found by discovery to the user's monitored domains."""
    try:
        return DatabaseService(db).add_competitor_to_monitoring(
            user_id=payload.user_id,
            domain=payload.domain,
            name=payload.name,
            description=payload.description,
        )
    except DuplicateDomainError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{domain_id}", response_model=DomainOut)
def get_domain(
    domain_id: UUID,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    return _get_or_404(DatabaseService(db), domain_id)


@router.patch("/{domain_id}", response_model=DomainOut)
def update_domain(
    domain_id: UUID,
    payload: DomainUpdate,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    service = DatabaseService(db)
    _get_or_404(service, domain_id)
    try:
        return service.update_domain(domain_id, payload.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{domain_id}/toggle", response_model=DomainOut)
def toggle_domain(
    domain_id: UUID,
    payload: DomainToggle,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    service = DatabaseService(db)
    _get_or_404(service, domain_id)
    return service.toggle_domain_status(domain_id, payload.is_active)


@router.delete("/{domain_id}", status_code=204)
def delete_domain(
    domain_id: UUID,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    if not DatabaseService(db).delete_domain(domain_id):
        raise HTTPException(status_code=404, detail="Domain not found")


@router.post("/{domain_id}/crawl", response_model=JobOut, status_code=202)
def crawl_domain(
    domain_id: UUID,
    db: Session = Depends(get_db),
    enqueue: Callable = Depends(get_job_queue),
    _: None = Depends(verify_api_key),
):
    service = DatabaseService(db)
    row = _get_or_404(service, domain_id)
    job = service.create_job(
        row.user_id,
        JobType.CRAWL,
        parameters={"domains": [row.domain], "sections": row.target_sections or None},
        domain=row.domain,
    )
    enqueue(job.id)
    logger.info(
        "Crawl job queued",
        extra={"job_id": str(job.id), "user_id": row.user_id, "step": "crawl_domain"},
    )
    return job
