from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..models.competitor_domain import CompetitorDomain
from ..models.job import Job, JobStatus, JobType, TERMINAL_STATUSES
from .domains import company_name_from_domain, domain_key, next_crawl_time, normalize_domain_url

logger = logging.getLogger(__name__)
settings = get_settings()

_DOMAIN_FIELDS = {
    "name",
    "description",
    "crawl_frequency",
    "target_sections",
    "is_active",
    "status",
    "last_crawled",
    "crawl_data",
}
_JOB_FIELDS = {"status", "domain", "industry", "parameters", "result", "error", "progress", "completed_at"}


class DuplicateDomainError(ValueError):
    """Raised when a user already monitors the given domain."""


class DatabaseService:
    """
    CRUD for monitored domains and agent jobs.

    Every write commits immediately; callers get refreshed ORM rows back.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Domains
    # ------------------------------------------------------------------

    def create_domain(
        self,
        user_id: str,
        domain: str,
        name: str,
        description: str | None = None,
        crawl_frequency: str = "weekly",
        target_sections: List[str] | None = None,
        is_active: bool = True,
        status: str = "active",
    ) -> CompetitorDomain:
        now = datetime.utcnow()
        row = CompetitorDomain(
            user_id=user_id,
            domain=normalize_domain_url(domain),
            name=name,
            description=description,
            crawl_frequency=crawl_frequency,
            target_sections=list(target_sections or []),
            is_active=is_active,
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        logger.info(
            "Domain created",
            extra={"user_id": user_id, "step": "create_domain"},
        )
        return row

    def get_user_domains(self, user_id: str) -> List[CompetitorDomain]:
        return (
            self.db.query(CompetitorDomain)
            .filter(CompetitorDomain.user_id == user_id)
            .order_by(CompetitorDomain.created_at.desc())
            .all()
        )

    def get_domain(self, domain_id: UUID) -> Optional[CompetitorDomain]:
        return self.db.query(CompetitorDomain).filter(CompetitorDomain.id == domain_id).first()

    def find_domain(self, user_id: str, domain: str) -> Optional[CompetitorDomain]:
        key = domain_key(domain)
        for row in self.get_user_domains(user_id):
            if domain_key(row.domain) == key:
                return row
        return None

    def update_domain(self, domain_id: UUID, updates: Dict[str, Any]) -> Optional[CompetitorDomain]:
        row = self.get_domain(domain_id)
        if row is None:
            return None
        for field, value in updates.items():
            if field not in _DOMAIN_FIELDS:
                raise ValueError(f"Unknown domain field: {field}")
            setattr(row, field, value)
        row.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete_domain(self, domain_id: UUID) -> bool:
        deleted = (
            self.db.query(CompetitorDomain)
            .filter(CompetitorDomain.id == domain_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return bool(deleted)

    def toggle_domain_status(self, domain_id: UUID, is_active: bool) -> Optional[CompetitorDomain]:
        return self.update_domain(
            domain_id,
            {"is_active": is_active, "status": "active" if is_active else "inactive"},
        )

    def add_competitor_to_monitoring(
        self,
        user_id: str,
        domain: str,
        name: str | None = None,
        description: str | None = None,
    ) -> CompetitorDomain:
        if self.find_domain(user_id, domain) is not None:
            raise DuplicateDomainError("This domain is already being monitored")

        return self.create_domain(
            user_id=user_id,
            domain=domain,
            name=name or company_name_from_domain(domain),
            description=description,
            target_sections=["/", "/about", "/pricing", "/blog"],
        )

    def get_due_domains(self, now: datetime | None = None) -> List[CompetitorDomain]:
        """
        Active domains whose crawl frequency has elapsed.

        Domains with a pending or running crawl job are left out. A domain
        whose last crawl failed waits a full interval from that failure.
        """
        now = now or datetime.utcnow()
        queued = {
            (job.user_id, domain_key(job.domain))
            for job in self.db.query(Job)
            .filter(
                Job.type == JobType.CRAWL,
                Job.status.in_([JobStatus.PENDING, JobStatus.RUNNING]),
                Job.domain.isnot(None),
            )
            .all()
        }
        rows = self.db.query(CompetitorDomain).filter(CompetitorDomain.is_active.is_(True)).all()
        due = []
        for row in rows:
            if (row.user_id, domain_key(row.domain)) in queued:
                continue
            since = row.updated_at if row.status == "error" else row.last_crawled
            if since is None or next_crawl_time(row.crawl_frequency, since) <= now:
                due.append(row)
        return due

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def create_job(
        self,
        user_id: str,
        type: JobType,
        parameters: Dict[str, Any] | None = None,
        domain: str | None = None,
        industry: str | None = None,
    ) -> Job:
        now = datetime.utcnow()
        job = Job(
            user_id=user_id,
            type=JobType(type),
            status=JobStatus.PENDING,
            domain=domain,
            industry=industry,
            parameters=dict(parameters or {}),
            progress=0,
            created_at=now,
            updated_at=now,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        logger.info(
            "Job created",
            extra={"job_id": str(job.id), "user_id": user_id, "step": "create_job"},
        )
        return job

    def get_user_jobs(self, user_id: str, limit: int = 50) -> List[Job]:
        return (
            self.db.query(Job)
            .filter(Job.user_id == user_id)
            .order_by(Job.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_job(self, job_id: UUID) -> Optional[Job]:
        return self.db.query(Job).filter(Job.id == job_id).first()

    def update_job(self, job_id: UUID, updates: Dict[str, Any]) -> Optional[Job]:
        job = self.get_job(job_id)
        if job is None:
            return None
        for field, value in updates.items():
            if field not in _JOB_FIELDS:
                raise ValueError(f"Unknown job field: {field}")
            if field == "status":
                value = JobStatus(value)
            setattr(job, field, value)

        now = datetime.utcnow()
        job.updated_at = now
        if job.status in TERMINAL_STATUSES and job.completed_at is None:
            job.completed_at = now
        self.db.commit()
        self.db.refresh(job)
        return job

    def delete_job(self, job_id: UUID) -> bool:
        deleted = self.db.query(Job).filter(Job.id == job_id).delete(synchronize_session=False)
        self.db.commit()
        return bool(deleted)

    def get_running_jobs(self, user_id: str) -> List[Job]:
        return (
            self.db.query(Job)
            .filter(Job.user_id == user_id, Job.status == JobStatus.RUNNING)
            .order_by(Job.created_at.desc())
            .all()
        )

    def cleanup_old_jobs(self, user_id: str, keep: int | None = None) -> int:
        """Delete completed jobs beyond the newest ``keep`` for one user."""
        keep = settings.JOB_HISTORY_KEEP if keep is None else keep
        stale_ids = [
            row.id
            for row in self.db.query(Job.id)
            .filter(Job.user_id == user_id, Job.status == JobStatus.COMPLETED)
            .order_by(Job.created_at.desc())
            .offset(keep)
            .all()
        ]
        if not stale_ids:
            return 0
        deleted = self.db.query(Job).filter(Job.id.in_(stale_ids)).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def fail_stale_jobs(self, older_than: datetime) -> int:
        """Mark jobs stuck in RUNNING since before ``older_than`` as failed."""
        stuck = (
            self.db.query(Job)
            .filter(Job.status == JobStatus.RUNNING, Job.updated_at < older_than)
            .all()
        )
        now = datetime.utcnow()
        for job in stuck:
            job.status = JobStatus.FAILED
            job.error = "Job timed out"
            job.updated_at = now
            job.completed_at = now
        if stuck:
            self.db.commit()
        return len(stuck)

    def list_job_owners(self) -> List[str]:
        return [row[0] for row in self.db.query(Job.user_id).distinct().all()]
