"""
Tests for DatabaseService against an in-memory sqlite database.
"""
from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from app.models.job import JobStatus, JobType
from app.services.database import DatabaseService, DuplicateDomainError


class TestDomainCrud:
    """Create, read, update and delete for monitored domains."""

    def test_create_domain_stores_normalized_url(self, db):
        service = DatabaseService(db)
        row = service.create_domain("u1", "Example.com/", "Example")
        assert row.domain == "https://example.com"
        assert row.is_active is True
        assert row.status == "active"
        assert row.target_sections == []

    def test_user_domains_are_scoped_and_newest_first(self, db):
        service = DatabaseService(db)
        first = service.create_domain("u1", "a.com", "A")
        second = service.create_domain("u1", "b.com", "B")
        service.create_domain("u2", "c.com", "C")

        rows = service.get_user_domains("u1")
        assert [r.id for r in rows] == [second.id, first.id]

    def test_update_domain(self, db):
        service = DatabaseService(db)
        row = service.create_domain("u1", "a.com", "A")
        updated = service.update_domain(row.id, {"name": "Acme", "crawl_frequency": "daily"})
        assert updated.name == "Acme"
        assert updated.crawl_frequency == "daily"
        assert updated.updated_at >= row.created_at

    def test_update_domain_rejects_unknown_fields(self, db):
        service = DatabaseService(db)
        row = service.create_domain("u1", "a.com", "A")
        with pytest.raises(ValueError):
            service.update_domain(row.id, {"user_id": "someone-else"})

    def test_update_missing_domain_returns_none(self, db):
        assert DatabaseService(db).update_domain(uuid4(), {"name": "x"}) is None

    def test_delete_domain(self, db):
        service = DatabaseService(db)
        row_id = service.create_domain("u1", "a.com", "A").id
        assert service.delete_domain(row_id) is True
        assert service.get_domain(row_id) is None
        assert service.delete_domain(row_id) is False


class TestToggleDomainStatus:
    """Toggling sets both is_active and status, and persists."""

    def test_toggle_persists_across_sessions(self, db, session_factory):
        service = DatabaseService(db)
        row = service.create_domain("u1", "a.com", "A")
        service.toggle_domain_status(row.id, False)

        other = session_factory()
        try:
            reloaded = DatabaseService(other).get_domain(row.id)
            assert reloaded.is_active is False
            assert reloaded.status == "inactive"
        finally:
            other.close()

        service.toggle_domain_status(row.id, True)
        again = service.get_domain(row.id)
        assert again.is_active is True
        assert again.status == "active"


class TestAddCompetitorToMonitoring:
    """Adding a discovered competitor to monitoring."""

    def test_defaults_name_and_sections(self, db):
        row = DatabaseService(db).add_competitor_to_monitoring("u1", "hubspot.com")
        assert row.domain == "https://hubspot.com"
        assert row.name == "Hubspot"
        assert row.target_sections == ["/", "/about", "/pricing", "/blog"]

    def test_duplicate_is_rejected_after_normalization(self, db):
        service = DatabaseService(db)
        service.add_competitor_to_monitoring("u1", "hubspot.com")
        with pytest.raises(DuplicateDomainError):
            service.add_competitor_to_monitoring("u1", "https://HubSpot.com/")

    def test_same_domain_for_another_user_is_allowed(self, db):
        service = DatabaseService(db)
        service.add_competitor_to_monitoring("u1", "hubspot.com")
        row = service.add_competitor_to_monitoring("u2", "hubspot.com")
        assert row.user_id == "u2"


class TestDueDomains:
    """Scheduled crawl selection by crawl frequency."""

    def test_never_crawled_and_overdue_domains_are_due(self, db):
        service = DatabaseService(db)
        now = datetime.utcnow()
        fresh = service.create_domain("u1", "fresh.com", "Fresh", crawl_frequency="weekly")
        service.update_domain(fresh.id, {"last_crawled": now - timedelta(days=2)})
        overdue = service.create_domain("u1", "old.com", "Old", crawl_frequency="daily")
        service.update_domain(overdue.id, {"last_crawled": now - timedelta(days=2)})
        never = service.create_domain("u1", "new.com", "New")
        paused = service.create_domain("u1", "paused.com", "Paused")
        service.toggle_domain_status(paused.id, False)

        due = {row.id for row in service.get_due_domains(now)}
        assert due == {overdue.id, never.id}

    def test_domain_with_queued_crawl_is_not_due(self, db):
        service = DatabaseService(db)
        row = service.create_domain("u1", "acme.com", "Acme")
        job = service.create_job("u1", JobType.CRAWL, domain=row.domain)
        assert service.get_due_domains() == []

        service.update_job(job.id, {"status": JobStatus.FAILED})
        assert [r.id for r in service.get_due_domains()] == [row.id]

    def test_failed_domain_backs_off_for_one_interval(self, db):
        service = DatabaseService(db)
        row = service.create_domain("u1", "acme.com", "Acme", crawl_frequency="daily")
        service.update_domain(row.id, {"status": "error"})
        now = datetime.utcnow()
        assert service.get_due_domains(now) == []
        assert [r.id for r in service.get_due_domains(now + timedelta(days=2))] == [row.id]

    def test_monthly_uses_calendar_months(self, db):
        service = DatabaseService(db)
        row = service.create_domain("u1", "acme.com", "Acme", crawl_frequency="monthly")
        service.update_domain(row.id, {"last_crawled": datetime(2024, 1, 31)})
        assert service.get_due_domains(datetime(2024, 2, 28)) == []
        assert [r.id for r in service.get_due_domains(datetime(2024, 2, 29))] == [row.id]


class TestJobs:
    """Job CRUD, history retention and stale job handling."""

    def test_create_job_starts_pending(self, db):
        job = DatabaseService(db).create_job("u1", JobType.DISCOVERY, parameters={"industry": "crm"})
        assert job.status == JobStatus.PENDING
        assert job.progress == 0
        assert job.parameters == {"industry": "crm"}
        assert job.completed_at is None

    def test_terminal_status_sets_completed_at(self, db):
        service = DatabaseService(db)
        job = service.create_job("u1", JobType.CRAWL)
        job = service.update_job(job.id, {"status": "completed", "progress": 100})
        assert job.status == JobStatus.COMPLETED
        assert job.completed_at is not None

    def test_update_job_rejects_unknown_fields(self, db):
        service = DatabaseService(db)
        job = service.create_job("u1", JobType.CRAWL)
        with pytest.raises(ValueError):
            service.update_job(job.id, {"type": "research"})

    def test_running_jobs(self, db):
        service = DatabaseService(db)
        running = service.create_job("u1", JobType.RESEARCH)
        service.update_job(running.id, {"status": JobStatus.RUNNING})
        service.create_job("u1", JobType.RESEARCH)
        assert [j.id for j in service.get_running_jobs("u1")] == [running.id]

    def test_cleanup_keeps_newest_completed_jobs(self, db):
        service = DatabaseService(db)
        completed = []
        for _ in range(4):
            job = service.create_job("u1", JobType.CRAWL)
            completed.append(service.update_job(job.id, {"status": JobStatus.COMPLETED}))
        pending = service.create_job("u1", JobType.CRAWL)

        deleted = service.cleanup_old_jobs("u1", keep=2)
        assert deleted == 2
        remaining = {j.id for j in service.get_user_jobs("u1")}
        assert pending.id in remaining
        assert len(remaining) == 3

    def test_fail_stale_jobs(self, db):
        service = DatabaseService(db)
        job = service.create_job("u1", JobType.CRAWL)
        service.update_job(job.id, {"status": JobStatus.RUNNING})

        assert service.fail_stale_jobs(datetime.utcnow() - timedelta(hours=1)) == 0
        assert service.fail_stale_jobs(datetime.utcnow() + timedelta(seconds=1)) == 1
        job = service.get_job(job.id)
        assert job.status == JobStatus.FAILED
        assert job.error == "Job timed out"
