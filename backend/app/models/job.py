from sqlalchemy import Column, String, JSON, Enum, DateTime, Integer, Uuid
from datetime import datetime
import uuid
import enum
from ..core.db import Base

class JobType(str, enum.Enum):
    DISCOVERY = "discovery"
    CRAWL = "crawl"
    RESEARCH = "research"

class JobStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)

class Job(Base):
    __tablename__ = "jobs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    type = Column(Enum(JobType), nullable=False)
    status = Column(Enum(JobStatus), nullable=False, default=JobStatus.PENDING)
    domain = Column(String, nullable=True)
    industry = Column(String, nullable=True)
    parameters = Column(JSON, nullable=False, default=dict)
    result = Column(JSON, nullable=True)
    error = Column(String, nullable=True)
    progress = Column(Integer, nullable=False, default=0)  # 0-100
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
