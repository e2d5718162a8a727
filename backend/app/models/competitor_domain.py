from sqlalchemy import Column, String, Text, JSON, Boolean, DateTime, Uuid
from datetime import datetime
import uuid
from ..core.db import Base

CRAWL_FREQUENCIES = ("daily", "weekly", "monthly")
DOMAIN_STATUSES = ("active", "inactive", "pending", "error")


class CompetitorDomain(Base):
    __tablename__ = "domains"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    domain = Column(String, nullable=False)         # normalized url, e.g. https://example.com
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    crawl_frequency = Column(String, nullable=False, default="weekly")
    target_sections = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    status = Column(String, nullable=False, default="active")
    last_crawled = Column(DateTime, nullable=True)
    crawl_data = Column(JSON, nullable=True)        # snapshot of the latest crawl
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
