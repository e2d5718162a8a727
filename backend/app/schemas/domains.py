from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..services.domains import is_valid_domain, normalize_domain_url

MAX_NAME_LEN = 200
MAX_DESCRIPTION_LEN = 2000

CrawlFrequency = Literal["daily", "weekly", "monthly"]
DomainStatus = Literal["active", "inactive", "pending", "error"]


def validate_domain_input(v: str) -> str:
    v = (v or "").strip().lower()
    if not is_valid_domain(v):
        raise ValueError("Invalid domain format")
    return normalize_domain_url(v)


class DomainCreate(BaseModel):
    user_id: str
    domain: str
    name: str
    description: str | None = None
    crawl_frequency: CrawlFrequency = "weekly"
    target_sections: list[str] = Field(default_factory=list)

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        return validate_domain_input(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        if len(v) > MAX_NAME_LEN:
            raise ValueError(f"name must be at most {MAX_NAME_LEN} characters")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) > MAX_DESCRIPTION_LEN:
            raise ValueError(f"description must be at most {MAX_DESCRIPTION_LEN} characters")
        return v or None


class DomainUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    crawl_frequency: CrawlFrequency | None = None
    target_sections: list[str] | None = None
    is_active: bool | None = None
    status: DomainStatus | None = None


class DomainToggle(BaseModel):
    is_active: bool


class MonitorCompetitorRequest(BaseModel):
    user_id: str
    domain: str
    name: str | None = None
    description: str | None = None

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        return validate_domain_input(v)


class DomainOut(BaseModel):
    id: UUID
    user_id: str
    domain: str
    name: str
    description: str | None = None
    crawl_frequency: str
    target_sections: list[str] = Field(default_factory=list)
    is_active: bool
    status: str
    last_crawled: datetime | None = None
    crawl_data: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
