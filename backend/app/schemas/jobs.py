from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.job import JobStatus, JobType


class JobCreate(BaseModel):
    user_id: str
    type: JobType
    domain: str | None = None
    industry: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class JobAction(BaseModel):
    action: Literal["cancel", "status"]


class JobStatusOut(BaseModel):
    id: UUID
    status: JobStatus
    progress: int
    error: str | None = None

    model_config = ConfigDict(from_attributes=True)


class JobOut(BaseModel):
    id: UUID
    user_id: str
    type: JobType
    status: JobStatus
    domain: str | None = None
    industry: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] | None = None
    error: str | None = None
    progress: int
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
