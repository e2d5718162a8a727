from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

MAX_QUERY_LEN = 1000

ResearchType = Literal[
    "deep_research",
    "competitive_analysis",
    "market_intelligence",
    "trend_analysis",
    "source_verification",
    "contextual_research",
]


class AgentResultOut(BaseModel):
    success: bool
    data: Any = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class DiscoveryRequest(BaseModel):
    industry: str | None = None
    keywords: list[str] = Field(default_factory=list)
    region: str | None = None
    existing_competitors: list[str] = Field(default_factory=list)
    user_id: str | None = None

    @field_validator("industry", "region", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("keywords")
    @classmethod
    def _strip_keywords(cls, v: list[str]) -> list[str]:
        return [k.strip() for k in v if k and k.strip()]


class CrawlRequest(BaseModel):
    domains: list[str]
    priority: Literal["high", "medium", "low"] = "medium"
    anti_detection: bool = False
    sections: list[str] | None = None


class ResearchContext(BaseModel):
    industry: str | None = None
    competitors: list[str] = Field(default_factory=list)
    timeframe: str = "recent"
    depth: Literal["surface", "comprehensive", "exhaustive"] = "comprehensive"
    sources: Literal["all", "academic", "news", "industry", "social"] = "all"


class ResearchRequest(BaseModel):
    type: ResearchType = "deep_research"
    query: str
    context: ResearchContext = Field(default_factory=ResearchContext)
    focus_areas: list[str] = Field(default_factory=list)
    exclude_terms: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=lambda: ["en"])
    regions: list[str] = Field(default_factory=list)
    custom_instructions: str = ""
    user_id: str | None = None
    session_id: str | None = None

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Query is required and must be a non-empty string")
        if len(v) > MAX_QUERY_LEN:
            raise ValueError(f"query must be at most {MAX_QUERY_LEN} characters")
        return v

    def to_task(self) -> dict[str, Any]:
        return self.model_dump(exclude={"user_id", "session_id"})


class ResearchTaskAction(BaseModel):
    task_id: UUID
    action: Literal["cancel", "status"]
