from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"

    # database & redis
    # Plain string so sqlite:// URLs work for local runs and tests
    DATABASE_URL: str = "sqlite:///./competitor_intel.db"
    # Broker for Celery and backing store for the research cache
    REDIS_URL: str | None = None

    # external APIs
    TAVILY_API_KEY: str | None = None
    TAVILY_BASE_URL: str = "https://api.tavily.com"
    PERPLEXITY_API_KEY: str | None = None
    PERPLEXITY_BASE_URL: str = "https://api.perplexity.ai"
    PERPLEXITY_MODEL: str = "sonar-pro"
    SERPER_API_KEY: str | None = None
    SERPER_BASE_URL: str = "https://google.serper.dev"
    MEM0_API_KEY: str | None = None
    MEM0_BASE_URL: str = "https://api.mem0.ai"
    OPENAI_API_KEY: str | None = None
    HTTP_TIMEOUT_SECONDS: int = 30

    # auth / security
    API_AUTH_KEY: str | None = None
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    # llm (chat replies)
    LLM_MODEL: str = "gpt-4o-mini"
    # Hard cap on concurrent LLM calls per process
    LLM_MAX_CONCURRENCY: int = 4

    # crawling
    CRAWL_BATCH_SIZE: int = 3
    CRAWL_BATCH_DELAY_SECONDS: float = 2.0
    CRAWL_RATE_LIMIT_PER_MINUTE: int = 10
    CRAWL_MIN_DELAY_SECONDS: float = 6.0

    # research
    RESEARCH_CACHE_TTL_SECONDS: int = 3600
    TAVILY_HOURLY_LIMIT: int = 100
    PERPLEXITY_HOURLY_LIMIT: int = 50

    # jobs
    JOB_HISTORY_KEEP: int = 100
    JOB_STALE_AFTER_MINUTES: int = 60

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
