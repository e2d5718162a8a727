"""
Shared pytest setup.

Settings are read once per process, so the environment is pinned here
before any app module is imported: in-memory sqlite, no Redis and no
external API keys.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "dev"
for _var in (
    "REDIS_URL",
    "TAVILY_API_KEY",
    "PERPLEXITY_API_KEY",
    "SERPER_API_KEY",
    "MEM0_API_KEY",
    "OPENAI_API_KEY",
    "API_AUTH_KEY",
):
    os.environ.pop(_var, None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import Base
from app.models.competitor_domain import CompetitorDomain  # noqa: F401
from app.models.job import Job  # noqa: F401


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
