from __future__ import annotations

from functools import lru_cache
from contextlib import contextmanager
from threading import BoundedSemaphore

from openai import OpenAI

from ..core.config import get_settings

_llm_semaphore: BoundedSemaphore | None = None


def _get_semaphore() -> BoundedSemaphore:
    """
    Lazy-initialised global semaphore for limiting concurrent LLM calls.
    """
    global _llm_semaphore
    if _llm_semaphore is None:
        settings = get_settings()
        _llm_semaphore = BoundedSemaphore(settings.LLM_MAX_CONCURRENCY)
    return _llm_semaphore


@contextmanager
def limit_llm_concurrency():
    """
    Bound concurrent calls to the LLM provider.

        with limit_llm_concurrency():
            client.chat.completions.create(...)

    Use it inside the thread that performs the HTTP request.
    """
    sem = _get_semaphore()
    sem.acquire()
    try:
        yield
    finally:
        sem.release()


def llm_configured() -> bool:
    return bool(get_settings().OPENAI_API_KEY)


@lru_cache(maxsize=1)
def get_llm_client() -> OpenAI:
    """Shared OpenAI client for the process."""
    settings = get_settings()
    if not settings.OPENAI_API_KEY:
        raise RuntimeError("No LLM API key configured. Set OPENAI_API_KEY.")
    return OpenAI(api_key=settings.OPENAI_API_KEY.strip(), timeout=settings.HTTP_TIMEOUT_SECONDS)
