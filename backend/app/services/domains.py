from __future__ import annotations

from calendar import monthrange
from datetime import datetime, timedelta
import re

DOMAIN_PATTERN = re.compile(
    r"^(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$"
)
_PROTOCOL = re.compile(r"^https?://", re.IGNORECASE)


def strip_domain(value: str) -> str:
    """'https://Example.com/' -> 'example.com'"""
    cleaned = _PROTOCOL.sub("", (value or "").strip().lower())
    return cleaned.rstrip("/")


def is_valid_domain(value: str) -> bool:
    cleaned = strip_domain(value)
    return bool(cleaned) and DOMAIN_PATTERN.match(cleaned) is not None


def normalize_domain_url(value: str) -> str:
    """
    Canonical form stored on CompetitorDomain.domain.

    Lowercased, no trailing slash, https:// prefixed when no protocol given.
    An explicit http:// is kept.
    """
    normalized = (value or "").strip().lower().rstrip("/")
    if not _PROTOCOL.match(normalized):
        normalized = f"https://{normalized}"
    return normalized


def domain_key(value: str) -> str:
    """Comparison key used to detect the same competitor registered twice."""
    return strip_domain(value)


def company_name_from_domain(value: str) -> str:
    host = strip_domain(value).split("/", 1)[0]
    if host.startswith("www."):
        host = host[4:]
    label = host.split(".", 1)[0]
    return label[:1].upper() + label[1:]


def next_crawl_time(frequency: str, since: datetime) -> datetime:
    """When a domain crawled at ``since`` is due again; monthly is a calendar month."""
    if frequency == "daily":
        return since + timedelta(days=1)
    if frequency == "monthly":
        year = since.year + (1 if since.month == 12 else 0)
        month = 1 if since.month == 12 else since.month + 1
        day = min(since.day, monthrange(year, month)[1])
        return since.replace(year=year, month=month, day=day)
    return since + timedelta(days=7)
