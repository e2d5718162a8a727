from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
import asyncio
import hashlib
import logging
import re
import time

from bs4 import BeautifulSoup, Comment

from .base import AgentConfig, AgentResult, BaseAgent
from ..connectors import ConnectorRunner
from ..domains import next_crawl_time, strip_domain
from ..rate_limit import DomainRateLimiter
from ...core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

MAX_CONTENT_CHARS = 8000
MAX_SECTION_CHARS = 2000
SUMMARY_CHARS = 1000
MAX_LINKS = 50
MAX_IMAGES = 20
NEW_COMPETITOR_SECTIONS = ["/", "/about", "/pricing", "/blog"]

_SOCIAL_HOSTS = ("facebook.com", "twitter.com", "linkedin.com", "instagram.com")
_IMAGE_NOISE = ("logo", "icon", "button", "pixel", "tracking")
_HIGH_SIGNAL = ("pricing", "price", "product", "launch", "release")
_CONTENT_CONTAINER = re.compile(r"content|main|article", re.IGNORECASE)


def _clean_text(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def extract_sections(content: str, sections: List[str]) -> Dict[str, str]:
    """
    Map requested site sections to matching text.

    "/" means the whole page. Other sections are matched by keyword against
    sentences; when nothing matches a "summary" of the page is returned.
    """
    if "/" in sections:
        return {"/": content}

    result: Dict[str, str] = {}
    sentences = re.split(r"[.!?]+", content)
    for section in sections:
        keywords = [k for k in re.split(r"[,\s/]+", section.lower()) if k]
        if not keywords:
            continue
        matches = [s.strip() for s in sentences if any(k in s.lower() for k in keywords)]
        if matches:
            result[section] = ". ".join(matches)[:MAX_SECTION_CHARS]

    if not result:
        result["summary"] = content[:SUMMARY_CHARS]
    return result


def process_content(raw: str, url: str, sections: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Turn fetched HTML (or Tavily markdown) into the crawl data record.
    """
    soup = BeautifulSoup(raw or "", "html.parser")

    title = _clean_text(soup.title.get_text()) if soup.title else ""
    if not title:
        heading = re.search(r"^#\s+(.+)$", raw or "", re.MULTILINE)
        title = heading.group(1).strip() if heading else ""

    meta = soup.find("meta", attrs={"name": re.compile("^description$", re.IGNORECASE)})
    meta_description = _clean_text(meta.get("content", "")) if meta else ""

    # Links and images come from the full document, before any pruning
    links: List[str] = []
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        lowered = href.lower()
        if not href or "#" in href or lowered.startswith(("javascript:", "mailto:", "tel:")):
            continue
        if any(host in lowered for host in _SOCIAL_HOSTS):
            continue
        links.append(href)

    images: List[str] = []
    for img in soup.find_all("img", src=True):
        src = img["src"].strip()
        lowered = src.lower()
        if not src or lowered.startswith("data:") or any(n in lowered for n in _IMAGE_NOISE):
            continue
        images.append(src)

    for tag in soup(["script", "style", "nav", "footer", "header", "noscript"]):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    container = (
        soup.find("main")
        or soup.find("article")
        or soup.find("div", attrs={"class": _CONTENT_CONTAINER})
        or soup.find("div", attrs={"id": _CONTENT_CONTAINER})
        or soup.body
        or soup
    )
    content = _clean_text(container.get_text(" "))
    if meta_description and meta_description.lower()[:50] not in content.lower():
        content = f"{meta_description}\n\n{content}"

    word_count = len(content.split())
    content = content[:MAX_CONTENT_CHARS]
    links = list(dict.fromkeys(links))[:MAX_LINKS]

    return {
        "url": url,
        "title": title,
        "description": meta_description,
        "content": content,
        "metadata": {
            "last_modified": datetime.utcnow().isoformat(),
            "content_type": "text/html",
            "word_count": word_count,
            "links": links,
            "images": list(dict.fromkeys(images))[:MAX_IMAGES],
        },
        "sections": extract_sections(content, sections or ["/"]),
    }


def fingerprint(data: Dict[str, Any]) -> Dict[str, Any]:
    """Compact snapshot stored between crawls for change detection."""
    return {
        "content_hash": hashlib.sha256((data.get("content") or "").encode("utf-8")).hexdigest(),
        "title": data.get("title") or "",
        "word_count": data["metadata"]["word_count"],
        "links": list(data["metadata"]["links"]),
    }


def detect_changes(
    domain: str,
    current: Dict[str, Any],
    previous: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    if not previous:
        return {"type": "new", "details": [f"First crawl of {domain}"], "word_delta": 0, "new_links": []}

    if previous.get("content_hash") == current["content_hash"]:
        return {"type": "none", "details": [], "word_delta": 0, "new_links": []}

    details = [f"Content modified on {domain}"]
    if previous.get("title") != current["title"]:
        details.append(f"Title changed from '{previous.get('title')}' to '{current['title']}'")

    word_delta = current["word_count"] - int(previous.get("word_count") or 0)
    if word_delta:
        details.append(f"Word count changed by {word_delta:+d}")

    known = set(previous.get("links") or [])
    new_links = [link for link in current["links"] if link not in known]
    if new_links:
        details.append(f"{len(new_links)} new links: {', '.join(new_links[:5])}")

    return {"type": "modified", "details": details, "word_delta": word_delta, "new_links": new_links}


def change_priority(change: Optional[Dict[str, Any]]) -> str:
    if not change or change["type"] != "modified":
        return "low"
    if abs(change.get("word_delta") or 0) > 500:
        return "high"
    touched = " ".join(change.get("new_links") or []) + " " + " ".join(change.get("details") or [])
    if any(word in touched.lower() for word in _HIGH_SIGNAL):
        return "high"
    return "medium"


def next_check_time(frequency: str, now: Optional[datetime] = None) -> datetime:
    return next_crawl_time(frequency, now or datetime.utcnow())


class CrawlingAgent(BaseAgent):
    """
    Crawls competitor sites via Tavily Extract or a plain GET and
    tracks content changes between crawls.
    """

    def __init__(
        self,
        connectors: ConnectorRunner,
        rate_limiter: Optional[DomainRateLimiter] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
    ) -> None:
        super().__init__(
            AgentConfig(
                id="crawling_agent",
                name="Intelligent Web Crawling Agent",
                role="Web crawling, content extraction, and site monitoring",
                capabilities=[
                    "Tavily API Integration",
                    "Rate Limiting",
                    "Content Extraction & Processing",
                    "Change Detection & Monitoring",
                    "Batch Processing",
                ],
            )
        )
        self.connectors = connectors
        self.rate_limiter = rate_limiter or DomainRateLimiter(
            max_per_minute=settings.CRAWL_RATE_LIMIT_PER_MINUTE,
            min_delay_seconds=settings.CRAWL_MIN_DELAY_SECONDS,
        )
        self.batch_size = batch_size or settings.CRAWL_BATCH_SIZE
        self.batch_delay = settings.CRAWL_BATCH_DELAY_SECONDS if batch_delay is None else batch_delay
        # domain -> fingerprint of the last successful crawl
        self.snapshots: Dict[str, Dict[str, Any]] = {}

    async def run(self, task: Dict[str, Any]) -> AgentResult:
        task_type = task.get("type")
        if task_type == "crawl_domain":
            return await self.crawl_single_domain(task)
        if task_type == "batch_crawl":
            return await self.batch_crawl(task)
        if task_type == "monitor_changes":
            return await self.monitor_changes(task)
        if task_type == "new_competitors":
            return await self.handle_new_competitors(task)
        raise ValueError(f"Unknown task type: {task_type}")

    async def crawl_single_domain(self, task: Dict[str, Any]) -> AgentResult:
        domains = task.get("domains") or []
        if not domains:
            return AgentResult(success=False, error="No domain specified for crawling")

        result = await self.perform_crawl(domains[0], task)
        return AgentResult(
            success=result["success"],
            data=result,
            error=result.get("error"),
            metadata={
                "domain": result["domain"],
                "crawl_time": datetime.utcnow().isoformat(),
                "priority": task.get("priority") or "medium",
            },
        )

    async def batch_crawl(self, task: Dict[str, Any]) -> AgentResult:
        domains = task.get("domains") or []
        if not domains:
            return AgentResult(success=False, error="No domains specified for batch crawling")

        results: List[Dict[str, Any]] = []
        for start in range(0, len(domains), self.batch_size):
            batch = domains[start:start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self.perform_crawl(domain, task) for domain in batch),
                return_exceptions=True,
            )
            for domain, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    outcome = self._failed_result(strip_domain(domain), str(outcome) or "Unknown error", 0.0)
                results.append(outcome)

            if start + self.batch_size < len(domains) and self.batch_delay:
                await asyncio.sleep(self.batch_delay)

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]
        return AgentResult(
            success=bool(successful),
            data={
                "successful": len(successful),
                "failed": len(failed),
                "errors": [{"domain": r["domain"], "error": r.get("error")} for r in failed],
                "results": results,
                "summary": {
                    "total_crawled": len(results),
                    "success_rate": round(len(successful) / len(results) * 100, 2),
                },
            },
            error=None if successful else "All crawls failed",
            metadata={"batch_size": len(domains), "crawl_time": datetime.utcnow().isoformat()},
        )

    async def monitor_changes(self, task: Dict[str, Any]) -> AgentResult:
        domains = task.get("domains")
        if not domains:
            return AgentResult(success=False, error="No domains specified for change monitoring")

        changes = []
        errors = []
        for domain in domains:
            result = await self.perform_crawl(domain, task)
            if not result["success"]:
                errors.append({"domain": result["domain"], "error": result.get("error")})
                continue
            change = result["data"]["changes"]
            if change["type"] == "none":
                continue
            changes.append(
                {
                    "domain": result["domain"],
                    "changes": change,
                    "priority": change_priority(change),
                    "content": result["data"],
                }
            )

        frequency = task.get("frequency") or "daily"
        return AgentResult(
            success=True,
            data={
                "total_monitored": len(domains),
                "changes_detected": len(changes),
                "changes": changes,
                "errors": errors,
            },
            metadata={
                "monitoring_time": datetime.utcnow().isoformat(),
                "next_check": next_check_time(frequency).isoformat(),
            },
        )

    async def handle_new_competitors(self, task: Dict[str, Any]) -> AgentResult:
        competitors = task.get("competitors") or []
        if not competitors:
            return AgentResult(success=False, error="No competitors specified")

        crawled = []
        for competitor in competitors:
            result = await self.crawl_single_domain(
                {
                    "type": "crawl_domain",
                    "domains": [competitor["domain"]],
                    "sections": competitor.get("sections") or NEW_COMPETITOR_SECTIONS,
                    "priority": "high",
                }
            )
            if result.success:
                crawled.append(result.data)

        return AgentResult(
            success=bool(crawled),
            data={"competitors_crawled": len(crawled), "results": crawled},
            error=None if crawled else "No competitor could be crawled",
            metadata={"new_competitors_count": len(competitors), "successful_crawls": len(crawled)},
        )

    async def perform_crawl(self, domain: str, task: Dict[str, Any]) -> Dict[str, Any]:
        started = time.monotonic()
        clean = strip_domain(domain)
        url = f"https://{clean}"
        await self.rate_limiter.acquire(clean)

        sections = task.get("sections") or task.get("target_sections") or ["/"]
        last_error: Optional[str] = None
        raw: Optional[str] = None
        method = None

        if self.connectors.configured("tavily"):
            try:
                extracted = await self.connectors.get("tavily").extract(url)
                if extracted.get("raw_content"):
                    raw, method = extracted["raw_content"], "tavily"
            except Exception as e:
                last_error = str(e)
                logger.info(
                    "Tavily extract failed for %s: %s",
                    url,
                    e,
                    extra={"agent_id": self.id, "connector": "tavily"},
                )

        if raw is None:
            try:
                page = await self.connectors.get("web").get_page(url)
                raw, method = page["html"], "basic"
            except Exception as e:
                last_error = str(e) or e.__class__.__name__
                logger.info(
                    "Basic crawl failed for %s: %s",
                    url,
                    e,
                    extra={"agent_id": self.id, "connector": "web"},
                )

        elapsed = time.monotonic() - started
        if raw is None:
            return self._failed_result(clean, last_error or "All crawling methods failed", elapsed)

        data = process_content(raw, url, sections)
        current = fingerprint(data)
        baselines = task.get("baselines") or {}
        previous = self.snapshots.get(clean) or baselines.get(clean) or baselines.get(domain)
        data["changes"] = detect_changes(clean, current, previous)
        data["fingerprint"] = current
        self.snapshots[clean] = current

        return {
            "success": True,
            "domain": clean,
            "data": data,
            "crawl_metrics": {
                "method": method,
                "response_time_ms": int(elapsed * 1000),
                "status_code": 200,
                "content_size": len(raw),
                "timestamp": datetime.utcnow().isoformat(),
            },
        }

    @staticmethod
    def _failed_result(domain: str, error: str, elapsed: float) -> Dict[str, Any]:
        return {
            "success": False,
            "domain": domain,
            "error": error,
            "crawl_metrics": {
                "method": None,
                "response_time_ms": int(elapsed * 1000),
                "status_code": 0,
                "content_size": 0,
                "timestamp": datetime.utcnow().isoformat(),
            },
        }
