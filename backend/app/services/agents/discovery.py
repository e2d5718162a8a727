from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
import asyncio
import logging
import re

from .base import AgentConfig, AgentResult, BaseAgent
from ..connectors import ConnectorRunner

logger = logging.getLogger(__name__)

MAX_QUERIES = 8
MAX_COMPETITORS = 20
MAX_SOURCES = 50

SOCIAL_DOMAINS = ["facebook.com", "twitter.com", "linkedin.com", "instagram.com"]

# Aggregators, social networks and news outlets are never competitors
SKIP_DOMAINS = [
    "wikipedia.org", "linkedin.com", "crunchbase.com", "github.com",
    "stackoverflow.com", "reddit.com", "quora.com", "medium.com",
    "forbes.com", "techcrunch.com", "bloomberg.com", "reuters.com",
    "news.com", "cnn.com", "bbc.com", "wsj.com", "ft.com",
]
COMPANY_TLD = re.compile(r"\.(com|io|ai|co|net|org)$")

RELIABLE_DOMAINS = [
    "reuters.com", "bloomberg.com", "techcrunch.com", "forbes.com",
    "wsj.com", "ft.com", "economist.com", "cnbc.com",
]

INDUSTRY_LEADERS: Dict[str, List[str]] = {
    "crm": ["salesforce.com", "hubspot.com", "pipedrive.com", "zoho.com", "freshworks.com"],
    "ecommerce": ["shopify.com", "woocommerce.com", "magento.com", "bigcommerce.com", "squarespace.com"],
    "saas": ["atlassian.com", "slack.com", "notion.so", "airtable.com", "monday.com"],
    "marketing": ["mailchimp.com", "constantcontact.com", "sendinblue.com", "convertkit.com", "aweber.com"],
    "analytics": ["google.com", "adobe.com", "mixpanel.com", "amplitude.com", "hotjar.com"],
    "project management": ["asana.com", "trello.com", "monday.com", "clickup.com", "basecamp.com"],
    "communication": ["slack.com", "microsoft.com", "zoom.us", "discord.com", "telegram.org"],
    "design": ["figma.com", "canva.com", "adobe.com", "sketch.com", "invisionapp.com"],
    "development": ["github.com", "gitlab.com", "bitbucket.org", "vercel.com", "netlify.com"],
    "ai": ["openai.com", "anthropic.com", "cohere.ai", "huggingface.co", "replicate.com"],
}
DEFAULT_LEADERS = [
    "microsoft.com", "google.com", "amazon.com", "apple.com", "meta.com",
    "salesforce.com", "adobe.com", "oracle.com", "ibm.com", "servicenow.com",
]

_TITLE_SUFFIX = re.compile(r"\s*-\s*(Home|Homepage|Official Website|Website).*$", re.IGNORECASE)
_TITLE_PATTERNS = [
    re.compile(r"^([A-Z][a-zA-Z0-9\s&]+?)(?:\s*-|\s*\||$)"),
    re.compile(r"^([A-Z][a-zA-Z0-9\s&]+)$"),
]
_LEGAL_SUFFIX = re.compile(r"\b(Inc|LLC|Corp|Ltd|Company|Co)\b\.?", re.IGNORECASE)


def hostname(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def matches_domain(host: str, domains: List[str]) -> bool:
    """True when ``host`` is one of ``domains`` or a subdomain of one."""
    return any(host == d or host.endswith("." + d) for d in domains)


def fallback_results(query: str) -> List[Dict[str, Any]]:
    """Known industry leaders for the industries mentioned in ``query``."""
    lowered = query.lower()
    matched: List[str] = []
    for industry, domains in INDUSTRY_LEADERS.items():
        if industry in lowered or industry.replace(" ", "") in lowered:
            matched.extend(domains)
    if not matched:
        matched = list(DEFAULT_LEADERS)

    results = []
    for domain in matched[:8]:
        label = domain.split(".")[0]
        results.append(
            {
                "url": f"https://{domain}",
                "title": f"{label[:1].upper()}{label[1:]} - Industry Leader",
                "content": "Leading company in the industry providing competitive solutions.",
                "score": 0.8,
            }
        )
    return results


def extract_company_name(title: str, domain: str) -> str:
    clean_title = _TITLE_SUFFIX.sub("", title or "")
    clean_title = re.sub(r"\s*\|.*$", "", clean_title)
    clean_title = re.sub(r"\s*:.*$", "", clean_title).strip()

    name = ""
    for pattern in _TITLE_PATTERNS:
        match = pattern.match(clean_title)
        if match and 2 < len(match.group(1)) < 50:
            name = match.group(1).strip()
            break

    if len(name) < 3:
        label = domain.split(".")[0]
        name = re.sub(r"[-_]", " ", label).title().strip()

    name = _LEGAL_SUFFIX.sub("", name)
    name = re.sub(r"[^\w\s&]", "", name).strip()
    return name or domain


def extract_description(content: str) -> str:
    sentences = [s.strip() for s in (content or "").split(".") if len(s.strip()) > 20]
    return f"{sentences[0]}." if sentences else "No description available"


def categorize_source(url: str) -> str:
    lowered = url.lower()
    if any(token in lowered for token in ("news", "reuters", "bloomberg")):
        return "news"
    if "blog" in lowered or "medium" in lowered:
        return "blog"
    if "directory" in lowered or "list" in lowered:
        return "directory"
    if any(token in lowered for token in ("twitter", "linkedin", "facebook")):
        return "social"
    return "blog"


def is_reliable_source(url: str, score: float = 0.0) -> bool:
    host = hostname(url)
    if matches_domain(host, RELIABLE_DOMAINS):
        return True
    if "spam" in url or "ads" in url:
        return False
    return score > 0.7


class DiscoveryAgent(BaseAgent):
    """
    Finds competitor companies and useful industry sources.

    Search order per query: Tavily, then Serper, then a static list of
    well-known industry leaders so discovery never comes back empty.
    """

    def __init__(self, connectors: ConnectorRunner, query_delay: float = 1.0) -> None:
        super().__init__(
            AgentConfig(
                id="discovery_agent",
                name="Discovery Agent",
                role="Competitor & Source Discovery",
                capabilities=[
                    "Industry Analysis",
                    "Competitor Discovery",
                    "Source Identification",
                    "Market Research",
                    "Relevance Scoring",
                ],
            )
        )
        self.connectors = connectors
        self.query_delay = query_delay

    async def run(self, task: Dict[str, Any]) -> AgentResult:
        task_type = task.get("type")
        if task_type == "discover_competitors":
            return await self.discover_competitors(task)
        if task_type == "analyze_industry":
            return await self.analyze_industry(task)
        if task_type == "find_sources":
            return await self.find_sources(task)
        raise ValueError(f"Unknown task type: {task_type}")

    # ------------------------------------------------------------------
    # Task types
    # ------------------------------------------------------------------

    async def discover_competitors(self, task: Dict[str, Any]) -> AgentResult:
        if not task.get("industry") and not task.get("keywords"):
            return AgentResult(
                success=False,
                error="Industry or keywords required for competitor discovery",
            )

        competitors: List[Dict[str, Any]] = []
        sources: List[Dict[str, Any]] = []
        providers: Counter = Counter()

        for index, query in enumerate(self.generate_search_queries(task)):
            if index and self.query_delay:
                await asyncio.sleep(self.query_delay)
            provider, results = await self.perform_search(query)
            providers[provider] += 1
            competitors.extend(self.extract_competitors(results, task, provider))
            sources.extend(
                {
                    "url": r["url"],
                    "type": categorize_source(r["url"]),
                    "relevance": float(r.get("score") or 0.5),
                }
                for r in results
                if r.get("url")
            )

        unique_competitors = self._dedupe(competitors, "domain")
        unique_competitors.sort(key=lambda c: c["relevance_score"], reverse=True)
        unique_sources = self._dedupe(sources, "url")

        data = {
            "competitors": unique_competitors[:MAX_COMPETITORS],
            "sources": unique_sources[:MAX_SOURCES],
        }

        if data["competitors"]:
            self.send_message(
                "crawling_agent",
                "task",
                {"type": "new_competitors", "competitors": data["competitors"][:10]},
            )

        return AgentResult(
            success=True,
            data=data,
            metadata={
                "competitors_found": len(data["competitors"]),
                "sources_found": len(data["sources"]),
                "search_providers": dict(providers),
            },
        )

    async def analyze_industry(self, task: Dict[str, Any]) -> AgentResult:
        industry = task.get("industry")
        if not industry:
            return AgentResult(success=False, error="Industry is required for industry analysis")

        year = datetime.utcnow().year
        buckets = {
            f"{industry} market leaders {year}": "market_leaders",
            f"top companies in {industry}": "market_leaders",
            f"{industry} industry trends competitors": "industry_trends",
            f"emerging players {industry} startups": "emerging_players",
        }
        data: Dict[str, Any] = {
            "market_leaders": [],
            "emerging_players": [],
            "industry_trends": [],
            "industry": industry,
        }
        leader_domains: List[str] = []

        for query, bucket in buckets.items():
            _, results = await self.perform_search(query)
            data[bucket].extend(self._insight_sentences(results))
            if bucket == "market_leaders":
                leader_domains.extend(c["domain"] for c in self.extract_competitors(results, task, "search"))

        data["market_leaders"] = data["market_leaders"][:10]
        data["total_competitors"] = len(set(leader_domains))
        data["leader_domains"] = list(dict.fromkeys(leader_domains))[:10]

        return AgentResult(
            success=True,
            data=data,
            metadata={"industry": industry, "analysis_date": datetime.utcnow().isoformat()},
        )

    async def find_sources(self, task: Dict[str, Any]) -> AgentResult:
        industry = task.get("industry") or " ".join(task.get("keywords") or [])
        if not industry:
            return AgentResult(success=False, error="Industry or keywords required to find sources")

        queries = [
            f"{industry} news sources",
            f"{industry} blogs industry insights",
            f"{industry} market research reports",
            f"{industry} company directories",
        ]

        sources: List[Dict[str, Any]] = []
        for query in queries:
            _, results = await self.perform_search(query)
            for r in results:
                url = r.get("url")
                score = float(r.get("score") or 0.5)
                if url and is_reliable_source(url, score):
                    sources.append({"url": url, "type": categorize_source(url), "relevance": score})

        unique = sorted(self._dedupe(sources, "url"), key=lambda s: s["relevance"], reverse=True)[:100]
        return AgentResult(
            success=True,
            data={"sources": unique},
            metadata={
                "total_sources": len(unique),
                "source_types": dict(Counter(s["type"] for s in unique)),
            },
        )

    # ------------------------------------------------------------------
    # Search helpers
    # ------------------------------------------------------------------

    def generate_search_queries(self, task: Dict[str, Any]) -> List[str]:
        year = datetime.utcnow().year
        industry = task.get("industry")
        keywords = list(task.get("keywords") or [])
        existing = list(task.get("existing_competitors") or [])
        region = task.get("region")
        queries: List[str] = []

        if industry:
            queries += [
                f"top {industry} companies {year}",
                f"leading {industry} startups",
                f"{industry} market leaders competitors",
                f"best {industry} software companies",
                f"{industry} SaaS platforms",
                f"{industry} industry analysis competitors",
            ]

        for keyword in keywords[:3]:
            queries += [
                f"{keyword} companies",
                f"{keyword} software platforms",
                f"{keyword} industry leaders",
                f"best {keyword} tools {year}",
            ]
        if len(keywords) > 1:
            combined = " ".join(keywords[:3])
            queries += [
                f"{combined} competitors",
                f"{combined} alternatives",
                f"{combined} market analysis",
            ]

        if existing:
            company = existing[0]
            queries += [
                f"companies like {company}",
                f"{company} competitors alternatives",
                f"{company} vs competitors",
            ]

        if region and industry:
            queries += [
                f"{industry} companies {region}",
                f"top {region} {industry} startups",
            ]

        return list(dict.fromkeys(queries))[:MAX_QUERIES]

    async def perform_search(self, query: str) -> tuple[str, List[Dict[str, Any]]]:
        """Returns (provider, results); provider is tavily, serper or fallback."""
        for name in ("tavily", "serper"):
            if not self.connectors.configured(name):
                continue
            try:
                if name == "tavily":
                    results = await self.connectors.get("tavily").search(
                        query,
                        search_depth="advanced",
                        max_results=10,
                        exclude_domains=SOCIAL_DOMAINS,
                    )
                else:
                    results = await self.connectors.get("serper").search(query, num=10)
            except Exception as e:
                logger.warning(
                    "Search failed for %r: %s",
                    query,
                    e,
                    extra={"agent_id": self.id, "connector": name},
                )
                continue
            if results:
                return name, results

        logger.info(
            "Using static fallback for %r",
            query,
            extra={"agent_id": self.id, "step": "search_fallback"},
        )
        return "fallback", fallback_results(query)

    def extract_competitors(
        self,
        results: List[Dict[str, Any]],
        task: Dict[str, Any],
        provider: str,
    ) -> List[Dict[str, Any]]:
        existing = {hostname(c) or c.lower() for c in task.get("existing_competitors") or []}
        competitors = []
        for result in results:
            domain = hostname(result.get("url") or "")
            if not domain or domain in existing:
                continue
            if matches_domain(domain, SKIP_DOMAINS):
                continue
            if not COMPANY_TLD.search(domain):
                continue

            competitor = {
                "domain": domain,
                "name": extract_company_name(result.get("title") or "", domain),
                "description": extract_description(result.get("content") or ""),
                "relevance_score": self.relevance_score(result, task),
                "industry": task.get("industry") or "Technology",
                "similarity_reasons": self.similarity_reasons(result, task),
                "discovery_source": provider,
            }
            if competitor["relevance_score"] > 0.2 and len(competitor["name"]) > 2:
                competitors.append(competitor)
        return competitors

    @staticmethod
    def _matching_keywords(result: Dict[str, Any], keywords: List[str]) -> List[str]:
        text = f"{result.get('title') or ''} {result.get('content') or ''}".lower()
        return [k for k in keywords if k.lower() in text]

    def relevance_score(self, result: Dict[str, Any], task: Dict[str, Any]) -> float:
        score = 0.5
        keywords = task.get("keywords") or []
        if keywords:
            score += len(self._matching_keywords(result, keywords)) / len(keywords) * 0.3
        url = result.get("url") or ""
        if ".com" in url and "wikipedia" not in url:
            score += 0.2
        return round(min(score, 1.0), 3)

    def similarity_reasons(self, result: Dict[str, Any], task: Dict[str, Any]) -> List[str]:
        reasons = []
        if task.get("industry"):
            reasons.append(f"Same industry: {task['industry']}")
        matching = self._matching_keywords(result, task.get("keywords") or [])
        if matching:
            reasons.append(f"Matching keywords: {', '.join(matching)}")
        return reasons

    @staticmethod
    def _insight_sentences(results: List[Dict[str, Any]]) -> List[str]:
        sentences = []
        for r in results:
            sentences.extend(s.strip() for s in (r.get("content") or "").split(".") if len(s.strip()) > 20)
        return sentences[:5]

    @staticmethod
    def _dedupe(items: List[Dict[str, Any]], key: str) -> List[Dict[str, Any]]:
        seen: set[str] = set()
        unique = []
        for item in items:
            if item[key] in seen:
                continue
            seen.add(item[key])
            unique.append(item)
        return unique
