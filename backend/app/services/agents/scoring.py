"""
Heuristic text scoring for research sources and insights.

Everything here is keyword based and deterministic; it ranks and labels
search results, it does not understand them.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from statistics import mean
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse
import re

STOPWORDS = {
    "about", "above", "after", "again", "against", "their", "there", "these",
    "those", "which", "while", "where", "would", "could", "should", "other",
    "being", "because", "before", "between", "through", "during", "under",
    "until", "within", "without", "every", "still", "might", "shall", "since",
    "whose", "where", "your", "yours", "company", "companies", "also", "more",
    "most", "such", "than", "them", "then", "they", "this", "that", "what",
    "when", "with", "have", "from", "into", "over", "some", "only", "very",
}
POSITIVE_WORDS = {"good", "great", "excellent", "positive", "growth", "success", "opportunity", "gain", "strong"}
NEGATIVE_WORDS = {"bad", "poor", "negative", "decline", "crisis", "problem", "risk", "loss", "weak"}

HIGH_CREDIBILITY = (".edu", ".gov", "reuters.com", "bloomberg.com", "nature.com", "science.org")
REFERENCE_SITES = ("wikipedia", "britannica")

PREFERRED_DOMAINS: Dict[str, List[str]] = {
    "academic": [
        "scholar.google.com", "jstor.org", "pubmed.ncbi.nlm.nih.gov",
        "arxiv.org", "researchgate.net", "academia.edu", "springer.com",
        "nature.com", "science.org", "ieee.org", "acm.org",
    ],
    "news": [
        "reuters.com", "bloomberg.com", "wsj.com", "ft.com",
        "economist.com", "bbc.com", "cnn.com", "nytimes.com",
        "washingtonpost.com", "theguardian.com", "apnews.com",
    ],
    "industry": [
        "mckinsey.com", "bcg.com", "deloitte.com", "pwc.com",
        "gartner.com", "forrester.com", "idc.com", "statista.com",
        "techcrunch.com", "venturebeat.com", "crunchbase.com",
    ],
    "social": [
        "twitter.com", "linkedin.com", "reddit.com", "medium.com",
        "substack.com", "youtube.com", "facebook.com",
    ],
}
ALWAYS_EXCLUDED = [
    "pinterest.com", "instagram.com", "tiktok.com",
    "quora.com", "answers.yahoo.com", "ehow.com",
    "wikihow.com", "buzzfeed.com",
]
EXCLUDE_BY_TERM = {
    "social": ["facebook.com", "twitter.com", "instagram.com"],
    "wiki": ["wikipedia.org", "wikimedia.org"],
    "blog": ["blogger.com", "wordpress.com", "medium.com"],
}

INSIGHT_CATEGORIES = [
    "Market Analysis",
    "Competitive Landscape",
    "Trend Identification",
    "Strategic Insights",
    "Risk Assessment",
]
MARKET_CATEGORIES = {
    "market analysis": "Market Overview",
    "competitive landscape": "Competitive Landscape",
    "trend identification": "Market Growth & Opportunities",
    "strategic insights": "Technology & Innovation",
    "risk assessment": "Market Risks & Challenges",
}

_WORD = re.compile(r"[a-z][a-z'-]+")
_QUOTE = re.compile(r"[\"“]([^\"”]{10,300})[\"”]")


def _host(url: str) -> str:
    return (urlparse(url or "").hostname or "").lower()


def _words(text: str) -> List[str]:
    return _WORD.findall((text or "").lower())


def source_credibility(result: Dict[str, Any]) -> float:
    score = 0.5
    host = _host(result.get("url") or "")
    if ".edu" in host or ".gov" in host:
        score += 0.3
    if any(site in host for site in REFERENCE_SITES):
        score += 0.2
    if "reuters" in host or "bloomberg" in host:
        score += 0.2
    if result.get("published_date"):
        score += 0.1
    if result.get("author"):
        score += 0.1
    return round(min(score, 1.0), 2)


def domain_credibility(url: str) -> float:
    host = _host(url)
    if not host:
        return 0.3
    if any(marker in host for marker in HIGH_CREDIBILITY):
        return 0.9
    if any(site in host for site in REFERENCE_SITES):
        return 0.7
    return 0.5


def source_type(url: str) -> str:
    host = _host(url)
    if not host:
        return "unknown"
    if ".edu" in host or host.endswith(".org"):
        return "academic"
    if ".gov" in host:
        return "official"
    if "news" in host or "reuters" in host or "bloomberg" in host:
        return "news"
    if "blog" in host or "medium" in host:
        return "blog"
    if "report" in host or "research" in host:
        return "report"
    if any(social in host for social in PREFERRED_DOMAINS["social"]):
        return "social"
    return "unknown"


def relevance_score(content: str, query: str, focus_areas: Iterable[str] = ()) -> float:
    lowered = (content or "").lower()
    score = 0.5
    if query and query.lower() in lowered:
        score += 0.3
    else:
        terms = [w for w in _words(query) if w not in STOPWORDS and len(w) > 2]
        if terms:
            score += 0.3 * sum(1 for t in terms if t in lowered) / len(terms)
    for area in focus_areas:
        if area.lower() in lowered:
            score += 0.1
    return round(min(score, 1.0), 2)


def sentiment(content: str) -> str:
    counts = Counter(_words(content))
    positive = sum(counts[w] for w in POSITIVE_WORDS)
    negative = sum(counts[w] for w in NEGATIVE_WORDS)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def key_topics(content: str, limit: int = 5) -> List[str]:
    counts = Counter(w for w in _words(content) if len(w) > 4 and w not in STOPWORDS)
    return [word for word, _ in counts.most_common(limit)]


def extract_quotes(content: str, limit: int = 3) -> List[str]:
    return [m.strip() for m in _QUOTE.findall(content or "")][:limit]


def build_source(result: Dict[str, Any], query: str, focus_areas: Iterable[str] = ()) -> Dict[str, Any]:
    content = result.get("content") or result.get("snippet") or ""
    url = result.get("url") or ""
    return {
        "url": url,
        "title": result.get("title") or "Untitled",
        "content": content,
        "published_date": result.get("published_date"),
        "author": result.get("author"),
        "credibility_score": max(source_credibility(result), domain_credibility(url)),
        "source_type": source_type(url),
        "relevance_score": relevance_score(content, query, focus_areas),
        "sentiment": sentiment(content),
        "key_topics": key_topics(content),
        "quotes": extract_quotes(content),
    }


def insight_category(section: str, index: int) -> str:
    lowered = section.lower()
    if "market" in lowered:
        return "Market Analysis"
    if "competitor" in lowered or "competition" in lowered:
        return "Competitive Landscape"
    if "trend" in lowered or "emerging" in lowered:
        return "Trend Identification"
    if "risk" in lowered or "threat" in lowered:
        return "Risk Assessment"
    return INSIGHT_CATEGORIES[index % len(INSIGHT_CATEGORIES)]


def insight_confidence(section: str, source_count: int) -> float:
    lowered = section.lower()
    confidence = 0.6
    if "data shows" in lowered or "research indicates" in lowered or re.search(r"\d+(\.\d+)?%", section):
        confidence += 0.2
    if "study" in lowered or "analysis" in lowered or "survey" in lowered:
        confidence += 0.1
    if source_count > 5:
        confidence += 0.1
    return round(min(confidence, 1.0), 2)


def implications(section: str) -> List[str]:
    lowered = section.lower()
    found = []
    if "impact" in lowered:
        found.append("Significant market impact expected")
    if "growth" in lowered:
        found.append("Growth opportunities identified")
    if "risk" in lowered:
        found.append("Risk mitigation strategies needed")
    return found


def section_recommendations(section: str, limit: int = 2) -> List[str]:
    sentences = [s.strip() for s in re.split(r"(?<=[.!?])\s+", section)]
    picked = [s for s in sentences if s and re.search(r"\b(should|recommend\w*)\b", s, re.IGNORECASE)]
    return picked[:limit]


def trend_direction(content: str) -> str:
    lowered = content.lower()
    rising = any(k in lowered for k in ("increasing", "growing", "rising", "expanding", "surge", "boom"))
    declining = any(k in lowered for k in ("decreasing", "declining", "falling", "shrinking", "drop"))
    if rising and declining:
        return "volatile"
    if rising:
        return "rising"
    if declining:
        return "declining"
    return "stable"


def trend_strength(content: str) -> float:
    lowered = content.lower()
    strength = 0.5 + 0.1 * sum(
        1 for k in ("significant", "major", "substantial", "dramatic", "rapid") if k in lowered
    )
    return round(min(strength, 1.0), 2)


def timeframe(content: str, now: Optional[datetime] = None) -> str:
    year = str((now or datetime.utcnow()).year)
    lowered = content.lower()
    if year in content:
        return year
    if "recent" in lowered or "latest" in lowered:
        return "Recent"
    if "quarterly" in lowered:
        return "Quarterly"
    if "annual" in lowered or "yearly" in lowered:
        return "Annual"
    return "Current"


def driving_factors(content: str) -> List[str]:
    lowered = content.lower()
    factors = []
    if "due to" in lowered or "because of" in lowered:
        factors.append("Market conditions")
    if "technology" in lowered or "innovation" in lowered:
        factors.append("Technological advancement")
    if "demand" in lowered or "consumer" in lowered:
        factors.append("Consumer demand")
    return factors


def potential_impact(content: str) -> str:
    lowered = content.lower()
    if "significant" in lowered or "major" in lowered:
        return "High potential impact on market dynamics"
    if "moderate" in lowered or "steady" in lowered:
        return "Moderate impact expected"
    return "Limited immediate impact"


def market_position(contents: Iterable[str]) -> str:
    text = " ".join(contents).lower()
    if "market leader" in text or "dominant" in text:
        return "Market Leader"
    if "challenger" in text or "competitor" in text:
        return "Strong Challenger"
    if "niche" in text or "specialized" in text:
        return "Niche Player"
    if "emerging" in text or "startup" in text:
        return "Emerging Player"
    return "Established Player"


def market_category(category: str) -> str:
    return MARKET_CATEGORIES.get(category.lower(), category)


def common_elements(items: Iterable[str]) -> List[str]:
    counts = Counter(items)
    return [item for item, count in counts.most_common() if count > 1]


def confidence_score(sources: List[Dict[str, Any]], insights: List[Dict[str, Any]]) -> float:
    """
    Blend of source credibility, insight confidence and source coverage.
    Zero when nothing was found.
    """
    if not sources and not insights:
        return 0.0
    top = sorted((s["credibility_score"] for s in sources), reverse=True)[:10]
    credibility = mean(top) if top else 0.0
    insight_conf = mean(i["confidence"] for i in insights) if insights else 0.0
    coverage = min(1.0, len(sources) / 10)
    return round(0.5 * credibility + 0.3 * insight_conf + 0.2 * coverage, 2)


def preferred_domains(source_kind: Optional[str]) -> List[str]:
    if not source_kind or source_kind == "all":
        return []
    return list(PREFERRED_DOMAINS.get(source_kind, []))


def excluded_domains(exclude_terms: Iterable[str] = ()) -> List[str]:
    domains = list(ALWAYS_EXCLUDED)
    for term in exclude_terms:
        lowered = term.lower()
        for marker, extra in EXCLUDE_BY_TERM.items():
            if marker in lowered:
                domains.extend(extra)
    return list(dict.fromkeys(domains))
