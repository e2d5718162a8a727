from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
import asyncio
import logging
import re
import time

from .base import AgentConfig, AgentResult, BaseAgent
from . import scoring
from ..caching import cache_key, cached_get
from ..connectors import ConnectorNotConfigured, ConnectorRunner
from ..rate_limit import HourlyQuota
from ...core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

RESEARCH_TYPES = (
    "deep_research",
    "competitive_analysis",
    "market_intelligence",
    "trend_analysis",
    "source_verification",
    "contextual_research",
)

MAX_QUERIES = 5
MAX_SOURCES = 50
MAX_COMPETITIVE_SOURCES = 20

EXTRA_FOCUS: Dict[str, List[str]] = {
    "market_intelligence": [
        "market size and growth",
        "market trends",
        "key players and competition",
        "opportunities and challenges",
        "regulatory environment",
        "consumer behavior",
    ],
    "trend_analysis": [
        "emerging trends",
        "trend analysis",
        "market direction",
        "future outlook",
        "industry evolution",
        "consumer preferences",
    ],
    "source_verification": [
        "source credibility",
        "fact checking",
        "verification",
        "authority assessment",
        "bias analysis",
    ],
    "contextual_research": [
        "contextual analysis",
        "domain expertise",
        "specialized knowledge",
        "industry context",
    ],
}

PROMPT_HEADERS = {
    "deep_research": "Conduct an exhaustive research analysis on: {query}",
    "competitive_analysis": "Perform a detailed competitive intelligence analysis on: {query}",
    "market_intelligence": "Gather comprehensive market intelligence on: {query}",
    "trend_analysis": "Conduct a comprehensive trend analysis on: {query}",
    "source_verification": "Perform rigorous source verification and fact-checking on: {query}",
    "contextual_research": "Conduct specialized contextual research on: {query}",
}

PROMPT_POINTS = {
    "deep_research": [
        "Comprehensive executive summary with key insights",
        "Detailed findings with supporting evidence",
        "Major trends and patterns identified",
        "Competitive landscape analysis",
        "Market opportunities and threats",
        "Actionable strategic recommendations",
        "Data-backed conclusions with specific metrics",
        "Future outlook and predictions",
        "Risk assessment and mitigation strategies",
    ],
    "competitive_analysis": [
        "Competitive positioning analysis",
        "Strengths and weaknesses of each competitor",
        "Market share and positioning",
        "Recent strategic moves and developments",
        "Technology and innovation capabilities",
        "Pricing strategies and business models",
        "SWOT analysis for each competitor",
        "Competitive threats and opportunities",
        "Strategic recommendations for competitive advantage",
    ],
    "market_intelligence": [
        "Market size, growth rate, and forecasts",
        "Market segmentation and key demographics",
        "Industry trends and driving forces",
        "Regulatory environment and compliance requirements",
        "Key market players and their market share",
        "Entry barriers and market dynamics",
        "Customer behavior and preferences",
        "Supply chain and distribution channels",
        "Investment opportunities and market outlook",
    ],
    "trend_analysis": [
        "Emerging trends and their trajectory",
        "Trend drivers and underlying causes",
        "Timeline and adoption patterns",
        "Impact assessment on industry/market",
        "Geographic and demographic variations",
        "Technology enablers and disruptors",
        "Potential future scenarios",
        "Early indicators and warning signs",
        "Strategic implications and recommendations",
    ],
    "source_verification": [
        "Source credibility assessment",
        "Cross-verification of key claims",
        "Bias analysis and perspective evaluation",
        "Fact-checking against authoritative sources",
        "Methodology and data quality review",
        "Conflicting information identification",
        "Reliability scoring and confidence levels",
        "Alternative viewpoints and counterarguments",
        "Verification recommendations and caveats",
    ],
    "contextual_research": [
        "Domain-specific analysis and insights",
        "Contextual background and framework",
        "Specialized knowledge and expertise",
        "Industry-specific implications",
        "Technical or regulatory considerations",
        "Best practices and case studies",
        "Expert opinions and thought leadership",
        "Contextual risks and opportunities",
        "Tailored recommendations for the specific context",
    ],
}

TASK_RECOMMENDATIONS = {
    "competitive_analysis": "Conduct regular competitive monitoring to stay ahead of market changes",
    "market_intelligence": "Establish key performance indicators to track market opportunities",
    "trend_analysis": "Set up alerts for emerging trends in your industry",
}

TIMEFRAME_WORDS = ("recent", "latest", "new", "emerging", "upcoming", "future")
TREND_WORDS = ("trend", "growing", "increasing", "declining", "rising", "shift", "adoption")

COMPETITOR_QUERIES = [
    "{competitor} company analysis business strategy {year}",
    "{competitor} financial performance revenue market share",
    "{competitor} products services offerings competitive advantages",
    "{competitor} recent news acquisitions partnerships",
    "{competitor} technology innovation digital transformation",
]


def _sentences_with(content: str, pattern: str, limit: int = 2) -> List[str]:
    found = re.findall(rf"[^.]*\b(?:{pattern})[^.]*\.", content, re.IGNORECASE)
    return [s.strip() for s in found if s.strip()][:limit]


def _unique(items: List[str], limit: int) -> List[str]:
    return list(dict.fromkeys(items))[:limit]


class ResearchAgent(BaseAgent):
    """
    Multi-source research: Tavily search, Perplexity analysis and a Serper
    supplementary search, merged into scored sources, insights and trends.

    Results are cached per task for RESEARCH_CACHE_TTL_SECONDS; paid APIs
    are held to an hourly call quota.
    """

    def __init__(
        self,
        connectors: ConnectorRunner,
        quota: Optional[HourlyQuota] = None,
        request_delay: float = 0.2,
    ) -> None:
        super().__init__(
            AgentConfig(
                id="research_agent",
                name="Advanced Research Intelligence Agent",
                role="Deep Research & Competitive Intelligence",
                capabilities=[
                    "Deep Web Research",
                    "Competitive Analysis",
                    "Market Intelligence",
                    "Trend Analysis",
                    "Source Verification",
                    "Contextual Research",
                    "Multi-Source Synthesis",
                ],
            )
        )
        self.connectors = connectors
        self.quota = quota or HourlyQuota(
            {
                "tavily": settings.TAVILY_HOURLY_LIMIT,
                "perplexity": settings.PERPLEXITY_HOURLY_LIMIT,
            }
        )
        self.request_delay = request_delay

    async def run(self, task: Dict[str, Any]) -> AgentResult:
        task_type = task.get("type")
        if task_type not in RESEARCH_TYPES:
            raise ValueError(f"Unknown research task type: {task_type}")
        if not task.get("query"):
            return AgentResult(success=False, error="Research query is required")
        if not any(self.connectors.configured(name) for name in ("tavily", "perplexity", "serper")):
            return AgentResult(
                success=False,
                error=(
                    "No research API keys configured. Set TAVILY_API_KEY, "
                    "PERPLEXITY_API_KEY or SERPER_API_KEY."
                ),
            )

        key = cache_key("research", task)
        cached = await cached_get(key)
        if cached is not None:
            logger.info("Research cache hit", extra={"agent_id": self.id, "step": task_type})
            return AgentResult(success=True, data=cached, metadata={"cached": True})

        if task_type == "competitive_analysis":
            data = await self.competitive_analysis(task)
        else:
            data = await self.deep_research(task)

        await cached_get(key, set_value=data, ttl=settings.RESEARCH_CACHE_TTL_SECONDS)
        self.notify_agents(data)
        return AgentResult(success=True, data=data, metadata={"cached": False})

    # ------------------------------------------------------------------
    # Deep research and its focused variants
    # ------------------------------------------------------------------

    async def deep_research(self, task: Dict[str, Any]) -> Dict[str, Any]:
        task_type = task.get("type") or "deep_research"
        started = time.monotonic()
        focus_areas = list(EXTRA_FOCUS.get(task_type, [])) + list(task.get("focus_areas") or [])
        task = {**task, "focus_areas": focus_areas}

        tavily, perplexity, supplementary = await asyncio.gather(
            self.search_with_tavily(task),
            self.analyze_with_perplexity(task),
            self.supplementary_search(task),
            return_exceptions=True,
        )

        methods: List[str] = []
        limitations: List[str] = []
        raw_results: List[Dict[str, Any]] = []

        if isinstance(tavily, BaseException):
            limitations.append(f"Tavily search unavailable: {tavily}")
        else:
            methods.append("Tavily Search")
            raw_results.extend(tavily)

        if isinstance(perplexity, BaseException) or not perplexity:
            reason = f": {perplexity}" if isinstance(perplexity, BaseException) else ""
            limitations.append(f"Perplexity analysis unavailable{reason}")
            perplexity = None
        else:
            methods.append("Perplexity Analysis")

        if isinstance(supplementary, BaseException):
            limitations.append(f"Supplementary search unavailable: {supplementary}")
        else:
            methods.append("Serper Search")
            raw_results.extend(supplementary)

        sources = self.process_results(raw_results, task)
        if len(sources) < 5:
            limitations.append("Fewer than 5 sources analyzed")

        insights = self.generate_insights(sources, task, perplexity)
        trends = self.identify_trends(sources, task)

        if task_type == "market_intelligence":
            for insight in insights:
                insight["category"] = scoring.market_category(insight["category"])
        if task_type == "source_verification":
            for source in sources:
                source["credibility_score"] = scoring.source_credibility(source)

        metadata: Dict[str, Any] = {
            "task_type": task_type,
            "sources_analyzed": len(sources),
            "time_spent_ms": int((time.monotonic() - started) * 1000),
            "methods_used": methods,
            "limitations": limitations,
        }
        if perplexity and perplexity.get("citations"):
            metadata["citations"] = perplexity["citations"]
        if task_type == "contextual_research" and task.get("custom_instructions"):
            metadata["custom_instructions"] = task["custom_instructions"]

        return {
            "query": task["query"],
            "summary": self.executive_summary(sources, insights, task),
            "key_findings": self.key_findings(sources, insights),
            "sources": sources[:MAX_SOURCES],
            "insights": insights,
            "trends": trends,
            "recommendations": self.recommendations(insights, trends, task_type),
            "confidence_score": scoring.confidence_score(sources, insights),
            "research_depth": (task.get("context") or {}).get("depth") or "comprehensive",
            "metadata": metadata,
        }

    async def competitive_analysis(self, task: Dict[str, Any]) -> Dict[str, Any]:
        started = time.monotonic()
        competitors = list((task.get("context") or {}).get("competitors") or [])
        year = datetime.utcnow().year
        intel: List[Dict[str, Any]] = []
        all_sources: List[Dict[str, Any]] = []

        for competitor in competitors:
            calls = []
            for index, template in enumerate(COMPETITOR_QUERIES):
                if not self.quota.try_acquire("tavily"):
                    logger.warning(
                        "Tavily hourly quota exhausted",
                        extra={"agent_id": self.id, "connector": "tavily"},
                    )
                    break
                calls.append(
                    (
                        f"{competitor}:{index}",
                        "tavily",
                        {
                            "query": template.format(competitor=competitor, year=year),
                            "search_depth": "advanced",
                            "max_results": 5,
                            "include_raw_content": True,
                            "exclude_domains": scoring.excluded_domains(task.get("exclude_terms") or []),
                        },
                    )
                )
            responses = await self.connectors.run_many(calls)
            raw = [r for res in responses.values() for r in (res.get("results") or [])]
            sources = self.process_results(
                raw,
                {**task, "query": competitor, "focus_areas": ["competitive intelligence", "market analysis"]},
            )
            if sources:
                intel.append(self.competitive_intel(competitor, sources))
                all_sources.extend(sources)

        perplexity = await self._optional_perplexity(task)
        insights = self.generate_insights(all_sources, task, perplexity) if perplexity else []

        methods = ["Tavily Search", "Competitive Intelligence"]
        if perplexity:
            methods.insert(1, "Perplexity Analysis")

        return {
            "query": task["query"],
            "summary": self.competitive_summary(intel, task),
            "key_findings": self.competitive_findings(intel),
            "sources": all_sources[:MAX_COMPETITIVE_SOURCES],
            "insights": insights,
            "trends": [],
            "competitive_intel": intel,
            "recommendations": self.strategic_recommendations(intel),
            "confidence_score": scoring.confidence_score(all_sources, insights),
            "research_depth": (task.get("context") or {}).get("depth") or "comprehensive",
            "metadata": {
                "task_type": "competitive_analysis",
                "sources_analyzed": len(all_sources),
                "competitors_analyzed": len(intel),
                "time_spent_ms": int((time.monotonic() - started) * 1000),
                "methods_used": methods,
            },
        }

    # ------------------------------------------------------------------
    # Connector calls
    # ------------------------------------------------------------------

    def generate_queries(self, task: Dict[str, Any]) -> List[str]:
        query = task["query"]
        context = task.get("context") or {}
        queries = [query]
        queries += [f"{query} {area}" for area in task.get("focus_areas") or []]
        if context.get("industry"):
            queries.append(f"{query} {context['industry']} industry")

        if context.get("timeframe") == "recent":
            year = datetime.utcnow().year
            queries = [f"{q} {year} latest recent" for q in queries]

        exclude = task.get("exclude_terms") or []
        if exclude:
            clause = " ".join(f'-"{term}"' for term in exclude)
            queries = [f"{q} {clause}" for q in queries]

        return list(dict.fromkeys(queries))[:MAX_QUERIES]

    async def search_with_tavily(self, task: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not self.connectors.configured("tavily"):
            raise ConnectorNotConfigured("TAVILY_API_KEY is not set")
        context = task.get("context") or {}
        depth = context.get("depth")
        tavily = self.connectors.get("tavily")

        results: List[Dict[str, Any]] = []
        for index, query in enumerate(self.generate_queries(task)):
            if not self.quota.try_acquire("tavily"):
                if index == 0:
                    raise RuntimeError("Tavily hourly quota exhausted")
                break
            if index and self.request_delay:
                await asyncio.sleep(self.request_delay)
            try:
                data = await tavily.search_raw(
                    query=query,
                    search_depth="advanced" if depth == "exhaustive" else "basic",
                    max_results=5 if depth == "surface" else 15,
                    include_answer=True,
                    include_raw_content=True,
                    include_domains=scoring.preferred_domains(context.get("sources")) or None,
                    exclude_domains=scoring.excluded_domains(task.get("exclude_terms") or []),
                )
            except Exception as e:
                logger.warning(
                    "Tavily query failed: %s",
                    e,
                    extra={"agent_id": self.id, "connector": "tavily"},
                )
                continue
            results.extend(data.get("results") or [])
        return results

    def perplexity_prompt(self, task: Dict[str, Any]) -> str:
        task_type = task.get("type") or "deep_research"
        context = task.get("context") or {}
        lines = [PROMPT_HEADERS.get(task_type, PROMPT_HEADERS["deep_research"]).format(query=task["query"]), ""]
        if task_type == "competitive_analysis" and context.get("competitors"):
            lines.append(f"Key Competitors to Analyze: {', '.join(context['competitors'])}")
        if task_type == "contextual_research" and task.get("custom_instructions"):
            lines.append(f"Special Instructions: {task['custom_instructions']}")
        lines.append("Please provide:")
        points = PROMPT_POINTS.get(task_type, PROMPT_POINTS["deep_research"])
        lines += [f"{i}. {point}" for i, point in enumerate(points, start=1)]

        lines.append("")
        if context.get("industry"):
            lines.append(f"Industry Context: {context['industry']}")
        if task.get("focus_areas"):
            lines.append(f"Focus Areas: {', '.join(task['focus_areas'])}")
        if context.get("depth"):
            lines.append(f"Research Depth: {context['depth']}")
        if context.get("memory_context"):
            lines.append(f"Previous Research Context: {str(context['memory_context'])[:1500]}")

        lines.append("")
        lines.append(
            "Please cite all sources and provide confidence levels for your key findings. "
            "Use specific data, metrics, and examples wherever possible."
        )
        return "\n".join(lines)

    async def analyze_with_perplexity(self, task: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.connectors.configured("perplexity"):
            raise ConnectorNotConfigured("PERPLEXITY_API_KEY is not set")
        if not self.quota.try_acquire("perplexity"):
            raise RuntimeError("Perplexity hourly quota exhausted")
        depth = (task.get("context") or {}).get("depth")
        result = await self.connectors.get("perplexity").analyze(
            self.perplexity_prompt(task),
            max_tokens=4000 if depth == "exhaustive" else 2000,
        )
        return result or None

    async def _optional_perplexity(self, task: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            return await self.analyze_with_perplexity(task)
        except Exception as e:
            logger.warning(
                "Perplexity analysis skipped: %s",
                e,
                extra={"agent_id": self.id, "connector": "perplexity"},
            )
            return None

    async def supplementary_search(self, task: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not self.connectors.configured("serper"):
            raise ConnectorNotConfigured("SERPER_API_KEY is not set")
        return await self.connectors.get("serper").search(self.generate_queries(task)[0], num=10)

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def process_results(self, results: List[Dict[str, Any]], task: Dict[str, Any]) -> List[Dict[str, Any]]:
        seen = set()
        sources = []
        for result in results:
            url = result.get("url")
            if not url or url in seen:
                continue
            seen.add(url)
            sources.append(scoring.build_source(result, task["query"], task.get("focus_areas") or []))
        sources.sort(key=lambda s: (s["credibility_score"] + s["relevance_score"]), reverse=True)
        return sources

    def generate_insights(
        self,
        sources: List[Dict[str, Any]],
        task: Dict[str, Any],
        perplexity: Optional[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        insights: List[Dict[str, Any]] = []
        supporting = [s["url"] for s in sources if s["credibility_score"] > 0.6][:3]

        if perplexity and perplexity.get("analysis"):
            sections = [s.strip() for s in perplexity["analysis"].split("\n\n") if len(s.strip()) > 50]
            for index, section in enumerate(sections):
                insights.append(
                    {
                        "insight": section,
                        "category": scoring.insight_category(section, index),
                        "confidence": scoring.insight_confidence(section, len(sources)),
                        "supporting_sources": supporting,
                        "implications": scoring.implications(section),
                        "actionable_recommendations": scoring.section_recommendations(section),
                    }
                )

        for source in [s for s in sources if s["credibility_score"] > 0.7][:5]:
            if len(source["content"]) <= 50:
                continue
            insights.append(
                {
                    "insight": source["content"][:300],
                    "category": "Source Analysis",
                    "confidence": source["credibility_score"],
                    "supporting_sources": [source["url"]],
                    "implications": scoring.implications(source["content"]),
                    "actionable_recommendations": scoring.section_recommendations(source["content"]),
                }
            )
        return insights

    def identify_trends(self, sources: List[Dict[str, Any]], task: Dict[str, Any]) -> List[Dict[str, Any]]:
        trends: Dict[str, Dict[str, Any]] = {}
        for source in sources:
            lowered = source["content"].lower()
            if source["credibility_score"] <= 0.6:
                continue
            if not any(w in lowered for w in TIMEFRAME_WORDS) or not any(w in lowered for w in TREND_WORDS):
                continue
            topic = source["key_topics"][0] if source["key_topics"] else None
            if not topic or topic in trends:
                continue
            trends[topic] = {
                "trend": topic,
                "direction": scoring.trend_direction(source["content"]),
                "strength": scoring.trend_strength(source["content"]),
                "timeframe": scoring.timeframe(source["content"]),
                "driving_factors": scoring.driving_factors(source["content"]),
                "potential_impact": scoring.potential_impact(source["content"]),
                "related_trends": source["key_topics"][1:4],
            }
            if len(trends) >= 5:
                break
        return list(trends.values())

    def recommendations(
        self,
        insights: List[Dict[str, Any]],
        trends: List[Dict[str, Any]],
        task_type: str,
    ) -> List[str]:
        recommendations: List[str] = []
        for insight in insights:
            recommendations.extend(insight["actionable_recommendations"])
        for trend in trends:
            if trend["direction"] == "rising" and trend["strength"] > 0.7:
                factor = trend["driving_factors"][0].lower() if trend["driving_factors"] else "investing in this area"
                recommendations.append(f"Consider leveraging the rising trend in {trend['trend']} by {factor}")
            if trend["direction"] == "declining" and trend["strength"] > 0.6:
                recommendations.append(
                    f"Monitor the declining trend in {trend['trend']} and consider alternative approaches"
                )
        if task_type in TASK_RECOMMENDATIONS:
            recommendations.append(TASK_RECOMMENDATIONS[task_type])
        return _unique(recommendations, 8)

    def executive_summary(
        self,
        sources: List[Dict[str, Any]],
        insights: List[Dict[str, Any]],
        task: Dict[str, Any],
    ) -> str:
        top = [i for i in insights if i["confidence"] > 0.7][:3]
        highlights = " ".join(f"{i['insight'][:100]}..." for i in top)
        focus = ", ".join(task.get("focus_areas") or []) or "core areas"
        summary = (
            f'Research analysis for "{task["query"]}" reveals {len(sources)} relevant sources '
            f"with {len(top)} high-confidence insights."
        )
        if highlights:
            summary += f" {highlights}"
        return f"{summary} The analysis suggests focusing on {focus} for maximum impact."

    def key_findings(self, sources: List[Dict[str, Any]], insights: List[Dict[str, Any]]) -> List[str]:
        findings = [i["insight"].split(".")[0].strip() + "." for i in insights if i["confidence"] > 0.7]
        findings += [s["quotes"][0] for s in sources if s["credibility_score"] > 0.8 and s["quotes"]]
        return _unique(findings, 6)

    # ------------------------------------------------------------------
    # Competitive intelligence
    # ------------------------------------------------------------------

    def competitive_intel(self, competitor: str, sources: List[Dict[str, Any]]) -> Dict[str, Any]:
        year = str(datetime.utcnow().year)
        strengths: List[str] = []
        weaknesses: List[str] = []
        developments: List[str] = []
        threats: List[str] = []
        opportunities: List[str] = []
        focus: List[str] = []

        for source in sources:
            content = source["content"]
            strengths += _sentences_with(content, "strength|advantage|leader")
            weaknesses += _sentences_with(content, "weakness|challenge|struggle")
            developments += _sentences_with(content, rf"{year}|recent|announce\w*")
            threats += _sentences_with(content, "threat|risk|disrupt\w*", limit=1)
            opportunities += _sentences_with(content, r"opportunit\w*|expan\w*|growth", limit=1)
            focus += [t for t in source["key_topics"] if len(t) > 3]

        return {
            "competitor": competitor,
            "strengths": _unique(strengths, 5),
            "weaknesses": _unique(weaknesses, 5),
            "recent_developments": _unique(developments, 5),
            "market_position": scoring.market_position(s["content"] for s in sources),
            "strategic_focus": _unique(focus, 5),
            "threats": _unique(threats, 3),
            "opportunities": _unique(opportunities, 3),
        }

    def competitive_summary(self, intel: List[Dict[str, Any]], task: Dict[str, Any]) -> str:
        if not intel:
            return (
                f'Competitive analysis for "{task["query"]}" could not identify specific competitors. '
                "Consider providing competitor names in the context for more detailed analysis."
            )
        leaders = sum(1 for c in intel if c["market_position"] == "Market Leader")
        challengers = sum(1 for c in intel if c["market_position"] == "Strong Challenger")

        summary = f"Competitive analysis of {len(intel)} key players in the {task['query']} market. "
        if leaders:
            summary += f"{leaders} market leader(s) identified. "
        if challengers:
            summary += f"{challengers} strong challenger(s) present. "
        common = scoring.common_elements(s for c in intel for s in c["strengths"])
        if common:
            summary += f"Common competitive strengths include: {', '.join(common[:3])}. "
        return summary.strip()

    def competitive_findings(self, intel: List[Dict[str, Any]]) -> List[str]:
        findings = []
        for c in intel:
            if c["strengths"]:
                findings.append(f"{c['competitor']}: Key strengths include {c['strengths'][0]}")
            if c["recent_developments"]:
                findings.append(f"{c['competitor']}: Recent development - {c['recent_developments'][0]}")
        if len(intel) > 1:
            positions = list(dict.fromkeys(c["market_position"] for c in intel))
            findings.append(f"Market structure: {', '.join(positions)} players identified")
        return findings[:8]

    def strategic_recommendations(self, intel: List[Dict[str, Any]]) -> List[str]:
        if not intel:
            return ["Conduct competitive analysis to identify strategic opportunities"]

        weaknesses = [w for c in intel for w in c["weaknesses"]]
        opportunities = [o for c in intel for o in c["opportunities"]]
        threats = [t for c in intel for t in c["threats"]]
        recommendations = []
        if weaknesses:
            recommendations.append(f"Capitalize on competitor weaknesses: {', '.join(weaknesses[:2])}")
        if opportunities:
            recommendations.append(f"Pursue market opportunities: {', '.join(opportunities[:2])}")
        if threats:
            recommendations.append(f"Mitigate competitive threats: {', '.join(threats[:2])}")
        common = scoring.common_elements(s for c in intel for s in c["strengths"])
        if common:
            recommendations.append(f"Differentiate from competitors who all focus on: {', '.join(common[:2])}")
        positions = [c["market_position"] for c in intel if c["market_position"]]
        if positions:
            recommendations.append(
                f"Consider positioning strategy relative to competitors in: {', '.join(positions[:2])}"
            )
        return recommendations[:6]

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    def notify_agents(self, data: Dict[str, Any]) -> None:
        sources = data.get("sources") or []
        if not sources:
            return
        self.send_message(
            "discovery_agent",
            "result",
            {
                "type": "research_findings",
                "new_sources": [
                    s for s in sources if s["source_type"] == "official" or s["credibility_score"] > 0.8
                ],
                "insights": [i for i in data.get("insights") or [] if i["confidence"] > 0.7],
            },
        )
        urls = [
            s["url"]
            for s in sources
            if s["credibility_score"] > 0.8 and s["relevance_score"] > 0.7
        ][:5]
        if urls:
            self.send_message(
                "crawling_agent",
                "task",
                {"type": "monitor_changes", "domains": urls},
            )
