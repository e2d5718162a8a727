"""
Tests for ResearchAgent: key checks, multi-source deep research, the
focused research types and competitive analysis.
"""
import asyncio
from datetime import datetime

from app.services.agents.orchestrator import AgentOrchestrator
from app.services.agents.research import ResearchAgent
from app.services.rate_limit import HourlyQuota

from tests.fixtures.agent_fixtures import (
    FakePerplexity,
    FakeSerper,
    FakeTavily,
    FakeWeb,
    full_runner,
    offline_runner,
)
from app.services.connectors import ConnectorRunner


def _agent(runner, quota=None):
    return ResearchAgent(runner, quota=quota, request_delay=0)


def _run(agent, task):
    return asyncio.run(agent.execute(task))


class TestResearchPreconditions:
    """Validation before any connector is called."""

    def test_no_keys_fails_with_guidance(self):
        result = _run(_agent(offline_runner()), {"type": "deep_research", "query": "crm market"})
        assert result.success is False
        assert "No research API keys configured" in result.error

    def test_unknown_type_fails(self):
        result = _run(_agent(full_runner()), {"type": "bogus", "query": "crm"})
        assert result.success is False
        assert result.error == "Unknown research task type: bogus"

    def test_missing_query_fails(self):
        result = _run(_agent(full_runner()), {"type": "deep_research", "query": ""})
        assert result.success is False
        assert result.error == "Research query is required"


class TestDeepResearch:
    """deep_research with all three connectors faked."""

    def test_result_shape(self):
        perplexity = FakePerplexity()
        result = _run(
            _agent(full_runner(perplexity=perplexity)),
            {"type": "deep_research", "query": "crm market", "context": {"industry": "CRM"}},
        )
        assert result.success is True
        assert result.metadata == {"cached": False}

        data = result.data
        assert data["query"] == "crm market"
        assert data["metadata"]["methods_used"] == ["Tavily Search", "Perplexity Analysis", "Serper Search"]
        assert data["metadata"]["citations"] == ["https://www.reuters.com/technology/crm-market"]
        assert "Fewer than 5 sources analyzed" in data["metadata"]["limitations"]
        assert 0.0 < data["confidence_score"] <= 1.0
        assert data["research_depth"] == "comprehensive"

        urls = [s["url"] for s in data["sources"]]
        assert len(urls) == len(set(urls)) == 3
        perplexity_insights = [i for i in data["insights"] if i["category"] != "Source Analysis"]
        assert len(perplexity_insights) == 2
        assert "Industry Context: CRM" in perplexity.prompts[0]

    def test_sources_are_scored(self):
        result = _run(_agent(full_runner()), {"type": "deep_research", "query": "crm market"})
        reuters = next(s for s in result.data["sources"] if "reuters" in s["url"])
        assert reuters["credibility_score"] >= 0.9
        assert reuters["source_type"] == "news"
        assert reuters["quotes"] == ["Customers expect every CRM to ship AI features this year"]
        assert reuters["key_topics"]

    def test_serper_only(self):
        runner = ConnectorRunner(
            {
                "tavily": FakeTavily(configured=False),
                "perplexity": FakePerplexity(configured=False),
                "serper": FakeSerper(),
                "web": FakeWeb(),
            }
        )
        result = _run(_agent(runner), {"type": "deep_research", "query": "crm market"})
        meta = result.data["metadata"]
        assert meta["methods_used"] == ["Serper Search"]
        assert any(l.startswith("Tavily search unavailable") for l in meta["limitations"])
        assert any(l.startswith("Perplexity analysis unavailable") for l in meta["limitations"])

    def test_exhausted_tavily_quota_is_a_limitation(self):
        quota = HourlyQuota({"tavily": 0, "perplexity": 50})
        result = _run(_agent(full_runner(), quota=quota), {"type": "deep_research", "query": "crm"})
        assert result.success is True
        assert "Tavily Search" not in result.data["metadata"]["methods_used"]

    def test_queries_follow_context(self):
        tavily = FakeTavily()
        _run(
            _agent(full_runner(tavily=tavily)),
            {
                "type": "deep_research",
                "query": "crm",
                "focus_areas": ["pricing"],
                "exclude_terms": ["jobs"],
                "context": {"timeframe": "recent", "depth": "surface"},
            },
        )
        year = datetime.utcnow().year
        assert tavily.queries[0] == f'crm {year} latest recent -"jobs"'
        assert f'crm pricing {year} latest recent -"jobs"' in tavily.queries
        assert all(call["max_results"] == 5 for call in tavily.calls)
        assert all(call["search_depth"] == "basic" for call in tavily.calls)

    def test_source_preference_sets_include_domains(self):
        tavily = FakeTavily()
        _run(
            _agent(full_runner(tavily=tavily)),
            {"type": "deep_research", "query": "crm", "context": {"sources": "news", "depth": "exhaustive"}},
        )
        assert "reuters.com" in tavily.calls[0]["include_domains"]
        assert tavily.calls[0]["search_depth"] == "advanced"


class TestFocusedResearchTypes:
    """The research types layered on deep research."""

    def test_market_intelligence_adds_focus_areas(self):
        tavily = FakeTavily()
        result = _run(
            _agent(full_runner(tavily=tavily)),
            {"type": "market_intelligence", "query": "crm"},
        )
        assert result.data["metadata"]["task_type"] == "market_intelligence"
        assert "crm market size and growth" in tavily.queries

    def test_contextual_research_uses_custom_instructions(self):
        perplexity = FakePerplexity()
        result = _run(
            _agent(full_runner(perplexity=perplexity)),
            {
                "type": "contextual_research",
                "query": "crm",
                "custom_instructions": "Focus on European vendors",
            },
        )
        assert result.data["metadata"]["custom_instructions"] == "Focus on European vendors"
        assert "Special Instructions: Focus on European vendors" in perplexity.prompts[0]

    def test_memory_context_reaches_prompt(self):
        perplexity = FakePerplexity()
        _run(
            _agent(full_runner(perplexity=perplexity)),
            {"type": "trend_analysis", "query": "crm", "context": {"memory_context": "User tracks HubSpot"}},
        )
        prompt = perplexity.prompts[0]
        assert prompt.startswith("Conduct a comprehensive trend analysis on: crm")
        assert "Previous Research Context: User tracks HubSpot" in prompt

    def test_task_recommendation_is_appended(self):
        result = _run(_agent(full_runner()), {"type": "source_verification", "query": "crm"})
        assert result.data["recommendations"]
        assert len(result.data["recommendations"]) <= 8


class TestCompetitiveAnalysis:
    """competitive_analysis builds intel per named competitor."""

    def test_intel_per_competitor(self):
        tavily = FakeTavily()
        result = _run(
            _agent(full_runner(tavily=tavily)),
            {"type": "competitive_analysis", "query": "crm", "context": {"competitors": ["HubSpot"]}},
        )
        data = result.data
        assert data["metadata"]["task_type"] == "competitive_analysis"
        assert data["metadata"]["competitors_analyzed"] == 1
        assert len(tavily.queries) == 5
        assert tavily.queries[0].startswith("HubSpot company analysis business strategy")

        intel = data["competitive_intel"][0]
        assert intel["competitor"] == "HubSpot"
        assert intel["market_position"] == "Market Leader"
        assert any("market leader" in s for s in intel["strengths"])
        assert set(intel) >= {"weaknesses", "recent_developments", "strategic_focus", "threats", "opportunities"}
        assert data["recommendations"]

    def test_no_competitors(self):
        result = _run(
            _agent(full_runner()),
            {"type": "competitive_analysis", "query": "crm"},
        )
        assert result.data["competitive_intel"] == []
        assert "could not identify specific competitors" in result.data["summary"]
        assert result.data["recommendations"] == [
            "Conduct competitive analysis to identify strategic opportunities"
        ]


class TestNotifications:
    """Findings are shared with the other agents."""

    def test_findings_are_queued_for_discovery(self):
        orchestrator = AgentOrchestrator()
        agent = _agent(full_runner())
        orchestrator.register_agent(agent)

        _run(agent, {"type": "deep_research", "query": "crm market"})

        messages = list(orchestrator.message_queue)
        to_discovery = [m for m in messages if m.to == "discovery_agent"]
        assert len(to_discovery) == 1
        assert to_discovery[0].type == "result"
        assert to_discovery[0].payload["type"] == "research_findings"
