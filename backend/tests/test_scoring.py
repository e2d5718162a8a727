"""
Tests for the heuristic source and insight scoring helpers.
"""
from datetime import datetime

from app.services.agents import scoring


class TestSourceScoring:
    def test_source_credibility(self):
        assert scoring.source_credibility({"url": "https://example.com"}) == 0.5
        assert scoring.source_credibility(
            {"url": "https://cs.stanford.edu/paper", "published_date": "2024-01-01", "author": "A"}
        ) == 1.0

    def test_domain_credibility(self):
        assert scoring.domain_credibility("https://www.bloomberg.com/x") == 0.9
        assert scoring.domain_credibility("https://en.wikipedia.org/wiki/CRM") == 0.7
        assert scoring.domain_credibility("https://example.com") == 0.5
        assert scoring.domain_credibility("") == 0.3

    def test_source_type(self):
        assert scoring.source_type("https://mit.edu/a") == "academic"
        assert scoring.source_type("https://www.census.gov/data") == "official"
        assert scoring.source_type("https://blog.example.com") == "blog"
        assert scoring.source_type("https://twitter.com/x") == "social"
        assert scoring.source_type("https://example.com") == "unknown"

    def test_relevance_score(self):
        assert scoring.relevance_score("All about the crm market today", "crm market") == 0.8
        assert scoring.relevance_score("crm pricing", "crm market", ["pricing"]) == 0.75
        assert scoring.relevance_score("nothing", "crm market") == 0.5

    def test_sentiment(self):
        assert scoring.sentiment("strong growth and great success") == "positive"
        assert scoring.sentiment("a crisis with heavy loss") == "negative"
        assert scoring.sentiment("the sky is blue") == "neutral"


class TestTrendScoring:
    def test_trend_direction(self):
        assert scoring.trend_direction("adoption is growing") == "rising"
        assert scoring.trend_direction("sales are declining") == "declining"
        assert scoring.trend_direction("growing here, falling there") == "volatile"
        assert scoring.trend_direction("flat") == "stable"

    def test_timeframe(self):
        now = datetime(2024, 6, 1)
        assert scoring.timeframe("Forecast for 2024", now) == "2024"
        assert scoring.timeframe("the latest numbers", now) == "Recent"
        assert scoring.timeframe("nothing dated", now) == "Current"


class TestConfidenceScore:
    def test_empty_is_zero(self):
        assert scoring.confidence_score([], []) == 0.0

    def test_blend(self):
        sources = [{"credibility_score": 0.9}, {"credibility_score": 0.7}]
        insights = [{"confidence": 0.8}]
        # 0.5 * 0.8 + 0.3 * 0.8 + 0.2 * 0.2
        assert scoring.confidence_score(sources, insights) == 0.68


class TestDomainLists:
    def test_preferred_domains(self):
        assert scoring.preferred_domains("all") == []
        assert "arxiv.org" in scoring.preferred_domains("academic")

    def test_excluded_domains(self):
        domains = scoring.excluded_domains(["Wiki pages"])
        assert "pinterest.com" in domains
        assert "wikipedia.org" in domains
