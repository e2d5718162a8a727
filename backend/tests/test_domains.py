"""
Tests for domain validation and normalization helpers and the request
schemas built on them.
"""
import pytest
from pydantic import ValidationError

from app.schemas.domains import DomainCreate, MonitorCompetitorRequest
from app.services.domains import (
    company_name_from_domain,
    domain_key,
    is_valid_domain,
    normalize_domain_url,
    strip_domain,
)


class TestIsValidDomain:
    """Tests for is_valid_domain."""

    def test_plain_domains_are_valid(self):
        assert is_valid_domain("example.com")
        assert is_valid_domain("sub.example.co.uk")
        assert is_valid_domain("my-company.io")

    def test_protocol_and_trailing_slash_are_ignored(self):
        assert is_valid_domain("https://Example.com/")
        assert is_valid_domain("http://example.com")

    @pytest.mark.parametrize(
        "value",
        ["", "not a domain", "localhost", "-bad.com", "example..com", "exa_mple.com"],
    )
    def test_invalid_domains_are_rejected(self, value):
        assert not is_valid_domain(value)

    def test_paths_are_rejected(self):
        assert not is_valid_domain("example.com/pricing")


class TestNormalizeDomainUrl:
    """Tests for the stored canonical form of a domain."""

    def test_bare_domain_gets_https(self):
        assert normalize_domain_url("example.com") == "https://example.com"

    def test_lowercases_and_strips_trailing_slash(self):
        assert normalize_domain_url("  Example.COM/ ") == "https://example.com"

    def test_explicit_http_is_kept(self):
        assert normalize_domain_url("http://example.com") == "http://example.com"

    def test_normalizing_twice_is_stable(self):
        once = normalize_domain_url("Example.com")
        assert normalize_domain_url(once) == once


class TestDomainHelpers:
    """Tests for strip_domain, domain_key and company_name_from_domain."""

    def test_strip_domain(self):
        assert strip_domain("https://Example.com/") == "example.com"

    def test_same_competitor_has_same_key(self):
        assert domain_key("https://example.com") == domain_key("EXAMPLE.com/")

    def test_company_name_from_domain(self):
        assert company_name_from_domain("https://www.hubspot.com") == "Hubspot"
        assert company_name_from_domain("notion.so") == "Notion"


class TestDomainSchemas:
    """Request validation for domain creation and monitoring."""

    def test_domain_create_normalizes(self):
        payload = DomainCreate(user_id="u1", domain="Example.com", name=" Example ")
        assert payload.domain == "https://example.com"
        assert payload.name == "Example"
        assert payload.crawl_frequency == "weekly"

    def test_domain_create_rejects_invalid_domain(self):
        with pytest.raises(ValidationError) as exc:
            DomainCreate(user_id="u1", domain="not a domain", name="Bad")
        assert "Invalid domain format" in str(exc.value)

    def test_domain_create_rejects_unknown_frequency(self):
        with pytest.raises(ValidationError):
            DomainCreate(user_id="u1", domain="example.com", name="E", crawl_frequency="hourly")

    def test_monitor_request_normalizes(self):
        payload = MonitorCompetitorRequest(user_id="u1", domain="hubspot.com")
        assert payload.domain == "https://hubspot.com"
