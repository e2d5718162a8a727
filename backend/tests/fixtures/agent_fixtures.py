"""
Fake connectors and canned search data for agent tests.

Each fake records the calls it receives so tests can assert on queries
and prompts without touching the network.
"""
from typing import Any, Dict, List, Optional

from app.services.connectors import ConnectorResult, ConnectorRunner


# ---------------------------------------------------------------------------
# Canned data
# ---------------------------------------------------------------------------

SEARCH_RESULTS: List[Dict[str, Any]] = [
    {
        "url": "https://www.reuters.com/technology/crm-market",
        "title": "CRM market keeps growing",
        "content": (
            "The CRM software market is growing rapidly in 2025 due to rising demand for "
            "automation. Analysts describe a significant shift toward AI assistants. "
            "\"Customers expect every CRM to ship AI features this year\" said one analyst."
        ),
        "score": 0.92,
        "published_date": "2025-03-01",
        "author": "Jane Doe",
    },
    {
        "url": "https://www.hubspot.com/products/crm",
        "title": "HubSpot CRM - Free CRM Software",
        "content": (
            "HubSpot is a market leader in CRM software for small businesses. "
            "Its strength is an integrated marketing and sales platform."
        ),
        "score": 0.81,
    },
    {
        "url": "https://www.pipedrive.com/",
        "title": "Pipedrive | Sales CRM",
        "content": (
            "Pipedrive is a sales CRM built for small teams. A challenge for Pipedrive "
            "is competing with larger suites on enterprise features."
        ),
        "score": 0.74,
    },
]

PERPLEXITY_ANALYSIS = (
    "The CRM market grew 12% last year and analysts expect continued growth as "
    "vendors add AI features to their core products.\n\n"
    "Competition is intensifying: Salesforce and HubSpot lead, while challengers "
    "focus on niche verticals. Vendors should invest in integrations.\n\n"
    "short"
)

PAGE_HTML = """
<html>
  <head>
    <title>Acme Corp - Home</title>
    <meta name="description" content="Acme builds rockets for everyone.">
    <script>var tracking = true;</script>
  </head>
  <body>
    <nav><a href="/about">About</a></nav>
    <main>
      <h1>Acme rockets</h1>
      <p>Our pricing starts at 10 dollars per month. We launch new products every quarter.</p>
      <a href="/pricing">Pricing</a>
      <a href="https://twitter.com/acme">Twitter</a>
      <a href="mailto:sales@acme.com">Email</a>
      <img src="/img/rocket.png">
      <img src="/img/logo.png">
    </main>
    <footer>Copyright Acme</footer>
  </body>
</html>
"""


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeTavily:
    def __init__(
        self,
        results: Optional[List[Dict[str, Any]]] = None,
        pages: Optional[Dict[str, str]] = None,
        configured: bool = True,
    ) -> None:
        self.results = list(SEARCH_RESULTS if results is None else results)
        self.pages = pages or {}
        self.configured = configured
        self.queries: List[str] = []
        self.calls: List[Dict[str, Any]] = []

    async def search_raw(self, query: str, **kwargs: Any) -> Dict[str, Any]:
        self.queries.append(query)
        self.calls.append({"query": query, **kwargs})
        return {"results": [dict(r) for r in self.results], "answer": None}

    async def search(self, query: str, **kwargs: Any) -> List[Dict[str, Any]]:
        return (await self.search_raw(query, **kwargs))["results"]

    async def extract(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        if url not in self.pages:
            return {}
        return {"url": url, "raw_content": self.pages[url], "images": []}

    async def fetch(self, **kwargs: Any) -> ConnectorResult:
        return ConnectorResult(await self.search_raw(**kwargs))


class FakePerplexity:
    def __init__(self, analysis: str = PERPLEXITY_ANALYSIS, configured: bool = True) -> None:
        self.analysis = analysis
        self.configured = configured
        self.prompts: List[str] = []

    async def analyze(self, prompt: str, max_tokens: int = 2000) -> Dict[str, Any]:
        self.prompts.append(prompt)
        return {
            "analysis": self.analysis,
            "citations": ["https://www.reuters.com/technology/crm-market"],
            "model": "sonar-pro",
        }

    async def fetch(self, **kwargs: Any) -> ConnectorResult:
        return ConnectorResult(await self.analyze(**kwargs))


class FakeSerper:
    def __init__(self, results: Optional[List[Dict[str, Any]]] = None, configured: bool = True) -> None:
        self.results = list(SEARCH_RESULTS[1:] if results is None else results)
        self.configured = configured
        self.queries: List[str] = []

    async def search(self, query: str, num: int = 10) -> List[Dict[str, Any]]:
        self.queries.append(query)
        return [dict(r) for r in self.results]

    async def fetch(self, **kwargs: Any) -> ConnectorResult:
        return ConnectorResult({"results": await self.search(**kwargs)})


class FakeWeb:
    """Serves HTML by URL; unknown URLs raise like an HTTP error would."""

    configured = True

    def __init__(self, pages: Optional[Dict[str, str]] = None) -> None:
        self.pages = pages or {}
        self.requested: List[str] = []

    async def get_page(self, url: str) -> Dict[str, Any]:
        self.requested.append(url)
        if url not in self.pages:
            raise RuntimeError(f"404 Not Found for {url}")
        return {"url": url, "html": self.pages[url], "status_code": 200}

    async def fetch(self, **kwargs: Any) -> ConnectorResult:
        return ConnectorResult(await self.get_page(kwargs["url"]))


def offline_runner(web: Optional[FakeWeb] = None) -> ConnectorRunner:
    """A runner with no API keys configured; only plain page fetches work."""
    return ConnectorRunner(
        {
            "tavily": FakeTavily(configured=False),
            "perplexity": FakePerplexity(configured=False),
            "serper": FakeSerper(configured=False),
            "web": web or FakeWeb(),
        }
    )


def full_runner(
    tavily: Optional[FakeTavily] = None,
    perplexity: Optional[FakePerplexity] = None,
    serper: Optional[FakeSerper] = None,
    web: Optional[FakeWeb] = None,
) -> ConnectorRunner:
    return ConnectorRunner(
        {
            "tavily": tavily or FakeTavily(),
            "perplexity": perplexity or FakePerplexity(),
            "serper": serper or FakeSerper(),
            "web": web or FakeWeb(),
        }
    )
