from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple
import logging

from .base import BaseConnector, ConnectorResult, ConnectorNotConfigured
from .tavily import TavilyConnector
from .perplexity import PerplexityConnector
from .serper import SerperConnector
from .web import WebPageConnector

logger = logging.getLogger(__name__)


class ConnectorRunner:
    """
    Registry + executor for all connectors.

    - Instantiates each connector once per runner.
    - Executes independent calls concurrently via asyncio.
    - Agents receive a runner instead of building connectors themselves,
      so tests can swap in fakes by name.
    """

    def __init__(self, connectors: Optional[Dict[str, BaseConnector]] = None) -> None:
        self._connectors: Dict[str, BaseConnector] = connectors if connectors is not None else {
            "tavily": TavilyConnector(),
            "perplexity": PerplexityConnector(),
            "serper": SerperConnector(),
            "web": WebPageConnector(),
        }

    def get(self, name: str) -> BaseConnector | None:
        return self._connectors.get(name)

    def configured(self, name: str) -> bool:
        connector = self.get(name)
        return bool(connector and connector.configured)

    async def run_many(
        self,
        calls: List[Tuple[str, str, Dict[str, Any]]],
    ) -> Dict[str, ConnectorResult]:
        """
        Run ``(label, connector_name, params)`` calls concurrently.

        Failed or unknown calls yield an empty ConnectorResult under their label.
        """

        async def _run(label: str, name: str, params: Dict[str, Any]) -> ConnectorResult:
            connector = self.get(name)
            if connector is None or not connector.configured:
                logger.warning(
                    "Connector '%s' unavailable; skipping '%s'",
                    name,
                    label,
                    extra={"connector": name, "step": label},
                )
                return ConnectorResult({})
            try:
                res = await connector.fetch(**params)
                logger.info(
                    "Connector '%s' completed '%s'",
                    name,
                    label,
                    extra={"connector": name, "step": label},
                )
                return res
            except Exception as e:
                logger.exception(
                    "Connector '%s' failed for '%s': %s",
                    name,
                    label,
                    e,
                    extra={"connector": name, "step": label},
                )
                return ConnectorResult({})

        labels = [label for label, _, _ in calls]
        results = await asyncio.gather(*(_run(label, name, dict(params)) for label, name, params in calls))
        return dict(zip(labels, results))


def get_connectors() -> ConnectorRunner:
    return ConnectorRunner()


__all__ = [
    "BaseConnector",
    "ConnectorResult",
    "ConnectorNotConfigured",
    "ConnectorRunner",
    "TavilyConnector",
    "PerplexityConnector",
    "SerperConnector",
    "WebPageConnector",
    "get_connectors",
]
