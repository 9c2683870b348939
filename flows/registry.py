"""
NyayaGPT Flow Registry

Builds every flow against one ServiceContainer and invokes them by name.

Usage:
    registry = FlowRegistry(ServiceContainer.from_env())
    run = await registry.invoke("legal_research", {"query": "4 SCC 225"})
    print(run.output.title)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from flows.argument import LegalArgumentFlow
from flows.base import BaseFlow, FlowConfig, FlowRun
from flows.chat import DocumentChatFlow
from flows.contract_review import ContractReviewFlow
from flows.research import LegalResearchFlow
from flows.search import create_search_flow
from flows.summarization import DocumentSummaryFlow

if TYPE_CHECKING:
    from services.container import ServiceContainer

logger = logging.getLogger(__name__)


class FlowRegistry:
    """All NyayaGPT flows, keyed by flow name."""

    def __init__(self, services: ServiceContainer, config: Optional[FlowConfig] = None):
        self.services = services
        self.config = config or services.flow_config
        completion = services.completion
        catalog_factory = services.catalog_factory

        flows: list[BaseFlow] = [
            ContractReviewFlow(completion, self.config),
            LegalArgumentFlow(completion, self.config),
            LegalResearchFlow(completion, self.config, catalog_factory),
            create_search_flow(completion, self.config, catalog_factory),
            DocumentSummaryFlow(completion, self.config),
            DocumentChatFlow(completion, self.config),
        ]
        self._flows: dict[str, BaseFlow] = {flow.name: flow for flow in flows}
        logger.debug(f"Registered flows: {', '.join(self._flows)}")

    def names(self) -> list[str]:
        return list(self._flows)

    def get(self, name: str) -> BaseFlow:
        """
        Look up a flow by name.

        Raises:
            KeyError: no flow is registered under that name
        """
        try:
            return self._flows[name]
        except KeyError:
            raise KeyError(f"Unknown flow '{name}'. Available: {', '.join(self._flows)}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._flows

    async def invoke(self, name: str, payload: Any) -> FlowRun:
        """Validate the payload against the named flow's input model and run it."""
        return await self.get(name).invoke(payload)

    async def run(self, name: str, payload: Any) -> Any:
        result = await self.invoke(name, payload)
        return result.output
