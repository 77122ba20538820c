"""
Agent Panel — runs the four evaluators over one piece of text.

HOW IT WORKS:
1. Start every agent's evaluate() at once (asyncio.gather)
2. Wait for all of them
3. Any agent that still raised gets its unavailable default

The panel always returns exactly one AgentResult per agent.

USAGE:
    panel = AgentPanel.default(generator)
    results = await panel.run_all(text, sources)
    results[AgentName.FACT_CHECKER].score
"""

import asyncio
import logging

from app.models.schemas import AgentName, AgentResult, Source
from app.services.agents.base import BaseAgent
from app.services.agents.context_guardian import ContextGuardianAgent
from app.services.agents.fact_checker import FactCheckerAgent
from app.services.agents.freshness_detector import FreshnessDetectorAgent
from app.services.agents.source_analyst import SourceAnalystAgent
from app.services.llm import TextGenerator

logger = logging.getLogger(__name__)


class AgentPanel:
    """The set of evaluators run for every segment."""

    def __init__(self, agents: list[BaseAgent]):
        self.agents = agents

    @classmethod
    def default(cls, generator: TextGenerator) -> "AgentPanel":
        """The standard four-agent panel sharing one generator."""
        return cls([
            FactCheckerAgent(generator),
            SourceAnalystAgent(generator),
            ContextGuardianAgent(generator),
            FreshnessDetectorAgent(generator),
        ])

    async def run_all(self, text: str, sources: list[Source]) -> dict[AgentName, AgentResult]:
        """Run all agents in parallel."""
        responses = await asyncio.gather(
            *(agent.evaluate(text, sources) for agent in self.agents),
            return_exceptions=True,
        )

        results: dict[AgentName, AgentResult] = {}
        for agent, response in zip(self.agents, responses):
            if isinstance(response, BaseException):
                logger.error(f"Agent {agent.name.value} raised: {response}")
                results[agent.name] = agent.unavailable_result(sources)
            else:
                results[agent.name] = response
        return results
