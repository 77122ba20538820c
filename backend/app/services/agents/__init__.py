"""
Agent Evaluators — four independent LLM-backed reviewers.

ARCHITECTURE:
    AgentPanel.run_all(text, sources)
        ├── FactCheckerAgent        → claim support
        ├── SourceAnalystAgent      → source pool quality
        ├── ContextGuardianAgent    → missing context (higher = worse)
        └── FreshnessDetectorAgent  → data recency
    → {AgentName: AgentResult}

USAGE:
    from app.services.agents import AgentPanel

    panel = AgentPanel.default(generator)
    results = await panel.run_all(text, sources)
"""

from app.services.agents.base import BaseAgent
from app.services.agents.context_guardian import ContextGuardianAgent
from app.services.agents.fact_checker import FactCheckerAgent
from app.services.agents.freshness_detector import FreshnessDetectorAgent
from app.services.agents.panel import AgentPanel
from app.services.agents.source_analyst import SourceAnalystAgent

__all__ = [
    "AgentPanel",
    "BaseAgent",
    "ContextGuardianAgent",
    "FactCheckerAgent",
    "FreshnessDetectorAgent",
    "SourceAnalystAgent",
]
