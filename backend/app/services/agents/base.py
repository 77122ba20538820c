"""
Agent Base Class — shared contract for the four evaluators.

WHAT THIS IS:
Every agent turns (text, sources) into one AgentResult by asking the
text-generation collaborator for a JSON verdict. The flow is the same for
all of them, only the prompt, budgets, payload schema and mapping change:

    build_prompt → generate → extract_json_object → payload schema → to_result

FAILURE HANDLING (evaluate never raises):
- generator returns None        → unavailable_result (score 50, "Agent unavailable")
- answer has no parsable JSON   → parse_error_result (score 50, one error finding)
- anything else                 → logged, unavailable_result

USAGE:
    class MyAgent(BaseAgent):
        name = AgentName.FACT_CHECKER
        system_prompt = "..."
        max_tokens = 700
        payload_model = FactCheckPayload

        def build_prompt(self, text, sources): ...
        def to_result(self, payload, sources): ...
"""

import logging
from abc import ABC, abstractmethod
from typing import ClassVar

from pydantic import BaseModel, ValidationError

from app.models.schemas import (
    NEUTRAL_SCORE,
    AgentName,
    AgentResult,
    Finding,
    FindingKind,
    Source,
)
from app.services.errors import CollaboratorUnavailableError, ResponseParseError
from app.services.llm import TextGenerator, extract_json_object

logger = logging.getLogger(__name__)

UNAVAILABLE_SUMMARY = "Agent unavailable"
PARSE_ERROR_SUMMARY = "Parsing error"
RAW_EXCERPT_CHARS = 150


class BaseAgent(ABC):
    """
    Abstract base class for evaluator agents.

    Subclasses set the class attributes and implement build_prompt / to_result.
    """

    name: ClassVar[AgentName]
    system_prompt: ClassVar[str]
    max_tokens: ClassVar[int] = 500
    payload_model: ClassVar[type[BaseModel]]

    def __init__(self, generator: TextGenerator):
        self.generator = generator

    @abstractmethod
    def build_prompt(self, text: str, sources: list[Source]) -> str:
        """Build the user prompt, applying this agent's text and source budgets."""
        pass

    @abstractmethod
    def to_result(self, payload: BaseModel, sources: list[Source]) -> AgentResult:
        """Map a validated payload onto an AgentResult."""
        pass

    async def evaluate(self, text: str, sources: list[Source]) -> AgentResult:
        """
        Run this agent over one piece of text.

        Args:
            text: The (segment) text to evaluate
            sources: Enriched sources, most relevant first

        Returns:
            AgentResult (never raises)
        """
        try:
            raw = await self.generator.generate(
                self.system_prompt,
                self.build_prompt(text, sources),
                self.max_tokens,
            )
            if raw is None:
                raise CollaboratorUnavailableError(f"{self.name.value}: no response from generator")
            payload = self.parse(raw)
            result = self.to_result(payload, sources)

        except CollaboratorUnavailableError as e:
            logger.warning(f"Agent {self.name.value} unavailable: {e}")
            return self.unavailable_result(sources)
        except ResponseParseError as e:
            logger.warning(f"Agent {self.name.value} could not parse response: {e}")
            return self.parse_error_result(e)
        except Exception as e:
            logger.error(f"Agent {self.name.value} failed: {e}")
            return self.unavailable_result(sources)

        logger.info(f"Agent {self.name.value} scored {result.score} with {len(result.findings)} findings")
        return result

    def parse(self, raw: str) -> BaseModel:
        """Extract the JSON object and validate it against the payload schema."""
        data = extract_json_object(raw)
        try:
            return self.payload_model.model_validate(data)
        except ValidationError as e:
            raise ResponseParseError(f"Payload does not match schema: {e.error_count()} errors", raw) from e

    # =========================================================================
    # DEFAULT RESULTS
    # =========================================================================

    def unavailable_result(self, sources: list[Source]) -> AgentResult:
        return AgentResult(
            agent=self.name,
            score=NEUTRAL_SCORE,
            findings=[
                Finding(
                    kind=FindingKind.UNAVAILABLE,
                    text="Analysis unavailable",
                    detail="Text generation provider not configured or unreachable",
                    status="unavailable",
                )
            ],
            summary=UNAVAILABLE_SUMMARY,
            available=False,
        )

    def parse_error_result(self, error: ResponseParseError) -> AgentResult:
        return AgentResult(
            agent=self.name,
            score=NEUTRAL_SCORE,
            findings=[
                Finding(
                    kind=FindingKind.ERROR,
                    text=error.raw[:RAW_EXCERPT_CHARS],
                    detail="Could not parse response",
                    status="error",
                )
            ],
            summary=PARSE_ERROR_SUMMARY,
        )


# =============================================================================
# PROMPT HELPERS
# =============================================================================

def source_block(source: Source, content_chars: int, label: str = "Content") -> str:
    """Format one source for a prompt: title, URL, snippet and capped content."""
    lines = [f"Source: {source.title}", f"URL: {source.url}"]
    if source.snippet:
        lines.append(source.snippet)
    if source.content and content_chars > 0:
        lines.append(f"{label}: {source.content[:content_chars]}")
    return "\n".join(lines)
