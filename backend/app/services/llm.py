"""
Text Generation Collaborator.

WHAT THIS DOES:
Wraps the chat-completion provider used by the agents and the
meta-summary behind one small async interface:

    text = await generator.generate(system_prompt, user_prompt, max_tokens=700)

The contract is deliberately forgiving: `None` means "no answer" and
covers every failure (no API key, network error, provider error, timeout).
Callers never see a provider exception.

JSON ANSWERS:
Agents ask for JSON, but models sometimes wrap it in prose or markdown
fences. `extract_json_object` pulls out the first balanced {...} span that
actually parses.

USAGE:
    generator = OpenAITextGenerator(api_key=settings.openai_api_key)
    raw = await generator.generate(SYSTEM_PROMPT, prompt, max_tokens=600)
    if raw is None:
        ...  # unavailable
    data = extract_json_object(raw)
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

from openai import AsyncOpenAI

from app.services.errors import ResponseParseError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT_SECONDS = 30.0


class TextGenerator(ABC):
    """
    Abstract base class for text-generation collaborators.

    Implement this to plug in another provider (or a fake in tests).
    """

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
    ) -> Optional[str]:
        """
        Generate a completion.

        Returns:
            The completion text, or None when the provider is unavailable
        """
        pass

    async def close(self) -> None:
        """Release network resources. No-op by default."""
        return None


class OpenAITextGenerator(TextGenerator):
    """
    Chat completions via OpenAI.

    Without an API key the generator is "disabled": it returns None
    immediately without touching the network.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = DEFAULT_MODEL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        temperature: float = 0.2,
    ):
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self.client: Optional[AsyncOpenAI] = AsyncOpenAI(api_key=api_key) if api_key else None

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
    ) -> Optional[str]:
        if self.client is None:
            logger.warning("Text generation requested but no OpenAI API key is configured")
            return None

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    temperature=self.temperature,
                    max_tokens=max_tokens,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Text generation timed out after {self.timeout_seconds}s")
            return None
        except Exception as e:
            logger.error(f"Text generation failed: {e}")
            return None

        if not response.choices:
            return None
        content = response.choices[0].message.content
        return content.strip() if content else None

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


# =============================================================================
# JSON EXTRACTION
# =============================================================================

def _balanced_spans(raw: str):
    """
    Yield every top-level {...} span in order of its opening brace.

    Braces inside JSON string literals are ignored.
    """
    for start, char in enumerate(raw):
        if char != "{":
            continue
        depth = 0
        in_string = False
        escaped = False
        for end in range(start, len(raw)):
            c = raw[end]
            if in_string:
                if escaped:
                    escaped = False
                elif c == "\\":
                    escaped = True
                elif c == '"':
                    in_string = False
                continue
            if c == '"':
                in_string = True
            elif c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth == 0:
                    yield raw[start:end + 1]
                    break


def extract_json_object(raw: Optional[str]) -> dict:
    """
    Return the first balanced {...} object in raw that parses as JSON.

    Raises:
        ResponseParseError: raw is empty or holds no parsable object

    Example:
        extract_json_object('Sure! ```json\\n{"score": 80}\\n```')
        # → {"score": 80}
    """
    if not raw:
        raise ResponseParseError("Empty response", raw or "")

    for span in _balanced_spans(raw):
        try:
            value = json.loads(span)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value

    raise ResponseParseError("No JSON object found in response", raw)
