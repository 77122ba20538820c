"""
Text Similarity Strategies.

WHAT THIS DOES:
Scores how related each candidate (a source's title + snippet) is to a
reference text (the submitted text). Used by the SourceEnricher to fill
Source.relevance_score.

TWO BACKENDS (SIMILARITY_BACKEND setting):
- "token": TokenOverlapSimilarity — pure function, no network.
  Share of the candidate's content words that also appear in the reference.
- "embedding": EmbeddingSimilarity — OpenAI embeddings + cosine similarity.
  Any provider failure falls back to token overlap for that call.

Both return one float in [0, 1] per candidate, in candidate order.

USAGE:
    similarity = TokenOverlapSimilarity()
    scores = await similarity.score(text, ["title snippet", ...])
"""

import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Optional

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

# Rough chars-per-token guard for the embedding model's 8k token window
MAX_EMBEDDING_CHARS = 8000 * 4

TOKEN_PATTERN = re.compile(r"[a-zà-ÿ0-9]{3,}")

STOPWORDS = {
    "the", "and", "for", "that", "with", "this", "from", "are", "was", "were",
    "has", "have", "had", "not", "but", "its", "into", "than", "then", "they",
    "les", "des", "une", "est", "pour", "dans", "par", "sur", "qui", "que",
    "aux", "avec", "pas", "son", "ses", "été", "sont",
}


def tokenize(text: str) -> set[str]:
    """Lowercased content words of 3+ characters, stopwords removed."""
    return {t for t in TOKEN_PATTERN.findall((text or "").lower()) if t not in STOPWORDS}


def token_overlap(reference: str, candidate: str) -> float:
    """
    Share of candidate tokens that appear in the reference.

    Example:
        token_overlap("France population 68 million", "France population census")
        # → 0.667 (2 of 3 candidate tokens)
    """
    candidate_tokens = tokenize(candidate)
    if not candidate_tokens:
        return 0.0
    reference_tokens = tokenize(reference)
    return len(candidate_tokens & reference_tokens) / len(candidate_tokens)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity, clamped to [0, 1]."""
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return max(0.0, min(1.0, dot / (norm_a * norm_b)))


class TextSimilarity(ABC):
    """Abstract base class for relevance scoring strategies."""

    @abstractmethod
    async def score(self, reference: str, candidates: list[str]) -> list[float]:
        """Return one similarity in [0, 1] per candidate."""
        pass

    async def close(self) -> None:
        return None


class TokenOverlapSimilarity(TextSimilarity):
    """Deterministic word-overlap scoring. Never fails."""

    async def score(self, reference: str, candidates: list[str]) -> list[float]:
        return [token_overlap(reference, candidate) for candidate in candidates]


class EmbeddingSimilarity(TextSimilarity):
    """
    Cosine similarity between OpenAI embeddings.

    One batched embeddings call per score() (reference first, then candidates).
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_EMBEDDING_MODEL,
        fallback: Optional[TextSimilarity] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.fallback = fallback or TokenOverlapSimilarity()

    async def score(self, reference: str, candidates: list[str]) -> list[float]:
        if not candidates:
            return []

        inputs = [text[:MAX_EMBEDDING_CHARS] or " " for text in [reference, *candidates]]
        try:
            response = await self.client.embeddings.create(model=self.model, input=inputs)
            vectors = [item.embedding for item in sorted(response.data, key=lambda d: d.index)]
        except Exception as e:
            logger.warning(f"Embedding similarity failed, using token overlap: {e}")
            return await self.fallback.score(reference, candidates)

        if len(vectors) != len(inputs):
            logger.warning(f"Expected {len(inputs)} embeddings, got {len(vectors)}; using token overlap")
            return await self.fallback.score(reference, candidates)

        reference_vector = vectors[0]
        return [cosine_similarity(reference_vector, v) for v in vectors[1:]]

    async def close(self) -> None:
        await self.client.close()


def build_similarity(backend: str, api_key: str = "", model: str = DEFAULT_EMBEDDING_MODEL) -> TextSimilarity:
    """
    Pick the similarity strategy from configuration.

    "embedding" without an API key degrades to token overlap.
    """
    if backend == "embedding":
        if api_key:
            return EmbeddingSimilarity(api_key=api_key, model=model)
        logger.warning("SIMILARITY_BACKEND=embedding but no OpenAI key; using token overlap")
    elif backend != "token":
        logger.warning(f"Unknown SIMILARITY_BACKEND '{backend}'; using token overlap")
    return TokenOverlapSimilarity()
