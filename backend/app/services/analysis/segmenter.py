"""
Segmenter — splits long documents and runs the agent panel per segment.

WHY SEGMENT:
Agents only see the first 600-1,200 chars of whatever they are given. A
20-page report analysed in one go would be judged on its first paragraph.
Splitting it into ~7,000-char segments and running the panel on each gives
every part of the document a verdict; the Aggregator then folds them back.

SPLITTING RULES:
1. Split on blank lines (paragraph boundaries)
2. Pack consecutive paragraphs, joined by a blank line, while the chunk
   stays within max_chunk_size (never below 1,000)
3. A single paragraph longer than max_chunk_size is hard-sliced

Concatenating the segments (ignoring whitespace) gives back the input.

CONCURRENCY:
Segments run one after another by default. segment_concurrency > 1 lets up
to that many segments run at once (asyncio.Semaphore). The agents inside a
segment always run in parallel.
"""

import asyncio
import logging
import re

from app.models.schemas import Segment, Source
from app.services.agents.panel import AgentPanel

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 7000
MIN_CHUNK_SIZE = 1000

PARAGRAPH_BREAK = re.compile(r"\n\s*\n+")


def segment_text(text: str, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """
    Split text into paragraph-respecting chunks.

    Example:
        segment_text("A" * 5000 + "\\n\\n" + "B" * 5000, 7000)
        # → ["AAAA...", "BBBB..."]   (two chunks, the pair would exceed 7000)

    Returns:
        Ordered chunks; [] for empty or whitespace-only text
    """
    if not text or not isinstance(text, str):
        return []

    limit = max(MIN_CHUNK_SIZE, max_chunk_size)
    paragraphs = [p.strip() for p in PARAGRAPH_BREAK.split(text)]
    paragraphs = [p for p in paragraphs if p]

    chunks: list[str] = []
    current = ""

    for paragraph in paragraphs:
        candidate = f"{current}\n\n{paragraph}" if current else paragraph
        if len(candidate) <= limit:
            current = candidate
            continue

        if current:
            chunks.append(current)
        current = ""

        if len(paragraph) > limit:
            for start in range(0, len(paragraph), limit):
                piece = paragraph[start:start + limit].strip()
                if piece:
                    chunks.append(piece)
        else:
            current = paragraph

    if current:
        chunks.append(current)

    return chunks


class SegmentAnalyzer:
    """
    Runs the AgentPanel over each segment of a text.

    Pipeline position:
    Sources → [SegmentAnalyzer] → Aggregator
    """

    def __init__(
        self,
        panel: AgentPanel,
        max_chunk_size: int = DEFAULT_CHUNK_SIZE,
        long_text_threshold: int = 8000,
        concurrency: int = 1,
    ):
        self.panel = panel
        self.max_chunk_size = max_chunk_size
        self.long_text_threshold = long_text_threshold
        self.concurrency = max(1, concurrency)

    def should_segment(self, text: str, force: bool = False) -> bool:
        """Documents and anything above the threshold are segmented."""
        return force or len(text) > self.long_text_threshold

    async def analyze(self, text: str, sources: list[Source], force: bool = False) -> list[Segment]:
        """
        Analyse text as one or more segments.

        Args:
            text: Normalized text
            sources: Enriched sources (shared by every segment)
            force: Segment even below the length threshold (uploaded files)

        Returns:
            Segments ordered by index, each with one result per agent
        """
        chunks = segment_text(text, self.max_chunk_size) if self.should_segment(text, force) else []
        if not chunks:
            chunks = [text]

        logger.info(f"Analysing {len(chunks)} segment(s) of {len(text)} chars total")

        if self.concurrency == 1 or len(chunks) == 1:
            segments = []
            for index, chunk in enumerate(chunks):
                segments.append(await self._analyze_chunk(index, chunk, sources))
            return segments

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(index: int, chunk: str) -> Segment:
            async with semaphore:
                return await self._analyze_chunk(index, chunk, sources)

        segments = await asyncio.gather(*(bounded(i, c) for i, c in enumerate(chunks)))
        return sorted(segments, key=lambda s: s.index)

    async def _analyze_chunk(self, index: int, chunk: str, sources: list[Source]) -> Segment:
        results = await self.panel.run_all(chunk, sources)
        return Segment(index=index, text=chunk, agent_results=results)
