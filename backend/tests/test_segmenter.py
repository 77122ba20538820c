"""
Tests for long-document segmentation.

Run with: pytest tests/test_segmenter.py -v
"""

import asyncio

import pytest

from app.models.schemas import AgentName, AgentResult, Source
from app.services.analysis.segmenter import SegmentAnalyzer, segment_text


def squash(text: str) -> str:
    return "".join(text.split())


# =============================================================================
# SPLITTING
# =============================================================================

def test_paragraphs_are_packed_up_to_the_limit():
    paragraphs = ["a" * 3000, "b" * 3000, "c" * 3000]
    chunks = segment_text("\n\n".join(paragraphs), 7000)

    assert chunks == ["a" * 3000 + "\n\n" + "b" * 3000, "c" * 3000]


def test_oversized_paragraph_is_hard_sliced():
    chunks = segment_text("x" * 15000, 7000)
    assert [len(c) for c in chunks] == [7000, 7000, 1000]


def test_limit_never_goes_below_one_thousand():
    chunks = segment_text("y" * 2500, 10)
    assert [len(c) for c in chunks] == [1000, 1000, 500]


def test_concatenation_gives_back_the_text():
    text = "\n\n".join(f"Paragraph {i}. " + "word " * (200 + i * 37) for i in range(30))
    chunks = segment_text(text, 2000)

    assert len(chunks) > 1
    assert all(len(c) <= 2000 for c in chunks)
    assert squash("".join(chunks)) == squash(text)


def test_blank_lines_with_spaces_split_paragraphs():
    chunks = segment_text("a" * 900 + "\n  \n\n" + "b" * 900, 1000)
    assert chunks == ["a" * 900, "b" * 900]


def test_empty_text_has_no_segments():
    assert segment_text("") == []
    assert segment_text("   \n\n  ") == []


# =============================================================================
# ANALYZER
# =============================================================================

class RecordingPanel:
    """Stands in for AgentPanel; scores each chunk by its first letter."""

    def __init__(self, delay_for_first: float = 0.0):
        self.seen: list[str] = []
        self.delay_for_first = delay_for_first

    async def run_all(self, text: str, sources: list[Source]) -> dict[AgentName, AgentResult]:
        self.seen.append(text)
        if self.delay_for_first and text.startswith("a"):
            await asyncio.sleep(self.delay_for_first)
        score = {"a": 10, "b": 20, "c": 30}.get(text[:1], 50)
        return {agent: AgentResult(agent=agent, score=score) for agent in AgentName}


@pytest.mark.asyncio
async def test_short_text_is_one_segment():
    panel = RecordingPanel()
    analyzer = SegmentAnalyzer(panel, long_text_threshold=8000)

    segments = await analyzer.analyze("Short text.\n\nSecond paragraph.", [])

    assert len(segments) == 1
    assert segments[0].index == 0
    assert segments[0].text == "Short text.\n\nSecond paragraph."


@pytest.mark.asyncio
async def test_long_text_is_segmented():
    text = "\n\n".join(["a" * 5000, "b" * 5000])
    segments = await SegmentAnalyzer(RecordingPanel(), max_chunk_size=7000).analyze(text, [])

    assert [s.index for s in segments] == [0, 1]
    assert segments[1].agent_results[AgentName.FACT_CHECKER].score == 20


@pytest.mark.asyncio
async def test_force_segments_short_documents():
    analyzer = SegmentAnalyzer(RecordingPanel(), max_chunk_size=1000, long_text_threshold=8000)
    text = "\n\n".join(["a" * 800, "b" * 800])

    assert len(await analyzer.analyze(text, [])) == 1
    assert len(await analyzer.analyze(text, [], force=True)) == 2


@pytest.mark.asyncio
async def test_concurrent_segments_come_back_in_order():
    """The first segment finishes last; results are still ordered by index."""
    panel = RecordingPanel(delay_for_first=0.05)
    analyzer = SegmentAnalyzer(panel, max_chunk_size=1000, concurrency=3)
    text = "\n\n".join(["a" * 900, "b" * 900, "c" * 900])

    segments = await analyzer.analyze(text, [], force=True)

    assert [s.index for s in segments] == [0, 1, 2]
    assert [s.agent_results[AgentName.FACT_CHECKER].score for s in segments] == [10, 20, 30]
    assert panel.seen[0].startswith("a")
