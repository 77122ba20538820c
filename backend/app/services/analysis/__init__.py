"""
Analysis — from per-segment agent results to the final score and summary.

    SegmentAnalyzer.analyze → aggregate_segments → compute_reliability
                                                → MetaSummaryGenerator.generate
"""

from app.services.analysis.aggregator import aggregate_segments
from app.services.analysis.meta_summary import MetaSummaryGenerator, build_assessment, extract_key_points
from app.services.analysis.scoring import ScoringPolicy, compute_reliability, risk_level
from app.services.analysis.segmenter import SegmentAnalyzer, segment_text

__all__ = [
    "MetaSummaryGenerator",
    "ScoringPolicy",
    "SegmentAnalyzer",
    "aggregate_segments",
    "build_assessment",
    "compute_reliability",
    "extract_key_points",
    "risk_level",
    "segment_text",
]
