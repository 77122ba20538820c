"""
Query Builder Service.

WHAT THIS DOES:
Turns extracted claims and keywords into a small set of web search queries.

QUERY SOURCES (in order):
1. Up to 4 claim texts (whitespace-collapsed, > 10 chars, cut to 120 chars)
2. The top 4 keywords joined with spaces
3. A 140-char excerpt of the text itself

Duplicates are dropped (first occurrence wins) and the list is capped at 5.
The excerpt is always added when nothing else qualified, so any non-blank
text yields at least one query.

EXAMPLE:
    claims = [Claim(QUANTITATIVE, "68 million"), Claim(DATE, "2023")]
    keywords = ["France", "INSEE", "2023"]
    → ["France INSEE 2023", "In 2023 France had 68 million inhabitants, ..."]
    ("68 million" and "2023" are too short to be queries on their own)
"""

from app.models.schemas import Claim
from app.services.text_normalizer import collapse_whitespace

MAX_QUERIES = 5
MAX_CLAIM_QUERIES = 4
CLAIM_QUERY_CHARS = 120
MIN_CLAIM_QUERY_CHARS = 10
KEYWORDS_PER_QUERY = 4
EXCERPT_CHARS = 140
MIN_EXCERPT_CHARS = 20


def build_search_queries(
    text: str,
    claims: list[Claim],
    keywords: list[str],
) -> list[str]:
    """
    Build at most MAX_QUERIES distinct search queries.

    Args:
        text: Normalized input text
        claims: Output of the ClaimExtractor
        keywords: Output of the ClaimExtractor, highest priority first

    Returns:
        Ordered, deduplicated queries
    """
    queries: list[str] = []

    for claim in claims[:MAX_CLAIM_QUERIES]:
        normalized = collapse_whitespace(claim.text)
        if len(normalized) > MIN_CLAIM_QUERY_CHARS:
            queries.append(normalized[:CLAIM_QUERY_CHARS])

    if keywords:
        primary = " ".join(keywords[:KEYWORDS_PER_QUERY])
        if len(primary) > 3:
            queries.append(primary)

    excerpt = collapse_whitespace(text)[:EXCERPT_CHARS]
    if len(excerpt) >= MIN_EXCERPT_CHARS or (excerpt and not queries):
        queries.append(excerpt)

    unique = list(dict.fromkeys(q for q in queries if q))
    return unique[:MAX_QUERIES]
