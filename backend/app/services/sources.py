"""
Source Enricher.

WHAT THIS DOES:
Turns raw search hits into Source objects the agents can reason about:

1. URL normalization — only http(s); a bare "who.int/page" becomes
   "https://who.int/page"; anything unparsable is dropped
2. Domain — lowercased hostname
3. Credibility tier — from the domain:
   - high:    institutional statistics bodies (oecd.org, who.int, ...)
   - medium:  .gov / .gouv / .edu / .int hosts and established references
   - low:     social networks, blogging platforms, video sites
   - unknown: everything else
4. Relevance — 0-100 similarity between the submitted text and the
   source's title + snippet (TextSimilarity strategy)
5. Content — for trusted (high) domains only, the page or PDF text,
   whitespace-collapsed and capped at 15,000 chars

Sources come back deduplicated by URL and ranked by relevance (ties keep
search order). After this step sources are only filtered or ranked, never
modified.

USAGE:
    enricher = SourceEnricher(similarity=TokenOverlapSimilarity())
    sources = await enricher.enrich(raw_sources, text)
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse, urlunparse

import httpx
from bs4 import BeautifulSoup

from app.models.schemas import CredibilityTier, RawSource, Source
from app.services.pdf_extractor import extract_pdf_text
from app.services.similarity import TextSimilarity, TokenOverlapSimilarity
from app.services.text_normalizer import collapse_whitespace

logger = logging.getLogger(__name__)

TRUSTED_DOMAINS = [
    "oecd.org",
    "imf.org",
    "worldbank.org",
    "who.int",
    "un.org",
    "ilo.org",
    "weforum.org",
    "banquemondiale.org",
    "data.gov",
    "europa.eu",
    "gouvernement.fr",
]

REFERENCE_DOMAINS = [
    "wikipedia.org",
    "insee.fr",
    "reuters.com",
    "apnews.com",
    "afp.com",
    "bbc.co.uk",
    "bbc.com",
    "lemonde.fr",
    "nature.com",
    "science.org",
    "sciencedirect.com",
    "ncbi.nlm.nih.gov",
]

LOW_CREDIBILITY_DOMAINS = [
    "facebook.com",
    "twitter.com",
    "x.com",
    "instagram.com",
    "tiktok.com",
    "reddit.com",
    "youtube.com",
    "medium.com",
    "blogspot.com",
    "wordpress.com",
    "substack.com",
]

INSTITUTIONAL_SUFFIXES = (".gov", ".edu", ".int", ".mil")
INSTITUTIONAL_LABELS = ("gouv", "gov", "ac", "edu")

MAX_SOURCE_CHARACTERS = 15_000
STRIPPED_TAGS = ["script", "style", "noscript", "iframe"]


# =============================================================================
# URL & DOMAIN HELPERS
# =============================================================================

def ensure_http_url(value: Optional[str]) -> Optional[str]:
    """
    Return a normalized http(s) URL, or None.

    Examples:
        ensure_http_url("who.int/news")            → "https://who.int/news"
        ensure_http_url("http://oecd.org/a?b=1")   → "http://oecd.org/a?b=1"
        ensure_http_url("javascript:alert(1)")     → None
    """
    if not value or not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None

    parsed = urlparse(trimmed)
    if parsed.scheme.lower() not in ("http", "https"):
        # "who.int:443/x" parses with scheme "who.int"; mailto:, ftp:// etc. are refused
        if "://" in trimmed or (parsed.scheme and "." not in parsed.scheme):
            return None
        parsed = urlparse(f"https://{trimmed}")

    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        return None
    if "." not in parsed.hostname and parsed.hostname != "localhost":
        return None

    path = parsed.path or "/"
    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, parsed.params, parsed.query, ""))


def domain_of(url: str) -> Optional[str]:
    hostname = urlparse(url).hostname
    return hostname.lower() if hostname else None


def _matches(hostname: str, domains: list[str]) -> bool:
    return any(hostname == d or hostname.endswith(f".{d}") for d in domains)


def is_trusted_domain(hostname: Optional[str]) -> bool:
    return bool(hostname) and _matches(hostname, TRUSTED_DOMAINS)


def credibility_tier(hostname: Optional[str]) -> CredibilityTier:
    """Classify a hostname into a credibility tier."""
    if not hostname:
        return CredibilityTier.UNKNOWN
    if is_trusted_domain(hostname):
        return CredibilityTier.HIGH
    if _matches(hostname, LOW_CREDIBILITY_DOMAINS):
        return CredibilityTier.LOW
    labels = hostname.split(".")
    if (
        hostname.endswith(INSTITUTIONAL_SUFFIXES)
        or any(label in INSTITUTIONAL_LABELS for label in labels[:-1])
        or _matches(hostname, REFERENCE_DOMAINS)
    ):
        return CredibilityTier.MEDIUM
    return CredibilityTier.UNKNOWN


def html_to_text(html: str | bytes) -> str:
    """Body text of an HTML page with scripts and styles removed."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(STRIPPED_TAGS):
        element.decompose()
    body = soup.body or soup
    return collapse_whitespace(body.get_text(" "))


# =============================================================================
# ENRICHER
# =============================================================================

class SourceEnricher:
    """
    Builds Source objects from RawSource hits.

    Pipeline position:
    Searcher → [SourceEnricher] → Agents
    """

    def __init__(
        self,
        similarity: Optional[TextSimilarity] = None,
        fetch_trusted_content: bool = False,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.similarity = similarity or TokenOverlapSimilarity()
        self.fetch_trusted_content = fetch_trusted_content
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds, follow_redirects=True)
        return self._client

    async def enrich(self, raw_sources: list[RawSource], text: str) -> list[Source]:
        """
        Enrich, deduplicate and rank raw hits.

        Args:
            raw_sources: Hits from the SourceSearcher
            text: The normalized submitted text (relevance reference)

        Returns:
            Sources sorted by relevance_score, highest first
        """
        candidates: list[tuple[RawSource, str, Optional[str]]] = []
        seen: set[str] = set()
        for raw in raw_sources:
            url = ensure_http_url(raw.url)
            if not url or url in seen:
                continue
            seen.add(url)
            candidates.append((raw, url, domain_of(url)))

        if not candidates:
            return []

        relevance = await self.similarity.score(
            text, [f"{raw.title} {raw.snippet}" for raw, _, _ in candidates]
        )

        contents = [""] * len(candidates)
        if self.fetch_trusted_content:
            trusted = [i for i, (_, _, domain) in enumerate(candidates) if is_trusted_domain(domain)]
            fetched = await asyncio.gather(*(self.fetch_content(candidates[i][1]) for i in trusted))
            for i, content in zip(trusted, fetched):
                contents[i] = content

        sources = [
            Source(
                title=(raw.title or "").strip() or "Source",
                url=url,
                snippet=(raw.snippet or "").strip(),
                domain=domain,
                credibility_tier=credibility_tier(domain),
                relevance_score=max(0, min(100, round(score * 100))),
                content=content,
            )
            for (raw, url, domain), score, content in zip(candidates, relevance, contents)
        ]

        sources.sort(key=lambda s: s.relevance_score, reverse=True)
        logger.info(
            f"Enriched {len(sources)} sources "
            f"({sum(1 for s in sources if s.credibility_tier == CredibilityTier.HIGH)} trusted)"
        )
        return sources

    async def fetch_content(self, url: str) -> str:
        """
        Fetch page (or PDF) text for a trusted-domain URL.

        Returns "" for untrusted domains and on any fetch/parse failure.
        """
        if not is_trusted_domain(domain_of(url)):
            return ""

        client = await self._get_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Trusted content fetch failed for {url}: {e}")
            return ""

        content_type = response.headers.get("content-type", "").lower()
        # Parsing is CPU-bound; keep it off the event loop
        try:
            if urlparse(url).path.lower().endswith(".pdf") or "application/pdf" in content_type:
                text = collapse_whitespace(await asyncio.to_thread(extract_pdf_text, response.content))
            else:
                text = await asyncio.to_thread(html_to_text, response.content)
        except Exception as e:
            logger.warning(f"Trusted content parse failed for {url}: {e}")
            return ""

        return text[:MAX_SOURCE_CHARACTERS]

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
