"""
Claim & Keyword Extractor.

WHAT THIS DOES:
Scans normalized text with a fixed battery of patterns and returns:
- Claims: typed fragments that look checkable (numbers with units, years,
  sentences about history / geography / science)
- Keywords: a short ranked list used to build search queries

WHY PATTERNS AND NOT AN LLM:
This runs on every request before any collaborator is called, must be
deterministic (same input → same ordered output) and must work when the
text-generation provider is down.

KEYWORD PRIORITY:
proper nouns > dates > numbers with units > generic long words

EXAMPLE:
    Text: "In 2023 France had 68 million inhabitants, according to INSEE."

    Claims:
    1. QUANTITATIVE "68 million"
    2. DATE "2023"
    3. GEOGRAPHIC "In 2023 France had 68 million inhabitants, according to INSEE."

    Keywords: ["France", "INSEE", "2023", "68 million", "million", "inhabitants"]

USAGE:
    extractor = ClaimExtractor()
    claims = extractor.extract_claims(text)
    keywords = extractor.extract_keywords(text)
"""

import logging
import re

from app.models.schemas import Claim, ClaimType

logger = logging.getLogger(__name__)

# Per-type caps on returned claims
MAX_QUANTITATIVE = 5
MAX_DATES = 3
MAX_PER_SENTENCE_TYPE = 2
MAX_CLAIM_SENTENCE_CHARS = 200

# Keywords are read from the beginning of the text only
KEYWORD_WINDOW = 1000
MAX_KEYWORDS = 6

LETTER = r"a-zA-ZÀ-ÿ"

QUANTITY_PATTERN = re.compile(
    r"\b\d+(?:[.,]\d+)?\s*"
    r"(?:%|pour\s*cent|per\s*cent|percent|millions?|milliards?|billions?|thousands?|"
    r"km²|km|kilom[eè]tres?|kilometers?|m[eè]tres?|meters?|habitants?|inhabitants|"
    r"people|personnes|ann[ée]es|ans|years|tonnes?|tons|dollars|euros|€|\$)"
    r"(?![" + LETTER + r"])",
    re.IGNORECASE,
)
YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")
PROPER_NOUN_PATTERN = re.compile(
    rf"\b[A-Z][{LETTER}]+(?:\s+[A-Z][{LETTER}]+){{0,2}}\b"
)
LONG_WORD_PATTERN = re.compile(rf"\b[{LETTER}]{{5,15}}\b")
SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
WORD_PATTERN = re.compile(r"[a-zà-ÿ²]+")

# Capitalized only because they open a sentence
SENTENCE_OPENERS = {
    "The", "This", "That", "These", "Those", "In", "On", "At", "It", "Its",
    "A", "An", "And", "But", "For", "According",
    "Le", "La", "Les", "Un", "Une", "Des", "Dans", "En", "Ce", "Cette", "Il", "Elle",
    "Selon", "Et", "Mais",
}

HISTORICAL_TERMS = {
    "war", "guerre", "revolution", "révolution", "empire", "century", "siècle",
    "founded", "fondé", "fondée", "independence", "indépendance", "treaty", "traité",
    "dynasty", "dynastie", "reign", "règne", "battle", "bataille", "ancient", "antique",
}
GEOGRAPHIC_TERMS = {
    "country", "pays", "city", "ville", "capital", "capitale", "region", "région",
    "border", "frontière", "continent", "river", "fleuve", "mountain", "montagne",
    "ocean", "océan", "population", "inhabitants", "habitants", "km²",
}
SCIENTIFIC_TERMS = {
    "study", "étude", "researchers", "chercheurs", "scientists", "scientifiques",
    "experiment", "expérience", "trial", "essai", "vaccine", "vaccin", "climate",
    "climat", "dna", "adn", "virus", "molecule", "molécule", "published", "publié",
    "publiée", "journal", "peer",
}

SENTENCE_CLASSES: list[tuple[ClaimType, set[str]]] = [
    (ClaimType.HISTORICAL, HISTORICAL_TERMS),
    (ClaimType.GEOGRAPHIC, GEOGRAPHIC_TERMS),
    (ClaimType.SCIENTIFIC, SCIENTIFIC_TERMS),
]


def _unique(items: list[str]) -> list[str]:
    """Remove duplicates while preserving order."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


class ClaimExtractor:
    """
    Extracts typed claims and ranked keywords from normalized text.

    Pipeline position:
    Normalizer → [ClaimExtractor] → QueryBuilder → Searcher → ...
    """

    def extract_claims(self, text: str) -> list[Claim]:
        """
        Extract claims in a fixed order: quantities, dates, then sentence classes.

        Args:
            text: Normalized text

        Returns:
            List of Claim objects (may be empty)
        """
        if not text:
            return []

        claims: list[Claim] = []

        quantities = _unique([m.group(0).strip() for m in QUANTITY_PATTERN.finditer(text)])
        claims.extend(
            Claim(type=ClaimType.QUANTITATIVE, text=q) for q in quantities[:MAX_QUANTITATIVE]
        )

        years = _unique(YEAR_PATTERN.findall(text))
        claims.extend(Claim(type=ClaimType.DATE, text=y) for y in years[:MAX_DATES])

        claims.extend(self._sentence_claims(text))

        logger.info(f"Extracted {len(claims)} claims from text ({len(text)} chars)")
        return claims

    def _sentence_claims(self, text: str) -> list[Claim]:
        """Classify whole sentences by vocabulary (history, geography, science)."""
        buckets: dict[ClaimType, list[str]] = {claim_type: [] for claim_type, _ in SENTENCE_CLASSES}

        for sentence in SENTENCE_SPLIT.split(text):
            sentence = " ".join(sentence.split())
            if len(sentence) < 15:
                continue
            words = set(WORD_PATTERN.findall(sentence.lower()))
            for claim_type, vocabulary in SENTENCE_CLASSES:
                bucket = buckets[claim_type]
                if len(bucket) >= MAX_PER_SENTENCE_TYPE:
                    continue
                if words & vocabulary:
                    fragment = sentence[:MAX_CLAIM_SENTENCE_CHARS]
                    if fragment not in bucket:
                        bucket.append(fragment)

        return [
            Claim(type=claim_type, text=fragment)
            for claim_type, _ in SENTENCE_CLASSES
            for fragment in buckets[claim_type]
        ]

    def extract_keywords(self, text: str) -> list[str]:
        """
        Extract up to MAX_KEYWORDS search keywords from the start of the text.

        Example:
            extract_keywords("The Eiffel Tower was completed in 1889 in Paris.")
            # → ["Eiffel Tower", "Paris", "1889", "Eiffel", "Tower", "completed"]
        """
        window = (text or "")[:KEYWORD_WINDOW]
        if not window:
            return []

        keywords: list[str] = []

        keywords.extend(_unique(self._proper_nouns(window))[:4])

        keywords.extend(_unique(YEAR_PATTERN.findall(window))[:2])

        units = [m.group(0).strip() for m in QUANTITY_PATTERN.finditer(window)]
        keywords.extend(_unique(units)[:2])

        long_words = [
            word for word in LONG_WORD_PATTERN.findall(window)
            if word not in SENTENCE_OPENERS
        ]
        keywords.extend(_unique(long_words)[:3])

        return [k for k in _unique(keywords) if len(k) > 2][:MAX_KEYWORDS]

    def _proper_nouns(self, text: str) -> list[str]:
        """Capitalized 1-3 word runs, without a leading sentence opener ("The Eiffel Tower" → "Eiffel Tower")."""
        nouns = []
        for match in PROPER_NOUN_PATTERN.findall(text):
            words = match.split()
            while words and words[0] in SENTENCE_OPENERS:
                words.pop(0)
            if words:
                nouns.append(" ".join(words))
        return nouns


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def extract_claims(text: str) -> list[Claim]:
    """Convenience function to extract claims."""
    return ClaimExtractor().extract_claims(text)


def extract_keywords(text: str) -> list[str]:
    """Convenience function to extract keywords."""
    return ClaimExtractor().extract_keywords(text)
