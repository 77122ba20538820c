"""
Tests for claim and keyword extraction.

Run with: pytest tests/test_claim_extractor.py -v
"""

from app.models.schemas import ClaimType
from app.services.claim_extractor import ClaimExtractor, extract_claims, extract_keywords

TEXT = (
    "In 2023 France had 68 million inhabitants, according to INSEE. "
    "Unemployment fell to 7.3% in 2022."
)


# =============================================================================
# CLAIMS
# =============================================================================

def test_claims_in_fixed_order():
    """Quantities first, then dates, then classified sentences."""
    claims = extract_claims(TEXT)

    assert [(c.type, c.text) for c in claims] == [
        (ClaimType.QUANTITATIVE, "68 million"),
        (ClaimType.QUANTITATIVE, "7.3%"),
        (ClaimType.DATE, "2023"),
        (ClaimType.DATE, "2022"),
        (ClaimType.GEOGRAPHIC, "In 2023 France had 68 million inhabitants, according to INSEE."),
    ]
    assert all(c.verifiable for c in claims)


def test_quantity_and_date_caps():
    text = " ".join(f"Rate {i}% in {2000 + i}." for i in range(1, 8))
    claims = extract_claims(text)

    quantities = [c for c in claims if c.type == ClaimType.QUANTITATIVE]
    dates = [c for c in claims if c.type == ClaimType.DATE]
    assert len(quantities) == 5, f"Expected 5 quantities, got {len(quantities)}"
    assert len(dates) == 3, f"Expected 3 dates, got {len(dates)}"
    assert quantities[0].text == "1%"
    assert dates[0].text == "2001"


def test_french_text():
    claims = extract_claims("La population de la France atteint 68 millions d'habitants en 2024.")
    types = [c.type for c in claims]

    assert claims[0].text == "68 millions"
    assert ClaimType.DATE in types
    assert ClaimType.GEOGRAPHIC in types


def test_sentence_claims_are_capped_and_truncated():
    sentence = "The war ended after a long battle " + "x" * 300 + "."
    text = " ".join([sentence, "Another war story is told here.", "A third war account follows now."])
    claims = [c for c in extract_claims(text) if c.type == ClaimType.HISTORICAL]

    assert len(claims) == 2
    assert len(claims[0].text) == 200


def test_numbers_followed_by_letters_are_not_units():
    claims = extract_claims("The code 5peoplex is not a quantity, but 12 people is.")
    quantities = [c.text for c in claims if c.type == ClaimType.QUANTITATIVE]
    assert quantities == ["12 people"]


def test_empty_text_has_no_claims():
    assert extract_claims("") == []


# =============================================================================
# KEYWORDS
# =============================================================================

def test_keyword_priority_and_cap():
    keywords = extract_keywords(TEXT)
    assert keywords == ["France", "INSEE", "Unemployment", "2023", "2022", "68 million"]


def test_leading_sentence_opener_is_dropped_from_names():
    keywords = extract_keywords("The Eiffel Tower was completed in 1889 in Paris.")
    assert keywords == ["Eiffel Tower", "Paris", "1889", "Eiffel", "Tower", "completed"]


def test_keywords_only_read_the_start_of_the_text():
    text = "a " * 600 + "Zanzibar"
    assert "Zanzibar" not in extract_keywords(text)


def test_extraction_is_deterministic():
    extractor = ClaimExtractor()
    assert extractor.extract_claims(TEXT) == extractor.extract_claims(TEXT)
    assert extractor.extract_keywords(TEXT) == extractor.extract_keywords(TEXT)
