"""
Text Normalizer.

WHAT THIS DOES:
Cleans raw user text (or text extracted from a PDF) before anything else
touches it:
1. Removes non-printable control characters (keeps tab / newline / CR)
2. Removes script-like markup: <script>, <style>, <iframe> blocks,
   javascript: URLs and inline on...= event handlers
3. Trims and truncates to a character budget

Paragraph breaks survive, because the segmenter splits long documents on
blank lines.

USAGE:
    clean = normalize_text(raw_text, max_chars=10_000)
"""

import re

DEFAULT_MAX_CHARS = 10_000

# C0 controls except \t \n \r, plus DEL
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
SCRIPT_BLOCKS = re.compile(
    r"<(script|style|iframe)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)
# An opening tag left over without its closing tag (truncated paste)
DANGLING_TAGS = re.compile(r"</?(script|style|iframe)\b[^>]*>", re.IGNORECASE)
JS_SCHEME = re.compile(r"javascript\s*:", re.IGNORECASE)
EVENT_HANDLERS = re.compile(r"\bon\w+\s*=", re.IGNORECASE)


def normalize_text(text: str | None, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    """
    Return a cleaned copy of text, at most max_chars long.

    Non-string input yields an empty string.
    """
    if not text or not isinstance(text, str):
        return ""

    cleaned = CONTROL_CHARS.sub("", text)
    cleaned = SCRIPT_BLOCKS.sub("", cleaned)
    cleaned = DANGLING_TAGS.sub("", cleaned)
    cleaned = JS_SCHEME.sub("", cleaned)
    cleaned = EVENT_HANDLERS.sub("", cleaned)

    # Trim, cut, trim again so the cut never leaves trailing whitespace
    return cleaned.strip()[:max_chars].strip()


def collapse_whitespace(text: str) -> str:
    """Single-space everything; used for excerpts and queries."""
    return re.sub(r"\s+", " ", text or "").strip()
