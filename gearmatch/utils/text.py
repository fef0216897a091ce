"""Low-level text cleanup shared by the normalizer and the reference tables."""

import re
from typing import Optional

# Separators become spaces so "ATH-M50x" keeps its token boundary
_SEPARATORS = re.compile(r'[-_/\\|]+')
_PUNCTUATION = re.compile(r'[^\w\s]+')
_WHITESPACE = re.compile(r'\s+')


def basic_clean(text: Optional[str]) -> str:
    """
    Lowercase, strip punctuation and collapse whitespace.

    Hyphens, slashes and underscores are treated as word separators; every
    other punctuation character is dropped. Never raises; ``None`` and
    non-string input yield an empty string.
    """
    if not isinstance(text, str) or not text:
        return ""

    s = text.lower()
    s = _SEPARATORS.sub(' ', s)
    s = _PUNCTUATION.sub('', s)
    s = _WHITESPACE.sub(' ', s).strip()

    return s


def contains_phrase(text: str, phrase: str) -> bool:
    """True if ``phrase`` occurs in ``text`` on word boundaries."""
    if not text or not phrase:
        return False
    return re.search(rf'(?<!\w){re.escape(phrase)}(?!\w)', text) is not None
