"""
Levenshtein edit distance helpers.

Backed by rapidfuzz, whose ``Levenshtein.distance`` is the classic
insert/delete/substitute distance (unit costs), symmetric in its arguments.
"""

from typing import Iterable, Optional

from rapidfuzz.distance import Levenshtein


def edit_distance(s1: Optional[str], s2: Optional[str]) -> int:
    """
    Levenshtein distance between two strings.

    ``None`` is treated as an empty string, so ``edit_distance("", "abc") == 3``
    and the call never raises.
    """
    return Levenshtein.distance(s1 or "", s2 or "")


def string_similarity(s1: Optional[str], s2: Optional[str]) -> float:
    """
    Length-normalized similarity in [0, 1].

    (max(len1, len2) - distance) / max(len1, len2); two empty strings are
    considered identical.
    """
    s1 = s1 or ""
    s2 = s2 or ""
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 1.0
    return (max_len - edit_distance(s1, s2)) / max_len


def is_near_token(
    word: str,
    tokens: Iterable[str],
    max_distance: int = 1,
    max_length: int = 12
) -> bool:
    """
    True if ``word`` equals or is within ``max_distance`` edits of a token.

    Only tokens whose length is within ``max_distance`` of the word are
    compared, and words longer than ``max_length`` are only matched exactly,
    so the quadratic distance computation stays bounded.
    """
    if not word:
        return False

    for token in tokens:
        if token == word:
            return True
        if len(word) > max_length or len(token) > max_length:
            continue
        if abs(len(token) - len(word)) > max_distance:
            continue
        if Levenshtein.distance(word, token, score_cutoff=max_distance) <= max_distance:
            return True

    return False
