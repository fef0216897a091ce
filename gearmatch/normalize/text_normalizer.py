"""
Brand and model-name normalization.

All functions are pure and deterministic: the same input always produces the
same output, normalizing twice gives the same result as normalizing once, and
empty or ``None`` input yields an empty string instead of raising.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from ..data.reference_loader import AliasTable
from ..utils.text import basic_clean

# Trailing qualifiers dropped when building duplicate-detection keys
NOISE_SUFFIXES = frozenset({'pro', 'plus', 'se'})
_MK_TOKEN = re.compile(r'^mk(?:\d+|i{1,3}|iv|v)$')
_MK_NUMBER = re.compile(r'^(?:\d+|i{1,3}|iv|v)$')

_PARENTHETICAL = re.compile(r'\([^)]*\)|\[[^\]]*\]')
_YEAR_QUALIFIER = re.compile(r'\(\s*(?:19|20)\d{2}\s*\)')

# Trade-forum titles: "[WTS][USA-CA][H] Sennheiser HD6XX [W] $180 PayPal"
_HAVE_SECTION = re.compile(r'\[H\]\s*(.+?)\s*\[W\]', re.IGNORECASE)
_TRADE_TAGS = re.compile(r'\[(?:wts|wtt|wtb|h|w|usa?-[a-z]{2}|[a-z]{2,3}-[a-z]{2})\]', re.IGNORECASE)


@dataclass(frozen=True)
class ListingText:
    """Listing free text prepared once for scoring against many candidates."""

    # Lowercased original text, punctuation kept (source patterns, prices)
    raw: str
    # Cleaned text used for brand/name/category evidence
    text: str
    tokens: Tuple[str, ...]
    # Cleaned text without spaces ("hd 600" -> "hd600")
    compact: str

    @property
    def is_empty(self) -> bool:
        return not self.text


class TextNormalizer:
    """
    Canonicalizes brand and model free text.

    Normalization steps:
    - Lowercase, punctuation removed, whitespace collapsed
    - Brand aliases replaced by their canonical brand (longest match wins)
    - Brand prefix removed from model names
    - Duplicate-key mode additionally drops parenthetical qualifiers and
      trailing noise suffixes (pro, plus, se, mk2 family)
    """

    def __init__(self, aliases: Optional[AliasTable] = None):
        """
        Initialize the normalizer.

        Args:
            aliases: Brand alias table (empty table if omitted)
        """
        self.aliases = aliases or AliasTable()
        self._lookup = self.aliases.lookup()

        if self._lookup:
            # Longest alternatives first so canonical forms win over their own variants
            alternatives = sorted(self._lookup, key=lambda s: (-len(s), s))
            self._alias_pattern = re.compile(
                r'(?<!\w)(?:' + '|'.join(re.escape(a) for a in alternatives) + r')(?!\w)'
            )
        else:
            self._alias_pattern = None

    def normalize_brand(self, brand: Optional[str]) -> str:
        """
        Normalize a brand name.

        Args:
            brand: Raw brand text

        Returns:
            Cleaned brand with alias variants replaced by the canonical brand
        """
        cleaned = basic_clean(brand)
        if not cleaned or self._alias_pattern is None:
            return cleaned

        # A replacement can form a new alias with its neighbours
        # ("schiit at" -> "schiit audio technica"), so substitute to a fixed point
        seen = []
        current = cleaned
        while current not in seen:
            seen.append(current)
            current = self._alias_pattern.sub(lambda m: self._lookup[m.group(0)], current)

        # A cycle (not expected from real tables) resolves to its smallest member
        return min(seen[seen.index(current):])

    def normalize_model_name(
        self,
        name: Optional[str],
        brand: Optional[str] = None,
        for_duplicates: bool = False
    ) -> str:
        """
        Normalize a model name.

        Args:
            name: Raw model name (may start with the brand)
            brand: Brand of the entry, stripped from the start of the name
            for_duplicates: Build a duplicate-detection key: drop
                parenthetical qualifiers, trailing noise suffixes and all spaces

        Returns:
            Normalized model name
        """
        if not isinstance(name, str) or not name:
            return ""

        s = name.lower()
        if for_duplicates:
            s = _PARENTHETICAL.sub(' ', s)

        s = basic_clean(s)
        s = self._strip_brand_prefix(s, brand)

        if for_duplicates:
            tokens = self._strip_noise_suffixes(s.split())
            s = ''.join(tokens)

        return s

    def literal_name(self, name: Optional[str], brand: Optional[str] = None) -> str:
        """
        Model name as written, minus case, punctuation and year qualifiers.

        "Sundara" and "Sundara (2020)" share a literal name; "HD 650" and
        "HD650" do not.
        """
        if not isinstance(name, str) or not name:
            return ""
        return self.normalize_model_name(_YEAR_QUALIFIER.sub(' ', name), brand)

    def duplicate_key(self, brand: Optional[str], name: Optional[str]) -> str:
        """Exact-duplicate key: normalized brand + "|" + suffix-stripped model name."""
        return f"{self.normalize_brand(brand)}|{self.normalize_model_name(name, brand, for_duplicates=True)}"

    def prepare_listing(self, title: Optional[str], description: Optional[str] = None) -> ListingText:
        """
        Prepare listing text for scoring.

        For trade-forum titles only the ``[H]`` (have) section of the title
        is used as evidence, so the ``[W]`` (want) section cannot match gear
        the seller is asking for.
        """
        title = title if isinstance(title, str) else ""
        description = description if isinstance(description, str) else ""

        have = _HAVE_SECTION.search(title)
        focus = have.group(1) if have else title

        text = basic_clean(_TRADE_TAGS.sub(' ', f"{focus} {description}"))
        raw = f"{title} {description}".lower().strip()

        return ListingText(
            raw=raw,
            text=text,
            tokens=tuple(text.split()),
            compact=text.replace(' ', ''),
        )

    @staticmethod
    def clean_text(text: Optional[str]) -> str:
        """Basic cleanup only (lowercase, punctuation, whitespace)."""
        return basic_clean(text)

    def _strip_brand_prefix(self, name: str, brand: Optional[str]) -> str:
        """Remove leading brand words; never reduces the name to nothing."""
        if not name or not brand:
            return name

        prefixes = {basic_clean(brand), self.normalize_brand(brand)}
        prefixes.discard('')

        stripped = True
        while stripped:
            stripped = False
            for prefix in sorted(prefixes, key=len, reverse=True):
                if name.startswith(prefix + ' '):
                    name = name[len(prefix) + 1:].lstrip()
                    stripped = True
                    break

        return name

    @staticmethod
    def _strip_noise_suffixes(tokens: list) -> list:
        """Drop trailing noise tokens while more than one token remains."""
        tokens = list(tokens)
        while len(tokens) > 1:
            last = tokens[-1]
            if last in NOISE_SUFFIXES or _MK_TOKEN.match(last):
                tokens.pop()
            elif len(tokens) > 2 and tokens[-2] == 'mk' and _MK_NUMBER.match(last):
                # "mk 2", "mk ii"
                del tokens[-2:]
            else:
                break
        return tokens
