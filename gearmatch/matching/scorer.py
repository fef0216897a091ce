"""
Match scoring engine for listings against catalog entries.

Calculates brand, model-name, category and source sub-scores for one listing
and one catalog entry, and combines them into a weighted score in [0, 1].
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..catalog.models import CatalogEntry, EntryId
from ..config import MatcherConfig, default_config
from ..data.reference_loader import ReferenceTables
from ..normalize.text_normalizer import ListingText, TextNormalizer
from ..utils.edit_distance import is_near_token
from ..utils.text import contains_phrase
from .rules import NO_MATCH, Rule, RuleSet, ScoringContext

# 2-4 digits with optional trailing letters, also inside "hd600" or "dt770pro"
MODEL_NUMBER_PATTERN = re.compile(r'(?<!\d)\d{2,4}[a-z]*(?![\d])')

_TRADE_TAG = re.compile(r'\[w(?:ts|tt|tb)\]', re.IGNORECASE)
_PRICE = re.compile(r'[$€£]\s?\d+|\b\d+\s?(?:usd|eur|gbp)\b|\bpaypal\b', re.IGNORECASE)
_CONDITION = re.compile(
    r'\b(?:brand new|like new|new|used|refurbished|excellent|very good|good|mint)\b',
    re.IGNORECASE
)

TRADE_FORUM_SOURCES = ('reddit',)
MARKETPLACE_SOURCES = ('ebay', 'reverb')


def extract_model_numbers(text: str) -> List[str]:
    """
    Extract model-number tokens from text.

    "hd600" -> ["600"], "dt 770 pro" -> ["770"], "he400se" -> ["400se"]
    """
    if not text:
        return []
    return MODEL_NUMBER_PATTERN.findall(text.lower())


@dataclass
class MatchResult:
    """Result of scoring one listing against one catalog entry."""

    entry_id: EntryId

    # Individual component scores (0-1)
    brand_score: float = 0.0
    name_score: float = 0.0
    category_score: float = 0.0
    source_score: float = 0.0

    # Overall weighted score (0-1)
    score: float = 0.0

    # Which rules fired, for auditability
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_brand_gated(self) -> bool:
        """True if the missing brand forced the total to zero."""
        return self.brand_score == 0.0

    def breakdown(self) -> Dict[str, Any]:
        """Sub-scores and the rules that fired for each."""
        return {
            'brand': {'score': round(self.brand_score, 4), 'rule': self.details.get('brand_rule')},
            'name': {'score': round(self.name_score, 4), 'rule': self.details.get('name_rule')},
            'category': {'score': round(self.category_score, 4), 'rule': self.details.get('category_rule')},
            'source': {'score': round(self.source_score, 4), 'rules': self.details.get('source_rules', [])},
        }

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable form for logging and audit."""
        return {
            'candidate_id': self.entry_id,
            'score': round(self.score, 4),
            'breakdown': self.breakdown(),
        }

    def __str__(self) -> str:
        """Human-readable description."""
        return (
            f"Match Score: {self.score:.2f} (entry {self.entry_id})\n"
            f"  Brand: {self.brand_score:.2f}\n"
            f"  Name: {self.name_score:.2f}\n"
            f"  Category: {self.category_score:.2f}\n"
            f"  Source: {self.source_score:.2f}"
        )


class MatchScorer:
    """
    Calculates match scores between listing text and catalog entries.

    Scoring weights:
    - Brand: 40% (gating: no brand evidence means a total of 0)
    - Model name: 40%
    - Category keywords: 10%
    - Source-typical patterns: 10%
    """

    def __init__(
        self,
        tables: Optional[ReferenceTables] = None,
        normalizer: Optional[TextNormalizer] = None,
        config: MatcherConfig = default_config
    ):
        """
        Initialize the scorer.

        Args:
            tables: Reference tables (empty tables if omitted)
            normalizer: Text normalizer (built from ``tables`` if omitted)
            config: Weights and rule scores
        """
        self.tables = tables or ReferenceTables()
        self.normalizer = normalizer or TextNormalizer(self.tables.aliases)
        self.config = config

        self.brand_rules = self._build_brand_rules()
        self.name_rules = self._build_name_rules()
        self.category_rules = self._build_category_rules()
        self.source_rules = self._build_source_rules()

    def score(
        self,
        listing: ListingText,
        entry: CatalogEntry,
        source: Optional[str] = None
    ) -> MatchResult:
        """
        Calculate the match score of one listing against one entry.

        Args:
            listing: Prepared listing text (``TextNormalizer.prepare_listing``)
            entry: Catalog entry
            source: Listing source tag (e.g. "reddit_avexchange", "ebay")

        Returns:
            MatchResult with sub-scores and the rules that fired
        """
        result = MatchResult(entry_id=entry.id)

        if listing.is_empty:
            result.details['reason'] = 'empty listing text'
            return result
        if not entry.is_matchable:
            result.details['reason'] = 'entry missing brand or name'
            return result

        ctx = ScoringContext(
            listing=listing,
            entry=entry,
            brand_key=self.normalizer.normalize_brand(entry.brand),
            model_name=self.normalizer.normalize_model_name(entry.name, entry.brand),
            source=(source or '').lower(),
        )

        brand = self.brand_rules.evaluate(ctx)
        result.brand_score = brand.score
        result.details['brand_rule'] = brand.rule

        if brand.score == 0:
            result.details['reason'] = 'no brand evidence'
            return result

        name = self.name_rules.evaluate(ctx)
        category = self.category_rules.evaluate(ctx)
        source_outcome = self.source_rules.evaluate(ctx) if ctx.source else NO_MATCH

        result.name_score = name.score
        result.category_score = category.score
        result.source_score = source_outcome.score
        result.details['name_rule'] = name.rule
        result.details['category_rule'] = category.rule
        result.details['source_rules'] = list(source_outcome.fired)

        weights = self.config.weights
        total = (
            result.brand_score * weights['brand'] +
            result.name_score * weights['name'] +
            result.category_score * weights['category'] +
            result.source_score * weights['source']
        )
        result.score = max(0.0, min(total, 1.0))

        return result

    def score_text(
        self,
        text: str,
        entry: CatalogEntry,
        source: Optional[str] = None
    ) -> MatchResult:
        """Convenience wrapper taking raw listing text."""
        return self.score(self.normalizer.prepare_listing(text), entry, source)

    # ========== Brand ==========

    def _build_brand_rules(self) -> RuleSet:
        cfg = self.config
        return RuleSet(name='brand', rules=(
            Rule('brand_exact', self._brand_exact, cfg.brand_exact_score),
            Rule('brand_alias', self._brand_alias, cfg.brand_alias_score),
            Rule('brand_partial', self._brand_partial, cfg.brand_partial_score),
        ))

    def _brand_exact(self, ctx: ScoringContext) -> bool:
        text = ctx.listing.text
        raw_brand = self.normalizer.clean_text(ctx.entry.brand)
        return bool(ctx.brand_key) and (ctx.brand_key in text or (raw_brand and raw_brand in text))

    def _brand_alias(self, ctx: ScoringContext) -> bool:
        return any(
            contains_phrase(ctx.listing.text, variant)
            for variant in self.tables.aliases.variants_for(ctx.brand_key)
        )

    def _brand_partial(self, ctx: ScoringContext) -> bool:
        words = [w for w in ctx.brand_key.split() if len(w) >= self.config.brand_min_token_length]
        if not words:
            return False

        matches = sum(1 for w in words if w in ctx.listing.text or self._is_typo(w, ctx))
        return matches > 0 and matches >= len(words) * self.config.brand_partial_ratio

    # ========== Model name ==========

    def _build_name_rules(self) -> RuleSet:
        cfg = self.config
        return RuleSet(name='name', rules=(
            Rule('name_exact', self._name_exact, cfg.name_exact_score),
            Rule('name_variation', self._name_variation, cfg.name_variation_score),
            Rule('name_model_number', self._name_model_number, cfg.name_model_number_score),
            Rule('name_partial', lambda ctx: True, self._name_partial_score),
        ))

    def _name_exact(self, ctx: ScoringContext) -> bool:
        return bool(ctx.model_name) and ctx.model_name in ctx.listing.text

    def _name_variation(self, ctx: ScoringContext) -> bool:
        variations = self.tables.model_variations.variations_for(ctx.model_name)
        return any(contains_phrase(ctx.listing.text, v) for v in variations)

    def _name_model_number(self, ctx: ScoringContext) -> bool:
        for number in extract_model_numbers(ctx.model_name):
            pattern = rf'(?<!\d){re.escape(number)}(?!\d)'
            if re.search(pattern, ctx.listing.text) or re.search(pattern, ctx.listing.compact):
                return True
        return False

    def _name_partial_score(self, ctx: ScoringContext) -> float:
        """Share of significant name words found in the text, scaled."""
        words = [w for w in ctx.model_name.split() if len(w) >= self.config.name_min_token_length]
        if not words:
            return 0.0

        matches = sum(1 for w in words if w in ctx.listing.text or self._is_typo(w, ctx))
        return (matches / len(words)) * self.config.name_partial_scale

    # ========== Category ==========

    def _build_category_rules(self) -> RuleSet:
        return RuleSet(name='category', rules=(
            Rule('category_keyword', self._category_keyword, 1.0),
        ))

    def _category_keyword(self, ctx: ScoringContext) -> bool:
        if ctx.entry.category is None:
            return False
        keywords = self.tables.category_keywords.keywords_for(ctx.entry.category.value)
        return any(contains_phrase(ctx.listing.text, k) for k in keywords)

    # ========== Source ==========

    def _build_source_rules(self) -> RuleSet:
        cfg = self.config
        return RuleSet(name='source', additive=True, cap=1.0, rules=(
            Rule('trade_tag', self._trade_tag, cfg.source_trade_tag_credit),
            Rule('price_mention', self._price_mention, cfg.source_price_credit),
            Rule('condition_vocabulary', self._condition_vocabulary, cfg.source_condition_credit),
        ))

    @staticmethod
    def _is_trade_forum(source: str) -> bool:
        return any(s in source for s in TRADE_FORUM_SOURCES)

    @staticmethod
    def _is_marketplace(source: str) -> bool:
        return any(s in source for s in MARKETPLACE_SOURCES)

    def _trade_tag(self, ctx: ScoringContext) -> bool:
        return self._is_trade_forum(ctx.source) and bool(_TRADE_TAG.search(ctx.listing.raw))

    def _price_mention(self, ctx: ScoringContext) -> bool:
        return self._is_trade_forum(ctx.source) and bool(_PRICE.search(ctx.listing.raw))

    def _condition_vocabulary(self, ctx: ScoringContext) -> bool:
        return self._is_marketplace(ctx.source) and bool(_CONDITION.search(ctx.listing.raw))

    # ========== Helpers ==========

    def _is_typo(self, word: str, ctx: ScoringContext) -> bool:
        return is_near_token(
            word,
            ctx.listing.tokens,
            max_distance=self.config.max_typo_distance,
            max_length=self.config.max_fuzzy_token_length,
        )

