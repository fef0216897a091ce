"""
Candidate ranking for marketplace listings.

Scores one listing against a candidate set, discards non-matches and returns
the single best catalog entry when it clears the confidence threshold.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..catalog.models import (
    CatalogEntry,
    Category,
    DataQualityDefect,
    Listing,
    find_defect,
    id_sort_key,
)
from ..catalog.store import CatalogStore
from ..config import MatcherConfig, default_config
from ..exceptions import CatalogUnavailableError
from ..normalize.text_normalizer import ListingText
from ..quality.scorer import DataQualityScorer
from ..utils.text import contains_phrase
from .scorer import MatchResult, MatchScorer

logger = logging.getLogger(__name__)

Candidates = Union[Sequence[CatalogEntry], CatalogStore]


class MatchStatus(Enum):
    """Outcome of matching one listing."""
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    ERROR = "error"


@dataclass
class MatchOutcome:
    """Result of matching one listing in a batch."""

    listing: Listing
    status: MatchStatus
    result: Optional[MatchResult] = None
    error: Optional[str] = None

    @property
    def is_matched(self) -> bool:
        return self.status == MatchStatus.MATCHED

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable form."""
        data: Dict[str, Any] = {
            'listing_id': self.listing.listing_id,
            'title': self.listing.title,
            'status': self.status.value,
        }
        if self.result is not None:
            data['match'] = self.result.to_dict()
        if self.error is not None:
            data['error'] = self.error
        return data


class CandidateRanker:
    """
    Picks the best catalog entry for a listing.

    Ranking:
    1. Score every candidate; drop scores of 0
    2. Sort by score (highest first)
    3. Break ties by data quality (highest first), then by lowest id
    4. Accept the top candidate only if its score exceeds the threshold
    """

    def __init__(
        self,
        scorer: Optional[MatchScorer] = None,
        quality_scorer: Optional[DataQualityScorer] = None,
        config: MatcherConfig = default_config
    ):
        """
        Initialize the ranker.

        Args:
            scorer: Match scorer (empty reference tables if omitted)
            quality_scorer: Used to break score ties
            config: Threshold, accessory filtering and worker count
        """
        self.config = config
        self.scorer = scorer or MatchScorer(config=config)
        self.quality_scorer = quality_scorer or DataQualityScorer(
            recent_days=config.recent_update_days
        )
        self.normalizer = self.scorer.normalizer
        self.tables = self.scorer.tables
        # Every brand form (canonical and variant) -> canonical brand
        self._brand_forms = self.tables.aliases.lookup()

    def match_listing(
        self,
        listing: Union[Listing, str],
        candidates: Sequence[CatalogEntry]
    ) -> Optional[MatchResult]:
        """
        Find the best matching catalog entry for a listing.

        Args:
            listing: Listing (or bare title text)
            candidates: Catalog entries to consider

        Returns:
            Best MatchResult above the confidence threshold, or None
        """
        if isinstance(listing, str):
            listing = Listing(title=listing)

        text = self.normalizer.prepare_listing(listing.title, listing.description)
        if text.is_empty:
            logger.debug("Listing has no usable text; unmatched")
            return None

        if self.config.filter_accessories and self.is_accessory_only(text, candidates):
            logger.debug(f"Accessory-only listing skipped: {listing.title!r}")
            return None

        ranked = self.rank(text, candidates, listing.source)
        if not ranked:
            logger.debug(f"No candidate scored above 0 for {listing.title!r}")
            return None

        best = ranked[0]
        if best.score <= self.config.confidence_threshold:
            logger.debug(
                f"Best candidate {best.entry_id} for {listing.title!r} scored "
                f"{best.score:.3f}, below threshold {self.config.confidence_threshold}"
            )
            return None

        logger.debug(f"Matched {listing.title!r} to entry {best.entry_id} ({best.score:.3f})")
        return best

    def rank(
        self,
        text: ListingText,
        candidates: Sequence[CatalogEntry],
        source: Optional[str] = None
    ) -> List[MatchResult]:
        """All candidates with a non-zero score, best first."""
        scored: List[Tuple[MatchResult, CatalogEntry]] = []

        for entry in candidates:
            if find_defect(entry) is not None:
                continue
            result = self.scorer.score(text, entry, source)
            if result.score > 0:
                scored.append((result, entry))

        scored.sort(key=lambda pair: (
            -pair[0].score,
            -self.quality_scorer.score(pair[1]).points,
            id_sort_key(pair[1].id),
        ))
        return [result for result, _ in scored]

    def is_accessory_only(
        self,
        text: ListingText,
        candidates: Sequence[CatalogEntry] = ()
    ) -> bool:
        """
        True if the listing sells only accessories (tips, cables, cases...).

        A listing counts as accessory-only when it mentions an accessory word
        but no gear word and no known brand. Never true when the candidates
        are themselves cables.
        """
        if any(entry.category == Category.CABLE for entry in candidates):
            return False

        vocabulary = self.tables.accessories
        if not any(contains_phrase(text.text, word) for word in vocabulary.accessory_keywords):
            return False
        if any(contains_phrase(text.text, word) for word in vocabulary.gear_keywords):
            return False
        return not self.detect_brands(text)

    def detect_brands(self, text: ListingText) -> List[str]:
        """Canonical brands mentioned in the listing text, sorted."""
        found = {
            canonical
            for form, canonical in self._brand_forms.items()
            if contains_phrase(text.text, form)
        }
        return sorted(found)

    def partition_candidates(
        self,
        candidates: Sequence[CatalogEntry]
    ) -> Tuple[List[CatalogEntry], List[DataQualityDefect]]:
        """Split candidates into matchable entries and defect records."""
        valid: List[CatalogEntry] = []
        defects: List[DataQualityDefect] = []

        for entry in candidates:
            defect = find_defect(entry)
            if defect is None:
                valid.append(entry)
            else:
                defects.append(defect)

        return valid, defects

    def match_from_store(
        self,
        listing: Union[Listing, str],
        store: CatalogStore,
        brand: Optional[str] = None,
        category: Optional[Category] = None
    ) -> Optional[MatchResult]:
        """
        Match a listing against candidates fetched from a catalog store.

        Without an explicit brand, candidates are fetched for every brand
        the listing mentions; if it mentions none, the whole catalog is
        scanned. Each brand is fetched under its canonical name and every
        alias spelling, so rows filed as "Senn" are found for "Sennheiser".

        Raises:
            CatalogUnavailableError: if the store cannot be read
        """
        if isinstance(listing, str):
            listing = Listing(title=listing)

        candidates = self._fetch_candidates(listing, store, brand, category)
        return self.match_listing(listing, candidates)

    def match_batch(
        self,
        listings: Sequence[Listing],
        candidates: Candidates,
        max_workers: Optional[int] = None
    ) -> List[MatchOutcome]:
        """
        Match many listings, in parallel when ``max_workers`` > 1.

        Args:
            listings: Listings to match
            candidates: A fixed candidate list, or a store queried per listing
            max_workers: Thread count (defaults to the configured value)

        Returns:
            One MatchOutcome per listing, in input order
        """
        workers = max_workers or self.config.max_workers

        if not isinstance(candidates, CatalogStore):
            candidates, defects = self.partition_candidates(candidates)
            for defect in defects:
                logger.warning(f"Catalog entry {defect.entry_id} skipped: {defect.reason}")

        logger.info(f"Matching {len(listings)} listings with {workers} worker(s)")

        if workers <= 1:
            outcomes = [self._match_one(listing, candidates) for listing in listings]
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                outcomes = list(executor.map(lambda item: self._match_one(item, candidates), listings))

        matched = sum(1 for o in outcomes if o.is_matched)
        logger.info(f"Matched {matched}/{len(outcomes)} listings")
        return outcomes

    def _match_one(self, listing: Listing, candidates: Candidates) -> MatchOutcome:
        try:
            if isinstance(candidates, CatalogStore):
                result = self.match_from_store(listing, candidates)
            else:
                result = self.match_listing(listing, candidates)
        except CatalogUnavailableError as e:
            logger.warning(f"Catalog unavailable while matching {listing.title!r}: {e}")
            return MatchOutcome(listing=listing, status=MatchStatus.ERROR, error=str(e))

        if result is None:
            return MatchOutcome(listing=listing, status=MatchStatus.UNMATCHED)
        return MatchOutcome(listing=listing, status=MatchStatus.MATCHED, result=result)

    def _fetch_candidates(
        self,
        listing: Listing,
        store: CatalogStore,
        brand: Optional[str],
        category: Optional[Category]
    ) -> List[CatalogEntry]:
        if brand is not None:
            brands = [b for b in (self.normalizer.normalize_brand(brand),) if b]
        else:
            text = self.normalizer.prepare_listing(listing.title, listing.description)
            brands = self.detect_brands(text)

        if not brands:
            return [
                entry for entry in store.iter_entries()
                if category is None or entry.category == category
            ]

        seen = set()
        candidates = []
        for canonical in brands:
            for entry in self._fetch_brand(store, canonical, category):
                if entry.id not in seen:
                    seen.add(entry.id)
                    candidates.append(entry)
        return candidates

    def _fetch_brand(
        self,
        store: CatalogStore,
        canonical: str,
        category: Optional[Category]
    ) -> List[CatalogEntry]:
        """Entries filed under the canonical brand or any of its alias spellings."""
        entries = []
        for form in (canonical,) + self.tables.aliases.variants_for(canonical):
            entries.extend(
                entry for entry in store.fetch(form, category)
                if self.normalizer.normalize_brand(entry.brand) == canonical
            )
        return entries
