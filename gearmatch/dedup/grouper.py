"""
Duplicate detection for catalog entries.

Entries are bucketed by normalized brand and category, so a group can never
span two brands or two categories. Within a bucket, entries sharing the
exact duplicate key are grouped first; the optional fuzzy pass then links
the remaining entries whose model names are within the similarity threshold.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..catalog.models import (
    CatalogEntry,
    Category,
    DataQualityDefect,
    EntryId,
    find_defect,
    id_sort_key,
)
from ..exceptions import ScanCancelledError
from ..normalize.text_normalizer import TextNormalizer
from ..utils.edit_distance import string_similarity

logger = logging.getLogger(__name__)

BucketKey = Tuple[str, str]


class GroupingMode(Enum):
    """Which duplicate-detection passes to run."""
    EXACT = "exact"
    EXACT_AND_FUZZY = "exact_and_fuzzy"


@dataclass
class DuplicateGroup:
    """A set of catalog entries believed to describe the same product."""

    key: str
    brand_key: str
    category: Optional[Category]
    member_ids: List[EntryId]
    max_similarity: float = 1.0
    match_type: str = "exact"
    # Member records in member_ids order
    entries: List[CatalogEntry] = field(default_factory=list, repr=False, compare=False)

    @property
    def size(self) -> int:
        return len(self.member_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'brand': self.brand_key,
            'category': self.category.value if self.category else None,
            'member_ids': list(self.member_ids),
            'max_similarity': round(self.max_similarity, 4),
            'match_type': self.match_type,
        }


@dataclass
class GroupingResult:
    """Duplicate groups plus the entries that could not be grouped."""

    groups: List[DuplicateGroup] = field(default_factory=list)
    defects: List[DataQualityDefect] = field(default_factory=list)


class _UnionFind:
    """Disjoint sets over list indexes."""

    def __init__(self, size: int):
        self.parent = list(range(size))

    def find(self, i: int) -> int:
        while self.parent[i] != i:
            self.parent[i] = self.parent[self.parent[i]]
            i = self.parent[i]
        return i

    def union(self, a: int, b: int):
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            # Lower index becomes the root so results do not depend on call order
            if root_b < root_a:
                root_a, root_b = root_b, root_a
            self.parent[root_b] = root_a


class DuplicateGrouper:
    """
    Groups catalog entries that describe the same product.

    Passes:
    1. Exact: identical ``brand|model`` duplicate keys
    2. Fuzzy (EXACT_AND_FUZZY mode): model-name similarity at or above the
       threshold, linked transitively, among entries the exact pass left
       ungrouped
    """

    def __init__(
        self,
        normalizer: Optional[TextNormalizer] = None,
        mode: GroupingMode = GroupingMode.EXACT,
        similarity_threshold: float = 0.85
    ):
        """
        Initialize the grouper.

        Args:
            normalizer: Builds duplicate keys (shared with listing matching)
            mode: Exact only, or exact plus fuzzy
            similarity_threshold: Minimum fuzzy similarity (0-1)
        """
        if not 0.0 < similarity_threshold <= 1.0:
            raise ValueError(f"similarity_threshold must be in (0, 1], got {similarity_threshold}")

        self.normalizer = normalizer or TextNormalizer()
        self.mode = mode
        self.similarity_threshold = similarity_threshold

    def group(
        self,
        entries: Iterable[CatalogEntry],
        cancel=None,
        max_workers: int = 1
    ) -> GroupingResult:
        """
        Find duplicate groups.

        Args:
            entries: Catalog entries (one consistent snapshot)
            cancel: ``threading.Event`` (or anything with ``is_set()``)
                checked between buckets
            max_workers: Buckets processed in parallel when > 1

        Returns:
            GroupingResult with groups sorted by key and members sorted by id

        Raises:
            ScanCancelledError: if ``cancel`` is set before all buckets finish
        """
        result = GroupingResult()
        buckets: Dict[BucketKey, List[CatalogEntry]] = {}

        for entry in entries:
            defect = find_defect(entry)
            if defect is not None:
                logger.warning(f"Catalog entry {defect.entry_id} excluded from grouping: {defect.reason}")
                result.defects.append(defect)
                continue

            bucket = (
                self.normalizer.normalize_brand(entry.brand),
                entry.category.value if entry.category else '',
            )
            buckets.setdefault(bucket, []).append(entry)

        ordered = [buckets[key] for key in sorted(buckets)]
        logger.info(f"Grouping {sum(len(b) for b in ordered)} entries in {len(ordered)} brand/category buckets")

        def run(bucket_entries: List[CatalogEntry]) -> List[DuplicateGroup]:
            if cancel is not None and cancel.is_set():
                raise ScanCancelledError("Duplicate scan cancelled")
            return self._group_bucket(bucket_entries)

        if max_workers > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                per_bucket = list(executor.map(run, ordered))
        else:
            per_bucket = [run(bucket_entries) for bucket_entries in ordered]

        for groups in per_bucket:
            result.groups.extend(groups)

        result.groups.sort(key=lambda g: (
            g.key,
            g.category.value if g.category else '',
            [id_sort_key(i) for i in g.member_ids],
        ))
        result.defects.sort(key=lambda d: id_sort_key(d.entry_id))

        exact = sum(1 for g in result.groups if g.match_type == 'exact')
        logger.info(
            f"Found {len(result.groups)} duplicate groups "
            f"({exact} exact, {len(result.groups) - exact} fuzzy)"
        )
        return result

    def _group_bucket(self, entries: Sequence[CatalogEntry]) -> List[DuplicateGroup]:
        """Group one brand/category bucket."""
        entries = sorted(entries, key=lambda e: id_sort_key(e.id))
        brand_key = self.normalizer.normalize_brand(entries[0].brand)
        category = entries[0].category

        by_key: Dict[str, List[CatalogEntry]] = {}
        for entry in entries:
            by_key.setdefault(self.normalizer.duplicate_key(entry.brand, entry.name), []).append(entry)

        groups = []
        leftovers = []
        for key, members in by_key.items():
            if len(members) >= 2:
                groups.append(DuplicateGroup(
                    key=key,
                    brand_key=brand_key,
                    category=category,
                    member_ids=[m.id for m in members],
                    entries=list(members),
                    max_similarity=1.0,
                    match_type='exact',
                ))
            else:
                leftovers.extend(members)

        if self.mode == GroupingMode.EXACT_AND_FUZZY and len(leftovers) >= 2:
            leftovers.sort(key=lambda e: id_sort_key(e.id))
            groups.extend(self._fuzzy_groups(leftovers, brand_key, category))

        return groups

    def _fuzzy_groups(
        self,
        entries: List[CatalogEntry],
        brand_key: str,
        category: Optional[Category]
    ) -> List[DuplicateGroup]:
        """Link entries by model-name similarity (union-find)."""
        names = [
            self.normalizer.normalize_model_name(e.name, e.brand, for_duplicates=True)
            for e in entries
        ]

        uf = _UnionFind(len(entries))
        similarities: Dict[Tuple[int, int], float] = {}

        for i, j in combinations(range(len(entries)), 2):
            if not names[i] or not names[j]:
                continue
            similarity = string_similarity(names[i], names[j])
            similarities[(i, j)] = similarity
            if similarity >= self.similarity_threshold:
                uf.union(i, j)

        components: Dict[int, List[int]] = {}
        for i in range(len(entries)):
            components.setdefault(uf.find(i), []).append(i)

        groups = []
        for root, indexes in components.items():
            if len(indexes) < 2:
                continue
            max_similarity = max(
                similarities.get(pair, 0.0) for pair in combinations(indexes, 2)
            )
            groups.append(DuplicateGroup(
                key=self.normalizer.duplicate_key(entries[root].brand, entries[root].name),
                brand_key=brand_key,
                category=category,
                member_ids=[entries[i].id for i in indexes],
                entries=[entries[i] for i in indexes],
                max_similarity=max_similarity,
                match_type='fuzzy',
            ))

        return groups
