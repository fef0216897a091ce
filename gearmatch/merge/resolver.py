"""
Merge resolution for duplicate catalog groups.

Picks the canonical entry of a group, classifies what should happen to the
other members and, where a merge is warranted, plans which field values the
canonical entry should take over. Nothing here touches the catalog: plans are
handed to an external executor after human review.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..catalog.models import CatalogEntry, EntryId, id_sort_key
from ..dedup.grouper import DuplicateGroup
from ..normalize.text_normalizer import TextNormalizer
from ..quality.scorer import QualityScore

logger = logging.getLogger(__name__)

# Product-data fields an executor may copy onto the canonical entry
MERGEABLE_FIELDS = tuple(
    name for name in CatalogEntry.data_field_names() if name != 'updated_at'
)


class MergeAction(Enum):
    """Recommended handling of a duplicate group."""
    DELETE = "delete"
    MERGE = "merge"
    RESEARCH = "research"
    MERGE_OR_DELETE = "merge_or_delete"
    MANUAL_RESOLUTION = "manual_resolution"


@dataclass
class MergePlan:
    """What an executor should do to collapse a group into one entry."""

    canonical_id: EntryId
    delete_ids: List[EntryId]
    # Values the canonical entry should take; fields it already holds are omitted
    merged_fields: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'canonical_id': self.canonical_id,
            'delete_ids': list(self.delete_ids),
            'merged_fields': dict(self.merged_fields),
        }


@dataclass
class Resolution:
    """Recommendation for one duplicate group."""

    group: DuplicateGroup
    action: MergeAction
    canonical_id: Optional[EntryId]
    reason: str
    plan: Optional[MergePlan] = None
    qualities: Dict[EntryId, QualityScore] = field(default_factory=dict)

    @property
    def needs_review(self) -> bool:
        """True if a human must decide before anything is deleted."""
        return self.action in (MergeAction.RESEARCH, MergeAction.MANUAL_RESOLUTION)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'group': self.group.to_dict(),
            'action': self.action.value,
            'canonical_id': self.canonical_id,
            'reason': self.reason,
            'plan': self.plan.to_dict() if self.plan else None,
            'qualities': {str(k): v.to_dict() for k, v in self.qualities.items()},
        }

    def __str__(self) -> str:
        """Human-readable description."""
        return (
            f"Group: {self.group.key} ({self.group.size} entries, {self.group.match_type})\n"
            f"  Action: {self.action.value}\n"
            f"  Canonical: {self.canonical_id}\n"
            f"  Reason: {self.reason}"
        )


class MergeResolver:
    """
    Decides how to collapse a duplicate group.

    Canonical selection (in order):
    1. Highest data quality points
    2. Has observed used pricing
    3. Most recently updated
    4. Lowest id

    Classification:
    - Identical literal names, nothing unique on the others: DELETE
    - Identical literal names, others hold unique data: MERGE
    - Differing literal names, others hold unique data: RESEARCH
    - Differing literal names, nothing unique: MERGE_OR_DELETE
    - Top two members indistinguishable: MANUAL_RESOLUTION
    """

    def __init__(self, normalizer: Optional[TextNormalizer] = None):
        """
        Initialize the resolver.

        Args:
            normalizer: Used to compare literal model names
        """
        self.normalizer = normalizer or TextNormalizer()

    def resolve(
        self,
        group: DuplicateGroup,
        entries: Optional[Sequence[CatalogEntry]] = None,
        qualities: Optional[Mapping[EntryId, QualityScore]] = None
    ) -> Resolution:
        """
        Resolve one duplicate group.

        Args:
            group: Group from the DuplicateGrouper
            entries: Member entries (defaults to the records carried by the group)
            qualities: Quality score per member id

        Returns:
            Resolution with the action, canonical id and (for DELETE, MERGE and
            MERGE_OR_DELETE) a merge plan
        """
        members = list(entries if entries is not None else group.entries)
        if len(members) < 2:
            raise ValueError(f"Group {group.key!r} needs at least two member entries")

        qualities = dict(qualities or {})
        points = {id(e): _points(qualities.get(e.id)) for e in members}

        ranked = sorted(members, key=lambda e: self._canonical_sort_key(e, points[id(e)]))
        first, second = ranked[0], ranked[1]

        if self._canonical_sort_key(first, points[id(first)]) == \
                self._canonical_sort_key(second, points[id(second)]):
            logger.warning(
                f"Group {group.key!r}: entries {first.id} and {second.id} are "
                f"indistinguishable; manual resolution required"
            )
            return Resolution(
                group=group,
                action=MergeAction.MANUAL_RESOLUTION,
                canonical_id=None,
                reason='top candidates tie on quality, pricing, recency and id',
                qualities=qualities,
            )

        canonical = first
        others = ranked[1:]

        same_name = len({self.normalizer.literal_name(e.name, e.brand) for e in members}) == 1
        unique = self.unique_fields(canonical, others)

        if same_name and not unique:
            action = MergeAction.DELETE
            reason = 'identical names, no unique data on duplicates'
        elif same_name:
            action = MergeAction.MERGE
            reason = f"identical names, duplicates hold unique data: {', '.join(unique)}"
        elif unique:
            action = MergeAction.RESEARCH
            reason = f"names differ and duplicates hold unique data: {', '.join(unique)}"
        else:
            action = MergeAction.MERGE_OR_DELETE
            reason = 'names differ, no unique data on duplicates'

        plan = None
        if action != MergeAction.RESEARCH:
            plan = MergePlan(
                canonical_id=canonical.id,
                delete_ids=[e.id for e in others],
                merged_fields=self.merge_fields(ranked),
            )

        logger.debug(f"Group {group.key!r}: {action.value}, canonical {canonical.id}")
        return Resolution(
            group=group,
            action=action,
            canonical_id=canonical.id,
            reason=reason,
            plan=plan,
            qualities=qualities,
        )

    @staticmethod
    def unique_fields(canonical: CatalogEntry, others: Sequence[CatalogEntry]) -> List[str]:
        """Fields where a non-canonical member holds a non-null value the canonical lacks or differs on."""
        unique = []
        for name in MERGEABLE_FIELDS:
            canonical_value = _field_value(canonical, name)
            for other in others:
                value = _field_value(other, name)
                if value is not None and value != canonical_value:
                    unique.append(name)
                    break
        return unique

    @staticmethod
    def merge_fields(ranked: Sequence[CatalogEntry]) -> Dict[str, Any]:
        """
        Field values the canonical entry should take over.

        ``ranked`` starts with the canonical entry. Each field takes the first
        non-null value in that order, except the used-price range, which
        widens to the lowest minimum and highest maximum seen. Only values
        that differ from the canonical entry are returned.
        """
        canonical = ranked[0]
        merged: Dict[str, Any] = {}

        for name in MERGEABLE_FIELDS:
            values = [_field_value(e, name) for e in ranked if _field_value(e, name) is not None]
            if not values:
                continue

            if name == 'price_used_min':
                value = min(values)
            elif name == 'price_used_max':
                value = max(values)
            else:
                value = values[0]

            if value != _field_value(canonical, name):
                merged[name] = value

        return merged

    @staticmethod
    def _canonical_sort_key(entry: CatalogEntry, points: int):
        return (
            -points,
            not entry.has_pricing,
            -_timestamp(entry.updated_at),
            id_sort_key(entry.id),
        )


def _field_value(entry: CatalogEntry, name: str) -> Any:
    """Field value with blank strings treated as missing."""
    value = getattr(entry, name)
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _points(quality: Optional[QualityScore]) -> int:
    return quality.points if quality is not None else 0


def _timestamp(value: Optional[datetime]) -> float:
    return value.timestamp() if value is not None else float('-inf')
