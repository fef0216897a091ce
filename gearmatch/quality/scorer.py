"""
Data quality scoring for catalog entries.

Rates how complete an entry is. Expert ratings carry the largest combined
weight, pricing the smallest. Every point is awarded for a populated field,
so filling in a previously empty field can never lower the score.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from ..catalog.models import CatalogEntry

# (group, field, points)
FIELD_POINTS: Tuple[Tuple[str, str, int], ...] = (
    ('pricing', 'price_new', 1),
    ('expert', 'tone_grade', 3),
    ('expert', 'technical_grade', 3),
    ('expert', 'expert_rank', 2),
    ('expert', 'value_rating', 1),
    ('expert', 'expert_sound_signature', 1),
    ('measurement', 'sinad', 3),
    ('specs', 'driver_type', 1),
    ('specs', 'fit', 1),
    ('specs', 'impedance', 1),
    ('basic', 'sound_signature', 1),
)
USED_PRICE_POINTS = 1
RECENCY_POINTS = 1

MAX_POINTS = USED_PRICE_POINTS + sum(points for _, _, points in FIELD_POINTS) + RECENCY_POINTS


@dataclass(frozen=True)
class QualityScore:
    """Completeness score of one entry."""

    points: int
    max_points: int = MAX_POINTS

    @property
    def percentage(self) -> int:
        if self.max_points == 0:
            return 0
        return round(self.points / self.max_points * 100)

    def to_dict(self) -> Dict[str, int]:
        return {'points': self.points, 'max': self.max_points, 'percentage': self.percentage}


class DataQualityScorer:
    """
    Scores catalog entries by populated fields.

    Point weights:
    - Observed used price (min or max): 1
    - Manufacturer price: 1
    - Expert ratings: tone grade 3, technical grade 3, rank 2,
      value rating 1, expert sound signature 1
    - Objective measurement (SINAD): 3
    - Technical specs: driver type, fit, impedance (1 each)
    - Sound signature: 1
    - Updated within the recency window: 1
    """

    def __init__(self, reference_time: Optional[datetime] = None, recent_days: int = 30):
        """
        Initialize the scorer.

        Args:
            reference_time: "Now" for the recency bonus. Fixed per scan so
                repeated runs over unchanged data give identical scores.
            recent_days: Size of the recency window in days
        """
        if reference_time is None:
            reference_time = datetime.now(timezone.utc)
        elif reference_time.tzinfo is None:
            reference_time = reference_time.replace(tzinfo=timezone.utc)

        self.reference_time = reference_time
        self.recent_days = recent_days

    def score(self, entry: CatalogEntry) -> QualityScore:
        """Calculate the quality score of an entry."""
        points = 0

        if entry.has_pricing:
            points += USED_PRICE_POINTS

        for _, field_name, field_points in FIELD_POINTS:
            if _is_populated(getattr(entry, field_name)):
                points += field_points

        if self.is_recent(entry):
            points += RECENCY_POINTS

        return QualityScore(points=points)

    def is_recent(self, entry: CatalogEntry) -> bool:
        """True if the entry was updated within the recency window."""
        if entry.updated_at is None:
            return False
        age = self.reference_time - entry.updated_at
        return age <= timedelta(days=self.recent_days)

    def score_all(self, entries) -> Dict:
        """Scores keyed by entry id."""
        return {entry.id: self.score(entry) for entry in entries}


def _is_populated(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True
