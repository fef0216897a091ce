"""Configuration for listing matching and duplicate scanning."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional


@dataclass(frozen=True)
class MatcherConfig:
    """Tunable weights and thresholds for the matching engine."""

    # Reference tables (None = bundled gearmatch/data)
    data_dir: Optional[Path] = None

    # Sub-score weights (must sum to 1.0)
    weights: Dict[str, float] = field(default_factory=lambda: {
        'brand': 0.4,
        'name': 0.4,
        'category': 0.1,
        'source': 0.1,
    })

    # Brand rule scores
    brand_exact_score: float = 1.0
    brand_alias_score: float = 0.8
    brand_partial_score: float = 0.6
    brand_partial_ratio: float = 0.5
    brand_min_token_length: int = 4

    # Name rule scores
    name_exact_score: float = 1.0
    name_variation_score: float = 0.9
    name_model_number_score: float = 0.7
    name_partial_scale: float = 0.6
    name_min_token_length: int = 3

    # Source bonus credits (capped at 1.0 before weighting)
    source_trade_tag_credit: float = 0.5
    source_price_credit: float = 0.5
    source_condition_credit: float = 1.0

    # Typo tolerance
    max_typo_distance: int = 1
    max_fuzzy_token_length: int = 12

    # Candidate acceptance
    confidence_threshold: float = 0.3
    filter_accessories: bool = True

    # Duplicate detection
    fuzzy_similarity_threshold: float = 0.85

    # Data quality
    recent_update_days: int = 30

    # Batch execution
    max_workers: int = 1

    def __post_init__(self):
        """Validate weights."""
        total = sum(self.weights.values())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.3f}")


# Global configuration instance
default_config = MatcherConfig()
