"""gearmatch - Match marketplace listings to an audio-gear catalog and find duplicate catalog entries."""

__version__ = "0.1.0"

from .catalog.models import CatalogEntry, Category, Listing
from .catalog.store import CatalogStore, InMemoryCatalogStore, open_catalog
from .config import MatcherConfig, default_config
from .data.reference_loader import ReferenceTables
from .dedup.grouper import DuplicateGrouper, GroupingMode
from .dedup.scanner import DuplicateScanner
from .matching.ranker import CandidateRanker
from .matching.scorer import MatchScorer
from .merge.resolver import MergeAction, MergeResolver
from .normalize.text_normalizer import TextNormalizer
from .quality.scorer import DataQualityScorer

__all__ = [
    'CatalogEntry',
    'Category',
    'Listing',
    'CatalogStore',
    'InMemoryCatalogStore',
    'open_catalog',
    'MatcherConfig',
    'default_config',
    'ReferenceTables',
    'DuplicateGrouper',
    'GroupingMode',
    'DuplicateScanner',
    'CandidateRanker',
    'MatchScorer',
    'MergeAction',
    'MergeResolver',
    'TextNormalizer',
    'DataQualityScorer',
]
