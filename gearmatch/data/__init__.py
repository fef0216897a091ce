"""Bundled reference data (brand aliases, category keywords, model variations)."""

from .reference_loader import (
    AccessoryVocabulary,
    AliasTable,
    CategoryKeywordTable,
    ModelVariationTable,
    ReferenceTables,
)

__all__ = [
    'AccessoryVocabulary',
    'AliasTable',
    'CategoryKeywordTable',
    'ModelVariationTable',
    'ReferenceTables',
]
