"""Catalog data model and read-only store adapters."""

from .models import (
    CatalogEntry,
    Category,
    DataQualityDefect,
    Listing,
    find_defect,
    id_sort_key,
)
from .store import (
    CatalogStore,
    InMemoryCatalogStore,
    JsonCatalogStore,
    SQLiteCatalogStore,
    open_catalog,
)

__all__ = [
    'CatalogEntry',
    'Category',
    'DataQualityDefect',
    'Listing',
    'find_defect',
    'id_sort_key',
    'CatalogStore',
    'InMemoryCatalogStore',
    'JsonCatalogStore',
    'SQLiteCatalogStore',
    'open_catalog',
]
