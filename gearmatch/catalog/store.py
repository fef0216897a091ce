"""
Catalog store adapters.

The matching engine only reads the catalog. A store must support fetching the
entries of one brand (optionally one category) and a full-scan iterator. Any
I/O failure is raised as ``CatalogUnavailableError`` so callers can tell an
empty result apart from an unreadable catalog.
"""

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from ..exceptions import CatalogUnavailableError
from ..utils.text import basic_clean
from .models import CatalogEntry, Category

logger = logging.getLogger(__name__)


class CatalogStore(ABC):
    """Read-only access to catalog entries."""

    @abstractmethod
    def fetch(self, brand: str, category: Optional[Category] = None) -> List[CatalogEntry]:
        """Entries whose brand matches ``brand`` (case/punctuation-insensitive)."""

    @abstractmethod
    def iter_entries(self) -> Iterator[CatalogEntry]:
        """Iterate over every catalog entry."""

    def snapshot(self) -> List[CatalogEntry]:
        """Materialize one consistent list of all entries."""
        return list(self.iter_entries())

    def close(self):
        """Release any underlying resources."""


class InMemoryCatalogStore(CatalogStore):
    """Catalog held in memory (fixtures, pre-loaded snapshots)."""

    def __init__(self, entries: Iterable[CatalogEntry]):
        self._entries = tuple(entries)

    def fetch(self, brand: str, category: Optional[Category] = None) -> List[CatalogEntry]:
        wanted = basic_clean(brand)
        return [
            entry for entry in self._entries
            if basic_clean(entry.brand) == wanted
            and (category is None or entry.category == category)
        ]

    def iter_entries(self) -> Iterator[CatalogEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class JsonCatalogStore(InMemoryCatalogStore):
    """Catalog loaded from a JSON export (a list of rows, or ``{"components": [...]}``)."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        super().__init__(self._load())

    def _load(self) -> List[CatalogEntry]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogUnavailableError(f"Could not read catalog {self.path}: {e}") from e

        rows = data.get('components', []) if isinstance(data, dict) else data
        if not isinstance(rows, list):
            raise CatalogUnavailableError(f"Catalog {self.path} does not contain a list of rows")

        entries = []
        for row in rows:
            try:
                entries.append(CatalogEntry.from_dict(row))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping unreadable catalog row in {self.path}: {e}")

        logger.info(f"Loaded {len(entries)} catalog entries from {self.path}")
        return entries


class SQLiteCatalogStore(CatalogStore):
    """Read-only adapter for a SQLite catalog snapshot.

    The snapshot holds a ``components`` table whose columns follow the
    catalog row names accepted by ``CatalogEntry.from_dict``.
    """

    def __init__(self, db_path: str | Path, table: str = 'components'):
        """Open the database read-only.

        Args:
            db_path: Path to the SQLite file
            table: Table holding catalog rows
        """
        self.db_path = Path(db_path)
        self.table = table

        if not self.db_path.exists():
            raise CatalogUnavailableError(f"Catalog database not found: {self.db_path}")

        try:
            self.conn = sqlite3.connect(
                f"file:{self.db_path}?mode=ro", uri=True, check_same_thread=False
            )
        except sqlite3.Error as e:
            raise CatalogUnavailableError(f"Could not open {self.db_path}: {e}") from e
        self.conn.row_factory = sqlite3.Row
        self.conn.create_function('BRANDKEY', 1, basic_clean)
        # Shared by batch-matching worker threads
        self._lock = threading.Lock()

    def close(self):
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def fetch(self, brand: str, category: Optional[Category] = None) -> List[CatalogEntry]:
        query = f"SELECT * FROM {self.table} WHERE BRANDKEY(brand) = ?"
        params: list = [basic_clean(brand)]
        if category is not None:
            query += " AND category = ?"
            params.append(category.value)
        query += " ORDER BY id"
        return list(self._query(query, params))

    def iter_entries(self) -> Iterator[CatalogEntry]:
        return self._query(f"SELECT * FROM {self.table} ORDER BY id", [])

    def _query(self, query: str, params: list) -> Iterator[CatalogEntry]:
        if self.conn is None:
            raise CatalogUnavailableError(f"Catalog database {self.db_path} is closed")

        try:
            with self._lock:
                rows = self.conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise CatalogUnavailableError(f"Catalog query failed on {self.db_path}: {e}") from e

        entries = []
        for row in rows:
            try:
                entries.append(CatalogEntry.from_dict(dict(row)))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping unreadable catalog row: {e}")
        return iter(entries)


def open_catalog(path: str | Path) -> CatalogStore:
    """Open a catalog file, choosing the adapter from its extension."""
    path = Path(path)
    if path.suffix.lower() in ('.db', '.sqlite', '.sqlite3'):
        return SQLiteCatalogStore(path)
    return JsonCatalogStore(path)
