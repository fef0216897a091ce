"""
Reference data loader for brand aliases, category keywords and model variations.

The tables are immutable configuration objects. They are loaded once from the
JSON files bundled next to this module (or from another directory) and
injected into the normalizer and scorer, so tests can build fixture tables
with ``from_dicts`` instead of touching module state.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from ..exceptions import ReferenceDataError
from ..utils.text import basic_clean

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent


def _freeze(mapping: Mapping[str, Iterable[str]]) -> Mapping[str, Tuple[str, ...]]:
    """Clean keys and values and return a read-only mapping of tuples."""
    frozen: Dict[str, Tuple[str, ...]] = {}
    for key, values in mapping.items():
        clean_key = basic_clean(key)
        if not clean_key:
            continue
        cleaned = []
        for value in values:
            clean_value = basic_clean(value)
            if clean_value and clean_value not in cleaned:
                cleaned.append(clean_value)
        frozen[clean_key] = tuple(cleaned)
    return MappingProxyType(frozen)


@dataclass(frozen=True)
class AliasTable:
    """Canonical brand -> known textual variants (abbreviations, misspellings)."""

    brands: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Iterable[str]]) -> 'AliasTable':
        """
        Build a table from ``{canonical: [variants]}``.

        Raises:
            ReferenceDataError: if one variant maps to two canonical brands
        """
        brands = _freeze(data)

        owner: Dict[str, str] = {}
        for canonical, variants in brands.items():
            for text in (canonical,) + variants:
                previous = owner.setdefault(text, canonical)
                if previous != canonical:
                    raise ReferenceDataError(
                        f"Alias '{text}' maps to both '{previous}' and '{canonical}'"
                    )

        return cls(brands=brands)

    def variants_for(self, canonical: str) -> Tuple[str, ...]:
        """Variants registered for a canonical brand (empty if unknown)."""
        return self.brands.get(canonical, ())

    def lookup(self) -> Dict[str, str]:
        """Every canonical form and variant mapped to its canonical brand."""
        result: Dict[str, str] = {}
        for canonical, variants in self.brands.items():
            result[canonical] = canonical
            for variant in variants:
                result[variant] = canonical
        return result

    def __contains__(self, canonical: str) -> bool:
        return canonical in self.brands


@dataclass(frozen=True)
class CategoryKeywordTable:
    """Category tag -> phrases that signal that category in free text."""

    categories: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Iterable[str]]) -> 'CategoryKeywordTable':
        return cls(categories=_freeze(data))

    def keywords_for(self, category: str) -> Tuple[str, ...]:
        return self.categories.get(category, ())


@dataclass(frozen=True)
class ModelVariationTable:
    """Canonical model name -> catalogued alternative spellings."""

    models: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Iterable[str]]) -> 'ModelVariationTable':
        return cls(models=_freeze(data))

    def variations_for(self, model_name: str) -> Tuple[str, ...]:
        return self.models.get(basic_clean(model_name), ())


@dataclass(frozen=True)
class AccessoryVocabulary:
    """Words that mark accessory-only listings versus actual gear."""

    accessory_keywords: FrozenSet[str] = frozenset()
    gear_keywords: FrozenSet[str] = frozenset()

    @classmethod
    def from_lists(
        cls,
        accessory_keywords: Iterable[str],
        gear_keywords: Iterable[str]
    ) -> 'AccessoryVocabulary':
        return cls(
            accessory_keywords=frozenset(basic_clean(k) for k in accessory_keywords if k),
            gear_keywords=frozenset(basic_clean(k) for k in gear_keywords if k),
        )


@dataclass(frozen=True)
class ReferenceTables:
    """All reference tables used by the normalizer and scorer."""

    aliases: AliasTable = field(default_factory=AliasTable)
    category_keywords: CategoryKeywordTable = field(default_factory=CategoryKeywordTable)
    model_variations: ModelVariationTable = field(default_factory=ModelVariationTable)
    accessories: AccessoryVocabulary = field(default_factory=AccessoryVocabulary)

    @classmethod
    def from_dicts(
        cls,
        aliases: Optional[Mapping[str, Iterable[str]]] = None,
        category_keywords: Optional[Mapping[str, Iterable[str]]] = None,
        model_variations: Optional[Mapping[str, Iterable[str]]] = None,
        accessory_keywords: Optional[Iterable[str]] = None,
        gear_keywords: Optional[Iterable[str]] = None,
    ) -> 'ReferenceTables':
        """Build tables from plain dictionaries (fixtures, overrides)."""
        return cls(
            aliases=AliasTable.from_dict(aliases or {}),
            category_keywords=CategoryKeywordTable.from_dict(category_keywords or {}),
            model_variations=ModelVariationTable.from_dict(model_variations or {}),
            accessories=AccessoryVocabulary.from_lists(
                accessory_keywords or [], gear_keywords or []
            ),
        )

    @classmethod
    def load(cls, data_dir: Optional[Path] = None) -> 'ReferenceTables':
        """
        Load all tables from JSON files.

        Args:
            data_dir: Directory holding the JSON files (defaults to the
                bundled ``gearmatch/data``)

        Raises:
            ReferenceDataError: if a required file is missing or malformed
        """
        data_dir = Path(data_dir) if data_dir else DATA_DIR

        brand_data = _read_json(data_dir / 'brand_aliases.json')
        keyword_data = _read_json(data_dir / 'category_keywords.json')

        # Optional files
        variation_path = data_dir / 'model_variations.json'
        variation_data = _read_json(variation_path) if variation_path.exists() else {}
        accessory_path = data_dir / 'accessory_keywords.json'
        accessory_data = _read_json(accessory_path) if accessory_path.exists() else {}

        aliases: Dict[str, List[str]] = {}
        for brand in brand_data.get('brands', []):
            try:
                aliases[brand['canonical']] = brand.get('variants', [])
            except (KeyError, TypeError) as e:
                raise ReferenceDataError(f"Malformed brand alias entry: {brand!r}") from e

        tables = cls.from_dicts(
            aliases=aliases,
            category_keywords=keyword_data.get('categories', {}),
            model_variations=variation_data.get('models', {}),
            accessory_keywords=accessory_data.get('accessory_keywords', []),
            gear_keywords=accessory_data.get('gear_keywords', []),
        )

        logger.info(
            f"Loaded reference data from {data_dir}: "
            f"{len(tables.aliases.brands)} brands, "
            f"{len(tables.category_keywords.categories)} categories, "
            f"{len(tables.model_variations.models)} model variations"
        )
        return tables


def _read_json(path: Path) -> dict:
    """Read a JSON object from disk."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ReferenceDataError(f"Reference data file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ReferenceDataError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ReferenceDataError(f"Expected a JSON object in {path}")
    return data
