"""Shared fixtures for gearmatch tests."""

from datetime import datetime, timezone

import pytest

from gearmatch.catalog.models import CatalogEntry, Category
from gearmatch.data.reference_loader import ReferenceTables
from gearmatch.matching.scorer import MatchScorer
from gearmatch.normalize.text_normalizer import TextNormalizer
from gearmatch.quality.scorer import DataQualityScorer

REFERENCE_TIME = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def tables():
    """Small fixture tables with no model variations."""
    return ReferenceTables.from_dicts(
        aliases={
            'sennheiser': ['senn'],
            'audio-technica': ['ath', 'audio technica'],
            'hifiman': ['hifi man'],
            'beyerdynamic': ['beyer'],
        },
        category_keywords={
            'cans': ['headphones', 'headphone'],
            'iems': ['iem', 'iems'],
            'cable': ['cable'],
        },
        accessory_keywords=['eartips', 'tips', 'cable', 'case'],
        gear_keywords=['headphones', 'iem'],
    )


@pytest.fixture
def normalizer(tables):
    return TextNormalizer(tables.aliases)


@pytest.fixture(scope="session")
def bundled_tables():
    """Reference tables shipped with the package."""
    return ReferenceTables.load()


@pytest.fixture
def bundled_normalizer(bundled_tables):
    return TextNormalizer(bundled_tables.aliases)


@pytest.fixture
def scorer(tables, normalizer):
    return MatchScorer(tables=tables, normalizer=normalizer)


@pytest.fixture
def quality_scorer():
    return DataQualityScorer(reference_time=REFERENCE_TIME)


@pytest.fixture
def make_entry():
    """Factory for catalog entries with sensible defaults."""
    def _make(entry_id, brand='Sennheiser', name='HD600', category=Category.HEADPHONE, **kwargs):
        return CatalogEntry(id=entry_id, brand=brand, name=name, category=category, **kwargs)
    return _make
