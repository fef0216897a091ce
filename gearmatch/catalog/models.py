"""Data models for catalog entries and marketplace listings."""

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

EntryId = Union[int, str]


class Category(Enum):
    """Catalog category tags."""
    HEADPHONE = "cans"
    IN_EAR = "iems"
    DAC = "dac"
    AMPLIFIER = "amp"
    DAC_AMP = "dac_amp"
    CABLE = "cable"

    @classmethod
    def parse(cls, value: Any) -> Optional['Category']:
        """Parse a category tag; unknown or empty values yield None."""
        if isinstance(value, cls):
            return value
        if not value:
            return None
        text = str(value).strip().lower()
        for category in cls:
            if category.value == text or category.name.lower() == text:
                return category
        return None


# Original column names accepted by CatalogEntry.from_dict
_COLUMN_ALIASES = {
    'crinacle_rank': 'expert_rank',
    'crinacle_sound_signature': 'expert_sound_signature',
    'asr_sinad': 'sinad',
}

# Fields that describe the record rather than the product data
IDENTITY_FIELDS = ('id', 'brand', 'name', 'category')


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (or epoch seconds) into an aware datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def id_sort_key(entry_id: EntryId) -> Tuple[int, Any]:
    """
    Total ordering key for catalog ids.

    Numeric ids (ints or digit strings) sort numerically before any
    non-numeric id; non-numeric ids sort lexically.
    """
    if isinstance(entry_id, bool):
        return (1, str(entry_id))
    if isinstance(entry_id, int):
        return (0, entry_id)
    text = str(entry_id)
    if text.isdigit():
        return (0, int(text))
    return (1, text)


@dataclass(frozen=True)
class CatalogEntry:
    """A canonical catalog record for one piece of audio equipment."""

    id: EntryId
    brand: Optional[str] = None
    name: Optional[str] = None
    category: Optional[Category] = None

    # Pricing
    price_used_min: Optional[float] = None
    price_used_max: Optional[float] = None
    price_new: Optional[float] = None

    # Expert ratings
    expert_rank: Optional[str] = None
    tone_grade: Optional[str] = None
    technical_grade: Optional[str] = None
    value_rating: Optional[float] = None
    expert_sound_signature: Optional[str] = None

    # Technical specs
    sound_signature: Optional[str] = None
    driver_type: Optional[str] = None
    fit: Optional[str] = None
    impedance: Optional[float] = None

    # Objective measurement (SINAD, dB)
    sinad: Optional[float] = None

    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Treat a naive update timestamp as UTC."""
        if isinstance(self.updated_at, datetime) and self.updated_at.tzinfo is None:
            object.__setattr__(self, 'updated_at', self.updated_at.replace(tzinfo=timezone.utc))

    @property
    def is_matchable(self) -> bool:
        """True if the entry has the brand and name needed for matching."""
        return bool((self.brand or '').strip()) and bool((self.name or '').strip())

    @property
    def has_pricing(self) -> bool:
        """True if any observed used price is recorded."""
        return self.price_used_min is not None or self.price_used_max is not None

    @classmethod
    def data_field_names(cls) -> Tuple[str, ...]:
        """Names of the mergeable product-data fields."""
        return tuple(f.name for f in fields(cls) if f.name not in IDENTITY_FIELDS)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CatalogEntry':
        """
        Create an entry from a catalog row.

        Accepts the original column names (``crinacle_rank``, ``asr_sinad``,
        ``crinacle_sound_signature``) and ignores unknown columns.
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}

        for key, value in data.items():
            target = _COLUMN_ALIASES.get(key, key)
            if target in known and values.get(target) is None:
                values[target] = value

        if values.get('id') is None:
            raise ValueError(f"Catalog row has no id: {data!r}")

        values['category'] = Category.parse(values.get('category'))
        values['updated_at'] = parse_timestamp(values.get('updated_at'))

        for numeric in ('price_used_min', 'price_used_max', 'price_new',
                        'value_rating', 'impedance', 'sinad'):
            values[numeric] = _to_float(values.get(numeric))

        for text_field in ('expert_rank', 'tone_grade', 'technical_grade'):
            if values.get(text_field) is not None:
                values[text_field] = str(values[text_field])

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Category):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            result[f.name] = value
        return result


@dataclass(frozen=True)
class Listing:
    """A marketplace listing to resolve against the catalog."""

    title: str
    description: Optional[str] = None
    source: Optional[str] = None
    price: Optional[float] = None
    listing_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Listing':
        return cls(
            title=str(data.get('title') or ''),
            description=data.get('description'),
            source=data.get('source'),
            price=_to_float(data.get('price')),
            listing_id=None if data.get('id') is None else str(data['id']),
        )


@dataclass(frozen=True)
class DataQualityDefect:
    """A catalog entry excluded from matching or grouping."""

    entry_id: EntryId
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {'entry_id': self.entry_id, 'reason': self.reason}


def find_defect(entry: CatalogEntry) -> Optional[DataQualityDefect]:
    """Return a defect record if the entry cannot be matched or grouped."""
    missing = []
    if not (entry.brand or '').strip():
        missing.append('brand')
    if not (entry.name or '').strip():
        missing.append('name')
    if missing:
        return DataQualityDefect(entry_id=entry.id, reason=f"missing {' and '.join(missing)}")
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
