"""Exceptions raised by the matching engine."""


class GearMatchError(Exception):
    """Base class for all gearmatch errors."""


class CatalogUnavailableError(GearMatchError):
    """The catalog store could not be read.

    Distinct from an empty candidate list: callers use it to tell
    "no match exists" apart from "could not determine whether a match exists".
    """


class ReferenceDataError(GearMatchError):
    """Alias, keyword or variation tables are missing or inconsistent."""


class ScanCancelledError(GearMatchError):
    """A duplicate scan was cancelled between bucket boundaries."""
