"""Duplicate detection over catalog entries.

The scan job lives in ``gearmatch.dedup.scanner``; it is not re-exported here
because it depends on ``gearmatch.merge``, which itself builds on the grouper.
"""

from .grouper import DuplicateGroup, DuplicateGrouper, GroupingMode, GroupingResult

__all__ = ['DuplicateGroup', 'DuplicateGrouper', 'GroupingMode', 'GroupingResult']
