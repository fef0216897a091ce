"""
Duplicate scan job.

Reads one catalog snapshot, groups duplicates, scores data quality and
resolves every group into a recommendation. The scan is read-only and
deterministic: re-running it on unchanged data with the same reference time
produces the same report.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..catalog.models import DataQualityDefect
from ..catalog.store import CatalogStore
from ..exceptions import ScanCancelledError
from ..merge.resolver import MergeAction, MergeResolver, Resolution
from ..quality.scorer import DataQualityScorer
from .grouper import DuplicateGrouper, GroupingMode

logger = logging.getLogger(__name__)


@dataclass
class DuplicateScanReport:
    """Everything a reviewer needs to act on a duplicate scan."""

    total_entries: int
    mode: GroupingMode
    reference_time: datetime
    resolutions: List[Resolution] = field(default_factory=list)
    defects: List[DataQualityDefect] = field(default_factory=list)

    @property
    def duplicate_entries(self) -> int:
        """Entries that would be removed if every plan were applied."""
        return sum(len(r.plan.delete_ids) for r in self.resolutions if r.plan)

    def action_counts(self) -> Dict[str, int]:
        counts = Counter(r.action.value for r in self.resolutions)
        return {action.value: counts.get(action.value, 0) for action in MergeAction}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_entries': self.total_entries,
            'mode': self.mode.value,
            'reference_time': self.reference_time.isoformat(),
            'groups': len(self.resolutions),
            'duplicate_entries': self.duplicate_entries,
            'actions': self.action_counts(),
            'resolutions': [r.to_dict() for r in self.resolutions],
            'defects': [d.to_dict() for d in self.defects],
        }

    def __str__(self) -> str:
        """Human-readable summary."""
        lines = [
            f"Duplicate scan ({self.mode.value}): {self.total_entries} entries, "
            f"{len(self.resolutions)} groups",
        ]
        for action, count in self.action_counts().items():
            if count:
                lines.append(f"  {action}: {count}")
        if self.defects:
            lines.append(f"  Skipped (missing brand/name): {len(self.defects)}")
        return "\n".join(lines)


class DuplicateScanner:
    """Runs the full duplicate-detection pipeline over a catalog store."""

    def __init__(
        self,
        store: CatalogStore,
        grouper: Optional[DuplicateGrouper] = None,
        quality_scorer: Optional[DataQualityScorer] = None,
        resolver: Optional[MergeResolver] = None
    ):
        """
        Initialize the scanner.

        Args:
            store: Catalog to scan (read once per scan)
            grouper: Duplicate grouper (exact mode if omitted)
            quality_scorer: Data quality scorer (reference time fixed at creation)
            resolver: Merge resolver sharing the grouper's normalizer if omitted
        """
        self.store = store
        self.grouper = grouper or DuplicateGrouper()
        self.quality_scorer = quality_scorer or DataQualityScorer()
        self.resolver = resolver or MergeResolver(self.grouper.normalizer)

    def scan(self, cancel=None, max_workers: int = 1) -> DuplicateScanReport:
        """
        Scan the catalog for duplicates.

        Args:
            cancel: ``threading.Event`` checked between buckets and groups
            max_workers: Buckets grouped in parallel when > 1

        Raises:
            CatalogUnavailableError: if the store cannot be read
            ScanCancelledError: if ``cancel`` is set during the scan
        """
        entries = self.store.snapshot()
        logger.info(f"Scanning {len(entries)} catalog entries for duplicates ({self.grouper.mode.value})")

        grouping = self.grouper.group(entries, cancel=cancel, max_workers=max_workers)

        resolutions = []
        for group in grouping.groups:
            if cancel is not None and cancel.is_set():
                raise ScanCancelledError("Duplicate scan cancelled")
            qualities = {e.id: self.quality_scorer.score(e) for e in group.entries}
            resolutions.append(self.resolver.resolve(group, group.entries, qualities))

        report = DuplicateScanReport(
            total_entries=len(entries),
            mode=self.grouper.mode,
            reference_time=self.quality_scorer.reference_time,
            resolutions=resolutions,
            defects=grouping.defects,
        )
        logger.info(f"Scan complete: {len(resolutions)} groups, {report.duplicate_entries} removable entries")
        return report
