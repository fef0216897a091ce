"""
Report export for duplicate scans and batch matching.

JSON output goes through pydantic models so the file layout is declared in
one place; the flat CSV export (one row per group member) is built with
pandas for spreadsheet review.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd
from pydantic import BaseModel

from .dedup.scanner import DuplicateScanReport
from .matching.ranker import MatchOutcome

logger = logging.getLogger(__name__)

EntryIdValue = Union[int, str]

CSV_COLUMNS = [
    'group_key', 'match_type', 'max_similarity', 'action', 'entry_id',
    'brand', 'name', 'category', 'quality_points', 'quality_percentage',
    'is_canonical', 'to_delete', 'reason',
]


class QualityModel(BaseModel):
    points: int
    max: int
    percentage: int


class MergePlanModel(BaseModel):
    canonical_id: EntryIdValue
    delete_ids: List[EntryIdValue]
    merged_fields: Dict[str, Union[float, str, None]]


class GroupModel(BaseModel):
    key: str
    brand: str
    category: Optional[str] = None
    member_ids: List[EntryIdValue]
    max_similarity: float
    match_type: str


class ResolutionModel(BaseModel):
    group: GroupModel
    action: str
    canonical_id: Optional[EntryIdValue] = None
    reason: str
    plan: Optional[MergePlanModel] = None
    qualities: Dict[str, QualityModel]


class DefectModel(BaseModel):
    entry_id: EntryIdValue
    reason: str


class ScanReportModel(BaseModel):
    total_entries: int
    mode: str
    reference_time: str
    groups: int
    duplicate_entries: int
    actions: Dict[str, int]
    resolutions: List[ResolutionModel]
    defects: List[DefectModel]


class MatchModel(BaseModel):
    candidate_id: EntryIdValue
    score: float
    breakdown: Dict[str, dict]


class MatchOutcomeModel(BaseModel):
    listing_id: Optional[str] = None
    title: str
    status: str
    match: Optional[MatchModel] = None
    error: Optional[str] = None


class MatchBatchModel(BaseModel):
    total: int
    matched: int
    unmatched: int
    errors: int
    outcomes: List[MatchOutcomeModel]


def build_scan_model(report: DuplicateScanReport) -> ScanReportModel:
    """Validate a scan report into its export model."""
    return ScanReportModel(**report.to_dict())


def build_batch_model(outcomes: Sequence[MatchOutcome]) -> MatchBatchModel:
    """Validate batch matching outcomes into their export model."""
    statuses = [o.status.value for o in outcomes]
    return MatchBatchModel(
        total=len(outcomes),
        matched=statuses.count('matched'),
        unmatched=statuses.count('unmatched'),
        errors=statuses.count('error'),
        outcomes=[MatchOutcomeModel(**o.to_dict()) for o in outcomes],
    )


def scan_to_dataframe(report: DuplicateScanReport) -> pd.DataFrame:
    """
    Flatten a scan report to one row per group member.

    Columns: group key, match type, similarity, action, member identity,
    quality, whether the member is the canonical entry and whether the plan
    deletes it.
    """
    records = []
    for resolution in report.resolutions:
        group = resolution.group
        delete_ids = set(resolution.plan.delete_ids) if resolution.plan else set()

        for entry in group.entries:
            quality = resolution.qualities.get(entry.id)
            records.append({
                'group_key': group.key,
                'match_type': group.match_type,
                'max_similarity': round(group.max_similarity, 4),
                'action': resolution.action.value,
                'entry_id': entry.id,
                'brand': entry.brand,
                'name': entry.name,
                'category': entry.category.value if entry.category else None,
                'quality_points': quality.points if quality else None,
                'quality_percentage': quality.percentage if quality else None,
                'is_canonical': entry.id == resolution.canonical_id,
                'to_delete': entry.id in delete_ids,
                'reason': resolution.reason,
            })

    return pd.DataFrame(records, columns=CSV_COLUMNS)


def write_scan_json(report: DuplicateScanReport, path: Union[str, Path]) -> Path:
    """Write the scan report as JSON."""
    path = Path(path)
    path.write_text(build_scan_model(report).model_dump_json(indent=2), encoding='utf-8')
    logger.info(f"Scan report written to {path}")
    return path


def write_scan_csv(report: DuplicateScanReport, path: Union[str, Path]) -> Path:
    """Write the flat per-member scan report as CSV."""
    path = Path(path)
    df = scan_to_dataframe(report)
    df.to_csv(path, index=False)
    logger.info(f"Scan CSV with {len(df)} rows written to {path}")
    return path


def write_batch_json(outcomes: Sequence[MatchOutcome], path: Union[str, Path]) -> Path:
    """Write batch matching outcomes as JSON."""
    path = Path(path)
    path.write_text(build_batch_model(outcomes).model_dump_json(indent=2), encoding='utf-8')
    logger.info(f"Match outcomes written to {path}")
    return path
