"""Command-line interface for gearmatch."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .catalog.models import Listing
from .catalog.store import open_catalog
from .config import MatcherConfig
from .data.reference_loader import ReferenceTables
from .dedup.grouper import DuplicateGrouper, GroupingMode
from .dedup.scanner import DuplicateScanner
from .exceptions import GearMatchError
from .matching.ranker import CandidateRanker, MatchOutcome
from .matching.scorer import MatchScorer
from .merge.resolver import MergeResolver
from .normalize.text_normalizer import TextNormalizer
from .quality.scorer import DataQualityScorer
from .report import write_batch_json, write_scan_csv, write_scan_json

logger = logging.getLogger(__name__)


def load_listings(path: str | Path) -> List[Listing]:
    """Load listings from a JSON file (a list, or ``{"listings": [...]}``)."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    rows = data.get('listings', []) if isinstance(data, dict) else data
    if not isinstance(rows, list):
        raise ValueError(f"{path} does not contain a list of listings")

    return [Listing.from_dict(row) for row in rows if isinstance(row, dict)]


def print_match_summary(outcomes: List[MatchOutcome]) -> None:
    """Print per-listing results and totals."""
    print("\n" + "=" * 60)
    print("LISTING MATCH RESULTS")
    print("=" * 60)

    for outcome in outcomes:
        title = outcome.listing.title[:50]
        if outcome.result is not None:
            print(f"[match]   {title:<50}  -> {outcome.result.entry_id} ({outcome.result.score:.2f})")
        elif outcome.error is not None:
            print(f"[error]   {title:<50}  {outcome.error}")
        else:
            print(f"[none]    {title}")

    matched = sum(1 for o in outcomes if o.is_matched)
    print("-" * 60)
    print(f"Listings:   {len(outcomes):,}")
    print(f"Matched:    {matched:,}")
    print(f"Unmatched:  {len(outcomes) - matched:,}")
    print("=" * 60 + "\n")


def match_command(args: argparse.Namespace) -> int:
    """Execute the match command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    config = MatcherConfig(data_dir=args.data_dir, max_workers=args.workers)
    tables = ReferenceTables.load(config.data_dir)
    ranker = CandidateRanker(
        scorer=MatchScorer(tables=tables, config=config),
        config=config,
    )

    listings = load_listings(args.listings)
    store = open_catalog(args.catalog)
    try:
        candidates = store.snapshot()
    finally:
        store.close()

    outcomes = ranker.match_batch(listings, candidates, max_workers=config.max_workers)
    print_match_summary(outcomes)

    if args.output:
        write_batch_json(outcomes, args.output)
        print(f"Results written to {args.output}")

    return 0


def scan_command(args: argparse.Namespace) -> int:
    """Execute the scan command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    config = MatcherConfig(data_dir=args.data_dir)
    tables = ReferenceTables.load(config.data_dir)
    normalizer = TextNormalizer(tables.aliases)

    mode = GroupingMode.EXACT_AND_FUZZY if args.fuzzy else GroupingMode.EXACT
    grouper = DuplicateGrouper(
        normalizer,
        mode=mode,
        similarity_threshold=args.threshold or config.fuzzy_similarity_threshold,
    )

    store = open_catalog(args.catalog)
    try:
        scanner = DuplicateScanner(
            store,
            grouper=grouper,
            quality_scorer=DataQualityScorer(recent_days=config.recent_update_days),
            resolver=MergeResolver(normalizer),
        )
        report = scanner.scan(max_workers=args.workers)
    finally:
        store.close()

    print(report)
    for resolution in report.resolutions:
        print()
        print(resolution)

    if args.json:
        write_scan_json(report, args.json)
        print(f"\nJSON report written to {args.json}")
    if args.csv:
        write_scan_csv(report, args.csv)
        print(f"CSV report written to {args.csv}")

    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='gearmatch',
        description='Match marketplace listings to an audio-gear catalog and find duplicate catalog entries.',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--data-dir',
        type=Path,
        default=None,
        help='Directory with reference JSON tables (default: bundled data)'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='Available commands'
    )

    # Match command
    match_parser = subparsers.add_parser(
        'match',
        help='Match listings against the catalog'
    )
    match_parser.add_argument(
        'listings',
        help='Path to a JSON file of listings'
    )
    match_parser.add_argument(
        '-c', '--catalog',
        required=True,
        help='Catalog JSON export or SQLite snapshot'
    )
    match_parser.add_argument(
        '-w', '--workers',
        type=int,
        default=1,
        help='Number of worker threads (default: 1)'
    )
    match_parser.add_argument(
        '-o', '--output',
        help='Write match outcomes to this JSON file'
    )

    # Scan command
    scan_parser = subparsers.add_parser(
        'scan',
        help='Find duplicate catalog entries and recommend merges'
    )
    scan_parser.add_argument(
        '-c', '--catalog',
        required=True,
        help='Catalog JSON export or SQLite snapshot'
    )
    scan_parser.add_argument(
        '--fuzzy',
        action='store_true',
        help='Also group near-identical model names'
    )
    scan_parser.add_argument(
        '-t', '--threshold',
        type=float,
        default=None,
        help='Fuzzy similarity threshold (default: 0.85)'
    )
    scan_parser.add_argument(
        '-w', '--workers',
        type=int,
        default=1,
        help='Number of worker threads (default: 1)'
    )
    scan_parser.add_argument(
        '--json',
        help='Write the full report to this JSON file'
    )
    scan_parser.add_argument(
        '--csv',
        help='Write one row per group member to this CSV file'
    )

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        'match': match_command,
        'scan': scan_command,
    }

    try:
        return commands[args.command](args)
    except (GearMatchError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
