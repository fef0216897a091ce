"""
Tests for the command-line interface.
"""

import json

import pandas as pd
import pytest

from gearmatch.cli import create_parser, load_listings, main

CATALOG = {
    'components': [
        {'id': 1, 'brand': 'Sennheiser', 'name': 'HD600', 'category': 'cans', 'crinacle_rank': 'A'},
        {'id': 2, 'brand': 'Sennheiser', 'name': 'HD 650', 'category': 'cans'},
        {'id': 3, 'brand': 'Sennheiser', 'name': 'HD650', 'category': 'cans', 'tone_grade': 'A-'},
        {'id': 4, 'brand': None, 'name': 'Mystery', 'category': 'cans'},
    ]
}

LISTINGS = [
    {'id': 'r1', 'title': 'Sennheiser HD600', 'source': 'reddit'},
    {'id': 'r2', 'title': 'Random Widget'},
]


@pytest.fixture
def catalog_path(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(CATALOG), encoding='utf-8')
    return path


@pytest.fixture
def listings_path(tmp_path):
    path = tmp_path / "listings.json"
    path.write_text(json.dumps({'listings': LISTINGS}), encoding='utf-8')
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_prog_name(self):
        """Test the program name."""
        assert create_parser().prog == 'gearmatch'

    def test_scan_arguments(self):
        """Test scan options."""
        args = create_parser().parse_args(['scan', '-c', 'x.json', '--fuzzy', '-t', '0.9'])

        assert args.command == 'scan'
        assert args.fuzzy
        assert args.threshold == 0.9

    def test_no_command(self, capsys):
        """Test that running without a command prints help."""
        assert main([]) == 0
        assert 'usage' in capsys.readouterr().out


class TestMatchCommand:
    """Tests for the match subcommand."""

    def test_load_listings(self, listings_path):
        """Test listing file parsing."""
        listings = load_listings(listings_path)
        assert [listing.listing_id for listing in listings] == ['r1', 'r2']

    def test_match(self, catalog_path, listings_path, tmp_path, capsys):
        """Test matching listings and writing the outcomes."""
        output = tmp_path / "out.json"
        code = main(['match', str(listings_path), '-c', str(catalog_path), '-o', str(output)])

        assert code == 0
        assert "LISTING MATCH RESULTS" in capsys.readouterr().out

        data = json.loads(output.read_text(encoding='utf-8'))
        assert data['matched'] == 1
        assert data['outcomes'][0]['match']['candidate_id'] == 1
        assert data['outcomes'][1]['status'] == 'unmatched'

    def test_missing_catalog(self, listings_path, tmp_path, capsys):
        """Test that an unreadable catalog is reported as an error."""
        code = main(['match', str(listings_path), '-c', str(tmp_path / "missing.json")])

        assert code == 1
        assert "Error" in capsys.readouterr().err

    def test_missing_listings(self, catalog_path, tmp_path, capsys):
        """Test that a missing listings file is reported as an error."""
        code = main(['match', str(tmp_path / "missing.json"), '-c', str(catalog_path)])

        assert code == 1
        assert "Error" in capsys.readouterr().err


class TestScanCommand:
    """Tests for the scan subcommand."""

    def test_scan(self, catalog_path, tmp_path, capsys):
        """Test a scan with JSON and CSV reports."""
        json_path = tmp_path / "scan.json"
        csv_path = tmp_path / "scan.csv"
        code = main(['scan', '-c', str(catalog_path), '--json', str(json_path), '--csv', str(csv_path)])

        assert code == 0
        out = capsys.readouterr().out
        assert "4 entries, 1 groups" in out
        assert "merge_or_delete" in out

        data = json.loads(json_path.read_text(encoding='utf-8'))
        assert data['resolutions'][0]['canonical_id'] == 3
        assert data['defects'] == [{'entry_id': 4, 'reason': 'missing brand'}]

        df = pd.read_csv(csv_path)
        assert sorted(df['entry_id']) == [2, 3]

    def test_invalid_threshold(self, catalog_path, capsys):
        """Test that an out-of-range threshold is an error."""
        code = main(['scan', '-c', str(catalog_path), '--fuzzy', '-t', '1.5'])

        assert code == 1
        assert "Error" in capsys.readouterr().err
