"""
Tests for the match scoring engine and its rule lists.
"""

import pytest

from gearmatch.catalog.models import Category
from gearmatch.config import MatcherConfig
from gearmatch.data.reference_loader import ReferenceTables
from gearmatch.matching import MatchScorer, Rule, RuleSet, extract_model_numbers


class TestModelNumbers:
    """Tests for model-number extraction."""

    def test_glued_to_series_prefix(self):
        """Test that digits glued to letters are found."""
        assert extract_model_numbers("hd600") == ["600"]

    def test_trailing_letters_kept(self):
        """Test that trailing letters belong to the model number."""
        assert extract_model_numbers("he400se") == ["400se"]

    def test_spaced(self):
        """Test a spaced model name."""
        assert extract_model_numbers("dt 770 pro") == ["770"]

    def test_empty(self):
        """Test that empty text yields nothing."""
        assert extract_model_numbers("") == []


class TestMatchScorer:
    """Tests for MatchScorer."""

    def test_model_number_match(self, scorer, make_entry):
        """Test a listing matched through its model number.

        The fixture tables carry no model variations, so "hd 600" falls
        through to the model-number rule.
        """
        entry = make_entry(1, 'Sennheiser', 'HD600', category=None)
        result = scorer.score_text("Sennheiser HD 600 excellent condition $220", entry)

        assert result.brand_score == 1.0
        assert result.name_score == pytest.approx(0.7)
        assert result.category_score == 0.0
        assert result.score == pytest.approx(0.68)
        assert result.details['name_rule'] == 'name_model_number'

    def test_bundled_variation_outranks_model_number(self, bundled_tables, make_entry):
        """Test that the bundled "hd 600" variation fires before the model-number rule."""
        scorer = MatchScorer(tables=bundled_tables)
        entry = make_entry(1, 'Sennheiser', 'HD600')
        result = scorer.score_text("Sennheiser HD 600 excellent condition $220", entry)

        assert result.brand_score == 1.0
        assert result.details['name_rule'] == 'name_variation'
        assert result.name_score == pytest.approx(0.9)
        assert result.category_score == 0.0
        assert result.score == pytest.approx(0.76)

    def test_unknown_brand_scores_zero(self, scorer, make_entry):
        """Test that a missing brand forces the total to zero."""
        result = scorer.score_text("Random Co Widget", make_entry(1))

        assert result.brand_score == 0.0
        assert result.score == 0.0
        assert result.is_brand_gated

    def test_brand_gating_ignores_name_evidence(self, scorer, make_entry):
        """Test that a perfect name match cannot compensate for a missing brand."""
        result = scorer.score_text("HD600 headphones", make_entry(1))
        assert result.score == 0.0

    def test_exact_name_and_category(self, scorer, make_entry):
        """Test exact name plus category keyword."""
        result = scorer.score_text("Sennheiser HD600 headphones", make_entry(1))

        assert result.name_score == 1.0
        assert result.category_score == 1.0
        assert result.score == pytest.approx(0.9)

    def test_alias_brand(self, scorer, make_entry):
        """Test that an alias variant gives the alias score."""
        result = scorer.score_text("Senn HD600", make_entry(1))

        assert result.brand_score == pytest.approx(0.8)
        assert result.details['brand_rule'] == 'brand_alias'
        assert result.score == pytest.approx(0.72)

    def test_brand_partial_with_typo(self, scorer, make_entry):
        """Test partial brand credit with a one-letter typo."""
        entry = make_entry(3, 'Audio-Technica', 'ATH-M50x', category=None)
        result = scorer.score_text("Audio Technca M50x", entry)

        assert result.brand_score == pytest.approx(0.6)
        assert result.details['brand_rule'] == 'brand_partial'
        assert result.name_score == pytest.approx(0.7)
        assert result.score == pytest.approx(0.52)

    def test_partial_name(self, scorer, make_entry):
        """Test the scaled share of matching name words."""
        entry = make_entry(4, 'HiFiMAN', 'Arya Stealth', category=None)
        result = scorer.score_text("Hifiman Arya for sale", entry)

        assert result.name_score == pytest.approx(0.3)
        assert result.details['name_rule'] == 'name_partial'
        assert result.score == pytest.approx(0.52)

    def test_catalogued_variation(self, make_entry):
        """Test that a catalogued variation gives the variation score."""
        with_variations = ReferenceTables.from_dicts(
            aliases={'sennheiser': []},
            model_variations={'hd6xx': ['six xx']},
        )
        scorer = MatchScorer(tables=with_variations)
        result = scorer.score_text("Sennheiser six xx", make_entry(1, name='HD6XX', category=None))

        assert result.name_score == pytest.approx(0.9)
        assert result.details['name_rule'] == 'name_variation'

    def test_trade_forum_source_bonus(self, scorer, make_entry):
        """Test trade tag and price credits on trade-forum listings."""
        result = scorer.score_text(
            "[WTS][USA-CA][H] Sennheiser HD600 [W] $200 PayPal",
            make_entry(1),
            source="reddit_avexchange",
        )

        assert result.source_score == 1.0
        assert set(result.details['source_rules']) == {'trade_tag', 'price_mention'}
        assert result.score == pytest.approx(0.9)

    def test_marketplace_condition_bonus(self, scorer, make_entry):
        """Test condition vocabulary credit on marketplace listings."""
        result = scorer.score_text("Sennheiser HD600 used", make_entry(1), source="ebay")

        assert result.source_score == 1.0
        assert result.score == pytest.approx(0.9)

    def test_no_source_no_bonus(self, scorer, make_entry):
        """Test that listings without a source get no bonus."""
        result = scorer.score_text("Sennheiser HD600 used", make_entry(1))
        assert result.source_score == 0.0

    def test_want_section_ignored(self, scorer, make_entry):
        """Test that gear in the [W] section does not match."""
        entry = make_entry(2, 'HiFiMAN', 'Sundara')
        result = scorer.score_text("[WTS][H] Sennheiser HD600 [W] Hifiman Sundara", entry)
        assert result.score == 0.0

    def test_empty_text(self, scorer, make_entry):
        """Test that empty text scores zero."""
        result = scorer.score_text("", make_entry(1))

        assert result.score == 0.0
        assert result.details['reason'] == 'empty listing text'

    def test_entry_without_name(self, scorer, make_entry):
        """Test that an entry missing its name scores zero."""
        result = scorer.score_text("Sennheiser HD600", make_entry(1, name=None))
        assert result.score == 0.0

    def test_scores_bounded(self, scorer, make_entry):
        """Test that every score stays in [0, 1]."""
        entries = [
            make_entry(1),
            make_entry(2, 'Audio-Technica', 'ATH-M50x', Category.HEADPHONE),
            make_entry(3, 'Beyerdynamic', 'DT 770 Pro'),
            make_entry(4, 'Sennheiser', 'IE 600', Category.IN_EAR),
        ]
        listings = [
            "[WTS][H] Sennheiser HD600 headphones [W] $300 PayPal",
            "ATH M50x audio technica headphones mint",
            "beyer dt770 pro 80 ohm",
            "sennheiser ie600 iem",
            "",
            "!!!",
        ]
        for text in listings:
            for entry in entries:
                for source in (None, "reddit", "ebay"):
                    result = scorer.score_text(text, entry, source)
                    assert 0.0 <= result.score <= 1.0
                    assert 0.0 <= result.source_score <= 1.0

    def test_to_dict_breakdown(self, scorer, make_entry):
        """Test the audit form of a result."""
        data = scorer.score_text("Sennheiser HD600", make_entry(7)).to_dict()

        assert data['candidate_id'] == 7
        assert data['breakdown']['brand']['rule'] == 'brand_exact'
        assert data['breakdown']['name']['rule'] == 'name_exact'
        assert set(data['breakdown']) == {'brand', 'name', 'category', 'source'}

    def test_custom_weights(self, tables, make_entry):
        """Test that configured weights are applied."""
        config = MatcherConfig(weights={'brand': 0.5, 'name': 0.5, 'category': 0.0, 'source': 0.0})
        scorer = MatchScorer(tables=tables, config=config)

        result = scorer.score_text("Sennheiser HD600", make_entry(1))
        assert result.score == pytest.approx(1.0)

    def test_invalid_weights_rejected(self):
        """Test that weights must sum to one."""
        with pytest.raises(ValueError):
            MatcherConfig(weights={'brand': 0.5, 'name': 0.4, 'category': 0.0, 'source': 0.0})


class TestRuleSet:
    """Tests for ordered rule evaluation."""

    def test_first_match_wins(self):
        """Test that the first firing rule decides the score."""
        rules = RuleSet(name='demo', rules=(
            Rule('never', lambda ctx: False, 1.0),
            Rule('high', lambda ctx: True, 0.8),
            Rule('low', lambda ctx: True, 0.5),
        ))
        outcome = rules.evaluate(None)

        assert outcome.score == 0.8
        assert outcome.rule == 'high'

    def test_additive_capped(self):
        """Test that additive sets sum and cap."""
        rules = RuleSet(name='demo', additive=True, cap=1.0, rules=(
            Rule('a', lambda ctx: True, 0.5),
            Rule('b', lambda ctx: True, 0.5),
            Rule('c', lambda ctx: True, 1.0),
        ))
        outcome = rules.evaluate(None)

        assert outcome.score == 1.0
        assert outcome.fired == ('a', 'b', 'c')

    def test_computed_zero_does_not_fire(self):
        """Test that a computed score of zero falls through."""
        rules = RuleSet(name='demo', rules=(Rule('zero', lambda ctx: True, lambda ctx: 0.0),))
        outcome = rules.evaluate(None)

        assert outcome.score == 0.0
        assert outcome.rule is None

    def test_describe(self, scorer):
        """Test that rule lists are inspectable."""
        assert scorer.brand_rules.describe() == (
            ('brand_exact', 1.0), ('brand_alias', 0.8), ('brand_partial', 0.6),
        )
        assert scorer.name_rules.describe()[-1] == ('name_partial', 'computed')
