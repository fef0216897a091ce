"""
Tests for brand and model-name normalization.
"""

from itertools import product

import pytest

from gearmatch.normalize import TextNormalizer
from gearmatch.utils.text import basic_clean, contains_phrase


class TestBasicClean:
    """Tests for low-level text cleanup."""

    def test_lowercases_and_strips_punctuation(self):
        """Test that case and punctuation are removed."""
        assert basic_clean("Sennheiser HD-600!") == "sennheiser hd 600"

    def test_separators_become_spaces(self):
        """Test that hyphens, slashes and underscores split words."""
        assert basic_clean("dac/amp_combo") == "dac amp combo"

    def test_empty_and_none(self):
        """Test that empty input never raises."""
        assert basic_clean("") == ""
        assert basic_clean(None) == ""

    def test_contains_phrase_is_word_bounded(self):
        """Test that phrases only match on word boundaries."""
        assert contains_phrase("senn hd600", "senn")
        assert not contains_phrase("sennheiser hd600", "senn")


class TestBrandNormalization:
    """Tests for TextNormalizer.normalize_brand."""

    def test_canonical_brand(self, normalizer):
        """Test that canonical brands are only cleaned."""
        assert normalizer.normalize_brand("Sennheiser") == "sennheiser"
        assert normalizer.normalize_brand("Audio-Technica") == "audio technica"

    def test_alias_replaced(self, normalizer):
        """Test that alias variants map to the canonical brand."""
        assert normalizer.normalize_brand("Senn") == "sennheiser"
        assert normalizer.normalize_brand("ATH") == "audio technica"
        assert normalizer.normalize_brand("Hifi Man") == "hifiman"

    def test_unknown_brand_passes_through(self, normalizer):
        """Test that unknown brands get basic cleanup only."""
        assert normalizer.normalize_brand("Random Co.") == "random co"

    def test_empty_input(self, normalizer):
        """Test that empty and None input yield an empty string."""
        assert normalizer.normalize_brand("") == ""
        assert normalizer.normalize_brand(None) == ""

    @pytest.mark.parametrize("brand", [
        "Sennheiser", "Senn", "ATH", "Audio-Technica", "audio technica",
        "Hifi Man", "HiFiMAN", "Beyer", "Random Co.", "",
    ])
    def test_idempotent(self, normalizer, brand):
        """Test that normalizing twice equals normalizing once."""
        once = normalizer.normalize_brand(brand)
        assert normalizer.normalize_brand(once) == once

    def test_replacement_forming_new_alias(self, bundled_normalizer):
        """Test that a replaced alias next to another brand settles in one call."""
        assert bundled_normalizer.normalize_brand("schiit at") == "schiit technica"
        assert bundled_normalizer.normalize_brand("Grado Labs labs") == "grado"

    def test_idempotent_over_alias_pairs(self, bundled_normalizer):
        """Test idempotence for every pair of bundled brand forms."""
        forms = sorted(bundled_normalizer.aliases.lookup())
        failures = []
        for first, second in product(forms, repeat=2):
            once = bundled_normalizer.normalize_brand(f"{first} {second}")
            if bundled_normalizer.normalize_brand(once) != once:
                failures.append(f"{first} {second}")

        assert failures == []

    def test_without_alias_table(self):
        """Test that a normalizer with no aliases still cleans text."""
        assert TextNormalizer().normalize_brand("  Sennheiser ") == "sennheiser"


class TestModelNameNormalization:
    """Tests for TextNormalizer.normalize_model_name."""

    def test_brand_prefix_stripped(self, normalizer):
        """Test that a leading brand is removed from the model name."""
        assert normalizer.normalize_model_name("Sennheiser HD 650", "Sennheiser") == "hd 650"

    def test_alias_brand_prefix_stripped(self, normalizer):
        """Test that the normalized brand form is also stripped."""
        assert normalizer.normalize_model_name("Audio Technica M50x", "Audio-Technica") == "m50x"

    def test_prefix_never_strips_to_empty(self, normalizer):
        """Test that a name equal to the brand is kept."""
        assert normalizer.normalize_model_name("Sennheiser", "Sennheiser") == "sennheiser"

    def test_match_mode_keeps_spaces_and_suffixes(self, normalizer):
        """Test that listing-matching mode does not strip suffixes."""
        assert normalizer.normalize_model_name("DT 770 Pro", "Beyerdynamic") == "dt 770 pro"

    def test_duplicate_mode_drops_spaces(self, normalizer):
        """Test that HD 650 and HD650 share a duplicate key."""
        assert normalizer.normalize_model_name("HD 650", for_duplicates=True) == "hd650"
        assert normalizer.normalize_model_name("HD650", for_duplicates=True) == "hd650"

    def test_duplicate_mode_drops_parenthetical(self, normalizer):
        """Test that parenthetical qualifiers are removed."""
        assert normalizer.normalize_model_name("Sundara (2020)", "HiFiMAN", for_duplicates=True) == "sundara"

    @pytest.mark.parametrize("name,expected", [
        ("DT 770 Pro", "dt770"),
        ("Aria SE", "aria"),
        ("Monarch MK2", "monarch"),
        ("Monarch MKII", "monarch"),
        ("Magni mk 2", "magni"),
        ("Atom Plus", "atom"),
        ("Pro", "pro"),
        ("HE400SE", "he400se"),
    ])
    def test_duplicate_mode_noise_suffixes(self, normalizer, name, expected):
        """Test trailing noise suffix removal."""
        assert normalizer.normalize_model_name(name, for_duplicates=True) == expected

    @pytest.mark.parametrize("name", [
        "Sennheiser Sennheiser HD600", "HD 650", "Sundara (2020)", "DT 770 Pro", "mk2 pro", "",
    ])
    def test_idempotent(self, normalizer, name):
        """Test that both modes are idempotent."""
        for mode in (False, True):
            once = normalizer.normalize_model_name(name, "Sennheiser", for_duplicates=mode)
            assert normalizer.normalize_model_name(once, "Sennheiser", for_duplicates=mode) == once

    def test_empty_input(self, normalizer):
        """Test that empty and None names never raise."""
        assert normalizer.normalize_model_name("") == ""
        assert normalizer.normalize_model_name(None, "Sennheiser") == ""


class TestLiteralNameAndKeys:
    """Tests for literal names and duplicate keys."""

    def test_year_qualifier_ignored(self, normalizer):
        """Test that a year qualifier does not change the literal name."""
        assert normalizer.literal_name("Sundara (2020)", "HiFiMAN") == "sundara"
        assert normalizer.literal_name("Sundara", "HiFiMAN") == "sundara"

    def test_spacing_differs(self, normalizer):
        """Test that spacing differences are literal differences."""
        assert normalizer.literal_name("HD 650") != normalizer.literal_name("HD650")

    def test_duplicate_key(self, normalizer):
        """Test the brand|model duplicate key."""
        assert normalizer.duplicate_key("Sennheiser", "HD 650") == "sennheiser|hd650"
        assert normalizer.duplicate_key("Senn", "HD650") == "sennheiser|hd650"


class TestPrepareListing:
    """Tests for listing text preparation."""

    def test_have_section_only(self, normalizer):
        """Test that trade-forum titles keep only the [H] section."""
        prepared = normalizer.prepare_listing("[WTS][USA-CA][H] Sennheiser HD6XX [W] $180 PayPal")
        assert prepared.text == "sennheiser hd6xx"
        assert prepared.tokens == ("sennheiser", "hd6xx")
        assert prepared.compact == "sennheiserhd6xx"
        assert "$180" in prepared.raw

    def test_description_included(self, normalizer):
        """Test that the description is part of the evidence text."""
        prepared = normalizer.prepare_listing("HD600", "Sennheiser headphones")
        assert prepared.text == "hd600 sennheiser headphones"

    def test_empty_listing(self, normalizer):
        """Test that empty input gives empty text."""
        assert normalizer.prepare_listing(None).is_empty
        assert normalizer.prepare_listing("", "").is_empty
