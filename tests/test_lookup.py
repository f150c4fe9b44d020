"""Tests for resolving recipe ingredient names to stored ingredients."""

import pytest

from barstock.matching.lookup import (
    find_matching_ingredient,
    normalize_for_match,
    suggest_similar_names,
)


@pytest.fixture
def ingredients(make_ingredient):
    return [
        make_ingredient("Tito's Vodka"),
        make_ingredient("Campari"),
        make_ingredient("Maraschino Liqueur", aliases=["Luxardo"]),
    ]


class TestFindMatchingIngredient:
    """Tests for recipe line lookup."""

    def test_exact_name_any_case(self, ingredients):
        """Test exact names match case-insensitively."""
        assert find_matching_ingredient(" campari ", ingredients).name == "Campari"

    def test_punctuation_insensitive(self, ingredients):
        """Test names match with punctuation and spacing removed."""
        assert find_matching_ingredient("Titos Vodka", ingredients).name == "Tito's Vodka"
        assert find_matching_ingredient("titos-vodka", ingredients).name == "Tito's Vodka"

    def test_alias(self, ingredients):
        """Test aliases resolve to their ingredient."""
        match = find_matching_ingredient("luxardo", ingredients)
        assert match.name == "Maraschino Liqueur"

    def test_id_wins_over_name(self, ingredients):
        """Test an explicit id is used even when the name points elsewhere."""
        match = find_matching_ingredient("Campari", ingredients, ingredient_id="ing-tito's-vodka")
        assert match.name == "Tito's Vodka"

    def test_unknown_id_does_not_fall_back(self, ingredients):
        """Test a stale id gives no match rather than a name match."""
        assert find_matching_ingredient("Campari", ingredients, ingredient_id="missing") is None

    def test_no_match(self, ingredients):
        """Test blank and unknown names."""
        assert find_matching_ingredient("", ingredients) is None
        assert find_matching_ingredient(None, ingredients) is None
        assert find_matching_ingredient("Aperol", ingredients) is None

    def test_normalize_for_match(self):
        """Test normalization keeps only letters and digits."""
        assert normalize_for_match("Tito's Vodka 1.75L") == "titosvodka175l"
        assert normalize_for_match(None) == ""


class TestSuggestions:
    """Tests for fuzzy name suggestions."""

    def test_close_names_suggested(self):
        """Test a misspelling suggests the stored name."""
        suggestions = suggest_similar_names("Campar", ["Campari", "Aperol"])
        assert [s.name for s in suggestions] == ["Campari"]
        assert suggestions[0].score >= 80

    def test_word_order_ignored(self):
        """Test reordered words still match."""
        suggestions = suggest_similar_names("Vodka Titos", ["Titos Vodka"])
        assert suggestions[0].score == 100

    def test_min_score(self):
        """Test suggestions below the minimum score are dropped."""
        assert suggest_similar_names("Campar", ["Campari"], min_score=100) == []

    def test_empty_inputs(self):
        """Test nothing to compare gives no suggestions."""
        assert suggest_similar_names("", ["Campari"]) == []
        assert suggest_similar_names("Campari", []) == []
