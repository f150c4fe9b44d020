"""Ingredient name matching and duplicate detection."""

from barstock.matching.lookup import (
    NameSuggestion,
    find_matching_ingredient,
    normalize_for_match,
    suggest_similar_names,
)
from barstock.matching.similarity import (
    DuplicateGroup,
    find_duplicate_groups,
    similarity,
)

__all__ = [
    "DuplicateGroup",
    "NameSuggestion",
    "find_duplicate_groups",
    "find_matching_ingredient",
    "normalize_for_match",
    "similarity",
    "suggest_similar_names",
]
