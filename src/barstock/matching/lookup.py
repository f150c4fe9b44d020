"""Resolve free-text ingredient names to stored ingredients."""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from rapidfuzz import fuzz, process

from barstock.logging_config import get_logger
from barstock.schemas import Ingredient

logger = get_logger(__name__)

DEFAULT_SUGGESTION_LIMIT = 3
DEFAULT_SUGGESTION_MIN_SCORE = 80.0


def normalize_for_match(text: str | None) -> str:
    """Lowercase and strip everything that is not a letter or digit."""
    if not text:
        return ""
    return re.sub(r"[^a-z0-9]", "", text.lower())


def find_matching_ingredient(
    name: str | None,
    ingredients: Sequence[Ingredient],
    ingredient_id: str | None = None,
) -> Ingredient | None:
    """
    Find the stored ingredient a recipe line refers to.

    An explicit id wins and is never second-guessed by name. Otherwise tries
    the exact name, the punctuation-insensitive name, then aliases.
    """
    if ingredient_id:
        for ingredient in ingredients:
            if ingredient.id == ingredient_id:
                return ingredient
        logger.warning(f"Ingredient id not found: {ingredient_id} ({name!r})")
        return None

    search = (name or "").strip().lower()
    if not search:
        return None
    normalized = normalize_for_match(name)

    for ingredient in ingredients:
        if ingredient.name and ingredient.name.strip().lower() == search:
            return ingredient

    if normalized:
        for ingredient in ingredients:
            if ingredient.name and normalize_for_match(ingredient.name) == normalized:
                return ingredient

    for ingredient in ingredients:
        for alias in ingredient.aliases:
            if alias.strip().lower() == search or normalize_for_match(alias) == normalized:
                return ingredient

    return None


@dataclass
class NameSuggestion:
    """A stored name that resembles the searched one."""

    name: str
    score: float


def suggest_similar_names(
    name: str,
    candidates: Sequence[str],
    limit: int = DEFAULT_SUGGESTION_LIMIT,
    min_score: float = DEFAULT_SUGGESTION_MIN_SCORE,
) -> list[NameSuggestion]:
    """Fuzzy "did you mean" suggestions, best first."""
    if not name or not candidates:
        return []

    matches = process.extract(
        name.lower().strip(),
        [c.lower().strip() for c in candidates],
        scorer=fuzz.token_sort_ratio,
        limit=limit,
    )
    return [
        NameSuggestion(name=candidates[index], score=score)
        for _, score, index in matches
        if score >= min_score
    ]
