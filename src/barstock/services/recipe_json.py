"""Repair and validation of recipe JSON fields."""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import TypeAdapter

from barstock.logging_config import get_logger
from barstock.schemas import RecipeIngredientLine

logger = get_logger(__name__)

JSON_FIELDS = ("ingredients", "tags", "garnish", "allergens", "prep_actions", "batch_settings")
LIST_FIELDS = frozenset({"ingredients", "tags", "allergens", "prep_actions"})

_BARE_KEY = re.compile(r"([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)\s*:")
_BARE_VALUE = re.compile(r":\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*([,}])")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_JSON_LITERALS = frozenset({"true", "false", "null"})

_ingredient_lines = TypeAdapter(list[RecipeIngredientLine])


def _quote_bare_value(match: re.Match[str]) -> str:
    word, end = match.group(1), match.group(2)
    if word in _JSON_LITERALS:
        return f":{word}{end}"
    return f':"{word}"{end}'


def repair_json_field(value: Any) -> Any:
    """
    Parse a JSON field that may have been stored as loose JavaScript-ish text.

    Non-strings are returned unchanged. Strings are parsed as JSON, and on
    failure bare keys and bare word values are quoted and trailing commas
    removed before a second attempt. Returns None when still unparseable.
    """
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        pass

    fixed = value.strip()
    fixed = _BARE_KEY.sub(r'\1"\2":', fixed)
    fixed = _BARE_VALUE.sub(_quote_bare_value, fixed)
    fixed = _TRAILING_COMMA.sub(r"\1", fixed)
    try:
        return json.loads(fixed)
    except json.JSONDecodeError as e:
        logger.debug(f"Could not repair JSON value: {e}")
        return None


@dataclass
class RecipeRepair:
    """Field updates needed to clean one stored recipe."""

    recipe_id: str | None
    name: str | None
    updates: dict[str, Any] = field(default_factory=dict)
    unrepairable: list[str] = field(default_factory=list)

    @property
    def needs_update(self) -> bool:
        return bool(self.updates)


def repair_recipe(recipe: Mapping[str, Any]) -> RecipeRepair:
    """
    Work out the updates that turn a recipe's JSON fields back into data.

    Missing list fields become empty lists. A list field that cannot be
    repaired is reset to an empty list and reported as unrepairable; other
    unrepairable fields are left as they are.
    """
    repair = RecipeRepair(recipe_id=recipe.get("id"), name=recipe.get("name"))

    for name in JSON_FIELDS:
        value = recipe.get(name)
        if value is None or value == "":
            if name in LIST_FIELDS:
                repair.updates[name] = []
            continue
        if not isinstance(value, str):
            continue

        fixed = repair_json_field(value)
        if fixed is not None:
            repair.updates[name] = fixed
        elif name in LIST_FIELDS:
            logger.warning(f"Resetting unrepairable {name} of recipe {repair.name!r}")
            repair.updates[name] = []
            repair.unrepairable.append(name)
        else:
            repair.unrepairable.append(name)

    return repair


def validate_recipe_ingredients(lines: Any) -> list[dict[str, Any]]:
    """
    Validate recipe ingredient lines before they are written.

    Raises:
        ValueError: Lines are not a list of objects, or a line names no ingredient.
    """
    parsed = _ingredient_lines.validate_python(lines)
    for index, line in enumerate(parsed):
        if not (line.ingredient_name or line.ingredient_id):
            raise ValueError(f"Ingredient line {index} has neither a name nor an id")
    return [line.model_dump(exclude_unset=True) for line in parsed]
