"""Near-duplicate ingredient detection by name similarity."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from barstock.logging_config import get_logger
from barstock.schemas import Ingredient

logger = get_logger(__name__)


# Generic spirit/category words that say nothing about which product a name is
IGNORED_TOKENS = frozenset(
    {
        "aperitivo",
        "apertivo",
        "liqueur",
        "bitters",
        "syrup",
        "rum",
        "gin",
        "vodka",
        "whiskey",
        "whisky",
        "tequila",
        "mezcal",
        "brandy",
        "cognac",
        "amaro",
        "vermouth",
    }
)

EXACT_SCORE = 1.0
PREFIX_SCORE = 0.95
SUBSTRING_SCORE = 0.85
SUBSTRING_MIN_LENGTH = 4
TOKEN_EQUAL_SCORE = 0.95
TOKEN_CONTAINS_SCORE = 0.9
TOKEN_OVERLAP_MIN_RATIO = 0.5
TOKEN_OVERLAP_WEIGHT = 0.9

DEFAULT_GROUP_THRESHOLD = 0.6


def significant_tokens(name: str) -> list[str]:
    """Whitespace tokens longer than two characters that are not category words."""
    return [t for t in name.split() if len(t) > 2 and t not in IGNORED_TOKENS]


def similarity(name_a: str, name_b: str) -> float:
    """
    Score how likely two ingredient names refer to the same product.

    Rules are tried in order and the first that applies wins: exact match,
    prefix, substring, category-word-stripped token comparison, then token
    overlap. Returns 0 when nothing matches.
    """
    s1 = (name_a or "").lower().strip()
    s2 = (name_b or "").lower().strip()

    if s1 == s2:
        return EXACT_SCORE

    shorter, longer = (s1, s2) if len(s1) < len(s2) else (s2, s1)

    if longer.startswith(shorter):
        return PREFIX_SCORE
    if shorter in longer and len(shorter) >= SUBSTRING_MIN_LENGTH:
        return SUBSTRING_SCORE

    tokens1 = significant_tokens(s1)
    tokens2 = significant_tokens(s2)

    # A name made only of generic words is compared as written
    compare1 = " ".join(tokens1) if tokens1 else s1
    compare2 = " ".join(tokens2) if tokens2 else s2

    if compare1 == compare2:
        return TOKEN_EQUAL_SCORE
    if compare1 in compare2 or compare2 in compare1:
        return TOKEN_CONTAINS_SCORE

    if tokens1 and tokens2:
        matching = [t for t in tokens1 if t in tokens2]
        if matching:
            ratio = (len(matching) * 2) / (len(tokens1) + len(tokens2))
            if ratio >= TOKEN_OVERLAP_MIN_RATIO:
                return ratio * TOKEN_OVERLAP_WEIGHT

    return 0.0


@dataclass
class DuplicateGroup:
    """Ingredients that look like the same product, anchored on the first seen."""

    primary: Ingredient
    duplicates: list[Ingredient] = field(default_factory=list)
    similarities: list[float] = field(default_factory=list)

    @property
    def members(self) -> list[Ingredient]:
        return [self.primary, *self.duplicates]


def find_duplicate_groups(
    ingredients: Sequence[Ingredient],
    threshold: float = DEFAULT_GROUP_THRESHOLD,
) -> list[DuplicateGroup]:
    """
    Group near-duplicate ingredients in a single greedy pass.

    Each ingredient not yet grouped is compared with every later ingredient
    not yet grouped; matches at or above the threshold join its group. An
    ingredient belongs to at most one group, and members are only compared
    with the group anchor, so grouping is not transitive.
    """
    groups: list[DuplicateGroup] = []
    processed: set[int] = set()

    for index, ingredient in enumerate(ingredients):
        if index in processed:
            continue

        group = DuplicateGroup(primary=ingredient)
        member_indexes = [index]
        for other_index in range(index + 1, len(ingredients)):
            if other_index in processed:
                continue
            other = ingredients[other_index]
            score = similarity(ingredient.name, other.name)
            if score >= threshold:
                group.duplicates.append(other)
                group.similarities.append(score)
                member_indexes.append(other_index)

        if group.duplicates:
            groups.append(group)
            processed.update(member_indexes)

    logger.info(f"Found {len(groups)} duplicate group(s) among {len(ingredients)} ingredients")
    return groups
