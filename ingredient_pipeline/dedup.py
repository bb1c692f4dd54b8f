"""
Deduplication and ranking of processed ingredients.

Matches from different labels often resolve to the same canonical name
("butter" and "salted butter" -> "butter, salted"). Entries are grouped by
canonical name and reduced to one winner per group:

1. higher confidence wins
2. on an exact confidence tie, the name with fewer words wins
3. on a full tie, the earlier entry wins

The survivors are sorted by confidence (descending, name ascending for equal
confidence) and truncated to `max_results`.
"""
import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from .schemas import ProcessedIngredient

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 12

QUALIFIERS = ("raw", "cooked", "fresh", "frozen", "canned", "dried", "organic")
_QUALIFIER_ALT = "|".join(QUALIFIERS)
_COMMA_QUALIFIER = re.compile(rf",\s*(?:{_QUALIFIER_ALT})\b")
_BARE_QUALIFIER = re.compile(rf"\b(?:{_QUALIFIER_ALT})\s*")


def clean_food_description(description: str) -> str:
    """
    Strip preparation qualifiers to get a canonical ingredient name.

    Examples:
        >>> clean_food_description("Tomatoes, green, raw")
        'tomatoes, green'
        >>> clean_food_description("Frozen peas")
        'peas'
    """
    lowered = description.lower()
    cleaned = _COMMA_QUALIFIER.sub("", lowered)
    cleaned = _BARE_QUALIFIER.sub("", cleaned)
    cleaned = " ".join(cleaned.split()).strip(" ,")
    return cleaned or " ".join(lowered.split())


def canonical_key(name: str) -> str:
    """Dedup key: case-insensitive, trimmed canonical name."""
    return name.lower().strip()


def _word_count(name: str) -> int:
    return len(name.split())


def _preference(item: Tuple[int, ProcessedIngredient]) -> Tuple[float, int, int]:
    index, ingredient = item
    return (ingredient.confidence, -_word_count(ingredient.name), -index)


def group_by_name(ingredients: Iterable[ProcessedIngredient]) -> Dict[str, List[Tuple[int, ProcessedIngredient]]]:
    """Group (position, ingredient) pairs by canonical key."""
    groups: Dict[str, List[Tuple[int, ProcessedIngredient]]] = defaultdict(list)
    for index, ingredient in enumerate(ingredients):
        groups[canonical_key(ingredient.name)].append((index, ingredient))
    return groups


def deduplicate_and_rank(
    ingredients: Iterable[ProcessedIngredient],
    max_results: int = DEFAULT_MAX_RESULTS,
) -> List[ProcessedIngredient]:
    """
    Merge duplicates by canonical name, sort by confidence and cap.

    Args:
        ingredients: Matched ingredients from one run, any order
        max_results: Maximum number of entries to return

    Returns:
        Distinct ingredients, highest confidence first
    """
    groups = group_by_name(ingredients)
    winners = [max(members, key=_preference)[1] for members in groups.values()]

    dropped = sum(len(members) for members in groups.values()) - len(winners)
    if dropped:
        logger.info(f"[DEDUP] Merged {dropped} duplicate ingredients")

    ranked = sorted(winners, key=lambda i: (-i.confidence, canonical_key(i.name)))
    return ranked[:max(0, max_results)]


__all__ = [
    "DEFAULT_MAX_RESULTS",
    "QUALIFIERS",
    "canonical_key",
    "clean_food_description",
    "deduplicate_and_rank",
    "group_by_name",
]
