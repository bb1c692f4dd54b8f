"""
Keyword-rule categorizer for matched reference foods.

Rules are evaluated in a fixed order; the first category whose category-hint
terms appear in the reference food's category, or whose keywords appear as
whole words (singular or plural) in the description, wins. Nothing matches ->
"other".
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .schemas import IngredientCategory, ReferenceFood

# (category, category-hint substrings, description keywords)
DEFAULT_CATEGORY_RULES: List[Tuple[str, Tuple[str, ...], Tuple[str, ...]]] = [
    ("vegetables", ("vegetable",), (
        "tomato", "onion", "garlic", "potato", "carrot", "pepper", "mushroom",
        "spinach", "broccoli", "lettuce", "cucumber", "celery", "zucchini",
        "eggplant", "cabbage", "cauliflower", "kale", "squash", "asparagus",
    )),
    ("fruits", ("fruit",), (
        "apple", "banana", "orange", "lemon", "lime", "strawberry", "strawberries",
        "blueberry", "blueberries", "grape", "cherry", "cherries", "melon",
        "cantaloupe", "peach", "pear", "pineapple", "mango", "watermelon", "avocado",
    )),
    ("dairy", ("dairy",), (
        "milk", "cheese", "yogurt", "butter", "cream", "mozzarella", "parmesan",
        "ricotta", "egg",
    )),
    ("meat", ("meat", "poultry", "fish", "finfish", "shellfish", "sausage"), (
        "chicken", "beef", "pork", "lamb", "fish", "salmon", "tuna", "shrimp",
        "bacon", "sausage", "turkey", "ham",
    )),
    ("grains", ("grain", "cereal", "pasta"), (
        "rice", "pasta", "bread", "flour", "oats", "quinoa", "barley", "wheat",
        "noodle", "spaghetti",
    )),
    ("legumes", ("legume",), (
        "bean", "lentil", "chickpea", "pea", "soybean",
    )),
    ("herbs", (), (
        "basil", "oregano", "parsley", "thyme", "rosemary", "sage", "cilantro",
        "mint", "dill",
    )),
    ("spices", ("spice",), (
        "salt", "pepper", "paprika", "cumin", "cinnamon", "oil", "vinegar",
        "sauce", "nutmeg", "ginger", "turmeric", "coriander",
    )),
]


def _keyword_pattern(keywords: Sequence[str]) -> Optional[re.Pattern]:
    """Whole-word regex accepting plain, -s and -es forms of each keyword."""
    if not keywords:
        return None
    alternatives = "|".join(re.escape(k.lower()) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternatives})(?:e?s)?\b")


@dataclass
class CategoryRule:
    category: IngredientCategory
    hint_terms: Tuple[str, ...]
    pattern: Optional[re.Pattern]

    def matches(self, description: str, hint: str) -> bool:
        if any(term in hint for term in self.hint_terms):
            return True
        return bool(self.pattern and self.pattern.search(description))


class Categorizer:
    """Deterministic description -> IngredientCategory classifier."""

    def __init__(self, rules: Optional[Sequence[Tuple[str, Sequence[str], Sequence[str]]]] = None):
        source = DEFAULT_CATEGORY_RULES if rules is None else rules
        self.rules = [
            CategoryRule(
                category=IngredientCategory(name),
                hint_terms=tuple(h.lower() for h in hints),
                pattern=_keyword_pattern(keywords),
            )
            for name, hints, keywords in source
        ]

    @classmethod
    def from_config(cls, data: Optional[Dict[str, Any]]) -> "Categorizer":
        """
        Build from a categories.yml mapping.

        Expected shape:
            rules:
              - category: vegetables
                hints: [vegetable]
                keywords: [tomato, onion]
        """
        if not data or not data.get("rules"):
            return cls()
        rules = [
            (r["category"], r.get("hints") or [], r.get("keywords") or [])
            for r in data["rules"]
        ]
        return cls(rules)

    def categorize_text(self, description: str, category_hint: Optional[str] = None) -> IngredientCategory:
        description = description.lower()
        hint = (category_hint or "").lower()
        for rule in self.rules:
            if rule.matches(description, hint):
                return rule.category
        return IngredientCategory.OTHER

    def categorize(self, food: ReferenceFood) -> IngredientCategory:
        return self.categorize_text(food.description, food.category_hint)


__all__ = ["Categorizer", "CategoryRule", "DEFAULT_CATEGORY_RULES"]
