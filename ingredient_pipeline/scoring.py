"""
Candidate scoring for reference food matching.

Scores each reference candidate against a normalized query:

    adjusted = base_similarity + sum(rule(query, description) for rule in SCORING_RULES)

base_similarity is the normalized Levenshtein similarity (plus a flat
containment bonus, capped at 1.0). The rules are independent additive
heuristics that counteract the reference database's bias toward long,
qualifier-heavy entries ("Milk, whole, 3.25% fat, with added vitamin D"):
exact and plural matches dominate, commas and extra words are penalized.

The best candidate wins if its adjusted score clears `match_threshold`.
"""
import logging
from dataclasses import dataclass, field, fields
from functools import reduce
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from .schemas import MatchCandidate, ReferenceFood

logger = logging.getLogger(__name__)

# Terms that mark a processed or qualified entry
COMPLEXITY_TERMS: Tuple[str, ...] = (
    "dessert", "frozen", "canned", "prepared", "cooked", "baked",
    "fried", "roasted", "dried", "processed", "enriched", "fortified",
    "creamy", "chunky", "sweetened", "unsweetened", "reduced fat",
    "low fat", "fat free", "organic", "commercial",
)


@dataclass
class ScoringWeights:
    """
    Heuristic constants for candidate scoring.

    These were tuned together end-to-end; change one and re-check ranking
    on real search results before shipping.
    """
    # Base similarity
    containment_similarity_bonus: float = 0.2

    # Additive rules
    exact_match_bonus: float = 5.0
    plural_match_bonus: float = 5.0
    leading_term_bonus: float = 1.0
    prefix_bonus: float = 1.5
    comma_penalty: float = 1.0
    long_tail_penalty: float = 1.5
    long_tail_length: int = 10
    single_word_bonus: float = 1.0
    extra_word_penalty: float = 0.8
    simple_food_bonus: float = 0.3
    related_word_bonus: float = 0.2
    containment_bonus: float = 0.3

    # Selection
    match_threshold: float = 0.3
    max_candidates: int = 15

    # Confidence
    confidence_cap: float = 0.9
    global_confidence_cap: float = 0.95
    default_relevance: float = 50.0
    relevance_scale: float = 100.0

    # Direct search confidence
    search_base_confidence: float = 0.3
    search_exact_bonus: float = 0.6
    search_contains_bonus: float = 0.4
    search_comma_penalty: float = 0.1
    search_min_confidence: float = 0.1

    complexity_terms: Tuple[str, ...] = field(default=COMPLEXITY_TERMS)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ScoringWeights":
        """
        Build weights from a config mapping, ignoring unknown keys.

        Args:
            data: Mapping of field name -> value (e.g. matching.yml "weights")

        Returns:
            ScoringWeights with overrides applied
        """
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"[MATCH] Ignoring unknown scoring weights: {unknown}")
        kwargs = {k: v for k, v in data.items() if k in known}
        if "complexity_terms" in kwargs:
            kwargs["complexity_terms"] = tuple(t.lower() for t in kwargs["complexity_terms"])
        return cls(**kwargs)


def normalize_text(text: str) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return " ".join(text.lower().split())


def plural_variants(query: str) -> List[str]:
    """Naive English plural forms used by the matching rules."""
    return [query + "s", query + "es"]


def levenshtein_similarity(a: str, b: str) -> float:
    """1 - edit_distance / longest_length, in [0, 1]."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def base_similarity(query: str, description: str, weights: ScoringWeights) -> float:
    """
    Normalized edit similarity with a containment bonus.

    If either string contains the other, add the containment bonus and cap
    the result at 1.0. The cap applies to this value only.
    """
    similarity = levenshtein_similarity(query, description)
    if query in description or description in query:
        return min(1.0, similarity + weights.containment_similarity_bonus)
    return similarity


def are_related_words(query: str, description: str) -> bool:
    """True if a singular/plural variant of the query appears in the description."""
    variations = [query] + plural_variants(query)
    if query.endswith("s"):
        variations.append(query[:-1])
    if query.endswith("es"):
        variations.append(query[:-2])
    if query.endswith("ies"):
        variations.append(query[:-3] + "y")

    words = description.split(" ")
    return any(v and (v in description or v in words) for v in variations)


# Scoring rules: (query, description, weights) -> score delta.
# query and description are both normalized.

def exact_match_rule(query: str, description: str, weights: ScoringWeights) -> float:
    return weights.exact_match_bonus if description == query else 0.0


def plural_match_rule(query: str, description: str, weights: ScoringWeights) -> float:
    if description in plural_variants(query):
        return weights.plural_match_bonus
    if query.endswith("s") and description == query[:-1]:
        return weights.plural_match_bonus
    return 0.0


def leading_term_rule(query: str, description: str, weights: ScoringWeights) -> float:
    first_word = description.split(",")[0].strip().split(" ")[0]
    if first_word == query or first_word in plural_variants(query):
        return weights.leading_term_bonus
    return 0.0


def prefix_rule(query: str, description: str, weights: ScoringWeights) -> float:
    for head in [query] + plural_variants(query):
        if description.startswith(head + ",") or description.startswith(head + " "):
            return weights.prefix_bonus
    return 0.0


def comma_penalty_rule(query: str, description: str, weights: ScoringWeights) -> float:
    return -weights.comma_penalty * description.count(",")


def long_tail_rule(query: str, description: str, weights: ScoringWeights) -> float:
    if "," not in description:
        return 0.0
    tail = description.split(",", 1)[1].strip()
    return -weights.long_tail_penalty if len(tail) > weights.long_tail_length else 0.0


def single_word_rule(query: str, description: str, weights: ScoringWeights) -> float:
    if "," not in description and len(description.split(" ")) == 1:
        return weights.single_word_bonus
    return 0.0


def extra_word_rule(query: str, description: str, weights: ScoringWeights) -> float:
    # "almond butter" should rank below "almond"
    if "," in description:
        return 0.0
    word_count = len(description.split(" "))
    return -weights.extra_word_penalty * (word_count - 1) if word_count > 1 else 0.0


def simple_food_rule(query: str, description: str, weights: ScoringWeights) -> float:
    if any(term in description for term in weights.complexity_terms):
        return 0.0
    return weights.simple_food_bonus


def related_word_rule(query: str, description: str, weights: ScoringWeights) -> float:
    return weights.related_word_bonus if are_related_words(query, description) else 0.0


def containment_rule(query: str, description: str, weights: ScoringWeights) -> float:
    return weights.containment_bonus if query in description else 0.0


ScoringRule = Callable[[str, str, ScoringWeights], float]

SCORING_RULES: List[Tuple[str, ScoringRule]] = [
    ("exact_match", exact_match_rule),
    ("plural_match", plural_match_rule),
    ("leading_term", leading_term_rule),
    ("prefix", prefix_rule),
    ("comma_penalty", comma_penalty_rule),
    ("long_tail", long_tail_rule),
    ("single_word", single_word_rule),
    ("extra_word", extra_word_rule),
    ("simple_food", simple_food_rule),
    ("related_word", related_word_rule),
    ("containment", containment_rule),
]


class CandidateScorer:
    """
    Selects the best reference candidate for a query.

    Attributes:
        weights: ScoringWeights in effect
        rules: Ordered (name, rule) pairs folded over the base similarity
    """

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        rules: Optional[Sequence[Tuple[str, ScoringRule]]] = None,
    ):
        self.weights = weights or ScoringWeights()
        self.rules = list(rules) if rules is not None else list(SCORING_RULES)

    def rule_breakdown(self, query: str, description: str) -> Dict[str, float]:
        """Per-rule score deltas, for debugging and tests."""
        q = normalize_text(query)
        d = normalize_text(description)
        return {name: rule(q, d, self.weights) for name, rule in self.rules}

    def adjusted_score(self, query: str, description: str) -> Tuple[float, float]:
        """
        Score one description against a query.

        Args:
            query: Label or retry variant
            description: Reference food description

        Returns:
            Tuple of (base_similarity, adjusted_similarity)
        """
        q = normalize_text(query)
        d = normalize_text(description)
        base = base_similarity(q, d, self.weights)
        adjusted = reduce(
            lambda total, named_rule: total + named_rule[1](q, d, self.weights),
            self.rules,
            base,
        )
        return base, adjusted

    def score(self, query: str, food: ReferenceFood) -> MatchCandidate:
        base, adjusted = self.adjusted_score(query, food.description)
        return MatchCandidate(food=food, base_similarity=base, adjusted_similarity=adjusted)

    def rank(self, query: str, candidates: Sequence[ReferenceFood]) -> List[MatchCandidate]:
        """
        Score the candidate window and sort by adjusted score, best first.

        The sort is stable, so equal scores keep search relevance order.
        """
        window = list(candidates)[: self.weights.max_candidates]
        scored = [self.score(query, food) for food in window]
        return sorted(scored, key=lambda c: c.adjusted_similarity, reverse=True)

    def best_match(
        self, query: str, candidates: Sequence[ReferenceFood]
    ) -> Optional[MatchCandidate]:
        """
        Pick the highest-scoring candidate, or None below the threshold.

        Ties keep the earlier candidate (search relevance order).
        """
        ranked = self.rank(query, candidates)
        for index, candidate in enumerate(ranked[:5]):
            logger.debug(
                f"[MATCH]   {index + 1}. \"{candidate.food.description}\" -> "
                f"score: {candidate.adjusted_similarity:.2f}"
            )

        best = ranked[0] if ranked else None
        if best is None or best.adjusted_similarity < self.weights.match_threshold:
            best_score = f"{best.adjusted_similarity:.2f}" if best else "N/A"
            logger.debug(f"[MATCH] No candidate for '{query}' cleared threshold (best: {best_score})")
            return None
        return best

    def normalized_relevance(self, food: ReferenceFood) -> float:
        relevance = food.relevance_score or self.weights.default_relevance
        return relevance / self.weights.relevance_scale

    def clamp_confidence(self, value: float) -> float:
        return max(0.0, min(self.weights.global_confidence_cap, value))

    def confidence(self, match: MatchCandidate) -> float:
        """
        Confidence of a winning match.

        min(confidence_cap, normalized_relevance * base_similarity), clamped to
        [0, global_confidence_cap].
        """
        raw = min(
            self.weights.confidence_cap,
            self.normalized_relevance(match.food) * match.base_similarity,
        )
        return self.clamp_confidence(raw)

    def search_confidence(self, query: str, food: ReferenceFood) -> float:
        """
        Simplified confidence for direct user lookups.

        Base confidence plus an exact or containment bonus, scaled by
        relevance, minus a per-comma penalty.
        """
        w = self.weights
        q = normalize_text(query)
        d = normalize_text(food.description)

        confidence = w.search_base_confidence
        if d == q:
            confidence += w.search_exact_bonus
        elif q in d:
            confidence += w.search_contains_bonus

        confidence *= self.normalized_relevance(food)
        confidence -= d.count(",") * w.search_comma_penalty
        return self.clamp_confidence(confidence)


__all__ = [
    "COMPLEXITY_TERMS",
    "SCORING_RULES",
    "CandidateScorer",
    "ScoringWeights",
    "base_similarity",
    "levenshtein_similarity",
    "normalize_text",
    "plural_variants",
]
