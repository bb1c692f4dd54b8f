"""
Test candidate scoring: base similarity, additive rules, selection and confidence.
"""
import pytest

from ingredient_pipeline.schemas import MatchCandidate
from ingredient_pipeline.scoring import (
    CandidateScorer,
    ScoringWeights,
    base_similarity,
    levenshtein_similarity,
    plural_variants,
)
from fakes import food


@pytest.fixture
def scorer():
    return CandidateScorer()


class TestBaseSimilarity:
    """Normalized Levenshtein similarity with containment bonus."""

    def test_identical_strings(self):
        assert levenshtein_similarity("milk", "milk") == 1.0

    def test_both_empty(self):
        assert levenshtein_similarity("", "") == 1.0

    def test_single_edit(self):
        assert levenshtein_similarity("abc", "abd") == pytest.approx(2 / 3)

    def test_containment_bonus_added(self):
        weights = ScoringWeights()
        plain = levenshtein_similarity("nut", "nuts, mixed")
        assert base_similarity("nut", "nuts, mixed", weights) == pytest.approx(plain + 0.2)

    def test_containment_bonus_capped(self):
        assert base_similarity("milk", "milk", ScoringWeights()) == 1.0

    def test_plural_variants(self):
        assert plural_variants("tomato") == ["tomatos", "tomatoes"]


class TestScoringRules:
    """Individual rule deltas."""

    def test_exact_match_dominates(self, scorer):
        breakdown = scorer.rule_breakdown("milk", "Milk")
        assert breakdown["exact_match"] == 5.0
        assert breakdown["single_word"] == 1.0
        assert breakdown["leading_term"] == 1.0

    def test_exact_match_score(self, scorer):
        base, adjusted = scorer.adjusted_score("milk", "Milk")
        assert base == 1.0
        # 1.0 + exact 5 + leading 1 + single 1 + simple 0.3 + related 0.2 + containment 0.3
        assert adjusted == pytest.approx(8.8)

    @pytest.mark.parametrize("query, description", [
        ("tomato", "Tomatoes"),
        ("apple", "Apples"),
        ("nuts", "Nut"),
    ])
    def test_plural_match(self, scorer, query, description):
        assert scorer.rule_breakdown(query, description)["plural_match"] == 5.0

    def test_prefix_and_leading_term(self, scorer):
        breakdown = scorer.rule_breakdown("tomato", "Tomatoes, green, raw")
        assert breakdown["leading_term"] == 1.0
        assert breakdown["prefix"] == 1.5

    def test_comma_penalty_per_comma(self, scorer):
        assert scorer.rule_breakdown("milk", "Milk, whole, fortified")["comma_penalty"] == -2.0

    def test_long_tail_penalty(self, scorer):
        assert scorer.rule_breakdown("tomato", "Tomatoes, red, ripe, raw")["long_tail"] == -1.5
        # "green, raw" is exactly 10 characters
        assert scorer.rule_breakdown("tomato", "Tomatoes, green, raw")["long_tail"] == 0.0

    def test_extra_word_penalty(self, scorer):
        assert scorer.rule_breakdown("almond", "Almond butter")["extra_word"] == pytest.approx(-0.8)
        assert scorer.rule_breakdown("almond", "Almond")["extra_word"] == 0.0

    def test_simple_food_bonus_skipped_for_processed(self, scorer):
        assert scorer.rule_breakdown("peas", "Peas, frozen")["simple_food"] == 0.0
        assert scorer.rule_breakdown("peas", "Peas, green")["simple_food"] == 0.3

    def test_related_word_bonus(self, scorer):
        assert scorer.rule_breakdown("grape", "Raisins")["related_word"] == 0.0
        assert scorer.rule_breakdown("cherries", "Cherry, sour")["related_word"] == 0.2

    def test_almond_ranks_above_almond_butter(self, scorer):
        _, almond = scorer.adjusted_score("almond", "Almond")
        _, almond_butter = scorer.adjusted_score("almond", "Almond butter")
        assert almond > almond_butter


class TestMatchProperties:
    """Ranking properties the matcher must always satisfy."""

    @pytest.mark.parametrize("description", [
        "Milk",
        "Tomatoes, red, ripe, raw",
        "Cheese, cheddar",
        "Olive oil",
    ])
    def test_exact_match_selected(self, scorer, description):
        """A verbatim (case-insensitive) query selects its own description."""
        candidates = [
            food("Tomatoes, green, raw", id=1),
            food("Milk, whole, 3.25% milkfat, with added vitamin D", id=2),
            food("Cheese, cheddar, sharp, sliced", id=3),
            food("Oil, olive, salad or cooking", id=4),
            food(description, id="target"),
        ]
        match = scorer.best_match(description.lower(), candidates)

        assert match is not None
        assert match.food.id == "target"
        assert match.adjusted_similarity >= scorer.weights.match_threshold

    def test_plural_symmetry(self, scorer):
        """'nut' and 'nuts' both match 'Nuts, mixed' with the same rule bonuses."""
        candidates = [food("Nuts, mixed")]

        singular = scorer.best_match("nut", candidates)
        plural = scorer.best_match("nuts", candidates)
        assert singular is not None and plural is not None

        nut = scorer.rule_breakdown("nut", "Nuts, mixed")
        nuts = scorer.rule_breakdown("nuts", "Nuts, mixed")
        for rule in ("plural_match", "leading_term", "prefix"):
            assert nut[rule] == nuts[rule], rule

    @pytest.mark.parametrize("query, fewer, more", [
        ("milk", "Milk", "Milk, whole, fortified"),
        ("milk", "Milk whole", "Milk, whole"),
        ("tomato", "Tomatoes, raw", "Tomatoes, red, raw"),
    ])
    def test_fewer_commas_never_score_lower(self, scorer, query, fewer, more):
        _, fewer_score = scorer.adjusted_score(query, fewer)
        _, more_score = scorer.adjusted_score(query, more)
        assert fewer_score >= more_score

    def test_prefers_plain_entry_over_qualified(self, scorer):
        candidates = [
            food("Tomatoes, red, ripe, raw", id=1),
            food("Tomatoes, green, raw", id=2),
        ]
        match = scorer.best_match("tomato", candidates)
        assert match.food.id == 2

    def test_below_threshold_is_no_match(self, scorer):
        assert scorer.best_match("zzz", [food("Apples, raw")]) is None

    def test_empty_candidates_is_no_match(self, scorer):
        assert scorer.best_match("tomato", []) is None

    def test_tie_keeps_earlier_candidate(self, scorer):
        candidates = [food("Tomato", id="first"), food("Tomato", id="second")]
        assert scorer.best_match("tomato", candidates).food.id == "first"

    def test_candidate_window(self):
        """Only the first max_candidates results are scored."""
        candidates = [food("Zucchini, baby, raw", id=i) for i in range(15)]
        candidates.append(food("Tomato", id="late"))

        assert CandidateScorer().best_match("tomato", candidates) is None
        wide = CandidateScorer(ScoringWeights(max_candidates=16))
        assert wide.best_match("tomato", candidates).food.id == "late"

    def test_rank_sorted_descending(self, scorer):
        ranked = scorer.rank("milk", [food("Milk, whole, fortified"), food("Milk"), food("Almond milk")])
        scores = [c.adjusted_similarity for c in ranked]
        assert scores == sorted(scores, reverse=True)
        assert ranked[0].food.description == "Milk"

    def test_best_match_is_top_ranked(self, scorer, caplog):
        candidates = [food(f"Milk, variant {n}, fortified", id=n) for n in range(6)]
        candidates.append(food("Milk", id="plain"))

        with caplog.at_level("DEBUG", logger="ingredient_pipeline.scoring"):
            match = scorer.best_match("milk", candidates)

        assert match.food.id == scorer.rank("milk", candidates)[0].food.id == "plain"
        logged = [r.getMessage() for r in caplog.records if "score:" in r.getMessage()]
        assert len(logged) == 5
        assert logged[0].startswith('[MATCH]   1. "Milk" ->')

    def test_custom_rules(self):
        only_exact = CandidateScorer(rules=[("exact", lambda q, d, w: 10.0 if q == d else 0.0)])
        _, adjusted = only_exact.adjusted_score("kale", "Kale")
        assert adjusted == pytest.approx(11.0)


class TestConfidence:
    """Confidence formulas and the global [0, 0.95] bound."""

    def _match(self, score, base=1.0):
        return MatchCandidate(food=food("Milk", score=score), base_similarity=base, adjusted_similarity=8.8)

    def test_relevance_times_similarity(self, scorer):
        assert scorer.confidence(self._match(80)) == pytest.approx(0.8)

    def test_missing_relevance_uses_default(self, scorer):
        assert scorer.confidence(self._match(None, base=0.5)) == pytest.approx(0.25)

    def test_capped_at_point_nine(self, scorer):
        assert scorer.confidence(self._match(300)) == pytest.approx(0.9)

    def test_global_cap(self):
        scorer = CandidateScorer(ScoringWeights(confidence_cap=2.0))
        assert scorer.confidence(self._match(300)) == pytest.approx(0.95)

    @pytest.mark.parametrize("score", [None, 0.1, 10, 50, 99.9, 500, 2000])
    @pytest.mark.parametrize("base", [0.0, 0.3, 1.0])
    def test_confidence_bound(self, scorer, score, base):
        confidence = scorer.confidence(self._match(score, base=base))
        assert 0.0 <= confidence <= 0.95


class TestSearchConfidence:
    """Simplified confidence for direct lookups."""

    def test_exact(self, scorer):
        assert scorer.search_confidence("cheddar", food("Cheddar", score=100)) == pytest.approx(0.9)

    def test_contains_with_comma(self, scorer):
        assert scorer.search_confidence("cheddar", food("Cheese, cheddar", score=100)) == pytest.approx(0.6)

    def test_unrelated(self, scorer):
        assert scorer.search_confidence("cheddar", food("Swiss cheese", score=100)) == pytest.approx(0.3)

    def test_default_relevance(self, scorer):
        assert scorer.search_confidence("cheddar", food("Cheddar")) == pytest.approx(0.45)

    def test_floor_at_zero(self, scorer):
        description = "Soup, cheddar cheese, canned, condensed, prepared"
        assert scorer.search_confidence("cheddar", food(description, score=10)) == 0.0


class TestScoringWeights:
    """Weights are overridable from config mappings."""

    def test_from_dict_overrides(self):
        weights = ScoringWeights.from_dict({"match_threshold": 0.5, "complexity_terms": ["Frozen"]})
        assert weights.match_threshold == 0.5
        assert weights.complexity_terms == ("frozen",)

    def test_unknown_keys_ignored(self):
        weights = ScoringWeights.from_dict({"no_such_weight": 1.0})
        assert weights == ScoringWeights()

    def test_empty_is_default(self):
        assert ScoringWeights.from_dict(None) == ScoringWeights()
