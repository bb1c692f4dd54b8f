"""
Test direct ingredient lookup (no recognition step).
"""
import asyncio

import pytest

from ingredient_pipeline.errors import AuthFailure, SearchFailure
from ingredient_pipeline.run import IngredientPipeline
from fakes import FakeRecognizer, FakeSearch, food


CHEDDAR_RESULTS = [
    food("Swiss cheese", id=1, score=100),
    food("Cheese, cheddar", id=2, score=90),
    food("Cheddar", id=3, score=80),
    food("Cheese, cheddar, sharp, sliced", id=4, score=90),
    food("Soup, cheddar cheese, canned, condensed, prepared", id=5, score=10),
]


def pipeline_for(config, search):
    return IngredientPipeline(config, search=search, recognizer=FakeRecognizer())


class TestSearchIngredients:
    """Ranking, filtering and limits of direct lookups."""

    def test_ranked_by_confidence(self, config):
        search = FakeSearch({"cheddar": CHEDDAR_RESULTS})
        results = asyncio.run(pipeline_for(config, search).search_ingredients("Cheddar"))

        assert [r.reference_id for r in results] == [3, 2, 4, 1]
        assert results[0].confidence == pytest.approx(0.72)
        assert results[1].confidence == pytest.approx(0.53)

    def test_low_confidence_dropped(self, config):
        search = FakeSearch({"cheddar": CHEDDAR_RESULTS})
        results = asyncio.run(pipeline_for(config, search).search_ingredients("cheddar"))

        assert 5 not in [r.reference_id for r in results]
        assert all(r.confidence > 0.1 for r in results)

    def test_limit_and_page_size(self, config):
        search = FakeSearch({"cheddar": CHEDDAR_RESULTS})
        results = asyncio.run(pipeline_for(config, search).search_ingredients("cheddar", limit=2))

        assert len(results) == 2
        assert search.calls == [{"query": "cheddar", "page_size": 4, "timeout": 8.0}]

    def test_page_size_capped(self, config):
        search = FakeSearch()
        asyncio.run(pipeline_for(config, search).search_ingredients("cheddar", limit=40))

        assert search.calls[0]["page_size"] == 50

    def test_default_limit(self, config):
        search = FakeSearch()
        asyncio.run(pipeline_for(config, search).search_ingredients("cheddar"))

        assert search.calls[0]["page_size"] == 40

    def test_duplicates_merged(self, config):
        search = FakeSearch({"cheddar": [food("Cheddar, raw", id=1, score=60), food("Cheddar", id=2, score=90)]})
        results = asyncio.run(pipeline_for(config, search).search_ingredients("cheddar"))

        assert [r.name for r in results] == ["cheddar"]
        assert results[0].reference_id == 2

    def test_provenance_carried(self, config):
        search = FakeSearch({"kale": [food("Kale, raw", id=168421, score=100, data_type="Foundation")]})
        results = asyncio.run(pipeline_for(config, search).search_ingredients("kale"))

        assert results[0].data_type == "Foundation"
        assert results[0].description == "Kale, raw"
        assert results[0].query == "kale"

    def test_equal_confidence_broken_by_match_score(self, config):
        search = FakeSearch({"kale": [food("Kale, scotch", id=1, score=100), food("Kale, raw", id=2, score=100)]})
        results = asyncio.run(pipeline_for(config, search).search_ingredients("kale"))

        # Both 0.6; "kale, raw" has the shorter description and scores higher
        assert [r.reference_id for r in results] == [2, 1]

    @pytest.mark.parametrize("query", ["", "a", " b "])
    def test_short_query_skips_search(self, config, query):
        search = FakeSearch()
        assert asyncio.run(pipeline_for(config, search).search_ingredients(query)) == []
        assert search.calls == []

    @pytest.mark.parametrize("error", [
        SearchFailure("cheddar", "FDC API error: 500", status=500),
        AuthFailure("cheddar", "FDC API rejected credentials (403)", status=403),
    ])
    def test_search_failure_returns_empty(self, config, error):
        search = FakeSearch(failures={"cheddar": error})
        assert asyncio.run(pipeline_for(config, search).search_ingredients("cheddar")) == []
