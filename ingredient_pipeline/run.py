"""
Pipeline entry points: tags or image in, ranked ingredients out.

    filter -> batch (search + score + retry) -> build -> dedup/rank

Every entry point degrades to an empty result on collaborator failure, so a
caller can always show "no ingredients recognized" instead of an error.

Example:
    >>> import asyncio
    >>> from ingredient_pipeline.run import IngredientPipeline
    >>> pipeline = IngredientPipeline()
    >>> ingredients = asyncio.run(pipeline.analyze(["tomato", "onion", "bowl"]))
    >>> print([i.name for i in ingredients])
"""
import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .adapters import FDCSearchClient, RecognizeClient, Recognizer, ReferenceSearch
from .batch import BatchOrchestrator
from .config_loader import PipelineConfig, load_pipeline_config
from .dedup import canonical_key, clean_food_description, deduplicate_and_rank
from .errors import AuthFailure, PipelineError
from .retry import MatchAttempt, RetryExpander
from .schemas import AnalysisResult, HealthStatus, ProcessedIngredient, ReferenceFood
from .scoring import CandidateScorer, normalize_text

logger = logging.getLogger(__name__)

MIN_SEARCH_QUERY_LENGTH = 2


class IngredientPipeline:
    """
    Resolves recognition labels into canonical, confidence-scored ingredients.

    Holds no per-run state; one instance can serve concurrent runs.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        search: Optional[ReferenceSearch] = None,
        recognizer: Optional[Recognizer] = None,
    ):
        """
        Args:
            config: Loaded configuration (packaged configs + environment if None)
            search: Reference search collaborator (FoodData Central client if None)
            recognizer: Image recognition collaborator (HTTP client if None)
        """
        self.config = config or load_pipeline_config()
        cfg = self.config

        self.search = search or FDCSearchClient(
            base_url=cfg.usda_api_base_url,
            api_key=cfg.usda_api_key,
            data_types=cfg.data_types,
            timeout=cfg.match_timeout_s,
        )
        self.recognizer = recognizer or RecognizeClient(
            base_url=cfg.recognize_api_url,
            timeout=cfg.recognize_timeout_s,
        )

        self.scorer = CandidateScorer(cfg.weights)
        self.label_filter = cfg.label_filter()
        self.categorizer = cfg.categorizer()
        self.expander = RetryExpander(
            self.search,
            self.scorer,
            page_size=cfg.match_page_size,
            timeout=cfg.match_timeout_s,
        )
        self.orchestrator = BatchOrchestrator(
            self.expander,
            batch_size=cfg.batch_size,
            delay_s=cfg.batch_delay_s,
        )

    def build_ingredient(self, attempt: MatchAttempt) -> ProcessedIngredient:
        """Turn a resolved match into an output record."""
        match = attempt.match
        food = match.food
        return ProcessedIngredient(
            name=clean_food_description(food.description),
            category=self.categorizer.categorize(food),
            confidence=self.scorer.confidence(match),
            reference_id=food.id,
            query=attempt.matched_query,
            description=food.description,
            data_type=food.data_type,
        )

    async def run_analysis(self, tags: Iterable[str]) -> AnalysisResult:
        """
        Full analysis of raw tags, with per-label traces.

        Args:
            tags: Raw recognition tags

        Returns:
            AnalysisResult; ingredients is empty if nothing matched
        """
        result = AnalysisResult(config_version=self.config.config_version)

        kept, rejected = self.label_filter.split(tags or [])
        result.filtered_labels = kept
        result.rejected_labels = rejected
        if not kept:
            logger.info("[PIPELINE] No usable labels after filtering")
            return result

        report = await self.orchestrator.run(kept)
        result.traces = report.traces

        ingredients = [self.build_ingredient(attempt) for attempt in report.matched]
        result.ingredients = deduplicate_and_rank(ingredients, self.config.max_results)

        logger.info(
            f"[PIPELINE] {len(kept)} labels -> {len(result.ingredients)} ingredients "
            f"({self.config.config_version})"
        )
        return result

    async def analyze(self, tags: Iterable[str]) -> List[ProcessedIngredient]:
        """Ranked, deduplicated ingredients for raw tags; [] when nothing matches."""
        result = await self.run_analysis(tags)
        return result.ingredients

    async def analyze_image(self, image_path: Union[str, Path]) -> List[ProcessedIngredient]:
        """
        Recognize an image and resolve its tags.

        A recognition failure is fatal to the run and yields [].
        """
        try:
            tags = await self.recognizer.recognize(image_path)
        except PipelineError as exc:
            logger.error(f"[RECOGNIZE] Recognition failed for {image_path}: {exc}")
            return []

        if not tags:
            logger.info(f"[RECOGNIZE] No tags for {image_path}")
            return []
        return await self.analyze(tags)

    def _search_page_size(self, limit: int) -> int:
        return max(1, min(limit * 2, self.config.search_page_size_cap))

    def _score_search_result(self, query: str, food: ReferenceFood) -> Tuple[ProcessedIngredient, float]:
        confidence = self.scorer.search_confidence(query, food)
        _, adjusted = self.scorer.adjusted_score(query, food.description)
        ingredient = ProcessedIngredient(
            name=clean_food_description(food.description),
            category=self.categorizer.categorize(food),
            confidence=confidence,
            reference_id=food.id,
            query=query,
            description=food.description,
            data_type=food.data_type,
        )
        return ingredient, adjusted

    async def search_ingredients(self, query: str, limit: Optional[int] = None) -> List[ProcessedIngredient]:
        """
        Direct lookup for a user-typed query.

        Args:
            query: Free text, at least two characters
            limit: Maximum results (config default if None)

        Returns:
            Distinct ingredients, highest confidence first
        """
        limit = self.config.search_default_limit if limit is None else limit
        q = normalize_text(query or "")
        if len(q) < MIN_SEARCH_QUERY_LENGTH or limit <= 0:
            return []

        try:
            foods = await self.search.search(
                q,
                page_size=self._search_page_size(limit),
                timeout=self.config.search_timeout_s,
            )
        except AuthFailure as exc:
            logger.error(f"[FDC] Credentials rejected for search '{q}': {exc}. Check USDA_API_KEY.")
            return []
        except PipelineError as exc:
            logger.warning(f"[FDC] Search failed for '{q}': {exc}")
            return []

        scored = [self._score_search_result(q, food) for food in foods]
        scored = [
            (ingredient, adjusted) for ingredient, adjusted in scored
            if ingredient.confidence > self.config.weights.search_min_confidence
        ]
        scored.sort(key=lambda pair: (-pair[0].confidence, -pair[1]))

        results: List[ProcessedIngredient] = []
        seen = set()
        for ingredient, _ in scored:
            key = canonical_key(ingredient.name)
            if key in seen:
                continue
            seen.add(key)
            results.append(ingredient)
            if len(results) >= limit:
                break

        logger.info(f"[PIPELINE] Search '{q}': {len(results)} results")
        return results

    async def health_check(self) -> HealthStatus:
        """Check both collaborators concurrently; never raises."""
        recognize_ok, search_ok = await asyncio.gather(
            self.recognizer.health(),
            self.search.health(),
            return_exceptions=True,
        )
        recognize_ok = recognize_ok is True
        search_ok = search_ok is True
        return HealthStatus(
            recognize_api=recognize_ok,
            reference_search=search_ok,
            overall=recognize_ok and search_ok,
        )


__all__ = ["IngredientPipeline"]
