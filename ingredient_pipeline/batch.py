"""
Batched concurrent matching of filtered labels.

Labels are resolved in fixed-size batches. Inside a batch every label runs
concurrently and its outcome is captured individually, so one failing label
never cancels or hides its siblings. A short pause separates consecutive
batches to stay under the reference search rate limit.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Union

from .errors import AuthFailure, SearchFailure
from .retry import MatchAttempt, RetryExpander
from .schemas import LabelOutcome, LabelTrace

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_S = 0.1


@dataclass
class BatchReport:
    """Merged outcome of a batch run, in label order."""
    attempts: List[MatchAttempt] = field(default_factory=list)
    traces: List[LabelTrace] = field(default_factory=list)

    @property
    def matched(self) -> List[MatchAttempt]:
        return [a for a in self.attempts if a.matched]


def chunk(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def _trace_for_failure(label: str, exc: Exception) -> LabelTrace:
    queries = [label]
    if isinstance(exc, SearchFailure) and exc.query != label:
        queries.append(exc.query)

    if isinstance(exc, AuthFailure):
        logger.error(
            f"[BATCH] Reference search rejected credentials for '{label}': {exc}. "
            f"Check USDA_API_KEY."
        )
        outcome = LabelOutcome.AUTH_FAILED
    elif isinstance(exc, SearchFailure):
        logger.warning(f"[BATCH] Search failed for '{label}': {exc}")
        outcome = LabelOutcome.SEARCH_FAILED
    else:
        logger.warning(f"[BATCH] Unexpected error for '{label}': {exc!r}")
        outcome = LabelOutcome.SEARCH_FAILED

    return LabelTrace(label=label, outcome=outcome, queries_tried=queries, error=str(exc))


def _trace_for_attempt(attempt: MatchAttempt) -> LabelTrace:
    if not attempt.matched:
        return LabelTrace(
            label=attempt.label,
            outcome=LabelOutcome.NO_MATCH,
            queries_tried=list(attempt.queries_tried),
        )
    return LabelTrace(
        label=attempt.label,
        outcome=LabelOutcome.MATCHED,
        queries_tried=list(attempt.queries_tried),
        matched_description=attempt.match.food.description,
        adjusted_score=attempt.match.adjusted_similarity,
    )


class BatchOrchestrator:
    """Drives RetryExpander over labels in paced, bounded batches."""

    def __init__(
        self,
        expander: RetryExpander,
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_s: float = DEFAULT_BATCH_DELAY_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            expander: Per-label search + score + retry
            batch_size: Labels resolved concurrently per batch
            delay_s: Pause between consecutive batches
            sleep: Awaitable sleep, replaceable in tests
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.expander = expander
        self.batch_size = batch_size
        self.delay_s = delay_s
        self.sleep = sleep

    @staticmethod
    def unique_labels(labels: Iterable[str]) -> List[str]:
        """Drop labels already seen in this run (by normalized string)."""
        seen = set()
        unique = []
        for label in labels:
            key = " ".join(label.lower().split())
            if not key or key in seen:
                continue
            seen.add(key)
            unique.append(key)
        return unique

    async def _run_batch(self, batch: List[str]) -> List[Union[MatchAttempt, BaseException]]:
        return await asyncio.gather(
            *(self.expander.resolve(label) for label in batch),
            return_exceptions=True,
        )

    async def run(self, labels: Iterable[str]) -> BatchReport:
        """
        Resolve every label, isolating per-label failures.

        Args:
            labels: Filtered labels

        Returns:
            BatchReport with one attempt per matched or unmatched label and
            one trace per label
        """
        report = BatchReport()
        batches = chunk(self.unique_labels(labels), self.batch_size)

        for index, batch in enumerate(batches):
            if index > 0 and self.delay_s > 0:
                await self.sleep(self.delay_s)

            logger.debug(f"[BATCH] Batch {index + 1}/{len(batches)}: {batch}")
            results = await self._run_batch(batch)

            # Merge point: only this loop writes to the report
            for label, result in zip(batch, results):
                if isinstance(result, MatchAttempt):
                    report.attempts.append(result)
                    report.traces.append(_trace_for_attempt(result))
                elif isinstance(result, Exception):
                    report.traces.append(_trace_for_failure(label, result))
                else:
                    raise result

        logger.info(
            f"[BATCH] {len(report.matched)}/{len(report.traces)} labels matched "
            f"in {len(batches)} batches"
        )
        return report


__all__ = ["BatchOrchestrator", "BatchReport", "chunk"]
