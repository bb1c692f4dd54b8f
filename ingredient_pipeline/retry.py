"""
Plural/singular retry for labels with no acceptable match.

Matching one label is an explicit two-step state machine:

    MATCHING --(match)--------------------------> RESOLVED
    MATCHING --(no match)--> RETRY_PENDING --(any)--> RESOLVED

The retry query is `label + "s"` when the label does not end in "s",
otherwise the label minus its trailing "s". There is exactly one retry;
the variant itself is never expanded again.

Search failures are not "no match": they propagate to the caller and end
the label without a retry.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .adapters import ReferenceSearch
from .schemas import MatchCandidate
from .scoring import CandidateScorer

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 25


class MatchState(str, Enum):
    MATCHING = "matching"
    RETRY_PENDING = "retry_pending"
    RESOLVED = "resolved"


def retry_variant(query: str) -> str:
    """
    Single plural/singular variant of a query.

    Examples:
        >>> retry_variant("tomato")
        'tomatos'
        >>> retry_variant("nuts")
        'nut'
    """
    if not query.endswith("s"):
        return query + "s"
    return query[:-1]


@dataclass
class MatchAttempt:
    """Resolution of one label: the winning candidate (if any) and the queries sent."""
    label: str
    state: MatchState = MatchState.MATCHING
    queries_tried: List[str] = field(default_factory=list)
    match: Optional[MatchCandidate] = None
    matched_query: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.match is not None


class RetryExpander:
    """Runs search + scoring for a label, retrying once with a plural/singular variant."""

    def __init__(
        self,
        search: ReferenceSearch,
        scorer: Optional[CandidateScorer] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: Optional[float] = None,
    ):
        self.search = search
        self.scorer = scorer or CandidateScorer()
        self.page_size = page_size
        self.timeout = timeout

    async def _try(self, attempt: MatchAttempt, query: str) -> Optional[MatchCandidate]:
        attempt.queries_tried.append(query)
        candidates = await self.search.search(query, page_size=self.page_size, timeout=self.timeout)
        logger.debug(f"[MATCH] '{query}': {len(candidates)} candidates")
        return self.scorer.best_match(query, candidates)

    async def resolve(self, label: str) -> MatchAttempt:
        """
        Resolve one normalized label.

        Args:
            label: Filtered, normalized label

        Returns:
            MatchAttempt in the RESOLVED state

        Raises:
            SearchFailure: If the reference search fails for either query
        """
        attempt = MatchAttempt(label=label)

        while attempt.state is not MatchState.RESOLVED:
            if attempt.state is MatchState.MATCHING:
                query = label
                next_state = MatchState.RETRY_PENDING
            else:
                query = retry_variant(label)
                next_state = MatchState.RESOLVED
                logger.info(f"[RETRY] No match for '{label}', retrying as '{query}'")

            match = await self._try(attempt, query)
            if match is not None:
                attempt.match = match
                attempt.matched_query = query
                attempt.state = MatchState.RESOLVED
            else:
                attempt.state = next_state

        if attempt.matched:
            logger.info(
                f"[MATCH] '{label}' -> \"{attempt.match.food.description}\" "
                f"(score: {attempt.match.adjusted_similarity:.2f})"
            )
        else:
            logger.info(f"[MATCH] No match for '{label}' (tried {attempt.queries_tried})")
        return attempt


__all__ = ["MatchAttempt", "MatchState", "RetryExpander", "retry_variant"]
