"""
USDA FoodData Central search client.

POSTs to `{base_url}/foods/search` and turns the `foods` array into
ReferenceFood records, best score first as returned by the API.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from ..errors import AuthFailure, SearchFailure
from ..schemas import ReferenceFood

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.nal.usda.gov/fdc/v1"
DEFAULT_DATA_TYPES = ("Foundation", "SR Legacy", "Survey (FNDDS)")
DEFAULT_TIMEOUT_S = 5.0


def build_search_payload(query: str, page_size: int, data_types: Sequence[str]) -> Dict[str, Any]:
    """JSON body for a `foods/search` request."""
    return {
        "query": query,
        "dataType": list(data_types),
        "pageSize": page_size,
        "sortBy": "score",
        "sortOrder": "desc",
    }


def parse_search_response(data: Any) -> List[ReferenceFood]:
    """
    Convert a `foods/search` response to ReferenceFood records.

    Entries without an fdcId are skipped.

    Raises:
        ValueError: If the body is not an object with a `foods` list
    """
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    entries = data.get("foods") or []
    if not isinstance(entries, list):
        raise ValueError(f"expected 'foods' to be a list, got {type(entries).__name__}")

    foods = []
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("fdcId") is None:
            logger.debug(f"[FDC] Skipping entry without fdcId: {entry!r:.80}")
            continue
        foods.append(ReferenceFood.from_fdc(entry))
    return foods


class FDCSearchClient:
    """Async reference-search collaborator backed by FoodData Central."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str = "DEMO_KEY",
        data_types: Sequence[str] = DEFAULT_DATA_TYPES,
        timeout: float = DEFAULT_TIMEOUT_S,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            base_url: FDC API base, without trailing slash
            api_key: data.gov API key
            data_types: FDC data types to search
            timeout: Default request timeout in seconds
            session: Shared aiohttp session; a session per request is used if None
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.data_types = tuple(data_types)
        self.timeout = timeout
        self.session = session

    @property
    def search_url(self) -> str:
        return f"{self.base_url}/foods/search"

    async def _post(self, session: aiohttp.ClientSession, query: str, payload: Dict[str, Any], timeout: float) -> Any:
        async with session.post(
            self.search_url,
            params={"api_key": self.api_key},
            json=payload,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as response:
            if response.status in (401, 403):
                raise AuthFailure(
                    query,
                    f"FDC API rejected credentials ({response.status}); check USDA_API_KEY",
                    status=response.status,
                )
            if response.status != 200:
                error_text = await response.text()
                raise SearchFailure(
                    query,
                    f"FDC API error: {response.status} - {error_text[:200]}",
                    status=response.status,
                )
            return await response.json()

    async def search(
        self, query: str, page_size: int = 25, timeout: Optional[float] = None
    ) -> List[ReferenceFood]:
        """
        Search FDC for a text query.

        Args:
            query: Search text
            page_size: Number of results to request
            timeout: Request timeout in seconds (client default if None)

        Returns:
            Candidates in API relevance order

        Raises:
            AuthFailure: On HTTP 401/403
            SearchFailure: On any other HTTP error, transport error, timeout
                or malformed response body
        """
        payload = build_search_payload(query, page_size, self.data_types)
        total = timeout or self.timeout

        try:
            if self.session is not None:
                data = await self._post(self.session, query, payload, total)
            else:
                async with aiohttp.ClientSession() as session:
                    data = await self._post(session, query, payload, total)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise SearchFailure(query, f"FDC request failed: {exc!r}") from exc
        except ValueError as exc:
            raise SearchFailure(query, f"FDC returned invalid JSON: {exc}") from exc

        try:
            foods = parse_search_response(data)
        except ValueError as exc:
            raise SearchFailure(query, f"Unexpected FDC response: {exc}") from exc
        logger.debug(f"[FDC] '{query}' -> {len(foods)} foods")
        return foods

    async def health(self) -> bool:
        """True if a one-result search for 'apple' succeeds."""
        try:
            await self.search("apple", page_size=1)
        except SearchFailure as exc:
            logger.warning(f"[FDC] Health check failed: {exc}")
            return False
        return True


__all__ = [
    "DEFAULT_DATA_TYPES",
    "FDCSearchClient",
    "build_search_payload",
    "parse_search_response",
]
