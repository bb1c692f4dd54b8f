"""
Client for the image tagging service.

The service takes a multipart upload (`file` field) at its root URL and
answers with up to three tag arrays: `tags`, `english` and `chinese`.
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiohttp

from ..errors import RecognitionFailure

logger = logging.getLogger(__name__)

DEFAULT_RECOGNIZE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT_S = 15.0
HEALTH_TIMEOUT_S = 5.0

TAG_FIELDS = ("tags", "english", "chinese")


def merge_recognition_tags(payload: Dict[str, Any]) -> List[str]:
    """
    Concatenate the tag arrays of a recognition response.

    Blank entries and exact duplicates are dropped; first occurrence wins.
    Fields that are not arrays are ignored.
    """
    merged: List[str] = []
    seen = set()
    for key in TAG_FIELDS:
        values = payload.get(key) or []
        if not isinstance(values, list):
            logger.debug(f"[RECOGNIZE] Ignoring non-list '{key}' field")
            continue
        for tag in values:
            if not isinstance(tag, str) or not tag.strip():
                continue
            if tag in seen:
                continue
            seen.add(tag)
            merged.append(tag)
    return merged


class RecognizeClient:
    """Async recognition collaborator."""

    def __init__(
        self,
        base_url: str = DEFAULT_RECOGNIZE_URL,
        timeout: float = DEFAULT_TIMEOUT_S,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/"

    async def _upload(self, session: aiohttp.ClientSession, image_path: Path) -> Any:
        with open(image_path, "rb") as f:
            form = aiohttp.FormData()
            form.add_field("file", f, filename=image_path.name)

            async with session.post(
                self.endpoint,
                data=form,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise RecognitionFailure(
                        f"Recognition API error: {response.status} - {error_text[:200]}"
                    )
                return await response.json()

    async def recognize(self, image_path: Union[str, Path]) -> List[str]:
        """
        Tag an image.

        Args:
            image_path: Path to image file

        Returns:
            Merged raw tags, any script

        Raises:
            RecognitionFailure: If the file is unreadable, the service fails or
                its response is not a JSON object
        """
        image_path = Path(image_path)
        try:
            if self.session is not None:
                payload = await self._upload(self.session, image_path)
            else:
                async with aiohttp.ClientSession() as session:
                    payload = await self._upload(session, image_path)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RecognitionFailure(f"Recognition request failed: {exc!r}") from exc
        except ValueError as exc:
            raise RecognitionFailure(f"Recognition returned invalid JSON: {exc}") from exc
        except OSError as exc:
            raise RecognitionFailure(f"Cannot read image {image_path}: {exc}") from exc

        if not isinstance(payload, dict):
            raise RecognitionFailure(
                f"Unexpected recognition response: expected a JSON object, got {type(payload).__name__}"
            )
        tags = merge_recognition_tags(payload)
        logger.info(f"[RECOGNIZE] {image_path.name}: {len(tags)} tags")
        return tags

    async def health(self) -> bool:
        """True if the service answers an OPTIONS request without a 5xx."""
        try:
            if self.session is not None:
                return await self._options_check(self.session)
            async with aiohttp.ClientSession() as session:
                return await self._options_check(session)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning(f"[RECOGNIZE] Health check failed: {exc!r}")
            return False

    async def _options_check(self, session: aiohttp.ClientSession) -> bool:
        async with session.options(
            self.endpoint, timeout=aiohttp.ClientTimeout(total=HEALTH_TIMEOUT_S)
        ) as response:
            return response.status < 500


__all__ = ["RecognizeClient", "merge_recognition_tags"]
