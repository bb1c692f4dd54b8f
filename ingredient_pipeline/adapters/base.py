"""
Collaborator interfaces.

The pipeline only depends on these two protocols; the HTTP clients in this
package implement them, tests substitute in-memory fakes.
"""
from typing import List, Optional, Protocol, runtime_checkable

from ..schemas import ReferenceFood


@runtime_checkable
class ReferenceSearch(Protocol):
    async def search(
        self, query: str, page_size: int = 25, timeout: Optional[float] = None
    ) -> List[ReferenceFood]:
        """Ranked reference candidates for a text query."""
        ...

    async def health(self) -> bool:
        ...


@runtime_checkable
class Recognizer(Protocol):
    async def recognize(self, image_path) -> List[str]:
        """Free-text tags for an image."""
        ...

    async def health(self) -> bool:
        ...
