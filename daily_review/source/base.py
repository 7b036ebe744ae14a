"""Abstract base class for memo sources."""

from abc import ABC, abstractmethod
from typing import Any

from daily_review.source.types import MemoPage


class MemoSource(ABC):
    """
    Where memos come from.

    The deck engine only needs paginated reads; edits and deletes are used
    to keep cached copies in step with the source.
    """

    @abstractmethod
    async def fetch_page(self, time_range: str, page_token: str | None = None) -> MemoPage:
        """
        Fetch one page of raw memo records.

        Args:
            time_range: Time range key, e.g. "6months" or "all".
            page_token: Token from the previous page, None for the first page.

        Returns:
            MemoPage with raw records and the next page token ("" when done).
        """
        ...

    async def update_memo(self, name: str, content: str) -> dict[str, Any]:
        """Replace a memo's content and return the updated raw record."""
        raise NotImplementedError(f"{type(self).__name__} does not support editing")

    async def delete_memo(self, name: str) -> None:
        """Delete a memo at the source."""
        raise NotImplementedError(f"{type(self).__name__} does not support deleting")

    async def close(self) -> None:
        """Release any held connections."""
        return None
