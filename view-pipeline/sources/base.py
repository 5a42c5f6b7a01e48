"""Base protocol for view-count sources."""

from typing import Protocol, runtime_checkable

from core.types import ApiReply


@runtime_checkable
class ViewCountSource(Protocol):
    """Protocol for anything that can look up a post's view count.

    Implementations perform exactly one request per call and classify the
    result into an ApiReply; they never raise for per-request problems.
    Retrying is the fetcher's job.
    """

    @property
    def name(self) -> str:
        """Source identifier (e.g., 'x')."""
        ...

    async def fetch_view_count(self, post_id: str) -> ApiReply:
        """Issue one request for a post's view count.

        Args:
            post_id: Post identifier

        Returns:
            Classified reply (ok, rate limited, unavailable, or error)
        """
        ...
