"""
X (Twitter) API v2 client for post view counts.

Usage:
    from sources.x_api import XApiClient

    async with XApiClient(bearer_token="...") as client:
        reply = await client.fetch_view_count("1790000000000000000")
        if reply.kind is ReplyKind.OK:
            print(reply.value)

Rate Limits:
    - 429 responses may carry Retry-After (seconds) and x-rate-limit-reset
      (epoch seconds); both are surfaced on the reply for the fetcher.
"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp

from core.errors import ConfigurationError
from core.types import ApiReply, ErrorKind
from observability.logger import get_logger

logger = get_logger(__name__)


class XApiClient:
    """Single-endpoint X API client: one GET per call, classified, never raised."""

    BASE_URL = "https://api.x.com"
    TWEETS_PATH = "/2/tweets"
    VIEW_COUNT_FIELD = "impression_count"

    def __init__(
        self,
        bearer_token: str | None,
        base_url: str | None = None,
        timeout: float = 30.0,
    ):
        """
        Initialize X API client.

        Args:
            bearer_token: App bearer token (X_BEARER_TOKEN)
            base_url: API root (defaults to BASE_URL)
            timeout: Total request timeout in seconds
        """
        if not bearer_token:
            raise ConfigurationError(
                "X API bearer token not configured. Set the X_BEARER_TOKEN environment variable."
            )

        self.bearer_token = bearer_token
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout

        self._session: aiohttp.ClientSession | None = None

    @property
    def name(self) -> str:
        return "x"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"authorization": f"Bearer {self.bearer_token}"},
            )
        return self._session

    async def close(self) -> None:
        """Close the session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> XApiClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def fetch_view_count(self, post_id: str) -> ApiReply:
        """Request public metrics for one post.

        Args:
            post_id: Numeric post ID

        Returns:
            ApiReply classified by status and body
        """
        url = f"{self.base_url}{self.TWEETS_PATH}"
        params = {"ids": post_id, "tweet.fields": "public_metrics"}

        try:
            session = await self._get_session()
            async with session.get(url, params=params) as resp:
                if resp.status == 200:
                    try:
                        data = await resp.json()
                    except (aiohttp.ContentTypeError, ValueError) as e:
                        return ApiReply.error(
                            ErrorKind.MALFORMED_RESPONSE, f"Invalid JSON body: {e}", status=200
                        )
                    return self._parse_view_count(data, post_id)

                if resp.status == 429:
                    return ApiReply.rate_limited(
                        retry_after=self._parse_float(resp.headers.get("retry-after")),
                        reset_at=self._parse_float(resp.headers.get("x-rate-limit-reset")),
                    )

                if resp.status == 503:
                    return ApiReply.unavailable()

                text = await resp.text()
                return ApiReply.error(
                    ErrorKind.UNEXPECTED_STATUS,
                    f"HTTP {resp.status}: {text[:200]}",
                    status=resp.status,
                )

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            kind = (
                ErrorKind.MALFORMED_RESPONSE
                if isinstance(e, aiohttp.ClientPayloadError)
                else ErrorKind.NETWORK_FAULT
            )
            logger.debug(f"Request for {post_id} failed: {type(e).__name__}: {e}")
            return ApiReply.error(kind, f"{type(e).__name__}: {e}")
        except OSError as e:
            return ApiReply.error(ErrorKind.NETWORK_FAULT, f"{type(e).__name__}: {e}")

    @classmethod
    def _parse_view_count(cls, data: Any, post_id: str) -> ApiReply:
        """Find the requested post in a /2/tweets body and read its view count."""
        if not isinstance(data, dict):
            return ApiReply.error(ErrorKind.MALFORMED_RESPONSE, "Response body is not an object")

        records = data.get("data")
        if not isinstance(records, list):
            errors = data.get("errors") or []
            detail = "no data"
            if errors and isinstance(errors[0], dict):
                detail = errors[0].get("detail", detail)
            return ApiReply.error(
                ErrorKind.MALFORMED_RESPONSE, f"No record for {post_id}: {detail}", status=200
            )

        for record in records:
            if not isinstance(record, dict) or str(record.get("id")) != post_id:
                continue
            metrics = record.get("public_metrics") or {}
            value = cls._parse_int(metrics.get(cls.VIEW_COUNT_FIELD))
            if value is None:
                break
            return ApiReply.ok(value)

        return ApiReply.error(
            ErrorKind.MALFORMED_RESPONSE, f"No view count for {post_id} in response", status=200
        )

    @staticmethod
    def _parse_int(value: Any) -> int | None:
        """Parse a non-negative integer, returning None for anything else."""
        if isinstance(value, bool) or value is None:
            return None
        try:
            result = int(str(value).replace(",", ""))
        except ValueError:
            return None
        return result if result >= 0 else None

    @staticmethod
    def _parse_float(value: str | None) -> float | None:
        if value is None or value == "":
            return None
        try:
            return float(value)
        except ValueError:
            return None
