"""HTTP client for the Memos v1 REST API."""

import asyncio
import time
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from daily_review.config.schema import TIME_RANGES, SourceConfig
from daily_review.errors import (
    AuthExpired,
    DailyReviewError,
    InvalidSourceResponse,
    SourceRejectedRequest,
    SourceUnavailable,
    TransientNetworkError,
)
from daily_review.source.base import MemoSource
from daily_review.source.retry import with_retry
from daily_review.source.types import MemoPage

TokenRefresher = Callable[[], Awaitable[str | None]]


class MemosClient(MemoSource):
    """
    Memo source backed by a Memos server.

    Every request carries its own timeout. Timeouts, connection failures
    and 5xx answers are retried with capped exponential backoff; a 401
    triggers one token refresh and one retry of that request.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str = "",
        page_size: int = 1000,
        timeout: float = 8.0,
        refresh_token: TokenRefresher | None = None,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 5.0,
        backoff_factor: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.page_size = page_size
        self.timeout = timeout
        self._refresh_token = refresh_token
        self._retry = {
            "max_attempts": max_attempts,
            "initial_delay": initial_delay,
            "max_delay": max_delay,
            "backoff_factor": backoff_factor,
            "sleep": sleep,
        }
        self._clock = clock
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_config(cls, config: SourceConfig, **kwargs: Any) -> "MemosClient":
        return cls(
            base_url=config.base_url,
            access_token=config.access_token,
            page_size=config.page_size,
            timeout=config.request_timeout,
            max_attempts=config.max_attempts,
            initial_delay=config.initial_delay,
            max_delay=config.max_delay,
            backoff_factor=config.backoff_factor,
            **kwargs,
        )

    # ── MemoSource interface ──────────────────────────────────────────

    async def fetch_page(self, time_range: str, page_token: str | None = None) -> MemoPage:
        params: dict[str, str] = {"pageSize": str(self.page_size)}
        days = TIME_RANGES.get(time_range)
        if days is not None:
            start = int(self._clock()) - days * 24 * 60 * 60
            params["filter"] = f"created_ts >= {start}"
        if page_token:
            params["pageToken"] = page_token

        response = await self._call("GET", "/api/v1/memos", params=params)
        data = self._json(response)
        memos = data.get("memos")
        token = data.get("nextPageToken")
        page = MemoPage(
            memos=memos if isinstance(memos, list) else [],
            next_page_token=token if isinstance(token, str) else "",
        )
        logger.debug(f"Fetched {len(page.memos)} memos (range={time_range}, more={bool(page.next_page_token)})")
        return page

    async def update_memo(self, name: str, content: str) -> dict[str, Any]:
        if not name:
            raise ValueError("missing memo name")
        response = await self._call(
            "PATCH",
            f"/api/v1/{name}",
            params={"updateMask": "content"},
            json={"name": name, "content": content},
        )
        return self._json(response)

    async def delete_memo(self, name: str) -> None:
        if not name:
            raise ValueError("missing memo name")
        await self._call("DELETE", f"/api/v1/{name}")

    async def close(self) -> None:
        await self.client.aclose()

    # ── Internal helpers ──────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _send_once(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self.client.request(
                method, path, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"{method} {path} timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(f"{method} {path} failed: {type(e).__name__}") from e
        except httpx.RequestError as e:
            # Undecodable body or redirect loop; not retried.
            raise InvalidSourceResponse(f"{method} {path} failed: {type(e).__name__}") from e
        except httpx.InvalidURL as e:
            raise DailyReviewError(f"invalid memo source URL for {path}") from e

    async def _refresh(self) -> bool:
        if self._refresh_token is None:
            return False
        token = await self._refresh_token()
        if not token:
            return False
        self.access_token = token
        logger.info("Access token refreshed")
        return True

    async def _call(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        refreshed = False

        async def attempt() -> httpx.Response:
            nonlocal refreshed
            response = await self._send_once(method, path, **kwargs)
            if response.status_code == 401 and not refreshed:
                refreshed = True
                if await self._refresh():
                    response = await self._send_once(method, path, **kwargs)
            self._raise_for_status(response)
            return response

        return await with_retry(attempt, **self._retry)

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status == 401:
            raise AuthExpired("memo source still rejects credentials after token refresh")
        if status >= 500:
            raise SourceUnavailable(status)
        raise SourceRejectedRequest(status)

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        if response.status_code == 204 or not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise InvalidSourceResponse("memo source returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise InvalidSourceResponse("memo source returned an unexpected JSON shape")
        return data
