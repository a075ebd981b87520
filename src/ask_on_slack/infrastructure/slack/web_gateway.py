"""Slack Web API gateway implementing ChannelGatewayProtocol.

Talks to ``https://slack.com/api`` with a bot token over a shared
``aiohttp.ClientSession``. HTTP 429 answers are retried after the advertised
``Retry-After`` delay, up to ``max_rate_limit_retries`` times and never past
the caller's ``max_wait``.
"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
import structlog

from ask_on_slack.core.domain.errors import GatewayError, RateLimitedError
from ask_on_slack.core.domain.models import ReplyCandidate

SLACK_API_URL = "https://slack.com/api"


def parse_retry_after(value: str | None, default: float = 1.0) -> float:
    """Parse a ``Retry-After`` header given in seconds."""
    if value is None:
        return default
    try:
        delay = float(value)
    except ValueError:
        return default
    return max(delay, 0.0)


class SlackWebGateway:
    """Post to and read from Slack channels via the Web API.

    The session is created lazily on first use and closed via ``close()``.
    An externally supplied session is used as-is and left open.
    """

    def __init__(
        self,
        bot_token: str,
        *,
        max_rate_limit_retries: int = 3,
        base_url: str = SLACK_API_URL,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._headers = {"Authorization": f"Bearer {bot_token}"}
        self._max_rate_limit_retries = max_rate_limit_retries
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._sleep = asyncio.sleep
        self._logger = structlog.get_logger()

    # ------------------------------------------------------------------
    # ChannelGatewayProtocol
    # ------------------------------------------------------------------

    async def post_message(self, *, channel: str, text: str) -> str:
        data = await self._call(
            "chat.postMessage",
            http_method="POST",
            payload={"channel": channel, "text": text},
        )
        ts = data.get("ts")
        if not ts:
            raise GatewayError(
                "chat.postMessage returned no message ts",
                provider_error="missing_ts",
                details={"channel": channel},
            )
        return str(ts)

    async def join_channel(self, *, channel: str) -> None:
        await self._call(
            "conversations.join",
            http_method="POST",
            payload={"channel": channel},
        )

    async def fetch_thread_replies(
        self,
        *,
        channel: str,
        anchor: str,
        limit: int = 50,
        max_wait: float | None = None,
    ) -> list[ReplyCandidate]:
        data = await self._call(
            "conversations.replies",
            params={"channel": channel, "ts": anchor, "limit": str(limit)},
            max_wait=max_wait,
        )
        return [ReplyCandidate.from_slack(m) for m in data.get("messages") or []]

    async def fetch_recent_history(
        self, *, channel: str, limit: int = 10, max_wait: float | None = None
    ) -> list[ReplyCandidate]:
        data = await self._call(
            "conversations.history",
            params={"channel": channel, "limit": str(limit)},
            max_wait=max_wait,
        )
        return [ReplyCandidate.from_slack(m) for m in data.get("messages") or []]

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    async def _call(
        self,
        method: str,
        *,
        http_method: str = "GET",
        params: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
        max_wait: float | None = None,
    ) -> dict[str, Any]:
        retries_left = self._max_rate_limit_retries
        waited = 0.0
        while True:
            try:
                return await self._send(
                    method, http_method=http_method, params=params, payload=payload
                )
            except RateLimitedError as exc:
                if retries_left <= 0:
                    self._logger.error(
                        "slack.rate_limit_exhausted",
                        method=method,
                        retries=self._max_rate_limit_retries,
                    )
                    raise GatewayError(
                        f"Too many retries on 429 for {method}",
                        provider_error="ratelimited",
                        rate_limited=True,
                        details={"method": method},
                    ) from exc
                if max_wait is not None and waited + exc.retry_after > max_wait:
                    self._logger.error(
                        "slack.rate_limit_past_deadline",
                        method=method,
                        retry_after=exc.retry_after,
                        max_wait=max_wait,
                    )
                    raise GatewayError(
                        f"Retry-After of {exc.retry_after:g}s for {method} "
                        "exceeds the remaining wait",
                        provider_error="ratelimited",
                        rate_limited=True,
                        details={"method": method, "retry_after": exc.retry_after},
                    ) from exc
                retries_left -= 1
                waited += exc.retry_after
                self._logger.warning(
                    "slack.rate_limited",
                    method=method,
                    retry_after=exc.retry_after,
                    retries_left=retries_left,
                )
                await self._sleep(exc.retry_after)

    async def _send(
        self,
        method: str,
        *,
        http_method: str,
        params: dict[str, str] | None,
        payload: dict[str, Any] | None,
    ) -> dict[str, Any]:
        session = await self._get_session()
        url = f"{self._base_url}/{method}"
        try:
            async with session.request(
                http_method, url, params=params, json=payload, headers=self._headers
            ) as response:
                if response.status == 429:
                    raise RateLimitedError(
                        f"Slack rate limited {method}",
                        retry_after=parse_retry_after(response.headers.get("Retry-After")),
                    )
                try:
                    data = await response.json(content_type=None)
                except ValueError as exc:
                    raise GatewayError(
                        f"Slack {method} returned a non-JSON body (HTTP {response.status})",
                        provider_error=f"http_{response.status}",
                    ) from exc
        except (TimeoutError, aiohttp.ClientError) as exc:
            raise GatewayError(
                f"Slack {method} request failed: {exc or type(exc).__name__}",
                provider_error="transport_error",
            ) from exc

        if not isinstance(data, dict) or not data.get("ok"):
            error = (data or {}).get("error") if isinstance(data, dict) else None
            error = error or "slack_api_error"
            raise GatewayError(error, provider_error=error, details={"method": method})
        return data

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=10)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session
