"""Fakes and builders shared by the test suite."""

from __future__ import annotations

from typing import Any

from ask_on_slack.core.domain.models import ReplyCandidate


def slack_message(
    ts: str,
    text: str = "",
    *,
    user: str | None = "U_HUMAN",
    thread_ts: str | None = None,
    bot_id: str | None = None,
    subtype: str | None = None,
) -> ReplyCandidate:
    """Build a candidate the way the gateway parses raw Slack messages."""
    raw: dict[str, Any] = {"ts": ts, "text": text}
    if user:
        raw["user"] = user
    if thread_ts:
        raw["thread_ts"] = thread_ts
    if bot_id:
        raw["bot_id"] = bot_id
    if subtype:
        raw["subtype"] = subtype
    return ReplyCandidate.from_slack(raw)


class FakeGateway:
    """In-memory ChannelGatewayProtocol.

    ``thread_batches`` / ``history_batches`` are consumed one per fetch; the
    last batch is repeated once the list runs out. A batch may be an
    exception instance, which is raised instead.
    """

    def __init__(
        self,
        *,
        post_ts: str = "100.000",
        thread_batches: list[Any] | None = None,
        history_batches: list[Any] | None = None,
        join_error: Exception | None = None,
        post_error: Exception | None = None,
    ) -> None:
        self.post_ts = post_ts
        self.posts: list[tuple[str, str]] = []
        self.joins: list[str] = []
        self.thread_calls = 0
        self.history_calls = 0
        self.closed = False
        self.max_waits: list[float | None] = []
        self._thread_batches = list(thread_batches or [])
        self._history_batches = list(history_batches or [])
        self._join_error = join_error
        self._post_error = post_error

    async def post_message(self, *, channel: str, text: str) -> str:
        if self._post_error is not None:
            raise self._post_error
        self.posts.append((channel, text))
        return self.post_ts

    async def join_channel(self, *, channel: str) -> None:
        self.joins.append(channel)
        if self._join_error is not None:
            raise self._join_error

    async def fetch_thread_replies(
        self,
        *,
        channel: str,
        anchor: str,
        limit: int = 50,
        max_wait: float | None = None,
    ) -> list[ReplyCandidate]:
        self.thread_calls += 1
        self.max_waits.append(max_wait)
        return self._next(self._thread_batches)

    async def fetch_recent_history(
        self, *, channel: str, limit: int = 10, max_wait: float | None = None
    ) -> list[ReplyCandidate]:
        self.history_calls += 1
        self.max_waits.append(max_wait)
        return self._next(self._history_batches)

    async def close(self) -> None:
        self.closed = True

    @staticmethod
    def _next(batches: list[Any]) -> list[ReplyCandidate]:
        if not batches:
            return []
        batch = batches.pop(0) if len(batches) > 1 else batches[0]
        if isinstance(batch, Exception):
            raise batch
        return list(batch)


class FakeClock:
    """Deterministic clock; ``sleep`` advances time instead of waiting."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


