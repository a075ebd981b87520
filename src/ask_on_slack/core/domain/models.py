"""Domain models for correlating Slack replies with posted questions.

Slack identifies every message by its ``ts`` token, a decimal string such
as ``"1718000000.000200"``. Tokens are both the ordering key and the
thread anchor, so every comparison in here goes through :func:`ts_key`.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class MessageSubtype(str, Enum):
    """Coarse classification of a Slack message ``subtype``."""

    NORMAL = "normal"
    THREAD_BROADCAST = "thread_broadcast"
    BOT = "bot"
    OTHER_SYSTEM = "other_system"

    @classmethod
    def from_slack(cls, subtype: str | None) -> "MessageSubtype":
        if not subtype:
            return cls.NORMAL
        if subtype == "thread_broadcast":
            return cls.THREAD_BROADCAST
        if subtype == "bot_message":
            return cls.BOT
        return cls.OTHER_SYSTEM


def ts_key(token: str | None) -> Decimal | None:
    """Parse a Slack ``ts`` token into an exactly comparable number.

    Returns ``None`` for missing or malformed tokens.
    """
    if not token:
        return None
    try:
        value = Decimal(token)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def is_after(token: str | None, anchor: str) -> bool:
    """Return True when ``token`` is strictly later than ``anchor``."""
    token_value = ts_key(token)
    anchor_value = ts_key(anchor)
    if token_value is None or anchor_value is None:
        return False
    return token_value > anchor_value


@dataclass(frozen=True)
class Question:
    """A question that has been posted to a channel.

    Attributes:
        channel_id: Slack channel the question was posted to.
        text: The question text as posted.
        posted_at: The ``ts`` Slack assigned to the post. Replies are
            threaded under this token.
    """

    channel_id: str
    text: str
    posted_at: str

    @property
    def thread_anchor(self) -> str:
        return self.posted_at


@dataclass(frozen=True)
class ReplyCandidate:
    """A message fetched from Slack that might answer a question."""

    author_id: str | None
    text: str
    ts: str
    thread_anchor: str | None = None
    subtype: MessageSubtype = MessageSubtype.NORMAL
    is_from_bot: bool = False

    @classmethod
    def from_slack(cls, message: dict[str, Any]) -> "ReplyCandidate":
        """Build a candidate from a raw Slack message object."""
        raw_subtype = message.get("subtype")
        subtype = MessageSubtype.from_slack(raw_subtype)
        return cls(
            author_id=message.get("user") or None,
            text=message.get("text") or "",
            ts=str(message.get("ts") or ""),
            thread_anchor=message.get("thread_ts") or None,
            subtype=subtype,
            is_from_bot=bool(message.get("bot_id")) or subtype is MessageSubtype.BOT,
        )


@dataclass(frozen=True)
class PollingPolicy:
    """Schedule used while waiting for a reply.

    All durations are in seconds.
    """

    initial_backoff: float = 0.5
    backoff_step: float = 0.25
    max_backoff: float = 4.0
    error_penalty: float = 2.0
    thread_limit: int = 50
    history_limit: int = 10

    def next_backoff(self, current: float) -> float:
        return min(current + self.backoff_step, self.max_backoff)


@dataclass
class AskAttempt:
    """Working state of a single wait for a reply.

    Owned by exactly one ``ReplyCorrelator.wait_for_reply`` call.

    Attributes:
        question: The posted question being answered.
        responder_tag: Optional Slack user id whose mention counts as a reply.
        deadline: Absolute instant on the correlator's clock.
        backoff: Delay before the next poll.
        polls: Number of completed polls.
    """

    question: Question
    responder_tag: str | None
    deadline: float
    backoff: float
    polls: int = 0
