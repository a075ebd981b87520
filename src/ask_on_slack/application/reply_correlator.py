"""Wait for the human's reply to a posted question.

A reply qualifies when it was posted strictly after the question and is not
from a bot. Two shapes are accepted, checked in this order per message:

* **Thread reply** - threaded under the question (plain message or
  "also send to channel" broadcast).
* **Mention** - any message mentioning the responder tag (``<@U123>``).
  Only checked when a responder tag is configured, because people often
  answer with a top-level mention instead of a threaded reply.

Each poll re-fetches the whole thread (and, with a responder tag, the last
few channel messages), so a message rejected on one poll is re-evaluated on
the next one.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum

import structlog

from ask_on_slack.core.domain.errors import GatewayError, ReplyTimeoutError
from ask_on_slack.core.domain.models import (
    AskAttempt,
    MessageSubtype,
    PollingPolicy,
    Question,
    ReplyCandidate,
    is_after,
)
from ask_on_slack.core.domain.roles import RoleProfile
from ask_on_slack.core.interfaces.channel_gateway import ChannelGatewayProtocol

DEFAULT_REPLY_TIMEOUT = 300.0

_THREAD_SUBTYPES = {MessageSubtype.NORMAL, MessageSubtype.THREAD_BROADCAST}


class MatchKind(str, Enum):
    THREAD_REPLY = "thread_reply"
    MENTION = "mention"


def mention_marker(responder_tag: str) -> str:
    return f"<@{responder_tag}>"


def is_thread_reply(candidate: ReplyCandidate, question: Question) -> bool:
    """A human reply threaded under the question, posted after it."""
    if candidate.is_from_bot or candidate.subtype not in _THREAD_SUBTYPES:
        return False
    if candidate.thread_anchor != question.thread_anchor:
        return False
    if not candidate.text or not candidate.author_id:
        return False
    return is_after(candidate.ts, question.posted_at)


def is_mention(
    candidate: ReplyCandidate, question: Question, responder_tag: str | None
) -> bool:
    """A human message anywhere in the channel mentioning the responder."""
    if not responder_tag:
        return False
    if candidate.is_from_bot or candidate.subtype in {
        MessageSubtype.BOT,
        MessageSubtype.OTHER_SYSTEM,
    }:
        return False
    if mention_marker(responder_tag) not in candidate.text:
        return False
    return is_after(candidate.ts, question.posted_at)


def classify(
    candidate: ReplyCandidate, question: Question, responder_tag: str | None
) -> MatchKind | None:
    if is_thread_reply(candidate, question):
        return MatchKind.THREAD_REPLY
    if is_mention(candidate, question, responder_tag):
        return MatchKind.MENTION
    return None


def select_reply(
    candidates: Iterable[ReplyCandidate],
    question: Question,
    responder_tag: str | None,
) -> tuple[ReplyCandidate, MatchKind] | None:
    """Return the first qualifying candidate in fetch order."""
    for candidate in candidates:
        kind = classify(candidate, question, responder_tag)
        if kind is not None:
            return candidate, kind
    return None


def strip_responder_tag(text: str, responder_tag: str | None) -> str:
    """Remove every mention of the responder tag and trim whitespace."""
    if responder_tag:
        marker = mention_marker(responder_tag)
        while marker in text:
            text = text.replace(marker, "")
    return text.strip()


class ReplyCorrelator:
    """Poll a channel until a reply to a question shows up.

    The first poll runs right after the question was posted. Later polls
    back off from ``policy.initial_backoff`` in ``policy.backoff_step``
    increments up to ``policy.max_backoff``. A failed poll is logged and
    retried after ``policy.error_penalty`` unless the gateway gave up on a
    rate limit, in which case the wait is abandoned.

    Every ``wait_for_reply`` call owns its own ``AskAttempt``; concurrent
    waits share nothing but the gateway.
    """

    def __init__(
        self,
        gateway: ChannelGatewayProtocol,
        role: RoleProfile,
        *,
        policy: PollingPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._role = role
        self._policy = policy or PollingPolicy()
        self._clock = clock
        self._sleep = sleep
        self._logger = structlog.get_logger()

    @property
    def policy(self) -> PollingPolicy:
        return self._policy

    async def wait_for_reply(
        self,
        question: Question,
        *,
        responder_tag: str | None = None,
        timeout: float = DEFAULT_REPLY_TIMEOUT,
        deadline: float | None = None,
    ) -> str:
        """Block until a reply to ``question`` arrives.

        Args:
            question: The posted question; ``posted_at`` is the thread anchor.
            responder_tag: Slack user id whose mention counts as a reply.
            timeout: Seconds to wait when no explicit ``deadline`` is given.
            deadline: Absolute instant on this correlator's clock.

        Returns:
            The reply text, mention markers removed, wrapped for the agent.

        Raises:
            ReplyTimeoutError: Nothing qualifying arrived before the deadline.
            GatewayError: Slack kept rate limiting past the retry budget.
        """
        attempt = AskAttempt(
            question=question,
            responder_tag=responder_tag,
            deadline=deadline if deadline is not None else self._clock() + timeout,
            backoff=self._policy.initial_backoff,
        )
        logger = self._logger.bind(
            channel=question.channel_id, thread_ts=question.thread_anchor
        )

        while True:
            try:
                match = await self._poll(attempt)
            except GatewayError as exc:
                if exc.rate_limited:
                    logger.error(
                        "correlator.rate_limit_abandoned",
                        polls=attempt.polls,
                        error=exc.message,
                    )
                    raise
                logger.error(
                    "correlator.poll_error",
                    error=exc.message,
                    provider_error=exc.provider_error,
                )
                delay = self._policy.error_penalty
            else:
                if match is not None:
                    candidate, kind = match
                    logger.info(
                        "correlator.reply_matched",
                        kind=kind.value,
                        user=candidate.author_id,
                        ts=candidate.ts,
                        polls=attempt.polls,
                    )
                    reply = strip_responder_tag(candidate.text, responder_tag)
                    return self._role.wrap_reply(reply)
                delay = attempt.backoff
                attempt.backoff = self._policy.next_backoff(attempt.backoff)

            remaining = attempt.deadline - self._clock()
            if remaining <= 0:
                logger.warning("correlator.timed_out", polls=attempt.polls)
                raise ReplyTimeoutError(
                    details={
                        "channel": question.channel_id,
                        "thread_ts": question.thread_anchor,
                        "polls": attempt.polls,
                    }
                )
            await self._sleep(min(delay, remaining))

    async def _poll(
        self, attempt: AskAttempt
    ) -> tuple[ReplyCandidate, MatchKind] | None:
        question = attempt.question
        attempt.polls += 1

        replies = await self._gateway.fetch_thread_replies(
            channel=question.channel_id,
            anchor=question.thread_anchor,
            limit=self._policy.thread_limit,
            max_wait=self._remaining(attempt),
        )
        match = select_reply(replies, question, attempt.responder_tag)
        if match is not None or not attempt.responder_tag:
            return match

        history = await self._gateway.fetch_recent_history(
            channel=question.channel_id,
            limit=self._policy.history_limit,
            max_wait=self._remaining(attempt),
        )
        return select_reply(history, question, attempt.responder_tag)

    def _remaining(self, attempt: AskAttempt) -> float:
        return max(attempt.deadline - self._clock(), 0.0)
