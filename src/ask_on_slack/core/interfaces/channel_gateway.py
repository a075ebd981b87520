"""Protocol for the messaging channel the questions are posted to.

Implementations wrap a concrete chat API (Slack Web API). Rate limiting is
handled inside the gateway; callers only see ``GatewayError`` once the
retry budget is exhausted, or when the advertised retry delay does not fit
in the caller's ``max_wait``.
"""

from __future__ import annotations

from typing import Protocol

from ask_on_slack.core.domain.models import ReplyCandidate


class ChannelGatewayProtocol(Protocol):
    """Post messages to a channel and read back its messages."""

    async def post_message(self, *, channel: str, text: str) -> str:
        """Post ``text`` into ``channel``.

        Returns:
            The ``ts`` token of the new message (the thread anchor).

        Raises:
            GatewayError: The API rejected the post.
        """
        ...

    async def join_channel(self, *, channel: str) -> None:
        """Join ``channel``.

        Raises:
            GatewayError: The bot could not join (already a member,
                private channel, ...). Callers treat this as ignorable.
        """
        ...

    async def fetch_thread_replies(
        self,
        *,
        channel: str,
        anchor: str,
        limit: int = 50,
        max_wait: float | None = None,
    ) -> list[ReplyCandidate]:
        """Fetch messages of the thread rooted at ``anchor``.

        ``max_wait`` bounds the total time spent sleeping on rate limits.
        """
        ...

    async def fetch_recent_history(
        self, *, channel: str, limit: int = 10, max_wait: float | None = None
    ) -> list[ReplyCandidate]:
        """Fetch the most recent top-level messages of ``channel``."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
