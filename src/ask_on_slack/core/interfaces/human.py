"""Protocol for the human on the other end of the channel."""

from __future__ import annotations

from typing import Protocol


class HumanProtocol(Protocol):
    """Capability to reach a human.

    Selected once at start-up: a Slack-backed implementation when
    credentials are configured, otherwise a stub that always fails with
    ``NotConfiguredError``.
    """

    async def ask(self, question: str) -> str:
        """Post ``question`` and block until a correlated reply arrives.

        Returns:
            The reply, already wrapped for the calling agent.
        """
        ...

    async def notify(self, message: str) -> None:
        """Post ``message`` without waiting for a reply."""
        ...
