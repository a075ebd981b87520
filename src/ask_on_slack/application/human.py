"""Human capability implementations: Slack-backed and not configured."""

from __future__ import annotations

import structlog

from ask_on_slack.application.reply_correlator import (
    DEFAULT_REPLY_TIMEOUT,
    ReplyCorrelator,
)
from ask_on_slack.core.domain.errors import GatewayError, NotConfiguredError
from ask_on_slack.core.domain.models import Question
from ask_on_slack.core.interfaces.channel_gateway import ChannelGatewayProtocol

NOT_CONFIGURED_MESSAGE = (
    "No Human client configured. Provide Slack credentials to enable ask_on_slack."
)


class NoopHuman:
    """Stand-in used when Slack credentials are missing.

    Every call fails immediately without touching the network.
    """

    async def ask(self, question: str) -> str:
        raise NotConfiguredError(NOT_CONFIGURED_MESSAGE)

    async def notify(self, message: str) -> None:
        raise NotConfiguredError(NOT_CONFIGURED_MESSAGE)


class SlackHuman:
    """Reach a human by posting into a Slack channel.

    Args:
        gateway: Slack API adapter.
        correlator: Waits for the reply once a question is posted.
        channel_id: Channel questions are posted to.
        responder_tag: Optional user id; a mention of it counts as a reply.
        timeout: Seconds to wait for a reply.
    """

    def __init__(
        self,
        gateway: ChannelGatewayProtocol,
        correlator: ReplyCorrelator,
        *,
        channel_id: str | None,
        responder_tag: str | None = None,
        timeout: float = DEFAULT_REPLY_TIMEOUT,
    ) -> None:
        self._gateway = gateway
        self._correlator = correlator
        self._channel_id = channel_id
        self._responder_tag = responder_tag
        self._timeout = timeout
        self._logger = structlog.get_logger()

    async def ask(self, question: str) -> str:
        posted = await self._post(question)
        return await self._correlator.wait_for_reply(
            posted,
            responder_tag=self._responder_tag,
            timeout=self._timeout,
        )

    async def notify(self, message: str) -> None:
        await self._post(message)

    async def _post(self, text: str) -> Question:
        channel = self._require_channel()
        await self._ensure_in_channel(channel)
        try:
            ts = await self._gateway.post_message(channel=channel, text=text)
        except GatewayError as exc:
            self._logger.error(
                "slack.post_failed",
                channel=channel,
                error=exc.message,
                provider_error=exc.provider_error,
            )
            raise
        self._logger.info("slack.question_posted", channel=channel, thread_ts=ts)
        return Question(channel_id=channel, text=text, posted_at=ts)

    def _require_channel(self) -> str:
        if not self._channel_id:
            raise NotConfiguredError(
                "A Slack channel id is required. "
                "Provide --slack-channel-id or ASK_SLACK_CHANNEL."
            )
        return self._channel_id

    async def _ensure_in_channel(self, channel: str) -> None:
        try:
            await self._gateway.join_channel(channel=channel)
        except GatewayError as exc:
            # already_in_channel, method_not_supported_for_channel_type, ...
            self._logger.debug(
                "slack.join_skipped", channel=channel, provider_error=exc.provider_error
            )
