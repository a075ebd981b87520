"""Wire the ask/reply engine from settings.

The human capability is chosen exactly once here: Slack-backed when the
bot/app token pair is configured, otherwise the ``NoopHuman`` stub.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from ask_on_slack.application.ask_orchestrator import AskOrchestrator
from ask_on_slack.application.human import NoopHuman, SlackHuman
from ask_on_slack.application.reply_correlator import ReplyCorrelator
from ask_on_slack.core.domain.models import PollingPolicy
from ask_on_slack.core.domain.roles import RoleProfile, get_role
from ask_on_slack.core.domain.settings import Settings
from ask_on_slack.core.interfaces.channel_gateway import ChannelGatewayProtocol
from ask_on_slack.core.interfaces.human import HumanProtocol
from ask_on_slack.infrastructure.slack.web_gateway import SlackWebGateway


@dataclass
class AskComponents:
    """Everything a transport needs to serve the tools.

    Attributes:
        role: Resolved role profile.
        human: Selected human capability.
        orchestrator: Tool entry point shared by all sessions.
        gateway: Slack gateway, ``None`` when Slack is not configured.
    """

    role: RoleProfile
    human: HumanProtocol
    orchestrator: AskOrchestrator
    gateway: ChannelGatewayProtocol | None = None

    @property
    def slack_configured(self) -> bool:
        return self.gateway is not None

    async def aclose(self) -> None:
        """Release the Slack HTTP session, if any."""
        if self.gateway is not None:
            await self.gateway.close()


def build_components(
    settings: Settings,
    *,
    gateway: ChannelGatewayProtocol | None = None,
    policy: PollingPolicy | None = None,
) -> AskComponents:
    """Build the engine for ``settings``.

    Args:
        settings: Validated runtime settings.
        gateway: Optional gateway override (tests, alternative channels).
        policy: Optional polling schedule override.

    Returns:
        Wired components. The caller owns them and must ``aclose()``.
    """
    logger = structlog.get_logger()
    role = get_role(settings.role)

    if not settings.has_slack_credentials:
        logger.warning(
            "slack.not_configured",
            message="ask_on_slack tools will return an error if invoked.",
        )
        human: HumanProtocol = NoopHuman()
        return AskComponents(
            role=role,
            human=human,
            orchestrator=AskOrchestrator(human, role),
        )

    if gateway is None:
        gateway = SlackWebGateway(
            settings.slack_bot_token or "",
            max_rate_limit_retries=settings.max_rate_limit_retries,
        )
    correlator = ReplyCorrelator(gateway, role, policy=policy)
    human = SlackHuman(
        gateway,
        correlator,
        channel_id=settings.slack_channel_id,
        responder_tag=settings.slack_user_id,
        timeout=settings.reply_timeout,
    )
    logger.info(
        "slack.configured",
        channel=settings.slack_channel_id,
        responder_tag=settings.slack_user_id,
        role=role.name,
    )
    return AskComponents(
        role=role,
        human=human,
        orchestrator=AskOrchestrator(human, role),
        gateway=gateway,
    )
