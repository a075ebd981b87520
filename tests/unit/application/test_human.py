"""Tests for the Slack-backed and not-configured human capabilities."""

import pytest

from helpers import FakeClock, FakeGateway, slack_message

from ask_on_slack.application.human import NOT_CONFIGURED_MESSAGE, NoopHuman, SlackHuman
from ask_on_slack.application.reply_correlator import ReplyCorrelator
from ask_on_slack.core.domain.errors import (
    GatewayError,
    NotConfiguredError,
    ReplyTimeoutError,
)
from ask_on_slack.core.domain.roles import EXPERT_ROLE


def make_human(
    gateway: FakeGateway,
    clock: FakeClock,
    *,
    channel_id: str | None = "C1",
    responder_tag: str | None = None,
    timeout: float = 5,
) -> SlackHuman:
    correlator = ReplyCorrelator(gateway, EXPERT_ROLE, clock=clock, sleep=clock.sleep)
    return SlackHuman(
        gateway,
        correlator,
        channel_id=channel_id,
        responder_tag=responder_tag,
        timeout=timeout,
    )


@pytest.mark.asyncio
async def test_noop_human_rejects_every_call() -> None:
    human = NoopHuman()

    with pytest.raises(NotConfiguredError) as exc_info:
        await human.ask("Ping?")
    assert exc_info.value.message == NOT_CONFIGURED_MESSAGE

    with pytest.raises(NotConfiguredError):
        await human.notify("Thanks")


@pytest.mark.asyncio
async def test_ask_posts_then_waits_for_thread_reply(fake_clock) -> None:
    gateway = FakeGateway(
        post_ts="100.000",
        thread_batches=[[slack_message("100.001", "Pong", thread_ts="100.000")]],
    )
    human = make_human(gateway, fake_clock)

    reply = await human.ask("Ping?")

    assert gateway.joins == ["C1"]
    assert gateway.posts == [("C1", "Ping?")]
    assert reply == (
        "The expert replied (use the tool to clarify back with the expert): Pong"
    )


@pytest.mark.asyncio
async def test_ask_uses_responder_tag_for_mentions(fake_clock) -> None:
    gateway = FakeGateway(
        post_ts="100.000",
        history_batches=[[slack_message("100.004", "<@U9> yes, ship it")]],
    )
    human = make_human(gateway, fake_clock, responder_tag="U9")

    reply = await human.ask("Ship?")

    assert reply.endswith(": yes, ship it")


@pytest.mark.asyncio
async def test_ask_times_out(fake_clock) -> None:
    human = make_human(FakeGateway(), fake_clock, timeout=1)

    with pytest.raises(ReplyTimeoutError):
        await human.ask("Anyone?")


@pytest.mark.asyncio
async def test_notify_posts_without_polling(fake_clock) -> None:
    gateway = FakeGateway()
    human = make_human(gateway, fake_clock)

    await human.notify("Thanks")

    assert gateway.posts == [("C1", "Thanks")]
    assert gateway.thread_calls == 0


@pytest.mark.asyncio
async def test_missing_channel_is_a_configuration_error(fake_clock) -> None:
    gateway = FakeGateway()
    human = make_human(gateway, fake_clock, channel_id=None)

    with pytest.raises(NotConfiguredError, match="channel id is required"):
        await human.ask("Ping?")
    assert gateway.posts == []


@pytest.mark.asyncio
async def test_join_failure_does_not_block_posting(fake_clock) -> None:
    gateway = FakeGateway(
        join_error=GatewayError(
            "method_not_supported_for_channel_type",
            provider_error="method_not_supported_for_channel_type",
        )
    )
    human = make_human(gateway, fake_clock)

    await human.notify("Thanks")

    assert gateway.posts == [("C1", "Thanks")]


@pytest.mark.asyncio
async def test_post_failure_propagates(fake_clock) -> None:
    gateway = FakeGateway(
        post_error=GatewayError("channel_not_found", provider_error="channel_not_found")
    )
    human = make_human(gateway, fake_clock)

    with pytest.raises(GatewayError) as exc_info:
        await human.ask("Ping?")

    assert exc_info.value.provider_error == "channel_not_found"
    assert gateway.thread_calls == 0
