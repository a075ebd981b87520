"""Tests for the reply-correlation domain models."""

from decimal import Decimal

import pytest

from ask_on_slack.core.domain.models import (
    MessageSubtype,
    PollingPolicy,
    Question,
    ReplyCandidate,
    is_after,
    ts_key,
)


class TestTsKey:
    def test_parses_decimal_token(self) -> None:
        assert ts_key("1718000000.000200") == Decimal("1718000000.000200")

    @pytest.mark.parametrize("token", [None, "", "not-a-ts", "NaN", "Infinity"])
    def test_rejects_missing_or_malformed(self, token) -> None:
        assert ts_key(token) is None


class TestIsAfter:
    def test_microsecond_precision_is_preserved(self) -> None:
        assert is_after("1718000000.000200", "1718000000.000199")
        assert not is_after("1718000000.000199", "1718000000.000200")

    def test_equal_tokens_are_not_after(self) -> None:
        assert not is_after("100.000", "100.000")

    def test_compares_numerically_not_lexically(self) -> None:
        assert is_after("1000.0", "999.9")

    def test_malformed_token_never_qualifies(self) -> None:
        assert not is_after("garbage", "100.000")
        assert not is_after(None, "100.000")


class TestReplyCandidateFromSlack:
    def test_plain_thread_reply(self) -> None:
        candidate = ReplyCandidate.from_slack(
            {"user": "U1", "text": "Pong", "ts": "100.001", "thread_ts": "100.000"}
        )

        assert candidate.author_id == "U1"
        assert candidate.text == "Pong"
        assert candidate.thread_anchor == "100.000"
        assert candidate.subtype is MessageSubtype.NORMAL
        assert candidate.is_from_bot is False

    @pytest.mark.parametrize(
        ("subtype", "expected"),
        [
            (None, MessageSubtype.NORMAL),
            ("thread_broadcast", MessageSubtype.THREAD_BROADCAST),
            ("bot_message", MessageSubtype.BOT),
            ("channel_join", MessageSubtype.OTHER_SYSTEM),
        ],
    )
    def test_subtype_mapping(self, subtype, expected) -> None:
        candidate = ReplyCandidate.from_slack(
            {"ts": "1.0", "text": "x", "subtype": subtype}
        )
        assert candidate.subtype is expected

    def test_bot_id_marks_message_as_bot(self) -> None:
        candidate = ReplyCandidate.from_slack(
            {"ts": "1.0", "text": "x", "bot_id": "B1", "user": "U_BOT"}
        )
        assert candidate.is_from_bot is True

    def test_bot_message_subtype_marks_message_as_bot(self) -> None:
        candidate = ReplyCandidate.from_slack(
            {"ts": "1.0", "text": "x", "subtype": "bot_message"}
        )
        assert candidate.is_from_bot is True

    def test_missing_fields_default_to_empty(self) -> None:
        candidate = ReplyCandidate.from_slack({})

        assert candidate.author_id is None
        assert candidate.text == ""
        assert candidate.ts == ""
        assert candidate.thread_anchor is None


def test_question_thread_anchor_is_post_ts() -> None:
    question = Question(channel_id="C1", text="Ping?", posted_at="100.000")
    assert question.thread_anchor == "100.000"


class TestPollingPolicy:
    def test_defaults(self) -> None:
        policy = PollingPolicy()

        assert policy.initial_backoff == 0.5
        assert policy.backoff_step == 0.25
        assert policy.max_backoff == 4.0
        assert policy.error_penalty == 2.0
        assert policy.thread_limit == 50
        assert policy.history_limit == 10

    def test_next_backoff_grows_then_caps(self) -> None:
        policy = PollingPolicy()

        assert policy.next_backoff(0.5) == 0.75
        assert policy.next_backoff(3.9) == 4.0
        assert policy.next_backoff(4.0) == 4.0
