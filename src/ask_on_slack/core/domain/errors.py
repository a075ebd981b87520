"""Domain-specific exception types for ask-on-slack."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class AskOnSlackError(Exception):
    """Base exception for ask-on-slack domain errors."""

    message: str
    code: str = "ask_on_slack_error"
    details: Dict[str, Any] | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.details is None:
            self.details = {}


class NotConfiguredError(AskOnSlackError):
    """Raised when no Slack credentials are available."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="not_configured", details=details)


class InvalidArgumentError(AskOnSlackError):
    """Raised when a tool call is missing a required text parameter."""

    def __init__(
        self,
        message: str,
        *,
        parameter: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        details = dict(details or {})
        if parameter:
            details.setdefault("parameter", parameter)
        self.parameter = parameter
        super().__init__(message=message, code="invalid_argument", details=details)


class GatewayError(AskOnSlackError):
    """Raised when the Slack Web API answers with a non-success response.

    ``provider_error`` is Slack's machine-readable error code (e.g.
    ``channel_not_found``). ``rate_limited`` is set when the request was
    abandoned after exhausting the rate-limit retry budget.
    """

    def __init__(
        self,
        message: str,
        *,
        provider_error: str | None = None,
        rate_limited: bool = False,
        details: Dict[str, Any] | None = None,
    ) -> None:
        details = dict(details or {})
        if provider_error:
            details.setdefault("provider_error", provider_error)
        self.provider_error = provider_error
        self.rate_limited = rate_limited
        super().__init__(message=message, code="gateway_error", details=details)


class RateLimitedError(AskOnSlackError):
    """Raised for a single HTTP 429 answer; carries the advertised delay."""

    def __init__(
        self,
        message: str,
        *,
        retry_after: float,
        details: Dict[str, Any] | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(message=message, code="rate_limited", details=details)


class ReplyTimeoutError(AskOnSlackError):
    """Raised when no qualifying reply arrived before the deadline."""

    def __init__(
        self,
        message: str = "Timed out waiting for a thread reply.",
        *,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="timeout", details=details)


class ProtocolError(AskOnSlackError):
    """Raised for malformed or out-of-sequence session framing."""

    def __init__(
        self,
        message: str = "Bad Request: No valid session ID provided",
        *,
        rpc_code: int = -32000,
        status_code: int = 400,
        details: Dict[str, Any] | None = None,
    ) -> None:
        self.rpc_code = rpc_code
        self.status_code = status_code
        super().__init__(message=message, code="protocol_error", details=details)


class ConfigError(AskOnSlackError):
    """Raised for invalid start-up configuration."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="config_error", details=details)


def tool_error_text(error: Exception) -> str:
    """Render an exception as the text of a failed tool call."""
    message = error.message if isinstance(error, AskOnSlackError) else str(error)
    return f"Error: {message or type(error).__name__}"
