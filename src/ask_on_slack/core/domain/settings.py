"""Runtime settings.

Resolved by the CLI from flags and environment variables, then validated
here before anything else is constructed.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class Settings(BaseModel):
    """Validated configuration for one server process."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    slack_bot_token: Optional[str] = Field(None, description="Bot User OAuth Token (xoxb-...)")
    slack_app_token: Optional[str] = Field(None, description="App-Level Token (xapp-...)")
    slack_channel_id: Optional[str] = Field(None, description="Channel the questions go to")
    slack_user_id: Optional[str] = Field(
        None, description="User ID whose mention counts as a reply"
    )
    role: str = Field("boss", description="Role noun used in tool names")
    log_level: str = "INFO"
    log_file: Optional[str] = None
    reply_timeout: float = Field(300.0, gt=0, description="Seconds to wait for a reply")
    max_rate_limit_retries: int = Field(3, ge=0)
    host: str = "0.0.0.0"
    port: int = Field(3000, gt=0, lt=65536)
    json_response: bool = False

    @field_validator(
        "slack_bot_token",
        "slack_app_token",
        "slack_channel_id",
        "slack_user_id",
        "log_file",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Optional[str]) -> str:
        level = (value or "INFO").strip().upper()
        if level == "WARN":
            level = "WARNING"
        if level not in _LOG_LEVELS:
            raise ValueError(
                f"log level must be one of {', '.join(sorted(_LOG_LEVELS))}, got {value!r}"
            )
        return level

    @property
    def has_slack_credentials(self) -> bool:
        """True when the minimum credential pair is present."""
        return bool(self.slack_bot_token and self.slack_app_token)
