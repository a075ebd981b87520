"""Entry point behind the ask / clarify / acknowledge tools."""

from __future__ import annotations

import structlog

from ask_on_slack.core.domain.errors import AskOnSlackError, InvalidArgumentError
from ask_on_slack.core.domain.roles import RoleProfile, ToolKind
from ask_on_slack.core.interfaces.human import HumanProtocol


def require_text(value: object, parameter: str) -> str:
    """Return the trimmed text or raise ``InvalidArgumentError``."""
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise InvalidArgumentError(
            f"Missing required parameter: {parameter}", parameter=parameter
        )
    return text


class AskOrchestrator:
    """Validate tool input and hand it to the configured human.

    Every call posts a visible message into the channel. Repeated calls with
    the same text post repeated messages; nothing is deduplicated here.
    """

    def __init__(self, human: HumanProtocol, role: RoleProfile) -> None:
        self._human = human
        self._role = role
        self._logger = structlog.get_logger()

    @property
    def role(self) -> RoleProfile:
        return self._role

    async def ask(self, question: object) -> str:
        return await self._ask(ToolKind.ASK, question)

    async def clarify(self, question: object) -> str:
        return await self._ask(ToolKind.CLARIFY, question)

    async def acknowledge(self, acknowledgement: object) -> str:
        tool = self._role.tool_name(ToolKind.ACKNOWLEDGE)
        try:
            text = require_text(acknowledgement, "acknowledgement")
            await self._human.notify(text)
        except AskOnSlackError as exc:
            self._logger.error("tool.failed", tool=tool, code=exc.code, error=exc.message)
            raise
        self._logger.info("tool.acknowledged", tool=tool)
        return self._role.acknowledgement_receipt

    async def _ask(self, kind: ToolKind, question: object) -> str:
        tool = self._role.tool_name(kind)
        try:
            text = require_text(question, "question")
            answer = await self._human.ask(text)
        except AskOnSlackError as exc:
            self._logger.error("tool.failed", tool=tool, code=exc.code, error=exc.message)
            raise
        self._logger.info("tool.answered", tool=tool)
        return answer
