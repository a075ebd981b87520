"""Role profiles: the tool titles and descriptions shown to the agent.

A role picks the noun ("boss", "expert", "human") used in tool names,
descriptions and in the text wrapped around a reply.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ToolKind(str, Enum):
    """The three tools every role exposes."""

    ASK = "ask"
    CLARIFY = "clarify"
    ACKNOWLEDGE = "acknowledge"


@dataclass(frozen=True)
class ToolText:
    """Human-readable metadata for one tool."""

    title: str
    description: str
    input_description: str


@dataclass(frozen=True)
class RoleProfile:
    """A named bundle of ask/clarify/acknowledge tool metadata."""

    name: str
    ask: ToolText
    clarify: ToolText
    acknowledge: ToolText

    def tool_name(self, kind: ToolKind) -> str:
        if kind is ToolKind.ASK:
            return f"ask_the_{self.name}_on_slack"
        if kind is ToolKind.CLARIFY:
            return f"clarify_with_the_{self.name}_on_slack"
        return f"acknowledge_the_{self.name}_on_slack"

    def tool_text(self, kind: ToolKind) -> ToolText:
        return {
            ToolKind.ASK: self.ask,
            ToolKind.CLARIFY: self.clarify,
            ToolKind.ACKNOWLEDGE: self.acknowledge,
        }[kind]

    def wrap_reply(self, reply: str) -> str:
        """Wrap a human reply so the agent knows how to continue."""
        return (
            f"The {self.name} replied (use the tool to clarify back with "
            f"the {self.name}): {reply}"
        )

    @property
    def acknowledgement_receipt(self) -> str:
        return f"(the {self.name} heard you)"


def _acknowledge_description(noun: str) -> str:
    return (
        f"If you called the ask_the_{noun}_on_slack tool and the {noun} replied, "
        "then you MUST use this tool to acknowledge the reply with a simple "
        'message like "Thanks", "Got it", "Understood", "Ok", "Will do", etc. '
        f"Do not use this tool if you have not called ask_the_{noun}_on_slack before"
    )


def _clarify_description(noun: str, need: str) -> str:
    return (
        f"If you called the ask_the_{noun}_on_slack tool but the {noun} did not "
        "understand your question or asked anything back, use MUST this tool to "
        "re-ask in a clearer way. Do not use this tool if you have not called "
        f"ask_the_{noun}_on_slack before. Only use this tool when you really need "
        f"{need} input."
    )


BOSS_ROLE = RoleProfile(
    name="boss",
    ask=ToolText(
        title="Ask on Slack",
        description=(
            "Ask a human boss for information that only they would know. Use for "
            "preferences, project-specific context, local env details, non-public "
            "info, doubts. If the user replies with another question, call this "
            "tool again. Only use this tool when you really need human input."
        ),
        input_description=(
            "The question to ask the human boss. Be specific and provide context."
        ),
    ),
    clarify=ToolText(
        title="Clarify with the boss on Slack",
        description=_clarify_description("boss", "human"),
        input_description=(
            "The clarification to ask the human boss. Be specific and provide context."
        ),
    ),
    acknowledge=ToolText(
        title="Acknowledge the boss on Slack",
        description=_acknowledge_description("boss"),
        input_description=(
            "The text to tell the boss to acknowledge receiving their reply. "
            "Keep it short."
        ),
    ),
)

EXPERT_ROLE = RoleProfile(
    name="expert",
    ask=ToolText(
        title="Ask Expert on Slack",
        description=(
            "Ask a human expert for technical details, verification, or specialized "
            "knowledge that requires expert confirmation. Use when you need to "
            "confirm expert details, validate technical information, or get expert "
            "opinion on complex matters. If the expert replies with another "
            "question, call this tool again. Only use this tool when you really "
            "need expert input."
        ),
        input_description=(
            "The question to ask the human expert. Be specific and provide "
            "technical context."
        ),
    ),
    clarify=ToolText(
        title="Clarify with Expert on Slack",
        description=_clarify_description("expert", "expert"),
        input_description=(
            "The clarification to ask the human expert. Be specific and provide "
            "technical context."
        ),
    ),
    acknowledge=ToolText(
        title="Acknowledge Expert on Slack",
        description=_acknowledge_description("expert"),
        input_description=(
            "The text to tell the expert to acknowledge receiving their reply. "
            "Keep it short."
        ),
    ),
)

GENERIC_ROLE = RoleProfile(
    name="human",
    ask=ToolText(
        title="Ask Human on Slack",
        description=(
            "Ask a human for information, clarification, or assistance that "
            "requires human knowledge or input. Use when you need human "
            "perspective, local information, or confirmation that only a human "
            "can provide. If the human replies with another question, call this "
            "tool again. Only use this tool when you really need human input."
        ),
        input_description="The question to ask the human. Be specific and provide context.",
    ),
    clarify=ToolText(
        title="Clarify with Human on Slack",
        description=_clarify_description("human", "human"),
        input_description=(
            "The clarification to ask the human. Be specific and provide context."
        ),
    ),
    acknowledge=ToolText(
        title="Acknowledge Human on Slack",
        description=_acknowledge_description("human"),
        input_description=(
            "The text to tell the human to acknowledge receiving their reply. "
            "Keep it short."
        ),
    ),
)

_ROLES: dict[str, RoleProfile] = {
    BOSS_ROLE.name: BOSS_ROLE,
    EXPERT_ROLE.name: EXPERT_ROLE,
}


def get_role(name: str | None) -> RoleProfile:
    """Resolve a role by name; unknown names fall back to the generic role."""
    return _ROLES.get((name or "").strip().lower(), GENERIC_ROLE)


def available_roles() -> list[str]:
    """Names of the built-in roles."""
    return list(_ROLES)
