"""Slack Web API adapter."""

from ask_on_slack.infrastructure.slack.web_gateway import SlackWebGateway

__all__ = ["SlackWebGateway"]
