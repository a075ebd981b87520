"""Ask a human on Slack from an AI agent over MCP."""

__version__ = "0.1.0"
