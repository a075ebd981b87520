"""Transports, MCP tool surface and CLI."""
