"""ask-on-slack CLI entry point."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from ask_on_slack.api.logging_config import configure_logging
from ask_on_slack.core.domain.errors import ConfigError
from ask_on_slack.core.domain.roles import ToolKind, available_roles, get_role
from ask_on_slack.core.domain.settings import Settings

app = typer.Typer(
    name="ask-on-slack",
    help="MCP server to ask humans on Slack from AI agents using HTTP polling",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# stdout belongs to the MCP stdio stream.
console = Console(stderr=True)


@app.callback()
def main(
    ctx: typer.Context,
    slack_bot_token: Optional[str] = typer.Option(
        None, "--slack-bot-token", envvar="ASK_SLACK_BOT", help="Bot User OAuth Token (xoxb-...)"
    ),
    slack_app_token: Optional[str] = typer.Option(
        None, "--slack-app-token", envvar="ASK_SLACK_APP", help="App-Level Token (xapp-...)"
    ),
    slack_channel_id: Optional[str] = typer.Option(
        None, "--slack-channel-id", envvar="ASK_SLACK_CHANNEL", help="Channel ID where the bot will operate"
    ),
    slack_user_id: Optional[str] = typer.Option(
        None, "--slack-user-id", envvar="ASK_SLACK_USER", help="User ID whose mention counts as a reply"
    ),
    role: str = typer.Option(
        "boss", "--role", "-r", envvar="ASK_SLACK_ROLE", help="Role for the human (boss, expert, or custom name)"
    ),
    log_level: str = typer.Option("INFO", "--log-level", envvar="LOG_LEVEL", help="Logging level"),
    log_file: Optional[str] = typer.Option(
        None, "--log-file", envvar="LOG_FILE", help="Write logs to this file instead of stderr"
    ),
    timeout: float = typer.Option(
        300.0, "--timeout", envvar="ASK_SLACK_TIMEOUT", help="Seconds to wait for a reply"
    ),
    rate_limit_retries: int = typer.Option(
        3,
        "--rate-limit-retries",
        envvar="ASK_SLACK_RATE_LIMIT_RETRIES",
        help="Consecutive HTTP 429 retries before a Slack call fails",
    ),
):
    """Ask on Slack MCP server."""
    ctx.obj = {
        "slack_bot_token": slack_bot_token,
        "slack_app_token": slack_app_token,
        "slack_channel_id": slack_channel_id,
        "slack_user_id": slack_user_id,
        "role": role,
        "log_level": log_level,
        "log_file": log_file,
        "reply_timeout": timeout,
        "max_rate_limit_retries": rate_limit_retries,
    }


def build_settings(options: dict[str, Any]) -> Settings:
    """Validate CLI/environment options into ``Settings``.

    Raises:
        ConfigError: An option has an invalid value.
    """
    try:
        return Settings(**options)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from exc


def _settings_or_exit(ctx: typer.Context, **overrides: Any) -> Settings:
    options = dict(ctx.obj or {})
    options.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return build_settings(options)
    except ConfigError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc.message}")
        raise typer.Exit(code=1) from exc


def _run(settings: Settings, target: str) -> None:
    try:
        with configure_logging(settings.log_level, settings.log_file):
            logger = structlog.get_logger()
            logger.info("server.starting", transport=target, role=get_role(settings.role).name)
            try:
                if target == "stdio":
                    from ask_on_slack.api.stdio import run_stdio

                    asyncio.run(run_stdio(settings))
                else:
                    from ask_on_slack.api.server import run_http

                    run_http(settings)
            except KeyboardInterrupt:
                logger.info("server.interrupted")
            except Exception as exc:
                logger.exception("server.failed", error=str(exc))
                raise typer.Exit(code=1) from exc
    except ConfigError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc.message}")
        raise typer.Exit(code=1) from exc


@app.command()
def stdio(ctx: typer.Context) -> None:
    """Run the MCP server over stdio transport."""
    _run(_settings_or_exit(ctx), "stdio")


@app.command()
def serve(
    ctx: typer.Context,
    port: Optional[int] = typer.Option(
        None, "--port", envvar="PORT", help="Port to listen on (default: 3000)"
    ),
    host: Optional[str] = typer.Option(
        None, "--host", envvar="HOST", help="Interface to bind (default: 0.0.0.0)"
    ),
    json_response: bool = typer.Option(
        False, "--json-response", help="Answer POST /mcp with JSON instead of SSE"
    ),
) -> None:
    """Run the MCP server over HTTP transport."""
    settings = _settings_or_exit(ctx, port=port, host=host, json_response=json_response)
    _run(settings, "http")


@app.command()
def roles() -> None:
    """List the built-in roles and the tools each one exposes."""
    table = Table(title="Roles")
    table.add_column("Role", style="cyan")
    table.add_column("Tools", style="white")
    for name in [*available_roles(), "<other>"]:
        role = get_role(name)
        tools = "\n".join(role.tool_name(kind) for kind in ToolKind)
        table.add_row(name if name != "<other>" else f"<other> -> {role.name}", tools)
    Console().print(table)


@app.command()
def version() -> None:
    """Show the version."""
    from ask_on_slack import __version__

    Console().print(f"[bold blue]Version:[/bold blue] [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
