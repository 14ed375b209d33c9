"""
Command-line interface for feed-relay.

Uses Typer to provide commands for running the poll loop, priming the
dedup state on a fresh deployment, and previewing the markup conversion.
Supports loading .env files for the Slack bot token.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from .config import AppConfig, load_config, validate_config
from .core.markup import render_markup
from .errors import FeedRelayError
from .logging_utils import setup_logging
from .runner import build_fetch, build_options, open_policy, prime_ledger, start

try:
    from dotenv import load_dotenv
except Exception:  # noqa: BLE001
    load_dotenv = None

app = typer.Typer(add_completion=False)
console = Console()


def _load(
    config: Path | None,
    feed_url: str | None,
    channel: str | None,
    policy: str | None,
    state_path: Path | None,
    log_level: str | None,
    log_file: bool | None,
) -> AppConfig:
    # Load environment variables from .env if available
    if load_dotenv is not None:
        load_dotenv()

    cfg = load_config(str(config) if config else None)

    # Override with CLI options
    if feed_url:
        cfg.feed.url = feed_url
    if channel:
        cfg.slack.channel_name = channel
    if policy:
        cfg.dedup.policy = policy
    if state_path is not None:
        cfg.dedup.state_path = str(state_path)
    if log_level:
        cfg.logging.level = log_level
    if log_file is not None:
        cfg.logging.file = log_file
    return cfg


_CONFIG_OPTION = typer.Option(None, "--config", "-c", exists=True, readable=True)
_FEED_URL_OPTION = typer.Option(None, "--feed-url", envvar="FEED_URL", help="Atom feed URL.")
_CHANNEL_OPTION = typer.Option(
    None, "--channel", envvar="SLACK_CHANNEL", help="Slack channel name to post in."
)
_POLICY_OPTION = typer.Option(None, "--policy", help="Dedup policy: ledger or cursor.")
_STATE_OPTION = typer.Option(None, "--state-path", help="SQLite dedup state file.")
_LOG_LEVEL_OPTION = typer.Option(None, "--log-level", help="Logging level.")
_LOG_FILE_OPTION = typer.Option(
    None, "--log-file/--no-log-file", help="Enable or disable file logging."
)


@app.command()
def run(
    config: Path | None = _CONFIG_OPTION,
    feed_url: str | None = _FEED_URL_OPTION,
    channel: str | None = _CHANNEL_OPTION,
    policy: str | None = _POLICY_OPTION,
    state_path: Path | None = _STATE_OPTION,
    log_level: str | None = _LOG_LEVEL_OPTION,
    log_file: bool | None = _LOG_FILE_OPTION,
    once: bool = typer.Option(False, "--once", help="Run a single poll cycle and exit."),
):
    """Poll the feed and forward new entries to Slack.

    Exits with status 1 only when startup fails (configuration, state
    database or channel lookup); errors inside a poll cycle are logged
    and the loop continues.
    """
    cfg = _load(config, feed_url, channel, policy, state_path, log_level, log_file)
    logger = setup_logging(cfg.logging)
    try:
        validate_config(cfg)
        start(cfg, logger, once=once)
    except FeedRelayError as exc:
        console.print(f"[red]Startup failed:[/red] {exc}")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        console.print("Stopped.")


@app.command()
def prime(
    config: Path | None = _CONFIG_OPTION,
    feed_url: str | None = _FEED_URL_OPTION,
    policy: str | None = _POLICY_OPTION,
    state_path: Path | None = _STATE_OPTION,
    log_level: str | None = _LOG_LEVEL_OPTION,
):
    """Record every entry currently in the feed as already delivered.

    Run once before the first `run` so existing entries are not posted.
    """
    cfg = _load(config, feed_url, None, policy, state_path, log_level, None)
    logger = setup_logging(cfg.logging)
    if not cfg.feed.url:
        console.print("[red]feed.url is required[/red]")
        raise typer.Exit(code=1)
    try:
        dedup = open_policy(cfg, logger)
        count = prime_ledger(build_fetch(cfg), dedup, build_options(cfg), logger)
    except FeedRelayError as exc:
        console.print(f"[red]Prime failed:[/red] {exc}")
        raise typer.Exit(code=1)
    if count is None:
        console.print("[red]Could not fetch the feed[/red]")
        raise typer.Exit(code=1)
    console.print(f"Recorded {count} entries using {dedup.name} dedup")


@app.command()
def render(
    input: Path = typer.Argument(..., exists=True, readable=True, help="HTML fragment file."),
    config: Path | None = _CONFIG_OPTION,
):
    """Print the Slack markup for an HTML fragment."""
    cfg = load_config(str(config) if config else None)
    fragment = input.read_text(encoding="utf-8")
    typer.echo(
        render_markup(
            fragment,
            base_url=cfg.render.base_url,
            table_placeholder=cfg.render.table_placeholder,
        )
    )


if __name__ == "__main__":
    app()
