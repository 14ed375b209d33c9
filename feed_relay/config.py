"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FeedConfig: Feed location, polling interval and HTTP settings
- SlackConfig: Target channel, credentials and message appearance
- RenderConfig: Markup conversion settings for entry content
- EntryConfig: Entry field normalization
- DedupConfig: Deduplication policy and state database location
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml

from .errors import ConfigError


@dataclass
class FeedConfig:
    """Configuration for polling the feed.

    Attributes:
        url: Atom feed URL
        interval_seconds: Sleep between poll cycles
        retry_seconds: Sleep before retrying after a failed fetch
        timeout_seconds: HTTP request timeout
        retries: Number of retry attempts for failed requests
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    url: str | None = None
    interval_seconds: float = 300.0
    retry_seconds: float = 1.0
    timeout_seconds: float = 20.0
    retries: int = 2
    trust_env: bool = True
    user_agent: str = "feed-relay/0.1 (+https://github.com/)"


@dataclass
class SlackConfig:
    """Configuration for posting to Slack.

    Attributes:
        bot_token: Inline bot token (overrides the environment variable)
        bot_token_env: Environment variable name containing the bot token
        channel_name: Channel to post in, resolved to an id at startup
        channel_id: Channel id; skips name resolution when set
        api_base_url: Slack Web API base URL
        mention: Message text placed above the attachment
        color: Attachment side bar color
        footer: Attachment footer label
        post_delay_seconds: Pause after each post to respect rate limits
        timeout_seconds: HTTP request timeout
    """

    bot_token: str | None = None
    bot_token_env: str = "SLACK_BOT_TOKEN"
    channel_name: str | None = None
    channel_id: str | None = None
    api_base_url: str = "https://slack.com/api"
    mention: str = "<!channel>"
    color: str = "#EEB211"
    footer: str = "via Canvas"
    post_delay_seconds: float = 1.0
    timeout_seconds: float = 20.0


@dataclass
class RenderConfig:
    """Configuration for converting entry HTML to Slack markup.

    Attributes:
        base_url: Origin used to resolve links that start with "/"
        table_placeholder: Text shown instead of tables
    """

    base_url: str = "https://gatech.instructure.com"
    table_placeholder: str = "*_See table on Canvas_*"


@dataclass
class EntryConfig:
    """Configuration for entry field normalization.

    Attributes:
        author_format: "first_last", "full", or "auto" (first_last under the
            ledger policy, full under the cursor policy)
    """

    author_format: str = "auto"


@dataclass
class DedupConfig:
    """Configuration for deduplication.

    Attributes:
        policy: "ledger" (remember delivered entry ids) or "cursor"
            (forward entries published after the previous cycle began)
        state_path: SQLite database holding the dedup state
    """

    policy: str = "ledger"
    state_path: str = "cache.db"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
        directory: Directory for the log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "feed-relay.jsonl"
    directory: str | None = "logs"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    feed: FeedConfig = field(default_factory=FeedConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    entry: EntryConfig = field(default_factory=EntryConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    "feed": FeedConfig,
    "slack": SlackConfig,
    "render": RenderConfig,
    "entry": EntryConfig,
    "dedup": DedupConfig,
    "logging": LoggingConfig,
}

_POLICIES = ("ledger", "cursor")
_AUTHOR_FORMATS = ("auto", "first_last", "full")
_LOG_FORMATS = ("jsonl", "plain")


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    sections = {}
    for key, cls in _SECTIONS.items():
        try:
            sections[key] = cls(**data[key])
        except TypeError as exc:
            raise ConfigError(f"Invalid '{key}' section: {exc}") from exc
    return AppConfig(**sections)


def validate_config(cfg: AppConfig) -> None:
    """Check the settings a poll loop cannot start without.

    Raises:
        ConfigError: On a missing feed URL, missing channel or an
            unsupported enum value
    """
    if not cfg.feed.url:
        raise ConfigError("feed.url is required (config file, --feed-url or FEED_URL)")
    if not cfg.slack.channel_id and not cfg.slack.channel_name:
        raise ConfigError("slack.channel_name or slack.channel_id is required")
    if cfg.dedup.policy not in _POLICIES:
        raise ConfigError(f"dedup.policy must be one of {', '.join(_POLICIES)}")
    if cfg.entry.author_format not in _AUTHOR_FORMATS:
        raise ConfigError(f"entry.author_format must be one of {', '.join(_AUTHOR_FORMATS)}")
    if cfg.logging.format not in _LOG_FORMATS:
        raise ConfigError(f"logging.format must be one of {', '.join(_LOG_FORMATS)}")


def get_bot_token(cfg: SlackConfig) -> str | None:
    """Get the Slack bot token from inline config or environment variable."""
    if cfg.bot_token:
        return cfg.bot_token
    return os.getenv(cfg.bot_token_env)


def resolve_author_format(cfg: AppConfig) -> str:
    """Resolve "auto" to the author format matching the dedup policy."""
    if cfg.entry.author_format != "auto":
        return cfg.entry.author_format
    return "full" if cfg.dedup.policy == "cursor" else "first_last"
