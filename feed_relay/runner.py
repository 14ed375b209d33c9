"""
Poll loop orchestration for feed-relay.

Each poll cycle runs to completion before the next one starts:
1. Fetch the feed document
2. Parse it and select new entries through the dedup policy
3. Deliver new entries oldest first, one at a time, pausing after each
4. Sleep until the next cycle

Nothing that happens inside a cycle stops the loop: fetch failures, parse
failures and delivery failures are logged and the loop carries on.
Startup (state database, channel lookup) is where fatal errors belong.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
import logging
import time
from typing import Callable

from .config import AppConfig, get_bot_token, resolve_author_format
from .core.builder import BuildOptions
from .core.ledger import DedupPolicy, create_policy
from .errors import ConfigError
from .fetch.fetcher import FetchResult, fetch_feed
from .logging_utils import log_event
from .output.slack import Deliverer, SlackClient, SlackDeliverer
from .pipeline import extract_new_entries, parse_feed
from .store import Database


Fetch = Callable[[], FetchResult]
Sleep = Callable[[float], None]


@dataclass
class CycleResult:
    """Counters for one poll cycle.

    Attributes:
        fetched: Whether the feed document was retrieved
        new: Number of entries selected as new
        delivered: Number of entries posted successfully
        failed: Number of entries whose delivery failed
    """
    fetched: bool = False
    new: int = 0
    delivered: int = 0
    failed: int = 0


def build_options(cfg: AppConfig) -> BuildOptions:
    return BuildOptions(
        author_format=resolve_author_format(cfg),
        base_url=cfg.render.base_url,
        table_placeholder=cfg.render.table_placeholder,
    )


def open_policy(cfg: AppConfig, logger: logging.Logger) -> DedupPolicy:
    """Initialize the state database and build the configured policy.

    Raises:
        LedgerError: If the state database cannot be created
        ConfigError: If the policy name is unsupported
    """
    db = Database(Path(cfg.dedup.state_path))
    db.initialize()
    return create_policy(cfg.dedup.policy, db, logger)


def open_slack(cfg: AppConfig) -> SlackClient:
    token = get_bot_token(cfg.slack)
    if not token:
        raise ConfigError(
            f"Slack bot token missing: set slack.bot_token or {cfg.slack.bot_token_env}"
        )
    return SlackClient(token, cfg.slack)


def build_fetch(cfg: AppConfig) -> Fetch:
    def _fetch() -> FetchResult:
        return fetch_feed(
            cfg.feed.url or "",
            timeout=cfg.feed.timeout_seconds,
            retries=cfg.feed.retries,
            user_agent=cfg.feed.user_agent,
            trust_env=cfg.feed.trust_env,
        )

    return _fetch


def run_cycle(
    fetch: Fetch,
    policy: DedupPolicy,
    deliverer: Deliverer,
    options: BuildOptions,
    logger: logging.Logger,
    post_delay_seconds: float = 0.0,
    sleep: Sleep = time.sleep,
    clock: Callable[[], datetime] | None = None,
) -> CycleResult:
    """Run one fetch, extract and deliver cycle.

    Args:
        fetch: Returns the feed document for this cycle
        policy: Dedup policy selecting new entries
        deliverer: Receives each new entry
        options: Entry build options
        logger: Logger for structured events
        post_delay_seconds: Pause after every delivery attempt
        sleep: Sleep function (replaced in tests)
        clock: Returns the current time (replaced in tests)

    Returns:
        CycleResult with counters for this cycle
    """
    cycle_started = (clock or _utc_now)()
    result = CycleResult()
    log_event(logger, "Cycle start", level=logging.DEBUG, event="cycle_start")

    fetched = fetch()
    if not fetched.ok:
        log_event(
            logger,
            "Feed fetch failed",
            level=logging.WARNING,
            event="fetch_failed",
            url=fetched.url,
            status_code=fetched.status_code,
            error=fetched.error,
        )
        return result
    result.fetched = True

    entries = extract_new_entries(fetched.text, policy, options, cycle_started, logger)
    result.new = len(entries)

    # Feeds list newest first; post oldest first.
    for entry in reversed(entries):
        try:
            deliverer.deliver(entry)
        except Exception as exc:  # noqa: BLE001
            result.failed += 1
            log_event(
                logger,
                f"Delivery failed: {entry.title.strip()}",
                level=logging.ERROR,
                event="delivery_failed",
                entry_id=entry.id,
                error=f"{type(exc).__name__}: {exc}",
            )
        else:
            result.delivered += 1
            log_event(
                logger,
                f"Delivered: {entry.title.strip()}",
                event="entry_delivered",
                entry_id=entry.id,
                url=entry.link,
            )
        if post_delay_seconds > 0:
            sleep(post_delay_seconds)

    log_event(
        logger,
        "Cycle complete",
        level=logging.DEBUG if result.new == 0 else logging.INFO,
        event="cycle_complete",
        new=result.new,
        delivered=result.delivered,
        failed=result.failed,
    )
    return result


def run_forever(
    cfg: AppConfig,
    fetch: Fetch,
    policy: DedupPolicy,
    deliverer: Deliverer,
    logger: logging.Logger,
    sleep: Sleep = time.sleep,
    max_cycles: int | None = None,
) -> int:
    """Poll the feed until interrupted or max_cycles cycles have run.

    Returns:
        The number of cycles that ran
    """
    options = build_options(cfg)
    cycles = 0
    while max_cycles is None or cycles < max_cycles:
        try:
            result = run_cycle(
                fetch,
                policy,
                deliverer,
                options,
                logger,
                post_delay_seconds=cfg.slack.post_delay_seconds,
                sleep=sleep,
            )
        except Exception as exc:  # noqa: BLE001
            result = CycleResult()
            log_event(
                logger,
                f"Cycle failed: {type(exc).__name__}: {exc}",
                level=logging.ERROR,
                event="cycle_failed",
                error=f"{type(exc).__name__}: {exc}",
                exc_info=True,
            )
        cycles += 1
        if max_cycles is not None and cycles >= max_cycles:
            break
        sleep(cfg.feed.interval_seconds if result.fetched else cfg.feed.retry_seconds)
    return cycles


def prime_ledger(
    fetch: Fetch,
    policy: DedupPolicy,
    options: BuildOptions,
    logger: logging.Logger,
) -> int | None:
    """Record every entry currently in the feed as delivered.

    Returns:
        Number of entries recorded, or None when the feed could not be
        fetched

    Raises:
        FeedParseError: If the feed document is malformed
    """
    fetched = fetch()
    if not fetched.ok:
        log_event(
            logger,
            "Feed fetch failed",
            level=logging.WARNING,
            event="fetch_failed",
            url=fetched.url,
            error=fetched.error,
        )
        return None
    parsed = parse_feed(fetched.text or "", options)
    policy.prime(parsed.entries, _utc_now())
    log_event(logger, "Ledger primed", event="ledger_primed", count=len(parsed.entries))
    return len(parsed.entries)


def start(cfg: AppConfig, logger: logging.Logger, once: bool = False) -> int:
    """Open the state database and Slack connection, then poll.

    Raises:
        LedgerError, ConfigError, DeliveryError: On startup failure
    """
    policy = open_policy(cfg, logger)
    with open_slack(cfg) as client:
        channel_id = cfg.slack.channel_id or client.resolve_channel(cfg.slack.channel_name or "")
        log_event(
            logger,
            f"Posting to channel {channel_id} using {policy.name} dedup",
            event="startup",
            channel_id=channel_id,
            policy=policy.name,
        )
        deliverer = SlackDeliverer(client, channel_id)
        return run_forever(
            cfg,
            build_fetch(cfg),
            policy,
            deliverer,
            logger,
            max_cycles=1 if once else None,
        )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
