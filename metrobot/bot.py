"""
Poll-and-decide cycle.

Each check fetches the alert feed, caches the resulting status for the API,
decides whether to notify, notifies, and records the notification. All
collaborators live on a BotContext built once at startup and passed in.

Usage:
    ctx = BotContext.from_config(BotConfig.from_env())
    run_forever(ctx)
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from . import hsl_feed
from .config import STATUS_CACHE_KEY, BotConfig
from .decision import Decision, decide
from .notifiers import dispatcher
from .notifiers.messages import render_message
from .state_store import BotStateStore, KeyValueStore, build_store

logger = logging.getLogger(__name__)


def _utc_now():
    return datetime.now(timezone.utc)


@dataclass
class BotContext:
    """Everything a check needs, configured once and reused across checks."""
    config: BotConfig
    store: KeyValueStore
    state: BotStateStore
    fetch_feed: Callable[[], Any]
    create_response: Callable[[Any], hsl_feed.StatusSnapshot] = hsl_feed.create_response
    send_notification: Callable[[str], dict] = dispatcher.send_notification
    clock: Callable[[], datetime] = _utc_now

    @classmethod
    def from_config(cls, config: BotConfig, store: Optional[KeyValueStore] = None) -> "BotContext":
        if store is None:
            store = build_store(config)

        def fetch():
            return hsl_feed.fetch_feed(url=config.feed_url, api_key=config.digitransit_api_key)

        return cls(
            config=config,
            store=store,
            state=BotStateStore(store, ttl_seconds=config.state_ttl),
            fetch_feed=fetch,
        )


@dataclass
class CycleResult:
    """Outcome of one check."""
    started_at: datetime
    decision: Optional[Decision] = None
    broken: Optional[bool] = None
    message: Optional[str] = None
    notified: bool = False
    simulated: bool = False
    state_saved: bool = False
    error: Optional[str] = None
    details: dict = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            'started_at': self.started_at.isoformat(),
            'decision': self.decision.value if self.decision else None,
            'broken': self.broken,
            'message': self.message,
            'notified': self.notified,
            'simulated': self.simulated,
            'state_saved': self.state_saved,
            'error': self.error,
        }


def _cache_status(ctx, snapshot, now):
    payload = dict(snapshot.to_dict(), checked_at=now.isoformat())
    if ctx.store.set_with_expiry(STATUS_CACHE_KEY, json.dumps(payload), ctx.config.status_cache_ttl):
        logger.debug("Status cache updated")
    else:
        logger.warning("Failed to update status cache")


def read_cached_status(store: KeyValueStore) -> Optional[dict]:
    """Return the last cached status, or None if missing, expired or corrupt."""
    raw = store.get(STATUS_CACHE_KEY)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Corrupt status cache: {e}")
        return None


def _timezone(name):
    try:
        return ZoneInfo(name)
    except Exception as e:
        logger.warning(f"Unknown timezone {name!r}, using UTC: {e}")
        return timezone.utc


def _notify(ctx, result, broken, now):
    if not ctx.config.notifications_enabled:
        logger.info(f"Notifications disabled, would have posted: {result.message!r} (broken={broken})")
        result.simulated = True
    else:
        logger.info(f"Notifications enabled, posting: {result.message!r}")
        send_result = ctx.send_notification(result.message)
        result.details['send'] = send_result
        if not send_result.get('success'):
            # State stays as is so the same notification is owed next check
            result.error = f"Notification failed: {send_result.get('error')}"
            logger.error(result.error)
            return
        result.notified = True
        logger.info("Notification sent")

    result.state_saved = ctx.state.save(broken, now)


def run_cycle(ctx: BotContext) -> CycleResult:
    """
    Run one check. Never raises for feed, store or notification errors.

    Returns:
        CycleResult
    """
    now = ctx.clock()
    result = CycleResult(started_at=now)
    logger.info("Checking whether the metro is broken")

    try:
        feed = ctx.fetch_feed()
        snapshot = ctx.create_response(feed)
    except Exception as e:
        result.error = f"Error fetching feed: {type(e).__name__}: {e}"
        logger.error(result.error)
        return result

    result.broken = snapshot.broken
    _cache_status(ctx, snapshot, now)

    prior = ctx.state.load()
    result.decision = decide(
        current_broken=snapshot.broken,
        prior_broken=prior.last_broken,
        last_notification_time=prior.last_notification_time,
        min_renotify_interval=ctx.config.min_renotify_interval,
        now=now,
    )
    logger.info(f"Decision: {result.decision.value} (broken={snapshot.broken}, previously_broken={prior.last_broken})")

    if not result.decision.notifies:
        return result

    result.message = render_message(result.decision, snapshot, now=now, tz=_timezone(ctx.config.timezone))
    _notify(ctx, result, snapshot.broken, now)
    return result


def run_forever(ctx: BotContext, interval: Optional[float] = None, max_cycles: Optional[int] = None,
                sleep: Callable[[float], None] = time.sleep) -> dict:
    """
    Run a check immediately and then every interval seconds.

    A cycle that raises unexpectedly is logged and the loop keeps going.

    Args:
        ctx: Bot context
        interval: Seconds between checks (defaults to config.check_interval)
        max_cycles: Stop after this many checks (None = run until interrupted)
        sleep: Sleep function

    Returns:
        dict: {'checks': int, 'successful': int, 'failed': int}
    """
    if interval is None:
        interval = ctx.config.check_interval

    stats = {'checks': 0, 'successful': 0, 'failed': 0}
    logger.info(f"Bot starting, checking every {interval} seconds")

    try:
        while max_cycles is None or stats['checks'] < max_cycles:
            stats['checks'] += 1
            try:
                result = run_cycle(ctx)
                ok = result.success
            except Exception:
                logger.exception("Unexpected error during check")
                ok = False

            stats['successful' if ok else 'failed'] += 1

            if max_cycles is not None and stats['checks'] >= max_cycles:
                break
            sleep(interval)
    except KeyboardInterrupt:
        logger.info("Stopped by user")

    logger.info(f"Checks: {stats['checks']}, successful: {stats['successful']}, failed: {stats['failed']}")
    return stats
