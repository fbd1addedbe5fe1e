"""
Notification decision engine.

Turns the current "is the metro broken" reading and the persisted state of the
last notification into one of three decisions:

    NOTIFY_BROKEN:    announce the outage (always, as soon as it is seen)
    NOTIFY_RECOVERED: announce recovery (only after a minimum dwell time)
    SILENT:           do nothing

Usage:
    decision = decide(
        current_broken=snapshot.broken,
        prior_broken=state.last_broken,
        last_notification_time=state.last_notification_time,
        min_renotify_interval=3600,
    )
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union


class Decision(Enum):
    """What the poll cycle should do after a check."""
    NOTIFY_BROKEN = "notify_broken"
    NOTIFY_RECOVERED = "notify_recovered"
    SILENT = "silent"

    @property
    def notifies(self) -> bool:
        return self is not Decision.SILENT


def _aware(moment: datetime) -> datetime:
    # Naive datetimes are treated as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _as_timedelta(interval: Union[int, float, timedelta]) -> timedelta:
    if isinstance(interval, timedelta):
        return interval
    return timedelta(seconds=interval)


def decide(
    current_broken: bool,
    prior_broken: Optional[bool],
    last_notification_time: Optional[datetime],
    min_renotify_interval: Union[int, float, timedelta],
    now: Optional[datetime] = None,
) -> Decision:
    """
    Decide whether to notify about the current state.

    Going broken is announced unconditionally, including on a cold start with
    no prior record. Recovery is announced only when the prior state is known
    to be broken, a previous notification time is on record, and more than
    min_renotify_interval has passed since it. Sustained broken stays silent.

    Args:
        current_broken: Whether the metro is broken right now
        prior_broken: Broken flag at the last notification, or None if unknown
        last_notification_time: Time of the last notification, or None
        min_renotify_interval: Seconds (or timedelta) to wait before announcing recovery
        now: Current time (defaults to UTC now)

    Returns:
        Decision
    """
    if current_broken and prior_broken is not True:
        return Decision.NOTIFY_BROKEN

    if prior_broken is True and not current_broken and last_notification_time is not None:
        if now is None:
            now = datetime.now(timezone.utc)
        if _aware(now) - _aware(last_notification_time) > _as_timedelta(min_renotify_interval):
            return Decision.NOTIFY_RECOVERED

    return Decision.SILENT
