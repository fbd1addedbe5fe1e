"""
Notification texts.

Shared by all channels so every network gets the same message.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from ..config import DEFAULT_TIMEZONE, HASHTAGS, PREFERRED_LANGUAGE, REASON_MAX_CHARS, SITE_URL
from ..decision import Decision

BROKEN_PREFIX = 'JUURI NYT – Metrossa häiriö:'
BROKEN_FALLBACK_REASON = 'Syy ei vielä tiedossa.'
RECOVERED_TEXT = 'JUURI NYT – Metro toimii jälleen!'


def truncate(message, limit):
    """Cut message to at most limit characters, ending with '...' when cut."""
    if len(message) <= limit:
        return message
    return message[:limit - 3].rstrip() + '...'


def _reason_text(reason):
    # A reason is a list of translations; prefer the configured language
    for translation in reason:
        if translation.get('language') == PREFERRED_LANGUAGE and translation.get('text'):
            return translation['text']
    for translation in reason:
        if translation.get('text'):
            return translation['text']
    return None


def render_broken_message(reasons):
    text = None
    if reasons:
        text = _reason_text(reasons[0])
    text = (text or BROKEN_FALLBACK_REASON)[:REASON_MAX_CHARS]
    return f'{BROKEN_PREFIX}\n{text}\nKatso: {SITE_URL} {HASHTAGS}'


def render_recovered_message(now=None, tz=None):
    if now is None:
        now = datetime.now(timezone.utc)
    if tz is None:
        tz = ZoneInfo(DEFAULT_TIMEZONE)
    local_time = now.astimezone(tz).strftime('%H:%M:%S')
    return f'{RECOVERED_TEXT} Katso: {SITE_URL} Kello on nyt {local_time}. {HASHTAGS}'


def render_message(decision, snapshot, now=None, tz=None):
    """
    Render the text for a notifying decision.

    Raises:
        ValueError: If decision is SILENT
    """
    if decision is Decision.NOTIFY_BROKEN:
        return render_broken_message(snapshot.reasons)
    if decision is Decision.NOTIFY_RECOVERED:
        return render_recovered_message(now, tz)
    raise ValueError(f'Nothing to render for {decision}')
