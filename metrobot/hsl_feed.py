"""
HSL service-alert feed.

Fetches active alerts from the Digitransit routing API and reduces them to
a StatusSnapshot: whether the metro is broken, and why.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from .config import FEED_URL, HTTP_TIMEOUT, METRO_ROUTE_MODE, PREFERRED_LANGUAGE

logger = logging.getLogger(__name__)

ALERTS_QUERY = """
{
  alerts(feeds: ["HSL"]) {
    id
    effectiveStartDate
    effectiveEndDate
    alertHeaderTextTranslations { text language }
    alertDescriptionTextTranslations { text language }
    route { mode shortName }
  }
}
"""


class FeedError(Exception):
    """Raised when the alert feed cannot be fetched or decoded."""


@dataclass
class StatusSnapshot:
    """
    Metro status at one point in time.

    reasons is ordered; each reason is a list of translations
    ({'language': 'fi', 'text': '...'}), preferred language first.
    """
    broken: bool
    reasons: List[list] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {'broken': self.broken, 'reasons': self.reasons}


def fetch_feed(url: Optional[str] = None, api_key: Optional[str] = None, timeout: float = HTTP_TIMEOUT) -> dict:
    """
    Fetch current service alerts.

    Args:
        url: GraphQL endpoint (defaults to the HSL routing API)
        api_key: Digitransit subscription key (optional)
        timeout: Request timeout in seconds

    Returns:
        dict: Decoded GraphQL response

    Raises:
        FeedError: On network, HTTP or decoding errors
    """
    headers = {'Content-Type': 'application/json'}
    if api_key:
        headers['digitransit-subscription-key'] = api_key

    try:
        response = requests.post(url or FEED_URL, json={'query': ALERTS_QUERY}, headers=headers, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except requests.RequestException as e:
        raise FeedError(f"Failed to fetch alert feed: {e}") from e
    except ValueError as e:
        raise FeedError(f"Alert feed is not valid JSON: {e}") from e

    if not isinstance(data, dict) or 'data' not in data:
        errors = data.get('errors') if isinstance(data, dict) else None
        raise FeedError(f"Unexpected alert feed response: {errors or data!r}")

    return data


def _is_active(alert, now):
    start = alert.get('effectiveStartDate')
    end = alert.get('effectiveEndDate')
    if start is not None and now < start:
        return False
    if end is not None and now > end:
        return False
    return True


def _is_metro_alert(alert):
    route = alert.get('route') or {}
    return route.get('mode') == METRO_ROUTE_MODE


def _translations(alert):
    translations = alert.get('alertHeaderTextTranslations') or alert.get('alertDescriptionTextTranslations') or []
    translations = [t for t in translations if t.get('text')]
    # Stable sort keeps the feed's order among the other languages
    return sorted(translations, key=lambda t: t.get('language') != PREFERRED_LANGUAGE)


def create_response(feed: dict, now: Optional[float] = None) -> StatusSnapshot:
    """
    Build a StatusSnapshot from a fetched feed.

    The metro is broken when any active alert concerns a subway route.
    Alerts without text still count as broken, they just add no reason.
    """
    if now is None:
        now = time.time()

    alerts = ((feed or {}).get('data') or {}).get('alerts') or []
    metro_alerts = [a for a in alerts if _is_metro_alert(a) and _is_active(a, now)]

    reasons = []
    seen_ids = set()
    for alert in metro_alerts:
        # The same alert is repeated once per affected route
        alert_id = alert.get('id')
        if alert_id is not None:
            if alert_id in seen_ids:
                continue
            seen_ids.add(alert_id)
        translations = _translations(alert)
        if translations:
            reasons.append([{'language': t.get('language'), 'text': t['text']} for t in translations])

    return StatusSnapshot(broken=bool(metro_alerts), reasons=reasons)
