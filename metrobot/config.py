"""
Centralized configuration for the metro status bot.

Constants are grouped by category. Runtime settings that differ between
deployments are read from the environment by BotConfig.from_env().
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# =============================================================================
# FEED
# =============================================================================

# Digitransit routing API (GraphQL) for HSL
FEED_URL = "https://api.digitransit.fi/routing/v2/hsl/gtfs/v1"

# Route mode that counts as "the metro"
METRO_ROUTE_MODE = "SUBWAY"

# Preferred language for alert texts
PREFERRED_LANGUAGE = "fi"

# =============================================================================
# SCHEDULING
# =============================================================================

DEFAULT_CHECK_INTERVAL = 60   # seconds (local development)
CLOUD_CHECK_INTERVAL = 180    # seconds (Cloud Run - matches Cloud Scheduler)

# Recovery notifications wait at least this long after the previous post
DEFAULT_MIN_RENOTIFY_INTERVAL = 3600  # seconds

# =============================================================================
# STATE / CACHING
# =============================================================================

STATE_TTL_SECONDS = 60 * 60 * 24   # previously-broken flag and notification time
STATUS_CACHE_TTL_SECONDS = 300     # cached status response for /status

PREVIOUSLY_BROKEN_KEY = "previously-broken"
PREVIOUS_NOTIFICATION_TIME_KEY = "previous-notification-time"
STATUS_CACHE_KEY = "latest-status"

DEFAULT_STATE_BUCKET = "metrobot-state"
STATE_STORE_BACKENDS = ("auto", "gcs", "local", "memory", "none")

# =============================================================================
# HTTP / NETWORK
# =============================================================================

HTTP_TIMEOUT = 10  # seconds

# =============================================================================
# NOTIFICATIONS
# =============================================================================

SITE_URL = "https://onkometrorikki.fi"
HASHTAGS = "#länsimetro #hsl #metrohelsinki"
REASON_MAX_CHARS = 170
DEFAULT_TIMEZONE = "Europe/Helsinki"


def _is_cloud_run():
    return os.getenv('CLOUD_RUN') is not None


def _env_int(name, default):
    """Read a non-negative integer from the environment, falling back to default."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, using default {default}")
        return default
    if value < 0:
        logger.warning(f"Negative {name}={value}, using default {default}")
        return default
    return value


def _env_bool(name, default):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class BotConfig:
    """Runtime settings for one bot process."""
    check_interval: int = DEFAULT_CHECK_INTERVAL
    min_renotify_interval: int = DEFAULT_MIN_RENOTIFY_INTERVAL
    state_ttl: int = STATE_TTL_SECONDS
    status_cache_ttl: int = STATUS_CACHE_TTL_SECONDS
    notifications_enabled: bool = False
    feed_url: str = FEED_URL
    digitransit_api_key: Optional[str] = None
    state_store: str = "auto"
    gcs_bucket: str = DEFAULT_STATE_BUCKET
    local_state_dir: Optional[str] = None
    timezone: str = DEFAULT_TIMEZONE

    @classmethod
    def from_env(cls) -> "BotConfig":
        default_interval = CLOUD_CHECK_INTERVAL if _is_cloud_run() else DEFAULT_CHECK_INTERVAL

        state_store = os.getenv('STATE_STORE', 'auto').strip().lower()
        if state_store not in STATE_STORE_BACKENDS:
            logger.warning(f"Unknown STATE_STORE={state_store!r}, using 'auto'")
            state_store = 'auto'

        return cls(
            check_interval=_env_int('CHECK_INTERVAL', default_interval),
            min_renotify_interval=_env_int('MIN_RENOTIFY_INTERVAL', DEFAULT_MIN_RENOTIFY_INTERVAL),
            state_ttl=_env_int('STATE_TTL_SECONDS', STATE_TTL_SECONDS),
            status_cache_ttl=_env_int('STATUS_CACHE_TTL_SECONDS', STATUS_CACHE_TTL_SECONDS),
            notifications_enabled=_env_bool('NOTIFICATIONS_ENABLED', False),
            feed_url=os.getenv('FEED_URL', FEED_URL),
            digitransit_api_key=os.getenv('DIGITRANSIT_API_KEY') or None,
            state_store=state_store,
            gcs_bucket=os.getenv('GCS_BUCKET', DEFAULT_STATE_BUCKET),
            local_state_dir=os.getenv('LOCAL_STATE_DIR') or None,
            timezone=os.getenv('TIMEZONE', DEFAULT_TIMEZONE),
        )
