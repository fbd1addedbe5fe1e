"""
Key/value store with expiry, and the bot state kept in it.

Every backend implements the same two operations:

    get(key) -> str or None              never raises; errors read as None
    set_with_expiry(key, value, ttl)     never raises; returns False on error

Values are stored in a JSON envelope together with their expiry time, so TTL
works the same way on every backend:

    {"value": "true", "expires_at": 1767225600.0}

Backends:
    LocalFileStore: one JSON file per key (local development)
    GCSStore:       one blob per key in Google Cloud Storage (Cloud Run)
    MemoryStore:    in-process dict (tests, dry runs)
    NullStore:      no store configured; always absent, writes are dropped
"""

import json
import logging
import os
import re
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from google.cloud import storage

from . import gcs_utils
from .config import (
    PREVIOUSLY_BROKEN_KEY,
    PREVIOUS_NOTIFICATION_TIME_KEY,
    STATE_TTL_SECONDS,
)

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_LOCAL_STATE_DIR = str(PROJECT_ROOT / "artifacts" / "runtime" / "state")


def _safe_key(key: str) -> str:
    """Make a key safe to use as a file or blob name."""
    return re.sub(r'[^A-Za-z0-9._-]', '_', key)


class KeyValueStore:
    """
    Base class for stores. Subclasses implement _read_raw/_write_raw and may
    raise freely from them; get/set_with_expiry turn errors into soft results.
    """

    name = "store"

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def _read_raw(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write_raw(self, key: str, payload: str) -> None:
        raise NotImplementedError

    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent, expired or unreadable."""
        try:
            raw = self._read_raw(key)
        except Exception as e:
            logger.error(f"{self.name}: failed to read {key!r}: {type(e).__name__}: {e}")
            return None

        if raw is None:
            return None

        try:
            envelope = json.loads(raw)
            value = envelope['value']
            expires_at = envelope.get('expires_at')
            if expires_at is not None and (
                isinstance(expires_at, bool) or not isinstance(expires_at, (int, float))
            ):
                raise TypeError(f"expires_at must be a number, got {expires_at!r}")
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"{self.name}: corrupt entry for {key!r}, treating as absent: {e}")
            return None

        if expires_at is not None and self._clock() >= expires_at:
            return None

        if not isinstance(value, str):
            logger.warning(f"{self.name}: non-string value for {key!r}, treating as absent")
            return None

        return value

    def set_with_expiry(self, key: str, value: str, ttl_seconds: float) -> bool:
        """Store value under key for ttl_seconds. Returns True on success."""
        envelope = {
            'value': value,
            'expires_at': self._clock() + ttl_seconds,
        }
        try:
            self._write_raw(key, json.dumps(envelope))
        except Exception as e:
            logger.error(f"{self.name}: failed to write {key!r}: {type(e).__name__}: {e}")
            return False
        return True


class MemoryStore(KeyValueStore):
    """In-process store. Contents are lost when the process exits."""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._data = {}
        self._lock = threading.Lock()

    def _read_raw(self, key):
        with self._lock:
            return self._data.get(key)

    def _write_raw(self, key, payload):
        with self._lock:
            self._data[key] = payload


class LocalFileStore(KeyValueStore):
    """Stores each key as a JSON file in a directory."""

    name = "local"

    def __init__(self, directory: str = DEFAULT_LOCAL_STATE_DIR, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self.directory = directory

    def _path(self, key):
        return os.path.join(self.directory, f"{_safe_key(key)}.json")

    def _read_raw(self, key):
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, 'r') as f:
            return f.read()

    def _write_raw(self, key, payload):
        os.makedirs(self.directory, exist_ok=True)
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        try:
            with open(tmp_path, 'w') as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


class GCSStore(KeyValueStore):
    """Stores each key as a blob under gs://<bucket>/<prefix>/."""

    name = "gcs"

    def __init__(self, bucket: str, prefix: str = "state", client=None, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self.bucket = bucket
        self.prefix = prefix.strip('/')
        self._client = client

    def _get_client(self):
        # Created on first use
        if self._client is None:
            self._client = storage.Client()
        return self._client

    def _blob_name(self, key):
        name = f"{_safe_key(key)}.json"
        return f"{self.prefix}/{name}" if self.prefix else name

    def _read_raw(self, key):
        return gcs_utils.gcs_read_text(self._get_client(), self.bucket, self._blob_name(key))

    def _write_raw(self, key, payload):
        gcs_utils.gcs_write_text(self._get_client(), self.bucket, self._blob_name(key), payload)


class NullStore(KeyValueStore):
    """Used when no store is configured: nothing is ever remembered."""

    name = "none"

    def get(self, key):
        logger.warning(f"State store unavailable, unable to read {key!r}")
        return None

    def set_with_expiry(self, key, value, ttl_seconds):
        logger.warning(f"State store unavailable, unable to save {key!r}={value!r}")
        return False


def build_store(config) -> KeyValueStore:
    """
    Create the store selected by config.state_store.

    'auto' picks GCS on Cloud Run and a local directory otherwise.
    """
    backend = config.state_store
    if backend == 'auto':
        backend = 'gcs' if os.getenv('CLOUD_RUN') else 'local'

    if backend == 'gcs':
        logger.info(f"Using GCS state store: gs://{config.gcs_bucket}/state")
        return GCSStore(bucket=config.gcs_bucket)
    if backend == 'local':
        directory = config.local_state_dir or DEFAULT_LOCAL_STATE_DIR
        logger.info(f"Using local state store: {directory}")
        return LocalFileStore(directory)
    if backend == 'memory':
        logger.info("Using in-memory state store (state is not persisted)")
        return MemoryStore()

    logger.warning("State store disabled, every check runs as a cold start")
    return NullStore()


# =============================================================================
# BOT STATE
# =============================================================================

@dataclass(frozen=True)
class PersistedState:
    """Broken flag and time of the last successful notification (None = unknown)."""
    last_broken: Optional[bool] = None
    last_notification_time: Optional[datetime] = None


def encode_broken(broken: bool) -> str:
    return 'true' if broken else 'false'


def decode_broken(raw: Optional[str]) -> Optional[bool]:
    """Decode a stored broken flag. Anything but 'true'/'false' is unknown."""
    if raw is None:
        return None
    if raw == 'true':
        return True
    if raw == 'false':
        return False
    logger.warning(f"Unrecognized broken flag {raw!r}, treating as unknown")
    return None


def encode_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()


def decode_time(raw: Optional[str]) -> Optional[datetime]:
    """Decode a stored ISO-8601 timestamp as an aware UTC datetime."""
    if raw is None:
        return None
    try:
        moment = datetime.fromisoformat(raw)
    except (TypeError, ValueError):
        logger.warning(f"Unrecognized notification time {raw!r}, treating as unknown")
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class BotStateStore:
    """Reads and writes the bot's persisted notification state."""

    def __init__(self, store: KeyValueStore, ttl_seconds: int = STATE_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    def load(self) -> PersistedState:
        last_broken = decode_broken(self.store.get(PREVIOUSLY_BROKEN_KEY))
        last_time = decode_time(self.store.get(PREVIOUS_NOTIFICATION_TIME_KEY))
        logger.info(f"Loaded state: previously_broken={last_broken}, previous_notification={last_time}")
        return PersistedState(last_broken=last_broken, last_notification_time=last_time)

    def save(self, broken: bool, when: datetime) -> bool:
        """
        Save both fields with the same TTL.

        Failures are logged, not retried: the next check re-derives the
        decision from whatever state is on record.
        """
        saved_time = self.store.set_with_expiry(
            PREVIOUS_NOTIFICATION_TIME_KEY, encode_time(when), self.ttl_seconds
        )
        saved_flag = self.store.set_with_expiry(
            PREVIOUSLY_BROKEN_KEY, encode_broken(broken), self.ttl_seconds
        )
        if not (saved_time and saved_flag):
            logger.error(f"Failed to save state (broken={broken}, time={saved_time}, flag={saved_flag})")
            return False
        return True
