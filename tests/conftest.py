"""
Shared fixtures for bot tests: a controllable clock, stores and a bot
context wired to fakes instead of the network.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from metrobot.bot import BotContext  # noqa: E402
from metrobot.config import BotConfig  # noqa: E402
from metrobot.hsl_feed import StatusSnapshot  # noqa: E402
from metrobot.state_store import BotStateStore, KeyValueStore, MemoryStore  # noqa: E402

START = datetime(2026, 3, 2, 8, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start=START):
        self.now = start

    def __call__(self):
        return self.now

    def epoch(self):
        return self.now.timestamp()

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FailingStore(KeyValueStore):
    """Store whose backend raises on every call."""

    name = "failing"

    def __init__(self):
        super().__init__()
        self.reads = 0
        self.writes = 0

    def _read_raw(self, key):
        self.reads += 1
        raise ConnectionError("store down")

    def _write_raw(self, key, payload):
        self.writes += 1
        raise ConnectionError("store down")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryStore(clock=clock.epoch)


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def feed():
    """Mutable feed the fake fetcher returns; set feed['broken'] in tests."""
    return {'broken': False, 'reasons': [], 'error': None}


def _create_response(feed):
    return StatusSnapshot(broken=feed['broken'], reasons=feed['reasons'])


@pytest.fixture
def make_ctx(clock, feed):
    """Build a BotContext around a given store with fake collaborators."""
    def factory(store, notifications_enabled=True, send_result=None):
        config = BotConfig(
            min_renotify_interval=3600,
            state_ttl=86400,
            notifications_enabled=notifications_enabled,
            timezone='UTC',
        )

        def fetch():
            if feed['error'] is not None:
                raise feed['error']
            return feed

        sender = MagicMock(return_value=send_result or {'success': True, 'channels': {}, 'error': None})
        return BotContext(
            config=config,
            store=store,
            state=BotStateStore(store, ttl_seconds=config.state_ttl),
            fetch_feed=fetch,
            create_response=_create_response,
            send_notification=sender,
            clock=clock,
        )
    return factory
