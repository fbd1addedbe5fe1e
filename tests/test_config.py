"""
Tests for configuration loading and the command-line entry point.
"""

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from metrobot.config import (
    CLOUD_CHECK_INTERVAL,
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_MIN_RENOTIFY_INTERVAL,
    STATE_TTL_SECONDS,
    BotConfig,
)


class TestIntervalConfiguration:
    """Tests for default values."""

    def test_defaults(self):
        assert DEFAULT_MIN_RENOTIFY_INTERVAL == 3600
        assert STATE_TTL_SECONDS == 24 * 60 * 60

    def test_cloud_interval_is_longer_than_default(self):
        assert CLOUD_CHECK_INTERVAL > DEFAULT_CHECK_INTERVAL


class TestFromEnv:
    """Tests for BotConfig.from_env()."""

    def test_empty_environment_uses_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = BotConfig.from_env()

        assert config.check_interval == DEFAULT_CHECK_INTERVAL
        assert config.min_renotify_interval == DEFAULT_MIN_RENOTIFY_INTERVAL
        assert config.state_ttl == STATE_TTL_SECONDS
        assert config.notifications_enabled is False
        assert config.state_store == 'auto'

    def test_cloud_run_uses_cloud_interval(self):
        with patch.dict(os.environ, {'CLOUD_RUN': 'true'}, clear=True):
            assert BotConfig.from_env().check_interval == CLOUD_CHECK_INTERVAL

    def test_reads_values(self):
        env = {
            'CHECK_INTERVAL': '45',
            'MIN_RENOTIFY_INTERVAL': '600',
            'STATE_TTL_SECONDS': '7200',
            'STATUS_CACHE_TTL_SECONDS': '90',
            'NOTIFICATIONS_ENABLED': 'true',
            'STATE_STORE': 'GCS',
            'GCS_BUCKET': 'bucket',
            'DIGITRANSIT_API_KEY': 'key',
            'TIMEZONE': 'UTC',
        }
        with patch.dict(os.environ, env, clear=True):
            config = BotConfig.from_env()

        assert config.check_interval == 45
        assert config.min_renotify_interval == 600
        assert config.state_ttl == 7200
        assert config.status_cache_ttl == 90
        assert config.notifications_enabled is True
        assert config.state_store == 'gcs'
        assert config.gcs_bucket == 'bucket'
        assert config.digitransit_api_key == 'key'
        assert config.timezone == 'UTC'

    def test_notifications_enabled_values(self):
        for value, expected in [('1', True), ('yes', True), ('TRUE', True), ('false', False), ('0', False)]:
            with patch.dict(os.environ, {'NOTIFICATIONS_ENABLED': value}, clear=True):
                assert BotConfig.from_env().notifications_enabled is expected, value

    def test_invalid_numbers_fall_back(self, caplog):
        with patch.dict(os.environ, {'MIN_RENOTIFY_INTERVAL': 'soon', 'STATE_TTL_SECONDS': '-5'}, clear=True):
            config = BotConfig.from_env()

        assert config.min_renotify_interval == DEFAULT_MIN_RENOTIFY_INTERVAL
        assert config.state_ttl == STATE_TTL_SECONDS
        assert 'MIN_RENOTIFY_INTERVAL' in caplog.text

    def test_unknown_store_falls_back_to_auto(self):
        with patch.dict(os.environ, {'STATE_STORE': 'redis'}, clear=True):
            assert BotConfig.from_env().state_store == 'auto'


class TestRunBotCli:
    """Tests for api/run_bot.py."""

    def test_parse_args(self):
        from api.run_bot import parse_args

        args = parse_args(['--continuous', '--interval', '30', '--dry-run'])
        assert args.continuous is True
        assert args.interval == 30
        assert args.dry_run is True

    def test_dry_run_uses_memory_store_and_disables_posting(self):
        from api.run_bot import build_context, parse_args
        from metrobot.state_store import MemoryStore

        with patch.dict(os.environ, {'NOTIFICATIONS_ENABLED': 'true'}, clear=True):
            ctx = build_context(parse_args(['--dry-run']))

        assert isinstance(ctx.store, MemoryStore)
        assert ctx.config.notifications_enabled is False

    def test_single_check_exit_code(self):
        from api import run_bot

        with patch.object(run_bot, 'run_cycle', return_value=MagicMock(success=False)):
            with patch.dict(os.environ, {'STATE_STORE': 'memory'}, clear=True):
                assert run_bot.main([]) == 1

        with patch.object(run_bot, 'run_cycle', return_value=MagicMock(success=True)):
            with patch.dict(os.environ, {'STATE_STORE': 'memory'}, clear=True):
                assert run_bot.main([]) == 0

    def test_continuous_runs_loop(self):
        from api import run_bot

        with patch.object(run_bot, 'run_forever') as loop:
            with patch.dict(os.environ, {'STATE_STORE': 'memory'}, clear=True):
                assert run_bot.main(['--continuous', '--interval', '5']) == 0

        assert loop.call_args.kwargs['interval'] == 5
