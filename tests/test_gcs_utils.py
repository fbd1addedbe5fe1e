"""
Tests for GCS utilities with retry logic.

Tests cover:
- Retry decorator behavior
- Exponential backoff timing
- Blob read/write helpers
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as gcs_exceptions

sys.path.insert(0, str(Path(__file__).parent.parent))

from metrobot.gcs_utils import (
    RETRYABLE_EXCEPTIONS,
    backoff_delays,
    gcs_read_text,
    gcs_write_text,
    retry_with_backoff,
)


class TestRetryDecorator:
    """Tests for the retry_with_backoff decorator."""

    def test_succeeds_without_retry(self):
        sleep = MagicMock()

        @retry_with_backoff(max_retries=3, sleep=sleep)
        def success_func():
            return "success"

        assert success_func() == "success"
        sleep.assert_not_called()

    def test_retries_on_failure(self):
        call_count = 0

        @retry_with_backoff(max_retries=3, sleep=MagicMock())
        def fail_then_succeed():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ConnectionError("Transient error")
            return "success"

        assert fail_then_succeed() == "success"
        assert call_count == 3

    def test_raises_after_max_retries(self):
        call_count = 0

        @retry_with_backoff(max_retries=2, sleep=MagicMock())
        def always_fail():
            nonlocal call_count
            call_count += 1
            raise ConnectionError("Permanent error")

        with pytest.raises(ConnectionError, match="Permanent error"):
            always_fail()
        assert call_count == 3  # Initial + 2 retries

    def test_only_retries_specified_exceptions(self):
        call_count = 0

        @retry_with_backoff(max_retries=3, retryable_exceptions=(ConnectionError,), sleep=MagicMock())
        def raise_value_error():
            nonlocal call_count
            call_count += 1
            raise ValueError("Not retryable")

        with pytest.raises(ValueError):
            raise_value_error()
        assert call_count == 1

    def test_exponential_backoff_delays(self):
        sleep = MagicMock()

        @retry_with_backoff(max_retries=4, initial_delay=1.0, max_delay=5.0, sleep=sleep)
        def always_fail():
            raise TimeoutError("slow")

        with pytest.raises(TimeoutError):
            always_fail()

        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0, 4.0, 5.0]

    def test_backoff_delays_are_capped(self):
        assert list(backoff_delays(5, 0.5, 3.0, 3)) == [0.5, 1.5, 3.0, 3.0, 3.0]
        assert list(backoff_delays(0, 1.0, 5.0, 2)) == []

    def test_gcs_server_errors_are_retryable(self):
        assert issubclass(gcs_exceptions.ServiceUnavailable, RETRYABLE_EXCEPTIONS)
        assert issubclass(gcs_exceptions.TooManyRequests, RETRYABLE_EXCEPTIONS)
        assert not issubclass(gcs_exceptions.Forbidden, RETRYABLE_EXCEPTIONS)


class TestBlobHelpers:
    """Tests for gcs_read_text / gcs_write_text with a mocked client."""

    def test_read_existing_blob(self):
        client = MagicMock()
        blob = client.bucket.return_value.blob.return_value
        blob.exists.return_value = True
        blob.download_as_text.return_value = '{"value": "true"}'

        assert gcs_read_text(client, 'bucket', 'state/k.json') == '{"value": "true"}'
        client.bucket.assert_called_once_with('bucket')
        client.bucket.return_value.blob.assert_called_once_with('state/k.json')

    def test_read_missing_blob(self):
        client = MagicMock()
        client.bucket.return_value.blob.return_value.exists.return_value = False
        assert gcs_read_text(client, 'bucket', 'missing.json') is None

    def test_read_retries_transient_errors(self):
        client = MagicMock()
        blob = client.bucket.return_value.blob.return_value
        blob.exists.side_effect = [gcs_exceptions.ServiceUnavailable('503'), True]
        blob.download_as_text.return_value = 'data'

        with patch('metrobot.gcs_utils.time.sleep') as sleep:
            assert gcs_read_text(client, 'bucket', 'k.json') == 'data'
        sleep.assert_called_once()

    def test_write_uploads_json(self):
        client = MagicMock()
        blob = client.bucket.return_value.blob.return_value

        assert gcs_write_text(client, 'bucket', 'k.json', '{}') is True
        blob.upload_from_string.assert_called_once_with('{}', content_type='application/json')
