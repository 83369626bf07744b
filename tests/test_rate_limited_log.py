"""
Tests for rate-limited logging.
"""
import threading
from unittest.mock import MagicMock, patch

from setcode_sdk import _rate_limited_log
from setcode_sdk._rate_limited_log import rate_limited_log, reset_rate_limits


class TestRateLimitedLog:
    """Tests for the rate-limited logging implementation."""

    def test_repeated_message_is_suppressed(self):
        mock_logger = MagicMock()

        assert rate_limited_log("Test message", level="warning", logger_instance=mock_logger)
        assert not rate_limited_log("Test message", level="warning", logger_instance=mock_logger)

        mock_logger.warning.assert_called_once_with("Test message")

    def test_level_and_message_form_the_key(self):
        mock_logger = MagicMock()

        rate_limited_log("Test message", level="warning", logger_instance=mock_logger)
        rate_limited_log("Test message", level="error", logger_instance=mock_logger)
        rate_limited_log("Different message", level="warning", logger_instance=mock_logger)

        mock_logger.error.assert_called_once_with("Test message")
        assert mock_logger.warning.call_count == 2

    def test_unknown_level_falls_back_to_warning(self):
        mock_logger = MagicMock(spec=["warning"])
        rate_limited_log("odd level", level="verbose", logger_instance=mock_logger)
        mock_logger.warning.assert_called_once_with("odd level")

    def test_message_logged_again_after_expiry(self):
        mock_logger = MagicMock()
        clock = [0.0]

        with patch.object(_rate_limited_log, "TTLCache") as mock_cache_cls:
            from cachetools import TTLCache
            mock_cache_cls.side_effect = lambda maxsize, ttl: TTLCache(maxsize=maxsize, ttl=ttl, timer=lambda: clock[0])
            reset_rate_limits()

            rate_limited_log("expiring", interval=10, logger_instance=mock_logger)
            clock[0] = 5.0
            rate_limited_log("expiring", interval=10, logger_instance=mock_logger)
            clock[0] = 11.0
            rate_limited_log("expiring", interval=10, logger_instance=mock_logger)

        assert mock_logger.warning.call_count == 2

    def test_reset_rate_limits(self):
        mock_logger = MagicMock()
        rate_limited_log("again", logger_instance=mock_logger)
        reset_rate_limits()
        rate_limited_log("again", logger_instance=mock_logger)
        assert mock_logger.warning.call_count == 2

    def test_concurrent_callers_log_once(self):
        mock_logger = MagicMock()
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            rate_limited_log("concurrent", logger_instance=mock_logger)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        mock_logger.warning.assert_called_once_with("concurrent")
