"""Tests for retry utilities."""

import threading
from unittest.mock import Mock

import pytest

from kinesis_sink.config.settings import RetryConfig
from kinesis_sink.utils.retry import (
    RetryCancelled,
    compute_delay,
    exponential_backoff,
    retry_from_config,
)


class TestExponentialBackoff:
    """Test exponential_backoff retry loop."""

    def test_success_first_try(self):
        func = Mock(return_value="ok")

        assert exponential_backoff(func, max_attempts=3, initial_delay=0) == "ok"
        assert func.call_count == 1

    def test_retries_then_succeeds(self):
        func = Mock(side_effect=[ValueError("boom"), ValueError("boom"), "ok"])
        on_retry = Mock()

        result = exponential_backoff(
            func, max_attempts=3, initial_delay=0, jitter=False,
            exceptions=(ValueError,), on_retry=on_retry
        )

        assert result == "ok"
        assert func.call_count == 3
        assert [c.args[0] for c in on_retry.call_args_list] == [1, 2]

    def test_reraises_after_last_attempt(self):
        func = Mock(side_effect=ValueError("boom"))

        with pytest.raises(ValueError, match="boom"):
            exponential_backoff(func, max_attempts=2, initial_delay=0, exceptions=(ValueError,))
        assert func.call_count == 2

    def test_unlisted_exceptions_are_not_retried(self):
        func = Mock(side_effect=KeyError("nope"))

        with pytest.raises(KeyError):
            exponential_backoff(func, max_attempts=5, initial_delay=0, exceptions=(ValueError,))
        assert func.call_count == 1

    def test_cancel_event_interrupts_sleep(self):
        func = Mock(side_effect=ValueError("boom"))
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(RetryCancelled) as exc_info:
            exponential_backoff(
                func, max_attempts=5, initial_delay=60.0,
                exceptions=(ValueError,), cancel_event=cancel_event
            )

        assert isinstance(exc_info.value.last_exception, ValueError)
        assert func.call_count == 1


class TestComputeDelay:
    """Test delay calculation."""

    def test_without_jitter(self):
        assert compute_delay(1.5, 10.0, jitter=False) == 1.5

    def test_capped_at_max(self):
        assert compute_delay(30.0, 5.0, jitter=False) == 5.0
        assert compute_delay(30.0, 5.0, jitter=True) == 5.0

    def test_jitter_range(self):
        for _ in range(50):
            assert 0.75 <= compute_delay(1.0, 10.0, jitter=True) <= 1.25


def test_retry_from_config():
    config = RetryConfig(max_attempts=4, initial_backoff_seconds=0.5, max_backoff_seconds=8.0,
                         backoff_multiplier=3.0, jitter=False)
    kwargs = retry_from_config(config, exceptions=(ValueError,))

    assert kwargs == {
        'max_attempts': 4,
        'initial_delay': 0.5,
        'max_delay': 8.0,
        'backoff_factor': 3.0,
        'jitter': False,
        'exceptions': (ValueError,),
    }
