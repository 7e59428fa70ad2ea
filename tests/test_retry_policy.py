from __future__ import annotations

import pytest

from retry_policy import RetryPolicy


def test_three_failures_become_terminal() -> None:
    policy = RetryPolicy()

    assert policy.record_failure() is False
    assert policy.record_failure() is False
    assert policy.record_failure() is True
    assert policy.has_failed_terminally is True
    assert policy.can_attempt is False


def test_attempt_count_never_exceeds_max() -> None:
    policy = RetryPolicy(max_attempts=3)
    for _ in range(5):
        policy.record_failure()

    assert policy.attempt_count == 3


def test_reset_allows_three_more_attempts() -> None:
    policy = RetryPolicy()
    for _ in range(3):
        policy.record_failure()

    policy.reset()

    assert policy.attempt_count == 0
    assert policy.has_failed_terminally is False
    assert [policy.record_failure() for _ in range(3)] == [False, False, True]


def test_success_clears_failures() -> None:
    policy = RetryPolicy()
    policy.record_failure()
    policy.record_success()

    assert policy.attempt_count == 0


def test_invalid_max_attempts() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
