"""Tests for RetryPolicy."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from esdoc_projections.retry import BackoffStrategy, RetryPolicy


def test_defaults() -> None:
    policy = RetryPolicy()
    assert policy.max_retries == 3
    assert policy.backoff is BackoffStrategy.EXPONENTIAL
    assert policy.base_delay_seconds == 0.1


def test_linear_backoff() -> None:
    policy = RetryPolicy(backoff=BackoffStrategy.LINEAR, base_delay_seconds=0.5)
    assert [policy.delay_for_attempt(n) for n in (1, 2, 3)] == [0.5, 1.0, 1.5]


def test_exponential_backoff_is_capped() -> None:
    policy = RetryPolicy(
        backoff=BackoffStrategy.EXPONENTIAL,
        base_delay_seconds=1.0,
        max_delay_seconds=5.0,
    )
    assert [policy.delay_for_attempt(n) for n in (1, 2, 3)] == [2.0, 4.0, 5.0]


def test_backoff_accepts_string_value() -> None:
    assert RetryPolicy(backoff="linear").backoff is BackoffStrategy.LINEAR


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"base_delay_seconds": -0.1},
        {"base_delay_seconds": 2.0, "max_delay_seconds": 1.0},
    ],
)
def test_invalid_settings_are_rejected(kwargs: dict[str, float]) -> None:
    with pytest.raises(ValidationError):
        RetryPolicy(**kwargs)
