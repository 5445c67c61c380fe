"""RetryPolicy: backoff settings for re-delivering a failed page."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BackoffStrategy(str, Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


class RetryPolicy(BaseModel):
    """How often and how patiently a consumer retries a failed page.

    ``max_retries`` counts retries after the first attempt, so a page is
    delivered at most ``max_retries + 1`` times per poll. The delay before
    retry *n* (1-based) is ``n * base_delay_seconds`` for linear backoff and
    ``2**n * base_delay_seconds`` for exponential backoff, capped at
    ``max_delay_seconds``.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    backoff: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    base_delay_seconds: float = Field(default=0.1, ge=0)
    max_delay_seconds: float = Field(default=30.0, ge=0)

    @model_validator(mode="after")
    def _check_cap(self) -> RetryPolicy:
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        return self

    def delay_for_attempt(self, attempt: int) -> float:
        """Seconds to wait before retry number *attempt* (1-based)."""
        if self.backoff is BackoffStrategy.LINEAR:
            delay = attempt * self.base_delay_seconds
        else:
            delay = (2**attempt) * self.base_delay_seconds
        return min(delay, self.max_delay_seconds)
