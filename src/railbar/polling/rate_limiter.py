"""
Rate limit budget for the RailBar polling system.

This module tracks the request budget advertised by the Railway API in
response headers and derives proactive waits and adaptive polling intervals.
"""

import math
import threading
import time
from collections.abc import Mapping
from typing import NamedTuple

import structlog

logger = structlog.get_logger(__name__)

LIMIT_HEADER = "X-RateLimit-Limit"
REMAINING_HEADER = "X-RateLimit-Remaining"
RESET_HEADER = "X-RateLimit-Reset"

DEFAULT_INTERVAL_SECONDS = 30.0
LOW_BUDGET_INTERVAL_SECONDS = 60.0
CRITICAL_BUDGET_INTERVAL_SECONDS = 120.0
LOW_BUDGET_RATIO = 0.25
CRITICAL_BUDGET_RATIO = 0.10
RESET_BUFFER_SECONDS = 1.0


class BudgetSnapshot(NamedTuple):
    """Consistent view of the budget fields."""

    limit: int | None
    remaining: int | None
    reset_at: float | None


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive; httpx.Headers is not
        value = headers.get(name.lower())
    return value


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        parsed = float(value.strip())
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


class RateLimitBudget:
    """
    Request budget advertised by the API.

    Values are sticky: a field is only overwritten when its header is present
    and parseable. Unknown values mean the budget is unconstrained. All access
    goes through a single lock so the transport (writer) and the polling
    controller (reader) never observe a half-applied update.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._limit: int | None = None
        self._remaining: int | None = None
        self._reset_at: float | None = None

    @property
    def limit(self) -> int | None:
        with self._lock:
            return self._limit

    @property
    def remaining(self) -> int | None:
        with self._lock:
            return self._remaining

    @property
    def reset_at(self) -> float | None:
        """Reset instant as epoch seconds."""
        with self._lock:
            return self._reset_at

    def snapshot(self) -> BudgetSnapshot:
        with self._lock:
            return BudgetSnapshot(self._limit, self._remaining, self._reset_at)

    def observe(self, headers: Mapping[str, str]) -> None:
        """
        Update the budget from response headers.

        Missing or malformed headers leave the corresponding field untouched.

        Args:
            headers: Response headers
        """
        limit = _parse_int(_header(headers, LIMIT_HEADER))
        remaining = _parse_int(_header(headers, REMAINING_HEADER))
        reset_at = _parse_float(_header(headers, RESET_HEADER))

        with self._lock:
            if limit is not None:
                self._limit = limit
            if remaining is not None:
                self._remaining = remaining
            if reset_at is not None:
                self._reset_at = reset_at

            logger.debug(
                "Rate limit budget observed",
                limit=self._limit,
                remaining=self._remaining,
                reset_at=self._reset_at,
            )

    def seconds_until_ready(self, now: float | None = None) -> float:
        """
        Seconds to wait before the next request is safe.

        Args:
            now: Current epoch time, defaults to the wall clock

        Returns:
            0 unless the budget is exhausted and a reset instant is known
        """
        with self._lock:
            remaining, reset_at = self._remaining, self._reset_at

        if remaining is None or remaining > 0 or reset_at is None:
            return 0.0

        current = time.time() if now is None else now
        return max(reset_at - current + RESET_BUFFER_SECONDS, 0.0)

    def suggested_interval(self) -> float:
        """
        Polling interval based on how much of the budget is left.

        Returns:
            120s below 10% remaining, 60s below 25%, otherwise 30s
        """
        with self._lock:
            limit, remaining = self._limit, self._remaining

        if limit is None or remaining is None or limit == 0:
            return DEFAULT_INTERVAL_SECONDS

        ratio = remaining / limit
        if ratio < CRITICAL_BUDGET_RATIO:
            return CRITICAL_BUDGET_INTERVAL_SECONDS
        if ratio < LOW_BUDGET_RATIO:
            return LOW_BUDGET_INTERVAL_SECONDS
        return DEFAULT_INTERVAL_SECONDS
