"""
Process-wide admission control in front of the SMS gateway.

The gateway enforces a hard requests-per-period quota shared by every
caller, so all dispatch workers funnel through one limiter instance.

FixedWindowRateLimiter issues at most ``limit_for_period`` permits per
window of ``refresh_period`` seconds. A window opens on the first acquire
after the previous one expired. Because windows are fixed, up to
``2 * limit_for_period`` permits can be granted across a window boundary;
callers needing strict sliding-window fairness can supply any other object
satisfying the ``RateLimiter`` protocol.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

from ..errors import ConfigurationError
from ..logging import get_logger

if TYPE_CHECKING:
    from ..config import Settings

logger = get_logger(__name__)

Clock = Callable[[], float]


@runtime_checkable
class RateLimiter(Protocol):
    """Admission-control contract used by the dispatcher."""

    def acquire(self, timeout: float | None = None) -> bool:
        """Return True when a permit was granted, False on timeout."""
        ...


@dataclass(frozen=True)
class RateLimiterSnapshot:
    """Point-in-time view of limiter state."""

    limit_for_period: int
    refresh_period: float
    window_start: float | None
    issued_in_window: int
    total_granted: int
    total_timed_out: int

    def to_dict(self) -> dict[str, float | int | None]:
        return {
            'limit_for_period': self.limit_for_period,
            'refresh_period': self.refresh_period,
            'window_start': self.window_start,
            'issued_in_window': self.issued_in_window,
            'total_granted': self.total_granted,
            'total_timed_out': self.total_timed_out,
        }


class FixedWindowRateLimiter:
    """
    Fixed-window permit counter, safe to share across threads.

    Window state is only read or mutated while holding ``_cond``. Blocked
    callers sleep on the condition until the current window expires or
    their timeout elapses, whichever comes first.
    """

    def __init__(
        self,
        limit_for_period: int,
        refresh_period: float,
        acquire_timeout: float = 0.0,
        clock: Clock = time.monotonic,
        name: str = 'gateway',
    ):
        """
        Args:
            limit_for_period: Max permits per window (must be positive)
            refresh_period: Window length in seconds (must be positive)
            acquire_timeout: Default max wait in seconds for ``acquire``
            clock: Monotonic clock in seconds
            name: Label used in log events

        Raises:
            ConfigurationError: On non-positive limit/period or negative timeout
        """
        if limit_for_period <= 0:
            raise ConfigurationError(
                'limit_for_period must be positive',
                context={'limit_for_period': limit_for_period},
            )
        if refresh_period <= 0:
            raise ConfigurationError(
                'refresh_period must be positive',
                context={'refresh_period': refresh_period},
            )
        if acquire_timeout < 0:
            raise ConfigurationError(
                'acquire_timeout must not be negative',
                context={'acquire_timeout': acquire_timeout},
            )

        self.limit_for_period = limit_for_period
        self.refresh_period = refresh_period
        self.acquire_timeout = acquire_timeout
        self.name = name
        self._clock = clock
        self._cond = threading.Condition()

        self._window_start: float | None = None
        self._issued_in_window = 0
        self._total_granted = 0
        self._total_timed_out = 0

    def acquire(self, timeout: float | None = None) -> bool:
        """
        Wait for a permit.

        Args:
            timeout: Max seconds to wait (defaults to ``acquire_timeout``)

        Returns:
            True if a permit was granted, False if the timeout elapsed first
        """
        if timeout is None:
            timeout = self.acquire_timeout
        deadline = self._clock() + max(timeout, 0.0)

        with self._cond:
            while True:
                now = self._clock()
                self._roll_window(now)

                if self._issued_in_window < self.limit_for_period:
                    self._issue()
                    return True

                remaining = deadline - now
                if remaining <= 0:
                    self._total_timed_out += 1
                    logger.warning(
                        'rate_limiter.timed_out',
                        limiter=self.name,
                        timeout_s=timeout,
                        issued_in_window=self._issued_in_window,
                    )
                    return False

                window_remaining = self._window_start + self.refresh_period - now
                self._cond.wait(timeout=min(remaining, max(window_remaining, 0.0)))

    def snapshot(self) -> RateLimiterSnapshot:
        with self._cond:
            return RateLimiterSnapshot(
                limit_for_period=self.limit_for_period,
                refresh_period=self.refresh_period,
                window_start=self._window_start,
                issued_in_window=self._issued_in_window,
                total_granted=self._total_granted,
                total_timed_out=self._total_timed_out,
            )

    # Both helpers below require self._cond to be held.

    def _roll_window(self, now: float) -> None:
        if self._window_start is None or now - self._window_start >= self.refresh_period:
            self._window_start = now
            self._issued_in_window = 0
            self._cond.notify_all()

    def _issue(self) -> None:
        self._issued_in_window += 1
        self._total_granted += 1


def build_rate_limiter(settings: Settings) -> FixedWindowRateLimiter | None:
    """
    Build the shared limiter from settings.

    Returns:
        A limiter, or None when RATE_LIMITING_ENABLED is false
    """
    if not settings.RATE_LIMITING_ENABLED:
        logger.info('rate_limiter.disabled')
        return None

    limiter = FixedWindowRateLimiter(
        limit_for_period=settings.LIMIT_FOR_PERIOD,
        refresh_period=settings.refresh_period_seconds,
        acquire_timeout=settings.acquire_timeout_seconds,
    )
    logger.info(
        'rate_limiter.configured',
        limit_for_period=limiter.limit_for_period,
        refresh_period_s=limiter.refresh_period,
        acquire_timeout_s=limiter.acquire_timeout,
    )
    return limiter
