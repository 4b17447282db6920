"""
Quota breaker for the remote tone classifier.

When the remote backend reports quota exhaustion or rate limiting, the
breaker opens for a fixed cooldown and every classification falls back to
heuristics. The open and resume transitions are each logged once.

Example:
    >>> breaker = QuotaBreaker(cooldown_seconds=900)
    >>> breaker.trip(now)
    >>> breaker.is_open(now + timedelta(minutes=5))
    True
    >>> breaker.is_open(now + timedelta(minutes=16))
    False
"""

import math
from datetime import datetime, timedelta
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_COOLDOWN_SECONDS = 15 * 60


class QuotaBreaker:
    """
    Time-based breaker guarding remote classification.

    States:
        closed: Remote calls allowed.
        open: Remote calls skipped until ``open_until``.

    The breaker closes lazily: the first ``is_open`` check after the
    cooldown has elapsed closes it and logs the resume.

    Attributes:
        cooldown_seconds: How long the breaker stays open after a trip.
        name: Label used in logs (e.g. "process" or a channel name).
    """

    def __init__(
        self,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        name: str = "process",
    ) -> None:
        self.cooldown_seconds = cooldown_seconds
        self.name = name
        self._open_until: Optional[datetime] = None
        self._trip_count = 0

    def is_open(self, now: datetime) -> bool:
        """
        Check if remote calls should be skipped.

        Args:
            now: Current time.

        Returns:
            bool: True while the cooldown is running.
        """
        if self._open_until is None:
            return False
        if now >= self._open_until:
            self._open_until = None
            logger.info("tone_classifier_resumed", breaker=self.name)
            return False
        return True

    def trip(self, now: datetime) -> None:
        """
        Open the breaker for the cooldown period.

        Args:
            now: Time the quota error was observed.
        """
        already_open = self._open_until is not None and now < self._open_until
        self._open_until = now + timedelta(seconds=self.cooldown_seconds)
        self._trip_count += 1
        if not already_open:
            logger.warning(
                "tone_classifier_quota_exceeded",
                breaker=self.name,
                fallback_minutes=math.ceil(self.cooldown_seconds / 60),
            )

    def record_success(self) -> None:
        """Close the breaker after a successful remote call."""
        if self._open_until is not None:
            self._open_until = None
            logger.info("tone_classifier_recovered", breaker=self.name)

    @property
    def open_until(self) -> Optional[datetime]:
        """End of the current cooldown, if open."""
        return self._open_until

    @property
    def trip_count(self) -> int:
        """Number of times the breaker has tripped."""
        return self._trip_count

    def reset(self) -> None:
        """Close the breaker without logging."""
        self._open_until = None
