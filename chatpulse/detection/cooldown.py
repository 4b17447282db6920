"""
Cooldown tracker for alert arbitration.

Tracks, per cooldown key, when an alert was last emitted and at which
priority. A candidate under a cooling key is suppressed unless it outranks
the last emitted priority, so an escalation always gets through.

Example:
    >>> tracker = CooldownTracker()
    >>> key = CooldownKey(kind=DetectorKind.SPAM)
    >>> tracker.should_emit(key, now, AlertPriority.MEDIUM)
    True
    >>> tracker.record(key, now, AlertPriority.MEDIUM, cooldown_seconds=30)
    >>> tracker.should_emit(key, now + timedelta(seconds=5), AlertPriority.MEDIUM)
    False
    >>> tracker.should_emit(key, now + timedelta(seconds=5), AlertPriority.HIGH)
    True
"""

from datetime import datetime
from typing import Dict, Optional

import structlog

from chatpulse.models.alerts import AlertPriority, CooldownEntry, CooldownKey

logger = structlog.get_logger(__name__)


class CooldownTracker:
    """
    Last-emission bookkeeping keyed by CooldownKey.

    Attributes:
        _entries: Map of cooldown key to its last emission.
    """

    def __init__(self) -> None:
        self._entries: Dict[CooldownKey, CooldownEntry] = {}

    def should_emit(
        self,
        key: CooldownKey,
        timestamp: datetime,
        priority: AlertPriority,
        cooldown_seconds: Optional[float] = None,
    ) -> bool:
        """
        Check if a candidate may be emitted.

        Args:
            key: Cooldown key of the candidate.
            timestamp: Time of the triggering activity.
            priority: Candidate priority.
            cooldown_seconds: Cooldown for the key; defaults to the one
                recorded with the last emission.

        Returns:
            bool: False only when the key is cooling and the candidate does
                not outrank the last emitted priority.
        """
        entry = self._entries.get(key)
        if entry is None:
            return True

        window = entry.cooldown_seconds if cooldown_seconds is None else cooldown_seconds
        elapsed = (timestamp - entry.last_emitted_at).total_seconds()
        if elapsed >= window:
            return True
        if priority.outranks(entry.last_priority):
            logger.debug(
                "cooldown_escalation",
                key=str(key),
                previous=entry.last_priority.value,
                priority=priority.value,
            )
            return True

        logger.debug(
            "alert_cooling_down",
            key=str(key),
            elapsed_seconds=round(elapsed, 2),
            cooldown_seconds=round(window, 2),
        )
        return False

    def record(
        self,
        key: CooldownKey,
        timestamp: datetime,
        priority: AlertPriority,
        cooldown_seconds: float,
    ) -> None:
        """Record an emission for a key."""
        self._entries[key] = CooldownEntry(
            last_emitted_at=timestamp,
            last_priority=priority,
            cooldown_seconds=cooldown_seconds,
        )

    def get(self, key: CooldownKey) -> Optional[CooldownEntry]:
        return self._entries.get(key)

    def any_cooling(self, now: datetime) -> bool:
        """Check if any key is inside its cooldown window at ``now``."""
        return any(entry.is_cooling(now) for entry in self._entries.values())

    def clear(self, key: Optional[CooldownKey] = None) -> None:
        """
        Clear cooldown state.

        Args:
            key: Specific key to clear, or None to clear all.
        """
        if key is None:
            self._entries.clear()
            logger.debug("cooldowns_cleared_all")
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
