"""
Presented alert history.

Keeps emitted alerts for a short window so a dashboard can show what is
currently relevant. Old alerts age out; repeated messages collapse to the
newest copy; the calm notice only shows when nothing else does.
"""

from datetime import datetime, timedelta
from typing import Iterable, List

from chatpulse.models.alerts import DetectorKind, EmittedAlert

DEFAULT_HISTORY_SECONDS = 120.0


class AlertHistory:
    """
    Rolling window of emitted alerts.

    Example:
        >>> history = AlertHistory(window_seconds=120)
        >>> history.add(alerts, now)
        >>> for alert in history.presented(now):
        ...     print(alert.message)
    """

    def __init__(self, window_seconds: float = DEFAULT_HISTORY_SECONDS) -> None:
        self.window_seconds = window_seconds
        self._alerts: List[EmittedAlert] = []

    def add(self, alerts: Iterable[EmittedAlert], now: datetime) -> None:
        """Record emitted alerts and drop those older than the window."""
        self._alerts.extend(alerts)
        self.prune(now)

    def prune(self, now: datetime) -> None:
        cutoff = now - timedelta(seconds=self.window_seconds)
        self._alerts = [alert for alert in self._alerts if alert.emitted_at >= cutoff]

    def presented(self, now: datetime) -> List[EmittedAlert]:
        """
        Alerts to present at ``now``, newest first.

        Drops alerts older than the window and keeps one alert per message.
        """
        self.prune(now)
        seen = set()
        presented: List[EmittedAlert] = []
        for alert in sorted(self._alerts, key=lambda a: a.emitted_at, reverse=True):
            key = alert.message.strip().lower()
            if key in seen:
                continue
            seen.add(key)
            presented.append(alert)

        if any(alert.kind != DetectorKind.CALM for alert in presented):
            presented = [alert for alert in presented if alert.kind != DetectorKind.CALM]
        return presented

    def clear(self) -> None:
        self._alerts.clear()

    def __len__(self) -> int:
        return len(self._alerts)
