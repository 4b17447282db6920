"""
Message-rate spike detector.

Compares the current value of a metric to its long baseline and emits a
SpikeEvent when the ratio crosses a threshold. The threshold is stricter
while the baseline is still warming up, and the detector re-arms only
after a quiet period so a sustained surge yields one event per period.

Classes:
    SpikeDetector: Ratio-to-baseline spike detection with re-arm
"""

from collections import deque
from datetime import datetime
from typing import Deque, List, Optional

import structlog

from chatpulse.models.metrics import BaselineSnapshot, SpikeEvent

logger = structlog.get_logger(__name__)


class SpikeDetector:
    """
    Ratio-to-baseline spike detector.

    Formula:
        ratio = value / baseline.long   (0 when long <= 0)
        threshold = READY_RATIO if baseline.ready else WARMUP_RATIO
        emit iff long > 0 and ratio >= threshold
                 and now - last_emitted_at > REARM_SECONDS

    Example:
        >>> detector = SpikeDetector()
        >>> baseline = BaselineSnapshot(long=10.0, std=1.0, samples=120.0, ready=True)
        >>> event = detector.evaluate(15, baseline, now)
        >>> event.ratio_to_baseline
        1.5

    Attributes:
        READY_RATIO: Threshold once the baseline is ready (1.4).
        WARMUP_RATIO: Threshold during warmup (1.8).
        REARM_SECONDS: Minimum seconds between events (20).
        HISTORY_SIZE: Events kept in history, newest first (20).
    """

    READY_RATIO: float = 1.4
    WARMUP_RATIO: float = 1.8
    REARM_SECONDS: float = 20.0
    HISTORY_SIZE: int = 20

    def __init__(
        self,
        ready_ratio: Optional[float] = None,
        warmup_ratio: Optional[float] = None,
        rearm_seconds: Optional[float] = None,
        history_size: Optional[int] = None,
    ) -> None:
        """
        Initialize the spike detector.

        Args:
            ready_ratio: Override READY_RATIO.
            warmup_ratio: Override WARMUP_RATIO.
            rearm_seconds: Override REARM_SECONDS.
            history_size: Override HISTORY_SIZE.
        """
        self.ready_ratio = ready_ratio if ready_ratio is not None else self.READY_RATIO
        self.warmup_ratio = warmup_ratio if warmup_ratio is not None else self.WARMUP_RATIO
        self.rearm_seconds = rearm_seconds if rearm_seconds is not None else self.REARM_SECONDS
        size = history_size if history_size is not None else self.HISTORY_SIZE

        self._history: Deque[SpikeEvent] = deque(maxlen=size)
        self._last_emitted_at: Optional[datetime] = None

    def evaluate(
        self,
        metric_value: float,
        baseline: BaselineSnapshot,
        now: datetime,
    ) -> Optional[SpikeEvent]:
        """
        Evaluate a metric value against its baseline.

        Args:
            metric_value: Current metric value.
            baseline: Baseline snapshot for the metric.
            now: Evaluation time.

        Returns:
            Optional[SpikeEvent]: The emitted event, or None.
        """
        long = baseline.long or 0.0
        if long <= 0:
            return None

        ratio = metric_value / long
        threshold = self.ready_ratio if baseline.ready else self.warmup_ratio
        if ratio < threshold:
            return None

        if self._last_emitted_at is not None:
            since_last = (now - self._last_emitted_at).total_seconds()
            if since_last <= self.rearm_seconds:
                return None

        event = SpikeEvent(
            id=f"spike-{int(now.timestamp() * 1000)}",
            timestamp=now,
            ratio_to_baseline=ratio,
            title="Message spike detected",
            detail=f"Velocity is {round(ratio * 100)}% of baseline.",
        )
        self._last_emitted_at = now
        self._history.appendleft(event)

        logger.info(
            "spike_detected",
            ratio=round(ratio, 3),
            threshold=threshold,
            baseline_ready=baseline.ready,
            value=metric_value,
            baseline_long=round(long, 3),
        )
        return event

    @property
    def history(self) -> List[SpikeEvent]:
        """Emitted spike events, newest first."""
        return list(self._history)

    @property
    def last_emitted_at(self) -> Optional[datetime]:
        """Time of the most recent spike event."""
        return self._last_emitted_at

    def reset(self) -> None:
        """Clear history and re-arm immediately."""
        self._history.clear()
        self._last_emitted_at = None

    def __repr__(self) -> str:
        """String representation of the detector."""
        return (
            f"SpikeDetector(ready_ratio={self.ready_ratio}, warmup_ratio={self.warmup_ratio}, "
            f"events={len(self._history)})"
        )
