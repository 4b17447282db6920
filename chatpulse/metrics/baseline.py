"""
Dual-horizon exponential baseline tracker.

This module keeps, per metric, a short and a long exponential moving
average plus an exponentially weighted variance around the long average.
Observations arrive at irregular intervals, so smoothing factors are
derived from the elapsed time instead of a fixed sample count.

Key Safety Features:
    - ready=False during warmup (< 90 seconds observed)
    - ready=False while the long EMA sits near zero (flat channel protection)
    - Variance is clamped at zero
    - Update intervals are clamped from below so bursts of same-timestamp
      messages still move the averages

Formula:
    alpha_short = 1 - exp(-dt / tau_short)
    alpha_long = 1 - exp(-dt / tau_long)
    short += alpha_short * (value - short)
    delta = value - long
    long += alpha_long * delta
    variance = max(0, (1 - alpha_long) * variance + alpha_long * delta^2)

Classes:
    BaselineAccumulator: Per-metric running state
    BaselineTracker: Named accumulators with snapshot access
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional

import structlog

from chatpulse.models.metrics import BaselineSnapshot

logger = structlog.get_logger(__name__)


@dataclass
class BaselineAccumulator:
    """
    Running state for one metric's baseline.

    Attributes:
        short: Short-horizon EMA.
        long: Long-horizon EMA.
        variance: Exponentially weighted variance around long.
        initialized: True after the first observation.
        elapsed_seconds: Observed seconds, capped.
        ready_latched: True once the baseline has become ready.
    """

    short: float = 0.0
    long: float = 0.0
    variance: float = 0.0
    initialized: bool = False
    elapsed_seconds: float = 0.0
    ready_latched: bool = False


class BaselineTracker:
    """
    Adaptive dual-horizon baseline for named metrics.

    The short horizon follows the current pace of chat; the long horizon is
    the "normal" the rest of the system compares against. Readiness latches:
    once a metric's baseline is ready it stays ready until ``reset()``,
    even if the channel goes quiet and the long EMA decays toward zero.

    Example:
        >>> tracker = BaselineTracker()
        >>> tracker.update("message_rate", 12, dt_seconds=1.0)
        >>> tracker.snapshot("message_rate").long
        12.0
        >>> tracker.snapshot("message_rate").ready
        False

    Attributes:
        SHORT_TAU_SECONDS: Default short time constant (20 s).
        LONG_TAU_SECONDS: Default long time constant (180 s).
        READY_SECONDS: Observed time required for readiness (90 s).
        READY_MIN_LEVEL: Minimum |long| for readiness (0.1).
        MIN_DT_SECONDS: Lower clamp for dt (0.25 s).
    """

    SHORT_TAU_SECONDS: float = 20.0
    LONG_TAU_SECONDS: float = 180.0
    READY_SECONDS: float = 90.0
    READY_MIN_LEVEL: float = 0.1
    MIN_DT_SECONDS: float = 0.25
    ELAPSED_CAP_MULTIPLIER: float = 12.0

    def __init__(
        self,
        short_tau_seconds: Optional[float] = None,
        long_tau_seconds: Optional[float] = None,
        ready_seconds: Optional[float] = None,
        ready_min_level: Optional[float] = None,
        min_dt_seconds: Optional[float] = None,
        elapsed_cap_multiplier: Optional[float] = None,
    ) -> None:
        """
        Initialize the baseline tracker.

        Args:
            short_tau_seconds: Override SHORT_TAU_SECONDS.
            long_tau_seconds: Override LONG_TAU_SECONDS.
            ready_seconds: Override READY_SECONDS.
            ready_min_level: Override READY_MIN_LEVEL.
            min_dt_seconds: Override MIN_DT_SECONDS.
            elapsed_cap_multiplier: Override ELAPSED_CAP_MULTIPLIER.

        Raises:
            ValueError: If the short horizon is not shorter than the long one.
        """
        self.short_tau = short_tau_seconds if short_tau_seconds is not None else self.SHORT_TAU_SECONDS
        self.long_tau = long_tau_seconds if long_tau_seconds is not None else self.LONG_TAU_SECONDS
        self.ready_seconds = ready_seconds if ready_seconds is not None else self.READY_SECONDS
        self.ready_min_level = (
            ready_min_level if ready_min_level is not None else self.READY_MIN_LEVEL
        )
        self.min_dt = min_dt_seconds if min_dt_seconds is not None else self.MIN_DT_SECONDS
        cap_multiplier = (
            elapsed_cap_multiplier
            if elapsed_cap_multiplier is not None
            else self.ELAPSED_CAP_MULTIPLIER
        )

        if self.short_tau >= self.long_tau:
            raise ValueError(
                f"short_tau ({self.short_tau}) must be < long_tau ({self.long_tau})"
            )

        self.elapsed_cap = self.long_tau * cap_multiplier
        self._accumulators: Dict[str, BaselineAccumulator] = {}

    def update(self, metric_name: str, value: float, dt_seconds: float) -> None:
        """
        Fold a new observation into a metric's baseline.

        The first observation seeds both averages with ``value`` and zero
        variance; ``dt_seconds`` is ignored for it.

        Args:
            metric_name: Metric identifier (e.g. "message_rate").
            value: Observed value.
            dt_seconds: Seconds since the previous observation.
        """
        acc = self._accumulators.get(metric_name)
        if acc is None:
            acc = BaselineAccumulator()
            self._accumulators[metric_name] = acc

        value = float(value)

        if not acc.initialized:
            acc.short = value
            acc.long = value
            acc.variance = 0.0
            acc.initialized = True
            self._refresh_ready(metric_name, acc)
            return

        dt = max(self.min_dt, float(dt_seconds))
        alpha_short = 1.0 - math.exp(-dt / self.short_tau)
        alpha_long = 1.0 - math.exp(-dt / self.long_tau)

        acc.short += alpha_short * (value - acc.short)
        delta = value - acc.long
        acc.long += alpha_long * delta
        acc.variance = max(
            0.0, (1.0 - alpha_long) * acc.variance + alpha_long * delta * delta
        )
        acc.elapsed_seconds = min(self.elapsed_cap, acc.elapsed_seconds + dt)
        self._refresh_ready(metric_name, acc)

    def _refresh_ready(self, metric_name: str, acc: BaselineAccumulator) -> None:
        """Latch readiness once warmup and level requirements are met."""
        if acc.ready_latched:
            return
        if acc.elapsed_seconds >= self.ready_seconds and abs(acc.long) > self.ready_min_level:
            acc.ready_latched = True
            logger.info(
                "baseline_ready",
                metric=metric_name,
                long=round(acc.long, 4),
                elapsed_seconds=round(acc.elapsed_seconds, 2),
            )

    def snapshot(self, metric_name: str) -> BaselineSnapshot:
        """
        Get the current baseline for a metric.

        Args:
            metric_name: Metric identifier.

        Returns:
            BaselineSnapshot: Empty snapshot if the metric was never updated.
        """
        acc = self._accumulators.get(metric_name)
        if acc is None or not acc.initialized:
            return BaselineSnapshot.empty()

        return BaselineSnapshot(
            short=acc.short,
            long=acc.long,
            std=math.sqrt(acc.variance),
            samples=acc.elapsed_seconds,
            ready=acc.ready_latched,
        )

    def reset(self, reason: Optional[str] = None) -> None:
        """
        Clear every accumulator.

        Args:
            reason: Optional reason for reset (for logging).
        """
        count = len(self._accumulators)
        self._accumulators.clear()
        logger.debug("baseline_reset", metrics_cleared=count, reason=reason)

    @property
    def metric_names(self) -> list:
        """Names of metrics with a baseline."""
        return list(self._accumulators.keys())

    def __repr__(self) -> str:
        """String representation of the tracker."""
        return (
            f"BaselineTracker(short_tau={self.short_tau}, long_tau={self.long_tau}, "
            f"metrics={self.metric_names})"
        )
