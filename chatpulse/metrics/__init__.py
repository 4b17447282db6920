"""
Engagement metric calculators.

This module contains the rolling-window aggregator together with the
adaptive baseline tracker and the spike detector it composes.

Components:
    window: WindowAggregator producing AggregatedSnapshot per ingest
    baseline: BaselineTracker with dual-horizon EMAs and warmup guard
    spike: SpikeDetector with ratio thresholds and re-arm
"""

from chatpulse.metrics.baseline import BaselineAccumulator, BaselineTracker
from chatpulse.metrics.spike import SpikeDetector
from chatpulse.metrics.window import (
    METRIC_MESSAGE_RATE,
    METRIC_NEWCOMERS,
    METRIC_UNIQUE_CHATTERS,
    WindowAggregator,
    create_window_aggregator,
)

__all__: list[str] = [
    "BaselineAccumulator",
    "BaselineTracker",
    "SpikeDetector",
    "WindowAggregator",
    "create_window_aggregator",
    "METRIC_MESSAGE_RATE",
    "METRIC_UNIQUE_CHATTERS",
    "METRIC_NEWCOMERS",
]
