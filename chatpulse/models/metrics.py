"""
Engagement metrics data models.

This module defines the structures produced by the window aggregator,
baseline tracker and spike detector.

Models:
    TokenCount: Word frequency entry
    EmoteCount: Emote frequency entry
    BaselineSnapshot: Point-in-time view of one metric's baseline
    BaselineSet: Baseline snapshots for the three tracked metrics
    SpikeEvent: Message-rate spike relative to baseline
    AggregatedSnapshot: Complete per-ingest metrics package
    TimelinePoint: Velocity sample for charting
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class TokenCount(BaseModel):
    """Word frequency over the retention window."""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str
    count: int = Field(..., ge=1)


class EmoteCount(BaseModel):
    """Emote frequency over the retention window."""

    model_config = {"frozen": True, "extra": "forbid"}

    code: str
    id: Optional[str] = None
    count: int = Field(..., ge=1)


class BaselineSnapshot(BaseModel):
    """
    Point-in-time view of a metric's adaptive baseline.

    Attributes:
        short: Short-horizon EMA, None before the first update.
        long: Long-horizon EMA, None before the first update.
        std: Standard deviation around the long EMA.
        samples: Accumulated observation time in seconds.
        ready: True once the baseline is trustworthy.

    Note:
        ``ready`` is False during warmup (less than 90 seconds observed) or
        while the long EMA sits near zero. Once ready, the snapshot stays
        ready until the tracker is reset.

    Example:
        >>> snap = BaselineSnapshot(short=12.0, long=10.0, std=1.5, samples=120.0, ready=True)
    """

    model_config = {"frozen": True, "extra": "forbid"}

    short: Optional[float] = Field(default=None, description="Short-horizon EMA")
    long: Optional[float] = Field(default=None, description="Long-horizon EMA")
    std: Optional[float] = Field(default=None, description="Std dev around long EMA", ge=0.0)
    samples: float = Field(default=0.0, description="Observed seconds", ge=0.0)
    ready: bool = Field(default=False, description="Baseline is trustworthy")

    @classmethod
    def empty(cls) -> "BaselineSnapshot":
        """Snapshot for a metric that has never been updated."""
        return cls()


class BaselineSet(BaseModel):
    """Baseline snapshots for the tracked engagement metrics."""

    model_config = {"frozen": True, "extra": "forbid"}

    message_rate: BaselineSnapshot = Field(default_factory=BaselineSnapshot)
    unique_chatters: BaselineSnapshot = Field(default_factory=BaselineSnapshot)
    newcomers: BaselineSnapshot = Field(default_factory=BaselineSnapshot)


class SpikeEvent(BaseModel):
    """
    Message-rate spike relative to the long baseline.

    Example:
        >>> SpikeEvent(
        ...     id="spike-1735689600000",
        ...     timestamp=now,
        ...     ratio_to_baseline=1.5,
        ...     title="Message spike detected",
        ...     detail="Velocity is 150% of baseline.",
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    id: str
    timestamp: datetime
    ratio_to_baseline: float = Field(..., ge=0.0)
    title: str
    detail: str


class AggregatedSnapshot(BaseModel):
    """
    Engagement metrics computed on a single ingest.

    Every field is derived from the current window buffer; nothing here is
    an incrementally maintained counter.

    Attributes:
        timestamp: Timestamp of the ingested record.
        message_rate: Messages in the trailing 60 seconds.
        trend_percent: Percent change of message_rate vs the previous ingest.
        sentiment: Mean sentiment over the trailing 5 minutes.
        unique_chatters: Distinct authors over the trailing 10 minutes.
        newcomers: Authors first seen within the trailing 10 minutes.
        top_tokens: Most frequent words.
        top_emotes: Most frequent emotes.
        baseline: Baselines for message_rate, unique_chatters, newcomers.
        spike: Spike emitted on this ingest, if any.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    timestamp: datetime
    message_rate: int = Field(..., ge=0)
    trend_percent: float = 0.0
    sentiment: float = Field(..., ge=-1.0, le=1.0)
    unique_chatters: int = Field(..., ge=0)
    newcomers: int = Field(..., ge=0)
    top_tokens: List[TokenCount] = Field(default_factory=list)
    top_emotes: List[EmoteCount] = Field(default_factory=list)
    baseline: BaselineSet = Field(default_factory=BaselineSet)
    spike: Optional[SpikeEvent] = None

    @property
    def has_spike(self) -> bool:
        """Check if a spike was emitted on this ingest."""
        return self.spike is not None


class TimelinePoint(BaseModel):
    """Velocity sample for charting."""

    model_config = {"frozen": True, "extra": "forbid"}

    timestamp: datetime
    velocity: int = Field(..., ge=0)
