"""
Window Aggregator for chat engagement metrics.

This module keeps the in-memory window of recent chat records for one
channel and derives point-in-time metrics from it on every ingest. It
composes a BaselineTracker for the adaptive baselines and a SpikeDetector
for message-rate spikes, and returns everything as one AggregatedSnapshot.

Every metric is recomputed from the buffer on each ingest; the aggregator
keeps no incrementally maintained counters that could drift.

Classes:
    WindowAggregator: Rolling-window metrics with baseline and spike tracking
"""

import bisect
from collections import deque
from datetime import datetime, timedelta
from typing import Deque, Dict, List, Optional, Set, Tuple

import structlog

from chatpulse.config.models import BaselineConfig, FeaturesConfig, SpikeConfig, WindowConfig
from chatpulse.ingest.emotes import GLOBAL_EMOTES
from chatpulse.metrics.baseline import BaselineTracker
from chatpulse.metrics.spike import SpikeDetector
from chatpulse.models.alerts import AlertMetrics
from chatpulse.models.chat import ChatRecord
from chatpulse.models.metrics import (
    AggregatedSnapshot,
    BaselineSet,
    EmoteCount,
    SpikeEvent,
    TimelinePoint,
    TokenCount,
)

logger = structlog.get_logger(__name__)

METRIC_MESSAGE_RATE = "message_rate"
METRIC_UNIQUE_CHATTERS = "unique_chatters"
METRIC_NEWCOMERS = "newcomers"


class WindowAggregator:
    """
    Rolling-window engagement metrics for a single channel.

    On each ingest the aggregator:
    1. Inserts the record and evicts records older than the retention
       window relative to the newest timestamp seen.
    2. Derives message rate, mean sentiment, unique chatters, newcomers,
       top tokens and top emotes from the buffer.
    3. Feeds message rate, unique chatters and newcomers to the baseline
       tracker, then evaluates the spike detector on message rate.

    Records may arrive slightly out of order. The reference time for every
    window is the newest timestamp ingested so far, so a late record never
    moves the windows backwards.

    Example:
        >>> aggregator = WindowAggregator()
        >>> snapshot = aggregator.ingest(record)
        >>> print(f"Rate: {snapshot.message_rate}/min, chatters: {snapshot.unique_chatters}")
        >>> if snapshot.spike:
        ...     print(snapshot.spike.detail)

    Attributes:
        window: Window settings.
        baseline: BaselineTracker instance.
        spike_detector: SpikeDetector instance.
    """

    def __init__(
        self,
        window_config: Optional[WindowConfig] = None,
        baseline_config: Optional[BaselineConfig] = None,
        spike_config: Optional[SpikeConfig] = None,
    ) -> None:
        """
        Initialize the window aggregator.

        Args:
            window_config: Window settings (defaults when omitted).
            baseline_config: Baseline settings (defaults when omitted).
            spike_config: Spike detector settings (defaults when omitted).
        """
        self.window = window_config or WindowConfig()
        baseline_config = baseline_config or BaselineConfig()
        spike_config = spike_config or SpikeConfig()

        self.baseline = BaselineTracker(
            short_tau_seconds=baseline_config.short_tau_seconds,
            long_tau_seconds=baseline_config.long_tau_seconds,
            ready_seconds=baseline_config.ready_seconds,
            ready_min_level=baseline_config.ready_min_level,
            min_dt_seconds=baseline_config.min_dt_seconds,
            elapsed_cap_multiplier=baseline_config.elapsed_cap_multiplier,
        )
        self.spike_detector = SpikeDetector(
            ready_ratio=spike_config.ready_ratio,
            warmup_ratio=spike_config.warmup_ratio,
            rearm_seconds=spike_config.rearm_seconds,
            history_size=spike_config.history_size,
        )

        # Buffer sorted by timestamp; parallel key list for bisect
        self._records: List[ChatRecord] = []
        self._record_times: List[datetime] = []
        self._first_seen: Dict[str, datetime] = {}
        self._latest: Optional[datetime] = None
        self._previous_ingest_at: Optional[datetime] = None
        self._previous_rate: Optional[int] = None
        self._timeline: Deque[TimelinePoint] = deque(maxlen=self.window.timeline_size)

    def ingest(self, record: ChatRecord) -> AggregatedSnapshot:
        """
        Ingest a chat record and compute the current snapshot.

        Args:
            record: Validated chat record.

        Returns:
            AggregatedSnapshot: Metrics, baselines and optional spike.
        """
        self._insert(record)

        reference = self._latest if self._latest is not None else record.timestamp
        self._evict(reference)

        message_rate = self._message_rate(reference)
        sentiment = self._mean_sentiment(reference)
        unique_chatters = self._unique_chatters()
        newcomers = self._newcomers(reference)
        top_tokens, top_emotes = self._rankings()

        trend_percent = 0.0
        if self._previous_rate:
            trend_percent = (message_rate - self._previous_rate) / self._previous_rate * 100
        self._previous_rate = message_rate

        if self._previous_ingest_at is None:
            dt = 0.0
        else:
            dt = max(0.0, (reference - self._previous_ingest_at).total_seconds())
        self._previous_ingest_at = reference

        self.baseline.update(METRIC_MESSAGE_RATE, message_rate, dt)
        self.baseline.update(METRIC_UNIQUE_CHATTERS, unique_chatters, dt)
        self.baseline.update(METRIC_NEWCOMERS, newcomers, dt)

        rate_baseline = self.baseline.snapshot(METRIC_MESSAGE_RATE)
        spike: Optional[SpikeEvent] = self.spike_detector.evaluate(
            message_rate, rate_baseline, reference
        )

        self._timeline.append(TimelinePoint(timestamp=reference, velocity=message_rate))

        return AggregatedSnapshot(
            timestamp=record.timestamp,
            message_rate=message_rate,
            trend_percent=trend_percent,
            sentiment=sentiment,
            unique_chatters=unique_chatters,
            newcomers=newcomers,
            top_tokens=top_tokens,
            top_emotes=top_emotes,
            baseline=self.baselines(),
            spike=spike,
        )

    def _insert(self, record: ChatRecord) -> None:
        """Insert a record keeping the buffer ordered by timestamp."""
        ts = record.timestamp
        if not self._record_times or ts >= self._record_times[-1]:
            self._records.append(record)
            self._record_times.append(ts)
        else:
            index = bisect.bisect_right(self._record_times, ts)
            self._records.insert(index, record)
            self._record_times.insert(index, ts)
            logger.debug(
                "record_out_of_order",
                record_id=record.id,
                lag_seconds=(self._record_times[-1] - ts).total_seconds(),
            )

        seen = self._first_seen.get(record.author_key)
        if seen is None or ts < seen:
            self._first_seen[record.author_key] = ts

        if self._latest is None or ts > self._latest:
            self._latest = ts

    def _evict(self, reference: datetime) -> None:
        """Drop records older than the retention window."""
        cutoff = reference - timedelta(seconds=self.window.retention_seconds)
        index = bisect.bisect_left(self._record_times, cutoff)
        if index:
            del self._records[:index]
            del self._record_times[:index]

    def _since(self, reference: datetime, seconds: float) -> List[ChatRecord]:
        """Records with ``reference - ts <= seconds``."""
        cutoff = reference - timedelta(seconds=seconds)
        index = bisect.bisect_left(self._record_times, cutoff)
        return self._records[index:]

    def _message_rate(self, reference: datetime) -> int:
        return len(self._since(reference, self.window.rate_window_seconds))

    def _mean_sentiment(self, reference: datetime) -> float:
        recent = self._since(reference, self.window.sentiment_window_seconds)
        total = sum(r.sentiment for r in recent)
        mean = total / (len(recent) or 1)
        return max(-1.0, min(1.0, mean))

    def _unique_chatters(self) -> int:
        return len({r.author_key for r in self._records})

    def _newcomers(self, reference: datetime) -> int:
        cutoff = reference - timedelta(seconds=self.window.retention_seconds)
        return sum(1 for first_seen in self._first_seen.values() if first_seen >= cutoff)

    def _rankings(self) -> Tuple[List[TokenCount], List[EmoteCount]]:
        """
        Rank tokens and emotes over the retention window.

        Emotes are keyed by id when known, otherwise by code, lowercase.
        Ties keep first-encountered order. Tokens matching a selected top
        emote's code or id are left out of the token ranking.

        Returns:
            Tuple of (top tokens, top emotes).
        """
        token_counts: Dict[str, int] = {}
        emote_counts: Dict[str, int] = {}
        emote_labels: Dict[str, Tuple[str, Optional[str]]] = {}

        for record in self._records:
            message_emotes: Set[str] = {e.code.lower() for e in record.emotes}
            for token in record.tokens:
                if token in GLOBAL_EMOTES or token in message_emotes:
                    continue
                token_counts[token] = token_counts.get(token, 0) + 1
            for emote in record.emotes:
                key = emote.key
                emote_counts[key] = emote_counts.get(key, 0) + 1
                emote_labels.setdefault(key, (emote.code, emote.id))

        top_n = self.window.top_n
        ranked_emotes = sorted(emote_counts.items(), key=lambda item: -item[1])[:top_n]
        top_emotes = [
            EmoteCount(code=emote_labels[key][0], id=emote_labels[key][1], count=count)
            for key, count in ranked_emotes
        ]

        excluded: Set[str] = set()
        for emote in top_emotes:
            excluded.add(emote.code.lower())
            if emote.id:
                excluded.add(emote.id.lower())

        ranked_tokens = sorted(
            ((name, count) for name, count in token_counts.items() if name not in excluded),
            key=lambda item: -item[1],
        )[:top_n]
        top_tokens = [TokenCount(name=name, count=count) for name, count in ranked_tokens]

        return top_tokens, top_emotes

    def measure(self, now: datetime) -> AlertMetrics:
        """
        Point-in-time metrics at ``now`` without ingesting anything.

        Used for timer ticks on a quiet channel: windows are measured from
        ``now`` so the rate decays to zero as time passes. The buffer,
        baselines and spike state are left untouched.
        """
        reference = max(now, self._latest) if self._latest is not None else now
        retained = self._since(reference, self.window.retention_seconds)
        return AlertMetrics(
            message_rate=self._message_rate(reference),
            unique_chatters=len({r.author_key for r in retained}),
            newcomers=self._newcomers(reference),
            sentiment=self._mean_sentiment(reference),
            trend_percent=0.0,
        )

    def baselines(self) -> BaselineSet:
        """Current baselines for all tracked metrics."""
        return BaselineSet(
            message_rate=self.baseline.snapshot(METRIC_MESSAGE_RATE),
            unique_chatters=self.baseline.snapshot(METRIC_UNIQUE_CHATTERS),
            newcomers=self.baseline.snapshot(METRIC_NEWCOMERS),
        )

    def timeline_point(self, timestamp: Optional[datetime] = None) -> TimelinePoint:
        """
        Velocity sample for charting.

        Args:
            timestamp: Time to stamp the point with (defaults to latest ingest).

        Returns:
            TimelinePoint: Last computed message rate.
        """
        stamp = timestamp or self._latest
        if stamp is None:
            raise ValueError("timeline_point requires a timestamp before the first ingest")
        return TimelinePoint(timestamp=stamp, velocity=self._previous_rate or 0)

    @property
    def timeline(self) -> List[TimelinePoint]:
        """Recent velocity samples, oldest first."""
        return list(self._timeline)

    @property
    def records(self) -> List[ChatRecord]:
        """Records currently inside the retention window, oldest first."""
        return list(self._records)

    @property
    def latest_timestamp(self) -> Optional[datetime]:
        """Newest record timestamp ingested."""
        return self._latest

    def first_seen(self, author_key: str) -> Optional[datetime]:
        """First timestamp an author was seen this session."""
        return self._first_seen.get(author_key)

    def reset(self, reason: Optional[str] = None) -> None:
        """
        Clear the buffer, first-seen map, baselines and spike history.

        Args:
            reason: Optional reason for reset (for logging).

        Example:
            >>> aggregator.reset(reason="session ended")
        """
        self._records.clear()
        self._record_times.clear()
        self._first_seen.clear()
        self._latest = None
        self._previous_ingest_at = None
        self._previous_rate = None
        self._timeline.clear()
        self.baseline.reset(reason)
        self.spike_detector.reset()
        logger.info("window_aggregator_reset", reason=reason)

    def __repr__(self) -> str:
        """String representation of the aggregator."""
        return (
            f"WindowAggregator(records={len(self._records)}, "
            f"authors_seen={len(self._first_seen)}, latest={self._latest})"
        )


def create_window_aggregator(features: Optional[FeaturesConfig] = None) -> WindowAggregator:
    """
    Factory function to create a WindowAggregator from features config.

    Args:
        features: Features configuration (defaults when omitted).

    Returns:
        WindowAggregator: A new aggregator instance.
    """
    features = features or FeaturesConfig()
    return WindowAggregator(
        window_config=features.window,
        baseline_config=features.baseline,
        spike_config=features.spike,
    )
