"""
Per-channel processing pipeline.

A ChannelProcessor owns every piece of mutable state for one channel (the
ChannelState) and turns inbound ChatEvents into snapshots and alerts:

    ChatEvent
      -> tone (pre-tagged, or ToneResolver with recent context)
      -> ChatRecord (tokens, emotes, sentiment, hashed author)
      -> WindowAggregator.ingest -> AggregatedSnapshot
      -> AlertEngine.evaluate over the recent batch -> alerts

Time inside a channel is event time: the newest message timestamp. Timer
ticks advance it by the wall-clock time elapsed since that message was
processed, so replays and live streams behave the same.

Only one task may drive a processor; the supervisor guarantees that.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, List, Optional

import structlog

from chatpulse.classification.heuristics import summarize_mood
from chatpulse.classification.resolver import ToneResolver
from chatpulse.config.models import AlertsConfig, FeaturesConfig
from chatpulse.detection.engine import AlertEngine
from chatpulse.exceptions import InvalidRecordError
from chatpulse.ingest.records import RecordBuilder
from chatpulse.metrics.window import WindowAggregator, create_window_aggregator
from chatpulse.models.alerts import AlertMetrics, EmittedAlert
from chatpulse.models.chat import BatchMessage, ChatEvent, MoodSummary, ToneResult
from chatpulse.models.metrics import AggregatedSnapshot

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ChannelState:
    """
    All mutable state for one channel.

    Attributes:
        channel: Channel login.
        aggregator: Rolling-window metrics.
        engine: Alert engine.
        recent: Recent messages handed to the alert engine.
        tone_context: Recent message texts used as classifier context.
        session_started_at: Event time of the first accepted message.
        last_event_at: Event time of the newest accepted message.
        last_event_wall: Wall-clock time that message was processed.
        last_snapshot: Snapshot from the newest ingest.
        processed: Accepted events this session.
        rejected: Rejected events this session.
    """

    channel: str
    aggregator: WindowAggregator
    engine: AlertEngine
    recent: Deque[BatchMessage]
    tone_context: Deque[str]
    session_started_at: Optional[datetime] = None
    last_event_at: Optional[datetime] = None
    last_event_wall: Optional[datetime] = None
    last_snapshot: Optional[AggregatedSnapshot] = None
    processed: int = 0
    rejected: int = 0

    def session_age(self, now: datetime) -> float:
        if self.session_started_at is None:
            return 0.0
        return max(0.0, (now - self.session_started_at).total_seconds())

    def clear(self) -> None:
        """Drop everything accumulated this session."""
        self.aggregator.reset(reason="channel_reset")
        self.engine.reset()
        self.recent.clear()
        self.tone_context.clear()
        self.session_started_at = None
        self.last_event_at = None
        self.last_event_wall = None
        self.last_snapshot = None
        self.processed = 0
        self.rejected = 0


@dataclass
class ChannelUpdate:
    """Output of one processing step."""

    channel: str
    timestamp: datetime
    snapshot: Optional[AggregatedSnapshot] = None
    alerts: List[EmittedAlert] = field(default_factory=list)
    presented: List[EmittedAlert] = field(default_factory=list)


class ChannelProcessor:
    """
    Drives the aggregator and alert engine for a single channel.

    Example:
        >>> processor = ChannelProcessor("somechannel", resolver=ToneResolver())
        >>> update = await processor.handle_event(event)
        >>> if update and update.alerts:
        ...     print(update.alerts[0].message)
    """

    def __init__(
        self,
        channel: str,
        resolver: ToneResolver,
        features: Optional[FeaturesConfig] = None,
        alerts: Optional[AlertsConfig] = None,
        builder: Optional[RecordBuilder] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the processor.

        Args:
            channel: Channel login (lowercase).
            resolver: Tone resolver (may be shared across channels).
            features: Window, baseline, spike and pipeline settings.
            alerts: Alert engine settings.
            builder: Record builder.
            clock: Wall-clock source used for timer ticks.
        """
        self.features = features or FeaturesConfig()
        self.alerts_config = alerts or AlertsConfig()
        self.resolver = resolver
        self.builder = builder or RecordBuilder()
        self._clock = clock

        pipeline = self.features.pipeline
        self.state = ChannelState(
            channel=channel.lower(),
            aggregator=create_window_aggregator(self.features),
            engine=AlertEngine(config=self.alerts_config),
            recent=deque(maxlen=pipeline.batch_size),
            tone_context=deque(maxlen=pipeline.tone_context_size),
        )
        self._log = logger.bind(channel=self.state.channel)

    @property
    def channel(self) -> str:
        return self.state.channel

    async def handle_event(self, event: ChatEvent) -> Optional[ChannelUpdate]:
        """
        Process one inbound event.

        Args:
            event: Validated chat event for this channel.

        Returns:
            Optional[ChannelUpdate]: Snapshot and alerts, or None if the
                event was rejected. A rejected event leaves all state as it
                was.
        """
        state = self.state
        if event.channel != state.channel:
            state.rejected += 1
            self._log.warning("record_rejected", event_id=event.id, reason="channel_mismatch")
            return None

        tone = await self._resolve_tone(event)

        try:
            record = self.builder.build(event, tone)
        except InvalidRecordError as e:
            state.rejected += 1
            self._log.warning("record_rejected", event_id=e.event_id, error=str(e))
            return None

        snapshot = state.aggregator.ingest(record)
        now = state.aggregator.latest_timestamp or record.timestamp

        if state.session_started_at is None or record.timestamp < state.session_started_at:
            state.session_started_at = record.timestamp
        state.last_event_at = now
        state.last_event_wall = self._clock()
        state.last_snapshot = snapshot
        state.processed += 1
        state.recent.append(BatchMessage.from_record(record))
        state.tone_context.append(record.text)

        metrics = AlertMetrics(
            message_rate=snapshot.message_rate,
            unique_chatters=snapshot.unique_chatters,
            newcomers=snapshot.newcomers,
            sentiment=snapshot.sentiment,
            trend_percent=snapshot.trend_percent,
        )
        alerts = state.engine.evaluate(
            recent_messages=list(state.recent),
            metrics=metrics,
            baseline=snapshot.baseline,
            session_age_seconds=state.session_age(now),
            now=now,
        )
        return ChannelUpdate(
            channel=state.channel,
            timestamp=now,
            snapshot=snapshot,
            alerts=alerts,
            presented=state.engine.presented(now),
        )

    async def _resolve_tone(self, event: ChatEvent) -> ToneResult:
        if event.tone is not None:
            confidence = event.tone_confidence
            if confidence is None:
                confidence = self.alerts_config.default_tone_confidence
            return ToneResult(tone=event.tone, confidence=confidence, rationale="Pre-classified")
        return await self.resolver.classify(event.text, event.author, list(self.state.tone_context))

    def session_now(self, wall_now: Optional[datetime] = None) -> Optional[datetime]:
        """
        Event-time clock for the channel.

        Returns:
            Optional[datetime]: Newest event time advanced by the wall time
                since it was processed, or None before the first event.
        """
        state = self.state
        if state.last_event_at is None or state.last_event_wall is None:
            return None
        wall_now = wall_now or self._clock()
        elapsed = max(0.0, (wall_now - state.last_event_wall).total_seconds())
        return state.last_event_at + timedelta(seconds=elapsed)

    def tick(self, now: Optional[datetime] = None) -> Optional[ChannelUpdate]:
        """
        Evaluate alerts without a new message.

        Args:
            now: Event time to evaluate at (defaults to the channel clock).

        Returns:
            Optional[ChannelUpdate]: Alerts emitted by the tick, or None
                before the first event.
        """
        state = self.state
        now = now or self.session_now()
        if now is None:
            return None

        metrics = state.aggregator.measure(now)
        alerts = state.engine.evaluate(
            recent_messages=list(state.recent),
            metrics=metrics,
            baseline=state.aggregator.baselines(),
            session_age_seconds=state.session_age(now),
            now=now,
        )
        return ChannelUpdate(
            channel=state.channel,
            timestamp=now,
            alerts=alerts,
            presented=state.engine.presented(now),
        )

    def mood(self) -> MoodSummary:
        """One-line summary of the recent chat mood."""
        return summarize_mood(
            [(message.author, message.text, message.tone) for message in self.state.recent]
        )

    def reset(self) -> None:
        """Start a new session: clear all per-channel state."""
        processed, rejected = self.state.processed, self.state.rejected
        self.state.clear()
        self._log.info("channel_reset", processed=processed, rejected=rejected)

    def __repr__(self) -> str:
        return (
            f"ChannelProcessor(channel={self.state.channel!r}, "
            f"processed={self.state.processed}, rejected={self.state.rejected})"
        )
