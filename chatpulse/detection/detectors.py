"""
Detector battery for the alert engine.

Each detector inspects a DetectionContext (classified batch, tone summary,
metrics, baselines and derived z-scores) and returns at most one
CandidateAlert. Detectors are pure: cooldowns, dedup and budgeting happen in
the engine.

Detectors:
    detect_newcomers: First-time chatters (fresh, wave or rolling)
    detect_returning_audience: Many familiar names active
    detect_audience_summary: Pulse summary for very large audiences
    detect_velocity_surge: Message rate well above baseline
    detect_hype / detect_laughter / detect_support: Positive tone spikes
    detect_constructive: Suggestions and feedback
    detect_spam: Spam in the batch
    detect_tone_dip: Toxic or negative turn, or cooling momentum
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence

from chatpulse.config.models import AlertsConfig
from chatpulse.detection.authors import AuthorMemory
from chatpulse.detection.thresholds import (
    dynamic_cooldown,
    min_unique_for_surge,
    newcomer_ratio_threshold,
    strong_surge_z_threshold,
    surge_percent_threshold,
    surge_z_threshold,
)
from chatpulse.models.alerts import (
    AlertMetrics,
    AlertPriority,
    AlertTone,
    CandidateAlert,
    CooldownKey,
    DetectorKind,
)
from chatpulse.models.chat import (
    CONSTRUCTIVE_TONES,
    HUMOR_TONES,
    HYPE_TONES,
    NEGATIVE_TONES,
    POSITIVE_TONES,
    SPAM_TONES,
    SUPPORT_TONES,
    TOXIC_TONES,
    Tone,
)
from chatpulse.models.metrics import BaselineSet, BaselineSnapshot

STD_FLOOR = 0.25
PERCENT_MIN_BASELINE = 0.1

FRESH_LIST_LIMIT = 5
WAVE_NAME_LIMIT = 3
RETURNING_MIN_AUTHORS = 15


@dataclass(frozen=True)
class ClassifiedMessage:
    """Batch message with a resolved tone."""

    author: str
    text: str
    timestamp: datetime
    tone: Tone
    confidence: float


@dataclass
class ToneSummary:
    """
    Tone counts over a classified batch.

    Attributes:
        counts: Messages per tone over the whole batch.
        recent_counts: Messages per tone over the most recent messages.
        latest_by_tone: Timestamp of the newest message of each tone.
        latest_tone: Tone of the newest message.
        total: Messages in the batch.
    """

    counts: Dict[Tone, int] = field(default_factory=dict)
    recent_counts: Dict[Tone, int] = field(default_factory=dict)
    latest_by_tone: Dict[Tone, datetime] = field(default_factory=dict)
    latest_tone: Optional[Tone] = None
    total: int = 0

    def count(self, tones: FrozenSet[Tone]) -> int:
        return sum(self.counts.get(tone, 0) for tone in tones)

    def recent(self, tones: FrozenSet[Tone]) -> int:
        return sum(self.recent_counts.get(tone, 0) for tone in tones)

    def latest(self, tones: FrozenSet[Tone]) -> Optional[datetime]:
        stamps = [self.latest_by_tone[tone] for tone in tones if tone in self.latest_by_tone]
        return max(stamps) if stamps else None

    def ratio(self, tones: FrozenSet[Tone]) -> float:
        return self.count(tones) / max(self.total, 1)


def summarize_tones(messages: Sequence[ClassifiedMessage], recent_window: int) -> ToneSummary:
    """
    Build a ToneSummary from messages sorted oldest first.

    Args:
        messages: Classified messages, oldest first.
        recent_window: Number of trailing messages counted as recent.
    """
    summary = ToneSummary(total=len(messages))
    for message in messages:
        summary.counts[message.tone] = summary.counts.get(message.tone, 0) + 1
        previous = summary.latest_by_tone.get(message.tone)
        if previous is None or message.timestamp >= previous:
            summary.latest_by_tone[message.tone] = message.timestamp
    for message in messages[-recent_window:]:
        summary.recent_counts[message.tone] = summary.recent_counts.get(message.tone, 0) + 1
    if messages:
        summary.latest_tone = messages[-1].tone
    return summary


def zscore(value: float, snapshot: BaselineSnapshot) -> Optional[float]:
    """Z-score of ``value`` against a ready baseline, std floored at 0.25."""
    if not snapshot.ready or snapshot.long is None:
        return None
    return (value - snapshot.long) / max(snapshot.std or 0.0, STD_FLOOR)


def delta_percent(value: float, snapshot: BaselineSnapshot) -> Optional[float]:
    """Percent deviation from a ready baseline whose level exceeds 0.1."""
    if not snapshot.ready or snapshot.long is None or abs(snapshot.long) <= PERCENT_MIN_BASELINE:
        return None
    return (value - snapshot.long) / abs(snapshot.long) * 100.0


@dataclass
class DetectionContext:
    """
    Everything a detector may look at for one evaluation cycle.

    Built by ``build_context``; derived values are computed once up front.
    """

    messages: List[ClassifiedMessage]
    tones: ToneSummary
    metrics: AlertMetrics
    baseline: BaselineSet
    session_age_seconds: float
    now: datetime
    latest_timestamp: datetime
    settings: AlertsConfig
    authors: AuthorMemory

    rate_ready: bool = False
    rate_z: Optional[float] = None
    rate_delta: Optional[float] = None
    unique_ready: bool = False
    unique_delta: Optional[float] = None
    newcomers_ready: bool = False
    newcomers_z: Optional[float] = None
    newcomers_delta: Optional[float] = None
    newcomer_ratio: float = 0.0
    newcomer_threshold: float = 0.0

    @property
    def unique(self) -> int:
        return self.metrics.unique_chatters

    @property
    def has_toxic(self) -> bool:
        return self.tones.count(TOXIC_TONES) > 0

    @property
    def has_critical(self) -> bool:
        return self.tones.count(NEGATIVE_TONES) - self.tones.count(TOXIC_TONES) > 0

    @property
    def recent_negative(self) -> int:
        return self.tones.recent(NEGATIVE_TONES)

    @property
    def latest_tone_negative(self) -> bool:
        return self.tones.latest_tone is not None and self.tones.latest_tone in NEGATIVE_TONES

    @property
    def latest_tone_positive(self) -> bool:
        return self.tones.latest_tone is not None and self.tones.latest_tone in POSITIVE_TONES

    @property
    def positive_mood_dominant(self) -> bool:
        positive_ratio = self.tones.ratio(POSITIVE_TONES)
        negative_ratio = self.tones.ratio(NEGATIVE_TONES)
        return (
            self.metrics.sentiment >= 0.2
            and positive_ratio >= max(0.5, negative_ratio * 1.5)
            and self.recent_negative == 0
            and not self.has_toxic
            and not self.has_critical
        )

    @property
    def allow_positive_lift(self) -> bool:
        if self.latest_tone_positive:
            return True
        return (
            self.tones.count(POSITIVE_TONES) > 0
            and not self.has_toxic
            and not self.has_critical
            and self.recent_negative == 0
            and not self.latest_tone_negative
        )

    def age_of(self, timestamp: Optional[datetime]) -> Optional[float]:
        """Seconds between ``timestamp`` and the newest batch message."""
        if timestamp is None:
            return None
        return (self.latest_timestamp - timestamp).total_seconds()

    def candidate(
        self,
        kind: DetectorKind,
        message: str,
        tone: AlertTone,
        priority: AlertPriority,
        cooldown_seconds: float,
        timestamp: Optional[datetime] = None,
        scope: Optional[str] = None,
    ) -> CandidateAlert:
        return CandidateAlert(
            key=CooldownKey(kind=kind, scope=scope),
            message=message,
            tone=tone,
            priority=priority,
            timestamp=timestamp or self.latest_timestamp,
            cooldown_seconds=cooldown_seconds,
        )

    def cooldown(self, base_seconds: float, intensity: Optional[float] = None) -> float:
        return dynamic_cooldown(base_seconds, intensity, self.settings.cooldowns.min_fraction)


def build_context(
    messages: List[ClassifiedMessage],
    metrics: AlertMetrics,
    baseline: BaselineSet,
    session_age_seconds: float,
    now: datetime,
    settings: AlertsConfig,
    authors: AuthorMemory,
) -> DetectionContext:
    """
    Build a DetectionContext and compute the derived values.

    Args:
        messages: Classified messages, oldest first.
        metrics: Current engagement metrics.
        baseline: Baselines for rate, unique chatters and newcomers.
        session_age_seconds: Seconds since the session started.
        now: Evaluation time.
        settings: Alert configuration.
        authors: Author memory from previous cycles.
    """
    ctx = DetectionContext(
        messages=messages,
        tones=summarize_tones(messages, settings.recent_window_messages),
        metrics=metrics,
        baseline=baseline,
        session_age_seconds=session_age_seconds,
        now=now,
        latest_timestamp=messages[-1].timestamp if messages else now,
        settings=settings,
        authors=authors,
    )

    ctx.rate_ready = baseline.message_rate.ready
    ctx.rate_z = zscore(metrics.message_rate, baseline.message_rate)
    ctx.rate_delta = delta_percent(metrics.message_rate, baseline.message_rate)
    ctx.unique_ready = baseline.unique_chatters.ready
    ctx.unique_delta = delta_percent(metrics.unique_chatters, baseline.unique_chatters)
    ctx.newcomers_ready = baseline.newcomers.ready
    ctx.newcomers_z = zscore(metrics.newcomers, baseline.newcomers)
    ctx.newcomers_delta = delta_percent(metrics.newcomers, baseline.newcomers)
    ctx.newcomer_ratio = metrics.newcomers / max(metrics.unique_chatters, 1)
    ctx.newcomer_threshold = newcomer_ratio_threshold(metrics.unique_chatters, ctx.newcomers_ready)
    return ctx


# =============================================================================
# AUDIENCE
# =============================================================================


def _unseen_authors(ctx: DetectionContext) -> Dict[str, ClassifiedMessage]:
    """Latest message of each batch author not in author memory, by lowercase name."""
    unseen: Dict[str, ClassifiedMessage] = {}
    for message in ctx.messages:
        key = message.author.strip().lower()
        if not key or ctx.authors.has_seen(key):
            continue
        current = unseen.get(key)
        if current is None or message.timestamp >= current.timestamp:
            unseen[key] = message
    return unseen


def detect_newcomers(ctx: DetectionContext) -> Optional[CandidateAlert]:
    """
    Greet first-time chatters.

    Fresh: unseen authors whose latest message is within the fresh window of
    the newest message; greets the newest by name and lists the others.
    Wave: newcomer share or z-score crosses its threshold.
    Rolling: an unseen author older than the fresh window.
    """
    settings = ctx.settings
    unseen = _unseen_authors(ctx)
    intensity = max(
        ctx.newcomers_z or 0.0,
        ctx.newcomer_ratio / max(ctx.newcomer_threshold, 0.01) - 1.0,
    )
    cooldown = ctx.cooldown(settings.cooldowns.newcomer_seconds, intensity)

    fresh = sorted(
        (
            message
            for message in unseen.values()
            if (ctx.latest_timestamp - message.timestamp).total_seconds()
            <= settings.fresh_chatter_seconds
        ),
        key=lambda m: m.timestamp,
        reverse=True,
    )
    if fresh and ctx.unique >= 2:
        anchor = fresh[0]
        others = [message.author for message in fresh[1:]]
        if others:
            listed = ", ".join(others[:FRESH_LIST_LIMIT])
            remaining = len(others) - FRESH_LIST_LIMIT
            suffix = f" Also new: {listed}"
            if remaining > 0:
                suffix += f" +{remaining} more"
            suffix += "."
        else:
            suffix = " They just sent their first message."

        if len(fresh) >= 6:
            priority = AlertPriority.HIGH
        elif len(fresh) >= 3:
            priority = AlertPriority.MEDIUM
        else:
            priority = AlertPriority.LOW

        return ctx.candidate(
            DetectorKind.NEW_CHATTER,
            f"Say hi to {anchor.author}!{suffix}",
            AlertTone.POSITIVE,
            priority,
            cooldown,
            timestamp=anchor.timestamp,
            scope=anchor.author.strip().lower(),
        )

    if ctx.newcomers_ready:
        wave = (ctx.newcomers_z or 0.0) >= 1.2 or ctx.newcomer_ratio >= ctx.newcomer_threshold
    else:
        wave = ctx.newcomer_ratio >= 0.3 or ctx.metrics.newcomers >= 5
    if ctx.unique >= 3 and wave:
        names = [message.author for message in unseen.values()][:WAVE_NAME_LIMIT]
        if names:
            message = f"New chatters arriving: {', '.join(names)}"
        else:
            message = "A wave of new chatters just joined."
        if ctx.newcomers_ready:
            high = (ctx.newcomers_z or 0.0) >= 2.0 or (ctx.newcomers_delta or 0.0) >= 120.0
        else:
            high = ctx.metrics.newcomers >= 10
        return ctx.candidate(
            DetectorKind.NEW_CHATTER,
            message,
            AlertTone.NEUTRAL,
            AlertPriority.HIGH if high else AlertPriority.MEDIUM,
            cooldown,
            scope="batch",
        )

    if unseen:
        first = next(iter(unseen.values()))
        return ctx.candidate(
            DetectorKind.NEW_CHATTER,
            f"{first.author} just hopped into chat for the first time.",
            AlertTone.POSITIVE,
            AlertPriority.LOW,
            settings.cooldowns.newcomer_seconds,
            timestamp=first.timestamp,
            scope=first.author.strip().lower(),
        )
    return None


def detect_returning_audience(ctx: DetectionContext) -> Optional[CandidateAlert]:
    distinct = len({message.author.strip().lower() for message in ctx.messages})
    if distinct < RETURNING_MIN_AUTHORS:
        return None
    if ctx.unique_ready:
        familiar = (ctx.unique_delta or 0.0) >= -15.0
    else:
        familiar = ctx.unique - distinct >= 5
    if not familiar:
        return None
    return ctx.candidate(
        DetectorKind.RETURNING_AUDIENCE,
        "Lots of familiar names are active—shout them out.",
        AlertTone.NEUTRAL,
        AlertPriority.LOW,
        ctx.cooldown(ctx.settings.cooldowns.returning_seconds, abs(ctx.unique_delta or 0.0) / 25.0),
    )


def detect_audience_summary(ctx: DetectionContext) -> Optional[CandidateAlert]:
    if ctx.unique < ctx.settings.summary_min_chatters:
        return None
    parts = []
    if ctx.rate_delta is not None:
        parts.append(f"{round(ctx.rate_delta)}% vs typical pace")
    if ctx.metrics.newcomers > 0:
        parts.append(f"{ctx.metrics.newcomers} newcomers")
    if ctx.metrics.sentiment != 0:
        parts.append(f"sentiment {round(ctx.metrics.sentiment * 100)}%")
    message = "Pulse summary: " + (" · ".join(parts) if parts else "chat steady.")
    return ctx.candidate(
        DetectorKind.AUDIENCE_SUMMARY,
        message,
        AlertTone.NEUTRAL,
        AlertPriority.MEDIUM,
        ctx.cooldown(
            ctx.settings.cooldowns.summary_seconds,
            max(ctx.rate_z or 0.0, ctx.newcomer_ratio),
        ),
    )


# =============================================================================
# VELOCITY
# =============================================================================


def detect_velocity_surge(ctx: DetectionContext) -> Optional[CandidateAlert]:
    """
    Message rate well above the baseline (or the warm-up floors).

    The variant depends on the mood: sour chat gets a negative alert,
    positive chat a lean-in alert, anything else a neutral monitor alert.
    """
    ready = ctx.rate_ready
    unique = ctx.unique
    rate = ctx.metrics.message_rate
    trend = ctx.metrics.trend_percent
    z = ctx.rate_z or 0.0
    delta = ctx.rate_delta or 0.0
    surge_pct = surge_percent_threshold(unique, ready)

    if ctx.session_age_seconds < ctx.settings.min_session_seconds:
        return None
    if unique < min_unique_for_surge(ready):
        return None
    if ready:
        eligible = z >= surge_z_threshold(unique, ready) or delta >= surge_pct
        strong = z >= strong_surge_z_threshold(unique, ready) or delta >= 2 * surge_pct
    else:
        eligible = rate >= 20 or trend >= 15
        strong = rate >= 60 or trend >= 35
    if not eligible:
        return None

    cooldowns = ctx.settings.cooldowns
    intensity = max(z, delta / max(surge_pct, 1.0))
    base = cooldowns.high_priority_seconds if strong else cooldowns.default_seconds

    negative = (
        ctx.has_toxic
        or ctx.has_critical
        or ctx.recent_negative >= 1
        or ctx.latest_tone_negative
    )
    if negative:
        high = strong or ctx.recent_negative >= 4
        return ctx.candidate(
            DetectorKind.VELOCITY_SURGE,
            "Chat is spiking but the mood is sour—acknowledge the frustration.",
            AlertTone.NEGATIVE,
            AlertPriority.HIGH if high else AlertPriority.MEDIUM,
            ctx.cooldown(base, intensity),
            scope="negative",
        )
    if ctx.allow_positive_lift:
        return ctx.candidate(
            DetectorKind.VELOCITY_SURGE,
            "Chat is surging—lean into the moment!",
            AlertTone.POSITIVE,
            AlertPriority.HIGH if strong else AlertPriority.MEDIUM,
            ctx.cooldown(base, intensity),
            scope="positive",
        )
    return ctx.candidate(
        DetectorKind.VELOCITY_SURGE,
        "Chat is heating up—watch the tone before diving in.",
        AlertTone.NEUTRAL,
        AlertPriority.MEDIUM,
        ctx.cooldown(cooldowns.default_seconds, intensity / 2.0),
        scope="monitor",
    )


# =============================================================================
# TONE
# =============================================================================


def _positive_eligible(ctx: DetectionContext) -> bool:
    if ctx.session_age_seconds < ctx.settings.min_session_seconds:
        return False
    if not 3 <= ctx.unique < ctx.settings.summary_min_chatters:
        return False
    if ctx.rate_ready:
        return (ctx.rate_z or 0.0) >= 0.8
    return ctx.metrics.message_rate >= 10


def _tone_spike(
    ctx: DetectionContext,
    kind: DetectorKind,
    tones: FrozenSet[Tone],
    message: str,
    high_priority: AlertPriority,
    low_priority: AlertPriority,
) -> Optional[CandidateAlert]:
    if not (_positive_eligible(ctx) and ctx.allow_positive_lift):
        return None
    count = ctx.tones.count(tones)
    if count < 1:
        return None
    return ctx.candidate(
        kind,
        message,
        AlertTone.POSITIVE,
        high_priority if count >= 3 else low_priority,
        ctx.settings.cooldowns.default_seconds,
        timestamp=ctx.tones.latest(tones),
    )


def detect_hype(ctx: DetectionContext) -> Optional[CandidateAlert]:
    return _tone_spike(
        ctx,
        DetectorKind.HYPE,
        HYPE_TONES,
        "Chat is hyped—amplify the momentum!",
        AlertPriority.HIGH,
        AlertPriority.MEDIUM,
    )


def detect_laughter(ctx: DetectionContext) -> Optional[CandidateAlert]:
    return _tone_spike(
        ctx,
        DetectorKind.LAUGHTER,
        HUMOR_TONES,
        "Chat is laughing—lean into the bit!",
        AlertPriority.HIGH,
        AlertPriority.MEDIUM,
    )


def detect_support(ctx: DetectionContext) -> Optional[CandidateAlert]:
    return _tone_spike(
        ctx,
        DetectorKind.SUPPORT,
        SUPPORT_TONES,
        "Viewers are showing love—acknowledge them!",
        AlertPriority.MEDIUM,
        AlertPriority.LOW,
    )


def detect_constructive(ctx: DetectionContext) -> Optional[CandidateAlert]:
    count = ctx.tones.count(CONSTRUCTIVE_TONES)
    if count < 1 or not _positive_eligible(ctx):
        return None
    if ctx.has_toxic and count <= ctx.tones.count(TOXIC_TONES):
        return None
    return ctx.candidate(
        DetectorKind.CONSTRUCTIVE,
        "Chat is offering suggestions—acknowledge the feedback.",
        AlertTone.NEUTRAL,
        AlertPriority.MEDIUM if count >= 3 else AlertPriority.LOW,
        ctx.settings.cooldowns.default_seconds,
        timestamp=ctx.tones.latest(CONSTRUCTIVE_TONES),
    )


def detect_spam(ctx: DetectionContext) -> Optional[CandidateAlert]:
    count = ctx.tones.count(SPAM_TONES)
    if count < 1:
        return None
    if count >= 3:
        message, priority = "Spam surge—moderators should clean chat.", AlertPriority.HIGH
    else:
        message, priority = "Spam is popping up—keep an eye on chat.", AlertPriority.MEDIUM
    return ctx.candidate(
        DetectorKind.SPAM,
        message,
        AlertTone.NEGATIVE,
        priority,
        ctx.settings.cooldowns.default_seconds,
        timestamp=ctx.tones.latest(SPAM_TONES),
    )


def detect_tone_dip(ctx: DetectionContext) -> Optional[CandidateAlert]:
    """
    Toxic language, a negative mood turn, or cooling momentum.

    Toxic takes precedence when the newest toxic message is recent relative
    to the newest batch message; then a negative dip when the mood is not
    clearly positive; otherwise a drop in message rate well below baseline.
    """
    settings = ctx.settings
    cooldowns = settings.cooldowns
    sentiment = ctx.metrics.sentiment

    latest_toxic = ctx.tones.latest(TOXIC_TONES)
    toxic_age = ctx.age_of(latest_toxic)
    if toxic_age is not None and toxic_age <= settings.toxic_window_seconds:
        severe = (
            ctx.tones.count(TOXIC_TONES) >= 2
            or ctx.tones.recent(TOXIC_TONES) >= 2
            or sentiment <= -0.2
        )
        if severe:
            return ctx.candidate(
                DetectorKind.TONE_DIP,
                "Chat is turning hostile—step in quickly.",
                AlertTone.NEGATIVE,
                AlertPriority.HIGH,
                cooldowns.high_priority_seconds,
                timestamp=latest_toxic,
            )
        return ctx.candidate(
            DetectorKind.TONE_DIP,
            "Toxic language detected—reset the tone fast.",
            AlertTone.NEGATIVE,
            AlertPriority.MEDIUM,
            cooldowns.toxic_mild_seconds,
            timestamp=latest_toxic,
        )

    negative_ratio = ctx.tones.ratio(NEGATIVE_TONES)
    dipping = not ctx.positive_mood_dominant and (
        ctx.has_critical
        or negative_ratio >= 0.05
        or sentiment <= -0.1
        or ctx.recent_negative >= 1
        or ctx.latest_tone_negative
    )
    if dipping:
        latest_negative = ctx.tones.latest(NEGATIVE_TONES)
        age = ctx.age_of(latest_negative)
        if age is None or age > settings.negative_window_seconds:
            return None
        high = sentiment <= -0.2 or negative_ratio >= 0.15 or ctx.recent_negative >= 3
        return ctx.candidate(
            DetectorKind.TONE_DIP,
            "Mood dipped—address concerns before they spread.",
            AlertTone.NEGATIVE,
            AlertPriority.HIGH if high else AlertPriority.MEDIUM,
            cooldowns.high_priority_seconds if high else cooldowns.toxic_mild_seconds,
            timestamp=latest_negative,
        )

    if ctx.rate_ready:
        cooling = (ctx.rate_z is not None and ctx.rate_z <= -1.4) or (
            ctx.rate_delta is not None and ctx.rate_delta <= -35.0
        )
    else:
        cooling = ctx.metrics.trend_percent <= -20 and ctx.metrics.message_rate <= 12
    if cooling:
        return ctx.candidate(
            DetectorKind.MOMENTUM_DROP,
            "Momentum is cooling—try a new prompt.",
            AlertTone.NEUTRAL,
            AlertPriority.MEDIUM,
            cooldowns.momentum_seconds,
        )
    return None


Detector = Callable[[DetectionContext], Optional[CandidateAlert]]

DETECTORS: List[Detector] = [
    detect_newcomers,
    detect_returning_audience,
    detect_audience_summary,
    detect_velocity_surge,
    detect_hype,
    detect_laughter,
    detect_support,
    detect_constructive,
    detect_spam,
    detect_tone_dip,
]
