"""
Alert engine for streamer-facing engagement alerts.

This module provides the AlertEngine class which turns a batch of recent
chat messages plus the current metrics and baselines into a short,
prioritised list of alerts.

Cycle:
    1. Keep the newest messages (sorted by timestamp) and resolve each
       message's tone, inferring it with heuristics when missing.
    2. Build a DetectionContext and run the detector battery.
    3. Arbitrate: drop candidates whose key is cooling down (unless they
       escalate priority), order by timestamp then priority, dedup by
       normalised message, cap to the audience-scaled budget.
    4. Record cooldowns for the alerts actually emitted.
    5. If nothing survived and the channel has been idle long enough,
       emit a single calm notice.
    6. Remember every batch author for newcomer detection.

Example:
    >>> engine = create_alert_engine(config.alerts)
    >>> alerts = engine.evaluate(
    ...     recent_messages=batch,
    ...     metrics=AlertMetrics(message_rate=42, unique_chatters=18, newcomers=3),
    ...     baseline=snapshot.baseline,
    ...     session_age_seconds=600,
    ...     now=now,
    ... )
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

import structlog

from chatpulse.classification.heuristics import HeuristicToneClassifier
from chatpulse.config.models import AlertsConfig
from chatpulse.detection.authors import AuthorMemory
from chatpulse.detection.cooldown import CooldownTracker
from chatpulse.detection.detectors import (
    DETECTORS,
    ClassifiedMessage,
    DetectionContext,
    Detector,
    build_context,
)
from chatpulse.detection.history import AlertHistory
from chatpulse.detection.thresholds import alert_budget
from chatpulse.models.alerts import (
    AlertMetrics,
    AlertPriority,
    AlertTone,
    CandidateAlert,
    CooldownKey,
    DetectorKind,
    EmittedAlert,
    EngineState,
)
from chatpulse.models.chat import BatchMessage
from chatpulse.models.metrics import BaselineSet

logger = structlog.get_logger(__name__)

CALM_MESSAGE = "All Calm: Chat is steady—no notable shifts yet."


class AlertEngine:
    """
    Detector battery plus cooldown arbitration for one channel.

    The engine is stateful (cooldowns, author memory, idle tracking,
    history) and must only be driven by one task at a time.

    Attributes:
        config: Alert configuration.
        heuristics: Classifier used for messages without a tone.
        cooldowns: Cooldown bookkeeping keyed by CooldownKey.
        authors: Author memory for newcomer detection.
        history: Presented alert history.
    """

    def __init__(
        self,
        config: Optional[AlertsConfig] = None,
        heuristics: Optional[HeuristicToneClassifier] = None,
        detectors: Optional[Sequence[Detector]] = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            config: Alert configuration (defaults apply when omitted).
            heuristics: Classifier for untagged messages.
            detectors: Detector battery, in evaluation order.
        """
        self.config = config or AlertsConfig()
        self.heuristics = heuristics or HeuristicToneClassifier()
        self.detectors: List[Detector] = list(detectors or DETECTORS)
        self.cooldowns = CooldownTracker()
        self.authors = AuthorMemory(self.config.author_memory_seconds)
        self.history = AlertHistory(self.config.history_window_seconds)

        self._idle_since: Optional[datetime] = None
        self._seen_activity = False

        logger.info(
            "alert_engine_initialized",
            detectors=len(self.detectors),
            budget_base=self.config.budget_base,
            idle_calm_seconds=self.config.idle_calm_seconds,
        )

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(
        self,
        recent_messages: Sequence[BatchMessage],
        metrics: AlertMetrics,
        baseline: BaselineSet,
        session_age_seconds: float,
        now: datetime,
    ) -> List[EmittedAlert]:
        """
        Run one alert cycle.

        Args:
            recent_messages: Recent channel messages in any order.
            metrics: Current engagement metrics.
            baseline: Baselines for message rate, unique chatters, newcomers.
            session_age_seconds: Seconds since the session started.
            now: Evaluation time.

        Returns:
            List[EmittedAlert]: Alerts emitted this cycle, in presentation
                order. Empty when everything is cooling down.
        """
        self.authors.prune(now)

        messages = self._classify(recent_messages)
        ctx = build_context(
            messages=messages,
            metrics=metrics,
            baseline=baseline,
            session_age_seconds=session_age_seconds,
            now=now,
            settings=self.config,
            authors=self.authors,
        )

        candidates = self._run_detectors(ctx)
        emitted = self._arbitrate(candidates, metrics.unique_chatters)

        if not emitted:
            calm = self._check_idle_calm(metrics, session_age_seconds, now)
            if calm is not None:
                emitted = [calm]
        if not self._is_idle(metrics):
            self._idle_since = None
            self._seen_activity = True

        if messages:
            self.authors.remember(
                (message.author for message in messages), ctx.latest_timestamp
            )

        self.history.add(emitted, now)
        for alert in emitted:
            logger.info(
                "alert_emitted",
                alert_id=alert.alert_id,
                kind=alert.kind.value,
                priority=alert.priority.value,
                tone=alert.tone.value,
            )
        return emitted

    def _classify(self, recent_messages: Sequence[BatchMessage]) -> List[ClassifiedMessage]:
        """Sort by timestamp, keep the newest batch and resolve tones."""
        ordered = sorted(recent_messages, key=lambda m: m.timestamp)
        ordered = ordered[-self.config.max_batch_messages:]

        classified: List[ClassifiedMessage] = []
        for message in ordered:
            if message.tone is not None:
                tone = message.tone
                confidence = (
                    message.tone_confidence
                    if message.tone_confidence is not None
                    else self.config.default_tone_confidence
                )
            else:
                result = self.heuristics.classify(message.text)
                tone, confidence = result.tone, result.confidence
            classified.append(
                ClassifiedMessage(
                    author=message.author,
                    text=message.text,
                    timestamp=message.timestamp,
                    tone=tone,
                    confidence=confidence,
                )
            )
        return classified

    def _run_detectors(self, ctx: DetectionContext) -> List[CandidateAlert]:
        candidates: List[CandidateAlert] = []
        for detector in self.detectors:
            candidate = detector(ctx)
            if candidate is not None:
                candidates.append(candidate)
        if candidates:
            logger.debug(
                "alert_candidates",
                count=len(candidates),
                keys=[str(candidate.key) for candidate in candidates],
            )
        return candidates

    def _arbitrate(self, candidates: List[CandidateAlert], unique_chatters: int) -> List[EmittedAlert]:
        """
        Apply cooldowns, ordering, dedup and the budget.

        Only alerts that survive all steps are recorded in the cooldown
        tracker.
        """
        allowed = [
            candidate
            for candidate in candidates
            if self.cooldowns.should_emit(
                candidate.key,
                candidate.timestamp,
                candidate.priority,
                candidate.cooldown_seconds,
            )
        ]
        # Stable two-pass sort: newest first, ties broken by priority.
        allowed.sort(key=lambda c: c.priority.weight, reverse=True)
        allowed.sort(key=lambda c: c.timestamp, reverse=True)

        deduped: Dict[str, CandidateAlert] = {}
        for candidate in allowed:
            deduped.setdefault(candidate.dedup_key, candidate)

        budget = alert_budget(
            unique_chatters,
            base=self.config.budget_base,
            minimum=self.config.budget_min,
            maximum=self.config.budget_max,
        )
        selected = list(deduped.values())[:budget]
        if len(deduped) > budget:
            logger.debug("alert_budget_exceeded", candidates=len(deduped), budget=budget)

        emitted: List[EmittedAlert] = []
        for candidate in selected:
            self.cooldowns.record(
                candidate.key,
                candidate.timestamp,
                candidate.priority,
                candidate.cooldown_seconds,
            )
            emitted.append(self._emit(candidate.key, candidate))
        return emitted

    @staticmethod
    def _emit(key: CooldownKey, candidate: CandidateAlert) -> EmittedAlert:
        stamp = int(candidate.timestamp.timestamp() * 1000)
        return EmittedAlert(
            alert_id=f"{key}-{stamp}",
            kind=key.kind,
            message=candidate.message,
            tone=candidate.tone,
            priority=candidate.priority,
            emitted_at=candidate.timestamp,
        )

    # -------------------------------------------------------------------------
    # Idle calm
    # -------------------------------------------------------------------------

    @staticmethod
    def _is_idle(metrics: AlertMetrics) -> bool:
        return (
            metrics.message_rate <= 0
            and metrics.unique_chatters <= 0
            and metrics.newcomers <= 0
        )

    def _check_idle_calm(
        self,
        metrics: AlertMetrics,
        session_age_seconds: float,
        now: datetime,
    ) -> Optional[EmittedAlert]:
        """
        Emit one calm notice once the channel has been idle long enough.

        Idle time is measured from the first idle observation, or from the
        session start when nothing has been observed yet.
        """
        if not self._is_idle(metrics):
            return None

        if self._idle_since is None:
            # Without any observed activity the session start is the idle start.
            offset = 0.0 if self._seen_activity else max(session_age_seconds, 0.0)
            self._idle_since = now - timedelta(seconds=offset)

        idle_seconds = (now - self._idle_since).total_seconds()
        if idle_seconds <= self.config.idle_calm_seconds:
            return None

        candidate = CandidateAlert(
            key=CooldownKey(kind=DetectorKind.CALM),
            message=CALM_MESSAGE,
            tone=AlertTone.NEUTRAL,
            priority=AlertPriority.LOW,
            timestamp=now,
            cooldown_seconds=self.config.cooldowns.calm_seconds,
        )
        if not self.cooldowns.should_emit(
            candidate.key, now, candidate.priority, candidate.cooldown_seconds
        ):
            return None
        self.cooldowns.record(candidate.key, now, candidate.priority, candidate.cooldown_seconds)
        return self._emit(candidate.key, candidate)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def state(self, now: datetime) -> EngineState:
        """
        Coarse engine state at ``now``.

        Returns:
            EngineState: COLD before any emission, SUPPRESSED while any key
                is cooling down, ACTIVE otherwise.
        """
        if len(self.cooldowns) == 0:
            return EngineState.COLD
        if self.cooldowns.any_cooling(now):
            return EngineState.SUPPRESSED
        return EngineState.ACTIVE

    def presented(self, now: datetime) -> List[EmittedAlert]:
        """Alerts worth showing at ``now`` (see AlertHistory.presented)."""
        return self.history.presented(now)

    def reset(self) -> None:
        """Clear cooldowns, author memory, idle tracking and history."""
        self.cooldowns.clear()
        self.authors.clear()
        self.history.clear()
        self._idle_since = None
        self._seen_activity = False
        logger.info("alert_engine_reset")

    def __repr__(self) -> str:
        return (
            f"AlertEngine(detectors={len(self.detectors)}, "
            f"cooldown_keys={len(self.cooldowns)}, authors={len(self.authors)})"
        )


def create_alert_engine(config: Optional[AlertsConfig] = None) -> AlertEngine:
    """
    Factory function to create an AlertEngine.

    Args:
        config: Alert configuration (defaults apply when omitted).

    Returns:
        AlertEngine: Configured engine.
    """
    return AlertEngine(config=config)
