"""
Shared Pydantic data models for the engagement engine.

This module exports all data models used throughout the system.

Modules:
    chat: Chat events, records, tones and classifier results
    metrics: Aggregated engagement metrics, baselines and spikes
    alerts: Alert candidates, cooldown keys and emitted alerts

Example:
    >>> from chatpulse.models import ChatRecord, Tone, AggregatedSnapshot
    >>> from chatpulse.models import EmittedAlert, AlertPriority
"""

# Chat models
from chatpulse.models.chat import (
    CONSTRUCTIVE_TONES,
    HUMOR_TONES,
    HYPE_TONES,
    NEGATIVE_TONES,
    POSITIVE_TONES,
    SPAM_TONES,
    SUPPORT_TONES,
    TOXIC_TONES,
    BatchMessage,
    ChatEvent,
    ChatRecord,
    EmoteRef,
    EmoteSpan,
    MoodSummary,
    Tone,
    ToneResult,
)

# Metrics models
from chatpulse.models.metrics import (
    AggregatedSnapshot,
    BaselineSet,
    BaselineSnapshot,
    EmoteCount,
    SpikeEvent,
    TimelinePoint,
    TokenCount,
)

# Alert models
from chatpulse.models.alerts import (
    AlertMetrics,
    AlertPriority,
    AlertTone,
    CandidateAlert,
    CooldownEntry,
    CooldownKey,
    DetectorKind,
    EmittedAlert,
    EngineState,
)

__all__ = [
    # Chat
    "Tone",
    "POSITIVE_TONES",
    "HYPE_TONES",
    "HUMOR_TONES",
    "SUPPORT_TONES",
    "NEGATIVE_TONES",
    "TOXIC_TONES",
    "SPAM_TONES",
    "CONSTRUCTIVE_TONES",
    "EmoteSpan",
    "EmoteRef",
    "ChatEvent",
    "ChatRecord",
    "ToneResult",
    "BatchMessage",
    "MoodSummary",
    # Metrics
    "TokenCount",
    "EmoteCount",
    "BaselineSnapshot",
    "BaselineSet",
    "SpikeEvent",
    "AggregatedSnapshot",
    "TimelinePoint",
    # Alerts
    "AlertTone",
    "AlertPriority",
    "DetectorKind",
    "CooldownKey",
    "CandidateAlert",
    "CooldownEntry",
    "EmittedAlert",
    "AlertMetrics",
    "EngineState",
]
