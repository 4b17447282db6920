"""
Alert data models for the engagement engine.

This module defines alert-related structures: the tone and priority of an
alert, the detector that produced it, the cooldown key it is arbitrated
under, candidate and emitted alerts, and the metric inputs the alert
engine consumes.

Models:
    AlertTone: Tone of an alert (positive, neutral, negative)
    AlertPriority: Priority levels (high, medium, low)
    DetectorKind: Detector that produced a candidate
    CooldownKey: Typed arbitration key (detector kind plus optional author)
    CandidateAlert: Detector output before arbitration
    CooldownEntry: Last emission for a cooldown key
    EmittedAlert: Alert that survived arbitration
    AlertMetrics: Point-in-time metrics fed to the engine
    EngineState: Coarse engine state for introspection
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AlertTone(str, Enum):
    """Tone of an alert as presented to the streamer."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class AlertPriority(str, Enum):
    """
    Alert priority levels.

    Attributes:
        HIGH: Act now.
        MEDIUM: Worth acknowledging soon.
        LOW: Awareness only.
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        """Numeric weight used for ordering and escalation (3/2/1)."""
        return _PRIORITY_WEIGHTS[self]

    def outranks(self, other: "AlertPriority") -> bool:
        """Check if this priority is strictly higher than another."""
        return self.weight > other.weight


_PRIORITY_WEIGHTS = {
    AlertPriority.HIGH: 3,
    AlertPriority.MEDIUM: 2,
    AlertPriority.LOW: 1,
}


class DetectorKind(str, Enum):
    """Detector that produced a candidate alert."""

    NEW_CHATTER = "new-chatter"
    RETURNING_AUDIENCE = "returning-audience"
    AUDIENCE_SUMMARY = "audience-summary"
    VELOCITY_SURGE = "velocity-surge"
    HYPE = "hype-spike"
    LAUGHTER = "laughter-spike"
    SUPPORT = "support-spike"
    CONSTRUCTIVE = "constructive"
    SPAM = "spam"
    TONE_DIP = "tone-dip"
    MOMENTUM_DROP = "momentum-drop"
    CALM = "calm"


class CooldownKey(BaseModel):
    """
    Arbitration key for cooldown bookkeeping.

    Most detectors arbitrate under a single key per detector kind. The
    newcomer detector keys individual greetings by author and waves by
    ``batch``.

    Example:
        >>> CooldownKey(kind=DetectorKind.NEW_CHATTER, scope="viewer42")
        >>> str(CooldownKey(kind=DetectorKind.SPAM))
        'spam'
    """

    model_config = {"frozen": True, "extra": "forbid"}

    kind: DetectorKind
    scope: Optional[str] = None

    def __str__(self) -> str:
        if self.scope is None:
            return self.kind.value
        return f"{self.kind.value}:{self.scope}"


class CandidateAlert(BaseModel):
    """
    Detector output before arbitration.

    Attributes:
        key: Cooldown key the candidate is arbitrated under.
        message: Human-readable alert text.
        tone: Alert tone.
        priority: Alert priority.
        timestamp: Time the triggering activity happened.
        cooldown_seconds: Minimum seconds between emissions for the key.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    key: CooldownKey
    message: str = Field(..., min_length=1)
    tone: AlertTone
    priority: AlertPriority
    timestamp: datetime
    cooldown_seconds: float = Field(..., ge=0.0)

    @property
    def dedup_key(self) -> str:
        """Normalised identity used to collapse duplicate candidates."""
        return f"{self.tone.value}:{self.priority.value}:{self.message.strip().lower()}"


class CooldownEntry(BaseModel):
    """Last emission recorded for a cooldown key."""

    model_config = {"frozen": True, "extra": "forbid"}

    last_emitted_at: datetime
    last_priority: AlertPriority
    cooldown_seconds: float = Field(default=0.0, ge=0.0)

    def is_cooling(self, now: datetime) -> bool:
        """Check if the key is still inside its cooldown window at ``now``."""
        return (now - self.last_emitted_at).total_seconds() < self.cooldown_seconds


class EmittedAlert(BaseModel):
    """
    Alert that survived arbitration.

    Alerts are created once and expire from the presented history by age.

    Example:
        >>> alert = EmittedAlert(
        ...     alert_id="spam-1735689600000",
        ...     kind=DetectorKind.SPAM,
        ...     message="Spam surge—moderators should clean chat.",
        ...     tone=AlertTone.NEGATIVE,
        ...     priority=AlertPriority.HIGH,
        ...     emitted_at=now,
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    alert_id: str
    kind: DetectorKind
    message: str
    tone: AlertTone
    priority: AlertPriority
    emitted_at: datetime

    def age_seconds(self, now: datetime) -> float:
        """Seconds since emission."""
        return (now - self.emitted_at).total_seconds()


class AlertMetrics(BaseModel):
    """Point-in-time engagement metrics fed to the alert engine."""

    model_config = {"frozen": True, "extra": "forbid"}

    message_rate: float = Field(default=0.0, ge=0.0)
    unique_chatters: int = Field(default=0, ge=0)
    newcomers: int = Field(default=0, ge=0)
    sentiment: float = Field(default=0.0, ge=-1.0, le=1.0)
    trend_percent: float = 0.0


class EngineState(str, Enum):
    """
    Coarse alert engine state.

    Attributes:
        COLD: No cooldown entries yet (new session or after reset).
        ACTIVE: Alerts have been emitted and no key is cooling down.
        SUPPRESSED: At least one key is inside its cooldown window.
    """

    COLD = "cold"
    ACTIVE = "active"
    SUPPRESSED = "suppressed"
