"""
Chat message data models.

This module defines the inbound chat event payload, the validated chat
record consumed by the window aggregator, and the tone classification
result shared by the heuristic and remote classifiers.

Models:
    Tone: Tone categories assigned to a single chat message
    EmoteSpan: Platform-supplied emote position inside a message
    EmoteRef: Emote reference attached to a record
    ChatEvent: Inbound chat event as delivered by the transport
    ChatRecord: Validated, enriched record owned by the aggregator
    ToneResult: Output of a tone classifier
    BatchMessage: Message view used by the alert engine
    MoodSummary: Human-readable summary of the recent chat mood
"""

from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


class Tone(str, Enum):
    """
    Tone categories for a single chat message.

    Attributes:
        HYPE: Excitement about the current moment.
        SUPPORTIVE: Praise or encouragement.
        HUMOR: Laughter or joking.
        INFORMATIONAL: Neutral statement.
        QUESTION: A question to the streamer or chat.
        CONSTRUCTIVE: Suggestion or feedback.
        CRITICAL: Complaint or disappointment.
        SARCASTIC: Ironic praise.
        TOXIC: Hostile or abusive language.
        SPAM: Links, promotions or repeated text.
        SYSTEM: Bot commands and moderation notices.
        NEUTRAL: No discernible tone.
        UNKNOWN: Could not be classified.
    """

    HYPE = "hype"
    SUPPORTIVE = "supportive"
    HUMOR = "humor"
    INFORMATIONAL = "informational"
    QUESTION = "question"
    CONSTRUCTIVE = "constructive"
    CRITICAL = "critical"
    SARCASTIC = "sarcastic"
    TOXIC = "toxic"
    SPAM = "spam"
    SYSTEM = "system"
    NEUTRAL = "neutral"
    UNKNOWN = "unknown"

    @property
    def is_positive(self) -> bool:
        """Check if this tone lifts the room."""
        return self in POSITIVE_TONES

    @property
    def is_negative(self) -> bool:
        """Check if this tone drags the room down."""
        return self in NEGATIVE_TONES


POSITIVE_TONES: FrozenSet[Tone] = frozenset(
    {Tone.HYPE, Tone.SUPPORTIVE, Tone.HUMOR, Tone.CONSTRUCTIVE}
)
HYPE_TONES: FrozenSet[Tone] = frozenset({Tone.HYPE, Tone.SUPPORTIVE})
HUMOR_TONES: FrozenSet[Tone] = frozenset({Tone.HUMOR})
SUPPORT_TONES: FrozenSet[Tone] = frozenset({Tone.SUPPORTIVE})
NEGATIVE_TONES: FrozenSet[Tone] = frozenset(
    {Tone.CRITICAL, Tone.SARCASTIC, Tone.TOXIC}
)
TOXIC_TONES: FrozenSet[Tone] = frozenset({Tone.TOXIC})
SPAM_TONES: FrozenSet[Tone] = frozenset({Tone.SPAM})
CONSTRUCTIVE_TONES: FrozenSet[Tone] = frozenset({Tone.CONSTRUCTIVE})


def _ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps and normalise aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class EmoteSpan(BaseModel):
    """
    Emote position reported by the chat platform.

    Offsets are character indices into the message text, inclusive on both
    ends.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(..., description="Platform emote identifier", min_length=1)
    start: int = Field(..., description="First character index", ge=0)
    end: int = Field(..., description="Last character index (inclusive)", ge=0)

    @model_validator(mode="after")
    def validate_range(self) -> "EmoteSpan":
        """Validate that the span is not reversed."""
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) must be >= start ({self.start})")
        return self


class EmoteRef(BaseModel):
    """Emote attached to a chat record."""

    model_config = {"frozen": True, "extra": "forbid"}

    code: str = Field(..., description="Emote code as typed in chat", min_length=1)
    id: Optional[str] = Field(default=None, description="Platform emote id")

    @property
    def key(self) -> str:
        """Ranking key: id when known, otherwise the code (lowercase)."""
        return (self.id or self.code).lower()


class ChatEvent(BaseModel):
    """
    Inbound chat event as delivered by the transport.

    This is the system boundary. Events are validated once here; a malformed
    event raises ``pydantic.ValidationError`` and never reaches the
    aggregator.

    Attributes:
        id: Transport message id.
        channel: Channel the message was posted in.
        author: Display name / login of the author.
        author_id: Stable platform user id, when available.
        text: Raw message text.
        timestamp: When the message was posted.
        emotes: Emote spans supplied by the platform.
        tone: Pre-classified tone, if the transport already classified it.
        tone_confidence: Confidence of the pre-classified tone.

    Example:
        >>> event = ChatEvent(
        ...     id="m-1",
        ...     channel="somechannel",
        ...     author="viewer42",
        ...     text="PogChamp let's go",
        ...     timestamp=datetime.now(timezone.utc),
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(..., description="Transport message id", min_length=1)
    channel: str = Field(..., description="Channel login", min_length=1)
    author: str = Field(..., description="Author display name or login", min_length=1)
    author_id: Optional[str] = Field(default=None, description="Platform user id")
    text: str = Field(..., description="Raw message text")
    timestamp: datetime = Field(..., description="Message timestamp")
    emotes: List[EmoteSpan] = Field(default_factory=list, description="Emote spans")
    tone: Optional[Tone] = Field(default=None, description="Pre-classified tone")
    tone_confidence: Optional[float] = Field(
        default=None,
        description="Confidence of the pre-classified tone",
        ge=0.0,
        le=1.0,
    )

    @field_validator("timestamp")
    @classmethod
    def normalise_timestamp(cls, v: datetime) -> datetime:
        """Store timestamps in UTC."""
        return _ensure_utc(v)

    @field_validator("channel")
    @classmethod
    def normalise_channel(cls, v: str) -> str:
        """Channel logins are case-insensitive."""
        return v.strip().lower()


class ChatRecord(BaseModel):
    """
    Validated and enriched chat record.

    Records are immutable. The window aggregator owns them and drops them
    once they fall out of the retention window.

    Attributes:
        id: Message id.
        timestamp: Message timestamp (UTC).
        author_key: Stable hashed author identity.
        author_display: Display name shown in alerts.
        tokens: Lowercase word tokens, emotes excluded.
        emotes: Emotes present in the message.
        sentiment: Sentiment score in [-1, 1].
        tone: Classified tone.
        tone_confidence: Tone confidence in [0, 1].
    """

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(..., description="Message id", min_length=1)
    timestamp: datetime = Field(..., description="Message timestamp")
    author_key: str = Field(..., description="Hashed author identity", min_length=1)
    author_display: str = Field(..., description="Author display name", min_length=1)
    text: str = Field(default="", description="Raw message text")
    tokens: Tuple[str, ...] = Field(default=(), description="Word tokens")
    emotes: Tuple[EmoteRef, ...] = Field(default=(), description="Emotes")
    sentiment: float = Field(
        default=0.0, description="Sentiment score", ge=-1.0, le=1.0
    )
    tone: Tone = Field(default=Tone.UNKNOWN, description="Classified tone")
    tone_confidence: float = Field(
        default=0.0, description="Tone confidence", ge=0.0, le=1.0
    )

    @field_validator("timestamp")
    @classmethod
    def normalise_timestamp(cls, v: datetime) -> datetime:
        """Store timestamps in UTC."""
        return _ensure_utc(v)


class ToneResult(BaseModel):
    """
    Tone classification result.

    Example:
        >>> ToneResult(tone=Tone.HYPE, confidence=0.65, rationale="hype keywords")
    """

    model_config = {"frozen": True, "extra": "forbid"}

    tone: Tone = Field(..., description="Assigned tone")
    confidence: float = Field(..., description="Confidence", ge=0.0, le=1.0)
    rationale: str = Field(default="", description="Short explanation")


class BatchMessage(BaseModel):
    """Message as seen by the alert engine."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: Optional[str] = None
    author: str = Field(..., min_length=1)
    text: str = ""
    timestamp: datetime
    tone: Optional[Tone] = None
    tone_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @field_validator("timestamp")
    @classmethod
    def normalise_timestamp(cls, v: datetime) -> datetime:
        """Store timestamps in UTC."""
        return _ensure_utc(v)

    @classmethod
    def from_record(cls, record: ChatRecord) -> "BatchMessage":
        """Build the alert-engine view of an aggregated record."""
        return cls(
            id=record.id,
            author=record.author_display,
            text=record.text,
            timestamp=record.timestamp,
            tone=record.tone,
            tone_confidence=record.tone_confidence,
        )


class MoodSummary(BaseModel):
    """Human-readable one-line summary of the recent chat mood."""

    model_config = {"frozen": True, "extra": "forbid"}

    message: str
    tone: str = Field(..., pattern="^(positive|neutral|negative)$")
