"""
Chat record building.

Turns a validated ChatEvent plus its resolved tone into the immutable
ChatRecord the window aggregator consumes: word tokens, emotes, a hashed
author identity and a sentiment score.

Sentiment uses VADER's compound score, which is already bounded to
[-1, 1] and tuned for short, informal social text.

Example:
    >>> builder = RecordBuilder()
    >>> record = builder.build(event, ToneResult(tone=Tone.HYPE, confidence=0.65))
    >>> record.tokens
    ('clutch', 'play')
"""

import hashlib
import re
from typing import List, Optional

import structlog
from pydantic import ValidationError
from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from chatpulse.exceptions import InvalidRecordError
from chatpulse.ingest.emotes import (
    GLOBAL_EMOTES,
    extract_emotes,
    extract_fallback_emotes,
    merge_emotes,
)
from chatpulse.models.chat import ChatEvent, ChatRecord, ToneResult

logger = structlog.get_logger(__name__)

_TOKEN_STRIP = re.compile(r"[^a-zA-Z0-9']")
MIN_TOKEN_LENGTH = 3


def tokenize(text: str) -> List[str]:
    """
    Split a message into lowercase word tokens.

    Punctuation is stripped, tokens shorter than three characters and
    global emote codes are dropped.
    """
    tokens = []
    for raw in text.split():
        token = _TOKEN_STRIP.sub("", raw).lower()
        if len(token) >= MIN_TOKEN_LENGTH and token not in GLOBAL_EMOTES:
            tokens.append(token)
    return tokens


def hash_author(author_id: Optional[str], login: str) -> str:
    """Stable author key: sha256 of the platform id, or of the login."""
    return hashlib.sha256((author_id or login).encode("utf-8")).hexdigest()


class SentimentScorer:
    """VADER compound sentiment in [-1, 1]."""

    def __init__(self) -> None:
        self._analyzer = SentimentIntensityAnalyzer()

    def score(self, text: str) -> float:
        if not text.strip():
            return 0.0
        compound = self._analyzer.polarity_scores(text)["compound"]
        return max(-1.0, min(1.0, float(compound)))


class RecordBuilder:
    """
    Builds ChatRecords from inbound events.

    Attributes:
        sentiment: Sentiment scorer.
    """

    def __init__(self, sentiment: Optional[SentimentScorer] = None) -> None:
        self.sentiment = sentiment or SentimentScorer()

    def build(self, event: ChatEvent, tone: ToneResult) -> ChatRecord:
        """
        Build a record from an event and its resolved tone.

        Args:
            event: Validated inbound event.
            tone: Resolved tone.

        Returns:
            ChatRecord: Immutable record.

        Raises:
            InvalidRecordError: If the event cannot produce a valid record.
        """
        if not event.text.strip() or not event.author.strip():
            logger.warning("record_build_failed", event_id=event.id, error="blank text or author")
            raise InvalidRecordError(
                f"Cannot build record from event {event.id}: blank text or author",
                event_id=event.id,
            )

        emotes = merge_emotes(
            extract_emotes(event.text, event.emotes),
            extract_fallback_emotes(event.text),
        )

        try:
            return ChatRecord(
                id=event.id,
                timestamp=event.timestamp,
                author_key=hash_author(event.author_id, event.author.lower()),
                author_display=event.author,
                text=event.text,
                tokens=tuple(tokenize(event.text)),
                emotes=tuple(emotes),
                sentiment=self.sentiment.score(event.text),
                tone=tone.tone,
                tone_confidence=tone.confidence,
            )
        except ValidationError as e:
            logger.warning("record_build_failed", event_id=event.id, error=str(e))
            raise InvalidRecordError(
                f"Cannot build record from event {event.id}: {e}",
                event_id=event.id,
                cause=e,
            ) from e
