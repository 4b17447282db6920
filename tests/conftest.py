"""Pytest fixtures for engagement engine tests."""
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

import pytest

from chatpulse.config.models import AlertsConfig
from chatpulse.ingest.records import hash_author
from chatpulse.models.chat import BatchMessage, ChatEvent, ChatRecord, EmoteRef, Tone


T0 = datetime(2025, 1, 26, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def t0() -> datetime:
    """Fixed session start time."""
    return T0


@pytest.fixture
def at(t0: datetime) -> Callable[[float], datetime]:
    """Factory fixture: seconds offset from t0 to a datetime."""
    def _at(seconds: float) -> datetime:
        return t0 + timedelta(seconds=seconds)
    return _at


@pytest.fixture
def make_record(at) -> Callable[..., ChatRecord]:
    """Factory fixture to build ChatRecords at an offset from t0."""
    counter = {"n": 0}

    def _make(
        seconds: float,
        author: str = "viewer",
        text: str = "hello there",
        tokens: Sequence[str] = ("hello", "there"),
        emotes: Sequence[EmoteRef] = (),
        sentiment: float = 0.0,
        tone: Tone = Tone.UNKNOWN,
    ) -> ChatRecord:
        counter["n"] += 1
        return ChatRecord(
            id=f"m-{counter['n']}",
            timestamp=at(seconds),
            author_key=hash_author(None, author.lower()),
            author_display=author,
            text=text,
            tokens=tuple(tokens),
            emotes=tuple(emotes),
            sentiment=sentiment,
            tone=tone,
            tone_confidence=0.7,
        )
    return _make


@pytest.fixture
def make_event(at) -> Callable[..., ChatEvent]:
    """Factory fixture to build ChatEvents at an offset from t0."""
    counter = {"n": 0}

    def _make(
        seconds: float,
        author: str = "viewer",
        text: str = "hello there",
        channel: str = "somechannel",
        tone: Optional[Tone] = None,
    ) -> ChatEvent:
        counter["n"] += 1
        return ChatEvent(
            id=f"e-{counter['n']}",
            channel=channel,
            author=author,
            text=text,
            timestamp=at(seconds),
            tone=tone,
        )
    return _make


@pytest.fixture
def make_message(at) -> Callable[..., BatchMessage]:
    """Factory fixture to build BatchMessages for the alert engine."""
    def _make(
        seconds: float,
        author: str = "viewer",
        text: str = "hello there",
        tone: Optional[Tone] = None,
    ) -> BatchMessage:
        return BatchMessage(author=author, text=text, timestamp=at(seconds), tone=tone)
    return _make


@pytest.fixture
def alerts_config() -> AlertsConfig:
    """Default alert engine settings."""
    return AlertsConfig()
