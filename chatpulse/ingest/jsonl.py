"""
JSON-lines chat event source.

Reads one ChatEvent JSON object per line from a file (or any text stream)
and yields validated events. Malformed lines are logged and skipped; they
never reach the pipeline.

Line Format:
    {"id": "m-1", "channel": "somechannel", "author": "viewer42",
     "text": "PogChamp", "timestamp": "2025-01-26T12:00:00Z",
     "emotes": [{"id": "88", "start": 0, "end": 7}]}

Example:
    >>> source = JsonLinesEventSource("chat.jsonl", replay_speed=1.0)
    >>> async for event in source.events():
    ...     await supervisor.submit(event)
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Optional, TextIO

import structlog
from pydantic import ValidationError

from chatpulse.interfaces.event_source import EventSource
from chatpulse.models.chat import ChatEvent

logger = structlog.get_logger(__name__)

# Replay never waits longer than this between two events
MAX_REPLAY_GAP_SECONDS = 30.0


def parse_event(line: str) -> Optional[ChatEvent]:
    """
    Parse one JSON line into a ChatEvent.

    Args:
        line: Raw line.

    Returns:
        Optional[ChatEvent]: None for blank or malformed lines.
    """
    stripped = line.strip()
    if not stripped:
        return None
    try:
        return ChatEvent.model_validate(json.loads(stripped))
    except (ValueError, ValidationError) as e:
        logger.warning("event_rejected", error=str(e)[:300])
        return None


class JsonLinesEventSource(EventSource):
    """
    Event source reading JSON lines.

    Attributes:
        path: File to read, or None when a stream is given.
        replay_speed: When set, sleep between events to reproduce their
            original spacing divided by this factor.
    """

    def __init__(
        self,
        path: Optional[Path | str] = None,
        stream: Optional[TextIO] = None,
        replay_speed: Optional[float] = None,
    ) -> None:
        if path is None and stream is None:
            raise ValueError("JsonLinesEventSource requires a path or a stream")
        if replay_speed is not None and replay_speed <= 0:
            raise ValueError(f"replay_speed must be > 0, got {replay_speed}")
        self.path = Path(path) if path is not None else None
        self.replay_speed = replay_speed
        self._stream = stream
        self._owns_stream = False
        self.rejected = 0

    def _open(self) -> TextIO:
        if self._stream is None:
            assert self.path is not None
            self._stream = open(self.path, "r", encoding="utf-8")
            self._owns_stream = True
        return self._stream

    async def events(self) -> AsyncIterator[ChatEvent]:
        """
        Stream events from the source.

        Yields:
            ChatEvent: Validated events in file order.
        """
        stream = self._open()
        previous: Optional[datetime] = None

        for line in stream:
            if not line.strip():
                continue
            event = parse_event(line)
            if event is None:
                self.rejected += 1
                continue

            if self.replay_speed is not None and previous is not None:
                gap = (event.timestamp - previous).total_seconds() / self.replay_speed
                if gap > 0:
                    await asyncio.sleep(min(gap, MAX_REPLAY_GAP_SECONDS))
            else:
                await asyncio.sleep(0)
            previous = event.timestamp

            yield event

        logger.info("event_source_exhausted", path=str(self.path), rejected=self.rejected)

    async def close(self) -> None:
        """Close the underlying file if this source opened it."""
        if self._owns_stream and self._stream is not None:
            self._stream.close()
            self._stream = None
            self._owns_stream = False
