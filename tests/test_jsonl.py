"""Tests for the JSON-lines event source."""
import io
import json

import pytest

from chatpulse.ingest.jsonl import JsonLinesEventSource, parse_event


def line(**overrides):
    event = {
        "id": "m-1",
        "channel": "SomeChannel",
        "author": "viewer42",
        "text": "PogChamp",
        "timestamp": "2025-01-26T12:00:00Z",
    }
    event.update(overrides)
    return json.dumps(event)


def test_parse_valid_line(t0):
    """Test that a valid line becomes a normalised ChatEvent."""
    event = parse_event(line())

    assert event is not None
    assert event.channel == "somechannel"
    assert event.timestamp == t0


@pytest.mark.parametrize("raw", ["", "   ", "not json", line(author=""), line(timestamp="yesterday")])
def test_parse_rejects_blank_and_malformed(raw):
    """Test that blank and malformed lines return None."""
    assert parse_event(raw) is None


@pytest.mark.asyncio
async def test_stream_skips_bad_lines():
    """Test that the source yields valid events and counts rejected lines."""
    stream = io.StringIO(
        "\n".join(
            [
                line(id="m-1"),
                "{broken",
                "",
                line(id="m-2", extra_field=1),
                line(id="m-3", timestamp="2025-01-26T12:00:01Z"),
            ]
        )
    )
    source = JsonLinesEventSource(stream=stream)

    events = [event async for event in source.events()]

    assert [event.id for event in events] == ["m-1", "m-3"]
    assert source.rejected == 2
    await source.close()


@pytest.mark.asyncio
async def test_reads_file(tmp_path):
    """Test reading events from a file path."""
    path = tmp_path / "chat.jsonl"
    path.write_text(line(id="a") + "\n" + line(id="b") + "\n", encoding="utf-8")
    source = JsonLinesEventSource(path)

    events = [event async for event in source.events()]
    await source.close()

    assert [event.id for event in events] == ["a", "b"]


def test_requires_path_or_stream():
    """Test constructor validation."""
    with pytest.raises(ValueError):
        JsonLinesEventSource()
    with pytest.raises(ValueError):
        JsonLinesEventSource(stream=io.StringIO(""), replay_speed=0)
