"""
Inbound chat event processing.

Components:
    emotes: Global emote table and emote extraction
    records: Tokenization, author hashing, sentiment and RecordBuilder
    jsonl: JsonLinesEventSource reading one ChatEvent per line
"""

from chatpulse.ingest.emotes import (
    GLOBAL_EMOTES,
    extract_emotes,
    extract_fallback_emotes,
    is_global_emote,
    merge_emotes,
)
from chatpulse.ingest.jsonl import JsonLinesEventSource, parse_event
from chatpulse.ingest.records import RecordBuilder, SentimentScorer, hash_author, tokenize

__all__: list[str] = [
    "GLOBAL_EMOTES",
    "extract_emotes",
    "extract_fallback_emotes",
    "is_global_emote",
    "merge_emotes",
    "JsonLinesEventSource",
    "parse_event",
    "RecordBuilder",
    "SentimentScorer",
    "hash_author",
    "tokenize",
]
