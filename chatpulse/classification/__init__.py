"""
Tone classification for chat messages.

Components:
    heuristics: HeuristicToneClassifier and local mood summaries
    remote: OpenAIToneClassifier (aiohttp client for an OpenAI-compatible API)
    breaker: QuotaBreaker that parks remote calls after quota errors
    resolver: ToneResolver combining remote, timeout, breaker and fallback

Example:
    >>> from chatpulse.classification import ToneResolver, create_remote_classifier
    >>> resolver = ToneResolver(remote=create_remote_classifier(config.classifier))
    >>> result = await resolver.classify("let's go!", "viewer42", recent)
"""

from chatpulse.classification.breaker import QuotaBreaker
from chatpulse.classification.heuristics import (
    HeuristicToneClassifier,
    MoodContext,
    analyze_mood,
    summarize_mood,
)
from chatpulse.classification.remote import OpenAIToneClassifier, create_remote_classifier
from chatpulse.classification.resolver import ToneResolver

__all__: list[str] = [
    "HeuristicToneClassifier",
    "MoodContext",
    "analyze_mood",
    "summarize_mood",
    "OpenAIToneClassifier",
    "create_remote_classifier",
    "QuotaBreaker",
    "ToneResolver",
]
