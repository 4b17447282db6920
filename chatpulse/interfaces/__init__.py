"""
Abstract interfaces for the engagement engine's collaborators.

Modules:
    tone_classifier: ToneClassifier ABC implemented by remote classifiers
    event_source: EventSource ABC for inbound chat events
    update_sink: UpdateSink ABC for outbound snapshots and alerts
"""

from chatpulse.interfaces.event_source import EventSource
from chatpulse.interfaces.tone_classifier import ToneClassifier
from chatpulse.interfaces.update_sink import UpdateSink

__all__ = ["EventSource", "ToneClassifier", "UpdateSink"]
