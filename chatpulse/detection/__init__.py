"""
Alert detection for streamer-facing engagement alerts.

This module contains the detector battery, adaptive thresholds, cooldown
arbitration and the alert engine that ties them together.

Components:
    engine: AlertEngine running one arbitration cycle per evaluation
    detectors: Pure detector functions over a DetectionContext
    thresholds: Audience-scaled thresholds, dynamic cooldowns, budget
    cooldown: CooldownTracker keyed by CooldownKey
    authors: AuthorMemory for first-time chatter detection
    history: AlertHistory of recently presented alerts

Example:
    >>> from chatpulse.detection import create_alert_engine
    >>> engine = create_alert_engine(config.alerts)
    >>> alerts = engine.evaluate(batch, metrics, baseline, session_age, now)
"""

from chatpulse.detection.authors import AuthorMemory
from chatpulse.detection.cooldown import CooldownTracker
from chatpulse.detection.detectors import (
    DETECTORS,
    ClassifiedMessage,
    DetectionContext,
    ToneSummary,
    build_context,
    summarize_tones,
)
from chatpulse.detection.engine import CALM_MESSAGE, AlertEngine, create_alert_engine
from chatpulse.detection.history import AlertHistory
from chatpulse.detection.thresholds import alert_budget, dynamic_cooldown

__all__ = [
    # Engine
    "AlertEngine",
    "create_alert_engine",
    "CALM_MESSAGE",
    # Detectors
    "DETECTORS",
    "ClassifiedMessage",
    "DetectionContext",
    "ToneSummary",
    "build_context",
    "summarize_tones",
    # Arbitration
    "CooldownTracker",
    "AuthorMemory",
    "AlertHistory",
    "alert_budget",
    "dynamic_cooldown",
]
