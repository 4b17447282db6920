"""
Tone resolver: remote classification with a bounded wait and local fallback.

The resolver is the only place the pipeline awaits I/O. It decides, per
message, whether a remote call is worth making and always returns a
ToneResult; classifier failures never propagate to the caller.

Decision order:
    1. Empty text: heuristic result.
    2. Same text already seen at least twice in the recent context: spam.
    3. Confident heuristic spam: heuristic result.
    4. No remote classifier configured: heuristic result.
    5. Quota breaker open: heuristic result.
    6. Remote call under a timeout; quota errors trip the breaker, every
       failure falls back to the heuristic result.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

import structlog

from chatpulse.classification.breaker import QuotaBreaker
from chatpulse.classification.heuristics import HeuristicToneClassifier
from chatpulse.exceptions import ClassifierError, ClassifierQuotaError
from chatpulse.interfaces.tone_classifier import ToneClassifier
from chatpulse.models.chat import Tone, ToneResult

logger = structlog.get_logger(__name__)

REPEAT_SPAM_MATCHES = 2
SPAM_SHORT_CIRCUIT_CONFIDENCE = 0.75


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ToneResolver:
    """
    Resolve message tone with a remote classifier and heuristic fallback.

    Attributes:
        remote: Remote classifier, or None for heuristics only.
        heuristics: Local heuristic classifier.
        breaker: Quota breaker guarding remote calls.
        timeout_seconds: Upper bound on one remote call.

    Example:
        >>> resolver = ToneResolver(remote=None)
        >>> result = await resolver.classify("gg well played", "viewer42", [])
        >>> result.tone
        <Tone.SUPPORTIVE: 'supportive'>
    """

    def __init__(
        self,
        remote: Optional[ToneClassifier] = None,
        breaker: Optional[QuotaBreaker] = None,
        heuristics: Optional[HeuristicToneClassifier] = None,
        timeout_seconds: float = 3.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            remote: Remote classifier (None disables remote calls).
            breaker: Quota breaker; a private one is created when omitted.
            heuristics: Heuristic classifier.
            timeout_seconds: Upper bound on one remote call.
            clock: Time source for breaker decisions.
        """
        self.remote = remote
        self.breaker = breaker or QuotaBreaker()
        self.heuristics = heuristics or HeuristicToneClassifier()
        self.timeout_seconds = timeout_seconds
        self._clock = clock

    async def classify(
        self,
        text: str,
        author: str,
        recent_messages: Sequence[str] = (),
    ) -> ToneResult:
        """
        Resolve the tone of a message.

        Args:
            text: Message text.
            author: Author display name.
            recent_messages: Recent channel messages, oldest first.

        Returns:
            ToneResult: Never raises.
        """
        heuristic = self.heuristics.classify(text)
        trimmed = text.strip()
        if not trimmed:
            return heuristic

        normalized = trimmed.lower()
        repeats = sum(1 for recent in recent_messages if recent.strip().lower() == normalized)
        if repeats >= REPEAT_SPAM_MATCHES:
            return ToneResult(tone=Tone.SPAM, confidence=0.8, rationale="Repeated identical message")

        if heuristic.tone == Tone.SPAM and heuristic.confidence >= SPAM_SHORT_CIRCUIT_CONFIDENCE:
            return heuristic

        if self.remote is None:
            return heuristic

        if self.breaker.is_open(self._clock()):
            return heuristic

        try:
            result = await asyncio.wait_for(
                self.remote.classify(trimmed, author, recent_messages),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "tone_classification_timeout",
                classifier=self.remote.name,
                timeout_seconds=self.timeout_seconds,
            )
            return heuristic
        except ClassifierQuotaError as e:
            self.breaker.trip(self._clock())
            logger.warning("tone_classification_quota", classifier=self.remote.name, error=str(e))
            return heuristic
        except ClassifierError as e:
            logger.warning("tone_classification_failed", classifier=self.remote.name, error=str(e))
            return heuristic
        except Exception as e:
            logger.error(
                "tone_classification_unexpected_error",
                classifier=self.remote.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return heuristic

        self.breaker.record_success()
        return result

    async def close(self) -> None:
        """Release the remote classifier's resources."""
        if self.remote is not None:
            await self.remote.close()
