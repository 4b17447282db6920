"""
Abstract base class for tone classifiers.

A tone classifier assigns one Tone to a single chat message, optionally
using a few recent messages from the same channel as context. Remote
implementations may be slow or fail; callers are expected to wrap them
with a timeout and a local fallback (see ToneResolver).

Example:
    >>> class KeywordClassifier(ToneClassifier):
    ...     @property
    ...     def name(self) -> str:
    ...         return "keywords"
    ...
    ...     async def classify(self, text, author, recent_messages):
    ...         return ToneResult(tone=Tone.UNKNOWN, confidence=0.0)
"""

from abc import ABC, abstractmethod
from typing import Sequence

from chatpulse.models.chat import ToneResult


class ToneClassifier(ABC):
    """
    Abstract base class for tone classifiers.

    Implementations raise ClassifierQuotaError on quota exhaustion and
    ClassifierError (or a subclass) on any other failure.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs."""
        pass

    @abstractmethod
    async def classify(
        self,
        text: str,
        author: str,
        recent_messages: Sequence[str],
    ) -> ToneResult:
        """
        Classify the tone of a single message.

        Args:
            text: Message text.
            author: Author display name.
            recent_messages: Recent channel messages, oldest first.

        Returns:
            ToneResult: Assigned tone, confidence and short rationale.

        Raises:
            ClassifierQuotaError: If the backend reports quota exhaustion.
            ClassifierError: On any other backend failure.
        """
        pass

    async def close(self) -> None:
        """Release network resources. Default is a no-op."""
        return None
