"""
Abstract base class for inbound chat event sources.

Sources deliver ChatEvents in non-decreasing timestamp order per channel.
Transport concerns (connection, reconnect, credentials) live entirely in
the implementation.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from chatpulse.models.chat import ChatEvent


class EventSource(ABC):
    """Abstract base class for chat event sources."""

    @abstractmethod
    def events(self) -> AsyncIterator[ChatEvent]:
        """
        Stream chat events.

        Yields:
            ChatEvent: Validated inbound events.
        """
        pass

    async def close(self) -> None:
        """Release transport resources. Default is a no-op."""
        return None
