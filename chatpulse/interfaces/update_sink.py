"""
Abstract base class for outbound update sinks.

The channel supervisor hands every snapshot, every batch of emitted
alerts and the current presented alert set to a sink. Delivery to viewers, persistence and dashboards are
implemented outside this package.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from chatpulse.models.alerts import EmittedAlert
from chatpulse.models.metrics import AggregatedSnapshot


class UpdateSink(ABC):
    """Abstract base class for update sinks."""

    @abstractmethod
    async def publish_snapshot(self, channel: str, snapshot: AggregatedSnapshot) -> None:
        """Publish a metrics snapshot for a channel."""
        pass

    @abstractmethod
    async def publish_alerts(self, channel: str, alerts: Sequence[EmittedAlert]) -> None:
        """Publish alerts emitted for a channel."""
        pass

    @abstractmethod
    async def publish_presented(self, channel: str, alerts: Sequence[EmittedAlert]) -> None:
        """Publish the alerts currently worth showing for a channel, newest first."""
        pass
