"""Update sinks shipped with the package."""

from typing import Sequence

import structlog

from chatpulse.interfaces.update_sink import UpdateSink
from chatpulse.models.alerts import EmittedAlert
from chatpulse.models.metrics import AggregatedSnapshot

logger = structlog.get_logger(__name__)


class LoggingSink(UpdateSink):
    """
    Sink that writes updates to the structured log.

    Snapshots are logged at debug level, alerts at info level.
    """

    async def publish_snapshot(self, channel: str, snapshot: AggregatedSnapshot) -> None:
        logger.debug(
            "snapshot",
            channel=channel,
            timestamp=snapshot.timestamp.isoformat(),
            message_rate=snapshot.message_rate,
            unique_chatters=snapshot.unique_chatters,
            newcomers=snapshot.newcomers,
            sentiment=round(snapshot.sentiment, 3),
            baseline_ready=snapshot.baseline.message_rate.ready,
            spike=snapshot.spike.detail if snapshot.spike else None,
        )

    async def publish_alerts(self, channel: str, alerts: Sequence[EmittedAlert]) -> None:
        for alert in alerts:
            logger.info(
                "alert",
                channel=channel,
                alert_id=alert.alert_id,
                priority=alert.priority.value,
                tone=alert.tone.value,
                message=alert.message,
            )

    async def publish_presented(self, channel: str, alerts: Sequence[EmittedAlert]) -> None:
        logger.debug(
            "presented_alerts",
            channel=channel,
            count=len(alerts),
            alert_ids=[alert.alert_id for alert in alerts],
        )
