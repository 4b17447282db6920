"""
Pulse Engine Service entry point.

This service is responsible for:
- Reading chat events (JSON lines) from a file or stdin
- Routing each event to its channel's worker
- Computing engagement metrics, baselines and spikes per message
- Emitting prioritised streamer alerts
- Running timer ticks so idle channels still get calm notices

Usage:
    python -m services.pulse_engine.main

Environment Variables:
    CHAT_EVENTS_PATH: JSON-lines file to read (default: stdin)
    REPLAY_SPEED: Replay events with their original spacing divided by this
        factor (default: no pacing)
    LOG_LEVEL: Logging level (default: INFO)
    CONFIG_PATH: Path to config directory (default: config)
    TONE_CLASSIFIER_API_KEY / OPENAI_API_KEY: Enables remote tone classification
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

import structlog

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from chatpulse.ingest.jsonl import JsonLinesEventSource
from chatpulse.services import ChannelSupervisor, LoggingSink, ServiceRunner, setup_logging

logger = structlog.get_logger(__name__)


class PulseEngineService(ServiceRunner):
    """
    Engagement analytics service.

    Attributes:
        source: Inbound event source.
        supervisor: Per-channel worker supervisor.
    """

    def __init__(
        self,
        config_path: str = "config",
        events_path: Optional[str] = None,
        replay_speed: Optional[float] = None,
    ) -> None:
        """Initialize the pulse engine service."""
        super().__init__(config_path)
        self.events_path = events_path
        self.replay_speed = replay_speed
        self.source: Optional[JsonLinesEventSource] = None
        self.supervisor: Optional[ChannelSupervisor] = None

    @property
    def service_name(self) -> str:
        """Return service name."""
        return "pulse-engine"

    async def _initialize(self) -> None:
        """Create the event source and the channel supervisor."""
        if self.config is None:
            raise RuntimeError("Service not properly initialized")

        if self.events_path:
            self.source = JsonLinesEventSource(self.events_path, replay_speed=self.replay_speed)
        else:
            self.source = JsonLinesEventSource(stream=sys.stdin, replay_speed=self.replay_speed)

        self.supervisor = ChannelSupervisor(self.config, sink=LoggingSink())
        await self.supervisor.start()

        self.logger.info(
            "pulse_components_initialized",
            events_path=self.events_path or "<stdin>",
            replay_speed=self.replay_speed,
            remote_classifier=self.config.classifier.is_active,
        )

    async def _run(self) -> None:
        """Main service loop - feed events to the supervisor until exhausted or stopped."""
        if self.source is None or self.supervisor is None:
            raise RuntimeError("Service not properly initialized")

        async for event in self.source.events():
            if self.shutdown_event.is_set():
                break
            await self.supervisor.submit(event)

        await self.supervisor.join()

    async def _cleanup(self) -> None:
        """Stop workers and close the source."""
        if self.supervisor is not None:
            await self.supervisor.stop()
            self.logger.info("cleanup_state", channels=self.supervisor.channels)
        if self.source is not None:
            await self.source.close()


async def main() -> None:
    """Main entry point."""
    # Set up initial logging
    setup_logging()

    config_path = os.getenv("CONFIG_PATH", "config")
    replay = os.getenv("REPLAY_SPEED")

    logger.info(
        "pulse_engine_service_starting",
        version="0.1.0",
        config_path=config_path,
    )

    service = PulseEngineService(
        config_path=config_path,
        events_path=os.getenv("CHAT_EVENTS_PATH"),
        replay_speed=float(replay) if replay else None,
    )

    try:
        await service.run()
    except Exception as e:
        logger.error("service_failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
