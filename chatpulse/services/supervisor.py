"""
Channel supervisor.

Runs one asyncio worker task per channel. Each worker owns its channel's
ChannelProcessor and consumes an asyncio.Queue, so events and resets for a
channel are handled strictly one at a time while channels proceed in
parallel. When a channel's queue stays empty for ``tick_interval_seconds``
the worker runs a timer tick, which lets idle and cooling alerts fire
without new messages.

Example:
    >>> supervisor = ChannelSupervisor(config, sink=LoggingSink())
    >>> await supervisor.start()
    >>> async for event in source.events():
    ...     await supervisor.submit(event)
    >>> await supervisor.stop()
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import structlog

from chatpulse.classification.breaker import QuotaBreaker
from chatpulse.classification.remote import create_remote_classifier
from chatpulse.classification.resolver import ToneResolver
from chatpulse.config.models import AppConfig, BreakerScope
from chatpulse.interfaces.tone_classifier import ToneClassifier
from chatpulse.interfaces.update_sink import UpdateSink
from chatpulse.models.chat import ChatEvent
from chatpulse.pipeline import ChannelProcessor, ChannelUpdate
from chatpulse.services.sinks import LoggingSink

logger = structlog.get_logger(__name__)

_STOP = object()
_RESET = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChannelSupervisor:
    """
    Owns every channel's processor and worker task.

    Attributes:
        config: Application configuration.
        sink: Destination for snapshots and alerts.
        remote: Remote tone classifier shared by all channels, if any.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        sink: Optional[UpdateSink] = None,
        remote: Optional[ToneClassifier] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the supervisor.

        Args:
            config: Application configuration (defaults when omitted).
            sink: Update sink (LoggingSink when omitted).
            remote: Remote classifier; built from config when omitted.
            clock: Wall-clock source for processors.
        """
        self.config = config or AppConfig()
        self.sink = sink or LoggingSink()
        self.remote = remote if remote is not None else create_remote_classifier(self.config.classifier)
        self._clock = clock

        classifier = self.config.classifier
        self._shared_breaker: Optional[QuotaBreaker] = None
        if classifier.breaker_scope == BreakerScope.PROCESS:
            self._shared_breaker = QuotaBreaker(classifier.quota_cooldown_seconds, name="process")

        self._processors: Dict[str, ChannelProcessor] = {}
        self._queues: Dict[str, "asyncio.Queue[Any]"] = {}
        self._workers: Dict[str, asyncio.Task] = {}
        self._running = False

        logger.info(
            "channel_supervisor_initialized",
            remote_classifier=self.remote.name if self.remote else None,
            breaker_scope=classifier.breaker_scope.value,
            tick_interval_seconds=self.config.features.pipeline.tick_interval_seconds,
        )

    @property
    def channels(self) -> List[str]:
        return list(self._processors)

    def processor(self, channel: str) -> Optional[ChannelProcessor]:
        return self._processors.get(channel.lower())

    async def start(self) -> None:
        """Accept events; workers are created lazily per channel."""
        self._running = True
        logger.info("channel_supervisor_started")

    def _breaker_for(self, channel: str) -> QuotaBreaker:
        if self._shared_breaker is not None:
            return self._shared_breaker
        return QuotaBreaker(self.config.classifier.quota_cooldown_seconds, name=channel)

    def _ensure_channel(self, channel: str) -> "asyncio.Queue[Any]":
        queue = self._queues.get(channel)
        if queue is not None:
            return queue

        resolver = ToneResolver(
            remote=self.remote,
            breaker=self._breaker_for(channel),
            timeout_seconds=self.config.classifier.timeout_seconds,
            clock=self._clock,
        )
        processor = ChannelProcessor(
            channel,
            resolver=resolver,
            features=self.config.features,
            alerts=self.config.alerts,
            clock=self._clock,
        )
        queue = asyncio.Queue(maxsize=self.config.features.pipeline.queue_maxsize)
        self._processors[channel] = processor
        self._queues[channel] = queue
        self._workers[channel] = asyncio.create_task(
            self._worker(processor, queue), name=f"channel-{channel}"
        )
        logger.info("channel_worker_started", channel=channel)
        return queue

    async def submit(self, event: ChatEvent) -> None:
        """
        Queue an event for its channel.

        Raises:
            RuntimeError: If the supervisor is not running.
        """
        if not self._running:
            raise RuntimeError("ChannelSupervisor is not running")
        await self._ensure_channel(event.channel).put(event)

    async def reset_channel(self, channel: str) -> None:
        """Queue a session reset, ordered after already-submitted events."""
        queue = self._queues.get(channel.lower())
        if queue is None:
            return
        await queue.put(_RESET)

    async def stop(self) -> None:
        """Drain every queue, stop the workers and close the classifier."""
        self._running = False
        for queue in self._queues.values():
            await queue.put(_STOP)
        if self._workers:
            await asyncio.gather(*self._workers.values(), return_exceptions=True)
        self._workers.clear()

        if self.remote is not None:
            await self.remote.close()
        logger.info("channel_supervisor_stopped", channels=len(self._processors))

    async def join(self) -> None:
        """Wait until every queued item has been processed."""
        for queue in list(self._queues.values()):
            await queue.join()

    async def _worker(self, processor: ChannelProcessor, queue: "asyncio.Queue[Any]") -> None:
        interval = self.config.features.pipeline.tick_interval_seconds
        log = logger.bind(channel=processor.channel)

        while True:
            try:
                item = await asyncio.wait_for(queue.get(), timeout=interval)
            except asyncio.TimeoutError:
                try:
                    await self._publish(processor.tick())
                except Exception as e:
                    log.error("channel_tick_failed", error=str(e), exc_info=True)
                continue

            try:
                if item is _STOP:
                    break
                if item is _RESET:
                    processor.reset()
                else:
                    await self._publish(await processor.handle_event(item))
            except Exception as e:
                log.error(
                    "channel_event_failed",
                    event_id=getattr(item, "id", None),
                    error=str(e),
                    exc_info=True,
                )
            finally:
                queue.task_done()

        log.info("channel_worker_stopped", processed=processor.state.processed)

    async def _publish(self, update: Optional[ChannelUpdate]) -> None:
        if update is None:
            return
        if update.snapshot is not None:
            await self.sink.publish_snapshot(update.channel, update.snapshot)
        if update.alerts:
            await self.sink.publish_alerts(update.channel, update.alerts)
        # Ticks age the presented set even when nothing new fires.
        if update.alerts or update.snapshot is None:
            await self.sink.publish_presented(update.channel, update.presented)
