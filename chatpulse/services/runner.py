"""
Service runner base class and logging setup.

Every long-running service subclasses ServiceRunner and implements
``_initialize``, ``_run`` and ``_cleanup``. The runner loads configuration,
reconfigures logging from it, installs signal handlers and guarantees
cleanup runs on shutdown.

Example:
    >>> class MyService(ServiceRunner):
    ...     @property
    ...     def service_name(self) -> str:
    ...         return "my-service"
    ...     async def _initialize(self) -> None: ...
    ...     async def _run(self) -> None: ...
    ...     async def _cleanup(self) -> None: ...
    >>> asyncio.run(MyService("config").run())
"""

import asyncio
import logging
import os
import signal
from abc import ABC, abstractmethod
from typing import Optional

import structlog

from chatpulse.config.loader import load_config
from chatpulse.config.models import AppConfig, LogFormat


def setup_logging(
    log_format: Optional[LogFormat] = None,
    level: Optional[str] = None,
) -> None:
    """
    Configure structured logging.

    Args:
        log_format: JSON (default) or text console output.
        level: Log level name; defaults to the LOG_LEVEL env var or INFO.
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if log_format == LogFormat.TEXT:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level, logging.INFO),
        force=True,
    )

    # Keep HTTP client internals quiet
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


class ServiceRunner(ABC):
    """
    Base class for service entry points.

    Attributes:
        config_path: Directory holding the YAML configuration.
        config: Loaded configuration (set by ``run``).
        logger: Logger bound to the service name.
        shutdown_event: Set when the service should stop.
    """

    def __init__(self, config_path: str = "config") -> None:
        self.config_path = config_path
        self.config: Optional[AppConfig] = None
        self.logger = structlog.get_logger(__name__).bind(service=self.service_name)
        self.shutdown_event = asyncio.Event()

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Service name used in logs."""
        pass

    @abstractmethod
    async def _initialize(self) -> None:
        """Create service components; called after configuration is loaded."""
        pass

    @abstractmethod
    async def _run(self) -> None:
        """Main service loop; returns when the service is done or shutting down."""
        pass

    @abstractmethod
    async def _cleanup(self) -> None:
        """Release service resources."""
        pass

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except (NotImplementedError, RuntimeError):
                # Not available on every platform / outside the main thread
                self.logger.debug("signal_handler_unavailable", signal=sig.name)

    def request_shutdown(self) -> None:
        """Ask the service to stop."""
        if not self.shutdown_event.is_set():
            self.logger.info("shutdown_requested")
            self.shutdown_event.set()

    async def run(self) -> None:
        """
        Load configuration, initialize, run until done, then clean up.

        Raises:
            ConfigLoadError: If configuration cannot be loaded.
        """
        self.config = load_config(self.config_path)
        setup_logging(
            self.config.features.logging.format,
            os.getenv("LOG_LEVEL", self.config.log_level.value),
        )
        self.logger.info("service_starting", config_path=self.config_path)

        self._install_signal_handlers()
        try:
            await self._initialize()
            await self._run()
        finally:
            await self._cleanup()
            self.logger.info("service_stopped")
