"""
Service plumbing: runner base class, logging setup, channel supervisor.

Example:
    >>> from chatpulse.services import ChannelSupervisor, ServiceRunner, setup_logging
"""

from chatpulse.services.runner import ServiceRunner, setup_logging
from chatpulse.services.sinks import LoggingSink
from chatpulse.services.supervisor import ChannelSupervisor

__all__ = [
    "ServiceRunner",
    "setup_logging",
    "LoggingSink",
    "ChannelSupervisor",
]
