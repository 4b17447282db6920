"""
Exception hierarchy for the engagement engine.

Every error raised by the package derives from ChatPulseError so hosts can
catch package failures in one place. Classifier errors never escape the
tone resolver; they exist so the resolver can tell a quota problem from a
transient one.
"""

from typing import Optional


class ChatPulseError(Exception):
    """Base class for all package errors."""

    pass


class InvalidRecordError(ChatPulseError):
    """
    Raised when an inbound event cannot be turned into a chat record.

    Attributes:
        message: Error message describing what went wrong.
        event_id: Id of the rejected event, if it could be read.
        cause: Original exception that caused the error, if any.
    """

    def __init__(
        self,
        message: str,
        event_id: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.event_id = event_id
        self.cause = cause
        super().__init__(message)


class ClassifierError(ChatPulseError):
    """Raised when the remote tone classifier fails."""

    pass


class ClassifierQuotaError(ClassifierError):
    """Raised when the remote classifier reports quota exhaustion or rate limiting."""

    pass


class ClassifierResponseError(ClassifierError):
    """Raised when the remote classifier returns an unusable response."""

    pass
