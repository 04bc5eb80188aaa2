"""Errors raised by messaging client implementations."""

from typing import Optional


class MessagingClientError(Exception):
    """The messaging backend rejected or could not complete a call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientSendFailure(MessagingClientError):
    """A call against a live-looking session failed; safe to retry."""
    pass


class SessionClosedError(TransientSendFailure):
    """The client handle was destroyed before or during the call."""
    pass
