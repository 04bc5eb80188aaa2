"""Session-level errors surfaced to request handlers."""


class SessionNotReady(Exception):
    """Liveness probe failed on every attempt; the caller should retry later."""
    pass


class PairingFailure(SessionNotReady):
    """Authentication failed; the session stays down until an explicit restart."""
    pass


class RecipientNotRegistered(Exception):
    """The recipient address has no WhatsApp account. Never retried."""

    def __init__(self, address: str):
        super().__init__("The number is not registered on WhatsApp")
        self.address = address
