"""Domain exceptions."""


class ChatError(Exception):
    """Base class for errors with a user-facing message."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotApprovedError(ChatError):
    """Email is not on the approval list."""

    status_code = 403


class AuthenticationError(ChatError):
    """Missing, invalid, expired or revoked credentials."""

    status_code = 401


class ConflictError(ChatError):
    """Account already exists."""

    status_code = 409


class NotFoundError(ChatError):
    status_code = 404


class PayloadError(ChatError):
    """Realtime payload is missing required identifier fields."""


class InvalidTransitionError(RuntimeError):
    """A connection was asked to move out of the closed state."""
