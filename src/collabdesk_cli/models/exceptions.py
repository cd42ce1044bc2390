"""Custom exceptions for CollabDesk."""


class CollabDeskError(Exception):
    """Base exception for all CollabDesk errors."""


class TransportError(CollabDeskError):
    """Raised when a remote call fails or is rejected by the backend."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(TransportError):
    """Raised when sign-in/sign-up is rejected or no session is available."""


class NotFoundError(CollabDeskError):
    """Raised when the target row of a mutation does not exist."""


class ValidationError(CollabDeskError):
    """Raised when input is rejected before any remote call is issued."""
