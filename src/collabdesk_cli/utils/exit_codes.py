"""
Exit codes for CollabDesk CLI.

Semantic exit codes so scripts can tell what kind of failure happened.
"""

from collabdesk_cli.models import (
    AuthenticationError,
    NotFoundError,
    TransportError,
    ValidationError,
)

# Success
SUCCESS = 0

# General error (unspecified)
ERROR_GENERAL = 1

# Invalid arguments or validation error
ERROR_INVALID_ARGS = 2

# Authentication failure (not logged in, invalid credentials, etc.)
ERROR_AUTH_FAILURE = 3

# Network or backend error (server unreachable, rejected request, etc.)
ERROR_NETWORK = 4

# Resource not found
ERROR_NOT_FOUND = 5


def get_exit_code_name(code: int) -> str:
    """Get the name of an exit code for display purposes."""
    code_names = {
        SUCCESS: "SUCCESS",
        ERROR_GENERAL: "ERROR_GENERAL",
        ERROR_INVALID_ARGS: "ERROR_INVALID_ARGS",
        ERROR_AUTH_FAILURE: "ERROR_AUTH_FAILURE",
        ERROR_NETWORK: "ERROR_NETWORK",
        ERROR_NOT_FOUND: "ERROR_NOT_FOUND",
    }
    return code_names.get(code, f"UNKNOWN({code})")


def exit_code_for(error: BaseException) -> int:
    """Map an exception to its exit code."""
    # AuthenticationError is a TransportError, check it first
    if isinstance(error, AuthenticationError):
        return ERROR_AUTH_FAILURE
    if isinstance(error, ValidationError):
        return ERROR_INVALID_ARGS
    if isinstance(error, NotFoundError):
        return ERROR_NOT_FOUND
    if isinstance(error, TransportError):
        return ERROR_NETWORK
    return ERROR_GENERAL
