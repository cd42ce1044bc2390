"""CollabDesk CLI - project, task and chat collaboration client."""

__version__ = "0.3.0"
