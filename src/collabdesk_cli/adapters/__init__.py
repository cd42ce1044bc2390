"""Adapters module - Backend implementations.

This package contains concrete implementations (adapters) for the backend interfaces:
- sqlite: Local SQLite workspace (store, push and identity)
- rest_api: Remote PostgREST/GoTrue backend (store and identity)
- polling: Push transport for remote backends
"""

from .polling import PollingPushTransport
from .rest_api import RestApiBackend
from .sqlite import SqliteBackend

__all__ = [
    "SqliteBackend",
    "RestApiBackend",
    "PollingPushTransport",
]
