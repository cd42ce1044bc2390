"""Shared test fixtures and configuration.

Provides infrastructure to isolate tests from real filesystem state: config,
credentials, workspace databases and log files all land in ``tmp_path``.
"""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import patch

import pytest

from collabdesk_cli.adapters.sqlite import SqliteBackend
from collabdesk_cli.adapters.sqlite.connection import MEMORY
from collabdesk_cli.services.workspace import Workspace


# ---------------------------------------------------------------------------
# Filesystem isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path):
    """Point every platformdirs lookup at tmp_path and reset cached singletons."""
    import collabdesk_cli.utils.logger as logger_mod
    from collabdesk_cli.services.config_service import get_config_service
    from collabdesk_cli.utils.ui.console import get_console

    config_dir = tmp_path / "config"
    data_dir = tmp_path / "data"
    log_dir = tmp_path / "logs"

    get_config_service.cache_clear()
    get_console.cache_clear()
    logger_mod._logger = None
    logging.getLogger("collabdesk_cli").handlers.clear()

    with (
        patch("collabdesk_cli.services.config_service.user_config_dir", return_value=str(config_dir)),
        patch("collabdesk_cli.services.config_service.user_data_dir", return_value=str(data_dir)),
        patch("collabdesk_cli.adapters.sqlite.connection.user_data_dir", return_value=str(data_dir)),
        patch("collabdesk_cli.utils.logger.user_log_dir", return_value=str(log_dir)),
    ):
        yield tmp_path

    get_config_service.cache_clear()
    get_console.cache_clear()
    for handler in logging.getLogger("collabdesk_cli").handlers:
        handler.close()
    logging.getLogger("collabdesk_cli").handlers.clear()
    logger_mod._logger = None


# ---------------------------------------------------------------------------
# Backends and workspaces
# ---------------------------------------------------------------------------


@pytest.fixture()
def backend():
    """In-memory local backend providing store, push and identity."""
    backend = SqliteBackend(db_path=MEMORY)
    yield backend
    if backend._connection is not None:
        backend._connection.close()


@pytest.fixture()
def workspace(backend):
    """Workspace wired to the in-memory backend."""
    return Workspace(backend, backend, backend, storage_type="local")


async def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
    """Poll until ``predicate()`` is true; channel refreshes run in the background."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture()
def until():
    """The ``wait_for`` polling helper."""
    return wait_for
