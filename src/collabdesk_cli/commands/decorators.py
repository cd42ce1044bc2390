"""Decorators for command functions."""

import asyncio
import functools
import inspect
import time
import traceback
from collections.abc import Callable

import typer

from collabdesk_cli.models import CollabDeskError
from collabdesk_cli.utils.exit_codes import ERROR_GENERAL, ERROR_INVALID_ARGS, exit_code_for
from collabdesk_cli.utils.logger import get_logger
from collabdesk_cli.utils.ui.formatters import format_error


def command_wrapper(func: Callable):
    """Run a command (sync or async) with logging and exit-code mapping."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger()
        cmd = func.__name__
        start = time.monotonic()
        logger.info("command started: %s", cmd)
        try:
            if inspect.iscoroutinefunction(func):
                result = asyncio.run(func(*args, **kwargs))
            else:
                result = func(*args, **kwargs)

            logger.info("command completed: %s (%.3fs)", cmd, time.monotonic() - start)
            return result

        except typer.Exit:
            raise

        except CollabDeskError as e:
            logger.error(
                "command failed: %s (%.3fs) - %s: %s",
                cmd,
                time.monotonic() - start,
                type(e).__name__,
                e,
            )
            format_error(str(e))
            raise typer.Exit(code=exit_code_for(e)) from e

        except ValueError as e:
            # Config lookups (unknown context, bad key)
            logger.error("command failed: %s - %s", cmd, e)
            format_error(str(e))
            raise typer.Exit(code=ERROR_INVALID_ARGS) from e

        except Exception as e:
            logger.error(
                "command failed: %s (%.3fs) - %s\n%s",
                cmd,
                time.monotonic() - start,
                e,
                traceback.format_exc(),
            )
            format_error(f"An unexpected error occurred: {e}")
            raise typer.Exit(code=ERROR_GENERAL) from e

    return wrapper
