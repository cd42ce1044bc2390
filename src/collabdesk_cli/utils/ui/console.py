"""Console utilities for CollabDesk CLI."""

from functools import lru_cache

from rich.console import Console
from rich.theme import Theme

LIGHT_THEME = Theme(
    {
        "accent": "bold blue",
        "muted": "grey50",
        "pending": "italic grey50",
        "status.active": "green",
        "status.completed": "blue",
        "status.archived": "grey50",
    }
)

DARK_THEME = Theme(
    {
        "accent": "bold cyan",
        "muted": "grey62",
        "pending": "italic grey62",
        "status.active": "bright_green",
        "status.completed": "bright_blue",
        "status.archived": "grey62",
    }
)


def _dark_mode_preference() -> bool:
    from collabdesk_cli.services.config_service import get_config_service

    try:
        return bool(get_config_service().get("ui.dark_mode"))
    except RuntimeError:
        # Unreadable config file; the command itself will report it
        return False


@lru_cache(maxsize=4)
def get_console(dark_mode: bool | None = None, highlight: bool = True) -> Console:
    """Get a Rich Console themed after the ``ui.dark_mode`` preference."""
    if dark_mode is None:
        dark_mode = _dark_mode_preference()
    return Console(theme=DARK_THEME if dark_mode else LIGHT_THEME, highlight=highlight)
