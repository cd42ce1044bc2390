"""Configuration service for managing CollabDesk configuration.

This module provides the ConfigService class, which is the single source of truth
for all configuration management. It handles:

- Loading and saving config.json
- Context management (list, add, remove, switch)
- Session credential storage per context
- Dot-key access for individual settings
"""

from __future__ import annotations

import json
from functools import lru_cache
from json import JSONDecodeError
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir, user_data_dir
from pydantic import BaseModel

from collabdesk_cli.models.config_models import AppConfig, Context


class ConfigService:
    """Service for managing application configuration."""

    def __init__(self):
        """Initialize the config service."""

        self.config_dir = Path(user_config_dir("collabdesk_cli"))
        self.config_path = self.config_dir / "config.json"
        self.credentials_dir = self.config_dir / "credentials"
        self.data_dir = Path(user_data_dir("collabdesk_cli"))

        # Ensure directories exist
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.credentials_dir.mkdir(parents=True, exist_ok=True)

        self._config: AppConfig | None = None

    @property
    def config(self) -> AppConfig:
        """Get or load the current configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def load_config(self) -> AppConfig:
        """Load configuration from storage."""
        if self._config is not None:
            return self._config

        try:
            with open(self.config_path, encoding="utf-8") as f:
                self._config = AppConfig.model_validate_json(f.read())
        except FileNotFoundError:
            # First run
            self._config = self.create_default_config()
        except Exception as e:
            raise RuntimeError(f"Failed to load config: {e}") from e

        return self._config

    def save_config(self):
        """Save the current configuration to storage."""
        if self._config is None:
            raise RuntimeError("No configuration to save")

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(self._config.model_dump_json(indent=4))

            self.config_path.chmod(0o600)
        except Exception as e:
            raise RuntimeError(f"Failed to save config: {e}") from e

    def reset_config(self):
        """Reset configuration to defaults and drop all credentials."""
        self._config = None
        if self.config_path.exists():
            self.config_path.unlink()
        for cred_file in self.credentials_dir.glob("*.json"):
            cred_file.unlink()
        self.create_default_config()

    def create_default_config(self) -> AppConfig:
        """Create a default configuration with a local workspace context."""
        local_context = Context(
            name="local",
            type="local",
            source=str(self.data_dir / "workspace.db"),
            description="Local SQLite workspace",
        )

        self._config = AppConfig(
            current_context_name=local_context.name,
            contexts=[local_context],
        )
        self.save_config()
        return self._config

    def get(self, key: str) -> Any:
        """Get a configuration value by dot-separated key."""
        value: Any = self.config
        for k in key.split("."):
            if isinstance(value, BaseModel):
                value = getattr(value, k, None)
            else:
                return None
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dot-separated key.

        Raises:
            ValueError: If the key is unknown or the value is invalid
        """
        keys = key.split(".")
        config_dict = self.config.model_dump()

        current = config_dict
        for k in keys[:-1]:
            if not isinstance(current.get(k), dict):
                raise ValueError(f"Unknown config key: {key}")
            current = current[k]
        if keys[-1] not in current:
            raise ValueError(f"Unknown config key: {key}")
        current[keys[-1]] = value

        self._config = AppConfig.model_validate(config_dict)
        self.save_config()

    def list_contexts(self) -> list[Context]:
        """List all available contexts."""
        return self.config.contexts

    def get_current_context(self) -> Context:
        """Get the currently active context.

        Raises:
            ValueError: If the current context is not found
        """
        return self.config.get_current_context()

    def use_context(self, name: str) -> Context:
        """Set the current context by name."""
        context = self.config.get_context(name)
        self.config.current_context_name = context.name
        self.save_config()
        return context

    def add_context(self, context: Context):
        """Add a new context to the configuration."""
        self.config.add_context(context)
        self.save_config()

    def remove_context(self, name: str):
        """Remove a context and its credentials."""
        self.config.remove_context(name)
        self.save_config()
        self.clear_credentials(name)

    def set_team(self, team_id: str, context_name: str | None = None) -> Context:
        """Set the team whose projects a context shows."""
        context = (
            self.config.get_context(context_name)
            if context_name
            else self.get_current_context()
        )
        context.team_id = team_id
        self.save_config()
        return context

    def load_credentials(self, context_name: str | None = None) -> dict | None:
        """Load the saved session for a context (defaults to current).

        Returns:
            dict of session data, or None if not found
        """
        if context_name is None:
            try:
                context_name = self.get_current_context().name
            except ValueError:
                return None

        cred_path = self.credentials_dir / f"{context_name}.json"
        if not cred_path.exists():
            return None

        try:
            with open(cred_path, encoding="utf-8") as f:
                return json.load(f)
        except JSONDecodeError:
            return None

    def save_credentials(self, data: dict, context_name: str | None = None):
        """Save session data for a context (defaults to current)."""
        if context_name is None:
            context_name = self.get_current_context().name

        cred_path = self.credentials_dir / f"{context_name}.json"
        cred_path.parent.mkdir(parents=True, exist_ok=True)

        with open(cred_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        cred_path.chmod(0o600)

    def clear_credentials(self, context_name: str | None = None) -> None:
        """Clear credentials for a context (defaults to current)."""
        if context_name is None:
            try:
                context_name = self.get_current_context().name
            except ValueError:
                return
        cred_path = self.credentials_dir / f"{context_name}.json"
        if cred_path.exists():
            cred_path.unlink()


@lru_cache(maxsize=1)
def get_config_service() -> ConfigService:
    """Get a cached ConfigService instance."""
    config_service = ConfigService()
    config_service.load_config()
    return config_service
