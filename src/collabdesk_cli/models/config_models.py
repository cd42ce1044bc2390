"""Configuration models for the context system.

A context points either at a local SQLite workspace or at a remote
PostgREST/GoTrue backend.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class APIConfig(BaseModel):
    """API configuration."""

    timeout: int = Field(default=30)


class SyncConfig(BaseModel):
    """Push polling configuration for remote contexts."""

    interval: float = Field(default=5.0, gt=0)


class UIConfig(BaseModel):
    """UI configuration."""

    dark_mode: bool = Field(default=False)
    page_size: int = Field(default=30)


class Context(BaseModel):
    """Context configuration for a backend.

    Represents either a local SQLite workspace or a remote API endpoint.
    """

    name: str = Field(..., description="Unique context name")
    type: Literal["local", "remote"] = Field(..., description="Context type")
    source: str = Field(..., description="Database path or API URL")
    anon_key: str | None = Field(default=None, description="Public API key (remote only)")
    team_id: str | None = Field(default=None, description="Team whose projects are shown")
    description: str = Field(default="", description="Human-readable description")

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        """Validate source is not empty."""
        if not v or not v.strip():
            raise ValueError("source cannot be empty")
        return v.strip()


class AppConfig(BaseModel):
    """Main CollabDesk configuration"""

    current_context_name: str = Field(
        default="default", description="Active context name"
    )
    contexts: list[Context] = Field(
        default_factory=list, description="Available contexts"
    )

    api: APIConfig = Field(default_factory=APIConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    ui: UIConfig = Field(default_factory=UIConfig)

    def get_context(self, name: str) -> Context:
        """Get context by name."""
        for ctx in self.contexts:
            if ctx.name == name:
                return ctx
        raise ValueError(f"Context '{name}' not found")

    def get_current_context(self) -> Context:
        """Get the currently active context."""
        return self.get_context(self.current_context_name)

    def add_context(self, context: Context):
        """Add a new context.

        Raises:
            ValueError: If context with the same name already exists
        """
        existing = [ctx for ctx in self.contexts if ctx.name == context.name]
        if existing:
            raise ValueError(
                f"Context '{context.name}' already exists."
                " Use a different name or remove the existing context first."
            )
        self.contexts.append(context)

    def remove_context(self, name: str):
        """Remove a context by name."""
        original_len = len(self.contexts)
        self.contexts = [ctx for ctx in self.contexts if ctx.name != name]
        if len(self.contexts) == original_len:
            raise ValueError(f"Context '{name}' not found")
        return True
