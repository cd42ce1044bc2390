"""Service for handling authentication-related operations.

The session lives in the identity provider of the workspace; between CLI runs
it is kept in the credentials file of the active context.
"""

from __future__ import annotations

from collabdesk_cli.models import AuthenticationError, AuthRecord, ValidationError
from collabdesk_cli.services.config_service import ConfigService
from collabdesk_cli.services.workspace import Workspace
from collabdesk_cli.utils.logger import get_logger


class AuthService:
    """Sign-in, sign-up and sign-out for one workspace."""

    def __init__(self, workspace: Workspace, config_service: ConfigService):
        self.workspace = workspace
        self.config_service = config_service
        self._logger = get_logger("auth")

    @property
    def identity(self):
        return self.workspace.identity

    def is_authenticated(self) -> bool:
        """Check whether a saved session exists for the active context."""
        return self.config_service.load_credentials() is not None

    async def restore(self) -> AuthRecord | None:
        """Resume the saved session, dropping it if it is no longer valid."""
        credentials = self.config_service.load_credentials()
        if not credentials:
            return None
        user = await self.identity.restore_session(credentials)
        if user is None:
            self._logger.info("saved session expired")
            self.config_service.clear_credentials()
        return user

    async def sign_in(self, email: str, password: str) -> AuthRecord:
        user = await self.identity.sign_in(email, password)
        self._save_session()
        self._logger.info("signed in as %s", user.id)
        return user

    async def sign_up(self, email: str, password: str) -> AuthRecord:
        user = await self.identity.sign_up(email, password)
        self._save_session()
        self._logger.info("signed up as %s", user.id)
        return user

    async def reset_password(self, email: str, redirect_to: str | None = None) -> None:
        """Request password reset instructions for an account.

        Raises:
            ValidationError: If no email is given
            AuthenticationError: If the request is rejected
        """
        email = (email or "").strip()
        if not email:
            raise ValidationError("Please enter your email address")
        await self.identity.reset_password(email, redirect_to)
        self._logger.info("password reset requested")

    async def sign_out(self) -> None:
        """Close the session and reset the workspace."""
        try:
            await self.identity.sign_out()
        finally:
            await self.workspace.reset()
            self.config_service.clear_credentials()
            self._logger.info("signed out")

    async def current_user(self) -> AuthRecord | None:
        return await self.identity.get_session_user()

    async def require_user(self) -> AuthRecord:
        """Return the session identity, restoring it from disk if needed.

        Raises:
            AuthenticationError: If nobody is signed in
        """
        user = await self.current_user() or await self.restore()
        if user is None:
            raise AuthenticationError("Not signed in. Run 'collabdesk auth login' first.")
        return user

    def _save_session(self) -> None:
        credentials = self.identity.export_session()
        if credentials:
            self.config_service.save_credentials(credentials)
