"""GoTrue authentication endpoints."""

from collabdesk_cli.services.api.client import APIClient


class AuthAPI:
    """Authentication API client for /auth/v1."""

    def __init__(self, client: APIClient):
        self.client = client

    async def sign_in(self, email: str, password: str) -> dict:
        """Exchange email and password for a session."""
        response = await self.client.post(
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return response.json()

    async def sign_up(self, email: str, password: str) -> dict:
        """Register a new user."""
        response = await self.client.post(
            "/auth/v1/signup", json={"email": email, "password": password}
        )
        return response.json()

    async def sign_out(self) -> None:
        """Revoke the current session."""
        await self.client.post("/auth/v1/logout")

    async def recover(self, email: str, redirect_to: str | None = None) -> None:
        """Send password recovery instructions to an email address."""
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self.client.post("/auth/v1/recover", params=params, json={"email": email})

    async def get_user(self) -> dict:
        """Get the user owning the current access token."""
        response = await self.client.get("/auth/v1/user")
        return response.json()

    async def list_users(self) -> dict:
        """List all users (admin endpoint)."""
        response = await self.client.get("/auth/v1/admin/users")
        return response.json()
