"""PostgREST row endpoints."""

from typing import Any

from collabdesk_cli.services.api.client import APIClient

RETURN_REPRESENTATION = {"Prefer": "return=representation"}
MERGE_DUPLICATES = {"Prefer": "resolution=merge-duplicates,return=representation"}


class RowsAPI:
    """Row-level API client for the /rest/v1 tables."""

    def __init__(self, client: APIClient):
        self.client = client

    async def select(
        self,
        table: str,
        *,
        filters: dict[str, str] | None = None,
        order: str | None = None,
    ) -> list[dict]:
        """Select rows. Filters use PostgREST operators (``eq.x``, ``is.null``)."""
        params: dict[str, Any] = {"select": "*"}
        if filters:
            params.update(filters)
        if order:
            params["order"] = order

        response = await self.client.get(f"/rest/v1/{table}", params=params)
        return response.json()

    async def insert(self, table: str, row: dict) -> list[dict]:
        """Insert a row and return the inserted representation."""
        response = await self.client.post(
            f"/rest/v1/{table}", json=[row], headers=RETURN_REPRESENTATION
        )
        return response.json()

    async def update(self, table: str, row_id: str, patch: dict) -> list[dict]:
        """Patch the row with the given id and return the updated representation."""
        response = await self.client.patch(
            f"/rest/v1/{table}",
            json=patch,
            params={"id": f"eq.{row_id}"},
            headers=RETURN_REPRESENTATION,
        )
        return response.json()

    async def upsert(self, table: str, row: dict) -> list[dict]:
        """Insert or merge a row on its primary key."""
        response = await self.client.post(
            f"/rest/v1/{table}", json=[row], headers=MERGE_DUPLICATES
        )
        return response.json()

    async def delete(self, table: str, row_id: str) -> list[dict]:
        """Delete the row with the given id and return what was removed."""
        response = await self.client.delete(
            f"/rest/v1/{table}",
            params={"id": f"eq.{row_id}"},
            headers=RETURN_REPRESENTATION,
        )
        return response.json()
