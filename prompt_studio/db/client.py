"""Supabase client initialization and table helpers used by the stores."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import structlog
from supabase import Client, create_client

from prompt_studio.config import get_settings

logger = structlog.get_logger()


class SupabaseClient:
    """Thin row-level wrapper around the Supabase client.

    Rows are plain dicts; the stores convert them into models.
    """

    def __init__(self, client: Client) -> None:
        self._client = client

    @property
    def client(self) -> Client:
        return self._client

    def insert(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a record and return the created row."""
        result = self._client.table(table).insert(data).execute()
        return result.data[0]

    def get(self, table: str, id: str) -> dict[str, Any] | None:
        """Fetch a single row by primary key."""
        result = self._client.table(table).select("*").eq("id", id).limit(1).execute()
        return result.data[0] if result.data else None

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        ascending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Select records with optional equality filters, ordering, and limit."""
        query = self._client.table(table).select("*")

        if filters:
            for key, value in filters.items():
                query = query.eq(key, value)

        if order_by:
            query = query.order(order_by, desc=not ascending)

        if limit:
            query = query.limit(limit)

        return query.execute().data

    def update(self, table: str, id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update a record by ID and return the new row."""
        result = self._client.table(table).update(data).eq("id", id).execute()
        return result.data[0]

    def delete(self, table: str, id: str) -> None:
        """Delete a record by ID."""
        self._client.table(table).delete().eq("id", id).execute()

    def delete_where(self, table: str, column: str, value: Any) -> None:
        """Delete every record whose column equals value."""
        self._client.table(table).delete().eq(column, value).execute()


@lru_cache
def get_supabase_client() -> SupabaseClient:
    """Get cached Supabase client instance."""
    settings = get_settings()
    client = create_client(settings.supabase_url, settings.supabase_key)
    logger.info("supabase.connected", url=settings.supabase_url)
    return SupabaseClient(client)
