"""Supabase client singleton for database operations."""

import logging
from functools import lru_cache
from typing import Any

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client, create_client

from src.api.middleware.error_handler import PersistenceError
from src.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client:
    """Get cached Supabase client singleton for database operations.

    Uses the secret key for backend operations, which bypasses RLS
    at the PostgREST level. Ownership checks happen in the services.

    Returns:
        Client: Supabase client instance.
    """
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
    )


def execute_query(query: Any, operation: str, **context: Any) -> Any:
    """Execute a PostgREST query, mapping storage failures to PersistenceError.

    Args:
        query: A Supabase query builder ready to ``execute()``.
        operation: Short operation name for logs.
        **context: Extra identifiers (order_id, product_id) for logs.

    Returns:
        The Supabase API response.

    Raises:
        PersistenceError: If the database or transport fails.
    """
    try:
        return query.execute()
    except (PostgrestAPIError, httpx.HTTPError) as e:
        logger.error(
            "Database error during %s (%s): %s",
            operation,
            ", ".join(f"{k}={v}" for k, v in context.items()) or "no context",
            str(e),
        )
        raise PersistenceError() from e


async def check_database_connection() -> dict[str, Any]:
    """Check if database connection is healthy.

    Performs a simple query to verify database connectivity.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        client = get_supabase_client()
        client.table("orders").select("id").limit(1).execute()
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
