"""
Database connection management.

Provides the Supabase client singleton used by the card state,
field config, product label and store services.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class DatabaseError(Exception):
    """Base exception for database connection errors."""
    pass


class ConnectionError(DatabaseError):
    """Failed to connect to database."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Uses lru_cache to ensure only one client is created.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ConnectionError: If the client cannot be created
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        # Server-side key bypasses row level security when configured
        client = create_client(
            settings.supabase_url,
            settings.supabase_service_key or settings.supabase_key
        )

        logger.info("supabase_connected", status="success")
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


def check_connection() -> dict:
    """
    Check database connection health.

    Counts rows of the card state table as a cheap liveness probe.

    Returns:
        dict: Connection status with details
    """
    try:
        client = get_supabase_client()
        states = (
            client.table("order_card_states")
            .select("card_id", count="exact")
            .limit(1)
            .execute()
        )

        return {
            "status": "healthy",
            "card_states_count": states.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }

