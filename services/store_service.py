"""
Shopify store lookup.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.store import StoreConfig
from exceptions import DatabaseError, StoreNotFoundError

logger = structlog.get_logger(__name__)


class StoreService:
    """Read access to tenant Shopify store connections."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "shopify_stores"

    def get_store(self, tenant_id: str, store_id: str) -> StoreConfig:
        """
        Get a store connection.

        Args:
            tenant_id: Tenant UUID
            store_id: Store UUID

        Returns:
            StoreConfig

        Raises:
            StoreNotFoundError: If the store is not configured for the tenant
        """
        logger.debug("getting_store", tenant_id=tenant_id, store_id=store_id)

        try:
            response = (
                self.db.table(self.table)
                .select("*")
                .eq("tenant_id", tenant_id)
                .eq("id", store_id)
                .execute()
            )
        except Exception as e:
            logger.error("store_get_failed", store_id=store_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not response.data:
            raise StoreNotFoundError(store_id)

        return StoreConfig.model_validate(response.data[0])


# Singleton instance
_store_service: Optional[StoreService] = None


def get_store_service() -> StoreService:
    """Get or create StoreService instance."""
    global _store_service
    if _store_service is None:
        _store_service = StoreService()
    return _store_service
