"""
Product label lookup.

Labels are attached to saved products (Shopify product/variant pairs)
from the product management screens. The order pipeline reads them to
classify line items and to show difficulty / product type badges.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.card import ProductLabels
from exceptions import LabelLookupError

logger = structlog.get_logger(__name__)


class ProductLabelService:
    """
    Read-only access to product labels.

    Labels come from the product_labels table embedded through the
    saved_products relation.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "saved_products"

    def get_labels(
        self,
        tenant_id: str,
        product_id: Optional[str],
        variant_id: Optional[str]
    ) -> ProductLabels:
        """
        Get labels for a product variant.

        Args:
            tenant_id: Tenant UUID
            product_id: Shopify product id (numeric tail)
            variant_id: Shopify variant id (numeric tail), optional

        Returns:
            ProductLabels (empty when the product is not saved)

        Raises:
            LabelLookupError: If the query fails
        """
        if not product_id:
            return ProductLabels()

        logger.debug(
            "getting_product_labels",
            tenant_id=tenant_id,
            product_id=product_id,
            variant_id=variant_id
        )

        try:
            query = (
                self.db.table(self.table)
                .select("id, shopify_product_id, shopify_variant_id, product_labels(name, category)")
                .eq("tenant_id", tenant_id)
                .eq("shopify_product_id", product_id)
            )
            if variant_id:
                query = query.eq("shopify_variant_id", variant_id)

            response = query.limit(1).execute()

        except Exception as e:
            logger.error(
                "product_labels_get_failed",
                product_id=product_id,
                variant_id=variant_id,
                error=str(e)
            )
            raise LabelLookupError(product_id, variant_id, str(e)) from e

        if not response.data:
            return ProductLabels()

        labels = response.data[0].get("product_labels") or []
        return ProductLabels(
            label_names=[label.get("name") for label in labels if label.get("name")],
            label_categories=[label.get("category") for label in labels if label.get("name")]
        )


# Singleton instance
_product_label_service: Optional[ProductLabelService] = None


def get_product_label_service() -> ProductLabelService:
    """Get or create ProductLabelService instance."""
    global _product_label_service
    if _product_label_service is None:
        _product_label_service = ProductLabelService()
    return _product_label_service
