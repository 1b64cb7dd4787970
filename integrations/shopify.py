"""
Shopify Admin API integration.

Fetches orders for the card pipeline. Date lists come from the REST
orders endpoint (legacy flat shape); single orders come from GraphQL
(nested shape). Both shapes are normalized downstream.
"""

from typing import Any, Optional
import requests
import structlog

from config import settings
from models.store import StoreConfig
from exceptions import ShopifyError

logger = structlog.get_logger(__name__)

ORDERS_PAGE_SIZE = 250
MAX_ORDER_PAGES = 20

ORDER_QUERY = """
query getOrder($id: ID!) {
  order(id: $id) {
    id
    legacyResourceId
    name
    createdAt
    note
    tags
    email
    phone
    displayFulfillmentStatus
    displayFinancialStatus
    currencyCode
    customAttributes { key value }
    totalPriceSet { shopMoney { amount currencyCode } }
    subtotalPriceSet { shopMoney { amount currencyCode } }
    customer { id firstName lastName email phone }
    shippingAddress { firstName lastName address1 address2 city province country zip phone }
    lineItems(first: 50) {
      edges {
        node {
          id
          title
          quantity
          customAttributes { key value }
          originalUnitPriceSet { shopMoney { amount currencyCode } }
          variant { id title sku }
          product { id productType }
        }
      }
    }
  }
}
"""


class ShopifyClient:
    """
    Minimal Shopify Admin API client.

    Args:
        domain: myshopify.com domain
        access_token: Admin API access token
        api_version: Admin API version (defaults to settings)
        timeout: Request timeout in seconds (defaults to settings)
        session: Optional requests.Session (tests inject one)
    """

    def __init__(
        self,
        domain: str,
        access_token: str,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        self.domain = domain
        self.access_token = access_token
        self.api_version = api_version or settings.shopify_api_version
        self.timeout = timeout or settings.shopify_timeout_seconds
        self.session = session or requests.Session()

    @classmethod
    def from_store(cls, store: StoreConfig) -> "ShopifyClient":
        """Client for a configured store."""
        return cls(store.domain, store.access_token)

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}/admin/api/{self.api_version}"

    def _headers(self) -> dict:
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

    # ===================
    # REST
    # ===================

    def fetch_orders_by_tag(self, tag: str) -> list[dict]:
        """
        Fetch orders carrying a tag.

        The REST endpoint cannot filter on tags, so all open and closed
        orders are paged through and filtered here.

        Args:
            tag: Exact tag, e.g. "16/10/2026"

        Returns:
            Orders in the REST shape

        Raises:
            ShopifyError: If a request fails
        """
        url: Optional[str] = f"{self.base_url}/orders.json"
        params: Optional[dict] = {"status": "any", "limit": ORDERS_PAGE_SIZE}
        matched: list[dict] = []
        pages = 0

        logger.info("fetching_shopify_orders", domain=self.domain, tag=tag)

        while url and pages < MAX_ORDER_PAGES:
            response = self._request("GET", url, params=params)
            orders = response.json().get("orders") or []
            matched.extend(order for order in orders if _has_tag(order, tag))

            # Link header carries the cursor for the next page
            url = response.links.get("next", {}).get("url")
            params = None
            pages += 1

        if url:
            logger.warning("shopify_order_pages_truncated", domain=self.domain, pages=pages)

        logger.info("shopify_orders_fetched", domain=self.domain, tag=tag, count=len(matched))
        return matched

    # ===================
    # GRAPHQL
    # ===================

    def fetch_order(self, order_ref: str) -> dict:
        """
        Fetch a single order.

        Args:
            order_ref: Order GID or numeric id

        Returns:
            Order in the GraphQL shape

        Raises:
            ShopifyError: If the request fails or the order does not exist
        """
        order_gid = order_ref if str(order_ref).startswith("gid://") else f"gid://shopify/Order/{order_ref}"

        response = self._request(
            "POST",
            f"{self.base_url}/graphql.json",
            json={"query": ORDER_QUERY, "variables": {"id": order_gid}}
        )
        result = response.json()

        if result.get("errors"):
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in result["errors"]
            )
            logger.error("shopify_graphql_error", order=order_gid, error=messages)
            raise ShopifyError(f"GraphQL error: {messages}")

        order = (result.get("data") or {}).get("order")
        if not order:
            raise ShopifyError(f"Order {order_gid} not found", status=404)

        return order

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs
            )
            response.raise_for_status()
            return response

        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error("shopify_http_error", url=url, status=status, error=str(e))
            raise ShopifyError(f"Shopify request failed: {str(e)}", status=status)

        except requests.exceptions.RequestException as e:
            logger.error("shopify_request_failed", url=url, error=str(e))
            raise ShopifyError(f"Shopify request failed: {str(e)}")


def _has_tag(order: dict, tag: str) -> bool:
    tags = order.get("tags") or ""
    if isinstance(tags, list):
        return tag in tags
    return tag in [t.strip() for t in tags.split(",")]
