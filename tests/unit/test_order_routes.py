"""
API tests for the order card routes.

Run: pytest tests/unit/test_order_routes.py -v
"""

from unittest.mock import patch

from exceptions import ShopifyError
from tests.factories import CardStateRowFactory, OrderFactory

BASE = "/api/tenants/tenant-1"

STORE_ROW = {
    "id": "store-1",
    "tenant_id": "tenant-1",
    "name": "Main",
    "settings": {"domain": "blooms.myshopify.com", "accessToken": "shpat_x"},
}


class TestOrderCardConfigRoute:
    """GET /order-card-config"""

    def test_default_config(self, test_client_with_mock_db):
        response = test_client_with_mock_db.get(f"{BASE}/order-card-config")

        assert response.status_code == 200
        body = response.json()
        assert body["isDefault"] is True
        assert body["fields"][0]["id"] == "productTitle"
        assert body["fields"][0]["sourcePaths"] == ["lineItems.edges.0.node.title"]

    def test_database_error_envelope(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_error("order_card_configs", "timeout")

        response = test_client_with_mock_db.get(f"{BASE}/order-card-config")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "DATABASE_ERROR"


class TestCardsRoute:
    """GET /stores/{store_id}/cards"""

    def test_cards_for_date(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_data("shopify_stores", [STORE_ROW])
        orders = [OrderFactory.create_legacy(id=5512345678902)]

        with patch("integrations.shopify.ShopifyClient.fetch_orders_by_tag", return_value=orders) as fetch:
            response = test_client_with_mock_db.get(f"{BASE}/stores/store-1/cards", params={"date": "2026-10-16"})

        assert response.status_code == 200
        fetch.assert_called_once_with("16/10/2026")
        body = response.json()
        assert body["deliveryDate"] == "2026-10-16"
        assert [card["cardId"] for card in body["mainCards"]] == [
            "5512345678902-11001-0",
            "5512345678902-11001-1",
        ]
        assert body["mainCards"][0]["fields"]["orderId"] == "#1002"
        assert body["addOnCards"] == []
        assert body["errors"] == []

    def test_invalid_date(self, test_client_with_mock_db):
        response = test_client_with_mock_db.get(f"{BASE}/stores/store-1/cards", params={"date": "soon"})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_ORDER_DATE"

    def test_unknown_store(self, test_client_with_mock_db):
        response = test_client_with_mock_db.get(f"{BASE}/stores/nope/cards", params={"date": "2026-10-16"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "STORE_NOT_FOUND"

    def test_single_order_fetch_failure(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_data("shopify_stores", [STORE_ROW])

        with patch(
            "integrations.shopify.ShopifyClient.fetch_order",
            side_effect=ShopifyError("Order not found", status=404),
        ):
            response = test_client_with_mock_db.get(f"{BASE}/stores/store-1/orders/77/cards")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "ORDER_SOURCE_ERROR"


class TestCardStateRoutes:
    """PUT /order-card-states/{card_id} and GET /order-card-states/changes"""

    def test_put_state(self, test_client_with_mock_db):
        response = test_client_with_mock_db.put(
            f"{BASE}/order-card-states/1001-1-0",
            json={"status": "assigned", "assignedTo": "Mei"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["cardId"] == "1001-1-0"
        assert body["updatedAt"]

    def test_put_invalid_status(self, test_client_with_mock_db):
        response = test_client_with_mock_db.put(
            f"{BASE}/order-card-states/1001-1-0",
            json={"status": "lost"},
        )

        assert response.status_code == 422

    def test_changes_with_cursor(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_data("order_card_states", [
            CardStateRowFactory.create(card_id="a", updated_at="2026-10-16T08:00:01+00:00"),
            CardStateRowFactory.create(card_id="b", updated_at="2026-10-16T08:00:03+00:00"),
        ])

        response = test_client_with_mock_db.get(
            f"{BASE}/order-card-states/changes",
            params={"since": "2026-10-16T08:00:00+00:00"},
        )

        assert response.status_code == 200
        body = response.json()
        assert [change["cardId"] for change in body["changes"]] == ["a", "b"]
        assert body["cursor"] == "2026-10-16T08:00:03+00:00"

    def test_changes_empty_keeps_cursor(self, test_client_with_mock_db):
        response = test_client_with_mock_db.get(
            f"{BASE}/order-card-states/changes",
            params={"since": "c-1"},
        )

        assert response.json() == {"changes": [], "cursor": "c-1"}


class TestHealth:
    def test_health(self, test_client_with_mock_db):
        response = test_client_with_mock_db.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
