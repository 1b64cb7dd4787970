"""
Order card API routes.

Endpoints for the order board: field configuration, cards for a delivery
date, card state writes and the change feed polled by other sessions.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.card import (
    CardBoardResponse,
    CardDeltaListResponse,
    CardStateUpdate,
    CardStateWriteResult,
)
from models.field_definition import FieldConfigResponse
from services.card_state_service import get_card_state_service
from services.dashboard_session import DashboardSession
from services.field_config_service import get_field_config_service
from services.order_pipeline_service import get_order_pipeline_service, parse_delivery_date
from services.store_service import get_store_service
from integrations.shopify import ShopifyClient
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/tenants/{tenant_id}", tags=["Order Cards"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _session(tenant_id: str) -> DashboardSession:
    return DashboardSession(
        tenant_id,
        pipeline=get_order_pipeline_service(),
        state_service=get_card_state_service(),
        field_config_service=get_field_config_service(),
    )


# ===================
# FIELD CONFIG
# ===================

@router.get("/order-card-config", response_model=FieldConfigResponse)
async def get_order_card_config(tenant_id: str):
    """
    Get the order card field configuration.

    Returns the default field set when the tenant has none stored.
    """
    try:
        return get_field_config_service().get_config_response(tenant_id)

    except Exception as e:
        return handle_error(e)


# ===================
# CARDS
# ===================

@router.get("/stores/{store_id}/cards", response_model=CardBoardResponse)
async def get_cards(
    tenant_id: str,
    store_id: str,
    date: str = Query(..., description="Delivery date (YYYY-MM-DD or DD/MM/YYYY)"),
):
    """
    Get rendered cards for a delivery date.

    Orders are selected by their dd/mm/yyyy tag. Orders that could not be
    processed are listed under errors; the other cards are still returned.
    """
    try:
        delivery_date = parse_delivery_date(date)
        store = get_store_service().get_store(tenant_id, store_id)

        session = _session(tenant_id)
        result = session.load(ShopifyClient.from_store(store), delivery_date)
        main_cards, add_on_cards = session.render()

        return CardBoardResponse(
            delivery_date=delivery_date.isoformat(),
            main_cards=main_cards,
            add_on_cards=add_on_cards,
            errors=result.failures,
        )

    except Exception as e:
        return handle_error(e)


@router.get("/stores/{store_id}/orders/{order_id}/cards", response_model=CardBoardResponse)
async def get_order_cards(
    tenant_id: str,
    store_id: str,
    order_id: str,
    date: Optional[str] = Query(None, description="Delivery date stamped on the cards"),
):
    """
    Get rendered cards for a single order.

    Raises:
        503: Order could not be fetched
    """
    try:
        delivery_date = parse_delivery_date(date).isoformat() if date else None
        store = get_store_service().get_store(tenant_id, store_id)

        session = _session(tenant_id)
        session.load_order(ShopifyClient.from_store(store), order_id, delivery_date)
        main_cards, add_on_cards = session.render()

        return CardBoardResponse(
            delivery_date=delivery_date or "",
            main_cards=main_cards,
            add_on_cards=add_on_cards,
        )

    except Exception as e:
        return handle_error(e)


# ===================
# CARD STATE
# ===================

@router.put("/order-card-states/{card_id}", response_model=CardStateWriteResult)
async def put_card_state(tenant_id: str, card_id: str, data: CardStateUpdate):
    """
    Upsert the state of one card.

    Only fields present in the body are written.
    """
    try:
        return get_card_state_service().upsert(tenant_id, card_id, data)

    except Exception as e:
        return handle_error(e)


@router.get("/order-card-states/changes", response_model=CardDeltaListResponse)
async def list_card_state_changes(
    tenant_id: str,
    since: Optional[str] = Query(None, description="Cursor (updated_at of the last seen change)"),
):
    """
    List card states changed after a cursor.

    The returned cursor is passed as `since` on the next poll.
    """
    try:
        changes = get_card_state_service().list_changed_since(tenant_id, since)
        cursor = max(
            (delta.updated_at for delta in changes if delta.updated_at),
            default=since
        )
        return CardDeltaListResponse(changes=changes, cursor=cursor)

    except Exception as e:
        return handle_error(e)
