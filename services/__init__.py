"""
Business logic services.

Each service handles one domain area.
"""

from services.card_state_service import CardStateService, get_card_state_service
from services.field_config_service import (
    FieldConfigService,
    get_field_config_service,
    DEFAULT_FIELD_DEFINITIONS,
)
from services.product_label_service import ProductLabelService, get_product_label_service
from services.store_service import StoreService, get_store_service
from services.field_resolution_service import FieldResolver, get_field_resolver
from services.order_pipeline_service import (
    OrderPipelineService,
    PipelineResult,
    get_order_pipeline_service,
)
from services.card_store import CardStore, CardBoard
from services.notes_debouncer import NotesDebouncer
from services.reconciliation_service import ReconciliationLoop
from services.dashboard_session import DashboardSession

__all__ = [
    "CardStateService",
    "get_card_state_service",
    "FieldConfigService",
    "get_field_config_service",
    "DEFAULT_FIELD_DEFINITIONS",
    "ProductLabelService",
    "get_product_label_service",
    "StoreService",
    "get_store_service",
    "FieldResolver",
    "get_field_resolver",
    "OrderPipelineService",
    "PipelineResult",
    "get_order_pipeline_service",
    "CardStore",
    "CardBoard",
    "NotesDebouncer",
    "ReconciliationLoop",
    "DashboardSession",
]
