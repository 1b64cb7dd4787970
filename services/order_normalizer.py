"""
Normalization of upstream orders into the canonical nested shape.

Shopify hands out orders in two shapes:
    - REST (legacy): flat `line_items`, `note_attributes`, snake_case keys,
      money as plain strings, tags as one comma-separated string.
    - GraphQL: `lineItems.edges[].node`, `customAttributes`, camelCase keys,
      money under `<priceType>Set.shopMoney`.

Everything downstream (path resolution, expansion) reads only the
GraphQL-like canonical shape produced here.
"""

from typing import Any, Optional
import structlog

logger = structlog.get_logger(__name__)

MONEY_FIELDS = {
    "total_price": "totalPriceSet",
    "subtotal_price": "subtotalPriceSet",
    "total_tax": "totalTaxSet",
    "total_discounts": "totalDiscountsSet",
}

ADDRESS_FIELDS = {
    "first_name": "firstName",
    "last_name": "lastName",
    "name": "name",
    "address1": "address1",
    "address2": "address2",
    "city": "city",
    "province": "province",
    "country": "country",
    "zip": "zip",
    "phone": "phone",
}

CUSTOMER_FIELDS = {
    "id": "id",
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
    "phone": "phone",
}


def is_legacy_order(raw: dict) -> bool:
    """True for the flat REST shape."""
    return "line_items" in raw and "lineItems" not in raw


def normalize_tags(tags: Any) -> list[str]:
    """Tags as a list; legacy comma-separated strings are split."""
    if tags is None:
        return []
    if isinstance(tags, str):
        return [tag.strip() for tag in tags.split(",") if tag.strip()]
    if isinstance(tags, list):
        return [str(tag) for tag in tags]
    return [str(tags)]


def normalize_order(raw: dict) -> dict:
    """
    Convert an upstream order into the canonical nested shape.

    Args:
        raw: Order as returned by the upstream source (either shape)

    Returns:
        New canonical record; the input is not modified
    """
    if is_legacy_order(raw):
        record = _from_legacy(raw)
        logger.debug("order_normalized", order_id=record.get("id"), shape="legacy")
    else:
        record = _from_nested(raw)
        logger.debug("order_normalized", order_id=record.get("id"), shape="nested")
    return record


# ===================
# NESTED SHAPE
# ===================

def _from_nested(raw: dict) -> dict:
    record = dict(raw)
    record["tags"] = normalize_tags(raw.get("tags"))
    record["customAttributes"] = list(raw.get("customAttributes") or [])

    line_items = raw.get("lineItems")
    if isinstance(line_items, list):
        # Some callers flatten the connection to a plain node list
        record["lineItems"] = {"edges": [{"node": node} for node in line_items]}
    elif not isinstance(line_items, dict):
        record["lineItems"] = {"edges": []}

    return record


# ===================
# LEGACY SHAPE
# ===================

def _from_legacy(raw: dict) -> dict:
    currency = raw.get("currency") or raw.get("presentment_currency")

    record: dict[str, Any] = {
        "id": _str_or_none(raw.get("admin_graphql_api_id") or raw.get("id")),
        "legacyResourceId": _str_or_none(raw.get("id")),
        "name": raw.get("name"),
        "orderNumber": raw.get("order_number"),
        "createdAt": raw.get("created_at"),
        "email": raw.get("email"),
        "phone": raw.get("phone"),
        "note": raw.get("note"),
        "tags": normalize_tags(raw.get("tags")),
        "displayFulfillmentStatus": _upper_or_none(raw.get("fulfillment_status")),
        "displayFinancialStatus": _upper_or_none(raw.get("financial_status")),
        "currencyCode": currency,
        "customer": _rename(raw.get("customer"), CUSTOMER_FIELDS),
        "shippingAddress": _rename(raw.get("shipping_address"), ADDRESS_FIELDS),
        "customAttributes": [
            {"key": attr.get("name"), "value": attr.get("value")}
            for attr in raw.get("note_attributes") or []
            if isinstance(attr, dict)
        ],
        "lineItems": {
            "edges": [
                {"node": _legacy_line_item(item, currency)}
                for item in raw.get("line_items") or []
                if isinstance(item, dict)
            ]
        },
    }

    for legacy_key, money_key in MONEY_FIELDS.items():
        if raw.get(legacy_key) is not None:
            record[money_key] = _money(raw[legacy_key], currency)

    return record


def _legacy_line_item(item: dict, currency: Optional[str]) -> dict:
    product_id = _str_or_none(item.get("product_id"))
    variant_id = _str_or_none(item.get("variant_id"))
    return {
        "id": _str_or_none(item.get("id")),
        "title": item.get("title") or item.get("name"),
        "quantity": item.get("quantity"),
        "originalUnitPriceSet": _money(item.get("price"), currency),
        "variant": {
            "id": variant_id,
            "title": item.get("variant_title"),
            "sku": item.get("sku"),
        },
        "product": {
            "id": product_id,
            "productType": item.get("product_type"),
        },
        "customAttributes": [
            {"key": prop.get("name"), "value": prop.get("value")}
            for prop in item.get("properties") or []
            if isinstance(prop, dict)
        ],
    }


def _money(amount: Any, currency: Optional[str]) -> dict:
    return {
        "shopMoney": {
            "amount": None if amount is None else str(amount),
            "currencyCode": currency,
        }
    }


def _rename(source: Any, mapping: dict[str, str]) -> Optional[dict]:
    if not isinstance(source, dict):
        return None
    return {
        target: source.get(legacy)
        for legacy, target in mapping.items()
        if legacy in source
    }


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _upper_or_none(value: Any) -> Optional[str]:
    return value.upper() if isinstance(value, str) else None
