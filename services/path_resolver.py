"""
Path resolution against canonical order records.

A field's source path is parsed once into one of a closed set of path
variants and then resolved against the record. Resolution never raises:
any missing or mismatched segment yields None.

Grammar, in priority order:
    1. no "."                         -> DirectPath
    2. noteAttributes.<key>           -> NoteAttributePath
    3. shippingAddress.<f> / customer.<f> -> NestedPath
    4. <priceType>Set.shopMoney.amount    -> MoneyAmountPath
    5. first line item literals       -> LineItemLiteralPath
    6. anything else                  -> GenericWalkPath
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Union
import re


NOTE_ATTRIBUTES_PREFIX = "noteAttributes"
NESTED_OBJECTS = ("shippingAddress", "customer")

_MONEY_PATH = re.compile(r"^(?P<price_key>\w+Set)\.shopMoney\.amount$")

# Literal path -> attribute chain inside the first line item node.
LINE_ITEM_LITERALS: dict[str, tuple[str, ...]] = {
    "lineItems.edges.0.node.title": ("title",),
    "lineItems.edges.0.node.variant.title": ("variant", "title"),
    "lineItems.edges.0.node.variant.sku": ("variant", "sku"),
    "lineItems.edges.0.node.quantity": ("quantity",),
    "lineItems.edges.0.node.product.productType": ("product", "productType"),
    # Legacy aliases still found in older stored configs
    "line_items.title": ("title",),
    "line_items.variant_title": ("variant", "title"),
}


@dataclass(frozen=True)
class DirectPath:
    key: str


@dataclass(frozen=True)
class NoteAttributePath:
    key: str


@dataclass(frozen=True)
class NestedPath:
    parent: str
    field: str


@dataclass(frozen=True)
class MoneyAmountPath:
    price_key: str


@dataclass(frozen=True)
class LineItemLiteralPath:
    attributes: tuple[str, ...]


@dataclass(frozen=True)
class GenericWalkPath:
    segments: tuple[str, ...]


PathSpec = Union[
    DirectPath,
    NoteAttributePath,
    NestedPath,
    MoneyAmountPath,
    LineItemLiteralPath,
    GenericWalkPath,
]


@lru_cache(maxsize=1024)
def parse_path(path: str) -> PathSpec:
    """
    Parse a source path string into its path variant.

    Args:
        path: Dotted path as stored in a field definition

    Returns:
        The matching path variant (first rule that applies wins)
    """
    if "." not in path:
        return DirectPath(path)

    head, rest = path.split(".", 1)

    if head == NOTE_ATTRIBUTES_PREFIX:
        return NoteAttributePath(rest)

    if head in NESTED_OBJECTS:
        return NestedPath(head, rest)

    money = _MONEY_PATH.match(path)
    if money:
        return MoneyAmountPath(money.group("price_key"))

    if path in LINE_ITEM_LITERALS:
        return LineItemLiteralPath(LINE_ITEM_LITERALS[path])

    return GenericWalkPath(tuple(path.split(".")))


def resolve(record: Any, path: Optional[str]) -> Any:
    """
    Resolve a source path against a canonical order record.

    Args:
        record: Canonical order record (nested shape)
        path: Source path string

    Returns:
        The raw value, or None when any segment is missing
    """
    if not path or not isinstance(record, dict):
        return None
    return resolve_spec(record, parse_path(path))


def resolve_spec(record: dict, spec: PathSpec) -> Any:
    """Resolve an already parsed path variant."""
    if isinstance(spec, DirectPath):
        return record.get(spec.key)

    if isinstance(spec, NoteAttributePath):
        return _note_attribute(record, spec.key)

    if isinstance(spec, NestedPath):
        parent = record.get(spec.parent)
        return parent.get(spec.field) if isinstance(parent, dict) else None

    if isinstance(spec, MoneyAmountPath):
        return _get_chain(record, (spec.price_key, "shopMoney", "amount"))

    if isinstance(spec, LineItemLiteralPath):
        node = first_line_item(record)
        return _get_chain(node, spec.attributes) if node is not None else None

    if isinstance(spec, GenericWalkPath):
        return _walk(record, spec.segments)

    return None


def first_line_item(record: dict) -> Optional[dict]:
    """Node of the first line item, or None when the order has none."""
    edges = _get_chain(record, ("lineItems", "edges"))
    if not isinstance(edges, list) or not edges:
        return None
    node = edges[0].get("node") if isinstance(edges[0], dict) else None
    return node if isinstance(node, dict) else None


def _note_attribute(record: dict, key: str) -> Any:
    attributes = record.get("customAttributes")
    if not isinstance(attributes, list):
        return None
    for attribute in attributes:
        if isinstance(attribute, dict) and attribute.get("key") == key:
            return attribute.get("value")
    return None


def _get_chain(value: Any, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _walk(value: Any, segments: tuple[str, ...]) -> Any:
    for segment in segments:
        # A non-numeric segment on an array implicitly selects element 0,
        # repeated for nested arrays.
        while isinstance(value, list):
            if segment.isdigit():
                index = int(segment)
                value = value[index] if index < len(value) else None
                break
            if not value:
                return None
            value = value[0]
        else:
            if not isinstance(value, dict):
                return None
            value = value.get(segment)

        if value is None:
            return None

    return value
