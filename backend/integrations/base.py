"""
Shared sync types.

Normalized records passed between the Shopify client, the Velocity XML
formatter, the inventory file parser and the ledger.
"""

from dataclasses import dataclass, field
from enum import Enum


class SyncStatus(str, Enum):
    """Ledger status of one order or SKU."""

    SUCCESS = "success"
    FAILED = "failed"


# ── Orders ─────────────────────────────────────────────────────────────────


@dataclass
class ShippingAddress:
    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    province: str | None = None
    province_code: str | None = None
    zip: str | None = None
    country: str | None = None
    country_code: str | None = None
    phone: str | None = None

    @classmethod
    def from_graphql(cls, node: dict | None) -> "ShippingAddress | None":
        if not node:
            return None
        return cls(
            first_name=node.get("firstName"),
            last_name=node.get("lastName"),
            company=node.get("company"),
            address1=node.get("address1"),
            address2=node.get("address2"),
            city=node.get("city"),
            province=node.get("province"),
            province_code=node.get("provinceCode"),
            zip=node.get("zip"),
            country=node.get("country"),
            country_code=node.get("countryCodeV2") or node.get("countryCode"),
            phone=node.get("phone"),
        )


@dataclass
class OrderLineItem:
    quantity: int
    sku: str | None = None
    product_id: str | None = None


@dataclass
class OrderPayload:
    """Normalized order consumed by the Velocity XML formatter."""

    id: str
    order_number: str
    email: str | None = None
    phone: str | None = None
    note: str | None = None
    created_at: str | None = None
    total_price: str | None = None
    currency: str | None = None
    shipping_address: ShippingAddress | None = None
    line_items: list[OrderLineItem] = field(default_factory=list)


# ── Inventory ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class InventoryLine:
    sku: str
    quantity: int
