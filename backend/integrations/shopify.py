"""
Shopify Admin GraphQL Client

Handles the three Admin API calls the sync needs:
  - read one order with shipping address and line items
  - find a product variant (and its inventory level) by SKU
  - adjust the available quantity of an inventory level by a delta

Uses the shop's offline access token stored by the app install flow.
"""

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import get_settings
from core.errors import PlatformApiError
from db.credentials import load_access_token

logger = structlog.get_logger()

ORDER_QUERY = """
query getOrder($id: ID!, $lineItems: Int!) {
  order(id: $id) {
    id
    name
    email
    phone
    note
    createdAt
    totalPriceSet { shopMoney { amount currencyCode } }
    shippingAddress {
      firstName
      lastName
      company
      address1
      address2
      city
      province
      provinceCode
      zip
      country
      countryCodeV2
      phone
    }
    lineItems(first: $lineItems) {
      edges {
        node {
          id
          name
          quantity
          sku
          variant { id sku product { id } }
          product { id }
        }
      }
    }
  }
}
"""

VARIANT_BY_SKU_QUERY = """
query getVariantBySku($query: String!) {
  productVariants(first: 5, query: $query) {
    edges {
      node {
        id
        sku
        inventoryItem {
          id
          inventoryLevels(first: 1) {
            edges {
              node {
                id
                location { id }
                quantities(names: ["available"]) { name quantity }
              }
            }
          }
        }
      }
    }
  }
}
"""

ADJUST_INVENTORY_MUTATION = """
mutation adjustAvailable($input: InventoryAdjustQuantitiesInput!) {
  inventoryAdjustQuantities(input: $input) {
    inventoryAdjustmentGroup {
      changes { name delta quantityAfterChange }
    }
    userErrors { field message }
  }
}
"""


class ShopifyThrottled(PlatformApiError):
    """Shopify rejected the call for exceeding the API rate limit."""

    code = "platform_throttled"


def order_gid(order_id: str) -> str:
    order_id = str(order_id)
    if order_id.startswith("gid://"):
        return order_id
    return f"gid://shopify/Order/{order_id}"


def legacy_id(gid: str | None) -> str | None:
    """``gid://shopify/Product/123`` → ``123``."""
    if not gid:
        return None
    return str(gid).rsplit("/", 1)[-1]


class ShopifyAdminClient:
    """Client for Shopify Admin GraphQL API interactions."""

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.shop = shop
        self.api_version = api_version or get_settings().shopify_api_version
        self.endpoint = f"https://{shop}/admin/api/{self.api_version}/graphql.json"
        self.headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
        }
        self._transport = transport

    @retry(
        retry=retry_if_exception_type(ShopifyThrottled),
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        reraise=True,
    )
    async def _post(self, payload: dict) -> dict:
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(self.endpoint, headers=self.headers, json=payload)
        if response.status_code == 429:
            raise ShopifyThrottled("Shopify API rate limit exceeded")
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as exc:
            raise PlatformApiError(f"Shopify returned a non-JSON response: {exc}") from exc
        if not isinstance(body, dict):
            raise PlatformApiError("Shopify returned an unexpected response body")

        errors = body.get("errors") or []
        if any((err.get("extensions") or {}).get("code") == "THROTTLED" for err in errors if isinstance(err, dict)):
            raise ShopifyThrottled("Shopify API rate limit exceeded")
        return body

    async def graphql(self, query: str, variables: dict | None = None) -> dict:
        try:
            body = await self._post({"query": query, "variables": variables or {}})
        except httpx.HTTPError as exc:
            logger.error("shopify.request_failed", shop=self.shop, error=str(exc))
            raise PlatformApiError(f"Shopify request failed: {exc}") from exc

        errors = body.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            message = first.get("message", str(first)) if isinstance(first, dict) else str(first)
            logger.error("shopify.graphql_error", shop=self.shop, error=message)
            raise PlatformApiError(f"Shopify GraphQL error: {message}")
        return body.get("data") or {}

    async def get_order(self, order_id: str, line_items_limit: int | None = None) -> dict | None:
        """Return the raw order node, or None when Shopify has no such order."""
        limit = line_items_limit or get_settings().order_line_items_limit
        data = await self.graphql(ORDER_QUERY, {"id": order_gid(order_id), "lineItems": limit})
        return data.get("order")

    async def find_variant_by_sku(self, sku: str) -> dict | None:
        escaped = sku.replace("\\", "\\\\").replace('"', '\\"')
        data = await self.graphql(VARIANT_BY_SKU_QUERY, {"query": f'sku:"{escaped}"'})
        edges = ((data.get("productVariants") or {}).get("edges")) or []
        for edge in edges:
            node = edge.get("node") or {}
            if node.get("sku") == sku:
                return node
        return None

    async def adjust_available(self, inventory_item_id: str, location_id: str, delta: int) -> dict:
        """Apply ``delta`` to the available quantity. Returns the mutation payload."""
        data = await self.graphql(
            ADJUST_INVENTORY_MUTATION,
            {
                "input": {
                    "name": "available",
                    "reason": "correction",
                    "changes": [
                        {
                            "delta": delta,
                            "inventoryItemId": inventory_item_id,
                            "locationId": location_id,
                        }
                    ],
                }
            },
        )
        return data.get("inventoryAdjustQuantities") or {}


async def build_admin_client(db: AsyncSession, shop: str) -> ShopifyAdminClient:
    """Admin client for ``shop`` using its stored offline access token."""
    return ShopifyAdminClient(shop, await load_access_token(db, shop))
