"""
Order Sync Workflow

Shopify order → Velocity XML → FTP ``in`` directory, with the outcome recorded
in the ledger. Webhook deliveries and manual syncs share this path; the ledger
check in step 1 keeps a second trigger for the same order from uploading again.

  1. ledger says success       → return success, touch nothing
  2. load FTP credentials      → ConfigurationMissing before any network call
  3. fetch order from Shopify  → NotFoundError when absent
  4. normalize + format XML
  5. upload in/order_<n>.xml
  6. upsert ledger success / failed
"""

from dataclasses import asdict, dataclass
from datetime import date

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from core.errors import NotFoundError, SyncError
from db.credentials import load_ftp_credentials
from db.ledger import get_order_sync, record_order_sync
from integrations.base import OrderLineItem, OrderPayload, ShippingAddress, SyncStatus
from integrations.ftp import FtpConnector, open_ftp_session
from integrations.shopify import ShopifyAdminClient, legacy_id
from integrations.velocity_xml import format_order_xml, order_filename

logger = structlog.get_logger()


@dataclass
class OrderSyncResult:
    success: bool
    message: str
    order_id: str
    order_number: str | None = None
    error_code: str | None = None
    already_synced: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def normalize_order_id(order_id) -> str:
    """Ledger key: the numeric order id, whether given bare or as a GID."""
    return legacy_id(str(order_id).strip()) or ""


def normalize_order(order_id: str, node: dict) -> OrderPayload:
    """Map a GraphQL order node onto the formatter's OrderPayload."""
    line_items = []
    for edge in (node.get("lineItems") or {}).get("edges") or []:
        item = edge.get("node") or {}
        variant = item.get("variant") or {}
        product = item.get("product") or variant.get("product") or {}
        line_items.append(
            OrderLineItem(
                sku=item.get("sku") or variant.get("sku") or None,
                quantity=int(item.get("quantity") or 0),
                product_id=legacy_id(product.get("id")),
            )
        )

    money = (node.get("totalPriceSet") or {}).get("shopMoney") or {}
    return OrderPayload(
        id=order_id,
        order_number=str(node.get("name") or order_id).replace("#", ""),
        email=node.get("email"),
        phone=node.get("phone"),
        note=node.get("note"),
        created_at=node.get("createdAt"),
        total_price=money.get("amount"),
        currency=money.get("currencyCode"),
        shipping_address=ShippingAddress.from_graphql(node.get("shippingAddress")),
        line_items=line_items,
    )


async def process_order(
    db: AsyncSession,
    shop: str,
    order_id,
    *,
    shopify: ShopifyAdminClient,
    ftp_connect: FtpConnector = open_ftp_session,
    settings: Settings | None = None,
    order_date: date | None = None,
) -> OrderSyncResult:
    """Sync one order to the FTP server. Failures come back as a result, never raised."""
    settings = settings or get_settings()
    order_id = normalize_order_id(order_id)
    log = logger.bind(shop=shop, order_id=order_id)

    existing = await get_order_sync(db, shop, order_id)
    if existing is not None and existing.status == SyncStatus.SUCCESS.value:
        log.info("order_sync.already_synced", order_number=existing.order_number)
        return OrderSyncResult(
            success=True,
            message=f"Order {existing.order_number} was already processed successfully",
            order_id=order_id,
            order_number=existing.order_number,
            already_synced=True,
        )

    log.info("order_sync.started")
    order_number: str | None = None
    try:
        credentials = await load_ftp_credentials(db, shop)

        node = await shopify.get_order(order_id)
        if not node:
            raise NotFoundError(f"Order not found: {order_id}")

        order = normalize_order(order_id, node)
        order_number = order.order_number
        document = format_order_xml(order, order_date=order_date, settings=settings)

        async with ftp_connect(credentials, settings) as session:
            await session.ensure_directory(settings.ftp_inbound_dir)
            await session.change_directory(settings.ftp_inbound_dir)
            await session.upload(document, order_filename(order))

    except Exception as exc:
        error_message = exc.message if isinstance(exc, SyncError) else str(exc)
        error_code = exc.code if isinstance(exc, SyncError) else "unexpected_error"
        if isinstance(exc, SyncError):
            log.error("order_sync.failed", error=error_message, error_code=error_code)
        else:
            log.exception("order_sync.failed", error=error_message)

        await db.rollback()
        await record_order_sync(
            db,
            shop,
            order_id,
            status=SyncStatus.FAILED.value,
            order_number=order_number,
            error_message=error_message,
        )
        await db.commit()
        return OrderSyncResult(
            success=False,
            message=f"Failed to process order: {error_message}",
            order_id=order_id,
            order_number=order_number,
            error_code=error_code,
        )

    await record_order_sync(
        db,
        shop,
        order_id,
        status=SyncStatus.SUCCESS.value,
        order_number=order_number,
        error_message=None,
    )
    await db.commit()
    log.info("order_sync.completed", order_number=order_number)
    return OrderSyncResult(
        success=True,
        message=f"Order {order_number} processed successfully",
        order_id=order_id,
        order_number=order_number,
    )
