"""
Webhooks Router — Shopify order creation events.

A non-2xx response makes Shopify redeliver the webhook on its own schedule;
redelivery is safe because the order ledger short-circuits synced orders.
"""

import json

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, get_ftp_connector
from core.errors import ConfigurationMissing
from core.security import verify_webhook_hmac
from integrations.ftp import FtpConnector
from integrations.shopify import build_admin_client
from sync.orders import process_order

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = structlog.get_logger()

ORDERS_CREATE_TOPIC = "orders/create"


@router.post("/orders/create", response_class=PlainTextResponse)
async def orders_create_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ftp_connect: FtpConnector = Depends(get_ftp_connector),
):
    """Handle inbound orders/create webhooks with signature verification."""
    body = await request.body()
    signature = request.headers.get("x-shopify-hmac-sha256", "")
    if not verify_webhook_hmac(body, signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    topic = request.headers.get("x-shopify-topic", "")
    if topic.lower().replace("_", "/") != ORDERS_CREATE_TOPIC:
        raise HTTPException(status_code=400, detail="Incorrect webhook topic")

    shop = request.headers.get("x-shopify-shop-domain", "")
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Malformed webhook payload")

    order_id = payload.get("id") if isinstance(payload, dict) else None
    if not shop or order_id is None:
        raise HTTPException(status_code=400, detail="Missing shop or order id")

    log = logger.bind(shop=shop, order_id=str(order_id))
    try:
        shopify = await build_admin_client(db, shop)
    except ConfigurationMissing as exc:
        log.error("webhook.orders_create.no_session", error=exc.message)
        raise HTTPException(status_code=500, detail=exc.message)

    result = await process_order(db, shop, str(order_id), shopify=shopify, ftp_connect=ftp_connect)
    if not result.success:
        log.error("webhook.orders_create.failed", error=result.message)
        raise HTTPException(status_code=500, detail=result.message)

    log.info("webhook.orders_create.processed", order_number=result.order_number)
    return "Order processed successfully"
