"""
Orders Router — order sync status and manual order sync.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_shop, get_db, get_ftp_connector, get_shopify_client
from core.config import get_settings
from db.ledger import list_order_syncs
from integrations.ftp import FtpConnector
from integrations.shopify import ShopifyAdminClient
from sync.orders import process_order

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])

# Failure code → HTTP status for manual syncs; anything else is an upstream failure
_ERROR_STATUS = {
    "configuration_missing": 400,
    "not_found": 404,
}


# ─── Schemas ────────────────────────────────────────────────────────────────


class OrderSyncResponse(BaseModel):
    id: UUID
    shop: str
    order_id: str
    order_number: str
    synced_at: datetime
    status: str
    error_message: str | None

    model_config = {"from_attributes": True}


class OrderSyncRequest(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=64)


class OrderSyncResultResponse(BaseModel):
    success: bool
    message: str
    order_id: str
    order_number: str | None = None
    already_synced: bool = False


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/syncs", response_model=list[OrderSyncResponse])
async def list_syncs(
    limit: int | None = Query(None, ge=1, le=100),
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """Most recent order sync records for the shop."""
    return await list_order_syncs(db, shop, limit=limit or get_settings().status_page_size)


@router.post("/sync", response_model=OrderSyncResultResponse)
async def sync_order(
    body: OrderSyncRequest,
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
    shopify: ShopifyAdminClient = Depends(get_shopify_client),
    ftp_connect: FtpConnector = Depends(get_ftp_connector),
):
    """Manually push one order to the FTP server."""
    order_id = body.order_id.strip()
    if not order_id:
        raise HTTPException(status_code=400, detail="Order ID is required")

    result = await process_order(db, shop, order_id, shopify=shopify, ftp_connect=ftp_connect)
    if not result.success:
        raise HTTPException(
            status_code=_ERROR_STATUS.get(result.error_code, 502),
            detail=result.message,
        )
    return OrderSyncResultResponse(**result.to_dict())
