"""
Inventory Router — inventory sync status and manual inventory sync.
"""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_shop, get_db, get_ftp_connector, get_shopify_client
from core.config import get_settings
from core.errors import ConfigurationMissing, SyncError
from db.ledger import list_inventory_syncs
from integrations.ftp import FtpConnector
from integrations.shopify import ShopifyAdminClient
from sync.inventory import run_inventory_sync

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"])
logger = structlog.get_logger()


# ─── Schemas ────────────────────────────────────────────────────────────────


class InventorySyncResponse(BaseModel):
    id: UUID
    shop: str
    sku: str
    quantity: int
    synced_at: datetime
    status: str
    error_message: str | None

    model_config = {"from_attributes": True}


class InventoryItemResult(BaseModel):
    sku: str
    success: bool
    message: str | None = None
    new_quantity: int | None = None


class InventoryFileSummary(BaseModel):
    name: str
    archived_as: str
    lines_processed: int
    lines_skipped: int


class InventorySyncResultResponse(BaseModel):
    success: bool
    message: str
    processed: int
    succeeded: int
    failed: int
    warning: str | None = None
    files: list[InventoryFileSummary] = []
    results: list[InventoryItemResult] = []


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/syncs", response_model=list[InventorySyncResponse])
async def list_syncs(
    limit: int | None = Query(None, ge=1, le=100),
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """Most recent inventory sync records for the shop."""
    return await list_inventory_syncs(db, shop, limit=limit or get_settings().status_page_size)


@router.post("/sync", response_model=InventorySyncResultResponse)
async def sync_inventory(
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
    shopify: ShopifyAdminClient = Depends(get_shopify_client),
    ftp_connect: FtpConnector = Depends(get_ftp_connector),
):
    """Read inventory files from FTP and apply them to Shopify."""
    try:
        summary = await run_inventory_sync(db, shop, shopify=shopify, ftp_connect=ftp_connect)
    except ConfigurationMissing as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except SyncError as exc:
        logger.error("inventory_sync.failed", shop=shop, error=exc.message, error_code=exc.code)
        raise HTTPException(status_code=502, detail=f"Failed to process inventory: {exc.message}")
    return InventorySyncResultResponse(**summary.to_dict())
