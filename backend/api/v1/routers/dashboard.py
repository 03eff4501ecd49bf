"""
Dashboard Router — sync totals for the app home page.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_shop, get_db
from db.credentials import get_ftp_config
from db.ledger import status_counts
from db.models import InventorySync, OrderSync

router = APIRouter(prefix="/api/v1/stats", tags=["dashboard"])


@router.get("/")
async def get_stats(
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    return {
        "shop": shop,
        "ftp_configured": await get_ftp_config(db, shop) is not None,
        "orders": await status_counts(db, OrderSync, shop),
        "inventory": await status_counts(db, InventorySync, shop),
    }
