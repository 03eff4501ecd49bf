"""
Sync Ledger — last known sync status per order and per SKU.

Records are created on the first attempt for a key and overwritten on every
later one. Reads feed the status pages and the order idempotency check.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import InventorySync, OrderSync
from db.upsert import upsert


async def get_order_sync(db: AsyncSession, shop: str, order_id: str) -> OrderSync | None:
    result = await db.execute(
        select(OrderSync)
        .where(OrderSync.shop == shop, OrderSync.order_id == order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def record_order_sync(
    db: AsyncSession,
    shop: str,
    order_id: str,
    *,
    status: str,
    order_number: str | None = None,
    error_message: str | None = None,
) -> None:
    """
    Upsert the order's ledger record.

    ``order_number`` is only overwritten when known; a failure before the
    order was fetched keeps whatever number an earlier attempt stored.
    """
    now = datetime.utcnow()
    update_values = {
        "status": status,
        "synced_at": now,
        "error_message": error_message,
    }
    if order_number is not None:
        update_values["order_number"] = order_number

    await upsert(
        db,
        OrderSync,
        values={
            "shop": shop,
            "order_id": order_id,
            "order_number": order_number or f"Unknown-{order_id}",
            "status": status,
            "synced_at": now,
            "error_message": error_message,
        },
        conflict_columns=["shop", "order_id"],
        update_values=update_values,
    )


async def record_inventory_sync(
    db: AsyncSession,
    shop: str,
    sku: str,
    quantity: int,
    *,
    status: str = "success",
    error_message: str | None = None,
) -> None:
    now = datetime.utcnow()
    await upsert(
        db,
        InventorySync,
        values={
            "shop": shop,
            "sku": sku,
            "quantity": quantity,
            "status": status,
            "synced_at": now,
            "error_message": error_message,
        },
        conflict_columns=["shop", "sku"],
        update_values={
            "quantity": quantity,
            "status": status,
            "synced_at": now,
            "error_message": error_message,
        },
    )


async def list_order_syncs(db: AsyncSession, shop: str, limit: int = 50) -> list[OrderSync]:
    result = await db.execute(
        select(OrderSync)
        .where(OrderSync.shop == shop)
        .order_by(OrderSync.synced_at.desc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_inventory_syncs(db: AsyncSession, shop: str, limit: int = 50) -> list[InventorySync]:
    result = await db.execute(
        select(InventorySync)
        .where(InventorySync.shop == shop)
        .order_by(InventorySync.synced_at.desc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def status_counts(db: AsyncSession, model, shop: str) -> dict[str, int]:
    """Total / success / failed record counts for one ledger table."""
    result = await db.execute(
        select(model.status, func.count().label("n")).where(model.shop == shop).group_by(model.status)
    )
    by_status = {row.status: row.n for row in result.all()}
    return {
        "total": sum(by_status.values()),
        "success": by_status.get("success", 0),
        "failed": by_status.get("failed", 0),
    }
