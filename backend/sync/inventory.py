"""
Inventory Sync Workflow

FTP ``out`` directory → (SKU, quantity) pairs → ledger → Shopify.

Files are ``SKU|QUANTITY`` lines. Malformed lines are skipped, never fatal.
Each processed file is renamed ``processed_<epoch-ms>_<name>``; the rename is
the only thing that stops a file from being read again, so a failed rename
means the file is reprocessed next run (upserts make that harmless).

The Shopify step runs item by item and reports a tally. One item failing does
not stop the batch and does not touch the ledger record written while parsing.
"""

import re
import time
from dataclasses import asdict, dataclass, field

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from core.errors import ParseError, PlatformApiError
from db.credentials import load_ftp_credentials
from db.ledger import record_inventory_sync
from integrations.base import InventoryLine, SyncStatus
from integrations.ftp import FtpConnector, RemoteFile, open_ftp_session
from integrations.shopify import ShopifyAdminClient

logger = structlog.get_logger()

_LEADING_INTEGER = re.compile(r"[+-]?\d+", re.ASCII)

# Ledger column and Shopify quantities are 32-bit signed
MAX_QUANTITY = 2**31 - 1


# ── Parsing ────────────────────────────────────────────────────────────────


def parse_inventory_line(line: str, delimiter: str = "|") -> InventoryLine:
    parts = line.split(delimiter)
    sku = parts[0].strip() if parts else ""
    raw_quantity = parts[1].strip() if len(parts) > 1 else ""
    if not sku or not raw_quantity:
        raise ParseError(f"Missing SKU or quantity: {line!r}")
    # Leading integer only: "12.5" → 12, "7 units" → 7
    match = _LEADING_INTEGER.match(raw_quantity)
    if match is None:
        raise ParseError(f"Quantity is not a number: {line!r}")
    quantity = int(match.group())
    if abs(quantity) > MAX_QUANTITY:
        raise ParseError(f"Quantity out of range: {line!r}")
    return InventoryLine(sku=sku, quantity=quantity)


def parse_inventory_content(content: str, delimiter: str = "|") -> tuple[list[InventoryLine], int]:
    """Return (valid lines, number of malformed lines skipped). Blank lines are ignored."""
    items: list[InventoryLine] = []
    skipped = 0
    for line in content.splitlines():
        if not line.strip():
            continue
        try:
            items.append(parse_inventory_line(line, delimiter))
        except ParseError as exc:
            skipped += 1
            logger.debug("inventory_sync.line_skipped", reason=exc.message)
    return items, skipped


def is_inventory_file(entry: RemoteFile, extension: str, processed_prefix: str = "processed_") -> bool:
    """Recognized extension and not already archived by an earlier run."""
    return entry.name.lower().endswith(extension.lower()) and not entry.name.startswith(processed_prefix)


def processed_name(name: str, prefix: str = "processed_", now_ms: int | None = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{prefix}{stamp}_{name}"


# ── Results ────────────────────────────────────────────────────────────────


@dataclass
class FileReport:
    name: str
    archived_as: str
    lines_processed: int
    lines_skipped: int


@dataclass
class InventoryFileResult:
    items: list[InventoryLine] = field(default_factory=list)
    files: list[FileReport] = field(default_factory=list)


@dataclass
class InventoryUpdateResult:
    sku: str
    success: bool
    message: str | None = None
    new_quantity: int | None = None


@dataclass
class InventorySyncSummary:
    success: bool
    message: str
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    warning: str | None = None
    files: list[FileReport] = field(default_factory=list)
    results: list[InventoryUpdateResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


# ── FTP stage ──────────────────────────────────────────────────────────────


async def process_inventory_files(
    db: AsyncSession,
    shop: str,
    *,
    ftp_connect: FtpConnector = open_ftp_session,
    settings: Settings | None = None,
) -> InventoryFileResult:
    """Download, parse, record and archive every inventory file in ``out``."""
    settings = settings or get_settings()
    log = logger.bind(shop=shop)
    credentials = await load_ftp_credentials(db, shop)
    result = InventoryFileResult()

    async with ftp_connect(credentials, settings) as session:
        await session.ensure_directory(settings.ftp_outbound_dir)
        await session.change_directory(settings.ftp_outbound_dir)

        entries = await session.list_files()
        files = [
            entry
            for entry in entries
            if is_inventory_file(entry, settings.inventory_file_extension, settings.processed_file_prefix)
        ]
        log.info("inventory_sync.files_found", count=len(files))

        for entry in files:
            raw = await session.download(entry.name)
            items, skipped = parse_inventory_content(
                raw.decode("utf-8", errors="replace"),
                settings.inventory_delimiter,
            )
            for item in items:
                await record_inventory_sync(db, shop, item.sku, item.quantity, status=SyncStatus.SUCCESS.value)
            await db.commit()
            result.items.extend(items)

            archived_as = processed_name(entry.name, settings.processed_file_prefix)
            await session.rename(entry.name, archived_as)
            result.files.append(
                FileReport(
                    name=entry.name,
                    archived_as=archived_as,
                    lines_processed=len(items),
                    lines_skipped=skipped,
                )
            )
            log.info(
                "inventory_sync.file_processed",
                file=entry.name,
                lines_processed=len(items),
                lines_skipped=skipped,
            )

    return result


# ── Shopify stage ──────────────────────────────────────────────────────────


def _first_inventory_level(variant: dict) -> dict | None:
    inventory_item = variant.get("inventoryItem") or {}
    edges = (inventory_item.get("inventoryLevels") or {}).get("edges") or []
    if not inventory_item or not edges:
        return None
    return edges[0].get("node")


def _available(level: dict) -> int:
    for quantity in level.get("quantities") or []:
        if quantity.get("name") == "available":
            return int(quantity.get("quantity") or 0)
    return 0


def _adjustment_result(item: InventoryLine, payload: dict) -> InventoryUpdateResult:
    user_errors = payload.get("userErrors") or []
    if user_errors:
        return InventoryUpdateResult(sku=item.sku, success=False, message=user_errors[0].get("message"))

    changes = (payload.get("inventoryAdjustmentGroup") or {}).get("changes") or []
    new_quantity = changes[0].get("quantityAfterChange") if changes else item.quantity
    return InventoryUpdateResult(sku=item.sku, success=True, new_quantity=new_quantity)


async def update_shopify_inventory(
    shopify: ShopifyAdminClient,
    items: list[InventoryLine],
) -> list[InventoryUpdateResult]:
    """Set each SKU's available quantity via a delta adjustment."""
    results: list[InventoryUpdateResult] = []

    for item in items:
        try:
            variant = await shopify.find_variant_by_sku(item.sku)
            if variant is None:
                results.append(InventoryUpdateResult(sku=item.sku, success=False, message="Variant not found"))
                continue

            level = _first_inventory_level(variant)
            if level is None:
                results.append(
                    InventoryUpdateResult(
                        sku=item.sku,
                        success=False,
                        message="Inventory item or level not found",
                    )
                )
                continue

            delta = item.quantity - _available(level)
            payload = await shopify.adjust_available(
                variant["inventoryItem"]["id"],
                (level.get("location") or {}).get("id"),
                delta,
            )
            result = _adjustment_result(item, payload)
        except PlatformApiError as exc:
            logger.warning("inventory_sync.update_failed", sku=item.sku, error=exc.message)
            results.append(InventoryUpdateResult(sku=item.sku, success=False, message=exc.message))
            continue
        except Exception as exc:
            logger.exception("inventory_sync.update_failed", sku=item.sku, error=str(exc))
            results.append(InventoryUpdateResult(sku=item.sku, success=False, message=str(exc)))
            continue

        results.append(result)

    return results


# ── Entry point ────────────────────────────────────────────────────────────


async def run_inventory_sync(
    db: AsyncSession,
    shop: str,
    *,
    shopify: ShopifyAdminClient,
    ftp_connect: FtpConnector = open_ftp_session,
    settings: Settings | None = None,
) -> InventorySyncSummary:
    """
    Read inventory files from FTP and apply them to Shopify.

    Configuration, connection and transfer errors propagate to the caller;
    per-item Shopify failures only show up in the tally.
    """
    file_result = await process_inventory_files(db, shop, ftp_connect=ftp_connect, settings=settings)
    if not file_result.items:
        return InventorySyncSummary(
            success=True,
            message="No inventory items found",
            warning="No inventory files found on FTP server",
            files=file_result.files,
        )

    results = await update_shopify_inventory(shopify, file_result.items)
    succeeded = sum(1 for r in results if r.success)
    failed = len(results) - succeeded
    logger.info("inventory_sync.completed", shop=shop, succeeded=succeeded, failed=failed)
    return InventorySyncSummary(
        success=True,
        message=f"Processed {len(results)} inventory items: {succeeded} successful, {failed} failed",
        processed=len(results),
        succeeded=succeeded,
        failed=failed,
        files=file_result.files,
        results=results,
    )
