#!/usr/bin/env python3
"""Run an order or inventory sync for one shop from the command line.

Examples:
  python backend/scripts/run_sync.py order my-shop.myshopify.com 5123456789
  python backend/scripts/run_sync.py inventory my-shop.myshopify.com --pretty
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Any

# Add backend/ to path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_settings
from core.errors import SyncError
from db.session import build_engine, build_sessionmaker
from integrations.shopify import build_admin_client
from sync.inventory import run_inventory_sync
from sync.orders import process_order


async def _run(args: argparse.Namespace) -> dict[str, Any]:
    settings = get_settings()
    engine = build_engine(settings)
    try:
        async with build_sessionmaker(engine)() as db:
            try:
                shopify = await build_admin_client(db, args.shop)
                if args.command == "order":
                    result = await process_order(db, args.shop, args.order_id, shopify=shopify, settings=settings)
                    return result.to_dict()
                summary = await run_inventory_sync(db, args.shop, shopify=shopify, settings=settings)
                return summary.to_dict()
            except SyncError as exc:
                return {"success": False, "message": exc.message, "error_code": exc.code}
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Velocity FTP sync runner")
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    sub = parser.add_subparsers(dest="command", required=True)

    order_parser = sub.add_parser("order", help="Upload one order to the FTP in directory")
    order_parser.add_argument("shop")
    order_parser.add_argument("order_id")

    inventory_parser = sub.add_parser("inventory", help="Apply FTP inventory files to Shopify")
    inventory_parser.add_argument("shop")

    args = parser.parse_args(argv)
    summary = asyncio.run(_run(args))
    print(json.dumps(summary, indent=2 if args.pretty else None, default=str))
    return 0 if summary.get("success") else 1


if __name__ == "__main__":
    raise SystemExit(main())
