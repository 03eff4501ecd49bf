"""
Integration clients package.

  - ftp           FTP transport (ftplib in a worker thread)
  - shopify       Shopify Admin GraphQL client
  - velocity_xml  Order Management Velocity XML formatter

Usage:
    from integrations.ftp import open_ftp_session

    async with open_ftp_session(credentials, settings) as session:
        await session.ensure_directory("in")
"""

from integrations.base import InventoryLine, OrderLineItem, OrderPayload, ShippingAddress, SyncStatus
from integrations.ftp import FtpSession, RemoteFile, open_ftp_session
from integrations.shopify import ShopifyAdminClient
from integrations.velocity_xml import format_order_xml

__all__ = [
    "SyncStatus",
    "OrderPayload",
    "OrderLineItem",
    "ShippingAddress",
    "InventoryLine",
    "FtpSession",
    "RemoteFile",
    "open_ftp_session",
    "ShopifyAdminClient",
    "format_order_xml",
]
