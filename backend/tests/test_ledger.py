"""
Tests for the sync ledger and the credential store.
"""

import pytest
from sqlalchemy import func, select

from core.errors import ConfigurationMissing
from db.credentials import (
    FtpCredentials,
    get_ftp_config,
    load_access_token,
    load_ftp_credentials,
    save_ftp_config,
    save_shop_session,
)
from db.ledger import (
    get_order_sync,
    list_inventory_syncs,
    list_order_syncs,
    record_inventory_sync,
    record_order_sync,
    status_counts,
)
from db.models import InventorySync, OrderSync


class TestOrderLedger:
    async def test_one_record_per_order(self, test_db, shop):
        await record_order_sync(test_db, shop, "1001", status="failed", order_number="1001", error_message="boom")
        await record_order_sync(test_db, shop, "1001", status="success", order_number="1001")
        await test_db.commit()

        count = await test_db.scalar(select(func.count()).select_from(OrderSync))
        assert count == 1
        record = await get_order_sync(test_db, shop, "1001")
        assert record.status == "success"
        assert record.error_message is None

    async def test_unknown_order_number_placeholder(self, test_db, shop):
        await record_order_sync(test_db, shop, "77", status="failed", error_message="no config")
        record = await get_order_sync(test_db, shop, "77")
        assert record.order_number == "Unknown-77"

    async def test_shops_are_isolated(self, test_db, shop):
        await record_order_sync(test_db, shop, "1", status="success", order_number="1")
        await record_order_sync(test_db, "other.myshopify.com", "1", status="failed", order_number="1")

        assert (await get_order_sync(test_db, shop, "1")).status == "success"
        assert (await get_order_sync(test_db, "other.myshopify.com", "1")).status == "failed"
        assert len(await list_order_syncs(test_db, shop)) == 1

    async def test_list_respects_limit(self, test_db, shop):
        for n in range(5):
            await record_order_sync(test_db, shop, str(n), status="success", order_number=str(n))
        assert len(await list_order_syncs(test_db, shop, limit=3)) == 3

    async def test_get_missing_returns_none(self, test_db, shop):
        assert await get_order_sync(test_db, shop, "nope") is None


class TestInventoryLedger:
    async def test_upsert_overwrites_quantity(self, test_db, shop):
        await record_inventory_sync(test_db, shop, "SKU1", 5)
        await record_inventory_sync(test_db, shop, "SKU1", 12)

        records = await list_inventory_syncs(test_db, shop)
        assert [(r.sku, r.quantity, r.status) for r in records] == [("SKU1", 12, "success")]

    async def test_status_counts(self, test_db, shop):
        await record_inventory_sync(test_db, shop, "SKU1", 5)
        await record_inventory_sync(test_db, shop, "SKU2", 0, status="failed", error_message="x")
        await record_order_sync(test_db, shop, "1", status="success", order_number="1")

        assert await status_counts(test_db, InventorySync, shop) == {"total": 2, "success": 1, "failed": 1}
        assert await status_counts(test_db, OrderSync, shop) == {"total": 1, "success": 1, "failed": 0}
        assert await status_counts(test_db, OrderSync, "other.myshopify.com") == {
            "total": 0,
            "success": 0,
            "failed": 0,
        }


class TestCredentialStore:
    async def test_password_is_encrypted_at_rest(self, test_db, shop):
        await save_ftp_config(test_db, shop, host="ftp.example.com", username="u", password="hunter2")

        config = await get_ftp_config(test_db, shop)
        assert config.password_encrypted != "hunter2"
        assert config.port == 21

        credentials = await load_ftp_credentials(test_db, shop)
        assert credentials == FtpCredentials(host="ftp.example.com", port=21, username="u", password="hunter2")

    async def test_save_replaces_existing(self, test_db, shop):
        await save_ftp_config(test_db, shop, host="old.example.com", username="u", password="a")
        await save_ftp_config(test_db, shop, host="new.example.com", port=2121, username="v", password="b")

        credentials = await load_ftp_credentials(test_db, shop)
        assert (credentials.host, credentials.port, credentials.username, credentials.password) == (
            "new.example.com",
            2121,
            "v",
            "b",
        )

    def test_repr_hides_password(self):
        credentials = FtpCredentials(host="h", port=21, username="u", password="hunter2")
        assert "hunter2" not in repr(credentials)

    async def test_missing_configuration(self, test_db, shop):
        with pytest.raises(ConfigurationMissing, match="FTP configuration not found"):
            await load_ftp_credentials(test_db, shop)

    async def test_access_token_round_trip(self, test_db, shop):
        await save_shop_session(test_db, shop, "shpat_abc", scope="read_orders")
        assert await load_access_token(test_db, shop) == "shpat_abc"

    async def test_missing_access_token(self, test_db, shop):
        with pytest.raises(ConfigurationMissing):
            await load_access_token(test_db, shop)
