"""
Test Configuration — Fixtures for async DB, test client, and fake FTP / Shopify collaborators.

Each test gets its own in-memory SQLite database. The FTP server and the
Shopify Admin API are replaced by in-process fakes that record every call.
"""

from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  (registers tables on Base.metadata)
from api.deps import get_current_shop, get_db, get_ftp_connector, get_shopify_client
from api.main import app
from core.errors import FtpConnectionError, PlatformApiError, TransferError
from db.credentials import save_ftp_config, save_shop_session
from db.session import Base, build_sessionmaker
from integrations.ftp import RemoteFile

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SHOP = "test-shop.myshopify.com"


# ── Database ───────────────────────────────────────────────────────────────


@pytest.fixture
async def test_engine():
    """Fresh in-memory database with all tables."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    async with build_sessionmaker(test_engine)() as session:
        yield session


@pytest.fixture
async def configured_shop(test_db):
    """Shop with FTP credentials and an Admin API session stored."""
    await save_ftp_config(
        test_db,
        SHOP,
        host="ftp.example.com",
        port=21,
        username="velocity",
        password="s3cret",
    )
    await save_shop_session(test_db, SHOP, "shpat_test_token", scope="read_orders")
    await test_db.commit()
    return SHOP


# ── Fake FTP server ────────────────────────────────────────────────────────


class FakeFtpSession:
    def __init__(self, server: "FakeFtpServer"):
        self.server = server
        self.cwd = ""

    async def ensure_directory(self, path: str) -> None:
        self.server.directories.setdefault(path, {})

    async def change_directory(self, path: str) -> None:
        if path not in self.server.directories:
            raise TransferError(f"FTP cwd failed: 550 {path}: No such directory")
        self.cwd = path

    async def upload(self, data: bytes, remote_name: str) -> None:
        self.server.directories[self.cwd][remote_name] = data
        self.server.uploads.append((self.cwd, remote_name, data))

    async def download(self, remote_name: str) -> bytes:
        return self.server.directories[self.cwd][remote_name]

    async def list_files(self, path: str | None = None) -> list[RemoteFile]:
        files = self.server.directories[path or self.cwd]
        return [RemoteFile(name=name, size=len(data)) for name, data in sorted(files.items())]

    async def rename(self, old_name: str, new_name: str) -> None:
        if self.server.fail_rename:
            raise TransferError(f"FTP rename failed: 553 {old_name}")
        files = self.server.directories[self.cwd]
        files[new_name] = files.pop(old_name)
        self.server.renames.append((old_name, new_name))


class FakeFtpServer:
    """Stands in for ``open_ftp_session``: call it to get a session context manager."""

    def __init__(self):
        self.directories: dict[str, dict[str, bytes]] = {"": {}}
        self.uploads: list[tuple[str, str, bytes]] = []
        self.renames: list[tuple[str, str]] = []
        self.connections = 0
        self.closed = 0
        self.refuse_connections = False
        self.fail_rename = False

    def put(self, directory: str, name: str, content: str) -> None:
        self.directories.setdefault(directory, {})[name] = content.encode("utf-8")

    @asynccontextmanager
    async def connect(self, credentials, settings):
        if self.refuse_connections:
            raise FtpConnectionError("FTP connection error: [Errno 111] Connection refused")
        self.connections += 1
        try:
            yield FakeFtpSession(self)
        finally:
            self.closed += 1

    def __call__(self, credentials, settings):
        return self.connect(credentials, settings)


@pytest.fixture
def ftp_server():
    return FakeFtpServer()


# ── Fake Shopify ───────────────────────────────────────────────────────────


def make_order_node(order_id: str = "1001", name: str = "#1001", **overrides) -> dict:
    node = {
        "id": f"gid://shopify/Order/{order_id}",
        "name": name,
        "email": "buyer@example.com",
        "phone": None,
        "note": "Leave at the back door",
        "createdAt": "2026-10-18T15:04:05Z",
        "totalPriceSet": {"shopMoney": {"amount": "42.50", "currencyCode": "USD"}},
        "shippingAddress": {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "company": "Analytical Engines",
            "address1": "12 Babbage Way",
            "address2": "Unit 3",
            "city": "Springfield",
            "province": "Illinois",
            "provinceCode": "IL",
            "zip": "62701",
            "country": "United States",
            "countryCodeV2": "US",
            "phone": "555-0100",
        },
        "lineItems": {
            "edges": [
                {
                    "node": {
                        "id": "gid://shopify/LineItem/1",
                        "name": "Widget",
                        "quantity": 2,
                        "sku": "WID-1",
                        "variant": {"id": "gid://shopify/ProductVariant/11", "sku": "WID-1", "product": {"id": "gid://shopify/Product/111"}},
                        "product": {"id": "gid://shopify/Product/111"},
                    }
                },
                {
                    "node": {
                        "id": "gid://shopify/LineItem/2",
                        "name": "Custom gadget",
                        "quantity": 1,
                        "sku": None,
                        "variant": None,
                        "product": {"id": "gid://shopify/Product/222"},
                    }
                },
            ]
        },
    }
    node.update(overrides)
    return node


def make_variant(sku: str, available: int, *, with_level: bool = True) -> dict:
    levels = (
        [
            {
                "node": {
                    "id": f"gid://shopify/InventoryLevel/{sku}",
                    "location": {"id": "gid://shopify/Location/1"},
                    "quantities": [{"name": "available", "quantity": available}],
                }
            }
        ]
        if with_level
        else []
    )
    return {
        "id": f"gid://shopify/ProductVariant/{sku}",
        "sku": sku,
        "inventoryItem": {"id": f"gid://shopify/InventoryItem/{sku}", "inventoryLevels": {"edges": levels}},
    }


class FakeShopify:
    """Duck-typed ShopifyAdminClient recording every call."""

    def __init__(self):
        self.shop = SHOP
        self.orders: dict[str, dict] = {}
        self.variants: dict[str, dict] = {}
        self.user_errors: dict[str, str] = {}
        self.broken_skus: set[str] = set()
        self.order_requests: list[str] = []
        self.adjustments: list[tuple[str, str, int]] = []

    async def get_order(self, order_id: str, line_items_limit: int | None = None) -> dict | None:
        self.order_requests.append(order_id)
        return self.orders.get(order_id)

    async def find_variant_by_sku(self, sku: str) -> dict | None:
        if sku in self.broken_skus:
            raise PlatformApiError("Shopify request failed: 503 Service Unavailable")
        return self.variants.get(sku)

    async def adjust_available(self, inventory_item_id: str, location_id: str, delta: int) -> dict:
        sku = inventory_item_id.rsplit("/", 1)[-1]
        if sku in self.user_errors:
            return {"inventoryAdjustmentGroup": None, "userErrors": [{"field": ["input"], "message": self.user_errors[sku]}]}
        self.adjustments.append((inventory_item_id, location_id, delta))
        level = self.variants[sku]["inventoryItem"]["inventoryLevels"]["edges"][0]["node"]
        after = level["quantities"][0]["quantity"] + delta
        return {
            "inventoryAdjustmentGroup": {"changes": [{"name": "available", "delta": delta, "quantityAfterChange": after}]},
            "userErrors": [],
        }


@pytest.fixture
def shopify():
    return FakeShopify()


# ── API client ─────────────────────────────────────────────────────────────


@pytest.fixture
async def client(test_db, ftp_server, shopify):
    """Create an async test client with dependency overrides."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_shop] = lambda: SHOP
    app.dependency_overrides[get_shopify_client] = lambda: shopify
    app.dependency_overrides[get_ftp_connector] = lambda: ftp_server

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def shop():
    return SHOP


@pytest.fixture
def order_node():
    """Factory for Admin API order nodes."""
    return make_order_node


@pytest.fixture
def variant_node():
    """Factory for Admin API variant nodes with one inventory level."""
    return make_variant
