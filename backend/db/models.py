"""
Velocity FTP Sync Database Models

4 tables, all keyed by shop domain:
  1. ftp_configs       - Per-shop FTP credentials (password encrypted)
  2. shop_sessions     - Offline Admin API tokens written by the app install flow
  3. order_syncs       - Last known sync status per (shop, order)
  4. inventory_syncs   - Last known sync status per (shop, sku)
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    types,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from db.session import Base


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL UUID when available, stores as CHAR(36) on SQLite.
    """

    impl = types.String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(types.String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value) if isinstance(value, uuid.UUID) else value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


# ─── 1. FTP Configs ────────────────────────────────────────────────────────


class FtpConfig(Base):
    __tablename__ = "ftp_configs"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    shop = Column(String(255), nullable=False, unique=True)
    host = Column(String(255), nullable=False)
    port = Column(Integer, nullable=False, default=21)
    username = Column(String(255), nullable=False)
    password_encrypted = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (CheckConstraint("port > 0 AND port < 65536", name="ck_ftp_config_port"),)


# ─── 2. Shop Sessions ──────────────────────────────────────────────────────


class ShopSession(Base):
    __tablename__ = "shop_sessions"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    shop = Column(String(255), nullable=False, unique=True)
    access_token_encrypted = Column(Text, nullable=False)
    scope = Column(Text)
    installed_at = Column(DateTime, nullable=False, default=datetime.utcnow)


# ─── 3. Order Syncs ────────────────────────────────────────────────────────


class OrderSync(Base):
    __tablename__ = "order_syncs"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    shop = Column(String(255), nullable=False)
    order_id = Column(String(64), nullable=False)
    order_number = Column(String(64), nullable=False)
    synced_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    status = Column(String(20), nullable=False)
    error_message = Column(Text)

    __table_args__ = (
        UniqueConstraint("shop", "order_id", name="uq_order_sync_shop_order"),
        Index("ix_order_syncs_shop_synced", "shop", "synced_at"),
        CheckConstraint("status IN ('success', 'failed')", name="ck_order_sync_status"),
    )


# ─── 4. Inventory Syncs ────────────────────────────────────────────────────


class InventorySync(Base):
    __tablename__ = "inventory_syncs"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    shop = Column(String(255), nullable=False)
    sku = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    synced_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    status = Column(String(20), nullable=False)
    error_message = Column(Text)

    __table_args__ = (
        UniqueConstraint("shop", "sku", name="uq_inventory_sync_shop_sku"),
        Index("ix_inventory_syncs_shop_synced", "shop", "synced_at"),
        CheckConstraint("status IN ('success', 'failed')", name="ck_inventory_sync_status"),
    )
