"""
Initial schema - ftp configs, shop sessions, order and inventory sync ledgers

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # 1. FTP configs
    op.create_table(
        "ftp_configs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("shop", sa.String(255), nullable=False, unique=True),
        sa.Column("host", sa.String(255), nullable=False),
        sa.Column("port", sa.Integer, nullable=False, server_default="21"),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("password_encrypted", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("port > 0 AND port < 65536", name="ck_ftp_config_port"),
    )

    # 2. Shop sessions
    op.create_table(
        "shop_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("shop", sa.String(255), nullable=False, unique=True),
        sa.Column("access_token_encrypted", sa.Text, nullable=False),
        sa.Column("scope", sa.Text),
        sa.Column("installed_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # 3. Order syncs
    op.create_table(
        "order_syncs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("shop", sa.String(255), nullable=False),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("order_number", sa.String(64), nullable=False),
        sa.Column("synced_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error_message", sa.Text),
        sa.UniqueConstraint("shop", "order_id", name="uq_order_sync_shop_order"),
        sa.CheckConstraint("status IN ('success', 'failed')", name="ck_order_sync_status"),
    )
    op.create_index("ix_order_syncs_shop_synced", "order_syncs", ["shop", "synced_at"])

    # 4. Inventory syncs
    op.create_table(
        "inventory_syncs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("shop", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("synced_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error_message", sa.Text),
        sa.UniqueConstraint("shop", "sku", name="uq_inventory_sync_shop_sku"),
        sa.CheckConstraint("status IN ('success', 'failed')", name="ck_inventory_sync_status"),
    )
    op.create_index("ix_inventory_syncs_shop_synced", "inventory_syncs", ["shop", "synced_at"])


def downgrade() -> None:
    op.drop_index("ix_inventory_syncs_shop_synced", table_name="inventory_syncs")
    op.drop_table("inventory_syncs")
    op.drop_index("ix_order_syncs_shop_synced", table_name="order_syncs")
    op.drop_table("order_syncs")
    op.drop_table("shop_sessions")
    op.drop_table("ftp_configs")
