"""create orders, geo tokens and platform fees

Revision ID: 202610011000
Revises: 202610010900
Create Date: 2026-10-01 10:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "202610011000"
down_revision = "202610010900"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "geo_tokens",
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("location_id", sa.String(length=50), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("device_fingerprint", sa.String(length=255), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("token"),
    )
    op.create_index("ix_geo_tokens_location_id", "geo_tokens", ["location_id"], unique=False)

    op.create_table(
        "order_sequences",
        sa.Column("location_id", sa.String(length=50), nullable=False),
        sa.Column("sequence_date", sa.Date(), nullable=False),
        sa.Column("last_order_number", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("location_id", "sequence_date"),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("location_id", sa.String(length=50), nullable=False),
        sa.Column("order_number", sa.Integer(), nullable=False),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("payment_status", sa.String(length=20), nullable=False),
        sa.Column("payment_method", sa.String(length=10), nullable=False),
        sa.Column("payment_intent_id", sa.String(length=255), nullable=True),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("tax_cents", sa.Integer(), nullable=False),
        sa.Column("tip_cents", sa.Integer(), nullable=False),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("table_number", sa.String(length=20), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("customer_phone", sa.String(length=20), nullable=True),
        sa.Column("special_instructions", sa.String(length=500), nullable=True),
        sa.Column("geo_token", sa.String(length=128), nullable=True),
        sa.Column(
            "placed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_reason", sa.String(length=255), nullable=True),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "location_id",
            "business_date",
            "order_number",
            name="uq_orders_location_day_number",
        ),
        sa.UniqueConstraint("payment_intent_id", name="uq_orders_payment_intent_id"),
    )
    op.create_index(
        "ix_orders_location_placed_at_desc",
        "orders",
        ["location_id", sa.text("placed_at DESC")],
        unique=False,
    )

    op.create_table(
        "order_items",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("order_id", sa.String(length=50), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("menu_item_id", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("line_total_cents", sa.Integer(), nullable=False),
        sa.Column("special_instructions", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"], unique=False)

    op.create_table(
        "order_item_modifiers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_item_id", sa.String(length=50), nullable=False),
        sa.Column("option_name", sa.String(length=255), nullable=False),
        sa.Column("value_name", sa.String(length=255), nullable=False),
        sa.Column("price_delta_cents", sa.Integer(), server_default="0", nullable=False),
        sa.ForeignKeyConstraint(["order_item_id"], ["order_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_order_item_modifiers_order_item_id",
        "order_item_modifiers",
        ["order_item_id"],
        unique=False,
    )

    op.create_table(
        "platform_fees",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.String(length=50), nullable=False),
        sa.Column("gross_cents", sa.Integer(), nullable=False),
        sa.Column("platform_fee_cents", sa.Integer(), nullable=False),
        sa.Column("gateway_fee_cents", sa.Integer(), nullable=False),
        sa.Column("restaurant_payout_cents", sa.Integer(), nullable=False),
        sa.Column("platform_net_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("gateway_charge_id", sa.String(length=255), nullable=True),
        sa.Column("gateway_balance_transaction_id", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id", name="uq_platform_fees_order_id"),
    )


def downgrade() -> None:
    op.drop_table("platform_fees")
    op.drop_index("ix_order_item_modifiers_order_item_id", table_name="order_item_modifiers")
    op.drop_table("order_item_modifiers")
    op.drop_index("ix_order_items_order_id", table_name="order_items")
    op.drop_table("order_items")
    op.drop_index("ix_orders_location_placed_at_desc", table_name="orders")
    op.drop_table("orders")
    op.drop_table("order_sequences")
    op.drop_index("ix_geo_tokens_location_id", table_name="geo_tokens")
    op.drop_table("geo_tokens")
