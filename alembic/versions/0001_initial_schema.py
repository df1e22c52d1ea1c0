"""Initial schema: marketplace entities, orders, audit log, notifications

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _lifecycle() -> list[sa.Column]:
    return [
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status_updated_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.Text, nullable=True),
    ]


def _verification() -> list[sa.Column]:
    return [
        sa.Column("verification_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("verification_date", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    # ── markets ───────────────────────────────────────────────────────────────
    op.create_table(
        "markets",
        _id(),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("slug", sa.String(64), nullable=False, unique=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("image", sa.String(512), nullable=False),
        sa.Column("address", sa.String(200), nullable=True),
        sa.Column("city", sa.String(50), nullable=True),
        sa.Column("district", sa.String(50), nullable=True),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("admin_status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("flag_reason", sa.String(500), nullable=True),
        sa.Column("flagged_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("flagged_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        *_lifecycle(),
    )
    op.create_index("ix_markets_is_deleted", "markets", ["is_deleted"])

    # ── vendors ───────────────────────────────────────────────────────────────
    op.create_table(
        "vendors",
        _id(),
        sa.Column("business_name", sa.String(100), nullable=False),
        sa.Column("owner_name", sa.String(50), nullable=True),
        sa.Column("email", sa.String(256), nullable=True, unique=True),
        sa.Column("phone", sa.String(20), nullable=False, unique=True),
        sa.Column("trade_license_no", sa.String(30), nullable=True, unique=True),
        sa.Column("address", postgresql.JSONB, nullable=True),
        sa.Column("logo", sa.String(512), nullable=True),
        sa.Column("specialties", postgresql.JSONB, nullable=True),
        sa.Column("is_platform_owned", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("platform_name", sa.String(64), nullable=True),
        *_timestamps(),
        *_lifecycle(),
        *_verification(),
    )
    op.create_index("ix_vendors_is_deleted", "vendors", ["is_deleted"])
    op.create_index("ix_vendors_verification_status", "vendors", ["verification_status"])

    op.create_table(
        "vendor_markets",
        sa.Column(
            "vendor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("vendors.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "market_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("markets.id", ondelete="RESTRICT"),
            primary_key=True,
        ),
    )
    op.create_index("ix_vendor_markets_market_id", "vendor_markets", ["market_id"])

    # ── buyers ────────────────────────────────────────────────────────────────
    op.create_table(
        "buyers",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("owner_name", sa.String(50), nullable=True),
        sa.Column("email", sa.String(256), nullable=True, unique=True),
        sa.Column("phone", sa.String(20), nullable=False, unique=True),
        sa.Column("trade_license_no", sa.String(30), nullable=True, unique=True),
        sa.Column("buyer_type", sa.String(16), nullable=False, server_default="restaurant"),
        sa.Column("address", postgresql.JSONB, nullable=True),
        sa.Column("logo", sa.String(512), nullable=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        *_lifecycle(),
        *_verification(),
    )
    op.create_index("ix_buyers_is_deleted", "buyers", ["is_deleted"])
    op.create_index("ix_buyers_verification_status", "buyers", ["verification_status"])

    # ── users ─────────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(256), nullable=False, unique=True),
        sa.Column("phone", sa.String(20), nullable=True, unique=True),
        sa.Column("hashed_password", sa.String(256), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column(
            "vendor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("vendors.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "buyer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("buyers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        *_lifecycle(),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_vendor_id", "users", ["vendor_id"])
    op.create_index("ix_users_buyer_id", "users", ["buyer_id"])
    op.create_index("ix_users_is_deleted", "users", ["is_deleted"])

    # ── product categories ────────────────────────────────────────────────────
    op.create_table(
        "product_categories",
        _id(),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("slug", sa.String(64), nullable=False, unique=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("image", sa.String(512), nullable=False),
        sa.Column(
            "parent_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("product_categories.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("level", sa.Integer, nullable=False, server_default="0"),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("admin_status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("flag_reason", sa.String(500), nullable=True),
        sa.Column("flagged_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("flagged_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        *_lifecycle(),
    )
    op.create_index("ix_product_categories_parent_id", "product_categories", ["parent_id"])
    op.create_index("ix_product_categories_is_deleted", "product_categories", ["is_deleted"])

    # ── products ──────────────────────────────────────────────────────────────
    op.create_table(
        "products",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "category_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("product_categories.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("variety", sa.String(64), nullable=True),
        sa.Column("origin", sa.String(64), nullable=True),
        sa.Column("is_organic", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("images", postgresql.JSONB, nullable=False, server_default="[]"),
        *_timestamps(),
        *_lifecycle(),
    )
    op.create_index("ix_products_category_id", "products", ["category_id"])
    op.create_index("ix_products_is_deleted", "products", ["is_deleted"])

    # ── listings ──────────────────────────────────────────────────────────────
    op.create_table(
        "listings",
        _id(),
        sa.Column(
            "vendor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("vendors.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("products.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "market_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("markets.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("featured", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_flagged", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("flag_reason", sa.String(500), nullable=True),
        sa.Column("moderation_notes", sa.String(1000), nullable=True),
        sa.Column("moderated_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("last_status_update", sa.DateTime(timezone=True), nullable=True),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("quality_grade", sa.String(32), nullable=True),
        sa.Column("unit", sa.String(16), nullable=False, server_default="kg"),
        sa.Column("price_per_unit", sa.Numeric(12, 2), nullable=False),
        sa.Column("quantity_available", sa.Numeric(12, 3), nullable=False, server_default="0"),
        *_timestamps(),
        *_lifecycle(),
    )
    for column in ("vendor_id", "product_id", "market_id", "status", "is_flagged", "is_deleted"):
        op.create_index(f"ix_listings_{column}", "listings", [column])

    # ── orders ────────────────────────────────────────────────────────────────
    op.create_table(
        "orders",
        _id(),
        sa.Column("order_number", sa.String(32), nullable=False, unique=True),
        sa.Column(
            "buyer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("buyers.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "vendor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("vendors.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("placed_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("approved_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(24), nullable=False, server_default="pending_approval"),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("delivery_fee", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("tax", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("delivery_type", sa.String(16), nullable=False, server_default="delivery"),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        *_timestamps(),
    )
    for column in ("order_number", "buyer_id", "vendor_id", "placed_by_id", "approved_by_id", "status"):
        op.create_index(f"ix_orders_{column}", "orders", [column])

    op.create_table(
        "order_items",
        _id(),
        sa.Column(
            "order_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("line_number", sa.Integer, nullable=False),
        sa.Column(
            "listing_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("listings.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("products.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("product_name", sa.String(100), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("unit", sa.String(16), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_pack_based", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("number_of_packs", sa.Integer, nullable=True),
        sa.Column("price_per_pack", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.UniqueConstraint("order_id", "line_number", name="uq_order_item_line"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])
    op.create_index("ix_order_items_listing_id", "order_items", ["listing_id"])

    op.create_table(
        "order_status_history",
        _id(),
        sa.Column(
            "order_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(24), nullable=False),
        sa.Column("changed_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reason", sa.String(500), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_order_status_history_order_id", "order_status_history", ["order_id"])

    # ── audit_log_entries (append-only) ───────────────────────────────────────
    op.create_table(
        "audit_log_entries",
        _id(),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("actor_role", sa.String(32), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("description", sa.String(1000), nullable=False),
        sa.Column("reason", sa.String(500), nullable=True),
        sa.Column("severity", sa.String(16), nullable=False, server_default="medium"),
        sa.Column("impact_level", sa.String(16), nullable=False, server_default="minor"),
        sa.Column("status", sa.String(16), nullable=False, server_default="success"),
        sa.Column("error_message", sa.String(1000), nullable=True),
        sa.Column("changes", postgresql.JSONB, nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    for column in ("actor_id", "action", "entity_type", "entity_id", "severity", "created_at", "expires_at"):
        op.create_index(f"ix_audit_log_entries_{column}", "audit_log_entries", [column])

    # ── notifications ─────────────────────────────────────────────────────────
    op.create_table(
        "notifications",
        _id(),
        sa.Column(
            "recipient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("notification_type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.String(1000), nullable=False),
        sa.Column("related_entity_type", sa.String(32), nullable=True),
        sa.Column("related_entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("delivery_status", sa.String(16), nullable=False, server_default="delivered"),
        *_timestamps(),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("audit_log_entries")
    op.drop_table("order_status_history")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("listings")
    op.drop_table("products")
    op.drop_table("product_categories")
    op.drop_table("users")
    op.drop_table("buyers")
    op.drop_table("vendor_markets")
    op.drop_table("vendors")
    op.drop_table("markets")
