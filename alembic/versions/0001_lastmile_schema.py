"""lastmile schema: users, profiles, offers, status history, notifications

Revision ID: 0001_lastmile_schema
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_lastmile_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.Enum("business", "rider", "admin", name="user_role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspension_reason", sa.String(length=500), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "business_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("business_name", sa.String(length=255), nullable=False),
        sa.Column("business_phone", sa.String(length=32), nullable=False),
        sa.Column("business_address", sa.Text(), nullable=False),
        sa.Column("total_offers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_offers", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "rider_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("vehicle_type", sa.Enum("bike", "scooter", "car", "van", name="vehicle_type"), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("current_lat", sa.Float(), nullable=True),
        sa.Column("current_lng", sa.Float(), nullable=True),
        sa.Column("location_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("active_deliveries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_deliveries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_pickups", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("earnings_total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("earnings_this_month", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("last_earning_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rating_average", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "offers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("rider_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("urgency", sa.String(length=16), nullable=False, server_default="standard"),
        sa.Column("package_type", sa.String(length=32), nullable=False),
        sa.Column("package", sa.JSON(), nullable=False),
        sa.Column("pickup", sa.JSON(), nullable=False),
        sa.Column("delivery", sa.JSON(), nullable=False),
        sa.Column("pricing", sa.JSON(), nullable=False),
        sa.Column("pricing_total", sa.Numeric(10, 2), nullable=False),
        sa.Column("pickup_lat", sa.Float(), nullable=False),
        sa.Column("pickup_lng", sa.Float(), nullable=False),
        sa.Column("special_instructions", sa.Text(), nullable=True),
        sa.Column("estimated_duration_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("estimated_delivery_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("business_rating", sa.JSON(), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("picked_up_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("in_transit_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_offers_business_id", "offers", ["business_id"])
    op.create_index("ix_offers_rider_id", "offers", ["rider_id"])
    op.create_index("ix_offers_status_created_at", "offers", ["status", "created_at"])
    op.create_index("ix_offers_pickup_point", "offers", ["pickup_lat", "pickup_lng"])
    op.create_index("ix_offers_rider_status", "offers", ["rider_id", "status"])

    op.create_table(
        "offer_status_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("offer_id", sa.Integer(), sa.ForeignKey("offers.id"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("location_lat", sa.Float(), nullable=True),
        sa.Column("location_lng", sa.Float(), nullable=True),
        sa.UniqueConstraint("offer_id", "sequence", name="uq_status_history_offer_sequence"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("offer_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="medium"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notifications_offer_id", "notifications", ["offer_id"])
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_read", table_name="notifications")
    op.drop_index("ix_notifications_offer_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("offer_status_history")
    op.drop_index("ix_offers_rider_status", table_name="offers")
    op.drop_index("ix_offers_pickup_point", table_name="offers")
    op.drop_index("ix_offers_status_created_at", table_name="offers")
    op.drop_index("ix_offers_rider_id", table_name="offers")
    op.drop_index("ix_offers_business_id", table_name="offers")
    op.drop_table("offers")
    op.drop_table("rider_profiles")
    op.drop_table("business_profiles")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
