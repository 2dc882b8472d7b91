"""Initial schema - accounts, marketplace, ledger, bids, messaging

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _common_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _fk(name: str, table: str, nullable: bool = False, **kwargs) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(f"{table}.id"),
        nullable=nullable,
        **kwargs,
    )


def upgrade() -> None:
    # Users (homeowners, contractors, admins)
    op.create_table(
        "users",
        *_common_columns(),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="homeowner"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("contact_name", sa.String(255), nullable=True),
        sa.Column("business_number", sa.String(20), nullable=True),
        sa.Column("obr_number", sa.String(20), nullable=True),
        sa.Column("verification_status", sa.String(20), nullable=True, index=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.Text, nullable=True),
        sa.Column("credit_balance", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("credit_balance >= 0", name="ck_users_credit_balance_non_negative"),
    )

    # Projects (public projection)
    op.create_table(
        "projects",
        *_common_columns(),
        _fk("homeowner_id", "users", index=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("category", sa.String(40), nullable=False, index=True),
        sa.Column("category_name", sa.String(100), nullable=False),
        sa.Column("property_type", sa.String(20), nullable=False),
        sa.Column("ownership_status", sa.String(30), nullable=True),
        sa.Column("budget_range", sa.String(20), nullable=False),
        sa.Column("budget_label", sa.String(50), nullable=False),
        sa.Column("preferred_start_date", sa.String(30), nullable=False),
        sa.Column("city", sa.String(255), nullable=False),
        sa.Column("credit_cost", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="open", index=True),
    )

    # Private details, withheld until unlocked
    op.create_table(
        "project_private_details",
        *_common_columns(),
        _fk("project_id", "projects", unique=True),
        sa.Column("homeowner_name", sa.String(255), nullable=False),
        sa.Column("homeowner_email", sa.String(255), nullable=False),
        sa.Column("homeowner_phone", sa.String(50), nullable=True),
        sa.Column("full_description", sa.Text, nullable=False),
        sa.Column("street_address", sa.String(500), nullable=False),
        sa.Column("unit", sa.String(50), nullable=True),
        sa.Column("province", sa.String(50), nullable=False),
        sa.Column("postal_code", sa.String(20), nullable=False),
        sa.Column("scope_of_work", postgresql.JSONB, nullable=True),
        sa.Column("has_drawings", sa.String(20), nullable=True),
        sa.Column("has_permits", sa.String(20), nullable=True),
        sa.Column("materials_provider", sa.String(50), nullable=True),
        sa.Column("deadline", sa.String(100), nullable=True),
        sa.Column("contact_preference", sa.String(20), nullable=True),
        sa.Column("parking_available", sa.String(20), nullable=True),
        sa.Column("building_restrictions", sa.Text, nullable=True),
    )

    # Unlocks
    op.create_table(
        "project_unlocks",
        *_common_columns(),
        sa.Column("unlock_key", sa.String(100), unique=True, nullable=False),
        _fk("contractor_id", "users", index=True),
        _fk("project_id", "projects", index=True),
        _fk("homeowner_id", "users"),
        sa.Column("credit_cost", sa.Integer, nullable=False),
        sa.UniqueConstraint("contractor_id", "project_id", name="uq_project_unlocks_contractor_project"),
    )

    # Credit ledger
    op.create_table(
        "credit_transactions",
        *_common_columns(),
        _fk("contractor_id", "users", index=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("credit_amount", sa.Integer, nullable=False),
        sa.Column("credit_delta", sa.Integer, nullable=False),
        sa.Column("cost", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("package_id", sa.String(50), nullable=True),
        _fk("related_project_id", "projects", nullable=True, index=True),
        sa.Column("reference", sa.String(100), nullable=True),
    )

    # Bids
    op.create_table(
        "bids",
        *_common_columns(),
        _fk("contractor_id", "users", index=True),
        _fk("homeowner_id", "users", index=True),
        _fk("project_id", "projects", index=True),
        sa.Column("contractor_name", sa.String(255), nullable=False),
        sa.Column("project_category", sa.String(100), nullable=False),
        sa.Column("itemized_costs", postgresql.JSONB, nullable=False),
        sa.Column("total_cost", sa.Numeric(14, 2), nullable=False),
        sa.Column("estimated_timeline", sa.String(255), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="submitted"),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
    )

    # Conversations & messages
    op.create_table(
        "conversations",
        *_common_columns(),
        sa.Column("conversation_key", sa.String(100), unique=True, nullable=False),
        _fk("contractor_id", "users", index=True),
        _fk("homeowner_id", "users", index=True),
        _fk("project_id", "projects", index=True),
        sa.Column("homeowner_name", sa.String(255), nullable=False),
        sa.Column("contractor_name", sa.String(255), nullable=False),
        sa.Column("project_category", sa.String(100), nullable=False),
        sa.Column("last_message", sa.String(100), nullable=False, server_default=""),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("message_count", sa.Integer, nullable=False, server_default=sa.text("0")),
    )
    op.create_table(
        "messages",
        *_common_columns(),
        _fk("conversation_id", "conversations", index=True),
        _fk("sender_id", "users"),
        sa.Column("sender_name", sa.String(255), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.text("false")),
    )

    # Audit log
    op.create_table(
        "audit_log",
        *_common_columns(),
        sa.Column("entity_type", sa.String(100), nullable=False, index=True),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("diff", postgresql.JSONB, nullable=True),
    )


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("messages")
    op.drop_table("conversations")
    op.drop_table("bids")
    op.drop_table("credit_transactions")
    op.drop_table("project_unlocks")
    op.drop_table("project_private_details")
    op.drop_table("projects")
    op.drop_table("users")
