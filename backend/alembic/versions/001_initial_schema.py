"""Initial schema: bookings and the webhook delivery ledger.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

COMPLETED_ONLY = sa.text("payment_status = 'completed'")


def upgrade() -> None:
    # Bookings: one row per payment attempt against an invite code
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("invite_code", sa.String(50), nullable=False),
        sa.Column("reference_number", sa.String(64), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=False),
        sa.Column("ticket_type", sa.String(50), nullable=False),
        sa.Column("ticket_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("event_name", sa.String(255), nullable=False),
        sa.Column("event_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payment_method", sa.String(50), nullable=False, server_default=sa.text("'cashfree'")),
        sa.Column("order_id", sa.String(255), nullable=True),
        sa.Column("payment_id", sa.String(255), nullable=True),
        sa.Column("gateway_order_ref", sa.String(255), nullable=True),
        sa.Column("email_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("checked_in", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("reference_number", name="uq_bookings_reference_number"),
        sa.CheckConstraint("ticket_count > 0", name="check_booking_ticket_count_positive"),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed')",
            name="check_booking_payment_status",
        ),
        sa.CheckConstraint(
            "checked_in = false OR payment_status = 'completed'",
            name="check_checked_in_requires_completed",
        ),
        sa.CheckConstraint(
            "email_sent = false OR payment_status = 'completed'",
            name="check_email_sent_requires_completed",
        ),
    )
    op.create_index("ix_bookings_invite_code", "bookings", ["invite_code"])
    op.create_index("ix_bookings_order_id", "bookings", ["order_id"])
    op.create_index("ix_bookings_payment_status", "bookings", ["payment_status"])
    # PARTIAL UNIQUE INDEX: at most one completed booking per invite code.
    # Pending and failed attempts are excluded, so a guest can retry after an
    # abandoned payment while two concurrent confirmations for the same code
    # cannot both commit.
    op.create_index(
        "uq_bookings_invite_code_completed",
        "bookings",
        ["invite_code"],
        unique=True,
        postgresql_where=COMPLETED_ONLY,
        sqlite_where=COMPLETED_ONLY,
    )

    # Webhook ledger: primary key is the gateway's event id
    op.create_table(
        "webhook_events",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("order_id", sa.String(255), nullable=True),
        sa.Column("signature", sa.String(512), nullable=True),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    # Retention pruning deletes by age
    op.create_index("ix_webhook_events_processed_at", "webhook_events", ["processed_at"])


def downgrade() -> None:
    op.drop_table("webhook_events")
    op.drop_index("uq_bookings_invite_code_completed", table_name="bookings")
    op.drop_table("bookings")
