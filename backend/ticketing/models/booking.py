"""
Booking model: one row per payment attempt against an invite code.

Key design decisions:
- Partial unique index on invite_code WHERE payment_status = 'completed'.
  Abandoned pending/failed attempts may share a code; only one row per code
  can ever reach completed. This index, not an application lock, is what
  rejects a second redemption under concurrent payment confirmations.
- reference_number is unique and is what the door scanner looks up.
- order_id is the gateway correlation key used by webhook and poll paths.
- Check constraints tie checked_in and email_sent to completed payments.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    text,
)

from ticketing.db.base import Base, TimestampMixin

PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"
PAYMENT_STATUSES = (PENDING, COMPLETED, FAILED)

_COMPLETED_ONLY = text("payment_status = 'completed'")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(String(64), primary_key=True)
    invite_code = Column(String(50), nullable=False, index=True)
    reference_number = Column(String(64), nullable=False, unique=True)

    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=False)
    ticket_type = Column(String(50), nullable=False)
    ticket_count = Column(Integer, nullable=False, default=1)
    total_amount = Column(Numeric(10, 2), nullable=False)
    event_name = Column(String(255), nullable=False)
    event_date = Column(DateTime(timezone=True), nullable=False)

    payment_status = Column(String(20), nullable=False, default=PENDING)
    payment_method = Column(String(50), nullable=False, default="cashfree")
    order_id = Column(String(255), nullable=True, index=True)
    payment_id = Column(String(255), nullable=True)
    gateway_order_ref = Column(String(255), nullable=True)

    email_sent = Column(Boolean, nullable=False, default=False)
    checked_in = Column(Boolean, nullable=False, default=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "uq_bookings_invite_code_completed",
            "invite_code",
            unique=True,
            postgresql_where=_COMPLETED_ONLY,
            sqlite_where=_COMPLETED_ONLY,
        ),
        Index("ix_bookings_payment_status", "payment_status"),
        CheckConstraint("ticket_count > 0", name="check_booking_ticket_count_positive"),
        CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed')",
            name="check_booking_payment_status",
        ),
        CheckConstraint(
            "checked_in = false OR payment_status = 'completed'",
            name="check_checked_in_requires_completed",
        ),
        CheckConstraint(
            "email_sent = false OR payment_status = 'completed'",
            name="check_email_sent_requires_completed",
        ),
    )

    @property
    def is_completed(self) -> bool:
        return self.payment_status == COMPLETED

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, code={self.invite_code}, "
            f"ref={self.reference_number}, status={self.payment_status})>"
        )
