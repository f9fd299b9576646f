"""
Processed gateway webhook deliveries.

The primary key is the gateway's event id, so a second insert for the same
delivery is a conflict and is ignored. The payload is kept verbatim for audit.
"""

from sqlalchemy import Column, DateTime, Index, String, Text

from ticketing.db.base import Base, utcnow


class WebhookEvent(Base):
    __tablename__ = "webhook_events"

    id = Column(String(255), primary_key=True)
    event_type = Column(String(100), nullable=False)
    order_id = Column(String(255), nullable=True)
    signature = Column(String(512), nullable=True)
    payload = Column(Text, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_webhook_events_processed_at", "processed_at"),
    )

    def __repr__(self) -> str:
        return f"<WebhookEvent(id={self.id}, type={self.event_type}, order={self.order_id})>"
