"""
Notification models - reminder requests and their append-only attempt log
"""
from datetime import datetime, timezone as dt_timezone
from sqlalchemy import Column, String, DateTime, Integer, Numeric, Text, Index, JSON
from sqlalchemy.dialects.postgresql import JSONB
import uuid

from smartbills.db.base import Base


STATUS_PENDING = "pending"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"

TERMINAL_STATUSES = frozenset({STATUS_SENT, STATUS_FAILED, STATUS_CANCELLED})

OUTCOME_SENT = "sent"
OUTCOME_FAILED = "failed"

CHANNEL_EMAIL = "email"


def _utcnow() -> datetime:
    return datetime.now(dt_timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Notification(Base):
    """One reminder request, mutated only by the dispatch worker or a cancel"""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_new_id)
    recipient_email = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False, default="")
    message = Column(Text, nullable=True)

    # Context copied from the triggering bill (informational only)
    provider_name = Column(String, nullable=True)
    amount = Column(Numeric(12, 2), nullable=True)
    bill_id = Column(String, nullable=True)

    send_at = Column(DateTime(timezone=True), nullable=False, index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    channels = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=lambda: [CHANNEL_EMAIL])

    status = Column(String, nullable=False, default=STATUS_PENDING)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_notifications_status_send_at", "status", "send_at"),
        Index("ix_notifications_recipient_send_at", "recipient_email", "send_at"),
    )


class NotificationLog(Base):
    """Attempt log entry - one row per delivery attempt, never mutated"""
    __tablename__ = "notification_logs"

    id = Column(String(36), primary_key=True, default=_new_id)
    notification_id = Column(String(36), nullable=False, index=True)
    channel = Column(String, nullable=False)
    outcome = Column(String, nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    detail = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_notification_logs_notification_time", "notification_id", "occurred_at"),
    )
