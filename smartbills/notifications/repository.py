from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import case, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from smartbills.db.base import Base
from smartbills.db.session import create_db_engine, create_session_factory
from smartbills.utils.timezone import parse_timestamp, to_utc_aware
from .clock import Clock, SystemClock
from .errors import AuthorizationError, NotFoundError, ValidationError
from .models import (
    CHANNEL_EMAIL,
    STATUS_CANCELLED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_SENT,
    Notification,
)
from .schemas import NotificationCreate


SUPPORTED_CHANNELS = frozenset({CHANNEL_EMAIL})
DEFAULT_REMINDER_LEAD = timedelta(hours=24)


@dataclass(frozen=True)
class Outcome:
    """Result of one delivery attempt as recorded on the notification."""
    success: bool
    error: Optional[str] = None

    @classmethod
    def sent(cls) -> "Outcome":
        return cls(success=True)

    @classmethod
    def failure(cls, error: str) -> "Outcome":
        return cls(success=False, error=error)


def derive_send_at(send_at, due_date, now: datetime) -> datetime:
    """Explicit sendAt, else one day before dueDate, else now."""
    try:
        explicit = parse_timestamp(send_at)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid sendAt: {send_at!r}")
    if explicit is not None:
        return explicit

    try:
        due = parse_timestamp(due_date)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid dueDate: {due_date!r}")
    if due is not None:
        return due - DEFAULT_REMINDER_LEAD
    return now


def _normalize(notification: Notification) -> Notification:
    # Some backends (SQLite) hand timestamps back without tzinfo
    notification.send_at = to_utc_aware(notification.send_at)
    notification.due_date = to_utc_aware(notification.due_date)
    notification.created_at = to_utc_aware(notification.created_at)
    notification.updated_at = to_utc_aware(notification.updated_at)
    return notification


class NotificationStore:
    """Durable persistence and query of Notification rows.

    Every operation runs in its own short-lived session, so one store handle
    can be shared between request handlers and dispatch threads. Returned
    objects are detached from their session.
    """

    def __init__(self, engine: Engine, clock: Optional[Clock] = None):
        self.engine = engine
        self.clock = clock or SystemClock()
        self._session_factory = create_session_factory(engine)

    @classmethod
    def from_url(cls, database_uri: str, clock: Optional[Clock] = None) -> "NotificationStore":
        return cls(create_db_engine(database_uri), clock=clock)

    def open(self) -> None:
        """Create the notification tables if they do not exist yet."""
        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()

    def session(self) -> Session:
        return self._session_factory()

    def create(self, request: NotificationCreate) -> Notification:
        email = (request.email or "").strip()
        if not email:
            raise ValidationError("email is required")

        channels = list(dict.fromkeys(request.channels)) if request.channels is not None else [CHANNEL_EMAIL]
        if not channels:
            raise ValidationError("channels must not be empty")
        unsupported = [c for c in channels if c not in SUPPORTED_CHANNELS]
        if unsupported:
            raise ValidationError(f"Unsupported channels: {', '.join(unsupported)}")

        now = self.clock.now()
        send_at = derive_send_at(request.send_at, request.due_date, now)
        try:
            due_date = parse_timestamp(request.due_date)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid dueDate: {request.due_date!r}")

        notification = Notification(
            recipient_email=email,
            title=request.title or "",
            message=request.message,
            provider_name=request.provider_name,
            amount=request.amount,
            bill_id=request.bill_id,
            send_at=send_at,
            due_date=due_date,
            channels=channels,
            status=STATUS_PENDING,
            attempts=0,
            created_at=now,
            updated_at=now,
        )
        with self.session() as db:
            db.add(notification)
            db.commit()
            db.refresh(notification)
        return _normalize(notification)

    def get(self, notification_id: str) -> Optional[Notification]:
        with self.session() as db:
            notification = db.get(Notification, notification_id)
        return _normalize(notification) if notification else None

    def list_for(self, recipient_email: str) -> List[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.recipient_email == recipient_email)
            .order_by(Notification.send_at.desc())
        )
        with self.session() as db:
            items = list(db.execute(stmt).scalars())
        return [_normalize(n) for n in items]

    def cancel(self, notification_id: str, requester_email: str) -> Notification:
        with self.session() as db:
            notification = db.get(Notification, notification_id)
            if notification is None:
                raise NotFoundError(f"Notification {notification_id} not found")
            if notification.recipient_email != requester_email:
                raise AuthorizationError("Not allowed to cancel this notification")
            notification.status = STATUS_CANCELLED
            notification.updated_at = self.clock.now()
            db.commit()
            db.refresh(notification)
        return _normalize(notification)

    def find_due_for_dispatch(
        self, now: datetime, max_attempts: int, limit: Optional[int] = None
    ) -> List[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.status == STATUS_PENDING)
            .where(Notification.send_at <= now)
            .where(Notification.attempts < max_attempts)
            .order_by(Notification.send_at.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        with self.session() as db:
            items = list(db.execute(stmt).scalars())
        return [_normalize(n) for n in items]

    def record_outcome(self, notification_id: str, outcome: Outcome, max_attempts: int) -> None:
        """Apply one attempt's outcome in a single UPDATE statement.

        SET expressions read the pre-update row, so ``attempts + 1`` is the
        post-increment count. Rows that already left pending keep their status.
        """
        next_attempts = Notification.attempts + 1
        values = {"attempts": next_attempts, "updated_at": self.clock.now()}
        if outcome.success:
            values["status"] = case(
                (Notification.status == STATUS_PENDING, STATUS_SENT),
                else_=Notification.status,
            )
        else:
            values["last_error"] = outcome.error
            values["status"] = case(
                (Notification.status != STATUS_PENDING, Notification.status),
                (next_attempts >= max_attempts, STATUS_FAILED),
                else_=STATUS_PENDING,
            )

        with self.session() as db:
            result = db.execute(
                update(Notification)
                .where(Notification.id == notification_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            db.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Notification {notification_id} not found")
