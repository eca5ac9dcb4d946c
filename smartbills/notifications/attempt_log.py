import logging
from typing import List, Optional

from sqlalchemy import select

from smartbills.utils.timezone import to_utc_aware
from .models import NotificationLog, OUTCOME_FAILED, OUTCOME_SENT
from .repository import NotificationStore

logger = logging.getLogger(__name__)


class AttemptLog:
    """Append-only writer/reader for the ``notification_logs`` table.

    Entries are never updated or deleted here; the log shares the store's
    engine so it lives and dies with the store handle.
    """

    def __init__(self, store: NotificationStore):
        self.store = store

    def append(
        self,
        notification_id: str,
        channel: str,
        outcome: str,
        detail: Optional[str] = None,
    ) -> NotificationLog:
        if outcome not in (OUTCOME_SENT, OUTCOME_FAILED):
            raise ValueError(f"Unknown attempt outcome: {outcome!r}")
        entry = NotificationLog(
            notification_id=notification_id,
            channel=channel,
            outcome=outcome,
            occurred_at=self.store.clock.now(),
            detail=detail,
        )
        with self.store.session() as db:
            db.add(entry)
            db.commit()
            db.refresh(entry)
        logger.debug(f"[AttemptLog] {notification_id} {channel} -> {outcome}")
        entry.occurred_at = to_utc_aware(entry.occurred_at)
        return entry

    def record_sent(self, notification_id: str, channel: str, receipt: Optional[str]) -> NotificationLog:
        return self.append(notification_id, channel, OUTCOME_SENT, receipt)

    def record_failed(self, notification_id: str, channel: str, error: str) -> NotificationLog:
        return self.append(notification_id, channel, OUTCOME_FAILED, error)

    def list_for(self, notification_id: str) -> List[NotificationLog]:
        stmt = (
            select(NotificationLog)
            .where(NotificationLog.notification_id == notification_id)
            .order_by(NotificationLog.occurred_at.asc())
        )
        with self.store.session() as db:
            entries = list(db.execute(stmt).scalars())
        for entry in entries:
            entry.occurred_at = to_utc_aware(entry.occurred_at)
        return entries
