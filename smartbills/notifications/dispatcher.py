import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .attempt_log import AttemptLog
from .clock import Clock, SystemClock
from .errors import DeliveryError
from .mailer import Mailer, describe_error
from .metrics import (
    dispatch_scans_total,
    dispatch_tick_errors_total,
    notifications_failed_total,
    notifications_sent_total,
    notifications_skipped_total,
)
from .models import CHANNEL_EMAIL, STATUS_PENDING, Notification
from .repository import NotificationStore, Outcome
from .templates import render_notification

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

ITEM_SENT = "sent"
ITEM_FAILED = "failed"
ITEM_SKIPPED = "skipped"
ITEM_ERROR = "error"

ChannelSender = Callable[[Notification, Mailer], str]


def send_email_channel(notification: Notification, mailer: Mailer) -> str:
    subject, html = render_notification(notification)
    return mailer.send(notification.recipient_email, subject, html)


DEFAULT_CHANNEL_SENDERS: Dict[str, ChannelSender] = {
    CHANNEL_EMAIL: send_email_channel,
}


@dataclass
class DispatchSummary:
    scanned: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0
    aborted: bool = False

    def add(self, result: str) -> None:
        if result == ITEM_SENT:
            self.sent += 1
        elif result == ITEM_FAILED:
            self.failed += 1
        elif result == ITEM_SKIPPED:
            self.skipped += 1
        else:
            self.errors += 1


class NotificationDispatcher:
    """Turns due notifications into delivery attempts, one tick at a time.

    Each tick snapshots the clock, pulls every eligible ``pending`` row and
    processes them independently (optionally on a thread pool). A delivery
    failure is folded into the row (``attempts``/``lastError``/``status``)
    and the attempt log; it never escapes the tick.
    """

    def __init__(
        self,
        store: NotificationStore,
        attempt_log: AttemptLog,
        mailer: Mailer,
        clock: Optional[Clock] = None,
        max_attempts: int = MAX_ATTEMPTS,
        concurrency: int = 1,
        batch_size: Optional[int] = None,
        channel_senders: Optional[Dict[str, ChannelSender]] = None,
    ):
        self.store = store
        self.attempt_log = attempt_log
        self.mailer = mailer
        self.clock = clock or SystemClock()
        self.max_attempts = max_attempts
        self.concurrency = max(1, concurrency)
        self.batch_size = batch_size
        self.channel_senders = channel_senders or dict(DEFAULT_CHANNEL_SENDERS)

    def run_tick(self) -> DispatchSummary:
        summary = DispatchSummary()
        now = self.clock.now()
        try:
            due = self.store.find_due_for_dispatch(now, self.max_attempts, limit=self.batch_size)
        except Exception as e:
            # Store unreachable: abandon this tick, the next one rescans from scratch
            dispatch_tick_errors_total.inc()
            logger.error(f"❌ [Dispatch] Scan failed, abandoning tick: {e!r}")
            summary.aborted = True
            return summary

        dispatch_scans_total.inc()
        summary.scanned = len(due)
        if not due:
            return summary

        logger.info(f"🔍 [Dispatch] {len(due)} notification(s) due at {now.isoformat()}")
        if self.concurrency == 1 or len(due) == 1:
            results = [self._process_safely(n) for n in due]
        else:
            with ThreadPoolExecutor(max_workers=min(self.concurrency, len(due))) as pool:
                results = list(pool.map(self._process_safely, due))

        for result in results:
            summary.add(result)
        logger.info(
            f"✅ [Dispatch] Tick done | sent={summary.sent} failed={summary.failed} "
            f"skipped={summary.skipped} errors={summary.errors}"
        )
        return summary

    def _process_safely(self, notification: Notification) -> str:
        try:
            return self.process(notification)
        except Exception as e:
            logger.error(f"❌ [Dispatch] Unexpected error for notification {notification.id}: {e!r}")
            return ITEM_ERROR

    def process(self, notification: Notification) -> str:
        # A cancel may have landed between the scan and now
        current = self.store.get(notification.id)
        if current is None or current.status != STATUS_PENDING:
            notifications_skipped_total.inc()
            logger.info(f"⏭️ [Dispatch] Skipping {notification.id}: no longer pending")
            return ITEM_SKIPPED

        for channel in current.channels or [CHANNEL_EMAIL]:
            sender = self.channel_senders.get(channel)
            try:
                if sender is None:
                    raise DeliveryError(f"Unsupported channel: {channel}")
                receipt = sender(current, self.mailer)
            except Exception as e:
                error = describe_error(e)
                self.store.record_outcome(current.id, Outcome.failure(error), self.max_attempts)
                self.attempt_log.record_failed(current.id, channel, error)
                notifications_failed_total.inc()
                logger.warning(
                    f"⚠️ [Dispatch] Delivery of {current.id} via {channel} failed "
                    f"(attempt {current.attempts + 1}/{self.max_attempts}): {error}"
                )
                return ITEM_FAILED
            # Each successful channel is logged before the next one is tried
            self.attempt_log.record_sent(current.id, channel, receipt)

        self.store.record_outcome(current.id, Outcome.sent(), self.max_attempts)
        notifications_sent_total.inc()
        logger.info(f"🚀 [Dispatch] Delivered {current.id} to {current.recipient_email}")
        return ITEM_SENT
