from datetime import datetime, timedelta, timezone

import pytest

from smartbills.notifications.errors import AuthorizationError, NotFoundError, ValidationError
from smartbills.notifications.models import Notification
from smartbills.notifications.repository import Outcome
from smartbills.notifications.schemas import NotificationCreate

from .conftest import START


def _request(**fields):
    fields.setdefault("email", "alice@example.com")
    fields.setdefault("title", "Electricity bill")
    return NotificationCreate(**fields)


def _set_attempts(store, notification_id, attempts):
    with store.session() as db:
        db.get(Notification, notification_id).attempts = attempts
        db.commit()


def test_send_at_defaults_to_one_day_before_due_date(store):
    n = store.create(_request(dueDate="2025-11-15T00:00:00Z"))

    assert n.send_at == datetime(2025, 11, 14, tzinfo=timezone.utc)
    assert n.due_date == datetime(2025, 11, 15, tzinfo=timezone.utc)
    assert n.status == "pending"
    assert n.attempts == 0
    assert n.channels == ["email"]


def test_explicit_send_at_wins_over_due_date(store):
    n = store.create(_request(sendAt="2025-11-10T08:30:00+02:00", dueDate="2025-11-15T00:00:00Z"))

    assert n.send_at == datetime(2025, 11, 10, 6, 30, tzinfo=timezone.utc)


def test_send_at_defaults_to_now_without_dates(store):
    n = store.create(_request())

    assert n.send_at == START
    assert n.created_at == START


@pytest.mark.parametrize("field", ["sendAt", "dueDate"])
def test_unparsable_timestamp_is_rejected(store, field):
    with pytest.raises(ValidationError):
        store.create(_request(**{field: "next tuesday"}))
    assert store.list_for("alice@example.com") == []


@pytest.mark.parametrize("field", ["sendAt", "dueDate"])
@pytest.mark.parametrize("blank", ["", "   "])
def test_blank_timestamp_is_rejected(store, field, blank):
    with pytest.raises(ValidationError):
        store.create(_request(**{field: blank}))
    assert store.list_for("alice@example.com") == []


def test_blank_send_at_does_not_fall_back_to_due_date(store):
    with pytest.raises(ValidationError, match="sendAt"):
        store.create(_request(sendAt="", dueDate="2025-11-15T00:00:00Z"))


@pytest.mark.parametrize("email", [None, "", "   "])
def test_recipient_email_is_required(store, email):
    with pytest.raises(ValidationError):
        store.create(NotificationCreate(email=email, title="x"))


def test_channels_must_be_non_empty_and_supported(store):
    with pytest.raises(ValidationError):
        store.create(_request(channels=[]))
    with pytest.raises(ValidationError):
        store.create(_request(channels=["email", "sms"]))


def test_list_for_returns_only_recipient_newest_send_at_first(store):
    store.create(_request(sendAt="2025-11-02T00:00:00Z", title="first"))
    store.create(_request(sendAt="2025-11-20T00:00:00Z", title="latest"))
    store.create(_request(sendAt="2025-11-10T00:00:00Z", title="middle"))
    store.create(_request(email="bob@example.com", sendAt="2025-12-01T00:00:00Z"))

    titles = [n.title for n in store.list_for("alice@example.com")]

    assert titles == ["latest", "middle", "first"]


def test_cancel_unknown_id_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.cancel("does-not-exist", "alice@example.com")


def test_cancel_by_other_user_leaves_notification_unchanged(store, clock):
    n = store.create(_request())
    clock.advance(timedelta(minutes=5))

    with pytest.raises(AuthorizationError):
        store.cancel(n.id, "mallory@example.com")

    unchanged = store.get(n.id)
    assert unchanged.status == "pending"
    assert unchanged.updated_at == n.updated_at


def test_cancel_sets_cancelled_and_updated_at(store, clock):
    n = store.create(_request())
    clock.advance(timedelta(minutes=5))

    cancelled = store.cancel(n.id, "alice@example.com")

    assert cancelled.status == "cancelled"
    assert cancelled.updated_at == START + timedelta(minutes=5)


def test_cancel_after_terminal_status_is_allowed(store):
    n = store.create(_request())
    store.record_outcome(n.id, Outcome.sent(), max_attempts=3)

    assert store.cancel(n.id, "alice@example.com").status == "cancelled"


def test_find_due_respects_send_at(store):
    future = store.create(_request(sendAt="2025-11-05T00:00:00Z"))
    due = store.create(_request(sendAt="2025-10-31T00:00:00Z"))

    found = [n.id for n in store.find_due_for_dispatch(START, max_attempts=3)]

    assert found == [due.id]
    assert future.id not in found


def test_find_due_excludes_exhausted_attempts_and_non_pending(store):
    exhausted = store.create(_request())
    _set_attempts(store, exhausted.id, 3)
    cancelled = store.create(_request())
    store.cancel(cancelled.id, "alice@example.com")
    eligible = store.create(_request())
    _set_attempts(store, eligible.id, 2)

    found = [n.id for n in store.find_due_for_dispatch(START, max_attempts=3)]

    assert found == [eligible.id]


def test_find_due_honours_batch_limit(store):
    for hour in range(3):
        store.create(_request(sendAt=f"2025-10-31T0{hour}:00:00Z"))

    assert len(store.find_due_for_dispatch(START, max_attempts=3, limit=2)) == 2


def test_record_outcome_increments_attempts_by_one_each_call(store):
    n = store.create(_request())
    seen = []
    for outcome in [Outcome.failure("boom"), Outcome.failure("boom"), Outcome.sent(), Outcome.failure("late")]:
        store.record_outcome(n.id, outcome, max_attempts=10)
        seen.append(store.get(n.id).attempts)

    assert seen == [1, 2, 3, 4]


def test_record_outcome_failure_moves_to_failed_at_max_attempts(store):
    n = store.create(_request())
    statuses = []
    for _ in range(3):
        store.record_outcome(n.id, Outcome.failure("SMTP timeout"), max_attempts=3)
        statuses.append(store.get(n.id).status)

    final = store.get(n.id)
    assert statuses == ["pending", "pending", "failed"]
    assert final.attempts == 3
    assert final.last_error == "SMTP timeout"


def test_record_outcome_success_marks_sent(store):
    n = store.create(_request())
    store.record_outcome(n.id, Outcome.sent(), max_attempts=3)

    sent = store.get(n.id)
    assert sent.status == "sent"
    assert sent.attempts == 1
    assert sent.last_error is None


def test_record_outcome_never_reopens_terminal_rows(store):
    n = store.create(_request())
    store.cancel(n.id, "alice@example.com")

    store.record_outcome(n.id, Outcome.failure("boom"), max_attempts=3)
    store.record_outcome(n.id, Outcome.sent(), max_attempts=3)

    after = store.get(n.id)
    assert after.status == "cancelled"
    assert after.attempts == 2


def test_record_outcome_unknown_id_raises(store):
    with pytest.raises(NotFoundError):
        store.record_outcome("missing", Outcome.sent(), max_attempts=3)
