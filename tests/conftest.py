from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from smartbills.notifications.attempt_log import AttemptLog
from smartbills.notifications.clock import FixedClock
from smartbills.notifications.dispatcher import NotificationDispatcher
from smartbills.notifications.errors import DeliveryError
from smartbills.notifications.repository import NotificationStore


START = datetime(2025, 11, 1, 9, 0, tzinfo=timezone.utc)


class RecordingMailer:
    def __init__(self):
        self.sent = []

    def send(self, to, subject, html):
        self.sent.append((to, subject, html))
        return f"<msg-{len(self.sent)}@smartbills.test>"


class FailingMailer:
    def __init__(self, error="SMTP timeout"):
        self.error = error
        self.calls = 0

    def send(self, to, subject, html):
        self.calls += 1
        raise DeliveryError(self.error)


def issue_token(email, secret_key, algorithm="HS256", expires_delta=timedelta(hours=1)):
    expire = datetime.now(timezone.utc) + expires_delta
    return jwt.encode({"exp": expire, "sub": email, "email": email}, secret_key, algorithm=algorithm)


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def store(clock):
    store = NotificationStore.from_url("sqlite://", clock=clock)
    store.open()
    yield store
    store.close()


@pytest.fixture
def attempt_log(store):
    return AttemptLog(store)


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def failing_mailer():
    return FailingMailer()


@pytest.fixture
def make_dispatcher(store, attempt_log, clock):
    def _make(mailer, **kwargs):
        return NotificationDispatcher(store, attempt_log, mailer, clock=clock, **kwargs)

    return _make
