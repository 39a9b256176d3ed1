from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from src.db.database import Base
from src.models import PushSubscription
from src.notifications.dispatcher import PushDispatcher
from src.notifications.formatter import format_scheduled_broadcast
from src.notifications.webpush import DeliveryOutcome

NOW = datetime(2026, 10, 19, 12, 0, 0)


@pytest.fixture
def db_session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    Base.metadata.drop_all(engine)


def add_subscription(session, endpoint, is_active=True):
    subscription = PushSubscription(
        endpoint=endpoint,
        auth="auth",
        p256dh="p256dh",
        is_active=is_active,
    )
    session.add(subscription)
    session.commit()
    return subscription


def make_sender(outcomes):
    """Sender whose outcome is looked up by subscription endpoint."""
    sender = MagicMock()
    sender.send.side_effect = lambda info, payload: outcomes[info["endpoint"]]
    return sender


class TestPushDispatcher:
    def test_success_updates_last_used_at(self, db_session):
        subscription = add_subscription(db_session, "https://push/a")
        sender = make_sender({"https://push/a": DeliveryOutcome.sent})

        result = PushDispatcher(db_session, sender=sender).broadcast({"title": "t"}, now=NOW)

        assert result.sent == 1
        assert result.total == 1
        db_session.refresh(subscription)
        assert subscription.last_used_at == NOW
        assert subscription.is_active is True

    def test_gone_subscription_is_deactivated_and_excluded(self, db_session):
        gone = add_subscription(db_session, "https://push/gone")
        add_subscription(db_session, "https://push/ok")
        sender = make_sender(
            {
                "https://push/gone": DeliveryOutcome.gone,
                "https://push/ok": DeliveryOutcome.sent,
            }
        )
        dispatcher = PushDispatcher(db_session, sender=sender)

        first = dispatcher.broadcast({"title": "t"}, now=NOW)

        assert first.deactivated == 1
        assert first.sent == 1
        db_session.refresh(gone)
        assert gone.is_active is False
        assert gone.last_used_at is None

        sender.send.reset_mock()
        second = dispatcher.broadcast({"title": "t"}, now=NOW)

        assert second.total == 1
        endpoints = [c.args[0]["endpoint"] for c in sender.send.call_args_list]
        assert endpoints == ["https://push/ok"]

    def test_transient_failure_leaves_subscription_untouched(self, db_session):
        subscription = add_subscription(db_session, "https://push/flaky")
        sender = make_sender({"https://push/flaky": DeliveryOutcome.failed})

        result = PushDispatcher(db_session, sender=sender).broadcast({}, now=NOW)

        assert result.failed == 1
        assert result.sent == 0
        db_session.refresh(subscription)
        assert subscription.is_active is True
        assert subscription.last_used_at is None

    def test_unexpected_error_does_not_stop_broadcast(self, db_session):
        add_subscription(db_session, "https://push/broken")
        ok = add_subscription(db_session, "https://push/ok")

        def send(info, payload):
            if info["endpoint"] == "https://push/broken":
                raise ValueError("bad p256dh key")
            return DeliveryOutcome.sent

        sender = MagicMock()
        sender.send.side_effect = send

        result = PushDispatcher(db_session, sender=sender).broadcast({}, now=NOW)

        assert result.failed == 1
        assert result.sent == 1
        db_session.refresh(ok)
        assert ok.last_used_at == NOW

    def test_no_active_subscriptions(self, db_session):
        add_subscription(db_session, "https://push/old", is_active=False)
        sender = MagicMock()

        result = PushDispatcher(db_session, sender=sender).broadcast({}, now=NOW)

        assert result.total == 0
        sender.send.assert_not_called()

    def test_same_payload_for_every_subscriber(self, db_session):
        add_subscription(db_session, "https://push/a")
        add_subscription(db_session, "https://push/b")
        sender = MagicMock()
        sender.send.return_value = DeliveryOutcome.sent
        payload = format_scheduled_broadcast(NOW)

        PushDispatcher(db_session, sender=sender).broadcast(payload, now=NOW)

        payloads = [c.args[1] for c in sender.send.call_args_list]
        assert payloads == [payload, payload]


class TestBroadcastPayload:
    def test_payload_fields(self):
        payload = format_scheduled_broadcast(NOW)

        assert payload["title"] == "Latest Offers from Poppik"
        assert payload["data"] == {"url": "/offers"}
        assert payload["tag"] == "poppik-scheduled-1792411200000"

    def test_tag_differs_between_passes(self):
        first = format_scheduled_broadcast(NOW)
        second = format_scheduled_broadcast(NOW.replace(minute=3))

        assert first["tag"] != second["tag"]

    def test_aware_and_naive_utc_give_same_tag(self):
        aware = NOW.replace(tzinfo=timezone.utc)

        assert format_scheduled_broadcast(aware)["tag"] == format_scheduled_broadcast(NOW)["tag"]
