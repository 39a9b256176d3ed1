from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.db.database import Base
from src.models import (
    Contest,
    Offer,
    PushSubscription,
    UserWallet,
    WalletTransaction,
    WalletTransactionStatus,
    WalletTransactionType,
)


@pytest.fixture
def db_session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    Base.metadata.drop_all(engine)


def test_wallet_transaction_defaults(db_session):
    tx = WalletTransaction(
        user_id=1,
        type=WalletTransactionType.reserve,
        amount=Decimal("25.50"),
    )
    db_session.add(tx)
    db_session.commit()

    assert tx.id is not None
    assert tx.status == WalletTransactionStatus.pending
    assert tx.eligible_at is None
    assert tx.created_at is not None
    assert "reserve:pending" in repr(tx)


def test_wallet_unique_per_user(db_session):
    db_session.add(UserWallet(user_id=1))
    db_session.commit()

    db_session.add(UserWallet(user_id=1))
    with pytest.raises(IntegrityError):
        db_session.commit()


def test_wallet_zero_defaults(db_session):
    wallet = UserWallet(user_id=2)
    db_session.add(wallet)
    db_session.commit()

    assert wallet.cashback_balance == Decimal("0.00")
    assert wallet.total_earned == Decimal("0.00")
    assert wallet.total_redeemed == Decimal("0.00")


def test_offer_and_contest_share_window(db_session):
    window = dict(
        valid_from=datetime(2026, 10, 1),
        valid_until=datetime(2026, 10, 31),
    )
    offer = Offer(title="Festive Glow", **window)
    contest = Contest(title="Selfie Contest", **window)
    db_session.add_all([offer, contest])
    db_session.commit()

    assert offer.is_active is True
    assert offer.is_within_window(datetime(2026, 10, 15)) is True
    assert contest.is_within_window(datetime(2026, 11, 1)) is False
    assert contest.is_within_window(datetime(2026, 10, 31)) is True


def test_push_subscription_info(db_session):
    subscription = PushSubscription(
        endpoint="https://updates.push.services.mozilla.com/wpush/v2/xyz",
        auth="auth-secret",
        p256dh="p256dh-key",
    )
    db_session.add(subscription)
    db_session.commit()

    assert subscription.is_active is True
    assert subscription.last_used_at is None
    assert subscription.to_subscription_info() == {
        "endpoint": "https://updates.push.services.mozilla.com/wpush/v2/xyz",
        "keys": {"auth": "auth-secret", "p256dh": "p256dh-key"},
    }


def test_push_subscription_endpoint_unique(db_session):
    for _ in range(2):
        db_session.add(PushSubscription(endpoint="https://push/dup", auth="a", p256dh="p"))
    with pytest.raises(IntegrityError):
        db_session.commit()
