from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from src.models.wallet import (
    UserWallet,
    WalletTransaction,
    WalletTransactionStatus,
    WalletTransactionType,
)

BATCH_SIZE = 200
CENTS = Decimal("0.01")


@dataclass
class CashbackPassResult:
    reserves_deleted: int = 0
    credited: int = 0
    failed: int = 0
    skipped: int = 0


def to_money(value) -> Decimal:
    return Decimal(str(value or "0")).quantize(CENTS, rounding=ROUND_HALF_UP)


def cleanup_expired_reserves(session: Session, now: datetime) -> int:
    """刪除已過期且未轉為回饋的預留款，回傳刪除筆數"""
    deleted = (
        session.query(WalletTransaction)
        .filter(
            WalletTransaction.type == WalletTransactionType.reserve,
            WalletTransaction.status == WalletTransactionStatus.pending,
            WalletTransaction.expires_at <= now,
        )
        .delete(synchronize_session=False)
    )
    session.commit()
    return deleted


def select_due_cashback_ids(
    session: Session, now: datetime, batch_size: int = BATCH_SIZE
) -> List[int]:
    """Ids of scheduler-managed pending entries whose eligibility time has passed."""
    rows = (
        session.query(WalletTransaction.id)
        .filter(
            WalletTransaction.status == WalletTransactionStatus.pending,
            WalletTransaction.eligible_at.isnot(None),
            WalletTransaction.eligible_at <= now,
        )
        .order_by(WalletTransaction.id)
        .limit(batch_size)
        .with_for_update(skip_locked=True)
        .all()
    )
    # Release the selection locks; each row is re-locked on its own below
    session.commit()
    return [row.id for row in rows]


def _lock_wallet(session: Session, user_id: int) -> UserWallet:
    wallet = (
        session.query(UserWallet)
        .filter(UserWallet.user_id == user_id)
        .with_for_update()
        .first()
    )
    if wallet is None:
        wallet = UserWallet(
            user_id=user_id,
            cashback_balance=Decimal("0.00"),
            total_earned=Decimal("0.00"),
            total_redeemed=Decimal("0.00"),
        )
        session.add(wallet)
        session.flush()
    return wallet


def mature_cashback_entry(
    session: Session, entry_id: int, now: datetime
) -> Optional[WalletTransactionStatus]:
    """Credit one pending entry to its owner's wallet.

    The entry and the wallet are locked and written in the same
    transaction. Returns the entry's new status, or None when another
    worker holds the row or already settled it.
    """
    try:
        entry = (
            session.query(WalletTransaction)
            .filter(
                WalletTransaction.id == entry_id,
                WalletTransaction.status == WalletTransactionStatus.pending,
            )
            .with_for_update(skip_locked=True)
            .first()
        )
        if entry is None:
            session.rollback()
            return None

        if not entry.order_id:
            logger.warning(
                f"Cashback entry {entry.id} for user {entry.user_id} has no order, marking failed"
            )
            entry.status = WalletTransactionStatus.failed
            session.commit()
            return WalletTransactionStatus.failed

        wallet = _lock_wallet(session, entry.user_id)
        amount = to_money(entry.amount)
        balance_before = to_money(wallet.cashback_balance)
        balance_after = balance_before + amount

        wallet.cashback_balance = balance_after
        wallet.total_earned = to_money(wallet.total_earned) + amount
        wallet.updated_at = now

        entry.status = WalletTransactionStatus.completed
        entry.type = WalletTransactionType.credit
        entry.balance_before = balance_before
        entry.balance_after = balance_after

        session.commit()
        return WalletTransactionStatus.completed
    except Exception:
        session.rollback()
        raise


def process_eligible_cashbacks_pass(
    session: Session, now: datetime, batch_size: int = BATCH_SIZE
) -> CashbackPassResult:
    result = CashbackPassResult()

    try:
        result.reserves_deleted = cleanup_expired_reserves(session, now)
    except Exception as e:
        session.rollback()
        logger.error(f"Cashback reserve cleanup error: {e}")

    for entry_id in select_due_cashback_ids(session, now, batch_size):
        status = mature_cashback_entry(session, entry_id, now)
        if status is WalletTransactionStatus.completed:
            result.credited += 1
        elif status is WalletTransactionStatus.failed:
            result.failed += 1
        else:
            result.skipped += 1

    return result
