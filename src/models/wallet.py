from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base
from src.models.base import TimestampMixin

MONEY = Numeric(12, 2)


class WalletTransactionType(enum.Enum):
    reserve = "reserve"
    credit = "credit"
    redeem = "redeem"


class WalletTransactionStatus(enum.Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"


class UserWallet(Base, TimestampMixin):
    __tablename__ = "user_wallet"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    cashback_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"))
    total_earned: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"))
    total_redeemed: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"))

    def __repr__(self) -> str:
        return f"<UserWallet user={self.user_id} balance={self.cashback_balance}>"


class WalletTransaction(Base, TimestampMixin):
    """Cashback ledger entry.

    Rows with ``eligible_at`` set are matured by the cashback scheduler;
    pending rows without it are settled by order delivery instead.
    """

    __tablename__ = "user_wallet_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    order_id: Mapped[Optional[int]] = mapped_column(Integer)
    type: Mapped[WalletTransactionType] = mapped_column(
        Enum(WalletTransactionType), nullable=False
    )
    status: Mapped[WalletTransactionStatus] = mapped_column(
        Enum(WalletTransactionStatus),
        default=WalletTransactionStatus.pending,
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    eligible_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    balance_before: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    balance_after: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    reference: Mapped[Optional[str]] = mapped_column(String(100))

    def __repr__(self) -> str:
        return (
            f"<WalletTransaction {self.type.value}:{self.status.value} "
            f"user={self.user_id} amount={self.amount}>"
        )
