from src.models.promotion import Contest, Offer
from src.models.push_subscription import PushSubscription
from src.models.wallet import (
    UserWallet,
    WalletTransaction,
    WalletTransactionStatus,
    WalletTransactionType,
)

__all__ = [
    "Contest",
    "Offer",
    "PushSubscription",
    "UserWallet",
    "WalletTransaction",
    "WalletTransactionStatus",
    "WalletTransactionType",
]
