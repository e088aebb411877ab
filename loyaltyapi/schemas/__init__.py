from .order import Order, OrderResponse, UploadOrderResponse, UploadStatus
from .outbox import OutboxRecord
from .balance import (
    Balance,
    BalanceResponse,
    Withdrawal,
    WithdrawalResponse,
    WithdrawRequest,
    WithdrawResponse,
)
from .accrual import AccrualResponse, AccrualStatus
