from fastapi import APIRouter, Depends

from loyaltyapi.core.security import get_current_user_id
from loyaltyapi.deps import get_balance_service
from loyaltyapi.schemas.balance import BalanceResponse, WithdrawRequest, WithdrawResponse
from loyaltyapi.services.balance_service import BalanceService

router = APIRouter(prefix="/api/user/balance", tags=["balance"])


@router.get("", response_model=BalanceResponse)
def get_balance(
    user_id: int = Depends(get_current_user_id),
    service: BalanceService = Depends(get_balance_service),
) -> BalanceResponse:
    """내 포인트 잔액 (레코드가 없으면 0)"""
    return service.get_balance(user_id)


@router.post("/withdraw", response_model=WithdrawResponse)
def withdraw(
    request: WithdrawRequest,
    user_id: int = Depends(get_current_user_id),
    service: BalanceService = Depends(get_balance_service),
) -> WithdrawResponse:
    """포인트 출금

    - 402: 잔액 부족
    - 422: 주문 번호 형식 오류 또는 0 이하 금액
    """
    return service.withdraw(user_id, request.order, request.sum)
