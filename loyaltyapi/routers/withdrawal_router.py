from typing import List

from fastapi import APIRouter, Depends, Response, status

from loyaltyapi.core.security import get_current_user_id
from loyaltyapi.deps import get_balance_service
from loyaltyapi.schemas.balance import WithdrawalResponse
from loyaltyapi.services.balance_service import BalanceService

router = APIRouter(prefix="/api/user", tags=["withdrawals"])


@router.get(
    "/withdrawals",
    response_model=List[WithdrawalResponse],
    responses={204: {"description": "출금 내역 없음"}},
)
def get_withdrawals(
    user_id: int = Depends(get_current_user_id),
    service: BalanceService = Depends(get_balance_service),
):
    withdrawals = service.get_withdrawals(user_id)
    if not withdrawals:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return withdrawals
