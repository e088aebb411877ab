"""
주문 API 라우터

- POST /api/user/orders: 주문 번호 업로드 (text/plain)
- GET /api/user/orders: 내 주문 목록
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from starlette.concurrency import run_in_threadpool

from loyaltyapi.core.exceptions import BadRequestError
from loyaltyapi.core.security import get_current_user_id
from loyaltyapi.deps import get_order_service
from loyaltyapi.schemas.order import OrderResponse, UploadOrderResponse, UploadStatus
from loyaltyapi.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["orders"])


@router.post(
    "/orders",
    response_model=UploadOrderResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={200: {"description": "이미 업로드한 주문"}},
)
async def upload_order(
    request: Request,
    response: Response,
    user_id: int = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
) -> UploadOrderResponse:
    """주문 번호 업로드

    - 202: 새 주문 접수
    - 200: 이미 업로드한 주문
    - 409: 다른 사용자가 업로드한 주문
    - 422: 주문 번호 형식 오류
    """
    body = await request.body()
    try:
        number = body.decode("utf-8").strip()
    except UnicodeDecodeError:
        raise BadRequestError("Order number must be UTF-8 text")
    if not number:
        raise BadRequestError("Order number is required")

    result = await run_in_threadpool(service.upload_order, user_id, number)
    if result.status == UploadStatus.ALREADY_UPLOADED:
        response.status_code = status.HTTP_200_OK
    return result


@router.get(
    "/orders",
    response_model=List[OrderResponse],
    response_model_exclude_none=True,
    responses={204: {"description": "업로드한 주문 없음"}},
)
def get_orders(
    user_id: int = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
):
    orders = service.get_user_orders(user_id)
    if not orders:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return orders
