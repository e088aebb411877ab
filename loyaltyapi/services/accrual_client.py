"""
외부 적립(Accrual) 시스템 클라이언트

GET {base}/api/orders/{number} 응답을 아래 오류 체계로 변환합니다.
- 204: AccrualOrderNotFoundError (적립 시스템에 등록되지 않은 주문)
- 429: AccrualRateLimitedError (Retry-After 힌트 포함)
- 5xx, 타임아웃, 네트워크 오류: AccrualTransientError
- 그 외 비정상 응답, 잘못된 본문: AccrualUnexpectedResponseError
"""

import asyncio
import logging
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from loyaltyapi.schemas.accrual import AccrualResponse

logger = logging.getLogger(__name__)


class AccrualServiceError(Exception):
    """적립 시스템 연동 오류의 공통 부모"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AccrualOrderNotFoundError(AccrualServiceError):
    def __init__(self, number: str):
        self.number = number
        super().__init__(f"order {number} is not registered in accrual system")


class AccrualRateLimitedError(AccrualServiceError):
    def __init__(self, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__(f"accrual system rate limit exceeded (retry_after={retry_after})")


class AccrualTransientError(AccrualServiceError):
    """재시도 가능한 일시적 오류 (네트워크, 타임아웃, 5xx)"""


class AccrualUnexpectedResponseError(AccrualServiceError):
    def __init__(self, status_code: int, body: str, message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"unexpected accrual response: status={status_code}")


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Retry-After 헤더를 정수 초로 변환 (없거나 숫자가 아니면 None)"""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


class AccrualClient:
    """적립 시스템 HTTP 클라이언트 (AsyncClient 재사용)"""

    _ORDER_PATH = "/api/orders/{number}"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        # httpx 타임아웃은 단계(connect/read/write)별 제한이라 요청 전체는 wait_for로 제한
        self._timeout_seconds = timeout_seconds
        self._timeout = httpx.Timeout(timeout_seconds, connect=5.0)
        self._transport = transport

        # HTTP 클라이언트 재사용 (연결 풀 유지)
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    async def get_order_info(self, number: str) -> AccrualResponse:
        """주문 적립 정보 조회

        Raises:
            AccrualOrderNotFoundError, AccrualRateLimitedError,
            AccrualTransientError, AccrualUnexpectedResponseError
        """
        client = await self._get_client()
        try:
            response = await asyncio.wait_for(
                client.get(self._ORDER_PATH.format(number=number)),
                timeout=self._timeout_seconds,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise AccrualTransientError(f"accrual request timed out: {number}") from exc
        except httpx.RequestError as exc:
            logger.warning("Accrual request error for %s: %s", number, exc)
            raise AccrualTransientError(f"accrual request failed: {exc}") from exc

        if response.status_code == 204:
            raise AccrualOrderNotFoundError(number)
        if response.status_code == 429:
            raise AccrualRateLimitedError(
                parse_retry_after(response.headers.get("Retry-After"))
            )
        if response.status_code >= 500:
            raise AccrualTransientError(
                f"accrual system unavailable: status={response.status_code}"
            )
        if response.status_code != 200:
            raise AccrualUnexpectedResponseError(response.status_code, response.text)

        try:
            return AccrualResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise AccrualUnexpectedResponseError(
                response.status_code,
                response.text,
                message=f"malformed accrual response for {number}",
            ) from exc

    async def aclose(self) -> None:
        """Close underlying HTTP client (call on application shutdown)."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazily create and return a shared AsyncClient."""
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=self._timeout,
                    transport=self._transport,
                )
            return self._client
