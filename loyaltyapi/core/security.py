"""
Bearer 토큰 검증

토큰 발급은 외부 identity provider가 담당하며,
여기서는 JWT_SECRET으로 서명을 검증하고 user_id 클레임만 추출합니다.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from loyaltyapi.config import Settings, get_settings
from loyaltyapi.core.exceptions import AuthenticationError

# 헤더 누락 시에도 401로 응답하기 위해 auto_error 비활성화
security = HTTPBearer(auto_error=False)


class TokenPayload(BaseModel):
    user_id: int


def decode_user_id(token: str, settings: Settings) -> int:
    """JWT를 검증하고 user_id를 반환

    Raises:
        AuthenticationError: 서명/만료 오류 또는 user_id 클레임이 없거나 양수가 아닌 경우
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        token_data = TokenPayload.model_validate(payload)
    except (JWTError, ValidationError):
        raise AuthenticationError("Invalid authentication credentials")

    if token_data.user_id <= 0:
        raise AuthenticationError("Invalid authentication credentials")
    return token_data.user_id


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> int:
    """Authorization 헤더에서 인증된 사용자 ID 추출"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing bearer token")
    return decode_user_id(credentials.credentials, settings)
