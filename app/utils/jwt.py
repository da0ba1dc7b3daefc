from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from jose import ExpiredSignatureError, JWTError, jwt

from app.config import settings

ADMIN_USER_TYPE = "admin"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """액세스 토큰 발급 (기본 만료: JWT_ACCESS_TOKEN_EXPIRE_MINUTES)"""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.now(timezone.utc)
    claims = {**data, "iat": now, "exp": now + expires_delta}
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_admin_token(admin_id: str) -> str:
    return create_access_token({"sub": admin_id, "user_type": ADMIN_USER_TYPE})


def verify_token(token: str) -> dict:
    """서명/만료 확인 후 클레임 반환, 실패하면 401"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="로그인이 만료되었습니다. 다시 로그인해주세요."
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="유효하지 않은 인증 토큰입니다"
        )


def is_admin(claims: dict) -> bool:
    return claims.get("user_type") == ADMIN_USER_TYPE
