from fastapi import HTTPException, Request
from starlette import status

from app.logger import get_logger
from app.utils.jwt import verify_token, is_admin


logger = get_logger('admin_auth')

async def admin_verify_token(request: Request):
    """관리자 화면 게이트. 로그인 경로는 통과"""
    path = request.url.path
    if path.endswith('/login'):
        return None

    authorization = request.headers.get("Authorization")
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="인증 정보가 없습니다"
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        token = authorization

    payload = verify_token(token)
    if not is_admin(payload):
        logger.warning(f"관리자 권한 없는 접근: {path}")
        raise HTTPException(status_code=403, detail="관리자 권한이 필요합니다")
    return payload
