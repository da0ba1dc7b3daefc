import time
import json
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from .logger import get_logger

logger = get_logger('request')

# 요청 본문을 남기지 않는 경로 (비밀번호 포함)
SENSITIVE_PATH_SUFFIXES = ("/admin/login",)


# 요청마다 요청/응답 정보를 기록하는 미들웨어
class RequestLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_info = {
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client_host": request.client.host if request.client else None,
        }

        if request.url.path.endswith(SENSITIVE_PATH_SUFFIXES):
            request_info["body"] = "<생략>"
        else:
            try:
                body = await request.body()
                if body:
                    request_info["body"] = body.decode(errors="replace")
            except Exception as e:
                request_info["body"] = f"요청 본문을 읽을 수 없음: {str(e)}"

        logger.info(f"요청 수신: {json.dumps(request_info, ensure_ascii=False)}")

        try:
            # 요청 처리 후 아래 로직 계속
            response = await call_next(request)

            process_time = time.time() - start_time
            response_info = {
                "status_code": response.status_code,
                "path": request.url.path,
                "process_time": f"{process_time:.3f}s"
            }
            logger.info(f"요청 응답: {json.dumps(response_info, ensure_ascii=False)}")

            return response

        except Exception as e:
            logger.error(f"요청 처리 예외: {str(e)}", exc_info=True)
            raise
