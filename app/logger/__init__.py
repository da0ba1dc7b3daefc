# 로그: 루트 로거 설정(setup_logger), 모듈별 로거(get_logger), 요청/응답 기록 미들웨어
from .logger import setup_logger, get_logger, LOG_DIR
from .request_logger import RequestLoggerMiddleware

__all__ = ['setup_logger', 'get_logger', 'RequestLoggerMiddleware', 'LOG_DIR']
