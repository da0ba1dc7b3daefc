import os
import logging
from logging.handlers import RotatingFileHandler

# 로그 디렉터리
LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), 'logs')


class ErrorFilter(logging.Filter):
    """ERROR 이상만 통과"""
    def filter(self, record):
        return record.levelno >= logging.ERROR

class InfoFilter(logging.Filter):
    """ERROR 미만만 통과"""
    def filter(self, record):
        return record.levelno < logging.ERROR

def setup_logger(log_dir: str = LOG_DIR):
    """루트 로거에 콘솔/파일 핸들러 설정"""
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # 기존 핸들러 제거
    logger.handlers = []

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # 콘솔
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 일반 로그 (크기 기준 교체)
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, 'app.log'),
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    file_handler.addFilter(InfoFilter())
    logger.addHandler(file_handler)

    # 오류 로그
    error_handler = RotatingFileHandler(
        os.path.join(log_dir, 'error.log'),
        maxBytes=10*1024*1024,  # 10MB
        backupCount=30,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)
    error_handler.addFilter(ErrorFilter())
    logger.addHandler(error_handler)

    # SQL 로그는 경고 이상만
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    logger.debug("로그 시스템 초기화 완료")

    return logger

def get_logger(name: str) -> logging.Logger:
    """이름별 로거. 핸들러는 루트 로거 것을 사용"""
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        logger.propagate = True
    return logger
