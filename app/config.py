from typing import List, Optional
from pydantic_settings import BaseSettings
from pathlib import Path


# 프로젝트 루트 디렉터리
BASE_DIR = Path(__file__).resolve().parent.parent

class Settings(BaseSettings):
    # 데이터베이스 설정
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "survey"
    DB_PASSWORD: str = ""
    DB_NAME: str = "hospital_survey"
    # 지정하면 DB_* 값 대신 사용 (예: sqlite+aiosqlite:///./survey.db)
    DATABASE_URL: Optional[str] = None

    # 커넥션 풀 설정
    POOL_SIZE: int = 5
    MAX_OVERFLOW: int = 10

    @property
    def DB_ASYNC_URL(self) -> str:
        """비동기 데이터베이스 URL"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        # 비밀번호의 특수문자 인코딩
        encoded_password = self.DB_PASSWORD.replace('@', '%40')
        return f"mysql+aiomysql://{self.DB_USER}:{encoded_password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # JWT 설정
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # 관리자 공용 계정 (UI 게이트 용도)
    ADMIN_ID: str = "admin"
    ADMIN_PASSWORD: str = "admin"

    # 제출일시 표시 및 날짜 필터 기준 시간대
    TIMEZONE: str = "Asia/Seoul"

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # 엑셀 다운로드 전 최신 응답 반영 대기
    EXPORT_CONSISTENCY_RETRIES: int = 3
    EXPORT_CONSISTENCY_DELAY: float = 1.0

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


# pydantic_settings 가 .env 와 환경변수 값을 읽어 타입 검증 후 주입
settings = Settings()
