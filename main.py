from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.db_services.init_db import create_db_and_tables
from app.routers import router  # __init__.py 에서 묶은 라우터
from app.logger import setup_logger, RequestLoggerMiddleware

# 로그 설정
logger = setup_logger()

@asynccontextmanager
async def lifespan(_app: FastAPI):
    # 테이블이 없으면 생성
    await create_db_and_tables()
    logger.info("데이터베이스 테이블 확인 완료")

    yield

app = FastAPI(title="병원 환자 만족도 설문", lifespan=lifespan)

# 요청 로그 미들웨어 (가장 먼저 실행)
app.add_middleware(RequestLoggerMiddleware)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    # 엑셀 다운로드 응답의 파일명/건수 헤더를 프런트에서 읽을 수 있도록
    expose_headers=[
        "Content-Disposition",
        "X-Latest-Response-Date",
        "X-Oldest-Response-Date",
        "X-Total-Responses",
    ],
)

# 라우터 등록
app.include_router(router)


if __name__ == "__main__":
    logger.info("서버 시작 중...")
    uvicorn.run("__main__:app", host="0.0.0.0", port=8000, reload=True)
