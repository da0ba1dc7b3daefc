from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.logger import get_logger
from app.models.homepage import HomepageConfig
from app.schemas.homepage_schema import HomepageConfigIn

logger = get_logger('homepage_service')


async def _get_or_create(session: AsyncSession) -> HomepageConfig:
    result = await session.execute(select(HomepageConfig).order_by(HomepageConfig.id).limit(1))
    config = result.scalars().first()
    if config is None:
        config = HomepageConfig()
        session.add(config)
        await session.commit()
        await session.refresh(config)
    return config


async def get_homepage_config_service(session: AsyncSession) -> HomepageConfig:
    """홈 화면 설정 조회 (없으면 기본값으로 생성)"""
    try:
        return await _get_or_create(session)
    except Exception as e:
        await session.rollback()
        logger.error(f"홈 화면 설정 조회 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"홈 화면 설정 조회 실패: {str(e)}"
        )


async def update_homepage_config_service(session: AsyncSession, data: HomepageConfigIn) -> HomepageConfig:
    """홈 화면 제목/설명 수정"""
    title = (data.title or "").strip()
    description = (data.description or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="제목을 입력해주세요.")
    if not description:
        raise HTTPException(status_code=400, detail="설명을 입력해주세요.")

    try:
        config = await _get_or_create(session)
        config.title = title
        config.description = description
        config.updated_at = datetime.now(timezone.utc)
        await session.commit()
        await session.refresh(config)
        logger.info(f"홈 화면 설정 수정 완료: {title}")
        return config
    except Exception as e:
        await session.rollback()
        logger.error(f"홈 화면 설정 수정 실패: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"홈 화면 설정 수정 실패: {str(e)}"
        )
