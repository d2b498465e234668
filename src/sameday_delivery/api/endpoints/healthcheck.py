from typing import Dict

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy import text

from sameday_delivery.core.db import DbSession
from sameday_delivery.core.dependencies import get_cache_service
from sameday_delivery.services.cache_service import CacheService

router = APIRouter(prefix='/healthcheck', tags=['Healthcheck'])


@router.get('/db')
async def db_health(session: DbSession) -> Dict[str, str]:
    """Проверка состояния БД."""
    try:
        result = await session.execute(text('SELECT 1'))
        _ = result.scalar()
        logger.debug('Проверка БД: успешно')
        return {'status': 'ok'}
    except Exception as e:
        logger.error(f'Ошибка проверки БД: {str(e)}')
        return {'status': 'error', 'details': str(e)}


@router.get('/redis')
async def redis_health(
    cache: CacheService = Depends(get_cache_service),
) -> Dict[str, str]:
    """Проверка состояния Redis."""
    try:
        if cache.redis:
            await cache.redis.ping()
            logger.debug('Проверка Redis: успешно')
            return {'status': 'ok'}
        logger.error('Redis не подключен')
        return {'status': 'error', 'details': 'Redis не подключен'}
    except Exception as e:
        logger.error(f'Ошибка проверки Redis: {str(e)}')
        return {'status': 'error', 'details': str(e)}
