import json
from typing import Any, Optional

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from sameday_delivery.core.config import settings
from sameday_delivery.core.constants import SETTINGS_CACHE_PATTERN


class CacheService:
    """Кеш настроек доставки в Redis.

    Недоступный Redis не ломает запросы: чтение возвращает промах,
    запись и удаление возвращают False.
    """

    def __init__(self) -> None:
        self.redis: Optional[Redis] = None
        self.ttl = settings.REDIS_CACHE_TTL

    async def connect(self) -> None:
        """Установка подключения к Redis."""
        try:
            self.redis = Redis.from_url(
                settings.redis_url,
                encoding='utf-8',
                decode_responses=True,
            )
            await self.redis.ping()
            logger.info('Успешное подключение к Redis')
        except (RedisError, OSError) as e:
            logger.error(f'Ошибка подключения к Redis: {str(e)}')
            self.redis = None

    async def disconnect(self) -> None:
        """Закрытие подключения к Redis."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info('Отключение от Redis')

    async def get(self, key: str) -> Optional[Any]:
        """Получение значения по ключу."""
        if not self.redis:
            return None
        try:
            data = await self.redis.get(key)
        except RedisError as e:
            logger.error(f'Ошибка получения из кеша {key}: {str(e)}')
            return None
        if not data:
            logger.debug(f'Кеш промах: {key}')
            return None
        try:
            return json.loads(data)
        except ValueError:
            logger.warning(f'Повреждённое значение в кеше: {key}')
            return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
    ) -> bool:
        """Сохранение значения в кеш."""
        if not self.redis:
            return False
        try:
            serialized_value = json.dumps(value, default=str)
            await self.redis.setex(key, ttl or self.ttl, serialized_value)
            return True
        except RedisError as e:
            logger.error(f'Ошибка сохранения в кеш {key}: {str(e)}')
            return False

    async def delete(self, key: str) -> bool:
        """Удаление ключа из кеша."""
        if not self.redis:
            return False
        try:
            await self.redis.delete(key)
            return True
        except RedisError as e:
            logger.error(f'Ошибка удаления из кеша: {str(e)}')
            return False

    async def delete_pattern(self, pattern: str) -> bool:
        """Удаление ключей по шаблону."""
        if not self.redis:
            return False
        try:
            keys = [key async for key in self.redis.scan_iter(match=pattern)]
            if keys:
                await self.redis.delete(*keys)
                logger.info(
                    f'Удалено ключей по шаблону {pattern}: {len(keys)}',
                )
            return True
        except RedisError as e:
            logger.error(f'Ошибка удаления по шаблону: {str(e)}')
            return False

    async def clear_settings_cache(self) -> None:
        """Очистка кеша настроек доставки."""
        await self.delete_pattern(SETTINGS_CACHE_PATTERN)


cache_service = CacheService()
