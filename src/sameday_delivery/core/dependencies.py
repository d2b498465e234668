from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from sameday_delivery.core.config import settings
from sameday_delivery.core.db import SessionFactory
from sameday_delivery.services.cache_service import CacheService, cache_service
from sameday_delivery.services.delivery_service import DeliveryService
from sameday_delivery.services.memory_store import MemorySlotStore
from sameday_delivery.services.settings_service import (
    MemorySettingsStore,
    SettingsService,
    SqlSettingsStore,
)
from sameday_delivery.services.sql_store import SqlSlotStore
from sameday_delivery.utils.clock import SystemClock
from sameday_delivery.utils.enums import StorageBackend


async def get_cache_service() -> CacheService:
    """Зависимость для получения сервиса кеширования."""
    return cache_service


@lru_cache
def build_delivery_service() -> DeliveryService:
    """Собирает сервис доставки под выбранное хранилище."""
    if settings.SLOT_STORAGE_BACKEND == StorageBackend.MEMORY:
        store = MemorySlotStore()
        settings_store = MemorySettingsStore()
    else:
        store = SqlSlotStore(SessionFactory)
        settings_store = SqlSettingsStore(SessionFactory)
    return DeliveryService(
        store=store,
        settings_service=SettingsService(settings_store, cache_service),
        clock=SystemClock(settings.STORE_TIMEZONE),
        hold_minutes=settings.HOLD_DURATION_MINUTES,
        horizon_days=settings.AVAILABILITY_HORIZON_DAYS,
        pregenerate_days=settings.PREGENERATE_DAYS,
    )


async def get_delivery_service() -> DeliveryService:
    """Зависимость для получения сервиса доставки."""
    return build_delivery_service()


DeliveryServiceDep = Annotated[DeliveryService, Depends(get_delivery_service)]
