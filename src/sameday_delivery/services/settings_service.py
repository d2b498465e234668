from abc import ABC, abstractmethod
from typing import Any, Optional

from loguru import logger
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sameday_delivery.core.constants import (
    MIN_SLOT_DURATION_MINUTES,
    MINUTES_IN_DAY,
    SETTINGS_CACHE_KEY,
    SETTINGS_KEY,
)
from sameday_delivery.repositories.settings import settings_repository
from sameday_delivery.schemas.settings import SettingsInfo
from sameday_delivery.services.cache_service import CacheService
from sameday_delivery.utils.validators import (
    is_slot_key,
    normalize_zip,
    parse_date,
    parse_time,
    split_list,
)


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _sanitize_zip_whitelist(value: Any) -> list[str]:
    zips = []
    for item in split_list(value):
        zip_code = normalize_zip(item)
        if zip_code and zip_code not in zips:
            zips.append(zip_code)
    return zips


def _sanitize_blackout_dates(value: Any) -> list:
    dates = {parse_date(item) for item in split_list(value)}
    return sorted(item for item in dates if item is not None)


def _sanitize_slot_capacities(value: Any) -> Optional[dict[str, int]]:
    if not isinstance(value, dict):
        return None
    capacities = {}
    for key, raw in value.items():
        key = str(key).strip()
        if not is_slot_key(key) or raw is None or str(raw).strip() == '':
            continue
        capacity = _to_int(raw)
        if capacity is not None:
            capacities[key] = max(0, capacity)
    return capacities


def sanitize_settings(raw: dict[str, Any], base: SettingsInfo) -> SettingsInfo:
    """Объединяет введённые значения с последними корректными настройками.

    Никогда не выбрасывает исключений: поле с ошибкой сохраняет значение
    из base. Пустые поля в raw не меняют настройки.
    """
    data = base.model_copy(deep=True)
    raw = {key: value for key, value in raw.items() if value is not None}

    if 'zip_whitelist' in raw:
        data.zip_whitelist = _sanitize_zip_whitelist(raw['zip_whitelist'])

    if 'default_capacity' in raw:
        capacity = _to_int(raw['default_capacity'])
        if capacity is not None:
            data.default_capacity = max(1, capacity)

    for field in ('slot_start', 'slot_end', 'cutoff_time'):
        if field in raw:
            parsed = parse_time(raw[field])
            if parsed is not None:
                setattr(data, field, parsed)

    if data.slot_end <= data.slot_start:
        logger.warning(
            'Окно доставки {}-{} некорректно, оставлены прежние границы',
            data.slot_start,
            data.slot_end,
        )
        data.slot_start, data.slot_end = base.slot_start, base.slot_end

    if 'slot_duration_minutes' in raw:
        duration = _to_int(raw['slot_duration_minutes'])
        if (
            duration is not None
            and MIN_SLOT_DURATION_MINUTES <= duration <= MINUTES_IN_DAY
        ):
            data.slot_duration_minutes = duration

    if 'blackout_dates' in raw:
        data.blackout_dates = _sanitize_blackout_dates(raw['blackout_dates'])

    if 'slot_capacities' in raw:
        capacities = _sanitize_slot_capacities(raw['slot_capacities'])
        if capacities is not None:
            data.slot_capacities = capacities

    return data


class SettingsStore(ABC):
    """Хранилище сырых настроек доставки."""

    @abstractmethod
    async def load(self) -> Optional[dict[str, Any]]:
        """Возвращает сохранённые настройки или None."""

    @abstractmethod
    async def save(self, data: dict[str, Any]) -> None:
        """Сохраняет настройки."""


class MemorySettingsStore(SettingsStore):
    """Настройки в памяти процесса."""

    def __init__(self, data: Optional[dict[str, Any]] = None) -> None:
        self._data = dict(data) if data else None

    async def load(self) -> Optional[dict[str, Any]]:
        return dict(self._data) if self._data is not None else None

    async def save(self, data: dict[str, Any]) -> None:
        self._data = dict(data)


class SqlSettingsStore(SettingsStore):
    """Настройки в таблице deliverysettings."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def load(self) -> Optional[dict[str, Any]]:
        async with self.session_factory() as session:
            row = await settings_repository.get_by_key(session, SETTINGS_KEY)
            return dict(row.data) if row else None

    async def save(self, data: dict[str, Any]) -> None:
        async with self.session_factory() as session:
            await settings_repository.upsert(session, SETTINGS_KEY, data)


class SettingsService:
    """Чтение и обновление настроек доставки с кешированием в Redis."""

    def __init__(
        self,
        store: SettingsStore,
        cache: Optional[CacheService] = None,
    ) -> None:
        self.store = store
        self.cache = cache

    async def get_settings(self) -> SettingsInfo:
        """Возвращает очищенные настройки, объединённые с умолчаниями."""
        if self.cache is not None:
            cached = await self.cache.get(SETTINGS_CACHE_KEY)
            if cached:
                try:
                    return SettingsInfo.model_validate(cached)
                except ValidationError:
                    logger.warning('Некорректные настройки в кеше, сброс')
                    await self.cache.delete(SETTINGS_CACHE_KEY)

        raw = await self.store.load()
        settings = sanitize_settings(raw or {}, SettingsInfo.defaults())
        if self.cache is not None:
            await self.cache.set(
                SETTINGS_CACHE_KEY,
                settings.model_dump(mode='json'),
            )
        return settings

    async def update_settings(self, partial: dict[str, Any]) -> SettingsInfo:
        """Применяет изменения администратора поверх текущих настроек."""
        current = await self.get_settings()
        updated = sanitize_settings(partial, current)
        await self.store.save(updated.model_dump(mode='json'))
        if self.cache is not None:
            await self.cache.clear_settings_cache()
        logger.info('Настройки доставки обновлены')
        return updated

    async def ensure_defaults(self) -> bool:
        """Сохраняет настройки по умолчанию, если их ещё нет."""
        if await self.store.load() is not None:
            return False
        await self.store.save(SettingsInfo.defaults().model_dump(mode='json'))
        logger.info('Созданы настройки доставки по умолчанию')
        return True
