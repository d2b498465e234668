from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sameday_delivery.models import DeliverySettings
from sameday_delivery.repositories.base import CRUDBase


class SettingsRow(BaseModel):
    """Строка настроек для сохранения."""

    key: str
    data: dict[str, Any]


class SettingsRepository(CRUDBase[DeliverySettings, SettingsRow, SettingsRow]):
    """Репозиторий для настроек доставки."""

    def __init__(self) -> None:
        """Инициализация репозитория настроек."""
        super().__init__(DeliverySettings)

    async def get_by_key(
        self,
        session: AsyncSession,
        key: str,
    ) -> Optional[DeliverySettings]:
        """Получает строку настроек по ключу."""
        return await self.get(session, key=key)

    async def upsert(
        self,
        session: AsyncSession,
        key: str,
        data: dict[str, Any],
    ) -> DeliverySettings:
        """Создаёт или перезаписывает настройки с ключом."""
        row = await self.get_by_key(session, key)
        if row is None:
            try:
                return await self.create(
                    SettingsRow(key=key, data=data),
                    session,
                )
            except IntegrityError:
                await session.rollback()
                logger.debug(f'Настройки {key} созданы параллельно')
                row = await self.get_by_key(session, key)
        return await self.update_obj(
            row,
            SettingsRow(key=key, data=data),
            session,
        )


settings_repository = SettingsRepository()
