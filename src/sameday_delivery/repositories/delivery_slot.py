from datetime import date, time
from typing import List, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sameday_delivery.models import DeliverySlot
from sameday_delivery.repositories.base import CRUDBase
from sameday_delivery.schemas.slot import SlotTemplate, SlotUpdate


class DeliverySlotRepository(
    CRUDBase[DeliverySlot, SlotTemplate, SlotUpdate],
):
    """Репозиторий для строк слотов доставки."""

    def __init__(self) -> None:
        """Инициализация репозитория слотов."""
        super().__init__(DeliverySlot)

    async def get_by_window(
        self,
        session: AsyncSession,
        delivery_date: date,
        start_time: time,
        end_time: time,
        *,
        lock: bool = False,
    ) -> Optional[DeliverySlot]:
        """Получает строку слота по дате и интервалу."""
        return await self.get(
            session,
            delivery_date=delivery_date,
            start_time=start_time,
            end_time=end_time,
            for_update=lock,
        )

    async def get_multi_by_date(
        self,
        session: AsyncSession,
        delivery_date: date,
    ) -> List[DeliverySlot]:
        """Получает все строки слотов на дату."""
        return await self.get(
            session,
            many=True,
            delivery_date=delivery_date,
            order_by=(DeliverySlot.start_time,),
        )

    async def lock_or_create(
        self,
        session: AsyncSession,
        template: SlotTemplate,
    ) -> DeliverySlot:
        """Блокирует строку слота, создавая её при отсутствии.

        Новая строка наследует вместимость из настроек. Если строку
        параллельно создал другой запрос, повторно выбирается его строка.
        """
        slot = await self.get_by_window(
            session,
            template.slot_date,
            template.start_time,
            template.end_time,
            lock=True,
        )
        if slot is not None:
            return slot

        session.add(
            DeliverySlot(
                delivery_date=template.slot_date,
                start_time=template.start_time,
                end_time=template.end_time,
            ),
        )
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.debug(f'Слот {template.value} создан параллельно')
        return await self.get_by_window(
            session,
            template.slot_date,
            template.start_time,
            template.end_time,
            lock=True,
        )

    async def create_missing(
        self,
        session: AsyncSession,
        delivery_date: date,
        templates: list[SlotTemplate],
    ) -> int:
        """Создаёт отсутствующие строки слотов на дату.

        Возвращает количество созданных строк.
        """
        existing = {
            (row.start_time, row.end_time)
            for row in await self.get_multi_by_date(session, delivery_date)
        }
        missing = [
            template
            for template in templates
            if (template.start_time, template.end_time) not in existing
        ]
        if not missing:
            return 0
        session.add_all(
            DeliverySlot(
                delivery_date=delivery_date,
                start_time=template.start_time,
                end_time=template.end_time,
            )
            for template in missing
        )
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.info(
                f'Слоты на {delivery_date} уже созданы параллельным запуском',
            )
            return 0
        return len(missing)


delivery_slot_repository = DeliverySlotRepository()
