from datetime import timedelta
from typing import Optional

from loguru import logger
from pydantic import BaseModel

from sameday_delivery.core.exceptions import SlotUnavailableError
from sameday_delivery.schemas.reservation import HoldInfo
from sameday_delivery.schemas.slot import SlotTemplate
from sameday_delivery.services.slot_store import SlotStore
from sameday_delivery.utils.clock import SystemClock


class SlotAvailability(BaseModel):
    """Результат проверки свободного места в слоте."""

    available: bool
    reserved: int
    capacity: int


class HoldManager:
    """Временные холды слотов на время оформления заказа.

    Токен держит не больше одного слота. Холд истекает через
    hold_minutes и перестаёт учитываться без отдельного события.
    """

    def __init__(
        self,
        store: SlotStore,
        clock: SystemClock,
        hold_minutes: int,
    ) -> None:
        self.store = store
        self.clock = clock
        self.hold_duration = timedelta(minutes=hold_minutes)

    async def create_hold(
        self,
        token: str,
        template: SlotTemplate,
    ) -> HoldInfo:
        """Создаёт или продлевает холд токена на слот."""
        now = self.clock.now()
        try:
            hold = await self.store.acquire_hold(
                token,
                template,
                now,
                now + self.hold_duration,
            )
        except SlotUnavailableError:
            logger.bind(checkout_token=token).warning(
                f'Холд на {template.value} отклонён: мест нет',
            )
            raise
        logger.bind(checkout_token=token).info(
            f'Холд на {template.value} до {hold.expires_at.isoformat()}',
        )
        return hold

    async def release_hold(
        self,
        token: str,
        slot_value: Optional[str] = None,
    ) -> bool:
        """Снимает холд токена, повторный вызов безопасен."""
        released = await self.store.release_hold(token, slot_value)
        if released:
            logger.bind(checkout_token=token).debug('Холд снят')
        return released

    async def get_hold(self, token: str) -> Optional[HoldInfo]:
        """Действующий холд токена."""
        return await self.store.get_token_hold(token, self.clock.now())

    async def is_available(
        self,
        template: SlotTemplate,
        exclude_token: Optional[str] = None,
    ) -> SlotAvailability:
        """Проверяет место в слоте без учёта холда exclude_token."""
        [state] = await self.store.get_slot_states(
            [template],
            self.clock.now(),
            exclude_token,
        )
        return SlotAvailability(
            available=state.available > 0,
            reserved=state.usage.total,
            capacity=state.capacity,
        )

    async def purge_expired(self) -> int:
        """Удаляет истёкшие холды."""
        purged = await self.store.purge_expired_holds(self.clock.now())
        if purged:
            logger.info(f'Удалено истёкших холдов: {purged}')
        return purged
