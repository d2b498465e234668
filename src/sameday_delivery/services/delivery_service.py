from datetime import date, timedelta
from typing import Any, Optional
from uuid import UUID, uuid4

from loguru import logger

from sameday_delivery.core.constants import (
    MESSAGE_SLOT_HELD,
    RESERVATIONS_REPORT_LIMIT,
)
from sameday_delivery.core.exceptions import (
    BackendNotSupportedError,
    SlotValidationError,
)
from sameday_delivery.schemas.delivery import ZipCheckResult
from sameday_delivery.schemas.reservation import (
    HoldInfo,
    OrderDeliveryMeta,
    OrderStatusResult,
    ReservationInfo,
    ReserveResult,
)
from sameday_delivery.schemas.settings import SettingsInfo
from sameday_delivery.schemas.slot import (
    SlotGenerateResult,
    SlotListInfo,
    SlotReportItem,
    SlotRowInfo,
    SlotUpdate,
)
from sameday_delivery.services.availability_service import (
    AvailabilityService,
    check_zip_code,
)
from sameday_delivery.services.checkout_service import CheckoutService
from sameday_delivery.services.hold_service import HoldManager
from sameday_delivery.services.settings_service import SettingsService
from sameday_delivery.services.slot_generator import generate_slots
from sameday_delivery.services.slot_store import SlotStore
from sameday_delivery.utils.clock import SystemClock
from sameday_delivery.utils.enums import OrderStatus
from sameday_delivery.utils.validators import build_slot_value


class DeliveryService:
    """Точка входа для эндпоинтов и фоновых задач доставки.

    Собирает настройки, расчёт доступности, холды и привязку к заказам
    поверх одного хранилища слотов.
    """

    def __init__(
        self,
        store: SlotStore,
        settings_service: SettingsService,
        clock: SystemClock,
        hold_minutes: int,
        horizon_days: int,
        pregenerate_days: int,
    ) -> None:
        self.store = store
        self.settings_service = settings_service
        self.clock = clock
        self.pregenerate_days = pregenerate_days
        self.availability = AvailabilityService(
            store,
            settings_service,
            clock,
            horizon_days,
        )
        self.holds = HoldManager(store, clock, hold_minutes)
        self.checkout = CheckoutService(
            store,
            settings_service,
            self.availability,
            self.holds,
            clock,
        )

    def _require_slot_admin(self) -> None:
        if not self.store.supports_slot_admin:
            raise BackendNotSupportedError(
                'Управление строками слотов доступно только в SQL-хранилище',
            )

    async def get_settings(self) -> SettingsInfo:
        return await self.settings_service.get_settings()

    async def update_settings(self, partial: dict[str, Any]) -> SettingsInfo:
        return await self.settings_service.update_settings(partial)

    async def check_zip(self, zip_code: Optional[str]) -> ZipCheckResult:
        """Проверяет ZIP и подсказывает ближайшую дату доставки."""
        settings = await self.settings_service.get_settings()
        try:
            normalized = check_zip_code(zip_code, settings)
        except SlotValidationError as e:
            return ZipCheckResult(
                valid=False,
                zip=zip_code or '',
                message=e.message,
            )
        return ZipCheckResult(
            valid=True,
            zip=normalized,
            next_available_date=(
                await self.availability.next_available_date()
            ),
        )

    async def get_slots(
        self,
        zip_code: Optional[str] = None,
        slot_date: Optional[date] = None,
        token: Optional[str] = None,
    ) -> SlotListInfo:
        """Слоты для формы: на дату или на ближайший открытый день."""
        if slot_date is not None:
            return await self.availability.get_slots_for_date(
                slot_date,
                exclude_token=token,
            )
        return await self.availability.get_available_slots(
            zip_code,
            exclude_token=token,
        )

    async def reserve(
        self,
        slot_date: date,
        slot_key: str,
        zip_code: Optional[str],
        token: Optional[str] = None,
    ) -> ReserveResult:
        """Ставит холд на слот, выдавая новый токен при его отсутствии."""
        token = token or uuid4().hex
        hold = await self.checkout.validate_and_hold(
            zip_code,
            build_slot_value(slot_date, slot_key),
            token,
        )
        return ReserveResult(
            success=True,
            token=hold.token,
            hold_id=hold.token,
            slot_value=hold.slot_value,
            expires_at=hold.expires_at,
            message=MESSAGE_SLOT_HELD,
        )

    async def validate_hold(
        self,
        zip_code: Optional[str],
        slot_value: Optional[str],
        token: str,
    ) -> HoldInfo:
        return await self.checkout.validate_and_hold(
            zip_code,
            slot_value,
            token,
        )

    async def get_hold(self, token: str) -> Optional[HoldInfo]:
        return await self.holds.get_hold(token)

    async def release_hold(self, token: str) -> bool:
        return await self.holds.release_hold(token)

    async def bind_order(
        self,
        order_id: str,
        slot_value: str,
        zip_code: Optional[str],
        token: Optional[str] = None,
    ) -> OrderDeliveryMeta:
        return await self.checkout.bind_to_order(
            order_id,
            slot_value,
            zip_code,
            token,
        )

    async def change_order_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        old_status: Optional[OrderStatus] = None,
    ) -> OrderStatusResult:
        return await self.checkout.on_order_status_changed(
            order_id,
            new_status,
            old_status,
        )

    async def complete_checkout(self, token: str) -> bool:
        return await self.checkout.on_checkout_complete(token)

    async def get_order_meta(
        self,
        order_id: str,
    ) -> Optional[OrderDeliveryMeta]:
        """Метаданные доставки заказа по последней его резервации."""
        reservation = await self.store.get_reservation_for_order(order_id)
        if reservation is None:
            return None
        return self.checkout.build_meta(reservation)

    async def get_order_reservation(
        self,
        order_id: str,
    ) -> Optional[ReservationInfo]:
        return await self.store.get_reservation_for_order(order_id)

    async def get_reservation(
        self,
        reservation_id: UUID,
    ) -> Optional[ReservationInfo]:
        return await self.store.get_reservation(reservation_id)

    async def list_reservations(
        self,
        limit: int = RESERVATIONS_REPORT_LIMIT,
    ) -> list[ReservationInfo]:
        return await self.store.list_reservations(limit)

    async def slot_report(self, slot_date: date) -> list[SlotReportItem]:
        """Все слоты даты с занятостью, включая заполненные."""
        settings = await self.settings_service.get_settings()
        states = await self.availability.slots_for_date(
            slot_date,
            settings,
            self.clock.now(),
        )
        return [
            SlotReportItem(
                slot_date=state.template.slot_date,
                slot_key=state.template.slot_key,
                label=state.template.label,
                capacity=state.capacity,
                orders=state.usage.orders,
                holds=state.usage.holds,
                available=state.available,
                status=state.status,
            )
            for state in states
        ]

    async def purge_expired_holds(self) -> int:
        return await self.holds.purge_expired()

    async def pregenerate_slots(
        self,
        days: Optional[int] = None,
    ) -> SlotGenerateResult:
        """Создаёт строки слотов с сегодняшнего дня на days дней вперёд.

        Закрытые даты пропускаются. Уже существующие строки не
        затрагиваются.
        """
        self._require_slot_admin()
        days = self.pregenerate_days if days is None else days
        settings = await self.settings_service.get_settings()
        today = self.clock.now().date()
        created = 0
        for offset in range(days + 1):
            slot_date = today + timedelta(days=offset)
            if settings.is_blackout(slot_date):
                continue
            created += await self.store.pregenerate(
                slot_date,
                generate_slots(slot_date, settings),
            )
        logger.info(f'Создано строк слотов: {created} на {days} дн.')
        return SlotGenerateResult(created=created, days=days)

    async def list_slot_rows(self, slot_date: date) -> list[SlotRowInfo]:
        self._require_slot_admin()
        return await self.store.list_slot_rows(slot_date)

    async def update_slot_row(
        self,
        slot_date: date,
        slot_key: str,
        update_data: SlotUpdate,
    ) -> Optional[SlotRowInfo]:
        self._require_slot_admin()
        row = await self.store.update_slot_row(
            slot_date,
            slot_key,
            update_data,
        )
        if row is not None:
            logger.info(
                f'Слот {build_slot_value(slot_date, slot_key)} изменён: '
                f'{update_data.model_dump(exclude_unset=True)}',
            )
        return row

    async def delete_slot_row(self, slot_date: date, slot_key: str) -> bool:
        self._require_slot_admin()
        deleted = await self.store.delete_slot_row(slot_date, slot_key)
        if deleted:
            logger.info(
                f'Строка слота {build_slot_value(slot_date, slot_key)} '
                'удалена',
            )
        return deleted
