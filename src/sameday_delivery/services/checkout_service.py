from typing import Optional

from loguru import logger

from sameday_delivery.core.exceptions import (
    SlotUnavailableError,
    SlotValidationError,
)
from sameday_delivery.schemas.reservation import (
    HoldInfo,
    OrderDeliveryMeta,
    OrderStatusResult,
    ReservationInfo,
)
from sameday_delivery.schemas.slot import SlotTemplate
from sameday_delivery.services.availability_service import (
    AvailabilityService,
    check_zip_code,
)
from sameday_delivery.services.hold_service import HoldManager
from sameday_delivery.services.settings_service import SettingsService
from sameday_delivery.services.slot_generator import (
    find_slot,
    format_full_slot_label,
)
from sameday_delivery.services.slot_store import SlotStore
from sameday_delivery.utils.clock import SystemClock
from sameday_delivery.utils.enums import (
    OrderStatus,
    ReservationStatus,
    ValidationCode,
)
from sameday_delivery.utils.validators import parse_slot_value

CANCELLING_STATUSES = (
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
    OrderStatus.FAILED,
)
CONFIRMING_STATUSES = (OrderStatus.PROCESSING, OrderStatus.COMPLETED)


class CheckoutService:
    """Проверка выбора слота при оформлении и привязка его к заказу.

    Состояние одного оформления: нет выбора, холд, привязка к заказу,
    затем подтверждение или отмена по статусу заказа. Холд без привязки
    истекает сам.
    """

    def __init__(
        self,
        store: SlotStore,
        settings_service: SettingsService,
        availability: AvailabilityService,
        holds: HoldManager,
        clock: SystemClock,
    ) -> None:
        self.store = store
        self.settings_service = settings_service
        self.availability = availability
        self.holds = holds
        self.clock = clock

    async def _resolve_slot(
        self,
        slot_value: Optional[str],
    ) -> SlotTemplate:
        """Находит слот по значению поля выбора."""
        if not slot_value or not slot_value.strip():
            raise SlotValidationError(ValidationCode.MISSING_SLOT)
        parsed = parse_slot_value(slot_value)
        if parsed is None:
            raise SlotValidationError(ValidationCode.INVALID_SLOT)
        slot_date, slot_key = parsed
        settings = await self.settings_service.get_settings()
        template = find_slot(slot_date, slot_key, settings)
        if template is None:
            raise SlotValidationError(ValidationCode.INVALID_SLOT)
        if not self.availability.is_open_date(
            slot_date,
            self.clock.now(),
            settings,
        ):
            raise SlotValidationError(ValidationCode.UNAVAILABLE_SLOT)
        return template

    async def validate_and_hold(
        self,
        zip_code: Optional[str],
        slot_value: Optional[str],
        token: str,
    ) -> HoldInfo:
        """Проверяет выбор слота в форме и ставит холд.

        При любой ошибке снимает прежний холд токена и пробрасывает
        SlotValidationError с текстом для покупателя.
        """
        try:
            settings = await self.settings_service.get_settings()
            check_zip_code(zip_code, settings)
            template = await self._resolve_slot(slot_value)
            if not (await self.holds.is_available(template, token)).available:
                raise SlotUnavailableError(template.value)
            return await self.holds.create_hold(token, template)
        except SlotValidationError as e:
            logger.bind(checkout_token=token).info(
                f'Выбор слота {slot_value!r} отклонён: {e.code.value}',
            )
            await self.holds.release_hold(token)
            raise

    async def bind_to_order(
        self,
        order_id: str,
        slot_value: str,
        zip_code: Optional[str],
        token: Optional[str] = None,
    ) -> OrderDeliveryMeta:
        """Привязывает выбранный слот к созданному заказу.

        Холд токена превращается в резервацию заказа. Повторный вызов
        для того же слота возвращает те же метаданные. Слот на дату,
        которая уже не принимает доставку, привязывается только по
        действующему холду токена на этот же слот.
        """
        settings = await self.settings_service.get_settings()
        normalized_zip = check_zip_code(zip_code, settings)
        parsed = parse_slot_value(slot_value)
        if parsed is None:
            raise SlotValidationError(ValidationCode.INVALID_SLOT)
        slot_date, slot_key = parsed
        template = find_slot(slot_date, slot_key, settings)
        if template is None:
            raise SlotValidationError(ValidationCode.INVALID_SLOT)
        now = self.clock.now()
        if settings.is_blackout(slot_date) or not (
            self.availability.is_open_date(slot_date, now, settings)
            or await self._already_chosen(order_id, template, token)
        ):
            logger.bind(checkout_token=token or '-').info(
                f'Привязка заказа {order_id} к {template.value} '
                'отклонена: дата закрыта',
            )
            raise SlotValidationError(ValidationCode.UNAVAILABLE_SLOT)

        reservation = await self.store.commit_reservation(
            order_id,
            template,
            normalized_zip,
            token,
            now,
        )
        logger.bind(checkout_token=token or '-').info(
            f'Заказ {order_id} привязан к слоту {template.value}, '
            f'резервация {reservation.id}',
        )
        return self.build_meta(reservation)

    async def _already_chosen(
        self,
        order_id: str,
        template: SlotTemplate,
        token: Optional[str],
    ) -> bool:
        """Слот уже закреплён за холдом токена или за самим заказом."""
        if token:
            hold = await self.holds.get_hold(token)
            if hold is not None and hold.slot_value == template.value:
                return True
        reservation = await self.store.get_reservation_for_order(order_id)
        return (
            reservation is not None
            and reservation.status != ReservationStatus.CANCELLED
            and reservation.slot_value == template.value
        )

    @staticmethod
    def build_meta(reservation: ReservationInfo) -> OrderDeliveryMeta:
        """Метаданные заказа по его резервации."""
        return OrderDeliveryMeta(
            order_id=reservation.order_id,
            reservation_id=reservation.id,
            slot_value=reservation.slot_value,
            delivery_date=reservation.delivery_date,
            slot_key=reservation.slot_key,
            display=format_full_slot_label(
                reservation.delivery_date,
                reservation.slot_key,
            ),
            zip_code=reservation.zip_code,
        )

    async def on_order_status_changed(
        self,
        order_id: str,
        new_status: OrderStatus,
        old_status: Optional[OrderStatus] = None,
    ) -> OrderStatusResult:
        """Подтверждает или отменяет резервацию по статусу заказа.

        Отмена возвращает место в слот. Повторная отмена ничего не меняет.
        """
        now = self.clock.now()
        if new_status in CANCELLING_STATUSES:
            target = ReservationStatus.CANCELLED
            changed = await self.store.update_order_reservations(
                order_id,
                (ReservationStatus.RESERVED, ReservationStatus.CONFIRMED),
                target,
                now,
            )
        elif new_status in CONFIRMING_STATUSES:
            target = ReservationStatus.CONFIRMED
            changed = await self.store.update_order_reservations(
                order_id,
                (ReservationStatus.RESERVED,),
                target,
                now,
            )
        else:
            target, changed = None, 0

        if changed:
            logger.info(
                f'Заказ {order_id}: {old_status or "-"} -> '
                f'{new_status.value}, резерваций {target.value}: {changed}',
            )
        reservation = await self.store.get_reservation_for_order(order_id)
        return OrderStatusResult(
            order_id=order_id,
            status=new_status,
            changed=changed,
            reservation_status=reservation.status if reservation else None,
        )

    async def on_checkout_complete(self, token: str) -> bool:
        """Очищает состояние оформления токена после страницы заказа."""
        released = await self.holds.release_hold(token)
        logger.bind(checkout_token=token).debug('Оформление завершено')
        return released
