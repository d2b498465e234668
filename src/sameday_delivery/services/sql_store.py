from datetime import date, datetime
from typing import Iterable, Optional
from uuid import UUID

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sameday_delivery.core.exceptions import SlotUnavailableError
from sameday_delivery.models import DeliverySlot, Reservation, SlotHold
from sameday_delivery.repositories import (
    delivery_slot_repository,
    reservation_repository,
    slot_hold_repository,
)
from sameday_delivery.schemas.reservation import HoldInfo, ReservationInfo
from sameday_delivery.schemas.slot import (
    SlotRowInfo,
    SlotState,
    SlotTemplate,
    SlotUpdate,
    SlotUsage,
)
from sameday_delivery.services.slot_store import SlotStore
from sameday_delivery.utils.clock import as_utc
from sameday_delivery.utils.enums import ReservationStatus, SlotStatus
from sameday_delivery.utils.validators import (
    parse_slot_key,
    parse_slot_value,
)


def _effective_capacity(slot: Optional[DeliverySlot], default: int) -> int:
    """Вместимость строки слота, отключённая строка мест не имеет."""
    if slot is None:
        return default
    if slot.status != SlotStatus.ACTIVE:
        return 0
    return default if slot.capacity is None else slot.capacity


class SqlSlotStore(SlotStore):
    """Хранилище в реляционной БД.

    Каждая проверка с записью блокирует строку deliveryslot через
    SELECT ... FOR UPDATE до конца транзакции. Уникальный token в slothold
    не даёт токену держать больше одного слота.
    """

    supports_slot_admin = True

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _usage(
        self,
        session: AsyncSession,
        template: SlotTemplate,
        now: datetime,
        exclude_token: Optional[str] = None,
    ) -> SlotUsage:
        orders = await reservation_repository.count_active(
            session,
            template.slot_date,
            template.start_time,
            template.end_time,
        )
        holds = await slot_hold_repository.count_active(
            session,
            template.value,
            as_utc(now),
            exclude_token,
        )
        return SlotUsage(orders=orders, holds=holds)

    async def get_slot_states(
        self,
        templates: list[SlotTemplate],
        now: datetime,
        exclude_token: Optional[str] = None,
    ) -> list[SlotState]:
        if not templates:
            return []
        async with self.session_factory() as session:
            rows = {
                (row.start_time, row.end_time): row
                for row in await delivery_slot_repository.get_multi_by_date(
                    session,
                    templates[0].slot_date,
                )
            }
            states = []
            for template in templates:
                row = rows.get((template.start_time, template.end_time))
                states.append(
                    SlotState(
                        template=template,
                        capacity=_effective_capacity(row, template.capacity),
                        usage=await self._usage(
                            session,
                            template,
                            now,
                            exclude_token,
                        ),
                        status=row.status if row else SlotStatus.ACTIVE,
                    ),
                )
            return states

    async def get_token_hold(
        self,
        token: str,
        now: datetime,
    ) -> Optional[HoldInfo]:
        async with self.session_factory() as session:
            hold = await slot_hold_repository.get_active_for_token(
                session,
                token,
                as_utc(now),
            )
            if hold is None:
                return None
            slot_date, slot_key = parse_slot_value(hold.slot_value)
            return HoldInfo(
                token=hold.token,
                slot_date=slot_date,
                slot_key=slot_key,
                expires_at=as_utc(hold.expires_at),
            )

    async def acquire_hold(
        self,
        token: str,
        template: SlotTemplate,
        now: datetime,
        expires_at: datetime,
    ) -> HoldInfo:
        async with self.session_factory() as session:
            slot = await delivery_slot_repository.lock_or_create(
                session,
                template,
            )
            await slot_hold_repository.delete_expired(
                session,
                as_utc(now),
                slot_id=slot.id,
            )
            capacity = _effective_capacity(slot, template.capacity)
            usage = await self._usage(session, template, now, token)
            if usage.total >= capacity:
                await session.rollback()
                logger.warning(
                    f'Слот {template.value} заполнен: '
                    f'{usage.total}/{capacity}',
                )
                raise SlotUnavailableError(template.value)

            await slot_hold_repository.delete_for_token(session, token)
            session.add(
                SlotHold(
                    slot_id=slot.id,
                    slot_value=template.value,
                    token=token,
                    expires_at=as_utc(expires_at),
                ),
            )
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.warning(
                    f'Конфликт удержания {token} на слоте {template.value}',
                )
                raise SlotUnavailableError(template.value)
        return HoldInfo(
            token=token,
            slot_date=template.slot_date,
            slot_key=template.slot_key,
            expires_at=as_utc(expires_at),
        )

    async def release_hold(
        self,
        token: str,
        slot_value: Optional[str] = None,
    ) -> bool:
        async with self.session_factory() as session:
            deleted = await slot_hold_repository.delete_for_token(
                session,
                token,
                slot_value,
            )
            await session.commit()
        return deleted > 0

    async def commit_reservation(
        self,
        order_id: str,
        template: SlotTemplate,
        zip_code: str,
        token: Optional[str],
        now: datetime,
    ) -> ReservationInfo:
        async with self.session_factory() as session:
            slot = await delivery_slot_repository.lock_or_create(
                session,
                template,
            )
            existing = await reservation_repository.get_active_for_order(
                session,
                order_id,
            )
            if existing is not None and (
                existing.delivery_date == template.slot_date
                and existing.slot_key == template.slot_key
            ):
                if token:
                    await slot_hold_repository.delete_for_token(session, token)
                await session.commit()
                return ReservationInfo.model_validate(existing)

            capacity = _effective_capacity(slot, template.capacity)
            usage = await self._usage(session, template, now, token)
            if usage.total >= capacity:
                await session.rollback()
                logger.warning(
                    f'Слот {template.value} заполнен при привязке '
                    f'заказа {order_id}',
                )
                raise SlotUnavailableError(template.value)

            if existing is not None:
                existing.status = ReservationStatus.CANCELLED
            reservation = Reservation(
                order_id=order_id,
                delivery_date=template.slot_date,
                slot_start=template.start_time,
                slot_end=template.end_time,
                zip_code=zip_code,
                status=ReservationStatus.RESERVED,
                token=token,
            )
            session.add(reservation)
            if token:
                await slot_hold_repository.delete_for_token(session, token)
            await session.commit()
            await session.refresh(reservation)
            return ReservationInfo.model_validate(reservation)

    async def get_reservation(
        self,
        reservation_id: UUID,
    ) -> Optional[ReservationInfo]:
        async with self.session_factory() as session:
            reservation = await reservation_repository.get(
                session,
                id=reservation_id,
            )
            if reservation is None:
                return None
            return ReservationInfo.model_validate(reservation)

    async def get_reservation_for_order(
        self,
        order_id: str,
    ) -> Optional[ReservationInfo]:
        async with self.session_factory() as session:
            reservation = await reservation_repository.get_latest_for_order(
                session,
                order_id,
            )
            if reservation is None:
                return None
            return ReservationInfo.model_validate(reservation)

    async def update_order_reservations(
        self,
        order_id: str,
        from_statuses: Iterable[ReservationStatus],
        to_status: ReservationStatus,
        now: datetime,
    ) -> int:
        async with self.session_factory() as session:
            changed = await reservation_repository.set_status_for_order(
                session,
                order_id,
                from_statuses,
                to_status,
                as_utc(now),
            )
            await session.commit()
        return changed

    async def list_reservations(self, limit: int) -> list[ReservationInfo]:
        async with self.session_factory() as session:
            return [
                ReservationInfo.model_validate(reservation)
                for reservation in await reservation_repository.get_latest(
                    session,
                    limit,
                )
            ]

    async def purge_expired_holds(self, now: datetime) -> int:
        async with self.session_factory() as session:
            purged = await slot_hold_repository.delete_expired(
                session,
                as_utc(now),
            )
            await session.commit()
        return purged

    async def pregenerate(
        self,
        slot_date: date,
        templates: list[SlotTemplate],
    ) -> int:
        """Создаёт недостающие строки слотов на дату."""
        async with self.session_factory() as session:
            return await delivery_slot_repository.create_missing(
                session,
                slot_date,
                templates,
            )

    async def list_slot_rows(self, slot_date: date) -> list[SlotRowInfo]:
        """Строки слотов на дату для администратора."""
        async with self.session_factory() as session:
            return [
                SlotRowInfo.model_validate(row)
                for row in await delivery_slot_repository.get_multi_by_date(
                    session,
                    slot_date,
                )
            ]

    async def update_slot_row(
        self,
        slot_date: date,
        slot_key: str,
        update_data: SlotUpdate,
    ) -> Optional[SlotRowInfo]:
        """Меняет вместимость или статус строки слота."""
        window = parse_slot_key(slot_key)
        if window is None:
            return None
        async with self.session_factory() as session:
            row = await delivery_slot_repository.get_by_window(
                session,
                slot_date,
                *window,
                lock=True,
            )
            if row is None:
                return None
            row = await delivery_slot_repository.update_obj(
                row,
                update_data,
                session,
            )
            return SlotRowInfo.model_validate(row)

    async def delete_slot_row(self, slot_date: date, slot_key: str) -> bool:
        """Удаляет строку слота вместе с её холдами."""
        window = parse_slot_key(slot_key)
        if window is None:
            return False
        async with self.session_factory() as session:
            row = await delivery_slot_repository.get_by_window(
                session,
                slot_date,
                *window,
                lock=True,
            )
            if row is None:
                return False
            await slot_hold_repository.delete_for_slot(session, row.id)
            await delivery_slot_repository.delete(row, session)
        return True
