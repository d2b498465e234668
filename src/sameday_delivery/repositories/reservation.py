from datetime import date, datetime, time
from typing import Iterable, List, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sameday_delivery.models import Reservation
from sameday_delivery.repositories.base import CRUDBase
from sameday_delivery.schemas.reservation import ReservationInfo
from sameday_delivery.utils.enums import ReservationStatus

ACTIVE_STATUSES = (ReservationStatus.RESERVED, ReservationStatus.CONFIRMED)


class ReservationRepository(
    CRUDBase[Reservation, ReservationInfo, ReservationInfo],
):
    """Репозиторий для резерваций слотов."""

    def __init__(self) -> None:
        """Инициализация репозитория резерваций."""
        super().__init__(Reservation)

    async def count_active(
        self,
        session: AsyncSession,
        delivery_date: date,
        slot_start: time,
        slot_end: time,
    ) -> int:
        """Считает резервации слота, занимающие место."""
        stmt = select(func.count(Reservation.id)).where(
            Reservation.delivery_date == delivery_date,
            Reservation.slot_start == slot_start,
            Reservation.slot_end == slot_end,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
        return (await session.execute(stmt)).scalar_one()

    async def get_active_for_order(
        self,
        session: AsyncSession,
        order_id: str,
    ) -> Optional[Reservation]:
        """Получает действующую резервацию заказа."""
        return await self.get(
            session,
            Reservation.status.in_(ACTIVE_STATUSES),
            order_id=order_id,
            order_by=(Reservation.created_at.desc(),),
        )

    async def get_latest_for_order(
        self,
        session: AsyncSession,
        order_id: str,
    ) -> Optional[Reservation]:
        """Получает резервацию заказа: действующую, иначе последнюю."""
        return await self.get(
            session,
            order_id=order_id,
            order_by=(
                case((Reservation.status.in_(ACTIVE_STATUSES), 0), else_=1),
                Reservation.created_at.desc(),
            ),
        )

    async def get_latest(
        self,
        session: AsyncSession,
        limit: int,
    ) -> List[Reservation]:
        """Последние резервации для отчёта администратора."""
        return await self.get(
            session,
            many=True,
            order_by=(Reservation.created_at.desc(),),
            limit=limit,
        )

    async def set_status_for_order(
        self,
        session: AsyncSession,
        order_id: str,
        from_statuses: Iterable[ReservationStatus],
        to_status: ReservationStatus,
        updated_at: datetime,
    ) -> int:
        """Переводит резервации заказа в новый статус.

        Возвращает количество изменённых строк, commit делает вызывающий.
        """
        stmt = (
            update(Reservation)
            .where(
                Reservation.order_id == order_id,
                Reservation.status.in_(tuple(from_statuses)),
            )
            .values(status=to_status, updated_at=updated_at)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0


reservation_repository = ReservationRepository()
