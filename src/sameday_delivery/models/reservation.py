from datetime import date, time
from typing import Optional

from sqlalchemy import Date, Enum, Index, String, Time
from sqlalchemy.orm import Mapped, mapped_column

from sameday_delivery.core.constants import TOKEN_MAX_LENGTH
from sameday_delivery.core.db import Base
from sameday_delivery.utils.enums import ReservationStatus


class Reservation(Base):
    """Таблица резерваций слотов, привязанных к заказам."""

    order_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        index=True,
        nullable=True,
    )
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    slot_start: Mapped[time] = mapped_column(Time, nullable=False)
    slot_end: Mapped[time] = mapped_column(Time, nullable=False)
    zip_code: Mapped[str] = mapped_column(String(10), nullable=False)
    token: Mapped[Optional[str]] = mapped_column(
        String(TOKEN_MAX_LENGTH),
        nullable=True,
    )
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(
            ReservationStatus,
            name='reservation_status',
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
        default=ReservationStatus.RESERVED,
        server_default=ReservationStatus.RESERVED.value,
    )

    __table_args__ = (
        Index(
            'ix_reservations_slot_status',
            'delivery_date',
            'slot_start',
            'slot_end',
            'status',
        ),
    )

    @property
    def slot_key(self) -> str:
        """Ключ слота вида HH:MM-HH:MM."""
        return (
            f'{self.slot_start.strftime("%H:%M")}-'
            f'{self.slot_end.strftime("%H:%M")}'
        )
