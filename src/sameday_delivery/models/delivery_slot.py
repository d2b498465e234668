from datetime import date, time
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    Enum,
    Integer,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from sameday_delivery.core.db import Base
from sameday_delivery.utils.enums import SlotStatus


class DeliverySlot(Base):
    """Таблица слотов доставки, сгенерированных на конкретную дату.

    Строка служит объектом блокировки при проверке вместимости.
    Пустая capacity означает вместимость из настроек доставки.
    """

    delivery_date: Mapped[date] = mapped_column(
        Date,
        index=True,
        nullable=False,
    )
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[SlotStatus] = mapped_column(
        Enum(
            SlotStatus,
            name='slot_status',
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
        default=SlotStatus.ACTIVE,
        server_default=SlotStatus.ACTIVE.value,
    )

    __table_args__ = (
        UniqueConstraint(
            'delivery_date',
            'start_time',
            'end_time',
            name='uq_delivery_slot_window',
        ),
        CheckConstraint(
            'start_time < end_time',
            name='ck_delivery_slot_interval',
        ),
        CheckConstraint(
            'capacity IS NULL OR capacity >= 0',
            name='ck_delivery_slot_capacity',
        ),
    )

    @property
    def slot_key(self) -> str:
        """Ключ слота вида HH:MM-HH:MM."""
        return (
            f'{self.start_time.strftime("%H:%M")}-'
            f'{self.end_time.strftime("%H:%M")}'
        )
