import datetime as dt
from datetime import date, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

from sameday_delivery.utils.enums import SlotStatus
from sameday_delivery.utils.validators import build_slot_value


class SlotTemplate(BaseModel):
    """Слот, построенный генератором для даты."""

    slot_date: date
    slot_key: str
    start_time: time
    end_time: time
    label: str
    capacity: int

    @property
    def value(self) -> str:
        """Значение поля выбора слота."""
        return build_slot_value(self.slot_date, self.slot_key)


class SlotUsage(BaseModel):
    """Занятость слота: резервации заказов и активные холды."""

    orders: int = 0
    holds: int = 0

    @property
    def total(self) -> int:
        return self.orders + self.holds


class SlotState(BaseModel):
    """Слот с вместимостью и текущей занятостью."""

    template: SlotTemplate
    capacity: int
    usage: SlotUsage
    status: SlotStatus = SlotStatus.ACTIVE

    @property
    def available(self) -> int:
        """Свободные места, никогда не меньше нуля."""
        if self.status != SlotStatus.ACTIVE:
            return 0
        return max(0, self.capacity - self.usage.total)


class SlotOption(BaseModel):
    """Слот в списке для выбора покупателем."""

    value: str
    label: str
    available: int


class SlotListInfo(BaseModel):
    """Ответ со слотами на ближайшую доступную дату."""

    date: Optional[dt.date] = None
    date_label: Optional[str] = None
    slots: list[SlotOption] = []
    selected: Optional[str] = None
    message: Optional[str] = None


class SlotReportItem(BaseModel):
    """Строка отчёта администратора по слотам даты."""

    slot_date: date
    slot_key: str
    label: str
    capacity: int
    orders: int
    holds: int
    available: int
    status: SlotStatus


class SlotUpdate(BaseModel):
    """Схема для обновления строки слота администратором."""

    capacity: Optional[NonNegativeInt] = Field(
        None,
        description='Пустое значение возвращает вместимость из настроек',
    )
    status: Optional[SlotStatus] = None


class SlotRowInfo(BaseModel):
    """Строка таблицы слотов."""

    delivery_date: date
    slot_key: str
    start_time: time
    end_time: time
    capacity: Optional[int]
    status: SlotStatus

    model_config = ConfigDict(from_attributes=True)


class SlotGenerateResult(BaseModel):
    """Результат догенерации слотов."""

    created: int
    days: int
