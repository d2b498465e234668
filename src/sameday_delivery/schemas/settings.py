from datetime import date, time
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, field_serializer

from sameday_delivery.core.constants import (
    DEFAULT_CAPACITY,
    DEFAULT_CUTOFF_TIME,
    DEFAULT_SLOT_DURATION_MINUTES,
    DEFAULT_SLOT_END,
    DEFAULT_SLOT_START,
    DEFAULT_ZIP_WHITELIST,
    TIME_FORMAT,
)
from sameday_delivery.utils.validators import parse_time


class SettingsInfo(BaseModel):
    """Очищенные настройки доставки, которые читает движок слотов."""

    zip_whitelist: list[str]
    default_capacity: int
    slot_start: time
    slot_end: time
    slot_duration_minutes: int
    cutoff_time: time
    blackout_dates: list[date]
    slot_capacities: dict[str, int]

    model_config = ConfigDict(from_attributes=True)

    @field_serializer('slot_start', 'slot_end', 'cutoff_time')
    def serialize_time(self, value: time) -> str:
        """Время хранится и отдаётся в формате HH:MM."""
        return value.strftime(TIME_FORMAT)

    @classmethod
    def defaults(cls) -> 'SettingsInfo':
        """Настройки по умолчанию для новой установки."""
        return cls(
            zip_whitelist=list(DEFAULT_ZIP_WHITELIST),
            default_capacity=DEFAULT_CAPACITY,
            slot_start=parse_time(DEFAULT_SLOT_START),
            slot_end=parse_time(DEFAULT_SLOT_END),
            slot_duration_minutes=DEFAULT_SLOT_DURATION_MINUTES,
            cutoff_time=parse_time(DEFAULT_CUTOFF_TIME),
            blackout_dates=[],
            slot_capacities={},
        )

    def capacity_for(self, slot_key: str) -> int:
        """Эффективная вместимость слота с учётом переопределений."""
        capacity = self.slot_capacities.get(slot_key, self.default_capacity)
        return max(0, capacity)

    def is_blackout(self, value: date) -> bool:
        """Дата закрыта для доставки."""
        return value in self.blackout_dates


class SettingsUpdate(BaseModel):
    """Частичное обновление настроек из формы администратора.

    Значения принимаются как есть, некорректные поля заменяются
    последними сохранёнными значениями.
    """

    zip_whitelist: Union[str, list[str], None] = None
    default_capacity: Any = None
    slot_start: Optional[str] = None
    slot_end: Optional[str] = None
    slot_duration_minutes: Any = None
    cutoff_time: Optional[str] = None
    blackout_dates: Union[str, list[str], None] = None
    slot_capacities: Optional[dict[str, Any]] = None
