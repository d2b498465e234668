"""Построение слотов доставки и подписей к ним.

Функции модуля чистые: результат зависит только от даты и настроек.
Расчёт ведётся в минутах от начала дня, без привязки к часовому поясу,
поэтому переход на летнее время не сдвигает границы слотов.
"""
from datetime import date, time, timedelta

from sameday_delivery.core.constants import MINUTES_IN_DAY, TIME_FORMAT
from sameday_delivery.schemas.settings import SettingsInfo
from sameday_delivery.schemas.slot import SlotTemplate
from sameday_delivery.utils.validators import parse_slot_key


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(value: int) -> time:
    return time(hour=value // 60, minute=value % 60)


def build_slot_key(start: time, end: time) -> str:
    """Ключ слота вида HH:MM-HH:MM."""
    return f'{start.strftime(TIME_FORMAT)}-{end.strftime(TIME_FORMAT)}'


def format_time(value: time) -> str:
    """Время в виде 10:00 AM."""
    hour = value.hour % 12 or 12
    suffix = 'AM' if value.hour < 12 else 'PM'
    return f'{hour}:{value.minute:02d} {suffix}'


def format_slot_label(start: time, end: time) -> str:
    """Подпись слота вида 10:00 AM - 12:00 PM."""
    return f'{format_time(start)} - {format_time(end)}'


def format_long_date(value: date) -> str:
    """Дата вида June 1, 2024."""
    return f'{value.strftime("%B")} {value.day}, {value.year}'


def format_date_label(value: date, today: date) -> str:
    """Подпись даты для списка слотов: Today, Tomorrow или день недели."""
    if value == today:
        return f'Today ({format_long_date(value)})'
    if value == today + timedelta(days=1):
        return f'Tomorrow ({format_long_date(value)})'
    return f'{value.strftime("%A")}, {format_long_date(value)}'


def format_full_slot_label(value: date, slot_key: str) -> str:
    """Полная подпись доставки для заказа и писем."""
    parsed = parse_slot_key(slot_key)
    if parsed is None:
        return f'{value.isoformat()} {slot_key}'
    start, end = parsed
    return (
        f'{value.strftime("%A")}, {format_long_date(value)} '
        f'between {format_slot_label(start, end)}'
    )


def format_spots_left(available: int) -> str:
    """Остаток мест: (1 spot left), (3 spots left)."""
    noun = 'spot' if available == 1 else 'spots'
    return f'({available} {noun} left)'


def generate_slots(
    slot_date: date,
    settings: SettingsInfo,
) -> list[SlotTemplate]:
    """Строит упорядоченный список слотов фиксированной длины на дату.

    Слоты идут от slot_start с шагом slot_duration_minutes, пока
    следующий слот целиком помещается до slot_end. Неполный последний
    слот не создаётся. Пустое или перевёрнутое окно даёт пустой список.
    """
    start = to_minutes(settings.slot_start)
    end = to_minutes(settings.slot_end)
    duration = settings.slot_duration_minutes
    if duration <= 0 or end <= start or end > MINUTES_IN_DAY:
        return []

    slots = []
    cursor = start
    while cursor + duration <= end:
        slot_start = from_minutes(cursor)
        slot_end = from_minutes(cursor + duration)
        slot_key = build_slot_key(slot_start, slot_end)
        slots.append(
            SlotTemplate(
                slot_date=slot_date,
                slot_key=slot_key,
                start_time=slot_start,
                end_time=slot_end,
                label=format_slot_label(slot_start, slot_end),
                capacity=settings.capacity_for(slot_key),
            ),
        )
        cursor += duration
    return slots


def find_slot(
    slot_date: date,
    slot_key: str,
    settings: SettingsInfo,
) -> SlotTemplate | None:
    """Ищет слот с ключом среди слотов даты."""
    return next(
        (
            slot
            for slot in generate_slots(slot_date, settings)
            if slot.slot_key == slot_key
        ),
        None,
    )
