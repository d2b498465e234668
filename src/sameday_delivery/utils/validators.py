import re
from datetime import date, datetime, time
from typing import Any, Optional

from email_validator import EmailNotValidError
from email_validator import validate_email as ev_validate

from sameday_delivery.core.constants import (
    DATE_PATTERN,
    SLOT_KEY_PATTERN,
    SLOT_VALUE_SEPARATOR,
    TIME_FORMAT,
    TIME_PATTERN,
    ZIP_LENGTH,
)

LIST_SEPARATORS = re.compile(r'[\r\n,]+')


def validate_email(value: Optional[str]) -> Optional[str]:
    """Возвращает читаемое сообщение при некорректном email."""
    if not (value and value.strip()):
        return None

    try:
        ev_validate(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError(
            'Укажите адрес электронной почты, например: user@example.com',
        )
    return value


def normalize_zip(value: Any) -> str:
    """Оставляет в ZIP только цифры и приводит к фиксированной длине.

    Пустая строка означает, что ZIP не указан.
    """
    digits = re.sub(r'\D', '', str(value or ''))
    if not digits:
        return ''
    return digits[:ZIP_LENGTH].zfill(ZIP_LENGTH)


def split_list(value: Any) -> list[str]:
    """Разбивает текст из формы (строки или запятые) на элементы."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        items = [str(item) for item in value]
    else:
        items = LIST_SEPARATORS.split(str(value))
    return [item.strip() for item in items if item and item.strip()]


def parse_time(value: Any) -> Optional[time]:
    """Разбирает время в формате HH:MM, None при ошибке."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    raw = str(value or '').strip()
    if not re.fullmatch(TIME_PATTERN, raw):
        return None
    try:
        return datetime.strptime(raw, TIME_FORMAT).time()
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[date]:
    """Разбирает дату в формате YYYY-MM-DD, None при ошибке."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value or '').strip()
    if not re.fullmatch(DATE_PATTERN, raw):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def parse_slot_key(value: Any) -> Optional[tuple[time, time]]:
    """Разбирает ключ слота HH:MM-HH:MM в пару (начало, конец)."""
    raw = str(value or '').strip()
    if not re.fullmatch(SLOT_KEY_PATTERN, raw):
        return None
    start_raw, end_raw = raw.split('-')
    start, end = parse_time(start_raw), parse_time(end_raw)
    if start is None or end is None or start >= end:
        return None
    return start, end


def is_slot_key(value: Any) -> bool:
    """Проверяет, что строка похожа на ключ слота HH:MM-HH:MM."""
    return parse_slot_key(value) is not None


def parse_slot_value(value: Any) -> Optional[tuple[date, str]]:
    """Разбирает значение поля выбора слота YYYY-MM-DD|HH:MM-HH:MM."""
    raw = str(value or '').strip()
    if raw.count(SLOT_VALUE_SEPARATOR) != 1:
        return None
    date_raw, key_raw = raw.split(SLOT_VALUE_SEPARATOR)
    slot_date = parse_date(date_raw)
    if slot_date is None or not is_slot_key(key_raw.strip()):
        return None
    return slot_date, key_raw.strip()


def build_slot_value(slot_date: date, slot_key: str) -> str:
    """Собирает значение поля выбора слота."""
    return f'{slot_date.isoformat()}{SLOT_VALUE_SEPARATOR}{slot_key}'
