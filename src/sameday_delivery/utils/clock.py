from datetime import datetime, timezone
from zoneinfo import ZoneInfo


class SystemClock:
    """Источник текущего времени в часовом поясе магазина."""

    def __init__(self, tz_name: str) -> None:
        """Инициализация часов по IANA-имени часового пояса."""
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        """Текущее время магазина с tzinfo."""
        return datetime.now(self.tz)


def as_utc(value: datetime) -> datetime:
    """Приводит datetime к UTC.

    SQLite возвращает время без tzinfo, такие значения считаются UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
