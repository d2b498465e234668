from datetime import date, datetime, timedelta
from typing import Optional

from sameday_delivery.core.constants import MESSAGE_NO_AVAILABILITY
from sameday_delivery.core.exceptions import SlotValidationError
from sameday_delivery.schemas.settings import SettingsInfo
from sameday_delivery.schemas.slot import SlotListInfo, SlotOption, SlotState
from sameday_delivery.services.settings_service import SettingsService
from sameday_delivery.services.slot_generator import (
    format_date_label,
    format_spots_left,
    generate_slots,
)
from sameday_delivery.services.slot_store import SlotStore
from sameday_delivery.utils.clock import SystemClock
from sameday_delivery.utils.enums import ValidationCode
from sameday_delivery.utils.validators import normalize_zip


def is_after_cutoff(now: datetime, settings: SettingsInfo) -> bool:
    """Ежедневный cut-off наступил: сегодня доставка уже не принимается."""
    return now.time().replace(tzinfo=None) >= settings.cutoff_time


def first_eligible_date(
    now: datetime,
    settings: SettingsInfo,
    horizon_days: int,
) -> Optional[date]:
    """Первая дата, на которую ещё можно оформить доставку.

    Сегодня, если время строго раньше cut-off, иначе завтра. Закрытые даты
    пропускаются. Поиск ограничен horizon_days днями вперёд.
    """
    today = now.date()
    candidate = today
    if is_after_cutoff(now, settings):
        candidate += timedelta(days=1)
    last_day = today + timedelta(days=horizon_days)
    while candidate <= last_day:
        if not settings.is_blackout(candidate):
            return candidate
        candidate += timedelta(days=1)
    return None


def check_zip_code(zip_code: Optional[str], settings: SettingsInfo) -> str:
    """Нормализует ZIP и проверяет зону доставки."""
    normalized = normalize_zip(zip_code)
    if not normalized:
        raise SlotValidationError(ValidationCode.NO_ZIP)
    if normalized not in settings.zip_whitelist:
        raise SlotValidationError(ValidationCode.INVALID_ZIP)
    return normalized


class AvailabilityService:
    """Сервис для расчёта свободных слотов доставки."""

    def __init__(
        self,
        store: SlotStore,
        settings_service: SettingsService,
        clock: SystemClock,
        horizon_days: int,
    ) -> None:
        self.store = store
        self.settings_service = settings_service
        self.clock = clock
        self.horizon_days = horizon_days

    def is_open_date(
        self,
        slot_date: date,
        now: datetime,
        settings: SettingsInfo,
    ) -> bool:
        """Дата принимает доставку: не прошла, не закрыта, в горизонте."""
        first = first_eligible_date(now, settings, self.horizon_days)
        if first is None or slot_date < first:
            return False
        if slot_date > now.date() + timedelta(days=self.horizon_days):
            return False
        return not settings.is_blackout(slot_date)

    async def slots_for_date(
        self,
        slot_date: date,
        settings: SettingsInfo,
        now: datetime,
        exclude_token: Optional[str] = None,
        only_available: bool = False,
    ) -> list[SlotState]:
        """Слоты даты с занятостью.

        Закрытая дата не содержит слотов при любых настройках вместимости.
        """
        if settings.is_blackout(slot_date):
            return []
        states = await self.store.get_slot_states(
            generate_slots(slot_date, settings),
            now,
            exclude_token,
        )
        if only_available:
            return [state for state in states if state.available > 0]
        return states

    def _build_list(
        self,
        slot_date: date,
        states: list[SlotState],
        now: datetime,
        selected: Optional[str] = None,
    ) -> SlotListInfo:
        return SlotListInfo(
            date=slot_date,
            date_label=format_date_label(slot_date, now.date()),
            slots=[
                SlotOption(
                    value=state.template.value,
                    label=(
                        f'{state.template.label} '
                        f'{format_spots_left(state.available)}'
                    ),
                    available=state.available,
                )
                for state in states
            ],
            selected=selected,
        )

    async def _first_open_day(
        self,
        settings: SettingsInfo,
        now: datetime,
        exclude_token: Optional[str] = None,
    ) -> Optional[tuple[date, list[SlotState]]]:
        """Ближайшая дата со свободными слотами в пределах горизонта."""
        candidate = first_eligible_date(now, settings, self.horizon_days)
        last_day = now.date() + timedelta(days=self.horizon_days)
        while candidate is not None and candidate <= last_day:
            states = await self.slots_for_date(
                candidate,
                settings,
                now,
                exclude_token,
                only_available=True,
            )
            if states:
                return candidate, states
            candidate += timedelta(days=1)
        return None

    async def get_available_slots(
        self,
        zip_code: Optional[str],
        now: Optional[datetime] = None,
        exclude_token: Optional[str] = None,
    ) -> SlotListInfo:
        """Свободные слоты на ближайшую дату, где они есть.

        Выбрасывает SlotValidationError, если ZIP не указан или не
        обслуживается. Если в горизонте нет ни одного свободного слота,
        возвращает пустой список с сообщением.
        """
        settings = await self.settings_service.get_settings()
        check_zip_code(zip_code, settings)
        now = now or self.clock.now()
        selected = await self._selected_value(exclude_token, now)
        found = await self._first_open_day(settings, now, exclude_token)
        if found is None:
            return SlotListInfo(
                selected=selected,
                message=MESSAGE_NO_AVAILABILITY,
            )
        slot_date, states = found
        return self._build_list(slot_date, states, now, selected)

    async def get_slots_for_date(
        self,
        slot_date: date,
        now: Optional[datetime] = None,
        exclude_token: Optional[str] = None,
    ) -> SlotListInfo:
        """Свободные слоты конкретной даты.

        Прошедшая, закрытая или уже недоступная по cut-off дата даёт
        пустой список.
        """
        settings = await self.settings_service.get_settings()
        now = now or self.clock.now()
        selected = await self._selected_value(exclude_token, now)
        states = []
        if self.is_open_date(slot_date, now, settings):
            states = await self.slots_for_date(
                slot_date,
                settings,
                now,
                exclude_token,
                only_available=True,
            )
        slot_list = self._build_list(slot_date, states, now, selected)
        if not states:
            slot_list.message = MESSAGE_NO_AVAILABILITY
        return slot_list

    async def next_available_date(
        self,
        now: Optional[datetime] = None,
    ) -> Optional[date]:
        """Ближайшая дата с хотя бы одним свободным слотом."""
        settings = await self.settings_service.get_settings()
        found = await self._first_open_day(settings, now or self.clock.now())
        return found[0] if found else None

    async def _selected_value(
        self,
        token: Optional[str],
        now: datetime,
    ) -> Optional[str]:
        if not token:
            return None
        hold = await self.store.get_token_hold(token, now)
        return hold.slot_value if hold else None
