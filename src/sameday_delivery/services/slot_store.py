"""Интерфейс хранилища занятости слотов.

Хранилище отвечает за атомарность проверки вместимости: чтение занятости,
решение и запись холда или резервации выполняются под одной блокировкой
слота. Все моменты времени передаются с tzinfo.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sameday_delivery.schemas.reservation import HoldInfo, ReservationInfo
from sameday_delivery.schemas.slot import SlotState, SlotTemplate
from sameday_delivery.utils.enums import ReservationStatus


class SlotStore(ABC):
    """Хранилище холдов и резерваций слотов."""

    supports_slot_admin = False

    @abstractmethod
    async def get_slot_states(
        self,
        templates: list[SlotTemplate],
        now: datetime,
        exclude_token: Optional[str] = None,
    ) -> list[SlotState]:
        """Занятость и вместимость слотов одной даты."""

    @abstractmethod
    async def get_token_hold(
        self,
        token: str,
        now: datetime,
    ) -> Optional[HoldInfo]:
        """Действующий холд токена."""

    @abstractmethod
    async def acquire_hold(
        self,
        token: str,
        template: SlotTemplate,
        now: datetime,
        expires_at: datetime,
    ) -> HoldInfo:
        """Занимает слот холдом токена.

        Прежний холд токена на другой слот снимается. Если мест нет,
        выбрасывает SlotUnavailableError и ничего не меняет.
        """

    @abstractmethod
    async def release_hold(
        self,
        token: str,
        slot_value: Optional[str] = None,
    ) -> bool:
        """Снимает холд токена. Повторный вызов ничего не делает."""

    @abstractmethod
    async def commit_reservation(
        self,
        order_id: str,
        template: SlotTemplate,
        zip_code: str,
        token: Optional[str],
        now: datetime,
    ) -> ReservationInfo:
        """Превращает выбор слота в резервацию заказа.

        Повторная привязка заказа к тому же слоту возвращает существующую
        резервацию. Привязка к другому слоту отменяет прежнюю. Холд токена
        снимается. Если мест нет, выбрасывает SlotUnavailableError.
        """

    @abstractmethod
    async def get_reservation(
        self,
        reservation_id: UUID,
    ) -> Optional[ReservationInfo]:
        """Резервация по идентификатору."""

    @abstractmethod
    async def get_reservation_for_order(
        self,
        order_id: str,
    ) -> Optional[ReservationInfo]:
        """Последняя резервация заказа."""

    @abstractmethod
    async def update_order_reservations(
        self,
        order_id: str,
        from_statuses: Iterable[ReservationStatus],
        to_status: ReservationStatus,
        now: datetime,
    ) -> int:
        """Меняет статус резерваций заказа, возвращает число изменённых."""

    @abstractmethod
    async def list_reservations(self, limit: int) -> list[ReservationInfo]:
        """Последние резервации, новые первыми."""

    @abstractmethod
    async def purge_expired_holds(self, now: datetime) -> int:
        """Удаляет истёкшие холды, возвращает их число."""
