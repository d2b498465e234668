import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID, uuid4

from loguru import logger

from sameday_delivery.core.exceptions import SlotUnavailableError
from sameday_delivery.schemas.reservation import HoldInfo, ReservationInfo
from sameday_delivery.schemas.slot import SlotState, SlotTemplate, SlotUsage
from sameday_delivery.services.slot_store import SlotStore
from sameday_delivery.utils.clock import as_utc
from sameday_delivery.utils.enums import ReservationStatus
from sameday_delivery.utils.validators import parse_slot_value

ACTIVE_STATUSES = (ReservationStatus.RESERVED, ReservationStatus.CONFIRMED)


class MemorySlotStore(SlotStore):
    """Хранилище в памяти одного процесса.

    Проверка и запись для слота выполняются под asyncio.Lock этого слота,
    так что у каждого слота один писатель. Истёкшие холды удаляются при
    каждом чтении.
    """

    def __init__(self) -> None:
        # slot_value -> token -> expires_at (UTC)
        self._holds: dict[str, dict[str, datetime]] = {}
        self._reservations: dict[UUID, ReservationInfo] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(
            asyncio.Lock,
        )

    def _purge(self, now: datetime) -> int:
        now = as_utc(now)
        purged = 0
        for slot_value in list(self._holds):
            tokens = self._holds[slot_value]
            for token, expires_at in list(tokens.items()):
                if expires_at <= now:
                    del tokens[token]
                    purged += 1
            if not tokens:
                del self._holds[slot_value]
        return purged

    def _drop_token(self, token: str, slot_value: Optional[str] = None) -> int:
        dropped = 0
        for value in list(self._holds):
            if slot_value and value != slot_value:
                continue
            if self._holds[value].pop(token, None) is not None:
                dropped += 1
            if not self._holds[value]:
                del self._holds[value]
        return dropped

    def _usage(
        self,
        template: SlotTemplate,
        exclude_token: Optional[str] = None,
    ) -> SlotUsage:
        orders = sum(
            1
            for reservation in self._reservations.values()
            if reservation.status in ACTIVE_STATUSES
            and reservation.delivery_date == template.slot_date
            and reservation.slot_key == template.slot_key
        )
        holds = sum(
            1
            for token in self._holds.get(template.value, {})
            if token != exclude_token
        )
        return SlotUsage(orders=orders, holds=holds)

    def _active_for_order(self, order_id: str) -> Optional[ReservationInfo]:
        return next(
            (
                reservation
                for reservation in reversed(self._reservations.values())
                if reservation.order_id == order_id
                and reservation.status in ACTIVE_STATUSES
            ),
            None,
        )

    async def get_slot_states(
        self,
        templates: list[SlotTemplate],
        now: datetime,
        exclude_token: Optional[str] = None,
    ) -> list[SlotState]:
        self._purge(now)
        return [
            SlotState(
                template=template,
                capacity=template.capacity,
                usage=self._usage(template, exclude_token),
            )
            for template in templates
        ]

    async def get_token_hold(
        self,
        token: str,
        now: datetime,
    ) -> Optional[HoldInfo]:
        self._purge(now)
        for slot_value, tokens in self._holds.items():
            if token in tokens:
                slot_date, slot_key = parse_slot_value(slot_value)
                return HoldInfo(
                    token=token,
                    slot_date=slot_date,
                    slot_key=slot_key,
                    expires_at=tokens[token],
                )
        return None

    async def acquire_hold(
        self,
        token: str,
        template: SlotTemplate,
        now: datetime,
        expires_at: datetime,
    ) -> HoldInfo:
        async with self._locks[template.value]:
            self._purge(now)
            usage = self._usage(template, exclude_token=token)
            if usage.total >= template.capacity:
                logger.warning(
                    f'Слот {template.value} заполнен: '
                    f'{usage.total}/{template.capacity}',
                )
                raise SlotUnavailableError(template.value)
            self._drop_token(token)
            self._holds.setdefault(template.value, {})[token] = as_utc(
                expires_at,
            )
        return HoldInfo(
            token=token,
            slot_date=template.slot_date,
            slot_key=template.slot_key,
            expires_at=as_utc(expires_at),
        )

    async def release_hold(
        self,
        token: str,
        slot_value: Optional[str] = None,
    ) -> bool:
        return self._drop_token(token, slot_value) > 0

    async def commit_reservation(
        self,
        order_id: str,
        template: SlotTemplate,
        zip_code: str,
        token: Optional[str],
        now: datetime,
    ) -> ReservationInfo:
        async with self._locks[template.value]:
            self._purge(now)
            existing = self._active_for_order(order_id)
            if existing is not None and existing.slot_value == template.value:
                if token:
                    self._drop_token(token)
                return existing.model_copy()

            usage = self._usage(template, exclude_token=token)
            if usage.total >= template.capacity:
                logger.warning(
                    f'Слот {template.value} заполнен при привязке '
                    f'заказа {order_id}',
                )
                raise SlotUnavailableError(template.value)

            timestamp = as_utc(now)
            if existing is not None:
                existing.status = ReservationStatus.CANCELLED
                existing.updated_at = timestamp
            reservation = ReservationInfo(
                id=uuid4(),
                order_id=order_id,
                delivery_date=template.slot_date,
                slot_key=template.slot_key,
                zip_code=zip_code,
                status=ReservationStatus.RESERVED,
                token=token,
                created_at=timestamp,
                updated_at=timestamp,
            )
            self._reservations[reservation.id] = reservation
            if token:
                self._drop_token(token)
        return reservation.model_copy()

    async def get_reservation(
        self,
        reservation_id: UUID,
    ) -> Optional[ReservationInfo]:
        reservation = self._reservations.get(reservation_id)
        return reservation.model_copy() if reservation else None

    async def get_reservation_for_order(
        self,
        order_id: str,
    ) -> Optional[ReservationInfo]:
        reservation = self._active_for_order(order_id) or next(
            (
                item
                for item in reversed(self._reservations.values())
                if item.order_id == order_id
            ),
            None,
        )
        return reservation.model_copy() if reservation else None

    async def update_order_reservations(
        self,
        order_id: str,
        from_statuses: Iterable[ReservationStatus],
        to_status: ReservationStatus,
        now: datetime,
    ) -> int:
        from_statuses = tuple(from_statuses)
        changed = 0
        for reservation in self._reservations.values():
            if (
                reservation.order_id == order_id
                and reservation.status in from_statuses
            ):
                reservation.status = to_status
                reservation.updated_at = as_utc(now)
                changed += 1
        return changed

    async def list_reservations(self, limit: int) -> list[ReservationInfo]:
        return [
            reservation.model_copy()
            for reservation in list(reversed(self._reservations.values()))[
                :limit
            ]
        ]

    async def purge_expired_holds(self, now: datetime) -> int:
        return self._purge(now)
