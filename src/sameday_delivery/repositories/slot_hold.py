from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sameday_delivery.models import SlotHold
from sameday_delivery.repositories.base import CRUDBase
from sameday_delivery.schemas.reservation import HoldInfo


class SlotHoldRepository(CRUDBase[SlotHold, HoldInfo, HoldInfo]):
    """Репозиторий для холдов слотов.

    Все методы принимают момент времени в UTC, commit делает вызывающий.
    """

    def __init__(self) -> None:
        """Инициализация репозитория холдов."""
        super().__init__(SlotHold)

    async def count_active(
        self,
        session: AsyncSession,
        slot_value: str,
        now: datetime,
        exclude_token: Optional[str] = None,
    ) -> int:
        """Считает неистёкшие холды слота, кроме холда exclude_token."""
        stmt = select(func.count(SlotHold.id)).where(
            SlotHold.slot_value == slot_value,
            SlotHold.expires_at > now,
        )
        if exclude_token:
            stmt = stmt.where(SlotHold.token != exclude_token)
        return (await session.execute(stmt)).scalar_one()

    async def get_active_for_token(
        self,
        session: AsyncSession,
        token: str,
        now: datetime,
    ) -> Optional[SlotHold]:
        """Получает неистёкший холд токена."""
        return await self.get(session, SlotHold.expires_at > now, token=token)

    async def delete_for_token(
        self,
        session: AsyncSession,
        token: str,
        slot_value: Optional[str] = None,
    ) -> int:
        """Удаляет холд токена, при slot_value только на этот слот."""
        stmt = delete(SlotHold).where(SlotHold.token == token)
        if slot_value:
            stmt = stmt.where(SlotHold.slot_value == slot_value)
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def delete_for_slot(
        self,
        session: AsyncSession,
        slot_id: UUID,
    ) -> int:
        """Удаляет все холды строки слота."""
        result = await session.execute(
            delete(SlotHold).where(SlotHold.slot_id == slot_id),
        )
        return result.rowcount or 0

    async def delete_expired(
        self,
        session: AsyncSession,
        now: datetime,
        slot_id: Optional[UUID] = None,
    ) -> int:
        """Удаляет истёкшие холды, всех слотов или одного."""
        stmt = delete(SlotHold).where(SlotHold.expires_at <= now)
        if slot_id is not None:
            stmt = stmt.where(SlotHold.slot_id == slot_id)
        result = await session.execute(stmt)
        return result.rowcount or 0


slot_hold_repository = SlotHoldRepository()
