import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from sameday_delivery.core.constants import TOKEN_MAX_LENGTH
from sameday_delivery.core.db import Base


class SlotHold(Base):
    """Таблица временных холдов слота на время оформления заказа."""

    slot_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey('deliveryslot.id', ondelete='CASCADE'),
        index=True,
        nullable=False,
    )
    slot_value: Mapped[str] = mapped_column(String(32), nullable=False)
    token: Mapped[str] = mapped_column(
        String(TOKEN_MAX_LENGTH),
        unique=True,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (
        Index('ix_slot_holds_value_expiry', 'slot_value', 'expires_at'),
    )
