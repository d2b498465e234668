from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from sameday_delivery.core.db import Base


class DeliverySettings(Base):
    """Таблица настроек доставки, которые редактирует администратор."""

    key: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
