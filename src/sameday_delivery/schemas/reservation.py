import datetime as dt
from datetime import date, datetime
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.types import StringConstraints

from sameday_delivery.core.constants import (
    META_DATE,
    META_DISPLAY,
    META_SLOT,
    META_SLOT_KEY,
    META_ZIP,
    TOKEN_MAX_LENGTH,
)
from sameday_delivery.utils.enums import (
    DisplayView,
    OrderStatus,
    ReservationStatus,
)
from sameday_delivery.utils.validators import build_slot_value, validate_email

TokenConstraint = StringConstraints(
    strip_whitespace=True,
    min_length=1,
    max_length=TOKEN_MAX_LENGTH,
)


class HoldInfo(BaseModel):
    """Активный холд токена на слот."""

    token: str
    slot_date: date
    slot_key: str
    expires_at: datetime

    @property
    def slot_value(self) -> str:
        return build_slot_value(self.slot_date, self.slot_key)


class ReservationInfo(BaseModel):
    """Резервация слота под заказ."""

    id: UUID
    order_id: Optional[str] = None
    delivery_date: date
    slot_key: str
    zip_code: str
    status: ReservationStatus
    token: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def slot_value(self) -> str:
        return build_slot_value(self.delivery_date, self.slot_key)


class ReserveRequest(BaseModel):
    """Запрос на временное закрепление слота."""

    date: dt.date
    slot_key: str
    zip: str
    token: Optional[Annotated[str, TokenConstraint]] = None


class ReserveResult(BaseModel):
    """Результат закрепления слота за токеном."""

    success: bool
    token: str
    hold_id: str
    slot_value: str
    expires_at: datetime
    message: str


class HoldValidateRequest(BaseModel):
    """Поле выбора слота из формы оформления заказа."""

    zip: Optional[str] = None
    delivery_timeslot: Optional[str] = None
    token: Annotated[str, TokenConstraint]


class OrderBindRequest(BaseModel):
    """Привязка выбранного слота к созданному заказу."""

    delivery_timeslot: str
    zip: Optional[str] = None
    token: Optional[Annotated[str, TokenConstraint]] = None
    customer_email: Optional[str] = None

    @field_validator('customer_email', mode='before')
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        """Пустой email заменяется на None."""
        return validate_email(value)


class OrderDeliveryMeta(BaseModel):
    """Метаданные доставки, которые сохраняются в заказе."""

    order_id: str
    reservation_id: UUID
    slot_value: str = Field(serialization_alias=META_SLOT_KEY)
    delivery_date: date = Field(serialization_alias=META_DATE)
    slot_key: str = Field(serialization_alias=META_SLOT)
    display: str = Field(serialization_alias=META_DISPLAY)
    zip_code: str = Field(serialization_alias=META_ZIP)


class OrderStatusChange(BaseModel):
    """Уведомление о смене статуса заказа."""

    new_status: OrderStatus
    old_status: Optional[OrderStatus] = None


class OrderStatusResult(BaseModel):
    """Результат обработки смены статуса заказа."""

    order_id: str
    status: OrderStatus
    changed: int
    reservation_status: Optional[ReservationStatus] = None


class CheckoutCompleteRequest(BaseModel):
    """Завершение оформления, очищает состояние токена."""

    token: Annotated[str, TokenConstraint]


class HoldReleaseResult(BaseModel):
    """Результат снятия холда токена."""

    token: str
    released: bool


class HoldPurgeResult(BaseModel):
    """Результат очистки истёкших холдов."""

    purged: int


class OrderDisplayInfo(BaseModel):
    """Окно доставки заказа, отрисованное для одного из экранов."""

    order_id: str
    view: DisplayView
    content: str
