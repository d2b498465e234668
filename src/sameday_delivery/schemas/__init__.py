"""Модуль схем Pydantic для валидации и сериализации данных.

Содержит схемы для всех сущностей доставки:
- Настройки доставки (Settings)
- Слоты и их занятость (Slot)
- Холды и резервации (Reservation)
- Проверка ZIP (Delivery)
- Токен администратора (Auth)
"""

from .auth import TokenPayload
from .common import ErrorResponse, ValidationErrorResponse
from .delivery import ZipCheckRequest, ZipCheckResult
from .reservation import (
    CheckoutCompleteRequest,
    HoldInfo,
    HoldPurgeResult,
    HoldReleaseResult,
    HoldValidateRequest,
    OrderBindRequest,
    OrderDeliveryMeta,
    OrderDisplayInfo,
    OrderStatusChange,
    OrderStatusResult,
    ReservationInfo,
    ReserveRequest,
    ReserveResult,
)
from .settings import SettingsInfo, SettingsUpdate
from .slot import (
    SlotGenerateResult,
    SlotListInfo,
    SlotOption,
    SlotReportItem,
    SlotRowInfo,
    SlotState,
    SlotTemplate,
    SlotUpdate,
    SlotUsage,
)

__all__ = [
    'TokenPayload',
    'ErrorResponse',
    'ValidationErrorResponse',
    'ZipCheckRequest',
    'ZipCheckResult',
    'CheckoutCompleteRequest',
    'HoldInfo',
    'HoldPurgeResult',
    'HoldReleaseResult',
    'HoldValidateRequest',
    'OrderBindRequest',
    'OrderDeliveryMeta',
    'OrderDisplayInfo',
    'OrderStatusChange',
    'OrderStatusResult',
    'ReservationInfo',
    'ReserveRequest',
    'ReserveResult',
    'SettingsInfo',
    'SettingsUpdate',
    'SlotGenerateResult',
    'SlotListInfo',
    'SlotOption',
    'SlotReportItem',
    'SlotRowInfo',
    'SlotState',
    'SlotTemplate',
    'SlotUpdate',
    'SlotUsage',
]
