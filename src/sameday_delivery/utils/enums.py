from enum import Enum


class UserRole(str, Enum):
    """Enum класс для ролей в токене администратора магазина."""

    ADMIN = 'ADMIN'
    MANAGER = 'MANAGER'


class StorageBackend(str, Enum):
    """Хранилище слотов, холдов и резерваций."""

    SQL = 'sql'
    MEMORY = 'memory'


class ReservationStatus(str, Enum):
    """Enum класс для статусов резерваций слотов."""

    RESERVED = 'reserved'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'


class SlotStatus(str, Enum):
    """Enum класс для статусов строк таблицы слотов."""

    ACTIVE = 'active'
    DISABLED = 'disabled'


class OrderStatus(str, Enum):
    """Статусы заказа магазина, на которые реагирует движок."""

    PENDING = 'pending'
    PROCESSING = 'processing'
    ON_HOLD = 'on-hold'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    REFUNDED = 'refunded'
    FAILED = 'failed'


class ValidationCode(str, Enum):
    """Коды ошибок проверки слота, которые видит покупатель."""

    NO_ZIP = 'no_zip'
    INVALID_ZIP = 'invalid_zip'
    MISSING_SLOT = 'missing_slot'
    INVALID_SLOT = 'invalid_slot'
    UNAVAILABLE_SLOT = 'unavailable_slot'
    NO_AVAILABILITY = 'no_availability'


class DisplayView(str, Enum):
    """Экраны, на которых показывается окно доставки заказа."""

    ADMIN = 'admin'
    EMAIL = 'email'
    EMAIL_PLAIN = 'email_plain'
    THANK_YOU = 'thank_you'
