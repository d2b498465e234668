from sameday_delivery.core.constants import (
    MESSAGE_INVALID_SLOT,
    MESSAGE_INVALID_ZIP,
    MESSAGE_MISSING_SLOT,
    MESSAGE_NO_AVAILABILITY,
    MESSAGE_NO_ZIP,
    MESSAGE_UNAVAILABLE_SLOT,
)
from sameday_delivery.utils.enums import ValidationCode

MESSAGES = {
    ValidationCode.NO_ZIP: MESSAGE_NO_ZIP,
    ValidationCode.INVALID_ZIP: MESSAGE_INVALID_ZIP,
    ValidationCode.MISSING_SLOT: MESSAGE_MISSING_SLOT,
    ValidationCode.INVALID_SLOT: MESSAGE_INVALID_SLOT,
    ValidationCode.UNAVAILABLE_SLOT: MESSAGE_UNAVAILABLE_SLOT,
    ValidationCode.NO_AVAILABILITY: MESSAGE_NO_AVAILABILITY,
}


class SlotValidationError(ValueError):
    """Ошибка проверки выбора слота, сообщение показывается покупателю."""

    def __init__(self, code: ValidationCode, message: str | None = None):
        """Сохраняет код ошибки и текст для покупателя."""
        self.code = code
        self.message = message or MESSAGES[code]
        super().__init__(self.message)


class SlotUnavailableError(SlotValidationError):
    """Слот заполнен к моменту попытки занять его."""

    def __init__(self, slot_value: str = ''):
        """Слот, который не удалось занять."""
        self.slot_value = slot_value
        super().__init__(ValidationCode.UNAVAILABLE_SLOT)


class BackendNotSupportedError(RuntimeError):
    """Операция недоступна для выбранного хранилища слотов."""
