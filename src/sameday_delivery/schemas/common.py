from typing import Optional

from pydantic import BaseModel

from sameday_delivery.utils.enums import ValidationCode


class ErrorResponse(BaseModel):
    """Базовая схема ответа с описанием ошибки."""

    code: int
    detail: str


class ValidationErrorResponse(ErrorResponse):
    """Ответ с ошибкой проверки слота и кодом причины."""

    validation_code: Optional[ValidationCode] = None
