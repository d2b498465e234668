from typing import Any, Optional

from sameday_delivery.utils.enums import ValidationCode


def build_error(
    detail: Any,
    code: int,
    validation_code: Optional[ValidationCode] = None,
) -> dict[str, Any]:
    """Формирует унифицированный ответ об ошибке для API."""
    error = {'code': code, 'detail': str(detail) if detail is not None else ''}
    if validation_code is not None:
        error['validation_code'] = validation_code.value
    return error
