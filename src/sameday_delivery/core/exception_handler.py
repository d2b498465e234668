from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from sameday_delivery.core.exceptions import (
    SlotUnavailableError,
    SlotValidationError,
)
from sameday_delivery.utils.http import build_error


def _format_error(code: int, detail: Any) -> dict[str, Any]:
    """Форматирует сообщение об ошибке в единый вид."""
    if isinstance(detail, dict):
        detail_code = detail.get('code', code)
        detail_str = detail.get('detail') or detail.get('message')
        error = {
            'code': detail_code,
            'detail': str(detail_str) if detail_str else str(detail),
        }
        if detail.get('validation_code'):
            error['validation_code'] = detail['validation_code']
        return error
    if isinstance(detail, list):
        detail = '; '.join(str(item) for item in detail)
    return {'code': code, 'detail': str(detail) if detail else ''}


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Перехватывает ошибки валидации и возвращает понятные сообщения."""
    messages = [
        error['msg'].replace('Value error, ', '') for error in exc.errors()
    ]
    message = '; '.join(messages) if messages else 'Ошибка валидации данных'
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=_format_error(status.HTTP_422_UNPROCESSABLE_CONTENT, message),
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Унифицирует формат ответа для HTTP исключений."""
    content = _format_error(exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=content)


async def slot_validation_exception_handler(
    request: Request,
    exc: SlotValidationError,
) -> JSONResponse:
    """Ошибки выбора слота: 409 для занятого слота, иначе 400."""
    code = (
        status.HTTP_409_CONFLICT
        if isinstance(exc, SlotUnavailableError)
        else status.HTTP_400_BAD_REQUEST
    )
    logger.warning(
        f'Выбор слота отклонён ({exc.code.value}): {request.url.path}',
    )
    return JSONResponse(
        status_code=code,
        content=build_error(exc.message, code, exc.code),
    )
