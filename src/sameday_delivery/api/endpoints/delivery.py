from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from loguru import logger

from sameday_delivery.core.dependencies import DeliveryServiceDep
from sameday_delivery.core.exceptions import SlotValidationError
from sameday_delivery.schemas.common import (
    ErrorResponse,
    ValidationErrorResponse,
)
from sameday_delivery.schemas.delivery import ZipCheckRequest, ZipCheckResult
from sameday_delivery.schemas.reservation import (
    HoldInfo,
    HoldReleaseResult,
    HoldValidateRequest,
    ReserveRequest,
    ReserveResult,
)
from sameday_delivery.schemas.slot import SlotListInfo
from sameday_delivery.utils.http import build_error
from sameday_delivery.utils.logging_decorator import event_logger

router = APIRouter(prefix='/delivery', tags=['Доставка'])


def _internal_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=build_error(message, status.HTTP_500_INTERNAL_SERVER_ERROR),
    )


@router.post(
    '/check-zip',
    response_model=ZipCheckResult,
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def check_zip(
    zip_data: ZipCheckRequest,
    service: DeliveryServiceDep,
) -> ZipCheckResult:
    """Проверяет, доставляет ли магазин на ZIP.

    Returns:
        ZipCheckResult: признак зоны доставки и ближайшая дата со слотами

    """
    try:
        return await service.check_zip(zip_data.zip)
    except Exception as e:
        logger.error(f'Ошибка при проверке ZIP {zip_data.zip}: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')


@router.get(
    '/slots',
    response_model=SlotListInfo,
    responses={
        status.HTTP_400_BAD_REQUEST: {'model': ValidationErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def get_slots(
    service: DeliveryServiceDep,
    zip: Optional[str] = Query(None, description='ZIP покупателя'),
    slot_date: Optional[date] = Query(
        None,
        alias='date',
        description='Дата доставки, по умолчанию ближайшая доступная',
    ),
    token: Optional[str] = Query(
        None,
        description='Токен оформления, его холд не уменьшает свободные места',
    ),
) -> SlotListInfo:
    """Получает свободные слоты для выбора в форме оформления заказа.

    Без даты возвращает ближайший день, где есть свободные слоты.

    Raises:
        HTTPException: 400 если ZIP не указан или не обслуживается

    """
    try:
        return await service.get_slots(zip, slot_date, token)
    except SlotValidationError:
        raise
    except Exception as e:
        logger.error(f'Ошибка при получении слотов: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')


@router.post(
    '/reserve',
    response_model=ReserveResult,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_400_BAD_REQUEST: {'model': ValidationErrorResponse},
        status.HTTP_409_CONFLICT: {'model': ValidationErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
@event_logger('Создан', 'SlotHold')
async def reserve_slot(
    reserve_data: ReserveRequest,
    service: DeliveryServiceDep,
) -> ReserveResult:
    """Временно закрепляет слот за токеном оформления.

    Если токен не передан, выдаёт новый. Холд живёт двадцать минут.

    Raises:
        HTTPException: 400 если ZIP или слот не прошли проверку
        HTTPException: 409 если в слоте не осталось мест

    """
    try:
        return await service.reserve(
            reserve_data.date,
            reserve_data.slot_key,
            reserve_data.zip,
            reserve_data.token,
        )
    except SlotValidationError:
        raise
    except Exception as e:
        logger.error(f'Неожиданная ошибка при закреплении слота: {str(e)}')
        raise _internal_error(
            'Внутренняя ошибка сервера при закреплении слота',
        )


@router.post(
    '/holds/validate',
    response_model=HoldInfo,
    responses={
        status.HTTP_400_BAD_REQUEST: {'model': ValidationErrorResponse},
        status.HTTP_409_CONFLICT: {'model': ValidationErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
@event_logger('Обновлён', 'SlotHold')
async def validate_hold(
    hold_data: HoldValidateRequest,
    service: DeliveryServiceDep,
) -> HoldInfo:
    """Проверяет поле delivery_timeslot формы и продлевает холд.

    При ошибке прежний холд токена снимается.
    """
    try:
        return await service.validate_hold(
            hold_data.zip,
            hold_data.delivery_timeslot,
            hold_data.token,
        )
    except SlotValidationError:
        raise
    except Exception as e:
        logger.error(f'Ошибка при проверке выбора слота: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')


@router.get(
    '/holds/{token}',
    response_model=HoldInfo,
    responses={
        status.HTTP_404_NOT_FOUND: {'model': ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def get_hold(token: str, service: DeliveryServiceDep) -> HoldInfo:
    """Получает действующий холд токена."""
    try:
        hold = await service.get_hold(token)
    except Exception as e:
        logger.error(f'Ошибка при получении холда: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')
    if hold is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=build_error(
                'Холд не найден или истёк',
                status.HTTP_404_NOT_FOUND,
            ),
        )
    return hold


@router.delete(
    '/holds/{token}',
    response_model=HoldReleaseResult,
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def release_hold(
    token: str,
    service: DeliveryServiceDep,
) -> HoldReleaseResult:
    """Снимает холд токена. Повторный вызов безопасен."""
    try:
        released = await service.release_hold(token)
    except Exception as e:
        logger.error(f'Ошибка при снятии холда: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')
    return HoldReleaseResult(token=token, released=released)
