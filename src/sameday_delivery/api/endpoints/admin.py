from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from sameday_delivery.core.auth import role_checker
from sameday_delivery.core.constants import RESERVATIONS_REPORT_LIMIT
from sameday_delivery.core.dependencies import DeliveryServiceDep
from sameday_delivery.core.exceptions import BackendNotSupportedError
from sameday_delivery.schemas.auth import TokenPayload
from sameday_delivery.schemas.common import ErrorResponse
from sameday_delivery.schemas.reservation import (
    HoldPurgeResult,
    ReservationInfo,
)
from sameday_delivery.schemas.settings import SettingsInfo, SettingsUpdate
from sameday_delivery.schemas.slot import (
    SlotGenerateResult,
    SlotReportItem,
    SlotRowInfo,
    SlotUpdate,
)
from sameday_delivery.utils.enums import UserRole
from sameday_delivery.utils.http import build_error
from sameday_delivery.utils.logging_decorator import event_logger

router = APIRouter(prefix='/admin', tags=['Администрирование доставки'])

AdminDep = Annotated[TokenPayload, Depends(role_checker([UserRole.ADMIN]))]


def _internal_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=build_error(message, status.HTTP_500_INTERNAL_SERVER_ERROR),
    )


def _not_supported(error: BackendNotSupportedError) -> HTTPException:
    logger.warning(str(error))
    return HTTPException(
        status_code=status.HTTP_501_NOT_IMPLEMENTED,
        detail=build_error(str(error), status.HTTP_501_NOT_IMPLEMENTED),
    )


def _slot_not_found(slot_date: date, slot_key: str) -> HTTPException:
    logger.warning(f'Строка слота {slot_date} {slot_key} не найдена')
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=build_error(
            'Строка слота не найдена',
            status.HTTP_404_NOT_FOUND,
        ),
    )


@router.get(
    '/settings',
    response_model=SettingsInfo,
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def get_settings(
    service: DeliveryServiceDep,
    current_admin: AdminDep,
) -> SettingsInfo:
    """Получает текущие настройки доставки."""
    try:
        return await service.get_settings()
    except Exception as e:
        logger.error(f'Ошибка при получении настроек: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')


@router.patch(
    '/settings',
    response_model=SettingsInfo,
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
@event_logger('Обновлена', 'DeliverySettings')
async def update_settings(
    settings_data: SettingsUpdate,
    service: DeliveryServiceDep,
    current_admin: AdminDep,
) -> SettingsInfo:
    """Обновляет настройки доставки.

    Некорректные значения не приводят к ошибке: поле сохраняет
    последнее корректное значение.

    Args:
        settings_data: Изменённые поля формы настроек
        service: Сервис доставки
        current_admin: Данные токена администратора
    Returns:
        SettingsInfo: Очищенные настройки после сохранения

    """
    try:
        return await service.update_settings(
            settings_data.model_dump(exclude_unset=True),
        )
    except Exception as e:
        logger.error(f'Ошибка при обновлении настроек: {str(e)}')
        raise _internal_error(
            'Внутренняя ошибка сервера при обновлении настроек',
        )


@router.get(
    '/reservations',
    response_model=list[ReservationInfo],
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def get_reservations(
    service: DeliveryServiceDep,
    current_admin: AdminDep,
    limit: int = Query(
        RESERVATIONS_REPORT_LIMIT,
        ge=1,
        le=RESERVATIONS_REPORT_LIMIT,
        description='Сколько последних резерваций показать',
    ),
) -> list[ReservationInfo]:
    """Получает последние резервации для отчёта."""
    try:
        return await service.list_reservations(limit)
    except Exception as e:
        logger.error(f'Ошибка при получении резерваций: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')


@router.get(
    '/slots',
    response_model=list[SlotReportItem],
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def get_slot_report(
    service: DeliveryServiceDep,
    current_admin: AdminDep,
    slot_date: date = Query(..., alias='date', description='Дата доставки'),
) -> list[SlotReportItem]:
    """Отчёт по слотам даты: вместимость, заказы, холды и остаток."""
    try:
        return await service.slot_report(slot_date)
    except Exception as e:
        logger.error(f'Ошибка при построении отчёта по слотам: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')


@router.get(
    '/slots/rows',
    response_model=list[SlotRowInfo],
    responses={
        status.HTTP_501_NOT_IMPLEMENTED: {'model': ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def get_slot_rows(
    service: DeliveryServiceDep,
    current_admin: AdminDep,
    slot_date: date = Query(..., alias='date', description='Дата доставки'),
) -> list[SlotRowInfo]:
    """Строки таблицы слотов на дату."""
    try:
        return await service.list_slot_rows(slot_date)
    except BackendNotSupportedError as e:
        raise _not_supported(e)
    except Exception as e:
        logger.error(f'Ошибка при получении строк слотов: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')


@router.post(
    '/slots/generate',
    response_model=SlotGenerateResult,
    responses={
        status.HTTP_501_NOT_IMPLEMENTED: {'model': ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def generate_slots(
    service: DeliveryServiceDep,
    current_admin: AdminDep,
    days: Optional[int] = Query(
        None,
        ge=0,
        description='Горизонт догенерации в днях',
    ),
) -> SlotGenerateResult:
    """Догенерирует недостающие строки слотов."""
    try:
        return await service.pregenerate_slots(days)
    except BackendNotSupportedError as e:
        raise _not_supported(e)
    except Exception as e:
        logger.error(f'Ошибка при догенерации слотов: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')


@router.patch(
    '/slots/{slot_date}/{slot_key}',
    response_model=SlotRowInfo,
    responses={
        status.HTTP_404_NOT_FOUND: {'model': ErrorResponse},
        status.HTTP_501_NOT_IMPLEMENTED: {'model': ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
@event_logger('Обновлена', 'DeliverySlot')
async def update_slot(
    slot_date: date,
    slot_key: str,
    slot_data: SlotUpdate,
    service: DeliveryServiceDep,
    current_admin: AdminDep,
) -> SlotRowInfo:
    """Меняет вместимость или статус строки слота.

    Пустая вместимость возвращает слоту вместимость из настроек,
    статус disabled убирает слот из выдачи.
    """
    try:
        row = await service.update_slot_row(slot_date, slot_key, slot_data)
    except BackendNotSupportedError as e:
        raise _not_supported(e)
    except Exception as e:
        logger.error(f'Ошибка при обновлении строки слота: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')
    if row is None:
        raise _slot_not_found(slot_date, slot_key)
    return row


@router.delete(
    '/slots/{slot_date}/{slot_key}',
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        status.HTTP_404_NOT_FOUND: {'model': ErrorResponse},
        status.HTTP_501_NOT_IMPLEMENTED: {'model': ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def delete_slot(
    slot_date: date,
    slot_key: str,
    service: DeliveryServiceDep,
    current_admin: AdminDep,
) -> None:
    """Удаляет строку слота вместе с её холдами."""
    try:
        deleted = await service.delete_slot_row(slot_date, slot_key)
    except BackendNotSupportedError as e:
        raise _not_supported(e)
    except Exception as e:
        logger.error(f'Ошибка при удалении строки слота: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')
    if not deleted:
        raise _slot_not_found(slot_date, slot_key)


@router.post(
    '/holds/purge',
    response_model=HoldPurgeResult,
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def purge_holds(
    service: DeliveryServiceDep,
    current_admin: AdminDep,
) -> HoldPurgeResult:
    """Удаляет истёкшие холды."""
    try:
        return HoldPurgeResult(purged=await service.purge_expired_holds())
    except Exception as e:
        logger.error(f'Ошибка при очистке холдов: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')
