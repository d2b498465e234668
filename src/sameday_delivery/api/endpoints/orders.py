from fastapi import APIRouter, HTTPException, Query, status
from loguru import logger

from sameday_delivery.core.dependencies import DeliveryServiceDep
from sameday_delivery.core.exceptions import SlotValidationError
from sameday_delivery.schemas.common import (
    ErrorResponse,
    ValidationErrorResponse,
)
from sameday_delivery.schemas.reservation import (
    CheckoutCompleteRequest,
    HoldReleaseResult,
    OrderBindRequest,
    OrderDeliveryMeta,
    OrderDisplayInfo,
    OrderStatusChange,
    OrderStatusResult,
    ReservationInfo,
)
from sameday_delivery.services.order_display import render_for_view
from sameday_delivery.services.send_email_service import NotificationService
from sameday_delivery.utils.enums import DisplayView
from sameday_delivery.utils.http import build_error
from sameday_delivery.utils.logging_decorator import event_logger

router = APIRouter(prefix='/orders', tags=['Заказы'])


def _not_found(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=build_error(message, status.HTTP_404_NOT_FOUND),
    )


def _internal_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=build_error(message, status.HTTP_500_INTERNAL_SERVER_ERROR),
    )


@router.post(
    '/checkout-complete',
    response_model=HoldReleaseResult,
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def checkout_complete(
    checkout_data: CheckoutCompleteRequest,
    service: DeliveryServiceDep,
) -> HoldReleaseResult:
    """Очищает состояние оформления после показа страницы заказа."""
    try:
        released = await service.complete_checkout(checkout_data.token)
    except Exception as e:
        logger.error(f'Ошибка при завершении оформления: {str(e)}')
        raise _internal_error('Внутренняя ошибка сервера')
    return HoldReleaseResult(token=checkout_data.token, released=released)


@router.post(
    '/{order_id}/delivery-slot',
    response_model=OrderDeliveryMeta,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_400_BAD_REQUEST: {'model': ValidationErrorResponse},
        status.HTTP_409_CONFLICT: {'model': ValidationErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
@event_logger('Создана', 'Reservation')
async def bind_delivery_slot(
    order_id: str,
    bind_data: OrderBindRequest,
    service: DeliveryServiceDep,
) -> OrderDeliveryMeta:
    """Привязывает выбранный слот к созданному заказу.

    Args:
        order_id: Идентификатор заказа магазина
        bind_data: Значение поля delivery_timeslot, ZIP и токен оформления
        service: Сервис доставки
    Returns:
        OrderDeliveryMeta: Метаданные доставки для сохранения в заказе
    Raises:
        HTTPException: 400 если значение слота некорректно
        HTTPException: 409 если место в слоте уже занято

    """
    try:
        meta = await service.bind_order(
            order_id,
            bind_data.delivery_timeslot,
            bind_data.zip,
            bind_data.token,
        )
    except SlotValidationError:
        raise
    except Exception as e:
        logger.error(
            f'Неожиданная ошибка при привязке слота к заказу {order_id}: '
            f'{str(e)}',
        )
        raise _internal_error(
            'Внутренняя ошибка сервера при привязке слота',
        )
    if bind_data.customer_email:
        try:
            NotificationService.send_delivery_confirmation(
                meta,
                bind_data.customer_email,
            )
        except Exception as e:
            logger.error(f'Ошибка отправки уведомления: {str(e)}')
    return meta


@router.post(
    '/{order_id}/status',
    response_model=OrderStatusResult,
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
@event_logger('Обновлена', 'Reservation')
async def change_order_status(
    order_id: str,
    status_data: OrderStatusChange,
    service: DeliveryServiceDep,
) -> OrderStatusResult:
    """Подтверждает или отменяет резервацию по новому статусу заказа."""
    try:
        return await service.change_order_status(
            order_id,
            status_data.new_status,
            status_data.old_status,
        )
    except Exception as e:
        logger.error(
            f'Ошибка при смене статуса заказа {order_id}: {str(e)}',
        )
        raise _internal_error('Внутренняя ошибка сервера')


@router.get(
    '/{order_id}/reservation',
    response_model=ReservationInfo,
    responses={
        status.HTTP_404_NOT_FOUND: {'model': ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def get_order_reservation(
    order_id: str,
    service: DeliveryServiceDep,
) -> ReservationInfo:
    """Получает последнюю резервацию заказа."""
    try:
        reservation = await service.get_order_reservation(order_id)
    except Exception as e:
        logger.error(
            f'Ошибка при получении резервации заказа {order_id}: {str(e)}',
        )
        raise _internal_error('Внутренняя ошибка сервера')
    if reservation is None:
        logger.warning(f'Резервация заказа {order_id} не найдена')
        raise _not_found('Резервация заказа не найдена')
    return reservation


@router.get(
    '/{order_id}/delivery-display',
    response_model=OrderDisplayInfo,
    responses={
        status.HTTP_404_NOT_FOUND: {'model': ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {'model': ErrorResponse},
    },
)
async def get_delivery_display(
    order_id: str,
    service: DeliveryServiceDep,
    view: DisplayView = Query(
        DisplayView.THANK_YOU,
        description='Экран, для которого отрисовать окно доставки',
    ),
) -> OrderDisplayInfo:
    """Отрисовывает окно доставки заказа для админки, письма или страницы."""
    try:
        meta = await service.get_order_meta(order_id)
    except Exception as e:
        logger.error(
            f'Ошибка при получении доставки заказа {order_id}: {str(e)}',
        )
        raise _internal_error('Внутренняя ошибка сервера')
    if meta is None:
        raise _not_found('Доставка к заказу не привязана')
    return OrderDisplayInfo(
        order_id=order_id,
        view=view,
        content=render_for_view(
            meta.model_dump(by_alias=True, mode='json'),
            view,
        ),
    )
