import pytest
from fastapi import HTTPException, status
from loguru import logger

from sameday_delivery.schemas.reservation import OrderBindRequest
from sameday_delivery.utils.logging_decorator import event_logger


@pytest.fixture
def records():
    captured = []
    handler_id = logger.add(captured.append, format='{message}')
    yield captured
    logger.remove(handler_id)


def bind_request() -> OrderBindRequest:
    return OrderBindRequest(
        delivery_timeslot='2024-06-01|10:00-12:00',
        zip='10001',
        token='tok-a',
    )


async def test_success_logs_payload_with_token(records):
    @event_logger('Создана', 'Reservation')
    async def bind(order_id, bind_data):
        return 'meta'

    result = await bind(order_id='order-1', bind_data=bind_request())

    assert result == 'meta'
    record = records[-1].record
    assert record['level'].name == 'INFO'
    assert record['extra']['checkout_token'] == 'tok-a'
    assert '"Reservation" для заказа order-1' in record['message']
    assert '2024-06-01|10:00-12:00' in record['message']


async def test_rejection_is_warning_and_reraised(records):
    @event_logger('Создан', 'SlotHold')
    async def reserve(reserve_data):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT)

    with pytest.raises(HTTPException):
        await reserve(reserve_data=bind_request())

    record = records[-1].record
    assert record['level'].name == 'WARNING'
    assert '409' in record['message']


async def test_unexpected_error_is_logged_as_error(records):
    @event_logger('Обновлена', 'DeliverySettings')
    async def update():
        raise RuntimeError('db is down')

    with pytest.raises(RuntimeError):
        await update()

    assert records[-1].record['level'].name == 'ERROR'
    assert records[-1].record['extra']['checkout_token'] == '-'
