from datetime import date

import pytest

from sameday_delivery.core.exceptions import (
    SlotUnavailableError,
    SlotValidationError,
)
from sameday_delivery.utils.clock import as_utc
from sameday_delivery.utils.enums import (
    OrderStatus,
    ReservationStatus,
    ValidationCode,
)

ZIP = '10001'
TODAY = date(2024, 6, 1)
MORNING = '10:00-12:00'
MORNING_VALUE = '2024-06-01|10:00-12:00'
NOON_VALUE = '2024-06-01|12:00-14:00'
EVENING_VALUE = '2024-06-01|18:00-20:00'


@pytest.mark.parametrize(
    'zip_code, slot_value, code',
    [
        (None, None, ValidationCode.NO_ZIP),
        ('90210', MORNING_VALUE, ValidationCode.INVALID_ZIP),
        (ZIP, None, ValidationCode.MISSING_SLOT),
        (ZIP, '   ', ValidationCode.MISSING_SLOT),
        (ZIP, 'tomorrow morning', ValidationCode.INVALID_SLOT),
        (ZIP, '2024-06-01|10:00-11:00', ValidationCode.INVALID_SLOT),
        (ZIP, '2024-05-31|10:00-12:00', ValidationCode.UNAVAILABLE_SLOT),
    ],
)
async def test_validate_hold_error_codes(service, zip_code, slot_value, code):
    with pytest.raises(SlotValidationError) as exc_info:
        await service.validate_hold(zip_code, slot_value, 'tok-a')

    assert exc_info.value.code == code
    assert exc_info.value.message


async def test_failed_validation_releases_previous_hold(service):
    await service.reserve(TODAY, MORNING, ZIP, 'tok-a')

    with pytest.raises(SlotValidationError):
        await service.validate_hold(ZIP, 'not-a-slot', 'tok-a')

    assert await service.get_hold('tok-a') is None


async def test_validate_hold_on_blackout_date(service, settings_service):
    await settings_service.update_settings({'blackout_dates': '2024-06-01'})

    with pytest.raises(SlotValidationError) as exc_info:
        await service.validate_hold(ZIP, MORNING_VALUE, 'tok-a')

    assert exc_info.value.code == ValidationCode.UNAVAILABLE_SLOT


async def test_validate_hold_places_hold(service):
    hold = await service.validate_hold(ZIP, MORNING_VALUE, 'tok-a')

    assert hold.slot_value == MORNING_VALUE
    assert (await service.get_hold('tok-a')).slot_value == MORNING_VALUE


async def test_bind_returns_order_meta(service):
    await service.reserve(TODAY, MORNING, ZIP, 'tok-a')

    meta = await service.bind_order('order-1', MORNING_VALUE, ZIP, 'tok-a')

    assert meta.order_id == 'order-1'
    assert meta.slot_value == MORNING_VALUE
    assert meta.delivery_date == TODAY
    assert meta.slot_key == MORNING
    assert meta.display == (
        'Saturday, June 1, 2024 between 10:00 AM - 12:00 PM'
    )
    assert meta.zip_code == ZIP
    assert await service.get_hold('tok-a') is None
    reservation = await service.get_order_reservation('order-1')
    assert reservation.status == ReservationStatus.RESERVED
    assert reservation.id == meta.reservation_id
    report = await service.slot_report(TODAY)
    assert (report[0].orders, report[0].holds) == (1, 0)


async def test_bind_uses_own_hold_for_last_spot(service, settings_service):
    """Холд покупателя превращается в заказ, чужой заказ не проходит."""
    await settings_service.update_settings({'default_capacity': 1})
    await service.reserve(TODAY, MORNING, ZIP, 'tok-a')

    meta = await service.bind_order('order-1', MORNING_VALUE, ZIP, 'tok-a')
    with pytest.raises(SlotUnavailableError):
        await service.bind_order('order-2', MORNING_VALUE, ZIP, 'tok-b')

    assert meta.order_id == 'order-1'
    assert await service.get_order_reservation('order-2') is None


async def test_bind_blocked_by_foreign_hold(service, settings_service):
    await settings_service.update_settings({'default_capacity': 1})
    await service.reserve(TODAY, MORNING, ZIP, 'tok-a')

    with pytest.raises(SlotUnavailableError):
        await service.bind_order('order-2', MORNING_VALUE, ZIP)


async def test_repeated_bind_is_idempotent(service):
    first = await service.bind_order('order-1', MORNING_VALUE, ZIP)
    second = await service.bind_order('order-1', MORNING_VALUE, ZIP)

    assert first.reservation_id == second.reservation_id
    report = await service.slot_report(TODAY)
    assert report[0].orders == 1


async def test_rebind_moves_order_to_new_slot(service):
    first = await service.bind_order('order-1', MORNING_VALUE, ZIP)
    second = await service.bind_order('order-1', NOON_VALUE, ZIP)

    old = await service.get_reservation(first.reservation_id)
    current = await service.get_order_reservation('order-1')
    report = {item.slot_key: item for item in await service.slot_report(TODAY)}

    assert old.status == ReservationStatus.CANCELLED
    assert current.id == second.reservation_id
    assert current.status == ReservationStatus.RESERVED
    assert report[MORNING].orders == 0
    assert report['12:00-14:00'].orders == 1


async def test_rebind_to_full_slot_keeps_old_reservation(
    service,
    settings_service,
):
    await settings_service.update_settings(
        {'slot_capacities': {'12:00-14:00': 1}},
    )
    await service.bind_order('order-2', NOON_VALUE, ZIP)
    first = await service.bind_order('order-1', MORNING_VALUE, ZIP)

    with pytest.raises(SlotUnavailableError):
        await service.bind_order('order-1', NOON_VALUE, ZIP)

    current = await service.get_order_reservation('order-1')
    assert current.id == first.reservation_id
    assert current.status == ReservationStatus.RESERVED


@pytest.mark.parametrize(
    'slot_value, code',
    [
        ('', ValidationCode.INVALID_SLOT),
        ('2024-06-01 10:00-12:00', ValidationCode.INVALID_SLOT),
        ('2024-06-01|09:00-11:00', ValidationCode.INVALID_SLOT),
    ],
)
async def test_bind_rejects_bad_slot_value(service, slot_value, code):
    with pytest.raises(SlotValidationError) as exc_info:
        await service.bind_order('order-1', slot_value, ZIP)

    assert exc_info.value.code == code


async def test_bind_rejects_blackout_date(service, settings_service):
    await settings_service.update_settings({'blackout_dates': '2024-06-01'})

    with pytest.raises(SlotValidationError) as exc_info:
        await service.bind_order('order-1', MORNING_VALUE, ZIP)

    assert exc_info.value.code == ValidationCode.UNAVAILABLE_SLOT


@pytest.mark.parametrize(
    'zip_code, code',
    [
        (None, ValidationCode.NO_ZIP),
        ('', ValidationCode.NO_ZIP),
        ('99999', ValidationCode.INVALID_ZIP),
    ],
)
async def test_bind_checks_zip(service, zip_code, code):
    with pytest.raises(SlotValidationError) as exc_info:
        await service.bind_order('order-x', MORNING_VALUE, zip_code)

    assert exc_info.value.code == code
    assert await service.get_order_reservation('order-x') is None


@pytest.mark.parametrize(
    'slot_value',
    ['2020-01-01|10:00-12:00', '2024-06-20|10:00-12:00'],
)
async def test_bind_rejects_closed_date(service, slot_value):
    with pytest.raises(SlotValidationError) as exc_info:
        await service.bind_order('order-x', slot_value, ZIP)

    assert exc_info.value.code == ValidationCode.UNAVAILABLE_SLOT
    assert await service.get_order_reservation('order-x') is None


async def test_bind_after_cutoff_needs_own_hold(service, clock):
    """Холд, взятый до cut-off, остаётся в силе после него."""
    clock.set(2024, 6, 1, 13, 50)
    await service.validate_hold(ZIP, EVENING_VALUE, 'tok-a')
    clock.set(2024, 6, 1, 14, 5)

    meta = await service.bind_order('order-1', EVENING_VALUE, ZIP, 'tok-a')
    with pytest.raises(SlotValidationError) as exc_info:
        await service.bind_order('order-2', EVENING_VALUE, ZIP)

    assert meta.slot_value == EVENING_VALUE
    assert exc_info.value.code == ValidationCode.UNAVAILABLE_SLOT


async def test_repeated_bind_after_cutoff(service, clock):
    clock.set(2024, 6, 1, 13, 50)
    first = await service.bind_order('order-1', EVENING_VALUE, ZIP)
    clock.set(2024, 6, 1, 14, 5)

    second = await service.bind_order('order-1', EVENING_VALUE, ZIP)
    with pytest.raises(SlotValidationError):
        await service.bind_order('order-1', '2024-06-01|16:00-18:00', ZIP)

    assert second.reservation_id == first.reservation_id
    current = await service.get_order_reservation('order-1')
    assert current.slot_value == EVENING_VALUE


@pytest.mark.parametrize(
    'new_status',
    [OrderStatus.CANCELLED, OrderStatus.REFUNDED, OrderStatus.FAILED],
)
async def test_terminal_status_frees_capacity(service, new_status):
    await service.bind_order('order-1', MORNING_VALUE, ZIP)

    result = await service.change_order_status(
        'order-1',
        new_status,
        OrderStatus.PENDING,
    )
    repeated = await service.change_order_status('order-1', new_status)

    assert result.changed == 1
    assert result.reservation_status == ReservationStatus.CANCELLED
    assert repeated.changed == 0
    assert repeated.reservation_status == ReservationStatus.CANCELLED
    report = await service.slot_report(TODAY)
    assert report[0].orders == 0
    assert report[0].available == 4


async def test_cancelled_order_returns_spot_to_listing(service, clock):
    """Отмена заказа 4 июля возвращает место в слот 14:00-16:00."""
    clock.set(2024, 7, 4, 8, 0)
    slot_value = '2024-07-04|14:00-16:00'
    await service.bind_order('order-1', slot_value, ZIP)

    before = await service.get_slots(ZIP)
    await service.change_order_status('order-1', OrderStatus.CANCELLED)
    after = await service.get_slots(ZIP)

    def available(slot_list):
        return next(
            option.available
            for option in slot_list.slots
            if option.value == slot_value
        )

    assert available(before) == 3
    assert available(after) == 4


async def test_processing_confirms_reservation(service):
    await service.bind_order('order-1', MORNING_VALUE, ZIP)

    confirmed = await service.change_order_status(
        'order-1',
        OrderStatus.PROCESSING,
    )
    cancelled = await service.change_order_status(
        'order-1',
        OrderStatus.CANCELLED,
    )

    assert confirmed.reservation_status == ReservationStatus.CONFIRMED
    assert cancelled.changed == 1
    assert cancelled.reservation_status == ReservationStatus.CANCELLED


async def test_other_status_changes_nothing(service):
    await service.bind_order('order-1', MORNING_VALUE, ZIP)

    result = await service.change_order_status('order-1', OrderStatus.ON_HOLD)

    assert result.changed == 0
    assert result.reservation_status == ReservationStatus.RESERVED


async def test_status_change_for_unknown_order(service):
    result = await service.change_order_status(
        'missing',
        OrderStatus.CANCELLED,
    )

    assert result.changed == 0
    assert result.reservation_status is None


async def test_complete_checkout_releases_hold(service):
    await service.reserve(TODAY, MORNING, ZIP, 'tok-a')

    assert await service.complete_checkout('tok-a') is True
    assert await service.complete_checkout('tok-a') is False
    assert await service.get_hold('tok-a') is None


async def test_order_meta_for_bound_and_unknown_orders(service):
    await service.bind_order('order-1', MORNING_VALUE, ZIP)

    meta = await service.get_order_meta('order-1')

    assert meta.slot_value == MORNING_VALUE
    assert await service.get_order_meta('missing') is None


async def test_list_reservations(service):
    await service.bind_order('order-1', MORNING_VALUE, ZIP)
    await service.bind_order('order-2', NOON_VALUE, ZIP)

    reservations = await service.list_reservations()

    assert {r.order_id for r in reservations} == {'order-1', 'order-2'}
    assert len(await service.list_reservations(1)) == 1


async def test_status_change_stamps_clock_time(service, clock):
    meta = await service.bind_order('order-1', MORNING_VALUE, ZIP)
    clock.advance(minutes=5)

    await service.change_order_status('order-1', OrderStatus.CANCELLED)

    reservation = await service.get_reservation(meta.reservation_id)
    assert as_utc(reservation.updated_at) == as_utc(clock.now())
