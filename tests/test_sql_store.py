from datetime import date

import pytest

from sameday_delivery.core.exceptions import (
    BackendNotSupportedError,
    SlotUnavailableError,
)
from sameday_delivery.repositories import slot_hold_repository
from sameday_delivery.schemas.slot import SlotUpdate
from sameday_delivery.utils.enums import SlotStatus

ZIP = '10001'
TODAY = date(2024, 6, 1)
MORNING = '10:00-12:00'


async def test_pregenerate_skips_blackout_and_existing_rows(
    sql_service,
    settings_service,
):
    await settings_service.update_settings({'blackout_dates': '2024-06-02'})

    first = await sql_service.pregenerate_slots(days=2)
    second = await sql_service.pregenerate_slots(days=2)

    assert (first.created, first.days) == (10, 2)
    assert second.created == 0
    assert await sql_service.list_slot_rows(date(2024, 6, 2)) == []
    rows = await sql_service.list_slot_rows(TODAY)
    assert [row.slot_key for row in rows] == [
        '10:00-12:00',
        '12:00-14:00',
        '14:00-16:00',
        '16:00-18:00',
        '18:00-20:00',
    ]
    assert all(row.capacity is None for row in rows)
    assert all(row.status == SlotStatus.ACTIVE for row in rows)


async def test_row_capacity_overrides_settings(sql_service):
    await sql_service.pregenerate_slots(days=0)
    row = await sql_service.update_slot_row(
        TODAY,
        MORNING,
        SlotUpdate(capacity=1),
    )

    await sql_service.reserve(TODAY, MORNING, ZIP, 'tok-a')
    with pytest.raises(SlotUnavailableError):
        await sql_service.reserve(TODAY, MORNING, ZIP, 'tok-b')

    assert row.capacity == 1
    report = await sql_service.slot_report(TODAY)
    assert (report[0].capacity, report[0].available) == (1, 0)


async def test_empty_row_capacity_inherits_settings(
    sql_service,
    settings_service,
):
    await sql_service.pregenerate_slots(days=0)
    await sql_service.update_slot_row(TODAY, MORNING, SlotUpdate(capacity=1))
    await sql_service.update_slot_row(
        TODAY,
        MORNING,
        SlotUpdate(capacity=None),
    )
    await settings_service.update_settings({'default_capacity': 6})

    report = await sql_service.slot_report(TODAY)

    assert report[0].capacity == 6


async def test_disabled_row_is_hidden_and_rejects_holds(sql_service):
    await sql_service.pregenerate_slots(days=0)
    await sql_service.update_slot_row(
        TODAY,
        MORNING,
        SlotUpdate(status=SlotStatus.DISABLED),
    )

    slots = await sql_service.get_slots(ZIP)
    with pytest.raises(SlotUnavailableError):
        await sql_service.reserve(TODAY, MORNING, ZIP, 'tok-a')

    assert '2024-06-01|10:00-12:00' not in [o.value for o in slots.slots]
    report = await sql_service.slot_report(TODAY)
    assert report[0].status == SlotStatus.DISABLED
    assert report[0].available == 0


async def test_update_missing_row_returns_none(sql_service):
    assert await sql_service.update_slot_row(
        TODAY,
        MORNING,
        SlotUpdate(capacity=2),
    ) is None
    assert await sql_service.update_slot_row(
        TODAY,
        'morning',
        SlotUpdate(capacity=2),
    ) is None


async def test_deleted_row_is_recreated_on_demand(sql_service):
    await sql_service.reserve(TODAY, MORNING, ZIP, 'tok-a')

    assert await sql_service.delete_slot_row(TODAY, MORNING) is True
    assert await sql_service.delete_slot_row(TODAY, MORNING) is False
    assert await sql_service.get_hold('tok-a') is None

    await sql_service.reserve(TODAY, MORNING, ZIP, 'tok-b')
    rows = await sql_service.list_slot_rows(TODAY)

    assert [row.slot_key for row in rows] == [MORNING]


async def test_reservation_survives_row_changes(sql_service):
    meta = await sql_service.bind_order(
        'order-1',
        '2024-06-01|10:00-12:00',
        ZIP,
    )
    await sql_service.update_slot_row(TODAY, MORNING, SlotUpdate(capacity=3))

    reservation = await sql_service.get_reservation(meta.reservation_id)
    report = await sql_service.slot_report(TODAY)

    assert reservation.order_id == 'order-1'
    assert (report[0].orders, report[0].available) == (1, 2)


@pytest.mark.parametrize(
    'method, args',
    [
        ('pregenerate_slots', ()),
        ('list_slot_rows', (TODAY,)),
        ('update_slot_row', (TODAY, MORNING, SlotUpdate(capacity=1))),
        ('delete_slot_row', (TODAY, MORNING)),
    ],
)
async def test_memory_backend_has_no_slot_rows(memory_service, method, args):
    with pytest.raises(BackendNotSupportedError):
        await getattr(memory_service, method)(*args)


async def test_token_conflict_on_commit_is_unavailable(
    sql_service,
    monkeypatch,
):
    """Гонка двух запросов одного токена завершается отказом, а не 500."""
    await sql_service.reserve(TODAY, MORNING, ZIP, 'tok-a')

    async def keep_holds(session, token, slot_value=None):
        return 0

    monkeypatch.setattr(slot_hold_repository, 'delete_for_token', keep_holds)

    with pytest.raises(SlotUnavailableError):
        await sql_service.reserve(TODAY, '12:00-14:00', ZIP, 'tok-a')

    hold = await sql_service.get_hold('tok-a')
    assert hold.slot_value == '2024-06-01|10:00-12:00'
