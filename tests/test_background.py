from datetime import date

from celery_app.main import celery_app
from celery_app.tasks import pregenerate_slots_task, purge_expired_holds_task
from sameday_delivery.core.init_settings import create_settings_if_not_exist


def test_beat_schedule_has_slot_jobs():
    schedule = celery_app.conf.beat_schedule

    assert schedule['pregenerate-delivery-slots']['task'] == (
        'pregenerate-delivery-slots'
    )
    assert schedule['purge-expired-holds']['task'] == 'purge-expired-holds'


def test_jobs_skip_memory_backend():
    assert pregenerate_slots_task() == 0
    assert purge_expired_holds_task() == 0


async def test_startup_creates_defaults_once(memory_service):
    store = memory_service.settings_service.store

    await create_settings_if_not_exist(memory_service)
    saved = await store.load()
    await memory_service.update_settings({'default_capacity': 9})
    await create_settings_if_not_exist(memory_service)

    assert saved['default_capacity'] == 4
    assert (await store.load())['default_capacity'] == 9


async def test_startup_pregenerates_sql_rows(sql_service):
    await create_settings_if_not_exist(sql_service)

    rows = await sql_service.list_slot_rows(date(2024, 6, 1))
    last_day = await sql_service.list_slot_rows(date(2024, 7, 1))

    assert len(rows) == 5
    assert len(last_day) == 5
