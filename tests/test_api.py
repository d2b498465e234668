import pytest
from fastapi import status

from sameday_delivery.core.auth import create_access_token
from sameday_delivery.services import send_email_service
from sameday_delivery.services.send_email_service import NotificationService
from sameday_delivery.utils.enums import UserRole

ZIP = '10001'
MORNING_VALUE = '2024-06-01|10:00-12:00'


def auth_headers(role: UserRole = UserRole.ADMIN) -> dict[str, str]:
    return {'Authorization': f'Bearer {create_access_token("shop", role)}'}


@pytest.fixture
def sent_emails(monkeypatch):
    sent = []

    def fake_send(meta, email):
        sent.append((meta.order_id, email))

    monkeypatch.setattr(
        NotificationService,
        'send_delivery_confirmation',
        fake_send,
    )
    return sent


async def test_check_zip(client):
    response = await client.post(
        '/delivery/check-zip',
        json={'zip': '10001-1234'},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        'valid': True,
        'zip': '10001',
        'next_available_date': '2024-06-01',
        'message': None,
    }


async def test_check_zip_outside_area(client):
    response = await client.post('/delivery/check-zip', json={'zip': '90210'})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()['valid'] is False
    assert response.json()['message']


async def test_get_slots(client):
    response = await client.get('/delivery/slots', params={'zip': ZIP})

    data = response.json()
    assert response.status_code == status.HTTP_200_OK
    assert data['date'] == '2024-06-01'
    assert data['slots'][0] == {
        'value': MORNING_VALUE,
        'label': '10:00 AM - 12:00 PM (4 spots left)',
        'available': 4,
    }


async def test_get_slots_for_date(client):
    response = await client.get(
        '/delivery/slots',
        params={'date': '2024-06-02'},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()['date_label'] == 'Tomorrow (June 2, 2024)'


@pytest.mark.parametrize(
    'params, validation_code',
    [({}, 'no_zip'), ({'zip': '90210'}, 'invalid_zip')],
)
async def test_get_slots_requires_zip(client, params, validation_code):
    response = await client.get('/delivery/slots', params=params)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()['validation_code'] == validation_code


async def test_reserve_and_read_hold(client):
    response = await client.post(
        '/delivery/reserve',
        json={'date': '2024-06-01', 'slot_key': '10:00-12:00', 'zip': ZIP},
    )
    data = response.json()

    assert response.status_code == status.HTTP_201_CREATED
    assert data['success'] is True
    assert data['slot_value'] == MORNING_VALUE
    assert data['message'] == 'Slot reserved successfully.'

    hold = await client.get(f'/delivery/holds/{data["token"]}')
    assert hold.status_code == status.HTTP_200_OK
    assert hold.json()['slot_key'] == '10:00-12:00'


async def test_reserve_full_slot_conflict(client, settings_service):
    await settings_service.update_settings({'default_capacity': 1})
    payload = {'date': '2024-06-01', 'slot_key': '10:00-12:00', 'zip': ZIP}

    first = await client.post(
        '/delivery/reserve',
        json={**payload, 'token': 'tok-a'},
    )
    second = await client.post(
        '/delivery/reserve',
        json={**payload, 'token': 'tok-b'},
    )

    assert first.status_code == status.HTTP_201_CREATED
    assert second.status_code == status.HTTP_409_CONFLICT
    assert second.json() == {
        'code': status.HTTP_409_CONFLICT,
        'detail': (
            'The selected delivery slot is no longer available. '
            'Please pick another slot.'
        ),
        'validation_code': 'unavailable_slot',
    }


async def test_reserve_invalid_slot_key(client):
    response = await client.post(
        '/delivery/reserve',
        json={'date': '2024-06-01', 'slot_key': '9-11', 'zip': ZIP},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()['validation_code'] == 'invalid_slot'


async def test_reserve_malformed_body(client):
    response = await client.post(
        '/delivery/reserve',
        json={'date': 'soon', 'slot_key': '10:00-12:00', 'zip': ZIP},
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


async def test_validate_hold_missing_slot(client):
    response = await client.post(
        '/delivery/holds/validate',
        json={'zip': ZIP, 'delivery_timeslot': '', 'token': 'tok-a'},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()['validation_code'] == 'missing_slot'


async def test_release_hold(client):
    await client.post(
        '/delivery/holds/validate',
        json={
            'zip': ZIP,
            'delivery_timeslot': MORNING_VALUE,
            'token': 'tok-a',
        },
    )

    released = await client.delete('/delivery/holds/tok-a')
    missing = await client.get('/delivery/holds/tok-a')

    assert released.json() == {'token': 'tok-a', 'released': True}
    assert missing.status_code == status.HTTP_404_NOT_FOUND


async def test_bind_order_flow(client, sent_emails):
    await client.post(
        '/delivery/reserve',
        json={
            'date': '2024-06-01',
            'slot_key': '10:00-12:00',
            'zip': ZIP,
            'token': 'tok-a',
        },
    )

    response = await client.post(
        '/orders/order-1/delivery-slot',
        json={
            'delivery_timeslot': MORNING_VALUE,
            'zip': ZIP,
            'token': 'tok-a',
            'customer_email': 'buyer@example.com',
        },
    )
    data = response.json()

    assert response.status_code == status.HTTP_201_CREATED
    assert data['_delivery_slot_key'] == MORNING_VALUE
    assert data['_delivery_date'] == '2024-06-01'
    assert data['_delivery_slot'] == '10:00-12:00'
    assert data['_delivery_display'] == (
        'Saturday, June 1, 2024 between 10:00 AM - 12:00 PM'
    )
    assert data['_delivery_zip'] == ZIP
    assert sent_emails == [('order-1', 'buyer@example.com')]

    reservation = await client.get('/orders/order-1/reservation')
    assert reservation.json()['status'] == 'reserved'


async def test_bind_without_email_sends_nothing(client, sent_emails):
    response = await client.post(
        '/orders/order-1/delivery-slot',
        json={'delivery_timeslot': MORNING_VALUE, 'zip': ZIP},
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert sent_emails == []


async def test_bind_survives_notification_failure(client, monkeypatch):
    def broken_send(meta, email):
        raise RuntimeError('broker is down')

    monkeypatch.setattr(
        NotificationService,
        'send_delivery_confirmation',
        broken_send,
    )

    response = await client.post(
        '/orders/order-1/delivery-slot',
        json={
            'delivery_timeslot': MORNING_VALUE,
            'zip': ZIP,
            'customer_email': 'buyer@example.com',
        },
    )

    assert response.status_code == status.HTTP_201_CREATED


async def test_bind_rejects_bad_email(client):
    response = await client.post(
        '/orders/order-1/delivery-slot',
        json={
            'delivery_timeslot': MORNING_VALUE,
            'customer_email': 'not-an-email',
        },
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


async def test_bind_invalid_slot(client):
    response = await client.post(
        '/orders/order-1/delivery-slot',
        json={'delivery_timeslot': 'garbage', 'zip': ZIP},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()['validation_code'] == 'invalid_slot'


async def test_bind_outside_delivery_area(client):
    response = await client.post(
        '/orders/order-x/delivery-slot',
        json={'delivery_timeslot': '2020-01-01|10:00-12:00', 'zip': '99999'},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()['validation_code'] == 'invalid_zip'


async def test_order_status_cancel(client):
    await client.post(
        '/orders/order-1/delivery-slot',
        json={'delivery_timeslot': MORNING_VALUE, 'zip': ZIP},
    )

    response = await client.post(
        '/orders/order-1/status',
        json={'new_status': 'refunded', 'old_status': 'processing'},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        'order_id': 'order-1',
        'status': 'refunded',
        'changed': 1,
        'reservation_status': 'cancelled',
    }


async def test_unknown_order_reservation(client):
    response = await client.get('/orders/missing/reservation')

    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.parametrize(
    'view, expected',
    [
        (
            'admin',
            '<p><strong>Same-day Delivery:</strong> '
            'Saturday, June 1, 2024 between 10:00 AM - 12:00 PM</p>',
        ),
        (
            'email_plain',
            '\nDelivery Window: '
            'Saturday, June 1, 2024 between 10:00 AM - 12:00 PM\n',
        ),
    ],
)
async def test_delivery_display(client, view, expected):
    await client.post(
        '/orders/order-1/delivery-slot',
        json={'delivery_timeslot': MORNING_VALUE, 'zip': ZIP},
    )

    response = await client.get(
        '/orders/order-1/delivery-display',
        params={'view': view},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        'order_id': 'order-1',
        'view': view,
        'content': expected,
    }


async def test_delivery_display_unknown_order(client):
    response = await client.get('/orders/missing/delivery-display')

    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_checkout_complete(client):
    await client.post(
        '/delivery/holds/validate',
        json={
            'zip': ZIP,
            'delivery_timeslot': MORNING_VALUE,
            'token': 'tok-a',
        },
    )

    response = await client.post(
        '/orders/checkout-complete',
        json={'token': 'tok-a'},
    )

    assert response.json() == {'token': 'tok-a', 'released': True}


async def test_admin_requires_token(client):
    response = await client.get('/admin/settings')

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


async def test_admin_rejects_bad_token(client):
    response = await client.get(
        '/admin/settings',
        headers={'Authorization': 'Bearer broken'},
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


async def test_admin_requires_admin_role(client):
    response = await client.get(
        '/admin/settings',
        headers=auth_headers(UserRole.MANAGER),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_admin_updates_settings(client):
    response = await client.patch(
        '/admin/settings',
        headers=auth_headers(),
        json={'default_capacity': 2, 'cutoff_time': 'late'},
    )

    data = response.json()
    assert response.status_code == status.HTTP_200_OK
    assert data['default_capacity'] == 2
    assert data['cutoff_time'].startswith('14:00')

    slots = await client.get('/delivery/slots', params={'zip': ZIP})
    assert slots.json()['slots'][0]['available'] == 2


async def test_admin_reports(client):
    await client.post(
        '/orders/order-1/delivery-slot',
        json={'delivery_timeslot': MORNING_VALUE, 'zip': ZIP},
    )

    reservations = await client.get(
        '/admin/reservations',
        headers=auth_headers(),
    )
    report = await client.get(
        '/admin/slots',
        headers=auth_headers(),
        params={'date': '2024-06-01'},
    )

    assert [r['order_id'] for r in reservations.json()] == ['order-1']
    assert report.json()[0]['orders'] == 1
    assert report.json()[0]['available'] == 3


async def test_admin_purges_holds(client, clock):
    await client.post(
        '/delivery/holds/validate',
        json={
            'zip': ZIP,
            'delivery_timeslot': MORNING_VALUE,
            'token': 'tok-a',
        },
    )
    clock.advance(minutes=25)

    response = await client.post('/admin/holds/purge', headers=auth_headers())

    assert response.json() == {'purged': 1}


async def test_admin_slot_rows(sql_client):
    generated = await sql_client.post(
        '/admin/slots/generate',
        headers=auth_headers(),
        params={'days': 0},
    )
    updated = await sql_client.patch(
        '/admin/slots/2024-06-01/10:00-12:00',
        headers=auth_headers(),
        json={'capacity': 1},
    )
    rows = await sql_client.get(
        '/admin/slots/rows',
        headers=auth_headers(),
        params={'date': '2024-06-01'},
    )
    deleted = await sql_client.delete(
        '/admin/slots/2024-06-01/10:00-12:00',
        headers=auth_headers(),
    )
    missing = await sql_client.delete(
        '/admin/slots/2024-06-01/10:00-12:00',
        headers=auth_headers(),
    )

    assert generated.json() == {'created': 5, 'days': 0}
    assert updated.json()['capacity'] == 1
    assert len(rows.json()) == 5
    assert deleted.status_code == status.HTTP_204_NO_CONTENT
    assert missing.status_code == status.HTTP_404_NOT_FOUND


async def test_admin_slot_rows_need_sql_backend(memory_client):
    response = await memory_client.get(
        '/admin/slots/rows',
        headers=auth_headers(),
        params={'date': '2024-06-01'},
    )

    assert response.status_code == status.HTTP_501_NOT_IMPLEMENTED


async def test_confirmation_email_text(monkeypatch, memory_service):
    queued = []
    monkeypatch.setattr(
        send_email_service,
        'send_notification_task',
        lambda **kwargs: queued.append(kwargs),
    )
    meta = await memory_service.bind_order('order-7', MORNING_VALUE, ZIP)

    NotificationService.send_delivery_confirmation(meta, 'buyer@example.com')

    [task] = queued
    assert task['emails'] == ['buyer@example.com']
    assert task['subject'] == 'Your delivery window'
    assert 'order #order-7' in task['text']
    assert (
        'Delivery Window: Saturday, June 1, 2024 between '
        '10:00 AM - 12:00 PM'
    ) in task['text']
