from datetime import date

import pytest

from conftest import OTHER_HEADER, OWNER_HEADER, days_from_today


def _create_vehicle(client, headers=OWNER_HEADER, **overrides):
    body = {'make': 'Toyota', 'model': 'Camry', 'year': 2022, 'dailyRate': 50}
    body.update(overrides)
    response = client.post('/vehicles', json=body, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def _create_customer(client, email='jane@example.com', headers=OWNER_HEADER):
    body = {'firstName': 'Jane', 'lastName': 'Doe', 'email': email, 'phone': '555-0100'}
    response = client.post('/customers', json=body, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def _create_booking(client, vehicle_id, start, end, headers=OWNER_HEADER, **overrides):
    body = {'vehicleId': vehicle_id, 'startDate': start.isoformat(), 'endDate': end.isoformat()}
    body.update(overrides)
    return client.post('/bookings', json=body, headers=headers)


def _vehicle(client, vehicle_id):
    return client.get(f'/vehicles?id={vehicle_id}', headers=OWNER_HEADER).get_json()


def test_health_needs_no_identity(client):
    assert client.get('/health').get_json() == {'ok': True}


@pytest.mark.parametrize('method,path', [
    ('get', '/bookings'), ('post', '/bookings'), ('get', '/customers'), ('get', '/vehicles'),
])
def test_missing_identity_is_401(client, method, path):
    response = getattr(client, method)(path)
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Unauthorized'}


class TestBookings:

    def test_create_booking(self, client):
        vehicle = _create_vehicle(client)
        response = _create_booking(client, vehicle['id'], date(2024, 3, 1), date(2024, 3, 3),
                                   totalAmount=100, pickupLocation='Airport')

        assert response.status_code == 201
        booking = response.get_json()
        assert booking['totalAmount'] == 100
        assert booking['pickupLocation'] == 'Airport'
        assert booking['dropoffLocation'] == 'Not Provided'
        assert _vehicle(client, vehicle['id'])['status'] == 'Rented'

    def test_missing_fields_is_400(self, client):
        response = client.post('/bookings', json={'startDate': '2024-03-01'}, headers=OWNER_HEADER)
        assert response.status_code == 400
        assert 'vehicleId' in response.get_json()['error']

    def test_empty_body_is_400(self, client):
        response = client.post('/bookings', data='not json', headers=OWNER_HEADER)
        assert response.status_code == 400

    def test_end_before_start_is_400(self, client):
        vehicle = _create_vehicle(client)
        response = _create_booking(client, vehicle['id'], date(2024, 3, 3), date(2024, 3, 1))
        assert response.status_code == 400
        assert _vehicle(client, vehicle['id'])['status'] == 'Available'

    def test_unavailable_vehicle_is_400(self, client):
        vehicle = _create_vehicle(client, status='Maintenance')
        response = _create_booking(client, vehicle['id'], date(2024, 3, 1), date(2024, 3, 3))
        assert response.status_code == 400
        assert 'not available' in response.get_json()['error']

    def test_unknown_vehicle_is_404(self, client):
        response = _create_booking(client, 12345, date(2024, 3, 1), date(2024, 3, 3))
        assert response.status_code == 404

    def test_get_single_booking_joins_records(self, client):
        vehicle = _create_vehicle(client)
        customer = _create_customer(client)
        booking = _create_booking(client, vehicle['id'], date(2024, 3, 1), date(2024, 3, 3),
                                  customerId=customer['id']).get_json()

        response = client.get(f"/bookings?id={booking['id']}", headers=OWNER_HEADER)

        data = response.get_json()
        assert data['vehicle']['make'] == 'Toyota'
        assert data['customer']['email'] == 'jane@example.com'

    def test_bookings_are_private_to_their_owner(self, client):
        vehicle = _create_vehicle(client)
        booking = _create_booking(client, vehicle['id'], date(2024, 3, 1), date(2024, 3, 3)).get_json()

        assert client.get('/bookings', headers=OTHER_HEADER).get_json() == []
        response = client.get(f"/bookings?id={booking['id']}", headers=OTHER_HEADER)
        assert response.status_code == 404
        response = client.delete(f"/bookings?id={booking['id']}", headers=OTHER_HEADER)
        assert response.status_code == 404

    def test_notifications(self, client):
        soon = _create_vehicle(client)
        later = _create_vehicle(client, model='Corolla')
        _create_booking(client, soon['id'], days_from_today(1), days_from_today(2))
        _create_booking(client, later['id'], days_from_today(20), days_from_today(22))

        response = client.get('/bookings?notifications=true', headers=OWNER_HEADER)

        assert [b['vehicleId'] for b in response.get_json()] == [soon['id']]

    def test_patch_reprices_and_restats(self, client):
        vehicle = _create_vehicle(client)
        customer = _create_customer(client)
        booking = _create_booking(client, vehicle['id'], date(2024, 3, 1), date(2024, 3, 3),
                                  customerId=customer['id']).get_json()

        response = client.patch('/bookings', json={'id': booking['id'], 'endDate': '2024-03-04'},
                                headers=OWNER_HEADER)

        assert response.status_code == 200
        assert response.get_json()['totalAmount'] == 150
        customers = client.get('/customers', headers=OWNER_HEADER).get_json()
        assert customers[0]['totalSpent'] == 150

    def test_patch_requires_id(self, client):
        response = client.patch('/bookings', json={'endDate': '2024-03-04'}, headers=OWNER_HEADER)
        assert response.status_code == 400

    def test_delete_frees_vehicle_and_restats(self, client):
        vehicle = _create_vehicle(client)
        customer = _create_customer(client)
        booking = _create_booking(client, vehicle['id'], days_from_today(1), days_from_today(3),
                                  customerId=customer['id']).get_json()

        response = client.delete(f"/bookings?id={booking['id']}", headers=OWNER_HEADER)

        assert response.status_code == 200
        assert _vehicle(client, vehicle['id'])['status'] == 'Available'
        customer = client.get(f"/customers?id={customer['id']}", headers=OWNER_HEADER).get_json()
        assert customer['totalBookings'] == 0
        assert customer['totalSpent'] == 0

    def test_delete_requires_id(self, client):
        response = client.delete('/bookings', headers=OWNER_HEADER)
        assert response.status_code == 400


class TestCustomers:

    def test_create_and_list(self, client):
        _create_customer(client)
        customers = client.get('/customers', headers=OWNER_HEADER).get_json()
        assert len(customers) == 1
        assert customers[0]['status'] == 'Active'
        assert customers[0]['totalBookings'] == 0

    def test_duplicate_email_is_400(self, client):
        _create_customer(client)
        body = {'firstName': 'Janet', 'lastName': 'Doe', 'email': 'jane@example.com'}
        response = client.post('/customers', json=body, headers=OWNER_HEADER)
        assert response.status_code == 400

    def test_same_email_allowed_for_another_owner(self, client):
        _create_customer(client)
        _create_customer(client, headers=OTHER_HEADER)

    def test_invalid_email_is_400(self, client):
        body = {'firstName': 'Jane', 'lastName': 'Doe', 'email': 'not-an-email'}
        response = client.post('/customers', json=body, headers=OWNER_HEADER)
        assert response.status_code == 400

    def test_owner_can_mark_inactive(self, client):
        customer = _create_customer(client)
        response = client.patch('/customers', json={'id': customer['id'], 'status': 'Inactive'},
                                headers=OWNER_HEADER)
        assert response.get_json()['status'] == 'Inactive'

    def test_owner_cannot_promote_to_vip(self, client):
        customer = _create_customer(client)
        response = client.patch('/customers', json={'id': customer['id'], 'status': 'VIP'},
                                headers=OWNER_HEADER)
        assert response.status_code == 200
        assert response.get_json()['status'] == 'Active'

    def test_create_as_vip_starts_active(self, client):
        body = {'firstName': 'Jane', 'lastName': 'Doe', 'email': 'jane@example.com',
                'status': 'VIP'}
        response = client.post('/customers', json=body, headers=OWNER_HEADER)
        assert response.get_json()['status'] == 'Active'

    def test_delete_keeps_bookings_as_guest_bookings(self, client):
        vehicle = _create_vehicle(client)
        customer = _create_customer(client)
        booking = _create_booking(client, vehicle['id'], date(2024, 3, 1), date(2024, 3, 3),
                                  customerId=customer['id']).get_json()

        response = client.delete(f"/customers?id={customer['id']}", headers=OWNER_HEADER)

        assert response.status_code == 200
        booking = client.get(f"/bookings?id={booking['id']}", headers=OWNER_HEADER).get_json()
        assert booking['customerId'] is None
        assert booking['tempName'] == 'Jane Doe'
        assert booking['tempEmail'] == 'jane@example.com'

    def test_other_owner_cannot_delete(self, client):
        customer = _create_customer(client)
        response = client.delete(f"/customers?id={customer['id']}", headers=OTHER_HEADER)
        assert response.status_code == 404


class TestVehicles:

    def test_create_defaults_to_available(self, client):
        vehicle = _create_vehicle(client)
        assert vehicle['status'] == 'Available'
        assert vehicle['dailyRate'] == 50

    @pytest.mark.parametrize('overrides', [
        {'year': 1800},
        {'year': date.today().year + 5},
        {'dailyRate': 0},
        {'dailyRate': -10},
        {'status': 'Rented'},
        {'status': 'Parked'},
        {'make': ''},
    ])
    def test_schema_violations_are_400(self, client, overrides):
        body = {'make': 'Toyota', 'model': 'Camry', 'year': 2022, 'dailyRate': 50}
        body.update(overrides)
        response = client.post('/vehicles', json=body, headers=OWNER_HEADER)
        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_maintenance_round_trip(self, client):
        vehicle = _create_vehicle(client)
        response = client.patch('/vehicles', json={'id': vehicle['id'], 'status': 'Maintenance'},
                                headers=OWNER_HEADER)
        assert response.get_json()['status'] == 'Maintenance'
        assert _create_booking(client, vehicle['id'], date(2024, 3, 1), date(2024, 3, 2)).status_code == 400

        client.patch('/vehicles', json={'id': vehicle['id'], 'status': 'Available'}, headers=OWNER_HEADER)
        assert _create_booking(client, vehicle['id'], date(2024, 3, 1), date(2024, 3, 2)).status_code == 201

    def test_rented_vehicle_with_active_booking_stays_rented(self, client):
        vehicle = _create_vehicle(client)
        booked = _create_booking(client, vehicle['id'], days_from_today(0), days_from_today(5))
        assert booked.status_code == 201

        response = client.patch('/vehicles', json={'id': vehicle['id'], 'status': 'Available'},
                                headers=OWNER_HEADER)

        assert response.status_code == 400
        assert _vehicle(client, vehicle['id'])['status'] == 'Rented'
        second = _create_booking(client, vehicle['id'], days_from_today(1), days_from_today(3))
        assert second.status_code == 400

    def test_filter_by_status(self, client):
        _create_vehicle(client)
        _create_vehicle(client, model='Corolla', status='Maintenance')
        vehicles = client.get('/vehicles?status=Maintenance', headers=OWNER_HEADER).get_json()
        assert [v['model'] for v in vehicles] == ['Corolla']

    def test_vehicle_with_bookings_cannot_be_deleted(self, client):
        vehicle = _create_vehicle(client)
        _create_booking(client, vehicle['id'], date(2024, 3, 1), date(2024, 3, 3))
        response = client.delete(f"/vehicles?id={vehicle['id']}", headers=OWNER_HEADER)
        assert response.status_code == 400

    def test_delete_vehicle(self, client):
        vehicle = _create_vehicle(client)
        response = client.delete(f"/vehicles?id={vehicle['id']}", headers=OWNER_HEADER)
        assert response.status_code == 200
        assert client.get('/vehicles', headers=OWNER_HEADER).get_json() == []

    def test_vehicles_are_private(self, client):
        vehicle = _create_vehicle(client)
        response = client.get(f"/vehicles?id={vehicle['id']}", headers=OTHER_HEADER)
        assert response.status_code == 404
        assert client.get('/vehicles', headers=OTHER_HEADER).get_json() == []
