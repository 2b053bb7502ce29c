"""
Tests for the JSON HTTP API.
"""

from datetime import date

import pytest
from django.urls import reverse

from equipstock import stock
from equipstock.models import BookingStatus, EquipmentUnit, MovementType, UnitStatus


pytestmark = pytest.mark.django_db

JSON = 'application/json'


@pytest.fixture
def api(client, tenant_id):
    """Django test client sending the X-Tenant header."""
    client.defaults['HTTP_X_TENANT'] = tenant_id
    return client


class TestTenancy:

    def test_missing_tenant(self, client, furadeira):
        response = client.get(reverse('equipstock:alerts'))

        assert response.status_code == 401
        assert response.json() == {'error': 'Não autorizado'}

    def test_other_tenant_equipment_is_not_found(self, client, furadeira):
        url = reverse('equipstock:availability', args=[furadeira.pk])

        response = client.get(url, {'startDate': '2025-01-10', 'endDate': '2025-01-15'},
                              HTTP_X_TENANT='locadora-b')

        assert response.status_code == 404
        assert response.json()['code'] == 'NOT_FOUND'
        assert response.json()['error'] == 'Equipamento não encontrado'

    def test_unconfigured_resolver(self, api, settings):
        from django.core.exceptions import ImproperlyConfigured

        settings.EQUIPSTOCK = {'TENANT_RESOLVER': 'equipstock.tests.resolvers.Missing'}

        with pytest.raises(ImproperlyConfigured):
            api.get(reverse('equipstock:alerts'))


class TestAvailabilityView:

    def test_available(self, api, furadeira, make_booking, jan10, jan15):
        make_booking(jan10, jan15, items=[(furadeira, 3)])
        url = reverse('equipstock:availability', args=[furadeira.pk])

        response = api.get(url, {'startDate': '2025-01-10', 'endDate': '2025-01-15', 'quantity': 5})

        assert response.status_code == 200
        body = response.json()
        assert body['isAvailable'] is True
        assert body['stock']['availableForPeriod'] == 7
        assert body['conflicts'][0]['quantity'] == 3

    def test_missing_dates(self, api, furadeira):
        response = api.get(reverse('equipstock:availability', args=[furadeira.pk]))

        assert response.status_code == 400
        body = response.json()
        assert body['error'] == 'Dados inválidos'
        assert body['details']['startDate'][0]['message'] == 'startDate e endDate são obrigatórios'

    def test_invalid_period(self, api, furadeira):
        url = reverse('equipstock:availability', args=[furadeira.pk])

        response = api.get(url, {'startDate': '2025-01-15', 'endDate': '2025-01-10'})

        assert response.status_code == 400
        assert response.json()['code'] == 'INVALID_PERIOD'

    def test_post_not_allowed(self, api, furadeira):
        response = api.post(reverse('equipstock:availability', args=[furadeira.pk]))
        assert response.status_code == 405


class TestMovementViews:

    def test_create(self, api, furadeira):
        url = reverse('equipstock:movement', args=[furadeira.pk])

        response = api.post(url, {'type': 'MAINTENANCE_OUT', 'quantity': 2, 'reason': 'Revisão'},
                            content_type=JSON)

        assert response.status_code == 201
        body = response.json()
        assert body['movement']['type'] == 'MAINTENANCE_OUT'
        assert body['movement']['previousStock'] == 10
        assert body['movement']['newStock'] == 8
        assert body['equipment']['maintenanceStock'] == 2

    def test_insufficient_stock(self, api, furadeira):
        url = reverse('equipstock:movement', args=[furadeira.pk])

        response = api.post(url, {'type': 'LOSS', 'quantity': 50}, content_type=JSON)

        assert response.status_code == 400
        body = response.json()
        assert body['code'] == 'INSUFFICIENT_STOCK'
        assert body['data']['bucket'] == 'available'
        assert body['data']['available'] == 10
        assert body['data']['requested'] == 50

    def test_zero_quantity(self, api, furadeira):
        url = reverse('equipstock:movement', args=[furadeira.pk])

        response = api.post(url, {'type': 'PURCHASE', 'quantity': 0}, content_type=JSON)

        assert response.status_code == 400
        assert response.json()['details']['quantity'][0]['message'] == 'Quantidade deve ser maior que zero'

    def test_bad_json(self, api, furadeira):
        url = reverse('equipstock:movement', args=[furadeira.pk])

        response = api.post(url, '{not json', content_type=JSON)

        assert response.status_code == 400
        assert response.json()['error'] == 'JSON inválido'

    def test_idempotency_key(self, api, furadeira):
        url = reverse('equipstock:movement', args=[furadeira.pk])
        payload = {'type': 'PURCHASE', 'quantity': 3, 'idempotencyKey': 'nf-9'}

        first = api.post(url, payload, content_type=JSON).json()
        second = api.post(url, payload, content_type=JSON).json()

        assert first['movement']['id'] == second['movement']['id']
        assert second['equipment']['totalStock'] == 13

    def test_actor_recorded(self, api, furadeira, user):
        api.force_login(user)
        url = reverse('equipstock:movement', args=[furadeira.pk])

        body = api.post(url, {'type': 'PURCHASE', 'quantity': 1}, content_type=JSON).json()

        assert body['movement']['userId'] == user.pk

    def test_booking_of_other_tenant(self, api, furadeira, make_booking, jan10, jan15):
        booking = make_booking(jan10, jan15, tenant_id='locadora-b')
        url = reverse('equipstock:movement', args=[furadeira.pk])

        response = api.post(url, {'type': 'RENTAL_OUT', 'quantity': 1, 'bookingId': booking.pk},
                            content_type=JSON)

        assert response.status_code == 404

    def test_history(self, api, furadeira):
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 2)
        url = reverse('equipstock:movement-history', args=[furadeira.pk])

        body = api.get(url, {'limit': 1}).json()

        assert body['equipment']['reservedStock'] == 2
        assert body['pagination'] == {'page': 1, 'limit': 1, 'total': 2, 'totalPages': 2}
        assert body['movements'][0]['type'] == 'RENTAL_OUT'
        assert body['summary']['PURCHASE'] == {'count': 1, 'quantity': 10}


class TestAdjustView:

    def test_adjust(self, api, furadeira):
        url = reverse('equipstock:adjust', args=[furadeira.pk])

        response = api.put(url, {'newTotalStock': 7, 'reason': 'Inventário'}, content_type=JSON)

        assert response.status_code == 200
        body = response.json()
        assert body['message'] == 'Estoque ajustado com sucesso'
        assert body['equipment']['totalStock'] == 7
        assert body['movement']['quantity'] == 3

    def test_no_change(self, api, furadeira):
        url = reverse('equipstock:adjust', args=[furadeira.pk])

        body = api.put(url, {'newTotalStock': 10, 'reason': 'Conferência'}, content_type=JSON).json()

        assert body['message'] == 'Nenhuma alteração necessária'
        assert body['movement'] is None

    def test_below_floor(self, api, furadeira):
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 4)
        url = reverse('equipstock:adjust', args=[furadeira.pk])

        response = api.put(url, {'newTotalStock': 3, 'reason': 'Inventário'}, content_type=JSON)

        assert response.status_code == 400
        body = response.json()
        assert body['code'] == 'BELOW_FLOOR'
        assert body['error'] == 'Não é possível reduzir o estoque para 3. Mínimo necessário: 4'

    def test_reason_required(self, api, furadeira):
        url = reverse('equipstock:adjust', args=[furadeira.pk])

        response = api.put(url, {'newTotalStock': 3}, content_type=JSON)

        assert response.status_code == 400
        assert response.json()['details']['reason'][0]['message'] == 'Motivo do ajuste é obrigatório'


class TestUnitViews:

    def test_create_and_list(self, api, gerador):
        url = reverse('equipstock:units', args=[gerador.pk])

        response = api.post(url, {'serialNumber': 'GER-100', 'acquisitionCost': '3200.50'},
                            content_type=JSON)

        assert response.status_code == 201
        assert response.json()['serialNumber'] == 'GER-100'
        assert response.json()['acquisitionCost'] == '3200.50'

        listing = api.get(url).json()
        assert listing['stats']['total'] == 1
        assert listing['stats']['available'] == 1

    def test_duplicate_serial(self, api, gerador, gerador_units):
        url = reverse('equipstock:units', args=[gerador.pk])

        response = api.post(url, {'serialNumber': 'GER-001'}, content_type=JSON)

        assert response.status_code == 400
        assert response.json()['code'] == 'DUPLICATE_SERIAL_NUMBER'

    def test_detail_with_rentals(self, api, gerador, gerador_units, make_booking, next_week):
        item = make_booking(*next_week, items=[(gerador, 1)]).items.get()
        unit = gerador_units[0]
        stock.deliver_unit(item, unit)

        body = api.get(reverse('equipstock:unit-detail', args=[gerador.pk, unit.pk])).json()

        assert body['status'] == 'RENTED'
        assert body['equipment'] == {'id': gerador.pk, 'name': 'Gerador 5kVA'}
        assert body['rentals'][0]['bookingId'] == item.booking_id
        assert body['rentals'][0]['returnedAt'] is None

    def test_update_status(self, api, gerador, gerador_units):
        unit = gerador_units[0]
        url = reverse('equipstock:unit-detail', args=[gerador.pk, unit.pk])

        response = api.put(url, {'status': 'MAINTENANCE', 'notes': 'Vazamento'}, content_type=JSON)

        assert response.status_code == 200
        assert response.json()['status'] == 'MAINTENANCE'
        unit.refresh_from_db()
        assert unit.serial_number == 'GER-001'
        gerador.refresh_from_db()
        assert gerador.maintenance_stock == 1

    def test_delete_rented_unit(self, api, gerador, gerador_units, make_booking, next_week):
        item = make_booking(*next_week, items=[(gerador, 1)]).items.get()
        unit = gerador_units[0]
        stock.deliver_unit(item, unit)

        response = api.delete(reverse('equipstock:unit-detail', args=[gerador.pk, unit.pk]))

        assert response.status_code == 400
        assert response.json()['code'] == 'UNIT_IN_USE'

    def test_delete(self, api, gerador, gerador_units):
        unit = gerador_units[0]

        response = api.delete(reverse('equipstock:unit-detail', args=[gerador.pk, unit.pk]))

        assert response.json() == {'success': True}
        assert not EquipmentUnit.objects.filter(pk=unit.pk).exists()

    def test_unit_of_other_equipment(self, api, furadeira, gerador_units):
        url = reverse('equipstock:unit-detail', args=[furadeira.pk, gerador_units[0].pk])

        assert api.get(url).status_code == 404


class TestTenantWideViews:

    def test_alerts(self, api, furadeira, andaime):
        body = api.get(reverse('equipstock:alerts')).json()

        assert body['summary']['outOfStockCount'] == 1
        assert body['alerts'][0]['equipment']['name'] == 'Andaime Tubular'

    def test_low_stock(self, api, andaime):
        body = api.get(reverse('equipstock:low-stock')).json()

        assert body['stats']['outOfStock'] == 1

    def test_overview(self, api, furadeira, andaime):
        body = api.get(reverse('equipstock:overview'), {'lowStock': 'true'}).json()

        assert [e['name'] for e in body['equipments']] == ['Andaime Tubular']
        assert body['stats']['totalEquipments'] == 2

    def test_stock_detail(self, api, furadeira, make_booking, jan10, jan15):
        booking = make_booking(jan10, jan15, items=[(furadeira, 2)])
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 2, booking=booking)

        response = api.get(reverse('equipstock:stock-detail', args=[furadeira.pk]))

        assert response.status_code == 200
        body = response.json()
        assert body['equipment']['reservedStock'] == 2
        assert body['metrics']['utilizationRate'] == 20.0
        assert body['activeReservations'][0]['booking']['bookingNumber'] == booking.booking_number
        assert len(body['recentMovements']) == 2

    def test_stock_detail_other_tenant(self, client, furadeira):
        response = client.get(
            reverse('equipstock:stock-detail', args=[furadeira.pk]),
            HTTP_X_TENANT='locadora-b',
        )

        assert response.status_code == 404


class TestBookingViews:

    def test_reschedule(self, api, furadeira, make_booking, jan10, jan15):
        booking = make_booking(jan10, jan15, items=[(furadeira, 2)])
        url = reverse('equipstock:reschedule', args=[booking.pk])

        response = api.patch(url, {'startDate': '2025-02-01', 'endDate': '2025-02-04'}, content_type=JSON)

        assert response.status_code == 200
        assert response.json()['booking']['startDate'] == '2025-02-01'

    def test_reschedule_conflict(self, api, furadeira, make_booking, jan10, jan15):
        make_booking(jan10, jan15, items=[(furadeira, 9)])
        booking = make_booking(date(2025, 3, 1), date(2025, 3, 2), items=[(furadeira, 2)])
        url = reverse('equipstock:reschedule', args=[booking.pk])

        response = api.patch(url, {'startDate': '2025-01-12', 'endDate': '2025-01-13'}, content_type=JSON)

        assert response.status_code == 409
        body = response.json()
        assert body['code'] == 'CONFLICTING_RESERVATION'
        assert body['data']['conflicts'][0]['availableForPeriod'] == 1

    def test_return(self, api, furadeira, make_booking, jan10, jan15):
        booking = make_booking(jan10, jan15, items=[(furadeira, 2)])
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 2, booking=booking)
        item = booking.items.get()
        url = reverse('equipstock:return', args=[booking.pk])

        response = api.post(url, {
            'items': [{'bookingItemId': item.pk, 'returnedQty': 1, 'damagedQty': 1, 'damageNotes': 'Cabo'}],
            'notes': 'Ok',
        }, content_type=JSON)

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['allReturned'] is True
        assert body['status'] == BookingStatus.COMPLETED

    def test_return_without_items(self, api, furadeira, make_booking, jan10, jan15):
        booking = make_booking(jan10, jan15, items=[(furadeira, 2)])

        response = api.post(reverse('equipstock:return', args=[booking.pk]), {}, content_type=JSON)

        assert response.status_code == 400
        assert 'items' in response.json()['details']

    def test_return_negative_quantity(self, api, furadeira, make_booking, jan10, jan15):
        booking = make_booking(jan10, jan15, items=[(furadeira, 2)])
        item = booking.items.get()

        response = api.post(reverse('equipstock:return', args=[booking.pk]), {
            'items': [{'bookingItemId': item.pk, 'returnedQty': -1, 'damagedQty': 0}],
        }, content_type=JSON)

        assert response.status_code == 400
        assert 'items.0' in response.json()['details']

    def test_return_status(self, api, furadeira, make_booking, jan10, jan15):
        booking = make_booking(jan10, jan15, items=[(furadeira, 2)])
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 2, booking=booking)
        stock.return_booking(booking, [(booking.items.get(), 1, 0)])

        response = api.get(reverse('equipstock:return', args=[booking.pk]))

        assert response.status_code == 200
        body = response.json()
        assert body['items'][0]['pendingQty'] == 1
        assert body['summary']['totalReturned'] == 1
        assert body['summary']['allComplete'] is False

    def test_return_status_other_tenant(self, client, furadeira, make_booking, jan10, jan15):
        booking = make_booking(jan10, jan15, items=[(furadeira, 2)])

        response = client.get(reverse('equipstock:return', args=[booking.pk]), HTTP_X_TENANT='locadora-b')

        assert response.status_code == 404
        assert response.json()['error'] == 'Reserva não encontrada'


class TestUnitStatusRoundTrip:

    def test_unit_status_flow(self, api, gerador, gerador_units):
        unit = gerador_units[1]
        url = reverse('equipstock:unit-detail', args=[gerador.pk, unit.pk])

        api.put(url, {'status': UnitStatus.DAMAGED}, content_type=JSON)
        api.put(url, {'status': UnitStatus.AVAILABLE}, content_type=JSON)

        gerador.refresh_from_db()
        assert gerador.snapshot() == stock.recount_units(gerador)
        assert gerador.available_stock == 3
