"""
Tests for read-only stock queries.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from equipstock import stock
from equipstock.models import BookingStatus, EquipmentStatus, MovementType


pytestmark = pytest.mark.django_db


class TestStockOverview:
    """Tests for stock.stock_overview()."""

    def test_stats_and_counts(self, tenant_id, furadeira, andaime, make_booking, next_week):
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 3)
        stock.record_movement(furadeira, MovementType.DAMAGE, 1)
        make_booking(*next_week, items=[(furadeira, 3)])

        data = stock.stock_overview(tenant_id)

        assert data['stats'] == {
            'totalEquipments': 2,
            'totalStock': 10,
            'totalAvailable': 6,
            'totalReserved': 3,
            'totalMaintenance': 0,
            'totalDamaged': 1,
            'lowStockCount': 1,
        }
        by_name = {e['name']: e for e in data['equipments']}
        assert by_name['Furadeira de Impacto']['_count'] == {'stockMovements': 3, 'bookingItems': 1}
        assert by_name['Furadeira de Impacto']['availableStock'] == 6

    def test_filters(self, tenant_id, furadeira, andaime):
        assert [e['name'] for e in stock.stock_overview(tenant_id, category='Estruturas')['equipments']] == [
            'Andaime Tubular',
        ]
        assert [e['name'] for e in stock.stock_overview(tenant_id, search='furad')['equipments']] == [
            'Furadeira de Impacto',
        ]

    def test_low_stock_narrows_list_only(self, tenant_id, furadeira, andaime):
        data = stock.stock_overview(tenant_id, low_stock=True)

        assert [e['name'] for e in data['equipments']] == ['Andaime Tubular']
        assert data['stats']['totalEquipments'] == 2

    def test_status_filter(self, tenant_id, furadeira, andaime):
        andaime.status = EquipmentStatus.INACTIVE
        andaime.save(update_fields=['status'])

        data = stock.stock_overview(tenant_id, status=EquipmentStatus.INACTIVE)

        assert [e['id'] for e in data['equipments']] == [andaime.pk]

    def test_tenant_scoped(self, furadeira):
        assert stock.stock_overview('locadora-b')['stats']['totalEquipments'] == 0


class TestLowStock:
    """Tests for stock.low_stock()."""

    def test_tags_and_order(self, tenant_id, furadeira, andaime, make_booking, next_week):
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 9)
        make_booking(*next_week, items=[(furadeira, 2)])
        make_booking(*next_week, items=[(furadeira, 1)], status=BookingStatus.CANCELLED)

        data = stock.low_stock(tenant_id)

        assert [e['name'] for e in data['equipments']] == ['Andaime Tubular', 'Furadeira de Impacto']
        andaime_entry, furadeira_entry = data['equipments']
        assert andaime_entry['status'] == 'OUT_OF_STOCK'
        assert andaime_entry['lastMovement'] is None
        assert furadeira_entry['status'] == 'CRITICAL'
        assert furadeira_entry['lastMovement']['type'] == 'RENTAL_OUT'
        assert furadeira_entry['activeBookings'] == 1
        assert data['stats'] == {'totalLowStock': 2, 'outOfStock': 1, 'criticallyLow': 1}

    def test_low_but_not_critical(self, tenant_id):
        equipment = stock.register_equipment(tenant_id, 'Escora', initial_stock=3, min_stock_level=4)

        [entry] = stock.low_stock(tenant_id)['equipments']

        assert entry['id'] == equipment.pk
        assert entry['status'] == 'LOW'

    def test_inactive_excluded(self, tenant_id, andaime):
        andaime.status = EquipmentStatus.INACTIVE
        andaime.save(update_fields=['status'])

        assert stock.low_stock(tenant_id)['equipments'] == []


class TestMovementHistory:
    """Tests for stock.movement_history()."""

    @pytest.fixture
    def busy(self, furadeira):
        for _ in range(4):
            stock.record_movement(furadeira, MovementType.RENTAL_OUT, 1)
        stock.record_movement(furadeira, MovementType.RENTAL_RETURN, 2)
        return furadeira

    def test_newest_first_and_paginated(self, busy):
        page = stock.movement_history(busy, page=1, limit=2)

        assert page.total == 6
        assert page.total_pages == 3
        assert [m.type for m in page.movements] == ['RENTAL_RETURN', 'RENTAL_OUT']

        last = stock.movement_history(busy, page=3, limit=2)
        assert [m.type for m in last.movements] == ['RENTAL_OUT', 'PURCHASE']

    def test_summary_covers_all_pages(self, busy):
        page = stock.movement_history(busy, limit=1)

        assert page.summary == {
            'PURCHASE': {'count': 1, 'quantity': 10},
            'RENTAL_OUT': {'count': 4, 'quantity': 4},
            'RENTAL_RETURN': {'count': 1, 'quantity': 2},
        }

    def test_type_filter(self, busy):
        page = stock.movement_history(busy, movement_type=MovementType.RENTAL_OUT)

        assert page.total == 4
        assert set(page.summary) == {'RENTAL_OUT'}

    def test_date_filter(self, busy):
        today = timezone.localdate()

        assert stock.movement_history(busy, start=today, end=today).total == 6
        assert stock.movement_history(busy, start=today + timedelta(days=1)).total == 0

    def test_limit_is_clamped(self, busy, settings):
        settings.EQUIPSTOCK = {'MAX_PAGE_SIZE': 5}

        assert stock.movement_history(busy, limit=500).limit == 5

    def test_out_of_range_page(self, busy):
        page = stock.movement_history(busy, page=99, limit=4)

        assert page.page == 2

    def test_as_dict(self, busy):
        data = stock.movement_history(busy, limit=2).as_dict()

        assert data['pagination'] == {'page': 1, 'limit': 2, 'total': 6, 'totalPages': 3}
        assert data['movements'][0]['type'] == 'RENTAL_RETURN'


class TestActiveReservations:

    def test_only_active_items(self, furadeira, make_booking, next_week, jan10, jan15):
        later = make_booking(*next_week, items=[(furadeira, 1)])
        earlier = make_booking(jan10, jan15, items=[(furadeira, 2)])
        make_booking(jan10, jan15, items=[(furadeira, 5)], status=BookingStatus.COMPLETED)

        items = stock.active_reservations(furadeira)

        assert [i.booking_id for i in items] == [earlier.pk, later.pk]


class TestStockDetail:
    """Tests for stock.stock_detail()."""

    def test_counters_and_metrics(self, furadeira, make_booking, jan10, jan15):
        booking = make_booking(jan10, jan15, items=[(furadeira, 4)])
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 4, booking=booking)

        detail = stock.stock_detail(furadeira)

        assert detail['equipment']['availableStock'] == 6
        assert detail['equipment']['reservedStock'] == 4
        assert detail['metrics'] == {'utilizationRate': 40.0, 'isLowStock': False}
        assert detail['recentMovements'][0]['type'] == MovementType.RENTAL_OUT
        assert detail['recentMovements'][0]['bookingNumber'] == booking.booking_number
        [line] = detail['activeReservations']
        assert line['quantity'] == 4
        assert line['booking']['id'] == booking.pk

    def test_only_latest_movements(self, furadeira):
        for _ in range(6):
            stock.record_movement(furadeira, MovementType.MAINTENANCE_OUT, 1)
            stock.record_movement(furadeira, MovementType.MAINTENANCE_IN, 1)

        detail = stock.stock_detail(furadeira)

        assert len(detail['recentMovements']) == 10
        assert detail['recentMovements'][0]['type'] == MovementType.MAINTENANCE_IN

    def test_empty_equipment(self, andaime):
        detail = stock.stock_detail(andaime)

        assert detail['metrics'] == {'utilizationRate': 0, 'isLowStock': True}
        assert detail['recentMovements'] == []
        assert detail['activeReservations'] == []


class TestReturnStatus:
    """Tests for stock.return_status()."""

    @pytest.fixture
    def rented(self, furadeira, make_booking, jan10, jan15):
        booking = make_booking(jan10, jan15, items=[(furadeira, 3)])
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 3, booking=booking)
        return booking

    def test_partial_return(self, rented):
        item = rented.items.get()
        stock.return_booking(rented, [(item, 1, 1)])

        status = stock.return_status(rented)

        [line] = status['items']
        assert line['returnedQty'] == 1
        assert line['damagedQty'] == 1
        assert line['pendingQty'] == 1
        assert line['isComplete'] is False
        assert status['summary']['totalPending'] == 1
        assert status['summary']['allComplete'] is False

    def test_complete(self, rented):
        stock.return_booking(rented, [(rented.items.get(), 3, 0)])

        status = stock.return_status(rented)

        assert status['booking']['status'] == BookingStatus.COMPLETED
        assert status['summary'] == {
            'totalItems': 1,
            'totalQuantity': 3,
            'totalReturned': 3,
            'totalDamaged': 0,
            'totalPending': 0,
            'allComplete': True,
        }

    def test_booking_without_items(self, make_booking, jan10, jan15):
        status = stock.return_status(make_booking(jan10, jan15))

        assert status['items'] == []
        assert status['summary']['allComplete'] is False
