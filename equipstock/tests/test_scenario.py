"""
End-to-end rental flow, from registration to devolution.
"""

from datetime import date

import pytest

from equipstock import stock
from equipstock.buckets import is_balanced
from equipstock.models import MovementType
from equipstock.services.reservations import ReturnLine


pytestmark = pytest.mark.django_db


class TestRentalScenario:

    def test_reserve_check_and_return(self, tenant_id, make_booking):
        equipment = stock.register_equipment(tenant_id, 'Betoneira 400L', initial_stock=10, min_stock_level=2)
        assert equipment.snapshot() == {
            'total': 10, 'available': 10, 'reserved': 0, 'maintenance': 0, 'damaged': 0,
        }

        booking_a = make_booking(date(2025, 1, 1), date(2025, 1, 10))
        stock.reserve(booking_a, equipment, 3)
        stock.record_movement(equipment, MovementType.RENTAL_OUT, 3, booking=booking_a)
        assert equipment.available_stock == 7
        assert equipment.reserved_stock == 3

        result = stock.check_availability(equipment, date(2025, 1, 5), date(2025, 1, 8), quantity=5)
        assert result.is_available
        assert result.available_for_period == 7

        result = stock.check_availability(equipment, date(2025, 1, 5), date(2025, 1, 8), quantity=8)
        assert not result.is_available
        assert [c.booking_id for c in result.conflicts] == [booking_a.pk]

        summary = stock.return_booking(booking_a, [
            ReturnLine(booking_a.items.get(), returned_qty=3),
        ])
        assert summary.completed

        equipment.refresh_from_db()
        assert equipment.available_stock == 10
        assert equipment.reserved_stock == 0
        assert stock.check_availability(
            equipment, date(2025, 1, 5), date(2025, 1, 8), quantity=10,
        ).is_available

    def test_counters_stay_balanced(self, furadeira):
        sequence = [
            (MovementType.RENTAL_OUT, 4),
            (MovementType.MAINTENANCE_OUT, 2),
            (MovementType.DAMAGE, 1),
            (MovementType.RENTAL_RETURN, 3),
            (MovementType.MAINTENANCE_IN, 1),
            (MovementType.PURCHASE, 5),
            (MovementType.LOSS, 2),
        ]
        for movement_type, quantity in sequence:
            stock.record_movement(furadeira, movement_type, quantity)
            snapshot = furadeira.snapshot()
            assert is_balanced(snapshot), movement_type
            assert min(snapshot.values()) >= 0

        stock.adjust_total_stock(furadeira, furadeira.committed_stock, reason='Inventário')
        furadeira.refresh_from_db()
        assert furadeira.available_stock == 0
        assert furadeira.ledger_snapshot() == furadeira.snapshot()
