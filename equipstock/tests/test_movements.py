"""
Tests for the movement ledger.
"""

import pytest

from equipstock import stock, StockError
from equipstock.exceptions import InsufficientStock, InvalidTransition
from equipstock.models import ActivityLog, Equipment, MovementType, StockMovement
from equipstock.services.movements import StockMovements


pytestmark = pytest.mark.django_db


class TestRegisterEquipment:
    """Tests for stock.register_equipment()."""

    def test_initial_stock_is_a_purchase(self, furadeira):
        assert furadeira.total_stock == 10
        assert furadeira.available_stock == 10

        movement = furadeira.movements.get()
        assert movement.type == MovementType.PURCHASE
        assert movement.quantity == 10
        assert movement.deltas == {'total': 10, 'available': 10}

    def test_zero_stock_writes_no_movement(self, andaime):
        assert andaime.total_stock == 0
        assert not andaime.movements.exists()

    def test_serialized_rejects_initial_stock(self, tenant_id):
        with pytest.raises(StockError) as exc:
            stock.register_equipment(tenant_id, 'Betoneira', tracking_type='SERIALIZED', initial_stock=3)
        assert exc.value.code == 'INVALID_QUANTITY'

    def test_default_min_stock_level(self, tenant_id, settings):
        settings.EQUIPSTOCK = {'DEFAULT_MIN_STOCK_LEVEL': 4}
        equipment = stock.register_equipment(tenant_id, 'Compactador')
        assert equipment.min_stock_level == 4


class TestRecordMovement:
    """Tests for stock.record_movement()."""

    def test_rental_out(self, furadeira, user):
        movement = stock.record_movement(furadeira, MovementType.RENTAL_OUT, 3, reason='Reserva', user=user)

        assert furadeira.available_stock == 7
        assert furadeira.reserved_stock == 3
        assert furadeira.total_stock == 10
        assert movement.previous_stock == 10
        assert movement.new_stock == 7
        assert movement.user == user
        assert movement.tenant_id == furadeira.tenant_id

    def test_purchase_then_loss_round_trip(self, furadeira):
        stock.record_movement(furadeira, MovementType.PURCHASE, 4, reason='Nota 55')
        stock.record_movement(furadeira, MovementType.LOSS, 4, reason='Extravio')

        assert furadeira.snapshot() == {
            'total': 10, 'available': 10, 'reserved': 0, 'maintenance': 0, 'damaged': 0,
        }

    def test_maintenance_cycle(self, furadeira):
        stock.record_movement(furadeira, MovementType.MAINTENANCE_OUT, 2)
        assert furadeira.maintenance_stock == 2
        assert furadeira.available_stock == 8

        stock.record_movement(furadeira, MovementType.MAINTENANCE_IN, 2)
        assert furadeira.maintenance_stock == 0
        assert furadeira.available_stock == 10

    def test_adjustment_adds_to_total(self, furadeira):
        stock.record_movement(furadeira, MovementType.ADJUSTMENT, 2, reason='Contagem')
        assert furadeira.total_stock == 12
        assert furadeira.available_stock == 12

    def test_damage_prefers_available(self, furadeira):
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 8)
        stock.record_movement(furadeira, MovementType.DAMAGE, 2)

        assert furadeira.available_stock == 0
        assert furadeira.reserved_stock == 8
        assert furadeira.damaged_stock == 2

    def test_damage_from_reserved_when_available_short(self, furadeira):
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 9)
        movement = stock.record_movement(furadeira, MovementType.DAMAGE, 3)

        assert movement.deltas == {'reserved': -3, 'damaged': 3}
        assert furadeira.available_stock == 1
        assert furadeira.reserved_stock == 6

    def test_insufficient_stock_writes_nothing(self, furadeira):
        before = StockMovement.objects.count()

        with pytest.raises(InsufficientStock) as exc:
            stock.record_movement(furadeira, MovementType.LOSS, 11)

        assert exc.value.data['bucket'] == 'available'
        assert exc.value.data['shortfall'] == 1
        assert StockMovement.objects.count() == before
        furadeira.refresh_from_db()
        assert furadeira.available_stock == 10

    def test_rental_return_without_reserved(self, furadeira):
        with pytest.raises(InsufficientStock) as exc:
            stock.record_movement(furadeira, MovementType.RENTAL_RETURN, 1)
        assert exc.value.data['bucket'] == 'reserved'

    @pytest.mark.parametrize('quantity', [0, -1, 1.5, True, '3'])
    def test_invalid_quantity(self, furadeira, quantity):
        with pytest.raises(StockError) as exc:
            stock.record_movement(furadeira, MovementType.PURCHASE, quantity)
        assert exc.value.code == 'INVALID_QUANTITY'

    def test_unknown_type(self, furadeira):
        with pytest.raises(InvalidTransition):
            stock.record_movement(furadeira, 'GIFT', 1)

    def test_serialized_equipment_rejected(self, gerador):
        with pytest.raises(InvalidTransition):
            stock.record_movement(gerador, MovementType.PURCHASE, 1)

    def test_writes_audit_entry(self, furadeira, user):
        movement = stock.record_movement(furadeira, MovementType.MAINTENANCE_OUT, 1, user=user)

        log = ActivityLog.objects.get(entity='StockMovement', entity_id=str(movement.pk))
        assert log.action == 'CREATE'
        assert log.user == user
        assert log.metadata['quantity'] == 1
        assert 'Furadeira de Impacto' in log.description

    def test_previous_and_new_always_snapshot_available(self, furadeira):
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 4)
        movement = stock.record_movement(furadeira, MovementType.RENTAL_RETURN, 1)

        assert movement.previous_stock == 6
        assert movement.new_stock == 7


class TestIdempotency:
    """Replaying an idempotency key does not apply the movement twice."""

    def test_same_key_returns_first_movement(self, furadeira):
        first = stock.record_movement(furadeira, MovementType.PURCHASE, 5, idempotency_key='nf-123')
        second = stock.record_movement(furadeira, MovementType.PURCHASE, 5, idempotency_key='nf-123')

        assert first.pk == second.pk
        assert furadeira.total_stock == 15
        assert furadeira.movements.filter(idempotency_key='nf-123').count() == 1

    def test_keys_are_scoped_by_tenant(self, furadeira):
        other = stock.register_equipment('locadora-b', 'Furadeira', initial_stock=1)

        stock.record_movement(furadeira, MovementType.PURCHASE, 1, idempotency_key='k1')
        stock.record_movement(other, MovementType.PURCHASE, 1, idempotency_key='k1')

        assert StockMovement.objects.filter(idempotency_key='k1').count() == 2

    def test_key_reused_on_other_equipment(self, furadeira, andaime):
        stock.record_movement(furadeira, MovementType.PURCHASE, 5, idempotency_key='nf-123')

        with pytest.raises(InvalidTransition) as exc:
            stock.record_movement(andaime, MovementType.PURCHASE, 5, idempotency_key='nf-123')

        assert exc.value.data['idempotency_key'] == 'nf-123'
        andaime.refresh_from_db()
        assert andaime.total_stock == 0

    def test_key_reused_with_other_request(self, furadeira):
        stock.record_movement(furadeira, MovementType.PURCHASE, 5, idempotency_key='nf-123')

        with pytest.raises(InvalidTransition):
            stock.record_movement(furadeira, MovementType.PURCHASE, 6, idempotency_key='nf-123')
        with pytest.raises(InvalidTransition):
            stock.record_movement(furadeira, MovementType.LOSS, 5, idempotency_key='nf-123')

        furadeira.refresh_from_db()
        assert furadeira.total_stock == 15


class TestIdempotencyRace:
    """The key is stored by another request between the lookup and the insert."""

    @pytest.fixture(autouse=True)
    def lookup_misses(self, monkeypatch):
        monkeypatch.setattr(StockMovements, '_find_replay', classmethod(lambda cls, *args: None))

    def test_same_request_returns_stored_movement(self, furadeira):
        first = stock.record_movement(furadeira, MovementType.PURCHASE, 5, idempotency_key='nf-7')
        second = stock.record_movement(furadeira, MovementType.PURCHASE, 5, idempotency_key='nf-7')

        assert second.pk == first.pk
        furadeira.refresh_from_db()
        assert furadeira.total_stock == 15
        assert furadeira.movements.count() == 2

    def test_other_equipment_rejected(self, furadeira, andaime):
        stock.record_movement(furadeira, MovementType.PURCHASE, 5, idempotency_key='nf-7')

        with pytest.raises(InvalidTransition):
            stock.record_movement(andaime, MovementType.PURCHASE, 5, idempotency_key='nf-7')

        andaime.refresh_from_db()
        assert andaime.total_stock == 0
        assert not andaime.movements.exists()


class TestImmutableLedger:
    """StockMovement rows cannot be changed or removed."""

    def test_save_existing_raises(self, furadeira):
        movement = furadeira.movements.first()
        movement.quantity = 99

        with pytest.raises(ValueError):
            movement.save()

    def test_delete_raises(self, furadeira):
        with pytest.raises(ValueError):
            furadeira.movements.first().delete()


class TestRecalculate:
    """Equipment.recalculate() replays the ledger."""

    def test_ledger_replay_matches_counters(self, furadeira):
        stock.record_movement(furadeira, MovementType.RENTAL_OUT, 3)
        stock.record_movement(furadeira, MovementType.DAMAGE, 1, source='reserved')
        stock.record_movement(furadeira, MovementType.MAINTENANCE_OUT, 2)

        assert furadeira.ledger_snapshot() == furadeira.snapshot()

    def test_recalculate_repairs_drift(self, furadeira):
        Equipment.objects.filter(pk=furadeira.pk).update(total_stock=20, available_stock=20)
        furadeira.refresh_from_db()

        result = furadeira.recalculate()

        assert result['total'] == 10
        furadeira.refresh_from_db()
        assert furadeira.total_stock == 10
        assert furadeira.available_stock == 10

    def test_empty_ledger_replays_to_zero(self, andaime):
        assert andaime.ledger_snapshot() == {
            'total': 0, 'available': 0, 'reserved': 0, 'maintenance': 0, 'damaged': 0,
        }

    def test_movements_that_cancel_out(self, furadeira):
        stock.record_movement(furadeira, MovementType.MAINTENANCE_OUT, 2)
        stock.record_movement(furadeira, MovementType.MAINTENANCE_IN, 2)

        assert furadeira.ledger_snapshot()['maintenance'] == 0
        assert furadeira.ledger_snapshot() == furadeira.snapshot()
