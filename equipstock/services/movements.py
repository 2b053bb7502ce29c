"""
Stock movements — the ledger write path.

Every counter change in the app ends in StockMovements._apply(), which
updates the equipment row and inserts the ledger entry inside the caller's
transaction, under the equipment row lock.
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from equipstock.buckets import MOVEMENT_RULES, apply_deltas, field_for, plan_movement
from equipstock.exceptions import InvalidTransition, NotFound, StockError
from equipstock.models.activity import ActivityLog
from equipstock.models.enums import ActivityAction
from equipstock.models.equipment import Equipment
from equipstock.models.movement import StockMovement

logger = logging.getLogger('equipstock')


def validate_quantity(quantity) -> None:
    """Positive integer or INVALID_QUANTITY."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise StockError('INVALID_QUANTITY', requested=quantity)


class StockMovements:
    """Ledger write methods."""

    @classmethod
    def record_movement(cls, equipment, movement_type, quantity, reason='',
                        user=None, tenant_id=None, booking=None,
                        idempotency_key=None, source=None) -> StockMovement:
        """
        Record one stock movement and apply it to the counters.

        Args:
            equipment: Equipment (QUANTITY tracking)
            movement_type: One of MovementType
            quantity: Positive integer
            reason: Free text stored on the ledger row
            user: Actor
            tenant_id: Defaults to the equipment's tenant
            booking: Related booking, if any
            idempotency_key: Replaying the same key returns the first movement;
                a key reused for another equipment, type or quantity is rejected
            source: Force the drained bucket (DAMAGE only: 'available'/'reserved')

        Raises:
            StockError('INVALID_QUANTITY'): quantity not a positive integer
            InvalidTransition: unknown type, bad source, or SERIALIZED equipment
            InsufficientStock: precondition of the type not met

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on Equipment
            - Validates against the locked counters
        """
        validate_quantity(quantity)
        if movement_type not in MOVEMENT_RULES:
            raise InvalidTransition(movement_type=str(movement_type))

        tenant_id = tenant_id or equipment.tenant_id

        with transaction.atomic():
            locked = cls._lock(equipment)

            if idempotency_key:
                existing = cls._find_replay(tenant_id, idempotency_key)
                if existing is not None:
                    return cls._replay(existing, locked, movement_type, quantity)

            if locked.is_serialized:
                raise InvalidTransition(
                    message="Equipamento serializado: estoque controlado pelas unidades",
                    equipment_id=locked.pk,
                    movement_type=str(movement_type),
                )

            deltas = plan_movement(locked.snapshot(), movement_type, quantity, source)
            try:
                with transaction.atomic():
                    movement = cls._apply(
                        locked,
                        movement_type,
                        quantity,
                        deltas,
                        reason=reason,
                        user=user,
                        tenant_id=tenant_id,
                        booking=booking,
                        idempotency_key=idempotency_key,
                    )
            except IntegrityError:
                # Key committed meanwhile by a request on another equipment
                if not idempotency_key:
                    raise
                existing = StockMovement.objects.get(
                    tenant_id=tenant_id,
                    idempotency_key=idempotency_key,
                )
                return cls._replay(existing, locked, movement_type, quantity)
            ActivityLog.record(
                action=ActivityAction.CREATE,
                entity='StockMovement',
                entity_id=movement.pk,
                description=(
                    f"Movimentação de estoque: {movement.get_type_display()} - "
                    f"{quantity} unidade(s) de {locked.name}"
                ),
                tenant_id=tenant_id,
                user=user,
                equipment_id=locked.pk,
                type=str(movement_type),
                quantity=quantity,
                previous_stock=movement.previous_stock,
                new_stock=movement.new_stock,
            )

        equipment.refresh_from_db()
        return movement

    # ══════════════════════════════════════════════════════════════
    # INTERNALS (shared with units, adjustments and reservations)
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _find_replay(cls, tenant_id, idempotency_key) -> StockMovement | None:
        return StockMovement.objects.filter(
            tenant_id=tenant_id,
            idempotency_key=idempotency_key,
        ).first()

    @classmethod
    def _replay(cls, existing, locked, movement_type, quantity) -> StockMovement:
        """Return the movement already stored under a key, if it is the same request."""
        if (existing.equipment_id != locked.pk
                or existing.type != movement_type
                or existing.quantity != quantity):
            raise InvalidTransition(
                message="Chave de idempotência já usada em outra movimentação",
                idempotency_key=existing.idempotency_key,
                movement_id=existing.pk,
                equipment_id=locked.pk,
            )
        logger.info(
            "stock.movement.replayed",
            extra={"movement_id": existing.pk, "idempotency_key": existing.idempotency_key},
        )
        return existing

    @classmethod
    def _lock(cls, equipment) -> Equipment:
        """Re-read the equipment row under select_for_update(). Must run inside atomic()."""
        pk = equipment.pk if isinstance(equipment, Equipment) else equipment
        try:
            return Equipment.objects.select_for_update().get(pk=pk)
        except Equipment.DoesNotExist:
            raise NotFound(entity='Equipment', id=pk) from None

    @classmethod
    def _apply(cls, locked: Equipment, movement_type, quantity: int, deltas: dict[str, int],
               reason='', user=None, tenant_id=None, booking=None, unit=None,
               idempotency_key=None) -> StockMovement:
        """
        Write a net delta map to the counters and append the ledger row.

        `locked` must come from _lock() in the current transaction; its
        in-memory counters are brought up to date.
        """
        previous = locked.available_stock

        if deltas:
            Equipment.objects.filter(pk=locked.pk).update(
                updated_at=timezone.now(),
                **{field_for(c): F(field_for(c)) + d for c, d in deltas.items()},
            )
            for counter, value in apply_deltas(locked.snapshot(), deltas).items():
                setattr(locked, field_for(counter), value)

        movement = StockMovement.objects.create(
            equipment=locked,
            tenant_id=tenant_id or locked.tenant_id,
            type=movement_type,
            quantity=quantity,
            previous_stock=previous,
            new_stock=locked.available_stock,
            deltas=deltas,
            reason=reason or '',
            booking=booking,
            unit=unit,
            idempotency_key=idempotency_key or None,
            user=user,
        )

        cls._invalidate_alerts_on_commit(movement.tenant_id)

        logger.info(
            "stock.movement.recorded",
            extra={
                "movement_id": movement.pk,
                "equipment_id": locked.pk,
                "type": str(movement_type),
                "qty": quantity,
                "deltas": deltas,
                "reason": reason,
            },
        )
        return movement

    @classmethod
    def _invalidate_alerts_on_commit(cls, tenant_id) -> None:
        from equipstock.services.alerts import invalidate_alerts

        transaction.on_commit(lambda: invalidate_alerts(tenant_id))
