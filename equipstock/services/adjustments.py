"""
Stock adjustment — set the total of a QUANTITY equipment to a counted value.
"""

import logging
from dataclasses import dataclass

from django.db import transaction

from equipstock.buckets import plan_movement
from equipstock.exceptions import BelowFloor, InvalidTransition, StockError
from equipstock.models.activity import ActivityLog
from equipstock.models.enums import ActivityAction, MovementType
from equipstock.models.equipment import Equipment
from equipstock.models.movement import StockMovement
from equipstock.services.movements import StockMovements

logger = logging.getLogger('equipstock')


@dataclass
class AdjustmentResult:
    movement: StockMovement | None
    equipment: Equipment

    def as_dict(self) -> dict:
        return {
            'movement': self.movement.as_dict() if self.movement else None,
            'equipment': {
                'id': self.equipment.pk,
                'name': self.equipment.name,
                **self.equipment.stock_dict(),
            },
        }


class StockAdjustments:
    """Inventory adjustment methods."""

    @classmethod
    def adjust_total_stock(cls, equipment, new_total_stock, reason, user=None) -> AdjustmentResult:
        """
        Inventory adjustment.

        Only the available bucket absorbs the difference: reserved,
        maintenance and damaged units are committed and cannot be removed.

            min_possible  = reserved + maintenance + damaged
            new_available = new_total - min_possible

        The ledger row stores |new_total - total|; the sign lives in its
        deltas and reason. No difference, no movement.

        Raises:
            StockError('REASON_REQUIRED'): If reason is empty
            StockError('INVALID_QUANTITY'): new_total_stock negative or not an integer
            BelowFloor: new_total_stock < min_possible
            InvalidTransition: SERIALIZED equipment (adjust the units instead)
        """
        if not reason or not str(reason).strip():
            raise StockError('REASON_REQUIRED')
        if (isinstance(new_total_stock, bool) or not isinstance(new_total_stock, int)
                or new_total_stock < 0):
            raise StockError('INVALID_QUANTITY', requested=new_total_stock)

        with transaction.atomic():
            locked = StockMovements._lock(equipment)

            if locked.is_serialized:
                raise InvalidTransition(
                    message="Equipamento serializado: ajuste as unidades individualmente",
                    equipment_id=locked.pk,
                )

            min_possible = locked.committed_stock
            if new_total_stock < min_possible:
                raise BelowFloor(min_possible, new_total_stock, equipment_id=locked.pk)

            diff = new_total_stock - locked.total_stock
            if diff == 0:
                equipment.refresh_from_db()
                return AdjustmentResult(movement=None, equipment=equipment)

            previous_total = locked.total_stock
            direction = 'aumentado' if diff > 0 else 'reduzido'
            full_reason = (
                f"Ajuste manual: {reason}. "
                f"Estoque total {direction} de {previous_total} para {new_total_stock}"
            )

            deltas = plan_movement(locked.snapshot(), MovementType.ADJUSTMENT, diff)
            movement = StockMovements._apply(
                locked,
                MovementType.ADJUSTMENT,
                abs(diff),
                deltas,
                reason=full_reason,
                user=user,
                tenant_id=locked.tenant_id,
            )
            ActivityLog.record(
                action=ActivityAction.UPDATE,
                entity='Equipment',
                entity_id=locked.pk,
                description=(
                    f"Ajuste de estoque: {locked.name} - "
                    f"{previous_total} → {new_total_stock} unidades"
                ),
                tenant_id=locked.tenant_id,
                user=user,
                previous_total=previous_total,
                new_total=new_total_stock,
                diff=diff,
                reason=reason,
            )

        logger.info(
            "stock.adjust",
            extra={
                "equipment_id": locked.pk,
                "delta": diff,
                "reason": reason,
            },
        )
        equipment.refresh_from_db()
        return AdjustmentResult(movement=movement, equipment=equipment)
