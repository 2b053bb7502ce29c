"""
Stock Service — The single public interface for all stock operations.

Usage:
    from equipstock import stock, StockError

    furadeira = stock.register_equipment('t1', 'Furadeira', initial_stock=10)
    stock.record_movement(furadeira, 'MAINTENANCE_OUT', 2, reason='Revisão')
    stock.check_availability(furadeira, friday, sunday, quantity=3).is_available
"""

import logging

from django.db import transaction

from equipstock.buckets import COUNTERS, bucket_for_status, field_for
from equipstock.conf import equipstock_settings
from equipstock.exceptions import StockError
from equipstock.models.activity import ActivityLog
from equipstock.models.enums import ActivityAction, MovementType, TrackingType
from equipstock.models.equipment import Equipment
from equipstock.services import (
    StockAdjustments,
    StockAlerts,
    StockAvailability,
    StockMovements,
    StockQueries,
    StockReservations,
    StockUnits,
)

logger = logging.getLogger('equipstock')


class Stock(
    StockQueries,
    StockAvailability,
    StockMovements,
    StockUnits,
    StockAdjustments,
    StockReservations,
    StockAlerts,
):
    """
    Single interface for all stock operations.

    IMPORTANT: All state-changing methods use atomic transactions and lock
    the equipment row before validating. See each method's docstring.
    """

    # ══════════════════════════════════════════════════════════════
    # EQUIPMENT
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def register_equipment(cls, tenant_id, name, tracking_type=TrackingType.QUANTITY,
                           initial_stock: int = 0, min_stock_level: int | None = None,
                           category='', user=None, **extra) -> Equipment:
        """
        Create an equipment with empty buckets.

        For QUANTITY tracking a positive initial_stock is recorded as a
        PURCHASE movement, so the ledger explains the opening balance.
        SERIALIZED equipment grows through create_unit().

        Raises:
            StockError('INVALID_QUANTITY'): negative initial stock, or
                initial stock given for SERIALIZED equipment
        """
        if isinstance(initial_stock, bool) or not isinstance(initial_stock, int) or initial_stock < 0:
            raise StockError('INVALID_QUANTITY', requested=initial_stock)
        if initial_stock and tracking_type == TrackingType.SERIALIZED:
            raise StockError(
                'INVALID_QUANTITY',
                "Equipamento serializado começa sem estoque: cadastre as unidades",
                requested=initial_stock,
            )
        if min_stock_level is None:
            min_stock_level = equipstock_settings.DEFAULT_MIN_STOCK_LEVEL

        with transaction.atomic():
            equipment = Equipment.objects.create(
                tenant_id=tenant_id,
                name=name,
                category=category,
                tracking_type=tracking_type,
                min_stock_level=min_stock_level,
                **extra,
            )
            ActivityLog.record(
                action=ActivityAction.CREATE,
                entity='Equipment',
                entity_id=equipment.pk,
                description=f"Equipamento {name} cadastrado",
                tenant_id=tenant_id,
                user=user,
                tracking_type=str(tracking_type),
                initial_stock=initial_stock,
            )
            if initial_stock:
                cls.record_movement(
                    equipment,
                    MovementType.PURCHASE,
                    initial_stock,
                    reason='Estoque inicial',
                    user=user,
                )

        logger.info(
            "stock.equipment.registered",
            extra={"equipment_id": equipment.pk, "tenant_id": tenant_id, "initial": initial_stock},
        )
        return equipment

    @classmethod
    def recount_units(cls, equipment) -> dict[str, int]:
        """
        Counters of a SERIALIZED equipment as implied by its units.

        RETIRED units are left out of every counter, including the total.
        """
        counts = dict.fromkeys(COUNTERS, 0)
        for status in equipment.units.values_list('status', flat=True):
            bucket = bucket_for_status(status)
            if bucket:
                counts[bucket] += 1
                counts['total'] += 1
        return counts

    @classmethod
    def verify(cls, equipment) -> dict[str, dict[str, int]]:
        """
        Compare the counters with their sources of truth.

        Returns:
            {'counters': ..., 'ledger': ..., 'units': ...}; 'units' only for
            SERIALIZED equipment.
        """
        report = {
            'counters': equipment.snapshot(),
            'ledger': equipment.ledger_snapshot(),
        }
        if equipment.is_serialized:
            report['units'] = cls.recount_units(equipment)
        return report

    @classmethod
    def repair(cls, equipment) -> dict[str, int]:
        """
        Rewrite drifted counters: from the units for SERIALIZED equipment,
        from the ledger otherwise.
        """
        if not equipment.is_serialized:
            return equipment.recalculate()

        with transaction.atomic():
            locked = cls._lock(equipment)
            expected = cls.recount_units(locked)
            current = locked.snapshot()
            if expected != current:
                Equipment.objects.filter(pk=locked.pk).update(
                    **{field_for(c): v for c, v in expected.items()}
                )
                cls._invalidate_alerts_on_commit(locked.tenant_id)
                logger.warning(
                    "stock.equipment.recounted",
                    extra={"equipment_id": locked.pk, "old": current, "new": expected},
                )
        equipment.refresh_from_db()
        return expected
