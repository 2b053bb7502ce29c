"""
Unit registry — serialized equipment.

Each unit status change is turned into a net bucket delta
(buckets.bucket_delta) and applied through the ledger write path, so the
equipment counters always equal the number of units per status and every
change leaves a StockMovement for history.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.utils import timezone

from equipstock.buckets import bucket_delta, ensure_non_negative, movement_type_for_transition
from equipstock.exceptions import (
    DuplicateSerialNumber,
    InvalidTransition,
    NotFound,
    UnitInUse,
)
from equipstock.models.activity import ActivityLog
from equipstock.models.booking import BookingUnit
from equipstock.models.enums import ActivityAction, UnitStatus
from equipstock.models.unit import EquipmentUnit
from equipstock.services.movements import StockMovements

logger = logging.getLogger('equipstock')

# Statuses a unit with an open rental may move to
RENTAL_STATUSES = (UnitStatus.RENTED, UnitStatus.DAMAGED)

# Statuses a unit may come back in
RETURN_STATUSES = (UnitStatus.AVAILABLE, UnitStatus.MAINTENANCE, UnitStatus.DAMAGED)

EDITABLE_FIELDS = (
    'serial_number',
    'internal_code',
    'notes',
    'acquisition_date',
    'acquisition_cost',
    'warranty_expiry',
)


@dataclass
class UnitList:
    units: list[EquipmentUnit]
    stats: dict[str, int]

    def as_dict(self) -> dict:
        return {
            'units': [u.as_dict() for u in self.units],
            'stats': self.stats,
        }


def _validate_status(status) -> None:
    if status not in UnitStatus.values:
        raise InvalidTransition(message=f"Status inválido: {status}", status=str(status))


class StockUnits:
    """Unit registry methods."""

    @classmethod
    def create_unit(cls, equipment, serial_number, status=UnitStatus.AVAILABLE,
                    user=None, **fields) -> EquipmentUnit:
        """
        Register a physical unit.

        Increments total and the bucket of the initial status. A unit born
        RETIRED stays outside every counter.

        Raises:
            InvalidTransition: equipment is not SERIALIZED, or unknown status
            DuplicateSerialNumber: serial already used in the tenant
        """
        _validate_status(status)
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise TypeError(f"Unexpected unit fields: {sorted(unknown)}")

        with transaction.atomic():
            locked = StockMovements._lock(equipment)
            if not locked.is_serialized:
                raise InvalidTransition(
                    message="Unidades só podem ser cadastradas em equipamentos serializados",
                    equipment_id=locked.pk,
                )
            cls._ensure_unique_serial(locked.tenant_id, serial_number)

            with cls._serial_guard(serial_number):
                unit = EquipmentUnit.objects.create(
                    equipment=locked,
                    tenant_id=locked.tenant_id,
                    serial_number=serial_number,
                    status=status,
                    **fields,
                )
            cls._record_transition(
                locked, unit, None, status, user,
                reason=f"Cadastro da unidade {serial_number}",
            )
            ActivityLog.record(
                action=ActivityAction.CREATE,
                entity='EquipmentUnit',
                entity_id=unit.pk,
                description=f"Unidade {serial_number} cadastrada em {locked.name}",
                tenant_id=locked.tenant_id,
                user=user,
                equipment_id=locked.pk,
                status=str(status),
            )

        logger.info(
            "stock.unit.created",
            extra={"unit_id": unit.pk, "equipment_id": locked.pk, "status": str(status)},
        )
        return unit

    @classmethod
    def update_unit_status(cls, unit, new_status, user=None, reason='') -> EquipmentUnit:
        """
        Move a unit to another status and adjust the counters by the net delta.

        Raises:
            UnitInUse: open rental and new_status not in (RENTED, DAMAGED)
            InvalidTransition: unknown status
        """
        _validate_status(new_status)

        with transaction.atomic():
            locked = StockMovements._lock(unit.equipment_id)
            current = cls._lock_unit(unit)
            old_status = current.status
            cls._transition(locked, current, new_status, user, reason)
            if old_status != new_status:
                ActivityLog.record(
                    action=ActivityAction.UPDATE,
                    entity='EquipmentUnit',
                    entity_id=current.pk,
                    description=f"Unidade {current.serial_number}: {old_status} → {new_status}",
                    tenant_id=current.tenant_id,
                    user=user,
                    old_status=str(old_status),
                    new_status=str(new_status),
                    reason=reason,
                )

        unit.refresh_from_db()
        return unit

    @classmethod
    def update_unit(cls, unit, user=None, **fields) -> EquipmentUnit:
        """
        Edit unit data and, optionally, its status, in one transaction.

        Raises:
            DuplicateSerialNumber: new serial already used in the tenant
            UnitInUse / InvalidTransition: as update_unit_status()
        """
        new_status = fields.pop('status', None)
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise TypeError(f"Unexpected unit fields: {sorted(unknown)}")
        if new_status is not None:
            _validate_status(new_status)

        with transaction.atomic():
            locked = StockMovements._lock(unit.equipment_id)
            current = cls._lock_unit(unit)
            old_status = current.status

            serial = fields.get('serial_number')
            if serial and serial != current.serial_number:
                cls._ensure_unique_serial(current.tenant_id, serial, exclude_pk=current.pk)

            for name, value in fields.items():
                setattr(current, name, value)
            if fields:
                with cls._serial_guard(current.serial_number):
                    current.save(update_fields=[*fields, 'updated_at'])

            if new_status is not None:
                cls._transition(locked, current, new_status, user, reason="Edição da unidade")

            ActivityLog.record(
                action=ActivityAction.UPDATE,
                entity='EquipmentUnit',
                entity_id=current.pk,
                description=f"Unidade {current.serial_number} atualizada",
                tenant_id=current.tenant_id,
                user=user,
                fields=sorted(fields),
                old_status=str(old_status),
                new_status=str(current.status),
            )

        unit.refresh_from_db()
        return unit

    @classmethod
    def delete_unit(cls, unit, user=None) -> None:
        """
        Remove a unit and take it out of the counters.

        Raises:
            UnitInUse: the unit has an open rental
        """
        with transaction.atomic():
            locked = StockMovements._lock(unit.equipment_id)
            current = cls._lock_unit(unit)

            if current.has_open_rental:
                raise UnitInUse(
                    message="Não é possível excluir uma unidade que está alugada",
                    unit_id=current.pk,
                )

            cls._record_transition(
                locked, current, current.status, None, user,
                reason=f"Exclusão da unidade {current.serial_number}",
            )
            ActivityLog.record(
                action=ActivityAction.DELETE,
                entity='EquipmentUnit',
                entity_id=current.pk,
                description=f"Unidade {current.serial_number} excluída de {locked.name}",
                tenant_id=current.tenant_id,
                user=user,
                status=str(current.status),
            )
            unit_id = current.pk
            current.delete()

        logger.info("stock.unit.deleted", extra={"unit_id": unit_id, "equipment_id": locked.pk})

    # ══════════════════════════════════════════════════════════════
    # RENTALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def deliver_unit(cls, booking_item, unit, user=None) -> BookingUnit:
        """
        Hand a unit over for a booking line: opens the rental and marks it RENTED.

        Raises:
            InvalidTransition: booking not active, unit of another equipment,
                unit not AVAILABLE, or the line already fully delivered
        """
        with transaction.atomic():
            locked = StockMovements._lock(booking_item.equipment_id)
            current = cls._lock_unit(unit)
            booking = booking_item.booking

            if not booking.is_active:
                raise InvalidTransition(
                    message="Reserva não está ativa",
                    booking_id=booking.pk,
                    status=str(booking.status),
                )
            if current.equipment_id != booking_item.equipment_id:
                raise InvalidTransition(
                    message="Unidade não pertence ao equipamento do item",
                    unit_id=current.pk,
                    booking_item_id=booking_item.pk,
                )
            if current.status != UnitStatus.AVAILABLE:
                raise InvalidTransition(
                    message=f"Unidade {current.serial_number} não está disponível",
                    unit_id=current.pk,
                    status=str(current.status),
                )
            delivered = booking_item.units.filter(returned_at__isnull=True).count()
            if delivered >= booking_item.quantity:
                raise InvalidTransition(
                    message="Todas as unidades do item já foram entregues",
                    booking_item_id=booking_item.pk,
                    quantity=booking_item.quantity,
                )

            rental = BookingUnit.objects.create(booking_item=booking_item, unit=current)
            cls._transition(
                locked, current, UnitStatus.RENTED, user,
                reason=f"Entrega para reserva #{booking.booking_number or booking.pk}",
                booking=booking,
            )
            ActivityLog.record(
                action=ActivityAction.CREATE,
                entity='BookingUnit',
                entity_id=rental.pk,
                description=f"Unidade {current.serial_number} entregue",
                tenant_id=current.tenant_id,
                user=user,
                booking_id=booking.pk,
                unit_id=current.pk,
            )

        unit.refresh_from_db()
        return rental

    @classmethod
    def return_unit(cls, booking_unit, status=UnitStatus.AVAILABLE, user=None) -> BookingUnit:
        """
        Close an open rental and move the unit to AVAILABLE, MAINTENANCE or DAMAGED.

        Raises:
            InvalidTransition: rental already closed or status not allowed
        """
        if status not in RETURN_STATUSES:
            raise InvalidTransition(
                message=f"Status de devolução inválido: {status}",
                status=str(status),
                allowed=[str(s) for s in RETURN_STATUSES],
            )

        with transaction.atomic():
            rental = BookingUnit.objects.select_for_update().select_related(
                'booking_item__booking',
            ).get(pk=booking_unit.pk)
            if not rental.is_open:
                raise InvalidTransition(
                    message="Unidade já devolvida",
                    booking_unit_id=rental.pk,
                )

            locked = StockMovements._lock(rental.booking_item.equipment_id)
            current = cls._lock_unit(rental.unit_id)

            rental.returned_at = timezone.now()
            rental.save(update_fields=['returned_at'])

            booking = rental.booking_item.booking
            cls._transition(
                locked, current, status, user,
                reason=f"Devolução da reserva #{booking.booking_number or booking.pk}",
                booking=booking,
            )
            ActivityLog.record(
                action=ActivityAction.UPDATE,
                entity='BookingUnit',
                entity_id=rental.pk,
                description=f"Unidade {current.serial_number} devolvida ({status})",
                tenant_id=current.tenant_id,
                user=user,
                booking_id=booking.pk,
                unit_id=current.pk,
                status=str(status),
            )

        booking_unit.refresh_from_db()
        return rental

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def list_units(cls, equipment, status=None) -> UnitList:
        """Units of an equipment (newest first) plus counts per status."""
        units = list(EquipmentUnit.objects.filter(equipment=equipment))
        stats = {'total': len(units)}
        for choice in UnitStatus:
            stats[choice.value.lower()] = sum(1 for u in units if u.status == choice)
        if status:
            units = [u for u in units if u.status == status]
        return UnitList(units=units, stats=stats)

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _lock_unit(cls, unit) -> EquipmentUnit:
        pk = unit.pk if isinstance(unit, EquipmentUnit) else unit
        try:
            return EquipmentUnit.objects.select_for_update().get(pk=pk)
        except EquipmentUnit.DoesNotExist:
            raise NotFound(entity='EquipmentUnit', id=pk) from None

    @classmethod
    def _ensure_unique_serial(cls, tenant_id, serial_number, exclude_pk=None) -> None:
        qs = EquipmentUnit.objects.filter(tenant_id=tenant_id, serial_number=serial_number)
        if exclude_pk is not None:
            qs = qs.exclude(pk=exclude_pk)
        if qs.exists():
            raise DuplicateSerialNumber(serial_number=serial_number)

    @classmethod
    @contextmanager
    def _serial_guard(cls, serial_number):
        """Savepoint turning a unique-serial collision into DuplicateSerialNumber."""
        try:
            with transaction.atomic():
                yield
        except IntegrityError:
            raise DuplicateSerialNumber(serial_number=serial_number) from None

    @classmethod
    def _transition(cls, locked, unit, new_status, user, reason='', booking=None) -> None:
        """Change a locked unit's status and apply the counter delta."""
        old_status = unit.status
        if old_status == new_status:
            return

        if new_status not in RENTAL_STATUSES and unit.has_open_rental:
            raise UnitInUse(
                message="Unidade está alugada. Registre a devolução antes de alterar o status",
                unit_id=unit.pk,
                status=str(old_status),
                requested=str(new_status),
            )

        cls._record_transition(locked, unit, old_status, new_status, user, reason, booking)
        unit.status = new_status
        unit.save(update_fields=['status', 'updated_at'])

        logger.info(
            "stock.unit.status_changed",
            extra={
                "unit_id": unit.pk,
                "equipment_id": locked.pk,
                "old": str(old_status),
                "new": str(new_status),
            },
        )

    @classmethod
    def _record_transition(cls, locked, unit, old_status, new_status, user,
                           reason='', booking=None) -> None:
        """Apply bucket_delta(old, new) and write its ledger row (no-op for empty deltas)."""
        deltas = bucket_delta(old_status, new_status)
        if not deltas:
            return
        ensure_non_negative(locked.snapshot(), deltas)
        StockMovements._apply(
            locked,
            movement_type_for_transition(old_status, new_status),
            1,
            deltas,
            reason=reason,
            user=user,
            tenant_id=locked.tenant_id,
            booking=booking,
            unit=unit,
        )
