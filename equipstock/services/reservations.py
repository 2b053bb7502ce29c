"""
Reservations — writes that must re-check availability under lock.

    reserve()            check-and-reserve an item line
    reschedule_booking() calendar drag & drop (conflict guard)
    return_booking()     devolution with damages, through the ledger

Locking order: the booking row first, then its equipment rows in ascending id.
What a booking holds is read only after its row is locked.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date

from django.db import transaction
from django.db.models import F

from equipstock.exceptions import (
    ConflictingReservation,
    InsufficientStock,
    InvalidTransition,
    NotFound,
    StockError,
)
from equipstock.models.activity import ActivityLog
from equipstock.models.booking import Booking, BookingItem
from equipstock.models.enums import ActivityAction, BookingStatus, MovementType
from equipstock.models.equipment import Equipment
from equipstock.models.movement import StockMovement
from equipstock.services.availability import StockAvailability, validate_period
from equipstock.services.movements import StockMovements, validate_quantity

logger = logging.getLogger('equipstock')


@dataclass(frozen=True)
class ReturnLine:
    """Quantities coming back for one booking item."""

    booking_item: BookingItem | int
    returned_qty: int = 0
    damaged_qty: int = 0
    damage_notes: str = ''


@dataclass
class ReturnSummary:
    booking: Booking
    total_returned: int = 0
    total_damaged: int = 0
    completed: bool = False
    movements: list[StockMovement] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            'bookingId': self.booking.pk,
            'status': self.booking.status,
            'totalReturned': self.total_returned,
            'totalDamaged': self.total_damaged,
            'allReturned': self.completed,
            'movements': [m.as_dict() for m in self.movements],
        }


def reserved_quantities(booking) -> dict[int, int]:
    """
    Units the booking holds per equipment id.

    Item lines are summed; the legacy reference adds 1 only for an
    equipment the booking has no item lines for.
    """
    quantities: dict[int, int] = defaultdict(int)
    for equipment_id, quantity in booking.items.values_list('equipment_id', 'quantity'):
        quantities[equipment_id] += quantity
    if booking.equipment_id and booking.equipment_id not in quantities:
        quantities[booking.equipment_id] = 1
    return dict(quantities)


def _lock_booking(booking) -> Booking:
    """Re-read the booking row under select_for_update(). Must run inside atomic()."""
    pk = booking.pk if isinstance(booking, Booking) else booking
    try:
        return Booking.objects.select_for_update().get(pk=pk)
    except Booking.DoesNotExist:
        raise NotFound(entity='Booking', id=pk) from None


def _lock_equipment(ids) -> dict[int, Equipment]:
    """Lock equipment rows in ascending id order."""
    locked = {}
    for pk in sorted(ids):
        locked[pk] = StockMovements._lock(pk)
    return locked


class StockReservations:
    """Reservation write methods."""

    @classmethod
    def reserve(cls, booking, equipment, quantity, user=None) -> BookingItem:
        """
        Add `quantity` units of `equipment` to an active booking, if the
        booking's period still has room.

        Raises:
            StockError('INVALID_QUANTITY'): quantity not positive
            InvalidTransition: booking not PENDING/CONFIRMED
            InsufficientStock: bucket 'available_for_period' short

        Concurrency:
            - Runs under transaction.atomic()
            - select_for_update() on the Booking, then on the Equipment
            - Availability is recomputed after the lock
        """
        validate_quantity(quantity)

        with transaction.atomic():
            current = _lock_booking(booking)
            locked = StockMovements._lock(equipment)
            if not current.is_active:
                raise InvalidTransition(
                    message="Reserva não está ativa",
                    booking_id=current.pk,
                    status=str(current.status),
                )

            own = reserved_quantities(current).get(locked.pk, 0)
            result = StockAvailability.check_availability(
                locked,
                current.start_date,
                current.end_date,
                quantity=quantity + own,
                exclude_booking=current,
            )
            if not result.is_available:
                room = max(0, result.available_for_period - own)
                raise InsufficientStock(
                    'available_for_period',
                    room,
                    quantity,
                    message=(
                        "Equipamento inativo" if locked.is_inactive
                        else f"Apenas {room} unidade(s) disponível(is). Solicitado: {quantity}"
                    ),
                    equipment_id=locked.pk,
                    conflicts=[c.as_dict() for c in result.conflicts],
                )

            item = BookingItem.objects.create(
                booking=current,
                equipment=locked,
                quantity=quantity,
            )
            ActivityLog.record(
                action=ActivityAction.CREATE,
                entity='BookingItem',
                entity_id=item.pk,
                description=(
                    f"{quantity} unidade(s) de {locked.name} reservada(s) - "
                    f"Reserva #{current.booking_number or current.pk}"
                ),
                tenant_id=current.tenant_id,
                user=user,
                booking_id=current.pk,
                equipment_id=locked.pk,
                quantity=quantity,
            )

        logger.info(
            "stock.reservation.created",
            extra={"booking_id": booking.pk, "equipment_id": locked.pk, "qty": quantity},
        )
        return item

    @classmethod
    def reschedule_booking(cls, booking, start: date, end: date, user=None) -> Booking:
        """
        Move a booking to [start, end] if every equipment it holds still fits.

        Raises:
            StockError('INVALID_PERIOD'): start > end
            InvalidTransition: booking not PENDING/CONFIRMED
            ConflictingReservation: some equipment would be over-committed;
                data['conflicts'] lists them per equipment

        Concurrency:
            - Locks the Booking first, so no line can be added meanwhile
            - Then every held Equipment, in ascending id order
        """
        validate_period(start, end)

        with transaction.atomic():
            current = _lock_booking(booking)
            quantities = reserved_quantities(current)
            locked = _lock_equipment(quantities)

            if not current.is_active:
                raise InvalidTransition(
                    message="Apenas reservas pendentes ou confirmadas podem ser remarcadas",
                    booking_id=current.pk,
                    status=str(current.status),
                )

            conflicts = []
            for equipment_id, requested in quantities.items():
                result = StockAvailability.check_availability(
                    locked[equipment_id], start, end,
                    quantity=requested,
                    exclude_booking=current,
                )
                if result.available_for_period < requested:
                    conflicts.append({
                        'equipmentId': equipment_id,
                        'equipmentName': locked[equipment_id].name,
                        'requested': requested,
                        'availableForPeriod': result.available_for_period,
                        'bookings': [c.as_dict() for c in result.conflicts],
                    })

            if conflicts:
                raise ConflictingReservation(
                    booking_id=current.pk,
                    start_date=start.isoformat(),
                    end_date=end.isoformat(),
                    conflicts=conflicts,
                )

            old_start, old_end = current.start_date, current.end_date
            current.start_date = start
            current.end_date = end
            current.save(update_fields=['start_date', 'end_date', 'updated_at'])

            ActivityLog.record(
                action=ActivityAction.UPDATE,
                entity='Booking',
                entity_id=current.pk,
                description=(
                    f"Reserva #{current.booking_number or current.pk} remarcada: "
                    f"{old_start:%d/%m/%Y}-{old_end:%d/%m/%Y} → {start:%d/%m/%Y}-{end:%d/%m/%Y}"
                ),
                tenant_id=current.tenant_id,
                user=user,
                old_start=old_start.isoformat(),
                old_end=old_end.isoformat(),
                new_start=start.isoformat(),
                new_end=end.isoformat(),
            )

        logger.info(
            "stock.booking.rescheduled",
            extra={"booking_id": current.pk, "start": str(start), "end": str(end)},
        )
        booking.refresh_from_db()
        return booking

    @classmethod
    def return_booking(cls, booking, items, user=None, notes='') -> ReturnSummary:
        """
        Register the devolution of a booking.

        Returned units go reserved -> available (RENTAL_RETURN); damaged
        units go reserved -> damaged (DAMAGE). The booking is COMPLETED once
        every item is fully accounted for.

        Args:
            booking: Booking
            items: ReturnLine values, or (booking_item, returned_qty, damaged_qty[, damage_notes]) tuples
            notes: Appended to the booking notes on completion

        Raises:
            InvalidTransition: booking COMPLETED/CANCELLED, or item of SERIALIZED equipment
            NotFound: item not part of the booking
            StockError('INVALID_QUANTITY'): negative quantities or more than pending
            InsufficientStock: reserved bucket short (counters out of sync)
        """
        lines = [line if isinstance(line, ReturnLine) else ReturnLine(*line) for line in items]

        with transaction.atomic():
            current = _lock_booking(booking)
            booking_items = {
                item.pk: item
                for item in BookingItem.objects.filter(booking=current).select_related('equipment')
            }
            _lock_equipment({item.equipment_id for item in booking_items.values()})

            if current.status == BookingStatus.COMPLETED:
                raise InvalidTransition(message="Esta reserva já foi concluída", booking_id=current.pk)
            if current.status == BookingStatus.CANCELLED:
                raise InvalidTransition(message="Esta reserva foi cancelada", booking_id=current.pk)

            summary = ReturnSummary(booking=current)
            label = f"Reserva #{current.booking_number or current.pk}"

            for line in lines:
                item_id = getattr(line.booking_item, 'pk', line.booking_item)
                item = booking_items.get(item_id)
                if item is None:
                    raise NotFound(
                        message=f"Item {item_id} não encontrado na reserva",
                        entity='BookingItem',
                        id=item_id,
                    )
                cls._validate_return_line(item, line)

                if line.returned_qty:
                    summary.movements.append(StockMovements.record_movement(
                        item.equipment,
                        MovementType.RENTAL_RETURN,
                        line.returned_qty,
                        reason=f"Devolução - {label}",
                        user=user,
                        tenant_id=current.tenant_id,
                        booking=current,
                    ))
                    summary.total_returned += line.returned_qty

                if line.damaged_qty:
                    summary.movements.append(StockMovements.record_movement(
                        item.equipment,
                        MovementType.DAMAGE,
                        line.damaged_qty,
                        reason=line.damage_notes or f"Avaria na devolução - {label}",
                        user=user,
                        tenant_id=current.tenant_id,
                        booking=current,
                        source='reserved',
                    ))
                    summary.total_damaged += line.damaged_qty

                item_notes = item.notes
                if line.damage_notes:
                    item_notes = f"{item.notes}\nAvaria: {line.damage_notes}".strip()
                BookingItem.objects.filter(pk=item.pk).update(
                    returned_qty=F('returned_qty') + line.returned_qty,
                    damaged_qty=F('damaged_qty') + line.damaged_qty,
                    notes=item_notes,
                )
                item.refresh_from_db()

            summary.completed = bool(booking_items) and all(
                item.is_complete for item in booking_items.values()
            )
            if summary.completed:
                current.status = BookingStatus.COMPLETED
                if notes:
                    current.notes = f"{current.notes}\n\nNotas da devolução: {notes}".strip()
                current.save(update_fields=['status', 'notes', 'updated_at'])

            ActivityLog.record(
                action=ActivityAction.UPDATE,
                entity='Booking',
                entity_id=current.pk,
                description=(
                    f"Devolução registrada - {label}: "
                    f"{summary.total_returned} item(ns) OK, {summary.total_damaged} com avaria"
                ),
                tenant_id=current.tenant_id,
                user=user,
                total_returned=summary.total_returned,
                total_damaged=summary.total_damaged,
                completed=summary.completed,
                items=[
                    {
                        'bookingItemId': getattr(line.booking_item, 'pk', line.booking_item),
                        'returnedQty': line.returned_qty,
                        'damagedQty': line.damaged_qty,
                    }
                    for line in lines
                ],
            )

        logger.info(
            "stock.booking.returned",
            extra={
                "booking_id": current.pk,
                "returned": summary.total_returned,
                "damaged": summary.total_damaged,
                "completed": summary.completed,
            },
        )
        booking.refresh_from_db()
        return summary

    @classmethod
    def _validate_return_line(cls, item, line) -> None:
        if item.equipment.is_serialized:
            raise InvalidTransition(
                message="Equipamento serializado: registre a devolução por unidade",
                booking_item_id=item.pk,
            )
        for qty in (line.returned_qty, line.damaged_qty):
            if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
                raise StockError('INVALID_QUANTITY', requested=qty, booking_item_id=item.pk)

        requested = line.returned_qty + line.damaged_qty
        if requested > item.pending_qty:
            raise StockError(
                'INVALID_QUANTITY',
                f"Quantidade de devolução ({requested}) excede o pendente "
                f"({item.pending_qty}) para \"{item.equipment.name}\"",
                booking_item_id=item.pk,
                requested=requested,
                available=item.pending_qty,
            )
