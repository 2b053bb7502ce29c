"""
Availability — can an equipment serve `quantity` units over [start, end]?

Read-only. Reservations come from two booking shapes:

    legacy  Booking.equipment = X           counts 1
    item    BookingItem.equipment = X       counts item.quantity

Both are folded into one list of Reservation values before summing.

    available_for_period = total - maintenance - damaged - reserved_in_period
"""

from dataclasses import dataclass, field
from datetime import date

from equipstock.exceptions import StockError
from equipstock.models.booking import Booking, BookingItem
from equipstock.models.enums import ACTIVE_BOOKING_STATUSES
from equipstock.services.movements import validate_quantity

LEGACY = 'legacy'
ITEM = 'item'


@dataclass(frozen=True)
class Reservation:
    """Capacity held by one booking over its dates."""

    source: str
    booking_id: int
    booking_number: str
    start_date: date
    end_date: date
    status: str
    customer_name: str
    quantity: int

    def as_dict(self) -> dict:
        return {
            'type': self.source,
            'bookingId': self.booking_id,
            'bookingNumber': self.booking_number,
            'startDate': self.start_date.isoformat(),
            'endDate': self.end_date.isoformat(),
            'status': self.status,
            'customer': self.customer_name,
            'quantity': self.quantity,
        }


@dataclass
class AvailabilityResult:
    equipment_id: int
    equipment_name: str
    equipment_status: str
    start_date: date
    end_date: date
    requested: int
    is_available: bool
    available_for_period: int
    reserved_in_period: int
    stock: dict[str, int]
    conflicts: list[Reservation] = field(default_factory=list)
    message: str = ''

    def as_dict(self) -> dict:
        return {
            'equipment': {
                'id': self.equipment_id,
                'name': self.equipment_name,
                'status': self.equipment_status,
            },
            'period': {
                'startDate': self.start_date.isoformat(),
                'endDate': self.end_date.isoformat(),
            },
            'requestedQuantity': self.requested,
            'stock': {
                'total': self.stock['total'],
                'available': self.stock['available'],
                'maintenance': self.stock['maintenance'],
                'damaged': self.stock['damaged'],
                'reservedInPeriod': self.reserved_in_period,
                'availableForPeriod': self.available_for_period,
            },
            'isAvailable': self.is_available,
            'conflicts': [c.as_dict() for c in self.conflicts],
            'message': self.message,
        }


def validate_period(start: date, end: date) -> None:
    if start > end:
        raise StockError('INVALID_PERIOD', start_date=start.isoformat(), end_date=end.isoformat())


def find_reservations(equipment, start: date, end: date, exclude_booking=None) -> list[Reservation]:
    """
    Active reservations of `equipment` overlapping [start, end], both shapes.

    A booking holding the equipment through item lines is reported by its
    items only, even if its legacy reference points at the same equipment.
    """
    exclude_id = getattr(exclude_booking, 'pk', exclude_booking)

    items = (
        BookingItem.objects
        .filter(
            equipment=equipment,
            booking__status__in=ACTIVE_BOOKING_STATUSES,
            booking__start_date__lte=end,
            booking__end_date__gte=start,
        )
        .select_related('booking')
        .order_by('booking__start_date', 'booking_id', 'pk')
    )
    legacy = (
        Booking.objects
        .filter(equipment=equipment)
        .active()
        .overlapping(start, end)
        .order_by('start_date', 'pk')
    )
    if exclude_id is not None:
        items = items.exclude(booking_id=exclude_id)
        legacy = legacy.exclude(pk=exclude_id)

    reservations = [
        Reservation(
            source=ITEM,
            booking_id=item.booking_id,
            booking_number=item.booking.booking_number,
            start_date=item.booking.start_date,
            end_date=item.booking.end_date,
            status=item.booking.status,
            customer_name=item.booking.customer_name,
            quantity=item.quantity,
        )
        for item in items
    ]
    with_items = {r.booking_id for r in reservations}

    reservations.extend(
        Reservation(
            source=LEGACY,
            booking_id=booking.pk,
            booking_number=booking.booking_number,
            start_date=booking.start_date,
            end_date=booking.end_date,
            status=booking.status,
            customer_name=booking.customer_name,
            quantity=1,
        )
        for booking in legacy
        if booking.pk not in with_items
    )
    return reservations


def availability_message(is_available: bool, inactive: bool, available: int, requested: int) -> str:
    if is_available:
        return f"{available} unidade(s) disponível(is) para o período"
    if inactive:
        return "Equipamento inativo"
    return f"Apenas {max(0, available)} unidade(s) disponível(is). Solicitado: {requested}"


class StockAvailability:
    """Availability query exposed on the Stock facade."""

    @classmethod
    def check_availability(cls, equipment, start: date, end: date, quantity: int = 1,
                           exclude_booking=None) -> AvailabilityResult:
        """
        Check availability of `quantity` units for the inclusive period [start, end].

        Args:
            equipment: Equipment
            start, end: Calendar dates, both inclusive
            quantity: Units requested (positive)
            exclude_booking: Booking (or pk) ignored, for edits of that booking

        Raises:
            StockError('INVALID_PERIOD'): start > end
            StockError('INVALID_QUANTITY'): quantity not positive
        """
        validate_period(start, end)
        validate_quantity(quantity)

        conflicts = find_reservations(equipment, start, end, exclude_booking)
        reserved = sum(r.quantity for r in conflicts)
        available = (
            equipment.total_stock
            - equipment.maintenance_stock
            - equipment.damaged_stock
            - reserved
        )
        inactive = equipment.is_inactive
        is_available = available >= quantity and not inactive

        return AvailabilityResult(
            equipment_id=equipment.pk,
            equipment_name=equipment.name,
            equipment_status=equipment.status,
            start_date=start,
            end_date=end,
            requested=quantity,
            is_available=is_available,
            available_for_period=available,
            reserved_in_period=reserved,
            stock=equipment.snapshot(),
            conflicts=conflicts,
            message=availability_message(is_available, inactive, available, quantity),
        )
