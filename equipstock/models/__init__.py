"""
Equipstock Models.

Core models for equipment stock:
- Equipment: Rentable item with its four-bucket stock aggregate
- StockMovement: Immutable ledger of changes
- EquipmentUnit: Serialized physical unit
- Booking / BookingItem / BookingUnit: Reservations read by availability
- ActivityLog: Audit trail
"""

from equipstock.models.activity import ActivityLog
from equipstock.models.booking import Booking, BookingItem, BookingUnit
from equipstock.models.enums import (
    ActivityAction,
    BookingStatus,
    EquipmentStatus,
    MovementType,
    TrackingType,
    UnitStatus,
)
from equipstock.models.equipment import Equipment
from equipstock.models.movement import StockMovement
from equipstock.models.unit import EquipmentUnit

__all__ = [
    'TrackingType',
    'EquipmentStatus',
    'MovementType',
    'UnitStatus',
    'BookingStatus',
    'ActivityAction',
    'Equipment',
    'StockMovement',
    'EquipmentUnit',
    'Booking',
    'BookingItem',
    'BookingUnit',
    'ActivityLog',
]
