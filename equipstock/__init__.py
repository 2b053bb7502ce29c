"""
Django Equipstock — Estoque e Disponibilidade de Equipamentos para Locação.

Uso:
    from equipstock import stock, StockError

    stock.record_movement(furadeira, 'PURCHASE', 5, reason='Nota 123')
    stock.check_availability(furadeira, sexta, domingo, quantity=3)
    stock.get_alerts(tenant_id)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'stock':
        from equipstock.service import Stock
        return Stock
    elif name == 'StockError':
        from equipstock.exceptions import StockError
        return StockError
    elif name == 'Equipment':
        from equipstock.models.equipment import Equipment
        return Equipment
    elif name == 'StockMovement':
        from equipstock.models.movement import StockMovement
        return StockMovement
    elif name == 'EquipmentUnit':
        from equipstock.models.unit import EquipmentUnit
        return EquipmentUnit
    elif name == 'Booking':
        from equipstock.models.booking import Booking
        return Booking
    elif name == 'BookingItem':
        from equipstock.models.booking import BookingItem
        return BookingItem
    elif name == 'MovementType':
        from equipstock.models.enums import MovementType
        return MovementType
    elif name == 'UnitStatus':
        from equipstock.models.enums import UnitStatus
        return UnitStatus
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'stock',
    'StockError',
    'Equipment',
    'StockMovement',
    'EquipmentUnit',
    'Booking',
    'BookingItem',
    'MovementType',
    'UnitStatus',
]

__version__ = '0.1.0'
