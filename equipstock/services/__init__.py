"""
Stock services — modular organization of stock operations.

The Stock facade (equipstock.service) inherits from all of them:
    from equipstock.services import StockMovements, StockUnits, StockAvailability
"""

from equipstock.services.adjustments import StockAdjustments
from equipstock.services.alerts import StockAlerts
from equipstock.services.availability import StockAvailability
from equipstock.services.movements import StockMovements
from equipstock.services.queries import StockQueries
from equipstock.services.reservations import StockReservations
from equipstock.services.units import StockUnits

__all__ = [
    'StockAdjustments',
    'StockAlerts',
    'StockAvailability',
    'StockMovements',
    'StockQueries',
    'StockReservations',
    'StockUnits',
]
