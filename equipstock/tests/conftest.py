"""
Pytest fixtures for Equipstock tests.
"""

from datetime import date, timedelta

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache

from equipstock import stock
from equipstock.adapters.tenancy import reset_tenant_resolver
from equipstock.models import Booking, BookingItem, BookingStatus, TrackingType


User = get_user_model()

TENANT = 'locadora-a'
OTHER_TENANT = 'locadora-b'


@pytest.fixture(autouse=True)
def _isolation():
    """Fresh alert cache and resolver for every test."""
    cache.clear()
    reset_tenant_resolver()
    yield
    cache.clear()
    reset_tenant_resolver()


@pytest.fixture
def tenant_id():
    return TENANT


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='testuser',
        password='testpass123'
    )


@pytest.fixture
def furadeira(db):
    """QUANTITY equipment with 10 units in stock."""
    return stock.register_equipment(
        TENANT,
        'Furadeira de Impacto',
        initial_stock=10,
        min_stock_level=2,
        category='Ferramentas',
    )


@pytest.fixture
def andaime(db):
    """QUANTITY equipment with no stock."""
    return stock.register_equipment(TENANT, 'Andaime Tubular', category='Estruturas')


@pytest.fixture
def gerador(db):
    """SERIALIZED equipment without units."""
    return stock.register_equipment(
        TENANT,
        'Gerador 5kVA',
        tracking_type=TrackingType.SERIALIZED,
        category='Energia',
    )


@pytest.fixture
def gerador_units(gerador):
    """Three AVAILABLE units of the generator."""
    return [
        stock.create_unit(gerador, f'GER-00{i}')
        for i in range(1, 4)
    ]


@pytest.fixture
def today():
    """Return today's date."""
    return date.today()


@pytest.fixture
def jan10():
    return date(2025, 1, 10)


@pytest.fixture
def jan15():
    return date(2025, 1, 15)


@pytest.fixture
def make_booking(db):
    """
    Factory for bookings.

    make_booking(start, end, items=[(equipment, qty)], legacy=equipment, status=...)
    """
    counter = {'n': 0}

    def _make(start, end, items=(), legacy=None, status=BookingStatus.CONFIRMED,
              tenant_id=TENANT, customer='Construtora Alfa'):
        counter['n'] += 1
        booking = Booking.objects.create(
            tenant_id=tenant_id,
            booking_number=f'R-{counter["n"]:04d}',
            customer_name=customer,
            equipment=legacy,
            start_date=start,
            end_date=end,
            status=status,
        )
        for equipment, quantity in items:
            BookingItem.objects.create(booking=booking, equipment=equipment, quantity=quantity)
        return booking

    return _make


@pytest.fixture
def next_week(today):
    """(start, end) of a 3-day period a week from today."""
    start = today + timedelta(days=7)
    return start, start + timedelta(days=2)
