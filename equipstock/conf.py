"""
Equipstock configuration.

Usage in settings.py:
    EQUIPSTOCK = {
        "ALERTS_CACHE_TTL": 30,
        "ALERTS_CACHE_ALIAS": "default",
        "MOVEMENTS_PAGE_SIZE": 20,
        "TENANT_RESOLVER": "equipstock.adapters.tenancy.RequestTenantResolver",
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class EquipstockSettings:
    """Equipstock configuration settings."""

    # Seconds a tenant's alert report stays cached (0 = no caching)
    ALERTS_CACHE_TTL: int = 30

    # Django cache alias used for alert reports
    ALERTS_CACHE_ALIAS: str = "default"

    # Default and maximum page sizes for movement history
    MOVEMENTS_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Tenant/actor resolution backend for the HTTP views (dotted path)
    TENANT_RESOLVER: str = "equipstock.adapters.tenancy.RequestTenantResolver"

    # Low-stock threshold for newly registered equipment
    DEFAULT_MIN_STOCK_LEVEL: int = 1


def get_equipstock_settings() -> EquipstockSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "EQUIPSTOCK", {})
    return EquipstockSettings(**{
        k: v for k, v in user_settings.items()
        if k in EquipstockSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_equipstock_settings(), name)


equipstock_settings = _LazySettings()
