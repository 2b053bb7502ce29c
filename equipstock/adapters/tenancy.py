"""
Equipstock Tenancy Adapter — tenant/actor resolution for the HTTP views.

This adapter loads the configured TenantResolver from settings.

Usage:
    from equipstock.adapters import get_tenant_resolver

    resolver = get_tenant_resolver()
    tenant_id = resolver.tenant_for(request)

Settings:
    EQUIPSTOCK = {
        "TENANT_RESOLVER": "myproject.tenancy.SessionTenantResolver",
    }

Defaults to RequestTenantResolver, which reads attributes set by the
host's middleware.
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from equipstock.conf import equipstock_settings
from equipstock.protocols.tenancy import TenantResolver

logger = logging.getLogger(__name__)


class RequestTenantResolver:
    """
    Reads ``request.tenant_id`` and ``request.user``.

    Suitable when a middleware already resolved the tenant of the
    authenticated user.
    """

    def tenant_for(self, request) -> str | None:
        return getattr(request, "tenant_id", None)

    def actor_for(self, request):
        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated:
            return user
        return None


# Cached resolver instance
_lock = threading.Lock()
_tenant_resolver: TenantResolver | None = None


def get_tenant_resolver() -> TenantResolver:
    """
    Return the configured tenant resolver.

    Returns:
        TenantResolver instance

    Raises:
        ImproperlyConfigured: If TENANT_RESOLVER is empty or import fails
    """
    global _tenant_resolver

    if _tenant_resolver is None:
        with _lock:
            if _tenant_resolver is None:  # double-checked
                resolver_path = equipstock_settings.TENANT_RESOLVER

                if not resolver_path:
                    raise ImproperlyConfigured(
                        "EQUIPSTOCK['TENANT_RESOLVER'] must be configured. "
                        "Example: 'equipstock.adapters.tenancy.RequestTenantResolver'"
                    )

                try:
                    resolver_class = import_string(resolver_path)
                    _tenant_resolver = resolver_class()
                    logger.debug("Loaded tenant resolver: %s", resolver_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import tenant resolver '{resolver_path}': {e}"
                    ) from e

    return _tenant_resolver


def reset_tenant_resolver() -> None:
    """Reset the cached resolver. Useful for testing."""
    global _tenant_resolver
    _tenant_resolver = None
