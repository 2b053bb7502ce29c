"""
Equipstock Adapters.

Implementations of protocols for external systems.
"""

from equipstock.adapters.tenancy import (
    RequestTenantResolver,
    get_tenant_resolver,
    reset_tenant_resolver,
)

__all__ = [
    "RequestTenantResolver",
    "get_tenant_resolver",
    "reset_tenant_resolver",
]
