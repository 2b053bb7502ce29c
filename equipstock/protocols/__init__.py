"""
Equipstock Protocols.

Defines interfaces for external system integration.
"""

from equipstock.protocols.tenancy import TenantResolver

__all__ = [
    "TenantResolver",
]
