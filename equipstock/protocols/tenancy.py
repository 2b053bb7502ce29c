"""
Tenancy Protocol — Interface for tenant and actor resolution.

Equipstock defines this protocol, the host project (auth/session layer)
implements it. The HTTP views never read the session directly.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TenantResolver(Protocol):
    """
    Protocol for resolving who is calling.

    Implementations should provide methods to:
    - Resolve the tenant a request acts on
    - Resolve the user recorded as actor on ledger and audit rows
    """

    def tenant_for(self, request) -> str | None:
        """
        Tenant id of the request.

        Args:
            request: Django HttpRequest

        Returns:
            Tenant id, or None when the caller is not authorized
        """
        ...

    def actor_for(self, request) -> Any | None:
        """
        User acting in the request.

        Args:
            request: Django HttpRequest

        Returns:
            User instance, or None for anonymous/system calls
        """
        ...
