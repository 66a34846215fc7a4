"""TenantStore protocol for tenant lifecycle lookups."""

from typing import Protocol, runtime_checkable

from insurcheck.tenancy.state import TenantState


@runtime_checkable
class TenantStore(Protocol):
    """Resolves a tenant's lifecycle snapshot by id."""

    async def get_tenant_by_id(self, tenant_id: str) -> TenantState | None:
        """Return the tenant snapshot, or None if no such tenant exists.

        Raises:
            TenantLookupError: If the backing store cannot be queried
        """
        ...
