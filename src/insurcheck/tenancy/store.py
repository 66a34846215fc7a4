"""SQL-backed tenant lifecycle store."""

import sqlite3
from datetime import datetime

from insurcheck.exceptions import TenantLookupError, TenantNotFoundError
from insurcheck.observability import Timer, get_logger
from insurcheck.protocols.database import Database
from insurcheck.tenancy.state import TenantState, TenantStatus

logger = get_logger(__name__)

TENANTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS tenants (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    is_trial_active INTEGER NOT NULL DEFAULT 0,
    trial_ends_at TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""


class SQLTenantStore:
    """Reads and writes tenant lifecycle fields in the ``tenants`` table.

    Driver errors are wrapped in ``TenantLookupError`` so callers can tell
    an infrastructure failure apart from a tenant that does not exist.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    async def initialize_schema(self) -> None:
        """Create the tenants table if it does not exist."""
        await self.database.execute(TENANTS_SCHEMA)

    async def get_tenant_by_id(self, tenant_id: str) -> TenantState | None:
        """Look up a tenant snapshot.

        Args:
            tenant_id: Tenant identifier

        Returns:
            The snapshot, or None if no row matches

        Raises:
            TenantLookupError: If the query fails
            TenantStateError: If the stored row cannot be interpreted
        """
        with Timer() as timer:
            try:
                rows = await self.database.execute(
                    """
                    SELECT id, name, status, is_trial_active, trial_ends_at
                    FROM tenants
                    WHERE id = :id
                    LIMIT 1
                    """,
                    {"id": str(tenant_id)},
                )
            except sqlite3.Error as e:
                raise TenantLookupError(f"Failed to load tenant {tenant_id}") from e

        logger.debug(
            "Tenant lookup",
            context={"lookup_tenant_id": str(tenant_id), "found": bool(rows)},
            duration_ms=timer.duration_ms,
        )

        if not rows:
            return None
        return TenantState.from_row(rows[0])

    async def save_tenant(self, tenant: TenantState) -> TenantState:
        """Insert or replace a tenant's lifecycle fields."""
        try:
            await self.database.execute(
                """
                INSERT INTO tenants (id, name, status, is_trial_active, trial_ends_at)
                VALUES (:id, :name, :status, :is_trial_active, :trial_ends_at)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    status = excluded.status,
                    is_trial_active = excluded.is_trial_active,
                    trial_ends_at = excluded.trial_ends_at,
                    updated_at = CURRENT_TIMESTAMP
                """,
                {
                    "id": tenant.tenant_id,
                    "name": tenant.name or tenant.tenant_id,
                    "status": tenant.status.value,
                    "is_trial_active": int(tenant.is_trial_active),
                    "trial_ends_at": tenant.trial_ends_at.isoformat() if tenant.trial_ends_at else None,
                },
            )
        except sqlite3.Error as e:
            raise TenantLookupError(f"Failed to save tenant {tenant.tenant_id}") from e

        logger.info(
            "Tenant saved",
            context={"saved_tenant_id": tenant.tenant_id, "status": tenant.status.value},
        )
        return tenant

    async def set_status(self, tenant_id: str, status: TenantStatus | str) -> TenantState:
        """Move a tenant to a new lifecycle status.

        Raises:
            TenantNotFoundError: If the tenant does not exist
        """
        status = TenantStatus.parse(status)
        try:
            rows = await self.database.execute(
                """
                UPDATE tenants
                SET status = :status, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id
                RETURNING id, name, status, is_trial_active, trial_ends_at
                """,
                {"status": status.value, "id": str(tenant_id)},
            )
        except sqlite3.Error as e:
            raise TenantLookupError(f"Failed to update tenant {tenant_id}") from e

        if not rows:
            raise TenantNotFoundError(f"Tenant not found: {tenant_id}")

        logger.info(
            "Tenant status changed",
            context={"changed_tenant_id": str(tenant_id), "status": status.value},
        )
        return TenantState.from_row(rows[0])

    async def start_trial(self, tenant_id: str, ends_at: datetime) -> TenantState:
        """Put a tenant on a trial that ends at ``ends_at``.

        Raises:
            TenantNotFoundError: If the tenant does not exist
        """
        try:
            rows = await self.database.execute(
                """
                UPDATE tenants
                SET status = :status, is_trial_active = 1, trial_ends_at = :ends_at,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = :id
                RETURNING id, name, status, is_trial_active, trial_ends_at
                """,
                {
                    "status": TenantStatus.TRIAL.value,
                    "ends_at": ends_at.isoformat(),
                    "id": str(tenant_id),
                },
            )
        except sqlite3.Error as e:
            raise TenantLookupError(f"Failed to update tenant {tenant_id}") from e

        if not rows:
            raise TenantNotFoundError(f"Tenant not found: {tenant_id}")
        return TenantState.from_row(rows[0])
