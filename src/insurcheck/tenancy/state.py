"""Tenant lifecycle state as loaded per request.

Statuses fall into one of three access categories. Both ``cancelled`` and
``subscription_cancelled`` count as cancelled, widening the single
``cancelled`` status older records were checked against. A status never
expires a trial by itself: ``trial_expired`` is operational and trial expiry
is decided from ``is_trial_active`` and ``trial_ends_at`` alone.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from insurcheck.exceptions import TenantStateError


class TenantStatus(str, Enum):
    """Every lifecycle status a tenant record can carry."""

    ACTIVE = "active"
    TRIAL = "trial"
    TRIAL_EXPIRED = "trial_expired"
    DEACTIVATED = "deactivated"
    SUSPENDED = "suspended"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    CANCELLED = "cancelled"
    INACTIVE = "inactive"
    PENDING = "pending"

    @classmethod
    def parse(cls, value: "str | TenantStatus") -> "TenantStatus":
        """Parse a stored status string.

        Raises:
            TenantStateError: If the value is not a known status
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise TenantStateError(f"Tenant status must be a string, got {type(value).__name__}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise TenantStateError(f"Unknown tenant status: {value!r}") from None


class StatusCategory(str, Enum):
    """What a status means for access decisions."""

    OPERATIONAL = "operational"
    DEACTIVATED = "deactivated"
    CANCELLED = "cancelled"


STATUS_CATEGORIES: dict[TenantStatus, StatusCategory] = {
    TenantStatus.ACTIVE: StatusCategory.OPERATIONAL,
    TenantStatus.TRIAL: StatusCategory.OPERATIONAL,
    TenantStatus.PENDING: StatusCategory.OPERATIONAL,
    TenantStatus.TRIAL_EXPIRED: StatusCategory.OPERATIONAL,
    TenantStatus.DEACTIVATED: StatusCategory.DEACTIVATED,
    TenantStatus.SUSPENDED: StatusCategory.DEACTIVATED,
    TenantStatus.INACTIVE: StatusCategory.DEACTIVATED,
    TenantStatus.CANCELLED: StatusCategory.CANCELLED,
    TenantStatus.SUBSCRIPTION_CANCELLED: StatusCategory.CANCELLED,
}


def categorize(status: TenantStatus) -> StatusCategory:
    """Map a status to its access category."""
    return STATUS_CATEGORIES[status]


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp. Naive values are read as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise TenantStateError(f"Invalid trial end timestamp: {value!r}") from None
    else:
        raise TenantStateError(f"Invalid trial end timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class TenantState:
    """Read-only snapshot of a tenant's lifecycle fields."""

    tenant_id: str
    status: TenantStatus
    is_trial_active: bool = False
    trial_ends_at: datetime | None = None
    name: str | None = None

    @property
    def category(self) -> StatusCategory:
        return categorize(self.status)

    def trial_expired(self, now: datetime | None = None) -> bool:
        """Whether an active trial has an end date strictly in the past."""
        if not self.is_trial_active or self.trial_ends_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        ends_at = self.trial_ends_at
        if ends_at.tzinfo is None:
            ends_at = ends_at.replace(tzinfo=timezone.utc)
        return ends_at < now

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        return {
            "id": self.tenant_id,
            "name": self.name,
            "status": self.status.value,
            "isTrialActive": self.is_trial_active,
            "trialEndsAt": self.trial_ends_at.isoformat() if self.trial_ends_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TenantState":
        """Create from a mapping with snake_case or camelCase keys."""
        tenant_id = data.get("tenant_id", data.get("id"))
        if tenant_id is None:
            raise TenantStateError("Tenant mapping has no id")
        if "status" not in data:
            raise TenantStateError(f"Tenant {tenant_id} has no status")

        return cls(
            tenant_id=str(tenant_id),
            status=TenantStatus.parse(data["status"]),
            is_trial_active=bool(data.get("is_trial_active", data.get("isTrialActive", False))),
            trial_ends_at=_parse_timestamp(data.get("trial_ends_at", data.get("trialEndsAt"))),
            name=data.get("name"),
        )

    @classmethod
    def from_row(cls, row: Any) -> "TenantState":
        """Create from a database row of the tenants table."""
        return cls(
            tenant_id=str(row.id),
            status=TenantStatus.parse(row.status),
            is_trial_active=bool(row.is_trial_active),
            trial_ends_at=_parse_timestamp(row.trial_ends_at),
            name=row.name,
        )
