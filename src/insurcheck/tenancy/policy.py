"""Tenant lifecycle access policy for document operations.

Both evaluators are pure: they look only at the snapshot, operation and
role they are given and return an ``AccessDecision``. Checks run in a
fixed order and the first match wins:

    deactivated -> cancelled -> trial expired -> allow

The document gate lets a cancelled tenant keep reading (view, download);
the upload gate blocks a cancelled tenant outright. Uploads never look a
tenant up themselves, so a missing snapshot is reported as
``TENANT_INFO_MISSING`` rather than ``TENANT_NOT_FOUND``.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from insurcheck.tenancy.state import StatusCategory, TenantState


class CallerRole(str, Enum):
    """Role of the authenticated caller."""

    SUPER_ADMIN = "super-admin"
    TENANT_ADMIN = "tenant-admin"
    USER = "user"

    @classmethod
    def parse(cls, value: "str | CallerRole | None") -> "CallerRole":
        """Parse a role claim. Unknown roles get the least privilege."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.USER


class OperationKind(str, Enum):
    """Whether an operation mutates documents."""

    READ = "read"
    WRITE = "write"


WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def operation_kind_for_method(method: str) -> OperationKind:
    """Classify an HTTP verb."""
    return OperationKind.WRITE if method.upper() in WRITE_METHODS else OperationKind.READ


class ReasonCode(str, Enum):
    """Machine-readable outcome of an access check."""

    OK = "OK"
    TENANT_NOT_FOUND = "TENANT_NOT_FOUND"
    TENANT_DEACTIVATED = "TENANT_DEACTIVATED"
    SUBSCRIPTION_CANCELLED = "SUBSCRIPTION_CANCELLED"
    TRIAL_EXPIRED = "TRIAL_EXPIRED"
    TENANT_INFO_MISSING = "TENANT_INFO_MISSING"


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access check."""

    allowed: bool
    reason_code: ReasonCode
    message: str = ""
    read_only: bool = False
    upgrade_required: bool = False
    allowed_actions: tuple[str, ...] = ()

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True, reason_code=ReasonCode.OK)

    @classmethod
    def deny(cls, reason_code: ReasonCode, message: str, **flags: Any) -> "AccessDecision":
        return cls(allowed=False, reason_code=reason_code, message=message, **flags)

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON body returned for a denial."""
        payload: dict[str, Any] = {
            "success": self.allowed,
            "message": self.message,
            "code": self.reason_code.value,
        }
        if self.read_only:
            payload["readOnly"] = True
        if self.upgrade_required:
            payload["upgradeRequired"] = True
        if self.allowed_actions:
            payload["allowedActions"] = list(self.allowed_actions)
        return payload


def evaluate_document_access(
    tenant: TenantState | None,
    operation: OperationKind,
    role: CallerRole,
    now: datetime | None = None,
) -> AccessDecision:
    """Decide whether a document read or write may proceed.

    Args:
        tenant: Tenant snapshot, or None when the lookup found no tenant
        operation: Read or write
        role: Caller role
        now: Reference time for trial expiry (defaults to current UTC time)

    Returns:
        The access decision
    """
    if role is CallerRole.SUPER_ADMIN:
        return AccessDecision.allow()

    if tenant is None:
        return AccessDecision.deny(
            ReasonCode.TENANT_NOT_FOUND,
            "Your account is inactive. Please contact your administrator.",
        )

    category = tenant.category

    if category is StatusCategory.DEACTIVATED:
        return AccessDecision.deny(
            ReasonCode.TENANT_DEACTIVATED,
            "Your account is inactive. Document access is not available.",
            read_only=True,
        )

    if category is StatusCategory.CANCELLED and operation is OperationKind.WRITE:
        return AccessDecision.deny(
            ReasonCode.SUBSCRIPTION_CANCELLED,
            "Your subscription is inactive. Please renew to regain full access.",
            read_only=True,
            allowed_actions=("view", "download"),
        )

    if tenant.trial_expired(now):
        return AccessDecision.deny(
            ReasonCode.TRIAL_EXPIRED,
            "Your trial period has ended. Please upgrade to continue.",
            upgrade_required=True,
        )

    return AccessDecision.allow()


def evaluate_upload_access(
    tenant: TenantState | None,
    role: CallerRole,
    now: datetime | None = None,
) -> AccessDecision:
    """Decide whether a document upload may proceed.

    Args:
        tenant: Tenant snapshot already attached upstream, or None
        role: Caller role
        now: Reference time for trial expiry (defaults to current UTC time)

    Returns:
        The access decision
    """
    if role is CallerRole.SUPER_ADMIN:
        return AccessDecision.allow()

    if tenant is None:
        return AccessDecision.deny(
            ReasonCode.TENANT_INFO_MISSING,
            "Tenant information not available",
        )

    category = tenant.category

    if category is StatusCategory.DEACTIVATED:
        return AccessDecision.deny(
            ReasonCode.TENANT_DEACTIVATED,
            "Your account is inactive. Document uploads are not allowed.",
            read_only=True,
        )

    if category is StatusCategory.CANCELLED:
        return AccessDecision.deny(
            ReasonCode.SUBSCRIPTION_CANCELLED,
            "Your subscription is inactive. Please renew to upload documents.",
            upgrade_required=True,
        )

    if tenant.trial_expired(now):
        return AccessDecision.deny(
            ReasonCode.TRIAL_EXPIRED,
            "Your trial period has ended. Please upgrade to upload documents.",
            upgrade_required=True,
        )

    # TODO: enforce the tenant storage quota here once per-tenant usage totals are stored
    return AccessDecision.allow()
