"""Tests for the tenant lifecycle access policy."""

from datetime import timedelta

import pytest

from insurcheck.tenancy.policy import (
    AccessDecision,
    CallerRole,
    OperationKind,
    ReasonCode,
    evaluate_document_access,
    evaluate_upload_access,
    operation_kind_for_method,
)

DEACTIVATED_STATUSES = ["deactivated", "suspended", "inactive"]


class TestOperationKind:
    """Tests for HTTP verb classification."""

    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE", "delete"])
    def test_mutating_verbs_are_writes(self, method: str) -> None:
        assert operation_kind_for_method(method) is OperationKind.WRITE

    @pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS"])
    def test_other_verbs_are_reads(self, method: str) -> None:
        assert operation_kind_for_method(method) is OperationKind.READ


class TestCallerRole:
    """Tests for role parsing."""

    def test_known_roles(self) -> None:
        assert CallerRole.parse("super-admin") is CallerRole.SUPER_ADMIN
        assert CallerRole.parse("tenant-admin") is CallerRole.TENANT_ADMIN

    def test_unknown_role_is_least_privileged(self) -> None:
        assert CallerRole.parse("superadmin") is CallerRole.USER
        assert CallerRole.parse(None) is CallerRole.USER


class TestDocumentAccess:
    """Tests for evaluate_document_access."""

    @pytest.mark.parametrize("status", DEACTIVATED_STATUSES)
    @pytest.mark.parametrize("operation", list(OperationKind))
    def test_deactivated_blocks_everything(self, make_tenant, now, status, operation) -> None:
        """Deactivated tenants are denied regardless of trial fields."""
        tenant = make_tenant(
            status=status,
            is_trial_active=True,
            trial_ends_at=now - timedelta(days=1),
        )

        decision = evaluate_document_access(tenant, operation, CallerRole.USER, now)

        assert not decision.allowed
        assert decision.reason_code is ReasonCode.TENANT_DEACTIVATED
        assert decision.read_only is True

    def test_cancelled_allows_reads(self, make_tenant, now) -> None:
        """A cancelled subscription still allows reading."""
        tenant = make_tenant(status="cancelled")

        decision = evaluate_document_access(tenant, OperationKind.READ, CallerRole.USER, now)

        assert decision.allowed
        assert decision.reason_code is ReasonCode.OK

    def test_cancelled_blocks_writes(self, make_tenant, now) -> None:
        """A cancelled subscription is read-only."""
        tenant = make_tenant(status="cancelled")

        decision = evaluate_document_access(tenant, OperationKind.WRITE, CallerRole.USER, now)

        assert not decision.allowed
        assert decision.reason_code is ReasonCode.SUBSCRIPTION_CANCELLED
        assert decision.read_only is True
        assert decision.allowed_actions == ("view", "download")
        assert decision.upgrade_required is False

    def test_subscription_cancelled_status_is_cancelled(self, make_tenant, now) -> None:
        """The subscription_cancelled status behaves like cancelled."""
        tenant = make_tenant(status="subscription_cancelled")

        write = evaluate_document_access(tenant, OperationKind.WRITE, CallerRole.USER, now)
        read = evaluate_document_access(tenant, OperationKind.READ, CallerRole.USER, now)

        assert write.reason_code is ReasonCode.SUBSCRIPTION_CANCELLED
        assert read.allowed

    @pytest.mark.parametrize("operation", list(OperationKind))
    def test_expired_trial_blocks_everything(self, make_tenant, now, operation) -> None:
        """An expired trial blocks reads and writes even for active tenants."""
        tenant = make_tenant(
            status="active",
            is_trial_active=True,
            trial_ends_at=now - timedelta(days=1),
        )

        decision = evaluate_document_access(tenant, operation, CallerRole.USER, now)

        assert not decision.allowed
        assert decision.reason_code is ReasonCode.TRIAL_EXPIRED
        assert decision.upgrade_required is True

    @pytest.mark.parametrize("operation", list(OperationKind))
    def test_trial_expired_status_follows_trial_fields(self, make_tenant, now, operation) -> None:
        """The trial_expired status alone does not deny; the timestamps decide."""
        tenant = make_tenant(
            status="trial_expired",
            is_trial_active=True,
            trial_ends_at=now + timedelta(days=7),
        )

        assert evaluate_document_access(tenant, operation, CallerRole.USER, now).allowed
        assert evaluate_document_access(
            make_tenant(status="trial_expired"), operation, CallerRole.USER, now
        ).allowed

    def test_trial_expired_status_with_past_end(self, make_tenant, now) -> None:
        tenant = make_tenant(
            status="trial_expired",
            is_trial_active=True,
            trial_ends_at=now - timedelta(days=1),
        )

        decision = evaluate_document_access(tenant, OperationKind.READ, CallerRole.USER, now)

        assert decision.reason_code is ReasonCode.TRIAL_EXPIRED

    @pytest.mark.parametrize("operation", list(OperationKind))
    def test_running_trial_is_allowed(self, make_tenant, now, operation) -> None:
        """A trial ending in the future is not denied."""
        tenant = make_tenant(
            status="trial",
            is_trial_active=True,
            trial_ends_at=now + timedelta(days=1),
        )

        decision = evaluate_document_access(tenant, operation, CallerRole.USER, now)

        assert decision.allowed

    def test_cancelled_read_with_expired_trial_reports_trial(self, make_tenant, now) -> None:
        """Reads skip the cancellation rule and reach the trial rule."""
        tenant = make_tenant(
            status="cancelled",
            is_trial_active=True,
            trial_ends_at=now - timedelta(days=1),
        )

        read = evaluate_document_access(tenant, OperationKind.READ, CallerRole.USER, now)
        write = evaluate_document_access(tenant, OperationKind.WRITE, CallerRole.USER, now)

        assert read.reason_code is ReasonCode.TRIAL_EXPIRED
        assert write.reason_code is ReasonCode.SUBSCRIPTION_CANCELLED

    def test_missing_tenant(self, now) -> None:
        """A failed lookup is reported as not found for any operation."""
        for operation in OperationKind:
            decision = evaluate_document_access(None, operation, CallerRole.TENANT_ADMIN, now)
            assert decision.reason_code is ReasonCode.TENANT_NOT_FOUND
            assert not decision.allowed

    @pytest.mark.parametrize("status", ["suspended", "trial_expired", "cancelled"])
    def test_super_admin_always_allowed(self, make_tenant, now, status) -> None:
        """Super-admins bypass every lifecycle rule."""
        tenant = make_tenant(
            status=status,
            is_trial_active=True,
            trial_ends_at=now - timedelta(days=1),
        )

        for operation in OperationKind:
            decision = evaluate_document_access(tenant, operation, CallerRole.SUPER_ADMIN, now)
            assert decision.allowed

    def test_super_admin_without_tenant(self, now) -> None:
        """Super-admins belong to no tenant."""
        decision = evaluate_document_access(None, OperationKind.WRITE, CallerRole.SUPER_ADMIN, now)
        assert decision.allowed

    def test_active_tenant_is_allowed(self, make_tenant, now) -> None:
        decision = evaluate_document_access(
            make_tenant(status="active"), OperationKind.WRITE, CallerRole.USER, now
        )
        assert decision == AccessDecision.allow()


class TestUploadAccess:
    """Tests for evaluate_upload_access."""

    def test_missing_tenant_is_info_missing(self, now) -> None:
        """Uploads never look a tenant up themselves."""
        decision = evaluate_upload_access(None, CallerRole.USER, now)

        assert decision.reason_code is ReasonCode.TENANT_INFO_MISSING
        assert decision.message == "Tenant information not available"

    @pytest.mark.parametrize("status", DEACTIVATED_STATUSES)
    def test_deactivated_blocks_uploads(self, make_tenant, now, status) -> None:
        decision = evaluate_upload_access(make_tenant(status=status), CallerRole.USER, now)

        assert decision.reason_code is ReasonCode.TENANT_DEACTIVATED
        assert "uploads are not allowed" in decision.message

    def test_cancelled_blocks_uploads(self, make_tenant, now) -> None:
        """Cancelled subscriptions cannot upload and must upgrade."""
        decision = evaluate_upload_access(make_tenant(status="cancelled"), CallerRole.USER, now)

        assert not decision.allowed
        assert decision.reason_code is ReasonCode.SUBSCRIPTION_CANCELLED
        assert decision.upgrade_required is True
        assert decision.read_only is False
        assert decision.allowed_actions == ()

    def test_expired_trial_blocks_uploads(self, make_tenant, now) -> None:
        tenant = make_tenant(is_trial_active=True, trial_ends_at=now - timedelta(hours=1))

        decision = evaluate_upload_access(tenant, CallerRole.TENANT_ADMIN, now)

        assert decision.reason_code is ReasonCode.TRIAL_EXPIRED
        assert decision.upgrade_required is True

    def test_super_admin_bypasses(self, now) -> None:
        assert evaluate_upload_access(None, CallerRole.SUPER_ADMIN, now).allowed

    def test_active_tenant_can_upload(self, make_tenant, now) -> None:
        assert evaluate_upload_access(make_tenant(status="active"), CallerRole.USER, now).allowed

    def test_trial_expired_status_with_running_trial_can_upload(self, make_tenant, now) -> None:
        tenant = make_tenant(
            status="trial_expired",
            is_trial_active=True,
            trial_ends_at=now + timedelta(days=7),
        )

        assert evaluate_upload_access(tenant, CallerRole.USER, now).allowed


class TestDecisionPayload:
    """Tests for the HTTP body built from a decision."""

    def test_cancelled_write_payload(self, make_tenant, now) -> None:
        decision = evaluate_document_access(
            make_tenant(status="cancelled"), OperationKind.WRITE, CallerRole.USER, now
        )

        assert decision.to_payload() == {
            "success": False,
            "message": "Your subscription is inactive. Please renew to regain full access.",
            "code": "SUBSCRIPTION_CANCELLED",
            "readOnly": True,
            "allowedActions": ["view", "download"],
        }

    def test_not_found_payload_has_no_flags(self, now) -> None:
        payload = evaluate_document_access(
            None, OperationKind.READ, CallerRole.USER, now
        ).to_payload()

        assert payload == {
            "success": False,
            "message": "Your account is inactive. Please contact your administrator.",
            "code": "TENANT_NOT_FOUND",
        }

    def test_trial_payload(self, make_tenant, now) -> None:
        tenant = make_tenant(is_trial_active=True, trial_ends_at=now - timedelta(days=1))

        payload = evaluate_document_access(
            tenant, OperationKind.WRITE, CallerRole.USER, now
        ).to_payload()

        assert payload["code"] == "TRIAL_EXPIRED"
        assert payload["upgradeRequired"] is True
        assert "readOnly" not in payload
