"""Tests for tenant lifecycle state."""

from datetime import datetime, timedelta, timezone

import pytest

from insurcheck.exceptions import TenantStateError
from insurcheck.protocols.database import Row
from insurcheck.tenancy.state import (
    STATUS_CATEGORIES,
    StatusCategory,
    TenantState,
    TenantStatus,
    categorize,
)


class TestTenantStatus:
    """Tests for TenantStatus parsing."""

    def test_parse_known_status(self) -> None:
        """Known status strings parse to members."""
        assert TenantStatus.parse("cancelled") is TenantStatus.CANCELLED
        assert TenantStatus.parse("trial_expired") is TenantStatus.TRIAL_EXPIRED

    def test_parse_normalizes_case_and_whitespace(self) -> None:
        """Status strings are normalized before parsing."""
        assert TenantStatus.parse("  Suspended ") is TenantStatus.SUSPENDED

    def test_parse_member_passthrough(self) -> None:
        """Members parse to themselves."""
        assert TenantStatus.parse(TenantStatus.ACTIVE) is TenantStatus.ACTIVE

    def test_parse_unknown_raises(self) -> None:
        """Unknown statuses are rejected instead of falling through."""
        with pytest.raises(TenantStateError, match="archived"):
            TenantStatus.parse("archived")

    def test_parse_non_string_raises(self) -> None:
        """Non-string values are rejected."""
        with pytest.raises(TenantStateError):
            TenantStatus.parse(None)  # type: ignore[arg-type]


class TestCategorize:
    """Tests for the status to category mapping."""

    def test_mapping_is_total(self) -> None:
        """Every status has a category."""
        assert set(STATUS_CATEGORIES) == set(TenantStatus)

    @pytest.mark.parametrize(
        "status,category",
        [
            ("active", StatusCategory.OPERATIONAL),
            ("trial", StatusCategory.OPERATIONAL),
            ("pending", StatusCategory.OPERATIONAL),
            ("deactivated", StatusCategory.DEACTIVATED),
            ("suspended", StatusCategory.DEACTIVATED),
            ("inactive", StatusCategory.DEACTIVATED),
            ("cancelled", StatusCategory.CANCELLED),
            ("subscription_cancelled", StatusCategory.CANCELLED),
            ("trial_expired", StatusCategory.OPERATIONAL),
        ],
    )
    def test_category(self, status: str, category: StatusCategory) -> None:
        """Statuses map to the expected category."""
        assert categorize(TenantStatus(status)) is category


class TestTrialExpiry:
    """Tests for TenantState.trial_expired."""

    def test_past_end_is_expired(self, make_tenant, now) -> None:
        """An active trial that ended yesterday is expired."""
        tenant = make_tenant(is_trial_active=True, trial_ends_at=now - timedelta(days=1))
        assert tenant.trial_expired(now)

    def test_future_end_is_not_expired(self, make_tenant, now) -> None:
        """An active trial ending tomorrow is not expired."""
        tenant = make_tenant(is_trial_active=True, trial_ends_at=now + timedelta(days=1))
        assert not tenant.trial_expired(now)

    def test_end_equal_to_now_is_not_expired(self, make_tenant, now) -> None:
        """Expiry requires the end to be strictly before now."""
        tenant = make_tenant(is_trial_active=True, trial_ends_at=now)
        assert not tenant.trial_expired(now)

    def test_inactive_trial_is_not_expired(self, make_tenant, now) -> None:
        """A past end date is ignored when the trial flag is off."""
        tenant = make_tenant(is_trial_active=False, trial_ends_at=now - timedelta(days=30))
        assert not tenant.trial_expired(now)

    def test_missing_end_is_not_expired(self, make_tenant, now) -> None:
        """An active trial without an end date never expires."""
        tenant = make_tenant(is_trial_active=True, trial_ends_at=None)
        assert not tenant.trial_expired(now)

    def test_naive_timestamps_are_utc(self, make_tenant) -> None:
        """Naive end dates and reference times are compared as UTC."""
        tenant = make_tenant(is_trial_active=True, trial_ends_at=datetime(2026, 1, 1))
        assert tenant.trial_expired(datetime(2026, 1, 2))
        assert tenant.trial_expired(datetime(2026, 1, 2, tzinfo=timezone.utc))


class TestTenantStateConversion:
    """Tests for building tenant snapshots."""

    def test_from_dict_camel_case(self) -> None:
        """camelCase keys are accepted."""
        tenant = TenantState.from_dict({
            "id": 7,
            "status": "trial",
            "isTrialActive": True,
            "trialEndsAt": "2026-02-01T00:00:00Z",
        })

        assert tenant.tenant_id == "7"
        assert tenant.status is TenantStatus.TRIAL
        assert tenant.is_trial_active is True
        assert tenant.trial_ends_at == datetime(2026, 2, 1, tzinfo=timezone.utc)

    def test_from_dict_snake_case(self) -> None:
        """snake_case keys are accepted."""
        tenant = TenantState.from_dict({
            "tenant_id": "9",
            "status": "cancelled",
            "is_trial_active": False,
            "trial_ends_at": None,
        })

        assert tenant.status is TenantStatus.CANCELLED
        assert tenant.trial_ends_at is None

    def test_from_dict_requires_status(self) -> None:
        """A mapping without a status is rejected."""
        with pytest.raises(TenantStateError, match="no status"):
            TenantState.from_dict({"id": "1"})

    def test_from_dict_rejects_bad_timestamp(self) -> None:
        """Unparseable trial end dates are rejected."""
        with pytest.raises(TenantStateError, match="timestamp"):
            TenantState.from_dict({"id": "1", "status": "trial", "trialEndsAt": "next week"})

    def test_from_row(self) -> None:
        """Database rows convert to snapshots."""
        row = Row(_data={
            "id": "42",
            "name": "Acme Insurance",
            "status": "suspended",
            "is_trial_active": 0,
            "trial_ends_at": None,
        })

        tenant = TenantState.from_row(row)

        assert tenant.tenant_id == "42"
        assert tenant.name == "Acme Insurance"
        assert tenant.status is TenantStatus.SUSPENDED
        assert tenant.is_trial_active is False

    def test_to_dict(self, make_tenant, now) -> None:
        """Snapshots serialize with camelCase keys."""
        tenant = make_tenant(status="trial", is_trial_active=True, trial_ends_at=now)

        data = tenant.to_dict()

        assert data == {
            "id": "42",
            "name": "Tenant 42",
            "status": "trial",
            "isTrialActive": True,
            "trialEndsAt": now.isoformat(),
        }
