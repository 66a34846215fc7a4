"""Pytest configuration and fixtures."""

import time
from datetime import datetime, timezone

import jwt
import pytest

from insurcheck.tenancy.state import TenantState, TenantStatus

TEST_SECRET = "test-secret-key-for-testing-only-0123456789"


class FakeTenantStore:
    """In-memory tenant store that records lookups."""

    def __init__(self, tenants: list[TenantState] | None = None, error: Exception | None = None) -> None:
        self.tenants = {tenant.tenant_id: tenant for tenant in tenants or []}
        self.error = error
        self.lookups: list[str] = []

    async def get_tenant_by_id(self, tenant_id: str) -> TenantState | None:
        self.lookups.append(tenant_id)
        if self.error:
            raise self.error
        return self.tenants.get(tenant_id)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_tenant():
    """Factory for tenant snapshots."""

    def _make(
        status: TenantStatus | str = TenantStatus.ACTIVE,
        tenant_id: str = "42",
        is_trial_active: bool = False,
        trial_ends_at: datetime | None = None,
    ) -> TenantState:
        return TenantState(
            tenant_id=tenant_id,
            status=TenantStatus.parse(status),
            is_trial_active=is_trial_active,
            trial_ends_at=trial_ends_at,
            name=f"Tenant {tenant_id}",
        )

    return _make


@pytest.fixture
def make_token():
    """Factory for signed access tokens."""

    def _make(
        role: str = "user",
        tenant_id: str | None = "42",
        user_id: str = "user-1",
        expires_in: int = 3600,
        secret: str = TEST_SECRET,
    ) -> str:
        now = int(time.time())
        payload = {
            "userId": user_id,
            "email": f"{user_id}@example.com",
            "role": role,
            "iat": now,
            "exp": now + expires_in,
        }
        if tenant_id is not None:
            payload["tenantId"] = tenant_id
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture
def sample_config_dict(tmp_path):
    """Sample configuration dictionary for testing."""
    return {
        "auth": {"jwt_secret": TEST_SECRET},
        "storage": {
            "files": {"backend": "local", "path": str(tmp_path / "documents")},
            "database": {"backend": "sqlite", "path": str(tmp_path / "insurcheck.db")},
        },
        "server": {"cors_origins": ["http://localhost:3000"]},
    }


@pytest.fixture
def fake_tenant_store():
    """Factory for in-memory tenant stores."""

    def _make(*tenants: TenantState, error: Exception | None = None) -> FakeTenantStore:
        return FakeTenantStore(list(tenants), error=error)

    return _make


@pytest.fixture
def jwt_secret() -> str:
    """Signing secret shared by tokens and the app under test."""
    return TEST_SECRET
