"""HTTP Server module."""

from insurcheck.server.app import create_app
from insurcheck.server.middleware import (
    AuthenticationMiddleware,
    DocumentAccessMiddleware,
    DocumentUploadMiddleware,
    TenantContextMiddleware,
)
from insurcheck.server.routes import create_routes, require_admin, require_role, require_same_tenant

__all__ = [
    "AuthenticationMiddleware",
    "DocumentAccessMiddleware",
    "DocumentUploadMiddleware",
    "TenantContextMiddleware",
    "create_app",
    "create_routes",
    "require_admin",
    "require_role",
    "require_same_tenant",
]
