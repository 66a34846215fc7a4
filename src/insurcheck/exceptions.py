"""InsurCheck exceptions."""


class InsurCheckError(Exception):
    """Base exception for insurcheck."""

    pass


class ConfigError(InsurCheckError):
    """Configuration error."""

    pass


class AuthError(InsurCheckError):
    """Authentication error."""

    pass


class TokenExpiredError(AuthError):
    """Token has expired."""

    pass


class TokenInvalidError(AuthError):
    """Token is invalid or malformed."""

    pass


class NotFoundError(InsurCheckError):
    """Resource not found."""

    pass


class TenantError(InsurCheckError):
    """Tenant-related error."""

    pass


class TenantNotFoundError(TenantError, NotFoundError):
    """Tenant not found."""

    pass


class TenantStateError(TenantError):
    """Tenant record holds a status or field that cannot be interpreted."""

    pass


class TenantLookupError(TenantError):
    """The tenant store failed to answer a lookup."""

    pass
