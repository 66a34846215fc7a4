"""InsurCheck - tenant lifecycle access control for compliance documents."""

from insurcheck.config import Config
from insurcheck.observability import (
    LogLevel,
    RequestContext,
    StructuredLogger,
    Timer,
    configure_logging,
    get_logger,
)
from insurcheck.tenancy import (
    AccessDecision,
    CallerRole,
    OperationKind,
    ReasonCode,
    SQLTenantStore,
    StatusCategory,
    TenantState,
    TenantStatus,
    evaluate_document_access,
    evaluate_upload_access,
)

__version__ = "0.1.0"
__all__ = [
    # Core
    "Config",
    # Tenancy
    "AccessDecision",
    "CallerRole",
    "OperationKind",
    "ReasonCode",
    "SQLTenantStore",
    "StatusCategory",
    "TenantState",
    "TenantStatus",
    "evaluate_document_access",
    "evaluate_upload_access",
    # Observability
    "LogLevel",
    "RequestContext",
    "StructuredLogger",
    "Timer",
    "configure_logging",
    "get_logger",
]
