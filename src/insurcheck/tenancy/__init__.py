"""Tenant lifecycle state, access policy and storage."""

from insurcheck.tenancy.policy import (
    AccessDecision,
    CallerRole,
    OperationKind,
    ReasonCode,
    evaluate_document_access,
    evaluate_upload_access,
    operation_kind_for_method,
)
from insurcheck.tenancy.state import StatusCategory, TenantState, TenantStatus, categorize
from insurcheck.tenancy.store import SQLTenantStore

__all__ = [
    "AccessDecision",
    "CallerRole",
    "OperationKind",
    "ReasonCode",
    "SQLTenantStore",
    "StatusCategory",
    "TenantState",
    "TenantStatus",
    "categorize",
    "evaluate_document_access",
    "evaluate_upload_access",
    "operation_kind_for_method",
]
