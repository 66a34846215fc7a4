"""HTTP route handlers for documents and tenant access."""

import functools
import json
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from insurcheck.exceptions import TenantNotFoundError, TenantStateError
from insurcheck.observability import get_logger
from insurcheck.protocols.file_store import FileStore
from insurcheck.server.middleware import attached_tenant, caller_role, error_response
from insurcheck.tenancy.policy import (
    AccessDecision,
    CallerRole,
    OperationKind,
    evaluate_document_access,
    evaluate_upload_access,
)
from insurcheck.tenancy.store import SQLTenantStore

logger = get_logger(__name__)

Handler = Callable[[Request], Awaitable[Response]]


def require_role(*roles: CallerRole) -> Callable[[Handler], Handler]:
    """Decorator to restrict a route handler to the given roles.

    Checks authentication first (401), then authorization (403).
    """
    allowed = set(roles)

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(request: Request) -> Response:
            if not getattr(request.state, "user_id", None):
                return error_response("Authentication required.", 401)
            if caller_role(request) not in allowed:
                return error_response("Insufficient permissions.", 403)
            return await handler(request)

        return wrapper

    return decorator


require_admin = require_role(CallerRole.TENANT_ADMIN, CallerRole.SUPER_ADMIN)
require_super_admin = require_role(CallerRole.SUPER_ADMIN)


def require_same_tenant(handler: Handler) -> Handler:
    """Decorator restricting ``{tenant_id}`` routes to the caller's own tenant.

    A super-admin may access any tenant.
    """

    @functools.wraps(handler)
    async def wrapper(request: Request) -> Response:
        if not getattr(request.state, "user_id", None):
            return error_response("Authentication required.", 401)
        if caller_role(request) is not CallerRole.SUPER_ADMIN:
            own_tenant = getattr(request.state, "tenant_id", None)
            if not own_tenant or str(own_tenant) != request.path_params.get("tenant_id"):
                return error_response("Access denied. Invalid tenant.", 403)
        return await handler(request)

    return wrapper


def decision_summary(decision: AccessDecision) -> dict:
    summary = decision.to_payload()
    summary.pop("success")
    summary["allowed"] = decision.allowed
    if decision.allowed:
        summary.pop("message")
    return summary


def create_routes(file_store: FileStore, tenant_store: SQLTenantStore) -> list[Route]:
    """Create HTTP routes.

    Args:
        file_store: Document storage backend
        tenant_store: Tenant lifecycle store

    Returns:
        List of Starlette routes
    """

    def tenant_scope(request: Request) -> str | None:
        tenant_id = getattr(request.state, "tenant_id", None)
        return str(tenant_id) if tenant_id else None

    def document_key(tenant_id: str, name: str) -> str | None:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        return f"{tenant_id}/{name}"

    async def health(request: Request) -> Response:
        """Health check endpoint."""
        return JSONResponse({"status": "ok", "timestamp": time.time()})

    async def list_documents(request: Request) -> Response:
        tenant_id = tenant_scope(request)
        if not tenant_id:
            return error_response("tenant_id query parameter required", 400)

        prefix = f"{tenant_id}/"
        documents = []
        async for metadata in file_store.list(tenant_id):
            entry = metadata.to_dict()
            entry["name"] = metadata.key.removeprefix(prefix)
            documents.append(entry)

        return JSONResponse({"success": True, "documents": documents})

    async def upload_document(request: Request) -> Response:
        """Store the raw request body as ``?filename=``."""
        tenant_id = tenant_scope(request)
        if not tenant_id:
            return error_response("tenant_id query parameter required", 400)

        key = document_key(tenant_id, request.query_params.get("filename", ""))
        if key is None:
            return error_response("A valid filename query parameter is required", 400)

        content = await request.body()
        if not content:
            return error_response("Uploaded document is empty", 400)

        metadata = await file_store.put(key, content, request.headers.get("Content-Type"))
        logger.info("Document uploaded", context={"key": key, "size": metadata.size})

        return JSONResponse({"success": True, "document": metadata.to_dict()}, status_code=201)

    async def download_document(request: Request) -> Response:
        tenant_id = tenant_scope(request)
        if not tenant_id:
            return error_response("tenant_id query parameter required", 400)

        key = document_key(tenant_id, request.path_params["name"])
        result = await file_store.get(key) if key else None
        if result is None:
            return error_response("Document not found", 404)

        content, metadata = result
        return Response(
            content,
            media_type=metadata.content_type or "application/octet-stream",
            headers={"ETag": metadata.etag},
        )

    @require_admin
    async def delete_document(request: Request) -> Response:
        tenant_id = tenant_scope(request)
        if not tenant_id:
            return error_response("tenant_id query parameter required", 400)

        key = document_key(tenant_id, request.path_params["name"])
        if key is None or not await file_store.delete(key):
            return error_response("Document not found", 404)

        logger.info("Document deleted", context={"key": key})
        return JSONResponse({"success": True})

    @require_same_tenant
    async def tenant_access(request: Request) -> Response:
        """Report which document operations the tenant may perform."""
        tenant_id = request.path_params["tenant_id"]

        tenant = attached_tenant(request)
        if tenant is None or tenant.tenant_id != tenant_id:
            tenant = await tenant_store.get_tenant_by_id(tenant_id)
        if tenant is None:
            return error_response("Tenant not found", 404)

        # Evaluated as a regular tenant member, not as the caller
        role = caller_role(request)
        if role is CallerRole.SUPER_ADMIN:
            role = CallerRole.TENANT_ADMIN

        return JSONResponse({
            "success": True,
            "tenant": tenant.to_dict(),
            "access": {
                "read": decision_summary(
                    evaluate_document_access(tenant, OperationKind.READ, role)
                ),
                "write": decision_summary(
                    evaluate_document_access(tenant, OperationKind.WRITE, role)
                ),
                "upload": decision_summary(evaluate_upload_access(tenant, role)),
            },
        })

    async def read_json(request: Request) -> dict | None:
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return None
        return body if isinstance(body, dict) else None

    @require_super_admin
    async def update_tenant_status(request: Request) -> Response:
        """Move a tenant to another lifecycle status."""
        body = await read_json(request)
        if body is None or "status" not in body:
            return error_response("Request body must include a status", 400)

        try:
            tenant = await tenant_store.set_status(request.path_params["tenant_id"], body["status"])
        except TenantStateError as e:
            return error_response(str(e), 400)
        except TenantNotFoundError:
            return error_response("Tenant not found", 404)

        return JSONResponse({"success": True, "tenant": tenant.to_dict()})

    @require_super_admin
    async def start_tenant_trial(request: Request) -> Response:
        """Start or extend a tenant's trial."""
        body = await read_json(request)
        raw_ends_at = body.get("trialEndsAt") if body else None
        if not isinstance(raw_ends_at, str):
            return error_response("Request body must include trialEndsAt", 400)

        try:
            ends_at = datetime.fromisoformat(raw_ends_at.replace("Z", "+00:00"))
        except ValueError:
            return error_response("trialEndsAt must be an ISO-8601 timestamp", 400)
        if ends_at.tzinfo is None:
            ends_at = ends_at.replace(tzinfo=timezone.utc)

        try:
            tenant = await tenant_store.start_trial(request.path_params["tenant_id"], ends_at)
        except TenantNotFoundError:
            return error_response("Tenant not found", 404)

        return JSONResponse({"success": True, "tenant": tenant.to_dict()})

    return [
        Route("/health", health, methods=["GET"]),
        Route("/documents", list_documents, methods=["GET"]),
        Route("/documents/upload", upload_document, methods=["POST", "PUT"]),
        Route("/documents/{name}", download_document, methods=["GET"]),
        Route("/documents/{name}", delete_document, methods=["DELETE"]),
        Route("/tenants/{tenant_id}/access", tenant_access, methods=["GET"]),
        Route("/admin/tenants/{tenant_id}/status", update_tenant_status, methods=["PUT"]),
        Route("/admin/tenants/{tenant_id}/trial", start_tenant_trial, methods=["POST"]),
    ]
