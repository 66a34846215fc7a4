"""Authentication, tenant context and document access middleware."""

from collections.abc import Iterable
from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from insurcheck.auth.tokens import decode_token
from insurcheck.exceptions import TokenExpiredError, TokenInvalidError
from insurcheck.observability import RequestContext, get_logger
from insurcheck.protocols.tenant_store import TenantStore
from insurcheck.tenancy.policy import (
    AccessDecision,
    CallerRole,
    evaluate_document_access,
    evaluate_upload_access,
    operation_kind_for_method,
)
from insurcheck.tenancy.state import TenantState

logger = get_logger(__name__)

UPLOAD_METHODS = ("POST", "PUT")


def error_response(message: str, status_code: int) -> JSONResponse:
    """Build the standard ``{"success": false, "message": ...}`` body."""
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


def path_matches(path: str, prefixes: Iterable[str]) -> bool:
    """Whether ``path`` is one of ``prefixes`` or lies beneath one."""
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def caller_role(request: Request) -> CallerRole:
    """Role placed on the request by authentication."""
    return CallerRole.parse(getattr(request.state, "role", None))


def attached_tenant(request: Request) -> TenantState | None:
    """Tenant snapshot pre-attached by an earlier step, if any.

    A plain mapping is converted and stored back on the request.

    Raises:
        TenantStateError: If the attached value cannot be read as a tenant
    """
    tenant = getattr(request.state, "tenant", None)
    if tenant is None or isinstance(tenant, TenantState):
        return tenant
    tenant = TenantState.from_dict(tenant)
    request.state.tenant = tenant
    return tenant


def denial_response(decision: AccessDecision, request: Request, gate: str) -> JSONResponse:
    """Log a denial and turn it into a 403 response."""
    logger.info(
        "Document access denied",
        context={
            "gate": gate,
            "code": decision.reason_code.value,
            "method": request.method,
            "path": request.url.path,
        },
    )
    return JSONResponse(decision.to_payload(), status_code=403)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Validates bearer tokens and adds the caller to request state.

    Sets ``request.state.user``, ``user_id``, ``role`` and ``tenant_id``.
    Public paths (e.g. /health) pass through untouched.
    """

    def __init__(
        self,
        app: Any,
        secret: str,
        algorithm: str = "HS256",
        issuer: str | None = None,
        public_paths: list[str] | None = None,
    ) -> None:
        """Initialize authentication middleware.

        Args:
            app: The ASGI application
            secret: Token signing secret
            algorithm: Token signing algorithm
            issuer: Expected token issuer (optional)
            public_paths: Paths that don't require authentication
        """
        super().__init__(app)
        self.secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.public_paths = set(public_paths or ["/health"])

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        if request.url.path in self.public_paths:
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer ") or not auth_header[7:].strip():
            return error_response("Access denied. No token provided.", 401)

        token = auth_header[7:].strip()

        try:
            payload = decode_token(token, self.secret, self.algorithm, self.issuer)
        except TokenExpiredError:
            return error_response("Token expired.", 401)
        except TokenInvalidError:
            return error_response("Invalid token.", 401)

        request.state.user = {
            "userId": payload.user_id,
            "email": payload.email,
            "role": payload.role,
            "tenantId": payload.tenant_id,
        }
        request.state.user_id = payload.user_id
        request.state.role = CallerRole.parse(payload.role)
        request.state.tenant_id = payload.tenant_id

        return await call_next(request)


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Establishes the tenant scope of each request.

    Every caller other than a super-admin must carry a tenant id. A
    super-admin may pick a tenant with the ``tenant_id`` query parameter.
    When a tenant store is given, the tenant snapshot is resolved once
    here and attached as ``request.state.tenant`` for the gates below.
    """

    def __init__(
        self,
        app: Any,
        tenant_store: TenantStore | None = None,
        public_paths: list[str] | None = None,
        query_param: str = "tenant_id",
    ) -> None:
        """Initialize tenant context middleware.

        Args:
            app: The ASGI application
            tenant_store: Store used to pre-attach the tenant snapshot
            public_paths: Paths that carry no tenant context
            query_param: Query param a super-admin uses to select a tenant
        """
        super().__init__(app)
        self.tenant_store = tenant_store
        self.public_paths = set(public_paths or ["/health"])
        self.query_param = query_param

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        if request.url.path in self.public_paths:
            return await call_next(request)

        role = caller_role(request)
        tenant_id = getattr(request.state, "tenant_id", None)

        if role is CallerRole.SUPER_ADMIN:
            tenant_id = request.query_params.get(self.query_param) or tenant_id
            request.state.tenant_id = tenant_id
        elif not tenant_id:
            return error_response("Tenant context required", 403)

        async with RequestContext(
            request_id=request.headers.get("X-Request-ID"),
            tenant_id=tenant_id,
            user_id=getattr(request.state, "user_id", None),
        ):
            if (
                tenant_id
                and self.tenant_store is not None
                and getattr(request.state, "tenant", None) is None
            ):
                try:
                    tenant = await self.tenant_store.get_tenant_by_id(tenant_id)
                except Exception as e:
                    logger.error("Tenant context lookup failed", error=e)
                    return error_response("Error resolving tenant context", 500)
                if tenant is not None:
                    request.state.tenant = tenant

            return await call_next(request)


class DocumentAccessMiddleware(BaseHTTPMiddleware):
    """Gates document reads and writes on the tenant's lifecycle state.

    Uses the snapshot attached to the request when present and falls back
    to a tenant store lookup otherwise. Reads are any verb other than
    POST, PUT, PATCH and DELETE.
    """

    def __init__(
        self,
        app: Any,
        tenant_store: TenantStore,
        path_prefixes: list[str] | None = None,
        exclude_prefixes: list[str] | None = None,
        exclude_methods: Iterable[str] | None = None,
    ) -> None:
        """Initialize document access middleware.

        Args:
            app: The ASGI application
            tenant_store: Store used when no snapshot is attached
            path_prefixes: Paths guarded by this gate
            exclude_prefixes: Paths under ``path_prefixes`` left to another gate
            exclude_methods: Verbs the other gate handles on ``exclude_prefixes``;
                every verb when omitted
        """
        super().__init__(app)
        self.tenant_store = tenant_store
        self.path_prefixes = list(path_prefixes or ["/documents"])
        self.exclude_prefixes = list(exclude_prefixes or [])
        self.exclude_methods = (
            {method.upper() for method in exclude_methods} if exclude_methods is not None else None
        )

    def guards(self, path: str, method: str) -> bool:
        if not path_matches(path, self.path_prefixes):
            return False
        if not path_matches(path, self.exclude_prefixes):
            return True
        return self.exclude_methods is not None and method.upper() not in self.exclude_methods

    async def resolve_tenant(self, request: Request) -> TenantState | None:
        tenant = attached_tenant(request)
        if tenant is not None:
            return tenant

        tenant_id = getattr(request.state, "tenant_id", None)
        if not tenant_id:
            return None

        tenant = await self.tenant_store.get_tenant_by_id(tenant_id)
        if tenant is not None:
            request.state.tenant = tenant
        return tenant

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        if not self.guards(request.url.path, request.method):
            return await call_next(request)

        role = caller_role(request)
        if role is CallerRole.SUPER_ADMIN:
            return await call_next(request)

        try:
            tenant = await self.resolve_tenant(request)
            decision = evaluate_document_access(
                tenant,
                operation_kind_for_method(request.method),
                role,
            )
        except Exception as e:
            logger.error("Document access check failed", error=e)
            return error_response("Error checking document access permissions", 500)

        if not decision.allowed:
            return denial_response(decision, request, gate="document")

        return await call_next(request)


class DocumentUploadMiddleware(BaseHTTPMiddleware):
    """Gates document uploads on the tenant's lifecycle state.

    Stricter than ``DocumentAccessMiddleware``: a cancelled subscription
    blocks uploads outright. It never queries storage and relies on an
    earlier step having attached ``request.state.tenant``.
    """

    def __init__(
        self,
        app: Any,
        path_prefixes: list[str] | None = None,
        methods: Iterable[str] = UPLOAD_METHODS,
    ) -> None:
        """Initialize document upload middleware.

        Args:
            app: The ASGI application
            path_prefixes: Upload paths guarded by this gate
            methods: Verbs treated as uploads
        """
        super().__init__(app)
        self.path_prefixes = list(path_prefixes or ["/documents/upload"])
        self.methods = {method.upper() for method in methods}

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        if request.method not in self.methods or not path_matches(
            request.url.path, self.path_prefixes
        ):
            return await call_next(request)

        try:
            decision = evaluate_upload_access(attached_tenant(request), caller_role(request))
        except Exception as e:
            logger.error("Document upload check failed", error=e)
            return error_response("Error checking upload permissions", 500)

        if not decision.allowed:
            return denial_response(decision, request, gate="upload")

        return await call_next(request)
