"""ASGI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from insurcheck.backends.database.sqlite import SQLiteDatabase
from insurcheck.backends.files.local import LocalFileStore
from insurcheck.config import Config
from insurcheck.exceptions import ConfigError
from insurcheck.observability import get_logger
from insurcheck.protocols.file_store import FileStore
from insurcheck.server.middleware import (
    UPLOAD_METHODS,
    AuthenticationMiddleware,
    DocumentAccessMiddleware,
    DocumentUploadMiddleware,
    TenantContextMiddleware,
)
from insurcheck.server.routes import create_routes
from insurcheck.tenancy.store import SQLTenantStore

logger = get_logger(__name__)


def create_database(config: Config) -> SQLiteDatabase:
    """Create the configured database backend."""
    backend = config.storage.database.backend
    if backend != "sqlite":
        raise ConfigError(f"Unsupported database backend: {backend}")
    return SQLiteDatabase(path=config.storage.database.path)


def create_file_store(config: Config) -> LocalFileStore:
    """Create the configured document storage backend."""
    backend = config.storage.files.backend
    if backend != "local":
        raise ConfigError(f"Unsupported file storage backend: {backend}")
    return LocalFileStore(path=config.storage.files.path)


def create_app(
    config: Config | None = None,
    tenant_store: SQLTenantStore | None = None,
    file_store: FileStore | None = None,
) -> Starlette:
    """Create the ASGI application.

    Args:
        config: Application configuration (defaults apply when omitted)
        tenant_store: Tenant store; built from ``config.storage.database`` if omitted
        file_store: Document store; built from ``config.storage.files`` if omitted

    Returns:
        Starlette application
    """
    config = config or Config()
    tenant_store = tenant_store or SQLTenantStore(create_database(config))
    file_store = file_store or create_file_store(config)

    public_paths = config.auth.public_paths

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        await tenant_store.initialize_schema()
        logger.info("InsurCheck started", context={"public_paths": public_paths})
        try:
            yield
        finally:
            await tenant_store.database.close()

    # Executed in list order: CORS -> Auth -> Tenant context -> Gates -> Route handler
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=config.server.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
            allow_credentials=True,
        ),
        Middleware(
            AuthenticationMiddleware,
            secret=config.auth.jwt_secret,
            algorithm=config.auth.algorithm,
            issuer=config.auth.issuer,
            public_paths=public_paths,
        ),
        Middleware(
            TenantContextMiddleware,
            tenant_store=tenant_store,
            public_paths=public_paths,
        ),
        # Uploads are left to the stricter upload gate; other verbs on the
        # upload path stay behind this one
        Middleware(
            DocumentAccessMiddleware,
            tenant_store=tenant_store,
            path_prefixes=config.access.document_prefixes,
            exclude_prefixes=config.access.upload_prefixes,
            exclude_methods=UPLOAD_METHODS,
        ),
        Middleware(
            DocumentUploadMiddleware,
            path_prefixes=config.access.upload_prefixes,
            methods=UPLOAD_METHODS,
        ),
    ]

    return Starlette(
        routes=create_routes(file_store, tenant_store),
        middleware=middleware,
        lifespan=lifespan,
    )
