"""FastAPI application."""

import json
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crudforge.auth import AccessFilter, AccessLevelMiddleware, JWTService, get_access_level
from crudforge.config import Settings
from crudforge.errors import (
    HookAbortError,
    InvalidQueryError,
    NotFoundError,
    PermissionDeniedError,
    UnknownModelError,
    UnknownPathError,
)
from crudforge.hooks import HookRegistry, HookService
from crudforge.metadata.loader import MetadataLoader
from crudforge.metadata.validator import validate_metadata_dir
from crudforge.persistence import DocumentStore
from crudforge.routes import CrudHandlers, CrudRequest, Handler
from crudforge.schema import SchemaRegistry
from crudforge.services import ServiceRegistry

logger = logging.getLogger(__name__)

HookConfigurator = Callable[[HookRegistry], None]


def _base_path() -> Path:
    # Metadata lives next to /backend when started from there
    cwd = Path.cwd()
    if cwd.name == "backend":
        return cwd.parent
    return cwd


def _log_metadata_issues(metadata_path: Path, store_id: str) -> None:
    """Validate metadata YAML files against JSON Schemas (warn on errors, don't block startup)."""
    schema_issues = validate_metadata_dir(metadata_path, default_store=store_id)
    if not schema_issues:
        return

    error_count = sum(1 for i in schema_issues if i.severity == "error")
    warn_count = sum(1 for i in schema_issues if i.severity == "warning")
    for issue in schema_issues:
        if issue.severity == "error":
            logger.error("Metadata schema error: %s", issue)
        else:
            logger.warning("Metadata schema warning: %s", issue)
    logger.warning(
        "Metadata validation: %d error(s), %d warning(s). "
        "Run 'crudforge metadata validate' for details.",
        error_count,
        warn_count,
    )


def _endpoint(handler: Handler):
    """Adapt a framework-independent handler to a FastAPI endpoint."""

    async def endpoint(request: Request):
        access_level = get_access_level(request)
        if access_level is None:
            raise HTTPException(401, "Authentication required")

        body = None
        if request.method in ("POST", "PATCH"):
            raw = await request.body()
            if raw:
                try:
                    body = json.loads(raw)
                except json.JSONDecodeError:
                    raise HTTPException(400, "Request body is not valid JSON") from None

        return await handler(
            CrudRequest(
                path_params=dict(request.path_params),
                query=dict(request.query_params),
                body=body,
                access_level=access_level,
            )
        )

    endpoint.__name__ = handler.__name__
    return endpoint


def build_router(handlers: CrudHandlers) -> APIRouter:
    """Mount the route table of ``handlers`` on a new router, in order."""
    router = APIRouter()
    for route in handlers.route_descriptors():
        router.add_api_route(
            route.path,
            _endpoint(route.handler),
            methods=[route.method],
            name=route.name,
        )
    return router


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(UnknownModelError)
    async def unknown_model(request: Request, exc: UnknownModelError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(UnknownPathError)
    async def unknown_path(request: Request, exc: UnknownPathError):
        return JSONResponse(status_code=400, content={"detail": str(exc), "path": exc.path})

    @app.exception_handler(InvalidQueryError)
    async def invalid_query(request: Request, exc: InvalidQueryError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(PermissionDeniedError)
    async def permission_denied(request: Request, exc: PermissionDeniedError):
        return JSONResponse(
            status_code=403,
            content={"detail": str(exc), "operation": exc.operation, "paths": exc.paths},
        )

    @app.exception_handler(HookAbortError)
    async def hook_abort(request: Request, exc: HookAbortError):
        return JSONResponse(
            status_code=422,
            content={
                "valid": False,
                "errors": [{
                    "message": str(exc),
                    "code": "HOOK_ABORT",
                    "severity": "error",
                }],
            },
        )


def create_app(
    settings: Settings | None = None,
    configure_hooks: HookConfigurator | None = None,
) -> FastAPI:
    """Create the CRUDForge application.

    Args:
        settings: Runtime settings, read from the environment if omitted
        configure_hooks: Called with the hook registry once models are known,
            to register model hooks

    Raises:
        ConfigurationError: At startup, on unusable metadata or services
    """
    settings = settings or Settings.from_env(_base_path())
    jwt_service = None if settings.disable_auth else JWTService(settings.secret_key)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize on startup, cleanup on shutdown."""
        _log_metadata_issues(settings.metadata_path, settings.store_id)

        loader = MetadataLoader(settings.metadata_path, default_store=settings.store_id)
        loader.load_all()
        registry = SchemaRegistry.build(
            loader.sources(),
            default_store=settings.store_id,
            max_header_depth=settings.max_header_depth,
        )

        # Ensure parent directory exists for SQLite databases
        if not settings.is_memory_db:
            Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)
        store = DocumentStore(settings.db_path, store_id=settings.store_id)
        store.connect()

        hook_registry = HookRegistry(registry.list_models())
        if configure_hooks:
            configure_hooks(hook_registry)

        services = ServiceRegistry()
        if settings.services_path:
            services.load_directory(settings.services_path)

        handlers = CrudHandlers(
            registry,
            AccessFilter(registry),
            store,
            HookService(hook_registry),
            services,
        )
        app.include_router(build_router(handlers), prefix=settings.route_prefix)

        app.state.settings = settings
        app.state.registry = registry
        app.state.store = store
        app.state.hooks = hook_registry
        app.state.services = services
        app.state.jwt_service = jwt_service
        logger.info(
            "CRUDForge ready: %d model(s) under '%s' (auth %s)",
            len(registry.list_models()),
            settings.route_prefix or "/",
            "disabled" if jwt_service is None else "enabled",
        )

        yield

        # Cleanup
        store.close()

    app = FastAPI(title="CRUDForge API", lifespan=lifespan)

    # CORS for frontend dev server
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        AccessLevelMiddleware,
        jwt_service=jwt_service,
        default_access_level=settings.default_access_level,
    )
    _register_exception_handlers(app)

    return app


app = create_app()
