from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from loguru import logger

from kioskdesk.helpdesk.db.engine import create_engine, create_session_factory
from kioskdesk.helpdesk.errors import HelpdeskError, InsufficientPermissionsError
from kioskdesk.helpdesk.log import RequestIdMiddleware, setup_logging
from kioskdesk.helpdesk.settings import KioskSettings, get_settings
from kioskdesk.helpdesk.store.base import DocumentStore
from kioskdesk.helpdesk.store.memory import MemoryDocumentStore
from kioskdesk.helpdesk.store.objects import ObjectStore, S3ObjectStore
from kioskdesk.helpdesk.store.sql import SqlDocumentStore


def _create_object_store(settings: KioskSettings) -> ObjectStore | None:
    """Create the attachment store, or None when S3 is not configured."""
    if not settings.s3_configured:
        return None
    return S3ObjectStore(
        bucket=settings.s3_bucket,
        endpoint_url=settings.s3_endpoint,
        access_key=settings.s3_access_key,
        secret_key=settings.s3_secret_key.get_secret_value(),
        region=settings.s3_region,
        path_style=settings.s3_path_style,
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)

    logger.info("Kioskdesk starting (host={}, port={})", settings.host, settings.port)
    if settings.jwt_secret is None:
        logger.warning("KIOSK_JWT_SECRET not set -- authenticated endpoints will answer 503")

    # -- Initialise state fields (always present, possibly None) ----------------
    _app.state.db_engine = None
    _app.state.store = None
    _app.state.objects = None

    # -- Document store --------------------------------------------------------
    store: DocumentStore | None = None
    if settings.document_store == "memory":
        store = MemoryDocumentStore()
        logger.warning("Using in-memory document store -- data is lost on restart")
    elif settings.database_url:
        engine = create_engine(settings.database_url)
        _app.state.db_engine = engine
        store = SqlDocumentStore(create_session_factory(engine))
        logger.info("PostgreSQL: connected (pool_size=5, max_overflow=10)")
    else:
        logger.warning("KIOSK_DATABASE_URL not set -- helpdesk endpoints disabled")
    _app.state.store = store

    # -- Object storage --------------------------------------------------------
    _app.state.objects = _create_object_store(settings)
    if _app.state.objects is not None:
        logger.info("S3: bucket={} endpoint={}", settings.s3_bucket, settings.s3_endpoint)
    else:
        logger.warning("KIOSK_S3_* not set -- attachments disabled")

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Kioskdesk shutting down")

    # Dispose DB engine (closes all pooled connections).
    if _app.state.db_engine is not None:
        await _app.state.db_engine.dispose()
        logger.info("PostgreSQL: disposed")


app = FastAPI(title="Kioskdesk Helpdesk", lifespan=lifespan)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(HelpdeskError)
async def helpdesk_error_handler(_request: Request, exc: HelpdeskError) -> JSONResponse:
    content: dict[str, str] = {"detail": exc.message}
    if isinstance(exc, InsufficientPermissionsError):
        content.update(required=exc.required, actual=exc.actual)
    if exc.status_code >= 500:
        logger.error("{}: {}", type(exc).__name__, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


# -- Helpdesk routers ----------------------------------------------------------
from kioskdesk.helpdesk.routers.comments import router as comments_router  # noqa: E402
from kioskdesk.helpdesk.routers.kiosks import router as kiosks_router  # noqa: E402
from kioskdesk.helpdesk.routers.team import router as team_router  # noqa: E402
from kioskdesk.helpdesk.routers.tickets import router as tickets_router  # noqa: E402
from kioskdesk.helpdesk.routers.tickets import user_router as user_tickets_router  # noqa: E402
from kioskdesk.helpdesk.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(workspaces_router)
api.include_router(team_router)
api.include_router(kiosks_router)
api.include_router(tickets_router)
api.include_router(comments_router)
api.include_router(user_tickets_router)

app.include_router(api)
