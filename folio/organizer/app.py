from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from loguru import logger
from sse_starlette.sse import AppStatus

from folio.organizer.db.engine import create_engine, create_session_factory
from folio.organizer.errors import (
    BatchTooLargeError,
    CascadeError,
    ConflictError,
    FolioError,
    IllegalMoveError,
    LastWorkspaceError,
    NotAuthenticatedError,
    NotFoundError,
    PreconditionError,
    TransientStoreError,
)
from folio.organizer.log import setup_logging
from folio.organizer.models.enums import StoreBackend
from folio.organizer.settings import FolioSettings, get_settings
from folio.organizer.store.base import DocumentStore
from folio.organizer.store.memory import MemoryDocumentStore
from folio.organizer.store.sql import SqlDocumentStore


def _create_document_store(settings: FolioSettings, app: FastAPI) -> DocumentStore:
    """Create the document store backend based on configuration."""
    if settings.store == StoreBackend.MEMORY:
        return MemoryDocumentStore()

    if not settings.database_url:
        msg = "FOLIO_DATABASE_URL must be set when FOLIO_STORE=sql"
        raise RuntimeError(msg)
    engine = create_engine(settings.database_url)
    app.state.db_engine = engine
    logger.info("Database: connected (store=sql)")

    if settings.redis_url:
        app.state.redis = aioredis.from_url(
            settings.redis_url,
            decode_responses=False,
            socket_connect_timeout=5,
            retry_on_timeout=True,
        )
        logger.info("Redis: connected (live updates via pub/sub)")
    else:
        logger.warning("FOLIO_REDIS_URL not set -- live views poll every {}s", settings.poll_interval)

    return SqlDocumentStore(
        create_session_factory(engine),
        redis=app.state.redis,
        poll_interval=settings.poll_interval,
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, serialize=settings.log_json)
    logger.info("Folio organizer starting (host={}, port={}, store={})", settings.host, settings.port, settings.store)

    # -- Initialise state fields (always present, possibly None) ----------------
    _app.state.db_engine = None
    _app.state.redis = None
    _app.state.store = _create_document_store(settings, _app)

    # -- SSE -------------------------------------------------------------------
    # Tree streams never end on their own; they are closed on shutdown.
    AppStatus.disable_automatic_graceful_drain()

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Folio organizer shutting down")

    AppStatus.should_exit = True
    logger.info("SSE: signalled streams to close")

    # Detach live subscriptions before closing their transports.
    await _app.state.store.close()

    if _app.state.redis is not None:
        await _app.state.redis.aclose()
        logger.info("Redis: closed")

    if _app.state.db_engine is not None:
        await _app.state.db_engine.dispose()
        logger.info("Database: disposed")


app = FastAPI(title="Folio Organizer", lifespan=lifespan)

# ---------------------------------------------------------------------------
# Error mapping -- managers raise domain errors, never HTTP exceptions
# ---------------------------------------------------------------------------

# Checked in order; the first matching class wins.
_STATUS_BY_ERROR: list[tuple[type[Exception], int]] = [
    (NotAuthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (IllegalMoveError, status.HTTP_409_CONFLICT),
    (LastWorkspaceError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (PreconditionError, status.HTTP_412_PRECONDITION_FAILED),
    (BatchTooLargeError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (TransientStoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (CascadeError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ValueError, status.HTTP_422_UNPROCESSABLE_ENTITY),
]


def status_for(exc: Exception) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    code = status_for(exc)
    log = logger.error if code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.info
    log("{} {} -> {} ({}: {})", request.method, request.url.path, code, type(exc).__name__, exc)
    content: dict = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, CascadeError):
        content["failures"] = [description for description, _ in exc.failures]
    return JSONResponse(status_code=code, content=content)


app.add_exception_handler(FolioError, domain_error_handler)
app.add_exception_handler(ValueError, domain_error_handler)

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


# -- Organizer routers ---------------------------------------------------------
from folio.organizer.routers.account import router as account_router  # noqa: E402
from folio.organizer.routers.blocks import router as blocks_router  # noqa: E402
from folio.organizer.routers.pages import router as pages_router  # noqa: E402
from folio.organizer.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(account_router)
api.include_router(workspaces_router)
api.include_router(pages_router)
api.include_router(blocks_router)

app.include_router(api)
