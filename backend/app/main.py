import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration

from .api.routes import reservations as reservations_routes
from .api.routes import restaurants as restaurants_routes
from .kv import KeyValueStore, StorageUnavailable, build_kv
from .logging_config import configure_structlog, get_logger
from .settings import settings
from .storage import ReservationStore
from .utils import add_cors, add_rate_limiting, add_request_id_tracing

# Configure structured logging (must be done before any logging calls)
configure_structlog(json_logs=not settings.DEBUG, log_level=settings.LOG_LEVEL)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        release=settings.SENTRY_RELEASE or "tablewise@dev",
        integrations=[FastApiIntegration()],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

logger = get_logger(__name__)


def create_app(kv: KeyValueStore | None = None) -> FastAPI:
    """Build the API around one storage backend (from settings unless given)."""
    app = FastAPI(
        title="Tablewise API",
        version="0.1.0",
        description="Table availability and booking engine for restaurant networks",
    )
    app.state.store = ReservationStore(kv if kv is not None else build_kv(settings))

    add_cors(app)
    add_request_id_tracing(app)
    add_rate_limiting(app)

    app.include_router(restaurants_routes.router)
    app.include_router(reservations_routes.router)

    @app.exception_handler(StorageUnavailable)
    async def storage_unavailable(request: Request, exc: StorageUnavailable):
        logger.error("storage_unavailable", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})

    @app.get("/health")
    async def health():
        return {"ok": True, "service": "tablewise", "version": "0.1.0"}

    return app


app = create_app()
