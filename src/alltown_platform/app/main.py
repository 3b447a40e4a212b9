"""FastAPI application entry point for the Alltown Delivery API."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError

from alltown_platform.app.config import get_settings
from alltown_platform.domain.schemas import HealthResponse
from alltown_platform.infra.database import init_db, probe_store
from alltown_platform.infra.store_health import StoreCircuitBreaker
from alltown_platform.services.errors import TransientStoreError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database and the store breaker on startup."""
    await init_db()
    app.state.store_breaker = StoreCircuitBreaker(
        probe_store, ttl_seconds=settings.store_probe_ttl_seconds
    )
    yield


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="Alltown Delivery API",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware: debug mode allows any origin so tenant subdomains work on LAN
_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Store failures
# ---------------------------------------------------------------------------


@app.exception_handler(TransientStoreError)
async def transient_store_error_handler(request: Request, exc: TransientStoreError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.exception_handler(DBAPIError)
async def dbapi_error_handler(request: Request, exc: DBAPIError):
    """Driver-level I/O failure: trip the breaker and report a retryable error."""
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    breaker = getattr(request.app.state, "store_breaker", None)
    if breaker is not None:
        breaker.record_failure()
    return JSONResponse(status_code=503, content={"detail": TransientStoreError().message})


# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from alltown_platform.app.routes.deliveries import router as deliveries_router
from alltown_platform.app.routes.driver import router as driver_router
from alltown_platform.app.routes.dispatch import router as dispatch_router

app.include_router(deliveries_router)
app.include_router(driver_router)
app.include_router(dispatch_router)


@app.get("/health", tags=["health"], response_model=HealthResponse)
async def health_check(request: Request):
    """Return service health, including whether the store is reachable.

    Reports the breaker's last known state; the store is only probed when
    nothing has checked it yet.
    """
    breaker = getattr(request.app.state, "store_breaker", None)
    if breaker is None:
        store_ok = True
    elif breaker.last_known_state is None:
        store_ok = await breaker.is_available()
    else:
        store_ok = breaker.last_known_state
    return HealthResponse(
        status="ok" if store_ok else "degraded",
        service="alltown-platform",
        store=store_ok,
    )


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "alltown_platform.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
