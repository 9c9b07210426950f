"""
FastAPI application main module.
Middleware, error handling, background sync worker and health checks.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import uuid
import os
from contextlib import asynccontextmanager
from mktdash.api.v1 import api_router
from mktdash.utils import setup_logging, get_logger
from mktdash.jobs.worker_sync import SheetSyncWorker, create_queue
from mktdash.database import Base, engine
import mktdash.database as database
from mktdash.services.analytics_feed import FeedCache
from mktdash.services.sheets_client import build_sheets_client
from mktdash.utils.circuit_breaker import GLOBAL_CIRCUIT_BREAKER

# Setup logging before creating the app
setup_logging(
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("LOG_FILE", "logs/mktdash.log"),
    enable_console=True
)

logger = get_logger(__name__)

SERVICE_NAME = "marketing-report-dashboard"
VERSION = "1.0.0"

_worker: SheetSyncWorker | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Creates tables, the feed cache, the spreadsheet client and the sync worker.
    """
    logger.info("Application startup initiated")

    global _worker
    try:
        logger.info("Creating database tables")
        Base.metadata.create_all(bind=engine)

        app.state.feed_cache = FeedCache()
        app.state.sheets_client = build_sheets_client()

        queue = create_queue()
        # endpoints enqueue through app.state so they never import this module
        app.state.sync_queue = queue
        _worker = SheetSyncWorker(queue, lambda: getattr(app.state, "sheets_client", None))
        _worker.start()
        logger.info(
            "Application startup completed successfully",
            sheets_configured=app.state.sheets_client is not None
        )
        yield
    except Exception as e:  # pragma: no cover
        logger.error("Application startup failed", error=str(e), exc_info=True)
        raise
    finally:
        logger.info("Application shutdown initiated")
        if _worker:
            _worker.stop()
        queue = getattr(app.state, "sync_queue", None)
        if queue is not None:
            queue.shutdown()
        logger.info("Application shutdown completed")


app = FastAPI(
    title="Marketing Report Dashboard",
    description="""
    Daily marketing report collection and role-scoped performance dashboards.

    ## Features
    * **Report submission** - stored first, mirrored to a spreadsheet with retries
    * **Dashboards** - detail, KPI and market views over the analytics feed
    * **Role scoping** - admin sees all, leaders their team, everyone else their own rows
    * **Roster** - HR roster with bulk account provisioning

    ## Authentication
    Log in with `/api/v1/auth/login` and send the returned API key:
    ```
    Authorization: Bearer <api_key>
    ```
    """,
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/api/v1/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def add_request_context_and_logging(request: Request, call_next):
    """
    Add request ID and timing headers and log each request/response pair.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    request.state.start_time = time.time()

    logger.info(
        "Request started",
        method=request.method,
        url=str(request.url),
        user_agent=request.headers.get("User-Agent"),
        remote_addr=request.client.host if request.client else "unknown",
        request_id=request_id
    )

    response = await call_next(request)

    process_time = time.time() - request.state.start_time
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"

    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time_ms=round(process_time * 1000, 2),
        request_id=request_id
    )

    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    request_id = getattr(request.state, "request_id", "unknown")
    errors = jsonable_encoder(exc.errors())

    logger.warning(
        "Request validation failed",
        errors=errors,
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )

    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Request validation failed",
            "details": errors,
            "request_id": request_id
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail,
            "request_id": request_id
        },
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        request_id=request_id,
        url=str(request.url),
        method=request.method,
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Internal server error",
            "request_id": request_id
        }
    )


@app.get("/health", tags=["health"], summary="Basic health check")
async def health_check():
    """Basic health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": time.time(),
    }


@app.get("/health/detailed", tags=["health"], summary="Detailed health check")
async def detailed_health_check():
    """Database, feed snapshot, spreadsheet mirror and sync queue status."""
    health_status = {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": time.time(),
        "checks": {}
    }

    db = database.SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "healthy"
    except SQLAlchemyError as e:
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "degraded"
    finally:
        db.close()

    cache = getattr(app.state, "feed_cache", None)
    if cache is not None:
        health_status["checks"]["analytics_feed"] = {
            "loaded": cache.loaded,
            "records": len(cache.snapshot.records),
            "last_error": cache.last_error,
        }
        if cache.last_error:
            health_status["status"] = "degraded"

    health_status["checks"]["sheets"] = {
        "configured": getattr(app.state, "sheets_client", None) is not None,
        "circuit_breaker": GLOBAL_CIRCUIT_BREAKER.snapshot(),
    }

    queue = getattr(app.state, "sync_queue", None)
    if queue is not None:
        snap = queue.snapshot()
        health_status["checks"]["queue"] = {
            k: v for k, v in snap.items() if k in {"depth", "ready", "scheduled"}
        }

    return health_status


@app.get("/", tags=["root"])
async def root():
    """API root endpoint with basic information."""
    return {
        "message": "Marketing Report Dashboard API",
        "version": VERSION,
        "documentation": "/docs",
        "health_check": "/health",
        "api_base": "/api/v1"
    }


app.include_router(api_router, prefix="/api/v1")

if __name__ == "__main__":
    import uvicorn

    logger.info("Starting development server")

    uvicorn.run(
        "mktdash.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_dirs=["mktdash"],
        log_level="info",
        access_log=True
    )
