from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import structlog
import time
import uvicorn

from charity.core.config import get_settings
from charity.core.exceptions import AuthError, CharityError, StorageError
from charity.database.database import init_db, close_db, ping_db
from charity.api.admin import router as admin_router
from charity.api.donations import router as donations_router
from charity.api.gateway import router as gateway_router
from charity.api.registrations import router as registrations_router
from charity.middleware.metrics import MetricsMiddleware, metrics_endpoint
from charity.middleware.logging import logging_middleware

settings = get_settings()

logging.basicConfig(
    format="%(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)

# Setup structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Charity registrations, donations and payment confirmation API",
    version="1.0.0",
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(MetricsMiddleware)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Logging middleware with request-id correlation"""
    return await logging_middleware(request, call_next)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(CharityError)
async def charity_exception_handler(request: Request, exc: CharityError):
    """Map the error taxonomy onto HTTP responses"""
    if isinstance(exc, StorageError):
        logger.error(
            "Storage failure",
            error=exc.message,
            cause=str(exc.__cause__) if exc.__cause__ else None,
            method=request.method,
            url=str(request.url)
        )
        detail = "An unexpected error occurred"
    else:
        detail = exc.message

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": detail},
        headers=headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed input is a validation error, reported as 400"""
    logger.warning("Rejected request", path=request.url.path, errors=str(exc.errors()))
    return JSONResponse(
        status_code=400,
        content={
            "error": "validation_error",
            "detail": jsonable_errors(exc)
        }
    )


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        method=request.method,
        url=str(request.url)
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred"
        }
    )


# ============================================================================
# LIFECYCLE
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    logger.info("Starting Charity Service", service_name=settings.service_name)

    try:
        await init_db()
        logger.info("Application startup completed successfully")
    except Exception as e:
        logger.error("Failed to initialize application", error=str(e))
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on application shutdown"""
    logger.info("Shutting down Charity Service")
    await close_db()


# Health check endpoints
@app.get("/health")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "service": settings.service_name,
        "timestamp": time.time()
    }


@app.get("/health/ready")
async def readiness_check():
    """Readiness check with database connectivity"""
    try:
        await ping_db()
        return {
            "status": "ready",
            "service": settings.service_name,
            "database": "connected",
            "timestamp": time.time()
        }
    except Exception as e:
        logger.error("Readiness check failed", error=str(e))
        return JSONResponse(
            status_code=503,
            content={
                "status": "not ready",
                "service": settings.service_name,
                "database": "disconnected",
                "error": str(e),
                "timestamp": time.time()
            }
        )


@app.get("/metrics")
async def metrics(request: Request):
    """Prometheus metrics endpoint"""
    return await metrics_endpoint(request)


# Include routers
app.include_router(registrations_router)
app.include_router(donations_router)
app.include_router(gateway_router)
app.include_router(admin_router)


def run():
    uvicorn.run(
        "charity.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug"
    )


if __name__ == "__main__":
    run()
