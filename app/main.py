"""
FastAPI application main module.
Middleware (request context, rate limiting), error handling and health checks
for the affiliate registration and commission tracking service.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import uuid
import os
from contextlib import asynccontextmanager
from app.api import api_router
from app.config import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, RATE_LIMIT_SETTINGS, RATE_LIMITED_PATHS
from app.database import Base, LedgerBase, engine, ledger_engine
from app.errors import AffiliateError
from app.utils import setup_logging, get_logger, utc_now
from app.utils.ratelimiter import client_ip, rate_limiter

# Setup logging before creating the app
setup_logging(
    log_level=LOG_LEVEL,
    log_file=LOG_FILE,
    enable_console=True
)

logger = get_logger(__name__)


def check_database(bind) -> str:
    """``connected`` when a ``SELECT 1`` succeeds on the engine, else ``disconnected``."""
    try:
        with bind.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "connected"
    except SQLAlchemyError as e:
        logger.warning("Database health check failed", url=str(bind.url), error=str(e))
        return "disconnected"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("Application startup initiated")
    try:
        logger.info("Creating database tables")
        Base.metadata.create_all(bind=engine)
        LedgerBase.metadata.create_all(bind=ledger_engine)
        logger.info("Database tables created successfully")
        yield
    except Exception as e:  # pragma: no cover
        logger.error("Application startup failed", error=str(e), exc_info=True)
        raise
    finally:
        logger.info("Application shutdown initiated")
        rate_limiter.reset()
        logger.info("Application shutdown completed")

app = FastAPI(
    title="AIYA Affiliate Service",
    description="""
    Affiliate registration and commission tracking.

    ## Features
    * **Registration** - Code generation, availability checks, dual-store writes
    * **Partner portal** - Dashboard totals, referral history, notifications
    * **Bank profile** - Payout details with passbook image upload

    ## Rate Limiting
    Registration endpoints accept 3 requests per minute per client IP.
    Exceeding the limit returns 429 with a `Retry-After` header.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Fixed-window limit per client IP on the registration endpoints (exact path match)."""
    path = request.url.path.rstrip("/") or "/"
    if request.method.upper() != "POST" or path not in RATE_LIMITED_PATHS:
        return await call_next(request)

    settings = RATE_LIMIT_SETTINGS["registration"]
    key = client_ip(request.headers, request.client.host if request.client else None)
    allowed, meta = await rate_limiter.check_and_increment(
        key, "registration", int(settings["limit"]), int(settings["window_seconds"])
    )

    if not allowed:
        logger.warning(
            "Rate limit exceeded",
            client_ip=key,
            path=path,
            count=meta["count"],
            retry_after=meta["retry_after"]
        )
        resp = JSONResponse(
            status_code=429,
            content={
                "success": False,
                "message": "Too many registration attempts. Please try again later.",
                "retryAfter": meta["retry_after"],
            },
        )
        resp.headers["Retry-After"] = str(meta["retry_after"])
        resp.headers["X-RateLimit-Limit"] = str(meta["limit"])
        resp.headers["X-RateLimit-Remaining"] = "0"
        resp.headers["X-RateLimit-Reset"] = str(meta["reset_epoch"])
        return resp

    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(meta["limit"])
    response.headers["X-RateLimit-Remaining"] = str(meta["remaining"])
    response.headers["X-RateLimit-Reset"] = str(meta["reset_epoch"])
    return response

# Registered last so it runs first and the request id is set for everything below
@app.middleware("http")
async def add_request_context_and_logging(request: Request, call_next):
    """
    Add request ID, timing, and request/response logging.
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

@app.exception_handler(AffiliateError)
async def affiliate_error_handler(request: Request, exc: AffiliateError):
    """Domain errors carry their own status code and field-tagged payload."""
    request_id = getattr(request.state, "request_id", "unknown")

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request rejected",
        error_type=exc.error_type,
        field=exc.field,
        status_code=exc.status_code,
        message=exc.message,
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )

    content = exc.to_payload()
    content["request_id"] = request_id
    return JSONResponse(status_code=exc.status_code, content=content)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Pydantic validation errors become a 400 with per-field messages."""
    request_id = getattr(request.state, "request_id", "unknown")

    errors = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form")]
        errors.setdefault(loc[-1] if loc else "request", err.get("msg", "Invalid value"))

    logger.warning(
        "Request validation failed",
        errors=errors,
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )

    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Request validation failed",
            "errorType": "validation",
            "field": next(iter(errors), None),
            "errors": errors,
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
        }
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

@app.get("/health", tags=["health"], summary="Health check")
async def health_check():
    """Connectivity of both stores."""
    database = check_database(engine)
    main_system = check_database(ledger_engine)
    healthy = database == "connected" and main_system == "connected"
    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": utc_now().isoformat(),
        "database": database,
        "mainSystemDatabase": main_system,
    }

@app.get("/", tags=["root"])
async def root():
    """API root endpoint with basic information."""
    return {
        "message": "AIYA Affiliate Service API",
        "version": "1.0.0",
        "documentation": "/docs",
        "health_check": "/health",
        "api_base": "/api"
    }

app.include_router(api_router, prefix="/api")

# Development server configuration
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting development server")

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3000")),
        reload=True,
        reload_dirs=["app"],
        log_level="info",
        access_log=True
    )
