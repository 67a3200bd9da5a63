import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from booking_ledger.api import auth, bookings
from booking_ledger.api.schemas import FieldError
from booking_ledger.core.exceptions import DomainException
from booking_ledger.core.presentation import DestinationImageCatalog
from booking_ledger.core.security import PasswordHasher
from booking_ledger.core.sessions import SessionAuthority
from booking_ledger.core.settings import Settings
from booking_ledger.db.session import DatabaseManager
from booking_ledger.middleware.logging import RequestLoggingMiddleware

API_VERSION = "1.0.0"

SENSITIVE_KEYS = {"password", "token", "session_token", "cookie", "set-cookie", "password_hash"}
_COOKIE_VALUE = re.compile(r'((?:^|[;\s])session_id=)[^;\s]+')


# Redaction processor to scrub credentials and session tokens from log events
def redact_sensitive(logger, method_name, event_dict):
    def scrub(key, v):
        if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
            return "REDACTED"
        if isinstance(v, str):
            return _COOKIE_VALUE.sub(r'\1REDACTED', v)
        if isinstance(v, list):
            return [scrub(None, x) for x in v]
        if isinstance(v, dict):
            return {k: scrub(k, vv) for k, vv in v.items()}
        return v

    for k, v in list(event_dict.items()):
        event_dict[k] = scrub(k, v)
    return event_dict


def configure_logging(settings: Settings) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_sensitive,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE))

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(message)s',  # structlog handles formatting
        handlers=handlers,
        force=True,
    )


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db: DatabaseManager = app.state.db

    logger.info("Starting application...")
    try:
        await db.initialize()
        await db.init_db()
        async with db.get_session() as session:
            await SessionAuthority(session, app.state.settings).purge_expired()
    except Exception:
        logger.exception("Failed to initialize database manager")
        raise

    yield

    logger.info("Shutting down application...")
    try:
        await db.close()
    except Exception as e:
        logger.error("database_cleanup_failed", error=str(e))


def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException):
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "request_rejected",
            status_code=exc.status_code,
            code=exc.code,
            message=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_response_body())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            FieldError(
                field=".".join(str(part) for part in err.get("loc", ())[1:]) or "body",
                message=err.get("msg", "Invalid value"),
            ).model_dump()
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request", "code": "ValidationException", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around an explicitly constructed storage client"""
    settings = settings or Settings()
    configure_logging(settings)

    app = FastAPI(
        title="Booking Ledger API",
        description="Session-authenticated travel booking ledger",
        version=API_VERSION,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.db = DatabaseManager(settings)
    app.state.password_hasher = PasswordHasher(settings.PASSWORD_HASH_SCHEMES)
    app.state.image_catalog = DestinationImageCatalog(
        base_url=settings.IMAGE_BASE_URL,
        fallback_extension=settings.IMAGE_FALLBACK_EXTENSION,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    if settings.ENABLE_METRICS:
        Instrumentator().instrument(app).expose(app, endpoint="/metrics")

    @app.get("/")
    def health_check():
        return {"status": "API active", "version": API_VERSION}

    @app.get("/health")
    async def health_check_detailed(request: Request):
        """Detailed health check endpoint"""
        db_health = await request.app.state.db.health_check()
        healthy = db_health["status"] == "healthy"
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "degraded",
                "version": API_VERSION,
                "components": {
                    "database": db_health["status"],
                    "api": "healthy"
                },
                "timestamp": datetime.now(timezone.utc).isoformat()
            },
        )

    app.include_router(auth.router)
    app.include_router(bookings.router)

    return app


app = create_app()
