# printdesk/main.py
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

# --- Core Imports ---
from printdesk.core.config import settings
from printdesk.core.exceptions import AppError, RepositoryError
from printdesk.core.logging_setup import setup_logging, logger, trace_id_middleware
from printdesk.db.mongo_client import connect_to_mongo, close_mongo_connection, ensure_indexes, get_database
from printdesk.db.schemas.common_schemas import ErrorDetail, ErrorResponse
from printdesk.api.v1.api import api_router

# --- Configure Logging ---
setup_logging()

# --- Rate Limiter ---
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.RATE_LIMIT_DEFAULT])


# --- Custom Exception Handlers ---
def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", "N/A")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.bind(trace_id=_trace_id(request)).warning(f"HTTP Exception: Status={exc.status_code}, Detail={exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "kind": "HTTPError"},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.bind(trace_id=_trace_id(request)).warning(f"Validation Error: Path={request.url.path}, Errors={exc.errors()}")
    error_details = [
        ErrorDetail(loc=list(e.get("loc", [])), msg=e.get("msg", ""), type=e.get("type", "validation_error"))
        for e in exc.errors()
    ]
    body = ErrorResponse(detail="Request validation failed.", kind="ValidationError", errors=[e.model_dump() for e in error_details])
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump(exclude_none=True))


async def app_error_handler(request: Request, exc: AppError):
    """Domain errors carry their own kind and HTTP status."""
    logger.bind(trace_id=_trace_id(request)).warning(f"Domain Exception: Type={type(exc).__name__}, Detail={exc.message}")
    body = ErrorResponse(detail=exc.message, kind=exc.kind, errors=exc.details or None)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


async def repository_error_handler(request: Request, exc: RepositoryError):
    logger.bind(trace_id=_trace_id(request)).error(f"Repository/Database Error: {exc}")
    body = ErrorResponse(detail="Database operation failed.", kind=exc.kind)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump(exclude_none=True))


async def generic_unhandled_exception_handler(request: Request, exc: Exception):
    trace_id = _trace_id(request)
    logger.bind(trace_id=trace_id).exception(f"Unhandled Exception: Path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error", "kind": "Error", "trace_id": trace_id},
        headers={"X-Trace-ID": trace_id},
    )


# --- Application Lifespan ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connects to MongoDB and checks indexes on startup; closes the client on shutdown."""
    logger.info(f"Starting up {settings.APP_NAME}...")
    try:
        await connect_to_mongo()
        await ensure_indexes(get_database())
        logger.info("Startup sequence complete.")
    except Exception as e:
        logger.critical(f"Application startup failed: {e}")
        await close_mongo_connection()
        raise RuntimeError(f"Startup error: {e}") from e

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_mongo_connection()
    logger.info("Shutdown complete.")


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan if use_lifespan else None,
        exception_handlers={
            StarletteHTTPException: http_exception_handler,
            RequestValidationError: validation_exception_handler,
            RateLimitExceeded: _rate_limit_exceeded_handler,
            RepositoryError: repository_error_handler,
            AppError: app_error_handler,
            Exception: generic_unhandled_exception_handler,
        },
    )

    # Middlewares run bottom-up on the request: trace id is added last so it runs first
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    if settings.ALLOWED_ORIGINS:
        logger.info(f"Configuring CORS for origins: {settings.ALLOWED_ORIGINS}")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*", "X-Trace-ID"],
            expose_headers=["X-Trace-ID"],
        )
    app.add_middleware(BaseHTTPMiddleware, dispatch=trace_id_middleware)

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "printdesk.main:app",
        host=settings.HOST, port=settings.PORT,
        reload=settings.RELOAD, log_level=settings.LOG_LEVEL.lower(),
    )
