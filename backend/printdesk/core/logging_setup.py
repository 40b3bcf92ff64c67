# printdesk/core/logging_setup.py
import sys
import logging
import json
import contextvars
import uuid
from loguru import logger
from fastapi import Request

from printdesk.core.config import settings

# Context variable for trace ID
trace_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("trace_id", default=None)


def serialize_loguru(record) -> str:
    """Custom serializer for Loguru records to produce structured JSON."""
    subset = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "trace_id": record["extra"].get("trace_id") or trace_id_var.get() or "NO_TRACE_ID",
        "service": settings.APP_NAME,
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }
    # Bound extra context (trace_id already handled)
    subset.update({k: v for k, v in record["extra"].items() if k != "trace_id"})

    if record["exception"]:
        exc_type, exc_value, _ = record["exception"]
        subset["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "value": str(exc_value),
        }
    return json.dumps(subset, default=str)


def sink_serializer(message):
    """Writes the serialized record to stderr."""
    print(serialize_loguru(message.record), file=sys.stderr)


class InterceptHandler(logging.Handler):
    """Routes std-lib logging records (uvicorn, pymongo) into loguru."""

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging():
    """Configure Loguru for structured JSON (or human readable) logging."""
    logger.remove()
    log_level = settings.LOG_LEVEL.upper()

    if settings.LOG_JSON:
        logger.add(sink_serializer, level=log_level, enqueue=True)
    else:
        logger.add(
            sys.stderr,
            level=log_level,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
                   "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> | {extra}",
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # Noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING if log_level != "DEBUG" else logging.INFO)
    logging.getLogger("pymongo").setLevel(logging.WARNING)

    logger.info(f"Logging configured. Level: {log_level}. JSON: {settings.LOG_JSON}. Service: {settings.APP_NAME}")


async def trace_id_middleware(request: Request, call_next):
    """Sets and resets the trace_id context variable for each request."""
    trace_id = request.headers.get("X-Trace-ID", str(uuid.uuid4()))
    request.state.trace_id = trace_id
    token = trace_id_var.set(trace_id)
    try:
        response = await call_next(request)
    finally:
        trace_id_var.reset(token)
    response.headers["X-Trace-ID"] = trace_id
    return response
