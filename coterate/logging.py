import logging
import re
import sys
import time
import uuid

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{extra[request_id]} | <level>{message}</level>"
)

_NOISY_LOGGERS = ("httpcore", "httpx", "openai", "hpack")


class _InterceptHandler(logging.Handler):
    """Redirect stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Map the stdlib level, then walk past logging internals to the real caller
        level: str | int
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(log_level: str = "DEBUG") -> None:
    """Make loguru the only sink, with request ids in every line.

    Stdlib records (uvicorn, supabase, postgrest) are forwarded through
    _InterceptHandler; HTTP client chatter is raised to WARNING.
    """
    # Remove all existing loguru handlers, including the default one
    logger.remove()

    logger.configure(extra={"request_id": "-"})
    logger.add(
        sys.stderr,
        format=_LOG_FORMAT,
        level=log_level.upper(),
        colorize=True,
    )

    # Intercept stdlib logging
    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    # Quiet noisy third-party loggers
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


REQUEST_ID_HEADER = "X-Request-ID"

# Caller-supplied ids end up in log lines and response headers
_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Polled by load balancers and uptime checks
_QUIET_PATHS = frozenset({"/health"})


def _request_id(request: Request) -> str:
    """Reuse a well-formed caller id so a client trace can be followed; otherwise mint one."""
    supplied = request.headers.get(REQUEST_ID_HEADER, "")
    if _REQUEST_ID.match(supplied):
        return supplied
    return uuid.uuid4().hex[:8]


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its request id, method, path, status, and duration.

    The id is echoed back on the response. Health checks are logged at DEBUG.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = _request_id(request)
        method = request.method
        path = request.url.path
        level = "DEBUG" if path in _QUIET_PATHS else "INFO"

        with logger.contextualize(request_id=rid):
            logger.log(level, "{method} {path}", method=method, path=path)
            start = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception:
                logger.error(
                    "{method} {path} -> UNHANDLED ({duration_ms:.0f}ms)",
                    method=method,
                    path=path,
                    duration_ms=_elapsed_ms(start),
                )
                raise
            # 4xx responses log at WARNING regardless of path
            if 400 <= response.status_code < 500:
                level = "WARNING"
            logger.log(
                level,
                "{method} {path} -> {status} ({duration_ms:.0f}ms)",
                method=method,
                path=path,
                status=response.status_code,
                duration_ms=_elapsed_ms(start),
            )

        response.headers[REQUEST_ID_HEADER] = rid
        return response
