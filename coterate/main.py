import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from coterate.config import settings
from coterate.dependencies import build_adapters
from coterate.errors import CoterateError
from coterate.logging import RequestLoggingMiddleware, setup_logging
from coterate.routers.design import router as design_router
from coterate.routers.keys import router as keys_router
from coterate.routers.store import router as store_router

setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    adapters = build_adapters(settings)
    app.state.adapters = adapters
    try:
        yield
    finally:
        await adapters.aclose()


app = FastAPI(title="Coterate", lifespan=lifespan)


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Validate X-API-Key header on all requests except /health.

    When settings.api_key is empty, authentication is disabled (local dev mode).
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        # Auth disabled when no key is configured
        if not settings.api_key:
            return await call_next(request)

        # CORS preflight requests never carry custom headers
        if request.method == "OPTIONS":
            return await call_next(request)

        # /health is always public (used by load balancers and uptime checks)
        if request.url.path == "/health":
            return await call_next(request)

        provided_key = request.headers.get("X-API-Key", "")
        if not provided_key or not secrets.compare_digest(provided_key, settings.api_key):
            client_ip = request.client.host if request.client else "unknown"
            logger.warning("Invalid or missing API key from {client_ip}", client_ip=client_ip)
            return JSONResponse(status_code=401, content={"error": "Invalid or missing API key"})

        return await call_next(request)


app.add_middleware(
    CORSMiddleware,  # ty: ignore[invalid-argument-type]  # Starlette ParamSpec typing limitation
    allow_origins=["*"],  # Permissive for prototype; tighten for production
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(APIKeyMiddleware)  # ty: ignore[invalid-argument-type]  # same Starlette issue
app.add_middleware(RequestLoggingMiddleware)  # ty: ignore[invalid-argument-type]  # same Starlette issue


@app.exception_handler(CoterateError)
async def coterate_error_handler(request: Request, exc: CoterateError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "{error_type} on {path}: {message}",
        error_type=type(exc).__name__,
        path=request.url.path,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Malformed request body on {path}", path=request.url.path)
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
    )


app.include_router(design_router)
app.include_router(store_router)
app.include_router(keys_router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "mockMode": settings.mock_mode, "authRequired": bool(settings.api_key)}
