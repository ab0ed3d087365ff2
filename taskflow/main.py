"""FastAPI application and app configuration for TaskFlow.

This module creates the FastAPI `app`, configures middleware (security headers, CORS) and the
rate limiter, maps the error taxonomy in `taskflow.errors` to JSON responses,
registers the routers under `taskflow.routers.*` and owns the database
lifecycle: the engine is created on startup and disposed on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskflow import config
from taskflow.database import dispose_engine, init_db, init_engine
from taskflow.dependencies import limiter
from taskflow.errors import ApiError, InternalError, error_payload, make_validation_error_response
from taskflow.routers import admin, auth, directory, system, tickets, uploads

logger = logging.getLogger(__name__)
logging.basicConfig(level=config.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Lifespan startup: initializing database and other resources")
    # A missing DB_* variable raises ConfigError here and aborts startup
    init_engine()
    init_db()
    yield
    logger.info("Lifespan shutdown: cleaning up resources")
    dispose_engine()


app = FastAPI(title=config.APP_NAME, version="1.0.0", lifespan=lifespan)
app.state.limiter = limiter


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    # Images under /uploads are fetched cross-origin by the mobile and web clients
    response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    details = exc.details if not config.is_production() else None
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc.message, details))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_payload(str(exc.detail)), headers=getattr(exc, "headers", None))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_payload("Muitas requisições deste IP, tente novamente mais tarde."),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Missing or malformed input is a client error (400), not 422
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=make_validation_error_response(exc.errors()))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    details = None if config.is_production() else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(InternalError.default_message, details),
    )


for module in (auth, directory, tickets, uploads, admin, system):
    app.include_router(module.router)
    logger.debug("Included router: %s", module.__name__)


def run() -> None:
    """Console entry point: serve the app with uvicorn on HOST:PORT."""
    uvicorn.run("taskflow.main:app", host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


__all__ = ["app", "run"]
