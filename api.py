"""
api.py

WHAT THIS FILE IS FOR
---------------------
This module defines the FastAPI application entrypoint for the
Plate Availability Checker API.

It is responsible for:
- Creating the FastAPI app instance (title/version/description)
- Registering middleware for:
    - CORS (any origin, GET + POST)
    - Correlation ID propagation (X-Correlation-Id)
- Registering exception handlers that render the error contract:
    {error, details?}
- Exposing HTTP endpoints:
    - GET /health and /healthz
    - POST /api/check-plate (primary public contract)
- Serving the bundled front-end for every other path (when present)

RESPONSE CONTRACT
-----------------
- 200: {status, message, cached}   status in {available, taken, invalid}
- 400: {error}                     missing/invalid body or plate
- 429: {error}                     rate limit exceeded
- 502: {error, details?}           DMV unreachable, 5xx, or uninterpretable

DESIGN INTENT
-------------
This file contains ONLY the HTTP layer:
- routing
- middleware
- exception handling
- client identification

It must NOT contain:
- plate validation
- caching / rate limiting
- DMV calls or response interpretation

Those responsibilities live in:
- functions/orchestrator/*
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from functions.orchestrator.errors import PlateCheckError
from functions.orchestrator.plate_check_service import PlateCheckService
from functions.utils.logging_config import configure_logging
from functions.utils.settings import get_settings
from schemas.input_schema import PlateCheckRequest
from schemas.output_schema import ErrorResponse, PlateCheckResponse

settings = get_settings()
configure_logging(settings)

logger = structlog.get_logger(__name__)

svc = PlateCheckService(settings)

app = FastAPI(
    title="Plate Availability Checker",
    version="1.0.0",
    description="Checks whether a personalized license plate can be requested from the DMV.",
)

CORRELATION_HEADER = "X-Correlation-Id"
FORWARDED_FOR_HEADER = "X-Forwarded-For"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _get_or_create_correlation_id(request: Request) -> str:
    incoming = request.headers.get(CORRELATION_HEADER)
    return incoming.strip() if incoming and incoming.strip() else f"corr_{uuid.uuid4().hex}"


def _get_client_id(request: Request) -> str:
    forwarded = request.headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client and request.client.host else "unknown"


def _error_response(
    *,
    http_status: int,
    error: str,
    correlation_id: str,
    details: Optional[str] = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, details=details).model_dump(exclude_none=True)
    return JSONResponse(
        status_code=http_status,
        content=body,
        headers={CORRELATION_HEADER: correlation_id},
    )


# -------------------------------------------------------------------
# Middleware
# -------------------------------------------------------------------
@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    correlation_id = _get_or_create_correlation_id(request)
    request.state.correlation_id = correlation_id
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.unbind_contextvars("correlation_id")
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


# -------------------------------------------------------------------
# Exception handlers
# -------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    correlation_id = getattr(request.state, "correlation_id", f"corr_{uuid.uuid4().hex}")

    logger.info(
        "request_validation_failed",
        correlation_id=correlation_id,
        error_count=len(exc.errors()),
    )

    return _error_response(
        http_status=400,
        error="Invalid request body.",
        correlation_id=correlation_id,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    correlation_id = getattr(request.state, "correlation_id", f"corr_{uuid.uuid4().hex}")

    logger.warning(
        "http_exception",
        correlation_id=correlation_id,
        status_code=exc.status_code,
        detail=str(exc.detail),
    )

    if isinstance(exc.detail, dict):
        error = str(exc.detail.get("error") or "Request failed.")
        details: Any = exc.detail.get("details")
    else:
        error = str(exc.detail)
        details = None

    return _error_response(
        http_status=exc.status_code,
        error=error,
        correlation_id=correlation_id,
        details=str(details) if details is not None else None,
    )


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------
@app.get("/healthz")
@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": settings.service_name,
        "environment": settings.environment,
    }


@app.post(
    "/api/check-plate",
    response_model=PlateCheckResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def check_plate(payload: PlateCheckRequest, request: Request) -> PlateCheckResponse:
    client_id = _get_client_id(request)

    try:
        return await svc.check(payload.plate, client_id)
    except PlateCheckError as exc:
        raise HTTPException(
            status_code=exc.http_status,
            detail={"error": exc.message, "details": exc.details},
        ) from exc


# -------------------------------------------------------------------
# Static front-end (mounted last so API routes take precedence)
# -------------------------------------------------------------------
_static_dir = Path(settings.static_dir)
if not _static_dir.is_absolute():
    _static_dir = Path(__file__).resolve().parent / _static_dir

if _static_dir.is_dir():
    app.mount("/", StaticFiles(directory=str(_static_dir), html=True), name="static")
else:
    logger.info("static_dir_missing", path=str(_static_dir))
