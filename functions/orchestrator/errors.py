"""
functions/orchestrator/errors.py

WHAT THIS FILE IS FOR
---------------------
Domain error taxonomy for the plate check flow.

Every error carries the HTTP status it maps to, a caller-safe message and
optional diagnostic details. api.py translates them into HTTPException
responses; nothing here knows about FastAPI.

- InvalidPlateError        -> 400 (client's fault, no upstream cost)
- RateLimitedError         -> 429 (client's fault, no upstream cost)
- UpstreamUnavailableError -> 502 (DMV 5xx or uninterpretable payload)
- UpstreamUnreachableError -> 502 (timeout / network failure)

All of them are terminal for the request. None are retried.
"""

from __future__ import annotations

from typing import Optional


class PlateCheckError(Exception):
    http_status: int = 500

    def __init__(self, message: str, *, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidPlateError(PlateCheckError):
    http_status = 400


class RateLimitedError(PlateCheckError):
    http_status = 429


class UpstreamUnavailableError(PlateCheckError):
    http_status = 502


class UpstreamUnreachableError(PlateCheckError):
    http_status = 502
