"""
functions/orchestrator/plate_check_service.py

WHAT THIS FILE IS FOR
---------------------
This module sequences one plate availability check end to end.

CALL FLOW CONTEXT
-----------------
FastAPI (api.py)
  → PlateCheckService.check(raw_plate, client_id)
      → normalize_plate()                    (400 on failure)
      → FixedWindowRateLimiter.admit()       (429 on rejection)
      → PlateResultCache.get()               (hit → cached=True)
      → DmvClient.check_plate()              (502 on transport failure,
                                              overall timeout or undecodable body)
      → interpret_dmv_response()             (502 on `unavailable`)
      → PlateResultCache.put()
      → PlateCheckResponse(cached=False)

ERROR HANDLING RULES
--------------------
- Every failure is raised as a PlateCheckError subclass carrying its HTTP
  status; api.py renders it.
- Validation and rate limiting happen before any DMV call.
- Transport failures keep the original error text in `details`.
- A body the DMV labelled JSON but that does not decode is never
  interpreted or cached.
- `unavailable` results are logged and NEVER cached.
- Nothing is retried.

STATE OWNERSHIP
---------------
The cache, rate limiter and DMV client are injected. Each service instance
owns its own state, so tests build isolated instances and the process-wide
instance lives in api.py.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx
import structlog

from functions.orchestrator.dmv_client import DmvBodyDecodeError, DmvClient, DmvResponse
from functions.orchestrator.dmv_response_interpreter import (
    UNINTERPRETABLE_MESSAGE,
    interpret_dmv_response,
)
from functions.orchestrator.errors import (
    InvalidPlateError,
    RateLimitedError,
    UpstreamUnavailableError,
    UpstreamUnreachableError,
)
from functions.orchestrator.plate_normalizer import normalize_plate
from functions.orchestrator.rate_limiter import FixedWindowRateLimiter
from functions.orchestrator.result_cache import PlateResultCache
from functions.utils.settings import Settings
from schemas.output_schema import PlateCheckResponse

logger = structlog.get_logger(__name__)

MISSING_PLATE_MESSAGE = "Missing plate value."
RATE_LIMITED_MESSAGE = "Too many requests. Please wait a minute and try again."
UNREACHABLE_MESSAGE = "Unable to reach DMV endpoint."


def payload_snippet(payload: Any, limit: int = 500) -> str:
    """Short, log-safe rendering of an upstream payload."""
    if isinstance(payload, str):
        return payload[:limit]
    try:
        return json.dumps(payload, default=str)[:limit]
    except (TypeError, ValueError):
        return str(payload)[:limit]


class PlateCheckService:
    """
    Request orchestrator for POST /api/check-plate.

    Responsibilities:
    - Validate + normalize the plate
    - Enforce the per-client rate limit
    - Serve cached results
    - Call the DMV on a miss and interpret the answer
    - Cache interpretable results
    """

    def __init__(
        self,
        settings: Settings,
        *,
        dmv_client: Optional[DmvClient] = None,
        cache: Optional[PlateResultCache] = None,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
    ) -> None:
        self.settings = settings
        self.dmv_client = dmv_client or DmvClient(settings)
        self.cache = cache or PlateResultCache(ttl_seconds=settings.cache_ttl_seconds)
        self.rate_limiter = rate_limiter or FixedWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )

    async def check(self, raw_plate: Any, client_id: str) -> PlateCheckResponse:
        if raw_plate is None:
            raise InvalidPlateError(MISSING_PLATE_MESSAGE)

        plate = normalize_plate(raw_plate)

        if not self.rate_limiter.admit(client_id):
            raise RateLimitedError(RATE_LIMITED_MESSAGE)

        cached = self.cache.get(plate)
        if cached is not None:
            logger.info("plate_check_cache_hit", plate=plate, status=cached.status)
            return PlateCheckResponse(status=cached.status, message=cached.message, cached=True)

        try:
            dmv_response = await self.dmv_client.check_plate(plate)
        except DmvBodyDecodeError as exc:
            logger.warning(
                "dmv_response_undecodable",
                plate=plate,
                dmv_content_type=exc.content_type,
                reason=exc.reason,
            )
            raise UpstreamUnavailableError(UNINTERPRETABLE_MESSAGE) from exc
        except (httpx.HTTPError, TimeoutError) as exc:
            logger.error(
                "dmv_request_failed",
                plate=plate,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise UpstreamUnreachableError(
                UNREACHABLE_MESSAGE,
                details=str(exc) or type(exc).__name__,
            ) from exc

        result = interpret_dmv_response(dmv_response.payload, dmv_response.status_code)

        if result.status == "unavailable":
            self._log_uninterpretable(plate, dmv_response)
            raise UpstreamUnavailableError(result.message)

        self.cache.put(plate, result)
        logger.info("plate_check_completed", plate=plate, status=result.status)
        return PlateCheckResponse(status=result.status, message=result.message, cached=False)

    def _log_uninterpretable(self, plate: str, dmv_response: DmvResponse) -> None:
        context = {
            "plate": plate,
            "dmv_status": dmv_response.status_code,
            "dmv_content_type": dmv_response.content_type,
        }
        if self.settings.debug_dmv:
            context["dmv_payload_snippet"] = payload_snippet(
                dmv_response.payload, self.settings.payload_snippet_length
            )
        logger.warning("dmv_response_uninterpretable", **context)
