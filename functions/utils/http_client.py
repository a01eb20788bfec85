"""
functions/utils/http_client.py

WHAT THIS FILE IS FOR
---------------------
This module provides a minimal, asynchronous HTTP client abstraction
used by the orchestrator layer to make outbound HTTP calls to the DMV.

It exists to:
- Centralize basic HTTP call behavior (GET + form-encoded POST)
- Standardize timeout handling
- Avoid scattering raw `httpx.AsyncClient(...)` blocks across the codebase

This client is intentionally kept *very thin*.

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- Retry logic (DMV calls are fire-once)
- Logging or structured tracing
- Cookie/session handling
- Response parsing or interpretation
- Error translation

Those responsibilities belong to higher-level components
(e.g. DmvClient, PlateCheckService).

COOKIE ISOLATION
----------------
Every call opens its own `httpx.AsyncClient`. No cookie jar survives
between calls, so one caller's DMV session can never leak into another
caller's request. Session cookies are forwarded explicitly by DmvClient.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional

import anyio
import httpx


class HttpClient:
    """
    Minimal asynchronous HTTP client wrapper over `httpx.AsyncClient`.

    TIMEOUT SEMANTICS
    -----------------
    `timeout_seconds` bounds the whole call, from connect to the last byte
    of the body. httpx only bounds each phase (and each read) separately,
    so a peer that trickles bytes would never trip it; the call therefore
    also runs inside `anyio.fail_after`.

    - Total budget exceeded -> `TimeoutError`
    - A single phase exceeded -> `httpx.TimeoutException`
      (a subclass of `httpx.HTTPError`)

    Callers translate both into domain errors.
    """

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout_seconds = timeout_seconds

    async def get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> httpx.Response:
        """
        Send a GET request.

        Raises:
            httpx.HTTPError:
                Any network-level error (timeout, DNS, connection error).
            TimeoutError:
                The call as a whole ran past `timeout_seconds`.
        """
        timeout = self._timeout(timeout_seconds)
        with anyio.fail_after(timeout):
            async with httpx.AsyncClient(timeout=timeout) as client:
                return await client.get(url, headers=headers or {})

    async def post_form(
        self,
        url: str,
        form: Mapping[str, str],
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> httpx.Response:
        """
        Send a POST request with an application/x-www-form-urlencoded body.

        Raises:
            httpx.HTTPError:
                Any network-level error (timeout, DNS, connection error).
            TimeoutError:
                The call as a whole ran past `timeout_seconds`.
        """
        timeout = self._timeout(timeout_seconds)
        with anyio.fail_after(timeout):
            async with httpx.AsyncClient(timeout=timeout) as client:
                return await client.post(url, data=dict(form), headers=headers or {})

    def _timeout(self, override: Optional[float]) -> float:
        return override if override is not None else self.timeout_seconds
