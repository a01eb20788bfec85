"""
functions/orchestrator/dmv_client.py

WHAT THIS FILE IS FOR
---------------------
This module is the *upstream boundary* of the service: the only place that
knows how to talk to the DMV personalized-plate endpoints.

A check is two sequential calls, each bounded by
`settings.upstream_timeout_seconds`:

1) GET the session-start page and collect its Set-Cookie values
2) POST the form-encoded plate to the check endpoint with that session

It exists to:
- Build the DMV form payload (fixed plate metadata + one field per char)
- Acquire and forward the DMV session cookie
- Decode the response body into an untyped payload (JSON if possible,
  raw text otherwise). A body labelled JSON that does not decode is
  rejected with DmvBodyDecodeError and never reaches the interpreter.
- Log each call with enough context to diagnose upstream drift

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- Interpreting the payload (see dmv_response_interpreter.py)
- Translating transport errors (PlateCheckService does that)
- Retries (DMV calls are fire-once)
- Caching or rate limiting
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import structlog

from functions.utils.http_client import HttpClient
from functions.utils.settings import Settings

logger = structlog.get_logger(__name__)

PLATE_CHAR_FIELDS = 14


@dataclass(frozen=True)
class DmvResponse:
    status_code: int
    content_type: str
    payload: Any


class DmvBodyDecodeError(ValueError):
    """The DMV answered, but its body cannot be decoded into a payload."""

    def __init__(self, content_type: str, reason: str) -> None:
        super().__init__(f"Undecodable DMV body ({content_type or 'no content type'}): {reason}")
        self.content_type = content_type
        self.reason = reason


def build_plate_form(plate: str) -> Dict[str, str]:
    """
    Build the form body for the DMV check endpoint.

    `plateChar0` .. `plateChar13` each carry one character of the plate;
    positions past the end of the plate are sent empty.
    """
    form: Dict[str, str] = {
        "plateType": "Z",
        "kidsPlate": "",
        "plateNameLow": "california 1960s legacy",
        "plateName": "California 1960s Legacy",
        "plateLength": str(len(plate)),
        "vetDecalCd": "",
        "centeredPlateLength": "0",
        "platechecked": "no",
        "imageSelected": "none",
        "vehicleType": "AUTO",
        "vetDecalDesc": "",
    }

    for i in range(PLATE_CHAR_FIELDS):
        form[f"plateChar{i}"] = plate[i] if i < len(plate) else ""

    return form


def extract_cookie_header(set_cookie_headers: Iterable[str]) -> str:
    """
    Reduce Set-Cookie header values to a single Cookie header value.

    Only the leading `name=value` part of each cookie is kept; attributes
    such as Path or HttpOnly are dropped.
    """
    pairs = (str(cookie).split(";", 1)[0].strip() for cookie in set_cookie_headers)
    return "; ".join(pair for pair in pairs if pair)


def parse_dmv_body(content_type: str, text: str) -> Any:
    """
    Decode a DMV response body.

    JSON is attempted regardless of content type because the DMV
    sometimes labels JSON as text/html. A non-JSON body that does not
    decode is returned as the raw text.

    Raises:
        DmvBodyDecodeError: the content type says JSON but the body does
            not decode (truncated or malformed), or the body nests too
            deeply to decode at all.
    """
    try:
        return json.loads(text)
    except RecursionError as exc:
        logger.warning("dmv_json_too_deep", content_type=content_type, length=len(text))
        raise DmvBodyDecodeError(content_type, "nesting too deep") from exc
    except ValueError as exc:
        if "application/json" in content_type.lower():
            logger.warning("dmv_json_decode_failed", content_type=content_type, length=len(text))
            raise DmvBodyDecodeError(content_type, str(exc)) from exc
        return text


class DmvClient:
    """
    Thin async client around the DMV personalized-plate endpoints.

    - Two calls per check: session start (GET) then check (POST)
    - Per-call total timeout from settings, no retries
    - Raises httpx.HTTPError on network failures, TimeoutError when a call
      overruns its budget
    """

    def __init__(self, settings: Settings, http: Optional[HttpClient] = None) -> None:
        self.settings = settings
        self._start_url = str(settings.dmv_start_url)
        self._check_url = str(settings.dmv_check_url)
        self.http = http or HttpClient(timeout_seconds=settings.upstream_timeout_seconds)

    async def fetch_session_cookie(self) -> str:
        """GET the session-start page and return its cookies as a Cookie header value."""
        resp = await self.http.get(self._start_url)
        cookie_header = extract_cookie_header(resp.headers.get_list("set-cookie"))

        logger.info(
            "dmv_session_started",
            url=self._start_url,
            status_code=resp.status_code,
            has_cookie=bool(cookie_header),
        )
        return cookie_header

    async def check_plate(self, plate: str) -> DmvResponse:
        """
        Run a full availability check for an already-normalized plate key.

        Raises:
            httpx.HTTPError: network failure on either call.
            TimeoutError: either call ran past its total time budget.
            DmvBodyDecodeError: the check response body cannot be decoded.
        """
        cookie_header = await self.fetch_session_cookie()

        resp = await self.http.post_form(
            self._check_url,
            build_plate_form(plate),
            headers=self._check_headers(cookie_header),
        )

        content_type = resp.headers.get("content-type", "")
        payload = parse_dmv_body(content_type, resp.text)

        logger.info(
            "dmv_check_completed",
            url=self._check_url,
            plate=plate,
            status_code=resp.status_code,
            content_type=content_type,
        )
        return DmvResponse(status_code=resp.status_code, content_type=content_type, payload=payload)

    def _check_headers(self, cookie_header: str) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json, text/plain, */*",
            "X-Requested-With": "XMLHttpRequest",
            "User-Agent": self.settings.user_agent,
            "Referer": self._start_url,
            "Origin": self.settings.dmv_origin,
        }
        if cookie_header:
            headers["Cookie"] = cookie_header
        return headers
