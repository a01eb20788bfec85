"""
functions/orchestrator/dmv_response_interpreter.py

WHAT THIS FILE IS FOR
---------------------
This module maps whatever the DMV check endpoint returned (HTTP status +
an untyped payload) onto the fixed result vocabulary:

    available | taken | invalid | unavailable

The DMV contract is undocumented and differs between response shapes:
sometimes plain text, sometimes a JSON object with any of several code and
message fields, sometimes nothing usable at all. Interpretation is
therefore a first-match decision table, where more explicit signals win
over generic ones and `unavailable` is the fallback when nothing matches.

DECISION ORDER
--------------
1. HTTP status >= 500                      -> unavailable
2. payload is None                         -> unavailable
3. payload is text                         -> substring rules (_TEXT_RULES)
4. payload is an object                    -> field rules (_OBJECT_RULES)
5. any other JSON value (list, number...)  -> unavailable

WHAT THIS FILE IS NOT FOR
-------------------------
This module MUST NOT:
- Perform HTTP calls
- Cache results
- Log, raise, or handle exceptions

`interpret_dmv_response` never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from schemas.output_schema import PlateCheckResult, PlateStatus

AVAILABLE_MESSAGE = "That plate is available."
TAKEN_MESSAGE = "That plate appears to be taken."
INVALID_MESSAGE = "That plate is invalid."
SERVICE_UNAVAILABLE_MESSAGE = "DMV service is temporarily unavailable. Please try again shortly."
UNEXPECTED_RESPONSE_MESSAGE = "Unexpected response from DMV service."
UNINTERPRETABLE_MESSAGE = "Could not interpret DMV response. Please try again."
TEMPORARY_ERROR_MESSAGE = "DMV returned a temporary error. Please try again."

DEFAULT_MESSAGES: Dict[PlateStatus, str] = {
    "available": AVAILABLE_MESSAGE,
    "taken": TAKEN_MESSAGE,
    "invalid": INVALID_MESSAGE,
    "unavailable": UNINTERPRETABLE_MESSAGE,
}

# Localisation keys the DMV sometimes sends instead of prose.
MESSAGE_KEY_PREFIX = "message."
MESSAGE_KEY_RESULTS: Dict[str, PlateCheckResult] = {
    "message.available": PlateCheckResult(status="available", message=AVAILABLE_MESSAGE),
    "message.notavailable": PlateCheckResult(status="taken", message=TAKEN_MESSAGE),
    "message.taken": PlateCheckResult(status="taken", message=TAKEN_MESSAGE),
    "message.invalid": PlateCheckResult(status="invalid", message=INVALID_MESSAGE),
    "message.global": PlateCheckResult(status="unavailable", message=TEMPORARY_ERROR_MESSAGE),
}

CODE_FIELDS = ("code", "status", "result")
MESSAGE_FIELDS = ("message", "errorMessage", "statusMessage")

AVAILABLE_CODES = frozenset({"AVAILABLE", "SUCCESS"})
INVALID_CODES = frozenset({"VALIDATION", "INVALID"})
TAKEN_CODES = frozenset({"TAKEN", "UNAVAILABLE", "NOT_AVAILABLE"})

# (status, substrings) checked in order against the lowercased text.
# A bare "available" only counts after the negative phrases are ruled out:
# it is a substring of both "not available" and "unavailable".
_TEXT_RULES: Tuple[Tuple[PlateStatus, Tuple[str, ...]], ...] = (
    ("available", ("can be requested",)),
    ("taken", ("not available", "already in use", "unavailable")),
    ("available", ("available",)),
)


@dataclass(frozen=True)
class ObjectSignals:
    """Fields pulled out of an object-shaped DMV payload."""

    payload: Dict[str, Any]
    code: str
    message: Optional[str]
    message_key: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ObjectSignals":
        raw_code = _first_truthy(payload, CODE_FIELDS)
        raw_message = _first_truthy(payload, MESSAGE_FIELDS)

        message = raw_message if isinstance(raw_message, str) else None
        return cls(
            payload=payload,
            code=str(raw_code).upper() if raw_code else "",
            message=message,
            message_key=message.strip().lower() if message else "",
        )

    def flag(self, name: str) -> Any:
        return self.payload.get(name)


Rule = Tuple[str, Callable[[ObjectSignals], bool], Callable[[ObjectSignals], PlateCheckResult]]


def _first_truthy(payload: Dict[str, Any], fields: Tuple[str, ...]) -> Any:
    for field in fields:
        value = payload.get(field)
        if value:
            return value
    return None


def _result(status: PlateStatus, message: Optional[str] = None) -> PlateCheckResult:
    return PlateCheckResult(status=status, message=message or DEFAULT_MESSAGES[status])


def _with_upstream_message(status: PlateStatus) -> Callable[[ObjectSignals], PlateCheckResult]:
    return lambda s: _result(status, s.message)


_OBJECT_RULES: Tuple[Rule, ...] = (
    (
        "message_key",
        lambda s: s.message_key in MESSAGE_KEY_RESULTS,
        lambda s: MESSAGE_KEY_RESULTS[s.message_key],
    ),
    (
        "success_available",
        lambda s: s.flag("success") is True and s.code == "AVAILABLE",
        lambda s: _result("available"),
    ),
    (
        "available",
        lambda s: s.flag("available") is True or s.code in AVAILABLE_CODES,
        _with_upstream_message("available"),
    ),
    (
        "invalid",
        lambda s: s.code in INVALID_CODES or s.flag("isValid") is False,
        _with_upstream_message("invalid"),
    ),
    (
        "taken",
        lambda s: s.code in TAKEN_CODES or s.flag("available") is False,
        _with_upstream_message("taken"),
    ),
    # Any other human-readable message is read as a rejection reason.
    (
        "free_text_rejection",
        lambda s: bool(s.message) and not s.message_key.startswith(MESSAGE_KEY_PREFIX),
        lambda s: PlateCheckResult(status="taken", message=s.message or TAKEN_MESSAGE),
    ),
)


def interpret_text(text: str) -> PlateCheckResult:
    lowered = text.lower()
    for status, needles in _TEXT_RULES:
        if any(needle in lowered for needle in needles):
            return _result(status)
    return _result("unavailable")


def interpret_object(payload: Dict[str, Any]) -> PlateCheckResult:
    signals = ObjectSignals.from_payload(payload)
    for _name, matches, resolve in _OBJECT_RULES:
        if matches(signals):
            return resolve(signals)
    return _result("unavailable")


def interpret_dmv_response(payload: Any, http_status: int) -> PlateCheckResult:
    """
    Interpret a DMV check response.

    Always returns exactly one PlateCheckResult; never raises.
    """
    if http_status >= 500:
        return PlateCheckResult(status="unavailable", message=SERVICE_UNAVAILABLE_MESSAGE)

    if payload is None:
        return PlateCheckResult(status="unavailable", message=UNEXPECTED_RESPONSE_MESSAGE)

    if isinstance(payload, str):
        return interpret_text(payload)

    if isinstance(payload, dict):
        return interpret_object(payload)

    return _result("unavailable")
