# -------------------------------------------------------------------
# schemas/output_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **response schemas** of the plate check API.
#
# - PlateCheckResult is the interpreted outcome of one DMV lookup. It is
#   what the interpreter produces and what the result cache stores.
# - PlateCheckResponse is what a caller receives on success: the result
#   plus the `cached` flag attached by the orchestrator.
# - ErrorResponse documents the {error, details?} body returned for
#   400 / 429 / 502.
#
# STATUS VOCABULARY
# -----------------
#   available | taken | invalid | unavailable
#
# `unavailable` never reaches a caller as a 200. The orchestrator turns it
# into a 502 and never caches it.
#
# WHAT THIS FILE IS NOT FOR
# ------------------------
# This module does NOT:
# - Interpret DMV payloads
# - Contain HTTP or FastAPI logic
# - Handle caching or rate limiting
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PlateStatus = Literal["available", "taken", "invalid", "unavailable"]


class PlateCheckResult(BaseModel):
    """
    Interpreted outcome of a DMV availability check.
    """

    model_config = ConfigDict(frozen=True)

    status: PlateStatus
    message: str


class PlateCheckResponse(BaseModel):
    """
    Successful response body for POST /api/check-plate.
    """

    model_config = {"extra": "forbid"}

    status: Literal["available", "taken", "invalid"]
    message: str
    cached: bool = False


class ErrorResponse(BaseModel):
    """
    Error body for 400 / 429 / 502 responses.
    """

    error: str
    details: Optional[str] = Field(
        None,
        description="Original transport failure text, only set for unreachable upstream errors.",
    )
