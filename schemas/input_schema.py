# -------------------------------------------------------------------
# schemas/input_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **public request schema** for
# POST /api/check-plate.
#
# KEY DESIGN DECISION
# -------------------
# `plate` is deliberately typed as Any.
#
# The plate normalizer owns every validation message a caller can see
# ("Plate must be text.", "Plate cannot be empty.", ...). Typing the field
# as `str` here would let Pydantic reject numbers and objects first, with
# a generic message instead of the normalizer's.
#
# A missing `plate` is accepted by the schema and reported by the
# orchestrator as "Missing plate value." (400).
#
# WHAT THIS FILE IS NOT FOR
# ------------------------
# This module does NOT:
# - Normalize or validate the plate text
# - Call the DMV
# - Handle API routing or HTTP concerns
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PlateCheckRequest(BaseModel):
    """
    Request payload for a plate availability check.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"example": {"plate": "ab1"}},
    )

    plate: Any = Field(
        None,
        description="Requested plate text: 2-7 characters of A-Z, 0-9, space or '/'.",
    )
