"""
functions/orchestrator/plate_normalizer.py

Turns raw client input into a canonical plate key or rejects it.

A plate key is the trimmed, uppercased input: 2-7 characters drawn from
A-Z, 0-9, space and "/". It is used both as the cache key and as the value
sent to the DMV.
"""

from __future__ import annotations

import re
from typing import Any

from functions.orchestrator.errors import InvalidPlateError

MIN_PLATE_LENGTH = 2
MAX_PLATE_LENGTH = 7

_PLATE_PATTERN = re.compile(r"[A-Z0-9/ ]+")


def normalize_plate(raw: Any) -> str:
    """
    Return the canonical plate key for `raw`.

    Raises:
        InvalidPlateError: non-text input, empty input, length outside
        [2, 7], or any character outside the allowed alphabet.
    """
    if not isinstance(raw, str):
        raise InvalidPlateError("Plate must be text.")

    normalized = raw.strip().upper()

    if not normalized:
        raise InvalidPlateError("Plate cannot be empty.")

    if not MIN_PLATE_LENGTH <= len(normalized) <= MAX_PLATE_LENGTH:
        raise InvalidPlateError(
            f"Plates must be between {MIN_PLATE_LENGTH} and {MAX_PLATE_LENGTH} characters."
        )

    if not _PLATE_PATTERN.fullmatch(normalized):
        raise InvalidPlateError('Only letters A-Z, digits 0-9, spaces, and "/" are allowed.')

    return normalized
