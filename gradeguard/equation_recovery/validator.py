"""Validates the recogniser's JSON response."""

import math
from typing import Any

from gradeguard.equation_recovery.exceptions import EquationRecoveryValidationError
from gradeguard.equation_recovery.models import RecoveredEquation


def validate_and_build(data: dict[str, Any]) -> list[RecoveredEquation]:
    """Build recovered equations from ``{"equations": [...]}``.

    Raises:
        EquationRecoveryValidationError: when the payload shape is wrong.
    """
    if "equations" not in data:
        raise EquationRecoveryValidationError("Missing required top-level field: equations")
    raw = data["equations"]
    if not isinstance(raw, list):
        raise EquationRecoveryValidationError("'equations' must be a list")

    seen: set[str] = set()
    out: list[RecoveredEquation] = []
    for i, item in enumerate(raw):
        entry = _build_entry(item, i)
        if entry.id in seen:
            raise EquationRecoveryValidationError(f"Duplicate equation id: {entry.id}")
        seen.add(entry.id)
        out.append(entry)
    return out


def _build_entry(raw: Any, index: int) -> RecoveredEquation:
    if not isinstance(raw, dict):
        raise EquationRecoveryValidationError(f"Equation at index {index} must be an object")
    eq_id = raw.get("id")
    if not eq_id or not isinstance(eq_id, str):
        raise EquationRecoveryValidationError(
            f"Equation at index {index}: 'id' must be a non-empty string"
        )
    latex = raw.get("latex")
    if not isinstance(latex, str) or not latex.strip():
        raise EquationRecoveryValidationError(
            f"Equation at index {index}: 'latex' must be a non-empty string"
        )
    confidence = raw.get("confidence")
    if (
        isinstance(confidence, bool)
        or not isinstance(confidence, (int, float))
        or not math.isfinite(confidence)
        or not 0 <= confidence <= 1
    ):
        raise EquationRecoveryValidationError(
            f"Equation at index {index}: 'confidence' must be a number between 0 and 1"
        )
    return RecoveredEquation(id=eq_id.strip(), latex=latex.strip(), confidence=float(confidence))
