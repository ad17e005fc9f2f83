"""Structural validation for item payloads."""

from __future__ import annotations

from typing import Any, Optional

from core.errors import ValidationError

# Minimum fields a delivery message cannot be rendered without.
REQUIRED_FIELDS = ("text", "url", "author_name")


def missing_fields(payload: Optional[dict[str, Any]]) -> list[str]:
    """Return required fields that are absent, non-string, or blank."""

    if not payload:
        return list(REQUIRED_FIELDS)
    missing = []
    for name in REQUIRED_FIELDS:
        value = payload.get(name)
        if not isinstance(value, str) or not value.strip():
            missing.append(name)
    return missing


def validate_payload(payload: Optional[dict[str, Any]]) -> None:
    """Raise ValidationError unless the payload can be rendered."""

    if payload is None:
        raise ValidationError("record could not be read")
    if not isinstance(payload, dict):
        raise ValidationError(f"payload must be an object, got {type(payload).__name__}")
    missing = missing_fields(payload)
    if missing:
        raise ValidationError(f"required fields missing or empty: {', '.join(missing)}")
