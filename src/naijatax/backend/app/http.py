"""HTTP helper utilities shared across Flask blueprints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from flask import current_app, jsonify

from naijatax.backend.rules import TaxRuleEngine
from naijatax.backend.rules.errors import UnknownFieldError, ValidationError

ENGINE_EXTENSION = "naijatax.engine"


@dataclass(frozen=True)
class ProblemResponse:
    """Lightweight representation of an RFC 7807-style error payload."""

    error: str
    status: int
    message: str | None = None
    extra: Mapping[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return the serialisable payload for this problem response."""

        payload: dict[str, Any] = {"error": self.error}
        if self.message:
            payload["message"] = self.message
        if self.extra:
            payload.update(self.extra)
        return payload

    def to_response(self) -> tuple[Any, int]:
        """Convert the problem payload into a Flask response tuple."""

        return jsonify(self.as_dict()), self.status


def problem_response(
    error: str,
    *,
    status: int,
    message: str | None = None,
    **extra: Any,
) -> ProblemResponse:
    """Convenience factory mirroring Flask's ``jsonify`` interface."""

    additional: Mapping[str, Any] | None = extra or None
    return ProblemResponse(error=error, status=status, message=message, extra=additional)


def problem_from_rule_error(error: ValidationError | UnknownFieldError) -> ProblemResponse:
    """Map rule engine errors onto 400 responses naming the failing field."""

    code = "unknown_field" if isinstance(error, UnknownFieldError) else "validation_error"
    return problem_response(code, status=400, message=str(error), field=error.field)


def current_engine() -> TaxRuleEngine:
    """Return the engine registered on the active Flask application."""

    return current_app.extensions[ENGINE_EXTENSION]


__all__ = [
    "ENGINE_EXTENSION",
    "ProblemResponse",
    "current_engine",
    "problem_from_rule_error",
    "problem_response",
]
