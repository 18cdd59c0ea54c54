"""Administrative endpoints for inspecting and overriding tax rules."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from flask import Blueprint, jsonify, request

from naijatax.backend.app.http import (
    current_engine,
    problem_from_rule_error,
    problem_response,
)
from naijatax.backend.rules.errors import UnknownFieldError, ValidationError
from naijatax.backend.services import parse_json_object

blueprint = Blueprint("tax_rules", __name__, url_prefix="/api/v1/tax-rules")

logger = logging.getLogger(__name__)


@blueprint.get("")
def get_tax_rules() -> tuple[Any, int]:
    engine = current_engine()
    effective = engine.get_effective_config()
    return (
        jsonify(
            {
                "metadata": engine.get_metadata(),
                "overrides": engine.get_override_snapshot().as_dict(),
                "base": engine.base.as_document(),
                "effective": effective.describe(),
            }
        ),
        200,
    )


@blueprint.post("")
def apply_tax_rule_overrides() -> tuple[Any, int]:
    """Apply a batch of overrides atomically on behalf of an administrator."""

    payload = parse_json_object(request)
    overrides = payload.get("overrides")
    if not isinstance(overrides, Mapping) or not overrides:
        return problem_response(
            "validation_error",
            status=400,
            message="Field 'overrides' must be a non-empty object of path/value pairs",
            field="overrides",
        ).to_response()

    actor = payload.get("actor")
    if actor is not None and not isinstance(actor, str):
        return problem_response(
            "validation_error",
            status=400,
            message="Field 'actor' must be a string",
            field="actor",
        ).to_response()

    engine = current_engine()
    try:
        versions = engine.apply_overrides(overrides, actor=actor, source="api")
    except (ValidationError, UnknownFieldError) as error:
        logger.info("Rejected override request from %s: %s", actor, error)
        return problem_from_rule_error(error).to_response()

    return (
        jsonify(
            {
                "applied": versions,
                "metadata": engine.get_metadata(),
                "effective": engine.get_effective_config().describe(),
            }
        ),
        200,
    )


@blueprint.get("/history")
def get_override_history() -> tuple[Any, int]:
    path = request.args.get("path")
    try:
        entries = current_engine().history(path)
    except UnknownFieldError as error:
        return problem_from_rule_error(error).to_response()
    return jsonify({"path": path, "history": [entry.as_dict() for entry in entries]}), 200


@blueprint.post("/refresh")
def refresh_tax_rules() -> tuple[Any, int]:
    engine = current_engine()
    state = engine.refresh_now()
    if state is None:
        return problem_response(
            "refresh_disabled",
            status=409,
            message="No remote rate authority is configured",
        ).to_response()
    return jsonify({"refresh": state.as_dict(), "metadata": engine.get_metadata()}), 200
