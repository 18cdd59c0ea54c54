"""REST endpoints for tax calculations."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, request

from naijatax.backend.app.http import current_engine, problem_response
from naijatax.backend.app.services import CALCULATORS, calculate
from naijatax.backend.services import build_calculation_response, parse_json_object

blueprint = Blueprint("calculations", __name__, url_prefix="/api/v1")


@blueprint.post("/calculations/<tax_type>")
def create_calculation(tax_type: str) -> tuple[Any, int]:
    """Compute ``tax_type`` for the submitted JSON payload."""

    if tax_type not in CALCULATORS:
        supported = ", ".join(sorted(CALCULATORS))
        return problem_response(
            "not_found",
            status=404,
            message=f"Unsupported tax type '{tax_type}'; expected one of: {supported}",
        ).to_response()

    payload = parse_json_object(request)
    engine = current_engine()
    config = engine.get_effective_config()
    result = calculate(tax_type, payload, config)

    return build_calculation_response(result, engine.get_metadata(config))
