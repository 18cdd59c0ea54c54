"""Validate calculation requests and dispatch them to the calculators.

Every calculation runs against one :class:`EffectiveConfig` value taken at the
start of the request, so an override landing mid-calculation never mixes old
and new rates in a single result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from naijatax.backend.app.models import (
    CGTBatchRequest,
    CGTRequest,
    CITRequest,
    LeviesRequest,
    PITRequest,
    StampDutyRequest,
    VATRequest,
    WithholdingRequest,
    first_error_field,
    format_validation_error,
)
from naijatax.backend.rules.errors import ValidationError
from naijatax.backend.rules.merge import EffectiveConfig

from .calculators import (
    calculate_cgt,
    calculate_cgt_batch,
    calculate_cit,
    calculate_levies,
    calculate_pit,
    calculate_stamp_duty,
    calculate_vat,
    calculate_wht,
)

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Calculator:
    model: type[BaseModel]
    compute: Callable[[EffectiveConfig, Any], dict[str, Any]]


def _calculate_cgt_batch(config: EffectiveConfig, payload: CGTBatchRequest) -> dict[str, Any]:
    return calculate_cgt_batch(config, payload.disposals)


CALCULATORS: Mapping[str, Calculator] = {
    "pit": Calculator(PITRequest, calculate_pit),
    "cit": Calculator(CITRequest, calculate_cit),
    "cgt": Calculator(CGTRequest, calculate_cgt),
    "levies": Calculator(LeviesRequest, calculate_levies),
    "vat": Calculator(VATRequest, calculate_vat),
    "wht": Calculator(WithholdingRequest, calculate_wht),
    "stamp_duty": Calculator(StampDutyRequest, calculate_stamp_duty),
}
_CGT_BATCH = Calculator(CGTBatchRequest, _calculate_cgt_batch)


def _resolve(tax_type: str, payload: Mapping[str, Any]) -> Calculator:
    if tax_type == "cgt" and "disposals" in payload:
        return _CGT_BATCH
    try:
        return CALCULATORS[tax_type]
    except KeyError:
        raise ValidationError(f"Unsupported tax type '{tax_type}'", field="tax_type") from None


def calculate(
    tax_type: str,
    payload: Mapping[str, Any],
    config: EffectiveConfig,
) -> dict[str, Any]:
    """Validate ``payload`` for ``tax_type`` and compute it against ``config``."""

    if not isinstance(payload, Mapping):
        raise ValidationError("Payload must be a mapping")

    calculator = _resolve(tax_type, payload)
    try:
        request_model = calculator.model.model_validate(dict(payload))
    except SchemaValidationError as exc:
        raise ValidationError(
            format_validation_error(exc), field=first_error_field(exc)
        ) from exc

    result = calculator.compute(config, request_model)
    _LOGGER.debug(
        "Calculated %s at config revision %s: tax_due=%s",
        tax_type,
        config.revision,
        result.get("tax_due"),
    )
    return result


__all__ = ["CALCULATORS", "Calculator", "calculate"]
