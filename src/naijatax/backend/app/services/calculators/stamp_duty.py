"""Stamp duty on dutiable instruments."""

from __future__ import annotations

from typing import Any

from naijatax.backend.app.models import StampDutyRequest
from naijatax.backend.rules.errors import ValidationError
from naijatax.backend.rules.merge import EffectiveConfig

from .utils import format_percentage, round_currency


def calculate_stamp_duty(config: EffectiveConfig, payload: StampDutyRequest) -> dict[str, Any]:
    schedule = config.rates.stamp_duty
    duties = schedule.document_types()

    rows: list[dict[str, Any]] = []
    for index, document in enumerate(payload.documents):
        duty = duties.get(document.document_type)
        if duty is None:
            supported = ", ".join(sorted(duties))
            raise ValidationError(
                f"Unknown document type '{document.document_type}'; "
                f"expected one of: {supported}",
                field=f"documents.{index}.document_type",
            )

        value = document.transaction_value
        chargeable = value >= duty.minimum_value
        amount = duty.rate * value + duty.fixed_amount if chargeable else 0.0
        if duty.rate and duty.fixed_amount:
            basis = f"{format_percentage(duty.rate)} plus ₦{duty.fixed_amount:,.0f}"
        elif duty.rate:
            basis = f"{format_percentage(duty.rate)} ad valorem"
        else:
            basis = f"Fixed ₦{duty.fixed_amount:,.0f}"

        rows.append(
            {
                "document_type": document.document_type,
                "description": duty.description,
                "transaction_value": round_currency(value),
                "basis": basis,
                "chargeable": chargeable,
                "duty": round_currency(amount),
            }
        )

    return {
        "tax_type": "stamp_duty",
        "documents": rows,
        "tax_due": round_currency(sum(row["duty"] for row in rows)),
        "rates_used": {"stampDuty": schedule.model_dump(by_alias=True)},
    }


__all__ = ["calculate_stamp_duty"]
