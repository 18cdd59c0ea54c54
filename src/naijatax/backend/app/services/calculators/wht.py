"""Withholding tax deducted at source on payments."""

from __future__ import annotations

from typing import Any

from naijatax.backend.app.models import WithholdingRequest
from naijatax.backend.rules.errors import ValidationError
from naijatax.backend.rules.merge import EffectiveConfig

from .utils import round_currency


def calculate_wht(config: EffectiveConfig, payload: WithholdingRequest) -> dict[str, Any]:
    """Return the tax withheld from each payment and the totals."""

    wht = config.rates.wht
    rates = wht.payment_types()

    rows: list[dict[str, Any]] = []
    for index, payment in enumerate(payload.payments):
        schedule = rates.get(payment.payment_type)
        if schedule is None:
            supported = ", ".join(sorted(rates))
            raise ValidationError(
                f"Unknown payment type '{payment.payment_type}'; expected one of: {supported}",
                field=f"payments.{index}.payment_type",
            )
        rate = schedule.resident_rate if payment.is_resident else schedule.non_resident_rate
        withheld = payment.amount * rate
        rows.append(
            {
                "payment_type": payment.payment_type,
                "description": payment.description or schedule.description,
                "is_resident": payment.is_resident,
                "gross_amount": round_currency(payment.amount),
                "rate": rate,
                "withheld": round_currency(withheld),
                "net_amount": round_currency(payment.amount - withheld),
            }
        )

    total_gross = sum(payment.amount for payment in payload.payments)
    total_withheld = sum(row["withheld"] for row in rows)
    return {
        "tax_type": "wht",
        "payments": rows,
        "total_gross_amount": round_currency(total_gross),
        "total_withheld": round_currency(total_withheld),
        "total_net_amount": round_currency(total_gross - total_withheld),
        "tax_due": round_currency(total_withheld),
        "rates_used": {"wht": wht.model_dump(by_alias=True)},
    }


__all__ = ["calculate_wht"]
