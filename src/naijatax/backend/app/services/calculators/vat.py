"""Value added tax calculator."""

from __future__ import annotations

from typing import Any

from naijatax.backend.app.models import VATRequest
from naijatax.backend.rules.merge import EffectiveConfig

from .utils import round_currency


def calculate_vat(config: EffectiveConfig, payload: VATRequest) -> dict[str, Any]:
    rate = config.rates.vat_rate
    output_vat = payload.vatable_sales * rate
    if payload.input_vat_paid is not None:
        input_vat = payload.input_vat_paid
    else:
        input_vat = payload.vatable_purchases * rate
    net = output_vat - input_vat

    return {
        "tax_type": "vat",
        "rate": rate,
        "vatable_sales": round_currency(payload.vatable_sales),
        "output_vat": round_currency(output_vat),
        "input_vat": round_currency(input_vat),
        "net_vat_payable": round_currency(net),
        "is_refund": net < 0,
        "tax_due": round_currency(max(net, 0.0)),
    }


__all__ = ["calculate_vat"]
