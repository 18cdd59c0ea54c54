"""Personal income tax calculator."""

from __future__ import annotations

from typing import Any

from naijatax.backend.app.models import PITRequest
from naijatax.backend.rules.merge import EffectiveConfig

from .utils import calculate_cra, progressive_breakdown, round_currency, round_rate


def calculate_pit(config: EffectiveConfig, payload: PITRequest) -> dict[str, Any]:
    """Apply CRA, reliefs and the progressive bands to ``payload``."""

    rates = config.rates
    gross = payload.total_revenue
    expenses = payload.total_expenses
    gross_after_expenses = max(0.0, gross - expenses)

    cra = calculate_cra(gross, rates.cra)
    reliefs = payload.total_reliefs
    taxable = max(0.0, gross_after_expenses - cra - reliefs)

    bands = progressive_breakdown(taxable, rates.pit_bands)
    tax_before_credits = sum(row["tax"] for row in bands)
    credits = min(tax_before_credits, payload.withholding_tax_credits)
    tax_due = tax_before_credits - credits
    effective_rate = tax_due / taxable if taxable > 0 else 0.0

    return {
        "tax_type": "pit",
        "gross_income": round_currency(gross),
        "allowable_expenses": round_currency(expenses),
        "consolidated_relief": round_currency(cra),
        "other_reliefs": round_currency(reliefs),
        "taxable_income": round_currency(taxable),
        "bands": [
            {
                **row,
                "base_amount": round_currency(row["base_amount"]),
                "tax": round_currency(row["tax"]),
            }
            for row in bands
        ],
        "tax_before_credits": round_currency(tax_before_credits),
        "withholding_tax_credits": round_currency(credits),
        "tax_due": round_currency(tax_due),
        "effective_rate": round_rate(effective_rate),
        "rates_used": {
            "cra": rates.cra.model_dump(by_alias=True),
            "pitBands": [band.model_dump(by_alias=True) for band in rates.pit_bands],
        },
    }


__all__ = ["calculate_pit"]
