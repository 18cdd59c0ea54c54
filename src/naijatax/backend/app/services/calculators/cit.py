"""Companies income tax calculator."""

from __future__ import annotations

from typing import Any

from naijatax.backend.app.models import CITRequest
from naijatax.backend.config.schema import CITConfig
from naijatax.backend.rules.merge import EffectiveConfig

from .utils import format_percentage, round_currency, round_rate


def classify_company(turnover: float, cit: CITConfig) -> tuple[str, float]:
    """Return the company size band and its CIT rate for ``turnover``."""

    if turnover <= cit.small_company_threshold:
        return "small", cit.small_company_rate
    if turnover <= cit.medium_company_threshold:
        return "medium", cit.medium_company_rate
    return "large", cit.large_company_rate


def calculate_cit(config: EffectiveConfig, payload: CITRequest) -> dict[str, Any]:
    """Compute CIT, applying the minimum tax floor to medium and large companies."""

    cit = config.rates.cit
    size, rate = classify_company(payload.turnover, cit)

    assessable = payload.assessable_profit
    taxable_profit = max(0.0, assessable)
    computed = taxable_profit * rate

    minimum_tax = cit.minimum_tax_rate * payload.minimum_tax_base
    # Losses and thin profits are floored; small companies are exempt.
    minimum_tax_applied = size != "small" and minimum_tax > computed
    tax_before_credits = minimum_tax if minimum_tax_applied else computed

    credits = min(tax_before_credits, payload.withholding_tax_credits)
    tax_due = tax_before_credits - credits

    return {
        "tax_type": "cit",
        "company_size": size,
        "label": f"{size.title()} company ({format_percentage(rate)})",
        "turnover": round_currency(payload.turnover),
        "gross_profit": round_currency(payload.turnover - payload.cost_of_sales),
        "assessable_profit": round_currency(assessable),
        "taxable_profit": round_currency(taxable_profit),
        "rate": rate,
        "computed_tax": round_currency(computed),
        "minimum_tax": round_currency(minimum_tax if size != "small" else 0.0),
        "minimum_tax_applied": minimum_tax_applied,
        "tax_before_credits": round_currency(tax_before_credits),
        "withholding_tax_credits": round_currency(credits),
        "tax_due": round_currency(tax_due),
        "effective_rate": round_rate(tax_due / taxable_profit if taxable_profit > 0 else 0.0),
        "rates_used": {"cit": cit.model_dump(by_alias=True)},
    }


__all__ = ["calculate_cit", "classify_company"]
