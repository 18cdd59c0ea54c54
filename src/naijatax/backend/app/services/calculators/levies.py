"""Statutory levies charged on companies alongside income taxes."""

from __future__ import annotations

from typing import Any

from naijatax.backend.app.models import LeviesRequest
from naijatax.backend.rules.merge import EffectiveConfig

from .utils import format_percentage, round_currency


def _row(name: str, rate: float, base: float, applicable: bool, note: str) -> dict[str, Any]:
    amount = rate * base if applicable and base > 0 else 0.0
    return {
        "levy": name,
        "rate": rate,
        "base_amount": round_currency(base),
        "applicable": applicable,
        "amount": round_currency(amount),
        "note": note,
    }


def calculate_levies(config: EffectiveConfig, payload: LeviesRequest) -> dict[str, Any]:
    """Return police, NASENI, NSITF, ITF and tertiary education levies."""

    levies = config.rates.levies
    company = payload.is_company
    payroll = payload.payroll
    employees = payload.employees

    naseni_industry = payload.industry is not None and payload.industry in levies.naseni.industries
    itf_applicable = (
        employees >= levies.itf.employee_threshold
        or payload.annual_turnover >= levies.itf.turnover_threshold
    )

    rows = [
        _row(
            "police",
            levies.police.rate,
            payload.net_profit,
            company,
            f"Police Trust Fund levy at {format_percentage(levies.police.rate)} of net profit",
        ),
        _row(
            "naseni",
            levies.naseni.rate,
            payload.profit_before_tax,
            company and naseni_industry,
            "NASENI levy on profit before tax for "
            + ", ".join(levies.naseni.industries),
        ),
        _row(
            "nsitf",
            levies.nsitf.rate,
            payroll,
            payroll > 0,
            f"NSITF employer contribution at {format_percentage(levies.nsitf.rate)} of payroll",
        ),
        _row(
            "itf",
            levies.itf.rate,
            payroll,
            itf_applicable,
            f"ITF levy for {levies.itf.employee_threshold}+ employees or turnover of "
            f"{levies.itf.turnover_threshold:,.0f}+",
        ),
        _row(
            "tertiary_education",
            levies.tertiary_education.rate,
            payload.assessable_profit,
            company,
            "Tertiary education tax on assessable profit (companies only)",
        ),
    ]

    return {
        "tax_type": "levies",
        "payroll": round_currency(payroll),
        "employee_count": employees,
        "levies": rows,
        "tax_due": round_currency(sum(row["amount"] for row in rows)),
        "rates_used": {"levies": levies.model_dump(by_alias=True)},
    }


__all__ = ["calculate_levies"]
