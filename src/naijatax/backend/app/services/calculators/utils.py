"""Utility helpers for calculator modules."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from naijatax.backend.config.schema import CRAConfig, PITBand


def format_percentage(value: float) -> str:
    """Return a human-readable percentage label for ``value``."""

    percentage = value * 100
    if float(int(percentage)) == percentage:
        return f"{int(percentage)}%"
    return f"{percentage:.2f}%"


def progressive_breakdown(amount: float, bands: Sequence[PITBand]) -> list[dict[str, Any]]:
    """Return the income and tax attributed to every band below ``amount``."""

    if amount <= 0:
        return []

    rows: list[dict[str, Any]] = []
    for band in bands:
        if band.lower_bound >= amount:
            continue
        base = min(amount, band.ceiling) - band.lower_bound
        rows.append(
            {
                "label": band.label,
                "lower_bound": band.lower_bound,
                "upper_bound": band.upper_bound,
                "rate": band.rate,
                "base_amount": base,
                "tax": base * band.rate,
            }
        )
    return rows


def calculate_progressive_tax(amount: float, bands: Sequence[PITBand]) -> float:
    """Calculate progressive tax for ``amount`` using ``bands``."""

    return sum(row["tax"] for row in progressive_breakdown(amount, bands))


def calculate_cra(gross_income: float, cra: CRAConfig) -> float:
    """Consolidated Relief Allowance for ``gross_income``."""

    gross = gross_income if gross_income > 0 else 0.0
    percentage = gross * cra.percentage_of_gross
    if cra.combination == "lower_of":
        base = min(cra.fixed_amount, percentage)
    else:
        base = max(cra.fixed_amount, percentage)
    return base + gross * cra.additional_percentage


def round_currency(value: float) -> float:
    """Round monetary amounts to two decimals."""

    return round(value, 2)


def round_rate(value: float) -> float:
    """Round rate values to four decimals."""

    return round(value, 4)
