"""Capital gains tax calculators."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from naijatax.backend.app.models import CGTRequest
from naijatax.backend.rules.merge import EffectiveConfig

from .utils import round_currency


def _disposal(rate: float, disposal: CGTRequest) -> dict[str, float | str]:
    total_cost = disposal.acquisition_cost + disposal.improvement_costs
    net_proceeds = disposal.disposal_proceeds - disposal.selling_expenses
    gain = net_proceeds - total_cost
    chargeable = gain if gain > 0 else 0.0
    return {
        "asset_description": disposal.asset_description,
        "total_cost": total_cost,
        "net_proceeds": net_proceeds,
        "gain": gain,
        "chargeable_gain": chargeable,
        "tax": chargeable * rate,
    }


def _rounded(row: dict[str, Any]) -> dict[str, Any]:
    return {
        key: round_currency(value) if isinstance(value, float) else value
        for key, value in row.items()
    }


def calculate_cgt(config: EffectiveConfig, payload: CGTRequest) -> dict[str, Any]:
    """Tax the chargeable gain on a single disposal; losses yield zero tax."""

    rate = config.rates.cgt_rate
    row = _disposal(rate, payload)
    return {
        "tax_type": "cgt",
        **_rounded(row),
        "acquisition_cost": round_currency(payload.acquisition_cost),
        "disposal_proceeds": round_currency(payload.disposal_proceeds),
        "rate": rate,
        "tax_due": round_currency(float(row["tax"])),
    }


def calculate_cgt_batch(
    config: EffectiveConfig, disposals: Sequence[CGTRequest]
) -> dict[str, Any]:
    """Sum gains and tax across ``disposals`` without netting losses."""

    rate = config.rates.cgt_rate
    rows = [_disposal(rate, disposal) for disposal in disposals]
    total_gain = sum(float(row["chargeable_gain"]) for row in rows)
    total_tax = sum(float(row["tax"]) for row in rows)
    return {
        "tax_type": "cgt",
        "disposals": [_rounded(row) for row in rows],
        "total_chargeable_gain": round_currency(total_gain),
        "rate": rate,
        "tax_due": round_currency(total_tax),
    }


__all__ = ["calculate_cgt", "calculate_cgt_batch"]
