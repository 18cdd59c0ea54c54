"""Domain-specific calculation helpers."""

from .cgt import calculate_cgt, calculate_cgt_batch
from .cit import calculate_cit, classify_company
from .levies import calculate_levies
from .pit import calculate_pit
from .stamp_duty import calculate_stamp_duty
from .utils import (
    calculate_cra,
    calculate_progressive_tax,
    format_percentage,
    progressive_breakdown,
    round_currency,
    round_rate,
)
from .vat import calculate_vat
from .wht import calculate_wht

__all__ = [
    "calculate_cgt",
    "calculate_cgt_batch",
    "calculate_cit",
    "calculate_cra",
    "calculate_levies",
    "calculate_pit",
    "calculate_progressive_tax",
    "calculate_stamp_duty",
    "calculate_vat",
    "calculate_wht",
    "classify_company",
    "format_percentage",
    "progressive_breakdown",
    "round_currency",
    "round_rate",
]
