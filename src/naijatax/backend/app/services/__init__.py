"""Calculation services backing the Flask routes."""

from .calculation_service import CALCULATORS, calculate

__all__ = ["CALCULATORS", "calculate"]
