"""Typed request models shared by the calculation routes and services."""

from __future__ import annotations

from .api import (
    CGTBatchRequest,
    CGTRequest,
    CITRequest,
    IncomeEntry,
    LeviesRequest,
    PITRequest,
    PayrollEntry,
    StampDutyDocument,
    StampDutyRequest,
    VATRequest,
    WithholdingPayment,
    WithholdingRequest,
    first_error_field,
    format_validation_error,
)

__all__ = [
    "CGTBatchRequest",
    "CGTRequest",
    "CITRequest",
    "IncomeEntry",
    "LeviesRequest",
    "PITRequest",
    "PayrollEntry",
    "StampDutyDocument",
    "StampDutyRequest",
    "VATRequest",
    "WithholdingPayment",
    "WithholdingRequest",
    "first_error_field",
    "format_validation_error",
]
