"""Pydantic models describing the public calculation API."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

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


class _InputModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)


class IncomeEntry(_InputModel):
    """A single revenue line declared by a self-employed taxpayer."""

    description: str = ""
    revenue: float = Field(default=0.0, ge=0)
    expenses: float = Field(default=0.0, ge=0)


class PITRequest(_InputModel):
    """Personal income tax inputs for an individual or freelancer."""

    gross_income: float = Field(default=0.0, ge=0)
    allowable_expenses: float = Field(default=0.0, ge=0)
    pension_contributions: float = Field(default=0.0, ge=0)
    nhf_contributions: float = Field(default=0.0, ge=0)
    nhis_contributions: float = Field(default=0.0, ge=0)
    life_insurance_premiums: float = Field(default=0.0, ge=0)
    other_reliefs: float = Field(default=0.0, ge=0)
    withholding_tax_credits: float = Field(default=0.0, ge=0)
    income_entries: tuple[IncomeEntry, ...] = ()

    @property
    def total_revenue(self) -> float:
        if self.income_entries:
            return sum(entry.revenue for entry in self.income_entries)
        return self.gross_income

    @property
    def total_expenses(self) -> float:
        if self.income_entries:
            return sum(entry.expenses for entry in self.income_entries)
        return self.allowable_expenses

    @property
    def total_reliefs(self) -> float:
        return (
            self.pension_contributions
            + self.nhf_contributions
            + self.nhis_contributions
            + self.life_insurance_premiums
            + self.other_reliefs
        )


class CITRequest(_InputModel):
    """Companies income tax inputs."""

    turnover: float = Field(default=0.0, ge=0)
    gross_revenue: float | None = Field(default=None, ge=0)
    cost_of_sales: float = Field(default=0.0, ge=0)
    operating_expenses: float = Field(default=0.0, ge=0)
    capital_allowance: float = Field(default=0.0, ge=0)
    investment_allowance: float = Field(default=0.0, ge=0)
    rural_investment_allowance: float = Field(default=0.0, ge=0)
    pioneer_status_relief: float = Field(default=0.0, ge=0)
    prior_year_losses: float = Field(default=0.0, ge=0)
    withholding_tax_credits: float = Field(default=0.0, ge=0)

    @property
    def minimum_tax_base(self) -> float:
        return self.gross_revenue if self.gross_revenue is not None else self.turnover

    @property
    def profit_before_allowances(self) -> float:
        return self.turnover - self.cost_of_sales - self.operating_expenses

    @property
    def assessable_profit(self) -> float:
        """Profit after allowances and relieved losses; negative for a loss."""

        return (
            self.profit_before_allowances
            - self.capital_allowance
            - self.investment_allowance
            - self.rural_investment_allowance
            - self.pioneer_status_relief
            - self.prior_year_losses
        )


class CGTRequest(_InputModel):
    """A single chargeable asset disposal."""

    asset_description: str = ""
    acquisition_cost: float = Field(default=0.0, ge=0)
    improvement_costs: float = Field(default=0.0, ge=0)
    disposal_proceeds: float = Field(default=0.0, ge=0)
    selling_expenses: float = Field(default=0.0, ge=0)


class CGTBatchRequest(_InputModel):
    disposals: tuple[CGTRequest, ...] = Field(..., min_length=1)


class PayrollEntry(_InputModel):
    """Monthly payroll figures used to derive levy bases."""

    month: str = ""
    gross_pay: float = Field(default=0.0, ge=0)
    employee_count: int = Field(default=0, ge=0)


class LeviesRequest(_InputModel):
    """Inputs for the statutory levies charged alongside income taxes."""

    is_company: bool = True
    industry: str | None = None
    net_profit: float = Field(default=0.0, ge=0)
    profit_before_tax: float = Field(default=0.0, ge=0)
    assessable_profit: float = Field(default=0.0, ge=0)
    annual_payroll: float = Field(default=0.0, ge=0)
    employee_count: int = Field(default=0, ge=0)
    annual_turnover: float = Field(default=0.0, ge=0)
    payroll_entries: tuple[PayrollEntry, ...] = ()

    @field_validator("industry", mode="before")
    @classmethod
    def _normalise_industry(cls, value: Any) -> Any:
        if isinstance(value, str):
            cleaned = value.strip().lower()
            return cleaned or None
        return value

    @property
    def reported_months(self) -> tuple[PayrollEntry, ...]:
        """Monthly entries that carry any payroll or head-count figure."""

        return tuple(
            entry
            for entry in self.payroll_entries
            if entry.gross_pay or entry.employee_count
        )

    @property
    def payroll(self) -> float:
        """Annual payroll, annualised from the average reported month."""

        months = self.reported_months
        if months:
            return sum(entry.gross_pay for entry in months) / len(months) * 12
        return self.annual_payroll

    @property
    def employees(self) -> int:
        months = self.reported_months
        if months:
            average = sum(entry.employee_count for entry in months) / len(months)
            return math.floor(average + 0.5)
        return self.employee_count


class WithholdingPayment(_InputModel):
    """A payment from which tax is withheld at source."""

    payment_type: str = Field(..., min_length=1)
    amount: float = Field(default=0.0, ge=0)
    is_resident: bool = True
    description: str = ""

    @field_validator("payment_type", mode="before")
    @classmethod
    def _normalise_payment_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_")
        return value


class WithholdingRequest(_InputModel):
    payments: tuple[WithholdingPayment, ...] = Field(..., min_length=1)


class StampDutyDocument(_InputModel):
    document_type: str = "other"
    transaction_value: float = Field(default=0.0, ge=0)

    @field_validator("document_type", mode="before")
    @classmethod
    def _normalise_document_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_") or "other"
        return value


class StampDutyRequest(_InputModel):
    documents: tuple[StampDutyDocument, ...] = Field(..., min_length=1)


class VATRequest(_InputModel):
    vatable_sales: float = Field(default=0.0, ge=0)
    vatable_purchases: float = Field(default=0.0, ge=0)
    input_vat_paid: float | None = Field(default=None, ge=0)


def first_error_field(error: ValidationError) -> str | None:
    """Return the dotted location of the first validation issue, if any."""

    for issue in error.errors():
        location = issue.get("loc", ())
        if location:
            return ".".join(str(part) for part in location)
    return None


def format_validation_error(error: ValidationError) -> str:
    """Return a concise human-readable description of validation issues."""

    messages: list[str] = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        message = issue.get("msg", "Invalid value")
        if "greater than or equal to 0" in message.lower():
            message = "value cannot be negative"
        if location:
            messages.append(f"{location}: {message}")
        else:
            messages.append(message)

    details = "; ".join(messages) if messages else str(error)
    return f"Invalid calculation payload: {details}"
