"""Pydantic models describing the statutory rate table."""

from __future__ import annotations

import math
from typing import Annotated, Any, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Rate = Annotated[float, Field(ge=0, le=1, allow_inf_nan=False)]
Amount = Annotated[float, Field(ge=0, allow_inf_nan=False)]


class ConfigurationError(ValueError):
    """Raised when the compiled-in rate table violates schema expectations."""


class ImmutableModel(BaseModel):
    """Base class that freezes instances and rejects unknown fields.

    Field names are exposed with camelCase aliases; the aliases double as the
    vocabulary of override field paths (``pitBands[2].rate``).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class PITBand(ImmutableModel):
    """A single progressive personal income tax band."""

    label: str = ""
    lower_bound: Amount
    upper_bound: Amount | None = None
    rate: Rate

    @property
    def is_open_ended(self) -> bool:
        return self.upper_bound is None

    @property
    def ceiling(self) -> float:
        return math.inf if self.upper_bound is None else self.upper_bound


class CRAConfig(ImmutableModel):
    """Consolidated Relief Allowance parameters."""

    fixed_amount: Amount
    percentage_of_gross: Rate
    additional_percentage: Rate
    combination: Literal["higher_of", "lower_of"] = "higher_of"


class CITConfig(ImmutableModel):
    """Companies income tax thresholds keyed by annual turnover."""

    small_company_threshold: Amount
    small_company_rate: Rate
    medium_company_threshold: Amount
    medium_company_rate: Rate
    large_company_rate: Rate
    minimum_tax_rate: Rate


class LevyRate(ImmutableModel):
    """Flat-rate levy applied to a base amount."""

    rate: Rate


class NaseniLevyConfig(LevyRate):
    """NASENI levy, restricted to a set of industries."""

    industries: tuple[str, ...] = ()

    @field_validator("industries", mode="before")
    @classmethod
    def _normalise_industries(cls, value: Any) -> Any:
        if isinstance(value, str):
            raise ConfigurationError("NASENI industries must be provided as a list")
        if isinstance(value, Sequence):
            return tuple(str(item).strip().lower() for item in value)
        return value


class ITFLevyConfig(LevyRate):
    """Industrial Training Fund levy with applicability thresholds."""

    employee_threshold: int = Field(ge=0)
    turnover_threshold: Amount


class LevyConfig(ImmutableModel):
    """All statutory company levies."""

    police: LevyRate
    naseni: NaseniLevyConfig
    nsitf: LevyRate
    itf: ITFLevyConfig
    tertiary_education: LevyRate


class WithholdingRate(ImmutableModel):
    """Withholding tax deducted at source for one class of payment."""

    description: str = ""
    resident_rate: Rate
    non_resident_rate: Rate


class WithholdingConfig(ImmutableModel):
    """Withholding tax rates keyed by payment type."""

    dividends: WithholdingRate
    interest: WithholdingRate
    royalties: WithholdingRate
    rent: WithholdingRate
    professional_fees_individual: WithholdingRate
    professional_fees_company: WithholdingRate
    consultancy: WithholdingRate
    technical_services: WithholdingRate
    commissions: WithholdingRate
    construction: WithholdingRate
    contracts: WithholdingRate

    def payment_types(self) -> dict[str, WithholdingRate]:
        return {name: getattr(self, name) for name in type(self).model_fields}


class StampDutyRate(ImmutableModel):
    """Duty on one class of instrument: ad valorem, fixed, or both.

    Instruments valued below ``minimum_value`` are not charged.
    """

    description: str = ""
    rate: Rate = 0.0
    fixed_amount: Amount = 0.0
    minimum_value: Amount = 0.0


class StampDutyConfig(ImmutableModel):
    agreement: StampDutyRate
    lease: StampDutyRate
    deed: StampDutyRate
    mortgage: StampDutyRate
    share_transfer: StampDutyRate
    power_of_attorney: StampDutyRate
    receipt: StampDutyRate
    insurance_policy: StampDutyRate
    bank_transfer: StampDutyRate
    other: StampDutyRate

    def document_types(self) -> dict[str, StampDutyRate]:
        return {name: getattr(self, name) for name in type(self).model_fields}


class RateTable(ImmutableModel):
    """Complete set of statutory rates consumed by the calculators."""

    pit_bands: tuple[PITBand, ...]
    cra: CRAConfig
    cit: CITConfig
    vat_rate: Rate
    cgt_rate: Rate
    levies: LevyConfig
    wht: WithholdingConfig
    stamp_duty: StampDutyConfig

    @model_validator(mode="after")
    def _require_bands(self) -> RateTable:
        if not self.pit_bands:
            raise ConfigurationError("At least one PIT band must be defined")
        return self

    def as_document(self) -> dict[str, Any]:
        """Return the JSON-shaped representation keyed by field-path names."""

        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "Amount",
    "CITConfig",
    "CRAConfig",
    "ConfigurationError",
    "ITFLevyConfig",
    "ImmutableModel",
    "LevyConfig",
    "LevyRate",
    "NaseniLevyConfig",
    "PITBand",
    "Rate",
    "RateTable",
    "StampDutyConfig",
    "StampDutyRate",
    "WithholdingConfig",
    "WithholdingRate",
]
