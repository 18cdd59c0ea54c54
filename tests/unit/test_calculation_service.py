"""Unit tests for the calculation service."""
from __future__ import annotations

import pytest

from naijatax.backend.app.services.calculation_service import CALCULATORS, calculate
from naijatax.backend.rules.errors import ValidationError
from naijatax.backend.rules.merge import EffectiveConfig


@pytest.fixture()
def config(base_rates) -> EffectiveConfig:
    return EffectiveConfig(rates=base_rates)


def test_every_tax_type_has_a_calculator() -> None:
    assert set(CALCULATORS) == {"pit", "cit", "cgt", "levies", "vat", "wht", "stamp_duty"}


@pytest.mark.parametrize("tax_type", ["pit", "cit", "cgt", "levies", "vat"])
def test_empty_payloads_compute_zero_tax(config: EffectiveConfig, tax_type: str) -> None:
    result = calculate(tax_type, {}, config)

    assert result["tax_type"] == tax_type
    assert result["tax_due"] == 0


def test_cgt_dispatches_batches(config: EffectiveConfig) -> None:
    result = calculate(
        "cgt",
        {"disposals": [{"acquisition_cost": 100, "disposal_proceeds": 200}]},
        config,
    )

    assert result["tax_due"] == 10


def test_empty_batch_is_rejected(config: EffectiveConfig) -> None:
    with pytest.raises(ValidationError) as excinfo:
        calculate("cgt", {"disposals": []}, config)

    assert excinfo.value.field == "disposals"


def test_nested_field_errors_are_located(config: EffectiveConfig) -> None:
    with pytest.raises(ValidationError) as excinfo:
        calculate("levies", {"payroll_entries": [{"gross_pay": -1}]}, config)

    assert excinfo.value.field == "payroll_entries.0.gross_pay"
    assert "value cannot be negative" in str(excinfo.value)


def test_unknown_tax_type_is_rejected(config: EffectiveConfig) -> None:
    with pytest.raises(ValidationError):
        calculate("excise", {}, config)


def test_results_do_not_mutate_config(config: EffectiveConfig, base_rates) -> None:
    calculate("pit", {"gross_income": 10_000_000}, config)

    assert config.rates == base_rates


@pytest.mark.parametrize(
    ("tax_type", "payload", "field"),
    [
        ("wht", {"payments": []}, "payments"),
        ("wht", {"payments": [{"payment_type": "bribes", "amount": 1}]}, "payments.0.payment_type"),
        ("stamp_duty", {}, "documents"),
        ("stamp_duty", {"documents": [{"document_type": "will"}]}, "documents.0.document_type"),
    ],
)
def test_schedule_calculators_locate_bad_entries(
    config: EffectiveConfig, tax_type: str, payload: dict, field: str
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        calculate(tax_type, payload, config)

    assert excinfo.value.field == field
