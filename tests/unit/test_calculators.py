"""Regression tests for the progressive calculators."""

from __future__ import annotations

import pytest

from naijatax.backend.app.models import (
    CGTRequest,
    CITRequest,
    LeviesRequest,
    PITRequest,
    PayrollEntry,
    StampDutyRequest,
    VATRequest,
    WithholdingRequest,
)
from naijatax.backend.app.services.calculators import (
    calculate_cgt,
    calculate_cgt_batch,
    calculate_cit,
    calculate_cra,
    calculate_levies,
    calculate_pit,
    calculate_progressive_tax,
    calculate_stamp_duty,
    calculate_vat,
    calculate_wht,
    progressive_breakdown,
)
from naijatax.backend.rules.merge import EffectiveConfig, merge
from naijatax.backend.rules.store import OverrideStore


@pytest.fixture()
def config(base_rates) -> EffectiveConfig:
    return EffectiveConfig(rates=base_rates)


@pytest.fixture()
def three_band_config(three_band_rates) -> EffectiveConfig:
    return EffectiveConfig(rates=three_band_rates)


def test_progressive_tax_worked_example(three_band_config) -> None:
    bands = three_band_config.rates.pit_bands

    rows = progressive_breakdown(700000, bands)

    assert [round(row["tax"], 2) for row in rows] == [21000, 33000, 15000]
    assert calculate_progressive_tax(700000, bands) == pytest.approx(69000)


def test_band_rate_override_changes_only_that_band(three_band_rates) -> None:
    store = OverrideStore(three_band_rates)
    store.apply_override("pitBands[0].rate", 0.05, "api", "tester")

    effective = merge(three_band_rates, store.snapshot())
    rows = progressive_breakdown(700000, effective.rates.pit_bands)

    assert [round(row["tax"], 2) for row in rows] == [15000, 33000, 15000]
    assert calculate_progressive_tax(700000, effective.rates.pit_bands) == pytest.approx(63000)


@pytest.mark.parametrize("amount", [0, -1, -250000])
def test_progressive_tax_is_zero_without_income(three_band_config, amount) -> None:
    assert calculate_progressive_tax(amount, three_band_config.rates.pit_bands) == 0


def test_progressive_tax_is_monotonic_and_continuous(config) -> None:
    bands = config.rates.pit_bands
    previous = 0.0
    for amount in range(0, 5_000_001, 50_000):
        tax = calculate_progressive_tax(amount, bands)
        assert tax >= previous
        assert tax <= amount * max(band.rate for band in bands)
        previous = tax

    for band in bands:
        if band.upper_bound is None:
            continue
        below = calculate_progressive_tax(band.upper_bound - 0.01, bands)
        at = calculate_progressive_tax(band.upper_bound, bands)
        assert at - below == pytest.approx(0.01 * band.rate, abs=1e-6)


def test_progressive_tax_matches_marginal_rate_integral(config) -> None:
    bands = config.rates.pit_bands
    amount = 4_000_000
    step = 1_000
    integral = 0.0
    for start in range(0, amount, step):
        rate = next(
            band.rate
            for band in bands
            if band.lower_bound <= start and (band.upper_bound is None or start < band.upper_bound)
        )
        integral += rate * step

    assert calculate_progressive_tax(amount, bands) == pytest.approx(integral)


def test_cra_combination_rules(base_rates) -> None:
    cra = base_rates.cra

    assert calculate_cra(10_000_000, cra) == pytest.approx(200_000 + 2_000_000)
    assert calculate_cra(50_000_000, cra) == pytest.approx(500_000 + 10_000_000)

    lower_of = cra.model_copy(update={"combination": "lower_of"})
    assert calculate_cra(10_000_000, lower_of) == pytest.approx(100_000 + 2_000_000)


def test_pit_applies_cra_reliefs_and_credits(config) -> None:
    payload = PITRequest(
        gross_income=5_000_000,
        allowable_expenses=500_000,
        pension_contributions=400_000,
        nhf_contributions=125_000,
        withholding_tax_credits=50_000,
    )

    result = calculate_pit(config, payload)

    # CRA = max(200k, 50k) + 1m; taxable = 4.5m - 1.2m - 525k
    assert result["consolidated_relief"] == 1_200_000
    assert result["taxable_income"] == 2_775_000
    expected = calculate_progressive_tax(2_775_000, config.rates.pit_bands)
    assert result["tax_before_credits"] == pytest.approx(expected, abs=0.01)
    assert result["withholding_tax_credits"] == 50_000
    assert result["tax_due"] == pytest.approx(expected - 50_000, abs=0.01)
    assert result["rates_used"]["cra"]["fixedAmount"] == 200000


def test_pit_uses_income_entries_when_present(config) -> None:
    payload = PITRequest.model_validate(
        {
            "gross_income": 1,
            "income_entries": [
                {"description": "design", "revenue": 3_000_000, "expenses": 200_000},
                {"description": "consulting", "revenue": 2_000_000, "expenses": 300_000},
            ],
        }
    )

    result = calculate_pit(config, payload)

    assert result["gross_income"] == 5_000_000
    assert result["allowable_expenses"] == 500_000


def test_pit_is_zero_when_reliefs_exceed_income(config) -> None:
    result = calculate_pit(config, PITRequest(gross_income=150_000))

    assert result["taxable_income"] == 0
    assert result["bands"] == []
    assert result["tax_due"] == 0


def test_cit_small_company_is_exempt_from_minimum_tax(config) -> None:
    result = calculate_cit(config, CITRequest(turnover=20_000_000, operating_expenses=25_000_000))

    assert result["company_size"] == "small"
    assert result["minimum_tax_applied"] is False
    assert result["tax_due"] == 0


def test_cit_medium_company_pays_rate_on_assessable_profit(config) -> None:
    result = calculate_cit(
        config,
        CITRequest(
            turnover=80_000_000,
            cost_of_sales=30_000_000,
            operating_expenses=20_000_000,
            capital_allowance=5_000_000,
            prior_year_losses=5_000_000,
            withholding_tax_credits=1_000_000,
        ),
    )

    assert result["company_size"] == "medium"
    assert result["assessable_profit"] == 20_000_000
    assert result["computed_tax"] == 4_000_000
    assert result["minimum_tax_applied"] is False
    assert result["tax_due"] == 3_000_000


def test_cit_loss_making_large_company_pays_minimum_tax(config) -> None:
    result = calculate_cit(
        config,
        CITRequest(turnover=200_000_000, cost_of_sales=150_000_000, operating_expenses=60_000_000),
    )

    assert result["company_size"] == "large"
    assert result["assessable_profit"] == -10_000_000
    assert result["computed_tax"] == 0
    assert result["minimum_tax_applied"] is True
    assert result["tax_due"] == 2_000_000


def test_cgt_worked_example(config) -> None:
    result = calculate_cgt(
        config, CGTRequest(acquisition_cost=1_000_000, disposal_proceeds=1_500_000)
    )

    assert result["chargeable_gain"] == 500_000
    assert result["tax_due"] == 50_000


def test_cgt_losses_never_produce_negative_tax(config) -> None:
    result = calculate_cgt(
        config,
        CGTRequest(
            acquisition_cost=1_000_000,
            improvement_costs=200_000,
            disposal_proceeds=1_250_000,
            selling_expenses=100_000,
        ),
    )

    assert result["gain"] == -50_000
    assert result["chargeable_gain"] == 0
    assert result["tax_due"] == 0


def test_cgt_batch_does_not_net_losses(config) -> None:
    disposals = [
        CGTRequest(acquisition_cost=1_000_000, disposal_proceeds=1_500_000),
        CGTRequest(acquisition_cost=2_000_000, disposal_proceeds=1_000_000),
        CGTRequest(acquisition_cost=100_000, disposal_proceeds=300_000),
    ]

    result = calculate_cgt_batch(config, disposals)

    assert result["total_chargeable_gain"] == 700_000
    assert result["tax_due"] == 70_000
    assert [row["tax"] for row in result["disposals"]] == [50_000, 0, 20_000]


def _levy(result, name):
    return next(row for row in result["levies"] if row["levy"] == name)


def test_levies_for_listed_industry(config) -> None:
    result = calculate_levies(
        config,
        LeviesRequest(
            industry=" Banking ",
            net_profit=100_000_000,
            profit_before_tax=120_000_000,
            assessable_profit=90_000_000,
            annual_payroll=24_000_000,
            employee_count=12,
        ),
    )

    assert _levy(result, "police")["amount"] == 5_000
    assert _levy(result, "naseni")["amount"] == 300_000
    assert _levy(result, "nsitf")["amount"] == 240_000
    assert _levy(result, "itf")["amount"] == 240_000
    assert _levy(result, "tertiary_education")["amount"] == 2_700_000
    assert result["tax_due"] == 3_485_000


def test_levies_skip_unlisted_industries_and_small_employers(config) -> None:
    result = calculate_levies(
        config,
        LeviesRequest(
            industry="retail",
            profit_before_tax=10_000_000,
            annual_payroll=6_000_000,
            employee_count=3,
            annual_turnover=20_000_000,
        ),
    )

    assert _levy(result, "naseni")["applicable"] is False
    assert _levy(result, "naseni")["amount"] == 0
    assert _levy(result, "itf")["applicable"] is False
    assert _levy(result, "itf")["amount"] == 0
    assert _levy(result, "nsitf")["amount"] == 60_000


def test_itf_applies_on_turnover_threshold(config) -> None:
    result = calculate_levies(
        config,
        LeviesRequest(annual_payroll=1_000_000, employee_count=1, annual_turnover=50_000_000),
    )

    assert _levy(result, "itf")["amount"] == 10_000


def test_levies_derive_payroll_from_monthly_entries(config) -> None:
    entries = tuple(
        PayrollEntry(month=f"2024-{month:02d}", gross_pay=500_000, employee_count=4 + month // 6)
        for month in range(1, 13)
    )

    result = calculate_levies(config, LeviesRequest(payroll_entries=entries))

    assert result["payroll"] == 6_000_000
    assert result["employee_count"] == 5
    assert _levy(result, "itf")["amount"] == 60_000


def test_partial_year_payroll_is_annualised(config) -> None:
    entries = (
        PayrollEntry(month="2024-10", gross_pay=500_000, employee_count=6),
        PayrollEntry(month="2024-11", gross_pay=500_000, employee_count=6),
        PayrollEntry(month="2024-12", gross_pay=500_000, employee_count=7),
        PayrollEntry(month="2025-01"),
    )

    result = calculate_levies(config, LeviesRequest(payroll_entries=entries))

    assert result["payroll"] == 6_000_000
    assert result["employee_count"] == 6
    assert _levy(result, "nsitf")["amount"] == 60_000
    assert _levy(result, "itf")["amount"] == 60_000


def test_individuals_pay_no_company_levies(config) -> None:
    result = calculate_levies(
        config,
        LeviesRequest(is_company=False, net_profit=10_000_000, assessable_profit=10_000_000),
    )

    assert _levy(result, "police")["amount"] == 0
    assert _levy(result, "tertiary_education")["amount"] == 0


def test_vat_with_input_credit(config) -> None:
    result = calculate_vat(config, VATRequest(vatable_sales=10_000_000, vatable_purchases=4_000_000))

    assert result["output_vat"] == 750_000
    assert result["input_vat"] == 300_000
    assert result["net_vat_payable"] == 450_000


def test_vat_refund_position(config) -> None:
    result = calculate_vat(config, VATRequest(vatable_sales=1_000_000, input_vat_paid=100_000))

    assert result["net_vat_payable"] == -25_000
    assert result["is_refund"] is True
    assert result["tax_due"] == 0


def test_cit_investment_reliefs_reduce_assessable_profit(config) -> None:
    result = calculate_cit(
        config,
        CITRequest(
            turnover=80_000_000,
            operating_expenses=40_000_000,
            investment_allowance=2_000_000,
            rural_investment_allowance=3_000_000,
            pioneer_status_relief=5_000_000,
        ),
    )

    assert result["assessable_profit"] == 30_000_000
    assert result["computed_tax"] == 6_000_000


def test_wht_uses_residency_rates(config) -> None:
    payload = WithholdingRequest.model_validate(
        {
            "payments": [
                {"payment_type": "rent", "amount": 1_000_000},
                {"payment_type": "Professional-Fees-Company", "amount": 2_000_000, "is_resident": False},
                {"payment_type": "professional_fees_individual", "amount": 400_000},
            ]
        }
    )

    result = calculate_wht(config, payload)

    assert [row["rate"] for row in result["payments"]] == [0.10, 0.15, 0.05]
    assert result["payments"][1]["description"] == "Professional fees (companies)"
    assert result["total_withheld"] == 420_000
    assert result["total_net_amount"] == 2_980_000
    assert result["tax_due"] == 420_000


def test_wht_rates_follow_overrides(base_rates) -> None:
    store = OverrideStore(base_rates)
    store.apply_override("wht.rent.residentRate", 0.075, "api", "tester")
    effective = merge(base_rates, store.snapshot())

    payload = WithholdingRequest.model_validate(
        {"payments": [{"payment_type": "rent", "amount": 1_000_000}]}
    )

    assert calculate_wht(effective, payload)["tax_due"] == 75_000


def test_stamp_duty_schedule(config) -> None:
    payload = StampDutyRequest.model_validate(
        {
            "documents": [
                {"document_type": "deed", "transaction_value": 20_000_000},
                {"document_type": "share_transfer", "transaction_value": 4_000_000},
                {"document_type": "agreement", "transaction_value": 1_000_000},
                {"document_type": "bank_transfer", "transaction_value": 25_000},
                {"document_type": "bank_transfer", "transaction_value": 9_999},
            ]
        }
    )

    result = calculate_stamp_duty(config, payload)

    assert [row["duty"] for row in result["documents"]] == [300_000, 30_000, 500, 50, 0]
    assert result["documents"][4]["chargeable"] is False
    assert result["tax_due"] == 330_550
