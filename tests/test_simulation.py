import math
from dataclasses import replace

import pytest

from benchmark import lifetime_fee_cost
from inputs import (
    InvestmentProperty,
    LumpSumDestination,
    LumpSumMode,
    Mortgage,
    MortgageType,
    SurplusTarget,
)
from simulation import opening_ledger, run_projection, simulate_year


def by_age(records):
    return {r.age: r for r in records}


def test_one_record_per_year_through_life_expectancy(saver):
    records = run_projection(saver, current_year=2025)
    assert len(records) == 51
    assert (records[0].age, records[0].year) == (40, 2025)
    assert (records[-1].age, records[-1].year) == (90, 2075)


def test_same_inputs_same_projection(saver):
    assert run_projection(saver, current_year=2025) == run_projection(saver, current_year=2025)


def test_balances_never_negative(saver):
    for r in run_projection(replace(saver, annual_spending=60_000), current_year=2025):
        assert min(r.balance_cash, r.balance_isa, r.balance_gia, r.balance_pension) >= 0
        assert r.total_net_worth >= 0
        assert r.shortfall >= 0


@pytest.mark.parametrize("spending", [20_000, 35_000, 60_000])
def test_every_expense_is_funded_or_reported_short(saver, spending):
    for r in run_projection(replace(saver, annual_spending=spending), current_year=2025):
        funded = (r.spent_salary + r.spent_state_pension + r.spent_other
                  + r.withdrawal_cash + r.withdrawal_isa + r.withdrawal_gia + r.withdrawal_pension)
        assert funded + r.shortfall >= r.total_expense - 0.01


def test_higher_growth_never_leaves_you_worse_off(saver):
    low = run_projection(replace(saver, growth_pension=5.0), current_year=2025)
    high = run_projection(replace(saver, growth_pension=8.0), current_year=2025)
    for lo, hi in zip(low, high):
        assert hi.balance_pension >= lo.balance_pension - 1e-6
    assert high[-1].total_net_worth >= low[-1].total_net_worth
    assert sum(r.shortfall for r in high) <= sum(r.shortfall for r in low) + 1e-6


def test_shortfall_keeps_projecting(flat_world):
    a = replace(flat_world, annual_spending=20_000, savings_cash=30_000)
    records = run_projection(a, current_year=2025)
    assert records[-1].age == 70
    assert records[0].shortfall == 0.0
    assert records[0].withdrawal_cash == 20_000
    assert math.isclose(records[1].shortfall, 10_000)
    assert all(math.isclose(r.shortfall, 20_000) for r in records[2:])


def test_pension_drawdown_meets_the_need_after_tax(flat_world):
    a = replace(flat_world, annual_spending=30_000, savings_pension=500_000)
    first = run_projection(a, current_year=2025)[0]
    assert 30_000 <= first.withdrawal_pension <= 30_000.05
    assert first.shortfall == 0.0
    # 15% of the withdrawal is taxed once the allowance is used: 0.85w + 2,514 = 30,000
    assert math.isclose(first.withdrawal_pension_gross, (30_000 - 2_514) / 0.85, abs_tol=0.1)
    assert math.isclose(first.tax_breakdown.pension_tax_free_portion,
                        first.withdrawal_pension_gross * 0.25)


def test_contributions_paused_in_a_deficit_year(flat_world):
    a = replace(flat_world, current_age=50, retirement_age=60, semi_retirement_age=60,
                contrib_isa=500, annual_spending=10_000, savings_cash=50_000)
    first = run_projection(a, current_year=2025)[0]
    assert first.total_contribution == 0.0
    assert first.contrib_isa == 0.0
    assert first.withdrawal_cash == 10_000
    assert first.balance_isa == 0.0


def test_surplus_respects_pension_and_isa_allowances(flat_world):
    a = replace(flat_world, current_age=50, retirement_age=60, semi_retirement_age=60,
                current_salary=200_000, contrib_pension=2_000)
    first = run_projection(a, current_year=2025)[0]
    assert first.contrib_pension == 24_000
    assert math.isclose(first.saved_to_pension, 24_000)
    assert math.isclose(first.pension_tax_relief, 12_000)
    assert math.isclose(first.saved_to_isa, 20_000)
    assert first.saved_to_gia > 0
    assert first.saved_to_cash == 0.0


def test_upfront_lump_sum_taken_once(flat_world):
    a = replace(flat_world, savings_pension=100_000,
                pension_lump_sum_mode=LumpSumMode.UPFRONT,
                pension_lump_sum_destination=LumpSumDestination.ISA)
    records = run_projection(a, current_year=2025)
    first, second = records[0], records[1]
    assert first.pension_lump_sum == 25_000
    assert first.lump_sum_to_isa == 20_000
    assert first.lump_sum_to_gia == 5_000
    assert first.balance_pension == 75_000
    assert math.isclose(first.benchmark_pension_pot, 75_000 - 240)
    assert second.pension_lump_sum == 0.0
    assert second.balance_pension == 75_000


def test_interest_only_mortgage_balloon(flat_world):
    a = replace(flat_world, savings_cash=1_000_000, mortgages=(
        Mortgage("Home", 50_000, 100, 0.0, MortgageType.INTEREST_ONLY, end_age=62),
    ))
    ages = by_age(run_projection(a, current_year=2025))
    assert ages[61].housing_expense == 1_200
    assert ages[62].housing_expense == 51_200
    assert ages[63].housing_expense == 0.0


def test_state_pension_from_its_age(flat_world):
    ages = by_age(run_projection(replace(flat_world, state_pension=11_502.0), current_year=2025))
    assert ages[66].gross_state_pension == 0.0
    assert math.isclose(ages[67].gross_state_pension, 11_502.0)
    gaps = by_age(run_projection(replace(flat_world, state_pension=11_502.0, missing_ni_years=30),
                                 current_year=2025))
    assert gaps[67].gross_state_pension == 0.0


def test_property_sale_proceeds_are_saved(flat_world):
    prop = InvestmentProperty("Flat", value=200_000, monthly_rent=0, growth_rate=0.0,
                              sale_age=65, sale_price=200_000)
    ages = by_age(run_projection(replace(flat_world, investment_properties=(prop,)), current_year=2025))
    assert ages[64].property_value == 200_000
    assert ages[64].total_net_worth == 200_000
    assert ages[65].property_value == 0.0
    assert math.isclose(ages[65].other_income, 200_000)
    assert math.isclose(ages[65].saved_to_isa, 20_000)
    assert math.isclose(ages[65].saved_to_gia, 180_000)


def test_surplus_can_overpay_the_mortgage(flat_world):
    a = replace(flat_world, current_age=50, retirement_age=60, semi_retirement_age=60,
                current_salary=40_000,
                surplus_allocation_order=(SurplusTarget.MORTGAGE, SurplusTarget.CASH),
                mortgages=(Mortgage("Home", 100_000, 500, 0.0, end_age=80),))
    first = run_projection(a, current_year=2025)[0]
    surplus = first.total_income - first.total_expense
    assert first.housing_expense == 6_000
    assert math.isclose(first.mortgage_overpayment, surplus)
    assert first.saved_to_cash == 0.0


def test_fee_drag_against_flat_fee_benchmark(flat_world):
    a = replace(flat_world, savings_pension=100_000, growth_pension=5.0)
    assert lifetime_fee_cost(run_projection(replace(a, pension_fees=1.0), current_year=2025)) > 0
    assert lifetime_fee_cost(run_projection(replace(a, pension_fees=0.0), current_year=2025)) < 0


def test_simulate_year_leaves_prior_ledger_untouched(flat_world):
    a = replace(flat_world, savings_cash=1_000_000, mortgages=(Mortgage("Home", 50_000, 500, 2.0, end_age=80),))
    prior = opening_ledger(a)
    before = dict(prior.mortgage_balances)
    ledger, _ = simulate_year(prior, 60, a, 2025)
    assert prior.mortgage_balances == before
    assert ledger.mortgage_balances[0] < before[0]


def test_after_tax_income_is_not_taxed_again(flat_world):
    a = replace(flat_world, current_age=58, retirement_age=58, semi_retirement_age=62,
                semi_retirement_income=60_000.0, is_salary_gross=False,
                annual_spending=66_000.0, savings_pension=500_000.0)
    first = run_projection(a, current_year=2025)[0]
    assert first.salary_income == 60_000
    assert first.tax_breakdown.total_income_tax == 0.0
    assert first.tax_breakdown.total_ni == 0.0
    # The gap sits inside the allowance, so gross and net match
    assert 6_000 <= first.withdrawal_pension_gross <= 6_000.05
    assert first.shortfall == 0.0

    taxed = run_projection(replace(a, is_salary_gross=True), current_year=2025)[0]
    assert taxed.tax_breakdown.total_income_tax > 0
    assert taxed.salary_income < 60_000


def test_bed_and_isa_sweeps_gia_up_to_the_allowance(flat_world):
    a = replace(flat_world, savings_gia=50_000, savings_cash=10_000, max_isa_from_gia=True)
    first = run_projection(a, current_year=2025)[0]
    assert first.bed_and_isa_transfer == 20_000
    assert first.balance_isa == 20_000
    assert first.balance_gia == 30_000
    assert first.balance_cash == 10_000


def test_bed_and_isa_uses_cash_once_gia_is_empty_and_respects_lump_sum(flat_world):
    a = replace(flat_world, savings_gia=5_000, savings_cash=30_000, savings_pension=40_000,
                max_isa_from_gia=True,
                pension_lump_sum_mode=LumpSumMode.UPFRONT,
                pension_lump_sum_destination=LumpSumDestination.ISA)
    first = run_projection(a, current_year=2025)[0]
    assert first.lump_sum_to_isa == 10_000
    assert first.bed_and_isa_transfer == 10_000
    assert first.balance_isa == 20_000
    assert first.balance_gia == 0.0
    assert first.balance_cash == 25_000


def test_bed_and_isa_off_by_default(flat_world):
    first = run_projection(replace(flat_world, savings_gia=50_000), current_year=2025)[0]
    assert first.bed_and_isa_transfer == 0.0
    assert first.balance_gia == 50_000


def test_benchmark_pot_outlasts_a_high_fee_pot(flat_world):
    a = replace(flat_world, savings_pension=200_000, growth_pension=5.0,
                pension_fees=3.0, annual_spending=30_000)
    records = run_projection(a, current_year=2025)
    first_short = next(r for r in records if r.shortfall > 0)
    assert all(r.shortfall == 0.0 for r in records if r.age < first_short.age)
    # The real pot has run dry; the shadow pot is still funding the same need
    assert first_short.benchmark_pension_pot > first_short.balance_pension
    assert first_short.benchmark_pension_pot > 0
    assert all(r.benchmark_pension_pot >= r.balance_pension for r in records)


def test_projection_runs_with_missing_ages(flat_world):
    a = replace(flat_world, retirement_age=None, spending_taper_age=None, annual_spending=1_000)
    records = run_projection(a, current_year=2025)
    assert [r.age for r in records] == list(range(60, 71))
