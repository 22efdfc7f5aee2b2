import math

from inputs import (
    Assumptions,
    EventType,
    FinancialEvent,
    IncomeStream,
    InvestmentProperty,
    PropertyMortgage,
    TaxTreatment,
)
from income import (
    aggregate_income,
    realise_capital_gains,
    salary_for,
    state_pension_for,
    stream_amount,
)


def pension_at(missing):
    a = Assumptions(state_pension=11_502.0, state_pension_age=67, missing_ni_years=missing)
    return state_pension_for(a, 67, 1.0)


def test_full_state_pension_with_no_gaps():
    assert math.isclose(pension_at(0), 11_502.0)


def test_state_pension_scales_linearly_with_qualifying_years():
    assert math.isclose(pension_at(10), 11_502.0 * 25 / 35)
    assert math.isclose(pension_at(25), 11_502.0 * 10 / 35)


def test_state_pension_floor_of_ten_years():
    assert pension_at(26) == 0.0
    assert pension_at(40) == 0.0


def test_no_state_pension_before_age():
    a = Assumptions(state_pension_age=67)
    assert state_pension_for(a, 66, 1.0) == 0.0


def test_salary_then_part_time_then_nothing():
    a = Assumptions(current_salary=40_000, semi_retirement_income=15_000,
                    retirement_age=60, semi_retirement_age=65)
    assert salary_for(a, 59, 1.0) == 40_000
    assert salary_for(a, 60, 1.0) == 15_000
    assert salary_for(a, 65, 1.0) == 0.0


def test_stream_end_age_is_exclusive():
    stream = IncomeStream("Consulting", 10_000, start_age=50, end_age=55, inflation_linked=False)
    assert stream_amount(stream, 49, 0, 1.0) == 0.0
    assert stream_amount(stream, 54, 0, 1.5) == 10_000
    assert stream_amount(stream, 55, 0, 1.0) == 0.0


def test_stream_growth_rate_overrides_inflation():
    stream = IncomeStream("Royalties", 1_000, start_age=30, end_age=90, growth_rate=10.0)
    assert math.isclose(stream_amount(stream, 32, 2, 1.5), 1_210.0)


def test_dividend_streams_and_events_are_routed():
    a = Assumptions(
        current_age=50,
        retirement_age=65,
        income_streams=(IncomeStream("Ltd co", 8_000, 40, 70, inflation_linked=False, tax_as_dividend=True),),
        events=(
            FinancialEvent("Bonus", 50, 5_000, EventType.INCOME, tax_type=TaxTreatment.TAXABLE_INCOME),
            FinancialEvent("Gift", 50, 2_000, EventType.INCOME),
            FinancialEvent("Car", 50, 9_000, EventType.EXPENSE),
        ),
    )
    income = aggregate_income(a, 50, 0, 1.0, 1.0)
    assert income.dividends == 8_000
    assert income.other_taxable == 5_000
    assert income.tax_free == 2_000


def test_event_gains_share_one_exempt_amount():
    a = Assumptions(
        current_age=50,
        retirement_age=50,
        state_pension=0.0,
        events=(
            FinancialEvent("Shares", 50, 2_000, EventType.INCOME, tax_type=TaxTreatment.CAPITAL_GAINS),
            FinancialEvent("Fund", 50, 2_000, EventType.INCOME, tax_type=TaxTreatment.CAPITAL_GAINS),
        ),
    )
    income = aggregate_income(a, 50, 0, 1.0, 1.0)
    outcome = realise_capital_gains(income, a, 50, 1.0, {})
    assert math.isclose(outcome.cgt.total, 100.0)
    assert math.isclose(outcome.net_event_gains, 3_900.0)


def test_property_sale_redeems_mortgage_and_pays_residential_cgt():
    prop = InvestmentProperty(
        "Flat", value=200_000, monthly_rent=0, growth_rate=0.0,
        sale_age=60, sale_price=250_000,
        mortgage=PropertyMortgage(balance=100_000, interest_rate=4.0, monthly_payment=500),
    )
    a = Assumptions(current_age=50, retirement_age=50, state_pension=0.0, investment_properties=(prop,))
    income = aggregate_income(a, 60, 10, 1.0, 1.0)
    outcome = realise_capital_gains(income, a, 60, 1.0, {0: 100_000})
    assert math.isclose(outcome.cgt.total, 47_000 * 0.18)
    assert math.isclose(outcome.sale_proceeds, 250_000 - 8_460 - 100_000)
    assert outcome.sold == [0]
    assert outcome.redeemed_mortgages == {0: 100_000}
    assert outcome.negative_equity == 0.0


def test_property_sale_in_negative_equity():
    prop = InvestmentProperty("Flat", value=200_000, monthly_rent=0, growth_rate=0.0,
                              sale_age=55, sale_price=150_000)
    a = Assumptions(current_age=50, investment_properties=(prop,))
    income = aggregate_income(a, 55, 5, 1.0, 1.0)
    outcome = realise_capital_gains(income, a, 55, 1.0, {0: 170_000})
    assert outcome.sale_proceeds == 0.0
    assert math.isclose(outcome.negative_equity, 20_000)
