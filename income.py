"""
Gross income for one simulated year.

Salary-like money (salary, part-time earnings, most side income and
taxable events) is kept apart from dividend-like money so the tax
resolver can stack dividends on top. Capital gains are realised last,
once the year's other income is known, because their banding depends
on it.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from config import val
from inputs import (
    Assumptions,
    EventType,
    FinancialEvent,
    IncomeStream,
    InvestmentProperty,
    TaxTreatment,
)
from tax_uk import CapitalGainsLedger

FULL_NI_YEARS = 35
MIN_NI_YEARS = 10


@dataclass
class GrossIncome:
    salary: float = 0.0
    dividends: float = 0.0
    state_pension: float = 0.0
    db_pension: float = 0.0
    rental_profit: float = 0.0
    rental_loss: float = 0.0
    other_taxable: float = 0.0
    tax_free: float = 0.0
    gains: List[Tuple[float, bool]] = field(default_factory=list)   # (gain, residential)

    @property
    def taxable_total(self) -> float:
        # Everything the CGT bands are measured against
        return (self.salary + self.dividends + self.state_pension + self.db_pension
                + self.rental_profit + self.other_taxable)


@dataclass
class GainsOutcome:
    cgt: CapitalGainsLedger
    net_event_gains: float = 0.0
    sale_proceeds: float = 0.0
    gross_receipts: float = 0.0     # gains and sale equity before CGT
    negative_equity: float = 0.0
    sold: List[int] = field(default_factory=list)
    redeemed_mortgages: Dict[int, float] = field(default_factory=dict)


# ---------- Earned income ----------
def salary_for(a: Assumptions, age: int, salary_multiplier: float) -> float:
    if age < a.retirement_age:
        return val(a.current_salary, 0.0) * salary_multiplier
    if age < a.semi_retirement_age:
        return val(a.semi_retirement_income, 0.0) * salary_multiplier
    return 0.0


def stream_amount(stream: IncomeStream, age: int, years_elapsed: int,
                  inflation_multiplier: float) -> float:
    if not stream.start_age <= age < stream.end_age:
        return 0.0
    amount = val(stream.amount, 0.0)
    if stream.growth_rate is not None:
        return amount * (1 + val(stream.growth_rate, 0.0) / 100) ** years_elapsed
    if stream.inflation_linked:
        return amount * inflation_multiplier
    return amount


# ---------- Pensions ----------
def qualifying_years(missing_ni_years) -> int:
    missing = int(min(FULL_NI_YEARS, max(0, val(missing_ni_years, 0))))
    return FULL_NI_YEARS - missing


def state_pension_for(a: Assumptions, age: int, inflation_multiplier: float) -> float:
    if age < a.state_pension_age:
        return 0.0
    years = qualifying_years(a.missing_ni_years)
    if years < MIN_NI_YEARS:
        return 0.0
    return val(a.state_pension, 0.0) * inflation_multiplier * years / FULL_NI_YEARS


def db_pension_for(a: Assumptions, age: int, inflation_multiplier: float) -> float:
    total = 0.0
    for db in a.db_pensions:
        if age >= db.start_age:
            amount = val(db.annual_income, 0.0)
            total += amount * inflation_multiplier if db.inflation_linked else amount
    return total


# ---------- Property ----------
def is_let(prop: InvestmentProperty, age: int) -> bool:
    return prop.sale_age is None or age <= prop.sale_age


def rental_profit_for(a: Assumptions, age: int, inflation_multiplier: float) -> Tuple[float, float]:
    """(taxable profit, costs in excess of rent) across all let properties."""
    profit = loss = 0.0
    for prop in a.investment_properties:
        if not is_let(prop, age):
            continue
        net = (val(prop.monthly_rent, 0.0) - val(prop.monthly_cost, 0.0)) * 12 * inflation_multiplier
        if net >= 0:
            profit += net
        else:
            loss -= net
    return profit, loss


def sale_value(prop: InvestmentProperty, current_age: int) -> float:
    if prop.sale_price is not None:
        return val(prop.sale_price, 0.0)
    years = max(0, prop.sale_age - current_age)
    return val(prop.value, 0.0) * (1 + val(prop.growth_rate, 0.0) / 100) ** years


# ---------- Events ----------
def _taxable(income: GrossIncome, amount: float):
    income.other_taxable += amount


def _dividend(income: GrossIncome, amount: float):
    income.dividends += amount


def _gain(income: GrossIncome, amount: float):
    income.gains.append((amount, False))


def _residential_gain(income: GrossIncome, amount: float):
    income.gains.append((amount, True))


def _tax_free(income: GrossIncome, amount: float):
    income.tax_free += amount


EVENT_HANDLERS = {
    TaxTreatment.TAX_FREE: _tax_free,
    TaxTreatment.TAXABLE_INCOME: _taxable,
    TaxTreatment.DIVIDEND: _dividend,
    TaxTreatment.CAPITAL_GAINS: _gain,
    TaxTreatment.RESIDENTIAL_PROPERTY: _residential_gain,
}


def event_amount(event: FinancialEvent, inflation_multiplier: float) -> float:
    return val(event.amount, 0.0) * inflation_multiplier


def route_event_income(income: GrossIncome, events, age: int, inflation_multiplier: float):
    for event in events:
        if event.type == EventType.INCOME and event.active_at(age):
            EVENT_HANDLERS[event.tax_type](income, event_amount(event, inflation_multiplier))


# ---------- Aggregation ----------
def aggregate_income(a: Assumptions, age: int, years_elapsed: int,
                     inflation_multiplier: float, salary_multiplier: float) -> GrossIncome:
    income = GrossIncome(salary=salary_for(a, age, salary_multiplier))

    for stream in a.income_streams:
        amount = stream_amount(stream, age, years_elapsed, inflation_multiplier)
        if stream.tax_as_dividend:
            income.dividends += amount
        else:
            income.salary += amount

    if age < a.retirement_age:
        income.dividends += val(a.dividend_income, 0.0) * inflation_multiplier

    income.state_pension = state_pension_for(a, age, inflation_multiplier)
    income.db_pension = db_pension_for(a, age, inflation_multiplier)
    income.rental_profit, income.rental_loss = rental_profit_for(a, age, inflation_multiplier)
    route_event_income(income, a.events, age, inflation_multiplier)
    return income


def realise_capital_gains(income: GrossIncome, a: Assumptions, age: int,
                          inflation_multiplier: float,
                          property_mortgages: Dict[int, float]) -> GainsOutcome:
    """
    Charge CGT on this year's event gains, then on any property sold this
    year, all against one shared exempt amount. Sale proceeds clear the
    property's linked mortgage first.
    """
    outcome = GainsOutcome(cgt=CapitalGainsLedger(income.taxable_total, inflation_multiplier))

    for gain, residential in income.gains:
        outcome.net_event_gains += gain - outcome.cgt.charge(gain, residential)
        outcome.gross_receipts += gain

    for index, prop in enumerate(a.investment_properties):
        if prop.sale_age is None or age != prop.sale_age:
            continue
        price = sale_value(prop, a.current_age)
        tax = outcome.cgt.charge(price - val(prop.value, 0.0), residential=True)
        redeemed = max(0.0, property_mortgages.get(index, 0.0))
        outcome.redeemed_mortgages[index] = redeemed
        outcome.sold.append(index)
        proceeds = price - tax - redeemed
        if proceeds >= 0:
            outcome.sale_proceeds += proceeds
            outcome.gross_receipts += proceeds + tax
        else:
            outcome.negative_equity -= proceeds

    return outcome
