import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from benchmark import advance_benchmark, growth_factor
from config import val
from costs import (
    YearCosts,
    event_expenses,
    general_spending,
    housing_for,
    overpay_mortgages,
    service_loans,
    service_property_mortgages,
)
from drawdown import IncomeContext, resolve_gross_withdrawal, withdrawal_order
from income import aggregate_income, realise_capital_gains
from inputs import (
    Assumptions,
    LumpSumDestination,
    LumpSumMode,
    SurplusTarget,
)
from tax_uk import (
    ISA_ANNUAL_ALLOWANCE,
    PENSION_ANNUAL_ALLOWANCE,
    PENSION_RELIEF_RATE,
    TaxBreakdown,
)

logger = logging.getLogger(__name__)

DEFAULT_SURPLUS_ORDER = (SurplusTarget.PENSION, SurplusTarget.ISA, SurplusTarget.GIA, SurplusTarget.CASH)
SHORTFALL_TOLERANCE = 0.01


@dataclass(frozen=True)
class Ledger:
    """Balances carried from one year into the next."""
    cash: float
    isa: float
    gia: float
    pension: float
    benchmark_pension: float
    loan_balances: Dict[int, float] = field(default_factory=dict)
    mortgage_balances: Dict[int, float] = field(default_factory=dict)
    property_values: Dict[int, float] = field(default_factory=dict)
    property_mortgages: Dict[int, float] = field(default_factory=dict)
    lump_sum_taken: bool = False


@dataclass(frozen=True)
class YearRecord:
    age: int
    year: int

    # Income, gross and net
    gross_salary: float
    salary_income: float
    gross_dividends: float
    dividend_income: float
    gross_state_pension: float
    state_pension_income: float
    gross_db_pension: float
    db_pension_income: float
    gross_rental_income: float
    rental_income: float
    gross_other_income: float
    other_income: float
    total_income: float

    # Expenses
    general_spending: float
    housing_expense: float
    debt_repayments: float
    property_costs: float
    one_off_expense: float
    total_expense: float
    total_contribution: float
    total_outgoings: float

    # Withdrawals (net cash to the household; pension also gross)
    withdrawal_cash: float
    withdrawal_isa: float
    withdrawal_gia: float
    withdrawal_pension: float
    withdrawal_pension_gross: float
    shortfall: float

    # Scheduled contributions
    contrib_cash: float
    contrib_isa: float
    contrib_gia: float
    contrib_pension: float

    # Surplus allocation
    saved_to_cash: float
    saved_to_isa: float
    saved_to_gia: float
    saved_to_pension: float
    mortgage_overpayment: float

    # Pension lump sum and transfers
    pension_lump_sum: float
    lump_sum_to_cash: float
    lump_sum_to_isa: float
    lump_sum_to_gia: float
    bed_and_isa_transfer: float

    # Chart views
    spent_salary: float
    spent_state_pension: float
    spent_other: float
    total_saved_to_cash: float
    total_saved_to_isa: float
    total_saved_to_gia: float
    total_saved_to_pension: float

    # End of year
    balance_cash: float
    balance_isa: float
    balance_gia: float
    balance_pension: float
    property_value: float
    total_net_worth: float
    liquid_net_worth: float
    total_investment_growth: float
    benchmark_pension_pot: float

    # Tax
    pension_tax_relief: float
    capital_gains_tax: float
    tax_breakdown: TaxBreakdown


def opening_ledger(a: Assumptions) -> Ledger:
    pension = max(0.0, val(a.savings_pension, 0.0))
    return Ledger(
        cash=val(a.savings_cash, 0.0),
        isa=val(a.savings_isa, 0.0),
        gia=val(a.savings_gia, 0.0),
        pension=pension,
        benchmark_pension=pension,
        loan_balances={
            i: (val(loan.balance, 0.0) if loan.start_age <= a.current_age else 0.0)
            for i, loan in enumerate(a.loans)
        },
        mortgage_balances={i: val(m.balance, 0.0) for i, m in enumerate(a.mortgages)},
        property_values={
            i: (val(p.value, 0.0) if p.sale_age is None or p.sale_age >= a.current_age else 0.0)
            for i, p in enumerate(a.investment_properties)
        },
        property_mortgages={
            i: val(p.mortgage.balance, 0.0)
            for i, p in enumerate(a.investment_properties)
            if p.mortgage is not None
        },
    )


def _grow(opening: float, rate_pct: float, inflows: float, outflows: float) -> Tuple[float, float]:
    """Full-year growth on the opening balance, half-year on the year's cash flows. Returns (closing, growth)."""
    factor = growth_factor(rate_pct)
    mid = math.sqrt(factor)
    closing = opening * factor + inflows * mid - outflows * mid
    return closing, closing - opening - inflows + outflows


def _route_lump_sum(destination: LumpSumDestination, amount: float, isa_headroom: float):
    """Split a tax-free lump sum into (cash, isa, gia)."""
    if destination == LumpSumDestination.ISA:
        to_isa = min(amount, isa_headroom)
        return 0.0, to_isa, amount - to_isa
    if destination == LumpSumDestination.GIA:
        return 0.0, 0.0, amount
    return amount, 0.0, 0.0


def simulate_year(prior: Ledger, age: int, a: Assumptions,
                  base_year: int) -> Tuple[Ledger, YearRecord]:
    """Advance the household by one year. ``prior`` is left untouched."""
    years_elapsed = age - a.current_age
    year = base_year + years_elapsed

    working_full_time = age < a.retirement_age
    fully_retired = age >= a.semi_retirement_age
    can_access_pension = age >= a.pension_access_age

    # Multipliers
    inflation_multiplier = (1 + val(a.inflation, 2.5) / 100) ** years_elapsed
    salary_multiplier = (1 + val(a.salary_growth, 0.0) / 100) ** years_elapsed

    # Gross income and this year's capital gains
    gross = aggregate_income(a, age, years_elapsed, inflation_multiplier, salary_multiplier)
    gains = realise_capital_gains(gross, a, age, inflation_multiplier, prior.property_mortgages)

    cash, isa, gia, pension = prior.cash, prior.isa, prior.gia, prior.pension
    benchmark = prior.benchmark_pension

    # Expenses; each balance map is copied, never shared with the prior ledger
    costs = YearCosts(
        general_spending=general_spending(a, age, inflation_multiplier),
        events=event_expenses(a, age, inflation_multiplier),
    )
    costs.housing, mortgage_balances = housing_for(a, age, years_elapsed, prior.mortgage_balances)
    costs.debt_repayments, loan_balances = service_loans(a, age, prior.loan_balances)
    property_mortgage_payments, property_mortgages = service_property_mortgages(
        a, age, prior.property_mortgages
    )
    for index in gains.sold:
        property_mortgages[index] = 0.0
    costs.property_costs = property_mortgage_payments + gross.rental_loss + gains.negative_equity
    total_expense = costs.total

    # Scheduled contributions
    contrib_cash = contrib_isa = contrib_gia = contrib_pension = 0.0
    if working_full_time:
        contrib_cash = val(a.contrib_cash, 0.0) * 12 * inflation_multiplier
        contrib_isa = val(a.contrib_isa, 0.0) * 12 * inflation_multiplier
        contrib_gia = val(a.contrib_gia, 0.0) * 12 * inflation_multiplier
        contrib_pension = val(a.contrib_pension, 0.0) * 12 * inflation_multiplier

    # Upfront tax-free lump sum, moved into its pot ahead of the waterfall
    lump_sum = lump_to_cash = lump_to_isa = lump_to_gia = 0.0
    lump_sum_taken = prior.lump_sum_taken
    tax_free_pct = min(100.0, max(0.0, val(a.pension_tax_free_cash, 25.0)))
    if (a.pension_lump_sum_mode == LumpSumMode.UPFRONT and not lump_sum_taken
            and age >= max(a.retirement_age, a.pension_access_age)):
        lump_sum = max(0.0, pension) * tax_free_pct / 100
        if lump_sum > 0:
            pension -= lump_sum
            benchmark -= max(0.0, benchmark) * tax_free_pct / 100
            lump_to_cash, lump_to_isa, lump_to_gia = _route_lump_sum(
                a.pension_lump_sum_destination, lump_sum,
                max(0.0, ISA_ANNUAL_ALLOWANCE - contrib_isa),
            )
            cash += lump_to_cash
            isa += lump_to_isa
            gia += lump_to_gia
            lump_sum_taken = True

    if a.is_salary_gross:
        taxed_salary, taxed_dividends, taxed_other = gross.salary, gross.dividends, gross.other_taxable
    else:
        # Entered after tax, so kept out of the bands
        taxed_salary = taxed_dividends = taxed_other = 0.0

    # Provisional tax, no pension withdrawal yet
    context = IncomeContext(
        gross_salary=taxed_salary,
        gross_dividends=taxed_dividends,
        gross_state_pension=gross.state_pension,
        gross_db_pension=gross.db_pension,
        gross_rental_profit=gross.rental_profit,
        other_taxable_income=taxed_other,
        pension_tax_free_fraction=0.0 if lump_sum_taken else tax_free_pct / 100,
        inflation_multiplier=inflation_multiplier,
    )
    provisional = context.resolve(0.0)
    if a.is_salary_gross:
        net_salary = provisional.net_salary
        net_dividends = provisional.net_dividends
        net_other_taxable = provisional.net_other
    else:
        # Earned figures were entered after tax
        net_salary, net_dividends, net_other_taxable = gross.salary, gross.dividends, gross.other_taxable

    other_income = net_other_taxable + gross.tax_free + gains.net_event_gains + gains.sale_proceeds
    total_income = (net_salary + net_dividends + provisional.net_state_pension
                    + provisional.net_db_pension + provisional.net_rental_profit + other_income)

    # Net position; contributions never push a year into drawdown
    total_contribution = contrib_cash + contrib_isa + contrib_gia + contrib_pension
    net_position = total_income - total_expense - total_contribution
    if net_position < 0 and total_contribution > 0:
        contrib_cash = contrib_isa = contrib_gia = contrib_pension = 0.0
        total_contribution = 0.0
        net_position = total_income - total_expense

    # Surplus waterfall
    surplus_cash = surplus_isa = surplus_gia = surplus_pension = overpayment = 0.0
    if net_position >= 0:
        remaining = net_position
        for target in a.surplus_allocation_order or DEFAULT_SURPLUS_ORDER:
            if remaining <= 0:
                break
            if target == SurplusTarget.PENSION:
                if fully_retired:
                    continue
                gross_headroom = PENSION_ANNUAL_ALLOWANCE - contrib_pension * (1 + PENSION_RELIEF_RATE)
                amount = min(remaining, max(0.0, gross_headroom) / (1 + PENSION_RELIEF_RATE))
                surplus_pension += amount
            elif target == SurplusTarget.ISA:
                headroom = ISA_ANNUAL_ALLOWANCE - (contrib_isa + lump_to_isa + surplus_isa)
                amount = min(remaining, max(0.0, headroom))
                surplus_isa += amount
            elif target == SurplusTarget.GIA:
                amount = remaining
                surplus_gia += amount
            elif target == SurplusTarget.MORTGAGE:
                amount, mortgage_balances = overpay_mortgages(a, age, mortgage_balances, remaining)
                overpayment += amount
            else:
                amount = remaining
                surplus_cash += amount
            remaining -= amount
        if remaining > 0:
            # Nothing uncapped in the order: park the rest in cash
            surplus_cash += remaining

    # Deficit waterfall
    withdrawal = {"cash": 0.0, "isa": 0.0, "gia": 0.0}
    pension_net = pension_gross = shadow_gross = 0.0
    remaining_deficit = max(0.0, -net_position)
    available = {"cash": cash, "isa": isa, "gia": gia}
    for pot in withdrawal_order(a.drawdown_strategy, can_access_pension):
        if remaining_deficit <= 0:
            break
        if pot == "pension":
            if not can_access_pension:
                continue
            taken = resolve_gross_withdrawal(remaining_deficit, context, pension)
            # The shadow pot funds the same request from its own balance
            shadow_gross = resolve_gross_withdrawal(remaining_deficit, context, benchmark).gross
            pension_gross += taken.gross
            pension_net += taken.net
            remaining_deficit -= taken.net
        else:
            take = min(max(0.0, available[pot]), remaining_deficit)
            withdrawal[pot] += take
            remaining_deficit -= take

    shortfall = remaining_deficit if remaining_deficit > SHORTFALL_TOLERANCE else 0.0

    # Final tax position with the withdrawal actually taken
    breakdown = context.resolve(pension_gross).breakdown.with_capital_gains(gains.cgt)

    # Bed and ISA
    bed_and_isa = 0.0
    if a.max_isa_from_gia:
        headroom = max(0.0, ISA_ANNUAL_ALLOWANCE - (contrib_isa + surplus_isa + lump_to_isa))
        from_gia = min(max(0.0, gia - withdrawal["gia"]), headroom)
        from_cash = min(max(0.0, cash - withdrawal["cash"]), headroom - from_gia)
        gia -= from_gia
        cash -= from_cash
        isa += from_gia + from_cash
        bed_and_isa = from_gia + from_cash

    # Growth
    relief = (contrib_pension + surplus_pension) * PENSION_RELIEF_RATE
    pension_inflows = contrib_pension + surplus_pension + relief
    pension_rate = val(a.growth_pension, 5.0) - val(a.pension_fees, 0.0)

    cash, growth_cash = _grow(cash, val(a.growth_cash, 0.0), contrib_cash + surplus_cash, withdrawal["cash"])
    isa, growth_isa = _grow(isa, val(a.growth_isa, 0.0), contrib_isa + surplus_isa, withdrawal["isa"])
    gia, growth_gia = _grow(gia, val(a.growth_gia, 0.0), contrib_gia + surplus_gia, withdrawal["gia"])
    pension, growth_pension = _grow(pension, pension_rate, pension_inflows, pension_gross)
    benchmark = advance_benchmark(
        benchmark, val(a.growth_pension, 5.0), pension_inflows, shadow_gross, inflation_multiplier
    )

    # Investment property values
    property_values = dict(prior.property_values)
    property_growth = 0.0
    for index, prop in enumerate(a.investment_properties):
        if prop.sale_age is not None and age >= prop.sale_age:
            property_values[index] = 0.0
            continue
        before = property_values.get(index, 0.0)
        property_values[index] = before * growth_factor(val(prop.growth_rate, 0.0))
        property_growth += property_values[index] - before
    total_property = sum(property_values.values())

    # Chart split of where the expense line was met from
    to_cover = total_expense
    spent_salary = min(max(0.0, net_salary + net_dividends + provisional.net_rental_profit), to_cover)
    to_cover -= spent_salary
    spent_state_pension = min(max(0.0, provisional.net_state_pension + provisional.net_db_pension), to_cover)
    to_cover -= spent_state_pension
    spent_other = min(max(0.0, other_income), to_cover)

    cash, isa, gia, pension, benchmark = (max(0.0, x) for x in (cash, isa, gia, pension, benchmark))

    ledger = Ledger(
        cash=cash,
        isa=isa,
        gia=gia,
        pension=pension,
        benchmark_pension=benchmark,
        loan_balances=loan_balances,
        mortgage_balances=mortgage_balances,
        property_values=property_values,
        property_mortgages=property_mortgages,
        lump_sum_taken=lump_sum_taken,
    )

    record = YearRecord(
        age=age,
        year=year,
        gross_salary=gross.salary,
        salary_income=net_salary,
        gross_dividends=gross.dividends,
        dividend_income=net_dividends,
        gross_state_pension=gross.state_pension,
        state_pension_income=provisional.net_state_pension,
        gross_db_pension=gross.db_pension,
        db_pension_income=provisional.net_db_pension,
        gross_rental_income=gross.rental_profit,
        rental_income=provisional.net_rental_profit,
        gross_other_income=gross.other_taxable + gross.tax_free + gains.gross_receipts,
        other_income=other_income,
        total_income=total_income,
        general_spending=costs.general_spending,
        housing_expense=costs.housing,
        debt_repayments=costs.debt_repayments,
        property_costs=costs.property_costs,
        one_off_expense=costs.events,
        total_expense=total_expense,
        total_contribution=total_contribution,
        total_outgoings=total_expense + total_contribution,
        withdrawal_cash=withdrawal["cash"],
        withdrawal_isa=withdrawal["isa"],
        withdrawal_gia=withdrawal["gia"],
        withdrawal_pension=pension_net,
        withdrawal_pension_gross=pension_gross,
        shortfall=shortfall,
        contrib_cash=contrib_cash,
        contrib_isa=contrib_isa,
        contrib_gia=contrib_gia,
        contrib_pension=contrib_pension,
        saved_to_cash=surplus_cash,
        saved_to_isa=surplus_isa,
        saved_to_gia=surplus_gia,
        saved_to_pension=surplus_pension,
        mortgage_overpayment=overpayment,
        pension_lump_sum=lump_sum,
        lump_sum_to_cash=lump_to_cash,
        lump_sum_to_isa=lump_to_isa,
        lump_sum_to_gia=lump_to_gia,
        bed_and_isa_transfer=bed_and_isa,
        spent_salary=spent_salary,
        spent_state_pension=spent_state_pension,
        spent_other=spent_other,
        total_saved_to_cash=contrib_cash + surplus_cash + lump_to_cash,
        total_saved_to_isa=contrib_isa + surplus_isa + lump_to_isa,
        total_saved_to_gia=contrib_gia + surplus_gia + lump_to_gia,
        total_saved_to_pension=contrib_pension + surplus_pension,
        balance_cash=cash,
        balance_isa=isa,
        balance_gia=gia,
        balance_pension=pension,
        property_value=total_property,
        total_net_worth=max(0.0, cash + isa + gia + pension + total_property),
        liquid_net_worth=max(0.0, cash + isa + gia),
        total_investment_growth=growth_cash + growth_isa + growth_gia + growth_pension + property_growth,
        benchmark_pension_pot=benchmark,
        pension_tax_relief=relief,
        capital_gains_tax=gains.cgt.total,
        tax_breakdown=breakdown,
    )

    logger.debug(
        "age %d: income %.0f expense %.0f net %.0f shortfall %.2f",
        age, total_income, total_expense, net_position, shortfall,
    )
    return ledger, record


def run_projection(a: Assumptions, current_year: Optional[int] = None) -> List[YearRecord]:
    """One record per age from current age to life expectancy inclusive."""
    base_year = current_year or date.today().year
    years = max(0, a.life_expectancy - a.current_age + 1)

    ledger = opening_ledger(a)
    records: List[YearRecord] = []
    for age in range(a.current_age, a.current_age + years):
        ledger, record = simulate_year(ledger, age, a, base_year)
        records.append(record)

    first_shortfall = next((r.age for r in records if r.shortfall > 0), None)
    logger.info(
        "Projected %d years (age %d-%d); first shortfall at %s",
        years, a.current_age, a.life_expectancy, first_shortfall,
    )
    return records
