from dataclasses import dataclass
from typing import Dict, Tuple

from config import val
from inputs import Assumptions, EventType, HousingMode, Mortgage, MortgageType


@dataclass
class YearCosts:
    general_spending: float = 0.0
    housing: float = 0.0
    debt_repayments: float = 0.0
    property_costs: float = 0.0
    events: float = 0.0

    @property
    def total(self) -> float:
        return (self.general_spending + self.housing + self.debt_repayments
                + self.property_costs + self.events)


def general_spending(a: Assumptions, age: int, inflation_multiplier: float) -> float:
    spending = val(a.annual_spending, 0.0) * inflation_multiplier
    taper_age = a.spending_taper_age
    if age > taper_age:
        rate = min(100.0, val(a.spending_taper_rate, 0.0))
        spending *= (1 - rate / 100) ** (age - taper_age)
    return spending


def rent_for(a: Assumptions, years_elapsed: int) -> float:
    multiplier = (1 + val(a.rent_inflation, 2.5) / 100) ** years_elapsed
    return val(a.rent_amount, 0.0) * 12 * multiplier


def amortise(balance: float, rate_pct: float, annual_payment: float) -> Tuple[float, float]:
    """One year of interest then payment. Returns (payment made, closing balance)."""
    if balance <= 0:
        return 0.0, 0.0
    owed = balance * (1 + val(rate_pct, 0.0) / 100)
    payment = min(max(0.0, annual_payment), owed)
    return payment, owed - payment


def service_mortgage(m: Mortgage, age: int, balance: float) -> Tuple[float, float]:
    """
    Payments on one mortgage for the year. Interest-only loans repay their
    whole outstanding balance as a balloon in the final year. Repayment
    loans with a known balance stop charging once it is cleared.
    """
    if age > m.end_age:
        return 0.0, balance
    annual = val(m.monthly_payment, 0.0) * 12
    if val(m.balance, 0.0) > 0 and balance <= 0:
        # Cleared early by overpayments
        return 0.0, 0.0

    if m.type == MortgageType.INTEREST_ONLY:
        if age == m.end_age:
            return annual + max(0.0, balance), 0.0
        return annual, balance

    if val(m.balance, 0.0) <= 0:
        # Balance never given: trust the payment schedule
        return annual, 0.0
    payment, closing = amortise(balance, m.interest_rate, annual)
    return payment, (0.0 if age == m.end_age else closing)


def housing_for(a: Assumptions, age: int, years_elapsed: int,
                balances: Dict[int, float]) -> Tuple[float, Dict[int, float]]:
    if a.housing_mode == HousingMode.RENT:
        return rent_for(a, years_elapsed), dict(balances)
    total = 0.0
    closing = dict(balances)
    for index, m in enumerate(a.mortgages):
        payment, closing[index] = service_mortgage(m, age, balances.get(index, 0.0))
        total += payment
    return total, closing


def service_loans(a: Assumptions, age: int,
                  balances: Dict[int, float]) -> Tuple[float, Dict[int, float]]:
    total = 0.0
    closing = dict(balances)
    for index, loan in enumerate(a.loans):
        if age == loan.start_age and age > a.current_age:
            closing[index] = val(loan.balance, 0.0)
        if age < loan.start_age:
            continue
        payment, closing[index] = amortise(
            closing.get(index, 0.0), loan.interest_rate, val(loan.monthly_payment, 0.0) * 12
        )
        total += payment
    return total, closing


def service_property_mortgages(a: Assumptions, age: int,
                               balances: Dict[int, float]) -> Tuple[float, Dict[int, float]]:
    # A property sold this year redeems its mortgage from the sale instead
    total = 0.0
    closing = dict(balances)
    for index, prop in enumerate(a.investment_properties):
        m = prop.mortgage
        if m is None or (prop.sale_age is not None and age >= prop.sale_age):
            continue
        balance = balances.get(index, 0.0)
        if age > m.end_age or balance <= 0:
            continue
        annual = val(m.monthly_payment, 0.0) * 12
        if m.interest_only:
            payment = annual + (balance if age == m.end_age else 0.0)
            closing[index] = 0.0 if age == m.end_age else balance
        else:
            payment, closing[index] = amortise(balance, m.interest_rate, annual)
            if age == m.end_age:
                closing[index] = 0.0
        total += payment
    return total, closing


def event_expenses(a: Assumptions, age: int, inflation_multiplier: float) -> float:
    return sum(
        val(e.amount, 0.0) * inflation_multiplier
        for e in a.events
        if e.type == EventType.EXPENSE and e.active_at(age)
    )


def overpay_mortgages(a: Assumptions, age: int, balances: Dict[int, float],
                      budget: float) -> Tuple[float, Dict[int, float]]:
    """Put up to ``budget`` against outstanding mortgage balances, in list order."""
    closing = dict(balances)
    paid = 0.0
    if a.housing_mode != HousingMode.MORTGAGE:
        return 0.0, closing
    for index, m in enumerate(a.mortgages):
        if budget - paid <= 0:
            break
        if age >= m.end_age:
            continue
        outstanding = max(0.0, closing.get(index, 0.0))
        amount = min(outstanding, budget - paid)
        closing[index] = outstanding - amount
        paid += amount
    return paid, closing
