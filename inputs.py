"""
Assumptions record for one projection run, plus the boundary normaliser.

Everything the engine sees is an immutable, already-normalised
``Assumptions``. Legacy single-value fields (one ``additional_income``,
one mortgage, split pension pots) are folded into their list / total
forms here, so the simulation never has to know about them.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta

from config import DEFAULTS, val

logger = logging.getLogger(__name__)


# ---------- Closed variants ----------
class TaxTreatment(str, Enum):
    TAX_FREE = "tax_free"
    TAXABLE_INCOME = "taxable_income"
    DIVIDEND = "dividend"
    CAPITAL_GAINS = "capital_gains"
    RESIDENTIAL_PROPERTY = "residential_property"


class EventType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class DrawdownStrategy(str, Enum):
    TAX_EFFICIENT_BRIDGE = "tax_efficient_bridge"
    PRESERVE_PENSION = "preserve_pension"
    STANDARD = "standard"


class LumpSumMode(str, Enum):
    DRIP = "drip"
    UPFRONT = "upfront"


class LumpSumDestination(str, Enum):
    CASH = "cash"
    ISA = "isa"
    GIA = "gia"


class HousingMode(str, Enum):
    MORTGAGE = "mortgage"
    RENT = "rent"


class MortgageType(str, Enum):
    REPAYMENT = "repayment"
    INTEREST_ONLY = "interest_only"


class SurplusTarget(str, Enum):
    PENSION = "pension"
    ISA = "isa"
    GIA = "gia"
    CASH = "cash"
    MORTGAGE = "mortgage"


# ---------- Sub-records ----------
@dataclass(frozen=True)
class IncomeStream:
    name: str
    amount: float                       # annual, today's money
    start_age: int
    end_age: int                        # exclusive
    inflation_linked: bool = True
    growth_rate: Optional[float] = None  # % per year; overrides inflation linking
    tax_as_dividend: bool = False


@dataclass(frozen=True)
class FinancialEvent:
    name: str
    age: int
    amount: float                       # today's money; for gains, the gain itself
    type: EventType = EventType.EXPENSE
    is_recurring: bool = False
    end_age: Optional[int] = None       # inclusive, recurring only
    tax_type: TaxTreatment = TaxTreatment.TAX_FREE

    def active_at(self, age: int) -> bool:
        if self.is_recurring:
            end = self.end_age if self.end_age is not None else self.age
            return self.age <= age <= end
        return age == self.age


@dataclass(frozen=True)
class Loan:
    name: str
    balance: float
    interest_rate: float                # %
    monthly_payment: float
    start_age: int


@dataclass(frozen=True)
class Mortgage:
    name: str
    balance: float
    monthly_payment: float
    interest_rate: float                # %
    type: MortgageType = MortgageType.REPAYMENT
    end_age: int = 65


@dataclass(frozen=True)
class PropertyMortgage:
    balance: float
    interest_rate: float
    monthly_payment: float
    interest_only: bool = False
    end_age: int = 65


@dataclass(frozen=True)
class InvestmentProperty:
    name: str
    value: float
    monthly_rent: float
    growth_rate: float                  # % capital appreciation
    monthly_cost: float = 0.0
    sale_age: Optional[int] = None
    sale_price: Optional[float] = None  # nominal target price at sale
    mortgage: Optional[PropertyMortgage] = None


@dataclass(frozen=True)
class DefinedBenefitPension:
    name: str
    annual_income: float
    start_age: int
    inflation_linked: bool = True


# ---------- The record ----------
_AGE_FIELDS = (
    "current_age", "retirement_age", "semi_retirement_age", "pension_access_age",
    "state_pension_age", "life_expectancy", "spending_taper_age", "missing_ni_years",
)


@dataclass(frozen=True)
class Assumptions:
    """
    One projection run. Top-level ages are defaulted on construction; list
    entries are expected to come through normalise().
    """
    # Ages
    current_age: int = DEFAULTS["current_age"]
    retirement_age: int = DEFAULTS["retirement_age"]          # stop full-time work
    semi_retirement_age: int = DEFAULTS["semi_retirement_age"]  # stop part-time work
    pension_access_age: int = DEFAULTS["pension_access_age"]
    state_pension_age: int = DEFAULTS["state_pension_age"]
    life_expectancy: int = DEFAULTS["life_expectancy"]

    # Income
    current_salary: float = DEFAULTS["current_salary"]
    salary_growth: float = DEFAULTS["salary_growth"]
    is_salary_gross: bool = True
    semi_retirement_income: float = DEFAULTS["semi_retirement_income"]
    dividend_income: float = DEFAULTS["dividend_income"]
    income_streams: Tuple[IncomeStream, ...] = ()
    state_pension: float = DEFAULTS["state_pension"]
    missing_ni_years: int = DEFAULTS["missing_ni_years"]
    db_pensions: Tuple[DefinedBenefitPension, ...] = ()

    # Housing and debt
    housing_mode: HousingMode = HousingMode.MORTGAGE
    mortgages: Tuple[Mortgage, ...] = ()
    rent_amount: float = DEFAULTS["rent_amount"]
    rent_inflation: float = DEFAULTS["rent_inflation"]
    loans: Tuple[Loan, ...] = ()
    investment_properties: Tuple[InvestmentProperty, ...] = ()

    # Pots
    savings_cash: float = DEFAULTS["savings_cash"]
    savings_isa: float = DEFAULTS["savings_isa"]
    savings_gia: float = DEFAULTS["savings_gia"]
    savings_pension: float = DEFAULTS["savings_pension"]
    contrib_cash: float = DEFAULTS["contrib_cash"]
    contrib_isa: float = DEFAULTS["contrib_isa"]
    contrib_gia: float = DEFAULTS["contrib_gia"]
    contrib_pension: float = DEFAULTS["contrib_pension"]

    # Strategy
    surplus_allocation_order: Tuple[SurplusTarget, ...] = tuple(
        SurplusTarget(t) for t in DEFAULTS["surplus_allocation_order"]
    )
    drawdown_strategy: DrawdownStrategy = DrawdownStrategy.STANDARD
    max_isa_from_gia: bool = False      # "Bed and ISA"
    pension_lump_sum_mode: LumpSumMode = LumpSumMode.DRIP
    pension_lump_sum_destination: LumpSumDestination = LumpSumDestination.CASH
    pension_tax_free_cash: float = DEFAULTS["pension_tax_free_cash"]

    # Spending
    annual_spending: float = DEFAULTS["annual_spending"]
    spending_taper_age: int = DEFAULTS["spending_taper_age"]
    spending_taper_rate: float = DEFAULTS["spending_taper_rate"]
    events: Tuple[FinancialEvent, ...] = ()

    # Growth
    inflation: float = DEFAULTS["inflation"]
    growth_cash: float = DEFAULTS["growth_cash"]
    growth_isa: float = DEFAULTS["growth_isa"]
    growth_gia: float = DEFAULTS["growth_gia"]
    growth_pension: float = DEFAULTS["growth_pension"]
    pension_fees: float = DEFAULTS["pension_fees"]

    def __post_init__(self):
        # Hand-built records skip normalise(); ages still fall back to DEFAULTS
        for name in _AGE_FIELDS:
            object.__setattr__(self, name, int(round(val(getattr(self, name), DEFAULTS[name]))))

    @classmethod
    def from_dict(cls, data: dict) -> "Assumptions":
        return normalise(data)


# ---------- Boundary helpers ----------
def current_age_from_birth_year(birth_year: int, today: Optional[date] = None) -> int:
    today = today or date.today()
    return relativedelta(today, date(int(birth_year), 1, 1)).years


def state_pension_age_for(birth_year: int) -> int:
    # Simplified current legislation; the 1960 transitional cohort rounds down
    if birth_year <= 1960:
        return 66
    if birth_year <= 1977:
        return 67
    return 68


def _num(d: dict, key: str, default=None) -> float:
    if default is None:
        default = DEFAULTS.get(key, 0.0)
    return val(d.get(key), default)


def _age(d: dict, key: str, default) -> int:
    return int(round(val(d.get(key), default)))


def _opt(d: dict, key: str) -> Optional[float]:
    raw = d.get(key)
    if raw is None:
        return None
    number = val(raw, float("nan"))
    return None if number != number else number


def _enum(enum_cls, raw, default):
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except ValueError:
        if raw is not None:
            logger.warning("Unknown %s %r, using %s", enum_cls.__name__, raw, default.value)
        return default


def _stream(d: dict, retirement_age: int) -> IncomeStream:
    start = _age(d, "start_age", retirement_age)
    return IncomeStream(
        name=str(d.get("name", "Income")),
        amount=_num(d, "amount", 0.0),
        start_age=start,
        end_age=_age(d, "end_age", start + 5),
        inflation_linked=d.get("inflation_linked", True) is not False,
        growth_rate=_opt(d, "growth_rate"),
        tax_as_dividend=bool(d.get("tax_as_dividend", False)),
    )


def _event(d: dict) -> FinancialEvent:
    end = d.get("end_age")
    return FinancialEvent(
        name=str(d.get("name", "Event")),
        age=_age(d, "age", 0),
        amount=_num(d, "amount", 0.0),
        type=_enum(EventType, d.get("type"), EventType.EXPENSE),
        is_recurring=bool(d.get("is_recurring", False)),
        end_age=None if end is None else _age(d, "end_age", 0),
        tax_type=_enum(TaxTreatment, d.get("tax_type"), TaxTreatment.TAX_FREE),
    )


def _loan(d: dict, current_age: int) -> Loan:
    return Loan(
        name=str(d.get("name", "Loan")),
        balance=_num(d, "balance", 0.0),
        interest_rate=_num(d, "interest_rate", 0.0),
        monthly_payment=_num(d, "monthly_payment", 0.0),
        start_age=_age(d, "start_age", current_age),
    )


def _mortgage(d: dict) -> Mortgage:
    return Mortgage(
        name=str(d.get("name", "Mortgage")),
        balance=_num(d, "balance", 0.0),
        monthly_payment=_num(d, "monthly_payment", 0.0),
        interest_rate=_num(d, "interest_rate", 0.0),
        type=_enum(MortgageType, d.get("type"), MortgageType.REPAYMENT),
        end_age=_age(d, "end_age", DEFAULTS["retirement_age"]),
    )


def _property(d: dict) -> InvestmentProperty:
    mortgage = None
    if d.get("has_mortgage") or isinstance(d.get("mortgage"), dict):
        m = d.get("mortgage") if isinstance(d.get("mortgage"), dict) else {
            "balance": d.get("mortgage_balance"),
            "interest_rate": d.get("interest_rate"),
            "monthly_payment": d.get("monthly_payment"),
            "interest_only": d.get("is_interest_only"),
            "end_age": d.get("end_age"),
        }
        mortgage = PropertyMortgage(
            balance=_num(m, "balance", 0.0),
            interest_rate=_num(m, "interest_rate", 0.0),
            monthly_payment=_num(m, "monthly_payment", 0.0),
            interest_only=bool(m.get("interest_only", False)),
            end_age=_age(m, "end_age", DEFAULTS["retirement_age"]),
        )
    sale_age = d.get("sale_age")
    return InvestmentProperty(
        name=str(d.get("name", "Property")),
        value=_num(d, "value", 0.0),
        monthly_rent=_num(d, "monthly_rent", 0.0),
        growth_rate=_num(d, "growth_rate", 0.0),
        monthly_cost=_num(d, "monthly_cost", 0.0),
        sale_age=None if sale_age is None else _age(d, "sale_age", 0),
        sale_price=_opt(d, "sale_price"),
        mortgage=mortgage,
    )


def _db_pension(d: dict) -> DefinedBenefitPension:
    return DefinedBenefitPension(
        name=str(d.get("name", "DB pension")),
        annual_income=_num(d, "annual_income", 0.0),
        start_age=_age(d, "start_age", DEFAULTS["retirement_age"]),
        inflation_linked=d.get("inflation_linked", True) is not False,
    )


def normalise(data: dict) -> Assumptions:
    """
    Build an Assumptions record from a loose dict (UI state, imported JSON).
    Missing or malformed numbers take DEFAULTS. Legacy fields are migrated.
    """
    d = dict(data or {})
    current_age = _age(d, "current_age", DEFAULTS["current_age"])
    if "current_age" not in d and d.get("birth_year") is not None:
        current_age = current_age_from_birth_year(int(val(d["birth_year"], 1990)))
    retirement_age = _age(d, "retirement_age", DEFAULTS["retirement_age"])

    semi_age = retirement_age
    if d.get("has_semi_retirement", True):
        semi_age = max(retirement_age, _age(d, "semi_retirement_age", retirement_age))

    # Income streams: the list wins; a legacy single figure is migrated only when it is empty
    streams = [_stream(s, retirement_age) for s in d.get("additional_incomes") or d.get("income_streams") or []]
    legacy_extra = _num(d, "additional_income", 0.0)
    if not streams and legacy_extra > 0 and d.get("has_side_hustle", True):
        start = _age(d, "additional_income_start_age", retirement_age)
        streams.append(IncomeStream(
            name="Additional income",
            amount=legacy_extra,
            start_age=start,
            end_age=_age(d, "additional_income_end_age", retirement_age + 5),
        ))

    mortgages = [_mortgage(m) for m in d.get("mortgages") or []]
    legacy_payment = _num(d, "mortgage_payment", 0.0)
    if not mortgages and legacy_payment > 0:
        mortgages.append(Mortgage(
            name="Mortgage",
            balance=_num(d, "mortgage_final_payment", 0.0),
            monthly_payment=legacy_payment,
            interest_rate=_num(d, "mortgage_interest_rate", 0.0),
            type=_enum(MortgageType, d.get("mortgage_type"), MortgageType.REPAYMENT),
            end_age=_age(d, "mortgage_end_age", retirement_age),
        ))

    order = tuple(
        _enum(SurplusTarget, t, SurplusTarget.CASH)
        for t in (d.get("surplus_allocation_order") or DEFAULTS["surplus_allocation_order"])
    )

    return Assumptions(
        current_age=current_age,
        retirement_age=retirement_age,
        semi_retirement_age=semi_age,
        pension_access_age=_age(d, "pension_access_age", DEFAULTS["pension_access_age"]),
        state_pension_age=_age(d, "state_pension_age", DEFAULTS["state_pension_age"]),
        life_expectancy=_age(d, "life_expectancy", DEFAULTS["life_expectancy"]),
        current_salary=_num(d, "current_salary"),
        salary_growth=_num(d, "salary_growth"),
        is_salary_gross=d.get("is_salary_gross", True) is not False,
        semi_retirement_income=_num(d, "semi_retirement_income"),
        dividend_income=_num(d, "dividend_income"),
        income_streams=tuple(streams),
        state_pension=_num(d, "state_pension"),
        missing_ni_years=_age(d, "missing_ni_years", 0),
        db_pensions=tuple(_db_pension(p) for p in d.get("db_pensions") or []),
        housing_mode=_enum(HousingMode, d.get("housing_mode"), HousingMode.MORTGAGE),
        mortgages=tuple(mortgages),
        rent_amount=_num(d, "rent_amount"),
        rent_inflation=_num(d, "rent_inflation"),
        loans=tuple(_loan(loan, current_age) for loan in d.get("loans") or []),
        investment_properties=tuple(_property(p) for p in d.get("investment_properties") or []),
        savings_cash=_num(d, "savings_cash"),
        savings_isa=_num(d, "savings_isa"),
        savings_gia=_num(d, "savings_gia"),
        savings_pension=(
            _num(d, "savings_pension")
            + _num(d, "savings_workplace_pension", 0.0)
            + _num(d, "savings_sipp", 0.0)
        ),
        contrib_cash=_num(d, "contrib_cash"),
        contrib_isa=_num(d, "contrib_isa"),
        contrib_gia=_num(d, "contrib_gia"),
        contrib_pension=(
            _num(d, "contrib_pension")
            + _num(d, "contrib_workplace_pension", 0.0)
            + _num(d, "contrib_sipp", 0.0)
        ),
        surplus_allocation_order=order,
        drawdown_strategy=_enum(DrawdownStrategy, d.get("drawdown_strategy"), DrawdownStrategy.STANDARD),
        max_isa_from_gia=bool(d.get("max_isa_from_gia", False)),
        pension_lump_sum_mode=_enum(LumpSumMode, d.get("pension_lump_sum_mode"), LumpSumMode.DRIP),
        pension_lump_sum_destination=_enum(
            LumpSumDestination, d.get("pension_lump_sum_destination"), LumpSumDestination.CASH
        ),
        pension_tax_free_cash=_num(d, "pension_tax_free_cash"),
        annual_spending=_num(d, "annual_spending"),
        spending_taper_age=_age(d, "spending_taper_age", DEFAULTS["spending_taper_age"]),
        spending_taper_rate=_num(d, "spending_taper_rate"),
        events=tuple(_event(e) for e in d.get("events") or []),
        inflation=_num(d, "inflation"),
        growth_cash=_num(d, "growth_cash"),
        growth_isa=_num(d, "growth_isa"),
        growth_gia=_num(d, "growth_gia"),
        growth_pension=_num(d, "growth_pension"),
        pension_fees=_num(d, "pension_fees"),
    )
