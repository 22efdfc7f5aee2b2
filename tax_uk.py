from dataclasses import dataclass, replace

# 2024/25 baseline (UK). Bands are indexed by the caller's inflation
# multiplier; the allowance, its taper threshold and NI thresholds are frozen.
BASE_PERSONAL_ALLOWANCE = 12_570
BASE_PA_TAPER_START = 100_000
BASE_BASIC_RATE_BAND = 37_700           # taxable income above the allowance
BASE_ADDITIONAL_RATE_START = 125_140    # taxable income
BASE_BASIC_RATE_LIMIT = 50_270          # total income; used for CGT banding
BASE_DIVIDEND_ALLOWANCE = 500
BASE_CGT_EXEMPT_AMOUNT = 3_000

BASIC_RATE = 0.20
HIGHER_RATE = 0.40
ADDITIONAL_RATE = 0.45

DIVIDEND_BASIC_RATE = 0.0875
DIVIDEND_HIGHER_RATE = 0.3375
DIVIDEND_ADDITIONAL_RATE = 0.3935

NI_PRIMARY_THRESHOLD = 12_570
NI_UPPER_EARNINGS_LIMIT = 50_270
NI_MAIN_RATE = 0.08
NI_UPPER_RATE = 0.02

CGT_RATES = (0.10, 0.20)
CGT_RESIDENTIAL_RATES = (0.18, 0.24)

# Statutory caps, never indexed
PENSION_ANNUAL_ALLOWANCE = 60_000
ISA_ANNUAL_ALLOWANCE = 20_000

# Relief at source: a £80 net contribution becomes £100 in the pot
PENSION_RELIEF_RATE = BASIC_RATE / (1 - BASIC_RATE)


@dataclass(frozen=True)
class TaxBands:
    pa: float
    taper_start: float
    basic_band: float
    additional_start: float
    dividend_allowance: float


def bands_with_inflation_factor(factor: float) -> TaxBands:
    return TaxBands(
        pa=BASE_PERSONAL_ALLOWANCE,
        taper_start=BASE_PA_TAPER_START,
        basic_band=BASE_BASIC_RATE_BAND * factor,
        additional_start=BASE_ADDITIONAL_RATE_START * factor,
        dividend_allowance=BASE_DIVIDEND_ALLOWANCE * factor,
    )


@dataclass(frozen=True)
class TaxBreakdown:
    # Gross income components
    gross_salary: float = 0.0
    gross_dividends: float = 0.0
    gross_state_pension: float = 0.0
    gross_db_pension: float = 0.0
    gross_rental_profit: float = 0.0
    gross_pension_withdrawal: float = 0.0   # taxable portion only
    pension_tax_free_portion: float = 0.0
    gross_other: float = 0.0
    total_gross_income: float = 0.0

    # Allowances
    personal_allowance: float = 0.0
    personal_allowance_used: float = 0.0
    dividend_allowance_used: float = 0.0
    cgt_allowance_used: float = 0.0

    # Income tax
    income_in_basic_band: float = 0.0
    income_in_higher_band: float = 0.0
    income_in_additional_band: float = 0.0
    basic_rate_tax: float = 0.0
    higher_rate_tax: float = 0.0
    additional_rate_tax: float = 0.0
    total_income_tax: float = 0.0

    # National Insurance (salary only)
    ni_main_rate: float = 0.0
    ni_higher_rate: float = 0.0
    total_ni: float = 0.0

    # Dividend tax
    dividend_basic_tax: float = 0.0
    dividend_higher_tax: float = 0.0
    dividend_additional_tax: float = 0.0
    total_dividend_tax: float = 0.0

    # Capital gains tax (filled in by the simulation)
    cgt_basic_rate: float = 0.0
    cgt_higher_rate: float = 0.0
    total_cgt: float = 0.0

    # Summary
    total_tax_paid: float = 0.0
    net_income: float = 0.0
    effective_tax_rate: float = 0.0

    def with_capital_gains(self, cgt: "CapitalGainsLedger") -> "TaxBreakdown":
        total_tax = self.total_tax_paid + cgt.total
        return replace(
            self,
            cgt_allowance_used=cgt.allowance_used,
            cgt_basic_rate=cgt.basic_tax,
            cgt_higher_rate=cgt.higher_tax,
            total_cgt=cgt.total,
            total_tax_paid=total_tax,
            effective_tax_rate=_rate(total_tax, self.total_gross_income + cgt.gains),
        )


@dataclass(frozen=True)
class TaxResult:
    net_salary: float
    net_dividends: float
    net_state_pension: float
    net_db_pension: float
    net_pension_withdrawal: float
    net_rental_profit: float
    net_other: float
    breakdown: TaxBreakdown

    @property
    def net_pension_income(self) -> float:
        return self.net_state_pension + self.net_db_pension + self.net_pension_withdrawal

    @property
    def total_net(self) -> float:
        return (self.net_salary + self.net_dividends + self.net_pension_income
                + self.net_rental_profit + self.net_other)


def _rate(tax: float, gross: float) -> float:
    return tax / gross if gross > 0 else 0.0


def tapered_allowance(adjusted_income: float, bands: TaxBands) -> float:
    # £1 of allowance lost per £2 over the taper threshold
    if adjusted_income <= bands.taper_start:
        return bands.pa
    return max(0.0, bands.pa - (adjusted_income - bands.taper_start) / 2.0)


def national_insurance(gross_salary: float):
    niable = max(0.0, gross_salary - NI_PRIMARY_THRESHOLD)
    at_main = min(niable, NI_UPPER_EARNINGS_LIMIT - NI_PRIMARY_THRESHOLD)
    at_upper = niable - at_main
    return at_main * NI_MAIN_RATE, at_upper * NI_UPPER_RATE


def resolve_tax(
    gross_salary: float,
    gross_dividends: float,
    gross_state_pension: float,
    gross_db_pension: float,
    gross_rental_profit: float,
    other_taxable_income: float,
    gross_pension_withdrawal: float,
    pension_tax_free_fraction: float,
    inflation_multiplier: float,
) -> TaxResult:
    """
    One UK tax year for a single person: income tax with the allowance
    taper, class 1 NI on salary, and dividend tax stacked on top of all
    other income. Pure; identical inputs always give identical output.
    """
    bands = bands_with_inflation_factor(inflation_multiplier)

    salary = max(0.0, gross_salary)
    dividends = max(0.0, gross_dividends)
    state_pension = max(0.0, gross_state_pension)
    db_pension = max(0.0, gross_db_pension)
    rental = max(0.0, gross_rental_profit)
    other = max(0.0, other_taxable_income)
    withdrawal = max(0.0, gross_pension_withdrawal)
    tax_free_fraction = min(1.0, max(0.0, pension_tax_free_fraction))

    tax_free_withdrawal = withdrawal * tax_free_fraction
    taxable_withdrawal = withdrawal - tax_free_withdrawal

    non_dividend = salary + state_pension + db_pension + rental + other + taxable_withdrawal
    adjusted_income = non_dividend + dividends

    pa = tapered_allowance(adjusted_income, bands)
    ni_main, ni_upper = national_insurance(salary)
    total_ni = ni_main + ni_upper

    # Income tax: allowance first, then basic / higher / additional
    pa_used = min(pa, non_dividend)
    taxable = non_dividend - pa_used
    higher_band = max(0.0, bands.additional_start - bands.basic_band)
    in_basic = min(taxable, bands.basic_band)
    in_higher = min(taxable - in_basic, higher_band)
    in_additional = taxable - in_basic - in_higher
    basic_tax = in_basic * BASIC_RATE
    higher_tax = in_higher * HIGHER_RATE
    additional_tax = in_additional * ADDITIONAL_RATE
    income_tax = basic_tax + higher_tax + additional_tax

    # Dividends sit on top: any allowance left over, then the dividend
    # allowance, then whatever band room the other income left behind
    pa_left = pa - pa_used
    div_pa = min(dividends, pa_left)
    div_allowance_used = min(dividends - div_pa, bands.dividend_allowance)
    taxable_divs = dividends - div_pa - div_allowance_used
    div_basic = min(taxable_divs, max(0.0, bands.basic_band - in_basic))
    div_higher = min(taxable_divs - div_basic, max(0.0, higher_band - in_higher))
    div_additional = taxable_divs - div_basic - div_higher
    div_basic_tax = div_basic * DIVIDEND_BASIC_RATE
    div_higher_tax = div_higher * DIVIDEND_HIGHER_RATE
    div_additional_tax = div_additional * DIVIDEND_ADDITIONAL_RATE
    dividend_tax = div_basic_tax + div_higher_tax + div_additional_tax

    # Apportion income tax by gross share; NI sits with salary alone
    def share(amount: float) -> float:
        return income_tax * amount / non_dividend if non_dividend > 0 else 0.0

    total_gross = non_dividend + dividends + tax_free_withdrawal
    total_tax = income_tax + total_ni + dividend_tax

    breakdown = TaxBreakdown(
        gross_salary=salary,
        gross_dividends=dividends,
        gross_state_pension=state_pension,
        gross_db_pension=db_pension,
        gross_rental_profit=rental,
        gross_pension_withdrawal=taxable_withdrawal,
        pension_tax_free_portion=tax_free_withdrawal,
        gross_other=other,
        total_gross_income=total_gross,
        personal_allowance=pa,
        personal_allowance_used=pa_used + div_pa,
        dividend_allowance_used=div_allowance_used,
        income_in_basic_band=in_basic,
        income_in_higher_band=in_higher,
        income_in_additional_band=in_additional,
        basic_rate_tax=basic_tax,
        higher_rate_tax=higher_tax,
        additional_rate_tax=additional_tax,
        total_income_tax=income_tax,
        ni_main_rate=ni_main,
        ni_higher_rate=ni_upper,
        total_ni=total_ni,
        dividend_basic_tax=div_basic_tax,
        dividend_higher_tax=div_higher_tax,
        dividend_additional_tax=div_additional_tax,
        total_dividend_tax=dividend_tax,
        total_tax_paid=total_tax,
        net_income=total_gross - total_tax,
        effective_tax_rate=_rate(total_tax, total_gross),
    )

    return TaxResult(
        net_salary=salary - share(salary) - total_ni,
        net_dividends=dividends - dividend_tax,
        net_state_pension=state_pension - share(state_pension),
        net_db_pension=db_pension - share(db_pension),
        net_pension_withdrawal=withdrawal - share(taxable_withdrawal),
        net_rental_profit=rental - share(rental),
        net_other=other - share(other),
        breakdown=breakdown,
    )


class CapitalGainsLedger:
    """
    Capital gains for one tax year. The annual exempt amount is shared
    first-come across every gain in processing order. The basic/higher
    split looks only at the household's other income for the year, not
    at gains already charged earlier in the same year (known to slightly
    under-tax several stacked gains).
    """

    def __init__(self, other_income: float, inflation_multiplier: float):
        self.other_income = max(0.0, other_income)
        self.allowance_left = BASE_CGT_EXEMPT_AMOUNT * inflation_multiplier
        self.basic_limit = BASE_BASIC_RATE_LIMIT * inflation_multiplier
        self.gains = 0.0
        self.allowance_used = 0.0
        self.basic_tax = 0.0
        self.higher_tax = 0.0

    @property
    def total(self) -> float:
        return self.basic_tax + self.higher_tax

    def charge(self, gain: float, residential: bool = False) -> float:
        """Tax due on one gain; updates the year's running totals."""
        if gain <= 0:
            return 0.0
        self.gains += gain
        exempt = min(gain, self.allowance_left)
        self.allowance_left -= exempt
        self.allowance_used += exempt
        taxable = gain - exempt

        basic_room = max(0.0, self.basic_limit - self.other_income)
        at_basic = min(taxable, basic_room)
        at_higher = taxable - at_basic
        low, high = CGT_RESIDENTIAL_RATES if residential else CGT_RATES
        basic_tax = at_basic * low
        higher_tax = at_higher * high
        self.basic_tax += basic_tax
        self.higher_tax += higher_tax
        return basic_tax + higher_tax
