import logging
import math
import numbers

APP_NAME = "FutureProof: UK Cash-Flow Planner"

# Default assumptions (UK; percentages are % per year, money is £ today)
DEFAULTS = {
    "current_age": 30,
    "retirement_age": 65,
    "semi_retirement_age": 65,
    "pension_access_age": 57,
    "state_pension_age": 68,
    "life_expectancy": 90,

    # Income
    "current_salary": 0.0,
    "salary_growth": 0.0,
    "semi_retirement_income": 0.0,
    "dividend_income": 0.0,               # legacy single dividend figure
    "state_pension": 11_502.0,            # full new state pension, annual
    "missing_ni_years": 0,

    # Housing
    "rent_amount": 0.0,                   # monthly
    "rent_inflation": 2.5,

    # Pots (current balances) and monthly contributions
    "savings_cash": 0.0,
    "savings_isa": 0.0,
    "savings_gia": 0.0,
    "savings_pension": 0.0,
    "contrib_cash": 0.0,
    "contrib_isa": 0.0,
    "contrib_gia": 0.0,
    "contrib_pension": 0.0,

    # Spending
    "annual_spending": 0.0,               # excluding housing
    "spending_taper_age": 75,
    "spending_taper_rate": 0.0,

    # Growth assumptions (nominal)
    "inflation": 2.5,
    "growth_cash": 0.0,
    "growth_isa": 0.0,
    "growth_gia": 0.0,
    "growth_pension": 5.0,
    "pension_fees": 0.0,

    # Pension tax settings
    "pension_tax_free_cash": 25.0,

    # Strategy
    "surplus_allocation_order": ("pension", "isa", "gia", "cash"),
    "drawdown_strategy": "standard",
    "pension_lump_sum_mode": "drip",
    "pension_lump_sum_destination": "cash",
    "housing_mode": "mortgage",
}


def val(value, default: float) -> float:
    """Numeric field accessor: real finite numbers pass through, anything else gets the default."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return default
    if not math.isfinite(value):
        return default
    return float(value)


def setup_logging(level=logging.INFO):
    # Only the app calls this; engine modules just use getLogger(__name__)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
