import pytest

from inputs import Assumptions


@pytest.fixture
def flat_world():
    """No inflation, no growth, no state pension: every pound is easy to follow."""
    return Assumptions(
        current_age=60,
        retirement_age=60,
        semi_retirement_age=60,
        pension_access_age=57,
        state_pension_age=67,
        life_expectancy=70,
        state_pension=0.0,
        inflation=0.0,
        growth_cash=0.0,
        growth_isa=0.0,
        growth_gia=0.0,
        growth_pension=0.0,
    )


@pytest.fixture
def saver():
    """A working household with a salary, monthly saving and a retirement to fund."""
    return Assumptions(
        current_age=40,
        retirement_age=60,
        semi_retirement_age=60,
        life_expectancy=90,
        current_salary=55_000.0,
        salary_growth=2.0,
        annual_spending=28_000.0,
        savings_cash=10_000.0,
        savings_isa=30_000.0,
        savings_pension=80_000.0,
        contrib_isa=300.0,
        contrib_pension=400.0,
        growth_cash=3.0,
        growth_isa=5.0,
        growth_gia=5.0,
        growth_pension=5.0,
        pension_fees=0.75,
    )
