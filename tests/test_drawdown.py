import math

from drawdown import (
    SOLVER_TOLERANCE,
    IncomeContext,
    resolve_gross_withdrawal,
    withdrawal_order,
)
from inputs import DrawdownStrategy


def test_withdrawal_inside_allowance_is_untaxed():
    context = IncomeContext(pension_tax_free_fraction=0.25)
    taken = resolve_gross_withdrawal(10_000, context, 500_000)
    assert 10_000 <= taken.net <= 10_000 + SOLVER_TOLERANCE
    assert math.isclose(taken.gross, taken.net, abs_tol=1e-6)


def test_higher_rate_withdrawal_is_grossed_up():
    # Salary already fills the allowance and the basic band
    context = IncomeContext(gross_salary=50_270)
    taken = resolve_gross_withdrawal(6_000, context, 500_000)
    assert 6_000 <= taken.net <= 6_000 + SOLVER_TOLERANCE
    assert math.isclose(taken.gross, 10_000, abs_tol=0.2)


def test_small_pot_is_emptied():
    context = IncomeContext()
    taken = resolve_gross_withdrawal(10_000, context, 5_000)
    assert taken.gross == 5_000
    assert math.isclose(taken.net, 5_000)


def test_nothing_requested_or_nothing_available():
    context = IncomeContext(gross_salary=20_000)
    assert resolve_gross_withdrawal(0, context, 10_000) == (0.0, 0.0)
    assert resolve_gross_withdrawal(1_000, context, 0) == (0.0, 0.0)
    assert resolve_gross_withdrawal(1_000, context, -50) == (0.0, 0.0)


def test_pot_just_above_target_caps_gross():
    # Needs about 12,500 gross at basic rate but only 11,000 is there
    context = IncomeContext(gross_salary=20_000)
    taken = resolve_gross_withdrawal(10_000, context, 11_000)
    assert taken.gross == 11_000
    assert taken.net < 10_000


def test_withdrawal_orders():
    assert withdrawal_order(DrawdownStrategy.STANDARD, True) == ["cash", "gia", "isa", "pension"]
    assert withdrawal_order(DrawdownStrategy.PRESERVE_PENSION, True) == ["gia", "cash", "isa", "pension"]
    assert withdrawal_order(DrawdownStrategy.TAX_EFFICIENT_BRIDGE, True) == ["pension", "gia", "cash", "isa"]
    assert withdrawal_order(DrawdownStrategy.TAX_EFFICIENT_BRIDGE, False) == ["gia", "cash", "isa"]
