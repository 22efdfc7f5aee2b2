from dataclasses import dataclass
from typing import List, NamedTuple

from inputs import DrawdownStrategy
from tax_uk import TaxResult, resolve_tax

SOLVER_TOLERANCE = 0.05     # 5p
SOLVER_MAX_ITERATIONS = 30
WORST_CASE_GROSS_UP = 2.5


@dataclass(frozen=True)
class IncomeContext:
    """Everything else taxed in the year, held fixed while the withdrawal varies."""
    gross_salary: float = 0.0
    gross_dividends: float = 0.0
    gross_state_pension: float = 0.0
    gross_db_pension: float = 0.0
    gross_rental_profit: float = 0.0
    other_taxable_income: float = 0.0
    pension_tax_free_fraction: float = 0.0
    inflation_multiplier: float = 1.0

    def resolve(self, gross_pension_withdrawal: float = 0.0) -> TaxResult:
        return resolve_tax(
            self.gross_salary,
            self.gross_dividends,
            self.gross_state_pension,
            self.gross_db_pension,
            self.gross_rental_profit,
            self.other_taxable_income,
            gross_pension_withdrawal,
            self.pension_tax_free_fraction,
            self.inflation_multiplier,
        )

    def net_gain(self, gross_pension_withdrawal: float, baseline: float) -> float:
        return self.resolve(gross_pension_withdrawal).total_net - baseline


class Withdrawal(NamedTuple):
    gross: float
    net: float


def resolve_gross_withdrawal(target_net: float, context: IncomeContext,
                             available_pot: float) -> Withdrawal:
    """
    Gross pension withdrawal that adds ``target_net`` to the year's net
    income. Banding and the allowance taper make this non-invertible, so
    bisect between a 0% and a worst-case tax rate. If the pot cannot cover
    even the 0% case, the whole pot is taken and the shortfall shows up as
    a smaller net.
    """
    available = max(0.0, available_pot)
    if target_net <= 0 or available <= 0:
        return Withdrawal(0.0, 0.0)

    baseline = context.resolve(0.0).total_net

    if available <= target_net:
        return Withdrawal(available, context.net_gain(available, baseline))

    # Converge from above so a withdrawal that fits the pot never leaves pennies uncovered
    lo, hi = target_net, target_net * WORST_CASE_GROSS_UP
    candidate = hi
    for _ in range(SOLVER_MAX_ITERATIONS):
        mid = (lo + hi) / 2.0
        delta = context.net_gain(mid, baseline)
        if delta < target_net:
            lo = mid
            continue
        hi = candidate = mid
        if delta - target_net <= SOLVER_TOLERANCE:
            break

    gross = min(candidate, available)
    return Withdrawal(gross, context.net_gain(gross, baseline))


def withdrawal_order(strategy: DrawdownStrategy, can_access_pension: bool) -> List[str]:
    if strategy == DrawdownStrategy.TAX_EFFICIENT_BRIDGE:
        # Bridge the gap with pension income once it is available
        return ["pension", "gia", "cash", "isa"] if can_access_pension else ["gia", "cash", "isa"]
    if strategy == DrawdownStrategy.PRESERVE_PENSION:
        return ["gia", "cash", "isa", "pension"]
    return ["cash", "gia", "isa", "pension"]
