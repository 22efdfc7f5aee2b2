"""
Benchmark pension pot: the same contributions and drawdown as the real
pension, but on a low-cost platform charging a flat fee instead of a
percentage. The gap between the two is the lifetime cost of the fees.
"""

import math

import numpy as np

BENCHMARK_ANNUAL_FEE = 240    # £/yr today, indexed with inflation


def growth_factor(rate_pct: float) -> float:
    # Floor at -100% so the mid-year square root stays defined
    return max(0.0, 1 + rate_pct / 100)


def advance_benchmark(pot: float, gross_growth_pct: float, inflows: float,
                      withdrawal_gross: float, inflation_multiplier: float) -> float:
    """One year of the shadow pot: full-year growth on the opening balance, mid-year cash flows, flat fee."""
    factor = growth_factor(gross_growth_pct)
    mid = math.sqrt(factor)
    fee = BENCHMARK_ANNUAL_FEE * inflation_multiplier
    return pot * factor + inflows * mid - withdrawal_gross * mid - fee


def fee_drag(records) -> np.ndarray:
    """Per-year benchmark minus actual pension balance."""
    benchmark = np.array([r.benchmark_pension_pot for r in records], dtype=float)
    actual = np.array([r.balance_pension for r in records], dtype=float)
    return benchmark - actual


def lifetime_fee_cost(records) -> float:
    if not records:
        return 0.0
    return float(fee_drag(records)[-1])
