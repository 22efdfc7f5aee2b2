import math
from types import SimpleNamespace

from benchmark import advance_benchmark, fee_drag, growth_factor, lifetime_fee_cost


def test_flat_fee_is_inflation_indexed():
    assert math.isclose(advance_benchmark(100_000, 5.0, 0.0, 0.0, 1.0), 104_760.0)
    assert math.isclose(advance_benchmark(100_000, 0.0, 0.0, 0.0, 2.0), 99_520.0)


def test_mid_year_cash_flows():
    assert math.isclose(advance_benchmark(0.0, 21.0, 1_000, 0.0, 0.0), 1_100.0)


def test_growth_factor_floor():
    assert growth_factor(-150.0) == 0.0
    assert math.isclose(growth_factor(5.0), 1.05)


def test_fee_drag_per_year():
    records = [
        SimpleNamespace(benchmark_pension_pot=110.0, balance_pension=100.0),
        SimpleNamespace(benchmark_pension_pot=130.0, balance_pension=105.0),
    ]
    assert list(fee_drag(records)) == [10.0, 25.0]
    assert lifetime_fee_cost(records) == 25.0
    assert lifetime_fee_cost([]) == 0.0
