from scenarios import clone_assumptions, compare, summarise


def test_clone_only_changes_overrides(saver):
    later = clone_assumptions(saver, retirement_age=65, semi_retirement_age=65)
    assert later.retirement_age == 65
    assert later.current_salary == saver.current_salary
    assert saver.retirement_age == 60


def test_compare_runs_base_and_each_variant(saver):
    results = compare(saver, [("Spend less", {"annual_spending": 20_000}),
                              ("Lower fees", {"pension_fees": 0.1})], current_year=2025)
    assert list(results) == ["Base", "Spend less", "Lower fees"]
    base, frugal = results["Base"]["summary"], results["Spend less"]["summary"]
    assert frugal["final_net_worth"] >= base["final_net_worth"]
    assert frugal["total_shortfall"] <= base["total_shortfall"]
    assert results["Lower fees"]["summary"]["lifetime_fee_cost"] <= base["lifetime_fee_cost"]


def test_summary_of_nothing():
    assert summarise([]) == {"final_net_worth": 0.0, "first_shortfall_age": None,
                             "total_shortfall": 0.0, "lifetime_fee_cost": 0.0}
