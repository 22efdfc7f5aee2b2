from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from benchmark import lifetime_fee_cost
from inputs import Assumptions
from simulation import YearRecord, run_projection


def clone_assumptions(a: Assumptions, **overrides) -> Assumptions:
    return replace(a, **overrides)


def summarise(records: List[YearRecord]) -> dict:
    if not records:
        return {"final_net_worth": 0.0, "first_shortfall_age": None,
                "total_shortfall": 0.0, "lifetime_fee_cost": 0.0}
    return {
        "final_net_worth": records[-1].total_net_worth,
        "first_shortfall_age": next((r.age for r in records if r.shortfall > 0), None),
        "total_shortfall": sum(r.shortfall for r in records),
        "lifetime_fee_cost": lifetime_fee_cost(records),
    }


def compare(base: Assumptions, variants: List[Tuple[str, dict]],
            current_year: Optional[int] = None) -> Dict[str, dict]:
    """
    variants: list of (name, overrides-dict)
    returns: dict name -> {"records": [...], "summary": {...}}; "Base" is always included
    """
    res = {}
    runs = [("Base", base)] + [(name, clone_assumptions(base, **edits)) for name, edits in variants]
    for name, a in runs:
        records = run_projection(a, current_year=current_year)
        res[name] = {"records": records, "summary": summarise(records)}
    return res
