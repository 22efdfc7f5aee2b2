# Simple, opinionated growth presets. All are *nominal* long-run estimates (before inflation),
# as % per year, so they drop straight into the growth inputs.
# These are not promises, just sane defaults users can override.

PRESETS = {
    "Custom": None,
    "Cash (easy access)": {"growth_cash": 3.0, "growth_isa": 3.5, "growth_gia": 3.5, "growth_pension": 3.5},
    "Cautious (40/60)": {"growth_cash": 3.0, "growth_isa": 4.5, "growth_gia": 4.5, "growth_pension": 4.5},
    "Balanced (60/40)": {"growth_cash": 3.0, "growth_isa": 5.5, "growth_gia": 5.5, "growth_pension": 5.5},
    "Global equity (MSCI ACWI)": {"growth_cash": 3.0, "growth_isa": 7.0, "growth_gia": 7.0, "growth_pension": 7.0},
    "FTSE 100": {"growth_cash": 3.0, "growth_isa": 6.0, "growth_gia": 6.0, "growth_pension": 6.0},
}
