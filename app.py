# app.py
from datetime import date

import numpy as np
import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from benchmark import fee_drag, lifetime_fee_cost
from config import APP_NAME, DEFAULTS, setup_logging
from exporters import export_assumptions, export_projection_csv, import_assumptions, records_to_frame
from inputs import Assumptions, current_age_from_birth_year, state_pension_age_for
from returns_presets import PRESETS
from scenarios import compare
from simulation import run_projection
from ui import app_header, inject_css, kpi_card, small_help

setup_logging()

# ------------- Page setup -------------
st.set_page_config(page_title=APP_NAME, page_icon="📈", layout="wide")
inject_css()
app_header(APP_NAME, "Year-by-year cash flow, UK tax and pension drawdown, in nominal pounds.")

with st.expander("How this app works (30 seconds)"):
    st.write("""
**Plain English version:**
- Every year from today to your life expectancy we add up your income and what life costs.
- Tax is worked out with UK income tax, National Insurance, dividend tax and CGT. Bands rise with inflation, the personal allowance stays frozen.
- A surplus is saved in the order you choose. A gap is covered from your pots in the order your drawdown strategy sets.
- Pension withdrawals are grossed up so the money that lands in your account covers the gap after tax.
- A **shortfall** means every pot you can touch is empty. We keep projecting so you can see how big the hole gets.
    """)

# ------------- Sidebar (inputs) -------------
uploaded = st.sidebar.file_uploader("Load saved assumptions (JSON)", type="json")
loaded = Assumptions()
if uploaded is not None:
    try:
        loaded = import_assumptions(uploaded.getvalue())
    except ValueError as e:
        st.sidebar.error(f"Couldn't read that file: {e}")

st.sidebar.header("Your profile")
birth_year = st.sidebar.number_input(
    "Year of birth", min_value=1930, max_value=date.today().year - 16,
    value=date.today().year - loaded.current_age,
    help="We work out your age and State Pension age from this."
)
current_age = current_age_from_birth_year(birth_year)
retirement_age = st.sidebar.number_input(
    "Stop full-time work at", min_value=current_age, max_value=100,
    value=max(current_age, loaded.retirement_age)
)
has_semi = st.sidebar.checkbox("Work part-time for a while first?", value=loaded.semi_retirement_age > loaded.retirement_age)
semi_age = retirement_age
semi_income = 0.0
if has_semi:
    semi_age = st.sidebar.number_input(
        "Stop part-time work at", min_value=retirement_age, max_value=100,
        value=max(retirement_age, loaded.semi_retirement_age)
    )
    semi_income = st.sidebar.number_input(
        "Part-time income (annual)", min_value=0, value=int(loaded.semi_retirement_income), step=1000
    )
pension_access_age = st.sidebar.number_input(
    "Pension access age", min_value=50, max_value=75, value=loaded.pension_access_age
)
life_expectancy = st.sidebar.number_input(
    "Plan until age", min_value=current_age, max_value=120, value=max(current_age, loaded.life_expectancy),
    help="We simulate until this age. It's your longevity buffer."
)
state_pension_age = state_pension_age_for(birth_year)
st.sidebar.caption(f"Age {current_age} today; State Pension from {state_pension_age}.")

st.sidebar.header("Income")
current_salary = st.sidebar.number_input("Salary (annual)", min_value=0, value=int(loaded.current_salary), step=1000)
is_salary_gross = st.sidebar.radio(
    "That salary is", ["Before tax", "After tax"], index=0 if loaded.is_salary_gross else 1,
    horizontal=True
) == "Before tax"
salary_growth = st.sidebar.slider("Pay rises (%/yr)", 0.0, 10.0, float(loaded.salary_growth), 0.1)
state_pension = st.sidebar.number_input(
    "Full State Pension (annual, today)", min_value=0, value=int(loaded.state_pension), step=100
)
missing_ni_years = st.sidebar.number_input(
    "Missing National Insurance years", min_value=0, max_value=35, value=loaded.missing_ni_years,
    help="Each missing year takes 1/35th off the State Pension. Fewer than 10 qualifying years pays nothing."
)

st.sidebar.header("Pots today")
savings_cash = st.sidebar.number_input("Cash", min_value=0, value=int(loaded.savings_cash), step=1000)
savings_isa = st.sidebar.number_input("ISA", min_value=0, value=int(loaded.savings_isa), step=1000)
savings_gia = st.sidebar.number_input("General investment account", min_value=0, value=int(loaded.savings_gia), step=1000)
savings_pension = st.sidebar.number_input("Pensions (all)", min_value=0, value=int(loaded.savings_pension), step=1000)

st.sidebar.header("Monthly saving while working")
contrib_cash = st.sidebar.number_input("To cash", min_value=0, value=int(loaded.contrib_cash), step=50)
contrib_isa = st.sidebar.number_input("To ISA", min_value=0, value=int(loaded.contrib_isa), step=50)
contrib_gia = st.sidebar.number_input("To GIA", min_value=0, value=int(loaded.contrib_gia), step=50)
contrib_pension = st.sidebar.number_input(
    "To pension (net)", min_value=0, value=int(loaded.contrib_pension), step=50,
    help="What leaves your bank account. Basic-rate relief is added on top."
)

st.sidebar.header("Growth (nominal, %/yr)")
preset_name = st.sidebar.selectbox("Choose a preset (optional)", list(PRESETS.keys()))
growth = PRESETS[preset_name] or {
    "growth_cash": loaded.growth_cash, "growth_isa": loaded.growth_isa,
    "growth_gia": loaded.growth_gia, "growth_pension": loaded.growth_pension,
}
inflation = st.sidebar.slider("Inflation", 0.0, 10.0, float(loaded.inflation), 0.1)
growth_cash = st.sidebar.slider("Cash", 0.0, 10.0, float(growth["growth_cash"]), 0.1)
growth_isa = st.sidebar.slider("ISA", 0.0, 12.0, float(growth["growth_isa"]), 0.1)
growth_gia = st.sidebar.slider("GIA", 0.0, 12.0, float(growth["growth_gia"]), 0.1)
growth_pension = st.sidebar.slider("Pension", 0.0, 12.0, float(growth["growth_pension"]), 0.1)
pension_fees = st.sidebar.slider(
    "Pension fees (%/yr)", 0.0, 3.0, float(loaded.pension_fees), 0.05,
    help="Fund + platform + advice, combined. Compared against a £240/yr flat-fee benchmark."
)

st.sidebar.header("Strategy")
strategies = ["standard", "tax_efficient_bridge", "preserve_pension"]
drawdown_strategy = st.sidebar.selectbox(
    "Drawdown order", strategies, index=strategies.index(loaded.drawdown_strategy.value),
    help="standard: cash, GIA, ISA, pension. bridge: pension first once you can. preserve: pension last."
)
surplus_order = st.sidebar.multiselect(
    "Save surplus into (in order)", ["pension", "isa", "gia", "cash", "mortgage"],
    default=[t.value for t in loaded.surplus_allocation_order]
)
max_isa_from_gia = st.sidebar.checkbox("Bed and ISA each year", value=loaded.max_isa_from_gia)
lump_sum_mode = st.sidebar.radio(
    "Tax-free pension cash", ["drip", "upfront"],
    index=0 if loaded.pension_lump_sum_mode.value == "drip" else 1, horizontal=True
)
lump_sum_destination = st.sidebar.selectbox(
    "Put an upfront lump sum into", ["cash", "isa", "gia"],
    index=["cash", "isa", "gia"].index(loaded.pension_lump_sum_destination.value),
    disabled=lump_sum_mode == "drip"
)
pension_tax_free_cash = st.sidebar.slider("Tax-free share of pension (%)", 0.0, 25.0, float(loaded.pension_tax_free_cash), 0.5)

# ------------- Spending, housing and debts -------------
st.markdown("### 1) What life costs")
small_help("All amounts in today's money. They rise with inflation unless you say otherwise.")

cols = st.columns(3)
annual_spending = cols[0].number_input(
    "Spending excluding housing (annual)", min_value=0, value=int(loaded.annual_spending), step=1000
)
spending_taper_age = cols[1].number_input("Spending slows down from age", min_value=0, max_value=120, value=loaded.spending_taper_age)
spending_taper_rate = cols[2].slider("By (%/yr)", 0.0, 10.0, float(loaded.spending_taper_rate), 0.5)

housing_mode = st.radio("Housing", ["mortgage", "rent"], index=0 if loaded.housing_mode.value == "mortgage" else 1, horizontal=True)
rent_amount, rent_inflation = 0.0, DEFAULTS["rent_inflation"]
mortgage_rows = pd.DataFrame(
    [{"name": m.name, "balance": m.balance, "monthly_payment": m.monthly_payment,
      "interest_rate": m.interest_rate, "type": m.type.value, "end_age": m.end_age}
     for m in loaded.mortgages],
    columns=["name", "balance", "monthly_payment", "interest_rate", "type", "end_age"],
)
if housing_mode == "rent":
    c1, c2 = st.columns(2)
    rent_amount = c1.number_input("Rent (monthly)", min_value=0, value=int(loaded.rent_amount), step=50)
    rent_inflation = c2.slider("Rent rises (%/yr)", 0.0, 10.0, float(loaded.rent_inflation), 0.1)
else:
    mortgage_rows = st.data_editor(
        mortgage_rows, num_rows="dynamic", key="mortgages",
        column_config={"type": st.column_config.SelectboxColumn(options=["repayment", "interest_only"])},
    )

with st.expander("Loans, other income, one-off events, rental property and DB pensions"):
    loan_rows = st.data_editor(pd.DataFrame(
        [{"name": x.name, "balance": x.balance, "interest_rate": x.interest_rate,
          "monthly_payment": x.monthly_payment, "start_age": x.start_age} for x in loaded.loans],
        columns=["name", "balance", "interest_rate", "monthly_payment", "start_age"],
    ), num_rows="dynamic", key="loans")
    stream_rows = st.data_editor(pd.DataFrame(
        [{"name": s.name, "amount": s.amount, "start_age": s.start_age, "end_age": s.end_age,
          "inflation_linked": s.inflation_linked, "tax_as_dividend": s.tax_as_dividend}
         for s in loaded.income_streams],
        columns=["name", "amount", "start_age", "end_age", "inflation_linked", "tax_as_dividend"],
    ), num_rows="dynamic", key="streams")
    event_rows = st.data_editor(pd.DataFrame(
        [{"name": e.name, "age": e.age, "amount": e.amount, "type": e.type.value,
          "is_recurring": e.is_recurring, "end_age": e.end_age, "tax_type": e.tax_type.value}
         for e in loaded.events],
        columns=["name", "age", "amount", "type", "is_recurring", "end_age", "tax_type"],
    ), num_rows="dynamic", key="events", column_config={
        "type": st.column_config.SelectboxColumn(options=["income", "expense"]),
        "tax_type": st.column_config.SelectboxColumn(
            options=["tax_free", "taxable_income", "dividend", "capital_gains", "residential_property"]
        ),
    })
    property_rows = st.data_editor(pd.DataFrame(
        [{"name": p.name, "value": p.value, "monthly_rent": p.monthly_rent, "monthly_cost": p.monthly_cost,
          "growth_rate": p.growth_rate, "sale_age": p.sale_age,
          "has_mortgage": p.mortgage is not None,
          "mortgage_balance": p.mortgage.balance if p.mortgage else 0.0,
          "interest_rate": p.mortgage.interest_rate if p.mortgage else 0.0,
          "monthly_payment": p.mortgage.monthly_payment if p.mortgage else 0.0,
          "is_interest_only": p.mortgage.interest_only if p.mortgage else False,
          "end_age": p.mortgage.end_age if p.mortgage else retirement_age}
         for p in loaded.investment_properties],
        columns=["name", "value", "monthly_rent", "monthly_cost", "growth_rate", "sale_age", "has_mortgage",
                 "mortgage_balance", "interest_rate", "monthly_payment", "is_interest_only", "end_age"],
    ), num_rows="dynamic", key="properties")
    db_rows = st.data_editor(pd.DataFrame(
        [{"name": p.name, "annual_income": p.annual_income, "start_age": p.start_age,
          "inflation_linked": p.inflation_linked} for p in loaded.db_pensions],
        columns=["name", "annual_income", "start_age", "inflation_linked"],
    ), num_rows="dynamic", key="db_pensions")


def _rows(df: pd.DataFrame) -> list:
    # Editors hand back NaN for blank cells; the normaliser treats None as missing
    clean = df.dropna(how="all").astype(object)
    return clean.where(clean.notna(), None).to_dict("records")


raw = {
    "current_age": current_age,
    "retirement_age": retirement_age,
    "has_semi_retirement": has_semi,
    "semi_retirement_age": semi_age,
    "semi_retirement_income": float(semi_income),
    "pension_access_age": pension_access_age,
    "state_pension_age": state_pension_age,
    "life_expectancy": life_expectancy,
    "current_salary": float(current_salary),
    "is_salary_gross": is_salary_gross,
    "salary_growth": salary_growth,
    "state_pension": float(state_pension),
    "missing_ni_years": missing_ni_years,
    "savings_cash": float(savings_cash),
    "savings_isa": float(savings_isa),
    "savings_gia": float(savings_gia),
    "savings_pension": float(savings_pension),
    "contrib_cash": float(contrib_cash),
    "contrib_isa": float(contrib_isa),
    "contrib_gia": float(contrib_gia),
    "contrib_pension": float(contrib_pension),
    "inflation": inflation,
    "growth_cash": growth_cash,
    "growth_isa": growth_isa,
    "growth_gia": growth_gia,
    "growth_pension": growth_pension,
    "pension_fees": pension_fees,
    "drawdown_strategy": drawdown_strategy,
    "surplus_allocation_order": surplus_order,
    "max_isa_from_gia": max_isa_from_gia,
    "pension_lump_sum_mode": lump_sum_mode,
    "pension_lump_sum_destination": lump_sum_destination,
    "pension_tax_free_cash": pension_tax_free_cash,
    "annual_spending": float(annual_spending),
    "spending_taper_age": spending_taper_age,
    "spending_taper_rate": spending_taper_rate,
    "housing_mode": housing_mode,
    "rent_amount": float(rent_amount),
    "rent_inflation": rent_inflation,
    "mortgages": _rows(mortgage_rows),
    "loans": _rows(loan_rows),
    "additional_incomes": _rows(stream_rows),
    "events": _rows(event_rows),
    "investment_properties": _rows(property_rows),
    "db_pensions": _rows(db_rows),
}
assumptions = Assumptions.from_dict(raw)

# ------------- Run projection -------------
st.markdown("### 2) Your projection")
records = run_projection(assumptions)
df = records_to_frame(records)

shortfall_years = df[df["shortfall"] > 0]
first_shortfall = None if shortfall_years.empty else int(shortfall_years["age"].iloc[0])
retire_rows = df[df["age"] == retirement_age]
at_retirement = float(retire_rows["total_net_worth"].iloc[0]) if not retire_rows.empty else 0.0

c1, c2, c3, c4 = st.columns(4)
kpi_card(c1, "Net worth at retirement", f"£{at_retirement:,.0f}", "Nominal, excluding your home")
kpi_card(c2, "Net worth at the end", f"£{df['total_net_worth'].iloc[-1]:,.0f}" if len(df) else "£0")
kpi_card(c3, "Money runs out at", "Never" if first_shortfall is None else f"Age {first_shortfall}",
         "" if first_shortfall is None else f"£{df['shortfall'].sum():,.0f} unfunded in total")
kpi_card(c4, "Lifetime cost of pension fees", f"£{lifetime_fee_cost(records):,.0f}",
         "Against a £240/yr flat-fee platform")

# ------------- Charts -------------
figB = go.Figure()
for column, label in [("balance_cash", "Cash"), ("balance_isa", "ISA"), ("balance_gia", "GIA"),
                      ("balance_pension", "Pension"), ("property_value", "Property")]:
    figB.add_trace(go.Scatter(x=df["age"], y=df[column], mode="lines", name=label, stackgroup="pots"))
figB.add_vline(x=retirement_age, line_dash="dash", line_color="green")
if first_shortfall is not None:
    figB.add_vline(x=first_shortfall, line_dash="dot", line_color="red")
figB.update_layout(
    title="Where your money is", xaxis_title="Age", yaxis_title="£ (nominal)",
    hovermode="x unified", margin=dict(l=30, r=20, t=60, b=30)
)
st.plotly_chart(figB, use_container_width=True)

figI = go.Figure()
for column, label in [("spent_salary", "Earnings"), ("spent_state_pension", "State & DB pension"),
                      ("spent_other", "Other income"), ("withdrawal_cash", "From cash"),
                      ("withdrawal_isa", "From ISA"), ("withdrawal_gia", "From GIA"),
                      ("withdrawal_pension", "From pension (net)"), ("shortfall", "Shortfall")]:
    figI.add_trace(go.Bar(x=df["age"], y=df[column], name=label))
figI.add_trace(go.Scatter(x=df["age"], y=df["total_expense"], mode="lines", name="What life costs",
                          line=dict(dash="dash", color="black")))
figI.update_layout(
    barmode="stack", title="How each year is paid for", xaxis_title="Age", yaxis_title="£ per year (nominal)",
    hovermode="x unified", margin=dict(l=30, r=20, t=60, b=30)
)
st.plotly_chart(figI, use_container_width=True)

drag = fee_drag(records)
figF = go.Figure()
figF.add_trace(go.Scatter(x=df["age"], y=df["balance_pension"], mode="lines", name="Your pension"))
figF.add_trace(go.Scatter(x=df["age"], y=df["benchmark_pension_pot"], mode="lines", name="£240/yr benchmark",
                          line=dict(dash="dot")))
figF.add_trace(go.Scatter(x=df["age"], y=np.maximum(drag, 0.0), mode="lines", name="Cost of fees",
                          fill="tozeroy"))
figF.update_layout(
    title="What pension fees cost you", xaxis_title="Age", yaxis_title="£ (nominal)",
    hovermode="x unified", margin=dict(l=30, r=20, t=60, b=30)
)
st.plotly_chart(figF, use_container_width=True)

with st.expander("Year-by-year table"):
    st.dataframe(df.drop(columns=[c for c in df.columns if c.startswith("tax_")]), use_container_width=True)

# ------------- Quick what-ifs -------------
st.markdown("### 3) Quick what-ifs")
a_col, b_col, c_col = st.columns(3)
retire_later = a_col.slider("Retire later (years)", 0, 10, 2)
spend_less = b_col.slider("Spend less (%)", 0, 50, 10, 1)
lower_fees = c_col.slider("Cut pension fees to (%/yr)", 0.0, 3.0, 0.2, 0.05)

if st.button("Run what-ifs"):
    results = compare(assumptions, [
        ("Retire later", {"retirement_age": assumptions.retirement_age + retire_later,
                          "semi_retirement_age": assumptions.semi_retirement_age + retire_later}),
        ("Spend less", {"annual_spending": assumptions.annual_spending * (1 - spend_less / 100.0)}),
        ("Lower fees", {"pension_fees": lower_fees}),
    ])
    st.dataframe(pd.DataFrame({name: res["summary"] for name, res in results.items()}).T)

# ------------- Export -------------
st.markdown("### 4) Export")
name_csv, data_csv = export_projection_csv(records)
st.download_button("⬇️ Download projection (CSV)", data_csv, file_name=name_csv, mime="text/csv")
name_cfg, data_cfg = export_assumptions(assumptions)
st.download_button("⬇️ Download your assumptions (JSON)", data_cfg, file_name=name_cfg, mime="application/json")

st.markdown("---")
st.caption("This app uses a simplified UK tax model and your own growth assumptions. It's a planning tool, not personal advice.")
