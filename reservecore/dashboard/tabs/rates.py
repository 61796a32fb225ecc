"""Interest Rates page: rate curves and borrow sensitivity."""

import pandas as pd
import streamlit as st

from reservecore.dashboard.components.charts import rate_curve_chart
from reservecore.data.interfaces import ReserveDataProvider
from reservecore.math.wad_ray import WAD, ray_to_float, to_ray
from reservecore.protocol.interest_rate import InterestRateModel, utilization_rate


def render_rates(
    provider: ReserveDataProvider,
    asset: str,
    utilization_override: float | None = None,
) -> None:
    """Render the interest rates page."""
    st.header(f"{asset} Interest Rate Curves")

    params = provider.get_reserve_params(asset)
    snapshot = provider.get_reserve_snapshot(asset)
    model = InterestRateModel(params, provider)
    market_rate = provider.get_market_borrow_rate(asset)

    current_util = ray_to_float(
        utilization_rate(snapshot.available_liquidity, snapshot.total_debt)
    )
    util = utilization_override if utilization_override is not None else current_util
    util_ray = to_ray(util)

    df = model.rate_curve(asset, params.reserve_factor)
    fig = rate_curve_chart(
        df,
        current_utilization=util,
        optimal_utilization=ray_to_float(params.optimal_utilization),
        title=f"{asset} Rate Curve",
    )
    st.plotly_chart(fig, use_container_width=True)

    c1, c2, c3, c4 = st.columns(4)
    with c1:
        st.metric("Utilization", f"{util*100:.1f}%")
    with c2:
        st.metric(
            "Variable Borrow Rate",
            f"{ray_to_float(model.variable_borrow_rate(util_ray))*100:.2f}%",
        )
    with c3:
        st.metric(
            "Stable Borrow Rate",
            f"{ray_to_float(model.stable_borrow_rate(util_ray, market_rate))*100:.2f}%",
        )
    with c4:
        st.metric("Market Borrow Rate", f"{ray_to_float(market_rate)*100:.2f}%")

    # Rate sensitivity table
    st.divider()
    st.subheader("Rate Sensitivity")

    utilizations = [0.2, 0.4, 0.6, 0.8, 0.90, 0.92, 0.95, 0.98, 1.0]
    rows = []
    for u in utilizations:
        u_ray = to_ray(u)
        rows.append(
            {
                "Utilization": f"{u*100:.0f}%",
                "Variable Rate": f"{ray_to_float(model.variable_borrow_rate(u_ray))*100:.2f}%",
                "Stable Rate": (
                    f"{ray_to_float(model.stable_borrow_rate(u_ray, market_rate))*100:.2f}%"
                ),
            }
        )
    st.table(pd.DataFrame(rows))

    # Borrow impact simulation
    st.divider()
    st.subheader("Borrow Impact Simulation")

    available = snapshot.available_liquidity // WAD
    borrow_amount = st.slider(
        f"Additional {asset} Variable Borrow",
        min_value=0,
        max_value=max(int(available), 1),
        value=int(available) // 10,
    )

    if borrow_amount > 0:
        before = model.calculate_interest_rates(
            asset,
            snapshot.available_liquidity,
            snapshot.total_stable_debt,
            snapshot.total_variable_debt,
            snapshot.average_stable_borrow_rate,
            params.reserve_factor,
        )
        amount = borrow_amount * WAD
        after = model.calculate_interest_rates(
            asset,
            snapshot.available_liquidity - amount,
            snapshot.total_stable_debt,
            snapshot.total_variable_debt + amount,
            snapshot.average_stable_borrow_rate,
            params.reserve_factor,
        )
        c1, c2 = st.columns(2)
        with c1:
            variable_after = ray_to_float(after.variable_borrow_rate)
            variable_before = ray_to_float(before.variable_borrow_rate)
            st.metric(
                "Variable Borrow Rate",
                f"{variable_after*100:.2f}%",
                f"{(variable_after - variable_before)*100:+.2f}%",
            )
        with c2:
            supply_after = ray_to_float(after.liquidity_rate)
            supply_before = ray_to_float(before.liquidity_rate)
            st.metric(
                "Supply Rate",
                f"{supply_after*100:.2f}%",
                f"{(supply_after - supply_before)*100:+.2f}%",
            )
