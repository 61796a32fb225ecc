"""Index Accrual page: projected index growth and compounding accuracy."""

import pandas as pd
import streamlit as st

from reservecore.dashboard.components.charts import (
    compounding_error_chart,
    index_growth_chart,
)
from reservecore.data.interfaces import ReserveDataProvider
from reservecore.math.wad_ray import RAY, ray_to_float
from reservecore.simulation.projection import (
    SECONDS_PER_DAY,
    compounding_error_table,
    project_snapshot,
)

_ERROR_HORIZONS_DAYS = [1, 7, 30, 90, 365]


def render_accrual(
    provider: ReserveDataProvider,
    asset: str,
    horizon_days: int,
    step_days: int,
) -> None:
    """Render the index accrual page."""
    st.header(f"{asset} Index Accrual")

    snapshot = provider.get_reserve_snapshot(asset)
    df = project_snapshot(snapshot, horizon_days, step_days)

    st.plotly_chart(
        index_growth_chart(df, title=f"{asset} Projected Index Growth"),
        use_container_width=True,
    )

    last = df.iloc[-1]
    c1, c2, c3 = st.columns(3)
    with c1:
        st.metric("Supply Rate", f"{ray_to_float(snapshot.liquidity_rate)*100:.2f}%")
    with c2:
        st.metric(
            f"Supply Growth ({horizon_days}d)",
            f"{(last['supply_growth'] - 1)*100:.3f}%",
        )
    with c3:
        st.metric(
            f"Debt Growth ({horizon_days}d)",
            f"{(last['debt_growth'] - 1)*100:.3f}%",
        )

    st.caption(
        "The liquidity index grows by simple interest between touches; the "
        "variable borrow index compounds per second."
    )

    table = pd.DataFrame(
        {
            "Day": df["day"],
            "Liquidity Index": [idx / RAY for idx in df["liquidity_index"]],
            "Variable Borrow Index": [idx / RAY for idx in df["variable_borrow_index"]],
        }
    )
    with st.expander("Projected indices"):
        st.dataframe(table, use_container_width=True, hide_index=True)

    # Compounding approximation accuracy
    st.divider()
    st.subheader("Compounding Approximation")

    errors = compounding_error_table(
        snapshot.variable_borrow_rate,
        [days * SECONDS_PER_DAY for days in _ERROR_HORIZONS_DAYS],
    )
    st.plotly_chart(compounding_error_chart(errors), use_container_width=True)
    st.caption(
        "Relative shortfall of the three-term binomial expansion against exact "
        "per-second compounding at the current variable borrow rate."
    )
