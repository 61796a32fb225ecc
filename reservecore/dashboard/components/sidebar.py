"""Sidebar parameter controls."""

from dataclasses import dataclass

import streamlit as st


@dataclass
class SidebarParams:
    """User-controlled parameters from the sidebar."""

    asset: str
    utilization_override: float | None
    horizon_days: int
    step_days: int


def render_sidebar(assets: list[str]) -> SidebarParams:
    """Render sidebar controls and return selected parameters.

    Parameters
    ----------
    assets : list[str]
        Reserve symbols offered for selection.
    """
    # "Data Source" header and on-chain toggle are rendered in app.py
    # before this function is called (the asset list depends on the provider).

    st.sidebar.header("Reserve")
    asset = st.sidebar.selectbox("Asset", assets, index=0)

    st.sidebar.header("What-If Analysis")

    use_util_override = st.sidebar.checkbox("Override Utilization", value=False)
    util_override: float | None = None
    if use_util_override:
        util_override = (
            st.sidebar.slider(
                "Utilization (%)",
                min_value=0,
                max_value=100,
                value=80,
            )
            / 100.0
        )

    st.sidebar.header("Projection")
    horizon_days = st.sidebar.slider(
        "Horizon (days)",
        min_value=30,
        max_value=1825,
        value=365,
        step=30,
    )
    step_days = st.sidebar.select_slider(
        "Accrual Interval (days)",
        options=[1, 7, 30],
        value=1,
    )
    st.sidebar.caption(
        "Indices are accrued as if the reserve were touched once per interval "
        "at the current rates."
    )

    return SidebarParams(
        asset=asset,
        utilization_override=util_override,
        horizon_days=horizon_days,
        step_days=step_days,
    )
