"""Reusable Plotly chart components."""

import pandas as pd
import plotly.graph_objects as go


def rate_curve_chart(
    df: pd.DataFrame,
    current_utilization: float | None = None,
    optimal_utilization: float | None = None,
    title: str = "Interest Rate Curve",
) -> go.Figure:
    """Create an interactive rate curve chart.

    Args:
        df: DataFrame with columns: utilization, variable_borrow_rate,
            stable_borrow_rate, liquidity_rate.
        current_utilization: If provided, marks current utilization on chart.
        optimal_utilization: If provided, marks the kink.
        title: Chart title.
    """
    fig = go.Figure()

    series = [
        ("variable_borrow_rate", "Variable Borrow Rate", "#ef4444"),
        ("stable_borrow_rate", "Stable Borrow Rate", "#f59e0b"),
        ("liquidity_rate", "Supply Rate", "#22c55e"),
    ]
    for column, name, color in series:
        fig.add_trace(
            go.Scatter(
                x=df["utilization"] * 100,
                y=df[column] * 100,
                name=name,
                line=dict(color=color, width=2),
                hovertemplate=f"Utilization: %{{x:.1f}}%<br>{name}: %{{y:.2f}}%<extra></extra>",
            )
        )

    if optimal_utilization is not None:
        fig.add_vline(
            x=optimal_utilization * 100,
            line_dash="dot",
            line_color="#3b82f6",
            annotation_text=f"Optimal: {optimal_utilization*100:.0f}%",
            annotation_position="top left",
        )

    if current_utilization is not None:
        fig.add_vline(
            x=current_utilization * 100,
            line_dash="dash",
            line_color="#6b7280",
            annotation_text=f"Current: {current_utilization*100:.1f}%",
        )

    fig.update_layout(
        title=title,
        xaxis_title="Utilization (%)",
        yaxis_title="Rate (%)",
        hovermode="x unified",
        template="plotly_dark",
        height=450,
    )

    return fig


def index_growth_chart(
    df: pd.DataFrame,
    title: str = "Index Growth",
) -> go.Figure:
    """Chart cumulative supply and debt growth over a projection.

    Args:
        df: DataFrame with columns: day, supply_growth, debt_growth.
        title: Chart title.
    """
    fig = go.Figure()

    fig.add_trace(
        go.Scatter(
            x=df["day"],
            y=(df["supply_growth"] - 1) * 100,
            name="Supply (liquidity index)",
            line=dict(color="#22c55e", width=2),
            hovertemplate="Day %{x}<br>Supply growth: %{y:.4f}%<extra></extra>",
        )
    )

    fig.add_trace(
        go.Scatter(
            x=df["day"],
            y=(df["debt_growth"] - 1) * 100,
            name="Variable debt (borrow index)",
            line=dict(color="#ef4444", width=2),
            hovertemplate="Day %{x}<br>Debt growth: %{y:.4f}%<extra></extra>",
        )
    )

    fig.update_layout(
        title=title,
        xaxis_title="Days",
        yaxis_title="Cumulative Growth (%)",
        hovermode="x unified",
        template="plotly_dark",
        height=450,
    )

    return fig


def compounding_error_chart(df: pd.DataFrame) -> go.Figure:
    """Relative error of the binomial approximation by horizon.

    Args:
        df: DataFrame with columns: seconds, relative_error.
    """
    fig = go.Figure(
        go.Bar(
            x=[f"{s / 86400:g}d" for s in df["seconds"]],
            y=df["relative_error"],
            marker_color="#3b82f6",
            hovertemplate="Horizon: %{x}<br>Relative error: %{y:.3e}<extra></extra>",
        )
    )

    fig.update_layout(
        title="Compounding Approximation Error",
        xaxis_title="Horizon",
        yaxis_title="Relative Error",
        yaxis_type="log",
        template="plotly_dark",
        height=350,
    )

    return fig
