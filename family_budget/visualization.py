"""Plotly visualisation helpers for budget allocations.

Each function accepts the frames built by
:mod:`family_budget.pages.lib.budgets.calculations` and returns a
``plotly.graph_objects.Figure`` that Streamlit can render via
``st.plotly_chart``.
"""

from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

STATUS_COLORS = {
    "ok": "#2e7d32",
    "under": "#f9a825",
    "over": "#c62828",
}


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_allocation_donut(frame: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Generate a donut chart of the allocation by category amount.

    Parameters
    ----------
    frame : pandas.DataFrame
        Output of ``allocation_frame`` (needs ``Category`` and ``Amount``).
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Donut chart with one slice per budget line.
    """
    if frame.empty or frame["Amount"].sum() <= 0:
        return _empty_figure()
    fig = px.pie(frame, names="Category", values="Amount", hole=0.5)
    fig.update_traces(textinfo="percent+label")
    fig.update_layout(title=title or "Budget allocation", showlegend=False)
    return fig


def create_subcategory_bar(frame: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Compare category amounts with their subcategory totals.

    Only lines that have subcategories are plotted; bars are coloured by
    reconcile status.

    Parameters
    ----------
    frame : pandas.DataFrame
        Output of ``allocation_frame``.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Grouped bar chart (category amount vs. subcategory total).
    """
    if frame.empty:
        return _empty_figure()
    split = frame[frame["SubcategoryTotal"].notna()]
    if split.empty:
        return _empty_figure()
    fig = go.Figure()
    fig.add_bar(name="Category", x=split["Category"], y=split["Amount"], marker_color="#90a4ae")
    fig.add_bar(
        name="Subcategories",
        x=split["Category"],
        y=split["SubcategoryTotal"],
        marker_color=[STATUS_COLORS.get(status, "#546e7a") for status in split["Status"]],
    )
    fig.update_layout(
        title=title or "Subcategory reconciliation",
        barmode="group",
        xaxis_title="Category",
        yaxis_title="Amount",
    )
    return fig
