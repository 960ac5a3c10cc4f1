"""Streamlit live dashboard - Year-over-year paid search performance."""

from datetime import date

import plotly.graph_objects as go
import polars as pl
import streamlit as st

from ads_monitor.analytics import (
    FilterState,
    Granularity,
    InsightEngine,
    LiveAggregator,
    PeriodAggregator,
    rows_to_frame,
)
from ads_monitor.analytics.formulas import entity_type_options
from ads_monitor.analytics.metrics import DASHBOARD_METRICS, METRICS_BY_KEY
from ads_monitor.exceptions import AdsMonitorError
from ads_monitor.ingestion import RecordIngestionPipeline

# Page config
st.set_page_config(
    page_title="Ads Monitor",
    page_icon="📊",
    layout="wide",
)

# Custom CSS
st.markdown(
    """
    <style>
    .insight-green { background-color: #d4edda; border-left: 4px solid #28a745; padding: 1rem; margin: 0.5rem 0; }
    .insight-amber { background-color: #fff3cd; border-left: 4px solid #ffc107; padding: 1rem; margin: 0.5rem 0; }
    .insight-red { background-color: #f8d7da; border-left: 4px solid #dc3545; padding: 1rem; margin: 0.5rem 0; }
    </style>
    """,
    unsafe_allow_html=True,
)

SCHEMAS = {
    Granularity.WEEK: "weekly_campaign",
    Granularity.MONTH: "monthly_campaign",
}


def format_number(n: int | float, decimals: int = 0) -> str:
    """Format number with commas."""
    if decimals == 0:
        return f"{int(n):,}"
    return f"{n:,.{decimals}f}"


def render_insight(insight: dict) -> None:
    """Render an insight card with severity color."""
    severity = insight["severity"]
    icon = {"green": "✅", "amber": "⚠️", "red": "🚨"}[severity]
    css_class = f"insight-{severity}"

    st.markdown(
        f"""
        <div class="{css_class}">
            <strong>{icon} {insight['rule_id'].replace('_', ' ').title()}</strong><br/>
            {insight['description']}<br/>
            <em>→ {insight['recommendation']}</em>
        </div>
        """,
        unsafe_allow_html=True,
    )


def create_yoy_chart(table: pl.DataFrame, metric_key: str) -> go.Figure:
    """Current vs comparison year line chart for one metric."""
    label = METRICS_BY_KEY[metric_key].label
    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=table["sequence"].to_list(),
        y=table[f"{metric_key}_current"].to_list(),
        name="Current year",
        mode="lines+markers",
        line=dict(color="#667eea", width=3),
    ))
    fig.add_trace(go.Scatter(
        x=table["sequence"].to_list(),
        y=table[f"{metric_key}_comparison"].to_list(),
        name="Comparison year",
        mode="lines+markers",
        line=dict(color="#764ba2", width=2, dash="dot"),
    ))

    fig.update_layout(
        title=f"{label}: Year over Year",
        xaxis_title="Period",
        yaxis_title=label,
        legend=dict(x=0, y=1.15, orientation="h"),
        height=400,
        plot_bgcolor="white",
    )
    return fig


@st.cache_data
def load_records(content: bytes, schema_name: str, excluded: tuple[str, ...]) -> pl.DataFrame:
    """Ingest an uploaded CSV export (columns named by source field)."""
    rows = pl.read_csv(content, infer_schema_length=0).to_dicts()
    result = RecordIngestionPipeline().ingest(
        rows, schema_name=schema_name, excluded_names=list(excluded)
    )
    if result.skipped_rows:
        st.warning(f"Skipped {result.skipped_rows} rows with a malformed period start")
    return result.records


def main():
    st.title("📊 Year-over-Year Ads Monitor")

    # Sidebar - Upload and run settings
    with st.sidebar:
        st.header("📁 Upload Export")
        export_file = st.file_uploader(
            "Campaign Export (CSV)",
            type=["csv"],
            help="Rows keyed by report field, e.g. segments.week, metrics.clicks",
        )
        granularity = st.radio(
            "Period",
            options=list(Granularity),
            format_func=lambda g: "Weekly" if g is Granularity.WEEK else "Monthly",
            horizontal=True,
        )
        today = st.date_input("Report date", value=date.today())
        excluded_text = st.text_input(
            "Brand campaign names (comma separated)",
            help="Campaigns flagged for the 'Exclude Brand Campaigns' filter",
        )
        st.divider()

    if not export_file:
        st.info("👈 Upload a campaign export to get started")
        return

    excluded = tuple(n.strip() for n in excluded_text.split(",") if n.strip())
    try:
        records = load_records(export_file.getvalue(), SCHEMAS[granularity], excluded)
        pairing = PeriodAggregator(
            granularity=granularity,
            current_year=today.year,
            comparison_year=today.year - 1,
            today=today,
        ).pair(records)
    except AdsMonitorError as e:
        st.error(f"Error loading export: {e}")
        return

    # Live filters - every change re-aggregates the raw records
    options = entity_type_options(records["entity_type"].unique().to_list())
    with st.sidebar:
        st.header("🎛️ Filters")
        filters = FilterState(
            entity_type=st.selectbox("Campaign Type", options=options),
            exclude_group=st.toggle("Exclude Brand Campaigns"),
            hide_comparison=st.toggle("Hide YoY Columns"),
            hide_period_over_period=st.toggle(f"Hide {granularity.pop_label} Columns"),
        )

    rows = LiveAggregator(records).evaluate(pairing, filters)
    if not rows:
        st.info("No complete periods in the current year yet")
        return

    table = rows_to_frame(rows)

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Periods", len(pairing.pairs))
    with col2:
        st.metric("Without comparison", pairing.unmatched)
    with col3:
        latest = rows[-1].metrics["cost"]
        st.metric(
            "Latest period cost",
            format_number(latest.current, 2),
            delta=f"{latest.index - 100:.1f}% YoY" if latest.comparison else None,
            delta_color="inverse",
        )

    st.divider()

    metric_key = st.selectbox(
        "Metric",
        options=[m.key for m in DASHBOARD_METRICS],
        format_func=lambda k: METRICS_BY_KEY[k].label,
    )
    st.plotly_chart(create_yoy_chart(table, metric_key), use_container_width=True)

    # Column visibility follows the hide toggles
    shown = ["sequence", "period_start"]
    column_config: dict[str, object] = {
        "sequence": st.column_config.NumberColumn("#", format="%d"),
        "period_start": st.column_config.DateColumn("Period Start"),
    }
    for metric in DASHBOARD_METRICS:
        key, label = metric.key, metric.label
        shown.append(f"{key}_current")
        column_config[f"{key}_current"] = st.column_config.NumberColumn(label)
        if not filters.hide_period_over_period:
            shown.append(f"{key}_pop")
            column_config[f"{key}_pop"] = st.column_config.NumberColumn(
                f"{label} {granularity.pop_label} %", format="%.1f"
            )
        if not filters.hide_comparison:
            shown.extend(
                [f"{key}_comparison", f"{key}_index", f"{key}_tier"]
            )
            column_config[f"{key}_comparison"] = st.column_config.NumberColumn(
                f"{label} (comparison)"
            )
            column_config[f"{key}_index"] = st.column_config.NumberColumn(
                f"{label} Index", format="%.1f"
            )
            column_config[f"{key}_tier"] = st.column_config.TextColumn(f"{label} Tier")

    st.subheader("Summary")
    st.dataframe(
        table.select(shown),
        use_container_width=True,
        hide_index=True,
        column_config=column_config,
    )

    st.subheader("Insights")
    engine = InsightEngine(rows, granularity)
    insights = engine.to_dict(engine.generate_all_insights())
    if insights:
        for insight in insights:
            render_insight(insight)
    else:
        st.success("✅ No notable changes detected")


if __name__ == "__main__":
    main()
