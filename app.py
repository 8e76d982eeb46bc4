"""
Stock Ledger Dashboard

A Streamlit dashboard over the reconciled stock ledger.
Run with: streamlit run app.py
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import streamlit as st
import pandas as pd
import plotly.graph_objects as go

from feeds import build_sync_service
from ledger.adjustments import AdjustmentService, AdjustmentValidationError
from ledger.analysis import (
    catalog_to_frame,
    compute_key_metrics,
    compute_product_distribution,
    compute_stock_over_time,
    compute_weekly_changes,
    filter_activity,
)
from ledger.catalog import PACKAGES
from ledger.export import build_activity_export, build_inventory_export, to_csv_text
from ledger.logging_setup import setup_logging
from ledger.models import AdjustmentType, BulkTarget, EntryType, User
from ledger.settings import get_settings
from ledger.store import JsonFileStore, LocalCache

# People who can be selected as the acting user (no sign-in)
DASHBOARD_USERS = [
    User(id="user-001", name="Admin User", role="admin"),
    User(id="user-002", name="Aiman", role="staff"),
    User(id="user-003", name="Farah", role="viewer"),
]

STATUS_STYLE = {"healthy": "🟢", "low": "🟠", "critical": "🔴"}
PRODUCT_COLORS = ["#2ecc71", "#3498db", "#9b59b6"]

# Page config
st.set_page_config(
    page_title="Stock Ledger",
    page_icon="📦",
    layout="wide",
)


@st.cache_resource
def load_services():
    """Build the cache, sync and adjustment services once per process."""
    settings = get_settings()
    setup_logging(settings)
    cache = LocalCache(JsonFileStore(settings.cache_dir))
    sync, client = build_sync_service(settings, cache)
    adjustments = AdjustmentService(cache, writer=client, sync=sync)
    return cache, sync, adjustments


def run_sync(sync) -> None:
    with st.spinner("Syncing data..."):
        result = sync.run()
    if result is None:
        st.info("A sync is already running")
        return
    st.session_state["last_sync"] = result
    if result.partial:
        st.warning("One of the feeds could not be reached; showing what was available")


cache, sync, adjustments = load_services()

if "last_sync" not in st.session_state:
    run_sync(sync)

catalog = cache.read_catalog()
ledger = cache.read_ledger()
metrics = compute_key_metrics(catalog, ledger)

# --- Sidebar ---
with st.sidebar:
    st.header("Acting as")
    user = st.selectbox(
        "User",
        DASHBOARD_USERS,
        format_func=lambda u: f"{u.name} ({u.role})",
    )
    if st.button("🔄 Sync now", use_container_width=True):
        run_sync(sync)
        st.rerun()

    last_sync = st.session_state.get("last_sync")
    if last_sync is not None:
        st.caption(f"{len(last_sync.ledger):,} entries, {len(last_sync.clamped)} capped deductions")

st.title("📦 Stock Ledger")
st.caption("Stock reconciled from seed history, the order sheet and manual adjustments")

# --- Stock Cards ---
products_df = catalog_to_frame(catalog)
cols = st.columns(len(products_df))
for col, (_, product) in zip(cols, products_df.iterrows()):
    with col:
        st.metric(
            product["name"],
            f"{product['stock']:,} units",
            delta=f"{STATUS_STYLE[product['status']]} {product['status'].upper()}",
            delta_color="off",
        )
        st.caption(f"{product['sku']} · RM {product['retail_value']:,.2f} at retail")

st.divider()

# --- Key Metrics Row ---
st.header("Key Metrics")
col1, col2, col3, col4 = st.columns(4)

with col1:
    st.metric("Inventory Value", f"RM {metrics['total_retail_value']:,.0f}", delta=f"RM {metrics['total_cost_value']:,.0f} at cost", delta_color="off")
with col2:
    st.metric("Total Transactions", f"{metrics['total_transactions']:,}")
with col3:
    st.metric("Most Active Product", metrics["most_active_product"])
with col4:
    st.metric(
        "Below Minimum",
        f"{metrics['items_below_min_alert']}",
        delta=f"{metrics['avg_daily_changes']} entries/day",
        delta_color="off",
    )

# --- Package Availability ---
st.subheader("🎁 Available Packages")
package_cols = st.columns(len(PACKAGES))
for col, package in zip(package_cols, PACKAGES):
    with col:
        st.metric(
            package.name,
            f"{metrics['available_packages'][package.type]:,}",
            delta=f"{package.multiplier}x each · RM {package.price:,.0f}",
            delta_color="off",
        )

st.divider()

# --- Charts ---
left_col, right_col = st.columns([2, 1])

with left_col:
    st.subheader("📈 Stock Over Time (30 days)")
    over_time = compute_stock_over_time(catalog, ledger, days=30)
    fig_stock = go.Figure()
    for color, name in zip(PRODUCT_COLORS, over_time.columns):
        fig_stock.add_trace(go.Scatter(x=over_time.index, y=over_time[name], mode="lines", name=name, line_color=color))
    fig_stock.update_layout(
        height=320,
        margin=dict(t=20, b=20, l=20, r=20),
        yaxis_title="Units",
        legend=dict(orientation="h", yanchor="bottom", y=-0.3),
    )
    st.plotly_chart(fig_stock, use_container_width=True)

    st.subheader("📊 Weekly Changes")
    weekly = compute_weekly_changes(ledger, weeks=4)
    fig_weekly = go.Figure(
        data=[
            go.Bar(x=weekly["week"], y=weekly["additions"], name="Additions", marker_color="#2ecc71"),
            go.Bar(x=weekly["week"], y=weekly["deductions"], name="Deductions", marker_color="#e74c3c"),
        ]
    )
    fig_weekly.update_layout(
        barmode="group",
        height=280,
        margin=dict(t=20, b=20, l=20, r=20),
        yaxis_title="Units",
    )
    st.plotly_chart(fig_weekly, use_container_width=True)

with right_col:
    st.subheader("🥧 Deductions by Product")
    distribution = compute_product_distribution(catalog, ledger)
    if len(distribution) > 0:
        fig_dist = go.Figure(
            data=[
                go.Pie(
                    labels=distribution["name"],
                    values=distribution["units"],
                    hole=0.4,
                    marker_colors=PRODUCT_COLORS,
                )
            ]
        )
        fig_dist.update_layout(
            height=300,
            margin=dict(t=20, b=20, l=20, r=20),
            legend=dict(orientation="h", yanchor="bottom", y=-0.2),
        )
        st.plotly_chart(fig_dist, use_container_width=True)
    else:
        st.info("No deductions recorded yet")

    # --- Manual Adjustment ---
    st.subheader("✏️ Manual Adjustment")
    if not user.can_edit:
        st.info(f"{user.name} has view-only access")
    else:
        product_options = [BulkTarget.ALL.value] + list(catalog)
        with st.form("adjustment", clear_on_submit=True):
            product_choice = st.selectbox(
                "Product",
                product_options,
                key="adjustment_product",
                format_func=lambda pid: "All products" if pid == BulkTarget.ALL.value else catalog[pid].name,
            )
            adjustment_type = st.selectbox("Type", [t.value for t in AdjustmentType], key="adjustment_type")
            quantity = st.number_input("Quantity", min_value=1, step=1, value=1)
            notes = st.text_input("Reason")
            submitted = st.form_submit_button("Submit adjustment")

        if submitted:
            try:
                result = adjustments.submit(
                    {
                        "product": product_choice,
                        "quantity": int(quantity),
                        "adjustment_type": adjustment_type,
                        "notes": notes,
                    },
                    user,
                )
            except AdjustmentValidationError as e:
                st.error(e.message)
            else:
                if result.written:
                    if result.sync is not None:
                        st.session_state["last_sync"] = result.sync
                    st.success("Adjustment recorded")
                    st.rerun()
                else:
                    st.error("The adjustment sheet did not accept the change; try again")

st.divider()

# --- Activity Feed ---
st.subheader("🧾 Activity")

filter_col1, filter_col2, filter_col3 = st.columns([2, 1, 1])
with filter_col1:
    search = st.text_input("Search order number or notes")
with filter_col2:
    type_filter = st.selectbox("Type", ["all"] + [t.value for t in EntryType], key="type_filter")
with filter_col3:
    product_filter = st.selectbox(
        "Product",
        ["all"] + list(catalog),
        key="product_filter",
        format_func=lambda pid: "All" if pid == "all" else catalog[pid].name,
    )

filtered = filter_activity(ledger, search=search, entry_type=type_filter, product_id=product_filter)
activity_df = build_activity_export(catalog, filtered)
st.dataframe(activity_df.head(200), use_container_width=True, hide_index=True)
st.caption(f"Showing {min(len(filtered), 200)} of {len(filtered)} entries")

# --- Data Quality ---
last_sync = st.session_state.get("last_sync")
if last_sync is not None:
    with st.expander("🔧 Feed data quality"):
        st.dataframe(
            pd.DataFrame([feed.quality.summary() for feed in last_sync.feeds.values()]),
            use_container_width=True,
            hide_index=True,
        )
        if any(feed.quality.has_critical_issues for feed in last_sync.feeds.values()):
            st.warning("Some feed columns are mostly missing; check the sheet headers")

        rows = []
        for feed in last_sync.feeds.values():
            for issue in feed.quality.issues:
                rows.append(
                    {
                        "Feed": feed.name,
                        "Column": issue.column,
                        "Issue": issue.description,
                        "Severity": issue.severity,
                        "Samples": ", ".join(str(v) for v in issue.sample_values),
                    }
                )
        if rows:
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
        else:
            st.caption("No issues found in the last sync")

# --- Export ---
st.subheader("⬇️ Export")
export_col1, export_col2 = st.columns(2)
today = pd.Timestamp.now().strftime("%Y-%m-%d")
with export_col1:
    st.download_button(
        "Inventory CSV",
        to_csv_text(build_inventory_export(catalog)),
        file_name=f"ahad-inventory-{today}.csv",
        mime="text/csv",
    )
with export_col2:
    st.download_button(
        "Activity log CSV",
        to_csv_text(build_activity_export(catalog, ledger)),
        file_name=f"ahad-activity-log-{today}.csv",
        mime="text/csv",
    )
