"""
JobGuard Streamlit admin dashboard.
Signs in through the API with an admin account and shows the dashboard
rollups, accounts, scans and runtime metrics.
"""

from typing import Any, Dict

import streamlit as st

from jobguard.dashboard.client import DashboardError, JobGuardClient


st.set_page_config(
    page_title="JobGuard Admin",
    page_icon="🛡️",
    layout="wide",
)

RISK_ICONS = {"low": "🟢", "medium": "🟡", "high": "🔴"}


# ---------- Helpers ----------


def get_client(base_url: str) -> JobGuardClient:
    client = st.session_state.get("client")
    if client is None or client.base_url != base_url.rstrip("/"):
        client = JobGuardClient(base_url)
        st.session_state["client"] = client
    return client


def render_overview(data: Dict[str, Any]):
    overview = data.get("overview", {})
    cols = st.columns(5)
    cols[0].metric("Users", overview.get("total_users", 0))
    cols[1].metric("Verified", overview.get("verified_users", 0))
    cols[2].metric("Active (30d)", overview.get("active_users", 0))
    cols[3].metric("Scans", overview.get("total_scans", 0))
    cols[4].metric("Avg. scam probability", f"{overview.get('average_scam_probability', 0):.1f}%")

    st.divider()
    col_left, col_right = st.columns(2)

    with col_left:
        st.markdown("**Scans by risk level**")
        st.bar_chart(data.get("risk_levels", {}))
        st.markdown("**Scans by status**")
        st.bar_chart(data.get("status_counts", {}))

    with col_right:
        st.markdown("**Scan growth (7 days)**")
        scan_growth = {row["date"]: row["count"] for row in data.get("scan_growth", [])}
        if scan_growth:
            st.line_chart(scan_growth)
        else:
            st.caption("No scans in the last 7 days.")

        st.markdown("**User growth (7 days)**")
        user_growth = {row["date"]: row["count"] for row in data.get("user_growth", [])}
        if user_growth:
            st.line_chart(user_growth)
        else:
            st.caption("No new users in the last 7 days.")

    st.divider()
    st.markdown("**Recent scans**")
    for scan in data.get("recent_scans", []):
        owner = scan.get("user") or {}
        icon = RISK_ICONS.get(scan.get("risk_level"), "⚪")
        st.write(
            f"{icon} **{scan.get('job_title') or 'Untitled Position'}** at "
            f"{scan.get('company_name') or 'Unknown Company'}: "
            f"{scan.get('scam_probability', 0)}% ({owner.get('email', 'unknown')})"
        )

    with st.expander("Top companies"):
        st.dataframe(data.get("top_companies", []), use_container_width=True)


# ---------- Sidebar config ----------


st.sidebar.title("⚙️ Settings")

base_url = st.sidebar.text_input(
    "Backend URL",
    value="http://127.0.0.1:8000",
    help="JobGuard API base URL.",
)
client = get_client(base_url)

if st.sidebar.button("🔌 Check Connection"):
    if client.health():
        st.sidebar.success("✅ Backend is online!")
    else:
        st.sidebar.error("❌ Cannot reach the backend")

st.sidebar.markdown("---")

if client.is_authenticated:
    st.sidebar.success(f"Signed in as {st.session_state.get('admin_email', 'admin')}")
    if st.sidebar.button("Sign out"):
        client.logout()
        st.rerun()
else:
    with st.sidebar.form("login"):
        email = st.text_input("Admin email")
        password = st.text_input("Password", type="password")
        if st.form_submit_button("Sign in"):
            try:
                user = client.login(email, password)
                st.session_state["admin_email"] = user["email"]
                st.rerun()
            except DashboardError as e:
                st.sidebar.error(e.message)


# ---------- Main UI ----------


st.title("🛡️ JobGuard Admin")
st.markdown("---")

if not client.is_authenticated:
    st.info("Sign in with an admin account to view the dashboard.")
    st.stop()

tabs = st.tabs(["📊 Dashboard", "👤 Users", "🔎 Scans", "📈 Metrics"])

try:
    with tabs[0]:
        render_overview(client.fetch_dashboard())

    with tabs[1]:
        page = st.number_input("Page", min_value=1, value=1, key="users_page")
        result = client.fetch_users(page=int(page))
        st.caption(f"{result['total']} accounts, page {result['page']} of {max(result['pages'], 1)}")
        st.dataframe(result["data"], use_container_width=True)

    with tabs[2]:
        page = st.number_input("Page", min_value=1, value=1, key="scans_page")
        result = client.fetch_scans(page=int(page))
        st.caption(f"{result['total']} scans, page {result['page']} of {max(result['pages'], 1)}")
        rows = [
            {
                **{k: v for k, v in scan.items() if k != "user"},
                "owner": (scan.get("user") or {}).get("email"),
            }
            for scan in result["data"]
        ]
        st.dataframe(rows, use_container_width=True)

    with tabs[3]:
        st.json(client.fetch_metrics())
except DashboardError as e:
    if e.status_code in (401, 403):
        client.logout()
    st.error(f"API Error: {e.status_code} - {e.message}")
