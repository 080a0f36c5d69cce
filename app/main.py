"""
Streamlit Frontend for Clientist

A small dashboard over the same flows the rest of the app uses.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Forms are validated before anything is saved
3. Clear error messages in simple language
4. Works offline: when the backend is unreachable everything is read
   from and written to the local copy, with no difference on screen
"""

import asyncio
from datetime import date, datetime, time

import streamlit as st

from clientist.models import LeadStatus, TaskStatus, utc_now
from clientist.models.base import UTC
from clientist.orchestrator import AppComponents, create_app_components
from clientist.queries import format_amount, month_label
from clientist.validation import FormValidationError


# Page configuration
st.set_page_config(
    page_title="Clientist",
    page_icon="📇",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components()


def show_validation_error(error: FormValidationError):
    st.error(str(error))


def main():
    """Main application entry point."""
    components = get_components()
    owner_id = run_async(components.current_user_id())

    st.sidebar.title("📇 Clientist")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "👥 Clients", "🎯 Leads", "⚙️ Settings"],
        index=0,
    )

    if page == "📊 Dashboard":
        render_dashboard_page(components, owner_id)
    elif page == "👥 Clients":
        render_clients_page(components, owner_id)
    elif page == "🎯 Leads":
        render_leads_page(components, owner_id)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_dashboard_page(components: AppComponents, owner_id):
    """Render counters, upcoming deadlines and the earnings picker."""
    st.title("📊 Dashboard")
    currency = components.settings.app.currency_symbol

    overview = run_async(components.dashboard_flow.load_overview(owner_id))
    stats = run_async(components.dashboard_flow.load_service_provider_stats(owner_id))

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Clients", overview.client_count)
    col2.metric("Overdue tasks", overview.overdue_tasks)
    col3.metric("Need follow-up", overview.follow_ups)
    col4.metric("Hot leads", stats.hot_leads)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Jobs this week", stats.jobs_this_week)
    col2.metric("Jobs in progress", stats.jobs_in_progress)
    col3.metric("Outstanding", format_amount(stats.outstanding_payments, currency))
    col4.metric("Overdue invoices", stats.overdue_invoices_count)

    st.markdown("### ⏰ Upcoming")
    if overview.upcoming:
        for task in overview.upcoming:
            st.markdown(f"- **{task.title}** · due {task.due_date:%d %b %Y %H:%M}")
    else:
        st.info("Nothing due. Enjoy the quiet.")

    st.markdown("### 💰 Earnings")
    st.caption("From paid invoices")
    earnings = run_async(components.dashboard_flow.load_earnings(owner_id))
    years = earnings.available_years()
    if not years:
        st.info("No paid invoices yet.")
        return

    col1, col2 = st.columns(2)
    with col1:
        year = st.selectbox("Year", options=years)
    with col2:
        months = earnings.available_months(year) or [utc_now().month]
        month = st.selectbox(
            "Month",
            options=months,
            format_func=lambda m: month_label(year, m),
        )

    col1, col2 = st.columns(2)
    col1.metric(month_label(year, month), format_amount(earnings.amount_for_month(year, month), currency))
    col2.metric(f"Total {year}", format_amount(earnings.total_for_year(year), currency))


def render_clients_page(components: AppComponents, owner_id):
    """Render the client list with a form to add clients and tasks."""
    st.title("👥 Clients")
    flow = components.client_flow

    with st.expander("➕ New client"):
        with st.form("new_client"):
            name = st.text_input("Name")
            phone = st.text_input("Phone")
            email = st.text_input("Email")
            notes = st.text_area("Notes")
            if st.form_submit_button("Save client"):
                try:
                    client = run_async(flow.create_client(
                        {"name": name, "phone": phone or None, "email": email or None, "notes": notes or None},
                        owner_id=owner_id,
                    ))
                    st.success(f"✅ Saved {client.name}")
                except FormValidationError as e:
                    show_validation_error(e)

    clients = run_async(flow.list_clients(owner_id))
    if not clients:
        st.info("📋 Your clients will appear here once you add them.")
        return

    for client in clients:
        with st.expander(f"{'⭐ ' if client.is_vip else ''}{client.name}"):
            if client.phone:
                st.markdown(f"📞 {client.phone}")
            if client.email:
                st.markdown(f"✉️ {client.email}")
            for key, value in client.custom_fields.items():
                st.markdown(f"**{key}:** {value}")

            tasks = run_async(flow.list_tasks(client.id))
            now = utc_now()
            for task in tasks:
                flag = "🔴 " if task.is_overdue(now) else ""
                done = st.checkbox(
                    f"{flag}{task.title}",
                    value=task.status == TaskStatus.DONE,
                    key=f"task-{task.id}",
                )
                if done != (task.status == TaskStatus.DONE):
                    status = TaskStatus.DONE if done else TaskStatus.TODO
                    run_async(flow.set_task_status(task.id, status))

            with st.form(f"task-{client.id}"):
                title = st.text_input("New task")
                due = st.date_input("Due", value=date.today())
                if st.form_submit_button("Add task"):
                    try:
                        run_async(flow.add_task(
                            client.id,
                            {"title": title, "due_date": datetime.combine(due, time(17, 0), tzinfo=UTC)},
                            owner_id=owner_id,
                        ))
                        st.success("✅ Task added")
                    except FormValidationError as e:
                        show_validation_error(e)


def render_leads_page(components: AppComponents, owner_id):
    """Render leads and the convert-to-client action."""
    st.title("🎯 Leads")
    flow = components.lead_flow

    with st.expander("➕ New lead"):
        with st.form("new_lead"):
            full_name = st.text_input("Full name")
            phone = st.text_input("Phone")
            service = st.text_input("Service interested in")
            if st.form_submit_button("Save lead"):
                try:
                    run_async(flow.create_lead(
                        {"full_name": full_name, "phone": phone or None, "service_interested": service or None},
                        owner_id=owner_id,
                    ))
                    st.success("✅ Lead saved")
                except FormValidationError as e:
                    show_validation_error(e)

    status_filter = st.selectbox(
        "Filter by Status",
        options=[None] + list(LeadStatus),
        format_func=lambda x: "All Statuses" if x is None else x.value.replace("_", " ").title(),
    )

    leads = run_async(flow.list_leads(owner_id, status_filter))
    for lead in leads:
        col1, col2 = st.columns([3, 1])
        col1.markdown(f"**{lead.full_name}** · {lead.status.value.replace('_', ' ')}")
        if lead.status != LeadStatus.CLOSED_CONVERTED:
            if col2.button("Convert", key=f"convert-{lead.id}"):
                try:
                    _, client = run_async(flow.convert_to_client(lead.id, owner_id=owner_id))
                    st.success(f"✅ {client.name} is now a client")
                except FormValidationError as e:
                    show_validation_error(e)


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    from clientist.config import validate_all_settings

    status = validate_all_settings()

    sections = [
        ("Supabase (Backend)", "supabase"),
        ("Local storage", "storage"),
        ("Notifications", "notifications"),
        ("App", "app"),
    ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.warning(f"⚠️ {name} - {error}")

    st.markdown("---")
    st.markdown(
        "Without Supabase credentials the app runs on the local copy only. "
        "See `.env.example` for the variables."
    )


if __name__ == "__main__":
    main()
