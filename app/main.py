"""
Streamlit Frontend for Expense Tracker

Pages:
1. Dashboard - pick a month, see the total and the expenses day by day
2. Reports   - pie chart by category, bar chart by day
3. Add       - record a new expense
4. Settings  - which storage backend is active

The UI talks to the same storage contract as the REST API; the backend is
chosen once per session from settings.
"""

import asyncio
from datetime import date

import plotly.express as px
import streamlit as st

from expense_tracker.audit import AuditLogger, configure_logging
from expense_tracker.config import get_settings, validate_all_settings
from expense_tracker.models.expense import (
    EXPENSE_TYPES,
    ValidationError,
    get_expense_type_label,
    validate_create,
)
from expense_tracker.queries import SummaryService, calculate_total, group_expenses_by_date
from expense_tracker.services.storage import (
    ExpenseStorageInterface,
    StorageError,
    create_expense_storage,
)


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💸",
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


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"


@st.cache_resource
def get_storage() -> ExpenseStorageInterface:
    """Get or create the expense store (cached for the session)."""
    settings = get_settings()
    configure_logging(settings.app.log_level, json_logs=settings.app.log_json)
    try:
        storage = create_expense_storage(settings.firebase, tz=settings.app.tzinfo)
    except Exception as e:
        st.error(f"Failed to initialize storage, falling back to memory: {e}")
        storage = create_expense_storage(None, tz=settings.app.tzinfo)
    AuditLogger().log_storage_selected(storage.backend_name)
    return storage


def month_picker(key: str) -> tuple[int, int]:
    """Sidebar-style month filter. Returns (year, 0-based month)."""
    today = date.today()
    col1, col2 = st.columns(2)
    with col1:
        month = st.selectbox(
            "Month",
            options=list(range(12)),
            index=today.month - 1,
            format_func=lambda m: MONTH_NAMES[m],
            key=f"{key}_month",
        )
    with col2:
        year = st.number_input(
            "Year",
            min_value=2000,
            max_value=2100,
            value=today.year,
            step=1,
            key=f"{key}_year",
        )
    return int(year), int(month)


def main():
    """Main application entry point."""
    storage = get_storage()

    st.sidebar.title("💸 Expense Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📅 Dashboard", "📊 Reports", "➕ Add Expense", "⚙️ Settings"],
        index=0,
    )

    if page == "📅 Dashboard":
        render_dashboard_page(storage)
    elif page == "📊 Reports":
        render_reports_page(storage)
    elif page == "➕ Add Expense":
        render_add_expense_page(storage)
    elif page == "⚙️ Settings":
        render_settings_page(storage)


def render_dashboard_page(storage: ExpenseStorageInterface):
    """List a month's expenses grouped by day."""
    st.title("📅 Expenses")
    year, month = month_picker("dashboard")

    try:
        expenses = run_async(storage.get_expenses_by_month(year, month))
    except StorageError as e:
        st.error(f"Could not load expenses: {e}")
        return

    st.metric(f"Total for {MONTH_NAMES[month]} {year}", format_currency(calculate_total(expenses)))
    st.markdown("---")

    if not expenses:
        st.info("No expenses recorded for this month yet.")
        return

    for day, day_expenses in group_expenses_by_date(expenses, storage.month_timezone):
        st.subheader(day.strftime("%B %d, %Y"))
        for expense in day_expenses:
            col1, col2, col3 = st.columns([3, 4, 2])
            with col1:
                st.write(f"**{get_expense_type_label(expense.type)}**")
            with col2:
                st.write(expense.remarks or "")
            with col3:
                local_time = expense.created_at.astimezone(storage.month_timezone)
                st.write(f"{format_currency(expense.amount)} · {local_time.strftime('%I:%M %p')}")


def render_reports_page(storage: ExpenseStorageInterface):
    """Pie chart by category and bar chart by day."""
    st.title("📊 Reports")
    year, month = month_picker("reports")

    try:
        summary = run_async(SummaryService(storage).monthly_summary(year, month))
    except StorageError as e:
        st.error(f"Could not load expenses: {e}")
        return

    st.metric(f"Total for {MONTH_NAMES[month]} {year}", format_currency(summary.total))

    if not summary.has_data:
        st.info("No expenses recorded for this month yet.")
        return

    col1, col2 = st.columns(2)

    with col1:
        fig_cat = px.pie(
            names=[c.label for c in summary.by_category],
            values=[c.total for c in summary.by_category],
            title="Spending by category",
        )
        st.plotly_chart(fig_cat, use_container_width=True)

    with col2:
        fig_day = px.bar(
            x=[d.day.strftime("%d %b") for d in summary.by_day],
            y=[d.total for d in summary.by_day],
            labels={"x": "Day", "y": "Amount"},
            title="Spending by day",
        )
        st.plotly_chart(fig_day, use_container_width=True)

    st.markdown("### By category")
    for category in summary.by_category:
        share = category.total / summary.total if summary.total else 0
        st.write(f"**{category.label}** - {format_currency(category.total)} ({share:.0%}, {category.count} entries)")


def render_add_expense_page(storage: ExpenseStorageInterface):
    """Record a new expense."""
    st.title("➕ Add Expense")

    with st.form("add_expense", clear_on_submit=True):
        amount = st.number_input("Amount", min_value=0.0, step=0.5, format="%.2f")
        expense_type = st.selectbox(
            "Category",
            options=list(EXPENSE_TYPES),
            format_func=get_expense_type_label,
        )
        remarks = st.text_input("Remarks (optional)")
        submitted = st.form_submit_button("Save Expense")

    if not submitted:
        return

    try:
        payload = validate_create({"amount": amount, "type": expense_type, "remarks": remarks})
        expense = run_async(storage.create_expense(payload))
    except ValidationError as e:
        st.error(e.message)
        return
    except StorageError as e:
        st.error(f"Could not save expense: {e}")
        return

    st.success(
        f"Saved {format_currency(expense.amount)} for "
        f"{get_expense_type_label(expense.type)} (#{expense.id})"
    )


def render_settings_page(storage: ExpenseStorageInterface):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Storage")
    if storage.backend_name == "firebase":
        st.success("✅ Firestore - expenses are saved durably")
    else:
        st.warning("⚠️ In-memory storage - expenses are lost when the app restarts")

    status = validate_all_settings()
    if not status.get("firebase", False):
        st.error(f"❌ Firebase settings invalid: {status.get('firebase_error')}")
    if not status.get("app", False):
        st.error(f"❌ App settings invalid: {status.get('app_error')}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "Set `FIREBASE_PROJECT_ID` (plus `FIREBASE_SERVICE_ACCOUNT` or "
        "`FIREBASE_CREDENTIALS_PATH`) in a `.env` file to use Firestore. "
        "See `.env.example` for all variables."
    )


if __name__ == "__main__":
    main()
