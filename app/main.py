"""
Streamlit Frontend for PayLogix

Two tabs:
- Receivables: what customers owe, with partial payments
- Revenues: income already received

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Nothing changes on screen until storage has confirmed it
3. Clear error messages in simple language
4. Deletes ask for confirmation

Changes made by other sessions are pulled on every rerun and with the
Refresh button.
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from paylogix.config import get_settings
from paylogix.errors import PayLogixError, ValidationError
from paylogix.models.records import RecordKind, ValidationResult
from paylogix.orchestrator import DashboardFlow, create_app_components
from paylogix.services.storage import GoogleSheetsAuditStorage, GoogleSheetsClient
from paylogix.store import format_currency, format_date
from paylogix.validation import RecordValidator


# Page configuration
st.set_page_config(
    page_title="PayLogix",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .status-paid {
        color: #28a745;
        font-weight: bold;
    }
    .status-unpaid {
        color: #dc3545;
        font-weight: bold;
    }
    .empty-state {
        padding: 20px;
        background-color: #f8f9fa;
        border-radius: 10px;
        text-align: center;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_sheets_client() -> GoogleSheetsClient:
    """Get or create the Google Sheets client (cached, shared by all sessions)."""
    return GoogleSheetsClient(get_settings().google_sheets)


def get_flow() -> DashboardFlow:
    """
    Get or create this browser session's dashboard flow.

    Each session owns its store, projector and change feed; only the
    Sheets connection is shared.
    """
    if "flow" not in st.session_state:
        sheets_client = (
            get_sheets_client() if get_settings().app.backend == "sheets" else None
        )
        st.session_state.flow = create_app_components(sheets_client=sheets_client)
    return st.session_state.flow


def money(amount: Decimal) -> str:
    return format_currency(amount, symbol=get_settings().app.currency_symbol)


def run_action(coro, success_message: str) -> bool:
    """Run a store action, reporting failures instead of raising."""
    try:
        run_async(coro)
    except ValidationError as e:
        result = ValidationResult(issues=e.issues)
        st.error(get_validator().get_user_friendly_summary(result))
        return False
    except PayLogixError as e:
        st.error(str(e))
        return False
    st.session_state.flash = success_message
    return True


@st.cache_resource
def get_validator() -> RecordValidator:
    return RecordValidator()


def main():
    """Main application entry point."""
    st.sidebar.title("💰 PayLogix")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Add what customers owe under Receivables
        2. Record payments as they come in
        3. Log income under Revenues
        """
    )

    if page == "⚙️ Settings":
        render_settings_page()
        return

    try:
        flow = get_flow()
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        st.stop()

    # Header
    col_title, col_user = st.columns([4, 1])
    with col_title:
        st.title("💰 PayLogix")
    with col_user:
        if flow.session:
            st.caption(flow.session.email or flow.session.user_id)

    if flow.requires_session and flow.session is None:
        st.info(
            "No user is signed in. Set SESSION_USER_ID (and optionally "
            "SESSION_EMAIL) in your `.env` file to access the shared ledger."
        )
        st.stop()

    # Initial load once per browser session, then pull changes every rerun
    try:
        if not st.session_state.get("loaded"):
            st.session_state.loaded = run_async(flow.start())
        else:
            run_async(flow.refresh())
    except PayLogixError as e:
        st.error(f"Could not load your records: {e}")
        st.stop()

    if flow.has_change_feed and st.button("🔄 Refresh"):
        st.rerun()

    if "flash" in st.session_state:
        st.success(st.session_state.pop("flash"))

    tab_receivables, tab_revenues = st.tabs(["📥 Receivables", "💵 Revenues"])

    with tab_receivables:
        render_receivables_tab(flow)

    with tab_revenues:
        render_revenues_tab(flow)


def render_receivables_tab(flow: DashboardFlow):
    """Render the receivables tab."""
    view = flow.view
    summary = view.receivables_summary

    st.subheader("Receivables")

    col1, col2 = st.columns(2)
    col1.metric("Total receivables", money(summary.total))
    col2.metric("Total remaining", money(summary.remaining))

    with st.expander("➕ Add receivable"):
        with st.form("add_receivable", clear_on_submit=True):
            description = st.text_input("Description *")
            total_amount = st.number_input("Total amount *", min_value=0, step=1000)
            due_date = st.date_input("Due date *", value=date.today())
            if st.form_submit_button("Save", type="primary"):
                if run_action(
                    flow.add_receivable(description, total_amount, due_date),
                    "Receivable added",
                ):
                    st.rerun()

    if not view.receivables:
        st.markdown(
            '<div class="empty-state">No receivables yet. Add your first one above!</div>',
            unsafe_allow_html=True,
        )
        return

    header = st.columns([0.5, 3, 2, 2, 2, 1.5, 2.5])
    for col, label in zip(
        header,
        ["No", "Description", "Due date", "Total", "Remaining", "Status", "Actions"],
    ):
        col.markdown(f"**{label}**")

    for number, receivable in enumerate(view.receivables, start=1):
        cols = st.columns([0.5, 3, 2, 2, 2, 1.5, 2.5])
        cols[0].write(number)
        cols[1].write(receivable.description)
        cols[2].write(format_date(receivable.due_date))
        cols[3].write(money(receivable.total_amount))
        cols[4].write(money(receivable.remaining))
        if receivable.is_paid:
            cols[5].markdown('<span class="status-paid">Paid</span>', unsafe_allow_html=True)
        else:
            cols[5].markdown('<span class="status-unpaid">Unpaid</span>', unsafe_allow_html=True)

        with cols[6]:
            actions = st.columns(3)
            if not receivable.is_paid and actions[0].button("Pay", key=f"pay_{receivable.id}"):
                st.session_state.paying = receivable.id
            if actions[1].button("✏️", key=f"edit_r_{receivable.id}", help="Edit"):
                st.session_state.editing = flow.open_edit(RecordKind.RECEIVABLE, receivable.id)
            if actions[2].button("🗑️", key=f"del_r_{receivable.id}", help="Delete"):
                st.session_state.pending_delete = (RecordKind.RECEIVABLE, receivable.id)

    render_payment_form(flow)
    render_edit_form(flow, RecordKind.RECEIVABLE)
    render_delete_confirmation(flow, RecordKind.RECEIVABLE)


def render_revenues_tab(flow: DashboardFlow):
    """Render the revenues tab."""
    view = flow.view

    st.subheader("Revenues")
    st.metric("Total revenue", money(view.revenues_summary.total))

    with st.expander("➕ Add revenue"):
        with st.form("add_revenue", clear_on_submit=True):
            description = st.text_input("Description *")
            amount = st.number_input("Amount *", min_value=0, step=1000)
            revenue_date = st.date_input("Date *", value=date.today())
            if st.form_submit_button("Save", type="primary"):
                if run_action(
                    flow.add_revenue(description, amount, revenue_date),
                    "Revenue added",
                ):
                    st.rerun()

    if not view.revenues:
        st.markdown(
            '<div class="empty-state">No revenues recorded yet.</div>',
            unsafe_allow_html=True,
        )
        return

    header = st.columns([0.5, 4, 2, 2, 1.5])
    for col, label in zip(header, ["No", "Description", "Date", "Amount", "Actions"]):
        col.markdown(f"**{label}**")

    for number, revenue in enumerate(view.revenues, start=1):
        cols = st.columns([0.5, 4, 2, 2, 1.5])
        cols[0].write(number)
        cols[1].write(revenue.description)
        cols[2].write(format_date(revenue.date))
        cols[3].write(money(revenue.amount))
        with cols[4]:
            actions = st.columns(2)
            if actions[0].button("✏️", key=f"edit_v_{revenue.id}", help="Edit"):
                st.session_state.editing = flow.open_edit(RecordKind.REVENUE, revenue.id)
            if actions[1].button("🗑️", key=f"del_v_{revenue.id}", help="Delete"):
                st.session_state.pending_delete = (RecordKind.REVENUE, revenue.id)

    render_edit_form(flow, RecordKind.REVENUE)
    render_delete_confirmation(flow, RecordKind.REVENUE)


def render_payment_form(flow: DashboardFlow):
    """Payment form for the receivable picked with Pay."""
    receivable_id = st.session_state.get("paying")
    if not receivable_id:
        return

    receivable = flow.store.get_receivable(receivable_id)
    if receivable is None:
        st.session_state.paying = None
        return

    st.markdown("---")
    st.markdown(f"### Record payment: {receivable.description}")
    st.markdown(f"Remaining: **{money(receivable.remaining)}**")

    with st.form("payment"):
        payment = st.number_input(
            "Payment amount *",
            min_value=0.0,
            max_value=float(receivable.remaining),
            step=1000.0,
        )
        col1, col2 = st.columns(2)
        submitted = col1.form_submit_button("Pay", type="primary")
        cancelled = col2.form_submit_button("Cancel")

    if submitted:
        if run_action(flow.pay(receivable.id, Decimal(str(payment))), "Payment recorded"):
            st.session_state.paying = None
            st.rerun()
    elif cancelled:
        st.session_state.paying = None
        st.rerun()


def render_edit_form(flow: DashboardFlow, kind: RecordKind):
    """Edit form for the record picked with ✏️, shown in its own tab."""
    item = st.session_state.get("editing")
    if item is None or item.kind != kind.value:
        return

    st.markdown("---")
    if item.kind == "receivable":
        st.markdown("### Edit receivable")
        amount_label, date_label = "Total amount *", "Due date *"
        amount_value, date_value = item.data.total_amount, item.data.due_date
    else:
        st.markdown("### Edit revenue")
        amount_label, date_label = "Amount *", "Date *"
        amount_value, date_value = item.data.amount, item.data.date

    with st.form(f"edit_{item.kind}"):
        description = st.text_input("Description *", value=item.data.description)
        amount = st.number_input(amount_label, value=float(amount_value), min_value=0.0, step=1000.0)
        record_date = st.date_input(date_label, value=date_value)
        col1, col2 = st.columns(2)
        submitted = col1.form_submit_button("Update", type="primary")
        cancelled = col2.form_submit_button("Cancel")

    if submitted:
        if run_action(
            flow.submit_edit(item, description, Decimal(str(amount)), record_date),
            "Changes saved",
        ):
            st.session_state.editing = None
            st.rerun()
    elif cancelled:
        st.session_state.editing = None
        st.rerun()


def render_delete_confirmation(flow: DashboardFlow, kind: RecordKind):
    """Ask before deleting."""
    pending = st.session_state.get("pending_delete")
    if not pending or pending[0] != kind:
        return

    _, record_id = pending
    st.warning(f"Are you sure you want to delete this {kind.value}?")
    col1, col2 = st.columns(2)
    if col1.button("Yes, delete", key=f"confirm_delete_{kind.value}", type="primary"):
        st.session_state.pending_delete = None
        if run_action(flow.delete(kind, record_id), f"{kind.value.capitalize()} deleted"):
            st.rerun()
    if col2.button("Cancel", key=f"cancel_delete_{kind.value}"):
        st.session_state.pending_delete = None
        st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    app_settings = get_settings().app
    st.markdown(f"**Backend:** `{app_settings.backend}`")

    st.markdown("### Configuration Status")

    from paylogix.config import validate_all_settings

    status = validate_all_settings()

    sections = [("Application", "app"), ("Local storage", "local_storage")]
    if app_settings.backend == "sheets":
        sections += [
            ("Google Sheets (Storage)", "google_sheets"),
            ("Change feed", "realtime"),
            ("Session", "session"),
        ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if app_settings.backend == "sheets" and status.get("google_sheets", False):
        st.markdown("### Recent Activity")
        try:
            events = run_async(
                GoogleSheetsAuditStorage(get_sheets_client()).get_recent_events(limit=10)
            )
        except PayLogixError as e:
            st.error(f"Could not read the audit log: {e}")
            events = []
        for event in events:
            st.caption(
                f"{event.timestamp:%Y-%m-%d %H:%M} · {event.event_type.value} · "
                f"{event.description}"
            )

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
