"""
Streamlit Frontend for FinanceFlow

The screens a user works with day to day: balances, the transaction
list, the add form, wallets, categories, analytics and settings.

DESIGN PRINCIPLES:
1. Every figure on screen is derived from the session snapshot
2. Every write goes through LedgerSession and shows its outcome
3. Errors are shown in plain language, never as stack traces
"""

import asyncio
from datetime import datetime, time
from typing import Optional

import streamlit as st

from financeflow.formatting import (
    SUPPORTED_CURRENCIES,
    format_compact_currency,
    format_currency,
)
from financeflow.icons import CATEGORY_COLORS, CATEGORY_ICONS, WALLET_ICONS, resolve_icon
from financeflow.ledger import month_range, week_range
from financeflow.ledger.periods import format_date, time_ago
from financeflow.models import (
    CategoryDraft,
    CategoryType,
    ThemeMode,
    TransactionDraft,
    TransactionType,
    WalletDraft,
    WalletType,
)
from financeflow.orchestrator import AccountFlow, OnboardingFlow, create_app_components
from financeflow.session import LedgerSession
from financeflow.validation import get_user_friendly_summary


# Page configuration
st.set_page_config(
    page_title="FinanceFlow",
    page_icon="💸",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
    }
    .income { color: #4CAF50; }
    .expense { color: #E57373; }
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
def get_components():
    """Get or create application components (cached)."""
    return create_app_components()


def money(session: LedgerSession, amount) -> str:
    return format_currency(amount, session.preferences.currency)


def signed_amount(session: LedgerSession, t) -> str:
    if t.type in (TransactionType.INCOME, TransactionType.OPENING_BALANCE):
        return f"+{money(session, t.amount)}"
    if t.type == TransactionType.EXPENSE:
        return f"-{money(session, t.amount)}"
    return money(session, t.amount)


def transaction_title(t) -> str:
    if t.type == TransactionType.TRANSFER:
        return f"{t.wallet_name} → {t.to_wallet_name or 'Unknown'}"
    if t.type == TransactionType.OPENING_BALANCE:
        return "Opening Balance"
    return t.category_name or "Uncategorized"


def main():
    """Main application entry point."""
    account_flow, _ = get_components()
    session = account_flow.session

    if session is None:
        render_auth_page(account_flow)
        return

    if not session.preferences.onboarding_completed:
        render_onboarding_page(session)
        return

    st.sidebar.title("💸 FinanceFlow")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "🏠 Home",
            "📜 Transactions",
            "➕ Add Transaction",
            "👛 Wallets",
            "🏷️ Categories",
            "📊 Analytics",
            "⚙️ Settings",
        ],
        index=0,
    )

    if page == "🏠 Home":
        render_home_page(session)
    elif page == "📜 Transactions":
        render_transactions_page(session)
    elif page == "➕ Add Transaction":
        render_add_transaction_page(session)
    elif page == "👛 Wallets":
        render_wallets_page(session)
    elif page == "🏷️ Categories":
        render_categories_page(session)
    elif page == "📊 Analytics":
        render_analytics_page(session)
    elif page == "⚙️ Settings":
        render_settings_page(account_flow, session)


# =============================================================================
# ACCOUNT
# =============================================================================

def render_auth_page(account_flow: AccountFlow):
    """Sign in / sign up."""
    st.title("💸 FinanceFlow")
    st.markdown("Track your money, one transaction at a time.")

    sign_in_tab, sign_up_tab = st.tabs(["Sign In", "Create Account"])

    with sign_in_tab:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign In", type="primary")
        if submitted:
            session, error = run_async(account_flow.sign_in(email, password))
            if error:
                st.error(error)
            else:
                st.rerun()

    with sign_up_tab:
        with st.form("sign_up"):
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input("Password", type="password", key="sign_up_password")
            confirm = st.text_input("Confirm Password", type="password")
            submitted = st.form_submit_button("Create Account", type="primary")
        if submitted:
            if password != confirm:
                st.error("Passwords do not match.")
            else:
                session, error = run_async(account_flow.sign_up(email, password))
                if error:
                    st.error(error)
                else:
                    st.rerun()


def render_onboarding_page(session: LedgerSession):
    """First-run setup: opening balances for the two default wallets."""
    st.title("👋 Welcome to FinanceFlow")
    st.markdown(
        "We'll create two wallets for you: **My Bank/UPI** and **My Cash**. "
        "Enter what each holds today, or leave it at zero."
    )

    with st.form("onboarding"):
        bank = st.number_input("💳 Bank / UPI balance", min_value=0.0, step=100.0)
        cash = st.number_input("💵 Cash in hand", min_value=0.0, step=100.0)
        submitted = st.form_submit_button("Get Started", type="primary")

    if submitted:
        with st.spinner("Setting things up..."):
            result = run_async(OnboardingFlow(session).complete(bank, cash))
        if result.success:
            st.rerun()
        else:
            st.error(f"Setup failed: {result.reason}")


# =============================================================================
# HOME
# =============================================================================

def render_home_page(session: LedgerSession):
    summary = session.home_summary()
    currency = session.preferences.currency

    st.title("🏠 Home")

    st.markdown("Total Balance")
    st.markdown(
        f'<div class="big-number">{money(session, summary.total_balance)}</div>',
        unsafe_allow_html=True,
    )

    col1, col2 = st.columns(2)
    col1.metric("💳 Bank / UPI", money(session, summary.bank_balance))
    col2.metric("💵 Cash", money(session, summary.cash_balance))

    col1, col2 = st.columns(2)
    col1.metric("This month's income", format_compact_currency(summary.monthly_income, currency))
    col2.metric("This month's expense", format_compact_currency(summary.monthly_expense, currency))

    if summary.custodial_wallets:
        st.markdown("### 🤝 Held for others")
        for entry in summary.custodial_wallets:
            st.markdown(
                f"{resolve_icon(entry.wallet.icon)} **{entry.wallet.name}**: "
                f"{money(session, entry.balance)}"
            )

    if summary.quick_add_categories:
        st.markdown("### ⚡ Quick add")
        cols = st.columns(4)
        for index, category in enumerate(summary.quick_add_categories):
            if cols[index % 4].button(f"{resolve_icon(category.icon)} {category.name}"):
                st.session_state.quick_add_category_id = category.id
                st.info(f"Open 'Add Transaction' to record a {category.name} expense.")

    st.markdown("### 🕒 Recent")
    if not summary.recent_transactions:
        st.info("No transactions yet. Add your first one from 'Add Transaction'.")
    for t in summary.recent_transactions:
        st.markdown(
            f"{resolve_icon(t.category_icon or 'wallet')} **{transaction_title(t)}** · "
            f"{t.wallet_name} · {format_date(t.date)} · {signed_amount(session, t)}"
        )


# =============================================================================
# TRANSACTIONS
# =============================================================================

def show_save_result(result, success_message: str) -> bool:
    """Render the outcome of a session write; True when it succeeded."""
    if result.success:
        st.success(success_message)
        if result.validation and result.validation.warnings:
            st.warning(get_user_friendly_summary(result.validation))
        return True
    if result.validation:
        st.error(get_user_friendly_summary(result.validation))
    else:
        st.error(f"Could not save: {result.reason}")
    return False


def render_transactions_page(session: LedgerSession):
    editing = session.get_transaction(st.session_state.get("editing_transaction_id") or "")
    if editing is not None:
        render_edit_transaction(session, editing)
        return

    st.title("📜 Transactions")

    col1, col2 = st.columns(2)
    with col1:
        period_choice = st.selectbox("Period", ["This Week", "This Month", "All Time"], index=1)
    with col2:
        kind = st.selectbox("Type", ["all", "income", "expense", "transfer"], format_func=str.title)

    period = {
        "This Week": week_range(),
        "This Month": month_range(),
        "All Time": None,
    }[period_choice]

    groups = session.transaction_groups(period=period, kind=kind)
    if not groups:
        st.info("No transactions for this filter.")
        return

    for heading, items in groups:
        st.markdown(f"#### {heading}")
        for t in items:
            col1, col2, col3, col4 = st.columns([6, 3, 1, 1])
            note = f" · {t.note}" if t.note else ""
            col1.markdown(f"**{transaction_title(t)}**{note}  \n{t.wallet_name} · {time_ago(t.created_at)}")
            col2.markdown(signed_amount(session, t))
            if col3.button("✏️", key=f"edit_{t.id}"):
                st.session_state.editing_transaction_id = t.id
                st.rerun()
            if col4.button("🗑️", key=f"delete_{t.id}"):
                result = run_async(session.delete_transaction(t.id))
                if result.success:
                    st.rerun()
                else:
                    st.error(result.reason)


def transaction_form(session: LedgerSession, form_key: str, initial: Optional[TransactionDraft] = None):
    """
    Entry form shared by add and edit.

    Returns a TransactionDraft once submitted, otherwise None. Opening
    balances keep their type when edited.
    """
    wallets = session.wallets
    types = {
        "Expense": TransactionType.EXPENSE,
        "Income": TransactionType.INCOME,
        "Transfer": TransactionType.TRANSFER,
    }
    if initial is not None and initial.type == TransactionType.OPENING_BALANCE:
        transaction_type = TransactionType.OPENING_BALANCE
    else:
        labels = list(types)
        default = list(types.values()).index(initial.type) if initial is not None else 0
        transaction_type = types[st.radio("Type", labels, index=default, horizontal=True, key=f"{form_key}_type")]

    def wallet_index(wallet_id: Optional[str]) -> int:
        return next((i for i, w in enumerate(wallets) if w.id == wallet_id), 0)

    with st.form(form_key):
        amount = st.text_input(
            "Amount",
            value=str(initial.amount) if initial is not None and initial.amount is not None else "",
            placeholder="0",
        )
        wallet = st.selectbox(
            "From wallet" if transaction_type == TransactionType.TRANSFER else "Wallet",
            wallets,
            index=wallet_index(initial.wallet_id if initial is not None else None),
            format_func=lambda w: f"{resolve_icon(w.icon)} {w.name}",
        )

        to_wallet = None
        category = None
        transfer_reason = None
        if transaction_type == TransactionType.TRANSFER:
            to_wallet = st.selectbox(
                "To wallet",
                wallets,
                index=wallet_index(initial.to_wallet_id if initial is not None else None),
                format_func=lambda w: f"{resolve_icon(w.icon)} {w.name}",
            )
            transfer_reason = st.text_input(
                "Reason (optional)",
                value=(initial.transfer_reason or "") if initial is not None else "",
            )
        elif transaction_type != TransactionType.OPENING_BALANCE:
            category_type = CategoryType(transaction_type.value)
            categories = session.categories_of_type(category_type)
            if initial is not None:
                selected = initial.category_id
            else:
                selected = st.session_state.get("quick_add_category_id")
            index = next((i for i, c in enumerate(categories) if c.id == selected), 0)
            category = st.selectbox(
                "Category",
                categories,
                index=index if categories else None,
                format_func=lambda c: f"{resolve_icon(c.icon)} {c.name}",
            )

        initial_day = initial.date.date() if initial is not None else datetime.now().date()
        day = st.date_input("Date", value=initial_day)
        note = st.text_input("Note (optional)", value=initial.note if initial is not None else "")
        submitted = st.form_submit_button("Save", type="primary")

    if not submitted:
        return None

    if initial is not None and day == initial_day:
        when = initial.date
    else:
        when = datetime.combine(day, datetime.now().time() if day == datetime.now().date() else time(12))

    return TransactionDraft(
        amount=amount,
        type=transaction_type,
        wallet_id=wallet.id,
        to_wallet_id=to_wallet.id if to_wallet else None,
        category_id=category.id if category else None,
        note=note,
        transfer_reason=transfer_reason or None,
        date=when,
    )


def render_add_transaction_page(session: LedgerSession):
    st.title("➕ Add Transaction")

    if not session.wallets:
        st.warning("Create a wallet first.")
        return

    draft = transaction_form(session, "add_transaction")
    if draft is not None:
        result = run_async(session.add_transaction(draft))
        if show_save_result(result, "✅ Transaction saved."):
            st.session_state.pop("quick_add_category_id", None)


def render_edit_transaction(session: LedgerSession, transaction):
    st.title("✏️ Edit Transaction")

    draft = transaction_form(
        session,
        f"edit_transaction_{transaction.id}",
        TransactionDraft.from_transaction(transaction),
    )
    if draft is not None:
        result = run_async(session.update_transaction(transaction.id, draft))
        if show_save_result(result, "✅ Transaction updated."):
            st.session_state.editing_transaction_id = None
            st.rerun()

    if st.button("Back to transactions"):
        st.session_state.editing_transaction_id = None
        st.rerun()


# =============================================================================
# WALLETS AND CATEGORIES
# =============================================================================

def wallet_form(form_key: str, initial: WalletDraft, submit_label: str) -> Optional[WalletDraft]:
    """Returns the edited draft once submitted; fields the form lacks (is_default) carry over."""
    types = list(WalletType)
    with st.form(form_key):
        name = st.text_input("Name", value=initial.name)
        wallet_type = st.selectbox(
            "Type",
            types,
            index=types.index(initial.type),
            format_func=lambda t: "Personal" if t == WalletType.PERSONAL else "Custodial (held for others)",
        )
        icon = st.selectbox(
            "Icon",
            WALLET_ICONS,
            index=WALLET_ICONS.index(initial.icon) if initial.icon in WALLET_ICONS else 0,
            format_func=lambda i: f"{resolve_icon(i)} {i}",
        )
        submitted = st.form_submit_button(submit_label, type="primary")

    if not submitted:
        return None
    return initial.model_copy(update={"name": name, "type": wallet_type, "icon": icon})


def render_wallets_page(session: LedgerSession):
    st.title("👛 Wallets")
    balances = session.wallet_balances()
    editing_id = st.session_state.get("editing_wallet_id")

    for wallet_type, heading in ((WalletType.PERSONAL, "Personal"), (WalletType.CUSTODIAL, "Held for others")):
        wallets = [w for w in session.wallets if w.type == wallet_type]
        if not wallets:
            continue
        st.markdown(f"### {heading}")
        for wallet in wallets:
            col1, col2, col3, col4 = st.columns([6, 3, 1, 1])
            col1.markdown(f"{resolve_icon(wallet.icon)} **{wallet.name}**")
            col2.markdown(money(session, balances.get(wallet.id, 0)))
            if col3.button("✏️", key=f"edit_wallet_{wallet.id}"):
                st.session_state.editing_wallet_id = wallet.id
                st.rerun()
            if col4.button("🗑️", key=f"delete_wallet_{wallet.id}"):
                result = run_async(session.delete_wallet(wallet.id))
                if result.success:
                    st.rerun()
                else:
                    st.error(result.reason)

            if wallet.id == editing_id:
                draft = wallet_form(f"edit_wallet_form_{wallet.id}", WalletDraft.from_wallet(wallet), "Save")
                if draft is not None:
                    result = run_async(session.update_wallet(wallet.id, draft))
                    if show_save_result(result, "✅ Wallet updated."):
                        st.session_state.editing_wallet_id = None
                        st.rerun()
                if st.button("Cancel", key=f"cancel_wallet_{wallet.id}"):
                    st.session_state.editing_wallet_id = None
                    st.rerun()

    st.markdown("---")
    st.markdown("### Add a wallet")
    draft = wallet_form("add_wallet", WalletDraft(), "Add Wallet")
    if draft is not None:
        result = run_async(session.add_wallet(draft))
        if result.success:
            st.rerun()
        else:
            show_save_result(result, "")


def category_form(form_key: str, initial: CategoryDraft, submit_label: str) -> Optional[CategoryDraft]:
    types = list(CategoryType)
    with st.form(form_key):
        name = st.text_input("Name", value=initial.name)
        category_type = st.selectbox(
            "Type",
            types,
            index=types.index(initial.type),
            format_func=lambda t: t.value.title(),
        )
        icon = st.selectbox(
            "Icon",
            CATEGORY_ICONS,
            index=CATEGORY_ICONS.index(initial.icon) if initial.icon in CATEGORY_ICONS else 0,
            format_func=lambda i: f"{resolve_icon(i)} {i}",
        )
        colors = CATEGORY_COLORS if initial.color in CATEGORY_COLORS else [initial.color] + CATEGORY_COLORS
        color = st.selectbox("Color", colors, index=colors.index(initial.color) if initial.color in colors else 0)
        budget = st.text_input(
            "Monthly budget (optional)",
            value=str(initial.budget) if initial.budget is not None else "",
        )
        submitted = st.form_submit_button(submit_label, type="primary")

    if not submitted:
        return None
    return initial.model_copy(update={
        "name": name,
        "type": category_type,
        "icon": icon,
        "color": color,
        "budget": budget or None,
    })


def render_categories_page(session: LedgerSession):
    st.title("🏷️ Categories")
    editing_id = st.session_state.get("editing_category_id")

    for category_type in (CategoryType.EXPENSE, CategoryType.INCOME):
        st.markdown(f"### {category_type.value.title()}")
        for category in session.categories_of_type(category_type):
            col1, col2, col3 = st.columns([8, 1, 1])
            budget = f" · Budget: {money(session, category.budget)}" if category.budget else ""
            col1.markdown(f"{resolve_icon(category.icon)} **{category.name}**{budget}")
            if col2.button("✏️", key=f"edit_category_{category.id}"):
                st.session_state.editing_category_id = category.id
                st.rerun()
            if col3.button("🗑️", key=f"delete_category_{category.id}"):
                st.session_state.pending_category_delete = category.id

            if category.id == editing_id:
                draft = category_form(
                    f"edit_category_form_{category.id}", CategoryDraft.from_category(category), "Save"
                )
                if draft is not None:
                    result = run_async(session.update_category(category.id, draft))
                    if show_save_result(result, "✅ Category updated."):
                        st.session_state.editing_category_id = None
                        st.rerun()
                if st.button("Cancel", key=f"cancel_category_{category.id}"):
                    st.session_state.editing_category_id = None
                    st.rerun()

    pending = st.session_state.get("pending_category_delete")
    if pending:
        usage = session.category_usage(pending)
        st.warning(
            f"{usage} transaction(s) use this category. They will be kept but "
            "will no longer appear in category breakdowns."
        )
        col1, col2 = st.columns(2)
        if col1.button("Delete", type="primary"):
            result = run_async(session.delete_category(pending))
            st.session_state.pending_category_delete = None
            if result.success:
                st.rerun()
            else:
                st.error(result.reason)
        if col2.button("Cancel"):
            st.session_state.pending_category_delete = None
            st.rerun()

    st.markdown("---")
    st.markdown("### Add a category")
    draft = category_form("add_category", CategoryDraft(color=CATEGORY_COLORS[0]), "Add Category")
    if draft is not None:
        result = run_async(session.add_category(draft))
        if result.success:
            st.rerun()
        else:
            show_save_result(result, "")


# =============================================================================
# ANALYTICS
# =============================================================================

def render_analytics_page(session: LedgerSession):
    report = session.analytics()

    st.title("📊 Analytics")

    col1, col2, col3 = st.columns(3)
    col1.metric("Income (month)", money(session, report.monthly_income))
    col2.metric("Expense (month)", money(session, report.monthly_expense))
    col3.metric("Savings (month)", money(session, report.monthly_savings))

    col1, col2, col3 = st.columns(3)
    col1.metric("Daily burn rate", money(session, report.burn_rate))
    col2.metric("Projected spend", money(session, report.projected_monthly_spend))
    col3.metric("This week's expense", money(session, report.weekly_expense))

    st.caption(f"Day {report.day_of_month} of {report.days_in_month}")

    st.markdown("### 🔥 Top spending")
    if not report.top_expense_categories:
        st.info("No expenses this month yet.")
    for entry in report.top_expense_categories:
        st.markdown(f"{resolve_icon(entry.icon)} **{entry.name}**: {money(session, entry.total)}")

    st.markdown("### Expenses by category")
    for entry in report.expense_by_category:
        label = f"{resolve_icon(entry.icon)} {entry.name}: {money(session, entry.total)}"
        if entry.budget_used is not None:
            st.progress(min(entry.budget_used, 1.0), text=f"{label} of {money(session, entry.budget)}")
            if entry.over_budget:
                st.warning(f"{entry.name} is over budget.")
        else:
            st.markdown(label)

    st.markdown("### Income by category")
    for entry in report.income_by_category:
        st.markdown(f"{resolve_icon(entry.icon)} {entry.name}: {money(session, entry.total)}")


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(account_flow: AccountFlow, session: LedgerSession):
    st.title("⚙️ Settings")
    preferences = session.preferences

    st.markdown("### Display")
    codes = list(SUPPORTED_CURRENCIES)
    currency = st.selectbox(
        "Currency",
        codes,
        index=codes.index(preferences.currency) if preferences.currency in codes else 0,
        format_func=lambda c: f"{SUPPORTED_CURRENCIES[c].symbol} {SUPPORTED_CURRENCIES[c].name}",
    )
    themes = list(ThemeMode)
    theme = st.selectbox(
        "Theme",
        themes,
        index=themes.index(preferences.theme_mode),
        format_func=lambda t: t.value.title(),
    )
    if st.button("Save preferences"):
        result = run_async(session.update_preferences(currency=currency, theme_mode=theme))
        if result.success:
            st.success("✅ Preferences saved.")
        else:
            st.error(result.reason)

    st.markdown("---")
    st.markdown("### Account")
    if st.button("🚪 Sign out"):
        run_async(account_flow.sign_out())
        st.rerun()

    with st.expander("⚠️ Reset all data"):
        st.markdown(
            "This deletes every wallet, category and transaction and takes you "
            "back to onboarding. It cannot be undone."
        )
        confirm = st.checkbox("I understand")
        if st.button("Reset account", disabled=not confirm):
            result = run_async(account_flow.reset_account(session))
            if result.success:
                st.rerun()
            else:
                st.error(result.reason)


if __name__ == "__main__":
    main()
