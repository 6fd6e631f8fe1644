"""
Streamlit Frontend for Expense Tracker

Tap an amount, pick a category, done.

DESIGN PRINCIPLES:
1. Adding an expense takes one form submit
2. The list is always re-read after a change
3. Clear error messages in simple language
4. No core logic here; everything goes through the flows
"""

import pandas as pd
import streamlit as st

from expense_tracker.audit import configure_logging
from expense_tracker.config import get_settings, validate_all_settings
from expense_tracker.models.expense import ExpenseCategory, Period
from expense_tracker.orchestrator import (
    CsvExportFlow,
    CsvImportFlow,
    ExpenseFlow,
    NoValidRowsError,
    create_app_components,
)
from expense_tracker.codec import CsvDecodeError
from expense_tracker.services.storage import StorageError
from expense_tracker.validation import ExpenseValidationError
from expense_tracker.views import category_segments


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💸",
    layout="centered",
)

CATEGORY_OPTIONS = list(ExpenseCategory)
SETTINGS_SECTIONS = [
    ("Storage", "storage"),
    ("App", "app"),
]


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    configure_logging(get_settings().app.log_level)
    return create_app_components()


def main():
    """Main application entry point."""
    # Startup check: bad settings would fail inside get_components()
    status = validate_all_settings()
    if not all(status.get(key, False) for _, key in SETTINGS_SECTIONS):
        render_settings_page(status)
        st.stop()

    expense_flow, import_flow, export_flow = get_components()

    st.sidebar.title("💸 Expense Tracker")
    page = st.sidebar.radio(
        "Navigate to:",
        ["➕ Add", "📅 History", "📊 Chart", "🔁 Import / Export", "⚙️ Settings"],
        index=0,
    )

    if page == "➕ Add":
        render_add_page(expense_flow)
    elif page == "📅 History":
        render_history_page(expense_flow)
    elif page == "📊 Chart":
        render_chart_page(expense_flow)
    elif page == "🔁 Import / Export":
        render_csv_page(import_flow, export_flow)
    elif page == "⚙️ Settings":
        render_settings_page(status)


def render_settings_page(status: dict):
    """Render the configuration check."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")
    for name, key in SETTINGS_SECTIONS:
        if status.get(key, False):
            st.success(f"✅ {name} settings - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} settings - {error}")

    if status.get("storage", False):
        storage = get_settings().storage
        st.markdown("### Storage")
        st.markdown(f"- File: `{storage.path}`\n- Key: `{storage.key}`")


def render_add_page(expense_flow: ExpenseFlow):
    """Render the add-expense form."""
    st.title("Add expense")
    st.caption("Tap amount, pick a category, done.")

    require_note = get_settings().app.require_note

    with st.form("add_expense", clear_on_submit=True):
        amount = st.number_input("Amount *", min_value=0, step=1, value=0)
        category = st.radio(
            "Category *",
            options=CATEGORY_OPTIONS,
            format_func=lambda c: c.label,
            horizontal=True,
        )
        note = st.text_input("Note *" if require_note else "Note (optional)")
        submitted = st.form_submit_button("Add", type="primary")

    if submitted:
        try:
            expense_flow.add_expense(amount=int(amount), category=category, note=note)
            st.success("✅ Added")
        except ExpenseValidationError as e:
            st.error(str(e))
        except StorageError as e:
            st.error(f"Could not save: {e}")

    summary = expense_flow.summary()
    st.metric("Total logged", f"{summary.total:,}", f"{summary.count} expenses")


def render_history_page(expense_flow: ExpenseFlow):
    """Render expenses grouped by day, with edit and delete."""
    st.title("📅 History")

    groups = expense_flow.days()
    if not groups:
        st.info("No expenses yet.")
        return

    for group in groups:
        st.subheader(f"{group.label} · {group.total:,}")
        for expense in group.expenses:
            with st.expander(f"{expense.category.label} · {expense.amount:,} · {expense.note}"):
                with st.form(f"edit_{expense.id}"):
                    amount = st.number_input(
                        "Amount", min_value=0, step=1, value=expense.amount
                    )
                    category = st.selectbox(
                        "Category",
                        options=CATEGORY_OPTIONS,
                        index=CATEGORY_OPTIONS.index(expense.category),
                        format_func=lambda c: c.label,
                    )
                    note = st.text_input("Note", value=expense.note)
                    col1, col2 = st.columns(2)
                    save = col1.form_submit_button("Save")
                    delete = col2.form_submit_button("Delete")

                if save:
                    try:
                        updated = expense_flow.update_expense(
                            expense.id,
                            {"amount": int(amount), "category": category, "note": note},
                        )
                        if updated is None:
                            st.warning("This expense no longer exists.")
                        else:
                            st.rerun()
                    except ExpenseValidationError as e:
                        st.error(str(e))
                if delete:
                    expense_flow.delete_expense(expense.id)
                    st.rerun()


def render_chart_page(expense_flow: ExpenseFlow):
    """Render per-period totals as a stacked bar chart."""
    st.title("📊 Spending by period")

    period = st.radio(
        "Group by",
        options=list(Period),
        format_func=lambda p: p.value.capitalize(),
        horizontal=True,
    )

    groups = expense_flow.periods(period)
    if not groups:
        st.info("No expenses yet.")
        return

    frame = pd.DataFrame(
        [
            {c.label: g.by_category.get(c, 0) for c in CATEGORY_OPTIONS}
            for g in reversed(groups)
        ],
        index=[g.label for g in reversed(groups)],
    )
    st.bar_chart(frame)

    latest = groups[0]
    st.markdown(f"**{latest.label}** · {latest.total:,}")
    for segment in category_segments(latest):
        st.progress(segment.width, text=f"{segment.category.label}: {segment.amount:,} ({segment.share:.0%})")


def render_csv_page(import_flow: CsvImportFlow, export_flow: CsvExportFlow):
    """Render CSV paste-import and export."""
    st.title("🔁 Import / Export")

    st.subheader("Import")
    text = st.text_area(
        "Paste CSV",
        placeholder="date,category,note,amount\n2024-01-15,food,Lunch,80",
        height=180,
    )
    if st.button("Import", type="primary", disabled=not text.strip()):
        try:
            outcome = import_flow.import_text(text)
            st.success(outcome.message)
        except NoValidRowsError as e:
            st.warning(str(e))
        except (CsvDecodeError, StorageError) as e:
            st.error(f"Import failed: {e}")

    st.subheader("Export")
    if st.button("Export"):
        csv_text = export_flow.export()
        st.code(csv_text, language="text")
        st.download_button("Download CSV", csv_text, file_name="expenses.csv", mime="text/csv")


if __name__ == "__main__":
    main()
