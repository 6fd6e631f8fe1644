"""
Aggregation Views

Pure functions that turn the flat expense list into display-ready
groups. Nothing here touches storage or mutates its input; calling a
view twice on the same list gives the same result.

Dates are bucketed in local time (or an explicit tz), never UTC, so
an expense logged late in the evening stays on the evening's day.
"""

from collections.abc import Sequence
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Union

from expense_tracker.models.expense import (
    CategorySegment,
    DayGroup,
    Expense,
    ExpenseCategory,
    ExpenseSummary,
    Period,
    PeriodGroup,
)


PERIOD_BUCKET_LIMIT = 14
MIN_SEGMENT_SHARE = 0.04


def local_date(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of a timestamp in tz (default: the local zone)."""
    return moment.astimezone(tz).date()


def _empty_category_totals() -> dict[ExpenseCategory, int]:
    return {category: 0 for category in ExpenseCategory}


# =============================================================================
# GROUP BY DAY
# =============================================================================

def day_label(day: date, today: date) -> str:
    """
    "Today", "Yesterday", or e.g. "Mon, Jan 15".

    The year is appended only when it differs from today's.
    """
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"

    label = f"{day:%a}, {day:%b} {day.day}"
    if day.year != today.year:
        label += f", {day.year}"
    return label


def group_by_day(
    expenses: Sequence[Expense],
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> list[DayGroup]:
    """
    Group expenses by local calendar day, newest day first.

    Within a day, expenses keep the order they were given in.
    """
    if today is None:
        today = datetime.now(tz).date()

    buckets: dict[date, list[Expense]] = {}
    for expense in expenses:
        buckets.setdefault(local_date(expense.created_at, tz), []).append(expense)

    return [
        DayGroup(
            day=day,
            label=day_label(day, today),
            total=sum(e.amount for e in buckets[day]),
            expenses=buckets[day],
        )
        for day in sorted(buckets, reverse=True)
    ]


# =============================================================================
# GROUP BY PERIOD
# =============================================================================

def period_start(day: date, period: Period) -> date:
    """First day of the bucket containing day. Weeks start on Sunday."""
    if period == Period.DAY:
        return day
    if period == Period.WEEK:
        return day - timedelta(days=(day.weekday() + 1) % 7)
    return day.replace(day=1)


def period_label(start: date, period: Period) -> str:
    if period == Period.DAY:
        return f"{start:%b} {start.day}"
    if period == Period.WEEK:
        return f"Week of {start:%b} {start.day}"
    return f"{start:%b %Y}"


def group_by_period(
    expenses: Sequence[Expense],
    period: Union[Period, str],
    tz: Optional[tzinfo] = None,
    limit: int = PERIOD_BUCKET_LIMIT,
) -> list[PeriodGroup]:
    """
    Group expenses by day, week or month with per-category totals.

    Returns the `limit` most recent buckets, newest first. Every
    category appears in `by_category`, zero when unused.
    """
    period = Period(period)

    totals: dict[date, dict[ExpenseCategory, int]] = {}
    counts: dict[date, int] = {}
    for expense in expenses:
        start = period_start(local_date(expense.created_at, tz), period)
        by_category = totals.setdefault(start, _empty_category_totals())
        by_category[expense.category] += expense.amount
        counts[start] = counts.get(start, 0) + 1

    recent = sorted(totals, reverse=True)[:limit]
    return [
        PeriodGroup(
            period=period,
            start=start,
            label=period_label(start, period),
            total=sum(totals[start].values()),
            count=counts[start],
            by_category=totals[start],
        )
        for start in recent
    ]


def category_segments(
    group: PeriodGroup,
    min_share: float = MIN_SEGMENT_SHARE,
) -> list[CategorySegment]:
    """
    Stacked-bar segments for one period bucket.

    Unused categories get no segment. Used ones are sized by their share
    of the bucket total, never narrower than min_share.
    """
    if group.total <= 0:
        return []

    segments = []
    for category in ExpenseCategory:
        amount = group.by_category.get(category, 0)
        if amount <= 0:
            continue
        share = amount / group.total
        segments.append(CategorySegment(
            category=category,
            amount=amount,
            share=share,
            width=min(1.0, max(share, min_share)),
        ))
    return segments


def summarize(expenses: Sequence[Expense]) -> ExpenseSummary:
    """Total, count and per-category totals over a list."""
    by_category = _empty_category_totals()
    for expense in expenses:
        by_category[expense.category] += expense.amount
    return ExpenseSummary(
        total=sum(by_category.values()),
        count=len(expenses),
        by_category=by_category,
    )
