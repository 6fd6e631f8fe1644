"""Aggregation views package."""

from expense_tracker.views.aggregation import (
    MIN_SEGMENT_SHARE,
    PERIOD_BUCKET_LIMIT,
    category_segments,
    day_label,
    group_by_day,
    group_by_period,
    local_date,
    period_start,
    summarize,
)

__all__ = [
    "MIN_SEGMENT_SHARE",
    "PERIOD_BUCKET_LIMIT",
    "category_segments",
    "day_label",
    "group_by_day",
    "group_by_period",
    "local_date",
    "period_start",
    "summarize",
]
