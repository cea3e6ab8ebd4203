"""Filtering and sorting of the visible task list.

The date comparator is not a total order: two dated tasks compare by due
date, while any comparison involving an undated task falls back to newest
creation first. Mixed lists can therefore contain cycles (a < b < c < a)
and their sorted order depends on the input order.
"""
from __future__ import annotations

from functools import cmp_to_key
from typing import Any, Callable, Dict, Iterable, List

from .errors import ValidationError
from .models import EPOCH

STATUS_FILTERS = ("all", "pending", "completed")
SORT_KEYS = ("date", "priority", "createdAt")
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
UNKNOWN_PRIORITY_RANK = 3


def _cmp(left: Any, right: Any) -> int:
    return (left > right) - (left < right)


def compare_by_created(a, b) -> int:
    """Newest creation first."""
    return _cmp(b.created_at or EPOCH, a.created_at or EPOCH)


def compare_by_date(a, b) -> int:
    """Earliest due date first; falls back to creation when either lacks one."""
    if a.due_date and b.due_date:
        return _cmp(a.due_date, b.due_date)
    return compare_by_created(a, b)


def priority_rank(priority: str) -> int:
    return PRIORITY_ORDER.get(priority, UNKNOWN_PRIORITY_RANK)


def compare_by_priority(a, b) -> int:
    """high < medium < low < unknown, ties broken by newest creation."""
    diff = priority_rank(a.priority) - priority_rank(b.priority)
    if diff == 0:
        return compare_by_created(a, b)
    return diff


COMPARATORS: Dict[str, Callable[[Any, Any], int]] = {
    "date": compare_by_date,
    "priority": compare_by_priority,
    "createdAt": compare_by_created,
}


def _matches_status(task, status_filter: str) -> bool:
    if status_filter == "completed":
        return bool(task.completed)
    if status_filter == "pending":
        return not task.completed
    return True


def filter_and_sort(
    tasks: Iterable,
    status_filter: str = "all",
    category_filter: str = "all",
    sort_key: str = "createdAt",
) -> List:
    """Filter tasks by completion and category, then sort them.

    Args:
        tasks: Task or TaskEntry objects
        status_filter: "all", "pending" or "completed"
        category_filter: "all" or a category value
        sort_key: "date", "priority" or "createdAt"

    Returns:
        A new sorted list; the input is not modified
    """
    if status_filter not in STATUS_FILTERS:
        raise ValidationError(f"Invalid status filter '{status_filter}'. Valid: {list(STATUS_FILTERS)}")
    if sort_key not in COMPARATORS:
        raise ValidationError(f"Invalid sort key '{sort_key}'. Valid: {list(SORT_KEYS)}")

    filtered = [
        task for task in tasks
        if _matches_status(task, status_filter)
        and (category_filter == "all" or task.category == category_filter)
    ]
    return sorted(filtered, key=cmp_to_key(COMPARATORS[sort_key]))
