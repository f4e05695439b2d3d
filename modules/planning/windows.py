"""Shared date windows for the dashboard and alert queries."""
from datetime import date, timedelta
from typing import Optional


def resolve_today(today: Optional[date] = None) -> date:
    """Reference day for a query; callers inject it in tests."""
    return today or date.today()


def due_window(days: int, today: Optional[date] = None) -> tuple[date, date]:
    """Inclusive range [today, today + days]."""
    start = resolve_today(today)
    return start, start + timedelta(days=days)


def week_bounds(today: Optional[date] = None) -> tuple[date, date]:
    """Monday and Sunday of the current week."""
    ref = resolve_today(today)
    monday = ref - timedelta(days=ref.weekday())
    return monday, monday + timedelta(days=6)


def is_overdue(planned: date, today: Optional[date] = None) -> bool:
    return planned < resolve_today(today)
