"""
Ticket list filtering and pagination helpers.

Filtering runs over the page of tickets already loaded from the backend, not
over the full remote set. Changing server page never re-applies a filter to
rows that were left behind.
"""
from datetime import timedelta

from django.utils import timezone

ALL = "all"

DATE_RANGE_OPTIONS = [
    (ALL, "Any time"),
    ("today", "Today"),
    ("week", "Last 7 days"),
    ("month", "Last 30 days"),
]

_DATE_RANGE_DAYS = {"today": 0, "week": 7, "month": 30}


def _active(value):
    return value not in (None, "", ALL)


def matches_query(ticket, query):
    needle = (query or "").strip().lower()
    if not needle:
        return True
    haystack = (ticket.id, ticket.subject, ticket.product_name, ticket.created_by)
    return any(needle in str(value or "").lower() for value in haystack)


def filter_tickets(tickets, query="", ticket_type=None, status=None):
    visible = []
    for ticket in tickets:
        if _active(ticket_type) and ticket.ticket_type != ticket_type:
            continue
        if _active(status) and ticket.status != status:
            continue
        if matches_query(ticket, query):
            visible.append(ticket)
    return visible


def filter_by_date_range(tickets, date_range, now=None):
    if date_range not in _DATE_RANGE_DAYS:
        return list(tickets)
    now = now or timezone.now()
    start = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)
    start -= timedelta(days=_DATE_RANGE_DAYS[date_range])
    return [t for t in tickets if t.created_at is not None and _aware(t.created_at) >= start]


def _aware(value):
    return timezone.make_aware(value) if timezone.is_naive(value) else value


def page_window(current, total_pages, visible=5):
    """Page numbers to show: at most ``visible``, centred on ``current``."""
    total_pages = max(1, int(total_pages or 1))
    current = min(max(1, int(current or 1)), total_pages)

    start = max(1, current - visible // 2)
    end = min(total_pages, start + visible - 1)
    if end - start + 1 < visible:
        start = max(1, end - visible + 1)
    return list(range(start, end + 1))


def clamp_page(value, total_pages=None):
    try:
        page = int(value)
    except (TypeError, ValueError):
        page = 1
    page = max(1, page)
    if total_pages is not None:
        page = min(page, max(1, total_pages))
    return page


def due_date_text(due, today=None):
    if due is None:
        return ""
    today = today or timezone.localdate()
    due_day = due.date() if hasattr(due, "date") else due
    diff_days = (due_day - today).days
    if diff_days == 0:
        return "Due: Today"
    if diff_days == 1:
        return "Due: Tomorrow"
    if diff_days < 0:
        return f"{abs(diff_days)} days overdue"
    return f"Due in {diff_days} days"
