from django import template
from django.utils.dateparse import parse_date, parse_datetime

from solutions.tickets.filters import due_date_text
from solutions.tickets.lifecycle import status_label

register = template.Library()


@register.filter(name="status_label")
def status_label_filter(status):
    return status_label(status)


@register.filter(name="due_text")
def due_text(ticket):
    due = ticket.extra.get("expected_delivery_date") or ticket.extra.get("delivery_date")
    if not due:
        return status_label(ticket.status)
    try:
        parsed = parse_datetime(str(due)) or parse_date(str(due)[:10])
    except ValueError:
        parsed = None
    return due_date_text(parsed) if parsed else status_label(ticket.status)
