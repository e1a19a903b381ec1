"""
Ticket status lifecycle.

    pending -> approved | rejected
    pending | approved -> completed
    any -> closed

Only the move to ``completed`` is made from this side, through the close
action. Everything else is decided by the backend and only displayed here.
"""
import logging
from dataclasses import replace

from django.db import models

from portal.roles import Role, parse_role

logger = logging.getLogger(__name__)


class TicketStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    COMPLETED = "completed", "Completed"
    CLOSED = "closed", "Closed"


TRANSITIONS = {
    TicketStatus.PENDING: {TicketStatus.APPROVED, TicketStatus.REJECTED, TicketStatus.COMPLETED},
    TicketStatus.APPROVED: {TicketStatus.COMPLETED},
    TicketStatus.REJECTED: set(),
    TicketStatus.COMPLETED: set(),
    TicketStatus.CLOSED: set(),
}


def can_transition(current, target):
    if target == TicketStatus.CLOSED:
        return current != TicketStatus.CLOSED
    try:
        return TicketStatus(target) in TRANSITIONS.get(TicketStatus(current), set())
    except ValueError:
        return False


def accepts_responses(status):
    """Shared gate for the response form and the close action."""
    return (status or "").lower() != TicketStatus.COMPLETED


def can_close(role, status):
    return parse_role(role) is Role.SALES and accepts_responses(status)


def status_label(status):
    if not status:
        return "N/A"
    try:
        return TicketStatus(status.lower()).label
    except ValueError:
        return " ".join(word.capitalize() for word in status.split("_"))


def close_ticket(client, ticket):
    """Mark ``ticket`` completed on the backend.

    Returns a copy carrying the new status. ``ApiError`` from the client
    propagates and ``ticket`` itself is never modified.
    """
    client.update_ticket_status(ticket.id, TicketStatus.COMPLETED.value)
    logger.info("Ticket %s closed", ticket.id)
    return replace(ticket, status=TicketStatus.COMPLETED.value)
