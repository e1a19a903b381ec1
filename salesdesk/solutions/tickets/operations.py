from services.backend_api.normalize import unwrap_list

from .lifecycle import accepts_responses
from .records import Ticket, TicketPage, TicketResponse


class ResponsesClosed(Exception):
    """Raised when a response is sent to a ticket that no longer takes them."""


def fetch_ticket_page(client, page=1, limit=10):
    return TicketPage.from_payload(client.list_tickets(page=page, limit=limit), page=page, limit=limit)


def fetch_ticket(client, ticket_id):
    payload = client.get_ticket(ticket_id)
    rows = unwrap_list(payload, "tickets")
    if rows:
        return Ticket.from_payload(rows[0])
    if isinstance(payload, dict):
        record = payload.get("ticket") or (payload if payload.get("id") else None)
        if record:
            return Ticket.from_payload(record)
    return None


def fetch_responses(client, ticket_id):
    return [TicketResponse.from_payload(row, ticket_id=ticket_id) for row in client.list_responses(ticket_id)]


def submit_response(client, ticket, title, description, attachments=()):
    if not accepts_responses(ticket.status):
        raise ResponsesClosed(f"Ticket {ticket.id} is completed and takes no more responses.")
    return client.add_response(ticket.id, title, description, attachments)


def create_ticket(client, ticket_type, fields, supporting_docs=()):
    return client.create_ticket(ticket_type, {**fields, "ticket_type": ticket_type}, supporting_docs)
