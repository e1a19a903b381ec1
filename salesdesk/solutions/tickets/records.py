"""
Client-side views of backend ticket records.

The backend is inconsistent about key casing (``product_name`` next to
``productId``), so every payload is normalized to snake_case before it is
read.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from django.db import models
from django.utils.dateparse import parse_datetime

from services.backend_api.normalize import normalize_keys, parse_json_list, unwrap_list


class TicketType(models.TextChoices):
    NEW_PRODUCT = "new_product", "New Product"
    EXISTING_PRODUCT = "existing_product", "Existing Product"
    BULK_ORDER = "bulk_order", "Bulk Order"


class TicketPriority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"


BASE_FIELDS = {
    "id",
    "ticket_type",
    "status",
    "priority",
    "created_by",
    "assigned_to",
    "created_at",
    "updated_at",
    "subject",
    "product_name",
    "description",
    "supporting_docs",
}


def _parse_timestamp(value):
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return parse_datetime(str(value))
    except ValueError:
        return None


def _person(value):
    if isinstance(value, dict):
        return value.get("name") or value.get("email") or str(value.get("id") or "")
    return str(value) if value not in (None, "") else ""


@dataclass
class Ticket:
    id: str
    ticket_type: str = ""
    status: str = ""
    priority: str = ""
    created_by: str = ""
    assigned_to: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    subject: str = ""
    product_name: str = ""
    description: str = ""
    supporting_docs: list = field(default_factory=list)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload):
        data = normalize_keys(payload or {})
        product_name = (
            data.get("product_name")
            or data.get("current_product_name")
            or data.get("product_id")
            or ""
        )
        return cls(
            id=str(data.get("id") or data.get("ticket_id") or ""),
            ticket_type=str(data.get("ticket_type") or ""),
            status=str(data.get("status") or "").lower(),
            priority=str(data.get("priority") or "").lower(),
            created_by=_person(data.get("created_by")),
            assigned_to=_person(data.get("assigned_to")),
            created_at=_parse_timestamp(data.get("created_at") or data.get("date_created")),
            updated_at=_parse_timestamp(data.get("updated_at")),
            subject=str(data.get("subject") or data.get("subject_product") or ""),
            product_name=str(product_name),
            description=str(
                data.get("description") or data.get("reason_for_update") or data.get("reason_for_bulk_order") or ""
            ),
            supporting_docs=parse_json_list(data.get("supporting_docs") or data.get("documents")),
            extra={key: value for key, value in data.items() if key not in BASE_FIELDS},
        )

    @property
    def display_name(self):
        return self.product_name or self.subject or "N/A"

    @property
    def short_id(self):
        return self.id[:6]

    @property
    def type_label(self):
        if not self.ticket_type:
            return "N/A"
        return " ".join(word.capitalize() for word in self.ticket_type.split("_"))


@dataclass
class TicketResponse:
    ticket_id: str
    title: str
    description: str = ""
    attachments: list = field(default_factory=list)
    responded_by: str = ""
    created_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload, ticket_id=""):
        data = normalize_keys(payload or {})
        return cls(
            ticket_id=str(data.get("ticket_id") or ticket_id),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            attachments=parse_json_list(data.get("attachments")),
            responded_by=_person(data.get("responded_by") or data.get("created_by")),
            created_at=_parse_timestamp(data.get("created_at")),
        )


@dataclass
class TicketPage:
    tickets: list
    page: int = 1
    limit: int = 10
    total: int = 0
    total_pages: int = 1

    @classmethod
    def from_payload(cls, payload, page=1, limit=10):
        tickets = [Ticket.from_payload(row) for row in unwrap_list(payload, "tickets")]
        total = len(tickets)
        total_pages = 1
        if isinstance(payload, dict):
            data = normalize_keys(payload)
            total = int(data.get("total") or total)
            total_pages = int(data.get("total_pages") or total_pages)
        return cls(
            tickets=tickets,
            page=page,
            limit=limit,
            total=total,
            total_pages=max(1, total_pages),
        )
