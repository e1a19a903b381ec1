import logging

from django.conf import settings
from django.contrib import messages
from django.http import Http404
from django.shortcuts import redirect, render

from portal.access_control import role_required
from portal.roles import Role
from services.backend_api.client import BackendClient
from services.backend_api.errors import ApiError
from services.uploads.actions import ACTION_CANCEL, ACTION_SUBMIT, apply_upload_action
from services.uploads.staging import PendingUploads, pending_uploads

from .filters import ALL, clamp_page, filter_by_date_range, filter_tickets, page_window
from .forms import (
    TICKET_FORMS,
    AdminTicketFilterForm,
    TicketListFilterForm,
    TicketResponseForm,
)
from .lifecycle import accepts_responses, can_close, close_ticket, status_label
from .operations import (
    ResponsesClosed,
    create_ticket,
    fetch_responses,
    fetch_ticket,
    fetch_ticket_page,
    submit_response,
)
from .records import TicketPage, TicketType

logger = logging.getLogger(__name__)

TICKET_TYPE_CARDS = [
    (
        TicketType.NEW_PRODUCT,
        "Create a ticket for adding a completely new product to the system",
        "tickets:create_new_product",
    ),
    (
        TicketType.EXISTING_PRODUCT,
        "Create a ticket for updating an already existing product in the system",
        "tickets:create_existing_product",
    ),
    (
        TicketType.BULK_ORDER,
        "Submit a ticket for a large quantity or special pricing request",
        "tickets:create_bulk_order",
    ),
]


def _filters_from(request, form_class):
    form = form_class(request.GET or None)
    if not form.is_bound:
        return form, {}
    # Fields that fail validation are left out; the rest still apply.
    form.is_valid()
    return form, form.cleaned_data


def _load_page(request, page, limit):
    client = BackendClient.for_request(request)
    try:
        return fetch_ticket_page(client, page=page, limit=limit)
    except ApiError as exc:
        messages.error(request, f"Could not load tickets: {exc.message}")
        return TicketPage(tickets=[], page=page, limit=limit)


@role_required(Role.SALES)
def ticket_list(request):
    form, filters = _filters_from(request, TicketListFilterForm)
    page = clamp_page(filters.get("page"))
    ticket_page = _load_page(request, page, settings.TICKETS_PAGE_SIZE)

    visible = filter_tickets(
        ticket_page.tickets,
        query=filters.get("q", ""),
        ticket_type=filters.get("ticket_type") or ALL,
        status=filters.get("status") or ALL,
    )
    return render(
        request,
        "tickets/ticket_list.html",
        {
            "filter_form": form,
            "tickets": visible,
            "ticket_page": ticket_page,
            "page_numbers": page_window(ticket_page.page, ticket_page.total_pages, settings.PAGE_WINDOW_SIZE),
            "type_cards": TICKET_TYPE_CARDS,
        },
    )


@role_required(Role.ADMIN)
def admin_ticket_overview(request):
    form, filters = _filters_from(request, AdminTicketFilterForm)
    page = clamp_page(filters.get("page"))
    ticket_page = _load_page(request, page, settings.TICKETS_PAGE_SIZE)

    visible = filter_tickets(
        ticket_page.tickets,
        query=filters.get("q", ""),
        ticket_type=filters.get("ticket_type") or ALL,
        status=filters.get("status") or ALL,
    )
    visible = filter_by_date_range(visible, filters.get("date_range") or ALL)
    return render(
        request,
        "tickets/admin_ticket_overview.html",
        {
            "filter_form": form,
            "tickets": visible,
            "ticket_page": ticket_page,
            "page_numbers": page_window(ticket_page.page, ticket_page.total_pages, settings.PAGE_WINDOW_SIZE),
        },
    )


def _ticket_form(request, ticket_type):
    form_class = TICKET_FORMS[ticket_type]
    form_key = f"ticket-{ticket_type}"

    with pending_uploads(request.session, form_key) as pending:
        if request.method != "POST":
            # A fresh visit starts a fresh form; drop anything left from an abandoned one.
            pending.teardown()
            form = form_class()
        else:
            action = apply_upload_action(request, pending)
            if action == ACTION_CANCEL:
                messages.info(request, "Changes discarded.")
                return redirect(request.path)

            if action != ACTION_SUBMIT:
                form = form_class(initial=request.POST.dict())
            else:
                form = form_class(request.POST)
                if form.is_valid():
                    client = BackendClient.for_request(request)
                    try:
                        with pending.multipart("supporting_docs") as documents:
                            create_ticket(client, ticket_type, form.to_payload(), documents)
                    except ApiError as exc:
                        messages.error(request, f"Error submitting ticket: {exc.message}")
                    else:
                        pending.teardown()
                        logger.info("%s ticket submitted by %s", ticket_type, request.portal_session.user.id)
                        messages.success(request, f"{form_class.ticket_type.label} ticket submitted successfully!")
                        return redirect("tickets:ticket_list")

        return render(
            request,
            "tickets/ticket_form.html",
            {
                "form": form,
                "form_title": form_class.title,
                "pending": pending.handles,
                "form_key": form_key,
            },
        )


@role_required(Role.SALES)
def create_new_product(request):
    return _ticket_form(request, TicketType.NEW_PRODUCT)


@role_required(Role.SALES)
def create_existing_product(request):
    return _ticket_form(request, TicketType.EXISTING_PRODUCT)


@role_required(Role.SALES)
def create_bulk_order(request):
    return _ticket_form(request, TicketType.BULK_ORDER)


def _get_ticket_or_404(request, ticket_id):
    client = BackendClient.for_request(request)
    try:
        ticket = fetch_ticket(client, ticket_id)
    except ApiError as exc:
        if getattr(exc, "status_code", None) == 404:
            raise Http404("Ticket not found") from exc
        messages.error(request, f"Could not load ticket: {exc.message}")
        return client, None
    if ticket is None:
        raise Http404("Ticket not found")
    return client, ticket


@role_required(Role.SALES, Role.PURCHASE, Role.ADMIN)
def ticket_detail(request, ticket_id):
    client, ticket = _get_ticket_or_404(request, ticket_id)
    if ticket is None:
        return render(request, "tickets/ticket_detail.html", {"ticket": None}, status=502)

    form_key = f"response-{ticket.id}"
    role = request.portal_session.role
    response_form = None

    with pending_uploads(request.session, form_key) as pending:
        if not accepts_responses(ticket.status):
            pending.teardown()
        elif request.method != "POST":
            pending.teardown()
            response_form = TicketResponseForm()
        else:
            action = apply_upload_action(request, pending, files_field="attachments")
            if action == ACTION_CANCEL:
                return redirect("tickets:ticket_detail", ticket_id=ticket.id)
            if action != ACTION_SUBMIT:
                response_form = TicketResponseForm(initial=request.POST.dict())
            else:
                response_form = TicketResponseForm(request.POST)
                if response_form.is_valid():
                    try:
                        with pending.multipart("attachments") as attachments:
                            submit_response(
                                client,
                                ticket,
                                response_form.cleaned_data["title"],
                                response_form.cleaned_data["description"],
                                attachments,
                            )
                    except ResponsesClosed:
                        messages.error(request, "This ticket is completed and no longer accepts responses.")
                    except ApiError as exc:
                        messages.error(request, f"Error sending response: {exc.message}")
                    else:
                        pending.teardown()
                        messages.success(request, "Response added.")
                        return redirect("tickets:ticket_detail", ticket_id=ticket.id)

        pending_handles = pending.handles

    try:
        responses = fetch_responses(client, ticket.id)
    except ApiError as exc:
        messages.warning(request, f"Could not load responses: {exc.message}")
        responses = []

    return render(
        request,
        "tickets/ticket_detail.html",
        {
            "ticket": ticket,
            "status_text": status_label(ticket.status),
            "responses": responses,
            "response_form": response_form,
            "pending": pending_handles,
            "form_key": form_key,
            "can_close": can_close(role, ticket.status),
        },
    )


@role_required(Role.SALES)
def close_ticket_view(request, ticket_id):
    if request.method != "POST":
        return redirect("tickets:ticket_detail", ticket_id=ticket_id)

    client, ticket = _get_ticket_or_404(request, ticket_id)
    if ticket is None:
        return redirect("tickets:ticket_detail", ticket_id=ticket_id)

    if not can_close(request.portal_session.role, ticket.status):
        messages.error(request, "This ticket is already completed.")
        return redirect("tickets:ticket_detail", ticket_id=ticket.id)

    try:
        close_ticket(client, ticket)
    except ApiError as exc:
        messages.error(request, f"Failed to close ticket: {exc.message}")
    else:
        PendingUploads(request.session, f"response-{ticket.id}").teardown()
        messages.success(request, "Ticket closed.")
    return redirect("tickets:ticket_detail", ticket_id=ticket.id)
