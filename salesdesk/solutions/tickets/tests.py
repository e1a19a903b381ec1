"""
Tests for the ticket lifecycle, list filtering and the ticket pages.
"""
import os
from datetime import date, datetime, timezone as dt_timezone
from io import StringIO
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import SimpleTestCase

from portal.roles import Role
from portal.testing import StagingDirMixin, TestDataFactory, login_as
from services.backend_api.client import BackendClient
from services.backend_api.errors import BackendResponseError, BackendUnavailable
from services.uploads.staging import PENDING_UPLOADS_KEY
from solutions.tickets.filters import (
    clamp_page,
    due_date_text,
    filter_by_date_range,
    filter_tickets,
    page_window,
)
from solutions.tickets.forms import NewProductTicketForm
from solutions.tickets.lifecycle import (
    TicketStatus,
    accepts_responses,
    can_close,
    can_transition,
    close_ticket,
    status_label,
)
from solutions.tickets.operations import ResponsesClosed, create_ticket, fetch_ticket, submit_response
from solutions.tickets.records import Ticket, TicketPage


def make_ticket(ticket_id="t-1", **overrides):
    return Ticket.from_payload(TestDataFactory.ticket_payload(ticket_id, **overrides))


class LifecycleTests(SimpleTestCase):
    """Status gates and the close action"""

    def test_only_completed_stops_responses(self):
        self.assertTrue(accepts_responses("pending"))
        self.assertTrue(accepts_responses("approved"))
        self.assertTrue(accepts_responses("closed"))
        self.assertFalse(accepts_responses("completed"))
        self.assertFalse(accepts_responses("COMPLETED"))

    def test_only_sales_can_close_open_tickets(self):
        self.assertTrue(can_close(Role.SALES, "pending"))
        self.assertTrue(can_close("sales", "approved"))
        self.assertFalse(can_close(Role.SALES, "completed"))
        self.assertFalse(can_close(Role.PURCHASE, "pending"))
        self.assertFalse(can_close(Role.ADMIN, "pending"))
        self.assertFalse(can_close(None, "pending"))

    def test_transitions(self):
        self.assertTrue(can_transition("pending", "approved"))
        self.assertTrue(can_transition("approved", "completed"))
        self.assertTrue(can_transition("rejected", "closed"))
        self.assertFalse(can_transition("completed", "pending"))
        self.assertFalse(can_transition("closed", "closed"))
        self.assertFalse(can_transition("bogus", "approved"))

    def test_status_label(self):
        self.assertEqual(status_label("completed"), "Completed")
        self.assertEqual(status_label("in_progress"), "In Progress")
        self.assertEqual(status_label(""), "N/A")

    def test_close_ticket_returns_completed_copy(self):
        client = mock.Mock()
        ticket = make_ticket("abc", status="pending")
        closed = close_ticket(client, ticket)
        client.update_ticket_status.assert_called_once_with("abc", "completed")
        self.assertEqual(closed.status, TicketStatus.COMPLETED)
        self.assertEqual(ticket.status, "pending")

    def test_close_ticket_failure_propagates(self):
        client = mock.Mock()
        client.update_ticket_status.side_effect = BackendUnavailable()
        ticket = make_ticket("abc", status="pending")
        with self.assertRaises(BackendUnavailable):
            close_ticket(client, ticket)
        self.assertEqual(ticket.status, "pending")


class RecordTests(SimpleTestCase):
    """Backend payloads to ticket records"""

    def test_ticket_from_mixed_case_payload(self):
        ticket = Ticket.from_payload(
            {
                "id": 17,
                "ticket_type": "bulk_order",
                "status": "Pending",
                "productId": "SKU-9",
                "createdBy": {"name": "Sam"},
                "quantity": 40,
                "supportingDocs": '["a.pdf", "b.png"]',
            }
        )
        self.assertEqual(ticket.id, "17")
        self.assertEqual(ticket.status, "pending")
        self.assertEqual(ticket.display_name, "SKU-9")
        self.assertEqual(ticket.type_label, "Bulk Order")
        self.assertEqual(ticket.created_by, "Sam")
        self.assertEqual(ticket.supporting_docs, ["a.pdf", "b.png"])
        self.assertEqual(ticket.extra["quantity"], 40)

    def test_ticket_page_from_envelope(self):
        page = TicketPage.from_payload(
            {"tickets": [TestDataFactory.ticket_payload("a")], "total": 21, "totalPages": 3},
            page=2,
            limit=10,
        )
        self.assertEqual(len(page.tickets), 1)
        self.assertEqual((page.page, page.total, page.total_pages), (2, 21, 3))

    def test_ticket_page_from_bare_list(self):
        page = TicketPage.from_payload([TestDataFactory.ticket_payload("a")])
        self.assertEqual(page.total_pages, 1)
        self.assertEqual(page.total, 1)

    def test_fetch_ticket_accepts_wrapped_and_bare_records(self):
        client = mock.Mock()
        client.get_ticket.return_value = {"tickets": [TestDataFactory.ticket_payload("x")]}
        self.assertEqual(fetch_ticket(client, "x").id, "x")
        client.get_ticket.return_value = {"ticket": TestDataFactory.ticket_payload("y")}
        self.assertEqual(fetch_ticket(client, "y").id, "y")
        client.get_ticket.return_value = TestDataFactory.ticket_payload("z")
        self.assertEqual(fetch_ticket(client, "z").id, "z")
        client.get_ticket.return_value = {}
        self.assertIsNone(fetch_ticket(client, "missing"))


class OperationTests(SimpleTestCase):
    """Ticket operations against a mocked client"""

    def test_submit_response_refused_for_completed_ticket(self):
        client = mock.Mock()
        with self.assertRaises(ResponsesClosed):
            submit_response(client, make_ticket(status="completed"), "Update", "")
        client.add_response.assert_not_called()

    def test_submit_response(self):
        client = mock.Mock()
        submit_response(client, make_ticket("t-9"), "Quote", "Attached", [])
        client.add_response.assert_called_once_with("t-9", "Quote", "Attached", [])

    def test_create_ticket_adds_type(self):
        client = mock.Mock()
        create_ticket(client, "bulk_order", {"product_id": "SKU-1"})
        client.create_ticket.assert_called_once_with(
            "bulk_order", {"product_id": "SKU-1", "ticket_type": "bulk_order"}, ()
        )

    def test_new_product_form_payload(self):
        form = NewProductTicketForm(
            {
                "product_name": " Widget ",
                "subject": "Stock it",
                "priority": "high",
                "expected_new_price": "12.50",
                "expected_delivery_date": "2026-11-02",
            }
        )
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(
            form.to_payload(),
            {
                "product_name": "Widget",
                "subject": "Stock it",
                "priority": "high",
                "expected_new_price": "12.50",
                "expected_delivery_date": "2026-11-02",
            },
        )

    def test_new_product_form_requires_subject(self):
        form = NewProductTicketForm({"product_name": "Widget", "subject": "   ", "priority": "low"})
        self.assertFalse(form.is_valid())
        self.assertIn("subject", form.errors)


class FilterTests(SimpleTestCase):
    """Page-local filtering and pagination helpers"""

    def setUp(self):
        self.tickets = [
            make_ticket("aaa111", ticketType="new_product", status="pending", productName="Red Lamp"),
            make_ticket("bbb222", ticketType="bulk_order", status="approved", productName="Blue Chair"),
            make_ticket("ccc333", ticketType="bulk_order", status="completed", productName="Red Chair"),
        ]

    def test_query_matches_product_and_id(self):
        self.assertEqual([t.id for t in filter_tickets(self.tickets, query="red")], ["aaa111", "ccc333"])
        self.assertEqual([t.id for t in filter_tickets(self.tickets, query="BBB")], ["bbb222"])

    def test_type_and_status(self):
        found = filter_tickets(self.tickets, ticket_type="bulk_order", status="completed")
        self.assertEqual([t.id for t in found], ["ccc333"])
        self.assertEqual(len(filter_tickets(self.tickets, ticket_type="all", status="")), 3)

    def test_date_range(self):
        now = datetime(2026, 10, 5, 12, 0, tzinfo=dt_timezone.utc)
        recent = make_ticket("new", createdAt="2026-10-04T10:00:00Z")
        old = make_ticket("old", createdAt="2026-08-01T10:00:00Z")
        undated = make_ticket("none", createdAt=None)
        found = filter_by_date_range([recent, old, undated], "week", now=now)
        self.assertEqual([t.id for t in found], ["new"])
        self.assertEqual(len(filter_by_date_range([recent, old, undated], "all", now=now)), 3)

    def test_page_window(self):
        self.assertEqual(page_window(1, 3), [1, 2, 3])
        self.assertEqual(page_window(1, 10), [1, 2, 3, 4, 5])
        self.assertEqual(page_window(6, 10), [4, 5, 6, 7, 8])
        self.assertEqual(page_window(10, 10), [6, 7, 8, 9, 10])
        self.assertEqual(page_window(99, 4), [1, 2, 3, 4])
        self.assertEqual(page_window(1, 0), [1])

    def test_clamp_page(self):
        self.assertEqual(clamp_page("3"), 3)
        self.assertEqual(clamp_page("abc"), 1)
        self.assertEqual(clamp_page(-4), 1)
        self.assertEqual(clamp_page(9, total_pages=4), 4)

    def test_due_date_text(self):
        today = date(2026, 10, 19)
        self.assertEqual(due_date_text(date(2026, 10, 19), today=today), "Due: Today")
        self.assertEqual(due_date_text(date(2026, 10, 20), today=today), "Due: Tomorrow")
        self.assertEqual(due_date_text(date(2026, 10, 16), today=today), "3 days overdue")
        self.assertEqual(due_date_text(date(2026, 10, 25), today=today), "Due in 6 days")

    def test_query_tolerates_non_text_fields(self):
        numeric = make_ticket("ddd444", subject=42, productName=None, description=7)
        self.assertEqual(numeric.subject, "42")
        self.assertEqual(numeric.description, "7")
        found = filter_tickets(self.tickets + [numeric], query="42")
        self.assertEqual([t.id for t in found], ["ddd444"])
        self.assertEqual([t.id for t in filter_tickets([numeric], query="widget")], [])


class TicketListViewTests(StagingDirMixin, SimpleTestCase):
    """The sales ticket list"""

    @mock.patch.object(BackendClient, "list_tickets")
    def test_empty_page_shows_placeholder_row(self, list_tickets):
        list_tickets.return_value = {"tickets": [], "totalPages": 3}
        login_as(self.client, Role.SALES)
        response = self.client.get("/ticketspage")
        self.assertContains(response, "No tickets found")
        self.assertEqual(response.context["page_numbers"], [1, 2, 3])
        self.assertContains(response, "?page=2")
        list_tickets.assert_called_once_with(page=1, limit=10)

    @mock.patch.object(BackendClient, "list_tickets")
    def test_filters_apply_to_the_loaded_page(self, list_tickets):
        list_tickets.return_value = {
            "tickets": [
                TestDataFactory.ticket_payload("aaa111", productName="Red Lamp"),
                TestDataFactory.ticket_payload("bbb222", productName="Blue Chair"),
            ],
            "totalPages": 2,
        }
        login_as(self.client, Role.SALES)
        response = self.client.get("/ticketspage", {"q": "lamp", "page": "2"})
        self.assertEqual([t.id for t in response.context["tickets"]], ["aaa111"])
        list_tickets.assert_called_once_with(page=2, limit=10)

    @mock.patch.object(BackendClient, "list_tickets")
    def test_invalid_page_keeps_the_other_filters(self, list_tickets):
        list_tickets.return_value = {
            "tickets": [
                TestDataFactory.ticket_payload("aaa111", productName="Gadget"),
                TestDataFactory.ticket_payload("bbb222"),
            ],
            "totalPages": 1,
        }
        login_as(self.client, Role.SALES)
        response = self.client.get("/ticketspage", {"q": "gadget", "page": "0"})
        self.assertEqual([t.id for t in response.context["tickets"]], ["aaa111"])
        list_tickets.assert_called_once_with(page=1, limit=10)

    @mock.patch.object(BackendClient, "list_tickets")
    def test_non_text_subject_does_not_break_search(self, list_tickets):
        list_tickets.return_value = {
            "tickets": [TestDataFactory.ticket_payload("aaa111", subject=42, productName="Widget Pro")],
            "totalPages": 1,
        }
        login_as(self.client, Role.SALES)
        response = self.client.get("/ticketspage", {"q": "widget"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([t.id for t in response.context["tickets"]], ["aaa111"])

    @mock.patch.object(BackendClient, "list_tickets", side_effect=BackendUnavailable())
    def test_backend_failure_shows_message(self, list_tickets):
        login_as(self.client, Role.SALES)
        response = self.client.get("/ticketspage")
        self.assertContains(response, "Could not load tickets")
        self.assertContains(response, "No tickets found")

    def test_purchase_role_cannot_open_sales_list(self):
        login_as(self.client, Role.PURCHASE)
        response = self.client.get("/ticketspage")
        self.assertRedirects(response, "/unauthorized", fetch_redirect_response=False)

    @mock.patch.object(BackendClient, "list_tickets")
    def test_admin_overview(self, list_tickets):
        list_tickets.return_value = [TestDataFactory.ticket_payload("aaa111")]
        login_as(self.client, Role.ADMIN)
        response = self.client.get("/admin/tickets", {"date_range": "all"})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "#aaa111")


class TicketDetailViewTests(StagingDirMixin, SimpleTestCase):
    """Ticket detail, responses and closing"""

    def setUp(self):
        super().setUp()
        patcher = mock.patch.object(BackendClient, "list_responses", return_value=[])
        self.list_responses = patcher.start()
        self.addCleanup(patcher.stop)

    @mock.patch.object(BackendClient, "update_ticket_status")
    @mock.patch.object(BackendClient, "get_ticket")
    def test_close_ticket_hides_response_form(self, get_ticket, update_ticket_status):
        get_ticket.return_value = TestDataFactory.ticket_payload("abc123", status="pending")
        login_as(self.client, Role.SALES)

        response = self.client.get("/tickets/abc123")
        self.assertContains(response, "Close Ticket")
        self.assertContains(response, 'class="response-form"')

        response = self.client.post("/tickets/abc123/close")
        self.assertRedirects(response, "/tickets/abc123", fetch_redirect_response=False)
        update_ticket_status.assert_called_once_with("abc123", "completed")

        get_ticket.return_value = TestDataFactory.ticket_payload("abc123", status="completed")
        response = self.client.get("/tickets/abc123")
        self.assertContains(response, "Ticket closed.")
        self.assertContains(response, "Completed")
        self.assertNotContains(response, "Close Ticket")
        self.assertNotContains(response, 'class="response-form"')

    @mock.patch.object(BackendClient, "update_ticket_status")
    @mock.patch.object(BackendClient, "get_ticket")
    def test_close_failure_keeps_ticket_open(self, get_ticket, update_ticket_status):
        get_ticket.return_value = TestDataFactory.ticket_payload("abc123", status="pending")
        update_ticket_status.side_effect = BackendResponseError(500, "Database offline")
        login_as(self.client, Role.SALES)

        response = self.client.post("/tickets/abc123/close", follow=True)
        self.assertContains(response, "Failed to close ticket: Database offline")
        self.assertContains(response, "Close Ticket")

    @mock.patch.object(BackendClient, "update_ticket_status")
    @mock.patch.object(BackendClient, "get_ticket")
    def test_purchase_cannot_close(self, get_ticket, update_ticket_status):
        get_ticket.return_value = TestDataFactory.ticket_payload("abc123", status="pending")
        login_as(self.client, Role.PURCHASE, name="Pat Buyer")

        response = self.client.get("/tickets/abc123")
        self.assertNotContains(response, "Close Ticket")
        self.assertContains(response, 'class="response-form"')

        response = self.client.post("/tickets/abc123/close")
        self.assertRedirects(response, "/unauthorized", fetch_redirect_response=False)
        update_ticket_status.assert_not_called()

    @mock.patch.object(BackendClient, "get_ticket")
    def test_missing_ticket_is_404(self, get_ticket):
        get_ticket.side_effect = BackendResponseError(404, "Not found")
        login_as(self.client, Role.SALES)
        response = self.client.get("/tickets/nope")
        self.assertEqual(response.status_code, 404)

    @mock.patch.object(BackendClient, "get_ticket", side_effect=BackendUnavailable())
    def test_unreachable_backend_renders_error_state(self, get_ticket):
        login_as(self.client, Role.SALES)
        response = self.client.get("/tickets/abc123")
        self.assertContains(response, "Ticket not found", status_code=502)

    @mock.patch.object(BackendClient, "add_response")
    @mock.patch.object(BackendClient, "get_ticket")
    def test_response_with_staged_attachment(self, get_ticket, add_response):
        get_ticket.return_value = TestDataFactory.ticket_payload("abc123", status="approved")
        login_as(self.client, Role.PURCHASE, name="Pat Buyer")

        upload = SimpleUploadedFile("quote.pdf", b"%PDF-1.4 quote", content_type="application/pdf")
        response = self.client.post("/tickets/abc123", {"action": "upload", "attachments": upload})
        self.assertEqual(response.status_code, 200)
        staged = self.client.session[PENDING_UPLOADS_KEY]["response-abc123"]
        self.assertEqual(staged[0]["name"], "quote.pdf")

        response = self.client.post(
            "/tickets/abc123", {"action": "submit", "title": "Quote", "description": "See attached"}
        )
        self.assertRedirects(response, "/tickets/abc123", fetch_redirect_response=False)
        args = add_response.call_args[0]
        self.assertEqual(args[:3], ("abc123", "Quote", "See attached"))
        self.assertEqual(args[3][0][0], "attachments")
        self.assertEqual(args[3][0][1][0], "quote.pdf")
        self.assertNotIn("response-abc123", self.client.session.get(PENDING_UPLOADS_KEY, {}))
        self.assertFalse(os.path.exists(os.path.join(self.staging_root, staged[0]["storage_name"])))


class TicketFormViewTests(StagingDirMixin, SimpleTestCase):
    """Ticket creation forms"""

    @mock.patch.object(BackendClient, "create_ticket")
    def test_submit_new_product_ticket(self, create_ticket_call):
        login_as(self.client, Role.SALES)
        response = self.client.post(
            "/tickets/createticket/newproduct",
            {"action": "submit", "product_name": "Widget", "subject": "Please stock", "priority": "medium"},
        )
        self.assertRedirects(response, "/ticketspage", fetch_redirect_response=False)
        ticket_type, fields, documents = create_ticket_call.call_args[0]
        self.assertEqual(ticket_type, "new_product")
        self.assertEqual(fields["ticket_type"], "new_product")
        self.assertEqual(fields["product_name"], "Widget")
        self.assertEqual(documents, [])

    @mock.patch.object(BackendClient, "create_ticket")
    def test_invalid_form_does_not_submit(self, create_ticket_call):
        login_as(self.client, Role.SALES)
        response = self.client.post("/tickets/createticket/bulkorder", {"action": "submit", "priority": "low"})
        self.assertEqual(response.status_code, 200)
        self.assertIn("quantity", response.context["form"].errors)
        create_ticket_call.assert_not_called()

    @mock.patch.object(BackendClient, "create_ticket", side_effect=BackendResponseError(400, "Missing quantity"))
    def test_backend_error_keeps_staged_documents(self, create_ticket_call):
        login_as(self.client, Role.SALES)
        upload = SimpleUploadedFile("datasheet.txt", b"dimensions", content_type="text/plain")
        response = self.client.post(
            "/tickets/createticket/existingproduct",
            {"action": "submit", "product_id": "SKU-1", "current_product_name": "Widget", "priority": "low",
             "documents": upload},
        )
        self.assertContains(response, "Error submitting ticket: Missing quantity")
        self.assertEqual(len(response.context["pending"]), 1)

    def test_cancel_and_remount_release_staged_documents(self):
        login_as(self.client, Role.SALES)
        upload = SimpleUploadedFile("photo.png", b"\x89PNG", content_type="image/png")
        self.client.post("/tickets/createticket/newproduct", {"action": "upload", "documents": upload})
        staged = self.client.session[PENDING_UPLOADS_KEY]["ticket-new_product"]
        path = os.path.join(self.staging_root, staged[0]["storage_name"])
        self.assertTrue(os.path.exists(path))

        response = self.client.post("/tickets/createticket/newproduct", {"action": "cancel"})
        self.assertRedirects(response, "/tickets/createticket/newproduct", fetch_redirect_response=False)
        self.assertFalse(os.path.exists(path))

        upload = SimpleUploadedFile("again.png", b"\x89PNG", content_type="image/png")
        self.client.post("/tickets/createticket/newproduct", {"action": "upload", "documents": upload})
        staged = self.client.session[PENDING_UPLOADS_KEY]["ticket-new_product"]
        path = os.path.join(self.staging_root, staged[0]["storage_name"])
        self.client.get("/tickets/createticket/newproduct")
        self.assertFalse(os.path.exists(path))

    @mock.patch.object(BackendClient, "create_ticket")
    def test_submit_after_staged_documents_were_purged(self, create_ticket_call):
        login_as(self.client, Role.SALES)
        upload = SimpleUploadedFile("a.txt", b"alpha", content_type="text/plain")
        self.client.post("/tickets/createticket/newproduct", {"action": "upload", "documents": upload})
        call_command("purge_staged_uploads", "--max-age-hours", "-1", stdout=StringIO())

        response = self.client.post(
            "/tickets/createticket/newproduct",
            {"action": "submit", "product_name": "Widget", "subject": "Please stock", "priority": "medium"},
        )
        self.assertRedirects(response, "/ticketspage", fetch_redirect_response=False)
        self.assertEqual(create_ticket_call.call_args[0][2], [])
        self.assertNotIn("ticket-new_product", self.client.session.get(PENDING_UPLOADS_KEY, {}))
