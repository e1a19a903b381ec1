"""
Tests for the supplier pages.
"""
from unittest import mock

from django.test import SimpleTestCase

from portal.roles import Role
from portal.testing import StagingDirMixin, login_as
from services.backend_api.client import BackendClient
from services.backend_api.errors import BackendResponseError
from solutions.suppliers.forms import SupplierForm
from solutions.suppliers.views import supplier_matches


class SupplierFormTests(SimpleTestCase):
    """Supplier form validation and payload"""

    def test_required_fields(self):
        form = SupplierForm({"contact_person": "Lee"})
        self.assertFalse(form.is_valid())
        self.assertIn("company_name", form.errors)
        self.assertIn("email_address", form.errors)

    def test_payload_uses_camel_case(self):
        form = SupplierForm({"company_name": "Acme", "email_address": "sales@acme.test", "phone_number": "555"})
        self.assertTrue(form.is_valid(), form.errors)
        payload = form.to_payload()
        self.assertEqual(payload["companyName"], "Acme")
        self.assertEqual(payload["emailAddress"], "sales@acme.test")
        self.assertEqual(payload["phoneNumber"], "555")
        self.assertEqual(payload["websiteUrl"], "")

    def test_supplier_matches(self):
        supplier = {"company_name": "Acme Metals", "products_services": "Steel sheets"}
        self.assertTrue(supplier_matches(supplier, "steel"))
        self.assertTrue(supplier_matches(supplier, ""))
        self.assertFalse(supplier_matches(supplier, "plastic"))


class SupplierViewTests(StagingDirMixin, SimpleTestCase):
    """Supplier list and creation"""

    @mock.patch.object(BackendClient, "list_suppliers")
    def test_list_with_search_on_current_page(self, list_suppliers):
        list_suppliers.return_value = {
            "suppliers": [
                {"companyName": "Acme Metals", "emailAddress": "a@acme.test"},
                {"companyName": "Bolt Works", "emailAddress": "b@bolt.test"},
            ],
            "totalPages": 4,
        }
        login_as(self.client, Role.PURCHASE)
        response = self.client.get("/suppliers", {"q": "bolt", "page": "2"})
        self.assertEqual([s["company_name"] for s in response.context["suppliers"]], ["Bolt Works"])
        self.assertEqual(response.context["page_numbers"], [1, 2, 3, 4])
        list_suppliers.assert_called_once_with(page=2, limit=8)

    def test_sales_cannot_open_suppliers(self):
        login_as(self.client, Role.SALES)
        response = self.client.get("/suppliers")
        self.assertRedirects(response, "/unauthorized", fetch_redirect_response=False)

    @mock.patch.object(BackendClient, "create_supplier")
    def test_add_supplier(self, create_supplier):
        login_as(self.client, Role.PURCHASE)
        response = self.client.post(
            "/supplier/addnewsupplier",
            {"action": "submit", "company_name": "Acme", "email_address": "sales@acme.test"},
        )
        self.assertRedirects(response, "/suppliers", fetch_redirect_response=False)
        self.assertEqual(create_supplier.call_args[0][0]["companyName"], "Acme")

    @mock.patch.object(BackendClient, "create_supplier", side_effect=BackendResponseError(409, "Supplier already exists"))
    def test_add_supplier_error(self, create_supplier):
        login_as(self.client, Role.PURCHASE)
        response = self.client.post(
            "/supplier/addnewsupplier",
            {"action": "submit", "company_name": "Acme", "email_address": "sales@acme.test"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Supplier already exists")
