"""
Tests for the inventory catalog pages.
"""
from decimal import Decimal
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase

from portal.roles import Role
from portal.testing import StagingDirMixin, TestDataFactory, login_as
from services.backend_api.client import BackendClient
from services.backend_api.errors import BackendUnavailable
from services.uploads.staging import PENDING_UPLOADS_KEY
from solutions.catalog.forms import ProductForm
from solutions.catalog.records import category_choices, matches_query, product_from_payload


class ProductRecordTests(SimpleTestCase):
    """Product payload handling"""

    def test_product_from_payload(self):
        product = product_from_payload(
            TestDataFactory.product_payload(3, images=[{"url": "http://cdn.test/p3.png"}])
        )
        self.assertEqual(product["name"], "Product 3")
        self.assertEqual(product["category"], "Hardware")
        self.assertEqual(product["price"], Decimal("19.99"))
        self.assertEqual(product["image_url"], "http://cdn.test/p3.png")

    def test_missing_fields_have_fallbacks(self):
        product = product_from_payload({"productName": "Loose Bolt", "price": "n/a"})
        self.assertEqual(product["name"], "Loose Bolt")
        self.assertEqual(product["category"], "Uncategorized")
        self.assertIsNone(product["price"])
        self.assertEqual(product["image_url"], "")

    def test_matches_query(self):
        product = product_from_payload(TestDataFactory.product_payload(7))
        self.assertTrue(matches_query(product, "sku-007"))
        self.assertTrue(matches_query(product, "hard"))
        self.assertFalse(matches_query(product, "software"))

    def test_category_choices(self):
        self.assertEqual(
            category_choices([{"id": 1, "name": "Hardware"}, "Tools", {"id": 2}]),
            [("1", "Hardware"), ("Tools", "Tools")],
        )

    def test_product_form_payload(self):
        form = ProductForm(
            {"product_name": "Lamp", "sku": "L-1", "category": "1", "price": "12.5", "stock": "4"},
            categories=[("1", "Hardware")],
        )
        self.assertTrue(form.is_valid(), form.errors)
        payload = form.to_payload()
        self.assertEqual(payload["productName"], "Lamp")
        self.assertEqual(payload["price"], "12.5")
        self.assertEqual(payload["stock"], "4")


class InventoryViewTests(StagingDirMixin, SimpleTestCase):
    """Inventory list and product creation"""

    products = [TestDataFactory.product_payload(i) for i in range(1, 26)]

    @mock.patch.object(BackendClient, "list_products")
    def test_any_role_can_browse(self, list_products):
        list_products.return_value = self.products
        for role in (Role.SALES, Role.PURCHASE, Role.ADMIN):
            login_as(self.client, role)
            response = self.client.get("/inventory")
            self.assertEqual(response.status_code, 200)
            self.assertEqual(len(response.context["products"]), 10)

    @mock.patch.object(BackendClient, "list_products")
    def test_page_is_clamped(self, list_products):
        list_products.return_value = self.products
        login_as(self.client, Role.SALES)
        response = self.client.get("/inventory", {"page": "99"})
        self.assertEqual(response.context["page_obj"].number, 3)
        self.assertEqual(len(response.context["products"]), 5)
        self.assertEqual(response.context["page_numbers"], [1, 2, 3])

    @mock.patch.object(BackendClient, "list_products")
    def test_search_filters_products(self, list_products):
        list_products.return_value = self.products
        login_as(self.client, Role.PURCHASE)
        response = self.client.get("/inventory", {"q": "SKU-012"})
        self.assertEqual([p["name"] for p in response.context["products"]], ["Product 12"])

    @mock.patch.object(BackendClient, "list_products", side_effect=BackendUnavailable())
    def test_backend_failure(self, list_products):
        login_as(self.client, Role.SALES)
        response = self.client.get("/inventory")
        self.assertContains(response, "Could not load products")
        self.assertContains(response, "No products found")

    @mock.patch.object(BackendClient, "list_categories", return_value=[{"id": 1, "name": "Hardware"}])
    @mock.patch.object(BackendClient, "create_product")
    def test_add_product_with_image(self, create_product, list_categories):
        login_as(self.client, Role.SALES)
        image = SimpleUploadedFile("lamp.png", b"\x89PNG", content_type="image/png")
        self.client.post("/inventory/addnewproduct", {"action": "upload", "images": image})
        self.assertEqual(len(self.client.session[PENDING_UPLOADS_KEY]["product-new"]), 1)

        response = self.client.post(
            "/inventory/addnewproduct",
            {"action": "submit", "product_name": "Lamp", "sku": "L-1", "category": "1", "price": "12.50", "stock": "3"},
        )
        self.assertRedirects(response, "/inventory", fetch_redirect_response=False)
        fields, images = create_product.call_args[0]
        self.assertEqual(fields["productName"], "Lamp")
        self.assertEqual(images[0][0], "images")
        self.assertEqual(images[0][1][0], "lamp.png")
        self.assertNotIn("product-new", self.client.session[PENDING_UPLOADS_KEY])
