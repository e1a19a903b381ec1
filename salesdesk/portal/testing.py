"""
Test helpers shared by the app test suites.
"""
import shutil
import tempfile
from importlib import import_module

from django.conf import settings

from portal.roles import Role


class TestDataFactory:
    """Backend payloads shaped the way the REST API sends them."""

    @staticmethod
    def user_payload(role=Role.SALES, name="Sam Seller", user_id="u-1", email=None):
        role_value = getattr(role, "value", role)
        return {
            "id": user_id,
            "name": name,
            "role": role_value,
            "email": email or f"{name.split()[0].lower()}@example.com",
        }

    @staticmethod
    def ticket_payload(ticket_id="abc123def", status="pending", **overrides):
        payload = {
            "id": ticket_id,
            "ticketType": "new_product",
            "status": status,
            "priority": "medium",
            "productName": "Widget Pro",
            "subject": "Need a new widget",
            "createdBy": {"id": "u-1", "name": "Sam Seller"},
            "assignedTo": "Pat Buyer",
            "createdAt": "2026-10-01T09:30:00Z",
        }
        payload.update(overrides)
        return payload

    @staticmethod
    def product_payload(index=1, **overrides):
        payload = {
            "id": index,
            "name": f"Product {index}",
            "sku": f"SKU-{index:03d}",
            "category": {"id": 1, "name": "Hardware"},
            "price": "19.99",
            "stock": 5,
        }
        payload.update(overrides)
        return payload


def login_as(client, role=Role.SALES, token="test-token", **user):
    """Put a signed-in portal session into ``client``'s cookie jar."""
    store = import_module(settings.SESSION_ENGINE).SessionStore()
    store[settings.PORTAL_SESSION_KEY] = {
        "token": token,
        "user": TestDataFactory.user_payload(role=role, **user),
    }
    store.save()
    client.cookies[settings.SESSION_COOKIE_NAME] = store.session_key
    return store


class StagingDirMixin:
    """Point the upload staging storage at a throwaway directory."""

    def setUp(self):
        super().setUp()
        self.staging_root = tempfile.mkdtemp(prefix="salesdesk-staging-")
        self.addCleanup(shutil.rmtree, self.staging_root, ignore_errors=True)
        override = self.settings(UPLOAD_STAGING_ROOT=self.staging_root)
        override.enable()
        self.addCleanup(override.disable)
