"""
HTTP client for the SalesDesk REST backend.

Every page goes through ``BackendClient.fetch``/``send`` so the bearer header,
timeout and error translation are applied the same way everywhere.
"""
import logging

import requests
from django.conf import settings

from .errors import BackendResponseError, BackendUnavailable
from .normalize import unwrap_list

logger = logging.getLogger(__name__)


def _extract_message(response):
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


class BackendClient:
    def __init__(self, token=None, base_url=None, timeout=None, session=None):
        self.base_url = (base_url or settings.BACKEND_BASE_URL).rstrip("/")
        self.token = token
        self.timeout = timeout if timeout is not None else settings.BACKEND_TIMEOUT
        self.http = session or requests.Session()

    @classmethod
    def for_request(cls, request):
        portal_session = getattr(request, "portal_session", None)
        token = portal_session.token if portal_session is not None else None
        return cls(token=token)

    def _url(self, endpoint):
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _headers(self):
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def send(self, method, endpoint, params=None, json=None, data=None, files=None):
        url = self._url(endpoint)
        try:
            response = self.http.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                files=files,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            logger.warning("Backend unreachable for %s %s: %s", method, url, exc)
            raise BackendUnavailable() from exc

        if not response.ok:
            message = _extract_message(response)
            logger.warning(
                "Backend answered %s %s with status %s (%s)",
                method,
                url,
                response.status_code,
                message or "no message",
            )
            raise BackendResponseError(response.status_code, message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Backend answered %s %s with a non-JSON body", method, url)
            raise BackendResponseError(response.status_code, "The server sent an unreadable response.") from exc

    def fetch(self, endpoint, params=None):
        return self.send("GET", endpoint, params=params)

    def fetch_list(self, endpoint, params=None, *keys):
        return unwrap_list(self.fetch(endpoint, params=params), *keys)

    # Session

    def login(self, email, password):
        return self.send(
            "POST",
            settings.BACKEND_LOGIN_PATH,
            json={"email": email, "password": password},
        )

    # Tickets

    def list_tickets(self, page=1, limit=10):
        return self.fetch("/tickets", params={"page": page, "limit": limit})

    def get_ticket(self, ticket_id):
        return self.fetch(f"/tickets/{ticket_id}")

    def update_ticket_status(self, ticket_id, status):
        return self.send("PUT", f"/tickets/{ticket_id}/status", json={"status": status})

    def list_responses(self, ticket_id):
        return self.fetch_list(f"/tickets/{ticket_id}/responses", None, "responses")

    def add_response(self, ticket_id, title, description, attachments=()):
        return self.send(
            "POST",
            f"/tickets/{ticket_id}/responses",
            data={"title": title, "description": description},
            files=list(attachments) or None,
        )

    def create_ticket(self, ticket_type, fields, supporting_docs=()):
        return self.send(
            "POST",
            f"/tickets/{ticket_type}",
            data=fields,
            files=list(supporting_docs) or None,
        )

    # Catalog

    def list_products(self):
        return self.fetch_list("/products", None, "products")

    def create_product(self, fields, images=()):
        return self.send("POST", "/products", data=fields, files=list(images) or None)

    def list_categories(self):
        return self.fetch_list("/categories", None, "categories")

    # Suppliers

    def list_suppliers(self, page=1, limit=8):
        return self.fetch("/suppliers", params={"page": page, "limit": limit})

    def create_supplier(self, fields):
        return self.send("POST", "/suppliers", json=fields)

    # Administration

    def list_users(self):
        return self.fetch_list("/admin/users", None, "users")

    def add_user(self, fields):
        return self.send("POST", "/admin/add-user", json=fields)

    # Dashboards

    def sales_dashboard(self):
        return self.fetch("/api/sales-dashboard")
