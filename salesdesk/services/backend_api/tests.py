"""
Tests for the REST backend client and payload normalization.
"""
from unittest import mock

import requests
from django.test import SimpleTestCase, override_settings

from services.backend_api.client import BackendClient
from services.backend_api.errors import ApiError, BackendResponseError, BackendUnavailable
from services.backend_api.normalize import normalize_keys, parse_json_list, snake_case, unwrap_list


def fake_response(status_code=200, body=None, content=None):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    if body is None and content is None:
        response.content = b""
        response.json.side_effect = ValueError("no body")
    elif body is not None:
        response.content = b"{...}"
        response.json.return_value = body
    else:
        response.content = content
        response.json.side_effect = ValueError("not json")
    return response


@override_settings(BACKEND_BASE_URL="http://backend.test/", BACKEND_TIMEOUT=4.0, BACKEND_LOGIN_PATH="/auth/login")
class BackendClientTests(SimpleTestCase):
    """Request shaping and error translation"""

    def setUp(self):
        self.http = mock.Mock()
        self.client_api = BackendClient(token="tok-1", session=self.http)

    def test_bearer_header_and_timeout(self):
        self.http.request.return_value = fake_response(body={"tickets": []})
        self.client_api.list_tickets(page=2, limit=10)

        method, url = self.http.request.call_args[0]
        kwargs = self.http.request.call_args[1]
        self.assertEqual((method, url), ("GET", "http://backend.test/tickets"))
        self.assertEqual(kwargs["params"], {"page": 2, "limit": 10})
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok-1")
        self.assertEqual(kwargs["timeout"], 4.0)

    def test_no_token_no_authorization_header(self):
        self.http.request.return_value = fake_response(body={"token": "t", "user": {}})
        client = BackendClient(session=self.http)
        client.login("sam@example.com", "secret")

        method, url = self.http.request.call_args[0]
        kwargs = self.http.request.call_args[1]
        self.assertEqual((method, url), ("POST", "http://backend.test/auth/login"))
        self.assertEqual(kwargs["json"], {"email": "sam@example.com", "password": "secret"})
        self.assertNotIn("Authorization", kwargs["headers"])

    def test_close_sends_put_with_completed_status(self):
        self.http.request.return_value = fake_response(body={"id": "abc"})
        self.client_api.update_ticket_status("abc", "completed")
        method, url = self.http.request.call_args[0]
        self.assertEqual((method, url), ("PUT", "http://backend.test/tickets/abc/status"))
        self.assertEqual(self.http.request.call_args[1]["json"], {"status": "completed"})

    def test_multipart_ticket_creation(self):
        self.http.request.return_value = fake_response(body={"id": "new"})
        parts = [("supporting_docs", ("a.pdf", b"data", "application/pdf"))]
        self.client_api.create_ticket("bulk_order", {"quantity": "5"}, parts)
        kwargs = self.http.request.call_args[1]
        self.assertEqual(self.http.request.call_args[0][1], "http://backend.test/tickets/bulk_order")
        self.assertEqual(kwargs["data"], {"quantity": "5"})
        self.assertEqual(kwargs["files"], parts)

    def test_no_files_sends_none(self):
        self.http.request.return_value = fake_response(body={"id": "r1"})
        self.client_api.add_response("abc", "Title", "Body")
        self.assertIsNone(self.http.request.call_args[1]["files"])

    def test_list_endpoints_unwrap_envelopes(self):
        self.http.request.return_value = fake_response(body={"data": [{"id": 1}]})
        self.assertEqual(self.client_api.list_products(), [{"id": 1}])
        self.http.request.return_value = fake_response(body={"users": [{"id": 2}]})
        self.assertEqual(self.client_api.list_users(), [{"id": 2}])

    def test_error_status_carries_backend_message(self):
        self.http.request.return_value = fake_response(400, body={"message": "Quantity is required"})
        with self.assertRaises(BackendResponseError) as ctx:
            self.client_api.create_supplier({"companyName": "Acme"})
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.message, "Quantity is required")
        self.assertTrue(ctx.exception.is_client_error)

    def test_error_status_without_message(self):
        self.http.request.return_value = fake_response(503)
        with self.assertRaises(BackendResponseError) as ctx:
            self.client_api.list_users()
        self.assertEqual(ctx.exception.message, "The server responded with status 503.")
        self.assertFalse(ctx.exception.is_client_error)

    def test_network_failure_is_unavailable(self):
        self.http.request.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertLogs("services.backend_api.client", level="WARNING"):
            with self.assertRaises(BackendUnavailable) as ctx:
                self.client_api.sales_dashboard()
        self.assertIsInstance(ctx.exception, ApiError)
        self.assertIn("unreachable", ctx.exception.message)

    def test_empty_body_is_none(self):
        self.http.request.return_value = fake_response(204)
        self.assertIsNone(self.client_api.update_ticket_status("abc", "completed"))

    def test_unreadable_body(self):
        self.http.request.return_value = fake_response(200, content=b"<html>")
        with self.assertRaises(BackendResponseError):
            self.client_api.get_ticket("abc")

    def test_for_request_uses_session_token(self):
        request = mock.Mock()
        request.portal_session.token = "from-session"
        self.assertEqual(BackendClient.for_request(request).token, "from-session")


class NormalizeTests(SimpleTestCase):
    """Key casing and list envelopes"""

    def test_snake_case(self):
        self.assertEqual(snake_case("expectedNewPrice"), "expected_new_price")
        self.assertEqual(snake_case("product_name"), "product_name")
        self.assertEqual(snake_case("ticketID"), "ticket_id")

    def test_normalize_keys_is_shallow(self):
        record = normalize_keys({"createdBy": {"firstName": "Sam"}, "id": 1})
        self.assertEqual(record, {"created_by": {"firstName": "Sam"}, "id": 1})
        self.assertEqual(normalize_keys(["x"]), ["x"])

    def test_unwrap_list(self):
        self.assertEqual(unwrap_list([1, 2]), [1, 2])
        self.assertEqual(unwrap_list({"suppliers": [3]}, "suppliers"), [3])
        self.assertEqual(unwrap_list({"data": [4]}, "suppliers"), [4])
        self.assertEqual(unwrap_list({"data": {"x": 1}}), [])
        self.assertEqual(unwrap_list(None), [])

    def test_parse_json_list(self):
        self.assertEqual(parse_json_list('["a", "b"]'), ["a", "b"])
        self.assertEqual(parse_json_list("plain.pdf"), ["plain.pdf"])
        self.assertEqual(parse_json_list(""), [])
        self.assertEqual(parse_json_list(["x"]), ["x"])
