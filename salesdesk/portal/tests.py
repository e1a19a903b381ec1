"""
Tests for sign-in, role guards, navigation and the dashboards.
"""
from unittest import mock

from django.conf import settings
from django.contrib.sessions.backends.signed_cookies import SessionStore
from django.template import Context, Template
from django.test import RequestFactory, SimpleTestCase

from portal.access_control import AccessDecision, access_rules, resolve_access, role_required
from portal.checks import role_tables_check
from portal.navigation import active_nav, nav_items_for
from portal.roles import Role, dashboard_for, get_role_label, parse_role
from portal.session import PortalSession, SessionUser
from portal.testing import StagingDirMixin, TestDataFactory, login_as
from portal.views import role_counts
from services.backend_api.client import BackendClient
from services.backend_api.errors import BackendResponseError
from services.uploads.staging import PENDING_UPLOADS_KEY


class FakeSession:
    def __init__(self, token=None, user=None):
        self.token = token
        self.user = user

    def is_logged_in(self):
        return self.token is not None


class RoleTests(SimpleTestCase):
    """Role parsing and lookups"""

    def test_parse_known_roles(self):
        self.assertIs(parse_role("sales"), Role.SALES)
        self.assertIs(parse_role(" Purchase "), Role.PURCHASE)
        self.assertIs(parse_role(Role.ADMIN), Role.ADMIN)

    def test_reserved_and_unknown_roles_parse_to_none(self):
        self.assertIsNone(parse_role("manager"))
        self.assertIsNone(parse_role("superuser"))
        self.assertIsNone(parse_role(None))

    def test_dashboard_for_each_role(self):
        self.assertEqual(dashboard_for("sales"), "portal:sales_dashboard")
        self.assertEqual(dashboard_for("purchase"), "portal:purchase_dashboard")
        self.assertEqual(dashboard_for("admin"), "portal:admin_dashboard")
        self.assertIsNone(dashboard_for("manager"))

    def test_role_label(self):
        self.assertEqual(get_role_label("purchase"), "Purchase")
        self.assertEqual(get_role_label("manager"), "Unknown")

    def test_role_label_filter(self):
        template = Template("{% load role_tags %}{{ value|role_label }}")
        self.assertEqual(template.render(Context({"value": "purchase"})), "Purchase")
        self.assertEqual(template.render(Context({"value": SessionUser(id="u-1", name="Ada Admin", role=Role.ADMIN)})), "Admin")
        self.assertEqual(template.render(Context({"value": "manager"})), "Unknown")

    def test_role_tables_are_complete(self):
        self.assertEqual(role_tables_check(None), [])


class NavigationTests(SimpleTestCase):
    """Sidebar entries per role"""

    def test_sales_navigation(self):
        labels = [item.label for item in nav_items_for(Role.SALES)]
        self.assertEqual(labels, ["Dashboard", "Tickets", "Inventory"])

    def test_purchase_navigation(self):
        paths = [item.path for item in nav_items_for("purchase")]
        self.assertEqual(paths, ["/purchase/dashboard", "/suppliers", "/inventory"])

    def test_admin_navigation(self):
        paths = [item.path for item in nav_items_for(Role.ADMIN)]
        self.assertEqual(paths, ["/admin/dashboard", "/admin/users", "/admin/tickets", "/inventory"])

    def test_unknown_role_has_no_navigation(self):
        self.assertEqual(nav_items_for(None), ())
        self.assertEqual(nav_items_for("manager"), ())

    def test_active_entry_matches_current_path(self):
        entries = active_nav(Role.SALES, "/ticketspage/")
        active = [entry["item"].label for entry in entries if entry["active"]]
        self.assertEqual(active, ["Tickets"])


class ResolveAccessTests(SimpleTestCase):
    """The guard state machine"""

    def test_no_session_means_login(self):
        self.assertIs(resolve_access(None, [Role.SALES]), AccessDecision.LOGIN)
        self.assertIs(resolve_access(FakeSession(), [Role.SALES]), AccessDecision.LOGIN)

    def test_token_without_user_is_unauthorized(self):
        self.assertIs(resolve_access(FakeSession(token="t"), [Role.SALES]), AccessDecision.UNAUTHORIZED)
        self.assertIs(resolve_access(FakeSession(token="t")), AccessDecision.UNAUTHORIZED)

    def test_role_not_allowed(self):
        user = SessionUser(id="1", name="Pat", role=Role.PURCHASE)
        session = FakeSession(token="t", user=user)
        self.assertIs(resolve_access(session, [Role.ADMIN]), AccessDecision.UNAUTHORIZED)

    def test_role_allowed(self):
        user = SessionUser(id="1", name="Ada", role=Role.ADMIN)
        session = FakeSession(token="t", user=user)
        self.assertIs(resolve_access(session, ["admin", "sales"]), AccessDecision.AUTHORIZED)

    def test_no_roles_means_any_signed_in_user(self):
        user = SessionUser(id="1", name="Nobody", role=None)
        self.assertIs(resolve_access(FakeSession(token="t", user=user)), AccessDecision.AUTHORIZED)

    def test_user_without_role_is_refused_restricted_routes(self):
        user = SessionUser(id="1", name="Morgan", role=None)
        session = FakeSession(token="t", user=user)
        self.assertIs(resolve_access(session, [Role.SALES]), AccessDecision.UNAUTHORIZED)

    def test_decorator_records_allowed_roles(self):
        @role_required(Role.SALES, "manager")
        def view(request):
            return None

        self.assertEqual(view.allowed_roles, frozenset({Role.SALES}))
        self.assertTrue(view.login_required)

    def test_decorator_redirects(self):
        @role_required(Role.ADMIN)
        def view(request):
            return "ok"

        request = RequestFactory().get("/somewhere")
        request.portal_session = FakeSession()
        self.assertEqual(view(request)["Location"], settings.LOGIN_URL)

        request.portal_session = FakeSession(token="t", user=SessionUser(id="1", name="Sam", role=Role.SALES))
        self.assertEqual(view(request)["Location"], settings.UNAUTHORIZED_URL)

    def test_access_rules_cover_every_dashboard(self):
        rules = dict(access_rules())
        self.assertEqual(rules["/sales/dashboard"], frozenset({Role.SALES}))
        self.assertEqual(rules["/purchase/dashboard"], frozenset({Role.PURCHASE}))
        self.assertEqual(rules["/admin/dashboard"], frozenset({Role.ADMIN}))
        self.assertEqual(rules["/admin/users"], frozenset({Role.ADMIN}))
        self.assertEqual(rules["/inventory"], frozenset())
        self.assertNotIn("/login", rules)


class PortalSessionTests(StagingDirMixin, SimpleTestCase):
    """Session store round trips"""

    def test_user_round_trip(self):
        user = SessionUser.from_payload({"_id": "42", "name": "Ada", "role": "ADMIN", "email": "ada@example.com"})
        self.assertEqual(user.id, "42")
        self.assertIs(user.role, Role.ADMIN)
        self.assertEqual(SessionUser.from_payload(user.as_payload()), user)

    def test_login_and_logout(self):
        store = SessionStore()
        session = PortalSession(store)
        self.assertFalse(session.is_logged_in())

        session.login("tok", {"id": "1", "name": "Sam", "role": "sales"})
        self.assertTrue(session.is_logged_in())
        self.assertEqual(session.token, "tok")
        self.assertIs(session.role, Role.SALES)
        self.assertEqual(list(store[settings.PORTAL_SESSION_KEY]), ["token", "user"])

        store[PENDING_UPLOADS_KEY] = {}
        session.logout()
        self.assertFalse(session.is_logged_in())
        self.assertIsNone(session.user)
        self.assertNotIn(PENDING_UPLOADS_KEY, store)


class LoginViewTests(StagingDirMixin, SimpleTestCase):
    """Sign-in, landing redirects and sign-out"""

    def test_unauthenticated_requests_go_to_login(self):
        for path in ("/", "/sales/dashboard", "/ticketspage", "/inventory", "/suppliers", "/admin/users"):
            response = self.client.get(path)
            self.assertRedirects(response, "/login", fetch_redirect_response=False)

    def test_login_page_renders(self):
        response = self.client.get("/login")
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'name="email"')

    @mock.patch.object(BackendClient, "login")
    def test_login_stores_session_and_lands_on_dashboard(self, login):
        login.return_value = {"token": "abc", "user": TestDataFactory.user_payload(Role.PURCHASE, name="Pat Buyer")}
        response = self.client.post("/login", {"email": "pat@example.com", "password": "secret"})
        self.assertRedirects(response, "/", fetch_redirect_response=False)
        login.assert_called_once_with("pat@example.com", "secret")

        blob = self.client.session[settings.PORTAL_SESSION_KEY]
        self.assertEqual(blob["token"], "abc")
        self.assertEqual(blob["user"]["role"], "purchase")

        response = self.client.get("/")
        self.assertRedirects(response, "/purchase/dashboard", fetch_redirect_response=False)

    @mock.patch.object(BackendClient, "login")
    def test_login_accepts_access_token_key(self, login):
        login.return_value = {"accessToken": "xyz", "user": TestDataFactory.user_payload(Role.SALES)}
        self.client.post("/login", {"email": "sam@example.com", "password": "secret"})
        self.assertEqual(self.client.session[settings.PORTAL_SESSION_KEY]["token"], "xyz")

    @mock.patch.object(BackendClient, "login")
    def test_login_failure_shows_backend_message(self, login):
        login.side_effect = BackendResponseError(401, "Invalid credentials")
        response = self.client.post("/login", {"email": "sam@example.com", "password": "nope"})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Invalid credentials")
        self.assertNotIn(settings.PORTAL_SESSION_KEY, self.client.session)

    def test_reserved_role_lands_on_unauthorized(self):
        login_as(self.client, role="manager")
        response = self.client.get("/")
        self.assertRedirects(response, "/unauthorized", fetch_redirect_response=False)

    def test_logout_clears_session(self):
        login_as(self.client, Role.SALES)
        response = self.client.post("/logout")
        self.assertRedirects(response, "/login", fetch_redirect_response=False)
        self.assertNotIn(settings.PORTAL_SESSION_KEY, self.client.session)

    def test_unauthorized_page(self):
        response = self.client.get("/unauthorized")
        self.assertEqual(response.status_code, 403)
        self.assertContains(response, "Unauthorized", status_code=403)


class DashboardTests(StagingDirMixin, SimpleTestCase):
    """Role dashboards"""

    def test_purchase_user_cannot_open_admin_dashboard(self):
        login_as(self.client, Role.PURCHASE)
        response = self.client.get("/admin/dashboard")
        self.assertRedirects(response, "/unauthorized", fetch_redirect_response=False)

    def test_sales_user_cannot_open_purchase_dashboard(self):
        login_as(self.client, Role.SALES)
        response = self.client.get("/purchase/dashboard")
        self.assertRedirects(response, "/unauthorized", fetch_redirect_response=False)

    @mock.patch.object(BackendClient, "sales_dashboard")
    def test_sales_dashboard_shows_metrics(self, sales_dashboard):
        sales_dashboard.return_value = {
            "metrics": {"totalSalesFormatted": "$12,400", "newLeads": 7},
            "recentDeals": [{"clientName": "Acme", "dealValue": "$900", "stage": "Won", "owner": "Sam"}],
        }
        login_as(self.client, Role.SALES)
        response = self.client.get("/sales/dashboard")
        self.assertContains(response, "$12,400")
        self.assertContains(response, "Acme")
        self.assertContains(response, 'href="/ticketspage"')

    @mock.patch.object(BackendClient, "list_tickets")
    def test_purchase_dashboard_lists_tickets_awaiting_user(self, list_tickets):
        list_tickets.return_value = {
            "tickets": [
                TestDataFactory.ticket_payload("t-1", assignedTo="Pat Buyer"),
                TestDataFactory.ticket_payload("t-2", assignedTo="Someone Else", productName="Gadget"),
            ],
            "totalPages": 1,
        }
        login_as(self.client, Role.PURCHASE, name="Pat Buyer")
        response = self.client.get("/purchase/dashboard", {"tab": "Awaiting Me"})
        self.assertEqual([t.id for t in response.context["requires_response"]], ["t-1"])
        self.assertEqual([t.id for t in response.context["tickets"]], ["t-1"])
        list_tickets.assert_called_once_with(page=1, limit=settings.PURCHASE_TICKETS_PAGE_SIZE)


class AdminUserTests(StagingDirMixin, SimpleTestCase):
    """Admin user management"""

    users = [
        {"id": 1, "name": "Sam", "email": "sam@example.com", "role": "sales"},
        {"id": 2, "name": "Pat", "email": "pat@example.com", "role": "purchase"},
        {"id": 3, "name": "Lee", "email": "lee@example.com", "role": "sales"},
        {"id": 4, "name": "Max", "email": "max@example.com", "role": "manager"},
    ]

    def test_role_counts(self):
        users = [{"role_key": parse_role(user["role"])} for user in self.users]
        self.assertEqual(role_counts(users), {"sales": 2, "purchase": 1, "admin": 0})

    @mock.patch.object(BackendClient, "list_users")
    def test_admin_dashboard_counts_roles(self, list_users):
        list_users.return_value = self.users
        login_as(self.client, Role.ADMIN, name="Ada Admin")
        response = self.client.get("/admin/dashboard")
        self.assertEqual(response.context["total_users"], 4)
        self.assertEqual(response.context["role_counts"]["sales"], 2)

    @mock.patch.object(BackendClient, "list_users", return_value=[])
    @mock.patch.object(BackendClient, "add_user")
    def test_add_user(self, add_user, list_users):
        login_as(self.client, Role.ADMIN, name="Ada Admin")
        response = self.client.post(
            "/admin/users",
            {"name": "New Person", "email": "new@example.com", "password": "secret1", "role": "purchase"},
        )
        self.assertRedirects(response, "/admin/users", fetch_redirect_response=False)
        add_user.assert_called_once_with(
            {"name": "New Person", "email": "new@example.com", "password": "secret1", "role": "purchase"}
        )

    @mock.patch.object(BackendClient, "list_users", return_value=[])
    @mock.patch.object(BackendClient, "add_user")
    def test_add_user_rejects_short_password(self, add_user, list_users):
        login_as(self.client, Role.ADMIN, name="Ada Admin")
        response = self.client.post(
            "/admin/users",
            {"name": "New Person", "email": "new@example.com", "password": "123", "role": "sales"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context["form"].errors)
        add_user.assert_not_called()
