# views.py
import logging
from collections import Counter

from django.conf import settings
from django.contrib import messages
from django.shortcuts import redirect, render

from portal.access_control import role_required
from portal.roles import Role, dashboard_for, parse_role
from portal.session import SessionUser
from services.backend_api.client import BackendClient
from services.backend_api.errors import ApiError
from services.backend_api.normalize import normalize_keys, unwrap_list
from solutions.tickets.filters import clamp_page, filter_tickets, page_window
from solutions.tickets.operations import fetch_ticket_page
from solutions.tickets.records import TicketPage

from .forms import AdminUserCreationForm, LoginForm

logger = logging.getLogger(__name__)

PURCHASE_TABS = ["All", "Awaiting Me", "In Progress"]


def landing(request):
    portal_session = request.portal_session
    if not portal_session.is_logged_in():
        return redirect(settings.LOGIN_URL)
    target = dashboard_for(portal_session.role)
    if target is None:
        return redirect(settings.UNAUTHORIZED_URL)
    return redirect(target)


def login_view(request):
    if request.portal_session.is_logged_in() and request.method != "POST":
        return redirect("portal:landing")

    form = LoginForm(request.POST or None)
    if request.method == "POST" and form.is_valid():
        client = BackendClient()
        try:
            payload = client.login(form.cleaned_data["email"], form.cleaned_data["password"]) or {}
        except ApiError as exc:
            form.add_error(None, exc.message)
        else:
            token = payload.get("token") or payload.get("accessToken")
            user_payload = payload.get("user")
            if not token or not user_payload:
                form.add_error(None, "The server did not return a session. Please try again.")
            else:
                user = SessionUser.from_payload(user_payload)
                request.portal_session.login(token, user)
                messages.success(request, f"Welcome back, {user.name or user.email}.")
                return redirect("portal:landing")

    return render(request, "registration/login.html", {"form": form})


def logout_view(request):
    if request.method == "POST":
        request.portal_session.logout()
    return redirect(settings.LOGIN_URL)


def unauthorized(request):
    return render(request, "portal/unauthorized.html", status=403)


@role_required(Role.SALES)
def sales_dashboard(request):
    client = BackendClient.for_request(request)
    metrics, deals = {}, []
    try:
        data = client.sales_dashboard() or {}
    except ApiError as exc:
        messages.error(request, f"Could not load the dashboard: {exc.message}")
    else:
        data = normalize_keys(data)
        metrics = normalize_keys(data.get("metrics") or {})
        deals = [normalize_keys(deal) for deal in unwrap_list(data.get("recent_deals"))]

    return render(request, "portal/sales_dashboard.html", {"metrics": metrics, "deals": deals})


@role_required(Role.PURCHASE)
def purchase_dashboard(request):
    user = request.portal_session.user
    page = clamp_page(request.GET.get("page"))
    query = request.GET.get("q", "")
    active_tab = request.GET.get("tab", "All")
    if active_tab not in PURCHASE_TABS:
        active_tab = "All"

    client = BackendClient.for_request(request)
    try:
        ticket_page = fetch_ticket_page(client, page=page, limit=settings.PURCHASE_TICKETS_PAGE_SIZE)
    except ApiError as exc:
        messages.error(request, f"Could not load tickets: {exc.message}")
        ticket_page = TicketPage(tickets=[], page=page, limit=settings.PURCHASE_TICKETS_PAGE_SIZE)

    tickets = ticket_page.tickets
    requires_response = [t for t in tickets if t.assigned_to and t.assigned_to == user.name][:3]

    visible = filter_tickets(tickets, query=query)
    if active_tab == "Awaiting Me":
        visible = [t for t in visible if t.assigned_to == user.name]
    elif active_tab == "In Progress":
        visible = [t for t in visible if t.status == "in_progress"]

    return render(
        request,
        "portal/purchase_dashboard.html",
        {
            "tickets": visible,
            "requires_response": requires_response,
            "ticket_page": ticket_page,
            "page_numbers": page_window(ticket_page.page, ticket_page.total_pages, settings.PAGE_WINDOW_SIZE),
            "tabs": PURCHASE_TABS,
            "active_tab": active_tab,
            "query": query,
        },
    )


def _load_users(request):
    client = BackendClient.for_request(request)
    try:
        users = [normalize_keys(user) for user in client.list_users()]
    except ApiError as exc:
        messages.error(request, f"Could not load users: {exc.message}")
        return []
    for user in users:
        user["role_key"] = parse_role(user.get("role"))
    return users


def role_counts(users):
    counts = Counter(user["role_key"] for user in users if user.get("role_key") is not None)
    return {role.value: counts.get(role, 0) for role in Role}


def _handle_add_user(request, success_target):
    form = AdminUserCreationForm(request.POST or None)
    if request.method == "POST" and form.is_valid():
        client = BackendClient.for_request(request)
        try:
            client.add_user(form.to_payload())
        except ApiError as exc:
            messages.error(request, exc.message or "Failed to add user. Please try again.")
        else:
            logger.info("User %s added with role %s", form.cleaned_data["email"], form.cleaned_data["role"])
            messages.success(request, "User added successfully!")
            return form, redirect(success_target)
    return form, None


@role_required(Role.ADMIN)
def admin_dashboard(request):
    form, response = _handle_add_user(request, "portal:admin_dashboard")
    if response is not None:
        return response

    users = _load_users(request)
    return render(
        request,
        "portal/admin_dashboard.html",
        {
            "form": form,
            "users": users,
            "role_counts": role_counts(users),
            "total_users": len(users),
            "show_form": request.method == "POST",
        },
    )


@role_required(Role.ADMIN)
def manage_users(request):
    form, response = _handle_add_user(request, "portal:manage_users")
    if response is not None:
        return response

    users = _load_users(request)
    return render(
        request,
        "registration/manage_users.html",
        {"form": form, "users": users, "show_form": request.method == "POST"},
    )
