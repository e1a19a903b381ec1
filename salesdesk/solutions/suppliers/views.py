from django.conf import settings
from django.contrib import messages
from django.shortcuts import redirect, render

from portal.access_control import role_required
from portal.roles import Role
from services.backend_api.client import BackendClient
from services.backend_api.errors import ApiError
from services.backend_api.normalize import normalize_keys, unwrap_list
from solutions.tickets.filters import clamp_page, page_window

from .forms import SupplierForm

SEARCH_FIELDS = ("company_name", "contact_person", "email_address", "products_services")


def supplier_matches(supplier, query):
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(needle in str(supplier.get(key) or "").lower() for key in SEARCH_FIELDS)


@role_required(Role.PURCHASE)
def supplier_list(request):
    page = clamp_page(request.GET.get("page"))
    query = request.GET.get("q", "")
    limit = settings.SUPPLIERS_PAGE_SIZE

    client = BackendClient.for_request(request)
    suppliers, total_pages = [], 1
    try:
        payload = client.list_suppliers(page=page, limit=limit)
    except ApiError as exc:
        messages.error(request, f"Could not load suppliers: {exc.message}")
    else:
        suppliers = [normalize_keys(row) for row in unwrap_list(payload, "suppliers")]
        if isinstance(payload, dict):
            total_pages = max(1, int(normalize_keys(payload).get("total_pages") or 1))

    # Search runs over the suppliers of the current page only.
    visible = [supplier for supplier in suppliers if supplier_matches(supplier, query)]
    return render(
        request,
        "suppliers/supplier_list.html",
        {
            "suppliers": visible,
            "query": query,
            "page": page,
            "total_pages": total_pages,
            "page_numbers": page_window(page, total_pages, settings.PAGE_WINDOW_SIZE),
        },
    )


@role_required(Role.PURCHASE)
def add_supplier(request):
    form = SupplierForm(request.POST or None)
    if request.method == "POST":
        if request.POST.get("action") == "cancel":
            return redirect("suppliers:add_supplier")
        if form.is_valid():
            client = BackendClient.for_request(request)
            try:
                client.create_supplier(form.to_payload())
            except ApiError as exc:
                messages.error(request, exc.message or "Failed to add supplier.")
            else:
                messages.success(request, "Supplier added successfully.")
                return redirect("suppliers:supplier_list")

    return render(request, "suppliers/add_supplier.html", {"form": form})
