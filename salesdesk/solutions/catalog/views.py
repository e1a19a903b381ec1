from django.conf import settings
from django.contrib import messages
from django.core.paginator import Paginator
from django.shortcuts import redirect, render

from portal.access_control import role_required
from services.backend_api.client import BackendClient
from services.backend_api.errors import ApiError
from services.uploads.actions import ACTION_CANCEL, ACTION_SUBMIT, apply_upload_action
from services.uploads.staging import pending_uploads
from solutions.tickets.filters import page_window

from .forms import ProductForm
from .records import category_choices, matches_query, product_from_payload

PRODUCT_FORM_KEY = "product-new"


@role_required()
def inventory(request):
    query = request.GET.get("q", "")
    client = BackendClient.for_request(request)
    error = None
    try:
        products = [product_from_payload(row) for row in client.list_products()]
    except ApiError as exc:
        error = exc.message
        products = []

    filtered = [product for product in products if matches_query(product, query)]
    paginator = Paginator(filtered, settings.INVENTORY_PAGE_SIZE)
    # get_page clamps out-of-range pages to the last one.
    page_obj = paginator.get_page(request.GET.get("page"))

    return render(
        request,
        "catalog/inventory.html",
        {
            "page_obj": page_obj,
            "products": page_obj.object_list,
            "query": query,
            "error": error,
            "page_numbers": page_window(page_obj.number, paginator.num_pages, settings.PAGE_WINDOW_SIZE),
        },
    )


def _load_categories(request, client):
    try:
        return category_choices(client.list_categories())
    except ApiError as exc:
        messages.warning(request, f"Could not load categories: {exc.message}")
        return []


@role_required()
def add_product(request):
    client = BackendClient.for_request(request)
    categories = _load_categories(request, client)

    with pending_uploads(request.session, PRODUCT_FORM_KEY) as pending:
        if request.method != "POST":
            pending.teardown()
            form = ProductForm(categories=categories)
        else:
            action = apply_upload_action(request, pending, files_field="images")
            if action == ACTION_CANCEL:
                messages.info(request, "Changes discarded.")
                return redirect("catalog:add_product")
            if action != ACTION_SUBMIT:
                form = ProductForm(initial=request.POST.dict(), categories=categories)
            else:
                form = ProductForm(request.POST, categories=categories)
                if form.is_valid():
                    try:
                        with pending.multipart("images") as images:
                            client.create_product(form.to_payload(), images)
                    except ApiError as exc:
                        messages.error(request, f"Failed to add product: {exc.message}")
                    else:
                        pending.teardown()
                        messages.success(request, "Product added successfully!")
                        return redirect("catalog:inventory")

        return render(
            request,
            "catalog/add_product.html",
            {"form": form, "pending": pending.handles, "form_key": PRODUCT_FORM_KEY},
        )
