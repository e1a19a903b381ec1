from django.urls import include, path

from .module_loader import load_enabled_modules

modules = load_enabled_modules()

urlpatterns = [
    path("", include("portal.urls")),
    path("uploads/", include(("services.uploads.urls", "uploads"), namespace="uploads")),
]

if modules.get("tickets", {}).get("enabled"):
    urlpatterns.append(
        path("", include(("solutions.tickets.urls", "tickets"), namespace="tickets"))
    )

if modules.get("catalog", {}).get("enabled"):
    urlpatterns.append(
        path("", include(("solutions.catalog.urls", "catalog"), namespace="catalog"))
    )

if modules.get("suppliers", {}).get("enabled"):
    urlpatterns.append(
        path("", include(("solutions.suppliers.urls", "suppliers"), namespace="suppliers"))
    )
