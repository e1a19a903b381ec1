from django.urls import path

from . import views

app_name = "catalog"

urlpatterns = [
    path("inventory", views.inventory, name="inventory"),
    path("inventory/addnewproduct", views.add_product, name="add_product"),
]
