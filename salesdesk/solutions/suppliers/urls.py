from django.urls import path

from . import views

app_name = "suppliers"

urlpatterns = [
    path("suppliers", views.supplier_list, name="supplier_list"),
    path("supplier/addnewsupplier", views.add_supplier, name="add_supplier"),
]
