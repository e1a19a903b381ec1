from django.urls import path

from . import views

app_name = "tickets"

urlpatterns = [
    path("ticketspage", views.ticket_list, name="ticket_list"),
    path("tickets/createticket/newproduct", views.create_new_product, name="create_new_product"),
    path("tickets/createticket/existingproduct", views.create_existing_product, name="create_existing_product"),
    path("tickets/createticket/bulkorder", views.create_bulk_order, name="create_bulk_order"),
    path("tickets/<str:ticket_id>", views.ticket_detail, name="ticket_detail"),
    path("tickets/<str:ticket_id>/close", views.close_ticket_view, name="close_ticket"),
    path("admin/tickets", views.admin_ticket_overview, name="admin_ticket_overview"),
]
