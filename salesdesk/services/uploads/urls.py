from django.urls import path

from . import views

app_name = "uploads"

urlpatterns = [
    path("<str:form_key>/<str:handle_id>", views.preview, name="preview"),
]
