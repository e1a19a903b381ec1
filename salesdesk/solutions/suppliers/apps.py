from django.apps import AppConfig


class SuppliersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "solutions.suppliers"
    verbose_name = "Suppliers"
