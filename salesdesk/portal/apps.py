from django.apps import AppConfig


class PortalConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "portal"
    verbose_name = "SalesDesk Portal"

    def ready(self):
        from portal import checks  # noqa: F401
