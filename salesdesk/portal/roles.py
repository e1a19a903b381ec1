from django.db import models


class Role(models.TextChoices):
    SALES = "sales", "Sales"
    PURCHASE = "purchase", "Purchase"
    ADMIN = "admin", "Admin"


ROLE_DEFINITIONS = list(Role.choices)

ROLE_DASHBOARDS = {
    Role.SALES: "portal:sales_dashboard",
    Role.PURCHASE: "portal:purchase_dashboard",
    Role.ADMIN: "portal:admin_dashboard",
}


def parse_role(value):
    # "manager" is reserved by the backend and has no screens, so it stays unparsed.
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


def get_role_label(role):
    parsed = parse_role(role)
    return parsed.label if parsed else "Unknown"


def dashboard_for(role):
    return ROLE_DASHBOARDS.get(parse_role(role))
