from django.core.checks import Error, register

from portal.navigation import NAV_ITEMS
from portal.roles import ROLE_DASHBOARDS, Role


@register()
def role_tables_check(app_configs, **kwargs):
    errors = []
    for role in Role:
        if role not in NAV_ITEMS:
            errors.append(
                Error(
                    f"Role '{role.value}' has no navigation entries.",
                    hint="Add the role to portal.navigation.NAV_ITEMS.",
                    id="portal.E001",
                )
            )
        if role not in ROLE_DASHBOARDS:
            errors.append(
                Error(
                    f"Role '{role.value}' has no dashboard route.",
                    hint="Add the role to portal.roles.ROLE_DASHBOARDS.",
                    id="portal.E002",
                )
            )
    return errors
