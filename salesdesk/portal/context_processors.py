from portal.navigation import active_nav
from portal.roles import get_role_label


def portal_navigation(request):
    portal_session = getattr(request, "portal_session", None)
    user = portal_session.user if portal_session is not None else None
    role = user.role if user else None
    return {
        "portal_user": user,
        "portal_role_label": get_role_label(role) if role else "",
        "nav_entries": active_nav(role, request.path),
    }
