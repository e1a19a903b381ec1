from enum import Enum
from functools import wraps

from django.conf import settings
from django.shortcuts import redirect
from django.urls import URLPattern, URLResolver, get_resolver

from portal.roles import parse_role


class AccessDecision(Enum):
    LOGIN = "login"
    UNAUTHORIZED = "unauthorized"
    AUTHORIZED = "authorized"


def normalize_roles(allowed_roles):
    if not allowed_roles:
        return frozenset()
    if isinstance(allowed_roles, str):
        allowed_roles = [allowed_roles]
    roles = set()
    for value in allowed_roles:
        role = parse_role(value)
        if role is not None:
            roles.add(role)
    return frozenset(roles)


def resolve_access(portal_session, allowed_roles=None):
    if portal_session is None or not portal_session.is_logged_in():
        return AccessDecision.LOGIN

    # A token without a user profile is treated as not authorized.
    user = portal_session.user
    if user is None:
        return AccessDecision.UNAUTHORIZED

    allowed = normalize_roles(allowed_roles)
    if not allowed:
        return AccessDecision.AUTHORIZED

    if user.role is None or user.role not in allowed:
        return AccessDecision.UNAUTHORIZED
    return AccessDecision.AUTHORIZED


def _redirect_for(decision):
    if decision is AccessDecision.LOGIN:
        return redirect(settings.LOGIN_URL)
    return redirect(settings.UNAUTHORIZED_URL)


def login_required_portal(view_func):
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        portal_session = getattr(request, "portal_session", None)
        if portal_session is None or not portal_session.is_logged_in():
            return _redirect_for(AccessDecision.LOGIN)
        return view_func(request, *args, **kwargs)

    _wrapped_view.allowed_roles = getattr(view_func, "allowed_roles", frozenset())
    _wrapped_view.login_required = True
    return _wrapped_view


def role_required(*allowed_roles):
    """Authentication check, then role check. No roles means any signed-in role."""
    allowed = normalize_roles(allowed_roles)

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            decision = resolve_access(getattr(request, "portal_session", None), allowed)
            if decision is AccessDecision.AUTHORIZED:
                return view_func(request, *args, **kwargs)
            return _redirect_for(decision)

        _wrapped_view.allowed_roles = allowed
        _wrapped_view.login_required = True
        return _wrapped_view

    return decorator


def access_rules(urlconf=None):
    """List ``(path, allowed_roles)`` for every guarded route in the URLconf."""
    rules = []

    def _walk(patterns, prefix):
        for pattern in patterns:
            if isinstance(pattern, URLResolver):
                _walk(pattern.url_patterns, prefix + str(pattern.pattern))
            elif isinstance(pattern, URLPattern):
                callback = pattern.callback
                if getattr(callback, "login_required", False):
                    rules.append(("/" + prefix + str(pattern.pattern), callback.allowed_roles))

    _walk(get_resolver(urlconf).url_patterns, "")
    return rules
