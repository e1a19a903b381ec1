from django import template

from portal.roles import get_role_label

register = template.Library()


@register.filter(name='role_label')
def role_label(value):
    role = getattr(value, "role", value)
    return get_role_label(role)
