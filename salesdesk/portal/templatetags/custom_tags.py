from django import template
register = template.Library()


@register.filter
def get_item(mapping, key):
    try:
        return mapping.get(key)
    except AttributeError:
        return None


@register.simple_tag(takes_context=True)
def page_url(context, page):
    params = context["request"].GET.copy()
    params["page"] = page
    return "?" + params.urlencode()
