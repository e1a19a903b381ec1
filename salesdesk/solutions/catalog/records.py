from decimal import Decimal, InvalidOperation

from services.backend_api.normalize import normalize_keys


def _price(value):
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _image_url(images):
    if not images:
        return ""
    first = images[0]
    if isinstance(first, dict):
        return first.get("url") or ""
    return str(first)


def _category_name(value):
    if isinstance(value, dict):
        return value.get("name") or ""
    return value or ""


def product_from_payload(payload):
    data = normalize_keys(payload or {})
    return {
        "id": data.get("id"),
        "name": data.get("name") or data.get("product_name") or "Unnamed Product",
        "sku": data.get("sku") or "",
        "category": _category_name(data.get("category")) or "Uncategorized",
        "price": _price(data.get("price")),
        "stock": data.get("stock"),
        "description": data.get("description") or "",
        "image_url": _image_url(data.get("images")),
    }


def matches_query(product, query):
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(needle in str(product.get(key) or "").lower() for key in ("name", "sku", "category"))


def category_choices(categories):
    choices = []
    for category in categories:
        if isinstance(category, dict):
            name = category.get("name") or ""
            value = str(category.get("id") or name)
        else:
            name = value = str(category)
        if name:
            choices.append((value, name))
    return choices
