import json
import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def snake_case(name):
    """``expectedNewPrice`` -> ``expected_new_price``; snake_case passes through."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def normalize_keys(record):
    if not isinstance(record, dict):
        return record
    return {snake_case(key): value for key, value in record.items()}


def unwrap_list(payload, *keys):
    """Return the list carried by ``payload``.

    Endpoints answer either with a bare array or with an envelope such as
    ``{"data": [...]}`` / ``{"suppliers": [...]}``. ``keys`` are tried in order
    after the default ``data`` key.
    """
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in (*keys, "data"):
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def parse_json_list(value):
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return [value]
        if isinstance(decoded, list):
            return decoded
        return [decoded] if decoded else []
    return [value]
