import logging
import os
from functools import lru_cache

import yaml

logger = logging.getLogger(__name__)

MODULE_REGISTRY = {
    "portal_core": {
        "app": "portal",
        "optional": False,
        "depends_on": [],
        "description": "Sign-in, role navigation, dashboards and user management.",
    },
    "tickets": {
        "app": "solutions.tickets",
        "optional": False,
        "depends_on": ["portal_core"],
        "description": "Raise, respond to and close sales/purchase tickets.",
    },
    "catalog": {
        "app": "solutions.catalog",
        "optional": True,
        "depends_on": ["portal_core"],
        "description": "Browse the inventory catalog and add products.",
    },
    "suppliers": {
        "app": "solutions.suppliers",
        "optional": True,
        "depends_on": ["portal_core"],
        "description": "List and register suppliers.",
    },
}

BACKEND_DEFAULTS = {
    "base_url": "http://localhost:4000",
    "timeout": 10,
    "login_path": "/auth/login",
}


def _config_path():
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.environ.get(
        "SALESDESK_MODULE_CONFIG",
        os.path.join(base_dir, "config", "module_config.yaml"),
    )


def _read_yaml(path):
    if not os.path.exists(path):
        logger.debug("No module config at %s; using defaults", path)
        return {}
    with open(path, "r") as handle:
        data = yaml.safe_load(handle)
    return data if isinstance(data, dict) else {}


def _load_config():
    return _read_yaml(_config_path())


def _toggle(toggles, name):
    entry = toggles.get(name)
    if isinstance(entry, dict):
        return entry.get("enabled", True)
    if entry is None:
        return True
    return entry


def _resolve(name, meta, toggles, resolved):
    if not meta.get("optional", True):
        wanted = True
    else:
        wanted = bool(_toggle(toggles, name))

    missing = [dep for dep in meta.get("depends_on", []) if not resolved.get(dep)]
    if wanted and missing:
        logger.warning("Module %s disabled: missing %s", name, ", ".join(missing))
        return False
    if not wanted:
        logger.info("Module %s disabled by configuration", name)
    return wanted


@lru_cache(maxsize=1)
def load_enabled_modules():
    """Registry entries with an ``enabled`` flag resolved from the YAML ``modules`` section.

    Required modules are always on. An optional module may be toggled with either
    ``name: false`` or ``name: {enabled: false}``, and is switched off when any
    module it depends on is off. Registry order is dependency order.
    """
    toggles = _load_config().get("modules")
    if not isinstance(toggles, dict):
        toggles = {}
    resolved = {}
    for name, meta in MODULE_REGISTRY.items():
        resolved[name] = _resolve(name, meta, toggles, resolved)
    return {name: dict(meta, enabled=resolved[name]) for name, meta in MODULE_REGISTRY.items()}


@lru_cache(maxsize=1)
def backend_config():
    """Backend connection settings: YAML values, then environment overrides."""
    raw = _load_config().get("backend", {}) or {}
    config = {**BACKEND_DEFAULTS, **raw}

    env_url = os.environ.get("SALESDESK_BACKEND_URL")
    if env_url:
        config["base_url"] = env_url
    env_timeout = os.environ.get("SALESDESK_BACKEND_TIMEOUT")
    if env_timeout:
        config["timeout"] = float(env_timeout)

    config["base_url"] = str(config["base_url"]).rstrip("/")
    config["timeout"] = float(config["timeout"])
    return config


def enabled_apps():
    return [meta["app"] for meta in load_enabled_modules().values() if meta["enabled"]]
