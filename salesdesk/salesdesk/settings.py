import os
from pathlib import Path

from .module_loader import backend_config, enabled_apps

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("SALESDESK_SECRET_KEY", "dev-only-change-me")
DEBUG = os.getenv("SALESDESK_DEBUG", "true").lower() == "true"
ALLOWED_HOSTS = [
    host.strip()
    for host in os.getenv("SALESDESK_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
    if host.strip()
]

INSTALLED_APPS = [
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "services.backend_api",
    "services.uploads",
] + enabled_apps()

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "portal.middleware.session_context.SessionContextMiddleware",
]

ROOT_URLCONF = "salesdesk.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.messages.context_processors.messages",
                "portal.context_processors.portal_navigation",
            ],
        },
    },
]

WSGI_APPLICATION = "salesdesk.wsgi.application"

# No business data is stored locally; the REST backend owns all state.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# The auth blob lives client-side in a signed cookie and survives reloads.
SESSION_ENGINE = "django.contrib.sessions.backends.signed_cookies"
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_AGE = int(os.getenv("SALESDESK_SESSION_AGE", 60 * 60 * 24 * 7))
MESSAGE_STORAGE = "django.contrib.messages.storage.cookie.CookieStorage"

PORTAL_SESSION_KEY = "auth-storage"
LOGIN_URL = "/login"
UNAUTHORIZED_URL = "/unauthorized"

BACKEND = backend_config()
BACKEND_BASE_URL = BACKEND["base_url"]
BACKEND_TIMEOUT = BACKEND["timeout"]
BACKEND_LOGIN_PATH = BACKEND["login_path"]

TICKETS_PAGE_SIZE = int(os.getenv("SALESDESK_TICKETS_PAGE_SIZE", 10))
PURCHASE_TICKETS_PAGE_SIZE = int(os.getenv("SALESDESK_PURCHASE_TICKETS_PAGE_SIZE", 3))
SUPPLIERS_PAGE_SIZE = int(os.getenv("SALESDESK_SUPPLIERS_PAGE_SIZE", 8))
INVENTORY_PAGE_SIZE = int(os.getenv("SALESDESK_INVENTORY_PAGE_SIZE", 10))
PAGE_WINDOW_SIZE = 5

UPLOAD_STAGING_ROOT = os.getenv("SALESDESK_UPLOAD_STAGING_ROOT", str(BASE_DIR / "staging"))
UPLOAD_STAGING_MAX_AGE_HOURS = int(os.getenv("SALESDESK_UPLOAD_STAGING_MAX_AGE_HOURS", 24))

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {
        "handlers": ["console"],
        "level": os.getenv("SALESDESK_LOG_LEVEL", "INFO"),
    },
}
