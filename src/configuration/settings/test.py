# settings/test.py
"""
Test settings - optimized for running tests.

Used directly by pytest (DJANGO_SETTINGS_MODULE=configuration.settings.test)
or through DJANGO_ENV=test. Nothing here talks to an external service:
the broker is kombu's memory transport, the cache is local memory and
channels use the in-memory layer.
"""

from .base import *
from .components import get_cors_settings, get_security_settings

# =============================================================================
# ENVIRONMENT
# =============================================================================

ENVIRONMENT = "test"
DEBUG = True
TEST = True
USE_STRUCTURED_LOGGING = False
LOGGING_CONFIG = "logging.config.dictConfig"

# =============================================================================
# DATABASE - In-memory SQLite for speed
# =============================================================================

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# =============================================================================
# CACHE - Local memory cache
# =============================================================================

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "test-cache",
    }
}

# =============================================================================
# BROKER - kombu memory transport, Celery tasks run eagerly
# =============================================================================

CELERY_BROKER_URL = "memory://"
CELERY_BROKER_TRANSPORT_OPTIONS = {}
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# =============================================================================
# PIPELINE
# =============================================================================

WEBHOOK_SECRET = "test-webhook-secret"
WEBHOOK_BACKOFF_BASE = 0
OPENAI_API_KEY = ""

# =============================================================================
# CORS & SECURITY - Relaxed for tests
# =============================================================================

cors_settings = get_cors_settings(debug=True)
for key, value in cors_settings.items():
    locals()[key] = value

security_settings = get_security_settings(debug=True)
for key, value in security_settings.items():
    locals()[key] = value

ALLOWED_HOSTS = ["*"]

# =============================================================================
# CHANNEL LAYERS - In-memory
# =============================================================================

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    },
}

# =============================================================================
# TEST OPTIMIZATIONS
# =============================================================================

AUTH_PASSWORD_VALIDATORS = []

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Throttling would make request-heavy tests order dependent
REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": [],
}
