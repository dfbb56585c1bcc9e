# settings/development.py
"""
Development settings - optimized for local development.

These settings are used when DJANGO_ENV=development or when not specified.
Expects RabbitMQ and Redis on localhost (or the docker service names
when DOCKER_ENV=true).
"""

from .base import *
from .components import (
    get_allowed_hosts,
    get_cache_settings,
    get_celery_settings,
    get_channel_layers_settings,
    get_cors_settings,
    get_database_settings,
    get_redis_settings,
    get_security_settings,
)

# =============================================================================
# ENVIRONMENT
# =============================================================================

ENVIRONMENT = "development"
DEBUG = True

# =============================================================================
# DATABASE
# =============================================================================

# Set USE_SQLITE=true in .env to work without PostgreSQL
DATABASES = get_database_settings()

# =============================================================================
# REDIS / CACHE / CHANNELS
# =============================================================================

redis_config = get_redis_settings()
CACHES = get_cache_settings(redis_config["url"])
CHANNEL_LAYERS = get_channel_layers_settings(redis_config["url"])

# =============================================================================
# CELERY / PIPELINE BROKER
# =============================================================================

celery_settings = get_celery_settings(redis_config["url"])
for key, value in celery_settings.items():
    locals()[key] = value

# Local RabbitMQ without confirms keeps publishing snappy
CELERY_BROKER_TRANSPORT_OPTIONS = {}

# =============================================================================
# CORS & SECURITY
# =============================================================================

cors_settings = get_cors_settings(debug=True)
for key, value in cors_settings.items():
    locals()[key] = value

security_settings = get_security_settings(debug=True)
for key, value in security_settings.items():
    locals()[key] = value

ALLOWED_HOSTS = get_allowed_hosts(debug=True)

# =============================================================================
# DEVELOPMENT SPECIFIC SETTINGS
# =============================================================================

INTERNAL_IPS = ["127.0.0.1", "localhost"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # inherit base settings
    "DEFAULT_THROTTLE_RATES": {
        "anon": "100000/day",
        "user": "1000000/day",
    },
}
