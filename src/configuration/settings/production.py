# settings/production.py
"""
Production settings - optimized for security and durability.

These settings are used when DJANGO_ENV=production or DJANGO_ENV=prod.

IMPORTANT: Before deploying to production, ensure:
1. SECRET_KEY is set to a strong random value
2. Database credentials are configured
3. WEBHOOK_SECRET is shared with the email provider and webhook receivers
4. ALLOWED_HOSTS and CORS_ALLOWED_ORIGINS include your domain(s)
"""

from .base import *
from .base import _validate_required_settings
from .components import (
    get_allowed_hosts,
    get_cache_settings,
    get_celery_settings,
    get_channel_layers_settings,
    get_cors_settings,
    get_database_settings,
    get_logging_settings,
    get_redis_settings,
    get_security_settings,
)

# =============================================================================
# ENVIRONMENT
# =============================================================================

ENVIRONMENT = "production"
DEBUG = False

# =============================================================================
# REQUIRED SETTINGS VALIDATION
# =============================================================================

_validate_required_settings()

# =============================================================================
# DATABASE
# =============================================================================

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

# Includes confirm_publish, so a pipeline publish blocks until RabbitMQ acked it
celery_settings = get_celery_settings(redis_config["url"])
for key, value in celery_settings.items():
    locals()[key] = value

# =============================================================================
# CORS & SECURITY
# =============================================================================

cors_settings = get_cors_settings(debug=False)
for key, value in cors_settings.items():
    locals()[key] = value

security_settings = get_security_settings(debug=False)
for key, value in security_settings.items():
    locals()[key] = value

ALLOWED_HOSTS = get_allowed_hosts(debug=False)

# =============================================================================
# LOGGING
# =============================================================================

# Fallback config (only used when USE_STRUCTURED_LOGGING=false)
LOGGING = get_logging_settings(LOG_LEVEL)
LOGGING["loggers"]["django"]["level"] = "WARNING"
LOGGING["loggers"]["forum"]["level"] = "INFO"

# =============================================================================
# PERFORMANCE SETTINGS
# =============================================================================

CONN_MAX_AGE = 60
