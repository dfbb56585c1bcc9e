# settings/components.py
"""
Settings components - setting groups shared by the environment modules.

Each function reads the environment and returns a dictionary (or list)
that development.py, staging.py and production.py splice into their
module namespace.

Usage:
    from .components import get_database_settings
    DATABASES = get_database_settings()
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Helper to get boolean environment variable."""
    return os.environ.get(key, str(default)).lower() in ("true", "1", "yes", "on")


def _get_env_int(key: str, default: int = 0) -> int:
    """Helper to get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except (ValueError, TypeError):
        return default


def _get_env_float(key: str, default: float = 0.0) -> float:
    try:
        return float(os.environ.get(key, str(default)))
    except (ValueError, TypeError):
        return default


def _get_env_list(key: str, default: list | None = None) -> list:
    """Helper to get list from comma-separated environment variable."""
    if default is None:
        default = []
    value = os.environ.get(key, "")
    return [item.strip() for item in value.split(",") if item.strip()] or default


# =============================================================================
# DATABASE SETTINGS
# =============================================================================


def get_database_settings() -> dict:
    """
    Returns database configuration based on environment.

    PostgreSQL unless USE_SQLITE is set. Moderation locks the post row
    with SELECT ... FOR UPDATE, which SQLite silently ignores, so run
    more than one moderation consumer only against PostgreSQL.

    Environment variables:
        DB_NAME, DB_USER, DB_PASSWORD, DB_HOST, DB_PORT_NUMBER
        USE_SQLITE: Use a local SQLite file instead
        DOCKER_ENV: Set to 'true' when running in Docker
    """
    is_docker = _get_env_bool("DOCKER_ENV")
    use_sqlite = _get_env_bool("USE_SQLITE", False)

    if use_sqlite:
        return {
            "default": {
                "ENGINE": "django.db.backends.sqlite3",
                "NAME": BASE_DIR / "db.sqlite3",
            }
        }

    return {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ.get("DB_NAME", "forum"),
            "USER": os.environ.get("DB_USER", "postgres"),
            "PASSWORD": os.environ.get("DB_PASSWORD", "postgres"),
            "HOST": os.environ.get("DB_HOST", "db" if is_docker else "localhost"),
            "PORT": _get_env_int("DB_PORT_NUMBER", 5432),
            "OPTIONS": {
                "connect_timeout": 10,
                "sslmode": os.environ.get("DB_SSLMODE", "prefer"),
            },
            "CONN_MAX_AGE": 60,
            "CONN_HEALTH_CHECKS": True,
        }
    }


# =============================================================================
# REDIS SETTINGS
# =============================================================================


def get_redis_settings() -> dict:
    """
    Returns Redis connection settings.

    Environment variables:
        REDIS_HOST: Redis host (default: localhost or 'redis' in Docker)
        REDIS_PORT_NUMBER: Redis port (default: 6379)
        REDIS_PASSWORD: Redis password
        REDIS_DB: Redis database number (default: 0)
    """
    is_docker = _get_env_bool("DOCKER_ENV")

    redis_host = os.environ.get("REDIS_HOST", "redis" if is_docker else "localhost")
    redis_port = _get_env_int("REDIS_PORT_NUMBER", 6379)
    redis_password = os.environ.get("REDIS_PASSWORD", "")
    redis_db = _get_env_int("REDIS_DB", 0)

    if redis_password:
        redis_url = f"redis://:{redis_password}@{redis_host}:{redis_port}/{redis_db}"
    else:
        redis_url = f"redis://{redis_host}:{redis_port}/{redis_db}"

    return {
        "url": redis_url,
        "host": redis_host,
        "port": redis_port,
        "password": redis_password,
        "db": redis_db,
    }


def get_cache_settings(redis_url: str) -> dict:
    """
    Returns the Django cache configuration backed by django-redis.

    Thread reads, thread lists and summaries live here; the pipeline
    workers invalidate them with pattern deletes.

    Environment variables:
        CACHE_DEFAULT_TIMEOUT: Default cache timeout in seconds (default: 300)
    """
    timeout = _get_env_int("CACHE_DEFAULT_TIMEOUT", 300)

    return {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": redis_url,
            "TIMEOUT": timeout,
            "OPTIONS": {
                "CLIENT_CLASS": "django_redis.client.DefaultClient",
                "SOCKET_CONNECT_TIMEOUT": 5,
                "SOCKET_TIMEOUT": 5,
                "CONNECTION_POOL_KWARGS": {"max_connections": 50},
            },
            "KEY_PREFIX": "forum",
            "VERSION": 1,
        },
    }


def get_channel_layers_settings(redis_url: str) -> dict:
    """Returns the Channels layer that fans realtime events out to sockets."""
    return {
        "default": {
            "BACKEND": "channels_redis.core.RedisChannelLayer",
            "CONFIG": {
                "hosts": [redis_url],
                "capacity": 1000,
                "expiry": 60,
                "group_expiry": 86400,  # 24 hours
            },
        },
    }


# =============================================================================
# CELERY SETTINGS
# =============================================================================


def get_broker_url() -> str:
    """
    RabbitMQ URL shared by Celery and the pipeline queues.

    Environment variables:
        CELERY_BROKER_URL: Full broker URL (overrides the parts below)
        RABBITMQ_USER, RABBITMQ_PASSWORD, RABBITMQ_HOST, RABBITMQ_PORT_NUMBER
    """
    is_docker = _get_env_bool("DOCKER_ENV")
    return os.environ.get(
        "CELERY_BROKER_URL",
        f"amqp://{os.environ.get('RABBITMQ_USER', 'guest')}:"
        f"{os.environ.get('RABBITMQ_PASSWORD', 'guest')}@"
        f"{os.environ.get('RABBITMQ_HOST', 'rabbitmq' if is_docker else 'localhost')}:"
        f"{_get_env_int('RABBITMQ_PORT_NUMBER', 5672)}//",
    )


def get_celery_settings(redis_url: str) -> dict:
    """
    Returns Celery configuration.

    Celery only runs the periodic maintenance jobs; the pipeline workers
    consume their queues directly through kombu on the same broker.

    Args:
        redis_url: Redis URL for result backend

    Environment variables:
        CELERY_WORKER_CONCURRENCY: Number of worker processes
        CELERY_TASK_TIME_LIMIT: Task time limit in seconds
    """
    from celery.schedules import crontab

    return {
        "CELERY_BROKER_URL": get_broker_url(),
        # Publisher confirms: a publish returns only once the broker has the message
        "CELERY_BROKER_TRANSPORT_OPTIONS": {"confirm_publish": True},
        "CELERY_RESULT_BACKEND": f"{redis_url}/2",
        # Serialization
        "CELERY_ACCEPT_CONTENT": ["json"],
        "CELERY_TASK_SERIALIZER": "json",
        "CELERY_RESULT_SERIALIZER": "json",
        # Timezone
        "CELERY_TIMEZONE": "UTC",
        "CELERY_ENABLE_UTC": True,
        # Task settings
        "CELERY_TASK_TRACK_STARTED": True,
        "CELERY_TASK_TIME_LIMIT": _get_env_int("CELERY_TASK_TIME_LIMIT", 1800),
        "CELERY_TASK_SOFT_TIME_LIMIT": _get_env_int("CELERY_TASK_SOFT_TIME_LIMIT", 1500),
        "CELERY_TASK_IGNORE_RESULT": True,
        # Worker settings
        "CELERY_WORKER_CONCURRENCY": _get_env_int("CELERY_WORKER_CONCURRENCY", 2),
        "CELERY_WORKER_MAX_TASKS_PER_CHILD": 1000,
        "CELERY_WORKER_PREFETCH_MULTIPLIER": 1,
        # Beat scheduler
        "CELERY_BEAT_SCHEDULER": "django_celery_beat.schedulers:DatabaseScheduler",
        "CELERY_BEAT_SCHEDULE": {
            "purge-expired-notifications": {
                "task": "forum.tasks.tasks.purge_expired_notifications_task",
                "schedule": crontab(minute=0, hour=3),  # 3 AM daily
            },
        },
        "CELERY_TASK_ROUTES": {
            "forum.tasks.tasks.*": {"queue": "maintenance"},
        },
    }


# =============================================================================
# PIPELINE SETTINGS
# =============================================================================


def get_pipeline_settings() -> dict:
    """
    Returns queue, cache, webhook and AI settings for the pipeline.

    Environment variables:
        PIPELINE_EXCHANGE: Exchange the pipeline queues are bound to
        PIPELINE_MAX_ATTEMPTS: Deliveries per job before dead-lettering
        MODERATION_CONCURRENCY, SUMMARY_CONCURRENCY,
        NOTIFICATIONS_CONCURRENCY, WEBHOOKS_CONCURRENCY: per-queue ceilings
        THREAD_CACHE_TTL, SUMMARY_CACHE_TTL: cache lifetimes in seconds
        NOTIFICATION_RETENTION_DAYS: days before notifications are purged
        WEBHOOK_SECRET, WEBHOOK_TIMEOUT, WEBHOOK_MAX_RETRIES, WEBHOOK_BACKOFF_BASE
        OPENAI_API_KEY, AI_MODEL, AI_API_BASE_URL
    """
    return {
        "PIPELINE_EXCHANGE": os.environ.get("PIPELINE_EXCHANGE", "forum.pipeline"),
        "PIPELINE_MAX_ATTEMPTS": _get_env_int("PIPELINE_MAX_ATTEMPTS", 3),
        "PIPELINE_QUEUE_CONCURRENCY": {
            "moderation": _get_env_int("MODERATION_CONCURRENCY", 5),
            "summary": _get_env_int("SUMMARY_CONCURRENCY", 2),
            "notifications": _get_env_int("NOTIFICATIONS_CONCURRENCY", 10),
            "webhooks": _get_env_int("WEBHOOKS_CONCURRENCY", 5),
        },
        "THREAD_CACHE_TTL": _get_env_int("THREAD_CACHE_TTL", 300),
        "SUMMARY_CACHE_TTL": _get_env_int("SUMMARY_CACHE_TTL", 3600),
        "NOTIFICATION_RETENTION_DAYS": _get_env_int("NOTIFICATION_RETENTION_DAYS", 90),
        "WEBHOOK_SECRET": os.environ.get("WEBHOOK_SECRET", ""),
        "WEBHOOK_TIMEOUT": _get_env_int("WEBHOOK_TIMEOUT", 10),
        "WEBHOOK_MAX_RETRIES": _get_env_int("WEBHOOK_MAX_RETRIES", 3),
        "WEBHOOK_BACKOFF_BASE": _get_env_float("WEBHOOK_BACKOFF_BASE", 1.0),
        "OPENAI_API_KEY": os.environ.get("OPENAI_API_KEY", ""),
        "AI_MODEL": os.environ.get("AI_MODEL", "gpt-3.5-turbo"),
        "AI_API_BASE_URL": os.environ.get("AI_API_BASE_URL", "https://api.openai.com/v1"),
    }


# =============================================================================
# CORS SETTINGS
# =============================================================================


def get_cors_settings(debug: bool = False) -> dict:
    """
    Returns CORS configuration based on debug mode.

    Environment variables:
        CORS_ALLOWED_ORIGINS: Comma-separated list of allowed origins
        CORS_ALLOW_ALL_ORIGINS: Allow all origins (not recommended for production)
    """
    development_origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]
    production_origins = _get_env_list("CORS_ALLOWED_ORIGINS")

    if debug:
        origins = development_origins
        allow_all = _get_env_bool("CORS_ALLOW_ALL_ORIGINS", True)
    else:
        origins = production_origins
        allow_all = _get_env_bool("CORS_ALLOW_ALL_ORIGINS", False)

    return {
        "CORS_ALLOW_ALL_ORIGINS": allow_all,
        "CORS_ALLOWED_ORIGINS": origins,
        "CORS_ALLOW_CREDENTIALS": True,
        "CSRF_TRUSTED_ORIGINS": origins,
    }


# =============================================================================
# SECURITY SETTINGS
# =============================================================================


def get_security_settings(debug: bool = False) -> dict:
    """Returns security settings based on debug mode."""
    if debug:
        return {
            "SECURE_SSL_REDIRECT": False,
            "SECURE_PROXY_SSL_HEADER": None,
            "SESSION_COOKIE_SECURE": False,
            "CSRF_COOKIE_SECURE": False,
            "SECURE_HSTS_SECONDS": 0,
            "SECURE_CONTENT_TYPE_NOSNIFF": False,
            "X_FRAME_OPTIONS": "SAMEORIGIN",
        }

    return {
        "SECURE_SSL_REDIRECT": True,
        "SECURE_PROXY_SSL_HEADER": ("HTTP_X_FORWARDED_PROTO", "https"),
        "SECURE_HSTS_SECONDS": 31536000,  # 1 year
        "SECURE_HSTS_INCLUDE_SUBDOMAINS": True,
        "SECURE_HSTS_PRELOAD": True,
        "SESSION_COOKIE_SECURE": True,
        "CSRF_COOKIE_SECURE": True,
        "SECURE_CONTENT_TYPE_NOSNIFF": True,
        "SECURE_REFERRER_POLICY": "strict-origin-when-cross-origin",
        "X_FRAME_OPTIONS": "DENY",
    }


def get_allowed_hosts(debug: bool = False) -> list:
    """
    Returns allowed hosts based on debug mode.

    Environment variables:
        ALLOWED_HOSTS: Comma-separated list of allowed hosts
    """
    env_hosts = _get_env_list("ALLOWED_HOSTS")
    if env_hosts:
        return env_hosts
    if debug:
        return ["*"]
    return ["localhost", "127.0.0.1"]


# =============================================================================
# LOGGING SETTINGS
# =============================================================================


def get_logging_settings(level: str = "INFO") -> dict:
    """
    Plain dictConfig used when structured logging is switched off.

    With USE_STRUCTURED_LOGGING on, ForumConfig.ready() installs the
    structlog configuration from forumutils.logging instead.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{levelname} {asctime} {name} {process:d} {thread:d} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
        },
        "loggers": {
            "django": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            "forum": {
                "handlers": ["console"],
                "level": "DEBUG" if level == "DEBUG" else "INFO",
                "propagate": False,
            },
        },
    }
