# settings/__init__.py
"""
Settings package - loads the settings module for the current environment.

The environment is determined by the DJANGO_ENV environment variable:
- development / dev / not set: development.py (debug on, USE_SQLITE honoured)
- production / prod: production.py (PostgreSQL, RabbitMQ with publisher confirms)
- staging: staging.py (production services with debug on)
- test / testing: test.py (in-memory SQLite, memory:// broker, in-memory channels)

Pointing DJANGO_SETTINGS_MODULE straight at a submodule (as the test
suite does with configuration.settings.test) skips the selection.

Usage:
    export DJANGO_ENV=production  # Or set in .env file
    python manage.py run_pipeline_workers
"""

import os
import sys

_environment = os.environ.get("DJANGO_ENV", "development").lower()

ENVIRONMENT_MAP = {
    "production": "production",
    "prod": "production",
    "staging": "staging",
    "stage": "staging",
    "test": "test",
    "testing": "test",
    "development": "development",
    "dev": "development",
    "local": "development",
}

environment = ENVIRONMENT_MAP.get(_environment, "development")

_explicit_module = os.environ.get("DJANGO_SETTINGS_MODULE", "").startswith(
    "configuration.settings."
)

if not _explicit_module:
    # Skip the reloader child process to avoid a duplicate line
    if not os.environ.get("RUN_MAIN"):
        print(f"[Django] Using {environment.upper()} settings", file=sys.stderr)

    if environment == "production":
        from .production import *  # noqa: F403
    elif environment == "staging":
        from .staging import *  # noqa: F403
    elif environment == "test":
        from .test import *  # noqa: F403
    else:
        from .development import *  # noqa: F403

CURRENT_ENVIRONMENT = environment
