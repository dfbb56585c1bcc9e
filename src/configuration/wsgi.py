"""
WSGI config for the forum.

Environment Selection:
    Set the DJANGO_ENV environment variable to select the settings:
    development (default), production, staging or test.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "configuration.settings")

application = get_wsgi_application()
