"""
ASGI config for the forum.

Serves the REST API over HTTP and the realtime feed at ``/ws/forum/``.
Pipeline workers do not run here; start them with
``manage.py run_pipeline_workers``.

Environment Selection:
    Set the DJANGO_ENV environment variable to select the settings:
    development (default), production, staging or test.
"""

import os

import django
from django.core.asgi import get_asgi_application

# In production, set DJANGO_ENV=production in your ASGI server config
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "configuration.settings")

# Initialize Django BEFORE importing anything that uses models
django.setup()

from channels.auth import AuthMiddlewareStack  # noqa: E402
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402

from forum.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter(
    {
        "http": get_asgi_application(),
        "websocket": AuthMiddlewareStack(URLRouter(websocket_urlpatterns)),
    }
)
