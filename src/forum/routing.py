# routing.py
"""
WebSocket URL routing for real-time features.
"""

from django.urls import re_path

from forum import consumers

websocket_urlpatterns = [
    re_path(r"^ws/forum/?$", consumers.ForumConsumer.as_asgi()),
]
