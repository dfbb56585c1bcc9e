# forum/services/notification/realtime.py
"""
Real-time fan-out through the Django Channels layer.

Topics are addressed the way clients know them (``user:5``, ``thread:9``,
``broadcast``) and mapped to channel-layer group names, which may not
contain colons. Every message is handled by ForumConsumer.forum_event.
"""

import json
import logging
from typing import Any

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)

BROADCAST_GROUP = "broadcast"
EVENT_MESSAGE_TYPE = "forum.event"


def user_topic(user_id: int) -> str:
    return f"user:{user_id}"


def thread_topic(thread_id: int) -> str:
    return f"thread:{thread_id}"


def group_for_topic(topic: str) -> str:
    """``user:5`` -> ``user.5``"""
    return topic.replace(":", ".")


class RealtimeChannel:
    """
    Publish events to connected WebSocket clients.

    Args:
        layer: Channels layer (defaults to the configured default layer)
    """

    def __init__(self, layer=None):
        self.layer = layer if layer is not None else get_channel_layer()

    def publish(self, topic: str, event: str, data: dict[str, Any]) -> None:
        if self.layer is None:
            logger.warning(f"No channel layer configured, dropping {event} for {topic}")
            return
        message = {
            "type": EVENT_MESSAGE_TYPE,
            "event": event,
            # Round-trip through JSON so datetimes survive msgpack
            "data": json.loads(json.dumps(data, cls=DjangoJSONEncoder)),
        }
        async_to_sync(self.layer.group_send)(group_for_topic(topic), message)

    def to_user(self, user_id: int, event: str, data: dict[str, Any]) -> None:
        self.publish(user_topic(user_id), event, data)

    def to_thread(self, thread_id: int, event: str, data: dict[str, Any]) -> None:
        self.publish(thread_topic(thread_id), event, data)

    def broadcast(self, event: str, data: dict[str, Any]) -> None:
        self.publish(BROADCAST_GROUP, event, data)
