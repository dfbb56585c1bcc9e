# forum/consumers.py
"""
WebSocket consumer for real-time forum events.

Each connection joins its user's private group and the broadcast group.
Clients send ``{"event": "thread:join" | "thread:leave" | "thread:typing",
"data": {...}}`` and receive ``{"event": ..., "data": ...}`` frames.
"""

import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.utils import timezone

from forum.services.notification.realtime import (
    BROADCAST_GROUP,
    EVENT_MESSAGE_TYPE,
    group_for_topic,
    thread_topic,
    user_topic,
)

logger = logging.getLogger(__name__)


class ForumConsumer(AsyncJsonWebsocketConsumer):
    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close(code=4401)
            return

        self.user_id = user.pk
        self.threads: set[int] = set()
        self.groups_joined = [group_for_topic(user_topic(self.user_id)), BROADCAST_GROUP]
        for group in self.groups_joined:
            await self.channel_layer.group_add(group, self.channel_name)
        await self.accept()
        logger.info(f"WebSocket connected for user {self.user_id}")

    async def disconnect(self, code):
        if not hasattr(self, "user_id"):
            return
        for group in self.groups_joined:
            await self.channel_layer.group_discard(group, self.channel_name)
        for thread_id in list(self.threads):
            await self._leave_thread(thread_id)
        logger.info(f"WebSocket disconnected for user {self.user_id} ({code})")

    async def receive_json(self, content, **kwargs):
        if not isinstance(content, dict):
            content = {}
        event = content.get("event")
        data = content.get("data") or {}
        try:
            thread_id = int(data.get("thread_id"))
        except (TypeError, ValueError, AttributeError):
            await self.send_json({"event": "error", "data": {"message": "thread_id is required"}})
            return

        if event == "thread:join":
            await self._join_thread(thread_id)
        elif event == "thread:leave":
            await self._leave_thread(thread_id)
        elif event == "thread:typing":
            if thread_id not in self.threads:
                await self.send_json(
                    {"event": "error", "data": {"message": f"Join thread {thread_id} first"}}
                )
                return
            await self._relay(
                thread_id,
                "user:typing",
                {"is_typing": bool(data.get("is_typing"))},
            )
        else:
            await self.send_json({"event": "error", "data": {"message": f"Unknown event {event!r}"}})

    async def forum_event(self, message):
        """Deliver a ``forum.event`` group message to the socket."""
        if message.get("sender") == self.channel_name:
            return
        await self.send_json({"event": message["event"], "data": message["data"]})

    # -------------------------------------------------------------------------
    # Thread rooms
    # -------------------------------------------------------------------------

    async def _join_thread(self, thread_id: int) -> None:
        await self.channel_layer.group_add(group_for_topic(thread_topic(thread_id)), self.channel_name)
        self.threads.add(thread_id)
        await self._relay(thread_id, "user:joined", {})

    async def _leave_thread(self, thread_id: int) -> None:
        if thread_id not in self.threads:
            return
        await self.channel_layer.group_discard(
            group_for_topic(thread_topic(thread_id)), self.channel_name
        )
        self.threads.discard(thread_id)
        await self._relay(thread_id, "user:left", {})

    async def _relay(self, thread_id: int, event: str, data: dict) -> None:
        """Send to everyone else in the thread room."""
        await self.channel_layer.group_send(
            group_for_topic(thread_topic(thread_id)),
            {
                "type": EVENT_MESSAGE_TYPE,
                "event": event,
                "sender": self.channel_name,
                "data": {
                    **data,
                    "user_id": self.user_id,
                    "thread_id": thread_id,
                    "timestamp": timezone.now().isoformat(),
                },
            },
        )
