"""
Notification services package.

Provides the in-app NotificationService and the RealtimeChannel used to
push events to connected WebSocket clients.
"""

from .notification_service import (
    UNKNOWN_ACTOR,
    UNKNOWN_THREAD,
    NotificationContext,
    NotificationService,
    build_content,
)
from .realtime import RealtimeChannel, group_for_topic, thread_topic, user_topic

__all__ = [
    "UNKNOWN_ACTOR",
    "UNKNOWN_THREAD",
    "NotificationContext",
    "NotificationService",
    "RealtimeChannel",
    "build_content",
    "group_for_topic",
    "thread_topic",
    "user_topic",
]
