"""
Models package for the forum application.

Models are organized by domain:
- Base model classes
- Users
- Threads and posts
- Moderation review tickets
- Notifications
- Webhook subscriptions and audit trails
"""

from .base import TimeStampedModel
from .choices import (
    ContentStatus,
    DeliverySource,
    DeliveryStatus,
    ModerationStatus,
    NotificationType,
    Recommendation,
    TicketCategory,
    TicketResolution,
    TicketStatus,
    TicketTarget,
    WebhookMethod,
)
from .content import Post, Thread
from .moderation import ReviewTicket
from .notification import Notification
from .user import Role, User, UserManager
from .webhook import ExternalWebhook, PipelineAuditLog, WebhookDeliveryLog

__all__ = [
    # Choices/Enums
    "ContentStatus",
    "DeliverySource",
    "DeliveryStatus",
    # Webhooks & audit
    "ExternalWebhook",
    "ModerationStatus",
    # Notifications
    "Notification",
    "NotificationType",
    "PipelineAuditLog",
    # Content
    "Post",
    "Recommendation",
    # Moderation
    "ReviewTicket",
    # Users
    "Role",
    "Thread",
    "TicketCategory",
    "TicketResolution",
    "TicketStatus",
    "TicketTarget",
    # Base models
    "TimeStampedModel",
    "User",
    "UserManager",
    "WebhookDeliveryLog",
    "WebhookMethod",
]
