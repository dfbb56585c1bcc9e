# forum/models/choices.py
"""
Choice field definitions for model enums.

Centralized choice definitions make it easier to:
- Keep stored values identical between the models, the queue payloads and the API
- Add new options in one place
- Document valid choices
"""

from collections.abc import Sequence as SequenceType
from enum import Enum


class ModerationStatus(str, Enum):
    """Moderation state of a post."""

    PENDING = "pending"
    APPROVED = "approved"
    FLAGGED = "flagged"
    REJECTED = "rejected"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.name.title()) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]


class ContentStatus(str, Enum):
    """Lifecycle status of threads and posts."""

    ACTIVE = "active"
    DELETED = "deleted"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.name.title()) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]


class Recommendation(str, Enum):
    """Recommendation returned by the content scorer."""

    APPROVE = "approve"
    REVIEW = "review"
    REJECT = "reject"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.name.title()) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]


class TicketTarget(str, Enum):
    """What a review ticket points at."""

    POST = "post"
    THREAD = "thread"
    USER = "user"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.name.title()) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]


class TicketCategory(str, Enum):
    """Reason categories for review tickets."""

    SPAM = "spam"
    HARASSMENT = "harassment"
    INAPPROPRIATE = "inappropriate"
    MISINFORMATION = "misinformation"
    OTHER = "other"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.name.title()) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]


class TicketStatus(str, Enum):
    """Workflow status of a review ticket."""

    PENDING = "pending"
    REVIEWING = "reviewing"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.name.title()) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]

    @classmethod
    def open_statuses(cls) -> list[str]:
        """Return statuses that still need a moderator."""
        return [cls.PENDING.value, cls.REVIEWING.value]


class TicketResolution(str, Enum):
    """Outcome recorded when a ticket is resolved."""

    CONTENT_REMOVED = "content_removed"
    USER_WARNED = "user_warned"
    USER_BANNED = "user_banned"
    NO_ACTION = "no_action"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.name.replace("_", " ").title()) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]


class NotificationType(str, Enum):
    """Notification categories delivered to users."""

    MENTION = "mention"
    REPLY = "reply"
    THREAD_COMMENT = "thread-comment"
    POST_LIKE = "post-like"
    FOLLOW = "follow"
    CONTENT_CREATED = "content-created"
    MODERATION_REJECTED = "moderation-rejected"
    MODERATION_FLAGGED = "moderation-flagged"
    SYSTEM = "system"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.name.replace("_", " ").title()) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]


class WebhookMethod(str, Enum):
    """HTTP methods allowed for external webhook subscriptions."""

    POST = "POST"
    PUT = "PUT"
    GET = "GET"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.value) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]


class DeliverySource(str, Enum):
    """Origin of a webhook delivery log entry."""

    EMAIL = "email"
    NOTIFICATION = "notification"
    EXTERNAL = "external"
    REALTIME = "realtime"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.name.title()) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]


class DeliveryStatus(str, Enum):
    """Outcome of a webhook delivery."""

    SUCCESS = "success"
    FAILED = "failed"

    @classmethod
    def choices(cls) -> SequenceType[tuple[str, str]]:
        return [(item.value, item.name.title()) for item in cls]

    @classmethod
    def values(cls) -> SequenceType[str]:
        return [item.value for item in cls]
