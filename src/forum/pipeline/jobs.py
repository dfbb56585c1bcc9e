# forum/pipeline/jobs.py
"""
Job payloads carried by the pipeline queues.

Each queue has its own job type. Notification jobs form a tagged union
selected by ``type``; every variant carries only the fields it needs.

Usage:
    broker.publish_job(ModerationJob(content_id=post.pk, text_body=post.content,
                                     author_id=post.author_id))

    job = parse_notification_job(payload)   # -> MentionJob, ReplyJob, ...
"""

import dataclasses
from dataclasses import MISSING, dataclass, fields
from typing import Any, ClassVar

from forum.models.choices import NotificationType

from .errors import MalformedJobError
from .queues import MODERATION, NOTIFICATIONS, SUMMARY, WEBHOOKS

_INT_TYPES = (int, int | None)
_STR_TYPES = (str, str | None)
_DICT_TYPES = (dict, dict | None)


def _coerce(job_name: str, field: dataclasses.Field, value: Any) -> Any:
    if field.type in _INT_TYPES:
        if isinstance(value, bool):
            raise MalformedJobError(f"{job_name}.{field.name} must be an integer")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise MalformedJobError(
                f"{job_name}.{field.name} must be an integer, got {value!r}"
            ) from None
    if field.type in _STR_TYPES and not isinstance(value, str):
        raise MalformedJobError(f"{job_name}.{field.name} must be a string")
    if field.type in _DICT_TYPES and not isinstance(value, dict):
        raise MalformedJobError(f"{job_name}.{field.name} must be an object")
    return value


class Job:
    """Base class for queue jobs; subclasses are frozen dataclasses."""

    queue: ClassVar[str]

    @classmethod
    def from_payload(cls, payload: Any):
        if not isinstance(payload, dict):
            raise MalformedJobError(f"{cls.__name__} payload must be an object")

        values = {}
        for field in fields(cls):
            value = payload.get(field.name)
            if value is None:
                if field.default is MISSING and field.default_factory is MISSING:
                    raise MalformedJobError(
                        f"{cls.__name__} payload is missing '{field.name}'"
                    )
                continue
            values[field.name] = _coerce(cls.__name__, field, value)
        return cls(**values)

    def to_payload(self) -> dict:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class ModerationJob(Job):
    queue: ClassVar[str] = MODERATION

    content_id: int
    text_body: str
    author_id: int


@dataclass(frozen=True)
class SummaryJob(Job):
    queue: ClassVar[str] = SUMMARY

    thread_id: int


@dataclass(frozen=True)
class WebhookJob(Job):
    """
    Outbound webhook event.

    Delivered to every active subscription of ``event_name``; ``url``
    (with optional ``secret`` and ``headers``) adds an ad hoc target.
    """

    queue: ClassVar[str] = WEBHOOKS

    event_name: str
    payload: dict
    timestamp: str
    url: str | None = None
    secret: str | None = None
    headers: dict | None = None


# =============================================================================
# NOTIFICATION JOBS
# =============================================================================


@dataclass(frozen=True)
class NotificationJob(Job):
    queue: ClassVar[str] = NOTIFICATIONS
    kind: ClassVar[NotificationType]

    target_user_id: int

    def to_payload(self) -> dict:
        return {"type": self.kind.value, **dataclasses.asdict(self)}


@dataclass(frozen=True)
class MentionJob(NotificationJob):
    kind: ClassVar[NotificationType] = NotificationType.MENTION

    actor_id: int
    post_id: int
    thread_id: int


@dataclass(frozen=True)
class ReplyJob(NotificationJob):
    kind: ClassVar[NotificationType] = NotificationType.REPLY

    actor_id: int
    post_id: int
    thread_id: int


@dataclass(frozen=True)
class ThreadCommentJob(NotificationJob):
    kind: ClassVar[NotificationType] = NotificationType.THREAD_COMMENT

    actor_id: int
    post_id: int
    thread_id: int


@dataclass(frozen=True)
class PostLikeJob(NotificationJob):
    kind: ClassVar[NotificationType] = NotificationType.POST_LIKE

    actor_id: int
    post_id: int
    thread_id: int


@dataclass(frozen=True)
class FollowJob(NotificationJob):
    kind: ClassVar[NotificationType] = NotificationType.FOLLOW

    actor_id: int


@dataclass(frozen=True)
class ContentCreatedJob(NotificationJob):
    kind: ClassVar[NotificationType] = NotificationType.CONTENT_CREATED

    thread_id: int
    post_id: int | None = None


@dataclass(frozen=True)
class ModerationRejectedJob(NotificationJob):
    kind: ClassVar[NotificationType] = NotificationType.MODERATION_REJECTED

    post_id: int
    thread_id: int
    reason: str = ""


@dataclass(frozen=True)
class ModerationFlaggedJob(NotificationJob):
    kind: ClassVar[NotificationType] = NotificationType.MODERATION_FLAGGED

    post_id: int
    thread_id: int
    reason: str = ""


@dataclass(frozen=True)
class SystemJob(NotificationJob):
    kind: ClassVar[NotificationType] = NotificationType.SYSTEM

    title: str
    message: str
    link: str = ""


NOTIFICATION_JOBS: dict[str, type[NotificationJob]] = {
    job_type.kind.value: job_type
    for job_type in (
        MentionJob,
        ReplyJob,
        ThreadCommentJob,
        PostLikeJob,
        FollowJob,
        ContentCreatedJob,
        ModerationRejectedJob,
        ModerationFlaggedJob,
        SystemJob,
    )
}


def parse_notification_job(payload: Any) -> NotificationJob:
    """Select the notification variant named by ``payload["type"]``."""
    if not isinstance(payload, dict):
        raise MalformedJobError("notification payload must be an object")
    job_type = NOTIFICATION_JOBS.get(payload.get("type"))
    if job_type is None:
        raise MalformedJobError(f"unknown notification type {payload.get('type')!r}")
    return job_type.from_payload(payload)
