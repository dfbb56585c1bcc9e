# forum/services/notification/notification_service.py
"""
In-app notification service.

Turns notification jobs into Notification rows and provides the inbox
operations (mark read, unread count, cleanup). Delivery to other channels
(real-time push, outbound webhooks) is the notification worker's job.
"""

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from forum.models import Notification, Post, Thread, User
from forum.pipeline.jobs import (
    ContentCreatedJob,
    FollowJob,
    MentionJob,
    ModerationFlaggedJob,
    ModerationRejectedJob,
    NotificationJob,
    PostLikeJob,
    ReplyJob,
    SystemJob,
    ThreadCommentJob,
)

from .realtime import RealtimeChannel

logger = logging.getLogger(__name__)

UNKNOWN_THREAD = "Unknown Thread"
UNKNOWN_ACTOR = "Someone"


@dataclass(frozen=True)
class NotificationContext:
    """Human readable context resolved for one job."""

    thread_title: str = UNKNOWN_THREAD
    actor_name: str = UNKNOWN_ACTOR
    thread: Thread | None = None
    post: Post | None = None
    actor: User | None = None


def _post_link(thread_id: int, post_id: int | None) -> str:
    if post_id:
        return f"/threads/{thread_id}#post-{post_id}"
    return f"/threads/{thread_id}"


def build_content(job: NotificationJob, context: NotificationContext) -> tuple[str, str, str]:
    """Return ``(title, message, link)`` for a notification job."""
    title = context.thread_title
    actor = context.actor_name

    if isinstance(job, MentionJob):
        return (
            "You were mentioned",
            f'{actor} mentioned you in "{title}"',
            _post_link(job.thread_id, job.post_id),
        )
    if isinstance(job, ReplyJob):
        return (
            "New reply to your post",
            f'{actor} replied to your post in "{title}"',
            _post_link(job.thread_id, job.post_id),
        )
    if isinstance(job, ThreadCommentJob):
        return (
            "New comment on your thread",
            f'{actor} commented on your thread "{title}"',
            _post_link(job.thread_id, job.post_id),
        )
    if isinstance(job, PostLikeJob):
        return (
            "Someone liked your post",
            f'{actor} liked your post in "{title}"',
            _post_link(job.thread_id, job.post_id),
        )
    if isinstance(job, FollowJob):
        return ("New follower", f"{actor} started following you", f"/profile/{job.actor_id}")
    if isinstance(job, ContentCreatedJob):
        if job.post_id:
            return (
                "Your post has been published",
                f'Your post in "{title}" is now live and being reviewed by our AI moderator',
                _post_link(job.thread_id, job.post_id),
            )
        return (
            "Your thread has been created",
            f'Your thread "{title}" is now live',
            _post_link(job.thread_id, None),
        )
    if isinstance(job, ModerationRejectedJob):
        return (
            "Your post was rejected",
            f'Your post in "{title}" was removed by our AI moderator. Reason: {job.reason}',
            _post_link(job.thread_id, None),
        )
    if isinstance(job, ModerationFlaggedJob):
        return (
            "Your post is under review",
            f'Your post in "{title}" has been flagged for manual review. Reason: {job.reason}',
            _post_link(job.thread_id, job.post_id),
        )
    if isinstance(job, SystemJob):
        return (job.title, job.message, job.link)
    raise TypeError(f"Unsupported notification job {type(job).__name__}")


class NotificationService:
    """
    Service for creating notifications and managing a user's inbox.

    Args:
        realtime: Channel used for inbox update events (optional)
    """

    def __init__(self, realtime: RealtimeChannel | None = None):
        self.realtime = realtime

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def resolve_context(self, job: NotificationJob) -> NotificationContext:
        """
        Look up thread, post and actor for a job.

        Missing rows fall back to placeholders; a notification is still
        worth sending when its context has since been deleted.
        """
        thread_id = getattr(job, "thread_id", None)
        post_id = getattr(job, "post_id", None)
        actor_id = getattr(job, "actor_id", None)

        thread = Thread.objects.filter(pk=thread_id).first() if thread_id else None
        post = Post.objects.filter(pk=post_id).first() if post_id else None
        actor = User.objects.filter(pk=actor_id).first() if actor_id else None

        if thread_id and thread is None:
            logger.info(f"Thread {thread_id} not found for {job.kind.value} notification")
        if actor_id and actor is None:
            logger.info(f"Actor {actor_id} not found for {job.kind.value} notification")

        return NotificationContext(
            thread_title=thread.title if thread else UNKNOWN_THREAD,
            actor_name=actor.name if actor else UNKNOWN_ACTOR,
            thread=thread,
            post=post,
            actor=actor,
        )

    def create_from_job(self, job: NotificationJob) -> Notification | None:
        """
        Persist the notification described by a job.

        Returns None when the target user no longer exists. Database errors
        propagate so the job goes back through the queue.
        """
        user = User.objects.filter(pk=job.target_user_id).first()
        if user is None:
            logger.info(f"Notification target {job.target_user_id} not found, skipping")
            return None

        context = self.resolve_context(job)
        title, message, link = build_content(job, context)

        notification = Notification.objects.create(
            user=user,
            type=job.kind.value,
            title=title,
            message=message,
            link=link,
            actor=context.actor,
            thread=context.thread,
            post=context.post,
        )
        logger.debug(
            f"Created {job.kind.value} notification {notification.pk} for user {user.pk}"
        )
        return notification

    @staticmethod
    def serialize(notification: Notification) -> dict:
        """Payload pushed to clients with ``notification:new``."""
        return {
            "id": notification.pk,
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "link": notification.link,
            "actor_id": notification.actor_id,
            "thread_id": notification.thread_id,
            "post_id": notification.post_id,
            "is_read": notification.is_read,
            "created_at": notification.created_at,
        }

    # -------------------------------------------------------------------------
    # Inbox
    # -------------------------------------------------------------------------

    def get_unread_count(self, user) -> int:
        return Notification.objects.filter(user=user, is_read=False).count()

    def mark_as_read(self, user, notification_id: int) -> Notification:
        """
        Mark one of the user's notifications as read.

        Raises:
            Notification.DoesNotExist: Not found or owned by another user
        """
        notification = Notification.objects.get(pk=notification_id, user=user)
        if not notification.is_read:
            notification.mark_as_read()
            self._push(
                user.pk,
                "notification:read",
                {
                    "notification_id": notification.pk,
                    "unread_count": self.get_unread_count(user),
                },
            )
        return notification

    def mark_all_as_read(self, user) -> int:
        """Mark every unread notification of the user as read; returns how many."""
        with transaction.atomic():
            updated = Notification.objects.filter(user=user, is_read=False).update(
                is_read=True, read_at=timezone.now()
            )
        self._push(user.pk, "notification:all_read", {"updated": updated})
        return updated

    def delete_all_read(self, user) -> int:
        deleted, _ = Notification.objects.filter(user=user, is_read=True).delete()
        return deleted

    @staticmethod
    def purge_expired(now=None) -> int:
        """Delete notifications past their retention window."""
        now = now or timezone.now()
        deleted, _ = Notification.objects.filter(expires_at__lte=now).delete()
        if deleted:
            logger.info(f"Purged {deleted} expired notifications")
        return deleted

    def _push(self, user_id: int, event: str, data: dict) -> None:
        if self.realtime is None:
            return
        try:
            self.realtime.to_user(user_id, event, {**data, "timestamp": timezone.now()})
        except Exception as e:
            # Inbox state is already committed
            logger.warning(f"Failed to push {event} to user {user_id}: {e}")


__all__ = [
    "UNKNOWN_ACTOR",
    "UNKNOWN_THREAD",
    "NotificationContext",
    "NotificationService",
    "build_content",
]
