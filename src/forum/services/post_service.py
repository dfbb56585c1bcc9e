# forum/services/post_service.py
"""
Post write service.

Every write commits first, then invalidates the thread's cached reads,
then publishes its jobs (moderation, mention/reply/comment notifications)
and finally emits the thread room event.
"""

import logging
import re

from django.db import transaction
from django.utils import timezone

from forum.exceptions import NotAuthorError, NotFoundError, ThreadLockedError
from forum.models import ContentStatus, ModerationStatus, Post, Thread, User
from forum.pipeline.jobs import MentionJob, ModerationJob, ReplyJob, ThreadCommentJob
from forum.serializers.forum_serializers import PostSerializer

logger = logging.getLogger(__name__)

MENTION_PATTERN = re.compile(r"@(\w+)")


def extract_mentions(content: str) -> list[str]:
    """Usernames mentioned as ``@name``, in order of first appearance."""
    seen = []
    for name in MENTION_PATTERN.findall(content or ""):
        if name not in seen:
            seen.append(name)
    return seen


class PostService:
    """
    Service for creating, editing and deleting posts.

    Args:
        runtime: PipelineRuntime with broker, cache and realtime handles
    """

    def __init__(self, runtime):
        self.runtime = runtime

    def create_post(self, author, thread_id: int, content: str, parent_id: int | None = None) -> Post:
        """
        Raises:
            NotFoundError: Thread or parent post missing
            ThreadLockedError: Thread is locked
        """
        with transaction.atomic():
            thread = (
                Thread.objects.select_for_update()
                .filter(pk=thread_id, status=ContentStatus.ACTIVE.value)
                .first()
            )
            if thread is None:
                raise NotFoundError("Thread not found")
            if thread.is_locked:
                raise ThreadLockedError()

            parent = None
            if parent_id:
                parent = Post.objects.filter(
                    pk=parent_id, thread=thread, status=ContentStatus.ACTIVE.value
                ).first()
                if parent is None:
                    raise NotFoundError("Parent post not found")

            post = Post.objects.create(thread=thread, parent=parent, author=author, content=content)
            mentioned = list(User.objects.filter(username__in=extract_mentions(content)))
            if mentioned:
                post.mentions.set(mentioned)
            thread.adjust_post_count(1)

        self.runtime.cache.invalidate_thread(thread.pk, thread.slug)

        broker = self.runtime.broker
        broker.publish_job(
            ModerationJob(content_id=post.pk, text_body=post.content, author_id=author.pk)
        )
        for job in self._notification_jobs(post, thread, parent, mentioned):
            broker.publish_job(job)

        self._emit(
            thread.pk,
            "post:created",
            {"post": PostSerializer(post).data, "parent_id": parent.pk if parent else None},
        )
        logger.info(f"Post {post.pk} created in thread {thread.pk} by user {author.pk}")
        return post

    def edit_post(self, post_id: int, user, content: str) -> Post:
        """
        Replace the body and send the post back through moderation.

        Raises:
            NotFoundError: Post missing or deleted
            NotAuthorError: ``user`` did not write the post
            ThreadLockedError: Thread is locked
        """
        with transaction.atomic():
            post = self._locked_for_write(post_id, user)
            if post.thread.is_locked:
                raise ThreadLockedError()

            post.content = content
            post.is_edited = True
            post.edited_at = timezone.now()
            post.moderation_status = ModerationStatus.PENDING.value
            post.save(
                update_fields=["content", "is_edited", "edited_at", "moderation_status", "updated_at"]
            )

        self.runtime.cache.invalidate_thread(post.thread_id, post.thread.slug)
        self.runtime.broker.publish_job(
            ModerationJob(content_id=post.pk, text_body=post.content, author_id=post.author_id)
        )
        self._emit(post.thread_id, "post:updated", {"post": PostSerializer(post).data})
        return post

    def delete_post(self, post_id: int, user) -> int:
        """
        Soft delete a post and its replies; returns how many posts were removed.
        """
        with transaction.atomic():
            post = self._locked_for_write(post_id, user)
            ids = self._descendant_ids(post)
            removed = Post.objects.filter(pk__in=ids, status=ContentStatus.ACTIVE.value).update(
                status=ContentStatus.DELETED.value, updated_at=timezone.now()
            )
            if removed:
                post.thread.adjust_post_count(-removed)

        self.runtime.cache.invalidate_thread(post.thread_id, post.thread.slug)
        self._emit(post.thread_id, "post:deleted", {"post_id": post.pk, "thread_id": post.thread_id})
        return removed

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _notification_jobs(post: Post, thread: Thread, parent: Post | None, mentioned: list) -> list:
        author_id = post.author_id
        common = {"actor_id": author_id, "post_id": post.pk, "thread_id": thread.pk}
        jobs = []
        notified = {author_id}

        if parent is not None and parent.author_id not in notified:
            jobs.append(ReplyJob(target_user_id=parent.author_id, **common))
            notified.add(parent.author_id)

        for user in mentioned:
            if user.pk not in notified:
                jobs.append(MentionJob(target_user_id=user.pk, **common))
                notified.add(user.pk)

        if thread.author_id not in notified:
            jobs.append(ThreadCommentJob(target_user_id=thread.author_id, **common))
        return jobs

    @staticmethod
    def _locked_for_write(post_id: int, user) -> Post:
        post = (
            Post.objects.select_for_update()
            .select_related("thread")
            .filter(pk=post_id, status=ContentStatus.ACTIVE.value)
            .first()
        )
        if post is None:
            raise NotFoundError("Post not found")
        if post.author_id != user.pk:
            raise NotAuthorError("You are not authorized to change this post")
        return post

    @staticmethod
    def _descendant_ids(post: Post) -> list[int]:
        ids = [post.pk]
        frontier = [post.pk]
        while frontier:
            frontier = list(Post.objects.filter(parent_id__in=frontier).values_list("pk", flat=True))
            ids.extend(frontier)
        return ids

    def _emit(self, thread_id: int, event: str, data: dict) -> None:
        try:
            self.runtime.realtime.to_thread(
                thread_id, event, {**data, "thread_id": thread_id, "timestamp": timezone.now()}
            )
        except Exception as e:
            logger.warning(f"Failed to emit {event} to thread {thread_id}: {e}")
