# forum/services/thread_service.py
"""
Thread write and read service.

Writes follow one order: database write (committed), cache invalidation,
job publication, real-time event. Reads go through the ForumCache.
"""

import logging
from typing import Any

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.text import slugify

from forum.exceptions import NotAuthorError, NotFoundError
from forum.models import ContentStatus, Post, Thread
from forum.pipeline.jobs import ContentCreatedJob, ModerationJob, SummaryJob
from forum.serializers.forum_serializers import ThreadSerializer

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def unique_slug(title: str) -> str:
    base = slugify(title)[:200] or "thread"
    slug = base
    suffix = 2
    while Thread.objects.filter(slug=slug).exists():
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


class ThreadService:
    """
    Service for creating, reading and changing threads.

    Args:
        runtime: PipelineRuntime with broker, cache and realtime handles
    """

    def __init__(self, runtime):
        self.runtime = runtime

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @staticmethod
    def _visible():
        return Thread.objects.exclude(status=ContentStatus.DELETED.value).select_related(
            "author"
        )

    def get_thread(self, thread_id: int) -> dict:
        """
        Raises:
            NotFoundError: Thread missing or deleted
        """

        def load():
            thread = self._visible().filter(pk=thread_id).first()
            return ThreadSerializer(thread).data if thread else None

        data = self.runtime.cache.get_thread(thread_id, load)
        if data is None:
            raise NotFoundError("Thread not found")
        return data

    def get_thread_by_slug(self, slug: str) -> dict:
        def load():
            thread = self._visible().filter(slug=slug).first()
            return ThreadSerializer(thread).data if thread else None

        data = self.runtime.cache.get_thread_by_slug(slug, load)
        if data is None:
            raise NotFoundError("Thread not found")
        return data

    def list_threads(
        self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE, search: str | None = None
    ) -> dict[str, Any]:
        page = max(int(page), 1)
        limit = min(max(int(limit), 1), MAX_PAGE_SIZE)
        query = {"page": page, "limit": limit, "search": search or ""}

        def load():
            queryset = self._visible()
            if search:
                queryset = queryset.filter(Q(title__icontains=search))
            total = queryset.count()
            start = (page - 1) * limit
            threads = queryset.order_by("-is_pinned", "-last_activity_at")[start : start + limit]
            return {
                "threads": ThreadSerializer(threads, many=True).data,
                "total": total,
                "page": page,
                "limit": limit,
            }

        return self.runtime.cache.get_thread_list(query, load)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_thread(self, author, title: str, content: str) -> Thread:
        """Create a thread with its initial post and queue the post for moderation."""
        with transaction.atomic():
            thread = Thread.objects.create(
                title=title,
                slug=unique_slug(title),
                author=author,
                post_count=1,
                last_activity_at=timezone.now(),
            )
            post = Post.objects.create(thread=thread, author=author, content=content)

        self.runtime.cache.invalidate_thread_lists()

        self.runtime.broker.publish_job(
            ModerationJob(content_id=post.pk, text_body=post.content, author_id=author.pk)
        )
        self.runtime.broker.publish_job(
            ContentCreatedJob(target_user_id=author.pk, thread_id=thread.pk)
        )
        self._emit_broadcast("thread:created", {"thread": ThreadSerializer(thread).data})

        logger.info(f"Thread {thread.pk} created by user {author.pk}")
        return thread

    def update_thread(self, thread_id: int, user, **changes) -> Thread:
        """
        Update title, lock or pin state.

        Raises:
            NotFoundError: Thread missing or deleted
            NotAuthorError: ``user`` did not create the thread
        """
        allowed = {key: value for key, value in changes.items() if key in ("title", "is_locked", "is_pinned")}
        with transaction.atomic():
            thread = self._locked_for_write(thread_id, user)
            for key, value in allowed.items():
                setattr(thread, key, value)
            thread.save()

        self.runtime.cache.invalidate_thread(thread.pk, thread.slug)

        data = {"thread": ThreadSerializer(thread).data}
        self._emit_broadcast("thread:updated", data)
        self._emit_room(thread.pk, "thread:updated", data)
        return thread

    def delete_thread(self, thread_id: int, user) -> None:
        """Soft delete a thread and every post in it."""
        with transaction.atomic():
            thread = self._locked_for_write(thread_id, user)
            thread.status = ContentStatus.DELETED.value
            thread.save(update_fields=["status", "updated_at"])
            Post.objects.filter(thread=thread).update(status=ContentStatus.DELETED.value)

        self.runtime.cache.invalidate_thread(thread.pk, thread.slug)

        data = {"thread_id": thread.pk}
        self._emit_broadcast("thread:deleted", data)
        self._emit_room(thread.pk, "thread:deleted", data)

    def request_summary(self, thread_id: int) -> dict | None:
        """
        Return the cached summary, or queue a summary job and return None.

        Raises:
            NotFoundError: Thread missing or deleted
        """
        if not self._visible().filter(pk=thread_id).exists():
            raise NotFoundError("Thread not found")

        cached = self.runtime.cache.get_summary(thread_id)
        if cached is not None:
            return cached

        self.runtime.broker.publish_job(SummaryJob(thread_id=thread_id))
        return None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _locked_for_write(self, thread_id: int, user) -> Thread:
        thread = (
            Thread.objects.select_for_update()
            .exclude(status=ContentStatus.DELETED.value)
            .filter(pk=thread_id)
            .first()
        )
        if thread is None:
            raise NotFoundError("Thread not found")
        if thread.author_id != user.pk:
            raise NotAuthorError("You are not authorized to change this thread")
        return thread

    def _emit_broadcast(self, event: str, data: dict) -> None:
        try:
            self.runtime.realtime.broadcast(event, {**data, "timestamp": timezone.now()})
        except Exception as e:
            logger.warning(f"Failed to broadcast {event}: {e}")

    def _emit_room(self, thread_id: int, event: str, data: dict) -> None:
        try:
            self.runtime.realtime.to_thread(thread_id, event, {**data, "timestamp": timezone.now()})
        except Exception as e:
            logger.warning(f"Failed to emit {event} to thread {thread_id}: {e}")
