"""
Tests for the thread, post and notification services.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from forum.exceptions import NotAuthorError, NotFoundError, ThreadLockedError
from forum.models import ContentStatus, ModerationStatus, Notification, Post, Thread
from forum.pipeline.consumer import Outcome, QueueConsumer
from forum.pipeline.queues import MODERATION, NOTIFICATIONS, SUMMARY
from forum.services.post_service import PostService, extract_mentions
from forum.services.thread_service import ThreadService


def queued_payloads(runtime, queue_name):
    """Consume a queue and return the job payloads that were on it."""
    payloads = []

    def record(payload):
        payloads.append(payload)
        return Outcome.ACK

    QueueConsumer(runtime.broker, queue_name, record).drain()
    return payloads


@pytest.mark.unit
class TestThreadService:
    """Test thread writes and cached reads."""

    def test_create_thread(self, runtime, realtime, test_user):
        """The opening post is queued for moderation and the author is told."""
        thread = ThreadService(runtime).create_thread(test_user, "Hello World", "First post")

        assert thread.slug == "hello-world"
        assert thread.post_count == 1
        post = Post.objects.get(thread=thread)
        assert post.moderation_status == ModerationStatus.PENDING.value

        assert queued_payloads(runtime, MODERATION) == [
            {"content_id": post.pk, "text_body": "First post", "author_id": test_user.pk}
        ]
        assert queued_payloads(runtime, NOTIFICATIONS) == [
            {"type": "content-created", "target_user_id": test_user.pk, "thread_id": thread.pk, "post_id": None}
        ]
        assert realtime.broadcast.call_args.args[0] == "thread:created"

    def test_duplicate_titles_get_unique_slugs(self, runtime, test_user):
        service = ThreadService(runtime)

        first = service.create_thread(test_user, "Same", "a")
        second = service.create_thread(test_user, "Same", "b")

        assert (first.slug, second.slug) == ("same", "same-2")

    def test_get_thread_is_cached(self, runtime, test_thread, django_assert_num_queries):
        service = ThreadService(runtime)

        first = service.get_thread(test_thread.pk)
        with django_assert_num_queries(0):
            second = service.get_thread(test_thread.pk)

        assert first == second
        assert first["title"] == "Test Thread"

    def test_get_deleted_thread_raises(self, runtime, test_thread):
        test_thread.status = ContentStatus.DELETED.value
        test_thread.save()

        with pytest.raises(NotFoundError):
            ThreadService(runtime).get_thread(test_thread.pk)

    def test_list_threads_invalidated_by_create(self, runtime, test_user, test_thread):
        service = ThreadService(runtime)

        assert service.list_threads()["total"] == 1
        service.create_thread(test_user, "Another", "content")

        listing = service.list_threads()
        assert listing["total"] == 2
        assert (listing["page"], listing["limit"]) == (1, 10)

    def test_list_threads_search_and_limit(self, runtime, test_user, test_thread):
        service = ThreadService(runtime)
        service.create_thread(test_user, "Python tips", "content")

        assert [t["title"] for t in service.list_threads(search="python")["threads"]] == ["Python tips"]
        assert service.list_threads(limit=1000)["limit"] == 100

    def test_update_thread_requires_author(self, runtime, test_thread, other_user):
        with pytest.raises(NotAuthorError):
            ThreadService(runtime).update_thread(test_thread.pk, other_user, title="Mine now")

    def test_update_thread_drops_cached_read(self, runtime, realtime, test_thread, test_user):
        service = ThreadService(runtime)
        service.get_thread(test_thread.pk)

        service.update_thread(test_thread.pk, test_user, title="Renamed", is_locked=True)

        data = service.get_thread(test_thread.pk)
        assert data["title"] == "Renamed"
        assert data["is_locked"] is True
        assert realtime.to_thread.call_args.args[:2] == (test_thread.pk, "thread:updated")

    def test_delete_thread_soft_deletes_posts(self, runtime, test_thread, test_post, test_user):
        ThreadService(runtime).delete_thread(test_thread.pk, test_user)

        test_post.refresh_from_db()
        assert Thread.objects.get(pk=test_thread.pk).status == ContentStatus.DELETED.value
        assert test_post.status == ContentStatus.DELETED.value

    def test_request_summary_queues_then_reads_cache(self, runtime, test_thread):
        service = ThreadService(runtime)

        assert service.request_summary(test_thread.pk) is None
        assert queued_payloads(runtime, SUMMARY) == [{"thread_id": test_thread.pk}]

        runtime.cache.set_summary(test_thread.pk, {"summary": "Done"})
        assert service.request_summary(test_thread.pk) == {"summary": "Done"}
        assert runtime.broker.message_count(SUMMARY) == 0

    def test_request_summary_unknown_thread(self, runtime):
        with pytest.raises(NotFoundError):
            ThreadService(runtime).request_summary(12345)

    def test_realtime_failure_does_not_fail_write(self, runtime, realtime, test_user):
        realtime.broadcast.side_effect = RuntimeError("layer down")

        thread = ThreadService(runtime).create_thread(test_user, "Still works", "ok")

        assert Thread.objects.filter(pk=thread.pk).exists()


@pytest.mark.unit
class TestPostService:
    """Test post writes and the jobs they publish."""

    def test_extract_mentions(self):
        assert extract_mentions("hi @alice and @bob, @alice again") == ["alice", "bob"]
        assert extract_mentions("") == []

    def test_create_post_publishes_jobs(self, runtime, test_thread, test_user, other_user):
        """The thread author is mentioned once, not also told about the comment."""
        post = PostService(runtime).create_post(
            other_user, test_thread.pk, "Thanks @tester, see @alice and @nobody"
        )

        test_thread.refresh_from_db()
        assert test_thread.post_count == 2
        assert set(post.mentions.all()) == {test_user, other_user}

        assert queued_payloads(runtime, MODERATION)[0]["content_id"] == post.pk
        assert queued_payloads(runtime, NOTIFICATIONS) == [
            {
                "type": "mention",
                "target_user_id": test_user.pk,
                "actor_id": other_user.pk,
                "post_id": post.pk,
                "thread_id": test_thread.pk,
            }
        ]

    def test_reply_notifies_parent_author(self, runtime, test_thread, test_post, other_user):
        post = PostService(runtime).create_post(
            other_user, test_thread.pk, "Good point", parent_id=test_post.pk
        )

        assert post.parent == test_post
        assert [p["type"] for p in queued_payloads(runtime, NOTIFICATIONS)] == ["reply"]

    def test_comment_notifies_thread_author(self, runtime, test_thread, other_user):
        PostService(runtime).create_post(other_user, test_thread.pk, "Nice thread")

        assert [p["type"] for p in queued_payloads(runtime, NOTIFICATIONS)] == ["thread-comment"]

    def test_own_thread_post_notifies_nobody(self, runtime, test_thread, test_user):
        PostService(runtime).create_post(test_user, test_thread.pk, "Bump")

        assert runtime.broker.message_count(NOTIFICATIONS) == 0
        assert runtime.broker.message_count(MODERATION) == 1

    def test_locked_thread_rejects_posts(self, runtime, test_thread, other_user):
        test_thread.is_locked = True
        test_thread.save()

        with pytest.raises(ThreadLockedError):
            PostService(runtime).create_post(other_user, test_thread.pk, "Too late")
        assert runtime.broker.message_count(MODERATION) == 0

    def test_unknown_parent(self, runtime, test_thread, other_user):
        with pytest.raises(NotFoundError):
            PostService(runtime).create_post(other_user, test_thread.pk, "?", parent_id=999)

    def test_edit_post_goes_back_to_moderation(self, runtime, test_post, test_user):
        test_post.moderation_status = ModerationStatus.APPROVED.value
        test_post.save()

        post = PostService(runtime).edit_post(test_post.pk, test_user, "Edited text")

        assert post.is_edited is True
        assert post.moderation_status == ModerationStatus.PENDING.value
        assert queued_payloads(runtime, MODERATION)[0]["text_body"] == "Edited text"

    def test_edit_requires_author(self, runtime, test_post, other_user):
        with pytest.raises(NotAuthorError):
            PostService(runtime).edit_post(test_post.pk, other_user, "Hijack")

    def test_delete_post_removes_replies(self, runtime, test_thread, test_post, test_user, other_user):
        reply = Post.objects.create(thread=test_thread, author=other_user, content="r", parent=test_post)
        Post.objects.create(thread=test_thread, author=test_user, content="rr", parent=reply)
        test_thread.post_count = 3
        test_thread.save()

        removed = PostService(runtime).delete_post(test_post.pk, test_user)

        test_thread.refresh_from_db()
        assert removed == 3
        assert test_thread.post_count == 0
        assert not Post.objects.filter(status=ContentStatus.ACTIVE.value).exists()


@pytest.mark.unit
class TestNotificationService:
    """Test inbox operations."""

    @pytest.fixture
    def notifications(self, test_user):
        return [
            Notification.objects.create(user=test_user, type="system", title=f"n{i}", message="m")
            for i in range(3)
        ]

    def test_mark_as_read_pushes_unread_count(self, runtime, realtime, test_user, notifications):
        service = runtime.notifications

        service.mark_as_read(test_user, notifications[0].pk)

        assert service.get_unread_count(test_user) == 2
        user_id, event, data = realtime.to_user.call_args.args
        assert (user_id, event) == (test_user.pk, "notification:read")
        assert data["unread_count"] == 2

    def test_mark_as_read_other_users_notification(self, runtime, other_user, notifications):
        with pytest.raises(Notification.DoesNotExist):
            runtime.notifications.mark_as_read(other_user, notifications[0].pk)

    def test_mark_all_and_clear(self, runtime, realtime, test_user, notifications):
        service = runtime.notifications

        assert service.mark_all_as_read(test_user) == 3
        assert realtime.to_user.call_args.args[1] == "notification:all_read"
        assert service.delete_all_read(test_user) == 3
        assert Notification.objects.count() == 0

    def test_push_failure_keeps_inbox_state(self, runtime, realtime, test_user, notifications):
        realtime.to_user.side_effect = RuntimeError("layer down")

        assert runtime.notifications.mark_all_as_read(test_user) == 3

    def test_purge_expired(self, test_user):
        from forum.services.notification import NotificationService

        old = Notification.objects.create(user=test_user, type="system", title="old", message="m")
        Notification.objects.filter(pk=old.pk).update(expires_at=timezone.now() - timedelta(days=1))
        Notification.objects.create(user=test_user, type="system", title="new", message="m")

        assert NotificationService.purge_expired() == 1
        assert list(Notification.objects.values_list("title", flat=True)) == ["new"]

    def test_default_retention(self, test_user, settings):
        settings.NOTIFICATION_RETENTION_DAYS = 30

        notification = Notification.objects.create(user=test_user, type="system", title="t", message="m")

        remaining = notification.expires_at - timezone.now()
        assert timedelta(days=29) < remaining <= timedelta(days=30)
