"""
Tests for the REST API endpoints.
"""

import json

import pytest

from forum.models import Notification, Thread, WebhookDeliveryLog
from forum.pipeline.consumer import Outcome
from forum.pipeline.queues import MODERATION, NOTIFICATIONS, SUMMARY, WEBHOOKS
from forum.services.webhook_service import sign_payload


@pytest.mark.unit
class TestThreadAPI:
    """Test thread and post endpoints."""

    def test_list_threads_is_public(self, api_client, web_runtime, test_thread):
        response = api_client.get("/api/threads/")

        assert response.status_code == 200
        assert response.data["total"] == 1
        assert response.data["threads"][0]["slug"] == "test-thread"

    def test_list_threads_rejects_bad_paging(self, api_client, web_runtime):
        response = api_client.get("/api/threads/", {"page": "first"})

        assert response.status_code == 400

    def test_create_thread_requires_auth(self, api_client, web_runtime):
        response = api_client.post("/api/threads/", {"title": "Hi", "content": "There"}, format="json")

        assert response.status_code == 401

    def test_create_thread(self, auth_client, web_runtime):
        client = auth_client["client"]

        response = client.post(
            "/api/threads/", {"title": "New topic", "content": "Let's talk"}, format="json"
        )

        assert response.status_code == 201
        assert response.data["slug"] == "new-topic"
        assert response.data["author"]["username"] == "tester"
        assert web_runtime.broker.message_count(MODERATION) == 1

    def test_create_thread_validation(self, auth_client, web_runtime):
        response = auth_client["client"].post("/api/threads/", {"title": ""}, format="json")

        assert response.status_code == 400

    def test_thread_detail_not_found(self, api_client, web_runtime):
        response = api_client.get("/api/threads/999/")

        assert response.status_code == 404
        assert response.data["error"] == "NOT_FOUND"

    def test_patch_other_users_thread(self, api_client, web_runtime, test_thread, other_user):
        from rest_framework_simplejwt.tokens import RefreshToken

        api_client.credentials(
            HTTP_AUTHORIZATION=f"Bearer {RefreshToken.for_user(other_user).access_token}"
        )
        response = api_client.patch(f"/api/threads/{test_thread.pk}/", {"title": "Mine"}, format="json")

        assert response.status_code == 403

    def test_delete_thread(self, auth_client, web_runtime, test_thread):
        response = auth_client["client"].delete(f"/api/threads/{test_thread.pk}/")

        assert response.status_code == 204
        assert Thread.objects.get(pk=test_thread.pk).status == "deleted"

    def test_create_post_in_locked_thread(self, auth_client, web_runtime, test_thread):
        test_thread.is_locked = True
        test_thread.save()

        response = auth_client["client"].post(
            f"/api/threads/{test_thread.pk}/posts/", {"content": "Hello"}, format="json"
        )

        assert response.status_code == 400
        assert response.data["error"] == "THREAD_LOCKED"

    def test_create_and_delete_post(self, auth_client, web_runtime, test_thread):
        client = auth_client["client"]

        created = client.post(
            f"/api/threads/{test_thread.pk}/posts/", {"content": "Hello"}, format="json"
        )
        deleted = client.delete(f"/api/threads/posts/{created.data['id']}/")

        assert created.status_code == 201
        assert created.data["moderation_status"] == "pending"
        assert deleted.status_code == 200
        assert deleted.data == {"removed": 1}

    def test_blacklisted_token_is_rejected(self, auth_client, web_runtime):
        from django.core.cache import cache
        from rest_framework_simplejwt.tokens import AccessToken

        cache.set(f"blacklist:{AccessToken(auth_client['token'])['jti']}", True)

        response = auth_client["client"].post(
            "/api/threads/", {"title": "t", "content": "c"}, format="json"
        )

        assert response.status_code == 401


@pytest.mark.integration
class TestThreadSummaryAPI:
    """A summary is queued on the first request and served once generated."""

    def test_summary_polling(self, api_client, web_runtime, drain, test_thread, test_post):
        url = f"/api/threads/{test_thread.pk}/summary/"

        queued = api_client.get(url)
        assert queued.status_code == 202
        assert queued.data["thread_id"] == test_thread.pk

        assert drain(SUMMARY) == [Outcome.ACK]

        ready = api_client.get(url)
        assert ready.status_code == 200
        assert ready.data["data"]["key_points"] == ["Total posts: 1", "Total words: 6"]

    def test_summary_unknown_thread(self, api_client, web_runtime):
        assert api_client.get("/api/threads/404/summary/").status_code == 404


@pytest.mark.unit
class TestNotificationAPI:
    """Test the inbox endpoints."""

    @pytest.fixture
    def inbox(self, test_user, other_user):
        mine = [
            Notification.objects.create(user=test_user, type="system", title=f"n{i}", message="m")
            for i in range(2)
        ]
        Notification.objects.create(user=other_user, type="system", title="theirs", message="m")
        return mine

    def test_list_notifications(self, auth_client, web_runtime, inbox):
        response = auth_client["client"].get("/api/notifications/")

        assert response.status_code == 200
        assert response.data["unread_count"] == 2
        assert {n["title"] for n in response.data["data"]} == {"n0", "n1"}

    def test_requires_auth(self, api_client, web_runtime):
        assert api_client.get("/api/notifications/").status_code == 401

    def test_mark_as_read(self, auth_client, web_runtime, inbox):
        client = auth_client["client"]

        response = client.post(f"/api/notifications/{inbox[0].pk}/mark-as-read/")

        assert response.status_code == 200
        assert response.data["data"]["is_read"] is True
        assert client.get("/api/notifications/", {"unread": "true"}).data["unread_count"] == 1

    def test_mark_as_read_not_owned(self, auth_client, web_runtime, inbox):
        theirs = Notification.objects.get(title="theirs")

        response = auth_client["client"].post(f"/api/notifications/{theirs.pk}/mark-as-read/")

        assert response.status_code == 404

    def test_mark_all_then_clear(self, auth_client, web_runtime, inbox):
        client = auth_client["client"]

        assert client.post("/api/notifications/mark-all-read/").data == {"updated": 2}
        assert client.delete("/api/notifications/clear-read/").data == {"deleted": 2}
        assert Notification.objects.count() == 1


@pytest.mark.unit
class TestWebhookAPI:
    """Test the inbound email webhook and the delivery log listing."""

    URL = "/api/webhooks/email-status/"

    def post_signed(self, client, payload, secret="test-webhook-secret", timestamp="1700000000000"):
        body = json.dumps(payload)
        return client.post(
            self.URL,
            data=body,
            content_type="application/json",
            HTTP_X_WEBHOOK_SIGNATURE=sign_payload(secret, timestamp, body),
            HTTP_X_WEBHOOK_TIMESTAMP=timestamp,
        )

    def test_signed_callback_is_queued(self, api_client, web_runtime):
        payload = {"event": "bounced", "messageId": "msg-9", "recipient": "user@example.com"}

        response = self.post_signed(api_client, payload)

        assert response.status_code == 200
        assert response.data["data"] == {"messageId": "msg-9"}
        assert WebhookDeliveryLog.objects.get().event == "email.bounced"
        assert web_runtime.broker.message_count(WEBHOOKS) == 1

    def test_missing_signature(self, api_client, web_runtime):
        response = api_client.post(
            self.URL,
            data=json.dumps({"event": "delivered"}),
            content_type="application/json",
        )

        assert response.status_code == 401
        assert web_runtime.broker.message_count(WEBHOOKS) == 0

    def test_wrong_secret(self, api_client, web_runtime):
        payload = {"event": "delivered", "messageId": "m", "recipient": "user@example.com"}

        response = self.post_signed(api_client, payload, secret="guess")

        assert response.status_code == 401
        assert WebhookDeliveryLog.objects.count() == 0

    def test_invalid_payload(self, api_client, web_runtime):
        response = self.post_signed(api_client, {"event": "exploded", "messageId": "m"})

        assert response.status_code == 400
        assert web_runtime.broker.message_count(WEBHOOKS) == 0

    def test_logs_are_admin_only(self, auth_client, web_runtime):
        assert auth_client["client"].get("/api/webhooks/logs/").status_code == 403

    def test_logs_listing(self, admin_client, web_runtime):
        from forum.services.webhook_service import WebhookService

        WebhookService.log_delivery("email.delivered", {"a": 1}, "email", "success")
        WebhookService.log_delivery("thread.created", {}, "external", "failed", attempts=4)

        response = admin_client["client"].get("/api/webhooks/logs/", {"status": "failed"})

        assert response.status_code == 200
        assert [log["event"] for log in response.data["data"]] == ["thread.created"]
        assert response.data["data"][0]["attempts"] == 4

    def test_logs_query_validation(self, admin_client, web_runtime):
        response = admin_client["client"].get("/api/webhooks/logs/", {"source": "carrier-pigeon"})

        assert response.status_code == 400


@pytest.mark.integration
class TestPostToNotificationFlow:
    """A reply travels from the API to the parent author's inbox."""

    def test_reply_reaches_parent_author(
        self, api_client, web_runtime, drain, test_thread, test_post, test_user, other_user, realtime
    ):
        from rest_framework_simplejwt.tokens import RefreshToken

        api_client.credentials(
            HTTP_AUTHORIZATION=f"Bearer {RefreshToken.for_user(other_user).access_token}"
        )
        response = api_client.post(
            f"/api/threads/{test_thread.pk}/posts/",
            {"content": "Agreed @tester", "parent_id": test_post.pk},
            format="json",
        )
        assert response.status_code == 201

        assert drain(MODERATION) == [Outcome.ACK]
        assert drain(NOTIFICATIONS) == [Outcome.ACK]

        notification = Notification.objects.get(user=test_user)
        assert notification.type == "reply"
        assert notification.message == 'Alice replied to your post in "Test Thread"'
        assert realtime.to_user.call_args.args[:2] == (test_user.pk, "notification:new")
