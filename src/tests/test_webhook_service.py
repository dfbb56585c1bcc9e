"""
Tests for webhook signing, delivery and the webhook worker.
"""

import hashlib
import hmac
import threading
from unittest.mock import MagicMock

import pytest
import requests

from forum.models import ExternalWebhook, WebhookDeliveryLog
from forum.pipeline.consumer import Outcome
from forum.pipeline.jobs import WebhookJob
from forum.pipeline.queues import WEBHOOKS
from forum.services.webhook_service import (
    DeliveryTarget,
    WebhookService,
    WebhookSignatureError,
    encode_body,
    sign_payload,
    verify_inbound_request,
    verify_signature,
)


def responses(*status_codes):
    return [MagicMock(status_code=code) for code in status_codes]


@pytest.mark.unit
class TestSigning:
    """Test HMAC signatures."""

    def test_signature_covers_timestamp_and_body(self):
        body = b'{"event":"x"}'
        expected = hmac.new(b"secret", b"1700000000000." + body, hashlib.sha256).hexdigest()

        assert sign_payload("secret", "1700000000000", body) == expected
        assert sign_payload("secret", "1700000000000", body.decode()) == expected

    def test_verify_signature(self):
        signature = sign_payload("secret", "1", b"body")

        assert verify_signature("secret", "1", b"body", signature) is True
        assert verify_signature("secret", "2", b"body", signature) is False
        assert verify_signature("other", "1", b"body", signature) is False
        assert verify_signature("secret", "1", b"body", None) is False

    def test_encode_body_is_canonical(self):
        assert encode_body({"b": 1, "a": {"d": 2, "c": 3}}) == b'{"a":{"c":3,"d":2},"b":1}'

    def test_inbound_request_checks(self):
        body = b'{"event":"delivered"}'
        headers = {
            "X-Webhook-Signature": sign_payload("secret", "123", body),
            "X-Webhook-Timestamp": "123",
        }

        verify_inbound_request(headers, body, "secret")

        with pytest.raises(WebhookSignatureError, match="Missing"):
            verify_inbound_request({}, body, "secret")
        with pytest.raises(WebhookSignatureError, match="not configured"):
            verify_inbound_request(headers, body, "")
        with pytest.raises(WebhookSignatureError, match="Invalid"):
            verify_inbound_request(headers, b'{"event":"bounced"}', "secret")


@pytest.mark.unit
class TestWebhookDelivery:
    """Test outbound delivery with retries."""

    @pytest.fixture
    def session(self):
        return MagicMock()

    @pytest.fixture
    def delays(self):
        return []

    @pytest.fixture
    def service(self, session, delays):
        return WebhookService(
            session=session, timeout=5, max_retries=3, backoff_base=1.0, sleep=delays.append
        )

    def test_headers_and_signature(self, service, session):
        session.request.return_value = MagicMock(status_code=204)
        target = DeliveryTarget(
            url="https://hooks.example.com/in",
            secret="s3cret",
            headers={"X-Tenant": "forum", "User-Agent": "overridden"},
        )
        envelope = {"event": "thread.created", "data": {"id": 1}, "timestamp": "t"}

        result = service.deliver(target, "thread.created", envelope)

        assert result.success is True
        assert result.attempts == 1
        assert result.status_code == 204

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        headers = kwargs["headers"]
        assert (method, url) == ("POST", "https://hooks.example.com/in")
        assert kwargs["data"] == encode_body(envelope)
        assert kwargs["timeout"] == 5
        assert headers["X-Tenant"] == "forum"
        assert headers["User-Agent"] == "ForumPipeline-Webhook/1.0"
        assert headers["Content-Type"] == "application/json"
        assert headers["X-Webhook-Event"] == "thread.created"
        assert headers["X-Webhook-Signature"] == sign_payload(
            "s3cret", headers["X-Webhook-Timestamp"], kwargs["data"]
        )

    def test_unsigned_without_secret(self, service, session):
        session.request.return_value = MagicMock(status_code=200)

        service.deliver(DeliveryTarget(url="https://hooks.example.com/in"), "e", {})

        assert "X-Webhook-Signature" not in session.request.call_args.kwargs["headers"]

    def test_retries_with_exponential_backoff(self, service, session, delays):
        session.request.side_effect = responses(500, 502, 200)

        result = service.deliver(DeliveryTarget(url="https://hooks.example.com/in"), "e", {})

        assert result.success is True
        assert result.attempts == 3
        assert delays == [1.0, 2.0]

    def test_gives_up_after_max_retries(self, service, session, delays):
        session.request.side_effect = [
            requests.ConnectionError("refused"),
            *responses(500, 500, 503),
        ]

        result = service.deliver(DeliveryTarget(url="https://hooks.example.com/in"), "e", {})

        assert result.success is False
        assert result.attempts == 4
        assert result.status_code == 503
        assert result.error == "HTTP 503"
        assert delays == [1.0, 2.0, 4.0]

    def test_redirect_is_not_success(self, service, session):
        session.request.return_value = MagicMock(status_code=301)

        result = service.deliver(DeliveryTarget(url="https://hooks.example.com/in"), "e", {})

        assert result.success is False

    def test_targets_for_job(self):
        ExternalWebhook.objects.create(
            name="Active", url="https://a.example.com", events=["thread.created"], method="PUT"
        )
        ExternalWebhook.objects.create(
            name="Inactive", url="https://b.example.com", events=["thread.created"], is_active=False
        )
        ExternalWebhook.objects.create(
            name="Other event", url="https://c.example.com", events=["post.created"]
        )
        job = WebhookJob(
            event_name="thread.created",
            payload={},
            timestamp="t",
            url="https://adhoc.example.com",
            secret="adhoc",
        )

        targets = WebhookService.targets_for(job)

        assert [(t.url, t.method) for t in targets] == [
            ("https://a.example.com", "PUT"),
            ("https://adhoc.example.com", "POST"),
        ]
        assert targets[1].secret == "adhoc"

    def test_invalid_headers_fail_without_a_request(self, service, session, delays):
        target = DeliveryTarget(url="https://hooks.example.com/in", headers=["not", "a", "dict"])

        result = service.deliver(target, "thread.created", {"thread_id": 1})

        assert result.success is False
        assert result.attempts == 0
        assert "headers must be an object" in result.error
        session.request.assert_not_called()
        assert delays == []

    def test_each_thread_gets_its_own_session(self, monkeypatch):
        opened = []

        def new_session():
            opened.append(MagicMock())
            return opened[-1]

        monkeypatch.setattr(requests, "Session", new_session)
        service = WebhookService()
        seen = []

        def grab():
            seen.append(service.session)
            seen.append(service.session)

        workers = [threading.Thread(target=grab) for _ in range(2)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        assert len(opened) == 2
        assert seen[0] is seen[1] and seen[2] is seen[3]
        assert seen[0] is not seen[2]

        service.close()

        for session in opened:
            session.close.assert_called_once()

    def test_get_logs_filters(self):
        WebhookService.log_delivery("a", {}, "email", "success")
        WebhookService.log_delivery("b", {}, "external", "failed", url="https://x", attempts=4)

        assert [log.event for log in WebhookService.get_logs(status="failed")] == ["b"]
        assert [log.event for log in WebhookService.get_logs(source="email")] == ["a"]
        assert len(WebhookService.get_logs(limit=1)) == 1

    def test_process_email_status(self, runtime):
        data = {"event": "delivered", "messageId": "msg-1", "recipient": "a@example.com"}

        runtime.webhooks.process_email_status(data, runtime.broker)

        log = WebhookDeliveryLog.objects.get()
        assert log.event == "email.delivered"
        assert log.source == "email"
        assert log.status == "success"
        assert runtime.broker.message_count(WEBHOOKS) == 1


@pytest.mark.unit
class TestWebhookWorker:
    """Test the webhook queue handler."""

    def test_no_targets_is_acked(self, runtime, drain, webhook_session):
        runtime.broker.publish_job(WebhookJob(event_name="nobody.listens", payload={}, timestamp="t"))

        assert drain(WEBHOOKS) == [Outcome.ACK]
        webhook_session.request.assert_not_called()
        assert WebhookDeliveryLog.objects.count() == 0

    def test_each_target_is_logged(self, runtime, drain, webhook_session):
        ExternalWebhook.objects.create(
            name="Down", url="https://down.example.com", events=["thread.created"]
        )

        def answer(method, url, **kwargs):
            return MagicMock(status_code=500 if "down" in url else 200)

        webhook_session.request.side_effect = answer
        runtime.broker.publish_job(
            WebhookJob(
                event_name="thread.created",
                payload={"thread_id": 1},
                timestamp="t",
                url="https://up.example.com",
            )
        )

        assert drain(WEBHOOKS) == [Outcome.ACK]

        logs = {log.url: log for log in WebhookDeliveryLog.objects.filter(source="external")}
        assert logs["https://up.example.com"].status == "success"
        assert logs["https://up.example.com"].attempts == 1
        assert logs["https://down.example.com"].status == "failed"
        assert logs["https://down.example.com"].attempts == 4
        assert logs["https://down.example.com"].payload == {
            "event": "thread.created",
            "data": {"thread_id": 1},
            "timestamp": "t",
        }
        # Delivery retries never go back through the broker
        assert runtime.broker.message_count(WEBHOOKS) == 0

    def test_bad_subscription_does_not_block_the_others(self, runtime, drain, webhook_session):
        ExternalWebhook.objects.create(
            name="Broken",
            url="https://broken.example.com",
            events=["thread.created"],
            headers=["not", "a", "dict"],
        )
        ExternalWebhook.objects.create(
            name="Healthy", url="https://healthy.example.com", events=["thread.created"]
        )
        runtime.broker.publish_job(
            WebhookJob(event_name="thread.created", payload={"thread_id": 1}, timestamp="t")
        )

        assert drain(WEBHOOKS) == [Outcome.ACK]

        assert webhook_session.request.call_count == 1
        assert webhook_session.request.call_args.args[1] == "https://healthy.example.com"
        logs = {log.url: log for log in WebhookDeliveryLog.objects.filter(source="external")}
        assert logs["https://healthy.example.com"].status == "success"
        assert logs["https://broken.example.com"].status == "failed"
        assert logs["https://broken.example.com"].attempts == 0
        assert "headers must be an object" in logs["https://broken.example.com"].error
        assert runtime.broker.message_count(WEBHOOKS) == 0

    def test_crashed_delivery_fails_only_its_target(self, runtime, drain, monkeypatch):
        deliver = runtime.webhooks.deliver

        def crash_on_one(target, event_name, envelope):
            if "crash" in target.url:
                raise RuntimeError("worker bug")
            return deliver(target, event_name, envelope)

        monkeypatch.setattr(runtime.webhooks, "deliver", crash_on_one)
        ExternalWebhook.objects.create(
            name="Crash", url="https://crash.example.com", events=["thread.created"]
        )
        runtime.broker.publish_job(
            WebhookJob(
                event_name="thread.created",
                payload={},
                timestamp="t",
                url="https://fine.example.com",
            )
        )

        assert drain(WEBHOOKS) == [Outcome.ACK]

        logs = {log.url: log for log in WebhookDeliveryLog.objects.filter(source="external")}
        assert logs["https://fine.example.com"].status == "success"
        assert logs["https://crash.example.com"].status == "failed"
        assert logs["https://crash.example.com"].error == "worker bug"
