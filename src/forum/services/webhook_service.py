# forum/services/webhook_service.py
"""
Webhook signing, outbound delivery and inbound ingestion.

Outbound deliveries are signed with HMAC-SHA256 over
``"<timestamp>.<body>"`` where ``timestamp`` is milliseconds since the
epoch and ``body`` is exactly the bytes sent. Inbound callbacks are
verified the same way before anything is queued.
"""

import hashlib
import hmac
import json
import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import requests
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from forum.models import DeliverySource, DeliveryStatus, ExternalWebhook, WebhookDeliveryLog
from forum.pipeline.jobs import WebhookJob
from forumutils.log_helpers import log_webhook_delivery

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"
TIMESTAMP_HEADER = "X-Webhook-Timestamp"
EVENT_HEADER = "X-Webhook-Event"
USER_AGENT = "ForumPipeline-Webhook/1.0"

EMAIL_STATUS_EVENT = "email-status"


# =============================================================================
# SIGNING
# =============================================================================


def sign_payload(secret: str, timestamp: str, body: bytes | str) -> str:
    """Hex HMAC-SHA256 of ``timestamp + "." + body``."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    message = timestamp.encode("utf-8") + b"." + body
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(secret: str, timestamp: str, body: bytes | str, signature: str) -> bool:
    """Constant-time comparison against the expected signature."""
    expected = sign_payload(secret, timestamp, body)
    return hmac.compare_digest(expected, signature or "")


def encode_body(envelope: dict[str, Any]) -> bytes:
    """Canonical JSON: sorted keys, no insignificant whitespace."""
    return json.dumps(
        envelope, cls=DjangoJSONEncoder, sort_keys=True, separators=(",", ":")
    ).encode("utf-8")


def now_millis() -> str:
    return str(int(time.time() * 1000))


class WebhookSignatureError(Exception):
    """Inbound webhook is missing its signature headers or fails verification."""


def verify_inbound_request(headers: Mapping[str, str], raw_body: bytes, secret: str) -> None:
    """
    Check an inbound callback before it is processed.

    Args:
        headers: Request headers (case-insensitive mapping, e.g. request.headers)
        raw_body: Body bytes exactly as received
        secret: Shared secret

    Raises:
        WebhookSignatureError: Headers missing or signature mismatch
    """
    signature = headers.get(SIGNATURE_HEADER)
    timestamp = headers.get(TIMESTAMP_HEADER)
    if not signature or not timestamp:
        raise WebhookSignatureError("Missing webhook signature or timestamp")
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")
    if not verify_signature(secret, timestamp, raw_body, signature):
        raise WebhookSignatureError("Invalid webhook signature")


# =============================================================================
# DELIVERY
# =============================================================================


@dataclass(frozen=True)
class DeliveryTarget:
    """One endpoint an event is delivered to."""

    url: str
    method: str = "POST"
    secret: str | None = None
    headers: dict | None = None
    webhook_id: int | None = None


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    attempts: int
    status_code: int | None = None
    error: str | None = None


class WebhookService:
    """
    Service for delivering events to external endpoints.

    Args:
        session: requests Session shared by every caller; when omitted each
            delivering thread gets its own Session
        timeout: Per-request timeout in seconds
        max_retries: Retries after the first attempt
        backoff_base: First retry delay in seconds, doubled on each retry
        sleep: Called with the delay between attempts
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._shared_session = session
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()
        self.timeout = timeout if timeout is not None else getattr(settings, "WEBHOOK_TIMEOUT", 10)
        self.max_retries = (
            max_retries if max_retries is not None else getattr(settings, "WEBHOOK_MAX_RETRIES", 3)
        )
        self.backoff_base = (
            backoff_base
            if backoff_base is not None
            else getattr(settings, "WEBHOOK_BACKOFF_BASE", 1.0)
        )
        self.sleep = sleep

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def close(self) -> None:
        """Close every Session this service opened."""
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()
        if self._shared_session is not None:
            self._shared_session.close()

    @staticmethod
    def matching_subscriptions(event_name: str) -> list[ExternalWebhook]:
        """Active subscriptions listing ``event_name``."""
        return [
            webhook
            for webhook in ExternalWebhook.objects.filter(is_active=True)
            if webhook.subscribes_to(event_name)
        ]

    @staticmethod
    def targets_for(job: WebhookJob) -> list[DeliveryTarget]:
        targets = [
            DeliveryTarget(
                url=webhook.url,
                method=webhook.method,
                secret=webhook.secret or None,
                headers=webhook.headers or None,
                webhook_id=webhook.pk,
            )
            for webhook in WebhookService.matching_subscriptions(job.event_name)
        ]
        if job.url:
            targets.append(DeliveryTarget(url=job.url, secret=job.secret, headers=job.headers))
        return targets

    def build_headers(self, target: DeliveryTarget, event_name: str, timestamp: str, body: bytes) -> dict:
        if target.headers is not None and not isinstance(target.headers, Mapping):
            raise TypeError(f"headers must be an object, not {type(target.headers).__name__}")
        headers = dict(target.headers or {})
        headers.update(
            {
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
                TIMESTAMP_HEADER: timestamp,
                EVENT_HEADER: event_name,
            }
        )
        if target.secret:
            headers[SIGNATURE_HEADER] = sign_payload(target.secret, timestamp, body)
        return headers

    def deliver(self, target: DeliveryTarget, event_name: str, envelope: dict[str, Any]) -> DeliveryResult:
        """
        Send one envelope to one target, retrying failed attempts.

        Never raises; the final outcome is returned.
        """
        try:
            body = encode_body(envelope)
            timestamp = now_millis()
            headers = self.build_headers(target, event_name, timestamp, body)
        except (TypeError, ValueError) as e:
            error = f"Invalid request: {e}"
            log_webhook_delivery(event_name, target.url, False, 0, None, error)
            return DeliveryResult(success=False, attempts=0, error=error)

        attempts = 0
        status_code = None
        error = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                self.sleep(self.backoff_base * 2 ** (attempt - 1))
            attempts += 1
            try:
                response = self.session.request(
                    target.method,
                    target.url,
                    data=body,
                    headers=headers,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                status_code = None
                error = str(e) or type(e).__name__
                logger.warning(f"Webhook attempt {attempts} to {target.url} failed: {error}")
                continue

            status_code = response.status_code
            if 200 <= status_code < 300:
                log_webhook_delivery(event_name, target.url, True, attempts, status_code)
                return DeliveryResult(success=True, attempts=attempts, status_code=status_code)

            error = f"HTTP {status_code}"
            logger.warning(f"Webhook attempt {attempts} to {target.url} returned {status_code}")

        log_webhook_delivery(event_name, target.url, False, attempts, status_code, error)
        return DeliveryResult(
            success=False, attempts=attempts, status_code=status_code, error=error
        )

    # -------------------------------------------------------------------------
    # Audit trail
    # -------------------------------------------------------------------------

    @staticmethod
    def log_delivery(
        event: str,
        payload: dict,
        source: str,
        status: str,
        url: str | None = None,
        attempts: int = 1,
        error: str | None = None,
    ) -> WebhookDeliveryLog | None:
        """Append a delivery log row; a failed insert is logged, not raised."""
        try:
            return WebhookDeliveryLog.objects.create(
                event=event,
                payload=json.loads(json.dumps(payload, cls=DjangoJSONEncoder)),
                source=source,
                status=status,
                url=url or "",
                attempts=attempts,
                error=error,
            )
        except Exception as e:
            logger.error(f"Failed to log webhook event {event}: {e}")
            return None

    @staticmethod
    def get_logs(
        event: str | None = None,
        source: str | None = None,
        status: str | None = None,
        limit: int = 100,
    ):
        queryset = WebhookDeliveryLog.objects.all()
        if event:
            queryset = queryset.filter(event=event)
        if source:
            queryset = queryset.filter(source=source)
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by("-timestamp")[:limit]

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def process_email_status(self, data: dict[str, Any], broker) -> None:
        """
        Record an email provider status callback and queue it for the
        webhook worker. Broker errors propagate to the caller.
        """
        event = f"email.{data.get('event', 'unknown')}"
        self.log_delivery(
            event, data, DeliverySource.EMAIL.value, DeliveryStatus.SUCCESS.value
        )
        logger.info(
            f"Email status webhook received: {data.get('event')} "
            f"for message {data.get('messageId') or data.get('message_id')}"
        )
        broker.publish_job(
            WebhookJob(
                event_name=EMAIL_STATUS_EVENT,
                payload=data,
                timestamp=timezone.now().isoformat(),
            )
        )
