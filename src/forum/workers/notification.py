# forum/workers/notification.py
"""
Notification worker.

Persisting the Notification is the durable part of the job; a failure
there raises and the job is retried. The real-time push and the webhook
fan-out that follow are best-effort: each one yields a SideEffectResult,
and failures are logged and written to WebhookDeliveryLog instead of
failing the job.
"""

from django.utils import timezone

from forum.models import DeliverySource, DeliveryStatus, Notification
from forum.pipeline.consumer import Outcome
from forum.pipeline.errors import SideEffectResult
from forum.pipeline.jobs import WebhookJob, parse_notification_job
from forum.pipeline.queues import NOTIFICATIONS
from forumutils.logging import get_logger

logger = get_logger(__name__)

NOTIFICATION_SENT_EVENT = "notification.sent"
REALTIME_EVENT = "notification:new"

PUSH = "realtime_push"
WEBHOOK_DISPATCH = "webhook_dispatch"


def webhook_envelope(notification: Notification) -> dict:
    """Normalized event sent to ``notification.sent`` subscribers."""
    return {
        "notification_id": notification.pk,
        "type": notification.type,
        "user_id": notification.user_id,
        "thread_id": notification.thread_id,
        "post_id": notification.post_id,
        "actor_id": notification.actor_id,
        "timestamp": timezone.now().isoformat(),
    }


class NotificationWorker:
    """Handler for the ``notifications`` queue."""

    queue = NOTIFICATIONS

    def __init__(self, runtime):
        self.runtime = runtime

    def __call__(self, payload) -> Outcome:
        job = parse_notification_job(payload)

        notification = self.runtime.notifications.create_from_job(job)
        if notification is None:
            return Outcome.ACK

        results = [self.push(notification), self.dispatch_webhooks(notification)]
        for result in results:
            if not result.ok:
                self.record_failure(notification, result)

        logger.info(
            "notification_processed",
            notification_type=job.kind.value,
            notification_id=notification.pk,
            target_user_id=job.target_user_id,
            side_effects_failed=[r.side_effect for r in results if not r.ok],
        )
        return Outcome.ACK

    def push(self, notification: Notification) -> SideEffectResult:
        try:
            self.runtime.realtime.to_user(
                notification.user_id,
                REALTIME_EVENT,
                {
                    "notification": self.runtime.notifications.serialize(notification),
                    "timestamp": timezone.now(),
                },
            )
        except Exception as exc:
            return SideEffectResult.failure(PUSH, exc)
        return SideEffectResult.success(PUSH)

    def dispatch_webhooks(self, notification: Notification) -> SideEffectResult:
        try:
            if not self.runtime.webhooks.matching_subscriptions(NOTIFICATION_SENT_EVENT):
                return SideEffectResult.success(WEBHOOK_DISPATCH)

            envelope = webhook_envelope(notification)
            self.runtime.broker.publish_job(
                WebhookJob(
                    event_name=NOTIFICATION_SENT_EVENT,
                    payload=envelope,
                    timestamp=envelope["timestamp"],
                )
            )
            self.runtime.webhooks.log_delivery(
                NOTIFICATION_SENT_EVENT,
                envelope,
                DeliverySource.NOTIFICATION.value,
                DeliveryStatus.SUCCESS.value,
            )
        except Exception as exc:
            return SideEffectResult.failure(WEBHOOK_DISPATCH, exc)
        return SideEffectResult.success(WEBHOOK_DISPATCH)

    def record_failure(self, notification: Notification, result: SideEffectResult) -> None:
        logger.warning(
            "notification_side_effect_failed",
            side_effect=result.side_effect,
            notification_id=notification.pk,
            failure_reason=result.error.message if result.error else None,
        )
        source = (
            DeliverySource.REALTIME.value
            if result.side_effect == PUSH
            else DeliverySource.NOTIFICATION.value
        )
        self.runtime.webhooks.log_delivery(
            f"{NOTIFICATION_SENT_EVENT}.{result.side_effect}",
            {"notification_id": notification.pk, "user_id": notification.user_id},
            source,
            DeliveryStatus.FAILED.value,
            error=str(result.error),
        )


__all__ = ["NOTIFICATION_SENT_EVENT", "NotificationWorker", "webhook_envelope"]
