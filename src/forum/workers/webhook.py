# forum/workers/webhook.py
"""
Webhook delivery worker.

Each job is delivered to every active subscription of its event plus the
ad hoc URL it may carry. Targets are sent concurrently and independently;
retries happen inside WebhookService.deliver, never through the broker.
The job is acked whatever the delivery outcomes were.
"""

from concurrent.futures import Future, ThreadPoolExecutor

from forum.models import DeliverySource, DeliveryStatus
from forum.pipeline.consumer import Outcome
from forum.pipeline.jobs import WebhookJob
from forum.pipeline.queues import WEBHOOKS
from forum.services.webhook_service import EMAIL_STATUS_EVENT, DeliveryResult, DeliveryTarget
from forumutils.logging import get_logger

logger = get_logger(__name__)

MAX_PARALLEL_TARGETS = 8


class WebhookWorker:
    """Handler for the ``webhooks`` queue."""

    queue = WEBHOOKS

    def __init__(self, runtime, max_parallel: int = MAX_PARALLEL_TARGETS):
        self.runtime = runtime
        self.max_parallel = max_parallel

    def __call__(self, payload) -> Outcome:
        job = WebhookJob.from_payload(payload)
        self.log_event(job)

        targets = self.runtime.webhooks.targets_for(job)
        if not targets:
            logger.debug("webhook_no_targets", webhook_event=job.event_name)
            return Outcome.ACK

        envelope = {"event": job.event_name, "data": job.payload, "timestamp": job.timestamp}
        with ThreadPoolExecutor(
            max_workers=min(len(targets), self.max_parallel),
            thread_name_prefix="webhook-delivery",
        ) as pool:
            futures = [
                (target, pool.submit(self.runtime.webhooks.deliver, target, job.event_name, envelope))
                for target in targets
            ]
            outcomes = [
                (target, self.collect(target, job.event_name, future)) for target, future in futures
            ]

        # Log rows are written from this thread; the pool only does HTTP
        for target, result in outcomes:
            self.runtime.webhooks.log_delivery(
                job.event_name,
                envelope,
                DeliverySource.EXTERNAL.value,
                DeliveryStatus.SUCCESS.value if result.success else DeliveryStatus.FAILED.value,
                url=target.url,
                attempts=result.attempts,
                error=result.error,
            )

        logger.info(
            "webhook_job_delivered",
            webhook_event=job.event_name,
            targets=len(outcomes),
            failed=sum(1 for _, result in outcomes if not result.success),
        )
        return Outcome.ACK

    @staticmethod
    def collect(target: DeliveryTarget, event_name: str, future: Future) -> DeliveryResult:
        """Result of one target's delivery; an unexpected error fails that target only."""
        try:
            return future.result()
        except Exception as exc:
            logger.exception(
                "webhook_target_crashed",
                webhook_event=event_name,
                webhook_url=target.url,
                exception_type=type(exc).__name__,
            )
            return DeliveryResult(success=False, attempts=0, error=str(exc) or type(exc).__name__)

    @staticmethod
    def log_event(job: WebhookJob) -> None:
        if job.event_name == EMAIL_STATUS_EVENT:
            data = job.payload
            logger.info(
                "email_status_event",
                email_event=data.get("event"),
                message_id=data.get("messageId") or data.get("message_id"),
                recipient=data.get("recipient"),
            )
        else:
            logger.info("webhook_event_received", webhook_event=job.event_name)
