# forum/pipeline/consumer.py
"""
Blocking receive loop for one pipeline queue.

A handler takes the job payload and returns an ``Outcome``. The consumer
settles the message accordingly:

- ACK: message removed
- RETRY / exception: another attempt while ``attempt < max_attempts``
- DEAD_LETTER / attempts exhausted / MalformedJobError: parked on the
  dead-letter queue and recorded in PipelineAuditLog

Messages are settled only after the handler returns, so a crash in the
middle of a job leaves the message unacknowledged for the broker to
redeliver.
"""

import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from django.db import DatabaseError, close_old_connections
from kombu.exceptions import OperationalError

from forumutils.log_helpers import job_context, log_job_outcome
from forumutils.logging import get_logger

from .broker import Delivery, QueueBroker
from .errors import MalformedJobError

logger = get_logger(__name__)

MAX_RECONNECT_DELAY = 60.0


class Outcome(str, Enum):
    ACK = "ack"
    RETRY = "retry"
    DEAD_LETTER = "dead_letter"


Handler = Callable[[Any], Outcome]


class QueueConsumer:
    """
    Consume one queue with up to ``concurrency`` messages in flight.

    Each receive loop runs in its own thread with its own broker
    connection and a prefetch of one.
    """

    def __init__(
        self,
        broker: QueueBroker,
        queue_name: str,
        handler: Handler,
        concurrency: int = 1,
        poll_timeout: float = 1.0,
        reconnect_delay: float = 5.0,
    ):
        self.broker = broker
        self.queue_name = queue_name
        self.handler = handler
        self.concurrency = max(concurrency, 1)
        self.poll_timeout = poll_timeout
        self.reconnect_delay = reconnect_delay
        self.queue = broker.topology.queue(queue_name)

    # -------------------------------------------------------------------------
    # Settling one message
    # -------------------------------------------------------------------------

    def process(self, delivery: Delivery) -> Outcome:
        """Run the handler for one delivery and settle it."""
        attempt = delivery.attempt
        started = time.monotonic()
        error = None

        with job_context(
            queue=self.queue_name, attempt=attempt, delivery_tag=delivery.delivery_tag
        ):
            try:
                outcome = self.handler(delivery.payload)
            except MalformedJobError as exc:
                error = exc
                outcome = Outcome.DEAD_LETTER
            except Exception as exc:
                error = exc
                outcome = Outcome.RETRY
                logger.warning(
                    "job_handler_failed",
                    exception_type=type(exc).__name__,
                    exception_message=str(exc),
                    exc_info=True,
                )

            if outcome is Outcome.RETRY and attempt >= self.broker.max_attempts:
                outcome = Outcome.DEAD_LETTER

            if outcome is Outcome.ACK:
                delivery.ack()
            elif outcome is Outcome.RETRY:
                delivery.nack(requeue=True)
            else:
                reason = str(error) if error else "dead-lettered by handler"
                delivery.nack(requeue=False, reason=reason)
                self._audit_dead_letter(delivery, attempt, reason)

            log_job_outcome(
                self.queue_name,
                outcome.value,
                attempt=attempt,
                duration=time.monotonic() - started,
                error=error,
            )
        return outcome

    def _audit_dead_letter(self, delivery: Delivery, attempt: int, reason: str) -> None:
        from forum.models import PipelineAuditLog

        try:
            payload = delivery.payload
        except MalformedJobError:
            payload = None
        try:
            PipelineAuditLog.objects.create(
                action="job.dead_lettered",
                queue_name=self.queue_name,
                payload=payload if isinstance(payload, dict) else {"value": payload},
                attempts=attempt,
                error=reason,
            )
        except DatabaseError as exc:
            logger.error(
                "dead_letter_audit_failed",
                queue=self.queue_name,
                attempts=attempt,
                reason=reason,
                exception_message=str(exc),
            )

    # -------------------------------------------------------------------------
    # Receive loops
    # -------------------------------------------------------------------------

    def drain(self, limit: int = 1000) -> list[Outcome]:
        """
        Process ready messages in the calling thread until the queue is
        empty (or ``limit`` messages were handled). Retries published while
        draining are picked up by the same call.
        """
        outcomes = []
        with self.broker.connection.clone() as conn:
            with conn.SimpleQueue(self.queue, no_ack=False, accept=["json"]) as simple:
                while len(outcomes) < limit:
                    try:
                        message = simple.get_nowait()
                    except simple.Empty:
                        break
                    outcomes.append(
                        self.process(Delivery(self.broker, self.queue_name, message))
                    )
        return outcomes

    def run(self, stop_event: threading.Event) -> None:
        """Block until ``stop_event`` is set and every loop has finished."""
        threads = [
            threading.Thread(
                target=self._loop,
                args=(stop_event,),
                name=f"{self.queue_name}-consumer-{index}",
                daemon=True,
            )
            for index in range(self.concurrency)
        ]
        for thread in threads:
            thread.start()
        logger.info(
            "consumer_started", queue=self.queue_name, concurrency=self.concurrency
        )
        for thread in threads:
            thread.join()
        logger.info("consumer_stopped", queue=self.queue_name)

    def _loop(self, stop_event: threading.Event) -> None:
        """Receive until stopped, reconnecting with backoff whenever the broker is lost."""
        parent = self.broker.connection
        errors = (OperationalError, OSError) + parent.connection_errors + parent.channel_errors
        delay = self.reconnect_delay
        while not stop_event.is_set():
            try:
                with parent.clone() as conn:
                    conn.ensure_connection(max_retries=1)
                    delay = self.reconnect_delay
                    self._receive(conn, stop_event)
            except errors as exc:
                logger.warning(
                    "consumer_connection_lost",
                    queue=self.queue_name,
                    retry_in=delay,
                    exception_type=type(exc).__name__,
                    exception_message=str(exc),
                )
                if stop_event.wait(delay):
                    break
                delay = min(delay * 2, MAX_RECONNECT_DELAY)

    def _receive(self, conn, stop_event: threading.Event) -> None:
        with conn.SimpleQueue(self.queue, no_ack=False, accept=["json"]) as simple:
            simple.consumer.qos(prefetch_count=1)
            while not stop_event.is_set():
                try:
                    message = simple.get(block=True, timeout=self.poll_timeout)
                except simple.Empty:
                    continue
                close_old_connections()
                try:
                    self.process(Delivery(self.broker, self.queue_name, message))
                finally:
                    close_old_connections()
