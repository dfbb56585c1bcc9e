# forum/pipeline/broker.py
"""
Durable queue broker interface built on kombu.

The broker wraps a kombu Connection that is injected by the caller
(normally ``configuration.celery.app.connection_for_write()``, so the
pipeline talks to the same RabbitMQ as Celery). Nothing here is a module
level singleton: the owner calls ``connect()`` at startup and ``close()``
at shutdown.

Messages are JSON envelopes ``{"data": <job payload>, "timestamp": ...}``
published persistent. The delivery attempt travels in the ``x-attempt``
header; a retry republishes the envelope with the counter incremented
and acks the original, since AMQP cannot rewrite headers on requeue.
With ``confirm_publish`` in the broker transport options, ``publish``
returns only after the broker confirmed the message.
"""

import threading

from django.utils import timezone
from kombu import Connection
from kombu.pools import producers

from forumutils.logging import get_logger

from .errors import MalformedJobError
from .jobs import Job
from .queues import (
    ATTEMPT_HEADER,
    DEATH_REASON_HEADER,
    DEFAULT_MAX_ATTEMPTS,
    ORIGIN_QUEUE_HEADER,
    QueueTopology,
    dead_letter_name,
)

logger = get_logger(__name__)

PERSISTENT = 2

PUBLISH_RETRY_POLICY = {
    "max_retries": 3,
    "interval_start": 0,
    "interval_step": 1,
    "interval_max": 5,
}


class QueueBroker:
    """
    Publish/consume access to the pipeline queues.

    Args:
        connection: kombu Connection (not yet connected)
        topology: Exchange and queue declarations
        max_attempts: Deliveries per job before it is dead-lettered
    """

    def __init__(
        self,
        connection: Connection,
        topology: QueueTopology,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.connection = connection
        self.topology = topology
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(cls, connection: Connection | None = None) -> "QueueBroker":
        from django.conf import settings

        if connection is None:
            from configuration.celery import app

            connection = app.connection_for_write()
        return cls(
            connection,
            QueueTopology.from_settings(),
            max_attempts=getattr(settings, "PIPELINE_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def connect(self) -> None:
        """Open the connection and declare every queue of the topology."""
        self.connection.ensure_connection(max_retries=3)
        with self.connection.channel() as channel:
            for queue in self.topology.all_queues():
                queue(channel).declare()
        logger.info(
            "broker_connected",
            transport=self.connection.transport_cls,
            queues=self.topology.names(),
        )

    def close(self) -> None:
        self.connection.release()
        logger.info("broker_closed")

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    def publish(self, queue_name: str, payload: dict) -> None:
        """
        Publish a job payload to a pipeline queue as its first attempt.

        Raises:
            KeyError: Unknown queue name
        """
        envelope = {"data": payload, "timestamp": timezone.now().isoformat()}
        self._send(queue_name, envelope, {ATTEMPT_HEADER: 1})
        logger.debug("job_published", queue=queue_name)

    def publish_job(self, job: Job) -> None:
        self.publish(job.queue, job.to_payload())

    def _send(self, queue_name: str, envelope: dict, headers: dict) -> None:
        queue = self.topology.queue(queue_name)
        with producers[self.connection].acquire(block=True) as producer:
            producer.publish(
                envelope,
                exchange=queue.exchange,
                routing_key=queue.routing_key,
                declare=[queue],
                serializer="json",
                delivery_mode=PERSISTENT,
                headers=headers,
                retry=True,
                retry_policy=PUBLISH_RETRY_POLICY,
            )

    # -------------------------------------------------------------------------
    # Consuming
    # -------------------------------------------------------------------------

    def consume(
        self,
        queue_name: str,
        handler,
        concurrency: int = 1,
        stop_event: threading.Event | None = None,
        **options,
    ) -> None:
        """
        Run ``handler`` on every message of ``queue_name`` with at most
        ``concurrency`` messages in flight. Blocks until ``stop_event`` is set.

        See QueueConsumer for how handler outcomes settle each message.
        """
        from .consumer import QueueConsumer

        consumer = QueueConsumer(self, queue_name, handler, concurrency=concurrency, **options)
        consumer.run(stop_event or threading.Event())

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def purge(self, queue_name: str) -> int:
        """Drop every ready message of a queue; returns how many were dropped."""
        with self.connection.channel() as channel:
            bound = self.topology.queue(queue_name)(channel)
            bound.declare()
            purged = bound.purge() or 0
        logger.info("queue_purged", queue=queue_name, purged=purged)
        return purged

    def message_count(self, queue_name: str) -> int:
        """Number of ready messages in a queue."""
        with self.connection.channel() as channel:
            bound = self.topology.queue(queue_name)(channel)
            _, count, _ = bound.queue_declare()
        return count


class Delivery:
    """
    One received message and the decisions a handler can take on it.

    ``ack()`` removes it. ``nack(requeue=True)`` schedules another attempt
    with the counter incremented. ``nack(requeue=False)`` parks it on the
    queue's dead-letter queue.
    """

    def __init__(self, broker: QueueBroker, queue_name: str, message):
        self.broker = broker
        self.queue_name = queue_name
        self.message = message

    @property
    def attempt(self) -> int:
        headers = self.message.headers or {}
        try:
            return max(int(headers.get(ATTEMPT_HEADER, 1)), 1)
        except (TypeError, ValueError):
            return 1

    @property
    def delivery_tag(self):
        return self.message.delivery_tag

    @property
    def envelope(self) -> dict:
        try:
            envelope = self.message.decode()
        except Exception as exc:
            raise MalformedJobError(f"undecodable message body: {exc}") from exc
        if not isinstance(envelope, dict) or "data" not in envelope:
            raise MalformedJobError("message is not a job envelope")
        return envelope

    @property
    def payload(self):
        return self.envelope["data"]

    def ack(self) -> None:
        self.message.ack()

    def nack(self, requeue: bool, reason: str = "") -> None:
        if requeue:
            self.broker._send(
                self.queue_name,
                self._raw_envelope(),
                {ATTEMPT_HEADER: self.attempt + 1},
            )
        else:
            self.broker._send(
                dead_letter_name(self.queue_name),
                self._raw_envelope(),
                {
                    ATTEMPT_HEADER: self.attempt,
                    ORIGIN_QUEUE_HEADER: self.queue_name,
                    DEATH_REASON_HEADER: reason[:500],
                },
            )
        self.message.ack()

    def _raw_envelope(self) -> dict:
        try:
            return self.envelope
        except MalformedJobError:
            body = self.message.body
            if isinstance(body, bytes):
                body = body.decode("utf-8", errors="replace")
            return {"data": None, "raw": body, "timestamp": timezone.now().isoformat()}
