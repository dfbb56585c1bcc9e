"""
Tests for the queue broker and the consumer's ack/retry/dead-letter handling.
"""

import threading

import pytest
from kombu import Connection
from kombu.exceptions import OperationalError as KombuOperationalError

from forum.pipeline.broker import Delivery
from forum.pipeline.consumer import Outcome, QueueConsumer
from forum.pipeline.errors import MalformedJobError
from forum.pipeline.jobs import ModerationJob, SummaryJob
from forum.pipeline.queues import MODERATION, SUMMARY, dead_letter_name


@pytest.mark.unit
class TestQueueTopology:
    """Test queue declarations."""

    def test_default_queues_and_concurrency(self):
        """Every pipeline queue has its concurrency ceiling and a dead-letter queue."""
        from forum.pipeline.queues import QueueTopology

        topology = QueueTopology.from_settings()

        assert topology.names() == ["moderation", "summary", "notifications", "webhooks"]
        assert topology.spec("moderation").concurrency == 5
        assert topology.spec("summary").concurrency == 2
        assert topology.spec("notifications").concurrency == 10
        assert topology.spec("webhooks").concurrency == 5
        assert len(topology.all_queues()) == 8
        assert topology.queue("summary.dead-letter").routing_key == "summary.dead-letter"

    def test_concurrency_override_from_settings(self, settings):
        """PIPELINE_QUEUE_CONCURRENCY overrides single queues."""
        from forum.pipeline.queues import QueueTopology

        settings.PIPELINE_QUEUE_CONCURRENCY = {"summary": 1}
        topology = QueueTopology.from_settings()

        assert topology.spec("summary").concurrency == 1
        assert topology.spec("moderation").concurrency == 5

    def test_exchange_is_durable_direct(self):
        from forum.pipeline.queues import QueueTopology

        topology = QueueTopology.from_settings()

        assert topology.exchange.name == "forum.pipeline"
        assert topology.exchange.type == "direct"
        assert topology.exchange.durable is True


@pytest.mark.unit
class TestQueueBroker:
    """Test publishing and queue maintenance."""

    def test_publish_job_lands_on_its_queue(self, runtime):
        """A published job is one ready message on its queue."""
        broker = runtime.broker

        broker.publish_job(SummaryJob(thread_id=7))

        assert broker.message_count(SUMMARY) == 1
        assert broker.message_count(MODERATION) == 0

    def test_publish_unknown_queue_raises(self, runtime):
        with pytest.raises(KeyError):
            runtime.broker.publish("no-such-queue", {"thread_id": 1})

    def test_purge_returns_dropped_count(self, runtime):
        broker = runtime.broker
        broker.publish_job(SummaryJob(thread_id=1))
        broker.publish_job(SummaryJob(thread_id=2))

        assert broker.purge(SUMMARY) == 2
        assert broker.message_count(SUMMARY) == 0

    def test_envelope_and_first_attempt(self, runtime):
        """Messages carry the payload under ``data`` and start at attempt 1."""
        broker = runtime.broker
        broker.publish_job(SummaryJob(thread_id=3))
        seen = []

        def handler(payload):
            seen.append(payload)
            return Outcome.ACK

        consumer = QueueConsumer(broker, SUMMARY, handler)
        with broker.connection.clone() as conn:
            with conn.SimpleQueue(consumer.queue, no_ack=False, accept=["json"]) as simple:
                message = simple.get_nowait()
                delivery = Delivery(broker, SUMMARY, message)
                assert delivery.attempt == 1
                assert delivery.envelope["data"] == {"thread_id": 3}
                assert "timestamp" in delivery.envelope
                consumer.process(delivery)

        assert seen == [{"thread_id": 3}]
        assert broker.message_count(SUMMARY) == 0


@pytest.mark.unit
class TestQueueConsumer:
    """Test settling messages by handler outcome."""

    def test_consume_blocks_until_stopped(self, runtime):
        stop = threading.Event()
        seen = []

        def handler(payload):
            seen.append(payload)
            stop.set()
            return Outcome.ACK

        runtime.broker.publish_job(SummaryJob(thread_id=7))
        worker = threading.Thread(
            target=runtime.broker.consume,
            args=(SUMMARY, handler),
            kwargs={"stop_event": stop, "poll_timeout": 0.05},
        )
        worker.start()
        worker.join(timeout=10)

        assert not worker.is_alive()
        assert seen == [{"thread_id": 7}]
        assert runtime.broker.message_count(SUMMARY) == 0

    def test_reconnects_until_broker_returns(self, runtime, monkeypatch):
        """Failed reconnects and lost connections never end the receive loop."""
        stop = threading.Event()
        seen = []

        def handler(payload):
            seen.append(payload)
            stop.set()
            return Outcome.ACK

        runtime.broker.publish_job(SummaryJob(thread_id=9))
        consumer = QueueConsumer(
            runtime.broker, SUMMARY, handler, poll_timeout=0.05, reconnect_delay=0.01
        )

        connect_failures = [KombuOperationalError("broker down"), OSError("connection refused")]
        ensure_connection = Connection.ensure_connection

        def flaky_ensure_connection(self, *args, **kwargs):
            if connect_failures:
                raise connect_failures.pop(0)
            return ensure_connection(self, *args, **kwargs)

        receive_failures = [ConnectionResetError("reset by peer")]
        receive = consumer._receive

        def flaky_receive(conn, stop_event):
            if receive_failures:
                raise receive_failures.pop(0)
            return receive(conn, stop_event)

        monkeypatch.setattr(Connection, "ensure_connection", flaky_ensure_connection)
        monkeypatch.setattr(consumer, "_receive", flaky_receive)

        worker = threading.Thread(target=consumer.run, args=(stop,))
        worker.start()
        worker.join(timeout=10)

        assert not worker.is_alive()
        assert connect_failures == [] and receive_failures == []
        assert seen == [{"thread_id": 9}]
        assert runtime.broker.message_count(SUMMARY) == 0

    def test_ack_removes_message(self, runtime):
        broker = runtime.broker
        broker.publish_job(SummaryJob(thread_id=1))

        consumer = QueueConsumer(broker, SUMMARY, lambda payload: Outcome.ACK)

        assert consumer.drain() == [Outcome.ACK]
        assert broker.message_count(SUMMARY) == 0
        assert broker.message_count(dead_letter_name(SUMMARY)) == 0

    def test_retry_increments_attempt(self, runtime):
        """A retried job comes back with the attempt counter incremented."""
        broker = runtime.broker
        broker.publish_job(SummaryJob(thread_id=1))
        attempts = []

        def handler(payload):
            return Outcome.RETRY if len(attempts) < 3 else Outcome.ACK

        consumer = QueueConsumer(broker, SUMMARY, handler)
        process = consumer.process

        def recording_process(delivery):
            attempts.append(delivery.attempt)
            return process(delivery)

        consumer.process = recording_process

        assert consumer.drain() == [Outcome.RETRY, Outcome.RETRY, Outcome.ACK]
        assert attempts == [1, 2, 3]
        assert broker.message_count(SUMMARY) == 0

    def test_exception_is_retried_then_dead_lettered(self, runtime):
        """A handler that keeps failing is parked after max attempts and audited."""
        from forum.models import PipelineAuditLog

        broker = runtime.broker
        broker.publish_job(SummaryJob(thread_id=42))
        calls = []

        def handler(payload):
            calls.append(payload)
            raise ConnectionError("database unavailable")

        consumer = QueueConsumer(broker, SUMMARY, handler)

        assert consumer.drain() == [Outcome.RETRY, Outcome.RETRY, Outcome.DEAD_LETTER]
        assert len(calls) == broker.max_attempts == 3
        assert broker.message_count(SUMMARY) == 0
        assert broker.message_count(dead_letter_name(SUMMARY)) == 1

        audit = PipelineAuditLog.objects.get()
        assert audit.action == "job.dead_lettered"
        assert audit.queue_name == SUMMARY
        assert audit.attempts == 3
        assert audit.payload == {"thread_id": 42}
        assert "database unavailable" in audit.error

    def test_malformed_job_dead_lettered_immediately(self, runtime):
        """A payload that can never be processed skips the retries."""
        from forum.models import PipelineAuditLog

        broker = runtime.broker
        broker.publish(MODERATION, {"content_id": "not-a-number"})

        def handler(payload):
            ModerationJob.from_payload(payload)
            return Outcome.ACK

        consumer = QueueConsumer(broker, MODERATION, handler)

        assert consumer.drain() == [Outcome.DEAD_LETTER]
        assert broker.message_count(dead_letter_name(MODERATION)) == 1
        audit = PipelineAuditLog.objects.get()
        assert audit.attempts == 1
        assert audit.queue_name == MODERATION

    def test_dead_letter_outcome_from_handler(self, runtime):
        broker = runtime.broker
        broker.publish_job(SummaryJob(thread_id=5))

        consumer = QueueConsumer(broker, SUMMARY, lambda payload: Outcome.DEAD_LETTER)

        assert consumer.drain() == [Outcome.DEAD_LETTER]
        assert broker.message_count(dead_letter_name(SUMMARY)) == 1

    def test_dead_letter_keeps_origin_headers(self, runtime):
        """The parked message records where it came from and why."""
        from forum.pipeline.queues import DEATH_REASON_HEADER, ORIGIN_QUEUE_HEADER

        broker = runtime.broker
        broker.publish_job(SummaryJob(thread_id=5))

        def handler(payload):
            raise MalformedJobError("bad thread")

        QueueConsumer(broker, SUMMARY, handler).drain()

        queue = broker.topology.queue(dead_letter_name(SUMMARY))
        with broker.connection.clone() as conn:
            with conn.SimpleQueue(queue, no_ack=False, accept=["json"]) as simple:
                message = simple.get_nowait()
                assert message.headers[ORIGIN_QUEUE_HEADER] == SUMMARY
                assert message.headers[DEATH_REASON_HEADER] == "bad thread"
                assert message.decode()["data"] == {"thread_id": 5}
                message.ack()

    def test_drain_respects_limit(self, runtime):
        broker = runtime.broker
        for thread_id in range(3):
            broker.publish_job(SummaryJob(thread_id=thread_id))

        consumer = QueueConsumer(broker, SUMMARY, lambda payload: Outcome.ACK)

        assert len(consumer.drain(limit=2)) == 2
        assert broker.message_count(SUMMARY) == 1

    def test_max_attempts_from_settings(self, settings):
        from forum.pipeline.broker import QueueBroker

        settings.PIPELINE_MAX_ATTEMPTS = 5
        broker = QueueBroker.from_settings()

        assert broker.max_attempts == 5
