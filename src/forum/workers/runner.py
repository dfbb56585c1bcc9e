# forum/workers/runner.py
"""
Hosts the queue consumers of one worker process.

Startup: connect the runtime (declares the topology), then start one
QueueConsumer per selected queue. Shutdown: set the stop event, wait for
every consumer to finish its in-flight message, then close the runtime.
"""

import threading

from forum.pipeline.consumer import QueueConsumer
from forum.pipeline.queues import MODERATION, NOTIFICATIONS, SUMMARY, WEBHOOKS
from forumutils.logging import get_logger

from .moderation import ModerationWorker
from .notification import NotificationWorker
from .summary import SummaryWorker
from .webhook import WebhookWorker

logger = get_logger(__name__)

WORKERS = {
    MODERATION: ModerationWorker,
    SUMMARY: SummaryWorker,
    NOTIFICATIONS: NotificationWorker,
    WEBHOOKS: WebhookWorker,
}


def build_consumer(runtime, queue_name: str, **options) -> QueueConsumer:
    """Consumer for one queue with the handler and concurrency it is configured for."""
    handler = WORKERS[queue_name](runtime)
    concurrency = runtime.broker.topology.spec(queue_name).concurrency
    return QueueConsumer(runtime.broker, queue_name, handler, concurrency=concurrency, **options)


class WorkerRunner:
    """
    Run consumers for ``queue_names`` (all pipeline queues by default)
    until ``stop()`` is called.
    """

    def __init__(self, runtime, queue_names: list[str] | None = None, **consumer_options):
        unknown = set(queue_names or []) - set(WORKERS)
        if unknown:
            raise ValueError(f"Unknown queue(s): {', '.join(sorted(unknown))}")

        self.runtime = runtime
        self.queue_names = list(queue_names or WORKERS)
        self.consumer_options = consumer_options
        self.stop_event = threading.Event()
        self.threads: list[threading.Thread] = []

    def start(self) -> None:
        self.runtime.start()
        for queue_name in self.queue_names:
            consumer = build_consumer(self.runtime, queue_name, **self.consumer_options)
            thread = threading.Thread(
                target=consumer.run,
                args=(self.stop_event,),
                name=f"{queue_name}-worker",
            )
            thread.start()
            self.threads.append(thread)
        logger.info("workers_started", queues=self.queue_names)

    def wait(self) -> None:
        """Block until the stop event is set."""
        while not self.stop_event.wait(timeout=1.0):
            pass

    def stop(self) -> None:
        if self.stop_event.is_set() and not self.threads:
            return
        logger.info("workers_stopping", queues=self.queue_names)
        self.stop_event.set()
        for thread in self.threads:
            thread.join()
        self.threads = []
        self.runtime.stop()
        logger.info("workers_stopped")
