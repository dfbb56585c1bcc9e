# forum/pipeline/queues.py
"""
Queue topology: names, concurrency ceilings and the kombu entities.

Every pipeline queue is durable and bound to one direct exchange by its
own name. Each has a ``<name>.dead-letter`` parking queue for jobs that
exhausted their attempts.
"""

from dataclasses import dataclass

from django.conf import settings
from kombu import Exchange, Queue

MODERATION = "moderation"
SUMMARY = "summary"
NOTIFICATIONS = "notifications"
WEBHOOKS = "webhooks"

DEFAULT_CONCURRENCY = {
    MODERATION: 5,
    SUMMARY: 2,
    NOTIFICATIONS: 10,
    WEBHOOKS: 5,
}

DEFAULT_EXCHANGE = "forum.pipeline"
DEFAULT_MAX_ATTEMPTS = 3

ATTEMPT_HEADER = "x-attempt"
DEATH_REASON_HEADER = "x-death-reason"
ORIGIN_QUEUE_HEADER = "x-origin-queue"


def dead_letter_name(queue_name: str) -> str:
    return f"{queue_name}.dead-letter"


@dataclass(frozen=True)
class QueueSpec:
    name: str
    concurrency: int

    @property
    def dead_letter(self) -> str:
        return dead_letter_name(self.name)


class QueueTopology:
    """Kombu exchange and queue declarations for the pipeline."""

    def __init__(self, specs: list[QueueSpec], exchange_name: str = DEFAULT_EXCHANGE):
        self.specs = {spec.name: spec for spec in specs}
        self.exchange = Exchange(exchange_name, type="direct", durable=True)
        self._queues = {}
        for spec in specs:
            for name in (spec.name, spec.dead_letter):
                self._queues[name] = Queue(
                    name, self.exchange, routing_key=name, durable=True
                )

    @classmethod
    def from_settings(cls) -> "QueueTopology":
        concurrency = {
            **DEFAULT_CONCURRENCY,
            **getattr(settings, "PIPELINE_QUEUE_CONCURRENCY", {}),
        }
        specs = [QueueSpec(name, int(limit)) for name, limit in concurrency.items()]
        return cls(specs, getattr(settings, "PIPELINE_EXCHANGE", DEFAULT_EXCHANGE))

    def spec(self, queue_name: str) -> QueueSpec:
        return self.specs[queue_name]

    def queue(self, queue_name: str) -> Queue:
        """Unbound kombu Queue for a pipeline or dead-letter queue name."""
        return self._queues[queue_name]

    def all_queues(self) -> list[Queue]:
        return list(self._queues.values())

    def names(self) -> list[str]:
        return list(self.specs)
