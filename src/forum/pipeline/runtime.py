# forum/pipeline/runtime.py
"""
Handles shared by producers and workers.

A PipelineRuntime bundles the broker, cache, real-time channel and
external clients. It is built once by its owner (the web app on first
use, or the worker command) and passed explicitly to everything that
needs it.

Usage:
    runtime = PipelineRuntime.from_settings()
    runtime.start()
    try:
        ...
    finally:
        runtime.stop()
"""

from dataclasses import dataclass, field

from kombu import Connection

from forum.services.ai_service import AIService
from forum.services.cache_service import ForumCache
from forum.services.notification import NotificationService, RealtimeChannel
from forum.services.webhook_service import WebhookService
from forumutils.logging import get_logger

from .broker import QueueBroker

logger = get_logger(__name__)


@dataclass
class PipelineRuntime:
    broker: QueueBroker
    cache: ForumCache
    realtime: RealtimeChannel
    ai: AIService
    webhooks: WebhookService
    notifications: NotificationService
    started: bool = field(default=False, init=False)

    @classmethod
    def from_settings(cls, connection: Connection | None = None, **overrides) -> "PipelineRuntime":
        """Build every handle from Django settings; keyword overrides replace single handles."""
        realtime = overrides.get("realtime") or RealtimeChannel()
        return cls(
            broker=overrides.get("broker") or QueueBroker.from_settings(connection),
            cache=overrides.get("cache") or ForumCache(),
            realtime=realtime,
            ai=overrides.get("ai") or AIService(),
            webhooks=overrides.get("webhooks") or WebhookService(),
            notifications=overrides.get("notifications")
            or NotificationService(realtime=realtime),
        )

    def start(self) -> None:
        """Connect to the broker and declare the queue topology."""
        if self.started:
            return
        self.broker.connect()
        self.started = True
        logger.info("pipeline_runtime_started")

    def stop(self) -> None:
        if not self.started:
            return
        self.broker.close()
        self.ai.session.close()
        self.webhooks.close()
        self.started = False
        logger.info("pipeline_runtime_stopped")

