"""
Queue workers.

One handler class per pipeline queue; WorkerRunner hosts their consumers.
"""

from .moderation import ModerationWorker
from .notification import NotificationWorker
from .runner import WORKERS, WorkerRunner, build_consumer
from .summary import SummaryWorker
from .webhook import WebhookWorker

__all__ = [
    "WORKERS",
    "ModerationWorker",
    "NotificationWorker",
    "SummaryWorker",
    "WebhookWorker",
    "WorkerRunner",
    "build_consumer",
]
