# forum/workers/summary.py

from forum.models import ContentStatus, ModerationStatus, Post, Thread
from forum.pipeline.consumer import Outcome
from forum.pipeline.jobs import SummaryJob
from forum.pipeline.queues import SUMMARY
from forumutils.logging import get_logger

logger = get_logger(__name__)

MAX_SUMMARY_POSTS = 100


class SummaryWorker:
    """
    Handler for the ``summary`` queue.

    Summarizes the first visible posts of a thread and caches the result
    under ``thread:summary:<id>``. Nothing is written to the database.
    """

    queue = SUMMARY

    def __init__(self, runtime):
        self.runtime = runtime

    def __call__(self, payload) -> Outcome:
        job = SummaryJob.from_payload(payload)

        thread = Thread.objects.filter(pk=job.thread_id).first()
        if thread is None:
            logger.info("summary_thread_missing", thread_id=job.thread_id)
            return Outcome.ACK

        posts = self.load_posts(thread)
        if not posts:
            logger.info("summary_thread_empty", thread_id=thread.pk)
            return Outcome.ACK

        result = self.runtime.ai.generate_thread_summary(posts)
        self.runtime.cache.set_summary(thread.pk, result.to_dict())

        logger.info(
            "thread_summarized",
            thread_id=thread.pk,
            posts=len(posts),
            key_points=len(result.key_points),
            sentiment_score=result.sentiment_score,
        )
        return Outcome.ACK

    @staticmethod
    def load_posts(thread: Thread) -> list[dict]:
        queryset = (
            Post.objects.filter(thread=thread, status=ContentStatus.ACTIVE.value)
            .exclude(moderation_status=ModerationStatus.REJECTED.value)
            .select_related("author")
            .order_by("created_at")[:MAX_SUMMARY_POSTS]
        )
        return [
            {
                "content": post.content,
                "author": post.author.name if post.author_id else "Anonymous",
                "created_at": post.created_at.isoformat(),
            }
            for post in queryset
        ]
