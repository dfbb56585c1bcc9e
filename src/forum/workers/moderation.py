# forum/workers/moderation.py
"""
Moderation worker.

Scores a post and moves it through the moderation state machine:

    pending --approve--> approved
    pending --review---> flagged   (+ pending ReviewTicket, author notified)
    pending --reject---> rejected  (+ reviewing ReviewTicket, post deleted,
                                    post count decremented, author notified)

Scores and the transition are written in one UPDATE, so a rejected post is
never visible. Re-running a job overwrites the scores with the same values;
only the ReviewTicket is created again.
"""

from django.db import transaction
from django.utils import timezone

from forum.models import (
    ContentStatus,
    ModerationStatus,
    Post,
    Recommendation,
    ReviewTicket,
    TicketCategory,
    TicketStatus,
    TicketTarget,
)
from forum.pipeline.consumer import Outcome
from forum.pipeline.jobs import ModerationFlaggedJob, ModerationJob, ModerationRejectedJob
from forum.pipeline.queues import MODERATION
from forum.services.ai_service import ModerationResult
from forumutils.logging import get_logger

logger = get_logger(__name__)

STATUS_FOR_RECOMMENDATION = {
    Recommendation.APPROVE.value: ModerationStatus.APPROVED.value,
    Recommendation.REVIEW.value: ModerationStatus.FLAGGED.value,
    Recommendation.REJECT.value: ModerationStatus.REJECTED.value,
}


def ticket_category(result: ModerationResult) -> str:
    if result.is_spam:
        return TicketCategory.SPAM.value
    if result.is_toxic:
        return TicketCategory.HARASSMENT.value
    return TicketCategory.INAPPROPRIATE.value


def ticket_description(result: ModerationResult) -> str:
    if result.recommendation == Recommendation.REJECT.value:
        return (
            f"AI Moderation: {result.reasoning}. Scores - Spam: {result.spam_score}, "
            f"Toxicity: {result.toxicity_score}, Inappropriate: {result.inappropriate_score}"
        )
    return f"AI Moderation (Review Needed): {result.reasoning}"


class ModerationWorker:
    """Handler for the ``moderation`` queue."""

    queue = MODERATION

    def __init__(self, runtime):
        self.runtime = runtime

    def __call__(self, payload) -> Outcome:
        job = ModerationJob.from_payload(payload)

        # ScoringError propagates and the job is retried
        result = self.runtime.ai.moderate_content(job.text_body)

        with transaction.atomic():
            post = (
                Post.objects.select_for_update()
                .select_related("thread")
                .filter(pk=job.content_id)
                .first()
            )
            if post is None:
                logger.info("moderation_target_missing", content_id=job.content_id)
                return Outcome.ACK

            removed = self._apply(post, result)
            if removed:
                post.thread.adjust_post_count(-1)
            if result.recommendation != Recommendation.APPROVE.value:
                self._open_ticket(post, result)

        if result.recommendation == Recommendation.REJECT.value:
            self.runtime.cache.invalidate_thread(post.thread_id, post.thread.slug)

        notification = self._notification_for(post, result)
        if notification is not None:
            self.runtime.broker.publish_job(notification)

        logger.info(
            "post_moderated",
            content_id=post.pk,
            recommendation=result.recommendation,
            moderation_status=post.moderation_status,
            spam_score=result.spam_score,
            toxicity_score=result.toxicity_score,
            inappropriate_score=result.inappropriate_score,
        )
        return Outcome.ACK

    @staticmethod
    def _apply(post: Post, result: ModerationResult) -> bool:
        """
        Write scores and the status transition in one UPDATE.

        Returns True when this call took the post from active to deleted.
        """
        was_active = post.status == ContentStatus.ACTIVE.value

        post.spam_score = result.spam_score
        post.toxicity_score = result.toxicity_score
        post.inappropriate_score = result.inappropriate_score
        post.score_reasoning = result.reasoning
        post.recommendation = result.recommendation
        post.moderation_status = STATUS_FOR_RECOMMENDATION[result.recommendation]
        post.moderated_at = timezone.now()
        if result.recommendation == Recommendation.REJECT.value:
            post.status = ContentStatus.DELETED.value

        post.save(
            update_fields=[
                "spam_score",
                "toxicity_score",
                "inappropriate_score",
                "score_reasoning",
                "recommendation",
                "moderation_status",
                "moderated_at",
                "status",
                "updated_at",
            ]
        )
        return was_active and post.status == ContentStatus.DELETED.value

    @staticmethod
    def _open_ticket(post: Post, result: ModerationResult) -> ReviewTicket:
        rejected = result.recommendation == Recommendation.REJECT.value
        return ReviewTicket.objects.create(
            target_type=TicketTarget.POST.value,
            post=post,
            thread=post.thread,
            reported_user_id=post.author_id,
            category=ticket_category(result),
            description=ticket_description(result),
            status=TicketStatus.REVIEWING.value if rejected else TicketStatus.PENDING.value,
            is_automated=True,
        )

    @staticmethod
    def _notification_for(post: Post, result: ModerationResult):
        if result.recommendation == Recommendation.REJECT.value:
            job_type = ModerationRejectedJob
        elif result.recommendation == Recommendation.REVIEW.value:
            job_type = ModerationFlaggedJob
        else:
            return None
        return job_type(
            target_user_id=post.author_id,
            post_id=post.pk,
            thread_id=post.thread_id,
            reason=result.reasoning,
        )
