# forum/models/content.py
"""
Forum content models.

Provides:
- Thread: A discussion with a title, slug and denormalized post count
- Post: A message inside a thread; the unit that gets scored and moderated
"""

from django.db import models
from django.db.models import F
from django.db.models.functions import Greatest
from django.utils import timezone

from .base import TimeStampedModel
from .choices import ContentStatus, ModerationStatus, Recommendation


class Thread(TimeStampedModel):
    """
    Discussion thread.

    ``post_count`` is denormalized and maintained by the write services;
    every change to it invalidates the cached thread reads.
    """

    thread_id = models.AutoField(
        db_column="ThreadID",
        primary_key=True,
        help_text="Unique identifier for the thread",
    )
    title = models.CharField(
        db_column="Title",
        max_length=200,
        help_text="Thread title",
    )
    slug = models.SlugField(
        db_column="Slug",
        max_length=255,
        unique=True,
        help_text="URL slug derived from the title",
    )
    author = models.ForeignKey(
        "User",
        models.CASCADE,
        db_column="AuthorID",
        related_name="threads",
        help_text="User who started the thread",
    )
    post_count = models.IntegerField(
        db_column="PostCount",
        default=0,
        help_text="Number of active posts in the thread",
    )
    status = models.CharField(
        db_column="Status",
        max_length=10,
        choices=ContentStatus.choices(),
        default=ContentStatus.ACTIVE.value,
        help_text="Lifecycle status of the thread",
    )
    is_locked = models.BooleanField(
        db_column="IsLocked",
        default=False,
        help_text="Locked threads accept no new posts",
    )
    is_pinned = models.BooleanField(
        db_column="IsPinned",
        default=False,
        help_text="Pinned threads are listed first",
    )
    last_activity_at = models.DateTimeField(
        db_column="LastActivityAt",
        default=timezone.now,
        help_text="Timestamp of the latest post in the thread",
    )

    class Meta:
        managed = True
        db_table = "Threads"
        verbose_name = "Thread"
        verbose_name_plural = "Threads"
        indexes = [
            models.Index(fields=["status", "last_activity_at"], name="threads_status_activity_idx"),
            models.Index(fields=["author", "status"], name="threads_author_status_idx"),
        ]
        ordering = ["-is_pinned", "-last_activity_at"]
        app_label = "forum"

    def __str__(self):
        return f"Thread #{self.thread_id}: {self.title[:50]}"

    @property
    def is_active(self) -> bool:
        return self.status == ContentStatus.ACTIVE.value

    def adjust_post_count(self, delta: int) -> None:
        """Atomically shift the post count, never below zero."""
        Thread.objects.filter(pk=self.pk).update(
            post_count=Greatest(F("post_count") + delta, 0),
            last_activity_at=timezone.now() if delta > 0 else F("last_activity_at"),
        )
        self.refresh_from_db(fields=["post_count", "last_activity_at"])


class Post(TimeStampedModel):
    """
    A post inside a thread.

    Moderation writes the three scores, the reasoning and the status
    transition together; a rejected post is always deleted as well.
    """

    post_id = models.AutoField(
        db_column="PostID",
        primary_key=True,
        help_text="Unique identifier for the post",
    )
    thread = models.ForeignKey(
        Thread,
        models.CASCADE,
        db_column="ThreadID",
        related_name="posts",
        help_text="Thread this post belongs to",
    )
    parent = models.ForeignKey(
        "self",
        models.SET_NULL,
        db_column="ParentPostID",
        blank=True,
        null=True,
        related_name="replies",
        help_text="Post this one replies to",
    )
    author = models.ForeignKey(
        "User",
        models.CASCADE,
        db_column="AuthorID",
        related_name="posts",
        help_text="User who wrote the post",
    )
    content = models.TextField(
        db_column="Content",
        help_text="Body text of the post",
    )
    mentions = models.ManyToManyField(
        "User",
        blank=True,
        related_name="mentioned_in",
        db_table="PostMentions",
        help_text="Users @mentioned in the body",
    )
    is_edited = models.BooleanField(
        db_column="IsEdited",
        default=False,
        help_text="Whether the body was edited after creation",
    )
    edited_at = models.DateTimeField(
        db_column="EditedAt",
        blank=True,
        null=True,
        help_text="When the body was last edited",
    )
    status = models.CharField(
        db_column="Status",
        max_length=10,
        choices=ContentStatus.choices(),
        default=ContentStatus.ACTIVE.value,
        help_text="Lifecycle status of the post",
    )
    moderation_status = models.CharField(
        db_column="ModerationStatus",
        max_length=10,
        choices=ModerationStatus.choices(),
        default=ModerationStatus.PENDING.value,
        help_text="Result of automated moderation",
    )
    spam_score = models.FloatField(
        db_column="SpamScore",
        blank=True,
        null=True,
        help_text="Spam probability in [0, 1]",
    )
    toxicity_score = models.FloatField(
        db_column="ToxicityScore",
        blank=True,
        null=True,
        help_text="Toxicity probability in [0, 1]",
    )
    inappropriate_score = models.FloatField(
        db_column="InappropriateScore",
        blank=True,
        null=True,
        help_text="Inappropriate-content probability in [0, 1]",
    )
    score_reasoning = models.TextField(
        db_column="ScoreReasoning",
        blank=True,
        default="",
        help_text="Scorer explanation for the scores",
    )
    recommendation = models.CharField(
        db_column="Recommendation",
        max_length=10,
        choices=Recommendation.choices(),
        blank=True,
        null=True,
        help_text="Scorer recommendation",
    )
    moderated_at = models.DateTimeField(
        db_column="ModeratedAt",
        blank=True,
        null=True,
        help_text="When the post was last scored",
    )

    class Meta:
        managed = True
        db_table = "Posts"
        verbose_name = "Post"
        verbose_name_plural = "Posts"
        indexes = [
            models.Index(fields=["thread", "status", "created_at"], name="posts_thread_status_idx"),
            models.Index(fields=["moderation_status", "created_at"], name="posts_moderation_idx"),
            models.Index(fields=["author", "status"], name="posts_author_status_idx"),
        ]
        ordering = ["created_at"]
        app_label = "forum"

    def __str__(self):
        return f"Post #{self.post_id} in Thread #{self.thread_id} ({self.moderation_status})"

    @property
    def is_visible(self) -> bool:
        return (
            self.status == ContentStatus.ACTIVE.value
            and self.moderation_status != ModerationStatus.REJECTED.value
        )

    @property
    def score_snapshot(self) -> dict | None:
        """Scores from the last moderation pass, or None if never scored."""
        if self.spam_score is None:
            return None
        return {
            "spam": self.spam_score,
            "toxicity": self.toxicity_score,
            "inappropriate": self.inappropriate_score,
        }
