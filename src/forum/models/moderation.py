# forum/models/moderation.py
"""
Content moderation models.

Provides:
- ReviewTicket: A report awaiting (or resolved by) a human moderator
"""

from django.db import models
from django.utils import timezone

from .base import TimeStampedModel
from .choices import TicketCategory, TicketResolution, TicketStatus, TicketTarget


class ReviewTicket(TimeStampedModel):
    """
    Review ticket for flagged or rejected content.

    Opened by the moderation worker (``is_automated``) or by a member
    reporting a post, thread or user.
    """

    ticket_id = models.AutoField(
        db_column="TicketID",
        primary_key=True,
        help_text="Unique identifier for the review ticket",
    )
    target_type = models.CharField(
        db_column="TargetType",
        max_length=10,
        choices=TicketTarget.choices(),
        default=TicketTarget.POST.value,
        help_text="Kind of object being reported",
    )
    post = models.ForeignKey(
        "Post",
        models.CASCADE,
        db_column="PostID",
        blank=True,
        null=True,
        related_name="review_tickets",
        help_text="Reported post",
    )
    thread = models.ForeignKey(
        "Thread",
        models.CASCADE,
        db_column="ThreadID",
        blank=True,
        null=True,
        related_name="review_tickets",
        help_text="Reported thread",
    )
    reported_user = models.ForeignKey(
        "User",
        models.SET_NULL,
        db_column="ReportedUserID",
        blank=True,
        null=True,
        related_name="reports_against",
        help_text="User whose content or behaviour was reported",
    )
    reporter = models.ForeignKey(
        "User",
        models.SET_NULL,
        db_column="ReporterID",
        blank=True,
        null=True,
        related_name="reports_filed",
        help_text="User who filed the report (empty for automated tickets)",
    )
    category = models.CharField(
        db_column="Category",
        max_length=20,
        choices=TicketCategory.choices(),
        help_text="Reason category",
    )
    description = models.TextField(
        db_column="Description",
        blank=True,
        default="",
        help_text="Free-text description or scorer reasoning",
    )
    status = models.CharField(
        db_column="Status",
        max_length=10,
        choices=TicketStatus.choices(),
        default=TicketStatus.PENDING.value,
        help_text="Current review status",
    )
    resolution = models.CharField(
        db_column="Resolution",
        max_length=20,
        choices=TicketResolution.choices(),
        blank=True,
        null=True,
        help_text="Outcome once resolved",
    )
    reviewed_by = models.ForeignKey(
        "User",
        models.SET_NULL,
        db_column="ReviewedByID",
        blank=True,
        null=True,
        related_name="tickets_reviewed",
        help_text="Moderator who handled the ticket",
    )
    review_note = models.TextField(
        db_column="ReviewNote",
        blank=True,
        default="",
        help_text="Notes from the moderator",
    )
    resolved_at = models.DateTimeField(
        db_column="ResolvedAt",
        blank=True,
        null=True,
        help_text="When the ticket was resolved or dismissed",
    )
    is_automated = models.BooleanField(
        db_column="IsAutomated",
        default=False,
        help_text="Whether the ticket was opened by automated moderation",
    )

    class Meta:
        managed = True
        db_table = "ReviewTickets"
        verbose_name = "Review Ticket"
        verbose_name_plural = "Review Tickets"
        indexes = [
            models.Index(fields=["status", "created_at"], name="tickets_status_created_idx"),
            models.Index(fields=["target_type", "status"], name="tickets_target_status_idx"),
        ]
        ordering = ["-created_at"]
        app_label = "forum"

    def __str__(self):
        return f"ReviewTicket #{self.ticket_id} - {self.category} ({self.status})"

    def resolve(self, moderator, resolution: str, note: str = "") -> None:
        """Close the ticket with a resolution."""
        self.status = TicketStatus.RESOLVED.value
        self.resolution = resolution
        self.reviewed_by = moderator
        self.review_note = note
        self.resolved_at = timezone.now()
        self.save(
            update_fields=[
                "status",
                "resolution",
                "reviewed_by",
                "review_note",
                "resolved_at",
                "updated_at",
            ]
        )

    def dismiss(self, moderator, note: str = "") -> None:
        """Close the ticket without action."""
        self.status = TicketStatus.DISMISSED.value
        self.resolution = TicketResolution.NO_ACTION.value
        self.reviewed_by = moderator
        self.review_note = note
        self.resolved_at = timezone.now()
        self.save(
            update_fields=[
                "status",
                "resolution",
                "reviewed_by",
                "review_note",
                "resolved_at",
                "updated_at",
            ]
        )
