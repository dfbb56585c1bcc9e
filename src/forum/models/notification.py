# forum/models/notification.py
"""
Notification models for user alerts.

This module contains:
- Notification: In-app notification with a retention window
"""

from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .choices import NotificationType


def default_expiry():
    days = getattr(settings, "NOTIFICATION_RETENTION_DAYS", 90)
    return timezone.now() + timedelta(days=days)


class Notification(models.Model):
    """
    User notification model for in-app alerts.

    Created by the notification worker; deleted by the retention purge
    once ``expires_at`` has passed.
    """

    notification_id = models.AutoField(
        db_column="NotificationID",
        primary_key=True,
        help_text="Unique identifier for the notification",
    )
    user = models.ForeignKey(
        "User",
        models.CASCADE,
        db_column="UserID",
        related_name="notifications",
        help_text="User who should receive this notification",
    )
    type = models.CharField(
        db_column="Type",
        max_length=24,
        choices=NotificationType.choices(),
        help_text="Notification category type",
    )
    title = models.CharField(
        db_column="Title",
        max_length=255,
        help_text="Notification title or headline",
    )
    message = models.TextField(
        db_column="Message",
        help_text="Full notification message content",
    )
    link = models.CharField(
        db_column="Link",
        max_length=500,
        blank=True,
        default="",
        help_text="Relative link the notification points to",
    )
    actor = models.ForeignKey(
        "User",
        models.SET_NULL,
        db_column="ActorID",
        blank=True,
        null=True,
        related_name="notifications_caused",
        help_text="User whose action triggered the notification",
    )
    thread = models.ForeignKey(
        "Thread",
        models.SET_NULL,
        db_column="ThreadID",
        blank=True,
        null=True,
        related_name="+",
        help_text="Related thread",
    )
    post = models.ForeignKey(
        "Post",
        models.SET_NULL,
        db_column="PostID",
        blank=True,
        null=True,
        related_name="+",
        help_text="Related post",
    )
    is_read = models.BooleanField(
        db_column="IsRead",
        default=False,
        help_text="Whether user has read this notification",
    )
    read_at = models.DateTimeField(
        db_column="ReadAt",
        blank=True,
        null=True,
        help_text="When the notification was read",
    )
    created_at = models.DateTimeField(
        db_column="CreatedAt",
        auto_now_add=True,
        help_text="Timestamp when the notification was created",
    )
    expires_at = models.DateTimeField(
        db_column="ExpiresAt",
        default=default_expiry,
        help_text="Notification is purged after this time",
    )

    class Meta:
        managed = True
        db_table = "Notifications"
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        indexes = [
            models.Index(fields=["user", "is_read", "created_at"], name="notifications_user_read_idx"),
            models.Index(fields=["expires_at"], name="notifications_expires_idx"),
        ]
        ordering = ["-created_at"]
        app_label = "forum"

    def __str__(self):
        return f"{self.type}: {self.title}"

    def clean(self):
        """Validate notification data."""
        if self.type and self.type not in NotificationType.values():
            raise ValidationError({"type": "Invalid notification type selected."})

    def mark_as_read(self):
        """Mark notification as read."""
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=["is_read", "read_at"])
