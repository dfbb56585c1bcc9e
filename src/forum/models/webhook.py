# forum/models/webhook.py
"""
Webhook subscription and delivery models.

This module contains:
- ExternalWebhook: Admin-registered endpoint subscribed to event names
- WebhookDeliveryLog: Append-only record of every delivery outcome
"""

from django.core.exceptions import ValidationError
from django.db import models

from .base import TimeStampedModel
from .choices import DeliverySource, DeliveryStatus, WebhookMethod


class ExternalWebhook(TimeStampedModel):
    """
    External webhook subscription.

    Registered by administrators; the pipeline only reads it.
    """

    webhook_id = models.AutoField(
        db_column="WebhookID",
        primary_key=True,
        help_text="Unique identifier for the subscription",
    )
    name = models.CharField(
        db_column="Name",
        max_length=100,
        help_text="Human readable name of the subscriber",
    )
    url = models.URLField(
        db_column="URL",
        max_length=500,
        help_text="Endpoint that receives the events",
    )
    method = models.CharField(
        db_column="Method",
        max_length=6,
        choices=WebhookMethod.choices(),
        default=WebhookMethod.POST.value,
        help_text="HTTP method used for delivery",
    )
    headers = models.JSONField(
        db_column="Headers",
        default=dict,
        blank=True,
        help_text="Static headers added to every delivery",
    )
    events = models.JSONField(
        db_column="Events",
        default=list,
        help_text="Event names this endpoint is subscribed to",
    )
    secret = models.CharField(
        db_column="Secret",
        max_length=255,
        blank=True,
        default="",
        help_text="Shared secret used to sign deliveries",
    )
    is_active = models.BooleanField(
        db_column="IsActive",
        default=True,
        help_text="Inactive subscriptions receive nothing",
    )
    created_by = models.ForeignKey(
        "User",
        models.SET_NULL,
        db_column="CreatedByID",
        blank=True,
        null=True,
        related_name="+",
        help_text="Administrator who registered the endpoint",
    )

    class Meta:
        managed = True
        db_table = "ExternalWebhooks"
        verbose_name = "External Webhook"
        verbose_name_plural = "External Webhooks"
        indexes = [
            models.Index(fields=["is_active"], name="webhooks_active_idx"),
        ]
        ordering = ["name"]
        app_label = "forum"

    def __str__(self):
        return f"{self.name} -> {self.url}"

    def clean(self):
        """Headers must map names to string values; events must be a list of names."""
        if not isinstance(self.headers, dict) or not all(
            isinstance(name, str) and isinstance(value, str) for name, value in self.headers.items()
        ):
            raise ValidationError({"headers": "Headers must be an object of string names to string values."})
        if not isinstance(self.events, list) or not all(isinstance(event, str) for event in self.events):
            raise ValidationError({"events": "Events must be a list of event names."})

    def subscribes_to(self, event_name: str) -> bool:
        return self.is_active and event_name in (self.events or [])


class WebhookDeliveryLog(models.Model):
    """
    Webhook delivery audit trail.

    Rows are only ever inserted.
    """

    log_id = models.AutoField(
        db_column="LogID",
        primary_key=True,
        help_text="Unique identifier for the log entry",
    )
    event = models.CharField(
        db_column="Event",
        max_length=100,
        help_text="Event name that was delivered",
    )
    payload = models.JSONField(
        db_column="Payload",
        default=dict,
        help_text="Snapshot of the delivered payload",
    )
    source = models.CharField(
        db_column="Source",
        max_length=15,
        choices=DeliverySource.choices(),
        help_text="Component that produced the delivery",
    )
    status = models.CharField(
        db_column="Status",
        max_length=10,
        choices=DeliveryStatus.choices(),
        help_text="Delivery outcome",
    )
    url = models.CharField(
        db_column="URL",
        max_length=500,
        blank=True,
        default="",
        help_text="Target URL, when the delivery went over HTTP",
    )
    attempts = models.IntegerField(
        db_column="Attempts",
        default=1,
        help_text="Number of HTTP attempts made",
    )
    error = models.TextField(
        db_column="Error",
        blank=True,
        null=True,
        help_text="Last error message for failed deliveries",
    )
    timestamp = models.DateTimeField(
        db_column="Timestamp",
        auto_now_add=True,
        help_text="When the outcome was recorded",
    )

    class Meta:
        managed = True
        db_table = "WebhookDeliveryLogs"
        verbose_name = "Webhook Delivery Log"
        verbose_name_plural = "Webhook Delivery Logs"
        indexes = [
            models.Index(fields=["event", "timestamp"], name="webhook_logs_event_idx"),
            models.Index(fields=["source", "status"], name="webhook_logs_source_idx"),
        ]
        ordering = ["-timestamp"]
        app_label = "forum"

    def __str__(self):
        return f"{self.event} [{self.source}] {self.status}"


class PipelineAuditLog(models.Model):
    """
    Audit trail for jobs the pipeline gave up on.

    One row per dead-lettered message.
    """

    audit_log_id = models.AutoField(
        db_column="AuditLogID",
        primary_key=True,
        help_text="Unique identifier for the audit log entry",
    )
    action = models.CharField(
        db_column="Action",
        max_length=100,
        help_text="What happened (e.g. job.dead_lettered)",
    )
    queue_name = models.CharField(
        db_column="QueueName",
        max_length=100,
        help_text="Queue the job was consumed from",
    )
    payload = models.JSONField(
        db_column="Payload",
        default=dict,
        blank=True,
        help_text="Job payload at the time of the failure",
    )
    attempts = models.IntegerField(
        db_column="Attempts",
        default=0,
        help_text="Delivery attempts made before giving up",
    )
    error = models.TextField(
        db_column="Error",
        blank=True,
        default="",
        help_text="Last error raised by the handler",
    )
    created_at = models.DateTimeField(
        db_column="CreatedAt",
        auto_now_add=True,
        help_text="Timestamp when the entry was written",
    )

    class Meta:
        managed = True
        db_table = "PipelineAuditLogs"
        verbose_name = "Pipeline Audit Log"
        verbose_name_plural = "Pipeline Audit Logs"
        indexes = [
            models.Index(fields=["queue_name", "created_at"], name="audit_logs_queue_idx"),
        ]
        ordering = ["-created_at"]
        app_label = "forum"

    def __str__(self):
        return f"{self.action} on {self.queue_name} after {self.attempts} attempts"
