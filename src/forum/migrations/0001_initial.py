# Initial schema for the forum pipeline.
#
# 1. Users (custom auth model, email login, public @handle)
# 2. Threads, Posts and the PostMentions join table
# 3. ReviewTickets opened by moderation or by members
# 4. Notifications with a retention window
# 5. ExternalWebhooks, WebhookDeliveryLogs and PipelineAuditLogs

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import forum.models.notification

CONTENT_STATUS = [("active", "Active"), ("deleted", "Deleted")]
MODERATION_STATUS = [
    ("pending", "Pending"),
    ("approved", "Approved"),
    ("flagged", "Flagged"),
    ("rejected", "Rejected"),
]
RECOMMENDATION = [("approve", "Approve"), ("review", "Review"), ("reject", "Reject")]
NOTIFICATION_TYPE = [
    ("mention", "Mention"),
    ("reply", "Reply"),
    ("thread-comment", "Thread Comment"),
    ("post-like", "Post Like"),
    ("follow", "Follow"),
    ("content-created", "Content Created"),
    ("moderation-rejected", "Moderation Rejected"),
    ("moderation-flagged", "Moderation Flagged"),
    ("system", "System"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        # =====================================================================
        # 1. Users
        # =====================================================================
        migrations.CreateModel(
            name="User",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_column="CreatedAt", help_text="Timestamp when the record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, db_column="UpdatedAt", help_text="Timestamp when the record was last updated")),
                ("user_id", models.AutoField(db_column="UserID", help_text="Unique identifier for the user", primary_key=True, serialize=False)),
                ("username", models.CharField(db_column="Username", help_text="Public handle used for @mentions", max_length=50, unique=True)),
                ("display_name", models.CharField(blank=True, db_column="DisplayName", default="", help_text="Name shown to other members", max_length=255)),
                ("email", models.CharField(db_column="Email", help_text="User's email address (used for login)", max_length=255, unique=True)),
                ("password", models.CharField(db_column="PasswordHash", help_text="Hashed password", max_length=255)),
                (
                    "role",
                    models.CharField(
                        choices=[("Admin", "Administrator"), ("User", "Standard User"), ("Moderator", "Moderator")],
                        db_column="Role",
                        default="User",
                        help_text="User role determining permissions",
                        max_length=12,
                    ),
                ),
                ("is_active", models.BooleanField(db_column="IsActive", default=True, help_text="Whether the account can sign in")),
                ("is_staff", models.BooleanField(default=False, help_text="Designates whether the user can log into the admin site.")),
                ("is_superuser", models.BooleanField(default=False, help_text="Designates that this user has all permissions.")),
                ("last_login", models.DateTimeField(blank=True, db_column="LastLogin", help_text="Last login timestamp", null=True)),
            ],
            options={
                "verbose_name": "User",
                "verbose_name_plural": "Users",
                "db_table": "Users",
                "managed": True,
                "get_latest_by": "created_at",
                "abstract": False,
                "indexes": [
                    models.Index(fields=["username"], name="users_username_idx"),
                    models.Index(fields=["role", "is_active"], name="users_role_active_idx"),
                ],
            },
        ),
        # =====================================================================
        # 2. Content
        # =====================================================================
        migrations.CreateModel(
            name="Thread",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_column="CreatedAt", help_text="Timestamp when the record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, db_column="UpdatedAt", help_text="Timestamp when the record was last updated")),
                ("thread_id", models.AutoField(db_column="ThreadID", help_text="Unique identifier for the thread", primary_key=True, serialize=False)),
                ("title", models.CharField(db_column="Title", help_text="Thread title", max_length=200)),
                ("slug", models.SlugField(db_column="Slug", help_text="URL slug derived from the title", max_length=255, unique=True)),
                ("post_count", models.IntegerField(db_column="PostCount", default=0, help_text="Number of active posts in the thread")),
                ("status", models.CharField(choices=CONTENT_STATUS, db_column="Status", default="active", help_text="Lifecycle status of the thread", max_length=10)),
                ("is_locked", models.BooleanField(db_column="IsLocked", default=False, help_text="Locked threads accept no new posts")),
                ("is_pinned", models.BooleanField(db_column="IsPinned", default=False, help_text="Pinned threads are listed first")),
                ("last_activity_at", models.DateTimeField(db_column="LastActivityAt", default=django.utils.timezone.now, help_text="Timestamp of the latest post in the thread")),
                (
                    "author",
                    models.ForeignKey(
                        db_column="AuthorID",
                        help_text="User who started the thread",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="threads",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Thread",
                "verbose_name_plural": "Threads",
                "db_table": "Threads",
                "ordering": ["-is_pinned", "-last_activity_at"],
                "managed": True,
                "get_latest_by": "created_at",
                "abstract": False,
                "indexes": [
                    models.Index(fields=["status", "last_activity_at"], name="threads_status_activity_idx"),
                    models.Index(fields=["author", "status"], name="threads_author_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Post",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_column="CreatedAt", help_text="Timestamp when the record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, db_column="UpdatedAt", help_text="Timestamp when the record was last updated")),
                ("post_id", models.AutoField(db_column="PostID", help_text="Unique identifier for the post", primary_key=True, serialize=False)),
                ("content", models.TextField(db_column="Content", help_text="Body text of the post")),
                ("is_edited", models.BooleanField(db_column="IsEdited", default=False, help_text="Whether the body was edited after creation")),
                ("edited_at", models.DateTimeField(blank=True, db_column="EditedAt", help_text="When the body was last edited", null=True)),
                ("status", models.CharField(choices=CONTENT_STATUS, db_column="Status", default="active", help_text="Lifecycle status of the post", max_length=10)),
                ("moderation_status", models.CharField(choices=MODERATION_STATUS, db_column="ModerationStatus", default="pending", help_text="Result of automated moderation", max_length=10)),
                ("spam_score", models.FloatField(blank=True, db_column="SpamScore", help_text="Spam probability in [0, 1]", null=True)),
                ("toxicity_score", models.FloatField(blank=True, db_column="ToxicityScore", help_text="Toxicity probability in [0, 1]", null=True)),
                ("inappropriate_score", models.FloatField(blank=True, db_column="InappropriateScore", help_text="Inappropriate-content probability in [0, 1]", null=True)),
                ("score_reasoning", models.TextField(blank=True, db_column="ScoreReasoning", default="", help_text="Scorer explanation for the scores")),
                ("recommendation", models.CharField(blank=True, choices=RECOMMENDATION, db_column="Recommendation", help_text="Scorer recommendation", max_length=10, null=True)),
                ("moderated_at", models.DateTimeField(blank=True, db_column="ModeratedAt", help_text="When the post was last scored", null=True)),
                (
                    "author",
                    models.ForeignKey(
                        db_column="AuthorID",
                        help_text="User who wrote the post",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="posts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "thread",
                    models.ForeignKey(
                        db_column="ThreadID",
                        help_text="Thread this post belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="posts",
                        to="forum.thread",
                    ),
                ),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        db_column="ParentPostID",
                        help_text="Post this one replies to",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="replies",
                        to="forum.post",
                    ),
                ),
                (
                    "mentions",
                    models.ManyToManyField(
                        blank=True,
                        db_table="PostMentions",
                        help_text="Users @mentioned in the body",
                        related_name="mentioned_in",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Post",
                "verbose_name_plural": "Posts",
                "db_table": "Posts",
                "ordering": ["created_at"],
                "managed": True,
                "get_latest_by": "created_at",
                "abstract": False,
                "indexes": [
                    models.Index(fields=["thread", "status", "created_at"], name="posts_thread_status_idx"),
                    models.Index(fields=["moderation_status", "created_at"], name="posts_moderation_idx"),
                    models.Index(fields=["author", "status"], name="posts_author_status_idx"),
                ],
            },
        ),
        # =====================================================================
        # 3. Moderation
        # =====================================================================
        migrations.CreateModel(
            name="ReviewTicket",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_column="CreatedAt", help_text="Timestamp when the record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, db_column="UpdatedAt", help_text="Timestamp when the record was last updated")),
                ("ticket_id", models.AutoField(db_column="TicketID", help_text="Unique identifier for the review ticket", primary_key=True, serialize=False)),
                (
                    "target_type",
                    models.CharField(
                        choices=[("post", "Post"), ("thread", "Thread"), ("user", "User")],
                        db_column="TargetType",
                        default="post",
                        help_text="Kind of object being reported",
                        max_length=10,
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("spam", "Spam"),
                            ("harassment", "Harassment"),
                            ("inappropriate", "Inappropriate"),
                            ("misinformation", "Misinformation"),
                            ("other", "Other"),
                        ],
                        db_column="Category",
                        help_text="Reason category",
                        max_length=20,
                    ),
                ),
                ("description", models.TextField(blank=True, db_column="Description", default="", help_text="Free-text description or scorer reasoning")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("reviewing", "Reviewing"),
                            ("resolved", "Resolved"),
                            ("dismissed", "Dismissed"),
                        ],
                        db_column="Status",
                        default="pending",
                        help_text="Current review status",
                        max_length=10,
                    ),
                ),
                (
                    "resolution",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("content_removed", "Content Removed"),
                            ("user_warned", "User Warned"),
                            ("user_banned", "User Banned"),
                            ("no_action", "No Action"),
                        ],
                        db_column="Resolution",
                        help_text="Outcome once resolved",
                        max_length=20,
                        null=True,
                    ),
                ),
                ("review_note", models.TextField(blank=True, db_column="ReviewNote", default="", help_text="Notes from the moderator")),
                ("resolved_at", models.DateTimeField(blank=True, db_column="ResolvedAt", help_text="When the ticket was resolved or dismissed", null=True)),
                ("is_automated", models.BooleanField(db_column="IsAutomated", default=False, help_text="Whether the ticket was opened by automated moderation")),
                (
                    "post",
                    models.ForeignKey(
                        blank=True,
                        db_column="PostID",
                        help_text="Reported post",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="review_tickets",
                        to="forum.post",
                    ),
                ),
                (
                    "thread",
                    models.ForeignKey(
                        blank=True,
                        db_column="ThreadID",
                        help_text="Reported thread",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="review_tickets",
                        to="forum.thread",
                    ),
                ),
                (
                    "reported_user",
                    models.ForeignKey(
                        blank=True,
                        db_column="ReportedUserID",
                        help_text="User whose content or behaviour was reported",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reports_against",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reporter",
                    models.ForeignKey(
                        blank=True,
                        db_column="ReporterID",
                        help_text="User who filed the report (empty for automated tickets)",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reports_filed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reviewed_by",
                    models.ForeignKey(
                        blank=True,
                        db_column="ReviewedByID",
                        help_text="Moderator who handled the ticket",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="tickets_reviewed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Review Ticket",
                "verbose_name_plural": "Review Tickets",
                "db_table": "ReviewTickets",
                "ordering": ["-created_at"],
                "managed": True,
                "get_latest_by": "created_at",
                "abstract": False,
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="tickets_status_created_idx"),
                    models.Index(fields=["target_type", "status"], name="tickets_target_status_idx"),
                ],
            },
        ),
        # =====================================================================
        # 4. Notifications
        # =====================================================================
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("notification_id", models.AutoField(db_column="NotificationID", help_text="Unique identifier for the notification", primary_key=True, serialize=False)),
                ("type", models.CharField(choices=NOTIFICATION_TYPE, db_column="Type", help_text="Notification category type", max_length=24)),
                ("title", models.CharField(db_column="Title", help_text="Notification title or headline", max_length=255)),
                ("message", models.TextField(db_column="Message", help_text="Full notification message content")),
                ("link", models.CharField(blank=True, db_column="Link", default="", help_text="Relative link the notification points to", max_length=500)),
                ("is_read", models.BooleanField(db_column="IsRead", default=False, help_text="Whether user has read this notification")),
                ("read_at", models.DateTimeField(blank=True, db_column="ReadAt", help_text="When the notification was read", null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_column="CreatedAt", help_text="Timestamp when the notification was created")),
                ("expires_at", models.DateTimeField(db_column="ExpiresAt", default=forum.models.notification.default_expiry, help_text="Notification is purged after this time")),
                (
                    "user",
                    models.ForeignKey(
                        db_column="UserID",
                        help_text="User who should receive this notification",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        db_column="ActorID",
                        help_text="User whose action triggered the notification",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="notifications_caused",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "thread",
                    models.ForeignKey(
                        blank=True,
                        db_column="ThreadID",
                        help_text="Related thread",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="forum.thread",
                    ),
                ),
                (
                    "post",
                    models.ForeignKey(
                        blank=True,
                        db_column="PostID",
                        help_text="Related post",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="forum.post",
                    ),
                ),
            ],
            options={
                "verbose_name": "Notification",
                "verbose_name_plural": "Notifications",
                "db_table": "Notifications",
                "ordering": ["-created_at"],
                "managed": True,
                "indexes": [
                    models.Index(fields=["user", "is_read", "created_at"], name="notifications_user_read_idx"),
                    models.Index(fields=["expires_at"], name="notifications_expires_idx"),
                ],
            },
        ),
        # =====================================================================
        # 5. Webhooks and pipeline audit
        # =====================================================================
        migrations.CreateModel(
            name="ExternalWebhook",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_column="CreatedAt", help_text="Timestamp when the record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, db_column="UpdatedAt", help_text="Timestamp when the record was last updated")),
                ("webhook_id", models.AutoField(db_column="WebhookID", help_text="Unique identifier for the subscription", primary_key=True, serialize=False)),
                ("name", models.CharField(db_column="Name", help_text="Human readable name of the subscriber", max_length=100)),
                ("url", models.URLField(db_column="URL", help_text="Endpoint that receives the events", max_length=500)),
                (
                    "method",
                    models.CharField(
                        choices=[("POST", "POST"), ("PUT", "PUT"), ("GET", "GET")],
                        db_column="Method",
                        default="POST",
                        help_text="HTTP method used for delivery",
                        max_length=6,
                    ),
                ),
                ("headers", models.JSONField(blank=True, db_column="Headers", default=dict, help_text="Static headers added to every delivery")),
                ("events", models.JSONField(db_column="Events", default=list, help_text="Event names this endpoint is subscribed to")),
                ("secret", models.CharField(blank=True, db_column="Secret", default="", help_text="Shared secret used to sign deliveries", max_length=255)),
                ("is_active", models.BooleanField(db_column="IsActive", default=True, help_text="Inactive subscriptions receive nothing")),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        db_column="CreatedByID",
                        help_text="Administrator who registered the endpoint",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "External Webhook",
                "verbose_name_plural": "External Webhooks",
                "db_table": "ExternalWebhooks",
                "ordering": ["name"],
                "managed": True,
                "get_latest_by": "created_at",
                "abstract": False,
                "indexes": [models.Index(fields=["is_active"], name="webhooks_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="WebhookDeliveryLog",
            fields=[
                ("log_id", models.AutoField(db_column="LogID", help_text="Unique identifier for the log entry", primary_key=True, serialize=False)),
                ("event", models.CharField(db_column="Event", help_text="Event name that was delivered", max_length=100)),
                ("payload", models.JSONField(db_column="Payload", default=dict, help_text="Snapshot of the delivered payload")),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("email", "Email"),
                            ("notification", "Notification"),
                            ("external", "External"),
                            ("realtime", "Realtime"),
                        ],
                        db_column="Source",
                        help_text="Component that produced the delivery",
                        max_length=15,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("success", "Success"), ("failed", "Failed")],
                        db_column="Status",
                        help_text="Delivery outcome",
                        max_length=10,
                    ),
                ),
                ("url", models.CharField(blank=True, db_column="URL", default="", help_text="Target URL, when the delivery went over HTTP", max_length=500)),
                ("attempts", models.IntegerField(db_column="Attempts", default=1, help_text="Number of HTTP attempts made")),
                ("error", models.TextField(blank=True, db_column="Error", help_text="Last error message for failed deliveries", null=True)),
                ("timestamp", models.DateTimeField(auto_now_add=True, db_column="Timestamp", help_text="When the outcome was recorded")),
            ],
            options={
                "verbose_name": "Webhook Delivery Log",
                "verbose_name_plural": "Webhook Delivery Logs",
                "db_table": "WebhookDeliveryLogs",
                "ordering": ["-timestamp"],
                "managed": True,
                "indexes": [
                    models.Index(fields=["event", "timestamp"], name="webhook_logs_event_idx"),
                    models.Index(fields=["source", "status"], name="webhook_logs_source_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PipelineAuditLog",
            fields=[
                ("audit_log_id", models.AutoField(db_column="AuditLogID", help_text="Unique identifier for the audit log entry", primary_key=True, serialize=False)),
                ("action", models.CharField(db_column="Action", help_text="What happened (e.g. job.dead_lettered)", max_length=100)),
                ("queue_name", models.CharField(db_column="QueueName", help_text="Queue the job was consumed from", max_length=100)),
                ("payload", models.JSONField(blank=True, db_column="Payload", default=dict, help_text="Job payload at the time of the failure")),
                ("attempts", models.IntegerField(db_column="Attempts", default=0, help_text="Delivery attempts made before giving up")),
                ("error", models.TextField(blank=True, db_column="Error", default="", help_text="Last error raised by the handler")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_column="CreatedAt", help_text="Timestamp when the entry was written")),
            ],
            options={
                "verbose_name": "Pipeline Audit Log",
                "verbose_name_plural": "Pipeline Audit Logs",
                "db_table": "PipelineAuditLogs",
                "ordering": ["-created_at"],
                "managed": True,
                "indexes": [models.Index(fields=["queue_name", "created_at"], name="audit_logs_queue_idx")],
            },
        ),
    ]
