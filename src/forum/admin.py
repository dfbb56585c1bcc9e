from django.contrib import admin

from .models import (
    ExternalWebhook,
    Notification,
    PipelineAuditLog,
    Post,
    ReviewTicket,
    Thread,
    User,
    WebhookDeliveryLog,
)

# =============================================================================
# USERS & CONTENT
# =============================================================================


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("user_id", "username", "display_name", "email", "role", "is_active", "created_at")
    list_filter = ("role", "is_active")
    search_fields = ("username", "display_name", "email")
    readonly_fields = ("user_id", "created_at", "updated_at", "password", "last_login")


@admin.register(Thread)
class ThreadAdmin(admin.ModelAdmin):
    list_display = ("thread_id", "title", "author", "post_count", "status", "is_locked", "is_pinned")
    list_filter = ("status", "is_locked", "is_pinned")
    search_fields = ("title", "slug")
    readonly_fields = ("thread_id", "post_count", "created_at", "updated_at")


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ("post_id", "thread", "author", "status", "moderation_status", "recommendation", "created_at")
    list_filter = ("status", "moderation_status", "recommendation")
    search_fields = ("content",)
    readonly_fields = (
        "post_id",
        "spam_score",
        "toxicity_score",
        "inappropriate_score",
        "score_reasoning",
        "recommendation",
        "moderated_at",
        "created_at",
        "updated_at",
    )


# =============================================================================
# MODERATION
# =============================================================================


@admin.register(ReviewTicket)
class ReviewTicketAdmin(admin.ModelAdmin):
    list_display = ("ticket_id", "target_type", "post", "category", "status", "is_automated", "created_at")
    list_filter = ("status", "category", "is_automated")
    readonly_fields = ("ticket_id", "created_at", "updated_at", "resolved_at")


# =============================================================================
# NOTIFICATIONS & WEBHOOKS
# =============================================================================


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("notification_id", "user", "type", "title", "is_read", "created_at", "expires_at")
    list_filter = ("type", "is_read")
    search_fields = ("title", "message")


@admin.register(ExternalWebhook)
class ExternalWebhookAdmin(admin.ModelAdmin):
    """Subscriptions are only ever created here."""

    list_display = ("webhook_id", "name", "url", "method", "is_active", "created_at")
    list_filter = ("is_active", "method")
    search_fields = ("name", "url")

    def save_model(self, request, obj, form, change):
        if not change and obj.created_by_id is None:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(WebhookDeliveryLog)
class WebhookDeliveryLogAdmin(admin.ModelAdmin):
    list_display = ("log_id", "event", "source", "status", "url", "attempts", "timestamp")
    list_filter = ("source", "status")
    search_fields = ("event", "url")

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(PipelineAuditLog)
class PipelineAuditLogAdmin(admin.ModelAdmin):
    list_display = ("audit_log_id", "action", "queue_name", "attempts", "created_at")
    list_filter = ("action", "queue_name")

    def has_change_permission(self, request, obj=None):
        return False
