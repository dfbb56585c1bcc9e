from rest_framework import serializers

from forum.models import (
    DeliverySource,
    DeliveryStatus,
    Notification,
    NotificationType,
    Post,
    Thread,
    User,
    WebhookDeliveryLog,
)


class AuthorSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source="user_id", read_only=True)
    name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "username", "name", "role"]
        read_only_fields = fields


class ThreadSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source="thread_id", read_only=True)
    author = AuthorSerializer(read_only=True)

    class Meta:
        model = Thread
        fields = [
            "id",
            "title",
            "slug",
            "author",
            "post_count",
            "status",
            "is_locked",
            "is_pinned",
            "last_activity_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = (
            "slug",
            "post_count",
            "status",
            "last_activity_at",
            "created_at",
            "updated_at",
        )


class PostSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source="post_id", read_only=True)
    thread_id = serializers.IntegerField(read_only=True)
    parent_id = serializers.IntegerField(read_only=True, allow_null=True)
    author = AuthorSerializer(read_only=True)

    class Meta:
        model = Post
        fields = [
            "id",
            "thread_id",
            "parent_id",
            "author",
            "content",
            "is_edited",
            "edited_at",
            "status",
            "moderation_status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = (
            "is_edited",
            "edited_at",
            "status",
            "moderation_status",
            "created_at",
            "updated_at",
        )

    def validate_content(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Post content cannot be empty.")
        return value


class NotificationSerializer(serializers.ModelSerializer):
    type = serializers.ChoiceField(choices=NotificationType.choices(), read_only=True)

    class Meta:
        model = Notification
        fields = [
            "notification_id",
            "type",
            "title",
            "message",
            "link",
            "actor",
            "thread",
            "post",
            "is_read",
            "read_at",
            "created_at",
            "expires_at",
        ]
        read_only_fields = fields


class WebhookDeliveryLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = WebhookDeliveryLog
        fields = [
            "log_id",
            "event",
            "payload",
            "source",
            "status",
            "url",
            "attempts",
            "error",
            "timestamp",
        ]
        read_only_fields = fields


class WebhookLogQuerySerializer(serializers.Serializer):
    event = serializers.CharField(required=False)
    source = serializers.ChoiceField(choices=DeliverySource.choices(), required=False)
    status = serializers.ChoiceField(choices=DeliveryStatus.choices(), required=False)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=500, default=100)


class EmailStatusSerializer(serializers.Serializer):
    """Status callback sent by the email provider."""

    event = serializers.ChoiceField(
        choices=["delivered", "bounced", "opened", "clicked", "failed", "spam"]
    )
    messageId = serializers.CharField(max_length=255)
    recipient = serializers.EmailField()
    timestamp = serializers.CharField(required=False)
    reason = serializers.CharField(required=False, allow_blank=True)
    metadata = serializers.DictField(required=False)
